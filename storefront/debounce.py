"""
Debounce primitive for rapidly changing values.

A value pushed into a :class:`Debouncer` is handed to its callback only once no
newer value has arrived for the quiet period. Used by the store form so that a
domain lookup is not fired on every keystroke.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_NOTHING = object()


class Debouncer(Generic[T]):
    """
    Delay propagation of a value until it has been stable for ``delay`` seconds.

    Every :meth:`push` restarts the wait. Intermediate values are discarded,
    the last one is always delivered. Once the wait has elapsed the callback
    runs to completion even if newer values arrive in the meantime; ordering of
    overlapping callbacks is the callback's own concern.

    Must be used from within a running event loop.

    Attributes:
        delay: Quiet period in seconds
    """

    def __init__(
        self,
        callback: Callable[[T], Awaitable[None]],
        delay: float = 0.5,
        name: str = "debouncer",
    ) -> None:
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.delay = delay
        self.name = name
        self._callback = callback
        self._pending_value: object = _NOTHING
        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """Whether a value is waiting for its quiet period to elapse."""
        return self._timer is not None and not self._timer.done()

    def push(self, value: T) -> None:
        """Record a new value and restart the quiet period."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()

        self._pending_value = value
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._wait_and_emit())
        self._timer.add_done_callback(self._on_task_done)

    def cancel(self) -> None:
        """Drop the pending value without emitting it."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        self._pending_value = _NOTHING

    async def close(self) -> None:
        """Cancel the pending timer and any callback still running."""
        self.cancel()
        running = list(self._running)
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        self._running.clear()

    async def _wait_and_emit(self) -> None:
        await asyncio.sleep(self.delay)
        # From here on a newer push must not cancel the callback
        current = asyncio.current_task()
        if self._timer is current:
            self._timer = None
        self._running.add(current)
        await self._emit()

    async def _emit(self) -> None:
        value = self._pending_value
        self._pending_value = _NOTHING
        if value is _NOTHING:
            return
        logger.debug(
            "Debounced value settled",
            extra={"extra_fields": {"debouncer": self.name, "delay": self.delay}},
        )
        await self._callback(value)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Debounced callback failed",
                exc_info=error,
                extra={
                    "extra_fields": {
                        "debouncer": self.name,
                        "error_type": type(error).__name__,
                    }
                },
            )
