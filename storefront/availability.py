"""
Domain availability checking for the store creation form.

:class:`DomainAvailabilityChecker` turns settled domain values into one of the
:class:`DomainStatus` states shown next to the domain field. Several lookups
may be in flight at once when the user keeps editing; each lookup takes a
ticket from a monotonically increasing sequence and its outcome is applied only
while that ticket is still the latest, so an older response can never
overwrite the status of a newer one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .exceptions import StorefrontException
from .logging_config import get_logger
from .metrics import track_domain_check, track_stale_domain_check
from .models import DomainCheckResult

logger = get_logger(__name__)

MESSAGE_CHECKING = "Checking..."
MESSAGE_AVAILABLE = "Domain is available!"
MESSAGE_TAKEN = "Not available. Please re-enter."
MESSAGE_ERROR = "Error checking domain. Try again."


class DomainStatus(str, Enum):
    """Availability states of the domain field."""

    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    TAKEN = "taken"
    ERROR = "error"


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """What the form currently shows for the domain field."""

    status: DomainStatus
    message: str = ""
    domain: str = ""

    def to_message(self) -> dict:
        """Render as a ``domain_status`` message for the browser."""
        return {
            "type": "domain_status",
            "status": self.status.value,
            "message": self.message,
            "domain": self.domain,
        }


IDLE = AvailabilitySnapshot(DomainStatus.IDLE)


def normalize_domain(value: str) -> str:
    """Subdomains are case-insensitive; compare and look them up in lowercase."""
    return value.strip().lower()


class DomainAvailabilityChecker:
    """
    State machine for the domain field.

    Args:
        lookup: Coroutine resolving a subdomain to a :class:`DomainCheckResult`,
            raising :class:`StorefrontException` on failure
        on_change: Optional coroutine called with every new snapshot
    """

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[DomainCheckResult]],
        on_change: Optional[Callable[[AvailabilitySnapshot], Awaitable[None]]] = None,
    ) -> None:
        self._lookup = lookup
        self._on_change = on_change
        self._sequence = 0
        self._snapshot = IDLE

    @property
    def snapshot(self) -> AvailabilitySnapshot:
        return self._snapshot

    @property
    def status(self) -> DomainStatus:
        return self._snapshot.status

    @property
    def latest_ticket(self) -> int:
        """Sequence number of the most recently issued lookup."""
        return self._sequence

    def is_available(self, domain: str) -> bool:
        """Whether ``domain`` has been confirmed free by the latest lookup."""
        normalized = normalize_domain(domain)
        return (
            bool(normalized)
            and self._snapshot.status is DomainStatus.AVAILABLE
            and self._snapshot.domain == normalized
        )

    async def check(self, value: str) -> AvailabilitySnapshot:
        """
        Process a settled domain value.

        Empty values reset the field to idle and invalidate any lookup still
        in flight. A value equal to the one already checked is not looked up
        again unless that lookup failed.

        Args:
            value: Debounced content of the domain field

        Returns:
            The snapshot in effect once this call has finished, which may
            belong to a newer lookup than the one this call issued
        """
        domain = normalize_domain(value)

        if not domain:
            self._sequence += 1
            await self._apply(IDLE)
            return self._snapshot

        if domain == self._snapshot.domain and self._snapshot.status is not DomainStatus.ERROR:
            logger.debug(
                "Domain unchanged since last check, skipping lookup",
                extra={"extra_fields": {"domain": domain}},
            )
            return self._snapshot

        self._sequence += 1
        ticket = self._sequence
        await self._apply(
            AvailabilitySnapshot(DomainStatus.CHECKING, MESSAGE_CHECKING, domain)
        )

        try:
            result = await self._lookup(domain)
        except StorefrontException as error:
            outcome = AvailabilitySnapshot(DomainStatus.ERROR, MESSAGE_ERROR, domain)
            logger.warning(
                "Domain check failed",
                extra={
                    "extra_fields": {
                        "domain": domain,
                        "ticket": ticket,
                        "error_type": type(error).__name__,
                        "error_message": error.message,
                    }
                },
            )
        else:
            if result.taken:
                outcome = AvailabilitySnapshot(DomainStatus.TAKEN, MESSAGE_TAKEN, domain)
            else:
                outcome = AvailabilitySnapshot(
                    DomainStatus.AVAILABLE, MESSAGE_AVAILABLE, domain
                )

        if ticket != self._sequence:
            track_stale_domain_check()
            logger.info(
                "Discarding superseded domain check result",
                extra={
                    "extra_fields": {
                        "domain": domain,
                        "ticket": ticket,
                        "latest_ticket": self._sequence,
                        "status": outcome.status.value,
                    }
                },
            )
            return self._snapshot

        track_domain_check(outcome.status.value)
        await self._apply(outcome)
        return self._snapshot

    async def _apply(self, snapshot: AvailabilitySnapshot) -> None:
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        if self._on_change is not None:
            await self._on_change(snapshot)
