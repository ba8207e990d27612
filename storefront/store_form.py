"""
Store creation form.

Holds the validation rules of the "Create a store" form and the per-connection
:class:`StoreFormSession` that composes the debounced domain availability check
with gated submission to the store creation API.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from pydantic import ValidationError

from .api_client import StoreServiceClient
from .availability import (
    AvailabilitySnapshot,
    DomainAvailabilityChecker,
    DomainStatus,
    normalize_domain,
)
from .debounce import Debouncer
from .exceptions import StoreCreationException, StorefrontException, ValidationException
from .logging_config import get_logger
from .metrics import track_store_creation
from .models import StoreCreateRequest

logger = get_logger(__name__)

STORE_NAME_MIN_LENGTH = 3
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CATEGORIES: Tuple[str, ...] = ("Fashion", "Electronics", "Groceries")
LOCATIONS: Tuple[str, ...] = ("Bangladesh",)
CURRENCIES: Dict[str, str] = {"BDT": "BDT (৳ Taka)"}

TEXT_FIELDS = ("store_name", "domain", "email")
SELECT_FIELDS = {
    "category": CATEGORIES,
    "location": LOCATIONS,
    "currency": tuple(CURRENCIES),
}

SUCCESS_MESSAGE = "Store created successfully! Redirecting..."
SUCCESS_REDIRECT = "/products"

Notifier = Callable[[Dict[str, Any]], Awaitable[None]]


def validate_store_name(name: str, required: bool = False) -> Optional[str]:
    """
    Validate the store name.

    An empty name counts as not yet entered and only fails when ``required``.

    Returns:
        An error message, or None when the name is acceptable
    """
    stripped = name.strip()
    if not stripped and not required:
        return None
    if len(stripped) < STORE_NAME_MIN_LENGTH:
        return f"Store name must be at least {STORE_NAME_MIN_LENGTH} characters"
    return None


def validate_email(email: str, required: bool = False) -> Optional[str]:
    """
    Validate the contact email against a basic ``local@domain.tld`` shape.

    Returns:
        An error message, or None when the email is acceptable
    """
    if not email and not required:
        return None
    if not EMAIL_PATTERN.match(email):
        return "Invalid email format"
    return None


@dataclass
class StoreFormState:
    """Current contents of one open store form."""

    store_name: str = ""
    domain: str = ""
    email: str = ""
    category: str = CATEGORIES[0]
    location: str = LOCATIONS[0]
    currency: str = "BDT"
    errors: Dict[str, Optional[str]] = field(default_factory=dict)
    is_submitting: bool = False


@dataclass
class SubmissionResult:
    """Outcome of a submit attempt."""

    success: bool
    message: str = ""
    errors: Dict[str, str] = field(default_factory=dict)
    redirect: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "submit_result",
            "success": self.success,
            "message": self.message,
            "errors": self.errors,
            "redirect": self.redirect,
        }


class StoreFormSession:
    """
    Server-side state of a single store creation form.

    Field edits arrive through :meth:`update_field`; domain edits are debounced
    and fed to a :class:`DomainAvailabilityChecker`. Every change the browser
    needs to render is reported through ``notify`` as a JSON-ready dict.

    Args:
        store_client: Client for domain lookups and store creation
        notify: Coroutine receiving outgoing messages
        debounce_seconds: Quiet period before a domain edit is looked up
    """

    def __init__(
        self,
        store_client: StoreServiceClient,
        notify: Optional[Notifier] = None,
        debounce_seconds: float = 0.5,
    ) -> None:
        self.state = StoreFormState()
        self._store_client = store_client
        self._notify = notify
        self.checker = DomainAvailabilityChecker(
            lookup=store_client.check_domain,
            on_change=self._on_domain_status,
        )
        self._debouncer: Debouncer[str] = Debouncer(
            self.checker.check, delay=debounce_seconds, name="domain"
        )

    @property
    def domain_status(self) -> AvailabilitySnapshot:
        return self.checker.snapshot

    async def update_field(self, field_name: str, value: Any) -> None:
        """
        Record a new value for a form field.

        Raises:
            ValidationException: Unknown field, non-string value, or a select
                value outside the offered options
        """
        if not isinstance(field_name, str):
            raise ValidationException(str(field_name), value, "unknown field")
        if not isinstance(value, str):
            raise ValidationException(field_name, value, "value must be a string")

        if field_name in SELECT_FIELDS:
            if value not in SELECT_FIELDS[field_name]:
                raise ValidationException(field_name, value, "unsupported option")
            setattr(self.state, field_name, value)
            return

        if field_name not in TEXT_FIELDS:
            raise ValidationException(field_name, value, "unknown field")

        setattr(self.state, field_name, value)
        if field_name == "domain":
            self._debouncer.push(value)

    async def blur(self, field_name: str) -> Optional[str]:
        """
        Validate a field after it lost focus and report the result.

        Returns:
            The error message now shown for the field, if any
        """
        if not isinstance(field_name, str):
            raise ValidationException(str(field_name), None, "unknown field")
        if field_name == "store_name":
            error = validate_store_name(self.state.store_name)
        elif field_name == "email":
            error = validate_email(self.state.email)
        elif field_name in TEXT_FIELDS or field_name in SELECT_FIELDS:
            return None
        else:
            raise ValidationException(field_name, None, "unknown field")

        await self._set_error(field_name, error)
        return error

    async def submit(self) -> SubmissionResult:
        """
        Validate the form and create the store when every gate passes.

        The creation request is only sent when the store name and email are
        valid and the domain currently entered has been confirmed available.
        """
        if self.state.is_submitting:
            return SubmissionResult(False, "A submission is already in progress.")

        errors: Dict[str, str] = {}
        name_error = validate_store_name(self.state.store_name, required=True)
        email_error = validate_email(self.state.email, required=True)
        await self._set_error("store_name", name_error)
        await self._set_error("email", email_error)
        if name_error:
            errors["store_name"] = name_error
        if email_error:
            errors["email"] = email_error

        domain_error = self._domain_gate_error()
        if domain_error:
            errors["domain"] = domain_error

        if errors:
            logger.info(
                "Store form submission blocked",
                extra={"extra_fields": {"fields": sorted(errors)}},
            )
            return SubmissionResult(False, "Please fix the highlighted fields.", errors)

        try:
            request = StoreCreateRequest(
                name=self.state.store_name.strip(),
                currency=self.state.currency,
                country=self.state.location,
                domain=normalize_domain(self.state.domain),
                category=self.state.category,
                email=self.state.email,
            )
        except ValidationError as error:
            logger.warning(
                "Store payload failed validation",
                extra={"extra_fields": {"errors": error.errors(include_url=False)}},
            )
            return SubmissionResult(False, "Error: Invalid store details")

        self.state.is_submitting = True
        try:
            await self._store_client.create_store(request)
        except StoreCreationException as error:
            track_store_creation(False)
            return SubmissionResult(False, f"Error: {error.message or 'Unknown error'}")
        except StorefrontException as error:
            track_store_creation(False)
            logger.error(
                "Store creation failed",
                extra={
                    "extra_fields": {
                        "domain": request.domain,
                        "error_type": type(error).__name__,
                    }
                },
            )
            return SubmissionResult(False, f"Error: {error.message}")
        finally:
            self.state.is_submitting = False

        track_store_creation(True)
        return SubmissionResult(True, SUCCESS_MESSAGE, redirect=SUCCESS_REDIRECT)

    async def close(self) -> None:
        """Cancel pending and running domain checks."""
        await self._debouncer.close()

    def _domain_gate_error(self) -> Optional[str]:
        domain = normalize_domain(self.state.domain)
        if not domain:
            return "Domain cannot be empty."
        if self.checker.is_available(domain):
            return None

        snapshot = self.checker.snapshot
        if (
            self._debouncer.pending
            or snapshot.domain != domain
            or snapshot.status is DomainStatus.CHECKING
        ):
            return "Please wait for the domain check to finish."
        return snapshot.message or "Domain is not available."

    async def _set_error(self, field_name: str, error: Optional[str]) -> None:
        if self.state.errors.get(field_name) == error:
            return
        self.state.errors[field_name] = error
        await self._send({"type": "field_error", "field": field_name, "message": error})

    async def _on_domain_status(self, snapshot: AvailabilitySnapshot) -> None:
        await self._send(snapshot.to_message())

    async def _send(self, message: Dict[str, Any]) -> None:
        if self._notify is not None:
            await self._notify(message)
