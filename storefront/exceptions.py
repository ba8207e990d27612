"""
Custom exception classes for the storefront service.

Upstream API failures are translated into these exceptions by the API clients
so that page handlers and the store form can decide how to present them.
"""

from typing import Any, Dict, Optional


class StorefrontException(Exception):
    """
    Base exception for all storefront service errors.

    All custom exceptions inherit from this class
    for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize storefront exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ServiceUnavailableException(StorefrontException):
    """
    Exception raised when an upstream API cannot be reached.

    Used for connection failures and other transport-level errors.
    """

    def __init__(
        self,
        service_name: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize service unavailable exception.

        Args:
            service_name: Name of the unavailable service
            message: Optional custom error message
            details: Additional context about the error
        """
        self.service_name = service_name
        default_message = f"Service '{service_name}' is currently unavailable"
        super().__init__(message or default_message, details)


class UpstreamTimeoutException(StorefrontException):
    """Exception raised when an upstream request exceeds its timeout."""

    def __init__(
        self,
        service_name: str,
        timeout_seconds: float,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize upstream timeout exception.

        Args:
            service_name: Name of the service that timed out
            timeout_seconds: The timeout value that was exceeded
            details: Additional context about the error
        """
        self.service_name = service_name
        self.timeout_seconds = timeout_seconds
        message = f"Request to '{service_name}' timed out after {timeout_seconds}s"
        super().__init__(message, details)


class UpstreamResponseException(StorefrontException):
    """
    Exception raised when an upstream API answers with an error status
    or a body that cannot be understood.
    """

    def __init__(
        self,
        service_name: str,
        reason: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service_name = service_name
        self.status_code = status_code
        message = f"Unexpected response from '{service_name}': {reason}"
        super().__init__(message, details)


class StoreCreationException(StorefrontException):
    """
    Exception raised when the store creation API rejects a request.

    The message is the one reported by the API, suitable for showing to the user.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, details)


class ValidationException(StorefrontException):
    """
    Exception raised when input validation fails.

    Used for unknown form fields and malformed form messages.
    """

    def __init__(
        self,
        field_name: str,
        value: Any,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize validation exception.

        Args:
            field_name: Name of the field that failed validation
            value: The invalid value
            reason: Explanation of why validation failed
            details: Additional context about the error
        """
        self.field_name = field_name
        self.value = value
        self.reason = reason
        message = f"Validation failed for '{field_name}': {reason}"
        super().__init__(message, details)
