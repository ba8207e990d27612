"""
Storefront Service Tests - Exception Tests.

Tests for the custom exception classes and their default messages.
"""

import pytest

from storefront.exceptions import (
    ServiceUnavailableException,
    StoreCreationException,
    StorefrontException,
    UpstreamResponseException,
    UpstreamTimeoutException,
    ValidationException,
)


def test_storefront_exception() -> None:
    """
    Test base StorefrontException.

    Verifies that the base exception stores message and details correctly.
    """
    exc = StorefrontException("Something failed", {"key": "value"})

    assert exc.message == "Something failed"
    assert exc.details == {"key": "value"}
    assert str(exc) == "Something failed"


def test_storefront_exception_without_details() -> None:
    assert StorefrontException("Something failed").details == {}


def test_service_unavailable_default_message() -> None:
    exc = ServiceUnavailableException("store-service")

    assert exc.service_name == "store-service"
    assert exc.message == "Service 'store-service' is currently unavailable"


def test_service_unavailable_custom_message() -> None:
    exc = ServiceUnavailableException("store-service", message="Cannot connect")

    assert exc.message == "Cannot connect"


def test_upstream_timeout() -> None:
    exc = UpstreamTimeoutException("product-catalog", 10.0, {"url": "http://x"})

    assert exc.timeout_seconds == 10.0
    assert exc.message == "Request to 'product-catalog' timed out after 10.0s"
    assert exc.details == {"url": "http://x"}


def test_upstream_response() -> None:
    exc = UpstreamResponseException("product-catalog", "status 502", status_code=502)

    assert exc.status_code == 502
    assert exc.message == "Unexpected response from 'product-catalog': status 502"


def test_store_creation() -> None:
    exc = StoreCreationException("Domain already exists", status_code=409)

    assert exc.message == "Domain already exists"
    assert exc.status_code == 409


def test_validation_exception() -> None:
    exc = ValidationException("currency", "USD", "unsupported option")

    assert exc.field_name == "currency"
    assert exc.value == "USD"
    assert exc.message == "Validation failed for 'currency': unsupported option"


@pytest.mark.parametrize(
    "exc",
    [
        ServiceUnavailableException("svc"),
        UpstreamTimeoutException("svc", 1.0),
        UpstreamResponseException("svc", "bad"),
        StoreCreationException("nope"),
        ValidationException("field", None, "bad"),
    ],
)
def test_exception_inheritance(exc: Exception) -> None:
    assert isinstance(exc, StorefrontException)
