"""
Storefront Service Tests - Logging Tests.
"""

import json
import logging

from storefront.logging_config import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_request_id,
    get_request_id,
    set_request_id,
)


def _record(message: str, **extra_fields: object) -> logging.LogRecord:
    record = logging.LogRecord("storefront.test", logging.INFO, __file__, 10, message, None, None)
    if extra_fields:
        record.extra_fields = extra_fields
    return record


def test_request_id_lifecycle() -> None:
    generated = set_request_id()
    assert generated
    assert get_request_id() == generated

    assert set_request_id("abc") == "abc"
    clear_request_id()
    assert get_request_id() is None


def test_structured_formatter_includes_context() -> None:
    set_request_id("req-42")
    try:
        output = StructuredFormatter().format(_record("Domain check completed", domain="shop"))
    finally:
        clear_request_id()

    data = json.loads(output)
    assert data["message"] == "Domain check completed"
    assert data["level"] == "INFO"
    assert data["request_id"] == "req-42"
    assert data["domain"] == "shop"


def test_human_readable_formatter_appends_fields() -> None:
    output = HumanReadableFormatter().format(_record("Store created", domain="shop"))

    assert "Store created" in output
    assert "domain=shop" in output
