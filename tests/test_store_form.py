"""
Storefront Service Tests - Store Form Tests.

Tests for the field validation rules and the StoreFormSession, including the
debounced domain check and the submission gate.
"""

import asyncio
from typing import Any, List
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from storefront.availability import MESSAGE_ERROR, MESSAGE_TAKEN, DomainStatus
from storefront.exceptions import (
    ServiceUnavailableException,
    StoreCreationException,
    ValidationException,
)
from storefront.models import StoreCreateRequest
from storefront.store_form import (
    SUCCESS_MESSAGE,
    SUCCESS_REDIRECT,
    StoreFormSession,
    validate_email,
    validate_store_name,
)

DEBOUNCE = 0.02


async def settle() -> None:
    """Wait until a debounced domain edit has been looked up."""
    await asyncio.sleep(DEBOUNCE * 5)


@pytest_asyncio.fixture
async def session(store_client: MagicMock, notify):
    form = StoreFormSession(store_client, notify=notify, debounce_seconds=DEBOUNCE)
    yield form
    await form.close()


async def fill(form: StoreFormSession, name: str, domain: str, email: str) -> None:
    await form.update_field("store_name", name)
    await form.update_field("domain", domain)
    await form.update_field("email", email)
    await settle()


@pytest.mark.parametrize(
    "name,required,expected",
    [
        ("", False, None),
        ("   ", False, None),
        ("", True, "Store name must be at least 3 characters"),
        ("ab", False, "Store name must be at least 3 characters"),
        ("  ab  ", False, "Store name must be at least 3 characters"),
        ("abc", False, None),
        ("My Shop", True, None),
    ],
)
def test_validate_store_name(name: str, required: bool, expected: Any) -> None:
    assert validate_store_name(name, required=required) == expected


@pytest.mark.parametrize(
    "email,required,expected",
    [
        ("", False, None),
        ("", True, "Invalid email format"),
        ("a@b.co", False, None),
        ("owner@shop.example.com", False, None),
        ("ab", False, "Invalid email format"),
        ("a@b", False, "Invalid email format"),
        ("a b@c.de", False, "Invalid email format"),
        ("@b.co", False, "Invalid email format"),
    ],
)
def test_validate_email(email: str, required: bool, expected: Any) -> None:
    assert validate_email(email, required=required) == expected


@pytest.mark.asyncio
async def test_short_name_reported_on_blur(session, outbox) -> None:
    await session.update_field("store_name", "ab")
    error = await session.blur("store_name")

    assert error == "Store name must be at least 3 characters"
    assert outbox[-1] == {
        "type": "field_error",
        "field": "store_name",
        "message": "Store name must be at least 3 characters",
    }


@pytest.mark.asyncio
async def test_blur_only_reports_changes(session, outbox) -> None:
    await session.update_field("email", "nope")
    await session.blur("email")
    await session.blur("email")

    assert len([m for m in outbox if m["type"] == "field_error"]) == 1

    await session.update_field("email", "owner@shop.com")
    await session.blur("email")

    assert outbox[-1] == {"type": "field_error", "field": "email", "message": None}


@pytest.mark.asyncio
async def test_blur_on_untouched_field_is_silent(session, outbox) -> None:
    assert await session.blur("store_name") is None
    assert await session.blur("category") is None
    assert outbox == []


@pytest.mark.asyncio
async def test_domain_edits_are_debounced(session, lookup, outbox) -> None:
    """Only the settled domain value reaches the lookup."""
    for value in ["s", "sh", "sho", "shop"]:
        await session.update_field("domain", value)

    await settle()

    assert lookup.calls == ["shop"]
    statuses = [m for m in outbox if m["type"] == "domain_status"]
    assert [m["status"] for m in statuses] == ["checking", "available"]
    assert statuses[-1]["message"] == "Domain is available!"
    assert session.domain_status.status is DomainStatus.AVAILABLE


@pytest.mark.asyncio
async def test_valid_form_creates_store(session, store_client) -> None:
    """Name, email and an available domain produce exactly one creation request."""
    await fill(session, "My Shop", "shop", "owner@shop.com")

    result = await session.submit()

    assert result.success is True
    assert result.message == SUCCESS_MESSAGE
    assert result.redirect == SUCCESS_REDIRECT
    store_client.create_store.assert_awaited_once()

    request = store_client.create_store.await_args.args[0]
    assert isinstance(request, StoreCreateRequest)
    assert request.model_dump() == {
        "name": "My Shop",
        "currency": "BDT",
        "country": "Bangladesh",
        "domain": "shop",
        "category": "Fashion",
        "email": "owner@shop.com",
    }


@pytest.mark.asyncio
async def test_selected_options_are_submitted(session, store_client) -> None:
    await session.update_field("category", "Groceries")
    await fill(session, "Corner Grocer", "Grocer", "hello@grocer.com")

    result = await session.submit()

    assert result.success is True
    request = store_client.create_store.await_args.args[0]
    assert request.category == "Groceries"
    assert request.domain == "grocer"


@pytest.mark.parametrize(
    "name,email,field",
    [
        ("ab", "owner@shop.com", "store_name"),
        ("", "owner@shop.com", "store_name"),
        ("My Shop", "not-an-email", "email"),
        ("My Shop", "", "email"),
    ],
)
@pytest.mark.asyncio
async def test_invalid_fields_block_submission(
    session, store_client, name: str, email: str, field: str
) -> None:
    await fill(session, name, "shop", email)

    result = await session.submit()

    assert result.success is False
    assert field in result.errors
    assert result.message == "Please fix the highlighted fields."
    store_client.create_store.assert_not_awaited()


@pytest.mark.asyncio
async def test_taken_domain_blocks_submission(session, store_client, lookup) -> None:
    lookup.taken["shop"] = True
    await fill(session, "My Shop", "shop", "owner@shop.com")

    result = await session.submit()

    assert result.success is False
    assert result.errors == {"domain": MESSAGE_TAKEN}
    store_client.create_store.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_domain_check_blocks_submission(session, store_client, lookup) -> None:
    lookup.failing.add("shop")
    await fill(session, "My Shop", "shop", "owner@shop.com")

    result = await session.submit()

    assert result.errors == {"domain": MESSAGE_ERROR}
    store_client.create_store.assert_not_awaited()


@pytest.mark.asyncio
async def test_empty_domain_blocks_submission(session, store_client) -> None:
    await fill(session, "My Shop", "", "owner@shop.com")

    result = await session.submit()

    assert result.errors == {"domain": "Domain cannot be empty."}
    store_client.create_store.assert_not_awaited()


@pytest.mark.asyncio
async def test_pending_domain_check_blocks_submission(store_client, notify) -> None:
    """Submitting before the domain has settled is not allowed."""
    form = StoreFormSession(store_client, notify=notify, debounce_seconds=10)
    try:
        await form.update_field("store_name", "My Shop")
        await form.update_field("email", "owner@shop.com")
        await form.update_field("domain", "shop")

        result = await form.submit()

        assert result.errors == {"domain": "Please wait for the domain check to finish."}
        store_client.create_store.assert_not_awaited()
    finally:
        await form.close()


@pytest.mark.asyncio
async def test_domain_changed_after_check_blocks_submission(session, store_client) -> None:
    await fill(session, "My Shop", "shop", "owner@shop.com")
    await session.update_field("domain", "shopx")

    result = await session.submit()

    assert "domain" in result.errors
    store_client.create_store.assert_not_awaited()


@pytest.mark.asyncio
async def test_rejected_creation_reports_api_message(session, store_client) -> None:
    store_client.create_store.side_effect = StoreCreationException(
        "Domain already registered", status_code=409
    )
    await fill(session, "My Shop", "shop", "owner@shop.com")

    result = await session.submit()

    assert result.success is False
    assert result.message == "Error: Domain already registered"
    assert result.redirect is None
    assert session.state.is_submitting is False


@pytest.mark.asyncio
async def test_unreachable_store_api_reports_error(session, store_client) -> None:
    store_client.create_store.side_effect = ServiceUnavailableException("store-service")
    await fill(session, "My Shop", "shop", "owner@shop.com")

    result = await session.submit()

    assert result.success is False
    assert result.message == "Error: Service 'store-service' is currently unavailable"


@pytest.mark.asyncio
async def test_concurrent_submit_is_rejected(session, store_client) -> None:
    release = asyncio.Event()
    requests: List[StoreCreateRequest] = []

    async def slow_create(request: StoreCreateRequest) -> None:
        requests.append(request)
        await release.wait()

    store_client.create_store.side_effect = slow_create
    await fill(session, "My Shop", "shop", "owner@shop.com")

    first = asyncio.create_task(session.submit())
    await asyncio.sleep(0.01)
    second = await session.submit()

    assert second.success is False
    assert second.message == "A submission is already in progress."

    release.set()
    assert (await first).success is True
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_submit_result_message_shape(session) -> None:
    result = await session.submit()

    message = result.to_message()
    assert message["type"] == "submit_result"
    assert message["success"] is False
    assert set(message["errors"]) == {"store_name", "email", "domain"}


@pytest.mark.parametrize(
    "field,value",
    [
        ("nickname", "x"),
        ("category", "Toys"),
        ("currency", "USD"),
        ("domain", 42),
        (["domain"], "shop"),
        ({"field": "domain"}, "shop"),
    ],
)
@pytest.mark.asyncio
async def test_bad_updates_rejected(session, field: str, value: Any) -> None:
    with pytest.raises(ValidationException):
        await session.update_field(field, value)


@pytest.mark.asyncio
async def test_blur_unknown_field_rejected(session) -> None:
    with pytest.raises(ValidationException):
        await session.blur("nickname")


@pytest.mark.asyncio
async def test_blur_non_string_field_rejected(session) -> None:
    with pytest.raises(ValidationException):
        await session.blur({"a": 1})
