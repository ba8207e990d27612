"""
Storefront Service Tests - Test Configuration.

Provides pytest fixtures for the storefront service tests: catalog payloads,
a controllable domain lookup and a stubbed store API client.
"""

import asyncio
import os
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Settings are read once at import time, so the test environment has to be in
# place before anything from the package is imported.
os.environ.setdefault("PRODUCT_SERVICE_URL", "http://test-catalog:9000")
os.environ.setdefault("STORE_SERVICE_URL", "http://test-store:9001")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("DOMAIN_CHECK_DEBOUNCE_SECONDS", "0.05")

from storefront.exceptions import ServiceUnavailableException  # noqa: E402
from storefront.models import DomainCheckResult  # noqa: E402


class ControlledLookup:
    """
    Stand-in for ``StoreServiceClient.check_domain``.

    Lookups for a domain with a gate block until the gate is set, which lets
    tests finish lookups in any order.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.taken: Dict[str, bool] = {}
        self.failing: set = set()
        self.gates: Dict[str, asyncio.Event] = {}

    def gate(self, domain: str) -> asyncio.Event:
        self.gates[domain] = asyncio.Event()
        return self.gates[domain]

    async def __call__(self, domain: str) -> DomainCheckResult:
        self.calls.append(domain)
        gate: Optional[asyncio.Event] = self.gates.get(domain)
        if gate is not None:
            await gate.wait()
        if domain in self.failing:
            raise ServiceUnavailableException("store-service")
        return DomainCheckResult(domain=domain, taken=self.taken.get(domain, False))


@pytest.fixture
def lookup() -> ControlledLookup:
    return ControlledLookup()


@pytest.fixture
def store_client(lookup: ControlledLookup) -> MagicMock:
    """
    Stubbed store API client.

    ``check_domain`` is backed by the ``lookup`` fixture and ``create_store``
    succeeds with an empty body unless a test reconfigures it.
    """
    client = MagicMock()
    client.check_domain = lookup
    client.create_store = AsyncMock(return_value=None)
    return client


@pytest.fixture
def outbox() -> List[Dict[str, Any]]:
    return []


@pytest.fixture
def notify(outbox: List[Dict[str, Any]]):
    async def _notify(message: Dict[str, Any]) -> None:
        outbox.append(message)

    return _notify


@pytest.fixture
def product_records() -> List[Dict[str, Any]]:
    """
    Product records as the catalog API returns them.

    Returns:
        Two complete records and one with only the required identifier
    """
    return [
        {
            "_id": "6650a1f2c3",
            "name": "Cotton Panjabi",
            "description": "Hand-stitched cotton panjabi for festive days.",
            "price": 2450,
            "images": [
                {"secure_url": "https://cdn.example.com/panjabi.jpg", "public_id": "p1"}
            ],
            "video": {"secure_url": "https://cdn.example.com/panjabi.mp4"},
            "category": {"_id": "c1", "name": "Fashion"},
        },
        {
            "_id": "6650a1f2c4",
            "name": "Silk Saree",
            "description": "Rajshahi silk saree.",
            "price": 7800.5,
            "images": [{"secure_url": "https://cdn.example.com/saree.jpg"}],
            "category": "c1",
        },
        {"_id": "6650a1f2c5"},
    ]


@pytest.fixture
def product_envelope(product_records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"success": True, "data": product_records}


def pytest_configure(config: Any) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test",
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test",
    )
