"""
Pytest configuration and fixtures for storefront-core tests
"""

import os
import sys
from unittest.mock import MagicMock

import httpx
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

from storefront.config import Settings  # noqa: E402
from storefront.events.bus import EventBus  # noqa: E402
from storefront.i18n.loader import LocaleLoader  # noqa: E402
from storefront.services.consent_service import ConsentGate  # noqa: E402
from storefront.services.delivery_service import AnalyticsDelivery  # noqa: E402
from storefront.services.event_tracker import EventTracker  # noqa: E402
from storefront.utils.storage import InMemoryStorage  # noqa: E402
from utils.mocks import BASE_URL, FakeBackend  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        locale_base_url=BASE_URL,
        analytics_base_url=BASE_URL,
        storage_path=None,
        default_language="en",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def async_client(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handle_async), base_url=BASE_URL)


@pytest.fixture
def sync_client(backend):
    return httpx.Client(transport=httpx.MockTransport(backend.handle_sync), base_url=BASE_URL)


@pytest.fixture
def loader(async_client, settings):
    return LocaleLoader(client=async_client, settings=settings)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def gate(storage, bus, settings):
    return ConsentGate(storage, bus=bus, settings=settings)


@pytest.fixture
def delivery():
    """AnalyticsDelivery double that records payloads instead of sending them."""
    return MagicMock(spec=AnalyticsDelivery)


@pytest.fixture
def real_delivery(async_client, sync_client, settings):
    return AnalyticsDelivery(client=async_client, sync_client=sync_client, settings=settings)


@pytest.fixture
def tracker(gate, delivery, bus, settings):
    return EventTracker(gate, delivery, bus=bus, settings=settings)
