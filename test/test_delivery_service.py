"""
Tests for fire-and-forget analytics delivery.

Both transports are served by FakeBackend through httpx.MockTransport.
"""

import pytest

from storefront.services.delivery_service import AnalyticsDelivery, DeliveryStats
from storefront.services.event_tracker import EventTracker

PAYLOAD = {"persona": "ARVY", "event": "page_view", "session_id": "abc", "page_path": "/", "referrer": ""}


class TestAsyncDelivery:
    @pytest.mark.asyncio
    async def test_send_posts_in_background(self, real_delivery, backend):
        real_delivery.send(PAYLOAD)
        assert real_delivery.pending_count == 1

        await real_delivery.drain()

        assert backend.analytics == [PAYLOAD]
        assert real_delivery.pending_count == 0
        assert real_delivery.stats == DeliveryStats(attempted=1, failed=0, fallback=0)

    @pytest.mark.asyncio
    async def test_sends_keep_call_order(self, real_delivery, backend):
        for i in range(3):
            real_delivery.send({**PAYLOAD, "page_path": f"/{i}"})

        await real_delivery.drain()

        assert [p["page_path"] for p in backend.analytics] == ["/0", "/1", "/2"]

    @pytest.mark.asyncio
    async def test_posts_json_to_endpoint(self, real_delivery, backend):
        real_delivery.send(PAYLOAD)
        await real_delivery.drain()

        assert real_delivery.endpoint == "/api/analytics"
        assert backend.analytics_headers[0]["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_network_failure_is_swallowed(self, real_delivery, backend):
        backend.unreachable = True

        real_delivery.send(PAYLOAD)
        await real_delivery.drain()

        assert real_delivery.stats.failed == 1
        assert backend.analytics == []

    @pytest.mark.asyncio
    async def test_error_status_is_not_interpreted(self, real_delivery, backend):
        backend.analytics_status = 500

        real_delivery.send(PAYLOAD)
        await real_delivery.drain()

        assert len(backend.analytics) == 1
        assert real_delivery.stats.failed == 0

    @pytest.mark.asyncio
    async def test_non_json_values_are_stringified(self, real_delivery, backend):
        real_delivery.send({**PAYLOAD, "when": object})
        await real_delivery.drain()

        assert backend.analytics[0]["when"] == str(object)

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_clients_open(self, real_delivery, async_client, sync_client):
        await real_delivery.aclose()

        assert async_client.is_closed is False
        assert sync_client.is_closed is False

    @pytest.mark.asyncio
    async def test_aclose_drains_pending_sends(self, real_delivery, backend):
        real_delivery.send(PAYLOAD)
        await real_delivery.aclose()

        assert backend.analytics == [PAYLOAD]


class TestBlockingFallback:
    def test_send_without_loop_uses_blocking_request(self, real_delivery, backend):
        real_delivery.send(PAYLOAD)

        assert backend.analytics == [PAYLOAD]
        assert backend.analytics_headers[0]["connection"] == "keep-alive"
        assert real_delivery.stats == DeliveryStats(attempted=1, failed=0, fallback=1)

    def test_blocking_failure_is_swallowed(self, real_delivery, backend):
        backend.unreachable = True

        real_delivery.send(PAYLOAD)

        assert real_delivery.stats.failed == 1
        assert real_delivery.stats.fallback == 1

    def test_closed_sync_client_is_swallowed(self, real_delivery, sync_client, backend):
        sync_client.close()

        real_delivery.send(PAYLOAD)

        assert backend.analytics == []
        assert real_delivery.stats == DeliveryStats(attempted=1, failed=1, fallback=1)

    def test_track_survives_closed_client(self, gate, bus, settings, sync_client, async_client):
        sync_client.close()
        delivery = AnalyticsDelivery(client=async_client, sync_client=sync_client, settings=settings)
        tracker = EventTracker(gate, delivery, bus=bus, settings=settings)
        gate.decide(True)

        tracker.track("page_view", {"page_path": "/", "referrer": ""})

        assert delivery.stats.failed >= 1
        assert tracker.data_layer[-1]["event"] == "page_view"


class TestClosedAsyncClient:
    @pytest.mark.asyncio
    async def test_closed_async_client_counted_as_failure(self, real_delivery, async_client, backend):
        await async_client.aclose()

        real_delivery.send(PAYLOAD)
        await real_delivery.drain()

        assert backend.analytics == []
        assert real_delivery.stats == DeliveryStats(attempted=1, failed=1, fallback=0)


class TestUnserializablePayload:
    def test_circular_payload_counted_as_failure(self, real_delivery, backend):
        payload = dict(PAYLOAD)
        payload["self"] = payload

        real_delivery.send(payload)

        assert real_delivery.stats.failed == 1
        assert real_delivery.stats.attempted == 0
        assert backend.analytics == []


class TestOwnedClients:
    @pytest.mark.asyncio
    async def test_owned_clients_use_analytics_base_url(self, settings):
        delivery = AnalyticsDelivery(settings=settings)
        client = delivery._get_client()

        assert str(client.base_url).startswith(settings.analytics_base_url)
        await delivery.aclose()
        assert client.is_closed
