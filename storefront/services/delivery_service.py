"""
Analytics Delivery Service

Fire-and-forget transport for analytics payloads. Inside a running event
loop each send becomes a background task that the service keeps referenced
until it settles, so it outlives the caller and can be drained at teardown.
Outside a loop (teardown from synchronous code) the payload goes out as a
plain blocking request with a keep-alive hint.

Responses are never interpreted and failures are never retried or raised.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from storefront.config import Settings, get_settings
from storefront.exceptions import DeliveryError

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class DeliveryStats:
    """Delivery counters."""

    attempted: int = 0
    failed: int = 0
    fallback: int = 0


class AnalyticsDelivery:
    """POSTs analytics payloads to the collector endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        sync_client: httpx.Client | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._client = client
        self._sync_client = sync_client
        self._owns_client = client is None
        self._owns_sync_client = sync_client is None
        self._pending: set[asyncio.Task] = set()
        self.stats = DeliveryStats()

    @property
    def endpoint(self) -> str:
        return self._settings.analytics_endpoint

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def send(self, payload: Mapping[str, Any]) -> None:
        """Hand `payload` to the network without waiting for it. Never raises."""
        event = payload.get("event")
        try:
            body = json.dumps(dict(payload), default=str)
        except (TypeError, ValueError) as e:
            self.stats.failed += 1
            logger.debug("Analytics payload for %s not serializable: %s", event, e)
            return

        self.stats.attempted += 1
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._send_blocking(body, event)
            return

        task = loop.create_task(self._post(body, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _post(self, body: str, event: str | None) -> None:
        try:
            await self._request(body, event)
        except DeliveryError as e:
            self.stats.failed += 1
            logger.debug("Analytics delivery failed for %s: %s", event, e.message)

    async def _request(self, body: str, event: str | None) -> None:
        try:
            client = self._get_client()
            await client.post(self.endpoint, content=body, headers=JSON_HEADERS)
        except httpx.TimeoutException as e:
            raise DeliveryError(event, "request timed out") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(event, f"request error: {e}") from e
        except Exception as e:
            raise DeliveryError(event, f"unexpected error: {e}") from e

    def _send_blocking(self, body: str, event: str | None) -> None:
        self.stats.fallback += 1
        try:
            client = self._get_sync_client()
            client.post(self.endpoint, content=body, headers={**JSON_HEADERS, "Connection": "keep-alive"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.stats.failed += 1
            logger.debug("Analytics fallback delivery failed for %s: request error: %s", event, e)
        except Exception as e:
            self.stats.failed += 1
            logger.debug("Analytics fallback delivery failed for %s: unexpected error: %s", event, e)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._settings.analytics_base_url)
            self._owns_client = True
        return self._client

    def _get_sync_client(self) -> httpx.Client:
        if self._sync_client is None:
            self._sync_client = httpx.Client(base_url=self._settings.analytics_base_url)
            self._owns_sync_client = True
        return self._sync_client

    async def drain(self) -> None:
        """Wait for every in-flight send to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
        if self._sync_client is not None and self._owns_sync_client:
            self._sync_client.close()
        self._sync_client = None
