"""
Locale Loader

Fetches translation bundles over HTTP and caches them for the lifetime of the
loader. Concurrent requests for the same locale share one fetch: the first
caller starts an asyncio.Task and every later caller attaches to it until it
settles. Successful bundles move into the LocaleStore; failures are never
cached, so the next request retries the network.

``translate`` is the collaborator-facing entry point and never raises: a
missing key falls back to the default locale, then to the key itself.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Iterable, Mapping
from functools import partial
from typing import Any

import httpx

from storefront.config import Settings, get_settings
from storefront.exceptions import LocaleLoadError, StorefrontException, UnsupportedLocaleError
from storefront.i18n.locale import is_supported_locale, normalize_locale
from storefront.i18n.store import LocaleStore, interpolate

logger = logging.getLogger(__name__)


class LocaleLoader:
    """Deduplicating, caching bundle loader backed by an httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        store: LocaleStore | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or LocaleStore()
        self._client = client
        self._owns_client = client is None
        self._in_flight: dict[str, asyncio.Task] = {}
        # Bumped by clear() so fetches started earlier do not repopulate the cache
        self._generation = 0

    @property
    def default_locale(self) -> str:
        return normalize_locale(self._settings.default_language)

    # ── Loading ───────────────────────────────────────────────────────────────

    def load(self, locale: str) -> Awaitable[dict[str, Any]]:
        """Return an awaitable resolving to a copy of the bundle for `locale`.

        Must be called from inside the running event loop. Unsupported codes
        raise UnsupportedLocaleError here, before any request is made.
        """
        code = self._check_supported(locale)
        task = self._task_for(code)
        return self._when_ready(code, task)

    def _check_supported(self, locale: str) -> str:
        code = normalize_locale(locale)
        if not is_supported_locale(code, self._settings.supported_languages):
            raise UnsupportedLocaleError(locale, self._settings.supported_languages)
        return code

    def _task_for(self, code: str) -> asyncio.Task | None:
        """Return the in-flight fetch for `code`, starting one if needed. None when cached."""
        if self._store.has(code):
            return None

        task = self._in_flight.get(code)
        if task is None:
            loop = asyncio.get_running_loop()
            task = loop.create_task(self._fetch(code, self._generation))
            self._in_flight[code] = task
            task.add_done_callback(partial(self._on_fetch_done, code))
            logger.debug("Locale fetch started: %s", code)
        else:
            logger.debug("Locale fetch already in flight, attaching: %s", code)
        return task

    async def _when_ready(self, code: str, task: asyncio.Task | None) -> dict[str, Any]:
        if task is None:
            bundle = self._store.get(code)
            if bundle is not None:
                return bundle
            # Cleared between load() and now
            task = self._task_for(code)
        # Shielded so a cancelled caller does not cancel the shared fetch
        result = await asyncio.shield(task)
        return copy.deepcopy(result)

    async def _ensure_loaded(self, code: str) -> None:
        task = self._task_for(code)
        if task is not None:
            await asyncio.shield(task)

    def _on_fetch_done(self, code: str, task: asyncio.Task) -> None:
        if self._in_flight.get(code) is task:
            del self._in_flight[code]
        if task.cancelled():
            logger.warning("Locale fetch cancelled: %s", code)
        elif task.exception() is not None:
            error = task.exception()
            context = {"locale": code, "status_code": getattr(error, "status_code", None)}
            logger.error("Error loading bundle for %s: %s", code, error, extra=context)

    async def _fetch(self, locale: str, generation: int) -> dict[str, Any]:
        url = self._settings.locale_bundle_path.format(locale=locale)
        client = self._get_client()

        try:
            response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise LocaleLoadError(locale, f"request error: {e}") from e

        if not response.is_success:
            raise LocaleLoadError(locale, "non-success response", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise LocaleLoadError(locale, "malformed JSON payload") from e

        if not isinstance(data, dict):
            raise LocaleLoadError(locale, "bundle payload is not a JSON object")

        if generation == self._generation:
            self._store.put(locale, data)
        logger.info("Locale bundle loaded: %s", locale)
        return data

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._settings.locale_base_url)
            self._owns_client = True
        return self._client

    async def preload(self, locales: Iterable[str]) -> list[str]:
        """Load several bundles concurrently. Returns the locales that loaded."""
        codes = list(locales)
        results = await asyncio.gather(*(self._safe_load(code) for code in codes))
        return [code for code, ok in zip(codes, results) if ok]

    async def _safe_load(self, locale: str) -> bool:
        try:
            await self.load(locale)
        except StorefrontException as e:
            logger.error("Error preloading bundle %s: %s", locale, e.message)
            return False
        return True

    # ── Translation ───────────────────────────────────────────────────────────

    async def translate(self, key: str, locale: str | None = None, variables: Mapping[str, Any] | None = None) -> str:
        """Resolve `key` for `locale`, falling back to the default locale, then to `key`.

        Suspends only while a bundle fetch is outstanding. Never raises.
        """
        default = self.default_locale
        code = normalize_locale(locale) or default

        text = await self._lookup(code, key)
        if text is None and code != default:
            logger.warning("Translation missing for key '%s' in '%s', falling back to '%s'", key, code, default)
            text = await self._lookup(default, key)

        if text is None:
            logger.error("Translation key '%s' not found in any language", key)
            return key

        return interpolate(text, variables)

    async def _lookup(self, code: str, key: str) -> str | None:
        try:
            self._check_supported(code)
            await self._ensure_loaded(code)
        except UnsupportedLocaleError as e:
            logger.warning("Skipping lookup of '%s': %s", key, e.message)
            return None
        except LocaleLoadError as e:
            logger.error("Lookup of '%s' failed: %s", key, e.message)
            return None
        return self._store.lookup(code, key)

    def translate_cached(self, key: str, locale: str | None = None, variables: Mapping[str, Any] | None = None) -> str:
        """Synchronous variant of ``translate`` that only consults loaded bundles."""
        default = self.default_locale
        code = normalize_locale(locale) or default

        text = self._store.lookup(code, key)
        if text is None and code != default:
            text = self._store.lookup(default, key)
        if text is None:
            return key
        return interpolate(text, variables)

    # ── Introspection & lifecycle ─────────────────────────────────────────────

    def is_cached(self, locale: str) -> bool:
        return self._store.has(normalize_locale(locale))

    def is_loading(self, locale: str) -> bool:
        return normalize_locale(locale) in self._in_flight

    def cached_locales(self) -> list[str]:
        return self._store.locales()

    def clear(self) -> None:
        """Drop every cached bundle and in-flight marker."""
        self._generation += 1
        self._store.clear()
        self._in_flight.clear()
        logger.debug("Locale cache cleared")

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
