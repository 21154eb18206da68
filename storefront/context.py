"""
Storefront context

Explicitly constructed owner of the core components. UI collaborators receive
a StorefrontContext and call its public operations (``t``, ``track``,
``set_consent``, ``get_consent``, ``set_language``) instead of reaching for
module-level singletons.

Initialization order (enforced by ``create_context``):
    storage → bus → ConsentGate.bootstrap() → EventTracker → LocaleLoader
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from storefront.config import Settings, get_settings
from storefront.events.bus import EventBus
from storefront.events.hooks import SIGNAL_LANGUAGE_CHANGED
from storefront.exceptions import PersistenceError
from storefront.i18n.loader import LocaleLoader
from storefront.i18n.locale import detect_language, is_supported_locale, normalize_locale
from storefront.models.consent_record import ConsentRecord
from storefront.services.consent_service import ConsentGate
from storefront.services.delivery_service import AnalyticsDelivery
from storefront.services.event_tracker import EventTracker
from storefront.utils.session import AnalyticsSession
from storefront.utils.storage import ClientStorage, create_storage

logger = logging.getLogger(__name__)


class StorefrontContext:
    """Bundle of the locale cache and the telemetry pipeline for one page lifetime."""

    def __init__(
        self,
        settings: Settings,
        storage: ClientStorage,
        bus: EventBus,
        gate: ConsentGate,
        delivery: AnalyticsDelivery,
        tracker: EventTracker,
        loader: LocaleLoader,
        language: str,
    ):
        self.settings = settings
        self.storage = storage
        self.bus = bus
        self.gate = gate
        self.delivery = delivery
        self.tracker = tracker
        self.loader = loader
        self._language = language
        self._closed = False

    @property
    def language(self) -> str:
        return self._language

    # ── Translation ───────────────────────────────────────────────────────────

    async def t(self, key: str, locale: str | None = None, variables: Mapping[str, Any] | None = None) -> str:
        """Translated text for `key` (current language unless `locale` is given)."""
        return await self.loader.translate(key, locale or self._language, variables)

    def t_cached(self, key: str, locale: str | None = None, variables: Mapping[str, Any] | None = None) -> str:
        """Synchronous ``t`` against bundles that are already loaded."""
        return self.loader.translate_cached(key, locale or self._language, variables)

    async def preload_strings(self) -> list[str]:
        """Warm the cache with the current and default bundles."""
        locales = dict.fromkeys([self._language, self.loader.default_locale])
        return await self.loader.preload(locales)

    # ── Analytics & consent ───────────────────────────────────────────────────

    def track(self, name: str, properties: Mapping[str, Any] | None = None) -> None:
        self.tracker.track(name, properties)

    def set_consent(self, analytics_granted: bool) -> None:
        self.gate.decide(analytics_granted)

    def get_consent(self) -> ConsentRecord | None:
        return self.gate.current

    # ── Language ──────────────────────────────────────────────────────────────

    def set_language(self, locale: str) -> bool:
        """Switch the interface language, remember it, and announce it on the bus.

        Returns False (and changes nothing) for unsupported codes.
        """
        code = normalize_locale(locale)
        if not is_supported_locale(code, self.settings.supported_languages):
            logger.warning("Unsupported language: %s", locale)
            return False

        previous = self._language
        self._language = code
        try:
            self.storage.set_item(self.settings.language_storage_key, code)
        except PersistenceError as e:
            logger.warning("Failed to save language preference: %s", e.message)

        self.bus.publish(SIGNAL_LANGUAGE_CHANGED, {"locale": code, "previous": previous})
        return True

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Page teardown: end the session, flush pending sends, release clients."""
        if self._closed:
            return
        self._closed = True
        self.tracker.end_session()
        self.tracker.close()
        await self.delivery.aclose()
        await self.loader.aclose()

    async def __aenter__(self) -> "StorefrontContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _stored_language(storage: ClientStorage, settings: Settings) -> str | None:
    try:
        return storage.get_item(settings.language_storage_key)
    except PersistenceError as e:
        logger.warning("Language preference unreadable: %s", e.message)
        return None


def create_context(
    settings: Settings | None = None,
    storage: ClientStorage | None = None,
    locale_client: httpx.AsyncClient | None = None,
    analytics_client: httpx.AsyncClient | None = None,
    analytics_sync_client: httpx.Client | None = None,
    requested_language: str | None = None,
    accept_language: str = "",
) -> StorefrontContext:
    """Build a StorefrontContext in dependency order."""
    settings = settings or get_settings()
    storage = storage or create_storage(settings)
    bus = EventBus()

    gate = ConsentGate(storage, bus=bus, settings=settings)
    gate.bootstrap()

    language = detect_language(
        requested=requested_language,
        stored=_stored_language(storage, settings),
        accept_language=accept_language,
        supported=settings.supported_languages,
        default=settings.default_language,
    )

    delivery = AnalyticsDelivery(client=analytics_client, sync_client=analytics_sync_client, settings=settings)
    tracker = EventTracker(
        gate,
        delivery,
        bus=bus,
        session=AnalyticsSession(language=language),
        settings=settings,
    )
    loader = LocaleLoader(client=locale_client, settings=settings)

    logger.info("Storefront context ready (language: %s, consent: %s)", language, gate.state.value)
    return StorefrontContext(
        settings=settings,
        storage=storage,
        bus=bus,
        gate=gate,
        delivery=delivery,
        tracker=tracker,
        loader=loader,
        language=language,
    )
