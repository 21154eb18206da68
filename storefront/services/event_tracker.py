"""
Event Tracker

Schema-validated, consent-gated, order-preserving analytics pipeline.

Consent is modelled as a three-state machine mirrored from ConsentGate:

- UNDETERMINED: every known event is queued (FIFO, in memory only).
- GRANTED:      events are validated and delivered immediately; the queue is
                drained exactly once when the state is entered.
- DENIED:       events are silently ignored; the queue is discarded.

Unknown event names and events missing a required property are dropped with
a warning and never delivered. Nothing in here raises into the caller.
"""

import logging
from collections import deque
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from storefront.config import Settings, get_settings
from storefront.events.bus import EventBus
from storefront.events.hooks import SIGNAL_LANGUAGE_CHANGED, analytics_signal
from storefront.exceptions import EventValidationError
from storefront.models.consent_record import ConsentRecord, ConsentState
from storefront.schemas.events import ENVELOPE_FIELDS, EventDefinition, PendingEvent, get_event_definition
from storefront.services.consent_service import ConsentGate
from storefront.services.delivery_service import AnalyticsDelivery
from storefront.utils.logging import bind_session_id
from storefront.utils.session import AnalyticsSession, SessionSnapshot

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


def sanitize_referrer(referrer: str | None) -> str:
    """Reduce a referrer URL to origin + path (query, fragment and credentials dropped).

    The host keeps its IPv6 brackets; a port equal to the scheme default is omitted.
    """
    if not referrer:
        return ""
    try:
        parts = urlsplit(referrer)
        port = parts.port
    except ValueError:
        return ""
    if not parts.scheme or not parts.hostname:
        return ""

    scheme = parts.scheme.lower()
    host = parts.netloc.rpartition("@")[2].lower().rstrip(":")
    if port is not None:
        host = host[: host.rindex(":")]
        if DEFAULT_PORTS.get(scheme) != port:
            host += f":{port}"
    return f"{scheme}://{host}{parts.path}"


class EventTracker:
    """Consent-gated analytics tracker for one page lifetime."""

    def __init__(
        self,
        gate: ConsentGate,
        delivery: AnalyticsDelivery,
        bus: EventBus | None = None,
        session: AnalyticsSession | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._persona = self._settings.persona
        self._session = session or AnalyticsSession(language=self._settings.default_language)
        self._delivery = delivery
        self._bus = bus

        self._queue: deque[PendingEvent] = deque()
        self._draining = False
        self._session_ended = False
        self._data_layer: list[dict[str, Any]] = []

        # Gate is bootstrapped before the tracker exists, so seed from it
        self._state = ConsentState.from_record(gate.current)
        self._unsubscribers: list[Callable[[], None]] = [gate.subscribe(self.on_consent_change)]
        if bus is not None:
            self._unsubscribers.append(bus.subscribe(SIGNAL_LANGUAGE_CHANGED, self._on_language_changed))

        bind_session_id(self._session.session_id)
        logger.info("Analytics initialized (state: %s, language: %s)", self._state.value, self._session.language)

    # ── Read-only views ───────────────────────────────────────────────────────

    @property
    def state(self) -> ConsentState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is ConsentState.GRANTED

    @property
    def session(self) -> SessionSnapshot:
        return self._session.snapshot()

    @property
    def pending_events(self) -> tuple[PendingEvent, ...]:
        return tuple(self._queue)

    @property
    def data_layer(self) -> list[dict[str, Any]]:
        """Copies of every payload handed to delivery, in order."""
        return [dict(entry) for entry in self._data_layer]

    # ── Tracking ──────────────────────────────────────────────────────────────

    def track(self, name: str, properties: Mapping[str, Any] | None = None) -> None:
        """Queue, deliver or ignore an event depending on consent."""
        try:
            definition = self._definition_for(name)
        except EventValidationError as e:
            logger.warning("Event dropped: %s", e.message, extra={"event": name})
            return

        if self._state is ConsentState.DENIED:
            logger.debug("Event not tracked (no consent): %s", name)
            return

        # Events arriving mid-drain go behind the ones already queued
        if self._state is ConsentState.UNDETERMINED or self._draining:
            self._queue.append(PendingEvent.capture(name, properties))
            logger.debug("Event queued (consent pending): %s", name)
            return

        self._dispatch(definition, properties or {})

    def track_page_view(self, page_path: str, referrer: str | None = None) -> None:
        self.track("page_view", {"page_path": page_path, "referrer": sanitize_referrer(referrer)})

    def increment_turn(self) -> int:
        return self._session.increment_turn()

    def increment_page_view(self) -> int:
        return self._session.increment_page_view()

    def set_language(self, language: str) -> None:
        self._session.set_language(language)

    def end_session(self) -> None:
        """Emit the terminal session_ended event once, if consent is granted."""
        if self._session_ended:
            return
        self._session_ended = True
        if not self.enabled:
            return

        self.track(
            "session_ended",
            {
                "session_duration_seconds": self._session.elapsed_seconds(),
                "ux_turns": self._session.ux_turns,
                "pages_viewed": self._session.pages_viewed,
            },
        )

    # ── Consent transitions ───────────────────────────────────────────────────

    def on_consent_change(self, record: ConsentRecord) -> None:
        """ConsentGate subscriber."""
        previous = self._state
        self._state = ConsentState.from_record(record)
        logger.info("Consent updated - analytics %s", "enabled" if self.enabled else "disabled")

        if self._state is ConsentState.GRANTED:
            self._drain()
            # Announced behind the flushed queue; a denial during the drain wins
            if previous is not ConsentState.GRANTED and self._state is ConsentState.GRANTED:
                self.track("consent_updated", {"analytics_enabled": True})
            return

        dropped = len(self._queue)
        self._queue.clear()
        if dropped:
            logger.info("Discarded %d queued events after consent denial", dropped)

        if previous is ConsentState.GRANTED:
            # Last event allowed out before the tracker goes silent
            self._dispatch(self._definition_for("consent_updated"), {"analytics_enabled": False})

    def _drain(self) -> None:
        if self._draining or not self._queue:
            return

        self._draining = True
        logger.info("Processing %d queued events after consent", len(self._queue))
        try:
            while self._queue and self._state is ConsentState.GRANTED:
                pending = self._queue.popleft()
                self._dispatch(self._definition_for(pending.name), pending.properties)
        finally:
            self._draining = False

        if self._state is not ConsentState.GRANTED:
            self._queue.clear()

    # ── Validation & delivery ─────────────────────────────────────────────────

    def _definition_for(self, name: str) -> EventDefinition:
        definition = get_event_definition(name)
        if definition is None:
            raise EventValidationError(name)
        return definition

    def _build_payload(self, name: str, properties: Mapping[str, Any]) -> dict[str, Any]:
        reserved = [key for key in properties if key in ENVELOPE_FIELDS]
        if reserved:
            logger.debug("Ignoring reserved properties on %s: %s", name, ", ".join(reserved))

        payload: dict[str, Any] = {
            "persona": self._persona,
            "event": name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self._session.session_id,
        }
        payload.update((key, value) for key, value in properties.items() if key not in ENVELOPE_FIELDS)
        return payload

    def _dispatch(self, definition: EventDefinition, properties: Mapping[str, Any]) -> bool:
        payload = self._build_payload(definition.name, properties)
        missing = definition.missing_fields(payload)
        if missing:
            error = EventValidationError(definition.name, missing)
            logger.warning("Event dropped: %s", error.message, extra={"event": definition.name, "missing_fields": missing})
            return False

        self.deliver(payload)
        logger.debug("Event tracked: %s", definition.name)
        return True

    def deliver(self, payload: Mapping[str, Any]) -> None:
        """Mirror to the data layer, send, then notify bus observers. Never raises."""
        entry = dict(payload)
        self._data_layer.append(entry)
        self._delivery.send(entry)
        # Observers may re-enter track(); the send above is already ordered
        if self._bus is not None:
            self._bus.publish(analytics_signal(entry["event"]), entry)

    # ── Bus listeners & lifecycle ─────────────────────────────────────────────

    def _on_language_changed(self, detail: dict[str, Any]) -> None:
        locale = detail.get("locale") or detail.get("language")
        if locale:
            self._session.set_language(locale)

    def close(self) -> None:
        """Detach from the gate and the bus."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
