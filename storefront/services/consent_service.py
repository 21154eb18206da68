"""
Consent Service

ConsentGate is the single source of truth for whether non-essential data
collection is permitted. It seeds itself from client storage at boot,
records every explicit decision as a new ConsentRecord, and notifies
subscribers synchronously on each transition.

Persistence is best-effort: a storage failure is logged and the in-memory
transition still happens.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError

from storefront.config import Settings, get_settings
from storefront.events.bus import EventBus
from storefront.events.hooks import SIGNAL_CONSENT_CHANGED
from storefront.exceptions import PersistenceError
from storefront.models.consent_record import ConsentRecord, ConsentState
from storefront.utils.storage import ClientStorage, MarkerStore

logger = logging.getLogger(__name__)

ConsentCallback = Callable[[ConsentRecord], None]


class ConsentGate:
    """Holds the current consent decision and fans out changes."""

    def __init__(
        self,
        storage: ClientStorage,
        bus: EventBus | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._storage = storage
        self._markers = MarkerStore(storage)
        self._bus = bus
        self._record: ConsentRecord | None = None
        self._subscribers: list[ConsentCallback] = []
        self._bootstrapped = False

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> ConsentState:
        return ConsentState.from_record(self._record)

    @property
    def current(self) -> ConsentRecord | None:
        return self._record

    @property
    def analytics_allowed(self) -> bool:
        return self.state is ConsentState.GRANTED

    def has_decision(self) -> bool:
        return self._record is not None

    def has_marker(self) -> bool:
        """Whether the advisory cross-session marker is present and unexpired."""
        try:
            return self._markers.get_marker(self._settings.consent_marker_name) is not None
        except PersistenceError as e:
            logger.warning("Consent marker unreadable: %s", e.message)
            return False

    # ── Operations ────────────────────────────────────────────────────────────

    def bootstrap(self) -> ConsentRecord | None:
        """Seed state from the persisted record, if any.

        The stored record is authoritative; the marker is only consulted for a
        diagnostic when the two disagree. Runs once; later calls return the
        current record.
        """
        if self._bootstrapped:
            return self._record
        self._bootstrapped = True

        record = self._read_record()
        if record is None:
            if self.has_marker():
                logger.info("Consent marker present without a stored record; consent stays undetermined")
            return None

        if self._record is None:
            self._transition(record)
        return self._record

    def decide(self, analytics_granted: bool) -> ConsentRecord:
        """Record a new decision, persist it and notify subscribers."""
        record = ConsentRecord.create(analytics=analytics_granted)
        self._bootstrapped = True
        self._persist(record)
        self._transition(record)

        if self._bus is not None:
            self._bus.publish(SIGNAL_CONSENT_CHANGED, {"consent": record.model_dump(mode="json")})

        return record

    def subscribe(self, callback: ConsentCallback) -> Callable[[], None]:
        """Register `callback` for every transition. Returns an unsubscribe callable."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # Already removed

        return _unsubscribe

    # ── Internals ─────────────────────────────────────────────────────────────

    def _transition(self, record: ConsentRecord) -> None:
        previous = self.state
        self._record = record
        logger.info("Consent state: %s -> %s", previous.value, self.state.value, extra={"state": self.state.value})

        for callback in list(self._subscribers):
            try:
                callback(record)
            except Exception:
                logger.exception("Consent subscriber raised")

    def _read_record(self) -> ConsentRecord | None:
        try:
            raw = self._storage.get_item(self._settings.consent_storage_key)
        except PersistenceError as e:
            logger.warning("Failed to read consent: %s", e.message)
            return None

        if raw is None:
            return None

        try:
            return ConsentRecord.from_storage(raw)
        except ValidationError:
            logger.warning("Stored consent record is malformed; ignoring it")
            return None

    def _persist(self, record: ConsentRecord) -> None:
        try:
            self._storage.set_item(self._settings.consent_storage_key, record.to_storage())
            self._markers.set_marker(
                self._settings.consent_marker_name,
                record.timestamp.isoformat(),
                self._settings.consent_marker_days,
            )
        except PersistenceError as e:
            logger.warning("Failed to save consent: %s", e.message)
