"""
Event Bus

Process-wide publish/subscribe channel between the storefront core and its
UI collaborators. Listeners are plain callables invoked synchronously, in
subscription order, with the signal's detail dict. A listener that raises is
logged and skipped; it never interrupts the publisher or other listeners.

Classes:
    EventBus  — subscribe / publish
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]


class EventBus:
    """Fan-out dispatcher keyed by signal name."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    # ── Public API ────────────────────────────────────────────────────────────

    def subscribe(self, signal: str, listener: Listener) -> Callable[[], None]:
        """Register `listener` for `signal`.

        Returns a callable that removes the registration; calling it twice is harmless.
        """
        self._listeners.setdefault(signal, []).append(listener)
        logger.debug("Bus listener added for '%s' (total: %d)", signal, len(self._listeners[signal]))

        def _unsubscribe() -> None:
            listeners = self._listeners.get(signal, [])
            try:
                listeners.remove(listener)
            except ValueError:
                pass  # Already removed

        return _unsubscribe

    def publish(self, signal: str, detail: dict[str, Any] | None = None) -> int:
        """Call every listener of `signal` with a copy of `detail`.

        Returns:
            Number of listeners that handled the signal without raising.
        """
        listeners = list(self._listeners.get(signal, []))
        handled = 0
        for listener in listeners:
            try:
                listener(dict(detail or {}))
                handled += 1
            except Exception:
                logger.exception("Bus listener for '%s' raised", signal)
        return handled

    def subscriber_count(self, signal: str) -> int:
        return len(self._listeners.get(signal, []))

    def clear(self) -> None:
        self._listeners.clear()
