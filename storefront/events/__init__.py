from .bus import EventBus
from .hooks import (
    ANALYTICS_SIGNAL_PREFIX,
    SIGNAL_CONSENT_CHANGED,
    SIGNAL_LANGUAGE_CHANGED,
    analytics_signal,
)

__all__ = [
    "ANALYTICS_SIGNAL_PREFIX",
    "SIGNAL_CONSENT_CHANGED",
    "SIGNAL_LANGUAGE_CHANGED",
    "EventBus",
    "analytics_signal",
]
