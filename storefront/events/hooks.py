"""
Event Bus Signal Names

Centralised list of signals published on the process-wide EventBus.
Analytics observability signals follow the ``analytics.<event>`` convention.
"""

from __future__ import annotations

# ── Locale signals ────────────────────────────────────────────────────────────
SIGNAL_LANGUAGE_CHANGED = "language-changed"

# ── Consent signals ───────────────────────────────────────────────────────────
SIGNAL_CONSENT_CHANGED = "consent-changed"

# ── Analytics observability ───────────────────────────────────────────────────
ANALYTICS_SIGNAL_PREFIX = "analytics."


def analytics_signal(event: str) -> str:
    """Return the bus signal published when `event` is delivered."""
    return f"{ANALYTICS_SIGNAL_PREFIX}{event}"


# ── Master list ───────────────────────────────────────────────────────────────
CORE_SIGNALS: list[str] = [
    SIGNAL_LANGUAGE_CHANGED,
    SIGNAL_CONSENT_CHANGED,
]
