"""
Analytics event schema.

Static registry of the events the storefront may emit and the properties each
one must carry. The registry is read-only; an event name missing from it is a
validation failure.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

# Envelope fields added by the tracker to every payload
ENVELOPE_FIELDS: tuple[str, ...] = ("persona", "event", "timestamp", "session_id")


@dataclass(frozen=True)
class EventDefinition:
    name: str
    required: frozenset[str]
    description: str = ""

    def missing_fields(self, payload: Mapping[str, Any]) -> list[str]:
        """Required properties absent from `payload`, in sorted order."""
        return sorted(f for f in self.required if f not in payload)


@dataclass(frozen=True)
class PendingEvent:
    """A track() call held while consent is undetermined."""

    name: str
    properties: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(cls, name: str, properties: Mapping[str, Any] | None) -> PendingEvent:
        # Copy so later mutation by the caller cannot alter the queued event
        return cls(name=name, properties=MappingProxyType(dict(properties or {})))


def _define(name: str, required: list[str], description: str) -> tuple[str, EventDefinition]:
    return name, EventDefinition(name=name, required=frozenset(required), description=description)


EVENT_SCHEMA: Mapping[str, EventDefinition] = MappingProxyType(
    dict(
        [
            _define(
                "prompt_submitted",
                ["persona", "language", "prompt_length_chars", "session_id"],
                "User submits search query",
            ),
            _define(
                "results_displayed",
                ["persona", "language", "triad", "result_count", "session_id"],
                "Search results shown to user",
            ),
            _define(
                "product_clicked",
                ["persona", "sku_id", "card_position", "session_id"],
                "User selects a product card",
            ),
            _define(
                "refine_submitted",
                ["persona", "language", "refinement_length_chars", "turn_number", "session_id"],
                "User refines search results",
            ),
            _define(
                "language_changed",
                ["persona", "from_lang", "to_lang", "session_id"],
                "User switches interface language",
            ),
            _define(
                "consent_updated",
                ["persona", "analytics_enabled", "session_id"],
                "User changes cookie consent",
            ),
            _define(
                "page_view",
                ["persona", "page_path", "referrer", "session_id"],
                "Page load event",
            ),
            _define(
                "session_ended",
                ["persona", "session_duration_seconds", "ux_turns", "session_id"],
                "User session completed",
            ),
        ]
    )
)


def get_event_definition(name: str) -> EventDefinition | None:
    return EVENT_SCHEMA.get(name)


def is_known_event(name: str) -> bool:
    return name in EVENT_SCHEMA
