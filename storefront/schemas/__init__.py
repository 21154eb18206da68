from .events import (
    ENVELOPE_FIELDS,
    EVENT_SCHEMA,
    EventDefinition,
    PendingEvent,
    get_event_definition,
    is_known_event,
)

__all__ = [
    "ENVELOPE_FIELDS",
    "EVENT_SCHEMA",
    "EventDefinition",
    "PendingEvent",
    "get_event_definition",
    "is_known_event",
]
