"""
ConsentRecord model for cookie consent tracking.

A record captures one explicit consent decision. Records are immutable: a new
decision creates a new record that replaces the stored one, never a mutation
of an existing record.
"""

import enum
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict


class ConsentState(str, enum.Enum):
    UNDETERMINED = "undetermined"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_record(cls, record: "ConsentRecord | None") -> "ConsentState":
        """Derive the state from the current record (None means no decision yet)."""
        if record is None:
            return cls.UNDETERMINED
        return cls.GRANTED if record.analytics else cls.DENIED


class ConsentRecord(BaseModel):
    """
    Cookie consent preferences at the moment of a decision.

    Functional cookies are always on; only analytics is a choice.
    """

    model_config = ConfigDict(frozen=True)

    functional: Literal[True] = True
    analytics: bool
    timestamp: datetime

    @classmethod
    def create(cls, analytics: bool) -> "ConsentRecord":
        """Build a record stamped with the current UTC instant."""
        return cls(analytics=bool(analytics), timestamp=datetime.now(timezone.utc))

    def to_storage(self) -> str:
        """Serialize as the JSON shape kept in client storage."""
        return self.model_dump_json()

    @classmethod
    def from_storage(cls, raw: str) -> "ConsentRecord":
        """Parse a stored record. Raises pydantic.ValidationError when malformed."""
        return cls.model_validate_json(raw)
