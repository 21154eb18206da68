"""
Anonymous analytics session

One session per tracker (i.e. per page lifetime). The identifier is random
and carries no user identity. Only the ``increment_*`` methods and
``set_language`` mutate a session; everything else reads a snapshot.
"""

import logging
import random
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SESSION_ID_BITS = 128


def generate_session_id() -> str:
    """Return a 128-bit random hex identifier.

    Uses the OS cryptographic source; if the platform has none, falls back to
    the Mersenne Twister so the session can still be told apart.
    """
    try:
        return secrets.token_hex(SESSION_ID_BITS // 8)
    except NotImplementedError:
        logger.warning("No cryptographic random source available, using fallback session id")
        return f"{random.getrandbits(SESSION_ID_BITS):032x}"


@dataclass(frozen=True)
class SessionSnapshot:
    session_id: str
    started_at: datetime
    ux_turns: int
    language: str
    pages_viewed: int = 1


class AnalyticsSession:
    """Session identity and coarse interaction depth for analytics payloads."""

    def __init__(self, language: str = "en", clock: Callable[[], float] = time.monotonic):
        self._session_id = generate_session_id()
        self._started_at = datetime.now(timezone.utc)
        self._clock = clock
        self._started_tick = clock()
        self._ux_turns = 0
        self._pages_viewed = 1
        self._language = language

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def ux_turns(self) -> int:
        return self._ux_turns

    @property
    def pages_viewed(self) -> int:
        return self._pages_viewed

    @property
    def language(self) -> str:
        return self._language

    def increment_turn(self) -> int:
        """Count one more refinement round. Returns the new total."""
        self._ux_turns += 1
        return self._ux_turns

    def increment_page_view(self) -> int:
        """Count an in-app navigation. The landing page is already counted."""
        self._pages_viewed += 1
        return self._pages_viewed

    def set_language(self, language: str) -> None:
        old = self._language
        self._language = language
        logger.debug("Session language updated: %s -> %s", old, language)

    def elapsed_seconds(self) -> int:
        """Whole seconds since the session started (never negative)."""
        return max(0, int(self._clock() - self._started_tick))

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self._session_id,
            started_at=self._started_at,
            ux_turns=self._ux_turns,
            language=self._language,
            pages_viewed=self._pages_viewed,
        )
