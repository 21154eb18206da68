"""
Tests for the anonymous analytics session.
"""

import re
from unittest.mock import patch

import pytest

from storefront.utils.session import AnalyticsSession, SessionSnapshot, generate_session_id


class TestSessionId:
    def test_is_128_bit_hex(self):
        assert re.fullmatch(r"[0-9a-f]{32}", generate_session_id())

    def test_ids_are_distinct(self):
        assert len({generate_session_id() for _ in range(50)}) == 50

    def test_fallback_without_crypto_source(self):
        with patch("storefront.utils.session.secrets.token_hex", side_effect=NotImplementedError):
            session_id = generate_session_id()

        assert re.fullmatch(r"[0-9a-f]{32}", session_id)


class TestAnalyticsSession:
    def test_new_session_defaults(self):
        session = AnalyticsSession()

        assert session.ux_turns == 0
        assert session.language == "en"
        assert session.started_at.tzinfo is not None

    def test_increment_turn_returns_total(self):
        session = AnalyticsSession()

        assert session.increment_turn() == 1
        assert session.increment_turn() == 2
        assert session.ux_turns == 2

    def test_landing_page_counts_as_first_view(self):
        session = AnalyticsSession()

        assert session.pages_viewed == 1
        assert session.increment_page_view() == 2
        assert session.snapshot().pages_viewed == 2

    def test_set_language(self):
        session = AnalyticsSession(language="hi")
        session.set_language("bn")
        assert session.language == "bn"

    def test_elapsed_seconds_truncates(self):
        ticks = iter([10.0, 15.9])
        session = AnalyticsSession(clock=lambda: next(ticks))

        assert session.elapsed_seconds() == 5

    def test_elapsed_seconds_never_negative(self):
        ticks = iter([10.0, 4.0])
        session = AnalyticsSession(clock=lambda: next(ticks))

        assert session.elapsed_seconds() == 0

    def test_snapshot_is_frozen(self):
        session = AnalyticsSession(language="ta")
        snapshot = session.snapshot()

        assert isinstance(snapshot, SessionSnapshot)
        assert snapshot.session_id == session.session_id
        assert snapshot.language == "ta"
        with pytest.raises(AttributeError):
            snapshot.ux_turns = 5

    def test_snapshot_does_not_track_later_changes(self):
        session = AnalyticsSession()
        snapshot = session.snapshot()
        session.increment_turn()

        assert snapshot.ux_turns == 0

    def test_session_id_is_read_only(self):
        session = AnalyticsSession()
        with pytest.raises(AttributeError):
            session.session_id = "forged"
