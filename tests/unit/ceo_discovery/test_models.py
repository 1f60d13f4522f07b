"""Unit tests for shared model helpers and serialization."""

import math
from datetime import timezone

from ceo_discovery.models import (
    DiscoverySession,
    SessionStatus,
    TreasurySnapshot,
    parse_iso,
    round_half_up,
    six_month_value,
)

from tests.helpers import FROZEN_NOW, make_pattern, make_proposal


class TestRoundHalfUp:
    """Tests for round_half_up."""

    def test_half_rounds_up(self):
        """Halves go up, unlike Python's banker's rounding."""
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(87.5) == 88

    def test_digits(self):
        assert round_half_up(6.75, 1) == 6.8
        assert round_half_up(677.6) == 678


class TestTimeHelpers:
    def test_parse_iso_accepts_z(self):
        """A trailing Z parses as UTC."""
        parsed = parse_iso("2025-01-15T12:00:00Z")
        assert parsed == FROZEN_NOW
        assert parsed.tzinfo is not None

    def test_parse_iso_naive_assumed_utc(self):
        assert parse_iso("2025-01-15T12:00:00").tzinfo == timezone.utc

    def test_six_month_value(self):
        """120 min/week is 8.66 h/month, worth 5196 over six months."""
        assert math.isclose(six_month_value(120), 5196.0)


class TestSerialization:
    """Tests for to_dict/from_dict round trips that persistence relies on."""

    def test_session_round_trip(self):
        """A saved session reads back equal, including enums and predictions."""
        proposal = make_proposal()
        session = DiscoverySession(
            id="discovery-1",
            start_time="2025-01-15T12:00:00+00:00",
            status=SessionStatus.COMPLETED,
            patterns=[make_pattern()],
            pain_points=[proposal.pain_point],
            proposals=[proposal],
        )
        assert DiscoverySession.from_dict(session.to_dict()) == session

    def test_infinite_runway_serializes_as_none(self):
        snapshot = TreasurySnapshot(
            balance=10,
            start_capital=10,
            burn_rate=0,
            runway=math.inf,
            reserved=0,
            available_balance=10,
        )
        assert snapshot.to_dict()["runway"] is None
