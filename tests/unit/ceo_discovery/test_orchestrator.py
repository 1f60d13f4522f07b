"""Unit tests for the discovery orchestrator."""

from datetime import timedelta

import pytest

from ceo_discovery.config import DiscoveryConfig, TreasuryConfig
from ceo_discovery.discovery import DiscoveryOrchestrator, PatternExtractor
from ceo_discovery.errors import AllocationLimitError
from ceo_discovery.models import PainCategory, SessionStatus, to_iso
from ceo_discovery.treasury import TreasuryLedger

from tests.helpers import FROZEN_NOW, make_proposal, save_session, write_jsonl


@pytest.fixture
def sources(log_dir):
    """Two repeated commands and one recurring error.

    "make test" (10 runs) forecasts ROI 2.2, "npm run build" (8 runs) 1.8.
    The error's proposal costs more than the 500 ceiling and is dropped.
    """
    history = log_dir / "history.log"
    history.write_text("npm run build\n" * 8 + "make test\n" * 10 + "ls\n")
    recent = to_iso(FROZEN_NOW - timedelta(hours=2))
    interactions = write_jsonl(
        log_dir / "interactions.jsonl",
        [
            {
                "category": "error",
                "action": "tsc fails",
                "duration_minutes": 5,
                "timestamp": recent,
            }
        ]
        * 4,
    )
    return {"commands": history, "interactions": interactions}


@pytest.fixture
def orchestrator(ledger, sessions, sources, clock):
    return DiscoveryOrchestrator(ledger, sessions, sources, clock=clock)


class _FailingExtractor(PatternExtractor):
    def analyze(self, time_window, sources, min_confidence=0.7):
        raise RuntimeError("log source unreadable")


class TestStartDiscovery:
    """Tests for start_discovery."""

    def test_full_pipeline(self, orchestrator):
        session = orchestrator.start_discovery()

        assert session.status == SessionStatus.COMPLETED
        assert session.id == "discovery-20250115T120000000000"
        assert len(session.patterns) == 3
        assert [p.category for p in session.pain_points] == [
            PainCategory.REPETITIVE_TASK,
            PainCategory.REPETITIVE_TASK,
            PainCategory.RECURRING_ERROR,
        ]
        assert [p.prediction.expected_roi for p in session.proposals] == [2.2, 1.8]
        assert [p.cost for p in session.proposals] == [258, 255]
        assert orchestrator.current_session is session

    def test_low_confidence_patterns_dropped(self, ledger, sessions, sources, clock):
        """At 0.95 only the ten-run command (confidence 1.0) survives."""
        orchestrator = DiscoveryOrchestrator(
            ledger, sessions, sources, config=DiscoveryConfig(min_confidence=0.95), clock=clock
        )
        session = orchestrator.start_discovery()
        assert [p.description for p in session.patterns] == ["make test"]
        assert len(session.proposals) == 1

    def test_no_sources_yields_empty_session(self, ledger, sessions, clock):
        session = DiscoveryOrchestrator(ledger, sessions, {}, clock=clock).start_discovery()
        assert session.status == SessionStatus.COMPLETED
        assert session.proposals == []

    def test_session_persisted(self, orchestrator, sessions):
        session = orchestrator.start_discovery()
        assert sessions.get(session.id) == session
        assert orchestrator.load_historical_sessions() == [session]

    def test_persist_false_skips_store(self, orchestrator, sessions):
        orchestrator.start_discovery(persist=False)
        assert sessions.load_all() == []

    def test_same_instant_gets_unique_id(self, orchestrator):
        """Two sessions started at the same clock tick never collide."""
        first = orchestrator.start_discovery()
        second = orchestrator.start_discovery()
        assert second.id == f"{first.id}-2"

    def test_failure_aborts_without_saving(self, ledger, sessions, sources, clock):
        orchestrator = DiscoveryOrchestrator(
            ledger, sessions, sources, extractor=_FailingExtractor(clock=clock), clock=clock
        )
        with pytest.raises(RuntimeError, match="unreadable"):
            orchestrator.start_discovery()

        assert orchestrator.current_session.status == SessionStatus.ANALYZING
        assert sessions.load_all() == []

    def test_does_not_reserve_budget(self, orchestrator, ledger):
        """Discovery only reads the treasury."""
        orchestrator.start_discovery()
        assert ledger.get_snapshot().reserved == 0


class TestEvents:
    def test_started_and_completed_published(self, orchestrator):
        started, completed = [], []
        orchestrator.started.subscribe(started.append)
        orchestrator.completed.subscribe(completed.append)

        session = orchestrator.start_discovery()

        assert [e.session_id for e in started] == [session.id]
        [event] = completed
        assert event.pattern_count == 3
        assert event.pain_point_count == 3
        assert event.proposal_count == 2

    def test_no_completed_event_on_failure(self, ledger, sessions, sources, clock):
        orchestrator = DiscoveryOrchestrator(
            ledger, sessions, sources, extractor=_FailingExtractor(clock=clock), clock=clock
        )
        completed = []
        orchestrator.completed.subscribe(completed.append)
        with pytest.raises(RuntimeError):
            orchestrator.start_discovery()
        assert completed == []


class TestApproveProposal:
    """Tests for approve_proposal."""

    def test_reserves_proposal_cost(self, orchestrator, ledger):
        session = orchestrator.start_discovery()
        proposal = session.proposals[0]

        reservation = orchestrator.approve_proposal(proposal.id)

        assert reservation.amount == proposal.cost
        assert reservation.reason == f"Proposal: {proposal.title}"
        assert reservation.proposal_id == proposal.id
        assert ledger.get_snapshot().reserved == proposal.cost

    def test_second_approval_returns_existing(self, orchestrator, ledger):
        proposal = orchestrator.start_discovery().proposals[0]
        first = orchestrator.approve_proposal(proposal.id)
        second = orchestrator.approve_proposal(proposal.id)

        assert second == first
        assert len(ledger.list_reservations()) == 1

    def test_unknown_proposal(self, orchestrator):
        with pytest.raises(KeyError):
            orchestrator.approve_proposal("proposal-missing")

    def test_ledger_rejection_propagates(self, db, sessions, clock):
        """A 678 proposal exceeds 20% of a 2000 treasury."""
        ledger = TreasuryLedger(db, TreasuryConfig(start_capital=2000))
        save_session(sessions, [make_proposal()])
        orchestrator = DiscoveryOrchestrator(ledger, sessions, {}, clock=clock)

        with pytest.raises(AllocationLimitError):
            orchestrator.approve_proposal("proposal-test")
        assert ledger.list_reservations() == []
