"""
Discovery Orchestrator - Runs the discovery pipeline as a session.

Session lifecycle: analyzing -> proposing -> completed. Any exception raised by
a stage aborts the run: the session is neither completed nor persisted.

Pipeline:
1. Extract patterns from the configured sources
2. Keep patterns at or above the minimum confidence
3. Classify patterns into pain points
4. Synthesize one proposal per pain point (skipping rejected ones)
5. Forecast every proposal and sort by expected ROI, highest first
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from pathlib import Path

from ..config import DiscoveryConfig
from ..events import DiscoveryCompleted, DiscoveryStarted, EventChannel
from ..models import (
    DiscoverySession,
    Proposal,
    Reservation,
    SessionStatus,
    to_iso,
    utc_now,
)
from ..treasury import TreasuryLedger
from .classifier import PainPointClassifier
from .forecaster import ImpactForecaster
from .patterns import PatternExtractor
from .proposals import BudgetRange, ProposalSynthesizer
from .sessions import SessionStore

logger = logging.getLogger(__name__)


class DiscoveryOrchestrator:
    """Sequences extraction, classification, synthesis and forecasting."""

    def __init__(
        self,
        ledger: TreasuryLedger,
        sessions: SessionStore,
        sources: Mapping[str, Path | str],
        config: DiscoveryConfig | None = None,
        extractor: PatternExtractor | None = None,
        classifier: PainPointClassifier | None = None,
        synthesizer: ProposalSynthesizer | None = None,
        forecaster: ImpactForecaster | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize orchestrator with its collaborators.

        Args:
            ledger: Treasury consulted for proposal gating and approvals
            sessions: Store completed sessions are written to
            sources: Behavioral source kind -> file path
            config: Discovery settings (window, confidence, budget, ROI target)
            clock: Returns "now" for session ids and the analysis window
        """
        self.ledger = ledger
        self.sessions = sessions
        self.sources = dict(sources)
        self.config = config or DiscoveryConfig()
        self.clock = clock
        self.extractor = extractor or PatternExtractor(clock=clock)
        self.classifier = classifier or PainPointClassifier()
        self.synthesizer = synthesizer or ProposalSynthesizer()
        self.forecaster = forecaster or ImpactForecaster()

        self.current_session: DiscoverySession | None = None
        self.started: EventChannel[DiscoveryStarted] = EventChannel("discovery.started")
        self.completed: EventChannel[DiscoveryCompleted] = EventChannel(
            "discovery.completed"
        )

    def _new_session_id(self, now: datetime) -> str:
        session_id = f"discovery-{now.strftime('%Y%m%dT%H%M%S%f')}"
        if self.sessions.get(session_id) is None:
            return session_id
        suffix = 2
        while self.sessions.get(f"{session_id}-{suffix}") is not None:
            suffix += 1
        return f"{session_id}-{suffix}"

    def start_discovery(self, persist: bool = True) -> DiscoverySession:
        """
        Run a full discovery session.

        Args:
            persist: Save the completed session to the session store

        Returns:
            The completed session, proposals sorted by expected ROI descending
        """
        now = self.clock()
        session = DiscoverySession(id=self._new_session_id(now), start_time=to_iso(now))
        self.current_session = session
        self.started.publish(DiscoveryStarted(session_id=session.id, start_time=session.start_time))
        logger.info(f"Starting discovery session {session.id}")

        try:
            patterns = self.extractor.analyze(
                time_window=self.config.analysis_window_hours,
                sources=self.sources,
                min_confidence=self.config.min_confidence,
            )
            session.patterns = [
                p for p in patterns if p.confidence >= self.config.min_confidence
            ]
            logger.info(f"Found {len(session.patterns)} patterns")

            session.pain_points = self.classifier.classify(session.patterns)
            logger.info(f"Identified {len(session.pain_points)} pain points")

            session.status = SessionStatus.PROPOSING
            proposals = self._generate_proposals(session)
            logger.info(f"Generated {len(proposals)} proposals")

            session.proposals = self._prioritize(proposals)
            session.status = SessionStatus.COMPLETED
        except Exception as e:
            logger.error(f"Discovery session {session.id} failed: {e}")
            raise

        if persist:
            self.save_session(session)

        self.completed.publish(
            DiscoveryCompleted(
                session_id=session.id,
                pattern_count=len(session.patterns),
                pain_point_count=len(session.pain_points),
                proposal_count=len(session.proposals),
            )
        )
        return session

    def _generate_proposals(self, session: DiscoverySession) -> list[Proposal]:
        treasury = self.ledger.get_snapshot()
        budget = BudgetRange(min=self.config.budget_min, max=self.config.budget_max)

        proposals = []
        for pain_point in session.pain_points:
            proposal = self.synthesizer.generate(
                pain_point=pain_point,
                budget=budget,
                target_roi=self.config.target_roi,
                treasury=treasury,
            )
            if proposal is not None:
                proposals.append(proposal)
        return proposals

    def _prioritize(self, proposals: list[Proposal]) -> list[Proposal]:
        for proposal in proposals:
            proposal.prediction = self.forecaster.predict(proposal)
        # sorted() is stable, so equal ROI keeps generation order
        return sorted(proposals, key=lambda p: p.prediction.expected_roi, reverse=True)

    # =========================================================================
    # Session store
    # =========================================================================

    def save_session(self, session: DiscoverySession) -> None:
        self.sessions.save(session)

    def load_historical_sessions(self) -> list[DiscoverySession]:
        return self.sessions.load_all()

    def find_proposal(self, proposal_id: str) -> Proposal | None:
        return self.sessions.find_proposal(proposal_id)

    def approve_proposal(self, proposal_id: str) -> Reservation:
        """
        Reserve treasury budget for a stored proposal.

        Returns:
            The reservation linked to the proposal

        Raises:
            KeyError: Proposal not found in any session
            TreasuryError: The ledger rejected the reservation
        """
        proposal = self.find_proposal(proposal_id)
        if proposal is None:
            raise KeyError(f"Proposal {proposal_id} not found")

        existing = self.ledger.find_reservation_for_proposal(proposal_id)
        if existing is not None:
            logger.info(f"Proposal {proposal_id} already has reservation {existing.id}")
            return existing

        return self.ledger.reserve_budget(
            proposal.cost, f"Proposal: {proposal.title}", proposal_id=proposal.id
        )
