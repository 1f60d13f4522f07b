"""
Feedback Collector - Records delivered project outcomes.

An outcome is recorded once per proposal. When the originating proposal and
its prediction can be found in the session store, a training example is
derived from it, weighted by how far the prediction was off. When the
proposal has an open treasury reservation, the reservation is settled with
the actual cost.
"""

import json
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..database import CeoDatabase
from ..discovery.sessions import SessionStore
from ..errors import FeedbackError, TreasuryError
from ..events import EventChannel, FeedbackCollected
from ..models import (
    ActualOutcome,
    LearningMetrics,
    OutcomeScores,
    Proposal,
    TrainingExample,
    parse_iso,
    round_half_up,
    six_month_value,
    to_iso,
    utc_now,
)
from ..treasury import TreasuryLedger

logger = logging.getLogger(__name__)

# Time-savings score 0-100 maps onto 0-300 minutes per week
MAX_WEEKLY_MINUTES = 300

# Prediction error (points) that earns full learning weight
FULL_WEIGHT_ERROR = 50

UNDERPERFORMANCE_THRESHOLD = 60
MIN_OUTCOMES_FOR_TREND = 5


def prediction_accuracy(predicted: float | None, actual: float) -> float:
    """100 minus the absolute error, floored at 0. Zero when nothing was predicted."""
    if predicted is None:
        return 0.0
    return max(0.0, 100 - abs(predicted - actual))


def actual_roi(time_savings_score: float, actual_cost: float) -> float:
    """Six-month value of the realized savings over the realized cost."""
    if actual_cost <= 0:
        return 0.0
    weekly_minutes = time_savings_score / 100 * MAX_WEEKLY_MINUTES
    return six_month_value(weekly_minutes) / actual_cost


def learning_weight(predicted: float, actual: float) -> float:
    return min(1.0, abs(predicted - actual) / FULL_WEIGHT_ERROR)


@dataclass
class UnderperformingCategory:
    """A pain category whose delivered projects fell short."""

    category: str
    occurrences: int
    average_satisfaction: float
    average_impact: float
    recommendations: list[str] = field(default_factory=list)


@dataclass
class UnderperformanceReport:
    patterns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    categories: list[UnderperformingCategory] = field(default_factory=list)


class FeedbackCollector:
    """Records outcomes and the training examples derived from them."""

    def __init__(
        self,
        db: CeoDatabase,
        sessions: SessionStore,
        ledger: TreasuryLedger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize collector.

        Args:
            db: Database holding outcome and training tables
            sessions: Session store used to locate proposals and predictions
            ledger: Treasury used to settle open reservations (optional)
            clock: Returns the completion time stamped on new outcomes
        """
        self.db = db
        self.sessions = sessions
        self.ledger = ledger
        self.clock = clock
        self.collected: EventChannel[FeedbackCollected] = EventChannel("feedback.collected")

    # =========================================================================
    # Recording
    # =========================================================================

    def collect_feedback(
        self, proposal_id: str, project_id: str, scores: OutcomeScores
    ) -> ActualOutcome:
        """
        Record the realized outcome of a delivered project.

        Args:
            proposal_id: Proposal the project delivered
            project_id: External project identifier
            scores: Raw dimension scores, satisfaction and actual cost

        Returns:
            The recorded outcome

        Raises:
            FeedbackError: An outcome for this proposal already exists
        """
        logger.info(f"Collecting feedback for proposal {proposal_id}")

        overall = round_half_up(
            (
                scores.time_savings
                + scores.problem_solution
                + scores.usability
                + scores.sustainability
            )
            / 4
        )

        proposal = self.sessions.find_proposal(proposal_id)
        prediction = proposal.prediction if proposal else None
        predicted_impact = prediction.expected_impact if prediction else None

        outcome = ActualOutcome(
            proposal_id=proposal_id,
            project_id=project_id,
            completed_at=to_iso(self.clock()),
            actual_time_savings=scores.time_savings,
            actual_problem_solution=scores.problem_solution,
            actual_usability=scores.usability,
            actual_sustainability=scores.sustainability,
            actual_overall_impact=overall,
            prediction_accuracy=prediction_accuracy(predicted_impact, overall),
            user_satisfaction=scores.user_satisfaction,
            would_recommend=scores.would_recommend,
            actual_cost=scores.actual_cost,
            actual_timeline=scores.actual_timeline,
            actual_roi=actual_roi(scores.time_savings, scores.actual_cost),
            predicted_impact=predicted_impact,
            user_comments=scores.user_comments,
        )

        example = None
        if proposal is not None and prediction is not None:
            example = TrainingExample(
                proposal=proposal,
                prediction=prediction,
                outcome=outcome,
                learning_weight=learning_weight(predicted_impact, overall),
            )
        elif proposal is None:
            logger.warning(
                f"Proposal {proposal_id} not found in session store; no training example"
            )

        self._store(outcome, proposal, example)

        if example is not None:
            logger.info(
                f"Created training example for {proposal_id} "
                f"(weight: {example.learning_weight:.2f})"
            )

        self._settle(proposal_id, scores.actual_cost)

        self.collected.publish(
            FeedbackCollected(
                proposal_id=proposal_id,
                project_id=project_id,
                actual_overall_impact=outcome.actual_overall_impact,
                prediction_accuracy=outcome.prediction_accuracy,
                training_example_created=example is not None,
            )
        )
        return outcome

    def _store(
        self,
        outcome: ActualOutcome,
        proposal: Proposal | None,
        example: TrainingExample | None,
    ) -> None:
        pain_category = proposal.pain_point.category.value if proposal else None
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO feedback_outcomes
                        (proposal_id, project_id, completed_at, pain_category,
                         actual_overall_impact, prediction_accuracy,
                         user_satisfaction, actual_roi, payload)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        outcome.proposal_id,
                        outcome.project_id,
                        outcome.completed_at,
                        pain_category,
                        outcome.actual_overall_impact,
                        outcome.prediction_accuracy,
                        outcome.user_satisfaction,
                        outcome.actual_roi,
                        json.dumps(outcome.to_dict()),
                    ),
                )
                if example is not None:
                    conn.execute(
                        """
                        INSERT INTO training_examples
                            (proposal_id, learning_weight, consumed, created_at, payload)
                        VALUES (?, ?, 0, ?, ?)
                        """,
                        (
                            example.proposal_id,
                            example.learning_weight,
                            outcome.completed_at,
                            json.dumps(example.to_dict()),
                        ),
                    )
        except sqlite3.IntegrityError as e:
            raise FeedbackError(
                f"Outcome for proposal {outcome.proposal_id} already recorded"
            ) from e

    def _settle(self, proposal_id: str, actual_cost: float) -> None:
        if self.ledger is None:
            return
        reservation = self.ledger.find_reservation_for_proposal(proposal_id)
        if reservation is None:
            return
        try:
            self.ledger.commit_reservation(reservation.id, actual_cost)
        except TreasuryError as e:
            logger.warning(
                f"Failed to settle reservation {reservation.id} for {proposal_id}: {e}"
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_outcome(self, proposal_id: str) -> ActualOutcome | None:
        row = self.db.execute_one(
            "SELECT payload FROM feedback_outcomes WHERE proposal_id = ?", (proposal_id,)
        )
        return ActualOutcome.from_dict(json.loads(row["payload"])) if row else None

    def load_all_outcomes(self) -> list[ActualOutcome]:
        """All outcomes ordered by completion time."""
        rows = self.db.execute(
            "SELECT payload FROM feedback_outcomes ORDER BY completed_at, proposal_id"
        )
        return [ActualOutcome.from_dict(json.loads(row["payload"])) for row in rows]

    def outcome_categories(self) -> dict[str, str]:
        """Proposal id -> pain category for outcomes whose proposal was found."""
        rows = self.db.execute(
            "SELECT proposal_id, pain_category FROM feedback_outcomes "
            "WHERE pain_category IS NOT NULL"
        )
        return {row["proposal_id"]: row["pain_category"] for row in rows}

    def get_training_examples(self, pending_only: bool = False) -> list[TrainingExample]:
        """Training examples in creation order."""
        sql = "SELECT payload, consumed FROM training_examples"
        if pending_only:
            sql += " WHERE consumed = 0"
        sql += " ORDER BY created_at, proposal_id"
        return [
            TrainingExample.from_dict(json.loads(row["payload"]), consumed=bool(row["consumed"]))
            for row in self.db.execute(sql)
        ]

    def count_pending_examples(self) -> int:
        row = self.db.execute_one(
            "SELECT COUNT(*) AS cnt FROM training_examples WHERE consumed = 0"
        )
        return row["cnt"] if row else 0

    def mark_examples_consumed(self, proposal_ids: list[str]) -> int:
        """Flag examples as used by a training run. Returns rows updated."""
        if not proposal_ids:
            return 0
        placeholders = ",".join("?" for _ in proposal_ids)
        return self.db.execute_update(
            f"UPDATE training_examples SET consumed = 1 WHERE proposal_id IN ({placeholders})",
            tuple(proposal_ids),
        )

    def get_learning_metrics(self) -> LearningMetrics:
        outcomes = self.load_all_outcomes()
        if not outcomes:
            return LearningMetrics()

        total = len(outcomes)
        avg_accuracy = sum(o.prediction_accuracy for o in outcomes) / total
        avg_satisfaction = sum(o.user_satisfaction for o in outcomes) / total
        avg_roi = sum(o.actual_roi for o in outcomes) / total

        return LearningMetrics(
            total_projects=total,
            average_prediction_accuracy=avg_accuracy,
            average_user_satisfaction=avg_satisfaction,
            average_roi=avg_roi,
            improvement_trend=self._improvement_trend(outcomes),
            confidence_level=min(1.0, (total / 20) * (avg_accuracy / 100)),
        )

    def _improvement_trend(self, outcomes: list[ActualOutcome]) -> float:
        """Accuracy change between the older and newer half, scaled to [-1, 1]."""
        if len(outcomes) < MIN_OUTCOMES_FOR_TREND:
            return 0.0

        ordered = sorted(outcomes, key=lambda o: parse_iso(o.completed_at))
        midpoint = len(ordered) // 2
        older, recent = ordered[:midpoint], ordered[midpoint:]

        older_avg = sum(o.prediction_accuracy for o in older) / len(older)
        recent_avg = sum(o.prediction_accuracy for o in recent) / len(recent)
        return max(-1.0, min(1.0, (recent_avg - older_avg) / 100))

    def identify_underperforming_patterns(self) -> UnderperformanceReport:
        """Group outcomes below 60 satisfaction or impact by pain category."""
        categories = self.outcome_categories()
        grouped: dict[str, list[ActualOutcome]] = {}
        recommendations: list[str] = []

        for outcome in self.load_all_outcomes():
            if (
                outcome.user_satisfaction >= UNDERPERFORMANCE_THRESHOLD
                and outcome.actual_overall_impact >= UNDERPERFORMANCE_THRESHOLD
            ):
                continue
            category = categories.get(outcome.proposal_id)
            if category is None:
                continue
            grouped.setdefault(category, []).append(outcome)

            candidates = []
            if outcome.actual_usability < UNDERPERFORMANCE_THRESHOLD:
                candidates.append(f"Improve usability for {category} projects")
            if outcome.actual_time_savings < UNDERPERFORMANCE_THRESHOLD:
                candidates.append(f"Better time estimation for {category}")
            if outcome.actual_roi < outcome.actual_overall_impact / 30:
                candidates.append(f"Reduce costs or increase value for {category}")
            for recommendation in candidates:
                if recommendation not in recommendations:
                    recommendations.append(recommendation)

        report = UnderperformanceReport(
            patterns=list(grouped), recommendations=recommendations
        )
        for category, outcomes in grouped.items():
            report.categories.append(
                UnderperformingCategory(
                    category=category,
                    occurrences=len(outcomes),
                    average_satisfaction=sum(o.user_satisfaction for o in outcomes)
                    / len(outcomes),
                    average_impact=sum(o.actual_overall_impact for o in outcomes)
                    / len(outcomes),
                    recommendations=[r for r in recommendations if category in r],
                )
            )
        return report

    def get_success_stories(self, limit: int = 5) -> list[ActualOutcome]:
        """Highest impact plus satisfaction first."""
        outcomes = self.load_all_outcomes()
        outcomes.sort(
            key=lambda o: o.actual_overall_impact + o.user_satisfaction, reverse=True
        )
        return outcomes[:limit]
