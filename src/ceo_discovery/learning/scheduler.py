"""
Improvement Scheduler - Decides when and how the estimators are refreshed.

Checks run against the feedback store and the training history:
- Enough pending training examples -> retrain both models
- Retraining interval elapsed (or never trained) -> scheduled retrain
- Underperforming pain categories -> record an algorithm adjustment
- Low average prediction accuracy -> longer impact-model training

Each executed action is persisted, successful or not. A failing action is
logged and does not stop the remaining ones.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..config import OptimizationConfig
from ..database import CeoDatabase
from ..events import EventChannel, ImprovementExecuted
from ..models import (
    ActionType,
    ImprovementAction,
    LearningMetrics,
    TrainingResult,
    parse_iso,
    to_iso,
    utc_now,
)
from .feedback import FeedbackCollector
from .trainer import WeightTrainer

logger = logging.getLogger(__name__)

# Expected improvement (percentage points) per trigger
RETRAIN_IMPROVEMENT = 5.0
SCHEDULED_RETRAIN_IMPROVEMENT = 3.0
ADJUSTMENT_IMPROVEMENT = 8.0
WEIGHT_UPDATE_IMPROVEMENT = 15.0
STRATEGY_CHANGE_IMPROVEMENT = 7.0

LOW_ACCURACY_THRESHOLD = 70
MIN_PROJECTS_FOR_WEIGHT_UPDATE = 5
WEIGHT_UPDATE_EPOCHS = 200

# Estimated gain recorded for an algorithm adjustment
ADJUSTMENT_ESTIMATE = 5.0

OPTIMAL_ACCURACY = 80
OPTIMAL_SATISFACTION = 85


@dataclass
class OptimizationStatus:
    is_optimal: bool
    metrics: LearningMetrics
    pending_actions: list[ImprovementAction] = field(default_factory=list)
    last_improvement: ImprovementAction | None = None

    def to_dict(self) -> dict:
        return {
            "is_optimal": self.is_optimal,
            "metrics": self.metrics.to_dict(),
            "pending_actions": [a.to_dict() for a in self.pending_actions],
            "last_improvement": (
                self.last_improvement.to_dict() if self.last_improvement else None
            ),
        }


@dataclass
class OptimizationCycleResult:
    actions_executed: int
    overall_improvement: float

    def to_dict(self) -> dict:
        return {
            "actions_executed": self.actions_executed,
            "overall_improvement": self.overall_improvement,
        }


@dataclass
class RetrainResult:
    example_count: int
    results: list[TrainingResult] = field(default_factory=list)

    @property
    def improvement(self) -> float:
        """Average accuracy change across the retrained models."""
        if not self.results:
            return 0.0
        return sum(r.improvement for r in self.results) / len(self.results)


class ImprovementScheduler:
    """Proposes and runs improvement actions."""

    def __init__(
        self,
        feedback: FeedbackCollector,
        trainer: WeightTrainer,
        db: CeoDatabase,
        config: OptimizationConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.feedback = feedback
        self.trainer = trainer
        self.db = db
        self.config = config or OptimizationConfig()
        self.clock = clock
        self.executed: EventChannel[ImprovementExecuted] = EventChannel(
            "improvement.executed"
        )

    def _action(
        self, prefix: str, action_type: ActionType, reason: str, expected: float
    ) -> ImprovementAction:
        stamp = int(self.clock().timestamp() * 1000)
        return ImprovementAction(
            id=f"{prefix}-{stamp}",
            action_type=action_type,
            reason=reason,
            expected_improvement=expected,
        )

    # =========================================================================
    # Planning
    # =========================================================================

    def check_and_improve(self) -> list[ImprovementAction]:
        """List the actions the current state calls for, without running them."""
        logger.info("Checking for improvement opportunities")
        actions = []

        pending = self.feedback.count_pending_examples()
        if pending >= self.config.auto_train_threshold:
            actions.append(
                self._action(
                    "retrain",
                    ActionType.RETRAIN_MODEL,
                    f"{pending} new training examples available",
                    RETRAIN_IMPROVEMENT,
                )
            )

        if self.should_retrain():
            actions.append(
                self._action(
                    "scheduled-retrain",
                    ActionType.RETRAIN_MODEL,
                    "Scheduled retraining interval reached",
                    SCHEDULED_RETRAIN_IMPROVEMENT,
                )
            )

        report = self.feedback.identify_underperforming_patterns()
        if report.patterns:
            actions.append(
                self._action(
                    "adjust",
                    ActionType.ADJUST_ALGORITHM,
                    f"Underperforming patterns: {', '.join(report.patterns)}",
                    ADJUSTMENT_IMPROVEMENT,
                )
            )

        metrics = self.feedback.get_learning_metrics()
        if (
            metrics.average_prediction_accuracy < LOW_ACCURACY_THRESHOLD
            and metrics.total_projects > MIN_PROJECTS_FOR_WEIGHT_UPDATE
        ):
            actions.append(
                self._action(
                    "improve-accuracy",
                    ActionType.UPDATE_WEIGHTS,
                    f"Low prediction accuracy: {metrics.average_prediction_accuracy:.1f}%",
                    WEIGHT_UPDATE_IMPROVEMENT,
                )
            )

        return actions

    def last_retrain_time(self) -> datetime | None:
        """Latest training run or executed retrain action, whichever is newer."""
        times = [self.trainer.last_training_time()]
        row = self.db.execute_one(
            """
            SELECT executed_at FROM improvement_actions
            WHERE action_type = ? AND succeeded = 1
            ORDER BY seq DESC LIMIT 1
            """,
            (ActionType.RETRAIN_MODEL.value,),
        )
        if row is not None:
            times.append(parse_iso(row["executed_at"]))
        times = [t for t in times if t is not None]
        return max(times) if times else None

    def should_retrain(self) -> bool:
        """True when nothing was ever retrained or the interval has elapsed."""
        last = self.last_retrain_time()
        if last is None:
            return True
        hours = (self.clock() - last).total_seconds() / 3600
        return hours >= self.config.retraining_interval_hours

    # =========================================================================
    # Execution
    # =========================================================================

    def execute_improvements(self, actions: list[ImprovementAction]) -> None:
        """Run actions in order. Failures are logged and recorded, not raised."""
        logger.info(f"Executing {len(actions)} improvement actions")
        handlers = {
            ActionType.RETRAIN_MODEL: self._retrain,
            ActionType.ADJUST_ALGORITHM: self._adjust_algorithm,
            ActionType.UPDATE_WEIGHTS: self._update_weights,
            ActionType.CHANGE_STRATEGY: self._change_strategy,
        }

        for action in actions:
            action.action_type = ActionType(action.action_type)
            error = None
            try:
                handlers[action.action_type](action)
            except Exception as e:
                error = str(e)
                logger.error(f"Failed to execute {action.action_type.value}: {e}")

            action.executed_at = to_iso(self.clock())
            self._record(action, error)
            if error is None:
                logger.info(f"Executed: {action.action_type.value} - {action.reason}")

            self.executed.publish(
                ImprovementExecuted(
                    action_id=action.id,
                    action_type=action.action_type.value,
                    succeeded=error is None,
                    actual_improvement=action.actual_improvement,
                )
            )

    def retrain(self, epochs: int | None = None) -> RetrainResult:
        """
        Train both estimators on every training example and consume the pending ones.

        Args:
            epochs: Passes over the examples (defaults to the configured epochs)

        Returns:
            Example count and one result per model, empty when there is nothing to train
        """
        examples = self.feedback.get_training_examples()
        if not examples:
            logger.info("No training examples; skipping retrain")
            return RetrainResult(example_count=0)

        epochs = epochs or self.config.default_epochs
        result = RetrainResult(
            example_count=len(examples),
            results=[
                self.trainer.train_impact_predictor(examples, epochs),
                self.trainer.train_cost_estimator(examples, epochs),
            ],
        )
        self.feedback.mark_examples_consumed(
            [e.proposal_id for e in examples if not e.consumed]
        )
        logger.info(f"Models retrained, average improvement {result.improvement:.2f}%")
        return result

    def _retrain(self, action: ImprovementAction) -> None:
        action.actual_improvement = self.retrain().improvement

    def _adjust_algorithm(self, action: ImprovementAction) -> None:
        report = self.feedback.identify_underperforming_patterns()
        now = to_iso(self.clock())
        with self.db.transaction() as conn:
            for category in report.categories:
                conn.execute(
                    """
                    INSERT INTO algorithm_adjustments
                        (pain_category, average_satisfaction, average_impact,
                         occurrences, recommendations, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        category.category,
                        category.average_satisfaction,
                        category.average_impact,
                        category.occurrences,
                        json.dumps(category.recommendations),
                        now,
                    ),
                )
        logger.info(f"Adjusting algorithms for patterns: {', '.join(report.patterns)}")
        action.actual_improvement = ADJUSTMENT_ESTIMATE

    def _update_weights(self, action: ImprovementAction) -> None:
        examples = self.feedback.get_training_examples()
        result = self.trainer.train_impact_predictor(examples, WEIGHT_UPDATE_EPOCHS)
        action.actual_improvement = result.improvement
        logger.info(f"Weights updated, improvement {result.improvement:.2f}%")

    def _change_strategy(self, action: ImprovementAction) -> None:
        logger.info("Strategy change executed")
        action.actual_improvement = STRATEGY_CHANGE_IMPROVEMENT

    def _record(self, action: ImprovementAction, error: str | None) -> None:
        self.db.execute_insert(
            """
            INSERT INTO improvement_actions
                (id, action_type, reason, expected_improvement,
                 actual_improvement, succeeded, error, executed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                action.id,
                action.action_type.value,
                action.reason,
                action.expected_improvement,
                action.actual_improvement,
                error is None,
                error,
                action.executed_at,
            ),
        )

    # =========================================================================
    # Cycle and status
    # =========================================================================

    def run_optimization_cycle(self) -> OptimizationCycleResult:
        """Check, execute, and report the change in average prediction accuracy."""
        logger.info("Starting optimization cycle")
        before = self.feedback.get_learning_metrics()
        actions = self.check_and_improve()

        if not actions:
            logger.info("System is already optimal")
            return OptimizationCycleResult(actions_executed=0, overall_improvement=0.0)

        self.execute_improvements(actions)

        after = self.feedback.get_learning_metrics()
        improvement = after.average_prediction_accuracy - before.average_prediction_accuracy
        logger.info(f"Optimization cycle complete, improvement {improvement:.2f}%")
        return OptimizationCycleResult(
            actions_executed=len(actions), overall_improvement=improvement
        )

    def get_optimization_status(self) -> OptimizationStatus:
        metrics = self.feedback.get_learning_metrics()
        pending = self.check_and_improve()
        history = self.get_improvement_history()

        is_optimal = (
            metrics.average_prediction_accuracy > OPTIMAL_ACCURACY
            and metrics.average_user_satisfaction > OPTIMAL_SATISFACTION
            and metrics.improvement_trend >= 0
            and not pending
        )
        return OptimizationStatus(
            is_optimal=is_optimal,
            metrics=metrics,
            pending_actions=pending,
            last_improvement=history[-1] if history else None,
        )

    def get_improvement_history(self, include_failed: bool = False) -> list[ImprovementAction]:
        """Executed actions, oldest first."""
        sql = "SELECT * FROM improvement_actions"
        if not include_failed:
            sql += " WHERE succeeded = 1"
        sql += " ORDER BY seq"
        return [
            ImprovementAction(
                id=row["id"],
                action_type=ActionType(row["action_type"]),
                reason=row["reason"],
                expected_improvement=row["expected_improvement"],
                executed_at=row["executed_at"],
                actual_improvement=row["actual_improvement"],
            )
            for row in self.db.execute(sql)
        ]

    def list_adjustments(self) -> list[dict]:
        rows = self.db.execute("SELECT * FROM algorithm_adjustments ORDER BY id")
        return [
            {
                "pain_category": row["pain_category"],
                "average_satisfaction": row["average_satisfaction"],
                "average_impact": row["average_impact"],
                "occurrences": row["occurrences"],
                "recommendations": json.loads(row["recommendations"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]
