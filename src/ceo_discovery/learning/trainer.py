"""
Weight Trainer - Recalibrates the impact and cost estimators from outcomes.

The estimators are linear: a prediction is the dot product of named features
and weights, rescaled into [0, 100]. Training walks the examples in input
order, nudging each weight by ``learning_rate * error * learning_weight *
feature``. Weights start from the latest persisted model of the same kind and
each run is stored as the next version.
"""

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime

from ..database import CeoDatabase
from ..models import (
    Model,
    ModelKind,
    RiskLevel,
    Severity,
    TrainingExample,
    TrainingResult,
    parse_iso,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)

LEARNING_RATE = 0.01
DEFAULT_EPOCHS = 100


def base_features(example: TrainingExample) -> dict[str, float]:
    """Features shared by both estimators."""
    proposal = example.proposal
    pain = proposal.pain_point
    severity = Severity(pain.severity)
    risk = RiskLevel(proposal.risk_level)
    return {
        "severity_low": 1.0 if severity == Severity.LOW else 0.0,
        "severity_medium": 1.0 if severity == Severity.MEDIUM else 0.0,
        "severity_high": 1.0 if severity == Severity.HIGH else 0.0,
        "severity_critical": 1.0 if severity == Severity.CRITICAL else 0.0,
        "time_cost": pain.time_cost / 100,
        "automation_potential": pain.automation_potential,
        "cost": proposal.cost / 1000,
        "team_size": float(len(proposal.required_roles)),
        "risk_low": 1.0 if risk == RiskLevel.LOW else 0.0,
        "risk_medium": 1.0 if risk == RiskLevel.MEDIUM else 0.0,
        "risk_high": 1.0 if risk == RiskLevel.HIGH else 0.0,
        "expected_savings": proposal.expected_time_savings / 100,
        "automation_level": proposal.automation_level,
    }


def impact_features(example: TrainingExample) -> dict[str, float]:
    """Shared features plus the forecast made at discovery time."""
    features = base_features(example)
    prediction = example.prediction
    features["predicted_impact"] = prediction.expected_impact / 100
    features["predicted_roi"] = prediction.expected_roi / 10
    features["confidence"] = prediction.confidence
    return features


def predict(features: dict[str, float], weights: dict[str, float]) -> float:
    """Dot product rescaled into [0, 100]."""
    total = sum(value * weights.get(name, 0.0) for name, value in features.items())
    return max(0.0, min(100.0, total * 50 + 50))


class WeightTrainer:
    """Trains and versions the linear estimators."""

    def __init__(self, db: CeoDatabase, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    # =========================================================================
    # Training
    # =========================================================================

    def train_impact_predictor(
        self, examples: list[TrainingExample], epochs: int = DEFAULT_EPOCHS
    ) -> TrainingResult:
        """Fit the impact model against actual overall impact."""
        logger.info(f"Training impact predictor with {len(examples)} examples")
        return self._train(
            ModelKind.IMPACT_PREDICTOR,
            examples,
            epochs,
            extract=impact_features,
            label=lambda e: e.outcome.actual_overall_impact,
            percentage_error=False,
        )

    def train_cost_estimator(
        self, examples: list[TrainingExample], epochs: int = DEFAULT_EPOCHS
    ) -> TrainingResult:
        """Fit the cost model against actual cost, scored by percentage error."""
        logger.info(f"Training cost estimator with {len(examples)} examples")
        return self._train(
            ModelKind.COST_ESTIMATOR,
            examples,
            epochs,
            extract=base_features,
            label=lambda e: e.outcome.actual_cost,
            percentage_error=True,
        )

    def _train(
        self,
        kind: ModelKind,
        examples: list[TrainingExample],
        epochs: int,
        extract: Callable[[TrainingExample], dict[str, float]],
        label: Callable[[TrainingExample], float],
        percentage_error: bool,
    ) -> TrainingResult:
        started = time.perf_counter()
        previous = self.get_latest_model(kind)
        previous_accuracy = previous.accuracy if previous else 0.0

        if not examples:
            logger.info(f"No training examples for {kind.value}; model unchanged")
            return TrainingResult(
                model_id=previous.id if previous else "",
                epochs_completed=0,
                final_accuracy=previous_accuracy,
                improvement=0.0,
                training_time_ms=(time.perf_counter() - started) * 1000,
            )

        features = [extract(e) for e in examples]
        labels = [label(e) for e in examples]
        sample_weights = [e.learning_weight for e in examples]
        weights = dict(previous.weights) if previous else {}

        best_accuracy = 0.0
        for epoch in range(epochs):
            total_error = 0.0
            for feature_row, target, sample_weight in zip(features, labels, sample_weights):
                error = target - predict(feature_row, weights)
                adjustment = LEARNING_RATE * error * sample_weight
                for name, value in feature_row.items():
                    weights[name] = weights.get(name, 0.0) + adjustment * value

                if percentage_error:
                    total_error += abs(error / target) * 100 if target else 100.0
                else:
                    total_error += abs(error)

            mean_error = total_error / len(features)
            if percentage_error:
                mean_error = min(100.0, mean_error)
            accuracy = 100 - mean_error
            best_accuracy = max(best_accuracy, accuracy)

            if (epoch + 1) % 10 == 0:
                logger.debug(f"{kind.value} epoch {epoch + 1}/{epochs}: accuracy {accuracy:.2f}%")

        version = (previous.version if previous else 0) + 1
        model = Model(
            id=f"{kind.value}-v{version}",
            kind=kind,
            version=version,
            trained_at=to_iso(self.clock()),
            training_size=len(examples),
            accuracy=best_accuracy,
            weights=weights,
            metadata={
                "epochs": epochs,
                "learning_rate": LEARNING_RATE,
                "features": sorted(weights),
            },
        )
        training_time_ms = (time.perf_counter() - started) * 1000
        improvement = best_accuracy - previous_accuracy
        self._save(model, epochs, improvement, training_time_ms)

        logger.info(
            f"Trained {model.id}: accuracy {best_accuracy:.2f}% ({improvement:+.2f}%)"
        )
        return TrainingResult(
            model_id=model.id,
            epochs_completed=epochs,
            final_accuracy=best_accuracy,
            improvement=improvement,
            training_time_ms=training_time_ms,
        )

    def _save(
        self, model: Model, epochs: int, improvement: float, training_time_ms: float
    ) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO models
                    (id, kind, version, trained_at, training_size, accuracy, weights, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    model.id,
                    model.kind.value,
                    model.version,
                    model.trained_at,
                    model.training_size,
                    model.accuracy,
                    json.dumps(model.weights),
                    json.dumps(model.metadata),
                ),
            )
            conn.execute(
                """
                INSERT INTO training_runs
                    (model_id, kind, started_at, epochs, example_count,
                     final_accuracy, improvement, training_time_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    model.id,
                    model.kind.value,
                    model.trained_at,
                    epochs,
                    model.training_size,
                    model.accuracy,
                    improvement,
                    training_time_ms,
                ),
            )

    # =========================================================================
    # Model queries
    # =========================================================================

    def _from_row(self, row) -> Model:
        return Model(
            id=row["id"],
            kind=ModelKind(row["kind"]),
            version=row["version"],
            trained_at=row["trained_at"],
            training_size=row["training_size"],
            accuracy=row["accuracy"],
            weights=json.loads(row["weights"]),
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
        )

    def get_latest_model(self, kind: ModelKind) -> Model | None:
        row = self.db.execute_one(
            "SELECT * FROM models WHERE kind = ? ORDER BY version DESC LIMIT 1",
            (kind.value,),
        )
        return self._from_row(row) if row else None

    def list_models(self, kind: ModelKind | None = None) -> list[Model]:
        """Models ordered by kind, then version."""
        if kind:
            rows = self.db.execute(
                "SELECT * FROM models WHERE kind = ? ORDER BY version", (kind.value,)
            )
        else:
            rows = self.db.execute("SELECT * FROM models ORDER BY kind, version")
        return [self._from_row(row) for row in rows]

    def last_training_time(self) -> datetime | None:
        """Start time of the most recent training run, if any."""
        row = self.db.execute_one(
            "SELECT started_at FROM training_runs ORDER BY started_at DESC, id DESC LIMIT 1"
        )
        if row is None:
            return None
        return parse_iso(row["started_at"])
