"""Unit tests for estimator training."""

import pytest

from ceo_discovery.learning import WeightTrainer, predict
from ceo_discovery.learning.trainer import base_features, impact_features
from ceo_discovery.models import ModelKind

from tests.helpers import FROZEN_NOW, make_example


class TestFeatures:
    def test_one_hot_and_scaled_values(self):
        """Default proposal: high severity, medium risk, cost 678, three roles."""
        features = base_features(make_example())

        assert features["severity_high"] == 1.0
        assert features["severity_low"] == 0.0
        assert features["risk_medium"] == 1.0
        assert features["time_cost"] == pytest.approx(1.2)
        assert features["cost"] == pytest.approx(0.678)
        assert features["team_size"] == 3.0

    def test_impact_features_add_prediction(self):
        features = impact_features(make_example())
        assert features["predicted_impact"] == pytest.approx(0.88)
        assert features["predicted_roi"] == pytest.approx(0.67)
        assert set(base_features(make_example())) < set(features)


class TestPredict:
    def test_empty_weights_predict_midpoint(self):
        assert predict({"a": 1.0}, {}) == 50

    def test_clamped(self):
        assert predict({"a": 1.0}, {"a": 5.0}) == 100
        assert predict({"a": 1.0}, {"a": -5.0}) == 0


class TestTrainImpactPredictor:
    """Tests for train_impact_predictor."""

    def test_no_examples_leaves_model_unchanged(self, trainer):
        result = trainer.train_impact_predictor([])

        assert result.epochs_completed == 0
        assert result.model_id == ""
        assert trainer.list_models() == []
        assert trainer.last_training_time() is None

    def test_zero_weight_examples_do_not_move_weights(self, trainer):
        """With weight 0 every epoch predicts 50 against a target of 80."""
        result = trainer.train_impact_predictor([make_example(learning_weight=0.0)], epochs=5)

        assert result.model_id == "impact_predictor-v1"
        assert result.epochs_completed == 5
        assert result.final_accuracy == pytest.approx(70)
        assert result.improvement == pytest.approx(70)

        model = trainer.get_latest_model(ModelKind.IMPACT_PREDICTOR)
        assert all(weight == 0 for weight in model.weights.values())
        assert model.training_size == 1
        assert model.metadata["epochs"] == 5

    def test_best_accuracy_never_below_first_epoch(self, trainer):
        result = trainer.train_impact_predictor([make_example(learning_weight=1.0)], epochs=20)
        assert result.final_accuracy >= 70

    def test_versions_increment_and_improvement_is_relative(self, trainer):
        example = make_example(learning_weight=0.0)
        trainer.train_impact_predictor([example], epochs=1)
        second = trainer.train_impact_predictor([example], epochs=1)

        assert second.model_id == "impact_predictor-v2"
        assert second.improvement == pytest.approx(0)
        assert [m.version for m in trainer.list_models(ModelKind.IMPACT_PREDICTOR)] == [1, 2]

    def test_training_time_recorded(self, trainer):
        trainer.train_impact_predictor([make_example()], epochs=1)
        assert trainer.last_training_time() == FROZEN_NOW

    def test_new_run_starts_from_previous_weights(self, db, trainer):
        trainer.train_impact_predictor([make_example(learning_weight=1.0)], epochs=1)
        first = trainer.get_latest_model(ModelKind.IMPACT_PREDICTOR)

        WeightTrainer(db).train_impact_predictor([make_example(learning_weight=0.0)], epochs=1)
        second = trainer.get_latest_model(ModelKind.IMPACT_PREDICTOR)

        assert second.weights == first.weights


class TestTrainCostEstimator:
    def test_accuracy_from_percentage_error(self, trainer):
        """Predicting 50 against 600 is a 91.7% error."""
        result = trainer.train_cost_estimator([make_example(actual_cost=600)], epochs=1)

        assert result.model_id == "cost_estimator-v1"
        assert result.final_accuracy == pytest.approx(100 - 550 / 600 * 100)

    def test_zero_cost_counts_as_full_error(self, trainer):
        result = trainer.train_cost_estimator([make_example(actual_cost=0)], epochs=1)
        assert result.final_accuracy == 0

    def test_kinds_versioned_independently(self, trainer):
        trainer.train_impact_predictor([make_example()], epochs=1)
        trainer.train_cost_estimator([make_example()], epochs=1)

        assert [m.id for m in trainer.list_models()] == [
            "cost_estimator-v1",
            "impact_predictor-v1",
        ]
