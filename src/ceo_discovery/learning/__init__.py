"""
Learning loop: outcomes -> training examples -> recalibrated estimators.

Usage:
    from ceo_discovery.learning import FeedbackCollector, ImprovementScheduler

    collector.collect_feedback(proposal_id, project_id, scores)
    scheduler.run_optimization_cycle()
"""

from .analytics import AnalyticsReporter, CategoryPerformance, PerformanceReport
from .feedback import (
    FeedbackCollector,
    UnderperformanceReport,
    UnderperformingCategory,
    actual_roi,
    learning_weight,
    prediction_accuracy,
)
from .scheduler import (
    ImprovementScheduler,
    OptimizationCycleResult,
    OptimizationStatus,
    RetrainResult,
)
from .trainer import WeightTrainer, predict

__all__ = [
    "AnalyticsReporter",
    "CategoryPerformance",
    "FeedbackCollector",
    "ImprovementScheduler",
    "OptimizationCycleResult",
    "OptimizationStatus",
    "PerformanceReport",
    "RetrainResult",
    "UnderperformanceReport",
    "UnderperformingCategory",
    "WeightTrainer",
    "actual_roi",
    "learning_weight",
    "predict",
    "prediction_accuracy",
]
