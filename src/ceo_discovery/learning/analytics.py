"""
Analytics Reporter - Read-only track record over recorded outcomes.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..models import ActualOutcome, LearningMetrics, parse_iso, to_iso, utc_now
from .feedback import MAX_WEEKLY_MINUTES, FeedbackCollector

logger = logging.getLogger(__name__)

SUCCESS_IMPACT = 70
UNDERPERFORMANCE_THRESHOLD = 60
REPORT_LIST_LIMIT = 5


def week_key(value: datetime) -> str:
    """ISO week key, e.g. ``2025-W03``."""
    iso = value.isocalendar()
    return f"{iso[0]}-W{iso[1]:02d}"


def weekly_trend(outcomes: list[ActualOutcome], attribute: str) -> list[dict]:
    """Average of ``attribute`` per ISO week, in chronological order."""
    ordered = sorted(outcomes, key=lambda o: parse_iso(o.completed_at))
    weeks: dict[str, list[float]] = {}
    for outcome in ordered:
        key = week_key(parse_iso(outcome.completed_at))
        weeks.setdefault(key, []).append(getattr(outcome, attribute))
    return [
        {"date": key, "value": sum(values) / len(values)}
        for key, values in weeks.items()
    ]


def success_rate(outcomes: list[ActualOutcome]) -> float:
    if not outcomes:
        return 0.0
    successful = [o for o in outcomes if o.actual_overall_impact >= SUCCESS_IMPACT]
    return len(successful) / len(outcomes) * 100


@dataclass
class CategoryPerformance:
    category: str
    project_count: int
    average_impact: float
    average_roi: float
    success_rate: float

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "project_count": self.project_count,
            "average_impact": self.average_impact,
            "average_roi": self.average_roi,
            "success_rate": self.success_rate,
        }


@dataclass
class PerformanceReport:
    period_from: str
    period_to: str
    summary: dict
    trends: dict[str, list[dict]] = field(default_factory=dict)
    top_performers: list[ActualOutcome] = field(default_factory=list)
    underperformers: list[ActualOutcome] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "period": {"from": self.period_from, "to": self.period_to},
            "summary": dict(self.summary),
            "trends": {name: list(points) for name, points in self.trends.items()},
            "top_performers": [o.to_dict() for o in self.top_performers],
            "underperformers": [o.to_dict() for o in self.underperformers],
            "insights": list(self.insights),
        }


class AnalyticsReporter:
    """Summaries, trends and ROI over the feedback store."""

    def __init__(self, feedback: FeedbackCollector, clock: Callable[[], datetime] = utc_now):
        self.feedback = feedback
        self.clock = clock

    def _outcomes_between(self, start: datetime, end: datetime) -> list[ActualOutcome]:
        return [
            o
            for o in self.feedback.load_all_outcomes()
            if start <= parse_iso(o.completed_at) <= end
        ]

    def generate_report(self, period_days: int = 30) -> PerformanceReport:
        """
        Build a performance report for the trailing period.

        Project counts, success rate, time saved and trends cover outcomes
        completed inside the period. Averages and top performers come from
        the full learning history.
        """
        logger.info(f"Generating {period_days}-day performance report")
        end = self.clock()
        start = end - timedelta(days=period_days)

        metrics = self.feedback.get_learning_metrics()
        outcomes = self._outcomes_between(start, end)

        summary = {
            "total_projects": len(outcomes),
            "success_rate": success_rate(outcomes),
            "average_roi": metrics.average_roi,
            "total_time_saved": sum(
                o.actual_time_savings / 100 * MAX_WEEKLY_MINUTES for o in outcomes
            ),
            "average_satisfaction": metrics.average_user_satisfaction,
        }
        trends = {
            "impact": weekly_trend(outcomes, "actual_overall_impact"),
            "roi": weekly_trend(outcomes, "actual_roi"),
            "satisfaction": weekly_trend(outcomes, "user_satisfaction"),
        }
        underperformers = [
            o
            for o in outcomes
            if o.actual_overall_impact < UNDERPERFORMANCE_THRESHOLD
            or o.user_satisfaction < UNDERPERFORMANCE_THRESHOLD
        ][:REPORT_LIST_LIMIT]

        return PerformanceReport(
            period_from=to_iso(start),
            period_to=to_iso(end),
            summary=summary,
            trends=trends,
            top_performers=self.feedback.get_success_stories(REPORT_LIST_LIMIT),
            underperformers=underperformers,
            insights=self._insights(outcomes, metrics),
        )

    def _insights(self, outcomes: list[ActualOutcome], metrics: LearningMetrics) -> list[str]:
        if not outcomes:
            return ["No data available yet. Run discovery and record outcomes to generate insights."]

        insights = []
        accuracy = metrics.average_prediction_accuracy
        if accuracy >= 80:
            insights.append(f"Excellent prediction accuracy at {accuracy:.1f}%")
        elif accuracy < 60:
            insights.append(f"Prediction accuracy needs improvement ({accuracy:.1f}%)")

        satisfaction = metrics.average_user_satisfaction
        if satisfaction >= 85:
            insights.append(f"High user satisfaction at {satisfaction:.1f}%")
        elif satisfaction < 70:
            insights.append(f"User satisfaction could be better ({satisfaction:.1f}%)")

        if metrics.improvement_trend > 0.2:
            insights.append("Strong improvement trend - system is learning effectively")
        elif metrics.improvement_trend < -0.2:
            insights.append("Declining trend - system needs retraining")

        if metrics.average_roi >= 3.0:
            insights.append(f"Excellent ROI at {metrics.average_roi:.1f}x return on investment")

        return insights

    def get_performance_by_category(self) -> list[CategoryPerformance]:
        """Per pain category performance, best success rate first."""
        categories = self.feedback.outcome_categories()
        grouped: dict[str, list[ActualOutcome]] = {}
        for outcome in self.feedback.load_all_outcomes():
            category = categories.get(outcome.proposal_id)
            if category is not None:
                grouped.setdefault(category, []).append(outcome)

        performance = [
            CategoryPerformance(
                category=category,
                project_count=len(outcomes),
                average_impact=sum(o.actual_overall_impact for o in outcomes) / len(outcomes),
                average_roi=sum(o.actual_roi for o in outcomes) / len(outcomes),
                success_rate=success_rate(outcomes),
            )
            for category, outcomes in grouped.items()
        ]
        performance.sort(key=lambda p: p.success_rate, reverse=True)
        return performance

    def get_roi_analysis(self) -> dict:
        """Investment against realized return, overall and per category."""
        categories = self.feedback.outcome_categories()
        total_investment = 0.0
        total_return = 0.0
        by_category: dict[str, dict[str, float]] = {}

        for outcome in self.feedback.load_all_outcomes():
            category = categories.get(outcome.proposal_id)
            if category is None:
                continue
            investment = outcome.actual_cost
            returned = investment * outcome.actual_roi
            total_investment += investment
            total_return += returned

            entry = by_category.setdefault(
                category, {"investment": 0.0, "return": 0.0, "roi": 0.0}
            )
            entry["investment"] += investment
            entry["return"] += returned

        for entry in by_category.values():
            if entry["investment"] > 0:
                entry["roi"] = entry["return"] / entry["investment"]

        return {
            "total_investment": total_investment,
            "total_return": total_return,
            "net_profit": total_return - total_investment,
            "overall_roi": total_return / total_investment if total_investment > 0 else 0.0,
            "by_category": by_category,
        }

    def get_prediction_accuracy_over_time(self) -> list[dict]:
        """Weekly average accuracy of outcomes that had a prediction."""
        outcomes = [
            o for o in self.feedback.load_all_outcomes() if o.predicted_impact is not None
        ]
        return weekly_trend(outcomes, "prediction_accuracy")
