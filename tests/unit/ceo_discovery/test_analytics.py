"""Unit tests for analytics reporting."""

from datetime import datetime, timedelta, timezone

import pytest

from ceo_discovery.learning import AnalyticsReporter, FeedbackCollector
from ceo_discovery.learning.analytics import week_key

from tests.helpers import FROZEN_NOW, make_proposal, make_scores, save_session


@pytest.fixture
def reporter(collector, clock):
    return AnalyticsReporter(collector, clock=clock)


@pytest.fixture
def recorded(collector, sessions):
    """A strong outcome (impact 80) and a weak one (impact 50), both this week."""
    save_session(sessions, [make_proposal(proposal_id="good"), make_proposal(proposal_id="weak")])
    collector.collect_feedback("good", "project-1", make_scores())
    collector.collect_feedback(
        "weak", "project-2", make_scores(50, 50, 50, 50, user_satisfaction=50)
    )


class TestWeekKey:
    def test_iso_week(self):
        assert week_key(FROZEN_NOW) == "2025-W03"

    def test_iso_year_differs_from_calendar_year(self):
        """30 December 2024 belongs to the first ISO week of 2025."""
        assert week_key(datetime(2024, 12, 30, tzinfo=timezone.utc)) == "2025-W01"


class TestGenerateReport:
    """Tests for generate_report."""

    def test_empty_history(self, reporter):
        report = reporter.generate_report()

        assert report.summary["total_projects"] == 0
        assert report.summary["success_rate"] == 0
        assert report.trends == {"impact": [], "roi": [], "satisfaction": []}
        assert report.insights == [
            "No data available yet. Run discovery and record outcomes to generate insights."
        ]

    @pytest.mark.usefixtures("recorded")
    def test_summary(self, reporter):
        report = reporter.generate_report(period_days=30)

        assert report.period_to == "2025-01-15T12:00:00+00:00"
        assert report.period_from == "2024-12-16T12:00:00+00:00"
        assert report.summary["total_projects"] == 2
        assert report.summary["success_rate"] == 50
        assert report.summary["total_time_saved"] == pytest.approx(390)
        assert report.summary["average_satisfaction"] == 70
        assert report.summary["average_roi"] == pytest.approx(14.0725)

    @pytest.mark.usefixtures("recorded")
    def test_trends_and_rankings(self, reporter):
        report = reporter.generate_report()

        assert report.trends["impact"] == [{"date": "2025-W03", "value": 65}]
        assert report.trends["satisfaction"] == [{"date": "2025-W03", "value": 70}]
        assert [o.proposal_id for o in report.top_performers] == ["good", "weak"]
        assert [o.proposal_id for o in report.underperformers] == ["weak"]

    @pytest.mark.usefixtures("recorded")
    def test_insights(self, reporter):
        """Accuracy 77% and satisfaction 70% are unremarkable; ROI is not."""
        assert reporter.generate_report().insights == [
            "Excellent ROI at 14.1x return on investment"
        ]

    def test_period_excludes_old_outcomes(self, db, sessions, reporter):
        old = FeedbackCollector(db, sessions, clock=lambda: FROZEN_NOW - timedelta(days=60))
        old.collect_feedback("proposal-old", "project-1", make_scores())

        report = reporter.generate_report(period_days=30)

        assert report.summary["total_projects"] == 0
        assert report.summary["average_satisfaction"] == 90
        assert [o.proposal_id for o in report.top_performers] == ["proposal-old"]

    @pytest.mark.usefixtures("recorded")
    def test_to_dict(self, reporter):
        data = reporter.generate_report().to_dict()
        assert data["period"]["to"] == "2025-01-15T12:00:00+00:00"
        assert data["underperformers"][0]["proposal_id"] == "weak"


@pytest.mark.usefixtures("recorded")
class TestBreakdowns:
    def test_performance_by_category(self, reporter):
        [performance] = reporter.get_performance_by_category()

        assert performance.category == "repetitive_task"
        assert performance.project_count == 2
        assert performance.average_impact == 65
        assert performance.success_rate == 50

    def test_roi_analysis(self, reporter):
        analysis = reporter.get_roi_analysis()

        assert analysis["total_investment"] == 1200
        assert analysis["total_return"] == pytest.approx(16887)
        assert analysis["net_profit"] == pytest.approx(15687)
        assert analysis["overall_roi"] == pytest.approx(14.0725)
        assert analysis["by_category"]["repetitive_task"]["investment"] == 1200

    def test_accuracy_over_time_skips_unpredicted(self, reporter, collector):
        collector.collect_feedback("proposal-unknown", "project-3", make_scores())
        assert reporter.get_prediction_accuracy_over_time() == [
            {"date": "2025-W03", "value": 77}
        ]
