"""End-to-end tests for the ceo CLI commands.

Each test runs in an empty temporary project: the .ceo data directory, its
database and its log sources are all created under tmp_path.
"""

import pytest
from typer.testing import CliRunner

from cli import console as console_module
from cli.context import build_context
from cli.main import app

runner = CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Temporary project with a command history worth two proposals."""
    for name in ("CEO_DISCOVERY_CONFIG_PATH", "CEO_DISCOVERY_DATA_DIR", "CEO_DISCOVERY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(console_module.console, "width", 200)

    logs = tmp_path / ".ceo" / "logs"
    logs.mkdir(parents=True)
    (logs / "command-history.log").write_text("npm run build\n" * 8 + "make test\n" * 10)
    return tmp_path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def _first_proposal_id(project) -> str:
    session = build_context(project).orchestrator.load_historical_sessions()[-1]
    return session.proposals[0].id


class TestMain:
    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert "ceo version 0.1.0" in result.output

    def test_invalid_config_path_exits(self, project, monkeypatch):
        bad = project / "bad.yaml"
        bad.write_text("- just\n- a list\n")
        monkeypatch.setenv("CEO_DISCOVERY_CONFIG_PATH", str(bad))

        result = _invoke("treasury", "status")

        assert result.exit_code == 1
        assert "Invalid YAML in config file" in result.output


class TestDiscoverCommands:
    """Tests for the discover command group."""

    def test_start_persists_session(self, project):
        result = _invoke("discover", "start")

        assert result.exit_code == 0
        assert "2 patterns, 2 pain points, 2 proposals" in result.output
        assert "Task Automation System" in result.output
        assert len(build_context(project).sessions.load_all()) == 1

    def test_start_no_save(self, project):
        result = _invoke("discover", "start", "--no-save")

        assert result.exit_code == 0
        assert build_context(project).sessions.load_all() == []

    def test_history_and_proposals(self, project):
        _invoke("discover", "start")

        history = _invoke("discover", "history")
        proposals = _invoke("discover", "proposals")

        assert history.exit_code == 0
        assert "completed" in history.output
        assert proposals.exit_code == 0
        assert "258.00 BC" in proposals.output

    def test_proposals_unknown_session(self, project):
        result = _invoke("discover", "proposals", "--session", "discovery-missing")
        assert result.exit_code == 1
        assert "Session discovery-missing not found." in result.output

    def test_show(self, project):
        _invoke("discover", "start")
        result = _invoke("discover", "show", _first_proposal_id(project))

        assert result.exit_code == 0
        assert "Deliverables:" in result.output
        assert "Expected ROI: 2.2x" in result.output

    def test_approve_reserves_budget(self, project):
        _invoke("discover", "start")
        proposal_id = _first_proposal_id(project)

        result = _invoke("discover", "approve", proposal_id)

        assert result.exit_code == 0
        assert "Reserved 258.00 BC" in result.output
        assert build_context(project).ledger.get_snapshot().reserved == 258

    def test_approve_unknown(self, project):
        result = _invoke("discover", "approve", "proposal-missing")
        assert result.exit_code == 1
        assert "Proposal proposal-missing not found." in result.output


class TestTreasuryCommands:
    """Tests for the treasury command group."""

    def test_status(self, project):
        result = _invoke("treasury", "status")

        assert result.exit_code == 0
        assert "100,000.00 BC" in result.output
        assert "400.00 hours" in result.output

    def test_reserve_commit_and_history(self, project):
        reserve = _invoke("treasury", "reserve", "1000", "--reason", "Laptop")
        assert reserve.exit_code == 0
        [reservation] = build_context(project).ledger.list_reservations()

        commit = _invoke("treasury", "commit", reservation.id, "--actual-cost", "800")
        history = _invoke("treasury", "history")

        assert commit.exit_code == 0
        assert "99,200.00 BC" in commit.output
        assert "Laptop" in history.output

    def test_reserve_over_cap_fails(self, project):
        result = _invoke("treasury", "reserve", "50000", "-r", "Too much")

        assert result.exit_code == 1
        assert "exceeds 20% allocation" in result.output

    def test_cancel(self, project):
        _invoke("treasury", "reserve", "500", "-r", "Maybe")
        [reservation] = build_context(project).ledger.list_reservations()

        result = _invoke("treasury", "cancel", reservation.id)

        assert result.exit_code == 0
        assert build_context(project).ledger.get_snapshot().reserved == 0

    def test_commit_negative_cost_fails(self, project):
        _invoke("treasury", "reserve", "1000", "-r", "Laptop")
        [reservation] = build_context(project).ledger.list_reservations()

        result = _invoke("treasury", "commit", reservation.id, "--actual-cost", "-5000")

        assert result.exit_code == 1
        assert "Actual cost must be zero or greater" in result.output
        assert build_context(project).ledger.get_snapshot().balance == 100000

    def test_commit_unknown(self, project):
        result = _invoke("treasury", "commit", "reservation-missing")
        assert result.exit_code == 1
        assert "not found or already processed" in result.output

    def test_revenue(self, project):
        result = _invoke("treasury", "revenue", "2500", "-d", "Client payment")
        assert result.exit_code == 0
        assert "balance 102,500.00 BC" in result.output


class TestLearnCommands:
    """Tests for the learn command group."""

    def _record(self, proposal_id: str):
        return _invoke(
            "learn",
            "feedback",
            proposal_id,
            "project-1",
            "--time-savings", "80",
            "--problem-solution", "80",
            "--usability", "80",
            "--sustainability", "80",
            "--satisfaction", "90",
            "--actual-cost", "250",
            "--timeline", "1 week",
        )

    def test_feedback_settles_reservation(self, project):
        _invoke("discover", "start")
        proposal_id = _first_proposal_id(project)
        _invoke("discover", "approve", proposal_id)

        result = self._record(proposal_id)

        assert result.exit_code == 0
        assert f"Recorded outcome for {proposal_id}" in result.output
        snapshot = build_context(project).ledger.get_snapshot()
        assert snapshot.balance == 99750
        assert snapshot.reserved == 0

    def test_duplicate_feedback_fails(self, project):
        self._record("proposal-x")
        result = self._record("proposal-x")

        assert result.exit_code == 1
        assert "already recorded" in result.output

    def test_train_without_examples(self, project):
        result = _invoke("learn", "train")
        assert result.exit_code == 0
        assert "No training examples yet" in result.output

    def test_train_with_examples(self, project):
        _invoke("discover", "start")
        self._record(_first_proposal_id(project))

        result = _invoke("learn", "train", "--epochs", "5")

        assert result.exit_code == 0
        assert "impact_predictor-v1" in result.output
        assert "cost_estimator-v1" in result.output
        assert build_context(project).feedback.count_pending_examples() == 0

    def test_metrics_status_optimize_report(self, project):
        _invoke("discover", "start")
        self._record(_first_proposal_id(project))

        metrics = _invoke("learn", "metrics")
        status = _invoke("learn", "status")
        optimize = _invoke("learn", "optimize")
        report = _invoke("learn", "report", "--days", "7")

        assert "Projects:            1" in metrics.output
        assert "Optimization status:" in status.output
        assert "Executed 1 actions" in optimize.output
        assert report.exit_code == 0
        assert "Performance Report (7 days)" in report.output
        assert "repetitive_task" in report.output
