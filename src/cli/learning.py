"""Learning CLI commands: outcomes, training, optimization and reports."""

import typer

from ceo_discovery.errors import FeedbackError
from ceo_discovery.models import OutcomeScores

from .console import (
    console,
    create_table,
    format_currency,
    print_error,
    print_info,
    print_panel,
    print_success,
    print_table,
)
from .context import ensure_context

app = typer.Typer(
    name="learn",
    help="Record project outcomes and improve the estimators",
    no_args_is_help=True,
)


@app.command(name="feedback")
def record_feedback(
    proposal_id: str = typer.Argument(..., help="Proposal the project delivered"),
    project_id: str = typer.Argument(..., help="Delivered project identifier"),
    time_savings: float = typer.Option(..., "--time-savings", help="Time savings score 0-100"),
    problem_solution: float = typer.Option(
        ..., "--problem-solution", help="Problem solution score 0-100"
    ),
    usability: float = typer.Option(..., "--usability", help="Usability score 0-100"),
    sustainability: float = typer.Option(
        ..., "--sustainability", help="Sustainability score 0-100"
    ),
    satisfaction: float = typer.Option(..., "--satisfaction", help="User satisfaction 0-100"),
    actual_cost: float = typer.Option(..., "--actual-cost", help="Becoins actually spent"),
    timeline: str = typer.Option("", "--timeline", help="Actual delivery timeline"),
    would_recommend: bool = typer.Option(
        True, "--recommend/--no-recommend", help="Whether users would recommend it"
    ),
    comments: str | None = typer.Option(None, "--comments", help="Free-text comments"),
) -> None:
    """Record the realized outcome of a delivered project."""
    ctx = ensure_context()
    scores = OutcomeScores(
        time_savings=time_savings,
        problem_solution=problem_solution,
        usability=usability,
        sustainability=sustainability,
        user_satisfaction=satisfaction,
        actual_cost=actual_cost,
        actual_timeline=timeline,
        would_recommend=would_recommend,
        user_comments=comments,
    )

    try:
        outcome = ctx.feedback.collect_feedback(proposal_id, project_id, scores)
    except FeedbackError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(
        f"Recorded outcome for {proposal_id}: impact {outcome.actual_overall_impact:.0f}, "
        f"accuracy {outcome.prediction_accuracy:.1f}%, ROI {outcome.actual_roi:.1f}x"
    )


@app.command(name="metrics")
def show_metrics() -> None:
    """Show aggregate learning metrics."""
    ctx = ensure_context()
    metrics = ctx.feedback.get_learning_metrics()
    pending = ctx.feedback.count_pending_examples()

    content = (
        f"Projects:            {metrics.total_projects}\n"
        f"Prediction accuracy: {metrics.average_prediction_accuracy:.1f}%\n"
        f"User satisfaction:   {metrics.average_user_satisfaction:.1f}%\n"
        f"Average ROI:         {metrics.average_roi:.1f}x\n"
        f"Improvement trend:   {metrics.improvement_trend:+.2f}\n"
        f"Confidence:          {metrics.confidence_level:.0%}\n\n"
        f"Pending training examples: {pending}"
    )
    print_panel("Learning Metrics", content, style="blue")


@app.command(name="train")
def train_models(
    epochs: int | None = typer.Option(
        None, "--epochs", "-e", help="Training epochs (default: learning.default_epochs)"
    ),
) -> None:
    """Retrain both estimators on every recorded training example."""
    ctx = ensure_context()
    retrained = ctx.scheduler.retrain(epochs)

    if not retrained.example_count:
        print_info("No training examples yet. Record outcomes with 'ceo learn feedback'.")
        return

    table = create_table(f"Training Results ({retrained.example_count} examples)")
    table.add_column("Model", style="cyan")
    table.add_column("Epochs", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Improvement", justify="right")
    table.add_column("Time", justify="right", style="dim")
    for r in retrained.results:
        table.add_row(
            r.model_id,
            str(r.epochs_completed),
            f"{r.final_accuracy:.2f}%",
            f"{r.improvement:+.2f}%",
            f"{r.training_time_ms:.0f} ms",
        )
    print_table(table)


@app.command(name="optimize")
def run_optimization() -> None:
    """Check for improvement opportunities and execute them."""
    ctx = ensure_context()
    result = ctx.scheduler.run_optimization_cycle()

    if result.actions_executed == 0:
        print_success("System is already optimal.")
        return

    print_success(
        f"Executed {result.actions_executed} actions; "
        f"accuracy change {result.overall_improvement:+.2f}%"
    )


@app.command(name="status")
def optimization_status() -> None:
    """Show whether the system is optimal and which actions are pending."""
    ctx = ensure_context()
    status = ctx.scheduler.get_optimization_status()

    state = "[green]optimal[/green]" if status.is_optimal else "[yellow]needs work[/yellow]"
    console.print(f"Optimization status: {state}")

    if status.last_improvement:
        last = status.last_improvement
        console.print(
            f"[dim]Last improvement: {last.action_type.value} at {last.executed_at}[/dim]"
        )

    if not status.pending_actions:
        console.print("[dim]No pending actions.[/dim]")
        return

    table = create_table("Pending Actions")
    table.add_column("Action", style="cyan")
    table.add_column("Reason", style="green")
    table.add_column("Expected", justify="right")
    for action in status.pending_actions:
        table.add_row(
            action.action_type.value,
            action.reason,
            f"+{action.expected_improvement:.1f}%",
        )
    print_table(table)


@app.command(name="report")
def performance_report(
    days: int = typer.Option(30, "--days", "-d", help="Reporting period in days"),
) -> None:
    """Show a performance report for the trailing period."""
    ctx = ensure_context()
    report = ctx.analytics.generate_report(period_days=days)
    summary = report.summary

    content = (
        f"Projects:          {summary['total_projects']}\n"
        f"Success rate:      {summary['success_rate']:.1f}%\n"
        f"Average ROI:       {summary['average_roi']:.1f}x\n"
        f"Time saved:        {summary['total_time_saved']:.0f} min/week\n"
        f"Satisfaction:      {summary['average_satisfaction']:.1f}%"
    )
    print_panel(f"Performance Report ({days} days)", content, style="blue")

    for insight in report.insights:
        console.print(f"  - {insight}")

    categories = ctx.analytics.get_performance_by_category()
    if categories:
        table = create_table("By Category")
        table.add_column("Category", style="cyan")
        table.add_column("Projects", justify="right")
        table.add_column("Avg Impact", justify="right")
        table.add_column("Avg ROI", justify="right")
        table.add_column("Success", justify="right")
        for c in categories:
            table.add_row(
                c.category,
                str(c.project_count),
                f"{c.average_impact:.1f}",
                f"{c.average_roi:.1f}x",
                f"{c.success_rate:.0f}%",
            )
        print_table(table)

    roi = ctx.analytics.get_roi_analysis()
    if roi["total_investment"] > 0:
        console.print(
            f"\n[dim]Invested {format_currency(roi['total_investment'])}, "
            f"returned {format_currency(roi['total_return'])} "
            f"({roi['overall_roi']:.1f}x)[/dim]"
        )
