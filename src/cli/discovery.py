"""Discovery CLI commands: run sessions, browse proposals, approve funding."""

import typer

from ceo_discovery.errors import TreasuryError
from ceo_discovery.models import Proposal

from .console import (
    console,
    create_table,
    format_currency,
    print_error,
    print_panel,
    print_success,
    print_table,
)
from .context import ensure_context

app = typer.Typer(
    name="discover",
    help="Run discovery sessions and manage proposals",
    no_args_is_help=True,
)


def _proposal_table(title: str, proposals: list[Proposal]):
    table = create_table(title)
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Category", style="blue")
    table.add_column("Cost", justify="right")
    table.add_column("Timeline")
    table.add_column("Impact", justify="right")
    table.add_column("ROI", justify="right", style="magenta")
    table.add_column("Risk")

    for p in proposals:
        impact = str(p.prediction.expected_impact) if p.prediction else "-"
        roi = f"{p.prediction.expected_roi:.1f}x" if p.prediction else "-"
        table.add_row(
            p.id,
            p.title,
            p.pain_point.category.value,
            format_currency(p.cost),
            p.timeline,
            impact,
            roi,
            p.risk_level.value,
        )
    return table


@app.command(name="start")
def start_discovery(
    no_save: bool = typer.Option(
        False,
        "--no-save",
        help="Run without persisting the session",
    ),
) -> None:
    """Analyze behavioral logs and generate prioritized proposals."""
    ctx = ensure_context()

    console.print("[bold]Analyzing behavioral patterns...[/bold]")
    session = ctx.orchestrator.start_discovery(persist=not no_save)

    console.print(
        f"Session [cyan]{session.id}[/cyan]: "
        f"{len(session.patterns)} patterns, "
        f"{len(session.pain_points)} pain points, "
        f"{len(session.proposals)} proposals"
    )

    if not session.proposals:
        console.print("[dim]No proposals generated.[/dim]")
        return

    print_table(_proposal_table("Proposals (highest ROI first)", session.proposals))


@app.command(name="history")
def session_history(
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of sessions to show",
    ),
) -> None:
    """List stored discovery sessions, newest first."""
    ctx = ensure_context()
    sessions = ctx.orchestrator.load_historical_sessions()

    if not sessions:
        console.print("[dim]No discovery sessions found.[/dim]")
        return

    table = create_table("Discovery Sessions")
    table.add_column("ID", style="cyan")
    table.add_column("Started")
    table.add_column("Status", style="magenta")
    table.add_column("Patterns", justify="right")
    table.add_column("Pain Points", justify="right")
    table.add_column("Proposals", justify="right")

    for s in list(reversed(sessions))[:limit]:
        table.add_row(
            s.id,
            s.start_time,
            s.status.value,
            str(len(s.patterns)),
            str(len(s.pain_points)),
            str(len(s.proposals)),
        )
    print_table(table)


@app.command(name="proposals")
def list_proposals(
    session_id: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Session to show (default: most recent)",
    ),
) -> None:
    """Show the proposals of a discovery session."""
    ctx = ensure_context()

    if session_id:
        session = ctx.sessions.get(session_id)
        if session is None:
            print_error(f"Session {session_id} not found.")
            raise typer.Exit(1)
    else:
        sessions = ctx.orchestrator.load_historical_sessions()
        if not sessions:
            console.print("[dim]No discovery sessions found. Run 'ceo discover start' first.[/dim]")
            return
        session = sessions[-1]

    if not session.proposals:
        console.print(f"[dim]Session {session.id} has no proposals.[/dim]")
        return

    print_table(_proposal_table(f"Proposals - {session.id}", session.proposals))


@app.command(name="show")
def show_proposal(
    proposal_id: str = typer.Argument(..., help="ID of the proposal to show"),
) -> None:
    """Show the full detail of a proposal."""
    ctx = ensure_context()
    proposal = ctx.orchestrator.find_proposal(proposal_id)
    if proposal is None:
        print_error(f"Proposal {proposal_id} not found.")
        raise typer.Exit(1)

    lines = [
        f"[bold]Category:[/bold] {proposal.pain_point.category.value} "
        f"({proposal.pain_point.severity.value})",
        f"[bold]Cost:[/bold] {format_currency(proposal.cost)}",
        f"[bold]Timeline:[/bold] {proposal.timeline}",
        f"[bold]Team:[/bold] {', '.join(proposal.required_roles)}",
        f"[bold]Risk:[/bold] {proposal.risk_level.value}",
        "",
        proposal.description,
        "",
        "[bold]Deliverables:[/bold]",
        *[f"  - {d}" for d in proposal.deliverables],
        "",
        "[bold]Success metrics:[/bold]",
        *[f"  - {m}" for m in proposal.success_metrics],
    ]
    if proposal.prediction:
        lines += [
            "",
            f"[bold]Expected impact:[/bold] {proposal.prediction.expected_impact} "
            f"(confidence {proposal.prediction.confidence:.0%})",
            f"[bold]Expected ROI:[/bold] {proposal.prediction.expected_roi:.1f}x",
            proposal.prediction.reasoning,
        ]

    print_panel(proposal.title, "\n".join(lines), style="blue")


@app.command(name="approve")
def approve_proposal(
    proposal_id: str = typer.Argument(..., help="ID of the proposal to fund"),
) -> None:
    """Reserve treasury budget for a proposal."""
    ctx = ensure_context()

    try:
        reservation = ctx.orchestrator.approve_proposal(proposal_id)
    except KeyError:
        print_error(f"Proposal {proposal_id} not found.")
        raise typer.Exit(1)
    except TreasuryError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(
        f"Reserved {format_currency(reservation.amount)} for {proposal_id} "
        f"(reservation {reservation.id})"
    )
