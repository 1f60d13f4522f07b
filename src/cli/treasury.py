"""Treasury CLI commands for the Becoin ledger."""

import math

import typer

from ceo_discovery.errors import TreasuryError
from ceo_discovery.models import ReservationStatus, TransactionKind, TreasurySnapshot

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
    name="treasury",
    help="Inspect and operate the Becoin treasury",
    no_args_is_help=True,
)


def _format_runway(hours: float) -> str:
    if math.isinf(hours):
        return "unlimited"
    return f"{hours:,.2f} hours"


def _print_snapshot(snapshot: TreasurySnapshot) -> None:
    content = (
        f"Balance:    {format_currency(snapshot.balance)}\n"
        f"Reserved:   {format_currency(snapshot.reserved)}\n"
        f"Available:  {format_currency(snapshot.available_balance)}\n\n"
        f"Start capital: {format_currency(snapshot.start_capital)}\n"
        f"Burn rate:     {format_currency(snapshot.burn_rate)} / hour\n"
        f"Runway:        {_format_runway(snapshot.runway)}"
    )
    print_panel("Becoin Treasury", content, style="blue")


@app.command(name="status")
def treasury_status() -> None:
    """Show balance, reservations and runway."""
    ctx = ensure_context()
    _print_snapshot(ctx.ledger.get_snapshot())

    open_reservations = ctx.ledger.list_reservations(status=ReservationStatus.RESERVED)
    if open_reservations:
        table = create_table("Open Reservations")
        table.add_column("ID", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Reason", style="green")
        table.add_column("Proposal", style="dim")
        for r in open_reservations:
            table.add_row(r.id, format_currency(r.amount), r.reason, r.proposal_id or "-")
        print_table(table)


@app.command(name="reserve")
def reserve(
    amount: float = typer.Argument(..., help="Becoins to reserve"),
    reason: str = typer.Option(..., "--reason", "-r", help="Purpose of the reservation"),
    proposal_id: str | None = typer.Option(
        None, "--proposal", "-p", help="Proposal the reservation funds"
    ),
) -> None:
    """Earmark part of the available balance."""
    ctx = ensure_context()
    try:
        reservation = ctx.ledger.reserve_budget(amount, reason, proposal_id=proposal_id)
    except TreasuryError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Reserved {format_currency(amount)} (reservation {reservation.id})")


@app.command(name="commit")
def commit(
    reservation_id: str = typer.Argument(..., help="Reservation to commit"),
    actual_cost: float | None = typer.Option(
        None, "--actual-cost", "-c", help="Amount actually spent (default: reserved amount)"
    ),
) -> None:
    """Deduct a reservation from the balance."""
    ctx = ensure_context()
    try:
        snapshot = ctx.ledger.commit_reservation(reservation_id, actual_cost)
    except TreasuryError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Committed reservation {reservation_id}")
    _print_snapshot(snapshot)


@app.command(name="cancel")
def cancel(
    reservation_id: str = typer.Argument(..., help="Reservation to release"),
) -> None:
    """Release a reservation without spending it."""
    ctx = ensure_context()
    try:
        ctx.ledger.cancel_reservation(reservation_id)
    except TreasuryError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Cancelled reservation {reservation_id}")


@app.command(name="revenue")
def revenue(
    amount: float = typer.Argument(..., help="Becoins received"),
    description: str = typer.Option(
        ..., "--description", "-d", help="Source of the revenue"
    ),
) -> None:
    """Record income."""
    ctx = ensure_context()
    try:
        snapshot = ctx.ledger.record_revenue(amount, description)
    except TreasuryError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(
        f"Recorded {format_currency(amount)}; balance {format_currency(snapshot.balance)}"
    )


@app.command(name="history")
def history(
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        help="Maximum number of transactions to show",
    ),
) -> None:
    """List ledger transactions, oldest first."""
    ctx = ensure_context()
    transactions = ctx.ledger.list_transactions(limit=limit)

    if not transactions:
        console.print("[dim]No transactions recorded.[/dim]")
        return

    table = create_table("Treasury Transactions")
    table.add_column("ID", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Amount", justify="right")
    table.add_column("Description", style="green")
    table.add_column("When", style="dim")

    for t in transactions:
        kind = "[green]revenue[/green]" if t.kind == TransactionKind.REVENUE else "[red]expense[/red]"
        table.add_row(t.id, kind, format_currency(t.amount), t.description, t.created_at)
    print_table(table)
