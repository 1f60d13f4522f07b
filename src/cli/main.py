"""CEO discovery CLI entry point."""

import typer
from rich.console import Console

from . import __version__
from .context import configure_logging
from .discovery import app as discovery_app
from .learning import app as learning_app
from .treasury import app as treasury_app

app = typer.Typer(
    name="ceo",
    help="CEO discovery - find workflow pain points and fund their fixes",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"ceo version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (overrides CEO_DISCOVERY_LOG_LEVEL)",
    ),
) -> None:
    """CEO discovery - find workflow pain points and fund their fixes."""
    if log_level:
        configure_logging(log_level)


app.add_typer(discovery_app, name="discover")
app.add_typer(treasury_app, name="treasury")
app.add_typer(learning_app, name="learn")


if __name__ == "__main__":
    app()
