"""Component wiring shared by the CLI commands."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer

from ceo_discovery.config import (
    DATA_DIR_NAME,
    ConfigurationError,
    DiscoveryConfig,
    OptimizationConfig,
    TreasuryConfig,
    get_data_dir,
    get_source_paths,
    load_config,
)
from ceo_discovery.database import CeoDatabase
from ceo_discovery.discovery import DiscoveryOrchestrator, SessionStore
from ceo_discovery.learning import (
    AnalyticsReporter,
    FeedbackCollector,
    ImprovementScheduler,
    WeightTrainer,
)
from ceo_discovery.treasury import TreasuryLedger

from .console import print_error

DB_FILE_NAME = "ceo.db"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once. Later calls are no-ops."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@dataclass
class CeoContext:
    config: dict[str, Any]
    db: CeoDatabase
    ledger: TreasuryLedger
    sessions: SessionStore
    orchestrator: DiscoveryOrchestrator
    feedback: FeedbackCollector
    scheduler: ImprovementScheduler
    analytics: AnalyticsReporter


def get_project_root() -> Path:
    """Find project root by looking for a .ceo directory, else the cwd."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        if (path / DATA_DIR_NAME).is_dir():
            return path
    return cwd


def build_context(project_root: Path | None = None) -> CeoContext:
    """Load configuration and construct every component against one database."""
    root = project_root or get_project_root()
    config = load_config(project_root=root)

    db = CeoDatabase(db_path=get_data_dir(config) / DB_FILE_NAME)
    ledger = TreasuryLedger(db, TreasuryConfig.from_config(config))
    sessions = SessionStore(db)
    orchestrator = DiscoveryOrchestrator(
        ledger=ledger,
        sessions=sessions,
        sources=get_source_paths(config),
        config=DiscoveryConfig.from_config(config),
    )
    feedback = FeedbackCollector(db, sessions, ledger=ledger)
    scheduler = ImprovementScheduler(
        feedback, WeightTrainer(db), db, OptimizationConfig.from_config(config)
    )
    return CeoContext(
        config=config,
        db=db,
        ledger=ledger,
        sessions=sessions,
        orchestrator=orchestrator,
        feedback=feedback,
        scheduler=scheduler,
        analytics=AnalyticsReporter(feedback),
    )


def ensure_context() -> CeoContext:
    """build_context() for commands: configuration errors exit with status 1."""
    try:
        ctx = build_context()
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    configure_logging(ctx.config["logging"]["level"])
    return ctx
