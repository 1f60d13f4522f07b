"""Shared pytest fixtures for ceo-discovery tests.

Every fixture works against a fresh SQLite file under tmp_path, so tests
never touch a real project's .ceo directory.
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from ceo_discovery.database import CeoDatabase
from ceo_discovery.discovery import SessionStore
from ceo_discovery.learning import FeedbackCollector, WeightTrainer
from ceo_discovery.treasury import TreasuryLedger

from tests.helpers import FROZEN_NOW

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Directory for behavioral log fixtures."""
    path = tmp_path / "logs"
    path.mkdir()
    return path


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at FROZEN_NOW."""
    return lambda: FROZEN_NOW


@pytest.fixture
def db(tmp_path: Path) -> CeoDatabase:
    """Fresh database in a temporary directory."""
    return CeoDatabase(db_path=tmp_path / ".ceo" / "ceo.db")


@pytest.fixture
def ledger(db: CeoDatabase) -> TreasuryLedger:
    """Ledger with default bootstrap values (100000 balance, 250/hour burn)."""
    return TreasuryLedger(db)


@pytest.fixture
def sessions(db: CeoDatabase) -> SessionStore:
    return SessionStore(db)


@pytest.fixture
def collector(db: CeoDatabase, sessions: SessionStore, ledger: TreasuryLedger, clock):
    """Feedback collector wired to the ledger, stamping outcomes at FROZEN_NOW."""
    return FeedbackCollector(db, sessions, ledger=ledger, clock=clock)


@pytest.fixture
def trainer(db: CeoDatabase, clock) -> WeightTrainer:
    return WeightTrainer(db, clock=clock)
