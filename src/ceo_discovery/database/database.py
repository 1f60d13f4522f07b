"""
Core database connection and schema management for the CEO discovery store.

The database consolidates:
- treasury_* tables (balance, reservations, transactions)
- discovery_sessions (one JSON payload per completed session)
- feedback_outcomes / training_examples (delivered project outcomes)
- models / training_runs (versioned estimator weights)
- improvement_actions / algorithm_adjustments (scheduler history)

Location: .ceo/ceo.db (project root)
Fallback: ~/.ceo/ceo.db (user-level)
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"


def get_default_db_path(project_root: Path | None = None) -> Path:
    """Get the default database path.

    Path resolution:
    1. If project_root provided: .ceo/ceo.db (project-local)
    2. Otherwise: ~/.ceo/ceo.db (user-level fallback)
    """
    if project_root:
        return Path(project_root) / ".ceo" / "ceo.db"
    else:
        return Path.home() / ".ceo" / "ceo.db"


SCHEMA = """
-- Schema metadata
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- Treasury state (single row, id = 1)
CREATE TABLE IF NOT EXISTS treasury_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    balance REAL NOT NULL,
    start_capital REAL NOT NULL,
    burn_rate REAL NOT NULL,
    updated_at TEXT NOT NULL
);

-- Treasury reservations (reserved -> committed | cancelled)
CREATE TABLE IF NOT EXISTS treasury_reservations (
    id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    reason TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'reserved',
    proposal_id TEXT,
    created_at TEXT NOT NULL,
    committed_at TEXT,
    actual_cost REAL
);

CREATE INDEX IF NOT EXISTS idx_reservations_status ON treasury_reservations(status);
CREATE INDEX IF NOT EXISTS idx_reservations_proposal ON treasury_reservations(proposal_id);

-- Treasury transactions (append-only)
CREATE TABLE IF NOT EXISTS treasury_transactions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    kind TEXT NOT NULL,
    amount REAL NOT NULL,
    description TEXT NOT NULL,
    reservation_id TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (reservation_id) REFERENCES treasury_reservations(id)
);

-- Discovery sessions
CREATE TABLE IF NOT EXISTS discovery_sessions (
    id TEXT PRIMARY KEY,
    start_time TEXT NOT NULL,
    status TEXT NOT NULL,
    proposal_count INTEGER DEFAULT 0,
    payload TEXT NOT NULL,
    saved_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_start ON discovery_sessions(start_time);

-- Delivered project outcomes (one per proposal, immutable)
CREATE TABLE IF NOT EXISTS feedback_outcomes (
    proposal_id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    completed_at TEXT NOT NULL,
    pain_category TEXT,
    actual_overall_impact REAL NOT NULL,
    prediction_accuracy REAL NOT NULL,
    user_satisfaction REAL NOT NULL,
    actual_roi REAL NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_outcomes_completed ON feedback_outcomes(completed_at);

-- Training examples derived from outcomes
CREATE TABLE IF NOT EXISTS training_examples (
    proposal_id TEXT PRIMARY KEY,
    learning_weight REAL NOT NULL,
    consumed BOOLEAN DEFAULT 0,
    created_at TEXT NOT NULL,
    payload TEXT NOT NULL,
    FOREIGN KEY (proposal_id) REFERENCES feedback_outcomes(proposal_id)
);

CREATE INDEX IF NOT EXISTS idx_examples_consumed ON training_examples(consumed);

-- Versioned estimator models
CREATE TABLE IF NOT EXISTS models (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    version INTEGER NOT NULL,
    trained_at TEXT NOT NULL,
    training_size INTEGER NOT NULL,
    accuracy REAL NOT NULL,
    weights TEXT NOT NULL,
    metadata TEXT,
    UNIQUE(kind, version)
);

-- Training run history (drives scheduled retraining)
CREATE TABLE IF NOT EXISTS training_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    model_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    started_at TEXT NOT NULL,
    epochs INTEGER NOT NULL,
    example_count INTEGER NOT NULL,
    final_accuracy REAL NOT NULL,
    improvement REAL NOT NULL,
    training_time_ms REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_training_runs_started ON training_runs(started_at);

-- Executed improvement actions
CREATE TABLE IF NOT EXISTS improvement_actions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL,
    action_type TEXT NOT NULL,
    reason TEXT NOT NULL,
    expected_improvement REAL NOT NULL,
    actual_improvement REAL,
    succeeded BOOLEAN NOT NULL,
    error TEXT,
    executed_at TEXT NOT NULL
);

-- Algorithm adjustments recorded for underperforming categories
CREATE TABLE IF NOT EXISTS algorithm_adjustments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pain_category TEXT NOT NULL,
    average_satisfaction REAL NOT NULL,
    average_impact REAL NOT NULL,
    occurrences INTEGER NOT NULL,
    recommendations TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class CeoDatabase:
    """Embedded store for ledger, sessions, feedback and models."""

    def __init__(
        self, db_path: Path | str | None = None, project_root: Path | None = None
    ):
        """Initialize database connection.

        Args:
            db_path: Explicit path to database file.
            project_root: Project root for project-local database.
                         Ignored if db_path is provided.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = get_default_db_path(project_root)

        self._ensure_db_exists()

    def _ensure_db_exists(self) -> None:
        """Create database and schema if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # executescript manages its own transaction, so run it in autocommit
        conn = self._connect()
        try:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR REPLACE INTO schema_info (key, value) VALUES (?, ?)",
                ("schema_version", SCHEMA_VERSION),
            )
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")  # Better concurrent access
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections.

        Statements run in one deferred transaction that commits on success
        and rolls back on error.

        Yields:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read-check-write sequences.

        Opens the transaction with BEGIN IMMEDIATE so the write lock is held
        from the first read. Concurrent writers wait (up to the busy timeout)
        instead of acting on stale reads.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Execute SQL and return all results."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def execute_one(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        """Execute SQL and return first result."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchone()

    def execute_insert(self, sql: str, params: tuple = ()) -> int:
        """Execute INSERT and return last row ID."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.lastrowid or 0

    def execute_update(self, sql: str, params: tuple = ()) -> int:
        """Execute UPDATE/DELETE and return rows affected."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.rowcount

    def get_schema_version(self) -> str:
        """Get current schema version."""
        result = self.execute_one(
            "SELECT value FROM schema_info WHERE key = ?", ("schema_version",)
        )
        return result["value"] if result else "unknown"

    def get_stats(self) -> dict:
        """Get database statistics for diagnostics."""
        stats = {
            "schema_version": self.get_schema_version(),
            "database_path": str(self.db_path),
            "database_exists": self.db_path.exists(),
        }

        if not self.db_path.exists():
            return stats

        try:
            tables = [
                "treasury_reservations",
                "treasury_transactions",
                "discovery_sessions",
                "feedback_outcomes",
                "training_examples",
                "models",
                "improvement_actions",
            ]

            for table in tables:
                result = self.execute_one(f"SELECT COUNT(*) as cnt FROM {table}")
                stats[f"{table}_count"] = result["cnt"] if result else 0

            stats["database_size_bytes"] = self.db_path.stat().st_size

        except sqlite3.OperationalError as e:
            stats["error"] = str(e)

        return stats
