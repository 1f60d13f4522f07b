"""
Becoin treasury ledger.

The ledger owns the balance, the reservation list and the append-only
transaction log. Every mutation runs inside a single ``BEGIN IMMEDIATE``
transaction, so the read-check-write sequence holds the database write lock
throughout and concurrent callers (threads or processes sharing the file) are
applied one at a time.

Invariant: ``available = balance - sum(reserved amounts) >= 0``.
"""

import logging
import math
import sqlite3
import uuid

from ..config import TreasuryConfig
from ..database import CeoDatabase
from ..errors import (
    AllocationLimitError,
    InsufficientFundsError,
    InvalidAmountError,
    ReservationNotFoundError,
)
from ..models import (
    MAX_ALLOCATION_RATIO,
    Reservation,
    ReservationStatus,
    Transaction,
    TransactionKind,
    TreasurySnapshot,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)


def calculate_runway(balance: float, burn_rate: float) -> float:
    """Hours of runway at the current burn rate, rounded to two decimals."""
    if not burn_rate or burn_rate <= 0:
        return math.inf
    return round(balance / burn_rate, 2)


def _format_amount(amount: float) -> str:
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def _check_amount(amount: float, message: str) -> None:
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError(message)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class TreasuryLedger:
    """Single-writer accounting record backed by the embedded store."""

    def __init__(self, db: CeoDatabase, config: TreasuryConfig | None = None):
        """
        Initialize the ledger.

        Args:
            db: Database holding the treasury tables
            config: Bootstrap values used the first time the ledger is read
        """
        self.db = db
        self.config = config or TreasuryConfig()

    # =========================================================================
    # Internal helpers (caller holds a transaction)
    # =========================================================================

    def _load_state(self, conn: sqlite3.Connection) -> sqlite3.Row:
        row = conn.execute("SELECT * FROM treasury_state WHERE id = 1").fetchone()
        if row is None:
            conn.execute(
                """
                INSERT INTO treasury_state (id, balance, start_capital, burn_rate, updated_at)
                VALUES (1, ?, ?, ?, ?)
                """,
                (
                    self.config.start_capital,
                    self.config.start_capital,
                    self.config.burn_rate,
                    to_iso(utc_now()),
                ),
            )
            logger.info(
                f"Bootstrapped treasury with {_format_amount(self.config.start_capital)} Becoins"
            )
            row = conn.execute("SELECT * FROM treasury_state WHERE id = 1").fetchone()
        return row

    def _reserved_total(self, conn: sqlite3.Connection) -> float:
        row = conn.execute(
            "SELECT COALESCE(SUM(amount), 0) AS total FROM treasury_reservations WHERE status = ?",
            (ReservationStatus.RESERVED.value,),
        ).fetchone()
        return float(row["total"])

    def _snapshot(self, conn: sqlite3.Connection) -> TreasurySnapshot:
        state = self._load_state(conn)
        reserved = self._reserved_total(conn)
        balance = float(state["balance"])
        return TreasurySnapshot(
            balance=balance,
            start_capital=float(state["start_capital"]),
            burn_rate=float(state["burn_rate"]),
            runway=calculate_runway(balance, float(state["burn_rate"])),
            reserved=reserved,
            available_balance=balance - reserved,
        )

    def _open_reservation(
        self, conn: sqlite3.Connection, reservation_id: str
    ) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM treasury_reservations WHERE id = ? AND status = ?",
            (reservation_id, ReservationStatus.RESERVED.value),
        ).fetchone()
        if row is None:
            raise ReservationNotFoundError(
                f"Reservation {reservation_id} not found or already processed"
            )
        return row

    def _set_balance(self, conn: sqlite3.Connection, balance: float) -> None:
        conn.execute(
            "UPDATE treasury_state SET balance = ?, updated_at = ? WHERE id = 1",
            (balance, to_iso(utc_now())),
        )

    def _append_transaction(
        self,
        conn: sqlite3.Connection,
        kind: TransactionKind,
        amount: float,
        description: str,
        reservation_id: str | None = None,
    ) -> None:
        conn.execute(
            """
            INSERT INTO treasury_transactions
                (id, kind, amount, description, reservation_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                _new_id(),
                kind.value,
                amount,
                description,
                reservation_id,
                to_iso(utc_now()),
            ),
        )

    # =========================================================================
    # Public operations
    # =========================================================================

    def get_snapshot(self) -> TreasurySnapshot:
        """Return the current balance view, bootstrapping defaults on first use."""
        with self.db.transaction() as conn:
            return self._snapshot(conn)

    def reserve_budget(
        self, amount: float, reason: str, proposal_id: str | None = None
    ) -> Reservation:
        """
        Earmark part of the available balance.

        Args:
            amount: Becoins to reserve
            reason: Free-text purpose, reused as the expense description on commit
            proposal_id: Proposal the reservation funds, if any

        Returns:
            The new reservation in ``reserved`` status

        Raises:
            InvalidAmountError: amount <= 0 or not a finite number
            InsufficientFundsError: amount exceeds the available balance
            AllocationLimitError: amount exceeds 20% of the available balance
        """
        _check_amount(amount, "Reservation amount must be greater than zero")

        with self.db.transaction() as conn:
            snapshot = self._snapshot(conn)
            available = snapshot.available_balance

            if amount > available:
                raise InsufficientFundsError(
                    "Insufficient available balance in Becoin treasury"
                )

            max_allocation = available * MAX_ALLOCATION_RATIO
            if amount > max_allocation:
                raise AllocationLimitError(
                    f"Requested amount {_format_amount(amount)} exceeds 20% allocation "
                    f"({max_allocation:.2f})"
                )

            reservation = Reservation(
                id=_new_id(),
                amount=amount,
                reason=reason,
                status=ReservationStatus.RESERVED,
                created_at=to_iso(utc_now()),
                proposal_id=proposal_id,
            )
            conn.execute(
                """
                INSERT INTO treasury_reservations
                    (id, amount, reason, status, proposal_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    reservation.id,
                    reservation.amount,
                    reservation.reason,
                    reservation.status.value,
                    reservation.proposal_id,
                    reservation.created_at,
                ),
            )

        logger.info(
            f"Reserved {_format_amount(amount)} Becoins for {reason} "
            f"(reservation {reservation.id})"
        )
        return reservation

    def commit_reservation(
        self, reservation_id: str, actual_cost: float | None = None
    ) -> TreasurySnapshot:
        """
        Turn a reservation into a balance deduction.

        Args:
            reservation_id: Reservation in ``reserved`` status
            actual_cost: Amount actually spent (defaults to the reserved amount)

        Returns:
            Snapshot after the deduction

        Raises:
            InvalidAmountError: actual_cost is negative or not a finite number
            ReservationNotFoundError: unknown id or already committed/cancelled
            InsufficientFundsError: the remaining balance would no longer cover
                the other open reservations
        """
        if actual_cost is not None and not (
            math.isfinite(actual_cost) and actual_cost >= 0
        ):
            raise InvalidAmountError("Actual cost must be zero or greater")

        with self.db.transaction() as conn:
            row = self._open_reservation(conn, reservation_id)
            state = self._load_state(conn)
            balance = float(state["balance"])
            amount = float(row["amount"])

            cost = amount if actual_cost is None else actual_cost
            still_reserved = self._reserved_total(conn) - amount
            if balance - cost < still_reserved:
                raise InsufficientFundsError(
                    "Insufficient treasury balance to commit reservation"
                )

            conn.execute(
                """
                UPDATE treasury_reservations
                SET status = ?, committed_at = ?, actual_cost = ?
                WHERE id = ?
                """,
                (
                    ReservationStatus.COMMITTED.value,
                    to_iso(utc_now()),
                    cost,
                    reservation_id,
                ),
            )
            self._set_balance(conn, balance - cost)
            self._append_transaction(
                conn,
                TransactionKind.EXPENSE,
                cost,
                row["reason"],
                reservation_id=reservation_id,
            )
            snapshot = self._snapshot(conn)

        logger.info(
            f"Committed reservation {reservation_id} for {_format_amount(cost)} Becoins "
            f"(remaining balance {_format_amount(snapshot.balance)})"
        )
        return snapshot

    def cancel_reservation(self, reservation_id: str) -> TreasurySnapshot:
        """
        Release a reservation without spending it.

        Raises:
            ReservationNotFoundError: unknown id or already committed/cancelled
        """
        with self.db.transaction() as conn:
            self._open_reservation(conn, reservation_id)
            conn.execute(
                """
                UPDATE treasury_reservations
                SET status = ?, committed_at = ?, actual_cost = 0
                WHERE id = ?
                """,
                (ReservationStatus.CANCELLED.value, to_iso(utc_now()), reservation_id),
            )
            snapshot = self._snapshot(conn)

        logger.info(f"Cancelled reservation {reservation_id}")
        return snapshot

    def record_revenue(self, amount: float, description: str) -> TreasurySnapshot:
        """
        Add income to the balance.

        Raises:
            InvalidAmountError: amount <= 0 or not a finite number
        """
        _check_amount(amount, "Revenue amount must be greater than zero")

        with self.db.transaction() as conn:
            state = self._load_state(conn)
            self._set_balance(conn, float(state["balance"]) + amount)
            self._append_transaction(conn, TransactionKind.REVENUE, amount, description)
            snapshot = self._snapshot(conn)

        logger.info(f"Recorded revenue of {_format_amount(amount)} Becoins ({description})")
        return snapshot

    # =========================================================================
    # Queries
    # =========================================================================

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        """Get a reservation by id regardless of status."""
        row = self.db.execute_one(
            "SELECT * FROM treasury_reservations WHERE id = ?", (reservation_id,)
        )
        return Reservation.from_row(row) if row else None

    def list_reservations(
        self, status: ReservationStatus | str | None = None
    ) -> list[Reservation]:
        """List reservations, oldest first, optionally filtered by status."""
        if status:
            status_value = status.value if isinstance(status, ReservationStatus) else status
            rows = self.db.execute(
                "SELECT * FROM treasury_reservations WHERE status = ? ORDER BY created_at, rowid",
                (status_value,),
            )
        else:
            rows = self.db.execute(
                "SELECT * FROM treasury_reservations ORDER BY created_at, rowid"
            )
        return [Reservation.from_row(row) for row in rows]

    def find_reservation_for_proposal(self, proposal_id: str) -> Reservation | None:
        """Get the open reservation funding a proposal, if any."""
        row = self.db.execute_one(
            """
            SELECT * FROM treasury_reservations
            WHERE proposal_id = ? AND status = ?
            ORDER BY created_at DESC LIMIT 1
            """,
            (proposal_id, ReservationStatus.RESERVED.value),
        )
        return Reservation.from_row(row) if row else None

    def list_transactions(self, limit: int | None = None) -> list[Transaction]:
        """List transactions in the order they were appended."""
        sql = "SELECT * FROM treasury_transactions ORDER BY seq"
        params: tuple = ()
        if limit is not None:
            sql = (
                "SELECT * FROM (SELECT * FROM treasury_transactions ORDER BY seq DESC LIMIT ?) "
                "ORDER BY seq"
            )
            params = (limit,)
        return [Transaction.from_row(row) for row in self.db.execute(sql, params)]
