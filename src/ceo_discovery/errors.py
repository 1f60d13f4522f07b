"""Exceptions raised when an operation would break a ledger or store invariant."""


class TreasuryError(Exception):
    """Base class for rejected ledger operations."""

    pass


class InvalidAmountError(TreasuryError):
    """Amount is zero or negative."""

    pass


class InsufficientFundsError(TreasuryError):
    """Amount exceeds what the treasury can cover."""

    pass


class AllocationLimitError(TreasuryError):
    """Amount exceeds the per-allocation share of the available balance."""

    pass


class ReservationNotFoundError(TreasuryError):
    """Reservation does not exist or was already committed or cancelled."""

    pass


class FeedbackError(Exception):
    """Outcome cannot be recorded (for example, one already exists)."""

    pass
