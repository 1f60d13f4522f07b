"""
Becoin treasury: balance, reservations and transactions.
"""

from .ledger import TreasuryLedger, calculate_runway

__all__ = ["TreasuryLedger", "calculate_runway"]
