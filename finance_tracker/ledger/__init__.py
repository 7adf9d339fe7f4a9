"""
Ledger package.

The engine and the pure functions it is built on.
"""

from finance_tracker.errors import (
    InsufficientBalanceError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    TransferFailedError,
    ValidationError,
)
from finance_tracker.ledger.analytics import (
    CategorySlice,
    InvestmentSummary,
    MonthlyTrendPoint,
)
from finance_tracker.ledger.balances import balance_deltas, entry_effect
from finance_tracker.ledger.engine import LedgerEngine

__all__ = [
    "LedgerEngine",
    "balance_deltas",
    "entry_effect",
    "CategorySlice",
    "InvestmentSummary",
    "MonthlyTrendPoint",
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "InsufficientBalanceError",
    "TransferFailedError",
    "PersistenceError",
]
