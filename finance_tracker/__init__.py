"""
Finance Tracker - Ledger & Formatting Engine

The core of a personal finance tracker: spending entries, savings
accounts and investments kept consistent with each other, plus
locale-aware currency and number formatting for display.

DESIGN PRINCIPLES:
1. An entry never exists without its balance effect
2. Fail early, fail visibly
3. No silent corrections to balances
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"

from finance_tracker.formatting import (
    CURRENCIES,
    ChartRange,
    CurrencyConfig,
    CurrencyFormatter,
    NumberAbbreviator,
)
from finance_tracker.ledger import (
    InsufficientBalanceError,
    LedgerEngine,
    LedgerError,
    NotFoundError,
    PersistenceError,
    TransferFailedError,
    ValidationError,
)
from finance_tracker.models import (
    AppSettings,
    EntryType,
    Investment,
    SavingsAccount,
    SpendingEntry,
)
from finance_tracker.settings_store import SettingsStore, normalize_settings

__all__ = [
    # Formatting
    "CURRENCIES",
    "ChartRange",
    "CurrencyConfig",
    "CurrencyFormatter",
    "NumberAbbreviator",
    # Ledger
    "InsufficientBalanceError",
    "LedgerEngine",
    "LedgerError",
    "NotFoundError",
    "PersistenceError",
    "TransferFailedError",
    "ValidationError",
    # Models
    "AppSettings",
    "EntryType",
    "Investment",
    "SavingsAccount",
    "SpendingEntry",
    # Settings
    "SettingsStore",
    "normalize_settings",
]
