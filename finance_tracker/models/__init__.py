"""
Data Models Package

This package contains all Pydantic models used by the finance tracker.
Everything written to storage must conform to these schemas.
"""

from finance_tracker.models.finance import (
    DEFAULT_CATEGORY_COLOR,
    AppSettings,
    AppSettingsUpdate,
    EntryType,
    Investment,
    InvestmentCreate,
    InvestmentUpdate,
    LedgerModel,
    SavingsAccount,
    SavingsAccountCreate,
    SavingsAccountUpdate,
    SpendingEntry,
    SpendingEntryCreate,
    SpendingEntryUpdate,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORY_COLOR",
    "AppSettings",
    "AppSettingsUpdate",
    "EntryType",
    "Investment",
    "InvestmentCreate",
    "InvestmentUpdate",
    "LedgerModel",
    "SavingsAccount",
    "SavingsAccountCreate",
    "SavingsAccountUpdate",
    "SpendingEntry",
    "SpendingEntryCreate",
    "SpendingEntryUpdate",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
