"""
Core Data Models for Finance Tracker

These models define the strict schemas for everything the ledger stores.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the same camelCase JSON layout the dashboard has always
   written to storage (accountId, createdAt, ...)

DESIGN DECISION: Money is Decimal, never float. Balances are compared
against amounts on every mutation and float drift would eventually turn a
legitimate expense into an "insufficient balance" failure.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from finance_tracker.formatting.currency import CURRENCIES


# Field names below shadow the type name `date`
CalendarDate = date


DEFAULT_CATEGORY_COLOR = "#6b7280"

_HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$"


def new_id() -> str:
    """Generate a new opaque entity id."""
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerModel(BaseModel):
    """Shared config: strip whitespace, camelCase on disk, snake_case in code."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_storage(self) -> dict:
        """Dump to the JSON-compatible dict written to storage."""
        return self.model_dump(mode="json", by_alias=True)


class LedgerInput(LedgerModel):
    """Caller-supplied payloads. Unknown keys are rejected, not ignored."""
    model_config = ConfigDict(extra="forbid")


# =============================================================================
# ENUMS
# =============================================================================

class EntryType(str, Enum):
    """
    Kind of spending entry.

    EXPENSE consumes money from one account.
    TRANSFER moves money between two accounts and is NOT spending.
    """
    EXPENSE = "expense"
    TRANSFER = "transfer"


# =============================================================================
# SPENDING ENTRIES
# =============================================================================

class SpendingEntry(LedgerModel):
    """
    A recorded expense or transfer.

    CRITICAL: A stored entry always has its balance effect applied.
    The ledger engine is the only code that creates these.
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique entry ID"
    )
    date: CalendarDate = Field(
        ...,
        description="Date the money moved"
    )
    amount: Annotated[
        Decimal,
        Field(gt=0, description="Amount moved (always positive)")
    ]
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Spending category"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free text note"
    )
    type: EntryType = Field(
        default=EntryType.EXPENSE,
        description="Expense or transfer"
    )
    account_id: Optional[str] = Field(
        default=None,
        description="Account the money leaves"
    )
    transfer_to_account_id: Optional[str] = Field(
        default=None,
        description="Destination account (transfers only)"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('account_id', 'transfer_to_account_id', 'description')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Forms send '' for an unselected account."""
        return v or None

    @model_validator(mode='after')
    def validate_accounts(self) -> 'SpendingEntry':
        """Account references required by each entry type."""
        if self.type == EntryType.EXPENSE:
            if not self.account_id:
                raise ValueError("Expense entries must name the account to deduct from")
            if self.transfer_to_account_id:
                raise ValueError("Expense entries cannot have a destination account")
        elif self.type == EntryType.TRANSFER:
            if not self.account_id or not self.transfer_to_account_id:
                raise ValueError("Transfers need both a source and a destination account")
            if self.account_id == self.transfer_to_account_id:
                raise ValueError("Source and destination accounts must be different")
        return self


class SpendingEntryCreate(LedgerInput):
    """Caller-supplied fields for a new entry (id and timestamps are assigned)."""

    date: CalendarDate
    amount: Decimal
    category: str
    description: Optional[str] = None
    type: EntryType = EntryType.EXPENSE
    account_id: Optional[str] = None
    transfer_to_account_id: Optional[str] = None


class SpendingEntryUpdate(LedgerInput):
    """Partial update; only fields explicitly set are merged."""

    date: Optional[CalendarDate] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = None
    type: Optional[EntryType] = None
    account_id: Optional[str] = None
    transfer_to_account_id: Optional[str] = None


# =============================================================================
# SAVINGS ACCOUNTS
# =============================================================================

class SavingsAccount(LedgerModel):
    """A bank account whose balance the ledger keeps in step with entries."""

    id: str = Field(default_factory=new_id, min_length=1)
    bank_name: str = Field(..., min_length=1, max_length=200)
    account_name: str = Field(..., min_length=1, max_length=200)
    balance: Annotated[
        Decimal,
        Field(ge=0, description="Current balance (never negative)")
    ]
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SavingsAccountCreate(LedgerInput):
    bank_name: str
    account_name: str
    balance: Decimal = Decimal("0")


class SavingsAccountUpdate(LedgerInput):
    """
    Partial account update.

    NOTE: balance here is an authoritative overwrite, not a delta.
    """
    bank_name: Optional[str] = None
    account_name: Optional[str] = None
    balance: Optional[Decimal] = None


# =============================================================================
# INVESTMENTS
# =============================================================================

class Investment(LedgerModel):
    """An investment contribution. No link to account balances."""

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Annotated[Decimal, Field(gt=0)]
    date: CalendarDate
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class InvestmentCreate(LedgerInput):
    name: str
    amount: Decimal
    date: CalendarDate
    notes: Optional[str] = None


class InvestmentUpdate(LedgerInput):
    name: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[CalendarDate] = None
    notes: Optional[str] = None


# =============================================================================
# DISPLAY SETTINGS
# =============================================================================

class AppSettings(LedgerModel):
    """
    User display preferences.

    Invariant: every category has a colour. Missing colours are filled
    with DEFAULT_CATEGORY_COLOR when the model is built.
    """

    monthly_target: Annotated[
        Decimal,
        Field(gt=0, description="Monthly spending target")
    ]
    categories: list[str] = Field(
        default_factory=list,
        description="Ordered, unique spending categories"
    )
    currency: str = Field(
        default="USD",
        description="Currency code used for display"
    )
    dark_mode: bool = False
    app_title: str = Field(..., min_length=1, max_length=200)
    logo_url: Optional[str] = None
    category_colors: dict[str, Annotated[str, Field(pattern=_HEX_COLOR)]] = Field(
        default_factory=dict,
        description="Category name -> hex colour"
    )

    @field_validator('categories')
    @classmethod
    def validate_categories(cls, v: list[str]) -> list[str]:
        cleaned = [c.strip() for c in v]
        if any(not c for c in cleaned):
            raise ValueError("Category names cannot be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Category names must be unique")
        return cleaned

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        code = v.upper()
        if code not in CURRENCIES:
            raise ValueError(f"Unsupported currency: {v}")
        return code

    @model_validator(mode='after')
    def fill_category_colors(self) -> 'AppSettings':
        for category in self.categories:
            if category not in self.category_colors:
                self.category_colors[category] = DEFAULT_CATEGORY_COLOR
        return self


class AppSettingsUpdate(LedgerInput):
    """Partial settings update; only fields explicitly set are merged."""

    monthly_target: Optional[Decimal] = None
    categories: Optional[list[str]] = None
    currency: Optional[str] = None
    dark_mode: Optional[bool] = None
    app_title: Optional[str] = None
    logo_url: Optional[str] = None
    category_colors: Optional[dict[str, str]] = None
