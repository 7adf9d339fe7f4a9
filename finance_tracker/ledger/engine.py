"""
Ledger Engine

Owns spending entries, savings accounts and investments, and keeps
account balances consistent with entries.

INVARIANTS:
1. A stored entry always has its balance effect applied
2. No account balance is ever negative
3. Every public operation either fully applies or raises with nothing
   changed in storage

DESIGN DECISION: The engine is an explicit instance with injected
storage, not a process-wide singleton. Tests hand it an InMemoryStorage;
the application hands it a JsonFileStorage.

CONCURRENCY: Operations are synchronous and run to completion. One
re-entrant lock around every public method keeps that true when the
engine is shared between threads.

PERSISTENCE: Entries and accounts live under separate keys. A mutation
that touches both writes accounts first, then entries. If the second write
fails, the first key is restored from its snapshot before the error is
raised.
"""

import json
import threading
from datetime import date
from decimal import Decimal
from functools import wraps
from typing import Any, Mapping, Optional, Type, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from finance_tracker.audit.logger import AuditLogger
from finance_tracker.errors import (
    InsufficientBalanceError,
    LedgerError,
    NotFoundError,
    PersistenceError,
    TransferFailedError,
    ValidationError,
    schema_error_messages,
)
from finance_tracker.formatting.currency import CurrencyConfig, CurrencyFormatter
from finance_tracker.formatting.numbers import NumberAbbreviator
from finance_tracker.ledger import analytics
from finance_tracker.ledger.balances import balance_deltas, skipped_reverts
from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_tracker.models.finance import (
    AppSettings,
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
    utcnow,
)
from finance_tracker.services.storage import KeyValueStorage, StorageError
from finance_tracker.settings_store import (
    DEFAULT_KEY_PREFIX,
    SettingsStore,
    normalize_settings,
)


logger = structlog.get_logger(__name__)

SPENDING_KEY = "spending"
SAVINGS_KEY = "savings"
INVESTMENTS_KEY = "investments"

M = TypeVar("M", bound=BaseModel)
Payload = Union[BaseModel, Mapping[str, Any]]


def _locked(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


def _coerce(model_cls: Type[M], data: Payload) -> M:
    """Validate caller input into model_cls, raising ValidationError."""
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model_cls.model_validate(data)
    except SchemaError as e:
        raise ValidationError(
            f"Invalid {model_cls.__name__}", schema_error_messages(e)
        ) from e


def _rebuild(model_cls: Type[M], current: M, patch: dict[str, Any]) -> M:
    """Merge patch into current and re-validate the whole entity."""
    merged = current.model_dump()
    merged.update(patch)
    merged["updated_at"] = utcnow()
    try:
        return model_cls.model_validate(merged)
    except SchemaError as e:
        raise ValidationError(
            f"Invalid {model_cls.__name__}", schema_error_messages(e)
        ) from e


class LedgerEngine:
    """
    The ledger: entries, accounts, investments and the balance invariant
    linking entries to accounts.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        settings_store: Optional[SettingsStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        """
        Initialize the engine.

        Args:
            storage: Key/value backend holding the collections
            settings_store: Source of display settings and the category
                list used to validate entries. If None, defaults are used
                and any non-blank category is accepted.
            audit_logger: Receives one event per mutation. If None, only
                the module logger is used.
            key_prefix: Namespace for storage keys
        """
        self._storage = storage
        self._settings_store = settings_store
        self._audit_logger = audit_logger
        self._key_prefix = key_prefix
        self._lock = threading.RLock()

    # ==================== Storage plumbing ====================

    def _key(self, kind: str) -> str:
        return f"{self._key_prefix}{kind}"

    def _load(self, kind: str, model_cls: Type[M]) -> list[M]:
        key = self._key(kind)
        try:
            text = self._storage.get(key)
        except StorageError as e:
            raise PersistenceError(f"Failed to read {kind}: {e}", key=key) from e
        if text is None:
            return []

        try:
            items = json.loads(text)
            if not isinstance(items, list):
                raise ValueError(f"expected a list, got {type(items).__name__}")
            return [model_cls.model_validate(item) for item in items]
        except (ValueError, SchemaError) as e:
            # JSONDecodeError and pydantic errors are both ValueErrors
            raise PersistenceError(f"Stored {kind} are corrupt: {e}", key=key) from e

    @staticmethod
    def _dump(items: list[LedgerModel]) -> str:
        return json.dumps([item.to_storage() for item in items], ensure_ascii=False)

    def _write(self, *writes: tuple[str, list[LedgerModel]]) -> None:
        """
        Persist one or more collections, in order.

        If any write fails, keys already written in this call are restored
        to their previous content before PersistenceError is raised.
        """
        written: list[tuple[str, Optional[str]]] = []
        for kind, items in writes:
            key = self._key(kind)
            try:
                previous = self._storage.get(key)
                self._storage.set(key, self._dump(items))
            except StorageError as e:
                self._rollback(written)
                self._audit(AuditEventBuilder.persistence_failed(key, str(e)))
                raise PersistenceError(f"Failed to save {kind}: {e}", key=key) from e
            written.append((key, previous))

    def _rollback(self, written: list[tuple[str, Optional[str]]]) -> None:
        for key, previous in reversed(written):
            try:
                if previous is None:
                    self._storage.delete(key)
                else:
                    self._storage.set(key, previous)
            except StorageError as e:
                logger.error("rollback_failed", key=key, error=str(e))

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger is not None:
            self._audit_logger.log(event)

    def _reject(self, error: LedgerError, entry_id: Optional[str] = None) -> None:
        self._audit(AuditEventBuilder.entry_rejected(entry_id, error.code, error.message))

    # ==================== Settings access ====================

    @property
    def settings(self) -> AppSettings:
        if self._settings_store is not None:
            return self._settings_store.get_settings()
        return normalize_settings(None)

    def _validate_category(self, category: str) -> None:
        if self._settings_store is None:
            return
        categories = self._settings_store.get_settings().categories
        if category not in categories:
            raise ValidationError(
                f"Unknown category: {category!r}",
                [f"category: must be one of {', '.join(categories)}"],
            )

    # ==================== Balance application ====================

    def _plan(
        self,
        old: Optional[SpendingEntry],
        new: Optional[SpendingEntry],
        accounts: dict[str, SavingsAccount],
    ) -> dict[str, Decimal]:
        """
        Compute and validate the net balance change for replacing old with new.

        Raises:
            NotFoundError: Expense account does not exist
            InsufficientBalanceError: Expense exceeds balance, or reverting
                old would overdraw an account
            TransferFailedError: Transfer account missing or underfunded
        """
        if new is not None:
            self._check_accounts_exist(new, accounts)

        for account_id in skipped_reverts(old, accounts):
            logger.warning(
                "revert_skipped_missing_account",
                entry_id=old.id,
                account_id=account_id,
            )

        deltas = balance_deltas(old, new, known_accounts=accounts)

        if new is not None:
            # Funds available to the new entry once the old one is reverted
            source = new.account_id
            revert_credit = balance_deltas(old, None, known_accounts=accounts).get(source, Decimal(0))
            available = accounts[source].balance + revert_credit
            if available < new.amount:
                if new.type == EntryType.TRANSFER:
                    raise TransferFailedError(
                        new.account_id,
                        new.transfer_to_account_id,
                        new.amount,
                        f"insufficient balance (available {available})",
                    )
                raise InsufficientBalanceError(source, available, new.amount)

        for account_id, delta in deltas.items():
            balance = accounts[account_id].balance
            if balance + delta < 0:
                raise InsufficientBalanceError(account_id, balance, -delta)

        return deltas

    @staticmethod
    def _check_accounts_exist(entry: SpendingEntry, accounts: dict[str, SavingsAccount]) -> None:
        if entry.type == EntryType.EXPENSE:
            if entry.account_id not in accounts:
                raise NotFoundError("Savings account", entry.account_id)
        elif entry.type == EntryType.TRANSFER:
            for account_id in (entry.account_id, entry.transfer_to_account_id):
                if account_id not in accounts:
                    raise TransferFailedError(
                        entry.account_id,
                        entry.transfer_to_account_id,
                        entry.amount,
                        f"account not found: {account_id}",
                    )
        else:
            raise ValidationError(f"Unsupported entry type: {entry.type!r}")

    @staticmethod
    def _apply_deltas(
        accounts: dict[str, SavingsAccount],
        deltas: dict[str, Decimal],
    ) -> list[SavingsAccount]:
        now = utcnow()
        updated = []
        for account in accounts.values():
            delta = deltas.get(account.id)
            if delta:
                account = account.model_copy(
                    update={"balance": account.balance + delta, "updated_at": now}
                )
            updated.append(account)
        return updated

    def _accounts_by_id(self) -> dict[str, SavingsAccount]:
        return {a.id: a for a in self._load(SAVINGS_KEY, SavingsAccount)}

    # ==================== Spending entries ====================

    @_locked
    def get_spending_entries(self) -> list[SpendingEntry]:
        return self._load(SPENDING_KEY, SpendingEntry)

    @_locked
    def get_spending_entry(self, entry_id: str) -> Optional[SpendingEntry]:
        return next((e for e in self.get_spending_entries() if e.id == entry_id), None)

    @_locked
    def add_spending_entry(self, data: Payload) -> SpendingEntry:
        """
        Record a new expense or transfer and apply its balance effect.

        Expense: deducts the amount from account_id.
        Transfer: moves the amount from account_id to transfer_to_account_id.

        Raises:
            ValidationError, NotFoundError, InsufficientBalanceError,
            TransferFailedError, PersistenceError
        """
        try:
            create = _coerce(SpendingEntryCreate, data)
            try:
                entry = SpendingEntry(**create.model_dump())
            except SchemaError as e:
                raise ValidationError("Invalid spending entry", schema_error_messages(e)) from e
            self._validate_category(entry.category)

            entries = self.get_spending_entries()
            accounts = self._accounts_by_id()
            deltas = self._plan(None, entry, accounts)

            entries.append(entry)
            self._write(
                (SAVINGS_KEY, self._apply_deltas(accounts, deltas)),
                (SPENDING_KEY, entries),
            )
        except LedgerError as e:
            self._reject(e)
            raise

        self._audit(AuditEventBuilder.entry_added(entry.id, entry.type.value, entry.amount, deltas))
        return entry

    @_locked
    def update_spending_entry(self, entry_id: str, updates: Payload) -> SpendingEntry:
        """
        Update an entry, moving its balance effect from the old values to
        the new ones in a single step.

        Raises:
            NotFoundError: No entry with this id
            ValidationError, InsufficientBalanceError, TransferFailedError,
            PersistenceError
        """
        try:
            patch = _coerce(SpendingEntryUpdate, updates).model_dump(exclude_unset=True)

            entries = self.get_spending_entries()
            index = next((i for i, e in enumerate(entries) if e.id == entry_id), None)
            if index is None:
                raise NotFoundError("Spending entry", entry_id)
            original = entries[index]

            if (
                patch.get("type") == EntryType.EXPENSE
                and "transfer_to_account_id" not in patch
            ):
                patch["transfer_to_account_id"] = None

            updated = _rebuild(SpendingEntry, original, patch)
            if updated.category != original.category:
                self._validate_category(updated.category)

            accounts = self._accounts_by_id()
            deltas = self._plan(original, updated, accounts)

            entries[index] = updated
            self._write(
                (SAVINGS_KEY, self._apply_deltas(accounts, deltas)),
                (SPENDING_KEY, entries),
            )
        except LedgerError as e:
            self._reject(e, entry_id)
            raise

        self._audit(AuditEventBuilder.entry_updated(entry_id, sorted(patch), deltas))
        return updated

    @_locked
    def delete_spending_entry(self, entry_id: str) -> bool:
        """
        Delete an entry and revert its balance effect.

        Returns:
            False if no entry has this id

        Raises:
            InsufficientBalanceError: Reverting a transfer would overdraw
                its destination account
            PersistenceError
        """
        try:
            entries = self.get_spending_entries()
            original = next((e for e in entries if e.id == entry_id), None)
            if original is None:
                return False

            accounts = self._accounts_by_id()
            deltas = self._plan(original, None, accounts)

            self._write(
                (SAVINGS_KEY, self._apply_deltas(accounts, deltas)),
                (SPENDING_KEY, [e for e in entries if e.id != entry_id]),
            )
        except LedgerError as e:
            self._reject(e, entry_id)
            raise

        self._audit(AuditEventBuilder.entry_deleted(entry_id, deltas))
        return True

    # ==================== Savings accounts ====================

    @_locked
    def get_savings_accounts(self) -> list[SavingsAccount]:
        return self._load(SAVINGS_KEY, SavingsAccount)

    @_locked
    def get_savings_account(self, account_id: str) -> Optional[SavingsAccount]:
        return self._accounts_by_id().get(account_id)

    @_locked
    def add_savings_account(self, data: Payload) -> SavingsAccount:
        create = _coerce(SavingsAccountCreate, data)
        try:
            account = SavingsAccount(**create.model_dump())
        except SchemaError as e:
            raise ValidationError("Invalid savings account", schema_error_messages(e)) from e

        accounts = self.get_savings_accounts()
        accounts.append(account)
        self._write((SAVINGS_KEY, accounts))

        self._audit(AuditEventBuilder.account_changed(
            AuditEventType.ACCOUNT_ADDED, account.id, {"balance": str(account.balance)}
        ))
        return account

    @_locked
    def update_savings_account(self, account_id: str, updates: Payload) -> SavingsAccount:
        """
        Edit an account.

        A balance given here OVERWRITES the stored balance. This is the
        user correcting their balance, not a ledger adjustment.
        """
        patch = _coerce(SavingsAccountUpdate, updates).model_dump(exclude_unset=True)

        accounts = self.get_savings_accounts()
        index = next((i for i, a in enumerate(accounts) if a.id == account_id), None)
        if index is None:
            raise NotFoundError("Savings account", account_id)

        accounts[index] = _rebuild(SavingsAccount, accounts[index], patch)
        self._write((SAVINGS_KEY, accounts))

        self._audit(AuditEventBuilder.account_changed(
            AuditEventType.ACCOUNT_UPDATED, account_id, {"changed_fields": sorted(patch)}
        ))
        return accounts[index]

    @_locked
    def delete_savings_account(self, account_id: str) -> bool:
        accounts = self.get_savings_accounts()
        remaining = [a for a in accounts if a.id != account_id]
        if len(remaining) == len(accounts):
            return False

        referencing = sum(
            1 for e in self.get_spending_entries()
            if account_id in (e.account_id, e.transfer_to_account_id)
        )
        if referencing:
            logger.warning(
                "account_deleted_with_entries",
                account_id=account_id,
                entry_count=referencing,
            )

        self._write((SAVINGS_KEY, remaining))
        self._audit(AuditEventBuilder.account_changed(AuditEventType.ACCOUNT_DELETED, account_id))
        return True

    @_locked
    def transfer_between_accounts(
        self,
        from_id: str,
        to_id: str,
        amount: Union[Decimal, float, int, str],
    ) -> bool:
        """
        Move money between two accounts.

        Both balances are written together in one storage write.

        Returns:
            False if either account is missing or the source balance is
            below amount. Nothing is changed in that case.

        Raises:
            ValidationError: Non-positive amount or identical accounts
        """
        try:
            amount = Decimal(str(amount))
        except ArithmeticError as e:
            raise ValidationError(f"Invalid amount: {amount!r}") from e
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Transfer amount must be greater than zero")
        if from_id == to_id:
            raise ValidationError("Source and destination accounts must be different")

        accounts = self._accounts_by_id()
        source, destination = accounts.get(from_id), accounts.get(to_id)
        if source is None or destination is None:
            self._audit(AuditEventBuilder.transfer_failed(from_id, to_id, amount, "account not found"))
            return False
        if source.balance < amount:
            self._audit(AuditEventBuilder.transfer_failed(from_id, to_id, amount, "insufficient balance"))
            return False

        self._write((SAVINGS_KEY, self._apply_deltas(accounts, {from_id: -amount, to_id: amount})))
        self._audit(AuditEventBuilder.transfer_completed(from_id, to_id, amount))
        return True

    # ==================== Investments ====================

    @_locked
    def get_investments(self) -> list[Investment]:
        return self._load(INVESTMENTS_KEY, Investment)

    @_locked
    def get_investment(self, investment_id: str) -> Optional[Investment]:
        return next((i for i in self.get_investments() if i.id == investment_id), None)

    @_locked
    def add_investment(self, data: Payload) -> Investment:
        create = _coerce(InvestmentCreate, data)
        try:
            investment = Investment(**create.model_dump())
        except SchemaError as e:
            raise ValidationError("Invalid investment", schema_error_messages(e)) from e

        investments = self.get_investments()
        investments.append(investment)
        self._write((INVESTMENTS_KEY, investments))
        self._audit(AuditEventBuilder.investment_changed(AuditEventType.INVESTMENT_ADDED, investment.id))
        return investment

    @_locked
    def update_investment(self, investment_id: str, updates: Payload) -> Investment:
        patch = _coerce(InvestmentUpdate, updates).model_dump(exclude_unset=True)

        investments = self.get_investments()
        index = next((i for i, inv in enumerate(investments) if inv.id == investment_id), None)
        if index is None:
            raise NotFoundError("Investment", investment_id)

        investments[index] = _rebuild(Investment, investments[index], patch)
        self._write((INVESTMENTS_KEY, investments))
        self._audit(AuditEventBuilder.investment_changed(AuditEventType.INVESTMENT_UPDATED, investment_id))
        return investments[index]

    @_locked
    def delete_investment(self, investment_id: str) -> bool:
        investments = self.get_investments()
        remaining = [i for i in investments if i.id != investment_id]
        if len(remaining) == len(investments):
            return False
        self._write((INVESTMENTS_KEY, remaining))
        self._audit(AuditEventBuilder.investment_changed(AuditEventType.INVESTMENT_DELETED, investment_id))
        return True

    # ==================== Analytics ====================

    @_locked
    def get_monthly_spending(self, year: int, month: int) -> Decimal:
        """Expense total for a calendar month (month is 1-12). Transfers excluded."""
        return analytics.monthly_spending(self.get_spending_entries(), year, month)

    @_locked
    def get_spending_by_category(
        self,
        start_date: analytics.DateLike,
        end_date: analytics.DateLike,
    ) -> dict[str, Decimal]:
        """Expense totals per category, dates inclusive. Transfers excluded."""
        return analytics.spending_by_category(self.get_spending_entries(), start_date, end_date)

    @_locked
    def get_monthly_trend(
        self,
        months: int = 6,
        today: Optional[date] = None,
    ) -> list[analytics.MonthlyTrendPoint]:
        return analytics.monthly_trend(
            self.get_spending_entries(),
            self.settings.monthly_target,
            months=months,
            today=today,
        )

    @_locked
    def get_category_breakdown(
        self,
        start_date: analytics.DateLike,
        end_date: analytics.DateLike,
    ) -> list[analytics.CategorySlice]:
        return analytics.category_breakdown(
            self.get_spending_entries(),
            start_date,
            end_date,
            self.settings.category_colors,
        )

    @_locked
    def get_total_savings(self) -> Decimal:
        return sum((a.balance for a in self.get_savings_accounts()), Decimal(0))

    @_locked
    def get_total_investments(self) -> Decimal:
        return analytics.total_investments(self.get_investments())

    @_locked
    def get_investment_summary(self, today: Optional[date] = None) -> analytics.InvestmentSummary:
        return analytics.investment_summary(self.get_investments(), today)

    # ==================== Display helpers ====================

    def get_currency(self) -> CurrencyConfig:
        return CurrencyFormatter.get_currency(self.settings.currency)

    def get_currency_symbol(self) -> str:
        return CurrencyFormatter.get_symbol(self.settings.currency)

    def format_currency(self, amount) -> str:
        return CurrencyFormatter.format(amount, self.settings.currency)

    def format_currency_without_symbol(self, amount) -> str:
        return CurrencyFormatter.format_without_symbol(amount, self.settings.currency)

    def parse_currency(self, formatted_amount: str) -> Decimal:
        return CurrencyFormatter.parse(formatted_amount, self.settings.currency)

    def format_number_for_chart(self, amount) -> str:
        return NumberAbbreviator.format_for_chart(amount, self.get_currency_symbol())

    def abbreviate_number(self, amount) -> str:
        return NumberAbbreviator.abbreviate(amount)

    def abbreviate_currency(self, amount) -> str:
        return NumberAbbreviator.abbreviate_currency(amount, self.get_currency_symbol())
