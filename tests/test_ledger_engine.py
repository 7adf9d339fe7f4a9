"""
Tests for the ledger engine.

Every test checks balances as well as the operation result: an entry
must never exist without its balance effect, and a rejected mutation must
leave storage exactly as it was.
"""

import json
import threading

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.ledger import (
    InsufficientBalanceError,
    LedgerEngine,
    NotFoundError,
    PersistenceError,
    TransferFailedError,
    ValidationError,
)
from finance_tracker.models import AuditEventType, EntryType
from finance_tracker.services.storage import InMemoryStorage, QuotaExceededError


def balance(engine, account):
    return engine.get_savings_account(account.id).balance


def expense(account, amount, category="Food", **extra):
    return {
        "date": date(2024, 3, 5),
        "amount": Decimal(str(amount)),
        "category": category,
        "type": "expense",
        "account_id": account.id,
        **extra,
    }


def transfer(source, destination, amount):
    return {
        "date": date(2024, 3, 5),
        "amount": Decimal(str(amount)),
        "category": "Transfer",
        "type": "transfer",
        "account_id": source.id,
        "transfer_to_account_id": destination.id,
    }


class FailingStorage(InMemoryStorage):
    """Rejects writes to selected keys, like a full browser storage."""

    def __init__(self):
        super().__init__()
        self.fail_keys: set[str] = set()

    def set(self, key, value):
        if key in self.fail_keys:
            raise QuotaExceededError(f"quota exceeded writing {key}")
        super().set(key, value)


class TestExpenses:
    """Expense entries deduct from their account."""

    def test_expense_deducts_balance(self, engine, account_a):
        """Test a valid expense is stored and deducted."""
        entry = engine.add_spending_entry(expense(account_a, 30))

        assert entry.type == EntryType.EXPENSE
        assert balance(engine, account_a) == Decimal("70")
        assert [e.id for e in engine.get_spending_entries()] == [entry.id]

    def test_expense_exceeding_balance_is_rejected(self, engine, account_a):
        """Test nothing changes when the expense exceeds the balance."""
        with pytest.raises(InsufficientBalanceError) as exc_info:
            engine.add_spending_entry(expense(account_a, 150))

        assert exc_info.value.available == Decimal("100")
        assert exc_info.value.requested == Decimal("150")
        assert balance(engine, account_a) == Decimal("100")
        assert engine.get_spending_entries() == []

    def test_expense_of_whole_balance_is_allowed(self, engine, account_a):
        engine.add_spending_entry(expense(account_a, 100))
        assert balance(engine, account_a) == Decimal("0")

    def test_expense_with_unknown_account(self, engine, account_a):
        """Test a missing account raises NotFoundError."""
        data = expense(account_a, 10)
        data["account_id"] = "missing"

        with pytest.raises(NotFoundError):
            engine.add_spending_entry(data)
        assert engine.get_spending_entries() == []

    def test_expense_without_account(self, engine):
        with pytest.raises(ValidationError, match="Invalid spending entry"):
            engine.add_spending_entry({
                "date": date(2024, 3, 5),
                "amount": Decimal("10"),
                "category": "Food",
            })

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_is_rejected(self, engine, account_a, amount):
        with pytest.raises(ValidationError):
            engine.add_spending_entry(expense(account_a, amount))
        assert balance(engine, account_a) == Decimal("100")

    def test_missing_date_is_rejected(self, engine, account_a):
        data = expense(account_a, 10)
        del data["date"]
        with pytest.raises(ValidationError):
            engine.add_spending_entry(data)

    def test_expense_with_destination_is_rejected(self, engine, account_a, account_b):
        with pytest.raises(ValidationError):
            engine.add_spending_entry(
                expense(account_a, 10, transfer_to_account_id=account_b.id)
            )
        assert balance(engine, account_a) == Decimal("100")
        assert engine.get_spending_entries() == []

    def test_unknown_fields_are_rejected(self, engine, account_a):
        with pytest.raises(ValidationError):
            engine.add_spending_entry(expense(account_a, 10, colour="red"))

    def test_validation_precedes_balance_check(self, engine, account_a):
        """Test an invalid category is reported even when funds are short."""
        with pytest.raises(ValidationError, match="Unknown category"):
            engine.add_spending_entry(expense(account_a, 500, category="Yachts"))

    def test_category_must_exist_in_settings(self, engine, settings_store, account_a):
        """Test categories are checked against the settings list."""
        with pytest.raises(ValidationError):
            engine.add_spending_entry(expense(account_a, 10, category="Pets"))

        settings_store.update_settings({"categories": ["Food", "Pets"]})
        entry = engine.add_spending_entry(expense(account_a, 10, category="Pets"))
        assert entry.category == "Pets"

    def test_any_category_without_settings_store(self, storage):
        engine = LedgerEngine(storage)
        account = engine.add_savings_account(
            {"bank_name": "Bank", "account_name": "Main", "balance": 50}
        )
        engine.add_spending_entry(expense(account, 5, category="Anything"))
        assert engine.get_savings_account(account.id).balance == Decimal("45")

    def test_blank_category_is_rejected(self, storage):
        engine = LedgerEngine(storage)
        account = engine.add_savings_account(
            {"bank_name": "Bank", "account_name": "Main", "balance": 50}
        )
        with pytest.raises(ValidationError):
            engine.add_spending_entry(expense(account, 5, category="   "))

    def test_delete_expense_restores_balance(self, engine, account_a):
        entry = engine.add_spending_entry(expense(account_a, 30))

        assert engine.delete_spending_entry(entry.id) is True
        assert balance(engine, account_a) == Decimal("100")
        assert engine.get_spending_entries() == []

    def test_delete_unknown_entry(self, engine):
        assert engine.delete_spending_entry("missing") is False


class TestTransfers:
    """Transfer entries move money between two accounts."""

    def test_transfer_moves_money(self, engine, account_a, account_b):
        """Test A=100, B=0, transfer 40 gives A=60, B=40."""
        entry = engine.add_spending_entry(transfer(account_a, account_b, 40))

        assert entry.type == EntryType.TRANSFER
        assert balance(engine, account_a) == Decimal("60")
        assert balance(engine, account_b) == Decimal("40")

    def test_update_transfer_amount(self, engine, account_a, account_b):
        """Test changing 40 to 10 gives A=90, B=10."""
        entry = engine.add_spending_entry(transfer(account_a, account_b, 40))

        updated = engine.update_spending_entry(entry.id, {"amount": Decimal("10")})

        assert updated.amount == Decimal("10")
        assert balance(engine, account_a) == Decimal("90")
        assert balance(engine, account_b) == Decimal("10")

    def test_delete_transfer_reverts_both_sides(self, engine, account_a, account_b):
        entry = engine.add_spending_entry(transfer(account_a, account_b, 40))

        assert engine.delete_spending_entry(entry.id) is True
        assert balance(engine, account_a) == Decimal("100")
        assert balance(engine, account_b) == Decimal("0")

    def test_transfer_to_same_account(self, engine, account_a):
        with pytest.raises(ValidationError):
            engine.add_spending_entry(transfer(account_a, account_a, 10))
        assert balance(engine, account_a) == Decimal("100")

    def test_transfer_to_missing_account(self, engine, account_a, account_b):
        data = transfer(account_a, account_b, 10)
        data["transfer_to_account_id"] = "missing"

        with pytest.raises(TransferFailedError):
            engine.add_spending_entry(data)
        assert balance(engine, account_a) == Decimal("100")

    def test_transfer_exceeding_balance(self, engine, account_a, account_b):
        with pytest.raises(TransferFailedError) as exc_info:
            engine.add_spending_entry(transfer(account_a, account_b, 101))

        assert exc_info.value.amount == Decimal("101")
        assert balance(engine, account_a) == Decimal("100")
        assert balance(engine, account_b) == Decimal("0")
        assert engine.get_spending_entries() == []

    def test_delete_transfer_whose_money_was_spent(self, engine, account_a, account_b):
        """Test a revert that would overdraw the destination is refused."""
        entry = engine.add_spending_entry(transfer(account_a, account_b, 40))
        engine.add_spending_entry(expense(account_b, 30))

        with pytest.raises(InsufficientBalanceError):
            engine.delete_spending_entry(entry.id)

        assert balance(engine, account_a) == Decimal("60")
        assert balance(engine, account_b) == Decimal("10")
        assert len(engine.get_spending_entries()) == 2


class TestUpdates:
    """Updates move the balance effect from the old values to the new."""

    def test_update_can_use_the_reverted_amount(self, engine, account_a):
        """Test the old amount counts towards the funds available."""
        entry = engine.add_spending_entry(expense(account_a, 30))

        engine.update_spending_entry(entry.id, {"amount": Decimal("100")})
        assert balance(engine, account_a) == Decimal("0")

    def test_update_beyond_balance_changes_nothing(self, engine, account_a):
        entry = engine.add_spending_entry(expense(account_a, 30))

        with pytest.raises(InsufficientBalanceError):
            engine.update_spending_entry(entry.id, {"amount": Decimal("101")})

        assert balance(engine, account_a) == Decimal("70")
        assert engine.get_spending_entry(entry.id).amount == Decimal("30")

    def test_update_moves_expense_between_accounts(self, engine, account_a):
        other = engine.add_savings_account(
            {"bank_name": "Other", "account_name": "Spare", "balance": Decimal("50")}
        )
        entry = engine.add_spending_entry(expense(account_a, 30))

        engine.update_spending_entry(entry.id, {"account_id": other.id})

        assert balance(engine, account_a) == Decimal("100")
        assert engine.get_savings_account(other.id).balance == Decimal("20")

    def test_update_transfer_to_expense(self, engine, account_a, account_b):
        """Test switching type clears the destination account."""
        entry = engine.add_spending_entry(transfer(account_a, account_b, 40))

        updated = engine.update_spending_entry(entry.id, {"type": "expense", "category": "Food"})

        assert updated.type == EntryType.EXPENSE
        assert updated.transfer_to_account_id is None
        assert balance(engine, account_a) == Decimal("60")
        assert balance(engine, account_b) == Decimal("0")

    def test_update_description_keeps_balances(self, engine, account_a):
        entry = engine.add_spending_entry(expense(account_a, 30))

        updated = engine.update_spending_entry(entry.id, {"description": "Lunch"})

        assert updated.description == "Lunch"
        assert updated.updated_at >= entry.updated_at
        assert updated.created_at == entry.created_at
        assert balance(engine, account_a) == Decimal("70")

    def test_update_unknown_entry(self, engine):
        with pytest.raises(NotFoundError):
            engine.update_spending_entry("missing", {"amount": Decimal("1")})

    def test_update_with_invalid_amount(self, engine, account_a):
        entry = engine.add_spending_entry(expense(account_a, 30))
        with pytest.raises(ValidationError):
            engine.update_spending_entry(entry.id, {"amount": Decimal("0")})
        assert balance(engine, account_a) == Decimal("70")

    def test_entry_against_deleted_account(self, engine, account_a, account_b):
        """Test deleting an entry whose account is gone skips the revert."""
        entry = engine.add_spending_entry(expense(account_a, 30))
        assert engine.delete_savings_account(account_a.id) is True

        assert engine.delete_spending_entry(entry.id) is True
        assert engine.get_spending_entries() == []
        assert balance(engine, account_b) == Decimal("0")


class TestSavingsAccounts:
    """Account CRUD and direct transfers."""

    def test_add_account_defaults_to_zero(self, engine):
        account = engine.add_savings_account({"bank_name": "Bank", "account_name": "Main"})
        assert account.balance == Decimal("0")

    def test_negative_opening_balance_is_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.add_savings_account(
                {"bank_name": "Bank", "account_name": "Main", "balance": Decimal("-1")}
            )

    def test_update_overwrites_balance(self, engine, account_a):
        updated = engine.update_savings_account(account_a.id, {"balance": Decimal("250.75")})

        assert updated.balance == Decimal("250.75")
        assert updated.bank_name == "First Bank"
        assert balance(engine, account_a) == Decimal("250.75")

    def test_update_unknown_account(self, engine):
        with pytest.raises(NotFoundError):
            engine.update_savings_account("missing", {"account_name": "X"})

    def test_delete_account(self, engine, account_a):
        assert engine.delete_savings_account(account_a.id) is True
        assert engine.delete_savings_account(account_a.id) is False
        assert engine.get_savings_accounts() == []

    def test_transfer_between_accounts(self, engine, account_a, account_b):
        assert engine.transfer_between_accounts(account_a.id, account_b.id, 25.5) is True
        assert balance(engine, account_a) == Decimal("74.5")
        assert balance(engine, account_b) == Decimal("25.5")

    def test_transfer_between_accounts_insufficient(self, engine, account_a, account_b):
        assert engine.transfer_between_accounts(account_a.id, account_b.id, 500) is False
        assert balance(engine, account_a) == Decimal("100")
        assert balance(engine, account_b) == Decimal("0")

    def test_transfer_between_accounts_missing(self, engine, account_a):
        assert engine.transfer_between_accounts(account_a.id, "missing", 5) is False
        assert balance(engine, account_a) == Decimal("100")

    @pytest.mark.parametrize("amount", [0, -5])
    def test_transfer_between_accounts_rejects_amount(self, engine, account_a, account_b, amount):
        with pytest.raises(ValidationError):
            engine.transfer_between_accounts(account_a.id, account_b.id, amount)

    def test_transfer_between_same_account(self, engine, account_a):
        with pytest.raises(ValidationError):
            engine.transfer_between_accounts(account_a.id, account_a.id, 5)

    def test_total_savings(self, engine, account_a, account_b):
        engine.add_savings_account(
            {"bank_name": "Third", "account_name": "Pot", "balance": Decimal("0.10")}
        )
        assert engine.get_total_savings() == Decimal("100.10")


class TestInvestments:
    """Investments have no balance links."""

    def test_investment_crud(self, engine):
        investment = engine.add_investment(
            {"name": "Index Fund", "amount": Decimal("100"), "date": "2024-01-15"}
        )
        assert investment.date == date(2024, 1, 15)

        updated = engine.update_investment(investment.id, {"notes": "Monthly"})
        assert updated.notes == "Monthly"
        assert engine.get_investment(investment.id).notes == "Monthly"

        assert engine.delete_investment(investment.id) is True
        assert engine.delete_investment(investment.id) is False
        assert engine.get_investments() == []

    def test_total_investments_is_a_sum(self, engine):
        """Test the total adds amounts rather than counting entries."""
        engine.add_investment({"name": "A", "amount": Decimal("100"), "date": date(2024, 1, 1)})
        engine.add_investment({"name": "B", "amount": Decimal("250"), "date": date(2024, 2, 1)})

        assert engine.get_total_investments() == Decimal("350")

    def test_zero_investment_is_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.add_investment({"name": "A", "amount": Decimal("0"), "date": date(2024, 1, 1)})

    def test_update_unknown_investment(self, engine):
        with pytest.raises(NotFoundError):
            engine.update_investment("missing", {"name": "X"})


class TestPersistence:
    """Storage layout and failure handling."""

    def test_storage_layout_is_camel_case_json(self, engine, storage, account_a, account_b):
        engine.add_spending_entry(transfer(account_a, account_b, 40))

        stored = json.loads(storage.get("financial_dashboard_spending"))
        assert stored[0]["accountId"] == account_a.id
        assert stored[0]["transferToAccountId"] == account_b.id
        assert stored[0]["type"] == "transfer"
        assert "createdAt" in stored[0]
        assert sorted(storage.keys()) == [
            "financial_dashboard_savings",
            "financial_dashboard_spending",
        ]

    def test_custom_key_prefix(self, storage):
        engine = LedgerEngine(storage, key_prefix="test_")
        engine.add_savings_account({"bank_name": "Bank", "account_name": "Main"})
        assert storage.keys() == ["test_savings"]

    def test_failed_entry_write_rolls_back_balances(self):
        """Test the account write is undone when the entry write fails."""
        storage = FailingStorage()
        engine = LedgerEngine(storage)
        account = engine.add_savings_account(
            {"bank_name": "Bank", "account_name": "Main", "balance": Decimal("100")}
        )
        storage.fail_keys.add("financial_dashboard_spending")

        with pytest.raises(PersistenceError) as exc_info:
            engine.add_spending_entry(expense(account, 30))

        assert exc_info.value.key == "financial_dashboard_spending"
        assert engine.get_savings_account(account.id).balance == Decimal("100")
        assert engine.get_spending_entries() == []

    def test_failed_account_write(self):
        storage = FailingStorage()
        storage.fail_keys.add("financial_dashboard_savings")
        engine = LedgerEngine(storage)

        with pytest.raises(PersistenceError):
            engine.add_savings_account({"bank_name": "Bank", "account_name": "Main"})
        assert engine.get_savings_accounts() == []

    def test_quota_exceeded(self):
        storage = InMemoryStorage(quota_bytes=300)
        engine = LedgerEngine(storage)

        with pytest.raises(PersistenceError):
            for i in range(10):
                engine.add_savings_account({"bank_name": f"Bank {i}", "account_name": "Main"})
        assert len(engine.get_savings_accounts()) < 10

    def test_corrupt_collection_fails_visibly(self, engine, storage):
        storage.set("financial_dashboard_spending", "{not json")
        with pytest.raises(PersistenceError):
            engine.get_spending_entries()

    def test_non_list_collection_fails_visibly(self, engine, storage):
        storage.set("financial_dashboard_savings", '{"id": "x"}')
        with pytest.raises(PersistenceError):
            engine.get_savings_accounts()

    def test_state_survives_a_new_engine(self, storage, account_a):
        engine = LedgerEngine(storage)
        assert engine.get_savings_account(account_a.id).balance == Decimal("100")


class TestConcurrency:
    """One engine shared between threads."""

    def test_concurrent_expenses_never_overdraw(self, engine, account_a):
        """Test parallel adds keep balance equal to opening minus stored entries."""
        start = threading.Barrier(20)
        rejected = []

        def spend():
            start.wait()
            try:
                engine.add_spending_entry(expense(account_a, 7))
            except InsufficientBalanceError:
                rejected.append(1)

        threads = [threading.Thread(target=spend) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        entries = engine.get_spending_entries()
        spent = sum((e.amount for e in entries), Decimal(0))

        assert len(entries) == 14
        assert len(rejected) == 6
        assert balance(engine, account_a) == Decimal("100") - spent
        assert balance(engine, account_a) >= 0


class TestAuditTrail:
    """Each mutation emits an audit event."""

    def test_added_entry_is_audited(self, engine, audit_logger, account_a):
        entry = engine.add_spending_entry(expense(account_a, 30))

        event = audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.ENTRY_ADDED
        assert event.entity_id == entry.id
        assert event.details["balance_deltas"] == {account_a.id: "-30"}

    def test_rejected_entry_is_audited(self, engine, audit_logger, account_a):
        with pytest.raises(InsufficientBalanceError):
            engine.add_spending_entry(expense(account_a, 500))

        event = audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.ENTRY_REJECTED
        assert event.error_code == "insufficient_balance"

    def test_failed_transfer_is_audited(self, engine, audit_logger, account_a, account_b):
        engine.transfer_between_accounts(account_a.id, account_b.id, 1000)

        event = audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.TRANSFER_FAILED


class TestDisplayHelpers:
    """Formatting helpers follow the currency in settings."""

    def test_defaults_to_usd(self, engine):
        assert engine.get_currency().code == "USD"
        assert engine.get_currency_symbol() == "$"
        assert engine.format_currency(Decimal("1234.5")) == "$1,234.50"
        assert engine.format_currency_without_symbol(1234.5) == "1,234.50"
        assert engine.parse_currency("$1,234.50") == Decimal("1234.50")

    def test_follows_settings_currency(self, engine, settings_store):
        settings_store.update_settings({"currency": "EUR"})

        assert engine.format_currency(Decimal("1234.5")) == "1.234,50 €"
        assert engine.parse_currency("1.234,50 €") == Decimal("1234.50")
        assert engine.abbreviate_currency(2500000) == "€2.5M"
        assert engine.format_number_for_chart(150000000) == "€150M"
        assert engine.abbreviate_number(1500) == "1.5K"
