"""Shared fixtures: in-memory storage and a ledger wired around it."""

import pytest
from decimal import Decimal

from finance_tracker.audit import AuditLogger
from finance_tracker.ledger import LedgerEngine
from finance_tracker.services.storage import InMemoryStorage
from finance_tracker.settings_store import SettingsStore


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def settings_store(storage, audit_logger):
    return SettingsStore(storage, audit_logger=audit_logger)


@pytest.fixture
def engine(storage, settings_store, audit_logger):
    return LedgerEngine(storage, settings_store=settings_store, audit_logger=audit_logger)


@pytest.fixture
def account_a(engine):
    return engine.add_savings_account(
        {"bank_name": "First Bank", "account_name": "Checking", "balance": Decimal("100")}
    )


@pytest.fixture
def account_b(engine):
    return engine.add_savings_account(
        {"bank_name": "Second Bank", "account_name": "Savings", "balance": Decimal("0")}
    )
