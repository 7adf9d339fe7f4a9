"""
Ledger Error Taxonomy

All failures are local and synchronous: raised straight to the caller,
never retried, never reported on a background channel.

- ValidationError: malformed or missing input, detected before any mutation
- NotFoundError: a referenced id does not exist
- InsufficientBalanceError: a deduction exceeds the account balance
- TransferFailedError: a transfer could not be applied
- PersistenceError: storage refused a read or write

Presenting these to a user (toasts, field errors) is the UI's job.
"""

from decimal import Decimal
from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Input failed validation. Nothing was changed."""

    code = "validation_error"

    def __init__(self, message: str, issues: Optional[list[str]] = None):
        super().__init__(message)
        self.issues = issues or [message]


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class InsufficientBalanceError(LedgerError):
    """Account balance cannot cover the requested amount."""

    code = "insufficient_balance"

    def __init__(self, account_id: str, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"available {available}, requested {requested}"
        )
        self.account_id = account_id
        self.available = available
        self.requested = requested


class TransferFailedError(LedgerError):
    """Transfer rejected: missing account or insufficient funds."""

    code = "transfer_failed"

    def __init__(self, from_id: Optional[str], to_id: Optional[str], amount: Decimal, reason: str):
        super().__init__(f"Transfer failed: {reason}")
        self.from_id = from_id
        self.to_id = to_id
        self.amount = amount
        self.reason = reason


class PersistenceError(LedgerError):
    """Storage read or write failed; the previous stored state stands."""

    code = "persistence_error"

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


def schema_error_messages(error) -> list[str]:
    """Flatten a pydantic ValidationError into readable messages."""
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        text = err.get("msg", "invalid value")
        messages.append(f"{location}: {text}" if location else text)
    return messages
