"""
Audit Models for Finance Tracker

Every ledger mutation is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when a mutation is rejected
3. The ability to reconstruct how an account reached its balance

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Spending entries
    ENTRY_ADDED = "entry_added"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_REJECTED = "entry_rejected"

    # Accounts
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    TRANSFER_COMPLETED = "transfer_completed"
    TRANSFER_FAILED = "transfer_failed"

    # Investments
    INVESTMENT_ADDED = "investment_added"
    INVESTMENT_UPDATED = "investment_updated"
    INVESTMENT_DELETED = "investment_deleted"

    # Settings
    SETTINGS_UPDATED = "settings_updated"

    # System events
    PERSISTENCE_FAILED = "persistence_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every ledger mutation (successful or rejected) creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'account', 'investment')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


def _money(amount: Decimal) -> str:
    return str(amount)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added(entry_id, "expense", amount, deltas)
        event = AuditEventBuilder.transfer_failed(from_id, to_id, amount, reason)
    """

    @staticmethod
    def entry_added(
        entry_id: str,
        entry_type: str,
        amount: Decimal,
        balance_deltas: dict[str, Decimal],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            entity_type="entry",
            entity_id=entry_id,
            description=f"{entry_type.capitalize()} of {amount} recorded",
            details={
                "entry_type": entry_type,
                "amount": _money(amount),
                "balance_deltas": {k: _money(v) for k, v in balance_deltas.items()},
            },
        )

    @staticmethod
    def entry_updated(
        entry_id: str,
        changed_fields: list[str],
        balance_deltas: dict[str, Decimal],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="entry",
            entity_id=entry_id,
            description=f"Entry updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "balance_deltas": {k: _money(v) for k, v in balance_deltas.items()},
            },
        )

    @staticmethod
    def entry_deleted(
        entry_id: str,
        balance_deltas: dict[str, Decimal],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            description="Entry deleted and its balance effect reverted",
            details={
                "balance_deltas": {k: _money(v) for k, v in balance_deltas.items()},
            },
        )

    @staticmethod
    def entry_rejected(
        entry_id: Optional[str],
        error_code: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            description="Entry mutation rejected",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def account_changed(
        event_type: AuditEventType,
        account_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            description=f"Savings account {verb}",
            details=details or {},
        )

    @staticmethod
    def transfer_completed(from_id: str, to_id: str, amount: Decimal) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_COMPLETED,
            entity_type="account",
            entity_id=from_id,
            description=f"Transferred {amount} between accounts",
            details={"from": from_id, "to": to_id, "amount": _money(amount)},
        )

    @staticmethod
    def transfer_failed(
        from_id: str,
        to_id: str,
        amount: Decimal,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=from_id,
            description="Transfer rejected",
            details={"from": from_id, "to": to_id, "amount": _money(amount)},
            error_message=reason,
        )

    @staticmethod
    def investment_changed(event_type: AuditEventType, investment_id: str) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="investment",
            entity_id=investment_id,
            description=f"Investment {verb}",
        )

    @staticmethod
    def settings_updated(changed_fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            description="Display settings updated",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def persistence_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            entity_id=key,
            description=f"Failed to persist {key}",
            error_message=error_message,
        )
