"""
Audit Models for Budget Ledger

Every state-changing ledger operation produces one audit event.
This provides:
1. Traceability of who moved which money, and when
2. Debugging information when a balance looks wrong
3. A record of rejected operations (conflicts, validation failures)

Audit events are emitted as structured log records; the ledger itself
remains the source of truth for money.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Month lifecycle
    MONTH_STARTED = "month_started"
    MONTH_UPDATED = "month_updated"
    MONTH_CLOSED = "month_closed"
    MONTH_DELETED = "month_deleted"

    # Week lifecycle and cash
    WEEK_CLOSED = "week_closed"
    CASH_WITHDRAWAL_RECORDED = "cash_withdrawal_recorded"
    CASH_RETURNED = "cash_returned"

    # Ledger entries
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    EXTRA_INCOME_RECORDED = "extra_income_recorded"
    EMERGENCY_WITHDRAWAL = "emergency_withdrawal"
    PIGGY_BANK_DEPOSIT = "piggy_bank_deposit"

    # Reference data
    CATEGORY_CHANGED = "category_changed"
    PLANNED_EXPENSE_CHANGED = "planned_expense_changed"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'month', 'week', 'transaction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one operation"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.month_started(month_id, period_key, weeks, correlation_id)
    """

    @staticmethod
    def month_started(
        month_id: UUID,
        period_key: str,
        week_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_STARTED,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description=f"Month {period_key} started with {week_count} weeks",
            details={"period_key": period_key, "week_count": week_count},
        )

    @staticmethod
    def month_updated(
        month_id: UUID,
        changes: dict[str, int],
        open_weeks_updated: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_UPDATED,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description=f"Month updated: {', '.join(sorted(changes))}",
            details={"changes": changes, "open_weeks_updated": open_weeks_updated},
        )

    @staticmethod
    def month_closed(
        month_id: UUID,
        remainder: int,
        consolidated: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_CLOSED,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description=f"Month closed; {consolidated} cents moved to the safety fund",
            details={"remainder_cents": remainder, "consolidated_cents": consolidated},
        )

    @staticmethod
    def month_deleted(month_id: UUID, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description="Month deleted with its weeks and transactions",
        )

    @staticmethod
    def week_closed(
        week_id: UUID,
        moved: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEEK_CLOSED,
            entity_type="week",
            entity_id=week_id,
            correlation_id=correlation_id,
            description=f"Week closed; {sum(moved.values())} cents of pocket cash distributed",
            details=moved,
        )

    @staticmethod
    def cash_withdrawal_recorded(
        week_id: UUID,
        amount: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASH_WITHDRAWAL_RECORDED,
            entity_type="week",
            entity_id=week_id,
            correlation_id=correlation_id,
            description=f"Weekly cash withdrawal of {amount} cents recorded",
            details={"amount_cents": amount},
        )

    @staticmethod
    def cash_returned(
        week_id: UUID,
        amount: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASH_RETURNED,
            entity_type="week",
            entity_id=week_id,
            correlation_id=correlation_id,
            description=f"{amount} cents of pocket cash returned to the bank",
            details={"amount_cents": amount},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: UUID,
        tx_type: str,
        amount: Optional[int],
        correlation_id: UUID
    ) -> AuditEvent:
        verb = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{tx_type} transaction {verb}",
            details={"type": tx_type, "amount_cents": amount},
        )

    @staticmethod
    def piggy_bank_deposit(
        piggy_bank_id: UUID,
        amount: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PIGGY_BANK_DEPOSIT,
            entity_type="piggy_bank",
            entity_id=piggy_bank_id,
            correlation_id=correlation_id,
            description=f"{amount} cents deposited into piggy bank",
            details={"amount_cents": amount},
        )

    @staticmethod
    def reference_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        action: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} {action}",
            details={"action": action},
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {error_type}",
            details={"operation": operation, "error_type": error_type},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        operation: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error during {operation}: {error_type}",
            details={"operation": operation, "error_type": error_type},
            error_message=error_message,
        )
