"""
Audit Models for WealthTrack

Every committed ledger mutation, and every rejected one, is logged for
audit purposes. This provides:
1. Complete traceability of how an aggregate reached its current value
2. Debugging information when things go wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from wealthtrack.models.entities import (
    EntityKind,
    Goal,
    Transaction,
    TransferTransaction,
    Wallet,
    utc_now,
)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutation the ledger exposes has its own event type.
    """
    # Regular transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    CATEGORY_UNASSIGNED = "category_unassigned"

    # Transfers
    TRANSFER_CREATED = "transfer_created"
    TRANSFER_UPDATED = "transfer_updated"
    TRANSFER_DELETED = "transfer_deleted"

    # Wallets and budgets
    WALLET_CREATED = "wallet_created"
    WALLET_UPDATED = "wallet_updated"
    WALLET_DELETED = "wallet_deleted"
    BALANCE_CORRECTED = "balance_corrected"
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"

    # Categories and goals
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_RECALCULATED = "goal_recalculated"

    # Failures
    MUTATION_REJECTED = "mutation_rejected"
    CONFLICT_DETECTED = "conflict_detected"
    SYSTEM_ERROR = "system_error"


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

    This is the core unit of our audit trail.
    Every committed or rejected mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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
        description="Type of entity (e.g., 'wallet', 'transaction', 'goal')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one cascade delete)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
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
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> tuple:
        """
        Convert to a row suitable for the SQLite audit table.

        Returns columns in order:
        (event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action)
        """
        return (
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            int(self.is_user_action),
        )


def _money(value: Decimal) -> str:
    return str(value)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(transaction, correlation_id)
        event = AuditEventBuilder.mutation_rejected(EntityKind.TRANSACTION, "create", e.code, str(e))
    """

    @staticmethod
    def transaction_created(
        transaction: Transaction,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type=EntityKind.TRANSACTION.value,
            entity_id=transaction.id,
            correlation_id=correlation_id,
            description=f"{transaction.type.value.capitalize()} of {transaction.amount} recorded",
            details={
                "wallet_id": str(transaction.wallet_id),
                "category_id": str(transaction.category_id) if transaction.category_id else None,
                "amount": _money(transaction.amount),
                "type": transaction.type.value,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction: Transaction,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type=EntityKind.TRANSACTION.value,
            entity_id=transaction.id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "amount": _money(transaction.amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction: Transaction,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type=EntityKind.TRANSACTION.value,
            entity_id=transaction.id,
            correlation_id=correlation_id,
            description=f"Transaction of {transaction.amount} deleted",
            details={
                "wallet_id": str(transaction.wallet_id),
                "amount": _money(transaction.amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def category_unassigned(
        transaction: Transaction,
        previous_category_id: Optional[UUID],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_UNASSIGNED,
            entity_type=EntityKind.TRANSACTION.value,
            entity_id=transaction.id,
            correlation_id=correlation_id,
            description="Category removed from transaction",
            details={
                "previous_category_id": str(previous_category_id) if previous_category_id else None,
            },
        )

    @staticmethod
    def transfer_event(
        event_type: AuditEventType,
        transfer: TransferTransaction,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=EntityKind.TRANSFER.value,
            entity_id=transfer.id,
            correlation_id=correlation_id,
            description=f"Transfer of {transfer.amount} {verb}",
            details={
                "source_wallet_id": str(transfer.source_wallet_id),
                "target_wallet_id": str(transfer.target_wallet_id),
                "amount": _money(transfer.amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def wallet_event(
        event_type: AuditEventType,
        wallet: Wallet,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=EntityKind.WALLET.value,
            entity_id=wallet.id,
            correlation_id=correlation_id,
            description=f"Wallet '{wallet.name}' {verb}",
            details={
                "budget_id": str(wallet.budget_id),
                "balance": _money(wallet.balance),
                **(details or {}),
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_corrected(
        wallet: Wallet,
        correction: Transaction,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_CORRECTED,
            entity_type=EntityKind.WALLET.value,
            entity_id=wallet.id,
            correlation_id=correlation_id,
            description=f"Balance of '{wallet.name}' corrected to {wallet.balance}",
            details={
                "correction_transaction_id": str(correction.id),
                "correction_type": correction.type.value,
                "correction_amount": _money(correction.amount),
            },
        )

    @staticmethod
    def entity_event(
        event_type: AuditEventType,
        entity_kind: EntityKind,
        entity_id: UUID,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        """Generic builder for budget, category and goal lifecycle events."""
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_kind.value,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def goal_recalculated(
        goal: Goal,
        previous_amount: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_RECALCULATED,
            entity_type=EntityKind.GOAL.value,
            entity_id=goal.id,
            correlation_id=correlation_id,
            description=f"Goal '{goal.name}' recalculated: {previous_amount} -> {goal.actual_money_amount}",
            details={
                "previous_amount": _money(previous_amount),
                "actual_money_amount": _money(goal.actual_money_amount),
            },
        )

    @staticmethod
    def mutation_rejected(
        entity_kind: EntityKind,
        operation: str,
        error_code: str,
        error_message: str,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_kind.value,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_kind.value.capitalize()} {operation} rejected",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def conflict_detected(
        attempt: int,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFLICT_DETECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Concurrent modification detected on attempt {attempt}",
            error_code="conflict",
            error_message=error_message,
            details={"attempt": attempt},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
