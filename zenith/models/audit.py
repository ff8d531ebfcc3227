"""
Audit Models for Zenith

Every state transition in the session is recorded as an audit event:
ledger mutations, goal completions, point awards and each step of the
budget plan lifecycle.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    CATEGORY_REGISTERED = "category_registered"

    # Goals
    GOAL_ADDED = "goal_added"
    GOALS_COMPLETED = "goals_completed"

    # Gamification
    POINTS_AWARDED = "points_awarded"

    # Budget plans
    PLAN_REQUESTED = "plan_requested"
    PLAN_REQUEST_REJECTED = "plan_request_rejected"
    PLAN_GENERATED = "plan_generated"
    PLAN_FAILED = "plan_failed"
    PLAN_RESULT_DISCARDED = "plan_result_discarded"

    # Other AI capabilities
    RECEIPT_SCANNED = "receipt_scanned"
    PREMIUM_ACTIVATED = "premium_activated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
    Every significant action creates one of these.
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'goal', 'plan')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one plan request)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction_id, "expense", "4.50")
        event = AuditEventBuilder.plan_failed(goal_id, "timeout", correlation_id)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {transaction_type} ${amount:.2f}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: UUID, found: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=(
                "Transaction deleted" if found
                else "Delete requested for unknown transaction"
            ),
            details={"found": found},
            is_user_action=True,
        )

    @staticmethod
    def category_registered(label: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REGISTERED,
            entity_type="category",
            description=f"New category registered: {label}",
            details={"label": label},
        )

    @staticmethod
    def goal_added(goal_id: UUID, name: str, target_amount: Decimal) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Goal added: {name} (${target_amount:.2f})",
            details={
                "name": name,
                "target_amount": str(target_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def goals_completed(goal_ids: list[UUID], balance: Decimal) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOALS_COMPLETED,
            entity_type="goal",
            description=f"{len(goal_ids)} goal(s) completed at balance ${balance:.2f}",
            details={
                "goal_ids": [str(g) for g in goal_ids],
                "balance": str(balance),
            },
        )

    @staticmethod
    def points_awarded(reason: str, points: int, total: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POINTS_AWARDED,
            entity_type="points",
            description=f"+{points} points for {reason}",
            details={
                "reason": reason,
                "points": points,
                "total": total,
            },
        )

    @staticmethod
    def plan_requested(
        goal_id: UUID,
        kind: str,
        generation: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_REQUESTED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Budget plan {kind} requested",
            details={
                "kind": kind,
                "generation": generation,
            },
            is_user_action=True,
        )

    @staticmethod
    def plan_request_rejected(goal_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="goal",
            entity_id=goal_id,
            description="Budget plan request rejected: already generating",
            is_user_action=True,
        )

    @staticmethod
    def plan_generated(
        goal_id: UUID,
        kind: str,
        plan_length: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_GENERATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Budget plan {kind} committed",
            details={
                "kind": kind,
                "plan_length": plan_length,
            },
        )

    @staticmethod
    def plan_failed(
        goal_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Budget plan request failed",
            error_message=error_message,
        )

    @staticmethod
    def plan_result_discarded(
        goal_id: UUID,
        generation: int,
        latest_generation: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_RESULT_DISCARDED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Stale budget plan result discarded",
            details={
                "generation": generation,
                "latest_generation": latest_generation,
            },
        )

    @staticmethod
    def receipt_scanned(
        merchant: Optional[str],
        usable: bool,
        quality_issues: Optional[list[str]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCANNED,
            severity=AuditSeverity.INFO if usable else AuditSeverity.WARNING,
            entity_type="receipt",
            description=(
                f"Receipt scanned: {merchant or 'unknown merchant'}" if usable
                else "Receipt scan returned no total"
            ),
            details={
                "merchant": merchant,
                "usable": usable,
                "quality_issues": list(quality_issues or []),
            },
            is_user_action=True,
        )

    @staticmethod
    def premium_activated() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREMIUM_ACTIVATED,
            entity_type="session",
            description="Session upgraded to premium",
            is_user_action=True,
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

    @staticmethod
    def external_service_error(
        service: str,
        capability: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
                "capability": capability,
            },
            correlation_id=correlation_id,
        )
