"""
Audit Logger

DESIGN DECISION: Every state transition in the session is logged.
This provides:
1. Complete traceability of ledger, goal and plan changes
2. Debugging capability when the AI misbehaves
3. A history the user can inspect

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace one plan request end to end
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from zenith.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from zenith.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("zenith.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        category: str,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
        ))

    async def log_transaction_deleted(self, transaction_id: UUID, found: bool) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, found))

    async def log_category_registered(self, label: str) -> None:
        await self.log(AuditEventBuilder.category_registered(label))

    async def log_goal_added(self, goal_id: UUID, name: str, target_amount: Decimal) -> None:
        await self.log(AuditEventBuilder.goal_added(goal_id, name, target_amount))

    async def log_goals_completed(self, goal_ids: list[UUID], balance: Decimal) -> None:
        await self.log(AuditEventBuilder.goals_completed(goal_ids, balance))

    async def log_points_awarded(self, reason: str, points: int, total: int) -> None:
        await self.log(AuditEventBuilder.points_awarded(reason, points, total))

    async def log_plan_requested(
        self,
        goal_id: UUID,
        kind: str,
        generation: int,
        correlation_id: UUID,
    ) -> None:
        """Log a plan creation/update request."""
        await self.log(AuditEventBuilder.plan_requested(
            goal_id=goal_id,
            kind=kind,
            generation=generation,
            correlation_id=correlation_id,
        ))

    async def log_plan_request_rejected(self, goal_id: UUID) -> None:
        await self.log(AuditEventBuilder.plan_request_rejected(goal_id))

    async def log_plan_generated(
        self,
        goal_id: UUID,
        kind: str,
        plan_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log a committed plan."""
        await self.log(AuditEventBuilder.plan_generated(
            goal_id=goal_id,
            kind=kind,
            plan_length=plan_length,
            correlation_id=correlation_id,
        ))

    async def log_plan_failed(
        self,
        goal_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a plan request that ended in the error state."""
        await self.log(AuditEventBuilder.plan_failed(
            goal_id=goal_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_plan_result_discarded(
        self,
        goal_id: UUID,
        generation: int,
        latest_generation: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.plan_result_discarded(
            goal_id=goal_id,
            generation=generation,
            latest_generation=latest_generation,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scanned(
        self,
        merchant: Optional[str],
        usable: bool,
        quality_issues: Optional[list[str]] = None,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scanned(merchant, usable, quality_issues))

    async def log_premium_activated(self) -> None:
        await self.log(AuditEventBuilder.premium_activated())

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        capability: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            capability=capability,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a plan request).
    Pass it through all subsequent operations.
    """
    return uuid4()
