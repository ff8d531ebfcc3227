"""
Data Models Package

This package contains all Pydantic models used by the Zenith finance session.
"""

from zenith.models.finance import (
    DEFAULT_CATEGORIES,
    FinancialSnapshot,
    Goal,
    GoalSuggestion,
    LedgerUpdate,
    PlanRequest,
    PlanRequestKind,
    PlanStatus,
    ReceiptScanResult,
    ScannedReceipt,
    SessionState,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from zenith.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "DEFAULT_CATEGORIES",
    "FinancialSnapshot",
    "Goal",
    "GoalSuggestion",
    "LedgerUpdate",
    "PlanRequest",
    "PlanRequestKind",
    "PlanStatus",
    "ReceiptScanResult",
    "ScannedReceipt",
    "SessionState",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
