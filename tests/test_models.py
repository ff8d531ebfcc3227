"""
Tests for Zenith

Test strategy:
1. Unit tests for individual components (models, ledger, goals, points)
2. Integration tests for flows (with a fake AI gateway)
3. No real API calls in tests (use fakes and mocks)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from zenith.models.finance import (
    DEFAULT_CATEGORIES,
    Goal,
    PlanRequest,
    PlanRequestKind,
    PlanStatus,
    ReceiptScanResult,
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


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_draft_creation(self):
        """Test TransactionDraft parses a YYYY-MM-DD date and decimal amount."""
        draft = TransactionDraft(
            description="Coffee",
            amount=4.50,
            date="2024-01-05",
            type="expense",
            category="Dining Out",
        )
        assert draft.amount == Decimal("4.5")
        assert draft.date == date(2024, 1, 5)
        assert draft.type == TransactionType.EXPENSE

    def test_draft_strips_whitespace(self):
        """Test that whitespace is stripped from description and category."""
        draft = TransactionDraft(
            description="  Coffee  ",
            amount=Decimal("1"),
            date=date(2024, 1, 5),
            type=TransactionType.EXPENSE,
            category=" Dining Out ",
        )
        assert draft.description == "Coffee"
        assert draft.category == "Dining Out"

    def test_draft_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            TransactionDraft(
                description="Test",
                amount=Decimal("-1"),
                date=date(2024, 1, 5),
                type=TransactionType.EXPENSE,
                category="Other",
            )

    def test_draft_rejects_non_finite_amount(self):
        """Test that NaN and infinity are rejected."""
        for bad in (Decimal("NaN"), Decimal("Infinity")):
            with pytest.raises(ValidationError):
                TransactionDraft(
                    description="Test",
                    amount=bad,
                    date=date(2024, 1, 5),
                    type=TransactionType.INCOME,
                    category="Other",
                )

    def test_draft_rejects_blank_category(self):
        """Test that a whitespace-only category counts as empty."""
        with pytest.raises(ValidationError):
            TransactionDraft(
                description="Test",
                amount=Decimal("1"),
                date=date(2024, 1, 5),
                type=TransactionType.INCOME,
                category="   ",
            )

    def test_transaction_is_immutable(self):
        """Test that a recorded transaction cannot be edited."""
        t = Transaction(
            description="Rent",
            amount=Decimal("1200"),
            date=date(2023, 11, 1),
            type=TransactionType.EXPENSE,
            category="Rent",
        )
        with pytest.raises(ValidationError):
            t.amount = Decimal("1")

    def test_transaction_summary_line(self):
        """Test the plain-text line used in plan requests."""
        t = Transaction(
            description="Groceries",
            amount=Decimal("150.75"),
            date=date(2023, 10, 28),
            type=TransactionType.EXPENSE,
            category="Groceries",
        )
        assert t.summary_line() == "expense of $150.75 for Groceries (Groceries) on 2023-10-28"


class TestGoalModels:
    """Tests for goal-related models."""

    def test_goal_defaults(self):
        """Test a new goal is open, idle and has no plan."""
        goal = Goal(name="New Laptop", target_amount=Decimal("1500"))
        assert goal.is_completed is False
        assert goal.plan_status == PlanStatus.IDLE
        assert goal.budget_plan is None

    def test_goal_rejects_zero_target(self):
        with pytest.raises(ValidationError):
            Goal(name="Nothing", target_amount=Decimal("0"))

    def test_plan_request_kind(self):
        """Test a prior plan turns a request into an update."""
        base = dict(
            goal_id=uuid4(),
            goal_name="Trip",
            target_amount=Decimal("500"),
            balance=Decimal("100"),
        )
        assert PlanRequest(**base).kind == PlanRequestKind.CREATE
        assert PlanRequest(**base, prior_plan="OLD").kind == PlanRequestKind.UPDATE

    def test_date_fields_accept_calendar_dates(self):
        """Test that fields named date are typed as dates, not shadowed."""
        assert TransactionDraft.model_fields["date"].annotation is date
        receipt = ReceiptScanResult(merchant="Cafe", total=Decimal("12.34"), date="2024-01-31")
        assert receipt.date == date(2024, 1, 31)

    def test_receipt_without_total_is_unusable(self):
        assert ReceiptScanResult(merchant="Cafe").is_usable is False
        assert ReceiptScanResult(total=Decimal("3.20")).is_usable is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            description="Goal added",
        )
        assert event.event_type == AuditEventType.GOAL_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_session_state_timestamp_is_aware(self):
        assert SessionState().exported_at.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.transaction_added(
            transaction_id=uuid4(),
            transaction_type="expense",
            amount=Decimal("4.5"),
            category="Dining Out",
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["details"]["amount"] == "4.5"
        assert log_dict["is_user_action"] is True

    def test_audit_event_builder_plan_failed(self):
        """Test AuditEventBuilder.plan_failed."""
        goal_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.plan_failed(
            goal_id=goal_id,
            error_message="generate_plan failed: timed out",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.PLAN_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == goal_id
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_goals_completed(self):
        ids = [uuid4(), uuid4(), uuid4()]
        event = AuditEventBuilder.goals_completed(ids, Decimal("350"))
        assert event.details["goal_ids"] == [str(i) for i in ids]
        assert "3 goal(s)" in event.description


class TestDefaultCategories:
    """Tests for the seeded category list."""

    def test_default_categories(self):
        assert DEFAULT_CATEGORIES[0] == "Groceries"
        assert "Dining Out" in DEFAULT_CATEGORIES
        assert len(DEFAULT_CATEGORIES) == len(set(DEFAULT_CATEGORIES)) == 11


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
