"""
Core Data Models for Zenith

These models define the schemas for everything the finance session holds:
transactions, goals, their derived aggregates and the values exchanged with
the AI gateway.

DESIGN DECISION: Amounts are Decimal, never float. Aggregates are summed
exactly so that balance == income - expenses holds to the cent.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Groceries",
    "Dining Out",
    "Transport",
    "Utilities",
    "Rent",
    "Entertainment",
    "Shopping",
    "Health",
    "Salary",
    "Freelance",
    "Other",
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Decides its sign in aggregation."""
    INCOME = "income"
    EXPENSE = "expense"


class PlanStatus(str, Enum):
    """
    Budget plan lifecycle for a single goal.

    IDLE is initial. There is no terminal state: from GENERATED or ERROR
    a new request goes back to GENERATING.
    """
    IDLE = "idle"
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"


class PlanRequestKind(str, Enum):
    """Whether a plan request creates a fresh plan or refreshes a prior one."""
    CREATE = "create"
    UPDATE = "update"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    User-submitted transaction data, before it gets an id.

    Validation of a draft is the only place InvalidInput can arise
    for the ledger.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount, always non-negative; the type gives the sign"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction (YYYY-MM-DD)"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-form category label"
    )

    @field_validator("amount")
    @classmethod
    def validate_finite(cls, v: Decimal) -> Decimal:
        """NaN and infinities are not amounts."""
        if not v.is_finite():
            raise ValueError("Amount must be a finite number")
        return v


class Transaction(TransactionDraft):
    """
    A recorded transaction.

    Immutable once created. The ledger deletes it by id, it never edits it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )

    def summary_line(self) -> str:
        """Plain-text line used in plan request context."""
        return (
            f"{self.type.value} of ${self.amount:.2f} for {self.description} "
            f"({self.category}) on {self.date.isoformat()}"
        )


class FinancialSnapshot(BaseModel):
    """
    Derived aggregates over the full ledger.

    Never stored; recomputed from the transactions on every read.
    """
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


# =============================================================================
# GOALS
# =============================================================================

class Goal(BaseModel):
    """
    A savings goal tracked against the ledger balance.

    name and target_amount are fixed after creation. is_completed,
    budget_plan and plan_status are written by the system only.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique goal ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name"
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        description="Balance at which the goal completes"
    )
    is_completed: bool = False
    budget_plan: Optional[str] = Field(
        default=None,
        description="Opaque AI-generated plan text"
    )
    plan_status: PlanStatus = PlanStatus.IDLE

    @field_validator("target_amount")
    @classmethod
    def validate_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Target amount must be a finite number")
        return v


class GoalSuggestion(BaseModel):
    """A goal proposed by the AI. Becomes a Goal only when accepted."""

    name: str = Field(..., min_length=1)
    target_amount: Decimal = Field(..., gt=0)


# =============================================================================
# AI GATEWAY VALUES
# =============================================================================

class ReceiptScanResult(BaseModel):
    """
    What the AI could read off a receipt.

    Every field is optional. A result without total is an extraction failure
    for the caller.
    """

    merchant: Optional[str] = None
    total: Optional[Decimal] = Field(default=None, ge=0)
    date: Optional[dt.date] = None

    @property
    def is_usable(self) -> bool:
        return self.total is not None


class PlanRequest(BaseModel):
    """
    Everything the gateway gets for one plan creation or update.

    Built from a snapshot of the ledger and goal at the moment the request
    is issued.
    """
    model_config = ConfigDict(frozen=True)

    request_id: UUID = Field(default_factory=uuid4)
    goal_id: UUID
    goal_name: str
    target_amount: Decimal
    balance: Decimal
    recent_transactions: tuple[str, ...] = ()
    prior_plan: Optional[str] = None
    generation: int = Field(
        default=0,
        ge=0,
        description="Per-goal issue counter at the time of the request"
    )

    @property
    def kind(self) -> PlanRequestKind:
        return PlanRequestKind.UPDATE if self.prior_plan else PlanRequestKind.CREATE

    @property
    def transactions_text(self) -> str:
        return "\n".join(self.recent_transactions)


# =============================================================================
# SESSION RESULTS
# =============================================================================

class LedgerUpdate(BaseModel):
    """Outcome of one ledger mutation after completion and points ran."""
    model_config = ConfigDict(frozen=True)

    snapshot: FinancialSnapshot
    transactions: tuple[Transaction, ...] = ()
    completed_goals: tuple[Goal, ...] = ()
    points_awarded: int = Field(default=0, ge=0)


class ScannedReceipt(BaseModel):
    """A pre-filled expense for the user to review, with any photo warnings."""

    draft: TransactionDraft
    quality_issues: list[str] = Field(default_factory=list)


class SessionState(BaseModel):
    """
    Serializable view of a whole session.

    Persistence is outside the core; this is the layout a store would write.
    """

    exported_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )
    transactions: list[Transaction] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    points: int = Field(default=0, ge=0)
    is_premium: bool = False
