"""
AI Gateway Interface

DESIGN DECISION: The core never talks to an AI SDK directly. It calls this
abstract boundary, which allows us to:
1. Swap Gemini for another provider
2. Use scripted fakes in tests
3. Keep failure handling in one place

CONTRACT: Implementations raise GatewayFailure and nothing else.
Any SDK, transport or parsing error is converted at this boundary.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from zenith.models.finance import (
    FinancialSnapshot,
    Goal,
    GoalSuggestion,
    PlanRequest,
    ReceiptScanResult,
)


class AIGateway(ABC):
    """Abstract AI capabilities consumed by the finance session."""

    @abstractmethod
    async def extract_receipt(
        self,
        image_bytes: bytes,
        mime_type: str,
    ) -> ReceiptScanResult:
        """
        Read merchant, total and date off a receipt image.

        May return a partial or empty result. A missing total is an
        extraction failure for the caller.

        Raises:
            GatewayFailure
        """
        pass

    @abstractmethod
    async def suggest_category(
        self,
        description: str,
        known_categories: Sequence[str],
    ) -> str:
        """
        Suggest a category label for a transaction description.

        Returns "" when there is no suggestion.

        Raises:
            GatewayFailure
        """
        pass

    @abstractmethod
    async def suggest_goals(
        self,
        snapshot: FinancialSnapshot,
    ) -> list[GoalSuggestion]:
        """
        Propose savings goals for the current financials. May be empty.

        Raises:
            GatewayFailure
        """
        pass

    @abstractmethod
    async def generate_plan(self, request: PlanRequest) -> str:
        """
        Create a budget plan for a goal that has none yet.

        Raises:
            GatewayFailure
        """
        pass

    @abstractmethod
    async def update_plan(self, request: PlanRequest, prior_plan: str) -> str:
        """
        Refresh an existing plan, calling out spending that deviated from it.

        Raises:
            GatewayFailure
        """
        pass

    @abstractmethod
    async def analyze_scenario(
        self,
        scenario: str,
        snapshot: FinancialSnapshot,
        goals: Sequence[Goal],
    ) -> str:
        """
        Describe the impact of a what-if scenario on balance and goals.

        Raises:
            GatewayFailure
        """
        pass
