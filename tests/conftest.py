"""
Shared fixtures.

No real API calls in tests: every AI capability goes through FakeGateway.
"""

import asyncio
from decimal import Decimal
from io import BytesIO
from typing import Optional, Sequence

import pytest
from PIL import Image

from zenith.agents import AIGateway
from zenith.audit import AuditLogger
from zenith.config import AppSettings
from zenith.errors import GatewayFailure
from zenith.models.finance import (
    FinancialSnapshot,
    Goal,
    GoalSuggestion,
    PlanRequest,
    ReceiptScanResult,
)
from zenith.orchestrator import FinanceSession
from zenith.services.storage import InMemoryAuditStorage


class FakeGateway(AIGateway):
    """
    Scripted AI gateway.

    plan_results is consumed in order: a string is returned, an exception
    is raised. If hold is set, plan calls wait on it before answering.
    """

    def __init__(
        self,
        plan_results: Optional[list] = None,
        category: str = "",
        goals: Optional[list[GoalSuggestion]] = None,
        receipt: Optional[ReceiptScanResult] = None,
        scenario: str = "Scenario analysis",
        fail: bool = False,
    ):
        self.plan_results = list(plan_results or [])
        self.category = category
        self.goals = goals or []
        self.receipt = receipt or ReceiptScanResult()
        self.scenario = scenario
        self.fail = fail
        self.hold: Optional[asyncio.Event] = None
        self.plan_calls: list[tuple[str, PlanRequest, Optional[str]]] = []

    def _maybe_fail(self, capability: str):
        if self.fail:
            raise GatewayFailure(capability, "service unavailable")

    async def _next_plan(self) -> str:
        if self.hold is not None:
            await self.hold.wait()
        result = self.plan_results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    async def extract_receipt(self, image_bytes: bytes, mime_type: str) -> ReceiptScanResult:
        self._maybe_fail("extract_receipt")
        return self.receipt

    async def suggest_category(self, description: str, known_categories: Sequence[str]) -> str:
        self._maybe_fail("suggest_category")
        return self.category

    async def suggest_goals(self, snapshot: FinancialSnapshot) -> list[GoalSuggestion]:
        self._maybe_fail("suggest_goals")
        return self.goals

    async def generate_plan(self, request: PlanRequest) -> str:
        self.plan_calls.append(("create", request, None))
        return await self._next_plan()

    async def update_plan(self, request: PlanRequest, prior_plan: str) -> str:
        self.plan_calls.append(("update", request, prior_plan))
        return await self._next_plan()

    async def analyze_scenario(
        self,
        scenario: str,
        snapshot: FinancialSnapshot,
        goals: Sequence[Goal],
    ) -> str:
        self._maybe_fail("analyze_scenario")
        return self.scenario


@pytest.fixture
def app_settings():
    return AppSettings(
        plan_timeout_seconds=5.0,
        recent_transaction_window=20,
        plan_request_policy="reject",
        starting_points=0,
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def session(gateway, audit_storage, app_settings):
    return FinanceSession(
        gateway=gateway,
        audit_logger=AuditLogger(audit_storage),
        settings=app_settings,
    )


def image_bytes(size=(400, 600), color=(128, 128, 128), fmt="PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def expense(description="Coffee", amount="4.50", category="Dining Out", when="2024-01-05"):
    return {
        "description": description,
        "amount": Decimal(amount),
        "date": when,
        "type": "expense",
        "category": category,
    }


def income(description="Salary", amount="100", category="Salary", when="2024-01-01"):
    return {
        "description": description,
        "amount": Decimal(amount),
        "date": when,
        "type": "income",
        "category": category,
    }
