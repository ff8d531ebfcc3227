"""
Gemini-backed AI Gateway for Zenith

DESIGN DECISION: The AI is an ADVISOR, not a bookkeeper.
- It can suggest a category, read a receipt, propose goals and write plans
- It never mutates the ledger or goals itself
- Everything it returns is either validated into a model or treated as
  opaque text that the session stores verbatim

Prompt construction and response parsing are plain functions so they can be
tested without a network connection. The GeminiGateway class only adds the
SDK call, bounded retries for transient transport errors, and conversion of
every failure into GatewayFailure.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from zenith.agents.gateway import AIGateway
from zenith.config import GeminiSettings, get_settings
from zenith.errors import GatewayFailure
from zenith.models.finance import (
    FinancialSnapshot,
    Goal,
    GoalSuggestion,
    PlanRequest,
    ReceiptScanResult,
)


PLAN_SYSTEM_INSTRUCTION = (
    "You are a friendly budget planner creating simple, motivational financial plans."
)
PLAN_UPDATE_SYSTEM_INSTRUCTION = (
    "You are a friendly budget planner updating a user's financial plan."
)
SCENARIO_SYSTEM_INSTRUCTION = (
    'You are a helpful financial advisor providing "what-if" scenario analysis.'
)

TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.ResourceExhausted,
)


# =============================================================================
# PROMPTS
# =============================================================================

def build_plan_prompt(request: PlanRequest) -> str:
    """Prompt for a first plan. Requests summary, timeline, limits and tips."""
    return f"""A user wants a budget plan to save for their goal: "{request.goal_name}" which has a target of ${request.target_amount:.2f}. Their current balance is ${request.balance:.2f}. Here are their {len(request.recent_transactions)} most recent transactions to understand their spending habits:
{request.transactions_text}

Create a simple, actionable budget plan in markdown.

The plan MUST start with a "Summary" section inside a markdown blockquote (>). This summary should give a one-sentence overview of the projected timeline and the single most important action they should take.

After the summary, include these sections:
- **Projected Timeline:** A realistic estimate of how long it will take to reach the goal.
- **Spending Limits:** Specific monthly spending limits for 2-3 key expense categories based on their history.
- **Personalized Savings Tips:** Two actionable tips based on their transactions."""


def build_update_prompt(request: PlanRequest, prior_plan: str) -> str:
    """Prompt for a refresh. Carries the prior plan verbatim."""
    return f"""A user wants to update their budget plan for the goal: "{request.goal_name}" (Target: ${request.target_amount:.2f}). Their current balance is ${request.balance:.2f}.

Here is their **previous plan**:
---
{prior_plan}
---

Here are their **{len(request.recent_transactions)} most recent transactions** to analyze their latest spending habits:
---
{request.transactions_text}
---

Analyze their progress and recent spending. Generate an **updated, complete budget plan** in markdown.
- The new plan should replace the old one entirely.
- **Crucially, identify any significant "unplanned" spending** that deviates from the previous plan's suggestions and mention how to get back on track.
- Start with an updated "Summary" blockquote.
- Include updated Timeline, Spending Limits, and Savings Tips sections."""


def build_category_prompt(description: str, known_categories: Sequence[str]) -> str:
    return (
        f'Given the transaction description "{description}", suggest the most likely category. '
        f"Prioritize categories from this list: [{', '.join(known_categories)}]. "
        "If none fit well, suggest a new, appropriate, single-word category. "
        "Respond with only the category name, without any extra text or punctuation."
    )


def build_goals_prompt(snapshot: FinancialSnapshot) -> str:
    return (
        f"Based on the user's financials (Monthly Income: ${snapshot.total_income:.2f}, "
        f"Monthly Expenses: ${snapshot.total_expenses:.2f}, "
        f"Current Balance: ${snapshot.balance:.2f}), suggest three distinct and realistic "
        "savings goals with appropriate target amounts.\n\n"
        'Respond with ONLY a JSON array in this exact format:\n'
        '[{"name": "goal name", "targetAmount": 1000}]'
    )


def build_receipt_prompt() -> str:
    return (
        "Analyze this receipt image. Extract merchant name, total amount (as a number), "
        "and date (in YYYY-MM-DD format).\n\n"
        "Respond with ONLY a JSON object in this exact format:\n"
        '{"merchant": "name", "total": 12.34, "date": "2024-01-31"}\n'
        "Omit any field you cannot read."
    )


def build_scenario_prompt(
    scenario: str,
    snapshot: FinancialSnapshot,
    goals: Sequence[Goal],
) -> str:
    goals_str = ", ".join(f"{g.name} (${g.target_amount:.2f})" for g in goals) or "none"
    return f"""A user wants to know the impact of a financial scenario.
Current Financials:
- Monthly Income: ${snapshot.total_income:.2f}
- Monthly Expenses: ${snapshot.total_expenses:.2f}
- Current Balance: ${snapshot.balance:.2f}
- Savings Goals: {goals_str}

Scenario: "{scenario}"

Analyze the impact of this scenario on their balance and savings goals. Provide a concise summary and updated timelines for their goals. Respond in simple markdown format."""


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _extract_json(text: str, opener: str, closer: str) -> Any:
    """Find and decode the outermost JSON value delimited by opener/closer."""
    start = text.find(opener)
    end = text.rfind(closer) + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON found in response")
    return json.loads(text[start:end])


def parse_category(text: str) -> str:
    """Clean a free-text category answer. Empty means no suggestion."""
    label = text.strip().splitlines()[0] if text.strip() else ""
    return label.strip().strip("\"'`.*").strip()


def parse_goal_suggestions(text: str) -> list[GoalSuggestion]:
    """
    Decode a JSON array of goal suggestions.

    Entries that are not usable goals are skipped. A response that is not
    JSON at all is an error.
    """
    data = _extract_json(text, "[", "]")
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of goals")

    suggestions = []
    for item in data:
        if not isinstance(item, dict):
            continue
        target = item.get("targetAmount", item.get("target_amount"))
        try:
            suggestions.append(GoalSuggestion(name=item.get("name") or "", target_amount=target))
        except ValidationError:
            continue
    return suggestions


def parse_receipt(text: str) -> ReceiptScanResult:
    """
    Decode a receipt extraction.

    Unreadable fields are dropped rather than failing the whole scan.
    """
    data = _extract_json(text, "{", "}")
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")

    merchant = data.get("merchant")
    if merchant is not None:
        merchant = str(merchant).strip() or None

    total: Optional[Decimal] = None
    if data.get("total") is not None:
        try:
            total = Decimal(str(data["total"])).quantize(Decimal("0.01"))
            if not total.is_finite() or total < 0:
                total = None
        except (InvalidOperation, TypeError, ValueError):
            total = None

    try:
        return ReceiptScanResult(merchant=merchant, total=total, date=data.get("date"))
    except ValidationError:
        return ReceiptScanResult(merchant=merchant, total=total)


# =============================================================================
# GATEWAY
# =============================================================================

class GeminiGateway(AIGateway):
    """
    AI gateway backed by Google Gemini.

    BOUNDARIES:
    - NEVER raises anything but GatewayFailure
    - NEVER returns empty plan text as a success
    - Retries only transient transport errors, a bounded number of times
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _model(self, system_instruction: Optional[str] = None, json_mode: bool = False):
        generation_config = {
            "temperature": self._settings.temperature,
            "max_output_tokens": self._settings.max_tokens,
        }
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )

    async def _generate(
        self,
        capability: str,
        contents: Any,
        system_instruction: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """Call the model and return its text, converting every failure."""
        model = self._model(system_instruction=system_instruction, json_mode=json_mode)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=8),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await model.generate_content_async(contents)
            # .text raises ValueError when the response was blocked or empty
            return response.text
        except Exception as e:
            raise GatewayFailure(capability, str(e) or type(e).__name__) from e

    async def extract_receipt(
        self,
        image_bytes: bytes,
        mime_type: str,
    ) -> ReceiptScanResult:
        text = await self._generate(
            "extract_receipt",
            [{"mime_type": mime_type, "data": image_bytes}, build_receipt_prompt()],
            json_mode=True,
        )
        try:
            return parse_receipt(text)
        except ValueError as e:
            raise GatewayFailure("extract_receipt", f"unusable response: {e}") from e

    async def suggest_category(
        self,
        description: str,
        known_categories: Sequence[str],
    ) -> str:
        text = await self._generate(
            "suggest_category",
            build_category_prompt(description, known_categories),
        )
        return parse_category(text)

    async def suggest_goals(self, snapshot: FinancialSnapshot) -> list[GoalSuggestion]:
        text = await self._generate(
            "suggest_goals",
            build_goals_prompt(snapshot),
            json_mode=True,
        )
        try:
            return parse_goal_suggestions(text)
        except ValueError as e:
            raise GatewayFailure("suggest_goals", f"unusable response: {e}") from e

    async def generate_plan(self, request: PlanRequest) -> str:
        text = await self._generate(
            "generate_plan",
            build_plan_prompt(request),
            system_instruction=PLAN_SYSTEM_INSTRUCTION,
        )
        return self._require_text("generate_plan", text)

    async def update_plan(self, request: PlanRequest, prior_plan: str) -> str:
        text = await self._generate(
            "update_plan",
            build_update_prompt(request, prior_plan),
            system_instruction=PLAN_UPDATE_SYSTEM_INSTRUCTION,
        )
        return self._require_text("update_plan", text)

    async def analyze_scenario(
        self,
        scenario: str,
        snapshot: FinancialSnapshot,
        goals: Sequence[Goal],
    ) -> str:
        text = await self._generate(
            "analyze_scenario",
            build_scenario_prompt(scenario, snapshot, goals),
            system_instruction=SCENARIO_SYSTEM_INSTRUCTION,
        )
        return self._require_text("analyze_scenario", text)

    @staticmethod
    def _require_text(capability: str, text: Optional[str]) -> str:
        if not text or not text.strip():
            raise GatewayFailure(capability, "empty response")
        return text
