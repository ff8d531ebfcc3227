"""
Main Orchestrator for Zenith

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger changes (mutate → snapshot → completion → points)
2. Budget plans (issue → generating → gateway → generated / error)
3. The AI helpers (category, goals, receipt scan, what-if scenarios)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every ledger change is followed by one completion pass over a fresh snapshot
- Only the plan orchestrator writes a goal's plan fields
- A gateway failure changes one goal's plan status and nothing else
- Every step is audited

State mutations are synchronous and happen before the first await of each
flow, so no flow ever observes another one half-applied.
"""

import asyncio
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union
from uuid import UUID

import structlog

from zenith.agents import AIGateway, GeminiGateway
from zenith.audit import AuditLogger, create_correlation_id
from zenith.config import AppSettings, get_settings
from zenith.errors import (
    BusyError,
    GatewayFailure,
    InvalidInputError,
    PremiumRequiredError,
)
from zenith.gamification import PointsCounter
from zenith.goals import GoalStore
from zenith.ledger import CategorySet, Ledger
from zenith.models.finance import (
    FinancialSnapshot,
    Goal,
    GoalSuggestion,
    LedgerUpdate,
    PlanRequest,
    PlanStatus,
    ScannedReceipt,
    SessionState,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from zenith.services.image import ReceiptImageService
from zenith.services.storage import InMemoryAuditStorage


logger = structlog.get_logger(__name__)

SCENARIO_FALLBACK = "Sorry, I was unable to analyze that scenario. Please try again."
SCANNED_RECEIPT_DESCRIPTION = "Scanned Receipt"
FALLBACK_CATEGORY = "Other"


class PlanOrchestrator:
    """
    Per-goal budget plan state machine.

    States: IDLE → GENERATING → {GENERATED, ERROR}, and from GENERATED or
    ERROR back to GENERATING on a new request. No terminal state.

    CONCURRENCY:
    - Requests for different goals run concurrently and never interfere
    - Each request is stamped with a per-goal generation number; only the
      most recently issued request for a goal may commit
    - With the "reject" policy a second request for a goal that is still
      generating fails with BusyError instead of being issued
    - A request that outlives the timeout counts as a gateway failure
    """

    def __init__(
        self,
        goal_store: GoalStore,
        ledger: Ledger,
        gateway: Optional[AIGateway] = None,
        audit_logger: Optional[AuditLogger] = None,
        policy: str = "reject",
        timeout_seconds: float = 60.0,
        recent_window: int = 20,
    ):
        if policy not in ("reject", "last_issued_wins"):
            raise ValueError(f"Unknown plan request policy: {policy}")
        self._goals = goal_store
        self._ledger = ledger
        self._gateway = gateway
        self._audit_logger = audit_logger
        self._policy = policy
        self._timeout = timeout_seconds
        self._recent_window = recent_window
        self._generations: dict[UUID, int] = {}
        self._tasks: dict[UUID, asyncio.Task] = {}
        self._audit_tasks: set[asyncio.Task] = set()

    @property
    def policy(self) -> str:
        return self._policy

    def generation(self, goal_id: UUID) -> int:
        """How many requests have been issued for the goal."""
        return self._generations.get(goal_id, 0)

    def in_flight(self, goal_id: UUID) -> Optional[asyncio.Task]:
        """The most recently issued, unfinished task for a goal."""
        task = self._tasks.get(goal_id)
        if task is not None and task.done():
            return None
        return task

    def build_request(self, goal: Goal, generation: int = 0) -> PlanRequest:
        """
        Capture the request context from the current ledger and goal.

        A goal that already has a plan gets an update request carrying
        that plan verbatim; otherwise a creation request.
        """
        recent = self._ledger.recent(self._recent_window)
        return PlanRequest(
            goal_id=goal.id,
            goal_name=goal.name,
            target_amount=goal.target_amount,
            balance=self._ledger.snapshot().balance,
            recent_transactions=tuple(t.summary_line() for t in recent),
            prior_plan=goal.budget_plan or None,
            generation=generation,
        )

    def start_plan(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> asyncio.Task:
        """
        Issue a plan request and schedule it on the running loop.

        The goal is GENERATING by the time this returns. Must be called
        from inside a running event loop.

        Raises:
            NotFoundError: unknown goal
            BusyError: goal already generating and policy is "reject"
        """
        goal = self._goals.get(goal_id)
        loop = asyncio.get_running_loop()

        if goal.plan_status == PlanStatus.GENERATING and self._policy == "reject":
            self._audit_rejection(goal_id)
            raise BusyError(goal_id)

        generation = self.generation(goal_id) + 1
        self._generations[goal_id] = generation

        request = self.build_request(goal, generation)
        self._goals.update_goal(goal.model_copy(update={"plan_status": PlanStatus.GENERATING}))

        task = loop.create_task(
            self._run(request, correlation_id or create_correlation_id()),
            name=f"plan-{goal_id}-{generation}",
        )
        self._tasks[goal_id] = task
        return task

    async def request_plan(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """
        Issue a plan request and wait for it to settle.

        Returns the goal as it stands after the request committed (or was
        discarded as stale). Gateway failures never propagate; they show up
        as plan_status == ERROR.

        Cancelling the caller does not cancel the request: it still runs to
        completion and commits.
        """
        try:
            task = self.start_plan(goal_id, correlation_id)
        except BusyError:
            await self.flush_audit()
            raise
        return await asyncio.shield(task)

    def _audit_rejection(self, goal_id: UUID) -> None:
        """Record a refused request without suspending the caller."""
        logger.info("plan_request_rejected", goal_id=str(goal_id))
        if not self._audit_logger:
            return
        task = asyncio.get_running_loop().create_task(
            self._audit_logger.log_plan_request_rejected(goal_id)
        )
        self._audit_tasks.add(task)
        task.add_done_callback(self._audit_tasks.discard)

    async def flush_audit(self) -> None:
        """Wait until every scheduled audit write has finished."""
        if self._audit_tasks:
            await asyncio.gather(*list(self._audit_tasks))

    async def drain(self) -> None:
        """Wait for every in-flight plan request to settle."""
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.flush_audit()

    async def _call_gateway(self, request: PlanRequest) -> str:
        capability = "update_plan" if request.prior_plan else "generate_plan"
        if self._gateway is None:
            raise GatewayFailure(capability, "AI gateway not configured")

        if request.prior_plan:
            call = self._gateway.update_plan(request, request.prior_plan)
        else:
            call = self._gateway.generate_plan(request)

        try:
            text = await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise GatewayFailure(capability, f"timed out after {self._timeout:g}s") from e

        if not isinstance(text, str) or not text.strip():
            raise GatewayFailure(capability, "empty response")
        return text

    async def _run(self, request: PlanRequest, correlation_id: UUID) -> Goal:
        """Await the gateway and commit the outcome, if still current."""
        goal_id = request.goal_id

        if self._audit_logger:
            await self._audit_logger.log_plan_requested(
                goal_id=goal_id,
                kind=request.kind.value,
                generation=request.generation,
                correlation_id=correlation_id,
            )

        plan_text: Optional[str] = None
        failure: Optional[GatewayFailure] = None
        try:
            plan_text = await self._call_gateway(request)
        except asyncio.CancelledError:
            # A cancelled request must not leave the goal GENERATING
            if request.generation == self.generation(goal_id):
                current = self._goals.get(goal_id)
                self._goals.update_goal(current.model_copy(update={
                    "plan_status": PlanStatus.ERROR,
                }))
            logger.warning(
                "plan_request_cancelled",
                goal_id=str(goal_id),
                generation=request.generation,
            )
            raise
        except GatewayFailure as e:
            failure = e
        except Exception as e:
            # A gateway that breaks its contract still only fails this goal
            failure = GatewayFailure(request.kind.value, f"{type(e).__name__}: {e}")
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="gateway_contract_violation",
                    error_message=str(e),
                    details={"goal_id": str(goal_id)},
                    correlation_id=correlation_id,
                )

        latest = self.generation(goal_id)
        if request.generation != latest:
            logger.info(
                "plan_result_discarded",
                goal_id=str(goal_id),
                generation=request.generation,
                latest_generation=latest,
            )
            if self._audit_logger:
                await self._audit_logger.log_plan_result_discarded(
                    goal_id=goal_id,
                    generation=request.generation,
                    latest_generation=latest,
                    correlation_id=correlation_id,
                )
            return self._goals.get(goal_id)

        # Re-read so completion flips made while we waited are kept
        current = self._goals.get(goal_id)
        if failure is None:
            committed = self._goals.update_goal(current.model_copy(update={
                "budget_plan": plan_text,
                "plan_status": PlanStatus.GENERATED,
            }))
            if self._audit_logger:
                await self._audit_logger.log_plan_generated(
                    goal_id=goal_id,
                    kind=request.kind.value,
                    plan_length=len(plan_text),
                    correlation_id=correlation_id,
                )
        else:
            committed = self._goals.update_goal(current.model_copy(update={
                "plan_status": PlanStatus.ERROR,
            }))
            if self._audit_logger:
                await self._audit_logger.log_plan_failed(
                    goal_id=goal_id,
                    error_message=str(failure),
                    correlation_id=correlation_id,
                )

        return committed


class FinanceSession:
    """
    Session-scoped context for one user.

    Owns the ledger, goal store, points counter and plan orchestrator.
    There are no module-level singletons: two sessions never share state.
    """

    def __init__(
        self,
        gateway: Optional[AIGateway] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        image_service: Optional[ReceiptImageService] = None,
        categories: Optional[CategorySet] = None,
    ):
        self._settings = settings or get_settings().app
        self._gateway = gateway
        self._audit_logger = audit_logger
        self._image_service = image_service or ReceiptImageService(self._settings)

        self.ledger = Ledger(categories)
        self.goal_store = GoalStore()
        self.points_counter = PointsCounter(self._settings.starting_points)
        self.plans = PlanOrchestrator(
            goal_store=self.goal_store,
            ledger=self.ledger,
            gateway=gateway,
            audit_logger=audit_logger,
            policy=self._settings.plan_request_policy,
            timeout_seconds=self._settings.plan_timeout_seconds,
            recent_window=self._settings.recent_transaction_window,
        )
        self._is_premium = False

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def points(self) -> int:
        return self.points_counter.points

    @property
    def is_premium(self) -> bool:
        return self._is_premium

    @property
    def transactions(self) -> list[Transaction]:
        return self.ledger.transactions

    @property
    def goals(self) -> list[Goal]:
        return self.goal_store.goals

    @property
    def categories(self) -> list[str]:
        return self.ledger.categories.labels

    def snapshot(self) -> FinancialSnapshot:
        return self.ledger.snapshot()

    def export_state(self) -> SessionState:
        """Serializable copy of everything the session holds."""
        return SessionState(
            transactions=self.ledger.transactions,
            goals=self.goal_store.goals,
            categories=self.ledger.categories.labels,
            points=self.points,
            is_premium=self._is_premium,
        )

    # -------------------------------------------------------------------------
    # Ledger flow
    # -------------------------------------------------------------------------

    def _settle(
        self,
        snapshot: FinancialSnapshot,
        transactions: Sequence[Transaction],
        transaction_points: int,
    ) -> LedgerUpdate:
        """One completion pass over a fresh snapshot, then points."""
        completed = self.goal_store.evaluate_completion(snapshot)
        completion_points = self.points_counter.on_goals_completed(len(completed))
        return LedgerUpdate(
            snapshot=snapshot,
            transactions=tuple(transactions),
            completed_goals=tuple(completed),
            points_awarded=transaction_points + completion_points,
        )

    async def _audit_ledger_update(
        self,
        update: LedgerUpdate,
        new_categories: Sequence[str],
    ) -> None:
        if not self._audit_logger:
            return
        for t in update.transactions:
            await self._audit_logger.log_transaction_added(
                transaction_id=t.id,
                transaction_type=t.type.value,
                amount=t.amount,
                category=t.category,
            )
        for label in new_categories:
            await self._audit_logger.log_category_registered(label)
        if update.completed_goals:
            await self._audit_logger.log_goals_completed(
                goal_ids=[g.id for g in update.completed_goals],
                balance=update.snapshot.balance,
            )
        if update.points_awarded:
            await self._audit_logger.log_points_awarded(
                reason="ledger update",
                points=update.points_awarded,
                total=self.points,
            )

    async def add_transaction(
        self,
        data: Union[TransactionDraft, Mapping[str, Any]],
    ) -> LedgerUpdate:
        """
        Record one transaction.

        Raises:
            InvalidInputError: nothing recorded, no points awarded
        """
        transaction, snapshot, is_new_category = self.ledger.add_transaction(data)
        awarded = self.points_counter.on_transactions_added(1)
        update = self._settle(snapshot, [transaction], awarded)

        await self._audit_ledger_update(update, [transaction.category] if is_new_category else [])
        return update

    async def add_transactions(
        self,
        batch: Sequence[Union[TransactionDraft, Mapping[str, Any]]],
    ) -> LedgerUpdate:
        """
        Record several transactions as a single balance update.

        All goals crossed by the batch complete together in one pass.
        """
        added, snapshot, new_categories = self.ledger.add_transactions(batch)
        awarded = self.points_counter.on_transactions_added(len(added))
        update = self._settle(snapshot, added, awarded)

        await self._audit_ledger_update(update, new_categories)
        return update

    async def delete_transaction(self, transaction_id: UUID) -> LedgerUpdate:
        """Remove a transaction. Unknown ids are a no-op."""
        removed, snapshot = self.ledger.delete_transaction(transaction_id)
        update = self._settle(snapshot, [], 0)

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id, removed)
        await self._audit_ledger_update(update, [])
        return update

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    async def add_goal(self, name: str, target_amount: Any) -> Goal:
        """
        Create a goal (+25 points).

        A goal whose target the balance already covers completes at once.

        Raises:
            InvalidInputError: empty name or non-positive target
        """
        goal = self.goal_store.add_goal(name, target_amount)
        awarded = self.points_counter.on_goal_added()
        update = self._settle(self.ledger.snapshot(), [], awarded)

        if self._audit_logger:
            await self._audit_logger.log_goal_added(goal.id, goal.name, goal.target_amount)
        await self._audit_ledger_update(update, [])
        return self.goal_store.get(goal.id)

    async def accept_goal_suggestion(self, suggestion: GoalSuggestion) -> Goal:
        return await self.add_goal(suggestion.name, suggestion.target_amount)

    # -------------------------------------------------------------------------
    # Budget plans
    # -------------------------------------------------------------------------

    def start_plan(self, goal_id: UUID) -> asyncio.Task:
        return self.plans.start_plan(goal_id)

    async def request_plan(self, goal_id: UUID) -> Goal:
        return await self.plans.request_plan(goal_id)

    # -------------------------------------------------------------------------
    # AI helpers
    # -------------------------------------------------------------------------

    async def _log_gateway_failure(self, e: GatewayFailure) -> None:
        logger.warning("gateway_failure", capability=e.capability, error=str(e))
        if self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="ai_gateway",
                capability=e.capability,
                error_message=str(e),
            )

    async def suggest_category(self, description: str) -> str:
        """Suggested category label, or "" when there is none."""
        if not description or not description.strip() or self._gateway is None:
            return ""
        try:
            return await self._gateway.suggest_category(description.strip(), self.categories)
        except GatewayFailure as e:
            await self._log_gateway_failure(e)
            return ""

    async def suggest_goals(self) -> list[GoalSuggestion]:
        """AI goal suggestions for the current financials; [] on failure."""
        if self._gateway is None:
            return []
        try:
            return await self._gateway.suggest_goals(self.ledger.snapshot())
        except GatewayFailure as e:
            await self._log_gateway_failure(e)
            return []

    def _require_premium(self, feature: str) -> None:
        if not self._is_premium:
            raise PremiumRequiredError(feature)

    async def upgrade_to_premium(self) -> None:
        if self._is_premium:
            return
        self._is_premium = True
        if self._audit_logger:
            await self._audit_logger.log_premium_activated()

    async def scan_receipt(self, image_bytes: bytes) -> ScannedReceipt:
        """
        Turn a receipt photo into a pre-filled expense draft.

        The draft is NOT recorded; the user reviews it and submits it through
        add_transaction. Lighting problems found in the photo come back as
        quality_issues alongside the draft.

        Raises:
            PremiumRequiredError: free session
            InvalidInputError: unreadable or unsupported image
            GatewayFailure: the AI failed or could not read a total
        """
        self._require_premium("Receipt scanning")
        prepared = self._image_service.prepare(image_bytes)

        if self._gateway is None:
            raise GatewayFailure("extract_receipt", "AI gateway not configured")
        try:
            result = await self._gateway.extract_receipt(prepared.data, prepared.mime_type)
        except GatewayFailure as e:
            await self._log_gateway_failure(e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_receipt_scanned(
                result.merchant,
                result.is_usable,
                prepared.quality_issues,
            )
        if not result.is_usable:
            raise GatewayFailure("extract_receipt", "no total found on receipt")

        description = result.merchant or SCANNED_RECEIPT_DESCRIPTION
        category = await self.suggest_category(description) or FALLBACK_CATEGORY
        try:
            draft = TransactionDraft(
                description=description,
                amount=result.total,
                date=result.date or date.today(),
                type=TransactionType.EXPENSE,
                category=category,
            )
        except ValueError as e:
            raise InvalidInputError(f"Scanned receipt is not a valid transaction: {e}") from e
        return ScannedReceipt(draft=draft, quality_issues=prepared.quality_issues)

    async def analyze_scenario(self, scenario: str) -> str:
        """
        What-if analysis against the current balance and goals.

        Raises:
            PremiumRequiredError: free session
            InvalidInputError: empty scenario
        """
        self._require_premium("Scenario planning")
        if not scenario or not scenario.strip():
            raise InvalidInputError("Scenario cannot be empty", field="scenario")
        if self._gateway is None:
            return SCENARIO_FALLBACK
        try:
            return await self._gateway.analyze_scenario(
                scenario.strip(),
                self.ledger.snapshot(),
                self.goal_store.goals,
            )
        except GatewayFailure as e:
            await self._log_gateway_failure(e)
            return SCENARIO_FALLBACK


def create_app_components(
    use_ai: bool = True,
) -> FinanceSession:
    """
    Factory function to create a fully wired session.

    Args:
        use_ai: Whether to initialize the Gemini gateway.
                Set to False for running without an API key.

    Returns:
        A FinanceSession with an in-memory audit trail.
    """
    audit_logger = AuditLogger(InMemoryAuditStorage())

    gateway = None
    if use_ai:
        try:
            gateway = GeminiGateway()
        except Exception as e:
            # AI not configured - continue without it
            logger.warning("ai_gateway_unavailable", error=str(e))
            gateway = None

    return FinanceSession(gateway=gateway, audit_logger=audit_logger)
