"""
Goal Store & Completion Rule

Holds the savings goals and applies the completion rule against a ledger
snapshot.

CRITICAL: Completion is monotonic. A goal flips from open to completed at
most once and never flips back, whatever is written to the store later.

All goals that cross their target in the same balance update complete in
the same pass, so the caller sees one batch and awards points once for
the whole batch.
"""

from decimal import Decimal
from typing import Iterator
from uuid import UUID

from pydantic import ValidationError

from zenith.errors import InvalidInputError, NotFoundError
from zenith.models.finance import FinancialSnapshot, Goal


class GoalStore:
    """Goals in display order (newest first)."""

    def __init__(self):
        self._goals: list[Goal] = []

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals)

    def __iter__(self) -> Iterator[Goal]:
        return iter(list(self._goals))

    def __len__(self) -> int:
        return len(self._goals)

    def add_goal(self, name: str, target_amount: Decimal) -> Goal:
        """
        Create an open goal with no plan.

        Raises:
            InvalidInputError: empty name or non-positive target
        """
        try:
            goal = Goal(name=name, target_amount=target_amount)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise InvalidInputError(
                f"Invalid goal: {first.get('msg', str(e))}",
                field=field,
            ) from e

        self._goals.insert(0, goal)
        return goal

    def get(self, goal_id: UUID) -> Goal:
        """
        Raises:
            NotFoundError: no goal with that id
        """
        for goal in self._goals:
            if goal.id == goal_id:
                return goal
        raise NotFoundError("goal", goal_id)

    def evaluate_completion(self, snapshot: FinancialSnapshot) -> list[Goal]:
        """
        Complete every open goal whose target the balance has reached.

        Returns the goals completed in this pass (empty if none).
        """
        completed: list[Goal] = []
        updated: list[Goal] = []
        for goal in self._goals:
            if not goal.is_completed and snapshot.balance >= goal.target_amount:
                goal = goal.model_copy(update={"is_completed": True})
                completed.append(goal)
            updated.append(goal)

        if completed:
            self._goals = updated
        return completed

    def update_goal(self, goal: Goal) -> Goal:
        """
        Replace a goal record by id.

        Completion is preserved: writing back a copy taken before the goal
        completed does not reopen it.

        Raises:
            NotFoundError: no goal with that id
        """
        for i, existing in enumerate(self._goals):
            if existing.id == goal.id:
                if existing.is_completed and not goal.is_completed:
                    goal = goal.model_copy(update={"is_completed": True})
                self._goals[i] = goal
                return goal
        raise NotFoundError("goal", goal.id)
