"""Goal store package."""

from zenith.goals.store import GoalStore

__all__ = ["GoalStore"]
