"""
Gamification Counter

Pure reactive point rules. The session calls these after the triggering
event has been applied; nothing else writes the counter, and points are
never deducted.
"""

from zenith.errors import InvalidInputError


POINTS_FOR_TRANSACTION = 10
POINTS_FOR_NEW_GOAL = 25
POINTS_FOR_COMPLETING_GOAL = 100


class PointsCounter:
    """Monotonically increasing, non-negative point total."""

    def __init__(self, starting_points: int = 0):
        if starting_points < 0:
            raise InvalidInputError("Starting points cannot be negative", field="starting_points")
        self._points = starting_points

    @property
    def points(self) -> int:
        return self._points

    def _award(self, amount: int) -> int:
        self._points += amount
        return amount

    def on_transactions_added(self, count: int = 1) -> int:
        """+10 per recorded transaction. Returns the points awarded."""
        return self._award(POINTS_FOR_TRANSACTION * max(count, 0))

    def on_goal_added(self) -> int:
        """+25 per new goal."""
        return self._award(POINTS_FOR_NEW_GOAL)

    def on_goals_completed(self, count: int) -> int:
        """+100 for each goal completed in one evaluation pass."""
        return self._award(POINTS_FOR_COMPLETING_GOAL * max(count, 0))
