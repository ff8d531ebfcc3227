"""Gamification package."""

from zenith.gamification.points import (
    POINTS_FOR_COMPLETING_GOAL,
    POINTS_FOR_NEW_GOAL,
    POINTS_FOR_TRANSACTION,
    PointsCounter,
)

__all__ = [
    "POINTS_FOR_COMPLETING_GOAL",
    "POINTS_FOR_NEW_GOAL",
    "POINTS_FOR_TRANSACTION",
    "PointsCounter",
]
