"""
Error taxonomy for the finance session.

InvalidInputError and NotFoundError are raised synchronously with no partial
mutation. GatewayFailure is caught at the plan orchestrator boundary and
turned into the ERROR plan status. BusyError refuses a second plan request
for a goal that is still generating.
"""

from typing import Optional
from uuid import UUID


class ZenithError(Exception):
    """Base exception for all finance session errors."""
    pass


class InvalidInputError(ZenithError):
    """User-supplied data is malformed (bad amount, empty required field)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(ZenithError):
    """An operation referenced an unknown id."""

    def __init__(self, entity_type: str, entity_id: UUID):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class GatewayFailure(ZenithError):
    """The AI collaborator errored, timed out, or returned unusable content."""

    def __init__(self, capability: str, message: str):
        self.capability = capability
        super().__init__(f"{capability} failed: {message}")


class BusyError(ZenithError):
    """A plan request was issued while one is already in flight for the goal."""

    def __init__(self, goal_id: UUID):
        self.goal_id = goal_id
        super().__init__(f"A budget plan is already being generated for goal {goal_id}")


class PremiumRequiredError(ZenithError):
    """A premium capability was used on a free session."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"{feature} is a premium feature")
