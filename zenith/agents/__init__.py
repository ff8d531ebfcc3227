"""AI gateway package."""

from zenith.agents.gateway import AIGateway
from zenith.agents.ai_agents import (
    GeminiGateway,
    build_category_prompt,
    build_goals_prompt,
    build_plan_prompt,
    build_receipt_prompt,
    build_scenario_prompt,
    build_update_prompt,
    parse_category,
    parse_goal_suggestions,
    parse_receipt,
)

__all__ = [
    "AIGateway",
    "GeminiGateway",
    "build_category_prompt",
    "build_goals_prompt",
    "build_plan_prompt",
    "build_receipt_prompt",
    "build_scenario_prompt",
    "build_update_prompt",
    "parse_category",
    "parse_goal_suggestions",
    "parse_receipt",
]
