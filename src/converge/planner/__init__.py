"""Plan builder: diff declarations against state into ordered actions."""

from .builder import PlanBuilder, build_plan
from .models import (
    KNOWN_AFTER_APPLY,
    ActionType,
    AttributeChange,
    Plan,
    PlanStep,
    PlannedAction,
    StepPhase,
    step_key,
)

__all__ = [
    "KNOWN_AFTER_APPLY",
    "ActionType",
    "AttributeChange",
    "Plan",
    "PlanBuilder",
    "PlanStep",
    "PlannedAction",
    "StepPhase",
    "build_plan",
    "step_key",
]
