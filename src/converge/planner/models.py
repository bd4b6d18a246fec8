"""Pydantic models for reconciliation plans."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from ..registry import Resource, ResourceAddress

KNOWN_AFTER_APPLY = "(known after apply)"


class ActionType(str, Enum):
    """Per-resource reconciliation action."""
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DESTROY = "destroy"
    NO_OP = "no-op"


class StepPhase(str, Enum):
    """Executable half of an action: replace has both, the others one."""
    DESTROY = "destroy"
    APPLY = "apply"


class AttributeChange(BaseModel):
    """One attribute that differs between state and declaration."""
    name: str
    before: Any = None
    after: Any = None
    known_after_apply: bool = Field(default=False, description="After value depends on a resource not yet applied")
    forces_replacement: bool = Field(default=False, description="Attribute is immutable for this kind")


class PlannedAction(BaseModel):
    """Action for one resource, with everything the executor needs."""
    address: ResourceAddress
    action: ActionType
    provider_id: Optional[str] = Field(default=None, description="Existing provider id (update/replace/destroy/no-op)")
    resource: Optional[Resource] = Field(default=None, description="Declaration (absent for destroy)")
    depends_on: List[ResourceAddress] = Field(default_factory=list, description="Declared dependencies")
    changes: List[AttributeChange] = Field(default_factory=list)
    dependencies_changed: bool = Field(default=False, description="Recorded depends_on differs from the declared graph")
    
    @property
    def is_change(self) -> bool:
        return self.action != ActionType.NO_OP
    
    @property
    def replace_reasons(self) -> List[str]:
        return [change.name for change in self.changes if change.forces_replacement]


class PlanStep(BaseModel):
    """Schedulable unit: one phase of one action plus the steps it waits for."""
    address: ResourceAddress
    phase: StepPhase
    requires: List[str] = Field(default_factory=list, description="Step keys that must complete first")
    
    @property
    def key(self) -> str:
        return step_key(self.address, self.phase)


def step_key(address: ResourceAddress, phase: StepPhase) -> str:
    return f"{address}:{StepPhase(phase).value}"


class Plan(BaseModel):
    """Ordered actions (one per resource) and the ordered steps that realise them."""
    actions: List[PlannedAction] = Field(default_factory=list)
    steps: List[PlanStep] = Field(default_factory=list)
    
    @property
    def has_changes(self) -> bool:
        return any(action.is_change for action in self.actions)
    
    @property
    def needs_apply(self) -> bool:
        """True when apply has work to do, including state-only dependency rewrites."""
        return self.has_changes or any(action.dependencies_changed for action in self.actions)
    
    def summary(self) -> Dict[str, int]:
        """Count of actions per type, every type present."""
        counts = {action_type.value: 0 for action_type in ActionType}
        for action in self.actions:
            counts[ActionType(action.action).value] += 1
        return counts
    
    def action_for(self, address: ResourceAddress) -> Optional[PlannedAction]:
        for action in self.actions:
            if action.address == address:
                return action
        return None
    
    def changes(self) -> List[PlannedAction]:
        return [action for action in self.actions if action.is_change]
