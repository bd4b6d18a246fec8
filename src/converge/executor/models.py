"""Per-resource run lifecycle and the final run report."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from ..planner import ActionType
from ..registry import ResourceAddress
from ..utils.errors import InvalidTransition


class ResourceStatus(str, Enum):
    """Pending -> Planned -> Applying -> {Applied | Failed | Skipped}."""
    PENDING = "pending"
    PLANNED = "planned"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


_TRANSITIONS = {
    ResourceStatus.PENDING: {ResourceStatus.PLANNED},
    ResourceStatus.PLANNED: {ResourceStatus.APPLYING, ResourceStatus.SKIPPED},
    ResourceStatus.APPLYING: {ResourceStatus.APPLIED, ResourceStatus.FAILED, ResourceStatus.SKIPPED},
    ResourceStatus.APPLIED: set(),
    ResourceStatus.FAILED: set(),
    ResourceStatus.SKIPPED: set(),
}

TERMINAL_STATUSES = frozenset({ResourceStatus.APPLIED, ResourceStatus.FAILED, ResourceStatus.SKIPPED})


class ResourceRun:
    """Tracks one resource through a run. Only an Applying resource may write state."""
    
    def __init__(self, address: ResourceAddress, action: ActionType):
        self.address = address
        self.action = action
        self.status = ResourceStatus.PENDING
        self.error: Optional[str] = None
    
    def transition(self, status: ResourceStatus, error: Optional[str] = None) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.address}: cannot move from {self.status.value} to {status.value}")
        self.status = status
        if error is not None:
            self.error = error
    
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
    
    def outcome(self) -> "ResourceOutcome":
        return ResourceOutcome(address=self.address, action=self.action, status=self.status, error=self.error)


class ResourceOutcome(BaseModel):
    """Terminal state of one resource and any error detail."""
    address: ResourceAddress
    action: ActionType
    status: ResourceStatus
    error: Optional[str] = None


class RunReport(BaseModel):
    """Every resource's terminal state for one apply run."""
    outcomes: List[ResourceOutcome] = Field(default_factory=list)
    started_at: datetime
    finished_at: Optional[datetime] = None
    cancelled: bool = False
    
    @property
    def succeeded(self) -> bool:
        return not self.cancelled and all(o.status == ResourceStatus.APPLIED for o in self.outcomes)
    
    @property
    def has_failures(self) -> bool:
        return any(o.status == ResourceStatus.FAILED for o in self.outcomes)
    
    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in TERMINAL_STATUSES}
        for outcome in self.outcomes:
            counts[outcome.status.value] = counts.get(outcome.status.value, 0) + 1
        return dict(sorted(counts.items()))
    
    def outcome_for(self, address: ResourceAddress) -> Optional[ResourceOutcome]:
        for outcome in self.outcomes:
            if outcome.address == address:
                return outcome
        return None
