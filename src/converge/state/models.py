"""Pydantic models for persisted state."""

from typing import Any, Dict, List
from pydantic import BaseModel, Field
from ..registry import ResourceAddress

STATE_FORMAT_VERSION = 1


class StateRecord(BaseModel):
    """Last-applied attributes and provider identity of one resource."""
    kind: str = Field(..., description="Resource kind")
    name: str = Field(..., description="Resource name")
    provider_id: str = Field(..., description="Provider-assigned identifier")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Resolved inputs last sent to the provider")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Result attributes returned by the provider")
    depends_on: List[str] = Field(default_factory=list, description="Dependency addresses at apply time")
    
    @property
    def address(self) -> ResourceAddress:
        return ResourceAddress(self.kind, self.name)
    
    def dependency_addresses(self) -> List[ResourceAddress]:
        return [ResourceAddress.parse(dep) for dep in self.depends_on]


class StateDocument(BaseModel):
    """On-disk state file."""
    version: int = Field(default=STATE_FORMAT_VERSION, description="State format version")
    serial: int = Field(default=0, ge=0, description="Incremented on every save")
    lineage: str = Field(default="", description="Stable identifier of this state's history")
    resources: List[StateRecord] = Field(default_factory=list)
