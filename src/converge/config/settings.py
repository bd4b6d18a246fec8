"""Validated runtime settings."""

from typing import Any, Dict
from pydantic import BaseModel, Field
from ..provider.capabilities import CapabilityTable, RetryPolicy


class Settings(BaseModel):
    """Settings for a plan/apply run."""
    state_path: str = Field(default=".converge/state.json", description="State file location")
    provider: str = Field(default="local", description="Registered provider name")
    provider_options: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Factory keyword arguments, keyed by provider name")
    max_parallelism: int = Field(default=4, ge=1, description="Maximum concurrent provider calls")
    default_retry: RetryPolicy = Field(default_factory=RetryPolicy)
    capabilities: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Per-kind capability overrides")
    
    def provider_kwargs(self) -> Dict[str, Any]:
        return dict(self.provider_options.get(self.provider) or {})
    
    def capability_table(self) -> CapabilityTable:
        return CapabilityTable.from_dict(self.capabilities, self.default_retry.model_dump())
