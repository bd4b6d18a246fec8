"""Pydantic models for raw resource declarations."""

from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field


class ResourceDeclaration(BaseModel):
    """One entry of the 'resources' list in a configuration file."""
    model_config = ConfigDict(extra="forbid")
    
    kind: str = Field(..., pattern=r"^[A-Za-z0-9_-]+$", description="Resource kind (e.g. 'aws_vpc')")
    name: str = Field(..., pattern=r"^[A-Za-z0-9_-]+$", description="Resource name, unique per kind")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Attribute values; '${kind.name.attr}' is a reference")
    depends_on: List[str] = Field(default_factory=list, description="Explicit dependencies as 'kind.name'")

