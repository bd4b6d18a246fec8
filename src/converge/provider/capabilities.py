"""Per-kind provider capability table: immutability, uniqueness, retry policy."""

from typing import Any, Dict, List, Mapping, Optional
from pydantic import BaseModel, Field, ValidationError
from ..utils.errors import SettingsError


class RetryPolicy(BaseModel):
    """Bounded exponential backoff for transient provider errors."""
    max_attempts: int = Field(default=3, ge=1, description="Total attempts including the first")
    initial_delay: float = Field(default=0.5, ge=0, description="Seconds before the first retry")
    max_delay: float = Field(default=10.0, ge=0, description="Upper bound for a single wait")
    multiplier: float = Field(default=2.0, ge=1, description="Backoff growth factor")


class KindCapability(BaseModel):
    """What the provider declares about one resource kind."""
    immutable_attributes: List[str] = Field(default_factory=list, description="Changing these forces replacement")
    unique_attributes: List[str] = Field(default_factory=list, description="Values the provider requires to be unique per kind")
    supports_request_token: bool = Field(default=False, description="Mutating calls are idempotent given a request token")
    idempotent_destroy: bool = Field(default=True, description="Destroy may be retried; a repeat of a finished destroy reports NotFound")
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    
    def is_immutable(self, attribute: str) -> bool:
        return attribute in self.immutable_attributes


class CapabilityTable:
    """Capabilities keyed by kind, with a default for undeclared kinds."""
    
    def __init__(self, kinds: Optional[Mapping[str, KindCapability]] = None, default: Optional[KindCapability] = None):
        self._kinds: Dict[str, KindCapability] = dict(kinds or {})
        self.default = default or KindCapability()
    
    def get(self, kind: str) -> KindCapability:
        return self._kinds.get(kind, self.default)
    
    def set(self, kind: str, capability: KindCapability) -> None:
        self._kinds[kind] = capability
    
    def kinds(self) -> List[str]:
        return sorted(self._kinds)
    
    def merged_with(self, other: "CapabilityTable") -> "CapabilityTable":
        """New table where other's entries override this one's."""
        merged = CapabilityTable(self._kinds, other.default)
        for kind in other.kinds():
            merged.set(kind, other.get(kind))
        return merged
    
    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_retry: Optional[Mapping[str, Any]] = None) -> "CapabilityTable":
        """
        Build a table from settings data.
        
        Args:
            data: Mapping of kind -> capability fields
            default_retry: RetryPolicy fields applied where a kind declares none
            
        Raises:
            SettingsError: If an entry is invalid
        """
        try:
            retry = RetryPolicy(**(default_retry or {}))
            kinds = {}
            for kind, fields in (data or {}).items():
                fields = dict(fields or {})
                fields.setdefault("retry", retry.model_dump())
                kinds[kind] = KindCapability(**fields)
        except ValidationError as e:
            raise SettingsError(f"Invalid capability settings: {e}")
        return cls(kinds, KindCapability(retry=retry))
