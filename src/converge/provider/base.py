"""Provider capability contract."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from .capabilities import CapabilityTable, KindCapability


class Provider(ABC):
    """
    External collaborator performing real create/read/update/destroy calls.
    
    Implementations raise ProviderTransientError for timeouts and rate
    limiting, ProviderError for permanent rejections, and NotFound from
    read/update when the remote object does not exist.
    """
    
    name: str = "provider"
    
    def __init__(self, capabilities: Optional[CapabilityTable] = None):
        self.capabilities = capabilities or CapabilityTable()
    
    def capability(self, kind: str) -> KindCapability:
        return self.capabilities.get(kind)
    
    @abstractmethod
    def create(self, kind: str, attributes: Dict[str, Any], request_token: Optional[str] = None) -> Tuple[str, Dict[str, Any]]:
        """Create an object; returns (provider_id, result_attributes)."""
    
    @abstractmethod
    def read(self, kind: str, provider_id: str) -> Dict[str, Any]:
        """Return current attributes or raise NotFound."""
    
    @abstractmethod
    def update(self, kind: str, provider_id: str, attributes: Dict[str, Any], request_token: Optional[str] = None) -> Dict[str, Any]:
        """Update an object in place; returns result attributes."""
    
    @abstractmethod
    def destroy(self, kind: str, provider_id: str) -> None:
        """Destroy an object. Raises NotFound if it is already gone."""
