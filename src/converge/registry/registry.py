"""In-memory registry of declared resources for a single run."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from pydantic import ValidationError
from ..utils.errors import ConfigurationError, DuplicateResource, UnknownResource
from ..utils.logging import get_logger
from .models import AttributeValue, ListValue, LiteralValue, MapValue, ReferenceValue, Resource, ResourceAddress
from .values import to_attribute_value

logger = get_logger("registry")

AddressLike = Union[ResourceAddress, str]
_TAGGED = (LiteralValue, ReferenceValue, ListValue, MapValue)


def _as_address(value: AddressLike) -> ResourceAddress:
    if isinstance(value, ResourceAddress):
        return value
    if isinstance(value, tuple):
        return ResourceAddress(*value)
    try:
        return ResourceAddress.parse(value)
    except ValueError as e:
        raise ConfigurationError(str(e))


class ResourceRegistry:
    """Holds typed resource declarations keyed by (kind, name)."""
    
    def __init__(self):
        self._resources: Dict[ResourceAddress, Resource] = {}
    
    def register(
        self,
        kind: str,
        name: str,
        attributes: Optional[Mapping[str, Any]] = None,
        depends_on: Iterable[AddressLike] = (),
    ) -> Resource:
        """
        Register a resource declaration.
        
        Attribute values may be plain data (converted to the tagged variant)
        or already-tagged values.
        
        Raises:
            DuplicateResource: If (kind, name) is already registered
            ConfigurationError: If an attribute value cannot be represented
        """
        address = ResourceAddress(kind, name)
        if address in self._resources:
            raise DuplicateResource(str(address))
        
        converted: Dict[str, AttributeValue] = {}
        for key, value in (attributes or {}).items():
            try:
                converted[key] = value if isinstance(value, _TAGGED) else to_attribute_value(value)
            except ValueError as e:
                raise ConfigurationError(f"{address}: attribute '{key}': {e}")
        
        try:
            resource = Resource(
                address=address,
                attributes=converted,
                depends_on=[_as_address(dep) for dep in depends_on],
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid resource {address}: {e}")
        
        self._resources[address] = resource
        logger.debug(f"Registered resource {address}")
        return resource
    
    def get(self, kind: str, name: str) -> Resource:
        """Return the resource or raise UnknownResource."""
        address = ResourceAddress(kind, name)
        resource = self._resources.get(address)
        if resource is None:
            raise UnknownResource(str(address))
        return resource
    
    def lookup(self, address: AddressLike) -> Resource:
        """Same as get(), keyed by an address."""
        address = _as_address(address)
        return self.get(address.kind, address.name)
    
    def contains(self, address: AddressLike) -> bool:
        return _as_address(address) in self._resources
    
    def addresses(self) -> List[ResourceAddress]:
        """All registered addresses, sorted by kind then name."""
        return sorted(self._resources)
    
    def resources(self) -> List[Resource]:
        return [self._resources[address] for address in self.addresses()]
    
    def __contains__(self, address: AddressLike) -> bool:
        return self.contains(address)
    
    def __len__(self) -> int:
        return len(self._resources)
    
    def __iter__(self):
        return iter(self.resources())
