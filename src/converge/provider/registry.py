"""Registry of provider factories, selectable by name from settings or the CLI."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from ..utils.errors import SettingsError
from .base import Provider
from .memory import InMemoryProvider, LocalProvider

ProviderFactory = Callable[..., Provider]


@dataclass(frozen=True)
class ProviderSpec:
    """Metadata describing a registered provider."""
    
    name: str
    factory: ProviderFactory
    description: Optional[str] = None


class ProviderRegistry:
    """Simple in-memory registry for converge providers."""
    
    def __init__(self) -> None:
        self._providers: Dict[str, ProviderSpec] = {}
    
    def register(self, name: str, factory: ProviderFactory, *, description: Optional[str] = None) -> None:
        if not name:
            raise ValueError("Provider name is required")
        self._providers[name] = ProviderSpec(name=name, factory=factory, description=description)
    
    def create(self, name: str, **kwargs: Any) -> Provider:
        spec = self._providers.get(name)
        if spec is None:
            available = ", ".join(sorted(self._providers)) or "none"
            raise SettingsError(f"Provider '{name}' is not registered (available: {available})")
        return spec.factory(**kwargs)
    
    def list(self) -> List[ProviderSpec]:
        return [self._providers[name] for name in sorted(self._providers)]


provider_registry = ProviderRegistry()
provider_registry.register("memory", InMemoryProvider, description="Volatile in-process simulation")
provider_registry.register("local", LocalProvider, description="Simulation persisted to a local JSON file")


def register_provider(name: str, factory: ProviderFactory, *, description: Optional[str] = None) -> None:
    provider_registry.register(name, factory, description=description)


def create_provider(name: str, **kwargs: Any) -> Provider:
    return provider_registry.create(name, **kwargs)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.list()
