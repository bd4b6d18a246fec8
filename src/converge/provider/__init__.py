"""Provider capability: the external create/read/update/destroy collaborator."""

from .base import Provider
from .capabilities import CapabilityTable, KindCapability, RetryPolicy
from .memory import FaultRule, InMemoryProvider, LocalProvider
from .registry import create_provider, list_providers, register_provider

__all__ = [
    "CapabilityTable",
    "FaultRule",
    "InMemoryProvider",
    "KindCapability",
    "LocalProvider",
    "Provider",
    "RetryPolicy",
    "create_provider",
    "list_providers",
    "register_provider",
]
