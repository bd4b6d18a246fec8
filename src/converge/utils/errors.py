"""Custom exception classes for converge."""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..executor.models import RunReport


class ConvergeError(Exception):
    """Base exception for all converge errors."""
    pass


class ConfigurationError(ConvergeError):
    """Raised when the declared configuration is invalid. Fatal before planning."""
    pass


class DuplicateResource(ConfigurationError):
    """Raised when a (kind, name) pair is registered twice in one run."""
    
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Resource already declared: {address}")


class UnknownResource(ConfigurationError):
    """Raised when a lookup or reference names a resource that was never declared."""
    
    def __init__(self, address: str, referenced_by: Optional[str] = None):
        self.address = address
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Unknown resource {address} (referenced by {referenced_by})"
        else:
            message = f"Unknown resource: {address}"
        super().__init__(message)


class CyclicDependency(ConfigurationError):
    """Raised when the reference graph contains a cycle."""
    
    def __init__(self, members: List[str]):
        self.members = list(members)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.members)}")


class SettingsError(ConvergeError):
    """Raised when settings are invalid or cannot be loaded."""
    pass


class PlanConflict(ConvergeError):
    """Raised when a plan would violate a provider-enforced uniqueness constraint."""
    pass


class ProviderError(ConvergeError):
    """Permanent provider rejection. Fails only the affected resource."""
    pass


class ProviderTransientError(ProviderError):
    """Timeout or rate limiting. Retried with backoff, then escalated."""
    pass


class NotFound(ConvergeError):
    """Raised by a provider when the remote object does not exist."""
    
    def __init__(self, kind: str, provider_id: str):
        self.kind = kind
        self.provider_id = provider_id
        super().__init__(f"{kind} {provider_id} not found")


class StatePersistenceError(ConvergeError):
    """Raised when state cannot be loaded or durably saved. Fatal for the run."""
    pass


class InvalidTransition(ConvergeError):
    """Raised when a resource run is moved through an illegal state change."""
    pass


class RunCancelled(ConvergeError):
    """Raised when a run was cancelled; carries the partial report."""
    
    def __init__(self, report: "RunReport"):
        self.report = report
        super().__init__("Run cancelled before all actions completed")
