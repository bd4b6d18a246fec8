"""Executor: apply plans against a provider and report per-resource outcomes."""

from .executor import Executor
from .models import ResourceOutcome, ResourceRun, ResourceStatus, RunReport, TERMINAL_STATUSES
from .refresh import refresh_state
from .retry import call_with_retry

__all__ = [
    "Executor",
    "ResourceOutcome",
    "ResourceRun",
    "ResourceStatus",
    "RunReport",
    "TERMINAL_STATUSES",
    "call_with_retry",
    "refresh_state",
]
