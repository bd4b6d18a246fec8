"""State records and their persistence."""

from .backends import FileStateBackend, MemoryStateBackend, StateBackend, StateMapping
from .models import StateDocument, StateRecord
from .store import StateStore

__all__ = [
    "FileStateBackend",
    "MemoryStateBackend",
    "StateBackend",
    "StateDocument",
    "StateMapping",
    "StateRecord",
    "StateStore",
]
