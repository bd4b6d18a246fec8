"""Run-scoped state store: the single shared mutable resource of a run."""

import threading
from typing import Dict, List, Optional
from ..registry import ResourceAddress
from ..utils.errors import StatePersistenceError
from ..utils.logging import get_logger
from .backends import StateBackend, StateMapping
from .models import StateRecord

logger = get_logger("state.store")


class StateStore:
    """
    Serialises writes from parallel branches and persists after each one.
    
    Reads return copies so callers never share a record with the store. The
    in-memory view always reflects what was applied, even when persisting it
    failed; the failure propagates as StatePersistenceError.
    """
    
    def __init__(self, backend: StateBackend):
        self.backend = backend
        self._lock = threading.Lock()
        self._records: StateMapping = backend.load()
    
    def get(self, address: ResourceAddress) -> Optional[StateRecord]:
        with self._lock:
            record = self._records.get(address)
            return record.model_copy(deep=True) if record is not None else None
    
    def snapshot(self) -> Dict[ResourceAddress, StateRecord]:
        """Copy of every record, keyed by address."""
        with self._lock:
            return {address: record.model_copy(deep=True) for address, record in self._records.items()}
    
    def addresses(self) -> List[ResourceAddress]:
        with self._lock:
            return sorted(self._records)
    
    def put(self, record: StateRecord) -> None:
        """Insert or replace a record and persist."""
        with self._lock:
            self._records[record.address] = record.model_copy(deep=True)
            self._persist()
        logger.debug(f"Recorded state for {record.address}")
    
    def remove(self, address: ResourceAddress) -> None:
        """Drop a record (resource destroyed) and persist."""
        with self._lock:
            if self._records.pop(address, None) is None:
                return
            self._persist()
        logger.debug(f"Removed state for {address}")
    
    def flush(self) -> None:
        """Persist the current view again (e.g. after an earlier failed save)."""
        with self._lock:
            self._persist()
    
    def _persist(self) -> None:
        try:
            self.backend.save(self._records)
        except StatePersistenceError:
            raise
        except Exception as e:
            raise StatePersistenceError(f"Failed to save state: {e}") from e
