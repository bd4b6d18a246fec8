"""State persistence backends: load and atomically save state records."""

import copy
import json
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
from pydantic import ValidationError
from ..registry import ResourceAddress
from ..utils.errors import StatePersistenceError
from ..utils.logging import get_logger
from .models import STATE_FORMAT_VERSION, StateDocument, StateRecord

logger = get_logger("state.backends")

StateMapping = Dict[ResourceAddress, StateRecord]


class StateBackend(ABC):
    """External persistence for state records."""
    
    @abstractmethod
    def load(self) -> StateMapping:
        """Return every persisted record keyed by address."""
    
    @abstractmethod
    def save(self, records: StateMapping) -> None:
        """Replace persisted state with records. Must be atomic."""


class MemoryStateBackend(StateBackend):
    """Keeps state in memory; used for tests and dry runs."""
    
    def __init__(self, records: Optional[StateMapping] = None):
        self._records: StateMapping = copy.deepcopy(records or {})
        self.save_count = 0
    
    def load(self) -> StateMapping:
        return {address: record.model_copy(deep=True) for address, record in self._records.items()}
    
    def save(self, records: StateMapping) -> None:
        self._records = {address: record.model_copy(deep=True) for address, record in records.items()}
        self.save_count += 1


class FileStateBackend(StateBackend):
    """JSON state file replaced atomically via a temp file and os.replace."""
    
    def __init__(self, path: str):
        self.path = Path(path)
        self._serial = 0
        self._lineage: Optional[str] = None
    
    def load(self) -> StateMapping:
        """
        Load state records from disk.
        
        Returns:
            Mapping of address to record (empty if the file does not exist)
            
        Raises:
            StatePersistenceError: If the file is unreadable or corrupt
        """
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting empty")
            return {}
        
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            document = StateDocument(**data)
        except json.JSONDecodeError as e:
            raise StatePersistenceError(f"Corrupt state file {self.path}: {e}")
        except ValidationError as e:
            raise StatePersistenceError(f"Invalid state file {self.path}: {e}")
        except OSError as e:
            raise StatePersistenceError(f"Error reading state file {self.path}: {e}")
        
        if document.version != STATE_FORMAT_VERSION:
            raise StatePersistenceError(
                f"Unsupported state format version {document.version} in {self.path}"
            )
        
        records: StateMapping = {}
        for record in document.resources:
            if record.address in records:
                raise StatePersistenceError(f"Duplicate state record for {record.address} in {self.path}")
            records[record.address] = record
        
        self._serial = document.serial
        self._lineage = document.lineage
        logger.info(f"Loaded {len(records)} state records from {self.path} (serial {document.serial})")
        return records
    
    def save(self, records: StateMapping) -> None:
        """
        Write records to a temp file in the same directory, fsync, then replace.
        
        Raises:
            StatePersistenceError: If the state could not be durably written
        """
        if self._lineage is None:
            self._lineage = str(uuid.uuid4())
        
        document = StateDocument(
            serial=self._serial + 1,
            lineage=self._lineage,
            resources=[records[address] for address in sorted(records)],
        )
        
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document.model_dump(), f, indent=2, sort_keys=True)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StatePersistenceError(f"Failed to save state to {self.path}: {e}")
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
        
        self._serial = document.serial
        logger.debug(f"Saved {len(records)} state records to {self.path} (serial {document.serial})")
