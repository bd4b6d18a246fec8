"""In-process provider simulating a cloud control plane."""

import copy
import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from ..utils.errors import NotFound, ProviderError, ProviderTransientError
from ..utils.logging import get_logger
from .base import Provider
from .capabilities import CapabilityTable

logger = get_logger("provider.memory")


@dataclass
class FaultRule:
    """Injected failure: matches an operation on a kind (and optionally attributes)."""
    operation: str
    kind: str
    transient: bool = False
    remaining: Optional[int] = None
    match: Dict[str, Any] = field(default_factory=dict)
    
    def applies(self, operation: str, kind: str, attributes: Dict[str, Any]) -> bool:
        if self.remaining is not None and self.remaining <= 0:
            return False
        if operation != self.operation or kind != self.kind:
            return False
        return all(attributes.get(key) == value for key, value in self.match.items())


class InMemoryProvider(Provider):
    """Keeps objects in a dict; ids are '<kind>-<n>'. Thread safe."""
    
    name = "memory"
    
    def __init__(self, capabilities: Optional[CapabilityTable] = None, latency: float = 0.0):
        super().__init__(capabilities)
        self.latency = latency
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, Optional[str]]] = []
        self.faults: List[FaultRule] = []
        self.max_in_flight = 0
        self._counter = 0
        self._tokens: Dict[str, Any] = {}
        self._in_flight = 0
        self._lock = threading.Lock()
    
    def inject_failure(
        self,
        operation: str,
        kind: str,
        transient: bool = False,
        times: Optional[int] = None,
        match: Optional[Dict[str, Any]] = None,
    ) -> FaultRule:
        """Make matching calls fail; 'times' limits how often (None = always)."""
        rule = FaultRule(operation=operation, kind=kind, transient=transient, remaining=times, match=dict(match or {}))
        self.faults.append(rule)
        return rule
    
    def create(self, kind: str, attributes: Dict[str, Any], request_token: Optional[str] = None) -> Tuple[str, Dict[str, Any]]:
        with self._call("create", kind, None, attributes):
            with self._lock:
                if request_token and request_token in self._tokens:
                    provider_id = self._tokens[request_token]
                    logger.debug(f"Replayed create for token {request_token}: {provider_id}")
                    return provider_id, self._outputs(provider_id)
                self._check_unique(kind, attributes, exclude=None)
                self._counter += 1
                provider_id = f"{kind}-{self._counter}"
                self.objects[provider_id] = {"kind": kind, "attributes": copy.deepcopy(attributes)}
                if request_token:
                    self._tokens[request_token] = provider_id
                self._changed()
                return provider_id, self._outputs(provider_id)
    
    def read(self, kind: str, provider_id: str) -> Dict[str, Any]:
        with self._call("read", kind, provider_id, {}):
            with self._lock:
                self._existing(kind, provider_id)
                return self._outputs(provider_id)
    
    def update(self, kind: str, provider_id: str, attributes: Dict[str, Any], request_token: Optional[str] = None) -> Dict[str, Any]:
        with self._call("update", kind, provider_id, attributes):
            with self._lock:
                current = self._existing(kind, provider_id)
                if request_token and request_token in self._tokens:
                    return self._outputs(provider_id)
                capability = self.capability(kind)
                for attribute in capability.immutable_attributes:
                    if current["attributes"].get(attribute) != attributes.get(attribute):
                        raise ProviderError(f"{kind} {provider_id}: attribute '{attribute}' cannot be changed in place")
                self._check_unique(kind, attributes, exclude=provider_id)
                current["attributes"] = copy.deepcopy(attributes)
                if request_token:
                    self._tokens[request_token] = provider_id
                self._changed()
                return self._outputs(provider_id)
    
    def destroy(self, kind: str, provider_id: str) -> None:
        with self._call("destroy", kind, provider_id, {}):
            with self._lock:
                self._existing(kind, provider_id)
                del self.objects[provider_id]
                self._changed()
    
    def objects_of(self, kind: str) -> Dict[str, Dict[str, Any]]:
        """Attributes of every live object of a kind, keyed by provider id."""
        with self._lock:
            return {
                pid: copy.deepcopy(obj["attributes"])
                for pid, obj in self.objects.items()
                if obj["kind"] == kind
            }
    
    def _call(self, operation: str, kind: str, provider_id: Optional[str], attributes: Dict[str, Any]):
        return _CallScope(self, operation, kind, provider_id, attributes)
    
    def _raise_injected(self, operation: str, kind: str, attributes: Dict[str, Any]) -> None:
        with self._lock:
            for rule in self.faults:
                if rule.applies(operation, kind, attributes):
                    if rule.remaining is not None:
                        rule.remaining -= 1
                    if rule.transient:
                        raise ProviderTransientError(f"{operation} {kind}: rate limited")
                    raise ProviderError(f"{operation} {kind}: rejected by provider")
    
    def _existing(self, kind: str, provider_id: str) -> Dict[str, Any]:
        obj = self.objects.get(provider_id)
        if obj is None or obj["kind"] != kind:
            raise NotFound(kind, provider_id)
        return obj
    
    def _check_unique(self, kind: str, attributes: Dict[str, Any], exclude: Optional[str]) -> None:
        for attribute in self.capability(kind).unique_attributes:
            value = attributes.get(attribute)
            if value is None:
                continue
            for pid, obj in self.objects.items():
                if pid != exclude and obj["kind"] == kind and obj["attributes"].get(attribute) == value:
                    raise ProviderError(f"{kind} with {attribute}={value!r} already exists ({pid})")
    
    def _outputs(self, provider_id: str) -> Dict[str, Any]:
        obj = self.objects[provider_id]
        outputs = copy.deepcopy(obj["attributes"])
        outputs["id"] = provider_id
        outputs["arn"] = f"arn:converge:{obj['kind']}:{provider_id}"
        return outputs
    
    def _changed(self) -> None:
        """Hook for subclasses that persist objects; called with the lock held."""


class _CallScope:
    """Records the call, tracks concurrency, simulates latency and injected faults."""
    
    def __init__(self, provider: InMemoryProvider, operation: str, kind: str, provider_id: Optional[str], attributes: Dict[str, Any]):
        self.provider = provider
        self.operation = operation
        self.kind = kind
        self.provider_id = provider_id
        self.attributes = attributes
    
    def __enter__(self):
        provider = self.provider
        with provider._lock:
            provider.calls.append((self.operation, self.kind, self.provider_id))
            provider._in_flight += 1
            provider.max_in_flight = max(provider.max_in_flight, provider._in_flight)
        try:
            if provider.latency:
                time.sleep(provider.latency)
            provider._raise_injected(self.operation, self.kind, self.attributes)
        except Exception:
            self._leave()
            raise
        return self
    
    def __exit__(self, exc_type, exc, tb):
        self._leave()
        return False
    
    def _leave(self) -> None:
        with self.provider._lock:
            self.provider._in_flight -= 1


class LocalProvider(InMemoryProvider):
    """InMemoryProvider whose objects survive between runs in a JSON file."""
    
    name = "local"
    
    def __init__(self, path: str = ".converge/local-provider.json", capabilities: Optional[CapabilityTable] = None, latency: float = 0.0):
        super().__init__(capabilities, latency)
        self.path = Path(path)
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ProviderError(f"Cannot read local provider data {self.path}: {e}")
            self.objects = data.get("objects", {})
            self._counter = data.get("counter", 0)
            self._tokens = data.get("tokens", {})
            logger.debug(f"Loaded {len(self.objects)} objects from {self.path}")
    
    def _changed(self) -> None:
        payload = {"counter": self._counter, "objects": self.objects, "tokens": self._tokens}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding='utf-8')
            tmp.replace(self.path)
        except OSError as e:
            raise ProviderError(f"Cannot write local provider data {self.path}: {e}")
