"""Shared fixtures for converge tests."""

import pytest
from converge.executor import Executor
from converge.graph import build_dependency_graph
from converge.planner import build_plan
from converge.provider import CapabilityTable, InMemoryProvider, KindCapability, RetryPolicy
from converge.registry import ResourceRegistry
from converge.state import MemoryStateBackend, StateStore

NO_WAIT = RetryPolicy(max_attempts=3, initial_delay=0, max_delay=0)


def _no_sleep(seconds):
    return None


@pytest.fixture
def capabilities():
    """Capability table with zero backoff so retries do not slow tests down."""
    return CapabilityTable(
        {
            "subnet": KindCapability(immutable_attributes=["network", "cidr"], retry=NO_WAIT),
            "security_group": KindCapability(unique_attributes=["group_name"], retry=NO_WAIT),
            "instance": KindCapability(supports_request_token=True, retry=NO_WAIT),
        },
        default=KindCapability(retry=NO_WAIT),
    )


@pytest.fixture
def provider(capabilities):
    return InMemoryProvider(capabilities=capabilities)


@pytest.fixture
def backend():
    return MemoryStateBackend()


@pytest.fixture
def network_registry():
    """network n1 and subnet s1 referencing it."""
    registry = ResourceRegistry()
    registry.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
    registry.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.1.0/24"})
    return registry


@pytest.fixture
def run_apply(provider, backend):
    """Plan the registry against the backend's state and apply it."""
    def _run(registry, parallelism=4, cancel_event=None):
        store = StateStore(backend)
        graph = build_dependency_graph(registry)
        plan = build_plan(registry, graph, store.snapshot(), provider.capabilities)
        executor = Executor(provider, store, max_parallelism=parallelism, cancel_event=cancel_event, sleep=_no_sleep)
        return plan, executor.apply(plan)
    return _run


@pytest.fixture
def plan_for(provider, backend):
    """Plan the registry against the backend's current state without applying."""
    def _plan(registry):
        store = StateStore(backend)
        return build_plan(registry, build_dependency_graph(registry), store.snapshot(), provider.capabilities)
    return _plan
