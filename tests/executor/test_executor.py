"""Tests for plan execution."""

import threading
import time
import pytest
from converge.executor import Executor, ResourceStatus
from converge.graph import build_dependency_graph
from converge.planner import ActionType, build_plan
from converge.provider import InMemoryProvider
from converge.registry import ResourceAddress, ResourceRegistry
from converge.state import MemoryStateBackend, StateStore
from converge.utils.errors import RunCancelled, StatePersistenceError

N1 = ResourceAddress("network", "n1")
S1 = ResourceAddress("subnet", "s1")


class RecordingProvider(InMemoryProvider):
    """Logs when each create starts and finishes."""
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.events = []
        self._events_lock = threading.Lock()
    
    def create(self, kind, attributes, request_token=None):
        with self._events_lock:
            self.events.append(("start", attributes.get("name")))
        try:
            return super().create(kind, attributes, request_token)
        finally:
            with self._events_lock:
                self.events.append(("end", attributes.get("name")))


@pytest.fixture
def branching_registry():
    """Two independent branches: n1 <- s1 <- vm1, and n2 <- s2."""
    registry = ResourceRegistry()
    registry.register("network", "n1", {"name": "n1"})
    registry.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}"})
    registry.register("vm", "vm1", {"name": "vm1", "subnet": "${subnet.s1.id}"})
    registry.register("network", "n2", {"name": "n2"})
    registry.register("subnet", "s2", {"name": "s2", "network": "${network.n2.id}"})
    return registry


class TestApply:
    """Test applying plans."""
    
    def test_create_resolves_references(self, network_registry, provider, backend, run_apply):
        plan, report = run_apply(network_registry)
        
        assert report.succeeded
        records = backend.load()
        network_id = records[N1].provider_id
        assert records[S1].attributes["network"] == network_id
        assert records[S1].depends_on == ["network.n1"]
        assert provider.objects_of("subnet")[records[S1].provider_id]["network"] == network_id
    
    def test_second_apply_is_all_no_ops(self, network_registry, run_apply, plan_for):
        run_apply(network_registry)
        second = plan_for(network_registry)
        
        assert not second.has_changes
        assert all(a.action == ActionType.NO_OP for a in second.actions)
    
    def test_no_op_makes_no_provider_calls(self, network_registry, provider, run_apply):
        run_apply(network_registry)
        calls_before = len(provider.calls)
        _, report = run_apply(network_registry)
        
        assert len(provider.calls) == calls_before
        assert all(o.status == ResourceStatus.APPLIED for o in report.outcomes)
    
    def test_update_in_place(self, provider, backend, run_apply):
        registry = ResourceRegistry()
        registry.register("network", "n1", {"name": "n1", "tags": {"env": "dev"}})
        run_apply(registry)
        original_id = backend.load()[N1].provider_id
        
        changed = ResourceRegistry()
        changed.register("network", "n1", {"name": "n1", "tags": {"env": "prod"}})
        plan, report = run_apply(changed)
        
        assert plan.action_for(N1).action == ActionType.UPDATE
        assert report.succeeded
        record = backend.load()[N1]
        assert record.provider_id == original_id
        assert record.attributes["tags"] == {"env": "prod"}
    
    def test_replace_gets_new_id_and_dependents_follow(self, network_registry, provider, backend, run_apply, capabilities):
        from converge.provider import KindCapability
        capabilities.set("network", KindCapability(immutable_attributes=["cidr"]))
        run_apply(network_registry)
        old_network = backend.load()[N1].provider_id
        
        changed = ResourceRegistry()
        changed.register("network", "n1", {"name": "n1", "cidr": "172.16.0.0/16"})
        changed.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.1.0/24"})
        plan, report = run_apply(changed)
        
        assert plan.action_for(N1).action == ActionType.REPLACE
        assert report.succeeded
        records = backend.load()
        assert records[N1].provider_id != old_network
        assert records[S1].attributes["network"] == records[N1].provider_id
        assert old_network not in provider.objects
    
    def test_destroy_everything_dependents_first(self, network_registry, provider, backend, run_apply):
        run_apply(network_registry)
        subnet_id = backend.load()[S1].provider_id
        network_id = backend.load()[N1].provider_id
        
        plan, report = run_apply(ResourceRegistry())
        
        assert report.succeeded
        assert backend.load() == {}
        destroys = [call for call in provider.calls if call[0] == "destroy"]
        assert destroys == [("destroy", "subnet", subnet_id), ("destroy", "network", network_id)]
    
    def test_destroy_of_already_missing_object(self, network_registry, provider, backend, run_apply):
        run_apply(network_registry)
        provider.objects.clear()
        
        _, report = run_apply(ResourceRegistry())
        assert report.succeeded
        assert backend.load() == {}


class TestOrderingGuarantees:
    """Dependents never start before their dependencies are applied."""
    
    def test_dependent_starts_after_dependency_finishes(self, capabilities, backend, branching_registry):
        provider = RecordingProvider(capabilities=capabilities, latency=0.02)
        store = StateStore(backend)
        plan = build_plan(branching_registry, build_dependency_graph(branching_registry), store.snapshot(), capabilities)
        
        report = Executor(provider, store, max_parallelism=4).apply(plan)
        
        assert report.succeeded
        events = provider.events
        for dependency, dependent in [("n1", "s1"), ("s1", "vm1"), ("n2", "s2")]:
            assert events.index(("end", dependency)) < events.index(("start", dependent))
    
    def test_independent_branches_run_concurrently(self, capabilities, backend, branching_registry):
        provider = InMemoryProvider(capabilities=capabilities, latency=0.05)
        store = StateStore(backend)
        plan = build_plan(branching_registry, build_dependency_graph(branching_registry), store.snapshot(), capabilities)
        
        Executor(provider, store, max_parallelism=4).apply(plan)
        assert provider.max_in_flight >= 2
    
    def test_parallelism_is_bounded(self, capabilities, backend):
        registry = ResourceRegistry()
        for index in range(8):
            registry.register("network", f"n{index}", {"name": f"n{index}"})
        provider = InMemoryProvider(capabilities=capabilities, latency=0.02)
        store = StateStore(backend)
        plan = build_plan(registry, build_dependency_graph(registry), store.snapshot(), capabilities)
        
        report = Executor(provider, store, max_parallelism=2).apply(plan)
        assert report.succeeded
        assert provider.max_in_flight <= 2


class TestFailures:
    """Failed resources skip their dependents only."""
    
    def test_failure_skips_transitive_dependents(self, provider, backend, run_apply, branching_registry):
        provider.inject_failure("create", "network", match={"name": "n1"})
        
        _, report = run_apply(branching_registry)
        
        status = {str(o.address): o.status for o in report.outcomes}
        assert status["network.n1"] == ResourceStatus.FAILED
        assert status["subnet.s1"] == ResourceStatus.SKIPPED
        assert status["vm.vm1"] == ResourceStatus.SKIPPED
        assert status["network.n2"] == ResourceStatus.APPLIED
        assert status["subnet.s2"] == ResourceStatus.APPLIED
        assert report.has_failures
        assert not report.succeeded
        assert "rejected" in report.outcome_for(N1).error
    
    def test_partial_state_allows_resume(self, provider, backend, run_apply, branching_registry, plan_for):
        rule = provider.inject_failure("create", "network", match={"name": "n1"})
        run_apply(branching_registry)
        
        recorded = {str(address) for address in backend.load()}
        assert recorded == {"network.n2", "subnet.s2"}
        
        rule.remaining = 0
        plan = plan_for(branching_registry)
        actions = {str(a.address): a.action for a in plan.actions}
        assert actions == {
            "network.n1": ActionType.CREATE,
            "subnet.s1": ActionType.CREATE,
            "vm.vm1": ActionType.CREATE,
            "network.n2": ActionType.NO_OP,
            "subnet.s2": ActionType.NO_OP,
        }
        _, report = run_apply(branching_registry)
        assert report.succeeded
    
    def test_replace_whose_create_fails_leaves_no_record(self, network_registry, provider, backend, run_apply):
        run_apply(network_registry)
        
        changed = ResourceRegistry()
        changed.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
        changed.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.7.0/24"})
        provider.inject_failure("create", "subnet")
        _, report = run_apply(changed)
        
        assert report.outcome_for(S1).status == ResourceStatus.FAILED
        assert S1 not in backend.load()
        assert N1 in backend.load()
    
    def test_update_of_vanished_object_fails(self, provider, backend, run_apply):
        registry = ResourceRegistry()
        registry.register("network", "n1", {"name": "n1"})
        run_apply(registry)
        provider.objects.clear()
        
        changed = ResourceRegistry()
        changed.register("network", "n1", {"name": "n1", "extra": True})
        _, report = run_apply(changed)
        assert report.outcome_for(N1).status == ResourceStatus.FAILED
        assert "refresh" in report.outcome_for(N1).error


class TestRetries:
    """Transient errors are retried only where it is safe."""
    
    def test_tokenised_create_retried(self, provider, run_apply):
        registry = ResourceRegistry()
        registry.register("instance", "web", {"name": "web"})
        provider.inject_failure("create", "instance", transient=True, times=2)
        
        _, report = run_apply(registry)
        assert report.succeeded
        assert [c[0] for c in provider.calls].count("create") == 3
    
    def test_untokenised_create_not_retried(self, provider, run_apply):
        registry = ResourceRegistry()
        registry.register("network", "n1", {"name": "n1"})
        provider.inject_failure("create", "network", transient=True, times=1)
        
        _, report = run_apply(registry)
        assert report.outcome_for(N1).status == ResourceStatus.FAILED
        assert "1 attempt(s)" in report.outcome_for(N1).error
        assert len(provider.calls) == 1
    
    def test_retries_exhausted_escalate(self, provider, run_apply):
        registry = ResourceRegistry()
        registry.register("instance", "web", {"name": "web"})
        provider.inject_failure("create", "instance", transient=True)
        
        _, report = run_apply(registry)
        outcome = report.outcome_for(ResourceAddress("instance", "web"))
        assert outcome.status == ResourceStatus.FAILED
        assert "3 attempt(s)" in outcome.error
        assert len(provider.calls) == 3


class _CancellingProvider(InMemoryProvider):
    def __init__(self, event, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.event = event
    
    def create(self, kind, attributes, request_token=None):
        result = super().create(kind, attributes, request_token)
        self.event.set()
        return result


class _BrokenBackend(MemoryStateBackend):
    def save(self, records):
        raise OSError("read-only file system")


class TestCancellationAndPersistence:
    """Run-level cancellation and fatal state errors."""
    
    def test_cancel_stops_new_work_and_keeps_completed_state(self, capabilities, backend, network_registry):
        event = threading.Event()
        provider = _CancellingProvider(event, capabilities=capabilities)
        store = StateStore(backend)
        plan = build_plan(network_registry, build_dependency_graph(network_registry), store.snapshot(), capabilities)
        
        with pytest.raises(RunCancelled) as exc_info:
            Executor(provider, store, max_parallelism=1, cancel_event=event).apply(plan)
        
        report = exc_info.value.report
        assert report.cancelled
        assert report.outcome_for(N1).status == ResourceStatus.APPLIED
        assert report.outcome_for(S1).status == ResourceStatus.SKIPPED
        assert report.outcome_for(S1).error == "cancelled"
        assert set(backend.load()) == {N1}
    
    def test_cancel_before_start(self, provider, backend, network_registry, run_apply):
        event = threading.Event()
        event.set()
        with pytest.raises(RunCancelled):
            run_apply(network_registry, cancel_event=event)
        assert provider.calls == []
    
    def test_state_save_failure_is_fatal(self, provider, network_registry):
        store = StateStore(_BrokenBackend())
        plan = build_plan(network_registry, build_dependency_graph(network_registry), {}, provider.capabilities)
        
        with pytest.raises(StatePersistenceError):
            Executor(provider, store).apply(plan)
        assert [c[1] for c in provider.calls] == ["network"]


class TestRecordedDependencies:
    """Dependency hints added later still order destroys."""
    
    def test_added_hint_is_recorded_and_orders_destroy(self, provider, backend, run_apply, plan_for):
        registry = ResourceRegistry()
        registry.register("a_db", "main", {"size": 1})
        registry.register("z_app", "web", {"port": 80})
        run_apply(registry)
        app = ResourceAddress("z_app", "web")
        app_id = backend.load()[app].provider_id
        db_id = backend.load()[ResourceAddress("a_db", "main")].provider_id
        
        hinted = ResourceRegistry()
        hinted.register("a_db", "main", {"size": 1})
        hinted.register("z_app", "web", {"port": 80}, depends_on=["a_db.main"])
        calls_before = len(provider.calls)
        _, report = run_apply(hinted)
        
        assert report.succeeded
        assert len(provider.calls) == calls_before
        assert backend.load()[app].depends_on == ["a_db.main"]
        assert not plan_for(hinted).needs_apply
        
        _, report = run_apply(ResourceRegistry())
        assert report.succeeded
        destroys = [call for call in provider.calls if call[0] == "destroy"]
        assert destroys == [("destroy", "z_app", app_id), ("destroy", "a_db", db_id)]


class TestDestroyRetries:
    """Destroy retries follow the kind's declared capability."""
    
    def test_idempotent_destroy_retried(self, provider, backend, run_apply):
        registry = ResourceRegistry()
        registry.register("network", "n1", {"name": "n1"})
        run_apply(registry)
        provider.inject_failure("destroy", "network", transient=True, times=2)
        
        _, report = run_apply(ResourceRegistry())
        assert report.succeeded
        assert backend.load() == {}
    
    def test_non_idempotent_destroy_single_attempt(self, provider, backend, run_apply, capabilities):
        from converge.provider import KindCapability, RetryPolicy
        capabilities.set("network", KindCapability(
            idempotent_destroy=False,
            retry=RetryPolicy(max_attempts=3, initial_delay=0, max_delay=0),
        ))
        registry = ResourceRegistry()
        registry.register("network", "n1", {"name": "n1"})
        run_apply(registry)
        provider.inject_failure("destroy", "network", transient=True, times=1)
        
        _, report = run_apply(ResourceRegistry())
        
        outcome = report.outcome_for(N1)
        assert outcome.status == ResourceStatus.FAILED
        assert "1 attempt(s)" in outcome.error
        assert N1 in backend.load()
        assert [call[0] for call in provider.calls].count("destroy") == 1
