"""Wires registry, graph, planner, provider and state together for one run."""

import threading
from typing import List, Optional, Tuple
from .config import Settings
from .executor import Executor, RunReport, refresh_state
from .graph import DependencyGraph, build_dependency_graph
from .planner import Plan, build_plan
from .provider import Provider, create_provider
from .registry import ResourceAddress, ResourceRegistry
from .state import FileStateBackend, StateBackend, StateStore
from .utils.logging import get_logger

logger = get_logger("engine")


class Engine:
    """
    One reconciliation run: explicit registry in, plan and report out.
    
    The provider and state backend default to what settings name; tests pass
    their own.
    """
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[Provider] = None,
        backend: Optional[StateBackend] = None,
    ):
        self.settings = settings or Settings()
        capabilities = self.settings.capability_table()
        if provider is None:
            provider = create_provider(self.settings.provider, capabilities=capabilities, **self.settings.provider_kwargs())
        else:
            provider.capabilities = capabilities.merged_with(provider.capabilities)
        self.provider = provider
        self.store = StateStore(backend or FileStateBackend(self.settings.state_path))
    
    def graph(self, registry: ResourceRegistry) -> DependencyGraph:
        return build_dependency_graph(registry)
    
    def refresh(self) -> List[ResourceAddress]:
        return refresh_state(self.store, self.provider)
    
    def plan(self, registry: ResourceRegistry, refresh: bool = False) -> Plan:
        """Resolve references, optionally refresh state, and diff into a plan."""
        graph = self.graph(registry)
        if refresh:
            self.refresh()
        return build_plan(registry, graph, self.store.snapshot(), self.provider.capabilities)
    
    def apply(self, plan: Plan, cancel_event: Optional[threading.Event] = None) -> RunReport:
        executor = Executor(
            self.provider,
            self.store,
            max_parallelism=self.settings.max_parallelism,
            cancel_event=cancel_event,
        )
        return executor.apply(plan)
    
    def plan_and_apply(
        self,
        registry: ResourceRegistry,
        refresh: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> Tuple[Plan, RunReport]:
        plan = self.plan(registry, refresh=refresh)
        return plan, self.apply(plan, cancel_event=cancel_event)
