"""Diff declared resources against state and order the resulting actions."""

import networkx as nx
from typing import Any, Dict, List, Mapping, Optional, Tuple
from ..graph import DependencyGraph
from ..provider.capabilities import CapabilityTable
from ..registry import ReferenceValue, Resource, ResourceAddress, ResourceRegistry, resolve_value
from ..state import StateRecord
from ..utils.errors import PlanConflict
from ..utils.logging import get_logger
from .models import (
    KNOWN_AFTER_APPLY,
    ActionType,
    AttributeChange,
    Plan,
    PlanStep,
    PlannedAction,
    StepPhase,
    step_key,
)

logger = get_logger("planner.builder")


class _Unknown:
    """Placeholder for a value only known once its producer is applied."""

    def __repr__(self) -> str:
        return KNOWN_AFTER_APPLY


UNKNOWN = _Unknown()


def contains_unknown(value: Any) -> bool:
    if value is UNKNOWN:
        return True
    if isinstance(value, list):
        return any(contains_unknown(item) for item in value)
    if isinstance(value, dict):
        return any(contains_unknown(item) for item in value.values())
    return False


def render_unknowns(value: Any) -> Any:
    """Replace unknown placeholders with a printable marker."""
    if value is UNKNOWN:
        return KNOWN_AFTER_APPLY
    if isinstance(value, list):
        return [render_unknowns(item) for item in value]
    if isinstance(value, dict):
        return {key: render_unknowns(item) for key, item in value.items()}
    return value


class PlanBuilder:
    """
    Builds a Plan from the dependency graph, declarations and prior state.

    References are resolved against what each producer will look like after
    its own action: declared values are known, computed outputs of resources
    being created or replaced are not.
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        graph: DependencyGraph,
        state: Mapping[ResourceAddress, StateRecord],
        capabilities: Optional[CapabilityTable] = None,
    ):
        self.registry = registry
        self.graph = graph
        self.state = dict(state)
        self.capabilities = capabilities or CapabilityTable()
        self._actions: Dict[ResourceAddress, PlannedAction] = {}
        self._planned: Dict[ResourceAddress, Dict[str, Any]] = {}

    def build(self) -> Plan:
        """
        Compute actions and their execution order.

        Raises:
            PlanConflict: If the plan would violate a uniqueness constraint
        """
        for address in self.graph.topological_order():
            self._plan_declared(self.registry.lookup(address))

        for address in sorted(self.state):
            if address not in self.registry:
                record = self.state[address]
                self._actions[address] = PlannedAction(
                    address=address,
                    action=ActionType.DESTROY,
                    provider_id=record.provider_id,
                    depends_on=record.dependency_addresses(),
                )

        self._check_conflicts()
        steps = self._order_steps()

        position: Dict[ResourceAddress, int] = {}
        for index, step in enumerate(steps):
            position.setdefault(step.address, index)
        actions = sorted(self._actions.values(), key=lambda a: (position[a.address], a.address))

        plan = Plan(actions=actions, steps=steps)
        summary = plan.summary()
        logger.info(
            "Plan: " + ", ".join(f"{count} to {name}" for name, count in summary.items() if name != ActionType.NO_OP.value)
            + f", {summary[ActionType.NO_OP.value]} unchanged"
        )
        return plan

    def _plan_declared(self, resource: Resource) -> None:
        address = resource.address
        resolved = {
            name: resolve_value(value, self._lookup)
            for name, value in resource.attributes.items()
        }
        self._planned[address] = resolved
        record = self.state.get(address)
        depends_on = self.graph.dependencies_of(address)

        if record is None:
            changes = [
                AttributeChange(
                    name=name,
                    after=render_unknowns(value),
                    known_after_apply=contains_unknown(value),
                )
                for name, value in sorted(resolved.items())
            ]
            self._actions[address] = PlannedAction(
                address=address,
                action=ActionType.CREATE,
                resource=resource,
                depends_on=depends_on,
                changes=changes,
            )
            return

        capability = self.capabilities.get(address.kind)
        changes = []
        for name in sorted(set(resolved) | set(record.attributes)):
            after = resolved.get(name)
            before = record.attributes.get(name)
            unknown = contains_unknown(after)
            if not unknown and after == before:
                continue
            changes.append(AttributeChange(
                name=name,
                before=before,
                after=render_unknowns(after),
                known_after_apply=unknown,
                forces_replacement=capability.is_immutable(name),
            ))

        if not changes:
            action = ActionType.NO_OP
        elif any(change.forces_replacement for change in changes):
            action = ActionType.REPLACE
            logger.debug(f"{address} must be replaced: {[c.name for c in changes if c.forces_replacement]}")
        else:
            action = ActionType.UPDATE

        self._actions[address] = PlannedAction(
            address=address,
            action=action,
            provider_id=record.provider_id,
            resource=resource,
            depends_on=depends_on,
            changes=changes,
            dependencies_changed=(
                action == ActionType.NO_OP
                and sorted(record.depends_on) != sorted(str(dependency) for dependency in depends_on)
            ),
        )

    def _lookup(self, reference: ReferenceValue) -> Any:
        """Planned value of a producer's attribute (producers are planned first)."""
        producer = self._actions[reference.address]
        planned = self._planned[reference.address]
        if reference.attribute in planned:
            return planned[reference.attribute]
        if producer.action in (ActionType.CREATE, ActionType.REPLACE):
            return UNKNOWN
        record = self.state[reference.address]
        return record.outputs.get(reference.attribute, UNKNOWN)

    def _check_conflicts(self) -> None:
        """Unique attribute values may be claimed by one live resource only."""
        claims: Dict[Tuple[str, str, Any], ResourceAddress] = {}
        for address, action in sorted(self._actions.items()):
            if action.action == ActionType.DESTROY:
                continue
            for attribute in self.capabilities.get(address.kind).unique_attributes:
                value = self._planned[address].get(attribute)
                if value is None or contains_unknown(value) or not _hashable(value):
                    continue
                key = (address.kind, attribute, value)
                if key in claims:
                    raise PlanConflict(
                        f"{claims[key]} and {address} both claim {address.kind}.{attribute}={value!r}"
                    )
                claims[key] = address

        for address, action in sorted(self._actions.items()):
            if action.action != ActionType.DESTROY:
                continue
            record = self.state[address]
            for attribute in self.capabilities.get(address.kind).unique_attributes:
                value = record.attributes.get(attribute)
                if value is None or not _hashable(value):
                    continue
                holder = claims.get((address.kind, attribute, value))
                if holder is not None and self._actions[holder].action != ActionType.NO_OP:
                    raise PlanConflict(
                        f"{holder} reuses {address.kind}.{attribute}={value!r} "
                        f"which is still attached to {address} (pending destroy)"
                    )

    def _order_steps(self) -> List[PlanStep]:
        steps: Dict[str, PlanStep] = {}

        for address, action in self._actions.items():
            if action.action in (ActionType.DESTROY, ActionType.REPLACE):
                step = PlanStep(address=address, phase=StepPhase.DESTROY)
                steps[step.key] = step
            if action.action != ActionType.DESTROY:
                step = PlanStep(address=address, phase=StepPhase.APPLY)
                steps[step.key] = step

        for address, action in self._actions.items():
            if action.action != ActionType.DESTROY:
                apply_step = steps[step_key(address, StepPhase.APPLY)]
                for dependency in action.depends_on:
                    apply_step.requires.append(step_key(dependency, StepPhase.APPLY))
                if action.action == ActionType.REPLACE:
                    apply_step.requires.append(step_key(address, StepPhase.DESTROY))

        # A destroy waits for everything that still points at the old object,
        # by recorded or by currently declared edges
        for address, record in self.state.items():
            action = self._actions[address]
            dependencies = set(record.dependency_addresses())
            if address in self.graph:
                dependencies.update(self.graph.dependencies_of(address))
            for dependency in sorted(dependencies):
                target = self._actions.get(dependency)
                if target is None or target.action not in (ActionType.DESTROY, ActionType.REPLACE):
                    continue
                destroy_step = steps[step_key(dependency, StepPhase.DESTROY)]
                if action.action in (ActionType.DESTROY, ActionType.REPLACE):
                    destroy_step.requires.append(step_key(address, StepPhase.DESTROY))
                elif action.action == ActionType.UPDATE and target.action == ActionType.DESTROY:
                    destroy_step.requires.append(step_key(address, StepPhase.APPLY))

        step_graph = nx.DiGraph()
        for key, step in steps.items():
            step.requires = sorted(set(step.requires))
            step_graph.add_node(key)
            for required in step.requires:
                step_graph.add_edge(required, key)

        def sort_key(key: str) -> Tuple[str, str, int]:
            step = steps[key]
            return (step.address.kind, step.address.name, 0 if step.phase == StepPhase.DESTROY else 1)

        try:
            ordered = list(nx.lexicographical_topological_sort(step_graph, key=sort_key))
        except nx.NetworkXUnfeasible:
            cycle = [edge[0] for edge in nx.find_cycle(step_graph)]
            raise PlanConflict(f"Destroy and create ordering cannot be satisfied: {' -> '.join(cycle)}")
        return [steps[key] for key in ordered]


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True


def build_plan(
    registry: ResourceRegistry,
    graph: DependencyGraph,
    state: Mapping[ResourceAddress, StateRecord],
    capabilities: Optional[CapabilityTable] = None,
) -> Plan:
    """Build a reconciliation plan; see PlanBuilder."""
    return PlanBuilder(registry, graph, state, capabilities).build()
