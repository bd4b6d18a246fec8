"""Resolve references between declared resources into a dependency graph."""

import networkx as nx
from typing import Dict, List, Set, Tuple
from ..registry import ResourceAddress, ResourceRegistry, iter_references
from ..utils.errors import CyclicDependency, UnknownResource
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Directed dependency graph: nodes=resources, edges=dependent -> dependency."""
    
    def __init__(self):
        self.graph = nx.DiGraph()
        self._adjacency: Dict[ResourceAddress, Set[ResourceAddress]] = {}
    
    def add_node(self, address: ResourceAddress) -> None:
        self._adjacency.setdefault(address, set())
        self.graph.add_node(address)
    
    def add_edge(self, dependent: ResourceAddress, dependency: ResourceAddress) -> None:
        """Record that dependent needs dependency applied first."""
        self.add_node(dependent)
        self.add_node(dependency)
        if dependency not in self._adjacency[dependent]:
            self._adjacency[dependent].add(dependency)
            self.graph.add_edge(dependent, dependency)
            logger.debug(f"Added dependency edge: {dependent} -> {dependency}")
    
    def build_from_registry(self, registry: ResourceRegistry) -> None:
        """
        Build the graph from every attribute reference and depends_on hint.
        
        Raises:
            UnknownResource: If a reference names an undeclared resource
            CyclicDependency: If the references form a cycle
        """
        for resource in registry.resources():
            self.add_node(resource.address)
        
        for resource in registry.resources():
            for attribute in sorted(resource.attributes):
                for reference in iter_references(resource.attributes[attribute]):
                    if reference.address not in registry:
                        raise UnknownResource(str(reference.address), referenced_by=f"{resource.address}.{attribute}")
                    self.add_edge(resource.address, reference.address)
            for dependency in resource.depends_on:
                if dependency not in registry:
                    raise UnknownResource(str(dependency), referenced_by=f"{resource.address}.depends_on")
                self.add_edge(resource.address, dependency)
        
        self.check_acyclic()
        logger.info(f"Built dependency graph with {self.graph.number_of_nodes()} nodes and {self.graph.number_of_edges()} edges")
    
    def check_acyclic(self) -> None:
        """Depth-first traversal with visiting/visited colouring; raises on a back edge."""
        colour: Dict[ResourceAddress, int] = {node: _WHITE for node in self._adjacency}
        
        for root in sorted(self._adjacency):
            if colour[root] != _WHITE:
                continue
            # Explicit stack of (node, remaining children); path mirrors the grey nodes
            path: List[ResourceAddress] = [root]
            stack: List[Tuple[ResourceAddress, List[ResourceAddress]]] = [
                (root, sorted(self._adjacency[root], reverse=True))
            ]
            colour[root] = _GREY
            while stack:
                node, children = stack[-1]
                if not children:
                    colour[node] = _BLACK
                    stack.pop()
                    path.pop()
                    continue
                child = children.pop()
                if colour[child] == _GREY:
                    cycle = path[path.index(child):] + [child]
                    raise CyclicDependency([str(member) for member in cycle])
                if colour[child] == _WHITE:
                    colour[child] = _GREY
                    path.append(child)
                    stack.append((child, sorted(self._adjacency[child], reverse=True)))
    
    def dependencies_of(self, address: ResourceAddress) -> List[ResourceAddress]:
        """Direct dependencies of a resource."""
        return sorted(self._adjacency.get(address, ()))
    
    def dependents_of(self, address: ResourceAddress) -> List[ResourceAddress]:
        """Resources that directly depend on the given resource."""
        if address not in self.graph:
            return []
        return sorted(self.graph.predecessors(address))
    
    def upstream_of(self, address: ResourceAddress) -> Set[ResourceAddress]:
        """All resources the given resource transitively depends on."""
        if address not in self.graph:
            return set()
        return set(nx.descendants(self.graph, address))
    
    def downstream_of(self, address: ResourceAddress) -> Set[ResourceAddress]:
        """All resources that transitively depend on the given resource."""
        if address not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, address))
    
    def topological_order(self) -> List[ResourceAddress]:
        """Dependencies before dependents; independent resources ordered by (kind, name)."""
        return list(nx.lexicographical_topological_sort(self.graph.reverse(copy=False), key=lambda a: a))
    
    def nodes(self) -> List[ResourceAddress]:
        return sorted(self._adjacency)
    
    def edges(self) -> List[Tuple[ResourceAddress, ResourceAddress]]:
        """All (dependent, dependency) edges, sorted."""
        return sorted((dependent, dependency) for dependent, deps in self._adjacency.items() for dependency in deps)
    
    def __contains__(self, address: ResourceAddress) -> bool:
        return address in self._adjacency
    
    def __len__(self) -> int:
        return len(self._adjacency)


def build_dependency_graph(registry: ResourceRegistry) -> DependencyGraph:
    """Build and validate the dependency graph for a registry."""
    graph = DependencyGraph()
    graph.build_from_registry(registry)
    return graph
