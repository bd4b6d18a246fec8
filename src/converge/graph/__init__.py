"""Reference resolution into a dependency graph."""

from .dependency_graph import DependencyGraph, build_dependency_graph

__all__ = ["DependencyGraph", "build_dependency_graph"]
