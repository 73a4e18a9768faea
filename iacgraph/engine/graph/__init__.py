"""Dependency graph model, construction, registry and traversal."""

from .builder import GraphBuilder
from .dependency_graph import DependencyGraph
from .registry import GraphRegistry
from .traversal import GraphTraversalEngine
from .validator import GraphValidator

__all__ = [
    "DependencyGraph",
    "GraphBuilder",
    "GraphRegistry",
    "GraphTraversalEngine",
    "GraphValidator",
]
