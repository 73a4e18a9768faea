"""Analysis engines: scoring, graph traversal and blast radius."""

from .blast_radius import BlastRadiusEngine
from .cancellation import CancellationToken
from .graph import GraphBuilder, GraphRegistry, GraphTraversalEngine
from .scoring import ScoringEngine

__all__ = [
    "BlastRadiusEngine",
    "CancellationToken",
    "GraphBuilder",
    "GraphRegistry",
    "GraphTraversalEngine",
    "ScoringEngine",
]
