"""
Pytest configuration and shared fixtures for the iacgraph test suite.

Provides model factories, a controllable clock for cache expiry, and
fixtures wiring engines against a fresh registry per test.
"""

from typing import Iterable, Optional, Sequence

import pytest

from iacgraph.config import Settings, load_settings
from iacgraph.engine.blast_radius import BlastRadiusEngine
from iacgraph.engine.graph import DependencyGraph, GraphRegistry, GraphTraversalEngine
from iacgraph.models.blast_radius import BlastRadiusQuery, BlastRadiusResult
from iacgraph.models.enums import EdgeType, EvidenceType, NodeType
from iacgraph.models.evidence import Evidence
from iacgraph.models.graph import GraphEdge, GraphNode, MergedNode, SourceLocation

EXECUTION_ID = "exec-1"
TENANT_ID = "tenant-a"


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_node(
    node_id: str,
    node_type: NodeType = NodeType.TERRAFORM_RESOURCE,
    file: str = "main.tf",
    line: int = 1,
    **overrides,
) -> GraphNode:
    """Factory function for creating test GraphNode objects."""
    defaults = dict(
        id=node_id,
        type=node_type,
        name=node_id,
        location=SourceLocation(file=file, line_start=line, line_end=line),
    )
    defaults.update(overrides)
    return GraphNode(**defaults)


def make_edge(
    source: str,
    target: str,
    edge_type: EdgeType = EdgeType.DEPENDS_ON,
    edge_id: Optional[str] = None,
    **overrides,
) -> GraphEdge:
    """Factory function for creating test GraphEdge objects."""
    defaults = dict(
        id=edge_id or f"{source}->{target}",
        source=source,
        target=target,
        type=edge_type,
    )
    defaults.update(overrides)
    return GraphEdge(**defaults)


def make_evidence(
    evidence_type: EvidenceType = EvidenceType.EXPLICIT_REFERENCE,
    confidence: float = 80.0,
    **overrides,
) -> Evidence:
    """Factory function for creating test Evidence objects."""
    defaults = dict(type=evidence_type, confidence=confidence, description="test evidence")
    defaults.update(overrides)
    return Evidence(**defaults)


def make_merged_node(
    node_id: str,
    repo_id: str = "repo-1",
    node_type: NodeType = NodeType.TERRAFORM_RESOURCE,
    **overrides,
) -> MergedNode:
    """Factory function for creating test MergedNode objects."""
    defaults = dict(
        id=node_id,
        source_node_ids=[node_id],
        source_repo_ids=[repo_id],
        type=node_type,
        name=node_id,
    )
    defaults.update(overrides)
    return MergedNode(**defaults)


def make_result(node_ids: Sequence[str] = ("a",), **overrides) -> BlastRadiusResult:
    """Factory function for creating empty BlastRadiusResult objects."""
    defaults = dict(
        query=BlastRadiusQuery(node_ids=list(node_ids)),
        execution_id=EXECUTION_ID,
        tenant_id=TENANT_ID,
    )
    defaults.update(overrides)
    return BlastRadiusResult(**defaults)


def edges_from_pairs(pairs: Iterable[tuple], edge_type: EdgeType = EdgeType.DEPENDS_ON) -> list[GraphEdge]:
    """
    Edges from (source, target) or (source, target, edge_type) tuples.

    Edge ids are positional (e0, e1, ...) so parallel edges stay distinct.
    """
    edges = []
    for index, pair in enumerate(pairs):
        source, target = pair[0], pair[1]
        kind = pair[2] if len(pair) > 2 else edge_type
        edges.append(make_edge(source, target, kind, edge_id=f"e{index}"))
    return edges


def node_ids_in_order(edges: Iterable[GraphEdge], isolated: Iterable[str] = ()) -> list[str]:
    """Node ids in first-appearance order across edges, then isolated ids."""
    ordered: dict[str, None] = {}
    for edge in edges:
        ordered.setdefault(edge.source)
        ordered.setdefault(edge.target)
    for node_id in isolated:
        ordered.setdefault(node_id)
    return list(ordered)


def make_graph(
    pairs: Iterable[tuple],
    isolated: Iterable[str] = (),
    execution_id: str = EXECUTION_ID,
    tenant_id: str = TENANT_ID,
) -> DependencyGraph:
    """
    DependencyGraph from edge tuples.

    Nodes are created in first-appearance order on consecutive lines of
    one file, so result ordering by (file, line, id) follows that order.
    """
    edges = edges_from_pairs(pairs)
    nodes = [
        make_node(node_id, line=index + 1)
        for index, node_id in enumerate(node_ids_in_order(edges, isolated))
    ]
    return DependencyGraph(execution_id, tenant_id, nodes, edges)


def register_merged(
    engine: BlastRadiusEngine,
    pairs: Iterable[tuple],
    repos: Optional[dict[str, str]] = None,
    repo_names: Optional[dict[str, str]] = None,
    isolated: Iterable[str] = (),
    execution_id: str = EXECUTION_ID,
    tenant_id: str = TENANT_ID,
):
    """Register a merged graph; ``repos`` maps node id to repo id (default repo-1)."""
    repos = repos or {}
    edges = edges_from_pairs(pairs)
    nodes = [
        make_merged_node(node_id, repo_id=repos.get(node_id, "repo-1"))
        for node_id in node_ids_in_order(edges, isolated)
    ]
    return engine.register_graph(execution_id, nodes, edges, repo_names, tenant_id=tenant_id)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any IACGRAPH_* environment."""
    return load_settings(_env_file=None)


@pytest.fixture
def registry() -> GraphRegistry:
    return GraphRegistry()


@pytest.fixture
def traversal(registry, settings) -> GraphTraversalEngine:
    return GraphTraversalEngine(registry, settings)


@pytest.fixture
def register(registry):
    """Register a graph built from edge tuples; returns the DependencyGraph."""

    def _register(pairs, isolated=(), execution_id=EXECUTION_ID, tenant_id=TENANT_ID):
        graph = make_graph(pairs, isolated, execution_id=execution_id, tenant_id=tenant_id)
        registry.register(graph)
        return graph

    return _register


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def blast_engine(settings, fake_clock) -> BlastRadiusEngine:
    return BlastRadiusEngine(settings, clock=fake_clock)
