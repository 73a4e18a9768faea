"""
Per-execution IaC dependency graph.

A DependencyGraph is a snapshot of one scan: a directed multigraph whose
nodes are IaC constructs and whose edges are detected dependencies. Edge
direction follows the dependency: A -> B means "A depends on B".

The structure is fixed at construction. The only mutation is re-scoring an
edge's confidence, which swaps in a new frozen GraphEdge under that edge's
lock, so concurrent readers always see either the old or the new edge.

Graph Structure:
- Backing store: networkx.MultiDiGraph keyed by edge id (parallel edges allowed)
- Nodes: GraphNode by id, in insertion order
- Edges: GraphEdge by id, in insertion order
- Evidence and ConfidenceScore per edge id, when the builder scored the edge
"""

import threading
from typing import Iterable, Optional

import networkx as nx
import structlog

from iacgraph.errors import EdgeNotFoundError, InvalidQueryError, NodeNotFoundError
from iacgraph.models.evidence import ConfidenceScore, Evidence
from iacgraph.models.graph import GraphEdge, GraphNode

from .validator import GraphValidator

logger = structlog.get_logger()


class DependencyGraph:
    """
    Immutable-structure dependency graph for one execution and tenant.

    Attributes:
        execution_id: Scan execution the graph belongs to
        tenant_id: Owning tenant
        graph: Backing networkx MultiDiGraph (read-only for callers)

    Example:
        >>> graph = DependencyGraph("exec-1", "tenant-a", nodes, edges)
        >>> [e.target for e in graph.out_edges("aws_instance.web")]
        ['aws_subnet.main', 'aws_security_group.web']
    """

    def __init__(
        self,
        execution_id: str,
        tenant_id: str,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        evidence: Optional[dict[str, list[Evidence]]] = None,
        scores: Optional[dict[str, ConfidenceScore]] = None,
        validator: Optional[GraphValidator] = None,
    ):
        nodes = list(nodes)
        edges = list(edges)

        validator = validator or GraphValidator()
        validator.raise_for_errors(validator.validate(nodes, edges), execution_id=execution_id)

        self.execution_id = execution_id
        self.tenant_id = tenant_id
        self.graph = nx.MultiDiGraph()

        self._nodes: dict[str, GraphNode] = {}
        self._order: dict[str, int] = {}
        for index, node in enumerate(nodes):
            self._nodes[node.id] = node
            self._order[node.id] = index
            self.graph.add_node(node.id)

        self._edges: dict[str, GraphEdge] = {}
        self._edge_locks: dict[str, threading.Lock] = {}
        for edge in edges:
            self._edges[edge.id] = edge
            self._edge_locks[edge.id] = threading.Lock()
            self.graph.add_edge(edge.source, edge.target, key=edge.id, type=edge.type)

        self._evidence = {k: list(v) for k, v in (evidence or {}).items() if k in self._edges}
        self._scores = {k: v for k, v in (scores or {}).items() if k in self._edges}

    @property
    def key(self) -> tuple[str, str]:
        return (self.execution_id, self.tenant_id)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> GraphNode:
        """Return a node, raising NodeNotFoundError for an unknown id."""
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id, execution_id=self.execution_id) from None

    def node_index(self, node_id: str) -> int:
        """Insertion position of a node; gives every node a stable rank."""
        return self._order[node_id]

    def nodes(self) -> list[GraphNode]:
        return list(self._nodes.values())

    def edges(self) -> list[GraphEdge]:
        return list(self._edges.values())

    def edge(self, edge_id: str) -> GraphEdge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id, execution_id=self.execution_id) from None

    def out_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges leaving a node, in insertion order."""
        self.node(node_id)
        return [self._edges[key] for _, _, key in self.graph.out_edges(node_id, keys=True)]

    def in_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges entering a node, in insertion order."""
        self.node(node_id)
        return [self._edges[key] for _, _, key in self.graph.in_edges(node_id, keys=True)]

    def successors(self, node_id: str) -> list[str]:
        self.node(node_id)
        return list(self.graph.successors(node_id))

    def predecessors(self, node_id: str) -> list[str]:
        self.node(node_id)
        return list(self.graph.predecessors(node_id))

    def evidence_for(self, edge_id: str) -> list[Evidence]:
        self.edge(edge_id)
        return list(self._evidence.get(edge_id, []))

    def confidence_score(self, edge_id: str) -> Optional[ConfidenceScore]:
        """Full score for an edge scored from evidence, None otherwise."""
        self.edge(edge_id)
        return self._scores.get(edge_id)

    def update_edge_confidence(
        self,
        edge_id: str,
        confidence: int,
        score: Optional[ConfidenceScore] = None,
    ) -> GraphEdge:
        """
        Replace an edge's confidence.

        Updates to the same edge are serialized; the last writer wins.

        Args:
            edge_id: Edge to update
            confidence: New confidence (0-100)
            score: Optional score explaining the new value

        Returns:
            The replacement edge

        Raises:
            EdgeNotFoundError: Unknown edge id
            InvalidQueryError: Confidence outside 0-100
        """
        self.edge(edge_id)
        if isinstance(confidence, bool) or not isinstance(confidence, int) or not 0 <= confidence <= 100:
            raise InvalidQueryError(
                f"Confidence must be an integer between 0 and 100, got {confidence!r}",
                execution_id=self.execution_id,
                edge_id=edge_id,
            )

        with self._edge_locks[edge_id]:
            previous = self._edges[edge_id]
            updated = previous.with_confidence(confidence)
            self._edges[edge_id] = updated
            if score is not None:
                self._scores[edge_id] = score

        logger.debug(
            "edge_confidence_updated",
            execution_id=self.execution_id,
            edge_id=edge_id,
            previous=previous.confidence,
            confidence=confidence,
        )
        return updated

    def topological_order(self) -> Optional[list[str]]:
        """Node ids in dependency order, or None when the graph has a cycle."""
        try:
            return list(nx.topological_sort(self.graph))
        except nx.NetworkXUnfeasible:
            return None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return (
            f"DependencyGraph(execution_id={self.execution_id!r}, tenant_id={self.tenant_id!r}, "
            f"nodes={self.node_count}, edges={self.edge_count})"
        )
