"""
Graph Builder: parser output to DependencyGraph.

Collects nodes, edges and per-edge evidence from format-specific parsers,
scores every edge that carries evidence, validates the result and freezes
it into a DependencyGraph snapshot.

Build steps:
1. Collect nodes and edges (duplicates are kept so validation reports them)
2. Validate: duplicate ids and dangling endpoints abort the build
3. Score edges with evidence; the rounded score becomes the edge confidence
4. Construct the DependencyGraph
"""

from typing import Iterable, Optional

import structlog

from iacgraph.engine.scoring import ScoringEngine
from iacgraph.models.evidence import ConfidenceScore, Evidence
from iacgraph.models.graph import GraphEdge, GraphNode

from .dependency_graph import DependencyGraph
from .validator import GraphValidator

logger = structlog.get_logger()


class GraphBuilder:
    """
    Accumulates parser output and builds a validated DependencyGraph.

    A builder is not thread-safe; use one per scan.

    Attributes:
        scoring_engine: Engine used to score evidence-backed edges
        validator: Input validator

    Example:
        >>> builder = GraphBuilder(ScoringEngine())
        >>> builder.add_nodes(nodes).add_edges(edges)
        >>> builder.add_evidence("e1", [Evidence(type="explicit_reference", confidence=90)])
        >>> graph = builder.build("exec-1", "tenant-a")
    """

    def __init__(
        self,
        scoring_engine: Optional[ScoringEngine] = None,
        validator: Optional[GraphValidator] = None,
    ):
        self.scoring_engine = scoring_engine or ScoringEngine()
        self.validator = validator or GraphValidator()
        self._nodes: list[GraphNode] = []
        self._edges: list[GraphEdge] = []
        self._evidence: dict[str, list[Evidence]] = {}

    def add_node(self, node: GraphNode) -> "GraphBuilder":
        self._nodes.append(node)
        return self

    def add_nodes(self, nodes: Iterable[GraphNode]) -> "GraphBuilder":
        self._nodes.extend(nodes)
        return self

    def add_edge(self, edge: GraphEdge) -> "GraphBuilder":
        self._edges.append(edge)
        return self

    def add_edges(self, edges: Iterable[GraphEdge]) -> "GraphBuilder":
        self._edges.extend(edges)
        return self

    def add_evidence(self, edge_id: str, evidence: Iterable[Evidence]) -> "GraphBuilder":
        """Attach evidence to an edge; repeated calls accumulate."""
        self._evidence.setdefault(edge_id, []).extend(evidence)
        return self

    def build(self, execution_id: str, tenant_id: str) -> DependencyGraph:
        """
        Validate, score and freeze the collected input.

        Args:
            execution_id: Scan execution the graph belongs to
            tenant_id: Owning tenant

        Returns:
            DependencyGraph snapshot

        Raises:
            InvalidGraphError: Duplicate ids or dangling edges, with the
                validation report attached
        """
        report = self.validator.validate(self._nodes, self._edges)
        self.validator.raise_for_errors(report, execution_id=execution_id)

        scores: dict[str, ConfidenceScore] = {}
        edges: list[GraphEdge] = []
        for edge in self._edges:
            evidence = self._evidence.get(edge.id)
            if evidence:
                score = self.scoring_engine.calculate(evidence)
                scores[edge.id] = score
                edge = edge.with_confidence(score.value)
            edges.append(edge)

        unknown = set(self._evidence) - {e.id for e in self._edges}
        if unknown:
            logger.warning(
                "evidence_for_unknown_edges",
                execution_id=execution_id,
                edge_ids=sorted(unknown),
            )

        graph = DependencyGraph(
            execution_id,
            tenant_id,
            self._nodes,
            edges,
            evidence=self._evidence,
            scores=scores,
            validator=self.validator,
        )

        logger.info(
            "graph_built",
            execution_id=execution_id,
            tenant_id=tenant_id,
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            scored_edges=len(scores),
            warnings=len(report.warnings),
        )
        return graph
