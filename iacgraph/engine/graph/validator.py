"""
Structural validation of graph input.

Checks a node and edge collection before it is frozen into a
DependencyGraph. Errors (dangling endpoints, duplicate ids) make the input
unusable; warnings (self-loops, orphans, cycles) are reported but accepted.
"""

from collections import Counter, deque
from typing import Iterable, Optional

import networkx as nx
import structlog

from iacgraph.errors import InvalidGraphError
from iacgraph.models.graph import GraphEdge, GraphNode
from iacgraph.models.traversal import GraphValidationReport, ValidationCode, ValidationIssue

logger = structlog.get_logger()


class GraphValidator:
    """
    Validates parser output before graph construction.

    Example:
        >>> report = GraphValidator().validate(nodes, edges)
        >>> if not report.is_valid:
        ...     print([e.code for e in report.errors])
    """

    def validate(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
    ) -> GraphValidationReport:
        """
        Validate nodes and edges.

        Args:
            nodes: Candidate nodes
            edges: Candidate edges

        Returns:
            GraphValidationReport listing every error and warning found
        """
        nodes = list(nodes)
        edges = list(edges)
        report = GraphValidationReport()

        node_counts = Counter(n.id for n in nodes)
        for node_id, count in node_counts.items():
            if count > 1:
                report.errors.append(
                    ValidationIssue(
                        code=ValidationCode.DUPLICATE_NODE,
                        message=f"Node id {node_id} appears {count} times",
                        element_id=node_id,
                    )
                )

        edge_counts = Counter(e.id for e in edges)
        for edge_id, count in edge_counts.items():
            if count > 1:
                report.errors.append(
                    ValidationIssue(
                        code=ValidationCode.DUPLICATE_EDGE,
                        message=f"Edge id {edge_id} appears {count} times",
                        element_id=edge_id,
                    )
                )

        node_ids = set(node_counts)
        for edge in edges:
            if edge.source not in node_ids:
                report.errors.append(
                    ValidationIssue(
                        code=ValidationCode.DANGLING_SOURCE,
                        message=f"Edge {edge.id} references non-existent source node: {edge.source}",
                        element_id=edge.id,
                    )
                )
            if edge.target not in node_ids:
                report.errors.append(
                    ValidationIssue(
                        code=ValidationCode.DANGLING_TARGET,
                        message=f"Edge {edge.id} references non-existent target node: {edge.target}",
                        element_id=edge.id,
                    )
                )
            if edge.source == edge.target:
                report.warnings.append(
                    ValidationIssue(
                        code=ValidationCode.SELF_LOOP,
                        message=f"Edge {edge.id} is a self-loop",
                        element_id=edge.id,
                    )
                )

        for orphan_id in self.find_orphan_nodes(nodes, edges):
            report.warnings.append(
                ValidationIssue(
                    code=ValidationCode.ORPHAN_NODE,
                    message=f"Node {orphan_id} has no connections",
                    element_id=orphan_id,
                )
            )

        if self.has_cycles(edges):
            report.warnings.append(
                ValidationIssue(
                    code=ValidationCode.CYCLE_DETECTED,
                    message="Graph contains one or more cycles",
                )
            )

        logger.debug(
            "graph_validated",
            node_count=len(nodes),
            edge_count=len(edges),
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return report

    def has_cycles(self, edges: Iterable[GraphEdge]) -> bool:
        graph = nx.DiGraph()
        graph.add_edges_from((e.source, e.target) for e in edges)
        return not nx.is_directed_acyclic_graph(graph)

    def find_orphan_nodes(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
    ) -> list[str]:
        """Ids of nodes touched by no edge, in input order."""
        connected: set[str] = set()
        for edge in edges:
            connected.add(edge.source)
            connected.add(edge.target)
        return [n.id for n in nodes if n.id not in connected]

    def find_unreachable_nodes(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        start_node_id: str,
    ) -> list[str]:
        """
        Ids of nodes not reachable by following edges forward from a start node.

        Every node is unreachable from a start node that does not exist.
        """
        nodes = list(nodes)
        node_ids = [n.id for n in nodes]
        if start_node_id not in set(node_ids):
            return node_ids

        adjacency: dict[str, list[str]] = {}
        for edge in edges:
            adjacency.setdefault(edge.source, []).append(edge.target)

        reachable = {start_node_id}
        queue: deque[str] = deque([start_node_id])
        while queue:
            current = queue.popleft()
            for target in adjacency.get(current, []):
                if target not in reachable:
                    reachable.add(target)
                    queue.append(target)

        return [node_id for node_id in node_ids if node_id not in reachable]

    def raise_for_errors(self, report: GraphValidationReport, execution_id: Optional[str] = None) -> None:
        """Raise InvalidGraphError carrying the report when it has errors."""
        if report.errors:
            first = report.errors[0]
            raise InvalidGraphError(
                f"Graph input is invalid: {first.message}"
                + (f" (+{len(report.errors) - 1} more)" if len(report.errors) > 1 else ""),
                report=report,
                execution_id=execution_id,
                error_count=len(report.errors),
            )
