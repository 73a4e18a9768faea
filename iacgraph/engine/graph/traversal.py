"""
Graph Traversal Engine.

Answers structural questions about a registered DependencyGraph: what a node
depends on (downstream), what depends on it (upstream), how two nodes are
connected, where the cycles are, how the graph splits into components and
what a change to one node would affect.

Traversal conventions:
- Edge direction is dependency direction: A -> B means A depends on B
- Every query is scoped by (execution_id, tenant_id)
- Node lists are ordered by (file, line_start, id)
- Enumeration queries (all paths, cycles) are capped and report truncation
  through a ``truncated`` flag rather than raising
- Long-running queries check an optional CancellationToken between BFS levels
"""

from collections import deque
from typing import Optional

import networkx as nx
import structlog

from iacgraph.config import Settings, load_settings
from iacgraph.errors import InvalidQueryError
from iacgraph.models.graph import GraphNode
from iacgraph.models.traversal import (
    Cycle,
    CycleSearchResult,
    FanEntry,
    GraphPath,
    GraphStatistics,
    ImpactAnalysisResult,
    PathSearchResult,
    TransitiveDependent,
)

from ..cancellation import CancellationToken, check_cancelled
from .dependency_graph import DependencyGraph
from .registry import GraphRegistry

logger = structlog.get_logger()

# Upper bound on the reported max depth (nodes on the longest path)
MAX_DEPTH_SEARCH_CAP = 50


def _sorted_nodes(nodes) -> list[GraphNode]:
    return sorted(nodes, key=lambda n: n.sort_key)


class GraphTraversalEngine:
    """
    Read-only query engine over registered dependency graphs.

    Each call resolves the current snapshot once and runs entirely against
    it, so a concurrent re-registration never changes a query mid-flight.

    Attributes:
        registry: Graph registry to resolve snapshots from
        settings: Depth defaults and result caps

    Example:
        >>> engine = GraphTraversalEngine(registry, settings)
        >>> deps = engine.downstream("exec-1", "tenant-a", "aws_instance.web", max_depth=2)
        >>> result = engine.detect_cycles("exec-1", "tenant-a")
        >>> print(f"{len(result.cycles)} cycles, truncated={result.truncated}")
    """

    def __init__(self, registry: GraphRegistry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or load_settings()

    # ------------------------------------------------------------------
    # Reachability
    # ------------------------------------------------------------------

    def downstream(
        self,
        execution_id: str,
        tenant_id: str,
        node_id: str,
        max_depth: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> list[GraphNode]:
        """
        Nodes the given node depends on, directly or transitively.

        Args:
            execution_id: Scan execution
            tenant_id: Owning tenant
            node_id: Start node (excluded from the result)
            max_depth: Hop limit (default from settings)
            cancel: Optional cancellation token

        Returns:
            Reachable nodes within max_depth, ordered by (file, line, id)
        """
        graph = self.registry.get(execution_id, tenant_id)
        depth = self._resolve_depth(max_depth, "downstream")
        graph.node(node_id)
        reached = self._reach(graph, node_id, depth, forward=True, cancel=cancel)
        return _sorted_nodes(graph.node(n) for n in reached)

    def upstream(
        self,
        execution_id: str,
        tenant_id: str,
        node_id: str,
        max_depth: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> list[GraphNode]:
        """Nodes that depend on the given node, directly or transitively."""
        graph = self.registry.get(execution_id, tenant_id)
        depth = self._resolve_depth(max_depth, "upstream")
        graph.node(node_id)
        reached = self._reach(graph, node_id, depth, forward=False, cancel=cancel)
        return _sorted_nodes(graph.node(n) for n in reached)

    def _reach(
        self,
        graph: DependencyGraph,
        start: str,
        max_depth: int,
        forward: bool,
        cancel: Optional[CancellationToken],
    ) -> set[str]:
        neighbours = graph.graph.successors if forward else graph.graph.predecessors
        visited = {start}
        frontier = [start]
        for _ in range(max_depth):
            check_cancelled(cancel, "downstream" if forward else "upstream", execution_id=graph.execution_id)
            next_frontier = []
            for current in frontier:
                for neighbour in neighbours(current):
                    if neighbour not in visited:
                        visited.add(neighbour)
                        next_frontier.append(neighbour)
            if not next_frontier:
                break
            frontier = next_frontier
        visited.discard(start)
        return visited

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def shortest_path(
        self,
        execution_id: str,
        tenant_id: str,
        source_id: str,
        target_id: str,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[GraphPath]:
        """
        Shortest directed path from source to target.

        Breadth-first, bounded by ``shortest_path_max_depth``. Among paths of
        minimal length the first one discovered (by edge insertion order) is
        returned. A node's path to itself has length 0.

        Returns:
            GraphPath, or None when no path exists within the depth cap
        """
        graph = self.registry.get(execution_id, tenant_id)
        graph.node(source_id)
        graph.node(target_id)

        if source_id == target_id:
            return GraphPath(nodes=[source_id], edges=[])

        parents: dict[str, tuple[str, str]] = {}
        visited = {source_id}
        frontier = [source_id]
        for _ in range(self.settings.shortest_path_max_depth):
            check_cancelled(cancel, "shortest_path", execution_id=execution_id)
            next_frontier = []
            for current in frontier:
                for edge in graph.out_edges(current):
                    if edge.target in visited:
                        continue
                    visited.add(edge.target)
                    parents[edge.target] = (current, edge.id)
                    if edge.target == target_id:
                        return self._unwind(parents, source_id, target_id)
                    next_frontier.append(edge.target)
            if not next_frontier:
                break
            frontier = next_frontier
        return None

    @staticmethod
    def _unwind(parents: dict[str, tuple[str, str]], source_id: str, target_id: str) -> GraphPath:
        nodes = [target_id]
        edges = []
        current = target_id
        while current != source_id:
            current, edge_id = parents[current]
            nodes.append(current)
            edges.append(edge_id)
        nodes.reverse()
        edges.reverse()
        return GraphPath(nodes=nodes, edges=edges)

    def all_paths(
        self,
        execution_id: str,
        tenant_id: str,
        source_id: str,
        target_id: str,
        max_depth: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> PathSearchResult:
        """
        All simple paths from source to target within max_depth edges.

        Paths are discovered level by level, so the result is ordered by
        length and then by discovery order. At most ``all_paths_limit``
        paths are returned; ``truncated`` is set when that cap or the
        expansion budget stopped the search early.
        """
        graph = self.registry.get(execution_id, tenant_id)
        depth = self._resolve_depth(max_depth, "all_paths")
        graph.node(source_id)
        graph.node(target_id)

        if source_id == target_id:
            return PathSearchResult(paths=[GraphPath(nodes=[source_id], edges=[])])

        limit = self.settings.all_paths_limit
        budget = self.settings.traversal_max_expansions
        expansions = 0
        paths: list[GraphPath] = []

        frontier: list[tuple[list[str], list[str]]] = [([source_id], [])]
        for _ in range(depth):
            check_cancelled(cancel, "all_paths", execution_id=execution_id)
            next_frontier = []
            for nodes, edges in frontier:
                for edge in graph.out_edges(nodes[-1]):
                    if edge.target in nodes:
                        continue
                    expansions += 1
                    if expansions > budget:
                        logger.warning(
                            "path_expansion_budget_exhausted",
                            execution_id=execution_id,
                            source_id=source_id,
                            target_id=target_id,
                            budget=budget,
                        )
                        return PathSearchResult(paths=paths, truncated=True)
                    if edge.target == target_id:
                        if len(paths) >= limit:
                            logger.info("path_limit_reached", execution_id=execution_id, limit=limit)
                            return PathSearchResult(paths=paths, truncated=True)
                        paths.append(GraphPath(nodes=[*nodes, target_id], edges=[*edges, edge.id]))
                    else:
                        next_frontier.append(([*nodes, edge.target], [*edges, edge.id]))
            if not next_frontier:
                break
            frontier = next_frontier

        return PathSearchResult(paths=paths)

    # ------------------------------------------------------------------
    # Cycles and components
    # ------------------------------------------------------------------

    def detect_cycles(
        self,
        execution_id: str,
        tenant_id: str,
        cancel: Optional[CancellationToken] = None,
    ) -> CycleSearchResult:
        """
        Enumerate elementary cycles, shortest first.

        Every edge seeds a candidate path that is extended one level at a
        time. A path only visits nodes ranked after its start node (by
        insertion order), so each cycle is discovered exactly once, from
        its lowest-ranked member. Self-loops are cycles of length 1.

        Returns:
            CycleSearchResult with at most ``cycle_limit`` cycles of at most
            ``cycle_max_length`` edges; empty for an acyclic graph
        """
        graph = self.registry.get(execution_id, tenant_id)
        limit = self.settings.cycle_limit
        max_length = self.settings.cycle_max_length
        budget = self.settings.traversal_max_expansions
        rank = graph.node_index

        cycles: list[Cycle] = []
        seen: set[tuple[str, ...]] = set()
        truncated = False
        expansions = 0

        def record(nodes: list[str], edges: list[str]) -> bool:
            """Add a cycle; False once the cap is exceeded."""
            nonlocal truncated
            key = self._canonical_rotation(edges)
            if key in seen:
                return True
            if len(cycles) >= limit:
                truncated = True
                return False
            seen.add(key)
            cycles.append(Cycle(nodes=nodes, edges=edges, length=len(edges)))
            return True

        frontier: list[tuple[list[str], list[str]]] = []
        for edge in graph.edges():
            if edge.source == edge.target:
                if not record([edge.source], [edge.id]):
                    break
            elif rank(edge.target) > rank(edge.source):
                frontier.append(([edge.source, edge.target], [edge.id]))

        length = 1
        while frontier and not truncated and length < max_length:
            check_cancelled(cancel, "detect_cycles", execution_id=execution_id)
            next_frontier = []
            for nodes, edges in frontier:
                start = nodes[0]
                for edge in graph.out_edges(nodes[-1]):
                    expansions += 1
                    if expansions > budget:
                        truncated = True
                        break
                    if edge.target == start:
                        if not record(list(nodes), [*edges, edge.id]):
                            break
                    elif rank(edge.target) > rank(start) and edge.target not in nodes:
                        next_frontier.append(([*nodes, edge.target], [*edges, edge.id]))
                if truncated:
                    break
            frontier = next_frontier
            length += 1

        if truncated:
            logger.warning(
                "cycle_limit_reached",
                execution_id=execution_id,
                limit=limit,
                expansions=expansions,
            )
        cycles.sort(key=lambda c: c.length)
        return CycleSearchResult(cycles=cycles, truncated=truncated)

    @staticmethod
    def _canonical_rotation(edges: list[str]) -> tuple[str, ...]:
        pivot = edges.index(min(edges))
        return tuple(edges[pivot:] + edges[:pivot])

    def connected_components(self, execution_id: str, tenant_id: str) -> list[list[GraphNode]]:
        """
        Weakly connected components, singletons included.

        Members are ordered by (file, line, id); components by their first
        member under the same ordering.
        """
        graph = self.registry.get(execution_id, tenant_id)
        components = [
            _sorted_nodes(graph.node(n) for n in component)
            for component in nx.weakly_connected_components(graph.graph)
        ]
        components.sort(key=lambda members: members[0].sort_key)
        return components

    # ------------------------------------------------------------------
    # Impact analysis
    # ------------------------------------------------------------------

    def analyze_impact(
        self,
        execution_id: str,
        tenant_id: str,
        node_id: str,
        max_depth: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ImpactAnalysisResult:
        """
        What would be affected by changing a node.

        Direct dependents have an edge into the node. Transitive dependents
        are found by walking further upstream from the direct dependents,
        level by level up to max_depth (direct dependents are level 1); each
        is tagged with the deepest level it appears at.

        Returns:
            ImpactAnalysisResult with direct and transitive dependents,
            the impacted edges and the overall depth
        """
        graph = self.registry.get(execution_id, tenant_id)
        depth_limit = self._resolve_depth(max_depth, "analyze_impact")
        graph.node(node_id)

        direct_ids = list(dict.fromkeys(
            e.source for e in graph.in_edges(node_id) if e.source != node_id
        ))
        direct_set = set(direct_ids)

        max_level: dict[str, int] = {}
        level = set(direct_ids)
        for depth in range(2, depth_limit + 1):
            check_cancelled(cancel, "analyze_impact", execution_id=execution_id)
            level = {
                pred
                for current in level
                for pred in graph.graph.predecessors(current)
                if pred != node_id
            }
            if not level:
                break
            for pred in level:
                if pred not in direct_set:
                    max_level[pred] = depth

        transitive = [
            TransitiveDependent(node=graph.node(n), depth=d)
            for n, d in max_level.items()
        ]
        transitive.sort(key=lambda t: (t.depth, t.node.sort_key))

        impacted = direct_set | set(max_level)
        impacted_edges = [
            e for e in graph.edges() if e.source in impacted or e.target == node_id
        ]

        if max_level:
            depth = max(max_level.values())
        else:
            depth = 1 if direct_ids else 0

        logger.debug(
            "impact_analyzed",
            execution_id=execution_id,
            node_id=node_id,
            direct=len(direct_ids),
            transitive=len(transitive),
            depth=depth,
        )

        return ImpactAnalysisResult(
            direct=_sorted_nodes(graph.node(n) for n in direct_ids),
            transitive=transitive,
            impacted_edges=impacted_edges,
            depth=depth,
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistics(
        self,
        execution_id: str,
        tenant_id: str,
        cancel: Optional[CancellationToken] = None,
    ) -> GraphStatistics:
        """
        Node/edge counts, average out-degree, longest path, components, cyclicity.

        ``max_depth`` counts the nodes on the longest simple path (a single
        edge gives 2), capped at MAX_DEPTH_SEARCH_CAP; 0 for a graph without
        edges.
        """
        graph = self.registry.get(execution_id, tenant_id)
        edges = graph.edges()

        sources = {e.source for e in edges}
        avg_out_degree = round(len(edges) / len(sources), 2) if sources else 0.0
        has_cycles = not nx.is_directed_acyclic_graph(graph.graph)

        if not edges:
            max_depth = 0
        elif not has_cycles:
            max_depth = min(nx.dag_longest_path_length(nx.DiGraph(graph.graph)) + 1, MAX_DEPTH_SEARCH_CAP)
        else:
            max_depth = self._bounded_longest_path(graph, cancel)

        return GraphStatistics(
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            avg_out_degree=avg_out_degree,
            max_depth=max_depth,
            component_count=nx.number_weakly_connected_components(graph.graph),
            has_cycles=has_cycles,
        )

    def _bounded_longest_path(
        self,
        graph: DependencyGraph,
        cancel: Optional[CancellationToken],
    ) -> int:
        """Node count of the longest simple path in a cyclic graph, capped and budgeted."""
        budget = self.settings.traversal_max_expansions
        expansions = 0
        longest = 0
        simple = nx.DiGraph(graph.graph)

        for start in simple.nodes:
            check_cancelled(cancel, "statistics", execution_id=graph.execution_id)
            stack = deque([(start, (start,))])
            while stack:
                current, path = stack.pop()
                longest = max(longest, len(path))
                if longest >= MAX_DEPTH_SEARCH_CAP:
                    return MAX_DEPTH_SEARCH_CAP
                for successor in simple.successors(current):
                    if successor in path:
                        continue
                    expansions += 1
                    if expansions > budget:
                        logger.warning(
                            "longest_path_budget_exhausted",
                            execution_id=graph.execution_id,
                            longest=longest,
                        )
                        return longest
                    stack.append((successor, path + (successor,)))
        return longest

    def high_fan_out(self, execution_id: str, tenant_id: str, threshold: int = 5) -> list[FanEntry]:
        """Nodes with at least ``threshold`` outgoing edges, busiest first."""
        graph = self.registry.get(execution_id, tenant_id)
        return self._fan(graph, threshold, dict(graph.graph.out_degree()))

    def high_fan_in(self, execution_id: str, tenant_id: str, threshold: int = 5) -> list[FanEntry]:
        """Nodes with at least ``threshold`` incoming edges, busiest first."""
        graph = self.registry.get(execution_id, tenant_id)
        return self._fan(graph, threshold, dict(graph.graph.in_degree()))

    @staticmethod
    def _fan(graph: DependencyGraph, threshold: int, degrees: dict[str, int]) -> list[FanEntry]:
        if threshold < 0:
            raise InvalidQueryError(
                f"threshold must be non-negative, got {threshold}",
                execution_id=graph.execution_id,
            )
        entries = [
            FanEntry(node=graph.node(node_id), count=count)
            for node_id, count in degrees.items()
            if count >= threshold
        ]
        entries.sort(key=lambda e: (-e.count, e.node.id))
        return entries

    def _resolve_depth(self, max_depth: Optional[int], operation: str) -> int:
        if max_depth is None:
            return self.settings.default_max_depth
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth <= 0:
            raise InvalidQueryError(
                f"max_depth must be a positive integer, got {max_depth!r}",
                operation=operation,
                max_depth=max_depth,
            )
        return max_depth
