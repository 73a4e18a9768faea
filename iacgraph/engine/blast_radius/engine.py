"""
Blast Radius Engine: multi-source impact traversal.

Given a merged (possibly multi-repository) graph and a set of source nodes,
finds every node that would be affected by changing the sources and scores
how badly.

Traversal algorithm:
1. Seed the frontier with every source node at depth 0
2. Expand one level at a time along outgoing edges, keeping one frontier
   entry per simple path (a path never revisits its own nodes and never
   enters another source node)
3. Each traversed edge adds ``weight(edge_type) * 0.7 ** depth`` to the
   total impact score and to the score of the node it reaches
4. A node first reached one hop from a source is a direct impact; later, indirect,
   carrying the path that first reached it
5. Expansion stops at ``max_depth`` or when the expansion budget runs out
   (the result is then marked truncated)
6. Aggregate counts, cross-repository impact and risk level. With
   ``include_indirect`` off, indirect nodes are still traversed and scored
   but left out of the listed impacts and counts

Results are cached per (tenant, execution, source node set) and tagged with
the generation of the graph they were computed from.

Version: blast_radius_v2
"""

import itertools
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from iacgraph.config import Settings, load_settings
from iacgraph.errors import (
    BlastRadiusNotFoundError,
    BlastRadiusQueryError,
    ErrorCode,
    InvalidGraphError,
)
from iacgraph.models.blast_radius import (
    BlastRadiusQuery,
    BlastRadiusResult,
    BlastRadiusSummary,
    CrossRepoImpact,
    ImpactedNode,
    IndirectImpactedNode,
)
from iacgraph.models.enums import EdgeType
from iacgraph.models.graph import GraphEdge, MergedNode

from ..cancellation import CancellationToken, check_cancelled
from .cache import BlastRadiusCache, make_cache_key
from .impact_scorer import ImpactScorer

logger = structlog.get_logger()

DEFAULT_TENANT_ID = "default"


@dataclass(frozen=True)
class AnalysisNode:
    id: str
    type: str
    name: str
    repo_id: str
    repo_name: str
    is_merged: bool


@dataclass(frozen=True)
class AnalysisGraph:
    """Read-only traversal index for one registered execution."""

    nodes: dict[str, AnalysisNode]
    forward: dict[str, list[tuple[str, EdgeType]]]
    repo_names: dict[str, str]
    edge_count: int = 0
    generation: int = 0
    registered_at: float = field(default_factory=time.time)

    def repo_name(self, repo_id: str) -> str:
        return self.repo_names.get(repo_id, repo_id)


@dataclass
class _Reach:
    depth: int
    edge_type: EdgeType
    path: tuple[str, ...]
    score: float = 0.0


class BlastRadiusEngine:
    """
    Computes the blast radius of changes to nodes in a merged graph.

    Graphs are registered per (tenant, execution) and swapped in atomically.
    Analyses of different executions share nothing but the cache lock, and
    never block each other for the duration of a traversal.

    Attributes:
        settings: Depth bounds, expansion budget and cache sizing
        scorer: Edge weighting and risk classification
        cache: Result cache

    Example:
        >>> engine = BlastRadiusEngine(settings)
        >>> engine.register_graph("exec-1", merged_nodes, edges, {"repo-1": "infra"},
        ...                       tenant_id="tenant-a")
        >>> result = engine.analyze("exec-1", BlastRadiusQuery(node_ids=["vpc"]),
        ...                         tenant_id="tenant-a")
        >>> print(result.summary.risk_level, result.summary.impact_score)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scorer: Optional[ImpactScorer] = None,
        cache: Optional[BlastRadiusCache] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the blast radius engine.

        Args:
            settings: Engine settings (loaded from the environment when omitted)
            scorer: Optional custom impact scorer
            cache: Optional pre-built cache; otherwise one is sized from settings
            clock: Time source for the default cache (monotonic seconds)
        """
        self.settings = settings or load_settings()
        self.scorer = scorer or ImpactScorer()
        self.cache = cache or BlastRadiusCache(
            ttl_seconds=self.settings.blast_radius_cache_ttl_seconds,
            max_entries=self.settings.blast_radius_cache_max_entries,
            clock=clock or time.monotonic,
        )
        self._graphs: dict[tuple[str, str], AnalysisGraph] = {}
        self._generations = itertools.count(1)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Graph registration
    # ------------------------------------------------------------------

    def register_graph(
        self,
        execution_id: str,
        nodes: Iterable[MergedNode],
        edges: Iterable[GraphEdge],
        repo_names: Optional[dict[str, str]] = None,
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> AnalysisGraph:
        """
        Register (or replace) the merged graph for an execution.

        Args:
            execution_id: Rollup execution id
            nodes: Merged nodes
            edges: Edges between merged node ids
            repo_names: Repository id to display name
            tenant_id: Owning tenant

        Returns:
            The traversal index now serving this execution

        Raises:
            InvalidGraphError: Duplicate node ids or edges with unknown endpoints
        """
        repo_names = dict(repo_names or {})
        index: dict[str, AnalysisNode] = {}
        for node in nodes:
            if node.id in index:
                raise InvalidGraphError(
                    f"Duplicate merged node id: {node.id!r}",
                    execution_id=execution_id,
                    tenant_id=tenant_id,
                    node_id=node.id,
                )
            index[node.id] = AnalysisNode(
                id=node.id,
                type=node.type,
                name=node.name,
                repo_id=node.repo_id,
                repo_name=repo_names.get(node.repo_id, node.repo_id),
                is_merged=node.is_merged,
            )

        forward: dict[str, list[tuple[str, EdgeType]]] = defaultdict(list)
        edge_count = 0
        for edge in edges:
            dangling = [n for n in (edge.source, edge.target) if n not in index]
            if dangling:
                raise InvalidGraphError(
                    f"Edge {edge.id} references unknown node(s): {', '.join(dangling)}",
                    execution_id=execution_id,
                    tenant_id=tenant_id,
                    edge_id=edge.id,
                )
            forward[edge.source].append((edge.target, edge.type))
            edge_count += 1

        with self._lock:
            graph = AnalysisGraph(
                nodes=index,
                forward=dict(forward),
                repo_names=repo_names,
                edge_count=edge_count,
                generation=next(self._generations),
            )
            self._graphs[(tenant_id, execution_id)] = graph
        self.cache.invalidate_execution(tenant_id, execution_id)

        logger.info(
            "blast_radius_graph_registered",
            execution_id=execution_id,
            tenant_id=tenant_id,
            node_count=len(index),
            edge_count=edge_count,
            repo_count=len({n.repo_id for n in index.values()}),
        )
        return graph

    def clear_graph_data(self, execution_id: str, tenant_id: str = DEFAULT_TENANT_ID) -> bool:
        """Forget an execution's graph and its cached results."""
        with self._lock:
            removed = self._graphs.pop((tenant_id, execution_id), None)
        self.cache.invalidate_execution(tenant_id, execution_id)
        logger.info(
            "blast_radius_graph_cleared",
            execution_id=execution_id,
            tenant_id=tenant_id,
            removed=removed is not None,
        )
        return removed is not None

    def has_graph(self, execution_id: str, tenant_id: str = DEFAULT_TENANT_ID) -> bool:
        with self._lock:
            return (tenant_id, execution_id) in self._graphs

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def get_cached(
        self,
        execution_id: str,
        node_ids: Iterable[str],
        tenant_id: str = DEFAULT_TENANT_ID,
    ) -> Optional[BlastRadiusResult]:
        """Cached result for a source node set, or None. Never computes."""
        with self._lock:
            graph = self._graphs.get((tenant_id, execution_id))
        if graph is None:
            return None
        return self.cache.get(make_cache_key(tenant_id, execution_id, node_ids), graph.generation)

    def clear_cache(self) -> None:
        self.cache.clear()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(
        self,
        execution_id: str,
        query: Union[BlastRadiusQuery, dict[str, Any]],
        tenant_id: str = DEFAULT_TENANT_ID,
        cancel: Optional[CancellationToken] = None,
    ) -> BlastRadiusResult:
        """
        Compute (or fetch from cache) the blast radius of a query.

        Args:
            execution_id: Rollup execution id
            query: Query model or its dict form
            tenant_id: Owning tenant
            cancel: Optional cancellation token, checked between levels

        Returns:
            BlastRadiusResult

        Raises:
            BlastRadiusQueryError: Malformed query
            BlastRadiusNotFoundError: No graph registered for the execution,
                or a source node is not in it
            OperationCancelledError: The token was cancelled mid-traversal
        """
        query = self._coerce_query(query, execution_id)

        with self._lock:
            graph = self._graphs.get((tenant_id, execution_id))
        if graph is None:
            raise BlastRadiusNotFoundError(
                f"Graph data not found for execution: {execution_id}",
                ErrorCode.BLAST_NO_DATA,
                execution_id=execution_id,
                tenant_id=tenant_id,
            )
        for node_id in query.node_ids:
            if node_id not in graph.nodes:
                raise BlastRadiusNotFoundError(
                    f"Node not found in graph: {node_id}",
                    ErrorCode.BLAST_NODE_NOT_FOUND,
                    execution_id=execution_id,
                    tenant_id=tenant_id,
                    node_id=node_id,
                )

        key = make_cache_key(tenant_id, execution_id, query.node_ids)
        cached = self.cache.get(key, graph.generation)
        if cached is not None and cached.query == query:
            logger.debug("blast_radius_cache_hit", execution_id=execution_id, tenant_id=tenant_id)
            return cached

        started = time.perf_counter()
        result = self._compute(graph, execution_id, tenant_id, query, cancel)

        # A graph replaced or cleared mid-traversal must not get this result cached
        with self._lock:
            if self._graphs.get((tenant_id, execution_id)) is graph:
                self.cache.put(key, result, graph.generation)

        logger.info(
            "blast_radius_computed",
            execution_id=execution_id,
            tenant_id=tenant_id,
            source_count=len(query.node_ids),
            total_impacted=result.summary.total_impacted,
            impact_score=result.summary.impact_score,
            risk_level=result.summary.risk_level.value,
            truncated=result.truncated,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    def _coerce_query(self, query: Union[BlastRadiusQuery, dict[str, Any]], execution_id: str) -> BlastRadiusQuery:
        if not isinstance(query, BlastRadiusQuery):
            if isinstance(query, dict) and "max_depth" not in query:
                query = {**query, "max_depth": self.settings.blast_radius_default_depth}
            try:
                query = BlastRadiusQuery.model_validate(query)
            except ValidationError as e:
                raise BlastRadiusQueryError(
                    f"Invalid blast radius query: {e.errors()[0]['msg']}",
                    execution_id=execution_id,
                    query=query,
                ) from e
        if query.max_depth > self.settings.blast_radius_max_depth:
            raise BlastRadiusQueryError(
                f"max_depth {query.max_depth} exceeds the limit of {self.settings.blast_radius_max_depth}",
                execution_id=execution_id,
                query=query.model_dump(mode="json"),
            )
        return query

    def _compute(
        self,
        graph: AnalysisGraph,
        execution_id: str,
        tenant_id: str,
        query: BlastRadiusQuery,
        cancel: Optional[CancellationToken],
    ) -> BlastRadiusResult:
        sources = set(query.node_ids)
        source_repos = {graph.nodes[s].repo_id for s in query.node_ids}
        allowed = set(query.edge_types) if query.edge_types else None
        max_depth = query.max_depth
        budget = self.settings.blast_radius_max_expansions

        reached: dict[str, _Reach] = {}
        total_score = 0.0
        expansions = 0
        truncated = False

        frontier: list[tuple[str, tuple[str, ...]]] = [(s, (s,)) for s in query.node_ids]
        depth = 0
        while frontier and depth < max_depth and not truncated:
            check_cancelled(cancel, "blast_radius", execution_id=execution_id, tenant_id=tenant_id)
            next_frontier = []
            for current, path in frontier:
                for target, edge_type in graph.forward.get(current, []):
                    if allowed is not None and edge_type not in allowed:
                        continue
                    if target in sources or target in path:
                        continue
                    if not query.include_cross_repo and graph.nodes[target].repo_id not in source_repos:
                        continue

                    expansions += 1
                    if expansions > budget:
                        truncated = True
                        break

                    contribution = self.scorer.edge_contribution(edge_type, depth)
                    total_score += contribution
                    new_path = path + (target,)

                    entry = reached.get(target)
                    if entry is None:
                        entry = reached[target] = _Reach(depth=depth + 1, edge_type=edge_type, path=new_path)
                    entry.score += contribution

                    if depth + 1 < max_depth:
                        next_frontier.append((target, new_path))
                if truncated:
                    break
            frontier = next_frontier
            depth += 1

        if truncated:
            logger.warning(
                "blast_radius_budget_exhausted",
                execution_id=execution_id,
                tenant_id=tenant_id,
                budget=budget,
            )

        return self._assemble(graph, execution_id, tenant_id, query, reached, source_repos, total_score, truncated)

    def _assemble(
        self,
        graph: AnalysisGraph,
        execution_id: str,
        tenant_id: str,
        query: BlastRadiusQuery,
        reached: dict[str, _Reach],
        source_repos: set[str],
        total_score: float,
        truncated: bool,
    ) -> BlastRadiusResult:
        direct: list[ImpactedNode] = []
        indirect: list[IndirectImpactedNode] = []
        cross_repo: dict[tuple[str, str, EdgeType], list[str]] = defaultdict(list)

        impact_by_type: dict[str, int] = defaultdict(int)
        impact_by_repo: dict[str, int] = defaultdict(int)
        impact_by_depth: dict[int, int] = defaultdict(int)

        for node_id, entry in reached.items():
            node = graph.nodes[node_id]
            if node.repo_id not in source_repos:
                origin_repo = graph.nodes[entry.path[0]].repo_id
                cross_repo[(origin_repo, node.repo_id, entry.edge_type)].append(node_id)

            # Indirect nodes still count toward score and cross-repo impact when not listed
            if entry.depth > 1 and not query.include_indirect:
                continue

            fields = dict(
                node_id=node_id,
                node_type=node.type,
                node_name=node.name,
                repo_id=node.repo_id,
                repo_name=node.repo_name,
                depth=entry.depth,
                reached_from=entry.path[-2],
                edge_type=entry.edge_type,
                impact_score=round(entry.score, 2),
            )
            if entry.depth == 1:
                direct.append(ImpactedNode(**fields))
            else:
                indirect.append(IndirectImpactedNode(**fields, path=list(entry.path)))

            impact_by_type[node.type] += 1
            impact_by_repo[node.repo_id] += 1
            impact_by_depth[entry.depth] += 1

        cross_repo_impact = [
            CrossRepoImpact(
                source_repo_id=source_repo,
                source_repo_name=graph.repo_name(source_repo),
                target_repo_id=target_repo,
                target_repo_name=graph.repo_name(target_repo),
                impacted_nodes=node_ids,
                edge_type=edge_type,
            )
            for (source_repo, target_repo, edge_type), node_ids in cross_repo.items()
        ]
        cross_repo_count = sum(len(c.impacted_nodes) for c in cross_repo_impact)
        impact_score = round(total_score, 2)

        summary = BlastRadiusSummary(
            total_impacted=len(direct) + len(indirect),
            direct_count=len(direct),
            indirect_count=len(indirect),
            cross_repo_count=cross_repo_count,
            impact_by_type=dict(impact_by_type),
            impact_by_repo=dict(impact_by_repo),
            impact_by_depth=dict(impact_by_depth),
            risk_level=self.scorer.classify_risk(
                direct_count=len(direct),
                indirect_count=len(indirect),
                cross_repo_count=len(cross_repo_impact),
                impact_score=impact_score,
            ),
            impact_score=impact_score,
        )

        return BlastRadiusResult(
            query=query,
            execution_id=execution_id,
            tenant_id=tenant_id,
            direct_impact=direct,
            indirect_impact=indirect,
            cross_repo_impact=cross_repo_impact,
            summary=summary,
            truncated=truncated,
        )
