"""
Registry of graph snapshots keyed by (execution id, tenant id).

Registration replaces a snapshot wholesale. Readers take the lock only long
enough to fetch the current snapshot, so a traversal in flight keeps the
graph it started with even if a rebuild is registered meanwhile.
"""

import threading
from typing import Optional

import structlog

from iacgraph.errors import GraphNotFoundError

from .dependency_graph import DependencyGraph

logger = structlog.get_logger()


class GraphRegistry:
    """
    Thread-safe map from (execution_id, tenant_id) to DependencyGraph.

    Lookups never fall back across tenants: a graph registered for one
    tenant is invisible to every other tenant.
    """

    def __init__(self) -> None:
        self._graphs: dict[tuple[str, str], DependencyGraph] = {}
        self._lock = threading.Lock()

    def register(self, graph: DependencyGraph) -> Optional[DependencyGraph]:
        """Store a graph, returning the snapshot it replaced if any."""
        with self._lock:
            previous = self._graphs.get(graph.key)
            self._graphs[graph.key] = graph

        logger.info(
            "graph_registered",
            execution_id=graph.execution_id,
            tenant_id=graph.tenant_id,
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            replaced=previous is not None,
        )
        return previous

    def get(self, execution_id: str, tenant_id: str) -> DependencyGraph:
        with self._lock:
            graph = self._graphs.get((execution_id, tenant_id))
        if graph is None:
            raise GraphNotFoundError(execution_id, tenant_id=tenant_id)
        return graph

    def unregister(self, execution_id: str, tenant_id: str) -> bool:
        with self._lock:
            removed = self._graphs.pop((execution_id, tenant_id), None)
        if removed is not None:
            logger.info("graph_unregistered", execution_id=execution_id, tenant_id=tenant_id)
        return removed is not None

    def keys(self) -> list[tuple[str, str]]:
        with self._lock:
            return list(self._graphs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._graphs)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._graphs
