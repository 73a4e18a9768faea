"""
Blast Radius Visualizer: Cytoscape.js JSON generation.

Renders a BlastRadiusResult as Cytoscape.js-compatible graph data. Source
nodes sit at the centre; impacted nodes are coloured by IaC tool family,
shrink with depth and are linked along the edges that first reached them.

Output format follows the Cytoscape.js JSON specification:
{
    "elements": {
        "nodes": [...],
        "edges": [...]
    },
    "style": [...],
    "layout": {...},
    "metadata": {...}
}

Version: blast_vis_v2
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from iacgraph.models.blast_radius import BlastRadiusResult, ImpactedNode

logger = structlog.get_logger()

# Colour per tool family (node type prefix)
FAMILY_COLORS = {
    "terraform": "#7B42BC",   # Terraform purple
    "k8s": "#326CE5",         # Kubernetes blue
    "helm": "#0F1689",        # Helm navy
    "tg": "#10B981",          # Green
    "source": "#DC2626",      # Red-600
}

FAMILY_SHAPES = {
    "terraform": "round-rectangle",
    "k8s": "ellipse",
    "helm": "hexagon",
    "tg": "diamond",
    "source": "octagon",
}

RISK_COLORS = {
    "low": "#22C55E",        # Green
    "medium": "#F59E0B",     # Amber
    "high": "#EF4444",       # Red
    "critical": "#7F1D1D",   # Dark Red
}

SOURCE_NODE_SIZE = 50
MAX_IMPACT_NODE_SIZE = 40
MIN_IMPACT_NODE_SIZE = 15


def _family(node_type: str) -> str:
    return node_type.split("_", 1)[0]


class BlastRadiusVisualizer:
    """
    Generates Cytoscape.js JSON for blast radius results.

    Example:
        >>> visualizer = BlastRadiusVisualizer()
        >>> graph_json = visualizer.generate_graph(result)
        >>> # Send to a frontend for Cytoscape.js rendering
    """

    def generate_graph(self, result: BlastRadiusResult, max_nodes: int = 200) -> dict[str, Any]:
        """
        Generate the full impact graph.

        Args:
            result: Blast radius result
            max_nodes: Maximum impacted nodes to include, nearest first

        Returns:
            Cytoscape.js JSON with elements, style, layout and metadata
        """
        nodes = []
        edges = []
        node_ids = set()

        for source_id in result.query.node_ids:
            nodes.append(self._create_source_node(source_id, result))
            node_ids.add(source_id)

        impacted: list[ImpactedNode] = [*result.direct_impact, *result.indirect_impact]
        impacted.sort(key=lambda n: n.depth)
        for impacted_node in impacted[:max_nodes]:
            if impacted_node.node_id in node_ids:
                continue
            nodes.append(self._create_impact_node(impacted_node))
            node_ids.add(impacted_node.node_id)

        for impacted_node in impacted[:max_nodes]:
            if impacted_node.reached_from in node_ids:
                edges.append(
                    self._create_edge(
                        source=impacted_node.reached_from,
                        target=impacted_node.node_id,
                        label=impacted_node.edge_type.value,
                    )
                )

        graph = {
            "elements": {
                "nodes": nodes,
                "edges": edges,
            },
            "style": self._get_default_style(),
            "layout": self._get_layout_config(len(nodes)),
            "metadata": {
                "execution_id": result.execution_id,
                "risk_level": result.summary.risk_level.value,
                "impact_score": result.summary.impact_score,
                "total_nodes": len(nodes),
                "total_edges": len(edges),
                "omitted_nodes": max(0, len(impacted) - max_nodes),
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        }

        logger.info(
            "blast_radius_graph_generated",
            execution_id=result.execution_id,
            nodes=len(nodes),
            edges=len(edges),
        )
        return graph

    def generate_summary_graph(self, result: BlastRadiusResult) -> dict[str, Any]:
        """
        Generate a repository-level summary graph.

        One node per impacted repository, sized by its impacted node count,
        plus an edge per cross-repository impact entry.
        """
        center_id = "sources"
        nodes = [
            {
                "data": {
                    "id": center_id,
                    "label": f"Changed\n({len(result.query.node_ids)})",
                    "type": "source",
                    "color": RISK_COLORS.get(result.summary.risk_level.value, "#DC2626"),
                    "shape": "octagon",
                    "size": SOURCE_NODE_SIZE,
                },
            }
        ]
        edges = []

        repo_labels = {n.repo_id: n.repo_name for n in [*result.direct_impact, *result.indirect_impact]}
        for repo_id, count in result.summary.impact_by_repo.items():
            repo_node_id = f"repo_{repo_id}"
            nodes.append({
                "data": {
                    "id": repo_node_id,
                    "label": f"{repo_labels.get(repo_id, repo_id)}\n({count:,})",
                    "type": "repository",
                    "color": "#6B7280",
                    "shape": "round-rectangle",
                    "size": min(60, 20 + count * 2),
                    "count": count,
                },
            })
            edges.append(self._create_edge(center_id, repo_node_id, f"{count:,} impacted"))

        present = {node["data"]["id"] for node in nodes}
        for impact in result.cross_repo_impact:
            source_node_id = f"repo_{impact.source_repo_id}"
            if source_node_id not in present:
                nodes.append({
                    "data": {
                        "id": source_node_id,
                        "label": impact.source_repo_name,
                        "type": "repository",
                        "color": "#6B7280",
                        "shape": "round-rectangle",
                        "size": 20,
                        "count": 0,
                    },
                })
                present.add(source_node_id)
            edges.append(
                self._create_edge(
                    f"repo_{impact.source_repo_id}",
                    f"repo_{impact.target_repo_id}",
                    f"{impact.edge_type.value} ({len(impact.impacted_nodes)})",
                )
            )

        return {
            "elements": {"nodes": nodes, "edges": edges},
            "style": self._get_default_style(),
            "layout": {"name": "concentric", "minNodeSpacing": 50, "animate": False},
            "metadata": {
                "execution_id": result.execution_id,
                "risk_level": result.summary.risk_level.value,
                "view": "summary",
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        }

    # =========================================================================
    # Node/Edge Creation
    # =========================================================================

    def _create_source_node(self, node_id: str, result: BlastRadiusResult) -> dict:
        return {
            "data": {
                "id": node_id,
                "label": node_id,
                "type": "source",
                "color": RISK_COLORS.get(result.summary.risk_level.value, FAMILY_COLORS["source"]),
                "shape": FAMILY_SHAPES["source"],
                "size": SOURCE_NODE_SIZE,
                "depth": 0,
            },
        }

    def _create_impact_node(self, node: ImpactedNode) -> dict:
        family = _family(node.node_type)
        size = max(MIN_IMPACT_NODE_SIZE, MAX_IMPACT_NODE_SIZE - (node.depth - 1) * 5)
        return {
            "data": {
                "id": node.node_id,
                "label": f"{node.node_name}\n{node.repo_name}",
                "type": node.node_type,
                "family": family,
                "color": FAMILY_COLORS.get(family, "#6B7280"),
                "shape": FAMILY_SHAPES.get(family, "ellipse"),
                "size": size,
                "depth": node.depth,
                "impact_score": node.impact_score,
                "repo_id": node.repo_id,
            },
        }

    def _create_edge(self, source: str, target: str, label: str = "") -> dict:
        return {
            "data": {
                "id": f"edge_{source}_{target}",
                "source": source,
                "target": target,
                "label": label or "impacts",
            },
        }

    # =========================================================================
    # Style & Layout
    # =========================================================================

    def _get_default_style(self) -> list[dict]:
        return [
            {
                "selector": "node",
                "style": {
                    "label": "data(label)",
                    "background-color": "data(color)",
                    "shape": "data(shape)",
                    "width": "data(size)",
                    "height": "data(size)",
                    "font-size": "10px",
                    "text-wrap": "wrap",
                    "text-valign": "bottom",
                    "text-halign": "center",
                    "color": "#1F2937",
                    "border-width": 2,
                    "border-color": "#D1D5DB",
                },
            },
            {
                "selector": "node[type='source']",
                "style": {
                    "font-size": "12px",
                    "font-weight": "bold",
                    "border-width": 3,
                    "border-color": "#7F1D1D",
                },
            },
            {
                "selector": "edge",
                "style": {
                    "label": "data(label)",
                    "width": 1.5,
                    "line-color": "#9CA3AF",
                    "target-arrow-color": "#9CA3AF",
                    "target-arrow-shape": "triangle",
                    "curve-style": "bezier",
                    "font-size": "8px",
                    "text-rotation": "autorotate",
                    "color": "#6B7280",
                },
            },
        ]

    def _get_layout_config(self, node_count: int) -> dict:
        """
        Layout by graph size.

        - Small (< 20 nodes): concentric, sources in the middle
        - Medium (20-100 nodes): breadthfirst from the sources
        - Large (100+ nodes): cose (force-directed)
        """
        if node_count < 20:
            return {
                "name": "concentric",
                "minNodeSpacing": 50,
                "animate": True,
                "animationDuration": 500,
            }
        elif node_count < 100:
            return {
                "name": "breadthfirst",
                "directed": True,
                "roots": "node[type='source']",
                "spacingFactor": 1.25,
                "animate": True,
                "animationDuration": 500,
            }
        else:
            return {
                "name": "cose",
                "nodeRepulsion": 8000,
                "idealEdgeLength": 100,
                "animate": False,
            }
