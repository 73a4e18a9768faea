"""
Blast radius query and result models.

A blast radius answers "if these nodes change, what else is affected?"
over a merged, possibly multi-repository graph. Results separate directly
impacted nodes (one hop from a source) from indirect ones and aggregate
impacts that cross repository boundaries.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .enums import EdgeType, RiskLevel


class BlastRadiusQuery(BaseModel):
    """
    Parameters of a blast radius analysis.

    Attributes:
        node_ids: Source nodes whose change is being assessed
        max_depth: Traversal depth (1-20)
        edge_types: Optional allow-list of edge types to follow
        include_cross_repo: Follow edges into other repositories
        include_indirect: Traverse and report nodes beyond the first hop
    """

    node_ids: list[str] = Field(min_length=1, description="Source node ids")
    max_depth: int = Field(default=5, ge=1, le=20, description="Traversal depth")
    edge_types: Optional[list[EdgeType]] = Field(
        default=None, description="Edge types to follow (all when omitted)"
    )
    include_cross_repo: bool = Field(default=True, description="Follow cross-repository edges")
    include_indirect: bool = Field(default=True, description="Traverse beyond the first hop")

    @field_validator("node_ids")
    @classmethod
    def validate_node_ids(cls, v: list[str]) -> list[str]:
        """Reject blank ids and drop duplicates while keeping order."""
        if any(not node_id for node_id in v):
            raise ValueError("node_ids must not contain empty ids")
        return list(dict.fromkeys(v))


class ImpactedNode(BaseModel):
    """
    A node affected by the change.

    Attributes:
        node_id: Impacted node id
        node_type: Node type
        node_name: Display name
        repo_id: Owning repository id
        repo_name: Owning repository name
        depth: Hops from the nearest source (1 = direct)
        reached_from: Node the first reaching edge came from
        edge_type: Type of the edge the node was first reached through
        impact_score: Summed contributions of every traversed edge into the node
    """

    node_id: str
    node_type: str
    node_name: str
    repo_id: str
    repo_name: str
    depth: int = Field(ge=1)
    reached_from: str
    edge_type: EdgeType
    impact_score: float = Field(ge=0.0)


class IndirectImpactedNode(ImpactedNode):
    """An impacted node beyond the first hop, with the path that first reached it."""

    path: list[str] = Field(min_length=2, description="Node ids from source to this node")


class CrossRepoImpact(BaseModel):
    """Impacted nodes in one repository reached from a source repository via one edge type."""

    source_repo_id: str
    source_repo_name: str
    target_repo_id: str
    target_repo_name: str
    impacted_nodes: list[str] = Field(default_factory=list)
    edge_type: EdgeType


class BlastRadiusSummary(BaseModel):
    """
    Aggregate figures for a blast radius result.

    Attributes:
        total_impacted: Direct plus indirect node count
        direct_count: Nodes one hop from a source
        indirect_count: Nodes further away
        cross_repo_count: Impacted nodes outside the source repositories
        impact_by_type: Impacted node count per node type
        impact_by_repo: Impacted node count per repository id
        impact_by_depth: Impacted node count per depth
        risk_level: Risk classification
        impact_score: Sum of weighted, depth-decayed edge contributions
    """

    total_impacted: int = Field(default=0, ge=0)
    direct_count: int = Field(default=0, ge=0)
    indirect_count: int = Field(default=0, ge=0)
    cross_repo_count: int = Field(default=0, ge=0)
    impact_by_type: dict[str, int] = Field(default_factory=dict)
    impact_by_repo: dict[str, int] = Field(default_factory=dict)
    impact_by_depth: dict[int, int] = Field(default_factory=dict)
    risk_level: RiskLevel = Field(default=RiskLevel.LOW)
    impact_score: float = Field(default=0.0, ge=0.0)


class BlastRadiusResult(BaseModel):
    """Complete blast radius analysis for one query against one execution."""

    query: BlastRadiusQuery
    execution_id: str
    tenant_id: str
    direct_impact: list[ImpactedNode] = Field(default_factory=list)
    indirect_impact: list[IndirectImpactedNode] = Field(default_factory=list)
    cross_repo_impact: list[CrossRepoImpact] = Field(default_factory=list)
    summary: BlastRadiusSummary = Field(default_factory=BlastRadiusSummary)
    truncated: bool = Field(default=False, description="True when the expansion budget was exhausted")
    computed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def impacted_node_ids(self) -> list[str]:
        return [n.node_id for n in self.direct_impact] + [n.node_id for n in self.indirect_impact]
