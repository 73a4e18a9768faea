"""
Result models for graph traversal, cycle detection and validation queries.

Results reference nodes and edges by id except where the caller needs the
full node (dependents, components, fan entries).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .graph import GraphEdge, GraphNode


class GraphPath(BaseModel):
    """
    A simple path through the graph.

    Attributes:
        nodes: Node ids from start to end
        edges: Edge ids, one fewer than nodes
        length: Number of edges
    """

    model_config = ConfigDict(frozen=True)

    nodes: list[str] = Field(min_length=1, description="Node ids in path order")
    edges: list[str] = Field(default_factory=list, description="Edge ids in path order")

    @model_validator(mode="after")
    def validate_shape(self) -> "GraphPath":
        if len(self.edges) != len(self.nodes) - 1:
            raise ValueError("a path has exactly one fewer edge than nodes")
        return self

    @computed_field
    @property
    def length(self) -> int:
        return len(self.edges)


class PathSearchResult(BaseModel):
    """Paths between two nodes plus a flag set when a cap cut the search short."""

    paths: list[GraphPath] = Field(default_factory=list)
    truncated: bool = Field(default=False, description="True when a result or expansion cap was hit")


class Cycle(BaseModel):
    """
    An elementary cycle.

    ``nodes`` lists each member once, starting at the node the cycle was
    discovered from; the closing edge leads from the last node back to the
    first.
    """

    model_config = ConfigDict(frozen=True)

    nodes: list[str] = Field(min_length=1)
    edges: list[str] = Field(min_length=1)
    length: int = Field(ge=1)


class CycleSearchResult(BaseModel):
    cycles: list[Cycle] = Field(default_factory=list)
    truncated: bool = Field(default=False)


class TransitiveDependent(BaseModel):
    """A node affected indirectly, tagged with the deepest level it was reached at."""

    node: GraphNode
    depth: int = Field(ge=2)


class ImpactAnalysisResult(BaseModel):
    """
    Nodes and edges affected by a change to a single node.

    Attributes:
        direct: Nodes with an edge into the changed node
        transitive: Nodes further upstream, with depth
        impacted_edges: Edges leaving any impacted node or entering the changed node
        depth: Deepest transitive level, 1 with only direct impact, else 0
    """

    direct: list[GraphNode] = Field(default_factory=list)
    transitive: list[TransitiveDependent] = Field(default_factory=list)
    impacted_edges: list[GraphEdge] = Field(default_factory=list)
    depth: int = Field(default=0, ge=0)


class GraphStatistics(BaseModel):
    """Summary metrics for one graph snapshot."""

    node_count: int = Field(ge=0)
    edge_count: int = Field(ge=0)
    avg_out_degree: float = Field(ge=0.0, description="Edges per distinct source node")
    max_depth: int = Field(ge=0, description="Nodes on the longest simple path")
    component_count: int = Field(ge=0)
    has_cycles: bool


class FanEntry(BaseModel):
    node: GraphNode
    count: int = Field(ge=0)


class ValidationCode(str, Enum):
    """Graph validation finding codes."""

    DANGLING_SOURCE = "DANGLING_SOURCE"
    DANGLING_TARGET = "DANGLING_TARGET"
    DUPLICATE_NODE = "DUPLICATE_NODE"
    DUPLICATE_EDGE = "DUPLICATE_EDGE"
    SELF_LOOP = "SELF_LOOP"
    ORPHAN_NODE = "ORPHAN_NODE"
    CYCLE_DETECTED = "CYCLE_DETECTED"


class ValidationIssue(BaseModel):
    """A single finding; ``element_id`` is the offending node or edge id, if any."""

    code: ValidationCode
    message: str
    element_id: Optional[str] = None


class GraphValidationReport(BaseModel):
    """
    Outcome of validating graph input.

    Errors make a graph unusable (dangling endpoints, duplicate ids);
    warnings are informational (self-loops, orphans, cycles).
    """

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def codes(self) -> set[ValidationCode]:
        return {issue.code for issue in (*self.errors, *self.warnings)}
