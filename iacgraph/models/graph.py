"""
Graph entity models.

Nodes and edges are produced by format-specific parsers and assembled into
a per-execution dependency graph. Both are immutable once constructed; the
only post-build mutation an edge supports is a confidence re-score, applied
by the owning graph swapping in a copy.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import EdgeType, MatchingStrategy, NodeType


class SourceLocation(BaseModel):
    """
    Position of a construct inside a source file.

    Attributes:
        file: Repository-relative file path
        line_start: First line (1-based)
        line_end: Last line (1-based, >= line_start)
        column_start: Optional first column
        column_end: Optional last column
    """

    model_config = ConfigDict(frozen=True)

    file: str = Field(description="Repository-relative file path")
    line_start: int = Field(default=1, ge=0, description="First line")
    line_end: int = Field(default=1, ge=0, description="Last line")
    column_start: Optional[int] = Field(default=None, ge=0)
    column_end: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_line_range(self) -> "SourceLocation":
        """Ensure the line range is not inverted."""
        if self.line_end < self.line_start:
            raise ValueError("line_end must be >= line_start")
        return self


class GraphNode(BaseModel):
    """
    A single IaC construct in the dependency graph.

    Attributes:
        id: Scan-scoped node identifier
        original_id: Stable identifier across scans (e.g. aws_vpc.main)
        type: Construct kind
        name: Display name
        location: Where the construct is declared
        metadata: Free-form parser metadata
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Scan-scoped node identifier")
    original_id: str = Field(default="", validate_default=True, description="Stable identifier across scans")
    type: NodeType = Field(description="IaC construct kind")
    name: str = Field(description="Display name")
    location: SourceLocation = Field(description="Declaration location")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("original_id")
    @classmethod
    def default_original_id(cls, v: str, info) -> str:
        if not v and "id" in info.data:
            return info.data["id"]
        return v

    @property
    def sort_key(self) -> tuple[str, int, str]:
        """Ordering used by traversal results: file, then line, then id."""
        return (self.location.file, self.location.line_start, self.id)


class GraphEdge(BaseModel):
    """
    A directed dependency between two nodes.

    Attributes:
        id: Edge identifier
        source: Id of the node that depends
        target: Id of the node depended upon
        type: Relationship kind
        confidence: Detection confidence (0-100)
        implicit: True when inferred rather than syntactically declared
        label: Optional display label
        attribute: Attribute that created the dependency, if any
        metadata: Free-form parser metadata
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Edge identifier")
    source: str = Field(min_length=1, description="Source node id")
    target: str = Field(min_length=1, description="Target node id")
    type: EdgeType = Field(description="Relationship kind")
    confidence: int = Field(default=100, ge=0, le=100, description="Detection confidence")
    implicit: bool = Field(default=False, description="Inferred rather than declared")
    label: Optional[str] = Field(default=None)
    attribute: Optional[str] = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def with_confidence(self, confidence: int) -> "GraphEdge":
        """Return a copy carrying a new confidence value."""
        return self.model_copy(update={"confidence": confidence})


class MergedLocation(BaseModel):
    """Declaration location of a merged node inside one repository."""

    model_config = ConfigDict(frozen=True)

    repo_id: str
    file: str
    line_start: int = Field(default=1, ge=0)
    line_end: int = Field(default=1, ge=0)


class MatchInfo(BaseModel):
    """How a merged node was matched across repositories."""

    model_config = ConfigDict(frozen=True)

    strategy: MatchingStrategy = Field(default=MatchingStrategy.NAME)
    confidence: int = Field(default=100, ge=0, le=100)
    match_count: int = Field(default=1, ge=0)


class MergedNode(BaseModel):
    """
    A node identity merged across repositories during a rollup.

    Used only by cross-repository blast radius analysis. The first entry of
    ``source_repo_ids`` is treated as the owning repository.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Merged node identifier")
    source_node_ids: list[str] = Field(min_length=1, description="Merged original node ids")
    source_repo_ids: list[str] = Field(min_length=1, description="Repositories the node came from")
    type: str = Field(description="Node type")
    name: str = Field(description="Merged name")
    locations: list[MergedLocation] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    match_info: MatchInfo = Field(default_factory=MatchInfo)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_node_type(cls, v: Any) -> str:
        """Accept NodeType members as well as raw strings."""
        if isinstance(v, NodeType):
            return v.value
        return v

    @property
    def repo_id(self) -> str:
        return self.source_repo_ids[0]

    @property
    def is_merged(self) -> bool:
        return len(self.source_node_ids) > 1

    @classmethod
    def from_node(cls, node: GraphNode, repo_id: str) -> "MergedNode":
        """Wrap a single-repository node for blast radius registration."""
        return cls(
            id=node.id,
            source_node_ids=[node.id],
            source_repo_ids=[repo_id],
            type=node.type.value,
            name=node.name,
            locations=[
                MergedLocation(
                    repo_id=repo_id,
                    file=node.location.file,
                    line_start=node.location.line_start,
                    line_end=node.location.line_end,
                )
            ],
            metadata=dict(node.metadata),
        )
