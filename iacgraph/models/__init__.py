"""Data models for the dependency graph engine."""

from .blast_radius import (
    BlastRadiusQuery,
    BlastRadiusResult,
    BlastRadiusSummary,
    CrossRepoImpact,
    ImpactedNode,
    IndirectImpactedNode,
)
from .enums import (
    ConditionOperator,
    ConfidenceLevel,
    EdgeType,
    EvidenceCategory,
    EvidenceMethod,
    EvidenceType,
    MatchingStrategy,
    NodeType,
    RiskLevel,
)
from .evidence import (
    ConfidenceBreakdown,
    ConfidenceScore,
    Evidence,
    RuleEvaluationResult,
    ScoringCondition,
    ScoringRule,
)
from .graph import GraphEdge, GraphNode, MatchInfo, MergedLocation, MergedNode, SourceLocation
from .traversal import (
    Cycle,
    CycleSearchResult,
    FanEntry,
    GraphPath,
    GraphStatistics,
    GraphValidationReport,
    ImpactAnalysisResult,
    PathSearchResult,
    TransitiveDependent,
    ValidationCode,
    ValidationIssue,
)

__all__ = [
    "BlastRadiusQuery",
    "BlastRadiusResult",
    "BlastRadiusSummary",
    "ConditionOperator",
    "ConfidenceBreakdown",
    "ConfidenceLevel",
    "ConfidenceScore",
    "CrossRepoImpact",
    "Cycle",
    "CycleSearchResult",
    "EdgeType",
    "Evidence",
    "EvidenceCategory",
    "EvidenceMethod",
    "EvidenceType",
    "FanEntry",
    "GraphEdge",
    "GraphNode",
    "GraphPath",
    "GraphStatistics",
    "GraphValidationReport",
    "ImpactAnalysisResult",
    "ImpactedNode",
    "IndirectImpactedNode",
    "MatchInfo",
    "MatchingStrategy",
    "MergedLocation",
    "MergedNode",
    "NodeType",
    "PathSearchResult",
    "RiskLevel",
    "RuleEvaluationResult",
    "ScoringCondition",
    "ScoringRule",
    "SourceLocation",
    "TransitiveDependent",
    "ValidationCode",
    "ValidationIssue",
]
