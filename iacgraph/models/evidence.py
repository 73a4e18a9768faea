"""
Evidence and confidence models.

Evidence is the source of truth for how certain the engine is that an edge
exists; a ConfidenceScore is derived from it and can always be recomputed.
"""

from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import (
    ConditionOperator,
    ConfidenceLevel,
    EvidenceCategory,
    EvidenceMethod,
    EvidenceType,
)
from .graph import SourceLocation


class Evidence(BaseModel):
    """
    A unit of support for believing an edge exists.

    When ``category`` is omitted it defaults to the category associated with
    the evidence type (see EvidenceType.default_category).

    Attributes:
        id: Evidence identifier
        type: Evidence kind
        category: Evidence category
        description: Human-readable explanation
        confidence: Confidence contribution (0-100)
        location: Where the evidence was observed
        method: Collection method
        raw: Free-form parser payload
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"ev_{uuid4().hex[:12]}")
    type: EvidenceType = Field(description="Evidence kind")
    category: Optional[EvidenceCategory] = Field(default=None, validate_default=True, description="Evidence category")
    description: str = Field(default="", description="Human-readable explanation")
    confidence: float = Field(ge=0.0, le=100.0, description="Confidence contribution")
    location: Optional[SourceLocation] = Field(default=None)
    method: EvidenceMethod = Field(default=EvidenceMethod.AST_ANALYSIS)
    raw: Any = Field(default=None, description="Free-form parser payload")

    @field_validator("category")
    @classmethod
    def default_category(cls, v: Optional[EvidenceCategory], info) -> Optional[EvidenceCategory]:
        """Fall back to the category associated with the evidence type."""
        if v is None and "type" in info.data:
            return info.data["type"].default_category
        return v


class ScoringCondition(BaseModel):
    """A predicate over one (dot-path) field of an evidence item."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(description="Dot path into the evidence, e.g. raw.kind")
    operator: ConditionOperator
    value: Any = None


class ScoringRule(BaseModel):
    """
    A scoring rule contributing ``base_score * multiplier * matches * 0.1``.

    Attributes:
        id: Rule identifier
        name: Display name (used in explanation factors)
        description: What the rule rewards
        applies_to: Evidence types the rule looks at
        base_score: Base contribution
        multiplier: Contribution multiplier
        conditions: All must hold for an evidence item to match
        priority: Evaluation order, higher first
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    applies_to: list[EvidenceType] = Field(default_factory=list)
    base_score: float = Field(default=0.0, ge=0.0)
    multiplier: float = Field(default=1.0, ge=0.0)
    conditions: list[ScoringCondition] = Field(default_factory=list)
    priority: int = 0


class ConfidenceBreakdown(BaseModel):
    """Explainable components of a confidence score."""

    model_config = ConfigDict(frozen=True)

    base_score: float = 0.0
    evidence_multiplier: float = 1.0
    explicit_bonus: float = 0.0
    heuristic_penalty: float = 0.0
    pattern_bonus: float = 0.0


class ConfidenceScore(BaseModel):
    """
    A 0-100 confidence value with its level and explanation.

    Attributes:
        value: Rounded score
        level: Level classification of ``value``
        breakdown: Score components
        positive_factors: Reasons the score went up
        negative_factors: Reasons the score went down
    """

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0, le=100)
    level: ConfidenceLevel
    breakdown: ConfidenceBreakdown = Field(default_factory=ConfidenceBreakdown)
    positive_factors: list[str] = Field(default_factory=list)
    negative_factors: list[str] = Field(default_factory=list)


class RuleEvaluationResult(BaseModel):
    """Outcome of evaluating one rule against an evidence collection."""

    model_config = ConfigDict(frozen=True)

    rule: ScoringRule
    matched: bool
    score_contribution: float = 0.0
    matched_evidence: list[Evidence] = Field(default_factory=list)
