"""
Confidence Scoring Engine.

Turns a collection of evidence for a single edge into an explainable 0-100
confidence score.

Scoring pipeline:
1. Base score: mean of (evidence confidence x category weight)
2. Evidence multiplier: 1 + sum(decay^i * 0.1) for i in 1..n-1, capped at 1.5
3. Explicit bonus: +10 per explicit-category item, capped at +20
4. Pattern bonus: +5/+10 for 2/3+ categories, +5/+10 for 3/5+ evidence types
5. Heuristic-only penalty: -15 when mean confidence < 50, otherwise -5
6. Rule contributions: 10% of each matched rule's contribution
7. Clamp to [min_score, max_score] and round; the level follows the
   rounded value

Category weights:
- explicit: 1.0
- semantic and syntax: 0.9
- structural: 0.8
- heuristic: 0.6

Version: confidence_scoring_v1
"""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from iacgraph.config import Settings
from iacgraph.models.enums import ConfidenceLevel, EvidenceCategory
from iacgraph.models.evidence import (
    ConfidenceBreakdown,
    ConfidenceScore,
    Evidence,
    RuleEvaluationResult,
    ScoringRule,
)

from .rules import DEFAULT_RULES, RuleEngine

logger = structlog.get_logger()

# Lower bound of each level, checked from the top down
CONFIDENCE_THRESHOLDS = {
    ConfidenceLevel.CERTAIN: 95,
    ConfidenceLevel.HIGH: 80,
    ConfidenceLevel.MEDIUM: 60,
    ConfidenceLevel.LOW: 40,
    ConfidenceLevel.UNCERTAIN: 0,
}

MAX_EVIDENCE_MULTIPLIER = 1.5
RULE_CONTRIBUTION_SCALE = 0.1
EXPLICIT_BONUS_PER_ITEM = 10.0
EXPLICIT_BONUS_CAP = 20.0

NO_EVIDENCE_FACTOR = "No evidence provided"


class ScoringConfig(BaseModel):
    """
    Tunable scoring parameters.

    Attributes:
        min_score: Lower clamp bound
        max_score: Upper clamp bound
        explicit_weight: Weight for explicit evidence
        semantic_weight: Weight for semantic and syntax evidence
        structural_weight: Weight for structural evidence
        heuristic_weight: Weight for heuristic evidence
        enable_diminishing_returns: Grow the multiplier with more evidence
        decay_rate: Multiplier decay rate
    """

    model_config = ConfigDict(frozen=True)

    min_score: float = Field(default=0.0, ge=0.0, le=100.0)
    max_score: float = Field(default=100.0, ge=0.0, le=100.0)
    explicit_weight: float = Field(default=1.0, ge=0.0)
    semantic_weight: float = Field(default=0.9, ge=0.0)
    structural_weight: float = Field(default=0.8, ge=0.0)
    heuristic_weight: float = Field(default=0.6, ge=0.0)
    enable_diminishing_returns: bool = Field(default=True)
    decay_rate: float = Field(default=0.85, gt=0.0, lt=1.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoringConfig":
        return cls(
            explicit_weight=settings.scoring_explicit_weight,
            semantic_weight=settings.scoring_semantic_weight,
            structural_weight=settings.scoring_structural_weight,
            heuristic_weight=settings.scoring_heuristic_weight,
            decay_rate=settings.scoring_decay_rate,
        )

    def category_weight(self, category: EvidenceCategory) -> float:
        if category == EvidenceCategory.EXPLICIT:
            return self.explicit_weight
        if category in (EvidenceCategory.SEMANTIC, EvidenceCategory.SYNTAX):
            return self.semantic_weight
        if category == EvidenceCategory.STRUCTURAL:
            return self.structural_weight
        if category == EvidenceCategory.HEURISTIC:
            return self.heuristic_weight
        return 1.0


def normalize_score(score: float, min_score: float = 0.0, max_score: float = 100.0) -> float:
    """Clamp a score into [min_score, max_score]."""
    return max(min_score, min(max_score, score))


def get_confidence_level(score: float) -> ConfidenceLevel:
    """Classify a score using CONFIDENCE_THRESHOLDS."""
    for level, threshold in CONFIDENCE_THRESHOLDS.items():
        if score >= threshold:
            return level
    return ConfidenceLevel.UNCERTAIN


def _fmt(value: float) -> str:
    return f"{value:g}"


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


class ScoringEngine:
    """
    Computes and merges confidence scores from evidence.

    Pure with respect to its inputs: the same evidence, rules and config
    always produce the same score, and malformed combinations of evidence
    never raise.

    Attributes:
        config: Default scoring configuration
        rule_engine: Rule evaluator
        rules: Built-in rules applied to every calculation

    Example:
        >>> engine = ScoringEngine()
        >>> score = engine.calculate([Evidence(type="depends_on_directive",
        ...                                    category="explicit", confidence=75)])
        >>> score.value, score.level
        (90, <ConfidenceLevel.HIGH: 'high'>)
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        rule_engine: Optional[RuleEngine] = None,
        rules: Optional[list[ScoringRule]] = None,
    ):
        self.config = config or ScoringConfig()
        self.rule_engine = rule_engine or RuleEngine()
        self.rules = list(DEFAULT_RULES if rules is None else rules)

    def calculate(
        self,
        evidence: list[Evidence],
        custom_rules: Optional[list[ScoringRule]] = None,
        config_overrides: Optional[dict] = None,
    ) -> ConfidenceScore:
        """
        Calculate the confidence score for one edge's evidence.

        Args:
            evidence: Evidence supporting the edge
            custom_rules: Rules evaluated in addition to the built-in set
            config_overrides: Per-call ScoringConfig field overrides

        Returns:
            ConfidenceScore with breakdown and explanation factors
        """
        if not evidence:
            return self._empty_score()

        config = self.config
        if config_overrides:
            config = self.config.model_copy(update=config_overrides)

        base_score = self._base_score(evidence, config)
        rule_results = self.rule_engine.evaluate(evidence, [*self.rules, *(custom_rules or [])])

        explicit_bonus = self._explicit_bonus(evidence)
        heuristic_penalty = self._heuristic_penalty(evidence)
        pattern_bonus = self._pattern_bonus(evidence)
        multiplier = self._evidence_multiplier(evidence, config)

        final = base_score * multiplier + explicit_bonus - heuristic_penalty + pattern_bonus
        for result in rule_results:
            if result.matched:
                final += result.score_contribution * RULE_CONTRIBUTION_SCALE

        value = _round_half_up(normalize_score(final, config.min_score, config.max_score))

        breakdown = ConfidenceBreakdown(
            base_score=base_score,
            evidence_multiplier=multiplier,
            explicit_bonus=explicit_bonus,
            heuristic_penalty=heuristic_penalty,
            pattern_bonus=pattern_bonus,
        )
        positive, negative = self._collect_factors(evidence, rule_results, breakdown)

        logger.debug(
            "confidence_calculated",
            evidence_count=len(evidence),
            raw_score=round(final, 4),
            value=value,
        )

        return ConfidenceScore(
            value=value,
            level=self.get_level(value),
            breakdown=breakdown,
            positive_factors=positive,
            negative_factors=negative,
        )

    def get_level(self, score: float) -> ConfidenceLevel:
        return get_confidence_level(score)

    def validate(self, score: ConfidenceScore) -> bool:
        """True when the value is within bounds and the level matches it."""
        return (
            self.config.min_score <= score.value <= self.config.max_score
            and score.level == self.get_level(score.value)
        )

    def merge(self, scores: list[ConfidenceScore]) -> ConfidenceScore:
        """
        Merge several scores for the same edge.

        The merged value is the evidence-multiplier-weighted mean of the
        input values. Merging a single score returns it unchanged.
        """
        if not scores:
            return self._empty_score()
        if len(scores) == 1:
            return scores[0]

        total_weight = sum(s.breakdown.evidence_multiplier for s in scores)
        if total_weight > 0:
            weighted = sum(s.value * s.breakdown.evidence_multiplier for s in scores)
            value = _round_half_up(weighted / total_weight)
        else:
            value = _round_half_up(sum(s.value for s in scores) / len(scores))
        value = int(normalize_score(value, self.config.min_score, self.config.max_score))

        breakdown = ConfidenceBreakdown(
            base_score=sum(s.breakdown.base_score for s in scores) / len(scores),
            evidence_multiplier=total_weight / len(scores),
            explicit_bonus=sum(s.breakdown.explicit_bonus for s in scores),
            heuristic_penalty=max(s.breakdown.heuristic_penalty for s in scores),
            pattern_bonus=max(s.breakdown.pattern_bonus for s in scores),
        )

        return ConfidenceScore(
            value=value,
            level=self.get_level(value),
            breakdown=breakdown,
            positive_factors=list(dict.fromkeys(f for s in scores for f in s.positive_factors)),
            negative_factors=list(dict.fromkeys(f for s in scores for f in s.negative_factors)),
        )

    def _base_score(self, evidence: list[Evidence], config: ScoringConfig) -> float:
        total = sum(e.confidence * config.category_weight(e.category) for e in evidence)
        return total / len(evidence)

    def _explicit_bonus(self, evidence: list[Evidence]) -> float:
        count = sum(1 for e in evidence if e.category == EvidenceCategory.EXPLICIT)
        return min(EXPLICIT_BONUS_CAP, count * EXPLICIT_BONUS_PER_ITEM)

    def _heuristic_penalty(self, evidence: list[Evidence]) -> float:
        if not all(e.category == EvidenceCategory.HEURISTIC for e in evidence):
            return 0.0
        mean_confidence = sum(e.confidence for e in evidence) / len(evidence)
        return 15.0 if mean_confidence < 50 else 5.0

    def _pattern_bonus(self, evidence: list[Evidence]) -> float:
        categories = {e.category for e in evidence}
        types = {e.type for e in evidence}

        bonus = 0.0
        if len(categories) >= 2:
            bonus += 5
        if len(categories) >= 3:
            bonus += 5
        if len(types) >= 3:
            bonus += 5
        if len(types) >= 5:
            bonus += 5
        return bonus

    def _evidence_multiplier(self, evidence: list[Evidence], config: ScoringConfig) -> float:
        if not config.enable_diminishing_returns:
            return 1.0
        multiplier = 1.0
        for i in range(1, len(evidence)):
            multiplier += config.decay_rate ** i * 0.1
        return min(MAX_EVIDENCE_MULTIPLIER, multiplier)

    def _collect_factors(
        self,
        evidence: list[Evidence],
        rule_results: list[RuleEvaluationResult],
        breakdown: ConfidenceBreakdown,
    ) -> tuple[list[str], list[str]]:
        positive: list[str] = []
        negative: list[str] = []

        if any(e.category == EvidenceCategory.EXPLICIT for e in evidence):
            positive.append("Explicit dependency declaration found")
        if len(evidence) > 1:
            positive.append(f"Multiple evidence sources ({len(evidence)})")
        if len({e.category for e in evidence}) >= 2:
            positive.append("Evidence from multiple categories")

        if breakdown.explicit_bonus > 0:
            positive.append(f"Explicit evidence bonus (+{_fmt(breakdown.explicit_bonus)})")
        if breakdown.pattern_bonus > 0:
            positive.append(f"Pattern consistency bonus (+{_fmt(breakdown.pattern_bonus)})")
        if breakdown.heuristic_penalty > 0:
            negative.append(f"Heuristic-only evidence penalty (-{_fmt(breakdown.heuristic_penalty)})")

        for result in rule_results:
            if result.matched and result.score_contribution > 0:
                positive.append(f"Rule matched: {result.rule.name}")

        return positive, negative

    @staticmethod
    def _empty_score() -> ConfidenceScore:
        return ConfidenceScore(
            value=0,
            level=ConfidenceLevel.UNCERTAIN,
            breakdown=ConfidenceBreakdown(),
            negative_factors=[NO_EVIDENCE_FACTOR],
        )
