"""
Unit tests for the confidence scoring engine and rule engine.

Clear naming (test_<component>_<method>_<scenario>); one behaviour per test.
"""

import pytest

from iacgraph.config import load_settings
from iacgraph.engine.scoring import (
    DEFAULT_RULES,
    RuleEngine,
    ScoringConfig,
    ScoringEngine,
    evaluate_rules,
    get_confidence_level,
    normalize_score,
)
from iacgraph.models.enums import (
    ConditionOperator,
    ConfidenceLevel,
    EvidenceCategory,
    EvidenceType,
)
from iacgraph.models.evidence import (
    ConfidenceBreakdown,
    ConfidenceScore,
    ScoringCondition,
    ScoringRule,
)
from iacgraph.models.graph import SourceLocation
from tests.conftest import make_evidence


# ============================================================================
# ScoringEngine.calculate
# ============================================================================


class TestScoringEngineCalculate:
    """Test ScoringEngine.calculate pipeline."""

    def test_calculate_explicit_depends_on(self):
        """Explicit depends_on at 75: 75 base + 10 bonus + 4.8 rule = 89.8 -> 90."""
        engine = ScoringEngine()
        evidence = [
            make_evidence(
                EvidenceType.DEPENDS_ON_DIRECTIVE,
                confidence=75,
                category=EvidenceCategory.EXPLICIT,
            )
        ]

        score = engine.calculate(evidence)

        assert score.value == 90
        assert score.level == ConfidenceLevel.HIGH
        assert score.breakdown.base_score == 75
        assert score.breakdown.explicit_bonus == 10
        assert score.breakdown.evidence_multiplier == 1.0
        assert "Explicit dependency declaration found" in score.positive_factors
        assert "Explicit evidence bonus (+10)" in score.positive_factors
        assert "Rule matched: Explicit depends_on" in score.positive_factors
        assert score.negative_factors == []

    def test_calculate_empty_evidence(self):
        """No evidence yields an uncertain zero score."""
        score = ScoringEngine().calculate([])
        assert score.value == 0
        assert score.level == ConfidenceLevel.UNCERTAIN
        assert score.negative_factors == ["No evidence provided"]

    def test_calculate_heuristic_only_low_confidence_penalty(self):
        """Heuristic-only evidence under 50 mean confidence loses 15 points."""
        evidence = [make_evidence(EvidenceType.NAMING_CONVENTION, confidence=40)]

        score = ScoringEngine().calculate(evidence)

        # 40 * 0.6 - 15 + (10 * 0.8 * 0.1) = 9.8
        assert score.value == 10
        assert score.level == ConfidenceLevel.UNCERTAIN
        assert score.breakdown.heuristic_penalty == 15
        assert "Heuristic-only evidence penalty (-15)" in score.negative_factors
        assert "Rule matched: Naming Convention" in score.positive_factors

    def test_calculate_heuristic_only_high_confidence_penalty(self):
        evidence = [make_evidence(EvidenceType.RESOURCE_PROXIMITY, confidence=70)]
        score = ScoringEngine().calculate(evidence)
        assert score.breakdown.heuristic_penalty == 5

    def test_calculate_mixed_evidence_has_no_penalty(self):
        evidence = [
            make_evidence(EvidenceType.NAMING_CONVENTION, confidence=30),
            make_evidence(EvidenceType.INTERPOLATION, confidence=30),
        ]
        score = ScoringEngine().calculate(evidence)
        assert score.breakdown.heuristic_penalty == 0
        assert score.negative_factors == []

    def test_calculate_clamps_to_maximum(self):
        """Strong explicit evidence saturates at 100."""
        evidence = [
            make_evidence(EvidenceType.DEPENDS_ON_DIRECTIVE, confidence=100, category=EvidenceCategory.EXPLICIT),
            make_evidence(EvidenceType.EXPLICIT_REFERENCE, confidence=100, category=EvidenceCategory.EXPLICIT),
        ]

        score = ScoringEngine().calculate(evidence)

        assert score.value == 100
        assert score.level == ConfidenceLevel.CERTAIN
        assert score.breakdown.explicit_bonus == 20
        assert "Multiple evidence sources (2)" in score.positive_factors

    def test_calculate_explicit_bonus_capped(self):
        evidence = [
            make_evidence(EvidenceType.EXPLICIT_REFERENCE, confidence=50, category=EvidenceCategory.EXPLICIT)
            for _ in range(4)
        ]
        score = ScoringEngine().calculate(evidence)
        assert score.breakdown.explicit_bonus == 20

    def test_calculate_evidence_multiplier_capped(self):
        """Twenty items would exceed the 1.5 multiplier without the cap."""
        evidence = [make_evidence(EvidenceType.BLOCK_NESTING, confidence=10) for _ in range(20)]
        score = ScoringEngine().calculate(evidence)
        assert score.breakdown.evidence_multiplier == 1.5

    def test_calculate_evidence_multiplier_two_items(self):
        evidence = [make_evidence(EvidenceType.BLOCK_NESTING, confidence=10) for _ in range(2)]
        score = ScoringEngine().calculate(evidence)
        assert score.breakdown.evidence_multiplier == pytest.approx(1.085)

    def test_calculate_pattern_bonus_three_categories(self):
        """Three categories (+10) and three evidence types (+5)."""
        evidence = [
            make_evidence(EvidenceType.EXPLICIT_REFERENCE, confidence=50),
            make_evidence(EvidenceType.INTERPOLATION, confidence=50),
            make_evidence(EvidenceType.BLOCK_NESTING, confidence=50),
        ]

        score = ScoringEngine().calculate(evidence)

        assert score.breakdown.pattern_bonus == 15
        assert "Evidence from multiple categories" in score.positive_factors
        assert "Pattern consistency bonus (+15)" in score.positive_factors

    def test_calculate_level_follows_rounded_value(self):
        """A raw 79.5 rounds up to 80, which is HIGH rather than MEDIUM."""
        evidence = [
            make_evidence(EvidenceType.EXPLICIT_REFERENCE, confidence=66, category=EvidenceCategory.EXPLICIT)
        ]

        score = ScoringEngine().calculate(evidence)

        assert score.value == 80
        assert score.level == ConfidenceLevel.HIGH

    def test_calculate_custom_rule_adds_contribution(self):
        evidence = [make_evidence(EvidenceType.BLOCK_NESTING, confidence=50)]
        rule = ScoringRule(
            id="nesting",
            name="Nested Block",
            applies_to=[EvidenceType.BLOCK_NESTING],
            base_score=50,
        )
        engine = ScoringEngine()

        without = engine.calculate(evidence)
        with_rule = engine.calculate(evidence, custom_rules=[rule])

        assert without.value == 40
        assert with_rule.value == 45
        assert "Rule matched: Nested Block" in with_rule.positive_factors

    def test_calculate_config_override_disables_multiplier(self):
        evidence = [make_evidence(EvidenceType.BLOCK_NESTING, confidence=50) for _ in range(3)]
        score = ScoringEngine().calculate(evidence, config_overrides={"enable_diminishing_returns": False})
        assert score.breakdown.evidence_multiplier == 1.0

    def test_calculate_custom_weights(self):
        config = ScoringConfig(structural_weight=0.5)
        evidence = [make_evidence(EvidenceType.BLOCK_NESTING, confidence=80)]
        score = ScoringEngine(config).calculate(evidence)
        assert score.value == 40

    def test_calculate_is_deterministic(self):
        evidence = [
            make_evidence(EvidenceType.INTERPOLATION, confidence=63),
            make_evidence(EvidenceType.LABEL_MATCHING, confidence=71),
        ]
        engine = ScoringEngine()
        assert engine.calculate(evidence) == engine.calculate(evidence)

    def test_calculate_result_validates(self):
        engine = ScoringEngine()
        score = engine.calculate([make_evidence(EvidenceType.FUNCTION_CALL, confidence=55)])
        assert engine.validate(score)


class TestScoringConfig:
    """Test ScoringConfig construction from settings."""

    def test_from_settings(self):
        settings = load_settings(_env_file=None, scoring_heuristic_weight=0.4, scoring_decay_rate=0.5)
        config = ScoringConfig.from_settings(settings)
        assert config.heuristic_weight == 0.4
        assert config.decay_rate == 0.5

    def test_syntax_weighted_as_semantic(self):
        config = ScoringConfig()
        assert config.category_weight(EvidenceCategory.SYNTAX) == config.semantic_weight


# ============================================================================
# Levels, normalization, validation
# ============================================================================


class TestConfidenceLevels:
    """Test level thresholds."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (100, ConfidenceLevel.CERTAIN),
            (95, ConfidenceLevel.CERTAIN),
            (94.9, ConfidenceLevel.HIGH),
            (80, ConfidenceLevel.HIGH),
            (79, ConfidenceLevel.MEDIUM),
            (60, ConfidenceLevel.MEDIUM),
            (59, ConfidenceLevel.LOW),
            (40, ConfidenceLevel.LOW),
            (39, ConfidenceLevel.UNCERTAIN),
            (0, ConfidenceLevel.UNCERTAIN),
        ],
    )
    def test_get_confidence_level(self, value, expected):
        assert get_confidence_level(value) == expected

    def test_normalize_score_clamps(self):
        assert normalize_score(120) == 100
        assert normalize_score(-5) == 0
        assert normalize_score(42.5) == 42.5

    def test_validate_rejects_mismatched_level(self):
        score = ConfidenceScore(value=90, level=ConfidenceLevel.LOW)
        assert not ScoringEngine().validate(score)

    def test_validate_rejects_out_of_configured_bounds(self):
        engine = ScoringEngine(ScoringConfig(max_score=80))
        score = ConfidenceScore(value=90, level=ConfidenceLevel.HIGH)
        assert not engine.validate(score)


# ============================================================================
# ScoringEngine.merge
# ============================================================================


def _score(value: int, multiplier: float = 1.0, positive=(), negative=()) -> ConfidenceScore:
    return ConfidenceScore(
        value=value,
        level=get_confidence_level(value),
        breakdown=ConfidenceBreakdown(base_score=value, evidence_multiplier=multiplier),
        positive_factors=list(positive),
        negative_factors=list(negative),
    )


class TestScoringEngineMerge:
    """Test ScoringEngine.merge."""

    def test_merge_empty(self):
        merged = ScoringEngine().merge([])
        assert merged.value == 0
        assert merged.level == ConfidenceLevel.UNCERTAIN

    def test_merge_single_is_identity(self):
        score = _score(72)
        assert ScoringEngine().merge([score]) is score

    def test_merge_equal_weights_averages(self):
        merged = ScoringEngine().merge([_score(80), _score(40)])
        assert merged.value == 60
        assert merged.level == ConfidenceLevel.MEDIUM

    def test_merge_weights_by_multiplier(self):
        merged = ScoringEngine().merge([_score(80, multiplier=1.5), _score(40, multiplier=1.0)])
        assert merged.value == 64

    def test_merge_deduplicates_factors(self):
        merged = ScoringEngine().merge([
            _score(80, positive=["a", "b"], negative=["x"]),
            _score(60, positive=["b", "c"], negative=["x"]),
        ])
        assert merged.positive_factors == ["a", "b", "c"]
        assert merged.negative_factors == ["x"]


# ============================================================================
# RuleEngine
# ============================================================================


class TestRuleEngineEvaluate:
    """Test RuleEngine.evaluate ordering and contributions."""

    def test_evaluate_orders_by_priority(self):
        results = RuleEngine().evaluate([], DEFAULT_RULES)
        priorities = [r.rule.priority for r in results]
        assert priorities == sorted(priorities, reverse=True)
        assert results[0].rule.id == "explicit-depends-on"

    def test_evaluate_keeps_input_order_for_equal_priority(self):
        rules = [
            ScoringRule(id="first", name="First", priority=1),
            ScoringRule(id="second", name="Second", priority=1),
        ]
        results = RuleEngine().evaluate([], rules)
        assert [r.rule.id for r in results] == ["first", "second"]

    def test_evaluate_contribution_counts_matches(self):
        evidence = [make_evidence(EvidenceType.DEPENDS_ON_DIRECTIVE) for _ in range(2)]
        results = RuleEngine().evaluate(evidence, DEFAULT_RULES)
        depends_on = next(r for r in results if r.rule.id == "explicit-depends-on")
        assert depends_on.matched
        assert depends_on.score_contribution == pytest.approx(96.0)
        assert len(depends_on.matched_evidence) == 2

    def test_evaluate_unmatched_rule_contributes_nothing(self):
        results = RuleEngine().evaluate([make_evidence(EvidenceType.CONDITIONAL)], DEFAULT_RULES)
        assert not any(r.matched for r in results)
        assert all(r.score_contribution == 0 for r in results)

    def test_evaluate_requires_all_conditions(self):
        rule = ScoringRule(
            id="aws-only",
            name="AWS Only",
            applies_to=[EvidenceType.EXPLICIT_REFERENCE],
            base_score=10,
            conditions=[
                ScoringCondition(field="raw.provider", operator=ConditionOperator.EQUALS, value="aws"),
                ScoringCondition(field="confidence", operator=ConditionOperator.GT, value=50),
            ],
        )
        evidence = [
            make_evidence(confidence=90, raw={"provider": "aws"}),
            make_evidence(confidence=40, raw={"provider": "aws"}),
            make_evidence(confidence=90, raw={"provider": "gcp"}),
        ]

        (result,) = RuleEngine().evaluate(evidence, [rule])

        assert len(result.matched_evidence) == 1
        assert result.score_contribution == 10

    def test_evaluate_rules_uses_default_set(self):
        assert len(evaluate_rules([])) == len(DEFAULT_RULES)

    def test_get_applicable_rules(self):
        rules = RuleEngine().get_applicable_rules(EvidenceType.LABEL_MATCHING, DEFAULT_RULES)
        assert [r.id for r in rules] == ["label-matching"]


class TestRuleEngineMatchCondition:
    """Test RuleEngine.match_condition operators."""

    @staticmethod
    def _match(evidence, field, operator, value=None):
        condition = ScoringCondition(field=field, operator=operator, value=value)
        return RuleEngine().match_condition(evidence, condition)

    def test_equals_on_enum_field(self):
        evidence = make_evidence(EvidenceType.INTERPOLATION)
        assert self._match(evidence, "type", ConditionOperator.EQUALS, "interpolation")

    def test_contains(self):
        evidence = make_evidence(description="references aws_vpc.main")
        assert self._match(evidence, "description", ConditionOperator.CONTAINS, "aws_vpc")
        assert not self._match(evidence, "description", ConditionOperator.CONTAINS, "azurerm")

    def test_contains_non_string_is_non_match(self):
        evidence = make_evidence(confidence=80)
        assert not self._match(evidence, "confidence", ConditionOperator.CONTAINS, "8")

    def test_matches_regex(self):
        evidence = make_evidence(raw={"expr": "var.region"})
        assert self._match(evidence, "raw.expr", ConditionOperator.MATCHES, r"^var\.")

    def test_matches_invalid_pattern_is_non_match(self):
        evidence = make_evidence(raw={"expr": "var.region"})
        assert not self._match(evidence, "raw.expr", ConditionOperator.MATCHES, "(unclosed")

    def test_gt_and_lt(self):
        evidence = make_evidence(confidence=70)
        assert self._match(evidence, "confidence", ConditionOperator.GT, 50)
        assert not self._match(evidence, "confidence", ConditionOperator.LT, 50)

    def test_gt_on_string_is_non_match(self):
        evidence = make_evidence(raw={"count": "7"})
        assert not self._match(evidence, "raw.count", ConditionOperator.GT, 5)

    def test_gt_on_bool_is_non_match(self):
        evidence = make_evidence(raw={"flag": True})
        assert not self._match(evidence, "raw.flag", ConditionOperator.GT, 0)

    def test_exists(self):
        evidence = make_evidence(location=SourceLocation(file="main.tf", line_start=3, line_end=3))
        assert self._match(evidence, "location.file", ConditionOperator.EXISTS)
        assert not self._match(evidence, "raw.missing", ConditionOperator.EXISTS)

    def test_missing_field_is_non_match(self):
        evidence = make_evidence()
        assert not self._match(evidence, "raw.kind", ConditionOperator.EQUALS, None)
        assert not self._match(evidence, "nonexistent", ConditionOperator.EQUALS, "x")
