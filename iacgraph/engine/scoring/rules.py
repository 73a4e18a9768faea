"""
Rule Engine for evidence scoring.

A scoring rule applies to a set of evidence types and, optionally, a list of
field conditions. Every evidence item that has one of those types and
satisfies all conditions counts as a match; a rule that matches contributes
``base_score * multiplier * match_count`` before the scoring engine scales
it down.

Condition fields are dot paths resolved against the evidence model, so
``raw.kind`` reads the ``kind`` key of the parser payload and ``location.file``
reads the evidence location.

Version: scoring_rules_v1
"""

import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel

from iacgraph.models.enums import ConditionOperator, EvidenceType
from iacgraph.models.evidence import Evidence, RuleEvaluationResult, ScoringCondition, ScoringRule

logger = structlog.get_logger()

_MISSING = object()


DEFAULT_RULES: list[ScoringRule] = [
    ScoringRule(
        id="explicit-depends-on",
        name="Explicit depends_on",
        description="Explicit depends_on declaration in code",
        applies_to=[EvidenceType.DEPENDS_ON_DIRECTIVE],
        base_score=40,
        multiplier=1.2,
        priority=100,
    ),
    ScoringRule(
        id="explicit-reference",
        name="Explicit Reference",
        description="Direct attribute reference",
        applies_to=[EvidenceType.EXPLICIT_REFERENCE],
        base_score=35,
        multiplier=1.0,
        priority=95,
    ),
    ScoringRule(
        id="module-source",
        name="Module Source",
        description="Module source declaration",
        applies_to=[EvidenceType.MODULE_SOURCE],
        base_score=30,
        multiplier=1.0,
        priority=90,
    ),
    ScoringRule(
        id="interpolation",
        name="String Interpolation",
        description="Reference via interpolation",
        applies_to=[EvidenceType.INTERPOLATION],
        base_score=25,
        multiplier=1.0,
        priority=80,
    ),
    ScoringRule(
        id="function-call",
        name="Function Call",
        description="Reference via function argument",
        applies_to=[EvidenceType.FUNCTION_CALL],
        base_score=20,
        multiplier=1.0,
        priority=70,
    ),
    ScoringRule(
        id="label-matching",
        name="Label Matching",
        description="Kubernetes label/selector matching",
        applies_to=[EvidenceType.LABEL_MATCHING],
        base_score=25,
        multiplier=1.0,
        priority=75,
    ),
    ScoringRule(
        id="naming-convention",
        name="Naming Convention",
        description="Inferred from naming patterns",
        applies_to=[EvidenceType.NAMING_CONVENTION],
        base_score=10,
        multiplier=0.8,
        priority=30,
    ),
    ScoringRule(
        id="resource-proximity",
        name="Resource Proximity",
        description="Resources in same file/module",
        applies_to=[EvidenceType.RESOURCE_PROXIMITY],
        base_score=5,
        multiplier=0.7,
        priority=20,
    ),
]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuleEngine:
    """
    Evaluates scoring rules against a collection of evidence.

    Stateless; a single instance can be shared between threads.

    Example:
        >>> engine = RuleEngine()
        >>> results = engine.evaluate(evidence, DEFAULT_RULES)
        >>> matched = [r.rule.id for r in results if r.matched]
    """

    def evaluate(
        self,
        evidence: list[Evidence],
        rules: list[ScoringRule],
    ) -> list[RuleEvaluationResult]:
        """
        Evaluate every rule, highest priority first.

        Args:
            evidence: Evidence items to test
            rules: Rules to evaluate

        Returns:
            One result per rule, ordered by descending priority. Rules of
            equal priority keep their input order.
        """
        results = []
        for rule in sorted(rules, key=lambda r: r.priority, reverse=True):
            matched_evidence = [
                e for e in evidence
                if e.type in rule.applies_to and self._check_conditions(e, rule.conditions)
            ]
            matched = bool(matched_evidence)
            contribution = (
                rule.base_score * rule.multiplier * len(matched_evidence) if matched else 0.0
            )
            results.append(
                RuleEvaluationResult(
                    rule=rule,
                    matched=matched,
                    score_contribution=contribution,
                    matched_evidence=matched_evidence,
                )
            )
        return results

    def match_condition(self, evidence: Evidence, condition: ScoringCondition) -> bool:
        """
        Test a single condition against one evidence item.

        String operators (contains, matches) only match string fields and
        numeric operators (gt, lt) only match numeric fields; a type mismatch
        is a non-match, never an error.
        """
        value = self._get_field_value(evidence, condition.field)
        op = condition.operator

        if op == ConditionOperator.EXISTS:
            return value is not _MISSING and value is not None
        if value is _MISSING:
            return False
        if op == ConditionOperator.EQUALS:
            return value == condition.value
        if op == ConditionOperator.CONTAINS:
            return isinstance(value, str) and isinstance(condition.value, str) and condition.value in value
        if op == ConditionOperator.MATCHES:
            if not (isinstance(value, str) and isinstance(condition.value, str)):
                return False
            try:
                return re.search(condition.value, value) is not None
            except re.error:
                logger.warning("scoring_rule_invalid_pattern", pattern=condition.value, field=condition.field)
                return False
        if op == ConditionOperator.GT:
            return _is_number(value) and _is_number(condition.value) and value > condition.value
        if op == ConditionOperator.LT:
            return _is_number(value) and _is_number(condition.value) and value < condition.value
        return False

    def get_applicable_rules(
        self,
        evidence_type: EvidenceType,
        rules: list[ScoringRule],
    ) -> list[ScoringRule]:
        """Rules whose ``applies_to`` includes the evidence type."""
        return [rule for rule in rules if evidence_type in rule.applies_to]

    def _check_conditions(self, evidence: Evidence, conditions: list[ScoringCondition]) -> bool:
        return all(self.match_condition(evidence, c) for c in conditions)

    @staticmethod
    def _get_field_value(evidence: Evidence, field: str) -> Any:
        current: Any = evidence
        for part in field.split("."):
            if isinstance(current, dict):
                if part not in current:
                    return _MISSING
                current = current[part]
            elif isinstance(current, BaseModel) and part in type(current).model_fields:
                current = getattr(current, part)
            else:
                return _MISSING
        return current


def evaluate_rules(
    evidence: list[Evidence],
    rules: Optional[list[ScoringRule]] = None,
) -> list[RuleEvaluationResult]:
    """Evaluate rules (the default set when omitted) with a fresh RuleEngine."""
    return RuleEngine().evaluate(evidence, DEFAULT_RULES if rules is None else rules)
