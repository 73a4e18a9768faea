"""Confidence scoring for detected dependencies."""

from .rules import DEFAULT_RULES, RuleEngine, evaluate_rules
from .scoring_engine import (
    CONFIDENCE_THRESHOLDS,
    ScoringConfig,
    ScoringEngine,
    get_confidence_level,
    normalize_score,
)

__all__ = [
    "CONFIDENCE_THRESHOLDS",
    "DEFAULT_RULES",
    "RuleEngine",
    "ScoringConfig",
    "ScoringEngine",
    "evaluate_rules",
    "get_confidence_level",
    "normalize_score",
]
