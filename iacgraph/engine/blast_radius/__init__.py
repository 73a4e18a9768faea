"""Blast radius analysis over merged, multi-repository graphs."""

from .cache import BlastRadiusCache, make_cache_key
from .engine import DEFAULT_TENANT_ID, BlastRadiusEngine
from .impact_scorer import DECAY_FACTOR, DEFAULT_EDGE_WEIGHT, EDGE_TYPE_WEIGHTS, ImpactScorer
from .visualizer import BlastRadiusVisualizer

__all__ = [
    "BlastRadiusCache",
    "BlastRadiusEngine",
    "BlastRadiusVisualizer",
    "DECAY_FACTOR",
    "DEFAULT_EDGE_WEIGHT",
    "DEFAULT_TENANT_ID",
    "EDGE_TYPE_WEIGHTS",
    "ImpactScorer",
    "make_cache_key",
]
