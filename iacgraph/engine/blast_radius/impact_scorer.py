"""
Impact Scorer: edge weighting and risk classification.

Each edge traversed during a blast radius search contributes
``weight(edge_type) * DECAY_FACTOR ** depth`` where depth 0 is an edge
leaving a source node. Contributions are summed over every simple path,
so fan-out and diamond shapes add up.

Risk classification thresholds (weighted = 2*direct + indirect + 5*cross_repo,
where cross_repo counts cross-repository impact entries):
- LOW: nothing impacted, or weighted < 10
- MEDIUM: weighted < 30
- HIGH: weighted < 100 and fewer than 5 cross-repo impacts
- CRITICAL: anything above

The impact score can only raise the level: >= 150 means at least HIGH,
>= 400 means CRITICAL.
"""

from typing import Optional

import structlog

from iacgraph.models.enums import EdgeType, RiskLevel

logger = structlog.get_logger()

DECAY_FACTOR = 0.7
DEFAULT_EDGE_WEIGHT = 5

EDGE_TYPE_WEIGHTS: dict[EdgeType, int] = {
    # Resource lifecycle
    EdgeType.DEPENDS_ON: 10,
    EdgeType.DESTROYS: 10,
    EdgeType.CREATES: 9,
    EdgeType.REFERENCES: 8,

    # Modules
    EdgeType.MODULE_CALL: 9,
    EdgeType.MODULE_SOURCE: 7,
    EdgeType.MODULE_PROVIDER: 6,

    # Providers and data
    EdgeType.PROVIDER_CONFIG: 7,
    EdgeType.PROVIDER_ALIAS: 6,
    EdgeType.DATA_SOURCE: 6,
    EdgeType.DATA_REFERENCE: 5,

    # Variable flow
    EdgeType.INPUT_VARIABLE: 5,
    EdgeType.OUTPUT_VALUE: 5,
    EdgeType.LOCAL_REFERENCE: 4,

    # Kubernetes
    EdgeType.SELECTOR_MATCH: 8,
    EdgeType.SERVICE_TARGET: 8,
    EdgeType.INGRESS_BACKEND: 8,
    EdgeType.VOLUME_MOUNT: 7,
    EdgeType.SECRET_REF: 7,
    EdgeType.RBAC_BINDING: 6,
    EdgeType.CONFIGMAP_REF: 5,
    EdgeType.NAMESPACE_MEMBER: 4,

    # Terragrunt
    EdgeType.TG_DEPENDS_ON: 9,
    EdgeType.TG_INCLUDES: 7,
    EdgeType.TG_SOURCES: 7,
    EdgeType.TG_PASSES_INPUT: 5,
}

RISK_THRESHOLDS = {
    "LOW": {"weighted": 10},
    "MEDIUM": {"weighted": 30},
    "HIGH": {"weighted": 100, "cross_repo": 5},
}

# Impact score floors that escalate the count-based level
SCORE_ESCALATION = {
    RiskLevel.CRITICAL: 400.0,
    RiskLevel.HIGH: 150.0,
}

_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class ImpactScorer:
    """
    Weights traversed edges and classifies aggregate risk.

    Attributes:
        weights: Edge type to weight mapping
        decay_factor: Fraction of impact retained per hop

    Example:
        >>> scorer = ImpactScorer()
        >>> scorer.edge_contribution(EdgeType.DEPENDS_ON, depth=1)
        7.0
        >>> scorer.classify_risk(direct_count=5, indirect_count=2, cross_repo_count=0)
        <RiskLevel.MEDIUM: 'medium'>
    """

    def __init__(
        self,
        weights: Optional[dict[EdgeType, int]] = None,
        decay_factor: float = DECAY_FACTOR,
    ):
        self.weights = dict(EDGE_TYPE_WEIGHTS if weights is None else weights)
        self.decay_factor = decay_factor

    def edge_weight(self, edge_type: EdgeType) -> int:
        return self.weights.get(edge_type, DEFAULT_EDGE_WEIGHT)

    def edge_contribution(self, edge_type: EdgeType, depth: int) -> float:
        """Weighted contribution of one edge leaving a node at ``depth``."""
        return self.edge_weight(edge_type) * self.decay_factor ** depth

    def classify_risk(
        self,
        direct_count: int,
        indirect_count: int,
        cross_repo_count: int,
        impact_score: float = 0.0,
    ) -> RiskLevel:
        """
        Classify blast radius risk.

        Uses a waterfall over the weighted impact count, then lets a large
        impact score escalate the result.

        Args:
            direct_count: Directly impacted nodes
            indirect_count: Indirectly impacted nodes
            cross_repo_count: Cross-repository impact entries (one per repo pair and edge type)
            impact_score: Summed edge contributions

        Returns:
            RiskLevel classification
        """
        if direct_count + indirect_count == 0:
            return RiskLevel.LOW

        weighted = direct_count * 2 + indirect_count + cross_repo_count * 5

        if weighted < RISK_THRESHOLDS["LOW"]["weighted"]:
            level = RiskLevel.LOW
        elif weighted < RISK_THRESHOLDS["MEDIUM"]["weighted"]:
            level = RiskLevel.MEDIUM
        elif (
            weighted < RISK_THRESHOLDS["HIGH"]["weighted"]
            and cross_repo_count < RISK_THRESHOLDS["HIGH"]["cross_repo"]
        ):
            level = RiskLevel.HIGH
        else:
            level = RiskLevel.CRITICAL

        for floor, threshold in SCORE_ESCALATION.items():
            if impact_score >= threshold and _RISK_ORDER.index(floor) > _RISK_ORDER.index(level):
                logger.debug(
                    "risk_escalated_by_score",
                    from_level=level.value,
                    to_level=floor.value,
                    impact_score=impact_score,
                )
                level = floor
                break

        return level
