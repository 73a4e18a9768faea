"""
Engine wiring.

One EngineContext owns one of each engine, all sharing a single Settings
instance. Construct it once at startup and pass it to whatever serves
queries; nothing here is a process-wide singleton.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from iacgraph.config import Settings, load_settings
from iacgraph.engine.blast_radius import BlastRadiusEngine, BlastRadiusVisualizer
from iacgraph.engine.graph import (
    DependencyGraph,
    GraphBuilder,
    GraphRegistry,
    GraphTraversalEngine,
    GraphValidator,
)
from iacgraph.engine.scoring import ScoringConfig, ScoringEngine

logger = structlog.get_logger()


@dataclass
class EngineContext:
    """
    Explicitly wired engines.

    Attributes:
        settings: Shared settings
        scoring: Confidence scoring engine
        validator: Structural graph validator
        registry: Registered dependency graphs per (execution, tenant)
        traversal: Traversal queries over the registry
        blast_radius: Blast radius analysis with its result cache
        visualizer: Cytoscape.js rendering of blast radius results

    Example:
        >>> ctx = EngineContext.from_settings()
        >>> graph = ctx.new_builder().add_nodes(nodes).add_edges(edges).build("exec-1", "tenant-a")
        >>> ctx.registry.register(graph)
        >>> ctx.traversal.downstream("exec-1", "tenant-a", "aws_vpc.main")
    """

    settings: Settings
    scoring: ScoringEngine
    validator: GraphValidator
    registry: GraphRegistry
    traversal: GraphTraversalEngine
    blast_radius: BlastRadiusEngine
    visualizer: BlastRadiusVisualizer = field(default_factory=BlastRadiusVisualizer)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "EngineContext":
        """
        Build every engine from one settings instance.

        Args:
            settings: Settings (loaded from the environment when omitted)
            clock: Optional time source for the blast radius cache
        """
        settings = settings or load_settings()
        registry = GraphRegistry()
        ctx = cls(
            settings=settings,
            scoring=ScoringEngine(ScoringConfig.from_settings(settings)),
            validator=GraphValidator(),
            registry=registry,
            traversal=GraphTraversalEngine(registry, settings),
            blast_radius=BlastRadiusEngine(settings, clock=clock),
        )
        logger.debug(
            "engine_context_created",
            default_max_depth=settings.default_max_depth,
            blast_radius_cache_ttl_seconds=settings.blast_radius_cache_ttl_seconds,
        )
        return ctx

    def new_builder(self) -> GraphBuilder:
        """A fresh builder sharing this context's scoring engine and validator."""
        return GraphBuilder(scoring_engine=self.scoring, validator=self.validator)

    def register(self, graph: DependencyGraph) -> Optional[DependencyGraph]:
        """Register a built graph for traversal queries; returns the graph it replaced."""
        return self.registry.register(graph)
