"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from IACGRAPH_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="IACGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")
    dev_mode: bool = Field(default=False, description="Development mode")

    # Traversal limits
    default_max_depth: int = Field(
        default=10, ge=1, le=50, description="Default traversal depth for downstream/upstream/impact"
    )
    shortest_path_max_depth: int = Field(
        default=20, ge=1, le=50, description="Depth cap for shortest path search"
    )
    all_paths_limit: int = Field(
        default=100, ge=1, le=10000, description="Maximum paths returned by all-paths search"
    )
    cycle_limit: int = Field(
        default=50, ge=1, le=1000, description="Maximum cycles returned by cycle detection"
    )
    cycle_max_length: int = Field(
        default=20, ge=1, le=50, description="Longest cycle (in edges) considered"
    )
    traversal_max_expansions: int = Field(
        default=100_000, ge=100, description="Path expansion budget for enumeration queries"
    )

    # Blast radius
    blast_radius_default_depth: int = Field(
        default=5, ge=1, le=20, description="Default blast radius traversal depth"
    )
    blast_radius_max_depth: int = Field(
        default=20, ge=1, le=20, description="Upper bound accepted for a blast radius query depth"
    )
    blast_radius_max_expansions: int = Field(
        default=100_000, ge=100, description="Path expansion budget for blast radius traversal"
    )
    blast_radius_cache_ttl_seconds: float = Field(
        default=3600.0, gt=0, description="Blast radius result cache TTL"
    )
    blast_radius_cache_max_entries: int = Field(
        default=10_000, ge=1, description="Blast radius result cache capacity"
    )

    # Scoring
    scoring_explicit_weight: float = Field(default=1.0, ge=0.0, le=1.0)
    scoring_semantic_weight: float = Field(default=0.9, ge=0.0, le=1.0)
    scoring_structural_weight: float = Field(default=0.8, ge=0.0, le=1.0)
    scoring_heuristic_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    scoring_decay_rate: float = Field(
        default=0.85, gt=0.0, lt=1.0, description="Evidence multiplier decay rate"
    )

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Restrict log format to known renderers."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v


def load_settings(**overrides) -> Settings:
    """
    Build a fresh settings instance.

    Each call re-reads the environment; callers hold on to the instance and
    pass it to the engines they construct.
    """
    return Settings(**overrides)
