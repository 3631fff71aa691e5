"""Application configuration and settings management."""

from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Baseline assignment defaults
    prioritize_zone_preference: bool = True
    max_utilization_threshold: float = Field(default=100.0, ge=0.0)
    allow_cross_zone_assignment: bool = True
    balance_workload: bool = True
    consider_availability: bool = False

    # Optimizer defaults
    enable_cross_zone_optimization: bool = True
    max_cross_zone_distance_km: float = Field(default=15.0, ge=0.0)
    enable_automatic_reassignment: bool = True
    optimization_strategy: Literal["balanced", "zone_priority", "efficiency"] = "balanced"
    default_cross_zone_distance_km: float = Field(
        default=10.0,
        ge=0.0,
        description="Placeholder distance used when a route and inspector do not share a zone.",
    )

    # Scoring weights for the baseline pass
    zone_match_weight: float = Field(default=0.4, ge=0.0)
    workload_balance_weight: float = Field(default=0.3, ge=0.0)
    availability_weight: float = Field(default=0.2, ge=0.0)
    priority_weight: float = Field(default=0.1, ge=0.0)
    zone_match_bonus: float = Field(default=100.0, ge=0.0)

    # Utilization thresholds (percent)
    overload_threshold: float = Field(default=100.0, ge=0.0)
    rebalance_underutilized_threshold: float = Field(default=50.0, ge=0.0)
    recommendation_underutilized_threshold: float = Field(default=20.0, ge=0.0)
    utilization_variance_threshold: float = Field(default=25.0, ge=0.0)

    # Scheduling
    default_route_duration_minutes: int = Field(default=60, ge=1)

    # Sequencer defaults
    two_opt_max_iterations: int = Field(default=1000, ge=1)
    genetic_population_size: int = Field(default=50, ge=2)
    genetic_generations: int = Field(default=100, ge=1)
    genetic_mutation_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    genetic_elite_fraction: float = Field(default=0.2, ge=0.0, le=1.0)
    genetic_tournament_size: int = Field(default=3, ge=1)
    benchmark_genetic_generations: int = Field(default=50, ge=1)
    benchmark_genetic_population_size: int = Field(default=30, ge=2)
    benchmark_two_opt_max_iterations: int = Field(default=500, ge=1)

    # Route duration model
    default_stop_minutes: int = Field(default=15, ge=0)
    metropolitan_speed_kmh: float = Field(default=25.0, gt=0.0)
    rural_speed_kmh: float = Field(default=45.0, gt=0.0)
    setup_minutes: int = Field(default=30, ge=0)
    break_minutes_per_block: int = Field(default=15, ge=0)
    break_block_minutes: int = Field(default=240, ge=1)

    # Optional OSRM distance collaborator
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel distances.",
    )
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)

    @field_validator("osrm_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text.rstrip("/") or None


settings = Settings()
