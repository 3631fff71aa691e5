"""Assignment and optimization option schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..config import settings


class AssignmentOptions(BaseModel):
    """Switches for the baseline assignment pass. Every field must be given."""

    prioritize_zone_preference: bool
    max_utilization_threshold: float = Field(..., ge=0, description="Utilization percent above which an inspector is skipped.")
    allow_cross_zone_assignment: bool
    balance_workload: bool
    consider_availability: bool

    @classmethod
    def defaults(cls) -> "AssignmentOptions":
        return cls(
            prioritize_zone_preference=settings.prioritize_zone_preference,
            max_utilization_threshold=settings.max_utilization_threshold,
            allow_cross_zone_assignment=settings.allow_cross_zone_assignment,
            balance_workload=settings.balance_workload,
            consider_availability=settings.consider_availability,
        )


class OptimizationOptions(AssignmentOptions):
    enable_cross_zone_optimization: bool
    max_cross_zone_distance: float = Field(..., ge=0, description="Kilometres; 0 disables the distance cut-off.")
    enable_automatic_reassignment: bool
    optimization_strategy: str = Field(..., description="One of balanced, zone_priority, efficiency.")

    @classmethod
    def defaults(cls) -> "OptimizationOptions":
        base = AssignmentOptions.defaults()
        return cls(
            **base.model_dump(),
            enable_cross_zone_optimization=settings.enable_cross_zone_optimization,
            max_cross_zone_distance=settings.max_cross_zone_distance_km,
            enable_automatic_reassignment=settings.enable_automatic_reassignment,
            optimization_strategy=settings.optimization_strategy,
        )

    def baseline(self) -> AssignmentOptions:
        return AssignmentOptions(**self.model_dump(include=set(AssignmentOptions.model_fields)))
