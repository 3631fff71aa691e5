"""Sequencing results and inputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Coordinate, RoutePoint


class SequencingAlgorithm(str, Enum):
    NEAREST_NEIGHBOR = "nearest_neighbor"
    TWO_OPT = "two_opt"
    GENETIC = "genetic"


@dataclass(slots=True)
class OptimizationResult:
    optimized_coordinates: List[Coordinate]
    original_distance: float  # meters
    optimized_distance: float  # meters
    improvement_percentage: float
    algorithm: str
    iterations: int
    execution_time_ms: float
    zone_id: Optional[str] = None


@dataclass(slots=True)
class RouteStops:
    """One route's stops as handed to multi-route optimisation."""

    coordinates: List[Coordinate]
    zone_id: Optional[str] = None


@dataclass(slots=True)
class OptimizationStats:
    average_improvement: float
    best_improvement: float
    worst_improvement: float
    average_execution_time_ms: float
    total_distance_saved: float


@dataclass(slots=True)
class StopTime:
    sequence: int
    work_minutes: float
    travel_minutes: float
    cumulative_minutes: float


@dataclass(slots=True)
class RouteTimeBreakdown:
    total_minutes: int
    work_minutes: int
    travel_minutes: int
    setup_minutes: int
    break_minutes: int
    stops: List[StopTime] = field(default_factory=list)


@dataclass(slots=True)
class ResequencedRoute:
    route_id: str
    points: List[RoutePoint]
    optimization: OptimizationResult
    estimated_duration: int
