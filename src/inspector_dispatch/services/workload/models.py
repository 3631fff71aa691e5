"""Workload domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import List


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def utilization_percentage(current_routes: int, max_daily_routes: int) -> int:
    """Integer utilization; a zero-capacity inspector with work counts as fully overloaded."""
    if max_daily_routes <= 0:
        return 0 if current_routes <= 0 else 100 * (current_routes + 1)
    return round_half_up(current_routes / max_daily_routes * 100)


@dataclass(slots=True)
class ZoneRouteCount:
    zone_id: str
    zone_name: str
    route_count: int


@dataclass(slots=True)
class WorkloadMetrics:
    inspector_id: str
    inspector_name: str
    current_routes: int
    max_daily_routes: int
    utilization_percentage: int
    available_capacity: int
    estimated_work_hours: float
    zone_distribution: List[ZoneRouteCount] = field(default_factory=list)

    def copy(self) -> "WorkloadMetrics":
        return replace(self, zone_distribution=[replace(z) for z in self.zone_distribution])

    def with_routes(self, current_routes: int) -> "WorkloadMetrics":
        """Return a copy projected to ``current_routes`` assigned routes."""
        projected = self.copy()
        projected.current_routes = current_routes
        projected.available_capacity = self.max_daily_routes - current_routes
        projected.utilization_percentage = utilization_percentage(current_routes, self.max_daily_routes)
        return projected


@dataclass(slots=True)
class WorkloadImpact:
    inspector_id: str
    current_utilization: int
    projected_utilization: int
    utilization_change: int
    will_exceed_capacity: bool


@dataclass(slots=True)
class WorkloadImpactPrediction:
    before_assignment: List[WorkloadMetrics]
    after_assignment: List[WorkloadMetrics]
    impact_summary: List[WorkloadImpact]


@dataclass(slots=True)
class ZoneCapacity:
    total: int
    used: int
    available: int


@dataclass(slots=True)
class ZoneWorkloadSummary:
    zone_id: str
    zone_name: str
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    inspector_count: int
    average_utilization: int
    capacity: ZoneCapacity


@dataclass(slots=True)
class SystemWorkloadOverview:
    total_inspectors: int
    active_inspectors: int
    total_routes: int
    assigned_routes: int
    unassigned_routes: int
    system_utilization: int
    zone_breakdown: List[ZoneWorkloadSummary]
    inspector_metrics: List[WorkloadMetrics]


@dataclass(slots=True)
class BalanceRecommendation:
    kind: str  # redistribute | optimize
    priority: str  # high | medium | low
    description: str
    affected_inspectors: List[str]


@dataclass(slots=True)
class WorkloadBalanceReport:
    overloaded_inspectors: List[WorkloadMetrics]
    underutilized_inspectors: List[WorkloadMetrics]
    recommendations: List[BalanceRecommendation]
