"""Inspector workload metrics.

Metrics are derived from repository state on every call and never cached,
since a stale utilization figure would skew assignment scoring.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

import numpy as np

from ...config import settings
from ...models.domain import Inspector, Route, RouteStatus
from ...persistence.base import InspectorRepository, RouteRepository, ZoneRepository
from .models import (
    BalanceRecommendation,
    SystemWorkloadOverview,
    WorkloadBalanceReport,
    WorkloadImpact,
    WorkloadImpactPrediction,
    WorkloadMetrics,
    ZoneCapacity,
    ZoneRouteCount,
    ZoneWorkloadSummary,
    round_half_up,
    utilization_percentage,
)

logger = logging.getLogger(__name__)


def utilization_std_dev(metrics: Sequence[WorkloadMetrics]) -> float:
    """Population standard deviation of utilization percentages."""
    if not metrics:
        return 0.0
    return float(np.std([m.utilization_percentage for m in metrics]))


def average_utilization(metrics: Sequence[WorkloadMetrics]) -> float:
    if not metrics:
        return 0.0
    return float(np.mean([m.utilization_percentage for m in metrics]))


class WorkloadCalculator:
    def __init__(
        self,
        inspectors: InspectorRepository,
        routes: RouteRepository,
        zones: Optional[ZoneRepository] = None,
    ) -> None:
        self.inspectors = inspectors
        self.routes = routes
        self.zones = zones

    def calculate_inspector_workload(self, inspector_id: str) -> Optional[WorkloadMetrics]:
        """Calculate workload metrics for a specific inspector, or None if unknown."""
        inspector = self.inspectors.find_by_id(inspector_id)
        if inspector is None:
            return None
        return self._metrics_for(inspector)

    def _metrics_for(self, inspector: Inspector) -> WorkloadMetrics:
        current_routes = self.inspectors.get_current_workload(inspector.inspector_id)
        active_routes = [route for route in self.routes.find_by_inspector(inspector.inspector_id) if route.is_active]
        estimated_minutes = sum(route.estimated_duration or 0 for route in active_routes)
        return WorkloadMetrics(
            inspector_id=inspector.inspector_id,
            inspector_name=inspector.name,
            current_routes=current_routes,
            max_daily_routes=inspector.max_daily_routes,
            utilization_percentage=utilization_percentage(current_routes, inspector.max_daily_routes),
            available_capacity=inspector.max_daily_routes - current_routes,
            estimated_work_hours=estimated_minutes / 60,
            zone_distribution=self._zone_distribution(active_routes),
        )

    def calculate_all_inspector_workloads(self) -> list[WorkloadMetrics]:
        """Workload for every active inspector, most utilized first."""
        metrics = [self._metrics_for(inspector) for inspector in self.inspectors.find_active()]
        # sorted() is stable, so ties keep repository order
        return sorted(metrics, key=lambda m: m.utilization_percentage, reverse=True)

    def find_inspectors_with_capacity(self, min_capacity: int = 1, zone_id: Optional[str] = None) -> list[WorkloadMetrics]:
        if zone_id:
            inspectors = self.inspectors.find_by_preferred_zone(zone_id)
        else:
            inspectors = self.inspectors.find_active()

        available = [m for m in (self._metrics_for(i) for i in inspectors) if m.available_capacity >= min_capacity]
        return sorted(available, key=lambda m: m.available_capacity, reverse=True)

    def predict_workload_impact(self, assignments: Iterable[tuple[str, str]]) -> WorkloadImpactPrediction:
        """Project metrics for hypothetical ``(route_id, inspector_id)`` pairs without committing them."""
        additions: Counter[str] = Counter()
        affected: list[str] = []
        for _route_id, inspector_id in assignments:
            if inspector_id not in additions:
                affected.append(inspector_id)
            additions[inspector_id] += 1

        before: list[WorkloadMetrics] = []
        after: list[WorkloadMetrics] = []
        impact: list[WorkloadImpact] = []
        for inspector_id in affected:
            current = self.calculate_inspector_workload(inspector_id)
            if current is None:
                continue
            projected = current.with_routes(current.current_routes + additions[inspector_id])
            before.append(current)
            after.append(projected)
            impact.append(
                WorkloadImpact(
                    inspector_id=inspector_id,
                    current_utilization=current.utilization_percentage,
                    projected_utilization=projected.utilization_percentage,
                    utilization_change=projected.utilization_percentage - current.utilization_percentage,
                    will_exceed_capacity=projected.current_routes > projected.max_daily_routes,
                )
            )
        return WorkloadImpactPrediction(before_assignment=before, after_assignment=after, impact_summary=impact)

    def calculate_zone_workload(self, zone_id: str) -> Optional[ZoneWorkloadSummary]:
        zone_name = self._zone_name(zone_id)
        if zone_name is None:
            return None

        zone_routes = self.routes.find_by_zone(zone_id)
        zone_inspectors = self.inspectors.find_by_preferred_zone(zone_id)
        assigned = sum(1 for route in zone_routes if route.assigned_inspector_id)

        workloads = [self.inspectors.get_current_workload(i.inspector_id) for i in zone_inspectors]
        total_capacity = sum(i.max_daily_routes for i in zone_inspectors)
        used_capacity = sum(workloads)
        utilizations = [
            load / inspector.max_daily_routes * 100
            for load, inspector in zip(workloads, zone_inspectors)
            if inspector.max_daily_routes > 0
        ]
        average = sum(utilizations) / len(utilizations) if utilizations else 0.0

        return ZoneWorkloadSummary(
            zone_id=zone_id,
            zone_name=zone_name,
            total_routes=len(zone_routes),
            assigned_routes=assigned,
            unassigned_routes=len(zone_routes) - assigned,
            inspector_count=len(zone_inspectors),
            average_utilization=round_half_up(average),
            capacity=ZoneCapacity(total=total_capacity, used=used_capacity, available=total_capacity - used_capacity),
        )

    def get_system_workload_overview(self) -> SystemWorkloadOverview:
        everyone = self.inspectors.find_with_workload()
        active = [entry for entry in everyone if entry.inspector.is_active]
        all_routes = [route for status in RouteStatus for route in self.routes.find_by_status(status)]
        assigned = sum(1 for route in all_routes if route.assigned_inspector_id)

        total_capacity = sum(entry.inspector.max_daily_routes for entry in active)
        used_capacity = sum(entry.current_workload for entry in active)
        system_utilization = round_half_up(used_capacity / total_capacity * 100) if total_capacity > 0 else 0

        zone_breakdown: list[ZoneWorkloadSummary] = []
        if self.zones is not None:
            for zone in self.zones.find_active():
                summary = self.calculate_zone_workload(zone.zone_id)
                if summary:
                    zone_breakdown.append(summary)

        return SystemWorkloadOverview(
            total_inspectors=len(everyone),
            active_inspectors=len(active),
            total_routes=len(all_routes),
            assigned_routes=assigned,
            unassigned_routes=len(all_routes) - assigned,
            system_utilization=system_utilization,
            zone_breakdown=zone_breakdown,
            inspector_metrics=self.calculate_all_inspector_workloads(),
        )

    def get_workload_balance_recommendations(self) -> WorkloadBalanceReport:
        metrics = self.calculate_all_inspector_workloads()
        overloaded = [m for m in metrics if m.utilization_percentage > settings.overload_threshold]
        underutilized = [m for m in metrics if m.utilization_percentage < settings.rebalance_underutilized_threshold]

        recommendations: list[BalanceRecommendation] = []
        if overloaded:
            recommendations.append(
                BalanceRecommendation(
                    kind="redistribute",
                    priority="high",
                    description=f"{len(overloaded)} inspector(s) are overloaded. Redistribute routes urgently.",
                    affected_inspectors=[m.inspector_id for m in overloaded],
                )
            )
        if utilization_std_dev(metrics) > settings.utilization_variance_threshold:
            recommendations.append(
                BalanceRecommendation(
                    kind="optimize",
                    priority="medium",
                    description="Workload is unbalanced across inspectors. Consider redistributing routes.",
                    affected_inspectors=[m.inspector_id for m in metrics],
                )
            )
        if underutilized:
            recommendations.append(
                BalanceRecommendation(
                    kind="optimize",
                    priority="low",
                    description=f"{len(underutilized)} inspector(s) are underutilized. Review their assignments.",
                    affected_inspectors=[m.inspector_id for m in underutilized],
                )
            )
        logger.debug(f"Balance report: {len(overloaded)} overloaded, {len(underutilized)} underutilized")
        return WorkloadBalanceReport(
            overloaded_inspectors=overloaded,
            underutilized_inspectors=underutilized,
            recommendations=recommendations,
        )

    def _zone_distribution(self, routes: Sequence[Route]) -> list[ZoneRouteCount]:
        counts: Counter[str] = Counter(route.zone_id for route in routes if route.zone_id)
        distribution = [
            ZoneRouteCount(zone_id=zone_id, zone_name=self._zone_name(zone_id) or zone_id, route_count=count)
            for zone_id, count in counts.items()
        ]
        return sorted(distribution, key=lambda z: z.route_count, reverse=True)

    def _zone_name(self, zone_id: str) -> Optional[str]:
        if self.zones is None:
            return f"Zone {zone_id}"
        zone = self.zones.find_by_id(zone_id)
        return zone.name if zone else None
