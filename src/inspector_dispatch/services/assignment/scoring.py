"""Score components for inspector/route pairs.

Each component is a pure function returning its weighted contribution; the
assignment pass adds them up. Weights come from settings.
"""

from __future__ import annotations

from typing import Optional

from ...config import settings
from ...models.domain import Inspector, Priority, Route
from ..workload.models import WorkloadMetrics

PRIORITY_POINTS = {
    Priority.HIGH: 100.0,
    Priority.MEDIUM: 70.0,
    Priority.LOW: 40.0,
}


def zone_match_score(route: Route, inspector: Inspector, prioritize_zone_preference: bool) -> float:
    if not prioritize_zone_preference or route.zone_id is None:
        return 0.0
    if route.zone_id in inspector.preferred_zones:
        return settings.zone_match_bonus * settings.zone_match_weight
    return 0.0


def workload_balance_score(metrics: WorkloadMetrics, balance_workload: bool) -> float:
    if not balance_workload:
        return 0.0
    return max(0.0, 100.0 - metrics.utilization_percentage) * settings.workload_balance_weight


def availability_score(is_available: Optional[bool]) -> Optional[float]:
    """None (ineligible) when the inspector has no window for the route; 0 when availability is ignored."""
    if is_available is None:
        return 0.0
    if not is_available:
        return None
    return 100.0 * settings.availability_weight


def priority_score(route: Route) -> float:
    return PRIORITY_POINTS[route.priority] * settings.priority_weight


def capacity_ratio_score(metrics: WorkloadMetrics) -> float:
    """Share of the inspector's daily capacity still free, scaled to 0-100."""
    if metrics.max_daily_routes <= 0:
        return 0.0
    return max(0.0, metrics.available_capacity / metrics.max_daily_routes) * 100.0


def distance_score(distance_km: float, max_distance_km: float) -> float:
    if max_distance_km <= 0:
        return 50.0
    return max(0.0, 100.0 - distance_km / max_distance_km * 100.0)


def cross_zone_score(route: Route, metrics: WorkloadMetrics, distance_km: float, max_distance_km: float) -> float:
    """Score used when rescuing a route outside the inspector's preferred zones."""
    return (
        capacity_ratio_score(metrics) * 0.4
        + max(0.0, 100.0 - metrics.utilization_percentage) * 0.3
        + distance_score(distance_km, max_distance_km) * 0.2
        + PRIORITY_POINTS[route.priority] * 0.1
    )
