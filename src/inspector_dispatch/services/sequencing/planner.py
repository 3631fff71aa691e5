"""Re-sequencing stored routes and estimating how long they take."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from ...config import settings
from ...models.domain import RoutePoint, ZoneCategory
from ...persistence.base import RouteRepository, ZoneRepository
from ...schemas.sequencing import SequencerOptions
from ..workload.models import round_half_up
from .models import ResequencedRoute, RouteTimeBreakdown, StopTime
from .sequencer import RouteSequencer

logger = logging.getLogger(__name__)


def travel_speed_kmh(category: Optional[ZoneCategory]) -> float:
    if category == ZoneCategory.RURAL:
        return settings.rural_speed_kmh
    return settings.metropolitan_speed_kmh


def stop_minutes(point: RoutePoint) -> int:
    return point.estimated_time if point.estimated_time is not None else settings.default_stop_minutes


class RoutePlanner:
    def __init__(
        self,
        routes: RouteRepository,
        zones: Optional[ZoneRepository] = None,
        sequencer: Optional[RouteSequencer] = None,
    ) -> None:
        self.routes = routes
        self.zones = zones
        self.sequencer = sequencer or RouteSequencer()

    def resequence_route(self, route_id: str, options: Optional[SequencerOptions] = None) -> Optional[ResequencedRoute]:
        """Reorder a route's stops, renumber them 1..N and store the new estimated duration."""
        route = self.routes.find_by_id(route_id)
        if route is None:
            return None

        points = self.routes.get_points(route_id)
        optimization = self.sequencer.optimize_route([p.coordinate for p in points], options)

        by_coordinate = {p.coordinate.coordinate_id: p for p in points}
        ordered = [by_coordinate[c.coordinate_id] for c in optimization.optimized_coordinates if c.coordinate_id in by_coordinate]
        renumbered = [replace(point, sequence=index) for index, point in enumerate(ordered, start=1)]
        stored = self.routes.replace_points(route_id, renumbered)

        duration = self.estimate_duration(stored, optimization.optimized_distance, self._category(route.zone_id))
        self.routes.update(route_id, estimated_duration=duration)
        logger.info(
            f"Route {route_id} resequenced with {optimization.algorithm}: "
            f"{optimization.improvement_percentage:.1f}% shorter, {duration} min"
        )
        return ResequencedRoute(route_id=route_id, points=stored, optimization=optimization, estimated_duration=duration)

    @staticmethod
    def estimate_duration(points: Sequence[RoutePoint], distance_meters: float, category: Optional[ZoneCategory]) -> int:
        """Minutes spent at stops plus travel time at the zone category's speed."""
        work = sum(stop_minutes(p) for p in points)
        travel = distance_meters / 1000 / travel_speed_kmh(category) * 60
        return round_half_up(work + travel)

    def calculate_route_time(
        self,
        route_id: str,
        *,
        include_setup: bool = True,
        include_breaks: bool = True,
        speed_kmh: Optional[float] = None,
    ) -> Optional[RouteTimeBreakdown]:
        route = self.routes.find_by_id(route_id)
        if route is None:
            return None

        points = self.routes.get_points(route_id)
        speed = speed_kmh or travel_speed_kmh(self._category(route.zone_id))
        matrix = self.sequencer.distance.matrix([p.coordinate for p in points])

        stops: List[StopTime] = []
        work_total = 0.0
        travel_total = 0.0
        for index, point in enumerate(points):
            work = float(stop_minutes(point))
            travel = float(matrix[index - 1, index]) / 1000 / speed * 60 if index > 0 else 0.0
            work_total += work
            travel_total += travel
            stops.append(
                StopTime(
                    sequence=point.sequence,
                    work_minutes=work,
                    travel_minutes=travel,
                    cumulative_minutes=work_total + travel_total,
                )
            )

        elapsed = work_total + travel_total
        setup = settings.setup_minutes if include_setup else 0
        breaks = int(elapsed // settings.break_block_minutes) * settings.break_minutes_per_block if include_breaks else 0
        return RouteTimeBreakdown(
            total_minutes=round_half_up(elapsed + setup + breaks),
            work_minutes=round_half_up(work_total),
            travel_minutes=round_half_up(travel_total),
            setup_minutes=setup,
            break_minutes=breaks,
            stops=stops,
        )

    def _category(self, zone_id: Optional[str]) -> Optional[ZoneCategory]:
        if zone_id is None or self.zones is None:
            return None
        zone = self.zones.find_by_id(zone_id)
        return zone.category if zone else None
