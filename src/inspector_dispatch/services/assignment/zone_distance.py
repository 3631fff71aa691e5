"""Distance estimates between a route's zone and an inspector's home zones."""

from __future__ import annotations

from typing import Optional, Protocol

from ...config import settings
from ...models.domain import Inspector, Route
from ...persistence.base import ZoneRepository
from ..geospatial import haversine_km, zone_centroid


class ZoneDistanceEstimator(Protocol):
    def estimate_km(self, route: Route, inspector: Inspector) -> float: ...


class FixedZoneDistance:
    """Zero inside a preferred zone, a flat estimate everywhere else."""

    def __init__(self, cross_zone_km: Optional[float] = None) -> None:
        self.cross_zone_km = settings.default_cross_zone_distance_km if cross_zone_km is None else cross_zone_km

    def estimate_km(self, route: Route, inspector: Inspector) -> float:
        if route.zone_id is not None and route.zone_id in inspector.preferred_zones:
            return 0.0
        return self.cross_zone_km


class CentroidZoneDistance:
    """Great-circle distance from the route's zone centroid to the nearest preferred-zone centroid.

    Zones are looked up on every call, so boundary edits apply immediately.
    Falls back to ``fallback`` when either side has no known zone.
    """

    def __init__(self, zones: ZoneRepository, fallback: Optional[ZoneDistanceEstimator] = None) -> None:
        self.zones = zones
        self.fallback = fallback or FixedZoneDistance()

    def _centroid(self, zone_id: str) -> Optional[tuple[float, float]]:
        zone = self.zones.find_by_id(zone_id)
        if zone is None or len(zone.boundary) < 3:
            return None
        return zone_centroid(zone)

    def estimate_km(self, route: Route, inspector: Inspector) -> float:
        if route.zone_id is None:
            return self.fallback.estimate_km(route, inspector)
        if route.zone_id in inspector.preferred_zones:
            return 0.0

        origin = self._centroid(route.zone_id)
        homes = [c for c in (self._centroid(z) for z in inspector.preferred_zones) if c is not None]
        if origin is None or not homes:
            return self.fallback.estimate_km(route, inspector)
        return min(haversine_km(origin[0], origin[1], lat, lon) for lat, lon in homes)
