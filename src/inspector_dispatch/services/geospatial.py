"""Geospatial helper functions and default collaborator implementations."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import numpy as np
from shapely.geometry import Point, Polygon

from ..models.domain import Coordinate, Zone

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) * 1000.0


def _zone_polygon(boundary: Sequence[tuple[float, float]]) -> Polygon:
    return Polygon([(lng, lat) for lat, lng in boundary])


def point_in_polygon(lat: float, lon: float, polygon_coords: Sequence[tuple[float, float]]) -> bool:
    """Return True if the point is inside the polygon denoted by (lat, lon) pairs."""

    return _zone_polygon(polygon_coords).contains(Point(lon, lat))


def zone_centroid(zone: Zone) -> tuple[float, float]:
    """Return the (lat, lon) centroid of a zone boundary."""

    centroid = _zone_polygon(zone.boundary).centroid
    return (centroid.y, centroid.x)


class DistanceProvider(Protocol):
    """Symmetric distance in meters, zero for identical points."""

    def distance_meters(self, a: Coordinate, b: Coordinate) -> float: ...

    def matrix(self, points: Sequence[Coordinate]) -> np.ndarray: ...


class HaversineDistance:
    """Great-circle distance between coordinates."""

    def distance_meters(self, a: Coordinate, b: Coordinate) -> float:
        if a.coordinate_id == b.coordinate_id:
            return 0.0
        return haversine_meters(a, b)

    def matrix(self, points: Sequence[Coordinate]) -> np.ndarray:
        size = len(points)
        result = np.zeros((size, size), dtype=float)
        for i in range(size):
            for j in range(i + 1, size):
                distance = self.distance_meters(points[i], points[j])
                result[i, j] = distance
                result[j, i] = distance
        return result


@dataclass(slots=True)
class ZoneDetection:
    coordinate: Coordinate
    zone: Optional[Zone]
    confidence: float


class ZoneDetector(Protocol):
    def detect(self, coordinate: Coordinate) -> ZoneDetection: ...


class PolygonZoneDetector:
    """Detect the zone containing a coordinate, falling back to the nearest centroid.

    A containing polygon yields confidence 1.0. Otherwise the nearest zone
    centroid within ``fallback_radius_km`` is returned with a confidence that
    decays linearly with distance, capped at ``fallback_confidence``.
    """

    def __init__(
        self,
        zones: Sequence[Zone],
        *,
        fallback_radius_km: float = 5.0,
        fallback_confidence: float = 0.5,
    ) -> None:
        self.zones = [zone for zone in zones if zone.is_active]
        self.fallback_radius_km = fallback_radius_km
        self.fallback_confidence = fallback_confidence
        self._polygons = [(zone, _zone_polygon(zone.boundary)) for zone in self.zones]

    def detect(self, coordinate: Coordinate) -> ZoneDetection:
        point = Point(coordinate.longitude, coordinate.latitude)
        for zone, polygon in self._polygons:
            if polygon.contains(point):
                return ZoneDetection(coordinate=coordinate, zone=zone, confidence=1.0)

        closest: Optional[Zone] = None
        min_distance = math.inf
        for zone, polygon in self._polygons:
            centroid = polygon.centroid
            distance = haversine_km(coordinate.latitude, coordinate.longitude, centroid.y, centroid.x)
            if distance < min_distance:
                min_distance = distance
                closest = zone

        if closest is None or min_distance > self.fallback_radius_km:
            return ZoneDetection(coordinate=coordinate, zone=None, confidence=0.0)
        confidence = self.fallback_confidence * (1 - min_distance / self.fallback_radius_km)
        return ZoneDetection(coordinate=coordinate, zone=closest, confidence=round(confidence, 3))


def primary_zone(coordinates: Sequence[Coordinate], detector: Optional[ZoneDetector] = None) -> Optional[str]:
    """Return the most common zone among coordinates (first seen wins ties)."""

    counts: dict[str, int] = {}
    for coordinate in coordinates:
        zone_id = coordinate.zone_id
        if zone_id is None and detector is not None:
            detection = detector.detect(coordinate)
            zone_id = detection.zone.zone_id if detection.zone else None
        if zone_id:
            counts[zone_id] = counts.get(zone_id, 0) + 1
    if not counts:
        return None
    return max(counts, key=counts.__getitem__)
