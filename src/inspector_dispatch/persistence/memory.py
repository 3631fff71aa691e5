"""In-memory repositories for tests and local experimentation."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ..models.domain import (
    ACTIVE_ROUTE_STATUSES,
    AvailabilitySlot,
    Inspector,
    Route,
    RoutePoint,
    RouteStatus,
    Zone,
)
from .base import InspectorRouteStats, InspectorWithWorkload, ZoneRouteStats


class InMemoryStore:
    """Shared backing state for the in-memory repositories.

    All reads return copies so callers never mutate stored records directly.
    """

    def __init__(
        self,
        *,
        zones: Iterable[Zone] = (),
        inspectors: Iterable[Inspector] = (),
        routes: Iterable[Route] = (),
    ) -> None:
        self.lock = threading.RLock()
        self.zones: dict[str, Zone] = {zone.zone_id: zone for zone in zones}
        self.inspectors: dict[str, Inspector] = {i.inspector_id: _copy_inspector(i) for i in inspectors}
        self.routes: dict[str, Route] = {}
        self.points: dict[str, list[RoutePoint]] = {}
        self.availability: dict[str, list[AvailabilitySlot]] = {}
        for route in routes:
            _check_assignment_invariant(route)
            self.routes[route.route_id] = replace(route)

    @property
    def inspector_repository(self) -> "InMemoryInspectorRepository":
        return InMemoryInspectorRepository(self)

    @property
    def route_repository(self) -> "InMemoryRouteRepository":
        return InMemoryRouteRepository(self)

    @property
    def zone_repository(self) -> "InMemoryZoneRepository":
        return InMemoryZoneRepository(self)


def _check_assignment_invariant(route: Route) -> None:
    if (route.assigned_inspector_id is not None) != (route.status in ACTIVE_ROUTE_STATUSES):
        raise ValueError(
            f"Route {route.route_id}: assigned inspector must be set exactly when status is assigned or in_progress "
            f"(status={route.status.value}, inspector={route.assigned_inspector_id})"
        )


def _copy_inspector(inspector: Inspector) -> Inspector:
    return replace(inspector, preferred_zones=list(inspector.preferred_zones))


class InMemoryInspectorRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def find_by_id(self, inspector_id: str) -> Optional[Inspector]:
        inspector = self.store.inspectors.get(inspector_id)
        return _copy_inspector(inspector) if inspector else None

    def find_by_identification(self, identification: str) -> Optional[Inspector]:
        for inspector in self.store.inspectors.values():
            if inspector.identification == identification:
                return _copy_inspector(inspector)
        return None

    def find_active(self) -> list[Inspector]:
        return [_copy_inspector(i) for i in self.store.inspectors.values() if i.is_active]

    def find_by_preferred_zone(self, zone_id: str) -> list[Inspector]:
        return [
            _copy_inspector(i)
            for i in self.store.inspectors.values()
            if i.is_active and zone_id in i.preferred_zones
        ]

    def find_with_workload(self) -> list[InspectorWithWorkload]:
        return [
            InspectorWithWorkload(inspector=_copy_inspector(i), current_workload=self.get_current_workload(i.inspector_id))
            for i in self.store.inspectors.values()
        ]

    def get_availability(self, inspector_id: str, day_of_week: Optional[int] = None) -> list[AvailabilitySlot]:
        slots = self.store.availability.get(inspector_id, [])
        return [replace(slot) for slot in slots if day_of_week is None or slot.day_of_week == day_of_week]

    def set_availability(self, inspector_id: str, slots: Sequence[AvailabilitySlot]) -> None:
        with self.store.lock:
            self.store.availability[inspector_id] = [replace(slot) for slot in slots]

    def get_current_workload(self, inspector_id: str) -> int:
        return sum(
            1
            for route in self.store.routes.values()
            if route.assigned_inspector_id == inspector_id and route.status in ACTIVE_ROUTE_STATUSES
        )


class InMemoryRouteRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def find_by_id(self, route_id: str) -> Optional[Route]:
        route = self.store.routes.get(route_id)
        return replace(route) if route else None

    def find_by_status(self, status: RouteStatus) -> list[Route]:
        return [replace(r) for r in self.store.routes.values() if r.status == status]

    def find_by_zone(self, zone_id: str) -> list[Route]:
        return [replace(r) for r in self.store.routes.values() if r.zone_id == zone_id]

    def find_by_inspector(self, inspector_id: str) -> list[Route]:
        return [replace(r) for r in self.store.routes.values() if r.assigned_inspector_id == inspector_id]

    def create(self, route: Route) -> Route:
        with self.store.lock:
            if route.route_id in self.store.routes:
                raise ValueError(f"Route {route.route_id} already exists")
            _check_assignment_invariant(route)
            self.store.routes[route.route_id] = replace(route)
            return replace(route)

    def update(self, route_id: str, **changes: object) -> Optional[Route]:
        with self.store.lock:
            route = self.store.routes.get(route_id)
            if route is None:
                return None
            updated = replace(route, **changes)
            _check_assignment_invariant(updated)
            self.store.routes[route_id] = updated
            return replace(updated)

    def claim_route(self, route_id: str, inspector_id: str) -> Optional[Route]:
        with self.store.lock:
            route = self.store.routes.get(route_id)
            if route is None or route.status != RouteStatus.PENDING:
                return None
            route.status = RouteStatus.ASSIGNED
            route.assigned_inspector_id = inspector_id
            return replace(route)

    def reassign_route(self, route_id: str, from_inspector_id: str, to_inspector_id: str) -> Optional[Route]:
        with self.store.lock:
            route = self.store.routes.get(route_id)
            if route is None or route.assigned_inspector_id != from_inspector_id or not route.is_active:
                return None
            route.assigned_inspector_id = to_inspector_id
            return replace(route)

    def unassign_from_inspector(self, route_id: str) -> Optional[Route]:
        with self.store.lock:
            route = self.store.routes.get(route_id)
            if route is None:
                return None
            route.status = RouteStatus.PENDING
            route.assigned_inspector_id = None
            return replace(route)

    def get_points(self, route_id: str) -> list[RoutePoint]:
        points = self.store.points.get(route_id, [])
        return sorted((replace(p) for p in points), key=lambda p: p.sequence)

    def replace_points(self, route_id: str, points: Sequence[RoutePoint]) -> list[RoutePoint]:
        sequences = sorted(point.sequence for point in points)
        if sequences != list(range(1, len(points) + 1)):
            raise ValueError(f"Route {route_id}: point sequences must be contiguous from 1, got {sequences}")
        with self.store.lock:
            self.store.points[route_id] = [replace(p, route_id=route_id) for p in points]
        return self.get_points(route_id)

    def get_stats_by_zone(self) -> list[ZoneRouteStats]:
        stats: list[ZoneRouteStats] = []
        for zone in sorted(self.store.zones.values(), key=lambda z: z.name):
            if not zone.is_active:
                continue
            routes = [r for r in self.store.routes.values() if r.zone_id == zone.zone_id]
            stats.append(
                ZoneRouteStats(
                    zone_id=zone.zone_id,
                    zone_name=zone.name,
                    total_routes=len(routes),
                    pending_routes=sum(1 for r in routes if r.status == RouteStatus.PENDING),
                    assigned_routes=sum(1 for r in routes if r.status == RouteStatus.ASSIGNED),
                    completed_routes=sum(1 for r in routes if r.status == RouteStatus.COMPLETED),
                )
            )
        return stats

    def get_stats_by_inspector(self) -> list[InspectorRouteStats]:
        stats: list[InspectorRouteStats] = []
        for inspector in self.store.inspectors.values():
            routes = [r for r in self.store.routes.values() if r.assigned_inspector_id == inspector.inspector_id]
            durations = [r.estimated_duration for r in routes if r.estimated_duration is not None]
            stats.append(
                InspectorRouteStats(
                    inspector_id=inspector.inspector_id,
                    inspector_name=inspector.name,
                    total_routes=len(routes),
                    active_routes=sum(1 for r in routes if r.is_active),
                    completed_routes=sum(1 for r in routes if r.status == RouteStatus.COMPLETED),
                    average_duration=sum(durations) / len(durations) if durations else 0.0,
                )
            )
        return sorted(stats, key=lambda s: s.inspector_name)


class InMemoryZoneRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def find_by_id(self, zone_id: str) -> Optional[Zone]:
        zone = self.store.zones.get(zone_id)
        return replace(zone, boundary=list(zone.boundary)) if zone else None

    def find_active(self) -> list[Zone]:
        return [replace(z, boundary=list(z.boundary)) for z in self.store.zones.values() if z.is_active]
