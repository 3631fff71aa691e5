"""Repository contracts consumed by the dispatch core.

Storage lives outside this package. Implementations must make ``claim_route``
and ``reassign_route`` atomic conditional updates so that two callers racing
over the same route cannot both win it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ..models.domain import AvailabilitySlot, Inspector, Route, RoutePoint, RouteStatus, Zone


@dataclass(slots=True)
class InspectorWithWorkload:
    inspector: Inspector
    current_workload: int


@dataclass(slots=True)
class ZoneRouteStats:
    zone_id: str
    zone_name: str
    total_routes: int
    pending_routes: int
    assigned_routes: int
    completed_routes: int


@dataclass(slots=True)
class InspectorRouteStats:
    inspector_id: str
    inspector_name: str
    total_routes: int
    active_routes: int
    completed_routes: int
    average_duration: float


class InspectorRepository(Protocol):
    def find_by_id(self, inspector_id: str) -> Optional[Inspector]: ...

    def find_by_identification(self, identification: str) -> Optional[Inspector]: ...

    def find_active(self) -> list[Inspector]: ...

    def find_by_preferred_zone(self, zone_id: str) -> list[Inspector]: ...

    def find_with_workload(self) -> list[InspectorWithWorkload]: ...

    def get_availability(self, inspector_id: str, day_of_week: Optional[int] = None) -> list[AvailabilitySlot]: ...

    def set_availability(self, inspector_id: str, slots: Sequence[AvailabilitySlot]) -> None: ...

    def get_current_workload(self, inspector_id: str) -> int: ...


class RouteRepository(Protocol):
    def find_by_id(self, route_id: str) -> Optional[Route]: ...

    def find_by_status(self, status: RouteStatus) -> list[Route]: ...

    def find_by_zone(self, zone_id: str) -> list[Route]: ...

    def find_by_inspector(self, inspector_id: str) -> list[Route]: ...

    def create(self, route: Route) -> Route: ...

    def update(self, route_id: str, **changes: object) -> Optional[Route]: ...

    def claim_route(self, route_id: str, inspector_id: str) -> Optional[Route]:
        """Assign a pending route; return None when it is no longer pending."""
        ...

    def reassign_route(self, route_id: str, from_inspector_id: str, to_inspector_id: str) -> Optional[Route]:
        """Move an active route; return None when ``from_inspector_id`` no longer holds it."""
        ...

    def unassign_from_inspector(self, route_id: str) -> Optional[Route]: ...

    def get_points(self, route_id: str) -> list[RoutePoint]: ...

    def replace_points(self, route_id: str, points: Sequence[RoutePoint]) -> list[RoutePoint]: ...

    def get_stats_by_zone(self) -> list[ZoneRouteStats]: ...

    def get_stats_by_inspector(self) -> list[InspectorRouteStats]: ...


class ZoneRepository(Protocol):
    def find_by_id(self, zone_id: str) -> Optional[Zone]: ...

    def find_active(self) -> list[Zone]: ...
