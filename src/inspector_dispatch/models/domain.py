"""Domain models for zones, inspectors, coordinates and routes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ZoneCategory(str, Enum):
    METROPOLITAN = "metropolitan"
    RURAL = "rural"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Ordering key: low < medium < high."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3}


class RouteStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_ROUTE_STATUSES = frozenset({RouteStatus.ASSIGNED, RouteStatus.IN_PROGRESS})


@dataclass(slots=True)
class Zone:
    """Polygonal region used for inspector preference and routing boundaries."""

    zone_id: str
    name: str
    category: ZoneCategory
    boundary: list[tuple[float, float]]
    is_active: bool = True


@dataclass(slots=True)
class Inspector:
    """Field inspector with zone preferences and a daily route capacity."""

    inspector_id: str
    name: str
    max_daily_routes: int
    preferred_zones: list[str] = field(default_factory=list)
    identification: Optional[str] = None
    is_active: bool = True


@dataclass(slots=True)
class AvailabilitySlot:
    day_of_week: int  # 0 = Sunday
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Immutable geographic point."""

    coordinate_id: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    zone_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(slots=True)
class Route:
    """Inspection route; its points are owned by the route repository."""

    route_id: str
    name: str
    priority: Priority = Priority.MEDIUM
    estimated_duration: Optional[int] = None  # minutes
    zone_id: Optional[str] = None
    status: RouteStatus = RouteStatus.PENDING
    assigned_inspector_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ROUTE_STATUSES


@dataclass(slots=True)
class RoutePoint:
    point_id: str
    route_id: str
    coordinate: Coordinate
    sequence: int
    estimated_time: Optional[int] = None  # minutes at the stop
