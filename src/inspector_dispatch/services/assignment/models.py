"""Assignment domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ...models.domain import Priority


class ConflictType(str, Enum):
    CAPACITY_EXCEEDED = "capacity_exceeded"
    ZONE_MISMATCH = "zone_mismatch"
    AVAILABILITY_CONFLICT = "availability_conflict"
    DISTANCE_EXCEEDED = "distance_exceeded"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OptimizationStrategy(str, Enum):
    BALANCED = "balanced"
    ZONE_PRIORITY = "zone_priority"
    EFFICIENCY = "efficiency"


@dataclass(slots=True)
class RouteAssignment:
    route_id: str
    inspector_id: str
    assigned_at: datetime
    estimated_start_time: datetime
    estimated_end_time: datetime


@dataclass(slots=True)
class AssignmentConflict:
    conflict_type: ConflictType
    route_id: Optional[str]
    description: str
    severity: Severity
    inspector_id: Optional[str] = None


@dataclass(slots=True)
class AssignmentSummary:
    total_routes: int
    assigned_routes: int
    unassigned_routes: int


@dataclass(slots=True)
class ZoneWorkload:
    """Routes given to one inspector in one zone by a single batch."""

    inspector_id: str
    zone_id: Optional[str]
    assigned_routes: int
    total_estimated_minutes: int
    utilization_percentage: int


@dataclass(slots=True)
class AssignmentResult:
    assignments: List[RouteAssignment]
    unassigned_routes: List[str]
    summary: AssignmentSummary
    conflicts: List[AssignmentConflict] = field(default_factory=list)
    workload_distribution: List[ZoneWorkload] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "AssignmentResult":
        return cls(assignments=[], unassigned_routes=[], summary=AssignmentSummary(0, 0, 0))


@dataclass(slots=True)
class AssignmentScore:
    inspector_id: str
    route_id: str
    score: float
    zone_match: bool
    distance_km: float
    conflicts: List[AssignmentConflict] = field(default_factory=list)

    @property
    def has_blocking_conflict(self) -> bool:
        return any(c.severity == Severity.HIGH for c in self.conflicts)


@dataclass(slots=True)
class ReassignmentSuggestion:
    route_id: str
    from_inspector_id: str
    to_inspector_id: str
    reason: str
    priority: Priority


@dataclass(slots=True)
class ValidationMetrics:
    total_assignments: int
    cross_zone_assignments: int
    utilization_variance: float
    average_utilization: float


@dataclass(slots=True)
class AssignmentValidationResult:
    is_valid: bool
    conflicts: List[AssignmentConflict]
    suggestions: List[ReassignmentSuggestion]
    metrics: ValidationMetrics


@dataclass(slots=True)
class AssignmentRecommendations:
    overloaded_inspectors: List[str]
    underutilized_inspectors: List[str]
    suggested_reassignments: List[ReassignmentSuggestion] = field(default_factory=list)
