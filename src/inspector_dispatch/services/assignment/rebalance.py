"""Planning moves from overloaded inspectors to underutilized ones."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import Priority, Route, RouteStatus
from ...persistence.base import RouteRepository
from ..workload.models import WorkloadMetrics
from .models import RouteAssignment
from .snapshot import WorkloadSnapshot


@dataclass(slots=True)
class MovableRoute:
    route_id: str
    priority: Priority


@dataclass(slots=True)
class PlannedMove:
    route_id: str
    from_inspector_id: str
    to_inspector_id: str
    priority: Priority
    from_utilization: int
    to_utilization: int


def collect_held_routes(
    routes: RouteRepository,
    metrics: Iterable[WorkloadMetrics],
    overload_threshold: Optional[float] = None,
) -> Dict[str, List[MovableRoute]]:
    """Assigned, not yet started routes of every overloaded inspector, keyed by inspector id."""
    overload = settings.overload_threshold if overload_threshold is None else overload_threshold
    return {
        m.inspector_id: [
            MovableRoute(route.route_id, route.priority)
            for route in routes.find_by_inspector(m.inspector_id)
            if route.status == RouteStatus.ASSIGNED
        ]
        for m in metrics
        if m.utilization_percentage > overload
    }


def batch_held_routes(
    assignments: Iterable[RouteAssignment],
    routes: Mapping[str, Route],
    metrics: Iterable[WorkloadMetrics],
    overload_threshold: Optional[float] = None,
) -> Dict[str, List[MovableRoute]]:
    """Routes this batch gave to each overloaded inspector, keyed by inspector id."""
    overload = settings.overload_threshold if overload_threshold is None else overload_threshold
    overloaded = {m.inspector_id for m in metrics if m.utilization_percentage > overload}
    held: Dict[str, List[MovableRoute]] = {}
    for assignment in assignments:
        route = routes.get(assignment.route_id)
        if route is None or assignment.inspector_id not in overloaded:
            continue
        held.setdefault(assignment.inspector_id, []).append(MovableRoute(route.route_id, route.priority))
    return held


def _pick_target(snapshot: WorkloadSnapshot, exclude: str, target_threshold: float) -> Optional[WorkloadMetrics]:
    targets = [
        m
        for m in snapshot
        if m.inspector_id != exclude and m.utilization_percentage < target_threshold and m.available_capacity > 0
    ]
    if not targets:
        return None
    # min() keeps the first of equal keys, so ties fall back to snapshot order
    return min(targets, key=lambda m: (m.utilization_percentage, -m.available_capacity))


def plan_moves(
    snapshot: WorkloadSnapshot,
    held_routes: Dict[str, Sequence[MovableRoute]],
    *,
    commit: Optional[Callable[[PlannedMove], bool]] = None,
    overload_threshold: Optional[float] = None,
    target_threshold: Optional[float] = None,
) -> List[PlannedMove]:
    """Shed low-priority routes from overloaded inspectors until each is back under the threshold.

    ``held_routes`` maps inspector id to the routes that may be moved away from
    it. Targets are re-evaluated after every move. When ``commit`` returns
    False the route stays put and the next candidate is tried. The snapshot is
    updated for every accepted move.
    """
    overload = settings.overload_threshold if overload_threshold is None else overload_threshold
    target_limit = settings.rebalance_underutilized_threshold if target_threshold is None else target_threshold

    moves: List[PlannedMove] = []
    sources = [m.inspector_id for m in snapshot if m.utilization_percentage > overload]
    for source_id in sources:
        # sorted() is stable, so equal priorities keep their held order
        candidates = sorted(held_routes.get(source_id, ()), key=lambda r: r.priority.rank)
        for route in candidates:
            source = snapshot.get(source_id)
            if source is None or source.utilization_percentage <= overload:
                break
            target = _pick_target(snapshot, source_id, target_limit)
            if target is None:
                break

            move = PlannedMove(
                route_id=route.route_id,
                from_inspector_id=source_id,
                to_inspector_id=target.inspector_id,
                priority=route.priority,
                from_utilization=source.utilization_percentage,
                to_utilization=target.utilization_percentage,
            )
            if commit is not None and not commit(move):
                continue
            snapshot.record_removal(source_id)
            snapshot.record_assignment(target.inspector_id)
            moves.append(move)
    return moves
