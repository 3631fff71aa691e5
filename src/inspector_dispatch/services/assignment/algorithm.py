"""Baseline route-to-inspector assignment."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...config import settings
from ...models.domain import Inspector, Route, RouteStatus
from ...persistence.base import InspectorRepository, RouteRepository, ZoneRepository
from ...schemas.assignment import AssignmentOptions
from ..availability.manager import AvailabilityManager, day_of_week
from ..workload.calculator import WorkloadCalculator
from . import scoring
from .models import (
    AssignmentConflict,
    AssignmentRecommendations,
    AssignmentResult,
    AssignmentSummary,
    ConflictType,
    ReassignmentSuggestion,
    RouteAssignment,
    Severity,
    ZoneWorkload,
)
from .rebalance import collect_held_routes, plan_moves
from .snapshot import WorkloadSnapshot

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def route_minutes(route: Route) -> int:
    return route.estimated_duration or settings.default_route_duration_minutes


@dataclass(slots=True)
class BatchState:
    """Everything one ``assign_routes`` call accumulates while it walks its routes."""

    snapshot: WorkloadSnapshot
    now: datetime
    booked_until: Dict[str, int] = field(default_factory=dict)

    @property
    def service_day(self) -> int:
        return day_of_week(self.now.date())

    def _midnight(self) -> datetime:
        return datetime.combine(self.now.date(), time(0), tzinfo=self.now.tzinfo)

    def at_minute(self, minute: int) -> datetime:
        return self._midnight() + timedelta(minutes=minute)

    def minute_of(self, moment: datetime) -> int:
        return int((moment - self._midnight()).total_seconds() // 60)

    def book(self, inspector_id: str, until_minute: int) -> None:
        self.booked_until[inspector_id] = max(self.booked_until.get(inspector_id, 0), until_minute)

    def not_before(self, inspector_id: str) -> int:
        return self.booked_until.get(inspector_id, 0)


@dataclass(slots=True)
class Candidate:
    inspector: Inspector
    score: float
    start_minute: Optional[int] = None


def claim_for_batch(
    routes: RouteRepository,
    route: Route,
    inspector_id: str,
    start_minute: Optional[int],
    batch: BatchState,
) -> Optional[RouteAssignment]:
    """Claim ``route`` for the inspector and record it in the batch; None if the claim lost.

    A ``start_minute`` books the inspector's window up to the route's end;
    without one the route starts at ``batch.now``.
    """
    if routes.claim_route(route.route_id, inspector_id) is None:
        return None

    duration = route_minutes(route)
    if start_minute is not None:
        start = batch.at_minute(start_minute)
        batch.book(inspector_id, start_minute + duration)
    else:
        start = batch.now
    batch.snapshot.record_assignment(inspector_id)
    return RouteAssignment(
        route_id=route.route_id,
        inspector_id=inspector_id,
        assigned_at=batch.now,
        estimated_start_time=start,
        estimated_end_time=start + timedelta(minutes=duration),
    )


def build_workload_distribution(
    assignments: Sequence[RouteAssignment],
    routes: Dict[str, Route],
    snapshot: WorkloadSnapshot,
) -> List[ZoneWorkload]:
    """Group a batch's assignments per inspector and zone."""
    grouped: "OrderedDict[Tuple[str, Optional[str]], List[Route]]" = OrderedDict()
    for assignment in assignments:
        route = routes.get(assignment.route_id)
        if route is None:
            continue
        grouped.setdefault((assignment.inspector_id, route.zone_id), []).append(route)

    distribution: List[ZoneWorkload] = []
    for (inspector_id, zone_id), zone_routes in grouped.items():
        metrics = snapshot.get(inspector_id)
        distribution.append(
            ZoneWorkload(
                inspector_id=inspector_id,
                zone_id=zone_id,
                assigned_routes=len(zone_routes),
                total_estimated_minutes=sum(route_minutes(r) for r in zone_routes),
                utilization_percentage=metrics.utilization_percentage if metrics else 0,
            )
        )
    return distribution


class AssignmentAlgorithm:
    def __init__(
        self,
        inspectors: InspectorRepository,
        routes: RouteRepository,
        zones: Optional[ZoneRepository] = None,
        *,
        workload: Optional[WorkloadCalculator] = None,
        availability: Optional[AvailabilityManager] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.inspectors = inspectors
        self.routes = routes
        self.workload = workload or WorkloadCalculator(inspectors, routes, zones)
        self.availability = availability or AvailabilityManager(inspectors)
        self.clock = clock or utc_now

    def assign_routes(self, route_ids: Iterable[str], options: Optional[AssignmentOptions] = None) -> AssignmentResult:
        """Assign pending routes in the order given.

        Unknown or non-pending ids are skipped without error and do not count
        towards the summary totals.
        """
        options = options or AssignmentOptions.defaults()
        pending = self._load_pending(route_ids)
        if not pending:
            return AssignmentResult.empty()

        batch = BatchState(
            snapshot=WorkloadSnapshot(self.workload.calculate_all_inspector_workloads()),
            now=self.clock(),
        )
        active = self.inspectors.find_active()

        assignments: List[RouteAssignment] = []
        unassigned: List[str] = []
        conflicts: List[AssignmentConflict] = []
        dropped = 0
        for route in pending:
            candidates, route_conflicts = self._candidates(route, active, batch, options)
            if not candidates:
                logger.debug(f"Route {route.route_id}: no eligible inspector")
                unassigned.append(route.route_id)
                conflicts.extend(route_conflicts)
                continue

            # max() keeps the first of equal scores, i.e. active-inspector order
            best = max(candidates, key=lambda c: c.score)
            assignment = self._commit(route, best, batch)
            if assignment is None:
                dropped += 1
                continue
            logger.debug(f"Route {route.route_id} -> inspector {best.inspector.inspector_id} (score {best.score:.1f})")
            assignments.append(assignment)

        by_id = {route.route_id: route for route in pending}
        result = AssignmentResult(
            assignments=assignments,
            unassigned_routes=unassigned,
            summary=AssignmentSummary(
                total_routes=len(assignments) + len(unassigned),
                assigned_routes=len(assignments),
                unassigned_routes=len(unassigned),
            ),
            conflicts=conflicts,
            workload_distribution=build_workload_distribution(assignments, by_id, batch.snapshot),
        )
        logger.info(
            f"Assigned {len(assignments)}/{result.summary.total_routes} routes "
            f"({len(unassigned)} unassigned, {dropped} no longer pending)"
        )
        return result

    def assign_all_pending_routes(self, options: Optional[AssignmentOptions] = None) -> AssignmentResult:
        pending = self.routes.find_by_status(RouteStatus.PENDING)
        return self.assign_routes([route.route_id for route in pending], options)

    def reassign_inspector_routes(self, inspector_id: str, options: Optional[AssignmentOptions] = None) -> AssignmentResult:
        """Return the inspector's active routes to pending and assign exactly those again."""
        released: List[str] = []
        for route in self.routes.find_by_inspector(inspector_id):
            if not route.is_active:
                continue
            if self.routes.unassign_from_inspector(route.route_id) is not None:
                released.append(route.route_id)
        logger.info(f"Released {len(released)} route(s) from inspector {inspector_id}")
        return self.assign_routes(released, options)

    def get_assignment_recommendations(self) -> AssignmentRecommendations:
        metrics = self.workload.calculate_all_inspector_workloads()
        overloaded = [m for m in metrics if m.utilization_percentage > settings.overload_threshold]
        underutilized = [
            m
            for m in metrics
            if m.utilization_percentage < settings.recommendation_underutilized_threshold and m.available_capacity > 0
        ]

        moves = plan_moves(
            WorkloadSnapshot(metrics),
            collect_held_routes(self.routes, overloaded),
            target_threshold=settings.recommendation_underutilized_threshold,
        )
        return AssignmentRecommendations(
            overloaded_inspectors=[m.inspector_id for m in overloaded],
            underutilized_inspectors=[m.inspector_id for m in underutilized],
            suggested_reassignments=[
                ReassignmentSuggestion(
                    route_id=move.route_id,
                    from_inspector_id=move.from_inspector_id,
                    to_inspector_id=move.to_inspector_id,
                    reason=f"Inspector {move.from_inspector_id} is at {move.from_utilization}% utilization",
                    priority=move.priority,
                )
                for move in moves
            ],
        )

    def _load_pending(self, route_ids: Iterable[str]) -> List[Route]:
        seen: set[str] = set()
        pending: List[Route] = []
        for route_id in route_ids:
            if route_id in seen:
                continue
            seen.add(route_id)
            route = self.routes.find_by_id(route_id)
            if route is None or route.status != RouteStatus.PENDING:
                logger.debug(f"Skipping route {route_id}: missing or not pending")
                continue
            pending.append(route)
        return pending

    def _candidates(
        self,
        route: Route,
        active: Sequence[Inspector],
        batch: BatchState,
        options: AssignmentOptions,
    ) -> Tuple[List[Candidate], List[AssignmentConflict]]:
        if options.prioritize_zone_preference and route.zone_id:
            same_zone = [i for i in active if route.zone_id in i.preferred_zones]
            if same_zone:
                candidates, conflicts = self._score_pool(route, same_zone, batch, options)
                if candidates:
                    return candidates, []
            else:
                conflicts = [
                    AssignmentConflict(
                        conflict_type=ConflictType.ZONE_MISMATCH,
                        route_id=route.route_id,
                        description=f"No active inspector prefers zone {route.zone_id}",
                        severity=Severity.HIGH,
                    )
                ]
            if not options.allow_cross_zone_assignment:
                return [], conflicts
        return self._score_pool(route, active, batch, options)

    def _score_pool(
        self,
        route: Route,
        pool: Sequence[Inspector],
        batch: BatchState,
        options: AssignmentOptions,
    ) -> Tuple[List[Candidate], List[AssignmentConflict]]:
        candidates: List[Candidate] = []
        blocked_by_capacity = 0
        blocked_by_availability = 0
        for inspector in pool:
            metrics = batch.snapshot.get(inspector.inspector_id)
            if metrics is None:
                continue
            if metrics.utilization_percentage > options.max_utilization_threshold or metrics.available_capacity <= 0:
                blocked_by_capacity += 1
                continue

            start_minute: Optional[int] = None
            is_available: Optional[bool] = None
            if options.consider_availability:
                start_minute = self.availability.find_start_minute(
                    inspector.inspector_id,
                    batch.service_day,
                    route_minutes(route),
                    not_before=batch.not_before(inspector.inspector_id),
                )
                is_available = start_minute is not None
            available_points = scoring.availability_score(is_available)
            if available_points is None:
                blocked_by_availability += 1
                continue

            score = (
                scoring.zone_match_score(route, inspector, options.prioritize_zone_preference)
                + scoring.workload_balance_score(metrics, options.balance_workload)
                + available_points
                + scoring.priority_score(route)
            )
            candidates.append(Candidate(inspector=inspector, score=score, start_minute=start_minute))

        conflicts: List[AssignmentConflict] = []
        if not candidates and pool:
            if blocked_by_availability and not blocked_by_capacity:
                conflicts.append(
                    AssignmentConflict(
                        conflict_type=ConflictType.AVAILABILITY_CONFLICT,
                        route_id=route.route_id,
                        description="No candidate inspector has an open window for this route today",
                        severity=Severity.HIGH,
                    )
                )
            else:
                conflicts.append(
                    AssignmentConflict(
                        conflict_type=ConflictType.CAPACITY_EXCEEDED,
                        route_id=route.route_id,
                        description="No available inspectors found",
                        severity=Severity.HIGH,
                    )
                )
        elif not pool:
            conflicts.append(
                AssignmentConflict(
                    conflict_type=ConflictType.CAPACITY_EXCEEDED,
                    route_id=route.route_id,
                    description="No active inspectors",
                    severity=Severity.HIGH,
                )
            )
        return candidates, conflicts

    def _commit(self, route: Route, candidate: Candidate, batch: BatchState) -> Optional[RouteAssignment]:
        inspector_id = candidate.inspector.inspector_id
        assignment = claim_for_batch(self.routes, route, inspector_id, candidate.start_minute, batch)
        if assignment is None:
            logger.warning(f"Route {route.route_id} was claimed elsewhere before inspector {inspector_id} got it")
        return assignment
