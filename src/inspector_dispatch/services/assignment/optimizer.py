"""Second-pass optimisation over a baseline assignment.

Routes the baseline could not place are retried across zones, then the
configured strategy adjusts the batch, and the outcome can be validated
against fresh workload figures.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...config import settings
from ...errors import UnknownStrategyError
from ...models.domain import Inspector, Route, RouteStatus
from ...persistence.base import InspectorRepository, RouteRepository, ZoneRepository
from ...schemas.assignment import OptimizationOptions
from ..workload.calculator import WorkloadCalculator, average_utilization, utilization_std_dev
from . import scoring
from .algorithm import (
    AssignmentAlgorithm,
    BatchState,
    Clock,
    build_workload_distribution,
    claim_for_batch,
    route_minutes,
    utc_now,
)
from .models import (
    AssignmentConflict,
    AssignmentResult,
    AssignmentScore,
    AssignmentSummary,
    AssignmentValidationResult,
    ConflictType,
    OptimizationStrategy,
    ReassignmentSuggestion,
    RouteAssignment,
    Severity,
    ValidationMetrics,
)
from .rebalance import PlannedMove, batch_held_routes, collect_held_routes, plan_moves
from .snapshot import WorkloadSnapshot
from .zone_distance import FixedZoneDistance, ZoneDistanceEstimator

logger = logging.getLogger(__name__)


def resolve_strategy(name: str) -> OptimizationStrategy:
    try:
        return OptimizationStrategy(name)
    except ValueError as exc:
        raise UnknownStrategyError(name, tuple(s.value for s in OptimizationStrategy)) from exc


class AssignmentOptimizer:
    def __init__(
        self,
        inspectors: InspectorRepository,
        routes: RouteRepository,
        zones: Optional[ZoneRepository] = None,
        *,
        algorithm: Optional[AssignmentAlgorithm] = None,
        workload: Optional[WorkloadCalculator] = None,
        zone_distance: Optional[ZoneDistanceEstimator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.inspectors = inspectors
        self.routes = routes
        self.workload = workload or WorkloadCalculator(inspectors, routes, zones)
        self.clock = clock or utc_now
        self.algorithm = algorithm or AssignmentAlgorithm(
            inspectors, routes, zones, workload=self.workload, clock=self.clock
        )
        self.zone_distance = zone_distance or FixedZoneDistance()

    def optimized_assignment(
        self,
        route_ids: Iterable[str],
        options: Optional[OptimizationOptions] = None,
    ) -> AssignmentResult:
        options = options or OptimizationOptions.defaults()
        handler = self._strategy_handlers()[resolve_strategy(options.optimization_strategy)]

        baseline = self.algorithm.assign_routes(list(route_ids), options.baseline())
        assignments = list(baseline.assignments)
        unassigned = list(baseline.unassigned_routes)
        conflicts = list(baseline.conflicts)

        batch = BatchState(
            snapshot=WorkloadSnapshot(self.workload.calculate_all_inspector_workloads()),
            now=self.clock(),
        )
        if options.consider_availability:
            # Windows the baseline filled stay booked for the rescue.
            for assignment in assignments:
                batch.book(assignment.inspector_id, batch.minute_of(assignment.estimated_end_time))
        routes: Dict[str, Route] = {}
        for route_id in [a.route_id for a in assignments] + unassigned:
            route = self.routes.find_by_id(route_id)
            if route is not None:
                routes[route_id] = route

        if options.enable_cross_zone_optimization and unassigned:
            rescued, unassigned = self._rescue_cross_zone(unassigned, routes, batch, options)
            assignments.extend(rescued)

        assignments = handler(assignments, routes, batch.snapshot, options)
        still_unassigned = set(unassigned)
        conflicts = [c for c in conflicts if c.route_id in still_unassigned]

        result = AssignmentResult(
            assignments=assignments,
            unassigned_routes=unassigned,
            summary=AssignmentSummary(
                total_routes=len(assignments) + len(unassigned),
                assigned_routes=len(assignments),
                unassigned_routes=len(unassigned),
            ),
            conflicts=conflicts,
            workload_distribution=build_workload_distribution(assignments, routes, batch.snapshot),
        )
        logger.info(
            f"Optimized assignment ({options.optimization_strategy}): "
            f"{result.summary.assigned_routes}/{result.summary.total_routes} assigned"
        )
        return result

    def validate_assignment_result(self, result: AssignmentResult) -> AssignmentValidationResult:
        """Check a result against current workload; never changes stored state."""
        metrics = self.workload.calculate_all_inspector_workloads()

        conflicts: List[AssignmentConflict] = []
        for m in metrics:
            if m.utilization_percentage > settings.overload_threshold:
                conflicts.append(
                    AssignmentConflict(
                        conflict_type=ConflictType.CAPACITY_EXCEEDED,
                        route_id=None,
                        inspector_id=m.inspector_id,
                        description=(
                            f"Inspector {m.inspector_name} is over capacity "
                            f"({m.current_routes}/{m.max_daily_routes}, {m.utilization_percentage}%)"
                        ),
                        severity=Severity.HIGH,
                    )
                )

        variance = utilization_std_dev(metrics)
        suggestions: List[ReassignmentSuggestion] = []
        if variance > settings.utilization_variance_threshold:
            moves = plan_moves(WorkloadSnapshot(metrics), collect_held_routes(self.routes, metrics))
            suggestions = [self._suggestion(move) for move in moves]

        return AssignmentValidationResult(
            is_valid=not any(c.severity == Severity.HIGH for c in conflicts),
            conflicts=conflicts,
            suggestions=suggestions,
            metrics=ValidationMetrics(
                total_assignments=len(result.assignments),
                cross_zone_assignments=self._count_cross_zone(result.assignments),
                utilization_variance=variance,
                average_utilization=average_utilization(metrics),
            ),
        )

    def _strategy_handlers(self) -> Dict[OptimizationStrategy, Callable[..., List[RouteAssignment]]]:
        return {
            OptimizationStrategy.BALANCED: self._apply_balanced,
            OptimizationStrategy.ZONE_PRIORITY: self._apply_zone_priority,
            OptimizationStrategy.EFFICIENCY: self._apply_efficiency,
        }

    def _rescue_cross_zone(
        self,
        unassigned: Sequence[str],
        routes: Dict[str, Route],
        batch: BatchState,
        options: OptimizationOptions,
    ) -> Tuple[List[RouteAssignment], List[str]]:
        active = self.inspectors.find_active()
        rescued: List[RouteAssignment] = []
        remaining: List[str] = []
        for route_id in unassigned:
            route = routes.get(route_id)
            if route is None or route.status != RouteStatus.PENDING:
                continue
            if route.zone_id is None:
                remaining.append(route_id)
                continue

            scored = [pair for pair in (self._cross_zone_score(route, i, batch, options) for i in active) if pair is not None]
            eligible = [(score, start) for score, start in scored if not score.has_blocking_conflict]
            if not eligible:
                remaining.append(route_id)
                continue

            best, start_minute = max(eligible, key=lambda pair: pair[0].score)
            assignment = claim_for_batch(self.routes, route, best.inspector_id, start_minute, batch)
            if assignment is None:
                logger.warning(f"Route {route_id} was claimed elsewhere during cross-zone rescue")
                routes.pop(route_id, None)
                continue

            rescued.append(assignment)
            logger.debug(f"Cross-zone rescue: route {route_id} -> {best.inspector_id} ({best.distance_km:.1f} km)")
        return rescued, remaining

    def _cross_zone_score(
        self,
        route: Route,
        inspector: Inspector,
        batch: BatchState,
        options: OptimizationOptions,
    ) -> Optional[Tuple[AssignmentScore, Optional[int]]]:
        """Score one rescue candidate; the second item is its window start when availability applies."""
        metrics = batch.snapshot.get(inspector.inspector_id)
        if metrics is None:
            return None

        distance_km = self.zone_distance.estimate_km(route, inspector)
        score = AssignmentScore(
            inspector_id=inspector.inspector_id,
            route_id=route.route_id,
            score=scoring.cross_zone_score(route, metrics, distance_km, options.max_cross_zone_distance),
            zone_match=route.zone_id in inspector.preferred_zones,
            distance_km=distance_km,
        )
        if metrics.available_capacity <= 0 or metrics.utilization_percentage > options.max_utilization_threshold:
            score.conflicts.append(
                AssignmentConflict(
                    conflict_type=ConflictType.CAPACITY_EXCEEDED,
                    route_id=route.route_id,
                    inspector_id=inspector.inspector_id,
                    description=f"Inspector has no spare capacity ({metrics.current_routes}/{metrics.max_daily_routes})",
                    severity=Severity.HIGH,
                )
            )
        if options.max_cross_zone_distance > 0 and distance_km > options.max_cross_zone_distance:
            score.conflicts.append(
                AssignmentConflict(
                    conflict_type=ConflictType.DISTANCE_EXCEEDED,
                    route_id=route.route_id,
                    inspector_id=inspector.inspector_id,
                    description=f"{distance_km:.1f} km exceeds the {options.max_cross_zone_distance:.1f} km cross-zone limit",
                    severity=Severity.HIGH,
                )
            )
        start_minute: Optional[int] = None
        if options.consider_availability:
            start_minute = self.algorithm.availability.find_start_minute(
                inspector.inspector_id,
                batch.service_day,
                route_minutes(route),
                not_before=batch.not_before(inspector.inspector_id),
            )
        if options.consider_availability and start_minute is None:
            score.conflicts.append(
                AssignmentConflict(
                    conflict_type=ConflictType.AVAILABILITY_CONFLICT,
                    route_id=route.route_id,
                    inspector_id=inspector.inspector_id,
                    description="Inspector has no open window for this route today",
                    severity=Severity.HIGH,
                )
            )
        if not score.zone_match:
            score.conflicts.append(
                AssignmentConflict(
                    conflict_type=ConflictType.ZONE_MISMATCH,
                    route_id=route.route_id,
                    inspector_id=inspector.inspector_id,
                    description=f"Route zone {route.zone_id} is outside the inspector's preferred zones",
                    severity=Severity.LOW,
                )
            )
        return score, start_minute

    def _apply_balanced(
        self,
        assignments: List[RouteAssignment],
        routes: Dict[str, Route],
        snapshot: WorkloadSnapshot,
        options: OptimizationOptions,
    ) -> List[RouteAssignment]:
        if not options.enable_automatic_reassignment:
            return assignments

        def commit(move: PlannedMove) -> bool:
            return self.routes.reassign_route(move.route_id, move.from_inspector_id, move.to_inspector_id) is not None

        held = batch_held_routes(assignments, routes, snapshot)
        moves = plan_moves(snapshot, held, commit=commit)
        if moves:
            logger.info(f"Rebalanced {len(moves)} route(s) away from overloaded inspectors")
        moved_to = {move.route_id: move.to_inspector_id for move in moves}
        return [
            replace(a, inspector_id=moved_to[a.route_id]) if a.route_id in moved_to else a for a in assignments
        ]

    def _apply_zone_priority(
        self,
        assignments: List[RouteAssignment],
        routes: Dict[str, Route],
        snapshot: WorkloadSnapshot,
        options: OptimizationOptions,
    ) -> List[RouteAssignment]:
        return assignments

    def _apply_efficiency(
        self,
        assignments: List[RouteAssignment],
        routes: Dict[str, Route],
        snapshot: WorkloadSnapshot,
        options: OptimizationOptions,
    ) -> List[RouteAssignment]:
        """Pull cross-zone assignments back to a same-zone inspector that has room."""
        preferred: Dict[str, List[str]] = {}
        updated: List[RouteAssignment] = []
        for assignment in assignments:
            route = routes.get(assignment.route_id)
            if route is None or route.zone_id is None:
                updated.append(assignment)
                continue

            if route.zone_id not in preferred:
                preferred[route.zone_id] = [i.inspector_id for i in self.inspectors.find_by_preferred_zone(route.zone_id)]
            same_zone = preferred[route.zone_id]
            if assignment.inspector_id in same_zone:
                updated.append(assignment)
                continue

            targets = [
                m
                for m in (snapshot.get(inspector_id) for inspector_id in same_zone)
                if m is not None
                and m.available_capacity > 0
                and m.utilization_percentage <= options.max_utilization_threshold
            ]
            if not targets:
                updated.append(assignment)
                continue

            target = min(targets, key=lambda m: m.utilization_percentage)
            if self.routes.reassign_route(route.route_id, assignment.inspector_id, target.inspector_id) is None:
                logger.warning(f"Route {route.route_id} changed hands before it could return to zone {route.zone_id}")
                updated.append(assignment)
                continue

            snapshot.record_removal(assignment.inspector_id)
            snapshot.record_assignment(target.inspector_id)
            logger.debug(f"Route {route.route_id} moved back into zone {route.zone_id}: {target.inspector_id}")
            updated.append(replace(assignment, inspector_id=target.inspector_id))
        return updated

    @staticmethod
    def _suggestion(move: PlannedMove) -> ReassignmentSuggestion:
        return ReassignmentSuggestion(
            route_id=move.route_id,
            from_inspector_id=move.from_inspector_id,
            to_inspector_id=move.to_inspector_id,
            reason=(
                f"Balance workload: move from {move.from_utilization}% utilized inspector "
                f"to {move.to_utilization}% utilized inspector"
            ),
            priority=move.priority,
        )

    def _count_cross_zone(self, assignments: Sequence[RouteAssignment]) -> int:
        count = 0
        for assignment in assignments:
            route = self.routes.find_by_id(assignment.route_id)
            inspector = self.inspectors.find_by_id(assignment.inspector_id)
            if route and inspector and route.zone_id and route.zone_id not in inspector.preferred_zones:
                count += 1
        return count
