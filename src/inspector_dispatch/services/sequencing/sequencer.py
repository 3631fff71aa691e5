"""Stop ordering for a single route."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np

from ...config import settings
from ...errors import UnknownAlgorithmError
from ...models.domain import Coordinate
from ...schemas.sequencing import SequencerOptions
from ..geospatial import DistanceProvider, HaversineDistance
from . import heuristics
from .models import OptimizationResult, OptimizationStats, RouteStops, SequencingAlgorithm

logger = logging.getLogger(__name__)

DEFAULT_BENCHMARK_ALGORITHMS = (
    SequencingAlgorithm.NEAREST_NEIGHBOR.value,
    SequencingAlgorithm.TWO_OPT.value,
    SequencingAlgorithm.GENETIC.value,
)


def resolve_algorithm(name: str) -> SequencingAlgorithm:
    try:
        return SequencingAlgorithm(name)
    except ValueError as exc:
        raise UnknownAlgorithmError(name, tuple(a.value for a in SequencingAlgorithm)) from exc


def _improvement(original: float, optimized: float) -> float:
    if original <= 0:
        return 0.0
    return (original - optimized) / original * 100.0


class _Plan:
    """Points, input-order tour and pinned ends for one optimisation call."""

    def __init__(self, coordinates: Sequence[Coordinate], options: SequencerOptions) -> None:
        self.points: List[Coordinate] = list(coordinates)
        self.baseline: List[int] = list(range(len(self.points)))
        self.start: Optional[int] = None
        self.end: Optional[int] = None

        if options.start_point is not None:
            self.start = self._anchor(options.start_point, front=True)
        if options.end_point is not None:
            self.end = self._anchor(options.end_point, front=False)
        if options.preserve_start_end:
            if self.start is None:
                self.start = self.baseline[0]
            if self.end is None:
                self.end = self.baseline[-1]

        initial = [i for i in self.baseline if i != self.start and i != self.end]
        if self.start is not None:
            initial.insert(0, self.start)
        if self.end is not None and self.end != self.start:
            initial.append(self.end)
        self.initial = initial

    def _anchor(self, coordinate: Coordinate, *, front: bool) -> int:
        for index, point in enumerate(self.points):
            if point.coordinate_id == coordinate.coordinate_id:
                return index
        # Anchors outside the stop list become extra fixed stops at that end.
        self.points.append(coordinate)
        index = len(self.points) - 1
        if front:
            self.baseline.insert(0, index)
        else:
            self.baseline.append(index)
        return index

    @property
    def baseline_feasible(self) -> bool:
        return self.initial == self.baseline


class RouteSequencer:
    def __init__(self, distance: Optional[DistanceProvider] = None) -> None:
        self.distance = distance or HaversineDistance()

    def optimize_route(
        self,
        coordinates: Sequence[Coordinate],
        options: Optional[SequencerOptions] = None,
    ) -> OptimizationResult:
        """Reorder ``coordinates`` to shorten the open path through them.

        Inputs of two points or fewer come back unchanged. Distances are in meters.
        """
        options = options or SequencerOptions(algorithm=SequencingAlgorithm.NEAREST_NEIGHBOR.value)
        algorithm = resolve_algorithm(options.algorithm)
        started = time.perf_counter()

        if len(coordinates) <= 2:
            distance = self.distance.distance_meters(coordinates[0], coordinates[1]) if len(coordinates) == 2 else 0.0
            return OptimizationResult(
                optimized_coordinates=list(coordinates),
                original_distance=distance,
                optimized_distance=distance,
                improvement_percentage=0.0,
                algorithm=algorithm.value,
                iterations=0,
                execution_time_ms=(time.perf_counter() - started) * 1000,
            )

        plan = _Plan(coordinates, options)
        matrix = self.distance.matrix(plan.points)
        original_distance = heuristics.tour_length(matrix, plan.baseline)

        if algorithm is SequencingAlgorithm.NEAREST_NEIGHBOR:
            tour = self._nearest_neighbor(matrix, plan)
            iterations = 1
        elif algorithm is SequencingAlgorithm.TWO_OPT:
            tour, iterations = heuristics.two_opt(
                matrix,
                plan.initial,
                fix_end=plan.end is not None,
                max_iterations=options.max_iterations or settings.two_opt_max_iterations,
            )
        else:
            tour, iterations = heuristics.genetic(
                matrix,
                plan.initial,
                fix_start=plan.start is not None,
                fix_end=plan.end is not None,
                population_size=options.population_size or settings.genetic_population_size,
                generations=options.max_iterations or settings.genetic_generations,
                mutation_rate=(
                    options.mutation_rate if options.mutation_rate is not None else settings.genetic_mutation_rate
                ),
                elite_fraction=settings.genetic_elite_fraction,
                tournament_size=settings.genetic_tournament_size,
                rng=random.Random(options.seed),
            )

        optimized_distance = heuristics.tour_length(matrix, tour)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            f"{algorithm.value}: {len(plan.points)} stops, {original_distance:.0f} m -> {optimized_distance:.0f} m "
            f"in {iterations} iteration(s), {elapsed_ms:.1f} ms"
        )
        return OptimizationResult(
            optimized_coordinates=[plan.points[i] for i in tour],
            original_distance=original_distance,
            optimized_distance=optimized_distance,
            improvement_percentage=_improvement(original_distance, optimized_distance),
            algorithm=algorithm.value,
            iterations=iterations,
            execution_time_ms=elapsed_ms,
        )

    @staticmethod
    def _nearest_neighbor(matrix: np.ndarray, plan: _Plan) -> List[int]:
        start = plan.start if plan.start is not None else plan.baseline[0]
        tour = heuristics.nearest_neighbor(matrix, plan.baseline, start=start, end=plan.end)
        # Greedy choices can lose to the given order; keep that order when it is allowed.
        if plan.baseline_feasible and heuristics.tour_length(matrix, tour) > heuristics.tour_length(matrix, plan.baseline):
            return list(plan.baseline)
        return tour

    def optimize_multi_zone_routes(
        self,
        routes: Sequence[RouteStops],
        options: Optional[SequencerOptions] = None,
    ) -> List[OptimizationResult]:
        """Optimise each route independently; results keep input order and carry the route's zone."""
        return [replace(self.optimize_route(route.coordinates, options), zone_id=route.zone_id) for route in routes]

    def benchmark_algorithms(
        self,
        coordinates: Sequence[Coordinate],
        algorithms: Optional[Sequence[str]] = None,
    ) -> List[OptimizationResult]:
        names = list(algorithms) if algorithms is not None else list(DEFAULT_BENCHMARK_ALGORITHMS)
        resolved = [resolve_algorithm(name) for name in names]

        results: List[OptimizationResult] = []
        for algorithm in resolved:
            if algorithm is SequencingAlgorithm.GENETIC:
                options = SequencerOptions(
                    algorithm=algorithm.value,
                    max_iterations=settings.benchmark_genetic_generations,
                    population_size=settings.benchmark_genetic_population_size,
                )
            elif algorithm is SequencingAlgorithm.TWO_OPT:
                options = SequencerOptions(algorithm=algorithm.value, max_iterations=settings.benchmark_two_opt_max_iterations)
            else:
                options = SequencerOptions(algorithm=algorithm.value)
            results.append(self.optimize_route(coordinates, options))
        return results


def calculate_optimization_stats(results: Sequence[OptimizationResult]) -> OptimizationStats:
    if not results:
        return OptimizationStats(
            average_improvement=0.0,
            best_improvement=0.0,
            worst_improvement=0.0,
            average_execution_time_ms=0.0,
            total_distance_saved=0.0,
        )

    improvements = np.array([r.improvement_percentage for r in results], dtype=float)
    timings = np.array([r.execution_time_ms for r in results], dtype=float)
    return OptimizationStats(
        average_improvement=float(improvements.mean()),
        best_improvement=float(improvements.max()),
        worst_improvement=float(improvements.min()),
        average_execution_time_ms=float(timings.mean()),
        total_distance_saved=float(sum(r.original_distance - r.optimized_distance for r in results)),
    )
