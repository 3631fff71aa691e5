"""Open-path tour heuristics over a precomputed distance matrix.

Tours are lists of row indices into the matrix. None of these functions
touch coordinates or call out to a distance provider.
"""

from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

import numpy as np

# Reversals must gain at least this much to count, so float noise cannot loop forever.
IMPROVEMENT_EPSILON = 1e-9


def tour_length(matrix: np.ndarray, tour: Sequence[int]) -> float:
    if len(tour) < 2:
        return 0.0
    idx = np.asarray(tour, dtype=int)
    return float(matrix[idx[:-1], idx[1:]].sum())


def nearest_neighbor(matrix: np.ndarray, order: Sequence[int], *, start: int, end: Optional[int] = None) -> List[int]:
    """Greedy tour from ``start``; ``end`` (if any) is visited last. Ties go to the earlier point in ``order``."""
    tour = [start]
    unvisited = [i for i in order if i != start and i != end]
    current = start
    while unvisited:
        nearest = min(unvisited, key=lambda i: matrix[current, i])
        unvisited.remove(nearest)
        tour.append(nearest)
        current = nearest
    if end is not None and end != start:
        tour.append(end)
    return tour


def two_opt(
    matrix: np.ndarray,
    tour: Sequence[int],
    *,
    fix_end: bool = False,
    max_iterations: int = 1000,
) -> Tuple[List[int], int]:
    """Segment-reversal local search; the first point never moves.

    One iteration is one full sweep over all segment pairs. Stops after a
    sweep without improvement or after ``max_iterations`` sweeps.
    """
    route = list(tour)
    size = len(route)
    last = size - 2 if fix_end else size - 1
    iterations = 0
    improved = True
    while improved and iterations < max_iterations:
        improved = False
        iterations += 1
        for i in range(1, last):
            for j in range(i + 1, last + 1):
                a, b, c = route[i - 1], route[i], route[j]
                delta = matrix[a, c] - matrix[a, b]
                if j + 1 < size:
                    d = route[j + 1]
                    delta += matrix[b, d] - matrix[c, d]
                if delta < -IMPROVEMENT_EPSILON:
                    route[i : j + 1] = route[i : j + 1][::-1]
                    improved = True
    return route, iterations


def order_crossover(parent1: Sequence[int], parent2: Sequence[int], rng: random.Random) -> List[int]:
    size = len(parent1)
    lo, hi = sorted((rng.randrange(size), rng.randrange(size)))
    child: List[Optional[int]] = [None] * size
    child[lo : hi + 1] = parent1[lo : hi + 1]
    taken = set(parent1[lo : hi + 1])
    fill = (gene for gene in parent2 if gene not in taken)
    for position in range(size):
        if child[position] is None:
            child[position] = next(fill)
    return [gene for gene in child if gene is not None]


def swap_mutation(genes: List[int], rng: random.Random) -> None:
    if len(genes) < 2:
        return
    first, second = rng.sample(range(len(genes)), 2)
    genes[first], genes[second] = genes[second], genes[first]


def _tournament(population: Sequence[List[int]], fitness: Sequence[float], size: int, rng: random.Random) -> List[int]:
    best = rng.randrange(len(population))
    for _ in range(size - 1):
        challenger = rng.randrange(len(population))
        if fitness[challenger] > fitness[best]:
            best = challenger
    return population[best]


def genetic(
    matrix: np.ndarray,
    tour: Sequence[int],
    *,
    fix_start: bool = False,
    fix_end: bool = False,
    population_size: int = 50,
    generations: int = 100,
    mutation_rate: float = 0.1,
    elite_fraction: float = 0.2,
    tournament_size: int = 3,
    rng: Optional[random.Random] = None,
) -> Tuple[List[int], int]:
    """Evolve the free middle of ``tour``; pinned ends are never moved.

    The starting tour seeds the population, so the returned tour is never
    longer than it. Fitness is ``1 / (1 + distance)``.
    """
    rng = rng or random.Random()
    head = list(tour[:1]) if fix_start else []
    tail = list(tour[-1:]) if fix_end and len(tour) > len(head) else []
    middle = list(tour[len(head) : len(tour) - len(tail)])
    if len(middle) < 2:
        return list(tour), 0

    def distance(genes: Sequence[int]) -> float:
        return tour_length(matrix, head + list(genes) + tail)

    population = [list(middle)] + [rng.sample(middle, len(middle)) for _ in range(population_size - 1)]
    best = list(middle)
    best_distance = distance(best)
    elite_count = max(1, int(population_size * elite_fraction))

    for _ in range(generations):
        distances = [distance(genes) for genes in population]
        ranked = sorted(range(len(population)), key=distances.__getitem__)
        if distances[ranked[0]] < best_distance:
            best = list(population[ranked[0]])
            best_distance = distances[ranked[0]]

        fitness = [1.0 / (1.0 + d) for d in distances]
        offspring = [list(population[i]) for i in ranked[:elite_count]]
        while len(offspring) < population_size:
            mother = _tournament(population, fitness, tournament_size, rng)
            father = _tournament(population, fitness, tournament_size, rng)
            child = order_crossover(mother, father, rng)
            if rng.random() < mutation_rate:
                swap_mutation(child, rng)
            offspring.append(child)
        population = offspring

    for genes in population:
        candidate = distance(genes)
        if candidate < best_distance:
            best, best_distance = list(genes), candidate
    return head + best + tail, generations
