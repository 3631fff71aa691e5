"""Assignment engine exports."""

from .algorithm import AssignmentAlgorithm
from .optimizer import AssignmentOptimizer
from .zone_distance import CentroidZoneDistance, FixedZoneDistance

__all__ = [
    "AssignmentAlgorithm",
    "AssignmentOptimizer",
    "CentroidZoneDistance",
    "FixedZoneDistance",
]
