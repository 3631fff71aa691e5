"""Route point sequencing exports."""

from .planner import RoutePlanner
from .sequencer import RouteSequencer, calculate_optimization_stats

__all__ = ["RoutePlanner", "RouteSequencer", "calculate_optimization_stats"]
