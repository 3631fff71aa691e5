"""Per-call workload accumulator for a batch of assignment decisions."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from ..workload.models import WorkloadMetrics


class WorkloadSnapshot:
    """Mutable copies of inspector metrics owned by a single batch call.

    Decisions recorded here are visible to later routes in the same batch.
    The snapshot is discarded when the call returns.
    """

    def __init__(self, metrics: Iterable[WorkloadMetrics]) -> None:
        self._metrics: dict[str, WorkloadMetrics] = {m.inspector_id: m.copy() for m in metrics}

    def __contains__(self, inspector_id: object) -> bool:
        return inspector_id in self._metrics

    def __iter__(self) -> Iterator[WorkloadMetrics]:
        return iter(self._metrics.values())

    def __len__(self) -> int:
        return len(self._metrics)

    def get(self, inspector_id: str) -> Optional[WorkloadMetrics]:
        return self._metrics.get(inspector_id)

    def record_assignment(self, inspector_id: str, count: int = 1) -> None:
        current = self._metrics.get(inspector_id)
        if current is None:
            return
        self._metrics[inspector_id] = current.with_routes(current.current_routes + count)

    def record_removal(self, inspector_id: str, count: int = 1) -> None:
        self.record_assignment(inspector_id, -count)

    def copy(self) -> "WorkloadSnapshot":
        return WorkloadSnapshot(self._metrics.values())
