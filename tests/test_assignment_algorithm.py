from datetime import datetime, timedelta, timezone

from inspector_dispatch.models.domain import AvailabilitySlot, Inspector, Priority, Route, RouteStatus
from inspector_dispatch.persistence.memory import InMemoryRouteRepository, InMemoryStore
from inspector_dispatch.schemas.assignment import AssignmentOptions
from inspector_dispatch.services.assignment.algorithm import AssignmentAlgorithm
from inspector_dispatch.services.assignment.models import ConflictType

# A Monday (day_of_week 1).
NOW = datetime(2026, 10, 19, 7, 0, tzinfo=timezone.utc)


def _inspector(iid: str, cap: int = 5, zones: tuple[str, ...] = ()) -> Inspector:
    return Inspector(inspector_id=iid, name=f"Inspector {iid}", max_daily_routes=cap, preferred_zones=list(zones))


def _route(
    rid: str,
    zone: str | None = None,
    priority: Priority = Priority.MEDIUM,
    inspector: str | None = None,
    duration: int | None = None,
    status: RouteStatus | None = None,
) -> Route:
    return Route(
        route_id=rid,
        name=f"Route {rid}",
        priority=priority,
        estimated_duration=duration,
        zone_id=zone,
        status=status or (RouteStatus.ASSIGNED if inspector else RouteStatus.PENDING),
        assigned_inspector_id=inspector,
    )


def _options(**overrides) -> AssignmentOptions:
    values = dict(
        prioritize_zone_preference=True,
        max_utilization_threshold=100,
        allow_cross_zone_assignment=False,
        balance_workload=True,
        consider_availability=False,
    )
    values.update(overrides)
    return AssignmentOptions(**values)


def _engine(store: InMemoryStore, routes=None) -> AssignmentAlgorithm:
    return AssignmentAlgorithm(
        store.inspector_repository,
        routes or store.route_repository,
        store.zone_repository,
        clock=lambda: NOW,
    )


def _pairs(result) -> dict[str, str]:
    return {a.route_id: a.inspector_id for a in result.assignments}


def test_routes_go_to_inspectors_preferring_their_zone():
    store = InMemoryStore(
        inspectors=[_inspector("I1", cap=5, zones=("zone-1",)), _inspector("I2", cap=4, zones=("zone-2",))],
        routes=[_route("R1", zone="zone-1", priority=Priority.HIGH), _route("R2", zone="zone-2")],
    )

    result = _engine(store).assign_routes(["R1", "R2"], _options())

    assert _pairs(result) == {"R1": "I1", "R2": "I2"}
    assert result.unassigned_routes == []
    assert store.route_repository.find_by_id("R1").assigned_inspector_id == "I1"
    assert store.route_repository.find_by_id("R2").status == RouteStatus.ASSIGNED
    distribution = {(w.inspector_id, w.zone_id): w for w in result.workload_distribution}
    assert distribution[("I1", "zone-1")].utilization_percentage == 20
    assert distribution[("I2", "zone-2")].total_estimated_minutes == 60


def test_route_without_zone_inspector_stays_unassigned_when_cross_zone_disabled():
    store = InMemoryStore(inspectors=[_inspector("I1", zones=("zone-1",))], routes=[_route("R3", zone="zone-3")])

    result = _engine(store).assign_routes(["R3"], _options())

    assert result.assignments == []
    assert result.unassigned_routes == ["R3"]
    assert result.summary.total_routes == 1
    assert result.conflicts[0].conflict_type == ConflictType.ZONE_MISMATCH
    assert store.route_repository.find_by_id("R3").status == RouteStatus.PENDING


def test_cross_zone_fallback_when_allowed():
    store = InMemoryStore(inspectors=[_inspector("I1", zones=("zone-1",))], routes=[_route("R3", zone="zone-3")])

    result = _engine(store).assign_routes(["R3"], _options(allow_cross_zone_assignment=True))

    assert _pairs(result) == {"R3": "I1"}
    assert result.unassigned_routes == []


def test_empty_batch():
    store = InMemoryStore(inspectors=[_inspector("I1")])

    result = _engine(store).assign_routes([], _options())

    assert result.assignments == []
    assert result.unassigned_routes == []
    assert result.summary.total_routes == 0


def test_missing_and_non_pending_routes_are_excluded_from_totals():
    store = InMemoryStore(
        inspectors=[_inspector("I1")],
        routes=[_route("R1"), _route("R2", status=RouteStatus.COMPLETED), _route("R3", inspector="I1")],
    )

    result = _engine(store).assign_routes(["R1", "missing", "R2", "R3", "R1"], _options())

    assert result.summary.total_routes == 1
    assert result.summary.assigned_routes + result.summary.unassigned_routes == result.summary.total_routes
    assert len(result.assignments) + len(result.unassigned_routes) == result.summary.total_routes


def test_capacity_decrements_within_batch():
    store = InMemoryStore(
        inspectors=[_inspector("I1", cap=2), _inspector("I2", cap=2)],
        routes=[_route(f"R{i}") for i in range(1, 6)],
    )

    result = _engine(store).assign_routes([f"R{i}" for i in range(1, 6)], _options())

    assert result.summary.assigned_routes == 4
    assert result.unassigned_routes == ["R5"]
    assert _pairs(result) == {"R1": "I1", "R2": "I2", "R3": "I1", "R4": "I2"}
    for inspector_id in ("I1", "I2"):
        assert store.inspector_repository.get_current_workload(inspector_id) <= 2


def test_equal_scores_keep_inspector_order():
    store = InMemoryStore(inspectors=[_inspector("B"), _inspector("A")], routes=[_route("R1")])

    result = _engine(store).assign_routes(["R1"], _options(balance_workload=False))

    assert _pairs(result) == {"R1": "B"}


def test_estimated_times_without_availability():
    store = InMemoryStore(inspectors=[_inspector("I1")], routes=[_route("R1", duration=45), _route("R2")])

    result = _engine(store).assign_routes(["R1", "R2"], _options())

    first, second = result.assignments
    assert first.assigned_at == NOW
    assert first.estimated_start_time == NOW
    assert first.estimated_end_time == NOW + timedelta(minutes=45)
    assert second.estimated_end_time == NOW + timedelta(minutes=60)


def test_availability_is_a_hard_filter_and_sets_start_times():
    store = InMemoryStore(
        inspectors=[_inspector("I1", cap=10), _inspector("I2", cap=10)],
        routes=[_route("R1", duration=60), _route("R2", duration=60), _route("R3", duration=60)],
    )
    store.inspector_repository.set_availability("I1", [AvailabilitySlot(1, "08:00", "10:00")])
    store.inspector_repository.set_availability("I2", [AvailabilitySlot(2, "08:00", "18:00")])

    result = _engine(store).assign_routes(["R1", "R2", "R3"], _options(consider_availability=True))

    assert _pairs(result) == {"R1": "I1", "R2": "I1"}
    assert result.unassigned_routes == ["R3"]
    assert result.conflicts[0].conflict_type == ConflictType.AVAILABILITY_CONFLICT
    first, second = result.assignments
    assert first.estimated_start_time == NOW.replace(hour=8)
    assert second.estimated_start_time == NOW.replace(hour=9)
    assert second.estimated_end_time == NOW.replace(hour=10)


class _LosingRouteRepository(InMemoryRouteRepository):
    """Simulates another dispatcher winning the race for one route."""

    def __init__(self, store: InMemoryStore, lost: str) -> None:
        super().__init__(store)
        self.lost = lost

    def claim_route(self, route_id: str, inspector_id: str):
        if route_id == self.lost:
            return None
        return super().claim_route(route_id, inspector_id)


def test_lost_claim_is_dropped_from_both_lists():
    store = InMemoryStore(inspectors=[_inspector("I1")], routes=[_route("R1"), _route("R2")])
    routes = _LosingRouteRepository(store, lost="R2")

    result = _engine(store, routes=routes).assign_routes(["R1", "R2"], _options())

    assert _pairs(result) == {"R1": "I1"}
    assert result.unassigned_routes == []
    assert result.summary.total_routes == 1


def test_assign_all_pending_routes():
    store = InMemoryStore(
        inspectors=[_inspector("I1")],
        routes=[_route("R1"), _route("R2"), _route("R3", inspector="I1")],
    )

    result = _engine(store).assign_all_pending_routes(_options())

    assert set(_pairs(result)) == {"R1", "R2"}
    assert store.route_repository.find_by_status(RouteStatus.PENDING) == []


def test_reassign_inspector_routes_reruns_over_released_routes():
    store = InMemoryStore(
        inspectors=[_inspector("I1", cap=4), _inspector("I2", cap=4)],
        routes=[_route("R1", inspector="I1"), _route("R2", inspector="I1"), _route("R3")],
    )

    result = _engine(store).reassign_inspector_routes("I1", _options())

    assert result.summary.total_routes == 2
    assert _pairs(result) == {"R1": "I1", "R2": "I2"}
    assert store.route_repository.find_by_id("R3").status == RouteStatus.PENDING


def test_assignment_recommendations():
    store = InMemoryStore(
        inspectors=[_inspector("I1", cap=2), _inspector("I2", cap=10), _inspector("I3", cap=4)],
        routes=[
            _route("H1", priority=Priority.HIGH, inspector="I1"),
            _route("L1", priority=Priority.LOW, inspector="I1"),
            _route("M1", priority=Priority.MEDIUM, inspector="I1"),
            _route("X1", inspector="I2"),
            _route("Y1", inspector="I3"),
            _route("Y2", inspector="I3"),
        ],
    )

    recommendations = _engine(store).get_assignment_recommendations()

    assert recommendations.overloaded_inspectors == ["I1"]
    assert recommendations.underutilized_inspectors == ["I2"]
    (suggestion,) = recommendations.suggested_reassignments
    assert (suggestion.route_id, suggestion.from_inspector_id, suggestion.to_inspector_id) == ("L1", "I1", "I2")
    assert store.route_repository.find_by_id("L1").assigned_inspector_id == "I1"


def test_conflict_types_are_the_ones_the_engine_reports():
    assert {c.value for c in ConflictType} == {
        "capacity_exceeded",
        "zone_mismatch",
        "availability_conflict",
        "distance_exceeded",
    }
