import pytest

from inspector_dispatch.models.domain import (
    AvailabilitySlot,
    Coordinate,
    Inspector,
    Route,
    RoutePoint,
    RouteStatus,
    Zone,
    ZoneCategory,
)
from inspector_dispatch.persistence.memory import InMemoryStore


def _inspector(iid: str, identification: str | None = None) -> Inspector:
    return Inspector(inspector_id=iid, name=f"Inspector {iid}", max_daily_routes=3, identification=identification)


def _point(pid: str, sequence: int, lat: float = 0.0, lon: float = 0.0) -> RoutePoint:
    return RoutePoint(point_id=pid, route_id="R1", coordinate=Coordinate(f"c-{pid}", lat, lon), sequence=sequence)


def test_assignment_invariant_enforced_on_load_and_update():
    with pytest.raises(ValueError):
        InMemoryStore(routes=[Route(route_id="R1", name="bad", status=RouteStatus.ASSIGNED)])

    store = InMemoryStore(routes=[Route(route_id="R1", name="ok")])
    with pytest.raises(ValueError):
        store.route_repository.update("R1", assigned_inspector_id="I1")
    with pytest.raises(ValueError):
        store.route_repository.create(Route(route_id="R1", name="duplicate"))


def test_claim_route_only_succeeds_once():
    store = InMemoryStore(inspectors=[_inspector("I1"), _inspector("I2")], routes=[Route(route_id="R1", name="r")])
    routes = store.route_repository

    first = routes.claim_route("R1", "I1")
    second = routes.claim_route("R1", "I2")

    assert first is not None and first.assigned_inspector_id == "I1"
    assert second is None
    assert routes.find_by_id("R1").status == RouteStatus.ASSIGNED
    assert store.inspector_repository.get_current_workload("I1") == 1


def test_reassign_requires_current_holder():
    store = InMemoryStore(
        inspectors=[_inspector("I1"), _inspector("I2")],
        routes=[Route(route_id="R1", name="r", status=RouteStatus.ASSIGNED, assigned_inspector_id="I1")],
    )
    routes = store.route_repository

    assert routes.reassign_route("R1", "I2", "I1") is None
    moved = routes.reassign_route("R1", "I1", "I2")
    assert moved.assigned_inspector_id == "I2"

    released = routes.unassign_from_inspector("R1")
    assert released.status == RouteStatus.PENDING
    assert released.assigned_inspector_id is None


def test_reads_return_copies():
    store = InMemoryStore(inspectors=[_inspector("I1")], routes=[Route(route_id="R1", name="r")])

    route = store.route_repository.find_by_id("R1")
    route.status = RouteStatus.CANCELLED
    inspector = store.inspector_repository.find_by_id("I1")
    inspector.preferred_zones.append("z9")

    assert store.route_repository.find_by_id("R1").status == RouteStatus.PENDING
    assert store.inspector_repository.find_by_id("I1").preferred_zones == []


def test_store_keeps_its_own_copies_of_loaded_records():
    route = Route(route_id="R1", name="r")
    inspector = _inspector("I1")
    store = InMemoryStore(inspectors=[inspector], routes=[route])

    store.route_repository.claim_route("R1", "I1")
    inspector.preferred_zones.append("z9")

    assert route.status == RouteStatus.PENDING
    assert route.assigned_inspector_id is None
    assert store.route_repository.find_by_id("R1").assigned_inspector_id == "I1"
    assert store.inspector_repository.find_by_id("I1").preferred_zones == []


def test_replace_points_requires_contiguous_sequences():
    store = InMemoryStore(routes=[Route(route_id="R1", name="r")])
    routes = store.route_repository

    with pytest.raises(ValueError):
        routes.replace_points("R1", [_point("a", 1), _point("b", 3)])

    stored = routes.replace_points("R1", [_point("b", 2), _point("a", 1)])
    assert [p.point_id for p in stored] == ["a", "b"]


def test_inspector_lookups_and_availability():
    store = InMemoryStore(inspectors=[_inspector("I1", identification="ID-1"), _inspector("I2")])
    inspectors = store.inspector_repository

    assert inspectors.find_by_identification("ID-1").inspector_id == "I1"
    assert inspectors.find_by_identification("nope") is None

    inspectors.set_availability("I1", [AvailabilitySlot(1, "08:00", "12:00"), AvailabilitySlot(2, "09:00", "17:00")])
    assert len(inspectors.get_availability("I1")) == 2
    assert [s.start_time for s in inspectors.get_availability("I1", 2)] == ["09:00"]
    assert inspectors.get_availability("I2") == []


def test_route_stats():
    store = InMemoryStore(
        zones=[Zone("z1", "North", ZoneCategory.RURAL, []), Zone("z2", "Central", ZoneCategory.METROPOLITAN, [])],
        inspectors=[_inspector("I1")],
        routes=[
            Route(route_id="R1", name="a", zone_id="z1"),
            Route(route_id="R2", name="b", zone_id="z1", status=RouteStatus.ASSIGNED, assigned_inspector_id="I1", estimated_duration=40),
            Route(route_id="R3", name="c", zone_id="z2", status=RouteStatus.COMPLETED, estimated_duration=80),
        ],
    )
    routes = store.route_repository

    by_zone = {s.zone_id: s for s in routes.get_stats_by_zone()}
    assert [s.zone_name for s in routes.get_stats_by_zone()] == ["Central", "North"]
    assert by_zone["z1"].pending_routes == 1
    assert by_zone["z1"].assigned_routes == 1
    assert by_zone["z2"].completed_routes == 1

    (inspector_stats,) = routes.get_stats_by_inspector()
    assert inspector_stats.active_routes == 1
    assert inspector_stats.average_duration == 40.0
