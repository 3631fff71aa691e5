import pytest

from inspector_dispatch.models.domain import Coordinate, Route, RoutePoint, Zone, ZoneCategory
from inspector_dispatch.persistence.memory import InMemoryStore
from inspector_dispatch.schemas.sequencing import SequencerOptions
from inspector_dispatch.services.sequencing.planner import RoutePlanner, travel_speed_kmh

A = Coordinate("A", 0.0, 0.00)
B = Coordinate("B", 0.0, 0.01)
C = Coordinate("C", 0.0, 0.02)
D = Coordinate("D", 0.0, 0.03)


def _store(category: ZoneCategory, coordinates=(A, D, B, C), stop_minutes=None) -> InMemoryStore:
    store = InMemoryStore(
        zones=[Zone("z1", "Zone 1", category, [])],
        routes=[Route(route_id="R1", name="Route 1", zone_id="z1")],
    )
    points = [
        RoutePoint(point_id=f"pt-{c.coordinate_id}", route_id="R1", coordinate=c, sequence=i, estimated_time=stop_minutes)
        for i, c in enumerate(coordinates, start=1)
    ]
    store.route_repository.replace_points("R1", points)
    return store


def _planner(store: InMemoryStore) -> RoutePlanner:
    return RoutePlanner(store.route_repository, store.zone_repository)


def test_speed_depends_on_zone_category():
    assert travel_speed_kmh(ZoneCategory.RURAL) == 45.0
    assert travel_speed_kmh(ZoneCategory.METROPOLITAN) == 25.0
    assert travel_speed_kmh(None) == 25.0


def test_resequence_renumbers_points_and_stores_duration():
    store = _store(ZoneCategory.METROPOLITAN)

    resequenced = _planner(store).resequence_route("R1")

    assert [p.coordinate.coordinate_id for p in resequenced.points] == ["A", "B", "C", "D"]
    assert [p.sequence for p in resequenced.points] == [1, 2, 3, 4]
    # 4 stops x 15 min + 3.34 km at 25 km/h
    assert resequenced.estimated_duration == 68
    assert store.route_repository.find_by_id("R1").estimated_duration == 68
    stored = store.route_repository.get_points("R1")
    assert [p.point_id for p in stored] == ["pt-A", "pt-B", "pt-C", "pt-D"]


def test_rural_routes_travel_faster():
    store = _store(ZoneCategory.RURAL)

    resequenced = _planner(store).resequence_route("R1", SequencerOptions(algorithm="two_opt"))

    assert resequenced.optimization.algorithm == "two_opt"
    assert resequenced.estimated_duration == 64


def test_missing_route():
    planner = _planner(InMemoryStore())

    assert planner.resequence_route("nope") is None
    assert planner.calculate_route_time("nope") is None


def test_route_time_breakdown():
    store = _store(ZoneCategory.METROPOLITAN, coordinates=(A, B, C, D))

    breakdown = _planner(store).calculate_route_time("R1")

    assert breakdown.work_minutes == 60
    assert breakdown.travel_minutes == 8
    assert breakdown.setup_minutes == 30
    assert breakdown.break_minutes == 0
    assert breakdown.total_minutes == 98
    assert [s.sequence for s in breakdown.stops] == [1, 2, 3, 4]
    assert breakdown.stops[0].travel_minutes == 0.0
    assert breakdown.stops[-1].cumulative_minutes == pytest.approx(68.0, abs=0.1)


def test_long_routes_earn_breaks():
    store = _store(ZoneCategory.METROPOLITAN, coordinates=(A, B, C, D), stop_minutes=100)
    planner = _planner(store)

    breakdown = planner.calculate_route_time("R1")
    bare = planner.calculate_route_time("R1", include_setup=False, include_breaks=False)

    assert breakdown.break_minutes == 15
    assert breakdown.total_minutes == 453
    assert bare.total_minutes == 408
    assert bare.setup_minutes == 0
