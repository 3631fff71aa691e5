import pytest

from inspector_dispatch.config import settings
from inspector_dispatch.models.domain import Inspector, Priority, Route
from inspector_dispatch.services.assignment import scoring
from inspector_dispatch.services.workload.models import WorkloadMetrics


def _metrics(current: int, cap: int) -> WorkloadMetrics:
    return WorkloadMetrics(
        inspector_id="I1",
        inspector_name="Inspector I1",
        current_routes=0,
        max_daily_routes=cap,
        utilization_percentage=0,
        available_capacity=cap,
        estimated_work_hours=0.0,
    ).with_routes(current)


def _inspector(*zones: str) -> Inspector:
    return Inspector(inspector_id="I1", name="Inspector I1", max_daily_routes=5, preferred_zones=list(zones))


def test_zone_match_only_counts_when_prioritized():
    route = Route(route_id="R1", name="r", zone_id="z1")

    assert scoring.zone_match_score(route, _inspector("z1"), True) == pytest.approx(40.0)
    assert scoring.zone_match_score(route, _inspector("z2"), True) == 0.0
    assert scoring.zone_match_score(route, _inspector("z1"), False) == 0.0


def test_workload_balance_prefers_idle_inspectors():
    assert scoring.workload_balance_score(_metrics(0, 4), True) == pytest.approx(30.0)
    assert scoring.workload_balance_score(_metrics(2, 4), True) == pytest.approx(15.0)
    assert scoring.workload_balance_score(_metrics(6, 4), True) == 0.0
    assert scoring.workload_balance_score(_metrics(0, 4), False) == 0.0


def test_availability_is_a_filter():
    assert scoring.availability_score(None) == 0.0
    assert scoring.availability_score(False) is None
    assert scoring.availability_score(True) == pytest.approx(20.0)


def test_priority_ordering():
    high = scoring.priority_score(Route(route_id="a", name="a", priority=Priority.HIGH))
    medium = scoring.priority_score(Route(route_id="b", name="b", priority=Priority.MEDIUM))
    low = scoring.priority_score(Route(route_id="c", name="c", priority=Priority.LOW))

    assert high > medium > low
    assert high == pytest.approx(10.0)


def test_weights_come_from_settings(monkeypatch):
    monkeypatch.setattr(settings, "zone_match_weight", 1.0)
    route = Route(route_id="R1", name="r", zone_id="z1")

    assert scoring.zone_match_score(route, _inspector("z1"), True) == pytest.approx(100.0)


def test_cross_zone_score_components():
    route = Route(route_id="R1", name="r", priority=Priority.HIGH, zone_id="z2")
    metrics = _metrics(1, 4)  # 25% used, 75% free

    score = scoring.cross_zone_score(route, metrics, distance_km=5.0, max_distance_km=10.0)

    # 75 * 0.4 + 75 * 0.3 + 50 * 0.2 + 100 * 0.1
    assert score == pytest.approx(72.5)
    assert scoring.distance_score(3.0, 0.0) == 50.0
    assert scoring.distance_score(20.0, 10.0) == 0.0
