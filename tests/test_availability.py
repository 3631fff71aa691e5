from datetime import date

import pytest

from inspector_dispatch.models.domain import AvailabilitySlot, Inspector
from inspector_dispatch.persistence.memory import InMemoryStore
from inspector_dispatch.services.availability.manager import (
    AvailabilityManager,
    TimeSlot,
    day_of_week,
    minutes_to_time,
    time_to_minutes,
)


@pytest.fixture
def manager() -> AvailabilityManager:
    store = InMemoryStore(
        inspectors=[
            Inspector(inspector_id="I1", name="Amal", max_daily_routes=5, preferred_zones=["z1"]),
            Inspector(inspector_id="I2", name="Basim", max_daily_routes=5, preferred_zones=["z2"]),
        ]
    )
    inspectors = store.inspector_repository
    inspectors.set_availability(
        "I1",
        [
            AvailabilitySlot(1, "13:00", "17:00"),
            AvailabilitySlot(1, "08:00", "12:00"),
            AvailabilitySlot(3, "09:00", "11:00"),
            AvailabilitySlot(4, "09:00", "11:00", is_active=False),
        ],
    )
    inspectors.set_availability("I2", [AvailabilitySlot(1, "10:00", "18:00")])
    return AvailabilityManager(inspectors)


def test_time_helpers():
    assert time_to_minutes("08:30") == 510
    assert minutes_to_time(510) == "08:30"
    assert day_of_week(date(2026, 10, 18)) == 0  # Sunday
    assert day_of_week(date(2026, 10, 24)) == 6  # Saturday


def test_day_availability_sorted_and_totalled(manager):
    monday = manager.get_inspector_day_availability("I1", 1)

    assert [w.start_time for w in monday.time_slots] == ["08:00", "13:00"]
    assert monday.total_hours == 8.0
    assert manager.get_inspector_day_availability("I1", 2) is None


def test_weekly_availability(manager):
    weekly = manager.get_inspector_weekly_availability("I1")

    assert weekly.inspector_name == "Amal"
    assert [d.day_of_week for d in weekly.days] == [1, 3, 4]
    assert weekly.total_weekly_hours == 10.0
    assert manager.get_inspector_weekly_availability("ghost") is None


def test_slot_must_fit_inside_one_window(manager):
    assert manager.is_inspector_available("I1", 1, TimeSlot("09:00", "11:00"))
    assert not manager.is_inspector_available("I1", 1, TimeSlot("11:00", "14:00"))
    assert not manager.is_inspector_available("I1", 4, TimeSlot("09:00", "10:00"))
    assert not manager.is_inspector_available("I1", 2, TimeSlot("09:00", "10:00"))


def test_find_available_inspectors(manager):
    assert manager.find_available_inspectors(1, TimeSlot("10:30", "11:30")) == ["I1", "I2"]
    assert manager.find_available_inspectors(1, TimeSlot("12:00", "13:00")) == ["I2"]
    assert manager.find_available_inspectors(1, TimeSlot("10:30", "11:30"), zone_id="z2") == ["I2"]


def test_find_start_minute(manager):
    assert manager.find_start_minute("I1", 1, 60) == 480
    assert manager.find_start_minute("I1", 1, 60, not_before=690) == 780
    assert manager.find_start_minute("I1", 1, 300) is None
    assert manager.find_start_minute("I1", 5, 30) is None


def test_overlapping_slots_are_reported(manager):
    slots = [
        AvailabilitySlot(1, "08:00", "12:00"),
        AvailabilitySlot(1, "11:00", "13:00"),
        AvailabilitySlot(1, "12:00", "14:00"),
        AvailabilitySlot(2, "08:00", "12:00"),
        AvailabilitySlot(2, "09:00", "10:00", is_active=False),
    ]

    conflicts = manager.validate_availability_schedule(slots, inspector_id="I1")

    assert len(conflicts) == 2
    assert all(c.day_of_week == 1 and c.inspector_id == "I1" for c in conflicts)
    assert manager.validate_availability_schedule([AvailabilitySlot(1, "08:00", "12:00")]) == []


def test_availability_statistics(manager):
    stats = manager.get_availability_statistics(["I1", "I2", "ghost"])

    assert stats.total_inspectors == 2
    assert stats.average_weekly_hours == 9.0
    assert [(s.inspector_id, s.available_days) for s in stats.inspector_stats] == [("I1", 3), ("I2", 1)]
