"""Inspector availability windows.

Days are numbered from Sunday (0) to Saturday (6); times are ``HH:MM`` strings
within a single day.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from ...models.domain import AvailabilitySlot
from ...persistence.base import InspectorRepository

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7


def time_to_minutes(value: str) -> int:
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_of_week(day: date) -> int:
    """Sunday-based weekday index for ``day``."""
    return (day.weekday() + 1) % DAYS_IN_WEEK


@dataclass(slots=True, frozen=True)
class TimeSlot:
    start_time: str
    end_time: str

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    @property
    def hours(self) -> float:
        return (self.end_minutes - self.start_minutes) / 60

    def contains(self, other: "TimeSlot") -> bool:
        return other.start_minutes >= self.start_minutes and other.end_minutes <= self.end_minutes

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes


@dataclass(slots=True)
class DayAvailability:
    day_of_week: int
    time_slots: List[TimeSlot]
    total_hours: float


@dataclass(slots=True)
class WeeklyAvailability:
    inspector_id: str
    inspector_name: str
    days: List[DayAvailability]
    total_weekly_hours: float


@dataclass(slots=True)
class AvailabilityConflict:
    day_of_week: int
    conflicting_slots: List[TimeSlot]
    reason: str
    inspector_id: Optional[str] = None


@dataclass(slots=True)
class InspectorAvailabilityStats:
    inspector_id: str
    inspector_name: str
    weekly_hours: float
    available_days: int


@dataclass(slots=True)
class AvailabilityStatistics:
    total_inspectors: int
    average_weekly_hours: float
    inspector_stats: List[InspectorAvailabilityStats] = field(default_factory=list)


class AvailabilityManager:
    def __init__(self, inspectors: InspectorRepository) -> None:
        self.inspectors = inspectors

    def get_inspector_day_availability(self, inspector_id: str, day: int) -> Optional[DayAvailability]:
        """Active windows for one day, earliest first; None when nothing is recorded for that day."""
        slots = self.inspectors.get_availability(inspector_id, day)
        if not slots:
            return None

        windows = sorted(
            (TimeSlot(slot.start_time, slot.end_time) for slot in slots if slot.is_active),
            key=lambda s: s.start_minutes,
        )
        return DayAvailability(day_of_week=day, time_slots=windows, total_hours=sum(w.hours for w in windows))

    def get_inspector_weekly_availability(self, inspector_id: str) -> Optional[WeeklyAvailability]:
        inspector = self.inspectors.find_by_id(inspector_id)
        if inspector is None:
            return None

        days = [
            availability
            for availability in (self.get_inspector_day_availability(inspector_id, d) for d in range(DAYS_IN_WEEK))
            if availability is not None
        ]
        return WeeklyAvailability(
            inspector_id=inspector_id,
            inspector_name=inspector.name,
            days=days,
            total_weekly_hours=sum(d.total_hours for d in days),
        )

    def is_inspector_available(self, inspector_id: str, day: int, time_slot: TimeSlot) -> bool:
        availability = self.get_inspector_day_availability(inspector_id, day)
        if availability is None:
            return False
        return any(window.contains(time_slot) for window in availability.time_slots)

    def find_available_inspectors(self, day: int, time_slot: TimeSlot, zone_id: Optional[str] = None) -> list[str]:
        if zone_id:
            candidates = self.inspectors.find_by_preferred_zone(zone_id)
        else:
            candidates = self.inspectors.find_active()
        return [
            inspector.inspector_id
            for inspector in candidates
            if self.is_inspector_available(inspector.inspector_id, day, time_slot)
        ]

    def find_start_minute(
        self,
        inspector_id: str,
        day: int,
        duration_minutes: int,
        not_before: int = 0,
    ) -> Optional[int]:
        """Earliest start (minutes after midnight) at or after ``not_before`` where the whole job fits a window."""
        availability = self.get_inspector_day_availability(inspector_id, day)
        if availability is None:
            return None
        for window in availability.time_slots:
            start = max(window.start_minutes, not_before)
            if start + duration_minutes <= window.end_minutes:
                return start
        return None

    def validate_availability_schedule(
        self,
        slots: Sequence[AvailabilitySlot],
        inspector_id: Optional[str] = None,
    ) -> list[AvailabilityConflict]:
        """Report every pair of overlapping active slots on the same day."""
        by_day: dict[int, list[AvailabilitySlot]] = defaultdict(list)
        for slot in slots:
            if slot.is_active:
                by_day[slot.day_of_week].append(slot)

        conflicts: list[AvailabilityConflict] = []
        for day, day_slots in by_day.items():
            windows = [TimeSlot(s.start_time, s.end_time) for s in day_slots]
            for i, first in enumerate(windows):
                for second in windows[i + 1:]:
                    if first.overlaps(second):
                        conflicts.append(
                            AvailabilityConflict(
                                day_of_week=day,
                                conflicting_slots=[first, second],
                                reason="Overlapping time slots",
                                inspector_id=inspector_id,
                            )
                        )
        if conflicts:
            logger.warning(f"Availability schedule has {len(conflicts)} overlapping slot pair(s)")
        return conflicts

    def get_availability_statistics(self, inspector_ids: Sequence[str]) -> AvailabilityStatistics:
        stats: list[InspectorAvailabilityStats] = []
        for inspector_id in inspector_ids:
            weekly = self.get_inspector_weekly_availability(inspector_id)
            if weekly is None:
                continue
            stats.append(
                InspectorAvailabilityStats(
                    inspector_id=inspector_id,
                    inspector_name=weekly.inspector_name,
                    weekly_hours=weekly.total_weekly_hours,
                    available_days=len(weekly.days),
                )
            )
        total_hours = sum(s.weekly_hours for s in stats)
        return AvailabilityStatistics(
            total_inspectors=len(stats),
            average_weekly_hours=total_hours / len(stats) if stats else 0.0,
            inspector_stats=stats,
        )
