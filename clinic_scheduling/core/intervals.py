"""Interval arithmetic for scheduling.

Two building blocks live here:

* :func:`overlaps` - the single half-open overlap predicate used for every
  double-booking decision.
* :func:`intersect_availability` - the K-way intersection of practitioners'
  weekly availability used for joint appointments.

Everything in this module is pure.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any


class DayOfWeek(str, Enum):
    """Day of the week, in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "DayOfWeek":
        """Day of week for a calendar date."""
        return list(cls)[day.weekday()]


def overlaps(start_a: Any, end_a: Any, start_b: Any, end_b: Any) -> bool:
    """
    Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``.

    Intervals that only share a boundary (``end_a == start_b``) do not overlap.
    Works for any mutually comparable values (datetimes, times, numbers).
    """
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True, order=True)
class LocalInterval:
    """Half-open wall-clock interval ``[start, end)`` within one day."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")

    def intersection(self, other: "LocalInterval") -> "LocalInterval | None":
        """Common part of two intervals, or ``None`` when it would be empty."""
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start < end:
            return LocalInterval(start, end)
        return None

    def overlaps(self, other: "LocalInterval") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, start: time, end: time) -> bool:
        """Whether ``[start, end)`` lies entirely inside this interval."""
        return self.start <= start and end <= self.end


WeeklyAvailability = Mapping[DayOfWeek, Sequence[LocalInterval]]


def empty_week() -> dict[DayOfWeek, list[LocalInterval]]:
    """A week with every day present and no intervals."""
    return {day: [] for day in DayOfWeek}


def merge_intervals(intervals: Iterable[LocalInterval]) -> list[LocalInterval]:
    """
    Sort and coalesce intervals.

    Two neighbours merge when the first one's end is at or after the next
    one's start, so touching intervals become one contiguous interval.
    Output is independent of input order.
    """
    ordered = sorted(set(intervals))
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if last.end >= current.start:
            if current.end > last.end:
                merged[-1] = LocalInterval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def _fold_candidate(
    base: LocalInterval,
    others: Sequence[Sequence[LocalInterval]],
) -> list[LocalInterval]:
    """
    Narrow ``base`` against every other practitioner in turn.

    The working set can split when a practitioner has several intervals
    overlapping it (split shifts). An empty working set at any step means
    the candidate is dropped entirely.
    """
    working = [base]
    for counterpart in others:
        narrowed = []
        for piece in working:
            for interval in counterpart:
                common = piece.intersection(interval)
                if common is not None:
                    narrowed.append(common)
        if not narrowed:
            return []
        working = narrowed
    return working


def intersect_day(per_practitioner: Sequence[Sequence[LocalInterval]]) -> list[LocalInterval]:
    """
    Time ranges on one day during which every practitioner is available.

    Args:
        per_practitioner: One interval list per practitioner

    Returns:
        Merged, sorted intervals common to all practitioners
    """
    if not per_practitioner:
        return []
    # All-or-nothing per day
    if any(not intervals for intervals in per_practitioner):
        return []

    candidates: list[LocalInterval] = []
    for index, intervals in enumerate(per_practitioner):
        others = [other for i, other in enumerate(per_practitioner) if i != index]
        for base in intervals:
            candidates.extend(_fold_candidate(base, others))

    return merge_intervals(candidates)


def intersect_availability(
    availabilities: Sequence[WeeklyAvailability],
) -> dict[DayOfWeek, list[LocalInterval]]:
    """
    Weekly windows during which every practitioner is available.

    Each day is computed independently by :func:`intersect_day`. With a
    single practitioner the result is that practitioner's merged week.

    Args:
        availabilities: One weekly availability map per practitioner

    Returns:
        Map with all seven days; days without a common window map to ``[]``
    """
    result = empty_week()
    if not availabilities:
        return result

    for day in DayOfWeek:
        result[day] = intersect_day([list(week.get(day, [])) for week in availabilities])
    return result


def window_fits(
    availability: WeeklyAvailability,
    local_start: datetime,
    local_end: datetime,
) -> bool:
    """
    Whether a local ``[start, end)`` window lies inside one availability interval.

    Windows crossing midnight never fit, since availability is per day.
    """
    if local_start.date() != local_end.date():
        return False

    day = DayOfWeek.from_date(local_start.date())
    return any(
        interval.contains(local_start.time(), local_end.time())
        for interval in availability.get(day, [])
    )
