# agenda/core.py

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Half-open intervals: [start, end)
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: "Interval") -> bool:
        if self.is_empty or other.is_empty:
            return False
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: "Interval") -> Optional["Interval"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return None
        return Interval(start, end)


def merge(intervals: Iterable[Interval]) -> List[Interval]:
    """Sorted union of the given intervals; adjacent ones are joined."""
    merged: List[Interval] = []
    for current in sorted(i for i in intervals if not i.is_empty):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract(interval: Interval, busy: Iterable[Interval]) -> List[Interval]:
    """
    Maximal sub-intervals of ``interval`` not covered by any busy interval.

    Busy intervals may be unsorted, overlapping or lie partly outside
    ``interval``. The result is ordered by start time.
    """
    if interval.is_empty:
        return []

    free: List[Interval] = []
    cursor = interval.start
    for block in merge(busy):
        if block.end <= cursor:
            continue
        if block.start >= interval.end:
            break
        if block.start > cursor:
            free.append(Interval(cursor, block.start))
        cursor = max(cursor, block.end)
        if cursor >= interval.end:
            break

    if cursor < interval.end:
        free.append(Interval(cursor, interval.end))
    return free
