"""
Tests for interval arithmetic.
"""

import random
from datetime import datetime, timedelta

from agenda.core import Interval, merge, overlaps, subtract

BASE = datetime(2030, 1, 7, 9, 0)


def at(minutes: int) -> datetime:
    return BASE + timedelta(minutes=minutes)


def iv(start: int, end: int) -> Interval:
    return Interval(at(start), at(end))


def test_overlaps_half_open():
    """Touching intervals do not overlap."""
    assert overlaps(at(0), at(30), at(15), at(45))
    assert not overlaps(at(0), at(30), at(30), at(60))
    assert not overlaps(at(30), at(60), at(0), at(30))


def test_zero_length_never_overlaps():
    assert not iv(10, 10).overlaps(iv(0, 60))
    assert not iv(0, 60).overlaps(iv(10, 10))


def test_contains_and_intersection():
    outer = iv(0, 60)
    assert outer.contains(iv(0, 60))
    assert outer.contains(iv(10, 20))
    assert not outer.contains(iv(50, 70))
    assert outer.intersection(iv(50, 70)) == iv(50, 60)
    assert outer.intersection(iv(60, 70)) is None


def test_merge_joins_overlapping_and_adjacent():
    merged = merge([iv(40, 50), iv(0, 10), iv(5, 20), iv(20, 25)])
    assert merged == [iv(0, 25), iv(40, 50)]


def test_subtract_nothing_busy():
    assert subtract(iv(0, 600), []) == [iv(0, 600)]


def test_subtract_middle_block_splits():
    assert subtract(iv(0, 600), [iv(60, 90)]) == [iv(0, 60), iv(90, 600)]


def test_subtract_overlapping_unsorted_blocks():
    busy = [iv(100, 200), iv(-30, 10), iv(150, 250), iv(590, 700)]
    assert subtract(iv(0, 600), busy) == [iv(10, 100), iv(250, 590)]


def test_subtract_fully_covered():
    assert subtract(iv(0, 600), [iv(-10, 300), iv(300, 610)]) == []


def test_subtract_blocks_outside_are_ignored():
    assert subtract(iv(0, 60), [iv(-60, 0), iv(60, 120)]) == [iv(0, 60)]


def test_subtract_loses_and_invents_no_time():
    """Free pieces plus covered busy time add up to the open interval."""
    rng = random.Random(7)
    open_interval = iv(0, 600)

    for _ in range(200):
        busy = []
        for _ in range(rng.randint(0, 8)):
            start = rng.randint(-100, 650)
            busy.append(iv(start, start + rng.randint(1, 120)))

        free = subtract(open_interval, busy)

        for piece in free:
            assert open_interval.contains(piece)
            assert not piece.is_empty
            assert not any(piece.overlaps(b) for b in busy)
        for a, b in zip(free, free[1:]):
            assert a.end < b.start  # disjoint and maximal

        covered = merge(filter(None, (b.intersection(open_interval) for b in busy)))
        total = sum((p.duration for p in free + covered), timedelta())
        assert total == open_interval.duration
