from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

from cradle.services.breastfeeding import normalize_breastfeeding_sides

START = datetime(2024, 1, 15, 10, 0)


def feeding(**kw):
    values = dict(
        feeding_type="BREAST",
        start_time=START,
        end_time=START + timedelta(minutes=20),
        side=None,
        left_duration_seconds=None,
        right_duration_seconds=None,
    )
    values.update(kw)
    return SimpleNamespace(**values)


def test_per_side_fields_win() -> None:
    sides = normalize_breastfeeding_sides(feeding(left_duration_seconds=300, right_duration_seconds=420))
    assert sides == (300, 420)
    assert sides.total_seconds == 720


def test_single_side_field_leaves_other_at_zero() -> None:
    assert normalize_breastfeeding_sides(feeding(left_duration_seconds=300)) == (300, 0)
    assert normalize_breastfeeding_sides(feeding(right_duration_seconds=60)) == (0, 60)


def test_legacy_side_gets_whole_duration() -> None:
    assert normalize_breastfeeding_sides(feeding(side="LEFT")) == (1200, 0)
    assert normalize_breastfeeding_sides(feeding(side="RIGHT")) == (0, 1200)


def test_legacy_both_splits_with_odd_second_to_the_right() -> None:
    assert normalize_breastfeeding_sides(feeding(side="BOTH")) == (600, 600)
    odd = feeding(side="BOTH", end_time=START + timedelta(seconds=61))
    assert normalize_breastfeeding_sides(odd) == (30, 31)
    assert normalize_breastfeeding_sides(feeding(end_time=START + timedelta(seconds=61))) == (30, 31)


def test_open_or_non_breast_records_are_zero() -> None:
    assert normalize_breastfeeding_sides(feeding(side="LEFT", end_time=None)) == (0, 0)
    assert normalize_breastfeeding_sides(feeding(feeding_type="BOTTLE", left_duration_seconds=99)) == (0, 0)
