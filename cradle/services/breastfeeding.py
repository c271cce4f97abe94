# cradle/services/breastfeeding.py
"""
Время по сторонам груди.

Старые записи хранят только общий интервал и поле side, новые хранят секунды
по каждой стороне. Приводим всё к новому виду здесь, в одном месте;
остальной код читает только результат normalize_breastfeeding_sides().
"""
from __future__ import annotations

from typing import NamedTuple, Protocol
from datetime import datetime


class _FeedingLike(Protocol):
    feeding_type: str
    start_time: datetime
    end_time: datetime | None
    side: str | None
    left_duration_seconds: int | None
    right_duration_seconds: int | None


class SideDurations(NamedTuple):
    left_seconds: int
    right_seconds: int

    @property
    def total_seconds(self) -> int:
        return self.left_seconds + self.right_seconds


def normalize_breastfeeding_sides(record: _FeedingLike) -> SideDurations:
    if record.feeding_type != "BREAST":
        return SideDurations(0, 0)

    left = record.left_duration_seconds
    right = record.right_duration_seconds
    if left is not None or right is not None:
        return SideDurations(left or 0, right or 0)

    # legacy: есть только интервал и сторона
    if record.end_time is None:
        return SideDurations(0, 0)
    total = max(int((record.end_time - record.start_time).total_seconds()), 0)
    if record.side == "LEFT":
        return SideDurations(total, 0)
    if record.side == "RIGHT":
        return SideDurations(0, total)
    half = total // 2
    # нечётная секунда уходит правой стороне
    return SideDurations(half, total - half)
