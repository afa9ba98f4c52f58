"""Límites de buckets alineados al calendario (UTC)."""

from __future__ import annotations

from datetime import datetime, timedelta

from ..core.domain import Interval
from ..core.domain.timeutils import ensure_utc

_FIXED_STEPS = {
    Interval.HOUR: timedelta(hours=1),
    Interval.DAY: timedelta(days=1),
    Interval.WEEK: timedelta(weeks=1),
}


def bucket_start(ts: datetime, interval: Interval) -> datetime:
    """Inicio del bucket que contiene `ts`.

    hour -> HH:00, day -> 00:00, week -> lunes 00:00 (semana ISO),
    month -> día 1 a las 00:00.
    """
    ts = ensure_utc(ts)
    if interval == Interval.HOUR:
        return ts.replace(minute=0, second=0, microsecond=0)
    day = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if interval == Interval.DAY:
        return day
    if interval == Interval.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def next_boundary(start: datetime, interval: Interval) -> datetime:
    """Inicio del bucket siguiente (fin exclusivo del actual)."""
    if interval == Interval.MONTH:
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)
    return start + _FIXED_STEPS[interval]


def bucket_label(start: datetime, interval: Interval) -> str:
    if interval == Interval.HOUR:
        return start.strftime("%Y-%m-%d %H:00")
    if interval == Interval.DAY:
        return start.strftime("%Y-%m-%d")
    if interval == Interval.WEEK:
        iso = start.isocalendar()
        return f"{iso[0]}-W{iso[1]:02d}"
    return start.strftime("%Y-%m")


def count_buckets(start: datetime, end: datetime, interval: Interval) -> int:
    """Cantidad de buckets que toca el rango [start, end]."""
    first = bucket_start(start, interval)
    last = bucket_start(end, interval)
    if last < first:
        return 0
    if interval == Interval.MONTH:
        return (last.year - first.year) * 12 + (last.month - first.month) + 1
    return int((last - first) / _FIXED_STEPS[interval]) + 1
