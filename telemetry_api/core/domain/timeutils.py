"""Helpers de tiempo: todo el dominio trabaja en UTC con tzinfo."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normaliza a UTC aware. Los naive se interpretan como UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value: Optional[datetime]) -> Optional[datetime]:
    """UTC naive para columnas DateTime (SQLite no guarda offset)."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(value)


def hours_since(moment: datetime, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(moment)).total_seconds() / 3600.0


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 (acepta sufijo 'Z') a UTC aware. None/'' -> None."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
