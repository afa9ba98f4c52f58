"""Modelo de dominio para lecturas de telemetría."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .enums import MetricType, ReadingQuality
from .timeutils import ensure_utc, utc_now


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Reading:
    """Lectura de un dispositivo - modelo canónico de dominio.

    Inmutable: los campos de anomalía se fijan al construirla, antes del
    insert, y no se vuelven a tocar.
    """
    id: str
    device_id: str
    metric: MetricType
    value: float
    unit: str
    timestamp: datetime
    expires_at: datetime
    quality: ReadingQuality = ReadingQuality.GOOD
    location: Optional[Location] = None
    is_anomaly: bool = False
    anomaly_score: float = 0.1


def build_reading(
    *,
    device_id: str,
    metric: MetricType,
    value: float,
    unit: str,
    is_anomaly: bool,
    anomaly_score: float,
    retention_days: int,
    timestamp: Optional[datetime] = None,
    location: Optional[Location] = None,
    quality: ReadingQuality = ReadingQuality.GOOD,
) -> Reading:
    """Construye una lectura lista para persistir.

    Deriva aquí, de forma explícita, los campos que antes se calculaban
    en hooks de persistencia: el id y la fecha de expiración por retención.
    """
    ts = ensure_utc(timestamp) if timestamp is not None else utc_now()
    return Reading(
        id=uuid.uuid4().hex,
        device_id=device_id,
        metric=metric,
        value=float(value),
        unit=unit,
        timestamp=ts,
        expires_at=ts + timedelta(days=retention_days),
        quality=quality,
        location=location,
        is_anomaly=bool(is_anomaly),
        anomaly_score=float(anomaly_score),
    )
