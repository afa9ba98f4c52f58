"""Resultados derivados de agregación (no se persisten)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .enums import Interval, MetricType
from .reading import Reading


@dataclass
class MetricStats:
    """Estadísticos de una métrica dentro de un bucket.

    `sum` solo se informa para métricas acumulativas (lluvia); para esas
    `avg` y `min` quedan en None.
    """
    count: int
    max: float
    avg: Optional[float] = None
    min: Optional[float] = None
    sum: Optional[float] = None


@dataclass
class AggregateBucket:
    device_ids: Tuple[str, ...]
    interval: Interval
    label: str
    start: datetime  # inclusivo
    end: datetime  # exclusivo
    count: int
    metrics: Dict[MetricType, MetricStats] = field(default_factory=dict)


@dataclass
class MetricSummary:
    """Resumen plano por métrica para widgets de "estado actual"."""
    metric: MetricType
    count: int
    avg: float
    min: float
    max: float
    std_dev: float
    latest_value: float
    latest_timestamp: datetime


@dataclass
class AnomalyReport:
    total: int
    anomalies: List[Reading]
    by_metric: Dict[MetricType, List[Reading]]
