"""Reading Store - persistencia de lecturas inmutables por dispositivo.

Cada método abre su propia transacción corta (`engine.begin()`).
Las consultas de rango se leen en streaming para no cargar en memoria
rangos grandes de una sola vez.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.engine import Engine

from ...core.domain import Location, MetricType, Reading, ReadingQuality
from ...core.domain.timeutils import from_db, to_db
from .schema import readings

logger = logging.getLogger(__name__)

# Tope duro para "last N": nadie debería pedir más que esto por request
MAX_RECENT_LIMIT = 1000


@dataclass(frozen=True)
class MetricAccumulatorRow:
    """Agregados crudos por métrica calculados en la BD."""
    metric: MetricType
    count: int
    total: float
    total_sq: float
    min: float
    max: float


class ReadingStore:
    """Store SQL de lecturas."""

    STREAM_BATCH_SIZE = 500

    def __init__(self, engine: Engine):
        self._engine = engine

    def insert(self, reading: Reading) -> None:
        with self._engine.begin() as conn:
            conn.execute(insert(readings).values(**_reading_to_row(reading)))

    def recent_values(self, device_id: str, metric: MetricType, limit: int = 100) -> List[float]:
        """Últimos `limit` valores del mismo device+métrica, más reciente primero."""
        limit = max(1, min(int(limit), MAX_RECENT_LIMIT))
        stmt = (
            select(readings.c.value)
            .where(readings.c.device_id == device_id, readings.c.metric == metric.value)
            .order_by(readings.c.timestamp.desc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            return [float(v) for v in conn.execute(stmt).scalars()]

    def iter_range(
        self,
        device_ids: Sequence[str],
        start: datetime,
        end: datetime,
        metrics: Optional[Sequence[MetricType]] = None,
    ) -> Iterator[Tuple[MetricType, float, datetime]]:
        """Itera (metric, value, timestamp) en orden cronológico, rango inclusivo."""
        stmt = (
            select(readings.c.metric, readings.c.value, readings.c.timestamp)
            .where(_scope_clause(device_ids, start, end, metrics))
            .order_by(readings.c.timestamp.asc())
        )
        with self._engine.connect() as conn:
            result = conn.execution_options(yield_per=self.STREAM_BATCH_SIZE).execute(stmt)
            for metric, value, ts in result:
                yield MetricType(metric), float(value), from_db(ts)

    def count(
        self,
        device_ids: Sequence[str],
        start: datetime,
        end: datetime,
        metrics: Optional[Sequence[MetricType]] = None,
    ) -> int:
        stmt = select(func.count()).select_from(readings).where(
            _scope_clause(device_ids, start, end, metrics)
        )
        with self._engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def metric_accumulators(
        self,
        device_ids: Sequence[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        metrics: Optional[Sequence[MetricType]] = None,
    ) -> List[MetricAccumulatorRow]:
        """count/sum/sum² /min/max por métrica, agrupado en la BD."""
        stmt = (
            select(
                readings.c.metric,
                func.count().label("count"),
                func.sum(readings.c.value).label("total"),
                func.sum(readings.c.value * readings.c.value).label("total_sq"),
                func.min(readings.c.value).label("min"),
                func.max(readings.c.value).label("max"),
            )
            .where(_scope_clause(device_ids, start, end, metrics))
            .group_by(readings.c.metric)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [
            MetricAccumulatorRow(
                metric=MetricType(row["metric"]),
                count=int(row["count"]),
                total=float(row["total"] or 0.0),
                total_sq=float(row["total_sq"] or 0.0),
                min=float(row["min"]),
                max=float(row["max"]),
            )
            for row in rows
        ]

    def latest_for_metric(
        self,
        device_ids: Sequence[str],
        metric: MetricType,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Optional[Tuple[float, datetime]]:
        stmt = (
            select(readings.c.value, readings.c.timestamp)
            .where(_scope_clause(device_ids, start, end, [metric]))
            .order_by(readings.c.timestamp.desc())
            .limit(1)
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return None
        return float(row.value), from_db(row.timestamp)

    def latest_timestamp(self, device_id: str) -> Optional[datetime]:
        stmt = select(func.max(readings.c.timestamp)).where(readings.c.device_id == device_id)
        with self._engine.connect() as conn:
            return from_db(conn.execute(stmt).scalar())

    def count_anomalies(self, device_id: str, since: datetime) -> int:
        stmt = select(func.count()).select_from(readings).where(
            readings.c.device_id == device_id,
            readings.c.is_anomaly.is_(True),
            readings.c.timestamp >= to_db(since),
        )
        with self._engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def list_anomalies(
        self,
        device_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[Reading]:
        limit = max(1, min(int(limit), MAX_RECENT_LIMIT))
        stmt = (
            select(readings)
            .where(
                _scope_clause([device_id], start, end, None),
                readings.c.is_anomaly.is_(True),
            )
            .order_by(readings.c.timestamp.desc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            return [_row_to_reading(row) for row in conn.execute(stmt)]

    def get(self, reading_id: str) -> Optional[Reading]:
        with self._engine.connect() as conn:
            row = conn.execute(select(readings).where(readings.c.id == reading_id)).first()
        return _row_to_reading(row) if row is not None else None

    def device_ids_active_since(self, since: datetime) -> List[str]:
        stmt = (
            select(readings.c.device_id)
            .where(readings.c.timestamp >= to_db(since))
            .group_by(readings.c.device_id)
            .order_by(readings.c.device_id)
        )
        with self._engine.connect() as conn:
            return [str(d) for d in conn.execute(stmt).scalars()]

    def purge_expired(self, now: datetime) -> int:
        """Borra las lecturas cuya retención ya venció. Devuelve cuántas."""
        with self._engine.begin() as conn:
            result = conn.execute(delete(readings).where(readings.c.expires_at < to_db(now)))
        deleted = int(result.rowcount or 0)
        logger.info("RETENTION purged=%d cutoff=%s", deleted, now.isoformat())
        return deleted


def _scope_clause(
    device_ids: Sequence[str],
    start: Optional[datetime],
    end: Optional[datetime],
    metrics: Optional[Sequence[MetricType]],
):
    clauses = [readings.c.device_id.in_(list(device_ids))]
    if start is not None:
        clauses.append(readings.c.timestamp >= to_db(start))
    if end is not None:
        clauses.append(readings.c.timestamp <= to_db(end))
    if metrics:
        clauses.append(readings.c.metric.in_([m.value for m in metrics]))
    return and_(*clauses)


def _reading_to_row(reading: Reading) -> dict:
    return {
        "id": reading.id,
        "device_id": reading.device_id,
        "metric": reading.metric.value,
        "value": float(reading.value),
        "unit": reading.unit,
        "timestamp": to_db(reading.timestamp),
        "latitude": reading.location.latitude if reading.location else None,
        "longitude": reading.location.longitude if reading.location else None,
        "quality": reading.quality.value,
        "is_anomaly": bool(reading.is_anomaly),
        "anomaly_score": float(reading.anomaly_score),
        "expires_at": to_db(reading.expires_at),
    }


def _row_to_reading(row) -> Reading:
    location = None
    if row.latitude is not None and row.longitude is not None:
        location = Location(latitude=float(row.latitude), longitude=float(row.longitude))
    return Reading(
        id=str(row.id),
        device_id=str(row.device_id),
        metric=MetricType(row.metric),
        value=float(row.value),
        unit=str(row.unit),
        timestamp=from_db(row.timestamp),
        expires_at=from_db(row.expires_at),
        quality=ReadingQuality(row.quality),
        location=location,
        is_anomaly=bool(row.is_anomaly),
        anomaly_score=float(row.anomaly_score),
    )
