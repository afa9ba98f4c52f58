"""Agregador de telemetría para dashboards.

Dos modos:
- `aggregate`: buckets cronológicos por intervalo (hour/day/week/month)
  con estadísticos por métrica.
- `summarize`: resumen plano por métrica ("estado actual"), sin buckets.

Las lecturas del rango se leen en streaming (ordenadas por timestamp) y se
pliegan en acumuladores del bucket actual; nunca se materializa el rango
completo en memoria. Solo se devuelven buckets con datos.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.domain import (
    CUMULATIVE_METRICS,
    AggregateBucket,
    AnomalyReport,
    Interval,
    MetricStats,
    MetricSummary,
    MetricType,
    Reading,
)
from ..core.domain.timeutils import ensure_utc
from ..errors import ValidationError
from ..infrastructure.persistence import ReadingStore
from .bucketing import bucket_label, bucket_start, count_buckets, next_boundary
from .config import AggregatorConfig

logger = logging.getLogger(__name__)

MetricFilter = Optional[Iterable[Union[MetricType, str]]]


class _Accumulator:
    __slots__ = ("count", "total", "min", "max")

    def __init__(self) -> None:
        self.count = 0
        self.total = 0.0
        self.min = math.inf
        self.max = -math.inf

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value

    def to_stats(self, metric: MetricType) -> MetricStats:
        if metric in CUMULATIVE_METRICS:
            return MetricStats(count=self.count, max=self.max, sum=self.total)
        return MetricStats(
            count=self.count, max=self.max, avg=self.total / self.count, min=self.min
        )


class TelemetryAggregator:
    def __init__(self, store: ReadingStore, config: Optional[AggregatorConfig] = None):
        self._store = store
        self._config = config or AggregatorConfig()

    def aggregate(
        self,
        device_ids: Sequence[str],
        start: datetime,
        end: datetime,
        interval: Union[Interval, str],
        metrics: MetricFilter = None,
    ) -> List[AggregateBucket]:
        """Buckets cronológicos para el rango [start, end] (inclusivo).

        Sin filtro de métricas se agregan todas, incluidos los signos
        vitales del dispositivo (batería, señal). Con filtro, solo las
        pedidas.

        Raises:
            ValidationError: scope vacío, intervalo o métrica desconocidos,
                start > end, o el rango excede `max_buckets`.
        """
        scope = _device_scope(device_ids)
        interval = _parse_interval(interval)
        metric_filter = parse_metrics(metrics)
        start, end = ensure_utc(start), ensure_utc(end)
        if start > end:
            raise ValidationError("startDate must be before endDate")

        n_buckets = count_buckets(start, end, interval)
        if n_buckets > self._config.max_buckets:
            raise ValidationError(
                f"Range spans {n_buckets} {interval.value} buckets "
                f"(max {self._config.max_buckets}); use a wider interval"
            )

        buckets: List[AggregateBucket] = []
        current_start: Optional[datetime] = None
        current_end: Optional[datetime] = None
        accumulators: Dict[MetricType, _Accumulator] = {}
        count = 0

        for metric, value, ts in self._store.iter_range(scope, start, end, metric_filter):
            if current_end is None or ts >= current_end:
                if current_start is not None:
                    buckets.append(
                        _build_bucket(scope, interval, current_start, current_end, count, accumulators)
                    )
                current_start = bucket_start(ts, interval)
                current_end = next_boundary(current_start, interval)
                accumulators = {}
                count = 0
            acc = accumulators.get(metric)
            if acc is None:
                acc = accumulators[metric] = _Accumulator()
            acc.add(value)
            count += 1

        if current_start is not None:
            buckets.append(
                _build_bucket(scope, interval, current_start, current_end, count, accumulators)
            )

        logger.debug(
            "AGGREGATE devices=%d interval=%s buckets=%d", len(scope), interval.value, len(buckets)
        )
        return buckets

    def summarize(
        self,
        device_ids: Sequence[str],
        metrics: MetricFilter = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[MetricSummary]:
        """count/avg/min/max/std (poblacional) y último valor por métrica."""
        scope = _device_scope(device_ids)
        metric_filter = parse_metrics(metrics)
        start = ensure_utc(start) if start is not None else None
        end = ensure_utc(end) if end is not None else None
        if start is not None and end is not None and start > end:
            raise ValidationError("startDate must be before endDate")

        summaries: List[MetricSummary] = []
        rows = self._store.metric_accumulators(scope, start, end, metric_filter)
        for row in sorted(rows, key=lambda r: r.metric.value):
            mean = row.total / row.count
            # E[x²] - E[x]² puede quedar levemente negativo por redondeo
            variance = max(0.0, row.total_sq / row.count - mean * mean)
            latest = self._store.latest_for_metric(scope, row.metric, start, end)
            if latest is None:
                continue
            summaries.append(
                MetricSummary(
                    metric=row.metric,
                    count=row.count,
                    avg=mean,
                    min=row.min,
                    max=row.max,
                    std_dev=math.sqrt(variance),
                    latest_value=latest[0],
                    latest_timestamp=latest[1],
                )
            )
        return summaries

    def list_anomalies(
        self,
        device_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> AnomalyReport:
        """Lecturas anómalas recientes (más nuevas primero) agrupadas por métrica."""
        if limit is None:
            limit = self._config.anomaly_list_default
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        limit = min(int(limit), self._config.anomaly_list_max)

        anomalies = self._store.list_anomalies(
            device_id,
            ensure_utc(start) if start is not None else None,
            ensure_utc(end) if end is not None else None,
            limit=limit,
        )
        by_metric: Dict[MetricType, List[Reading]] = {}
        for reading in anomalies:
            by_metric.setdefault(reading.metric, []).append(reading)
        return AnomalyReport(total=len(anomalies), anomalies=anomalies, by_metric=by_metric)


def parse_metrics(metrics: MetricFilter) -> Optional[List[MetricType]]:
    if metrics is None:
        return None
    parsed: List[MetricType] = []
    for m in metrics:
        try:
            metric = m if isinstance(m, MetricType) else MetricType(str(m).strip())
        except ValueError:
            raise ValidationError(f"Unknown metric '{m}'") from None
        if metric not in parsed:
            parsed.append(metric)
    return parsed or None


def _parse_interval(interval: Union[Interval, str]) -> Interval:
    if isinstance(interval, Interval):
        return interval
    try:
        return Interval(str(interval))
    except ValueError:
        raise ValidationError(
            f"Unknown interval '{interval}' (expected hour, day, week or month)"
        ) from None


def _device_scope(device_ids: Sequence[str]) -> Tuple[str, ...]:
    scope = tuple(dict.fromkeys(d for d in device_ids if d))
    if not scope:
        raise ValidationError("At least one device is required")
    return scope


def _build_bucket(
    scope: Tuple[str, ...],
    interval: Interval,
    start: datetime,
    end: datetime,
    count: int,
    accumulators: Dict[MetricType, _Accumulator],
) -> AggregateBucket:
    return AggregateBucket(
        device_ids=scope,
        interval=interval,
        label=bucket_label(start, interval),
        start=start,
        end=end,
        count=count,
        metrics={metric: acc.to_stats(metric) for metric, acc in accumulators.items()},
    )
