"""Agregados, resumen por métrica y health score."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..auth import require_api_key
from ..container import ServiceContainer, get_container
from ..core.domain import Interval
from ..core.domain.timeutils import ensure_utc
from ..errors import ValidationError
from ..schemas import (
    AggregateBucketOut,
    AggregateOut,
    DeviceHealthOut,
    HealthIssueOut,
    MetricSummaryOut,
    SummaryOut,
)
from ._params import split_csv

router = APIRouter(tags=["analytics"], dependencies=[Depends(require_api_key)])


def _aggregate(
    container: ServiceContainer,
    device_ids: List[str],
    start_date: datetime,
    end_date: datetime,
    interval: Interval,
    metrics: Optional[str],
) -> AggregateOut:
    buckets = container.aggregator.aggregate(
        device_ids, start_date, end_date, interval, split_csv(metrics)
    )
    return AggregateOut(
        device_ids=list(dict.fromkeys(device_ids)),
        interval=interval.value,
        start_date=ensure_utc(start_date),
        end_date=ensure_utc(end_date),
        buckets=[AggregateBucketOut.from_domain(b) for b in buckets],
    )


@router.get("/devices/{device_id}/aggregate", response_model=AggregateOut)
def aggregate_device(
    device_id: str,
    start_date: datetime,
    end_date: datetime,
    interval: Interval = Interval.DAY,
    metrics: Optional[str] = Query(default=None, description="Comma-separated metric types"),
    container: ServiceContainer = Depends(get_container),
):
    return _aggregate(container, [device_id], start_date, end_date, interval, metrics)


@router.get("/analytics/aggregate", response_model=AggregateOut)
def aggregate_devices(
    device_ids: str = Query(..., description="Comma-separated device ids"),
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    interval: Interval = Interval.DAY,
    metrics: Optional[str] = None,
    container: ServiceContainer = Depends(get_container),
):
    ids = split_csv(device_ids)
    if not ids:
        raise ValidationError("device_ids is required")
    return _aggregate(container, ids, start_date, end_date, interval, metrics)


@router.get("/devices/{device_id}/summary", response_model=SummaryOut)
def summarize_device(
    device_id: str,
    metrics: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    container: ServiceContainer = Depends(get_container),
):
    summaries = container.aggregator.summarize([device_id], split_csv(metrics), start_date, end_date)
    return SummaryOut(device=device_id, metrics=[MetricSummaryOut.from_domain(s) for s in summaries])


@router.get("/devices/{device_id}/health", response_model=DeviceHealthOut)
def device_health(device_id: str, container: ServiceContainer = Depends(get_container)):
    report = container.health_scorer.score(device_id)
    return DeviceHealthOut(
        device_id=report.device_id,
        score=report.score,
        status=report.status,
        issues=[
            HealthIssueOut(type=i.type, severity=i.severity, message=i.message)
            for i in report.issues
        ],
        last_checked=report.last_checked,
        degraded=report.degraded,
        degraded_dimensions=list(report.degraded_dimensions),
    )
