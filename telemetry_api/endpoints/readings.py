"""Ingesta de lecturas y consulta de anomalías."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import require_api_key
from ..container import ServiceContainer, get_container
from ..schemas import AnomalyReportOut, ReadingIn, ReadingOut

router = APIRouter(tags=["readings"], dependencies=[Depends(require_api_key)])


@router.post("/readings", response_model=ReadingOut, status_code=201)
def submit_reading(payload: ReadingIn, container: ServiceContainer = Depends(get_container)):
    reading = container.ingest.submit_reading(
        device_id=payload.device,
        metric=payload.metric,
        value=payload.value,
        unit=payload.unit,
        timestamp=payload.timestamp,
        location=payload.location.model_dump() if payload.location else None,
        quality=payload.quality,
    )
    return ReadingOut.from_domain(reading)


@router.get("/devices/{device_id}/anomalies", response_model=AnomalyReportOut)
def list_anomalies(
    device_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    report = container.aggregator.list_anomalies(device_id, start_date, end_date, limit)
    return AnomalyReportOut(
        device=device_id,
        total=report.total,
        anomalies=[ReadingOut.from_domain(r) for r in report.anomalies],
        by_metric={
            metric.value: [ReadingOut.from_domain(r) for r in readings]
            for metric, readings in report.by_metric.items()
        },
    )
