"""Listado, resumen, resolución y purga de alertas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from ..auth import get_actor, require_api_key
from ..container import ServiceContainer, get_container
from ..core.domain import Actor, AlertSeverity, AlertType
from ..infrastructure.persistence import AlertFilter
from ..schemas import (
    AlertEvaluationOut,
    AlertListOut,
    AlertOut,
    AlertSummaryOut,
    PaginationOut,
    ResolveAlertIn,
)
from ._params import split_csv

router = APIRouter(tags=["alerts"], dependencies=[Depends(require_api_key)])


@router.get("/alerts", response_model=AlertListOut)
def list_alerts(
    device_id: Optional[str] = None,
    resolved: Optional[bool] = None,
    severity: Optional[AlertSeverity] = None,
    alert_type: Optional[AlertType] = Query(default=None, alias="type"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    flt = AlertFilter(
        device_ids=split_csv(device_id),
        resolved=resolved,
        severity=severity,
        alert_type=alert_type,
        start=start_date,
        end=end_date,
    )
    result = container.alert_engine.list_alerts(flt, page=page, limit=limit)
    return AlertListOut(
        alerts=[AlertOut.from_domain(a) for a in result["alerts"]],
        pagination=PaginationOut(**result["pagination"]),
    )


@router.get("/alerts/summary", response_model=AlertSummaryOut)
def alerts_summary(
    device_ids: Optional[str] = None,
    container: ServiceContainer = Depends(get_container),
):
    return AlertSummaryOut(**container.alert_engine.summary(split_csv(device_ids)))


@router.put("/alerts/{alert_id}/resolve", response_model=AlertOut)
def resolve_alert(
    alert_id: str,
    payload: Optional[ResolveAlertIn] = Body(default=None),
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    notes = payload.notes if payload else None
    alert = container.alert_engine.resolve(alert_id, actor, notes)
    return AlertOut.from_domain(alert)


@router.delete("/alerts/{alert_id}", status_code=204)
def purge_alert(
    alert_id: str,
    actor: Actor = Depends(get_actor),
    container: ServiceContainer = Depends(get_container),
):
    container.alert_engine.purge(alert_id, actor)
    return Response(status_code=204)


@router.post("/devices/{device_id}/alerts/evaluate", response_model=AlertEvaluationOut)
def evaluate_device_alerts(device_id: str, container: ServiceContainer = Depends(get_container)):
    result = container.alert_engine.evaluate_device(device_id)
    return AlertEvaluationOut(
        device_id=result.device_id,
        created=[AlertOut.from_domain(a) for a in result.created],
        resolved=[AlertOut.from_domain(a) for a in result.resolved],
        degraded=result.degraded,
        degraded_reasons=result.degraded_reasons,
    )
