"""Health, readiness y métricas Prometheus."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from ..container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok si el proceso está vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(container: ServiceContainer = Depends(get_container)):
    """Readiness probe: verifica conectividad con la BD."""
    try:
        with container.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
