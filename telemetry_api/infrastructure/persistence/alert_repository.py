"""Repositorio de alertas - operaciones de persistencia.

La resolución es un compare-and-set: el UPDATE solo afecta filas que
siguen abiertas, así una doble resolución nunca sobreescribe la primera.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, insert, select, true, update
from sqlalchemy.engine import Engine

from ...core.domain import Alert, AlertSeverity, AlertType, MetricType
from ...core.domain.timeutils import from_db, to_db
from .schema import alerts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertFilter:
    device_ids: Optional[Sequence[str]] = None
    resolved: Optional[bool] = None
    severity: Optional[AlertSeverity] = None
    alert_type: Optional[AlertType] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class AlertRepository:
    """Store SQL de alertas."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def insert(self, alert: Alert) -> None:
        with self._engine.begin() as conn:
            conn.execute(insert(alerts).values(**_alert_to_row(alert)))

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._engine.connect() as conn:
            row = conn.execute(select(alerts).where(alerts.c.id == alert_id)).first()
        return _row_to_alert(row) if row is not None else None

    def find_open(
        self,
        device_id: str,
        alert_type: AlertType,
        metric: Optional[MetricType] = None,
    ) -> Optional[Alert]:
        """Alerta abierta más reciente para (device, tipo, métrica)."""
        metric_clause = (
            alerts.c.metric.is_(None) if metric is None else alerts.c.metric == metric.value
        )
        stmt = (
            select(alerts)
            .where(
                alerts.c.device_id == device_id,
                alerts.c.alert_type == alert_type.value,
                alerts.c.resolved.is_(False),
                metric_clause,
            )
            .order_by(alerts.c.created_at.desc())
            .limit(1)
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _row_to_alert(row) if row is not None else None

    def list_open(
        self,
        device_id: str,
        alert_types: Sequence[AlertType],
        metric: Optional[MetricType] = None,
    ) -> List[Alert]:
        clauses = [
            alerts.c.device_id == device_id,
            alerts.c.alert_type.in_([t.value for t in alert_types]),
            alerts.c.resolved.is_(False),
        ]
        if metric is not None:
            clauses.append(alerts.c.metric == metric.value)
        stmt = select(alerts).where(and_(*clauses)).order_by(alerts.c.created_at.asc())
        with self._engine.connect() as conn:
            return [_row_to_alert(row) for row in conn.execute(stmt)]

    def list(self, flt: AlertFilter, page: int, limit: int) -> Tuple[List[Alert], int]:
        """Página de alertas (más recientes primero) y el total del filtro."""
        where = _filter_clause(flt)
        count_stmt = select(func.count()).select_from(alerts).where(where)
        stmt = (
            select(alerts)
            .where(where)
            .order_by(alerts.c.created_at.desc(), alerts.c.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        with self._engine.connect() as conn:
            total = int(conn.execute(count_stmt).scalar_one())
            rows = conn.execute(stmt).all()
        return [_row_to_alert(row) for row in rows], total

    def resolve(
        self,
        alert_id: str,
        *,
        resolved_by: str,
        resolved_at: datetime,
        notes: Optional[str],
    ) -> Optional[Alert]:
        """Marca la alerta como resuelta solo si sigue abierta.

        Returns:
            La alerta resuelta, o None si no existía o ya estaba resuelta.
        """
        stmt = (
            update(alerts)
            .where(alerts.c.id == alert_id, alerts.c.resolved.is_(False))
            .values(
                resolved=True,
                resolved_by=resolved_by,
                resolved_at=to_db(resolved_at),
                resolution_notes=notes,
            )
        )
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
            if result.rowcount != 1:
                return None
            row = conn.execute(select(alerts).where(alerts.c.id == alert_id)).first()
        return _row_to_alert(row)

    def delete(self, alert_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(delete(alerts).where(alerts.c.id == alert_id))
        return bool(result.rowcount)

    def summary(self, device_ids: Optional[Sequence[str]] = None, top: int = 10) -> dict:
        """Conteos para el resumen de alertas (total, abiertas, críticas, por tipo, top devices)."""
        scope = alerts.c.device_id.in_(list(device_ids)) if device_ids is not None else true()
        open_scope = and_(scope, alerts.c.resolved.is_(False))

        with self._engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(alerts).where(scope)).scalar_one()
            unresolved = conn.execute(
                select(func.count()).select_from(alerts).where(open_scope)
            ).scalar_one()
            critical = conn.execute(
                select(func.count())
                .select_from(alerts)
                .where(open_scope, alerts.c.severity == AlertSeverity.CRITICAL.value)
            ).scalar_one()

            n = func.count().label("n")
            by_type = conn.execute(
                select(alerts.c.alert_type, n)
                .where(open_scope)
                .group_by(alerts.c.alert_type)
                .order_by(n.desc())
            ).all()
            top_devices = conn.execute(
                select(alerts.c.device_id, n)
                .where(open_scope)
                .group_by(alerts.c.device_id)
                .order_by(n.desc())
                .limit(top)
            ).all()

        return {
            "total": int(total),
            "unresolved": int(unresolved),
            "critical": int(critical),
            "by_type": [{"type": t, "count": int(c)} for t, c in by_type],
            "top_devices": [{"device_id": d, "count": int(c)} for d, c in top_devices],
        }


def _filter_clause(flt: AlertFilter):
    clauses = []
    if flt.device_ids is not None:
        clauses.append(alerts.c.device_id.in_(list(flt.device_ids)))
    if flt.resolved is not None:
        clauses.append(alerts.c.resolved.is_(flt.resolved))
    if flt.severity is not None:
        clauses.append(alerts.c.severity == flt.severity.value)
    if flt.alert_type is not None:
        clauses.append(alerts.c.alert_type == flt.alert_type.value)
    if flt.start is not None:
        clauses.append(alerts.c.created_at >= to_db(flt.start))
    if flt.end is not None:
        clauses.append(alerts.c.created_at <= to_db(flt.end))
    return and_(true(), *clauses)


def _alert_to_row(alert: Alert) -> dict:
    return {
        "id": alert.id,
        "device_id": alert.device_id,
        "alert_type": alert.alert_type.value,
        "severity": alert.severity.value,
        "message": alert.message,
        "metric": alert.metric.value if alert.metric else None,
        "value": alert.value,
        "threshold": alert.threshold,
        "details": alert.details or {},
        "created_at": to_db(alert.created_at),
        "resolved": bool(alert.resolved),
        "resolved_by": alert.resolved_by,
        "resolved_at": to_db(alert.resolved_at),
        "resolution_notes": alert.resolution_notes,
    }


def _row_to_alert(row) -> Alert:
    return Alert(
        id=str(row.id),
        device_id=str(row.device_id),
        alert_type=AlertType(row.alert_type),
        severity=AlertSeverity(row.severity),
        message=str(row.message),
        created_at=from_db(row.created_at),
        metric=MetricType(row.metric) if row.metric else None,
        value=float(row.value) if row.value is not None else None,
        threshold=float(row.threshold) if row.threshold is not None else None,
        details=dict(row.details or {}),
        resolved=bool(row.resolved),
        resolved_by=row.resolved_by,
        resolved_at=from_db(row.resolved_at),
        resolution_notes=row.resolution_notes,
    )
