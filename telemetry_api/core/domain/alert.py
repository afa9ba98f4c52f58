"""Modelo de dominio para alertas.

Ciclo de vida: OPEN -> RESOLVED. RESOLVED es terminal; los campos de
resolución (resolved_by, resolved_at, resolution_notes) se escriben juntos
en un único compare-and-set, nunca por separado.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .enums import AlertSeverity, AlertType, MetricType
from .timeutils import ensure_utc, utc_now


class AlertState(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Alert:
    id: str
    device_id: str
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    created_at: datetime
    metric: Optional[MetricType] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None

    @property
    def state(self) -> AlertState:
        return AlertState.RESOLVED if self.resolved else AlertState.OPEN


def build_alert(
    *,
    device_id: str,
    alert_type: AlertType,
    severity: AlertSeverity,
    message: str,
    metric: Optional[MetricType] = None,
    value: Optional[float] = None,
    threshold: Optional[float] = None,
    details: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> Alert:
    """Construye una alerta abierta con id generado."""
    return Alert(
        id=uuid.uuid4().hex,
        device_id=device_id,
        alert_type=alert_type,
        severity=severity,
        message=message,
        created_at=ensure_utc(created_at) if created_at else utc_now(),
        metric=metric,
        value=value,
        threshold=threshold,
        details=dict(details or {}),
    )
