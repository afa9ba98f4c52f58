"""Reglas de disparo de alertas.

Funciones puras: reciben el estado (dispositivo, lectura, resultado del
detector, registros de mantenimiento) y devuelven un `AlertCandidate` o
None. No leen la BD ni llaman servicios; el AlertEngine se encarga de la
deduplicación y la persistencia.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ..analytics import AnomalyResult
from ..core.domain import (
    AlertSeverity,
    AlertType,
    Device,
    MaintenanceRecord,
    MaintenanceStatus,
    MetricType,
    Reading,
)
from ..core.domain.timeutils import ensure_utc, hours_since


@dataclass(frozen=True)
class AlertConfig:
    battery_critical: float = 20.0
    battery_low: float = 50.0
    battery_recovered: float = 30.0
    offline_hours: float = 24.0
    connectivity_warning_hours: float = 12.0
    anomaly_min_z: float = 3.0
    anomaly_critical_z: float = 5.0
    max_page_size: int = 100
    summary_top_devices: int = 10

    @classmethod
    def from_env(cls) -> "AlertConfig":
        return cls(
            battery_recovered=float(os.getenv("BATTERY_RECOVERED_LEVEL", "30")),
            offline_hours=float(os.getenv("OFFLINE_HOURS", "24")),
            connectivity_warning_hours=float(os.getenv("CONNECTIVITY_WARNING_HOURS", "12")),
            anomaly_min_z=float(os.getenv("ALERT_ANOMALY_MIN_Z", "3")),
            anomaly_critical_z=float(os.getenv("ALERT_ANOMALY_CRITICAL_Z", "5")),
            max_page_size=int(os.getenv("ALERTS_MAX_PAGE_SIZE", "100")),
        )


@dataclass(frozen=True)
class AlertCandidate:
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    metric: Optional[MetricType] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


def anomaly_alert(
    reading: Reading, anomaly: AnomalyResult, config: AlertConfig
) -> Optional[AlertCandidate]:
    """threshold_exceeded / threshold_below para lecturas anómalas con z suficiente."""
    if not anomaly.is_anomaly or anomaly.z_score is None or anomaly.mean is None:
        return None
    z = anomaly.z_score
    if z < config.anomaly_min_z:
        return None

    above = reading.value > anomaly.mean
    alert_type = AlertType.THRESHOLD_EXCEEDED if above else AlertType.THRESHOLD_BELOW
    critical = math.isinf(z) or z >= config.anomaly_critical_z
    z_text = "inf" if math.isinf(z) else f"{z:.2f}"
    return AlertCandidate(
        alert_type=alert_type,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        message=(
            f"{reading.metric.value} reading {reading.value:g} {reading.unit} is "
            f"{'above' if above else 'below'} the recent mean {anomaly.mean:.2f} (z={z_text})"
        ),
        metric=reading.metric,
        value=reading.value,
        threshold=anomaly.mean,
        details={
            "reading_id": reading.id,
            "z_score": None if math.isinf(z) else round(z, 4),
            "std_dev": anomaly.std_dev,
            "sample_count": anomaly.sample_count,
        },
    )


def battery_alert(device: Device, config: AlertConfig) -> Optional[AlertCandidate]:
    level = device.battery_level
    if level is None or device.battery_charging:
        return None
    if level < config.battery_critical:
        severity, threshold = AlertSeverity.CRITICAL, config.battery_critical
    elif level < config.battery_low:
        severity, threshold = AlertSeverity.WARNING, config.battery_low
    else:
        return None
    return AlertCandidate(
        alert_type=AlertType.LOW_BATTERY,
        severity=severity,
        message=f"Battery level at {level:g}% (below {threshold:g}%)",
        value=level,
        threshold=threshold,
    )


def battery_cleared(device: Device, config: AlertConfig) -> FrozenSet[AlertSeverity]:
    """Severidades de low_battery que ya no aplican al nivel actual.

    Cargando o por encima de `battery_low` se limpian todas. Una crítica se
    limpia recién al llegar a `battery_recovered` (histéresis sobre
    `battery_critical`), y en su lugar queda la warning que corresponda.
    """
    if device.battery_charging:
        return frozenset({AlertSeverity.WARNING, AlertSeverity.CRITICAL})
    level = device.battery_level
    if level is None:
        return frozenset()
    if level >= config.battery_low:
        return frozenset({AlertSeverity.WARNING, AlertSeverity.CRITICAL})
    if level >= max(config.battery_recovered, config.battery_critical):
        return frozenset({AlertSeverity.CRITICAL})
    return frozenset()


def connectivity_alert(
    last_seen: Optional[datetime], now: datetime, config: AlertConfig
) -> Optional[AlertCandidate]:
    """offline (>24h, critical) o connectivity_issue (>12h, warning)."""
    if last_seen is None:
        return None
    elapsed = hours_since(last_seen, now)
    details = {"last_seen": ensure_utc(last_seen).isoformat(), "hours_silent": round(elapsed, 2)}
    if elapsed > config.offline_hours:
        return AlertCandidate(
            alert_type=AlertType.OFFLINE,
            severity=AlertSeverity.CRITICAL,
            message=f"No communication for {elapsed:.1f} hours",
            value=round(elapsed, 2),
            threshold=config.offline_hours,
            details=details,
        )
    if elapsed > config.connectivity_warning_hours:
        return AlertCandidate(
            alert_type=AlertType.CONNECTIVITY_ISSUE,
            severity=AlertSeverity.WARNING,
            message=f"No communication for {elapsed:.1f} hours",
            value=round(elapsed, 2),
            threshold=config.connectivity_warning_hours,
            details=details,
        )
    return None


def maintenance_alert(
    device: Optional[Device],
    records: Optional[Iterable[MaintenanceRecord]],
    now: datetime,
) -> Optional[AlertCandidate]:
    """maintenance_required si next_maintenance pasó o hay un mantenimiento programado vencido.

    `records` None significa que el Maintenance Log no estuvo disponible;
    en ese caso solo se mira el dispositivo. `device` None (registry caído)
    deja solo los registros del log.
    """
    due_at = device.next_maintenance if device is not None else None
    if due_at is not None and ensure_utc(due_at) < now:
        due = ensure_utc(due_at)
        return AlertCandidate(
            alert_type=AlertType.MAINTENANCE_REQUIRED,
            severity=AlertSeverity.WARNING,
            message=f"Maintenance overdue since {due.date().isoformat()}",
            details={"due": due.isoformat(), "source": "device"},
        )

    for record in records or ():
        if (
            record.status == MaintenanceStatus.SCHEDULED
            and record.completed_date is None
            and record.scheduled_date is not None
            and ensure_utc(record.scheduled_date) < now
        ):
            due = ensure_utc(record.scheduled_date)
            return AlertCandidate(
                alert_type=AlertType.MAINTENANCE_REQUIRED,
                severity=AlertSeverity.WARNING,
                message=(
                    f"Scheduled {record.maintenance_type} maintenance overdue since "
                    f"{due.date().isoformat()}"
                ),
                details={
                    "due": due.isoformat(),
                    "source": "maintenance_log",
                    "maintenance_type": record.maintenance_type,
                },
            )
    return None
