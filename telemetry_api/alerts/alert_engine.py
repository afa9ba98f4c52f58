"""Alert Engine - dueño del ciclo de vida de las alertas.

Estados: OPEN -> RESOLVED (terminal). Responsabilidades:
- Crear alertas a partir de lecturas anómalas, batería, conectividad y
  mantenimiento (reglas en alert_rules.py).
- Suprimir duplicados: como máximo una alerta abierta por
  (device, alert_type, metric). El check + insert corre bajo un lock por
  clave. Si la condición empeora (warning -> critical) la abierta se da
  por reemplazada y se abre una nueva con la severidad mayor.
- Auto-resolver cuando la condición desaparece (batería recuperada,
  dispositivo que vuelve a comunicar, métrica que vuelve a la normalidad).
- Resolución manual con compare-and-set: una doble resolución es un
  Conflict, nunca un overwrite silencioso.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Collection, Dict, List, Optional, Sequence

from ..analytics import AnomalyResult, KeyedLocks
from ..clients import DeviceRegistry, MaintenanceLog
from ..core.domain import (
    SYSTEM_ACTOR,
    Actor,
    Alert,
    AlertSeverity,
    AlertType,
    Device,
    MetricType,
    Reading,
    build_alert,
)
from ..core.domain.timeutils import ensure_utc, hours_since, utc_now
from ..errors import Conflict, Forbidden, NotFound, Unavailable, ValidationError
from ..infrastructure.persistence import AlertFilter, AlertRepository, ReadingStore
from ..metrics import ALERTS_CREATED, ALERTS_RESOLVED
from .alert_rules import (
    AlertCandidate,
    AlertConfig,
    anomaly_alert,
    battery_alert,
    battery_cleared,
    connectivity_alert,
    maintenance_alert,
)

logger = logging.getLogger(__name__)

_THRESHOLD_TYPES = (AlertType.THRESHOLD_EXCEEDED, AlertType.THRESHOLD_BELOW)
_CONNECTIVITY_TYPES = (AlertType.OFFLINE, AlertType.CONNECTIVITY_ISSUE)
_SEVERITY_RANK = {AlertSeverity.INFO: 0, AlertSeverity.WARNING: 1, AlertSeverity.CRITICAL: 2}


@dataclass
class AlertEvaluation:
    device_id: str
    created: List[Alert] = field(default_factory=list)
    resolved: List[Alert] = field(default_factory=list)
    degraded_reasons: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_reasons)


class AlertEngine:
    def __init__(
        self,
        repository: AlertRepository,
        registry: DeviceRegistry,
        store: ReadingStore,
        maintenance_log: MaintenanceLog,
        config: Optional[AlertConfig] = None,
        locks: Optional[KeyedLocks] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repo = repository
        self._registry = registry
        self._store = store
        self._maintenance = maintenance_log
        self._config = config or AlertConfig()
        self._locks = locks or KeyedLocks()
        self._clock = clock

    # ------------------------------------------------------------------
    # Disparadores
    # ------------------------------------------------------------------

    def on_reading(self, reading: Reading, anomaly: AnomalyResult, device: Device) -> AlertEvaluation:
        """Evalúa los disparadores que dependen de una lectura recién persistida."""
        now = self._clock()
        result = AlertEvaluation(device_id=device.id)

        candidate = anomaly_alert(reading, anomaly, self._config)
        if candidate is not None:
            self._raise(device.id, candidate, now, result)
        elif not reading.is_anomaly:
            self._auto_resolve(
                device.id, _THRESHOLD_TYPES, reading.metric,
                f"{reading.metric.value} back within normal range", now, result,
            )

        if reading.metric == MetricType.BATTERY_LEVEL:
            device = replace(device, battery_level=reading.value)
        self._apply_battery(device, now, result)

        # El dispositivo acaba de comunicar
        self._auto_resolve(device.id, _CONNECTIVITY_TYPES, None, "device communicating again", now, result)
        return result

    def evaluate_device(self, device_id: str, now: Optional[datetime] = None) -> AlertEvaluation:
        """Evalúa batería, conectividad y mantenimiento de un dispositivo.

        Si el registry, el Maintenance Log o el store no responden, la
        evaluación sigue con lo disponible y lo marca en `degraded_reasons`.
        Sin registry no se evalúa la batería y la conectividad sale solo de
        las lecturas guardadas.

        Raises:
            NotFound: el dispositivo no existe.
        """
        now = ensure_utc(now) if now is not None else self._clock()
        result = AlertEvaluation(device_id=device_id)

        device: Optional[Device] = None
        try:
            device = self._registry.get_device(device_id)
        except Unavailable as e:
            logger.warning("ALERT_EVAL_DEGRADED device=%s source=device_registry err=%s", device_id, e)
            result.degraded_reasons.append(f"device_registry: {e.message}")
        else:
            self._apply_battery(device, now, result)

        last_seen = device.last_communication if device is not None else None
        try:
            latest_reading = self._store.latest_timestamp(device_id)
        except Exception as e:
            logger.warning("ALERT_EVAL_DEGRADED device=%s source=reading_store err=%s", device_id, e)
            result.degraded_reasons.append(f"reading_store: {e}")
        else:
            if latest_reading is not None and (last_seen is None or latest_reading > last_seen):
                last_seen = latest_reading

        candidate = connectivity_alert(last_seen, now, self._config)
        if candidate is not None:
            self._raise(device_id, candidate, now, result)
        elif last_seen is not None and hours_since(last_seen, now) <= self._config.connectivity_warning_hours:
            self._auto_resolve(device_id, _CONNECTIVITY_TYPES, None, "device communicating again", now, result)

        records = None
        try:
            records = self._maintenance.list_maintenance(device_id)
        except Unavailable as e:
            logger.warning("ALERT_EVAL_DEGRADED device=%s source=maintenance_log err=%s", device_id, e)
            result.degraded_reasons.append(f"maintenance_log: {e.message}")
        candidate = maintenance_alert(device, records, now)
        if candidate is not None:
            self._raise(device_id, candidate, now, result)

        return result

    def _apply_battery(self, device: Device, now: datetime, result: AlertEvaluation) -> None:
        cleared = battery_cleared(device, self._config)
        if cleared:
            if device.battery_charging:
                reason = "device charging"
            else:
                reason = f"battery at {device.battery_level:g}%"
            self._auto_resolve(
                device.id, (AlertType.LOW_BATTERY,), None, reason, now, result, severities=cleared
            )
        candidate = battery_alert(device, self._config)
        if candidate is not None:
            self._raise(device.id, candidate, now, result)

    def _raise(
        self, device_id: str, candidate: AlertCandidate, now: datetime, result: AlertEvaluation
    ) -> Optional[Alert]:
        key = ("alert", device_id, candidate.alert_type.value,
               candidate.metric.value if candidate.metric else None)
        with self._locks.hold(key):
            existing = self._repo.find_open(device_id, candidate.alert_type, candidate.metric)
            if existing is not None and (
                _SEVERITY_RANK[existing.severity] >= _SEVERITY_RANK[candidate.severity]
            ):
                logger.debug(
                    "ALERT_SUPPRESSED device=%s type=%s open_alert=%s",
                    device_id, candidate.alert_type.value, existing.id,
                )
                return None
            alert = build_alert(
                device_id=device_id,
                alert_type=candidate.alert_type,
                severity=candidate.severity,
                message=candidate.message,
                metric=candidate.metric,
                value=_finite_or_none(candidate.value),
                threshold=_finite_or_none(candidate.threshold),
                details=candidate.details,
                created_at=now,
            )
            if existing is not None:
                self._resolve_open(existing, f"superseded by {alert.id}", now, result)
            self._repo.insert(alert)

        ALERTS_CREATED.labels(alert_type=alert.alert_type.value, severity=alert.severity.value).inc()
        logger.info(
            "ALERT_CREATED id=%s device=%s type=%s severity=%s",
            alert.id, device_id, alert.alert_type.value, alert.severity.value,
        )
        result.created.append(alert)
        return alert

    def _auto_resolve(
        self,
        device_id: str,
        alert_types: Sequence[AlertType],
        metric: Optional[MetricType],
        reason: str,
        now: datetime,
        result: AlertEvaluation,
        severities: Optional[Collection[AlertSeverity]] = None,
    ) -> None:
        for alert in self._repo.list_open(device_id, alert_types, metric):
            if severities is not None and alert.severity not in severities:
                continue
            self._resolve_open(alert, reason, now, result)

    def _resolve_open(self, alert: Alert, reason: str, now: datetime, result: AlertEvaluation) -> None:
        resolved = self._repo.resolve(
            alert.id,
            resolved_by=SYSTEM_ACTOR.actor_id,
            resolved_at=now,
            notes=f"Auto-resolved: {reason}",
        )
        if resolved is None:
            # Alguien la resolvió entre la lectura y el update
            return
        ALERTS_RESOLVED.labels(alert_type=resolved.alert_type.value, mode="auto").inc()
        logger.info(
            "ALERT_AUTO_RESOLVED id=%s device=%s type=%s reason=%s",
            resolved.id, resolved.device_id, resolved.alert_type.value, reason,
        )
        result.resolved.append(resolved)

    # ------------------------------------------------------------------
    # Operaciones de consumidores
    # ------------------------------------------------------------------

    def resolve(self, alert_id: str, actor: Actor, notes: Optional[str] = None) -> Alert:
        """Resuelve una alerta abierta.

        Raises:
            NotFound: la alerta no existe.
            Forbidden: el actor no es admin ni dueño del dispositivo.
            Conflict: la alerta ya estaba resuelta (no se modifica nada).
            Unavailable: el registry no responde para verificar autoridad.
        """
        alert = self._repo.get(alert_id)
        if alert is None:
            raise NotFound(f"Alert {alert_id} not found")

        if not actor.is_admin:
            try:
                device = self._registry.get_device(alert.device_id)
            except NotFound:
                raise Forbidden(
                    f"Actor {actor.actor_id} has no authority over device {alert.device_id}"
                ) from None
            if not actor.can_manage(device):
                raise Forbidden(
                    f"Actor {actor.actor_id} has no authority over device {alert.device_id}"
                )

        if alert.resolved:
            raise Conflict(f"Alert {alert_id} is already resolved")

        resolved = self._repo.resolve(
            alert_id,
            resolved_by=actor.actor_id,
            resolved_at=self._clock(),
            notes=notes,
        )
        if resolved is None:
            if self._repo.get(alert_id) is None:
                raise NotFound(f"Alert {alert_id} not found")
            raise Conflict(f"Alert {alert_id} is already resolved")

        ALERTS_RESOLVED.labels(alert_type=resolved.alert_type.value, mode="manual").inc()
        logger.info("ALERT_RESOLVED id=%s by=%s", alert_id, actor.actor_id)
        return resolved

    def list_alerts(self, flt: Optional[AlertFilter] = None, page: int = 1, limit: int = 20) -> Dict:
        """Página de alertas más recientes primero.

        Returns:
            {"alerts": [Alert], "pagination": {total, page, limit, pages}}
        """
        flt = flt or AlertFilter()
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        if flt.start is not None and flt.end is not None and flt.start > flt.end:
            raise ValidationError("startDate must be before endDate")
        limit = min(limit, self._config.max_page_size)

        alerts, total = self._repo.list(flt, page, limit)
        return {
            "alerts": alerts,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    def summary(self, device_ids: Optional[Sequence[str]] = None) -> Dict:
        return self._repo.summary(device_ids, top=self._config.summary_top_devices)

    def purge(self, alert_id: str, actor: Actor) -> None:
        """Borrado administrativo explícito. Solo admins."""
        if not actor.is_admin:
            raise Forbidden("Only administrators can delete alerts")
        if not self._repo.delete(alert_id):
            raise NotFound(f"Alert {alert_id} not found")
        logger.info("ALERT_PURGED id=%s by=%s", alert_id, actor.actor_id)


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value
