"""Device Health Scorer - score compuesto 0-100 con issues itemizados.

Parte de 100 y aplica deducciones independientes:

    batería      < 20 -> -30 (high)     < 50 -> -15 (medium)
    conectividad > 24h -> -25 (high)    > 12h -> -10 (medium)
    mantenimiento vencido -> -15 (medium)
    anomalías 7d > 10 -> -20 (high)     > 5 -> -10 (medium)

Es una lectura pura. Si una dimensión falla (p.ej. la BD no responde al
contar anomalías, o el registry está caído para batería y mantenimiento)
se omite su deducción y se marca en `degraded_dimensions`; el resto del
score se calcula igual.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from ..clients import DeviceRegistry
from ..core.domain import Device
from ..core.domain.timeutils import ensure_utc, hours_since, utc_now
from ..errors import Unavailable
from ..infrastructure.persistence import ReadingStore
from .config import HealthConfig

logger = logging.getLogger(__name__)

# Dimensiones que solo se pueden puntuar con datos del registry
_REGISTRY_DIMENSIONS = frozenset({"battery", "maintenance"})


@dataclass(frozen=True)
class HealthIssue:
    type: str
    severity: str
    message: str


@dataclass(frozen=True)
class HealthReport:
    device_id: str
    score: int
    status: str
    issues: Tuple[HealthIssue, ...]
    last_checked: datetime
    degraded_dimensions: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_dimensions)


def health_status(score: int) -> str:
    if score < 50:
        return "poor"
    if score < 70:
        return "fair"
    if score < 90:
        return "good"
    return "excellent"


class DeviceHealthScorer:
    def __init__(
        self,
        registry: DeviceRegistry,
        store: ReadingStore,
        config: Optional[HealthConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._registry = registry
        self._store = store
        self._config = config or HealthConfig()
        self._clock = clock

    def score(self, device_id: str, now: Optional[datetime] = None) -> HealthReport:
        """Calcula el health score de un dispositivo.

        Si el registry no responde, batería y mantenimiento quedan en
        `degraded_dimensions` y el resto se puntúa con las lecturas guardadas.

        Raises:
            NotFound: el dispositivo no existe.
        """
        now = ensure_utc(now) if now is not None else self._clock()

        device: Optional[Device] = None
        try:
            device = self._registry.get_device(device_id)
        except Unavailable as e:
            logger.warning(
                "HEALTH_DIMENSION_DEGRADED device=%s dimension=device_registry err=%s", device_id, e.message
            )

        issues: List[HealthIssue] = []
        degraded: List[str] = []
        deduction = 0

        checks = (
            ("battery", self._battery),
            ("connectivity", self._connectivity),
            ("maintenance", self._maintenance),
            ("data_quality", self._anomalies),
        )
        for dimension, check in checks:
            if device is None and dimension in _REGISTRY_DIMENSIONS:
                degraded.append(dimension)
                continue
            try:
                result = check(device_id, device, now)
            except Exception as e:
                logger.warning(
                    "HEALTH_DIMENSION_DEGRADED device=%s dimension=%s err=%s",
                    device_id, dimension, e,
                )
                degraded.append(dimension)
                continue
            if result is not None:
                points, issue = result
                deduction += points
                issues.append(issue)

        score = max(0, 100 - deduction)
        return HealthReport(
            device_id=device.id if device is not None else device_id,
            score=score,
            status=health_status(score),
            issues=tuple(issues),
            last_checked=now,
            degraded_dimensions=tuple(degraded),
        )

    def _battery(self, device_id: str, device: Device, now: datetime) -> Optional[Tuple[int, HealthIssue]]:
        level = device.battery_level
        if level is None:
            return None
        if level < self._config.battery_critical:
            return 30, HealthIssue("battery", "high", "Battery level critically low")
        if level < self._config.battery_low:
            return 15, HealthIssue("battery", "medium", "Battery level low")
        return None

    def _connectivity(
        self, device_id: str, device: Optional[Device], now: datetime
    ) -> Optional[Tuple[int, HealthIssue]]:
        candidates = [self._store.latest_timestamp(device_id)]
        if device is not None:
            candidates.append(device.last_communication)
        known = [ensure_utc(c) for c in candidates if c is not None]
        if not known:
            return None
        elapsed = hours_since(max(known), now)
        if elapsed > self._config.offline_hours:
            return 25, HealthIssue(
                "connectivity", "high", f"No readings in {self._config.offline_hours:g}+ hours"
            )
        if elapsed > self._config.stale_hours:
            return 10, HealthIssue(
                "connectivity", "medium", f"No readings in {self._config.stale_hours:g}+ hours"
            )
        return None

    def _maintenance(self, device_id: str, device: Device, now: datetime) -> Optional[Tuple[int, HealthIssue]]:
        if device.next_maintenance is not None and ensure_utc(device.next_maintenance) < now:
            return 15, HealthIssue("maintenance", "medium", "Maintenance overdue")
        return None

    def _anomalies(
        self, device_id: str, device: Optional[Device], now: datetime
    ) -> Optional[Tuple[int, HealthIssue]]:
        since = now - timedelta(days=self._config.anomaly_lookback_days)
        recent = self._store.count_anomalies(device_id, since)
        if recent > self._config.anomaly_high_count:
            return 20, HealthIssue("data_quality", "high", "High number of anomalous readings")
        if recent > self._config.anomaly_medium_count:
            return 10, HealthIssue("data_quality", "medium", "Elevated anomalous readings")
        return None
