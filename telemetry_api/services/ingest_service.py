"""Servicio de ingesta de lecturas.

Flujo por lectura:

    validar -> registry.get_device -> [lock (device, metric)]
        detector.evaluate -> store.insert
    -> alert_engine.on_reading (best-effort)
    -> registry.record_telemetry (best-effort)

La evaluación de anomalía y el insert corren bajo el mismo lock por
(device, metric): dos lecturas concurrentes del mismo sensor nunca se
puntúan contra la misma ventana desactualizada.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from ..alerts import AlertEngine
from ..analytics import AnomalyDetector, KeyedLocks
from ..clients import DeviceRegistry
from ..core.domain import Location, MetricType, Reading, build_reading
from ..core.domain.timeutils import utc_now
from ..core.validation import ReadingValidator
from ..errors import NotFound, Unavailable, ValidationError
from ..infrastructure.persistence import ReadingStore
from ..metrics import ANOMALIES_FLAGGED, READINGS_INGESTED, READINGS_REJECTED

logger = logging.getLogger(__name__)


class TelemetryIngestService:
    def __init__(
        self,
        store: ReadingStore,
        registry: DeviceRegistry,
        detector: AnomalyDetector,
        alert_engine: AlertEngine,
        *,
        validator: Optional[ReadingValidator] = None,
        locks: Optional[KeyedLocks] = None,
        retention_days: int = 365,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._registry = registry
        self._detector = detector
        self._alerts = alert_engine
        self._validator = validator or ReadingValidator()
        self._locks = locks or KeyedLocks()
        self._retention_days = retention_days
        self._clock = clock

    def submit_reading(
        self,
        device_id: str,
        metric: Union[MetricType, str],
        value: Any,
        unit: str,
        timestamp: Optional[datetime] = None,
        location: Union[Location, Mapping[str, Any], None] = None,
        quality: Optional[str] = None,
    ) -> Reading:
        """Valida, puntúa y persiste una lectura.

        Returns:
            La lectura persistida con `is_anomaly` / `anomaly_score`.

        Raises:
            ValidationError: campos ausentes o inválidos.
            NotFound: dispositivo desconocido.
            Unavailable: el Device Registry no responde.
        """
        try:
            data = self._validator.validate(
                device_id=device_id,
                metric=metric,
                value=value,
                unit=unit,
                timestamp=timestamp,
                location=location,
                quality=quality,
            )
        except ValidationError as e:
            READINGS_REJECTED.labels(reason="validation").inc()
            logger.info("READING_REJECTED device=%s reason=%s", device_id, e.message)
            raise

        try:
            device = self._registry.get_device(data.device_id)
        except NotFound:
            READINGS_REJECTED.labels(reason="not_found").inc()
            raise
        except Unavailable:
            READINGS_REJECTED.labels(reason="unavailable").inc()
            raise

        with self._locks.hold(("reading", device.id, data.metric.value)):
            anomaly = self._detector.evaluate(device.id, data.metric, data.value)
            reading = build_reading(
                device_id=device.id,
                metric=data.metric,
                value=data.value,
                unit=data.unit,
                is_anomaly=anomaly.is_anomaly,
                anomaly_score=anomaly.score,
                retention_days=self._retention_days,
                timestamp=data.timestamp or self._clock(),
                location=data.location,
                quality=data.quality,
            )
            self._store.insert(reading)

        READINGS_INGESTED.labels(metric=reading.metric.value).inc()
        if reading.is_anomaly:
            ANOMALIES_FLAGGED.labels(metric=reading.metric.value).inc()
        logger.debug(
            "READING_STORED id=%s device=%s metric=%s value=%s anomaly=%s",
            reading.id, device.id, reading.metric.value, reading.value, reading.is_anomaly,
        )

        try:
            self._alerts.on_reading(reading, anomaly, device)
        except Exception:
            # La lectura ya está persistida; no se revierte por un fallo de alertas
            logger.exception("ALERT_EVAL_FAILED reading=%s device=%s", reading.id, device.id)

        battery = reading.value if reading.metric == MetricType.BATTERY_LEVEL else None
        self._registry.record_telemetry(device.id, reading.timestamp, battery)
        return reading
