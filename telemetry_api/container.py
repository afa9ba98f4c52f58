"""Wiring de componentes del servicio.

Un único `ServiceContainer` por proceso, construido perezosamente desde
Settings. Los tests construyen el suyo con `build_container(...)` pasando
engine, registry y maintenance log en memoria.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from common.config import Settings, get_settings
from common.db import get_engine

from .alerts import AlertConfig, AlertEngine
from .analytics import (
    AggregatorConfig,
    AnomalyConfig,
    AnomalyDetector,
    DeviceHealthScorer,
    HealthConfig,
    KeyedLocks,
    TelemetryAggregator,
)
from .clients import (
    DeviceRegistry,
    EnvServiceLocator,
    HttpDeviceRegistry,
    HttpMaintenanceLog,
    MaintenanceLog,
    RequestsTransport,
    ResilientTransport,
    ServiceClient,
    TransportError,
)
from .core.domain.timeutils import utc_now
from .infrastructure.persistence import AlertRepository, ReadingStore, ensure_schema
from .resilience import CircuitBreaker, CircuitBreakerConfig, RetryConfig, RetryExecutor
from .services import TelemetryIngestService

logger = logging.getLogger(__name__)

DEVICE_REGISTRY = "device_registry"
MAINTENANCE_LOG = "maintenance_log"


@dataclass
class ServiceContainer:
    settings: Settings
    engine: Engine
    store: ReadingStore
    alert_repository: AlertRepository
    registry: DeviceRegistry
    maintenance_log: MaintenanceLog
    detector: AnomalyDetector
    aggregator: TelemetryAggregator
    health_scorer: DeviceHealthScorer
    alert_engine: AlertEngine
    ingest: TelemetryIngestService


def _service_client(name: str, settings: Settings, locator: EnvServiceLocator) -> ServiceClient:
    retry = RetryExecutor(
        RetryConfig(
            max_attempts=max(1, settings.http_retry_attempts),
            retryable_exceptions=(TransportError,),
        )
    )
    transport = ResilientTransport(
        RequestsTransport(timeout_seconds=settings.http_timeout_seconds),
        CircuitBreaker(name, CircuitBreakerConfig.from_env()),
        retry,
    )
    return ServiceClient(name, locator, transport)


def build_container(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    registry: Optional[DeviceRegistry] = None,
    maintenance_log: Optional[MaintenanceLog] = None,
    clock: Callable[[], datetime] = utc_now,
    anomaly_config: Optional[AnomalyConfig] = None,
    aggregator_config: Optional[AggregatorConfig] = None,
    health_config: Optional[HealthConfig] = None,
    alert_config: Optional[AlertConfig] = None,
) -> ServiceContainer:
    settings = settings or get_settings()
    engine = engine or get_engine()
    ensure_schema(engine)

    if registry is None or maintenance_log is None:
        locator = EnvServiceLocator(
            {
                DEVICE_REGISTRY: settings.device_registry_url,
                MAINTENANCE_LOG: settings.maintenance_log_url,
            }
        )
        if registry is None:
            registry = HttpDeviceRegistry(_service_client(DEVICE_REGISTRY, settings, locator))
        if maintenance_log is None:
            maintenance_log = HttpMaintenanceLog(_service_client(MAINTENANCE_LOG, settings, locator))

    locks = KeyedLocks()
    store = ReadingStore(engine)
    alert_repository = AlertRepository(engine)
    detector = AnomalyDetector(store, anomaly_config or AnomalyConfig.from_env())
    alert_engine = AlertEngine(
        alert_repository,
        registry,
        store,
        maintenance_log,
        config=alert_config or AlertConfig.from_env(),
        locks=locks,
        clock=clock,
    )
    ingest = TelemetryIngestService(
        store,
        registry,
        detector,
        alert_engine,
        locks=locks,
        retention_days=settings.reading_retention_days,
        clock=clock,
    )

    return ServiceContainer(
        settings=settings,
        engine=engine,
        store=store,
        alert_repository=alert_repository,
        registry=registry,
        maintenance_log=maintenance_log,
        detector=detector,
        aggregator=TelemetryAggregator(store, aggregator_config or AggregatorConfig.from_env()),
        health_scorer=DeviceHealthScorer(
            registry, store, health_config or HealthConfig.from_env(), clock=clock
        ),
        alert_engine=alert_engine,
        ingest=ingest,
    )


_container: Optional[ServiceContainer] = None
_container_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """Container singleton del proceso (también usado como dependencia FastAPI)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = build_container()
                logger.info("Telemetry service container initialized")
    return _container


def reset_container() -> None:
    global _container
    with _container_lock:
        _container = None
