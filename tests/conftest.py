"""Fixtures compartidas de la suite de telemetría."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from common.config import Settings
from telemetry_api.alerts import AlertConfig
from telemetry_api.analytics import AggregatorConfig, AnomalyConfig, HealthConfig
from telemetry_api.clients import InMemoryDeviceRegistry, InMemoryMaintenanceLog
from telemetry_api.container import build_container
from telemetry_api.core.domain import Device, DeviceType, MetricType, Reading, build_reading
from telemetry_api.infrastructure.persistence import AlertRepository, ReadingStore, ensure_schema

# Martes 10/03/2026 12:00 UTC
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_device(device_id: str = "D1", **overrides) -> Device:
    fields = dict(
        id=device_id,
        device_type=DeviceType.SOIL_SENSOR,
        owner="owner-1",
        field="field-1",
        battery_level=80.0,
        last_communication=NOW - timedelta(hours=1),
    )
    fields.update(overrides)
    return Device(**fields)


def add_reading(
    store: ReadingStore,
    device_id: str,
    metric: MetricType,
    value: float,
    timestamp: datetime,
    *,
    unit: str = "u",
    is_anomaly: bool = False,
    retention_days: int = 365,
) -> Reading:
    reading = build_reading(
        device_id=device_id,
        metric=metric,
        value=value,
        unit=unit,
        is_anomaly=is_anomaly,
        anomaly_score=0.8 if is_anomaly else 0.1,
        retention_days=retention_days,
        timestamp=timestamp,
    )
    store.insert(reading)
    return reading


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    """SQLite en memoria compartida entre threads (StaticPool)."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine) -> ReadingStore:
    return ReadingStore(engine)


@pytest.fixture
def alert_repo(engine) -> AlertRepository:
    return AlertRepository(engine)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def registry() -> InMemoryDeviceRegistry:
    return InMemoryDeviceRegistry([make_device("D1")])


@pytest.fixture
def maintenance_log() -> InMemoryMaintenanceLog:
    return InMemoryMaintenanceLog()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        device_registry_url="http://registry.test",
        maintenance_log_url="http://registry.test",
        http_timeout_seconds=1.0,
        http_retry_attempts=1,
        reading_retention_days=365,
    )


@pytest.fixture
def container(settings, engine, registry, maintenance_log, clock):
    return build_container(
        settings,
        engine=engine,
        registry=registry,
        maintenance_log=maintenance_log,
        clock=clock,
        anomaly_config=AnomalyConfig(),
        aggregator_config=AggregatorConfig(),
        health_config=HealthConfig(),
        alert_config=AlertConfig(),
    )
