"""Esquema de tablas de telemetría (SQLAlchemy Core).

Las tablas se crean con `ensure_schema`, idempotente, al arrancar la API
o los jobs.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

readings = Table(
    "telemetry_readings",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("device_id", String(64), nullable=False),
    Column("metric", String(32), nullable=False),
    Column("value", Float, nullable=False),
    Column("unit", String(32), nullable=False),
    Column("timestamp", DateTime, nullable=False),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("quality", String(16), nullable=False, default="good"),
    Column("is_anomaly", Boolean, nullable=False, default=False),
    Column("anomaly_score", Float, nullable=False, default=0.1),
    Column("expires_at", DateTime, nullable=False),
    Index("ix_readings_device_metric_ts", "device_id", "metric", "timestamp"),
    Index("ix_readings_device_anomaly_ts", "device_id", "is_anomaly", "timestamp"),
    Index("ix_readings_expires_at", "expires_at"),
)

alerts = Table(
    "telemetry_alerts",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("device_id", String(64), nullable=False),
    Column("alert_type", String(32), nullable=False),
    Column("severity", String(16), nullable=False),
    Column("message", Text, nullable=False),
    Column("metric", String(32), nullable=True),
    Column("value", Float, nullable=True),
    Column("threshold", Float, nullable=True),
    Column("details", JSON, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("resolved", Boolean, nullable=False, default=False),
    Column("resolved_by", String(64), nullable=True),
    Column("resolved_at", DateTime, nullable=True),
    Column("resolution_notes", Text, nullable=True),
    Index("ix_alerts_device_open", "device_id", "alert_type", "resolved"),
    Index("ix_alerts_created_at", "created_at"),
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Seguro de llamar varias veces."""
    logger.info("[DB] Ensuring telemetry schema exists")
    metadata.create_all(engine, checkfirst=True)
