"""Métricas Prometheus del servicio de telemetría.

Se registran en el registry por defecto de prometheus_client y se exponen
en GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter

READINGS_INGESTED = Counter(
    "telemetry_readings_ingested_total",
    "Readings persisted by the ingest service",
    ["metric"],
)
READINGS_REJECTED = Counter(
    "telemetry_readings_rejected_total",
    "Readings rejected before persistence",
    ["reason"],  # validation, not_found, unavailable
)
ANOMALIES_FLAGGED = Counter(
    "telemetry_anomalies_flagged_total",
    "Readings flagged as anomalous by the z-score detector",
    ["metric"],
)
ALERTS_CREATED = Counter(
    "telemetry_alerts_created_total",
    "Alerts opened by the alert engine",
    ["alert_type", "severity"],
)
ALERTS_RESOLVED = Counter(
    "telemetry_alerts_resolved_total",
    "Alerts resolved (manual or automatic)",
    ["alert_type", "mode"],  # manual, auto
)
DEPENDENCY_FAILURES = Counter(
    "telemetry_dependency_failures_total",
    "Failed calls to external services",
    ["service"],
)
