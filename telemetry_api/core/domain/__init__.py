"""Domain layer - Modelos y contratos."""

from .enums import (
    AlertSeverity,
    AlertType,
    DeviceStatus,
    DeviceType,
    Interval,
    MaintenanceStatus,
    MetricType,
    ReadingQuality,
    CUMULATIVE_METRICS,
)
from .reading import Location, Reading, build_reading
from .alert import Alert, AlertState, build_alert
from .device import Actor, Device, MaintenanceRecord, Role, SYSTEM_ACTOR
from .aggregate import AggregateBucket, AnomalyReport, MetricStats, MetricSummary

__all__ = [
    "AlertSeverity",
    "AlertType",
    "DeviceStatus",
    "DeviceType",
    "Interval",
    "MaintenanceStatus",
    "MetricType",
    "ReadingQuality",
    "CUMULATIVE_METRICS",
    "Location",
    "Reading",
    "build_reading",
    "Alert",
    "AlertState",
    "build_alert",
    "Actor",
    "Device",
    "MaintenanceRecord",
    "Role",
    "SYSTEM_ACTOR",
    "AggregateBucket",
    "AnomalyReport",
    "MetricStats",
    "MetricSummary",
]
