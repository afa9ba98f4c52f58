"""Analítica: detector de anomalías, agregador y health score."""

from .config import AggregatorConfig, AnomalyConfig, HealthConfig
from .keyed_locks import KeyedLocks
from .anomaly_detector import AnomalyDetector, AnomalyResult
from .aggregator import TelemetryAggregator
from .health_scorer import DeviceHealthScorer, HealthIssue, HealthReport, health_status

__all__ = [
    "AggregatorConfig",
    "AnomalyConfig",
    "HealthConfig",
    "KeyedLocks",
    "AnomalyDetector",
    "AnomalyResult",
    "TelemetryAggregator",
    "DeviceHealthScorer",
    "HealthIssue",
    "HealthReport",
    "health_status",
]
