"""Configuración de analítica (detector, agregador, health score)."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AnomalyConfig:
    window_size: int = 100
    min_history: int = 10
    z_threshold: float = 3.0
    anomaly_score: float = 0.8
    normal_score: float = 0.1

    @classmethod
    def from_env(cls) -> "AnomalyConfig":
        return cls(
            window_size=int(os.getenv("ANOMALY_WINDOW_SIZE", "100")),
            min_history=int(os.getenv("ANOMALY_MIN_HISTORY", "10")),
            z_threshold=float(os.getenv("ANOMALY_Z_THRESHOLD", "3.0")),
        )


@dataclass(frozen=True)
class AggregatorConfig:
    max_buckets: int = 2000
    anomaly_list_default: int = 50
    anomaly_list_max: int = 500

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        return cls(
            max_buckets=int(os.getenv("AGGREGATE_MAX_BUCKETS", "2000")),
            anomaly_list_default=int(os.getenv("ANOMALY_LIST_DEFAULT_LIMIT", "50")),
            anomaly_list_max=int(os.getenv("ANOMALY_LIST_MAX_LIMIT", "500")),
        )


@dataclass(frozen=True)
class HealthConfig:
    battery_critical: float = 20.0
    battery_low: float = 50.0
    offline_hours: float = 24.0
    stale_hours: float = 12.0
    anomaly_lookback_days: int = 7
    anomaly_high_count: int = 10
    anomaly_medium_count: int = 5

    @classmethod
    def from_env(cls) -> "HealthConfig":
        return cls(
            offline_hours=float(os.getenv("OFFLINE_HOURS", "24")),
            stale_hours=float(os.getenv("CONNECTIVITY_WARNING_HOURS", "12")),
            anomaly_lookback_days=int(os.getenv("HEALTH_ANOMALY_LOOKBACK_DAYS", "7")),
        )
