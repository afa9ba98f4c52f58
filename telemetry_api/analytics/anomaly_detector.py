"""Detector de anomalías por z-score sobre la ventana reciente.

Compara cada lectura nueva contra las últimas N lecturas del mismo
device+métrica (media y desviación estándar poblacional). Es un chequeo
binario: score alto fijo si es anómala, bajo si no.

Nunca hace fallar la ingesta: cualquier error interno se loguea y la
lectura se trata como normal.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np

from ..core.domain import MetricType
from .config import AnomalyConfig

logger = logging.getLogger(__name__)


class RecentValuesSource(Protocol):
    def recent_values(self, device_id: str, metric: MetricType, limit: int = 100) -> List[float]:
        ...


@dataclass(frozen=True)
class AnomalyResult:
    is_anomaly: bool
    score: float
    z_score: Optional[float] = None
    mean: Optional[float] = None
    std_dev: Optional[float] = None
    sample_count: int = 0
    direction: Optional[str] = None  # "above" | "below"


class AnomalyDetector:
    def __init__(self, source: RecentValuesSource, config: Optional[AnomalyConfig] = None):
        self._source = source
        self._config = config or AnomalyConfig()

    @property
    def config(self) -> AnomalyConfig:
        return self._config

    def evaluate(self, device_id: str, metric: MetricType, value: float) -> AnomalyResult:
        try:
            history = self._source.recent_values(device_id, metric, limit=self._config.window_size)
            return self.score_against(history, value)
        except Exception:
            logger.exception(
                "ANOMALY_CHECK_FAILED device=%s metric=%s - treating as normal",
                device_id,
                metric.value,
            )
            return AnomalyResult(is_anomaly=False, score=self._config.normal_score)

    def score_against(self, history: List[float], value: float) -> AnomalyResult:
        """Clasifica `value` contra un historial ya leído (más reciente primero)."""
        cfg = self._config
        if len(history) < cfg.min_history:
            return AnomalyResult(
                is_anomaly=False, score=cfg.normal_score, sample_count=len(history)
            )

        window = np.asarray(history, dtype=float)
        value = float(value)

        if np.ptp(window) == 0.0:
            # Varianza cero: solo es anómala si difiere de la constante
            constant = float(window[0])
            mean, std = constant, 0.0
            z = 0.0 if value == constant else math.inf
        else:
            mean = float(window.mean())
            std = float(window.std())  # poblacional (ddof=0)
            z = abs(value - mean) / std

        is_anomaly = z > cfg.z_threshold
        direction = None
        if value > mean:
            direction = "above"
        elif value < mean:
            direction = "below"

        if is_anomaly:
            logger.info(
                "ANOMALY value=%.4f mean=%.4f std=%.4f z=%s n=%d",
                value, mean, std, "inf" if math.isinf(z) else f"{z:.2f}", len(history),
            )

        return AnomalyResult(
            is_anomaly=is_anomaly,
            score=cfg.anomaly_score if is_anomaly else cfg.normal_score,
            z_score=z,
            mean=mean,
            std_dev=std,
            sample_count=len(history),
            direction=direction,
        )
