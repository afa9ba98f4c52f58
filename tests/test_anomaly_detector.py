"""Tests del detector de anomalías por z-score."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from telemetry_api.analytics import AnomalyConfig, AnomalyDetector
from telemetry_api.core.domain import MetricType

from conftest import NOW, add_reading


@pytest.fixture
def detector(store) -> AnomalyDetector:
    return AnomalyDetector(store, AnomalyConfig())


def _seed(store, values, device_id="D1", metric=MetricType.SOIL_MOISTURE):
    start = NOW - timedelta(minutes=len(values))
    for i, v in enumerate(values):
        add_reading(store, device_id, metric, v, start + timedelta(minutes=i))


# =============================================================================
# HISTORIAL INSUFICIENTE
# =============================================================================

class TestInsufficientHistory:
    """Con menos de 10 puntos nunca se declara anomalía."""

    def test_no_history(self, detector):
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 1e6)
        assert result.is_anomaly is False
        assert result.score == pytest.approx(0.1)
        assert result.sample_count == 0

    def test_nine_points_extreme_value(self, store, detector):
        _seed(store, [40.0, 41.0] * 4 + [40.0])
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 1000.0)
        assert result.sample_count == 9
        assert result.is_anomaly is False

    def test_other_metric_history_is_ignored(self, store, detector):
        _seed(store, [40.0, 41.0] * 10, metric=MetricType.TEMPERATURE)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 1000.0)
        assert result.sample_count == 0
        assert result.is_anomaly is False


# =============================================================================
# Z-SCORE
# =============================================================================

class TestZScore:
    def test_soil_moisture_scenario_z_equals_four(self, store, detector):
        """100 lecturas con media 40 y std 5; un 60 da z=4 y es anómalo."""
        _seed(store, [35.0, 45.0] * 50)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 60.0)

        assert result.mean == pytest.approx(40.0)
        assert result.std_dev == pytest.approx(5.0)
        assert result.z_score == pytest.approx(4.0)
        assert result.is_anomaly is True
        assert result.score == pytest.approx(0.8)
        assert result.direction == "above"

    def test_inside_band_not_anomalous(self, store, detector):
        _seed(store, [35.0, 45.0] * 50)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 54.0)
        assert result.z_score == pytest.approx(2.8)
        assert result.is_anomaly is False
        assert result.score == pytest.approx(0.1)

    def test_below_band(self, store, detector):
        _seed(store, [35.0, 45.0] * 50)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 20.0)
        assert result.is_anomaly is True
        assert result.direction == "below"

    def test_window_limited_to_last_100(self, store, detector):
        """Solo cuentan las 100 lecturas más recientes."""
        _seed(store, [1000.0] * 20 + [35.0, 45.0] * 50)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 60.0)
        assert result.sample_count == 100
        assert result.mean == pytest.approx(40.0)


# =============================================================================
# VARIANZA CERO
# =============================================================================

class TestZeroVariance:
    def test_equal_to_constant_is_normal(self, store, detector):
        _seed(store, [7.0] * 20)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 7.0)
        assert result.is_anomaly is False
        assert result.z_score == 0.0

    def test_any_deviation_is_anomalous(self, store, detector):
        _seed(store, [7.0] * 20)
        result = detector.evaluate("D1", MetricType.SOIL_MOISTURE, 7.01)
        assert result.is_anomaly is True
        assert result.z_score == float("inf")
        assert result.score == pytest.approx(0.8)


# =============================================================================
# ERRORES ABSORBIDOS
# =============================================================================

class TestErrorsAbsorbed:
    def test_store_failure_degrades_to_normal(self):
        source = MagicMock()
        source.recent_values.side_effect = RuntimeError("db down")
        detector = AnomalyDetector(source)

        result = detector.evaluate("D1", MetricType.TEMPERATURE, 99.0)

        assert result.is_anomaly is False
        assert result.score == pytest.approx(0.1)

    def test_bad_history_degrades_to_normal(self):
        source = MagicMock()
        source.recent_values.return_value = ["not-a-number"] * 20
        detector = AnomalyDetector(source)

        result = detector.evaluate("D1", MetricType.TEMPERATURE, 99.0)

        assert result.is_anomaly is False
