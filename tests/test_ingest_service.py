"""Tests del servicio de ingesta de lecturas."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from telemetry_api.analytics import AnomalyDetector, AnomalyResult
from telemetry_api.core.domain import AlertType, Location, MetricType, ReadingQuality
from telemetry_api.errors import NotFound, Unavailable, ValidationError
from telemetry_api.services import TelemetryIngestService

from conftest import NOW, add_reading


def _seed_history(store, n: int = 50):
    for i in range(n):
        add_reading(
            store, "D1", MetricType.SOIL_MOISTURE, 35.0 if i % 2 == 0 else 45.0,
            NOW - timedelta(minutes=i + 1),
        )


# =============================================================================
# CAMINO FELIZ
# =============================================================================

class TestSubmitReading:
    def test_reading_is_persisted(self, container):
        reading = container.ingest.submit_reading(
            "D1", "soil_moisture", 41.5, "%",
            timestamp=NOW - timedelta(minutes=5),
            location={"latitude": -34.6, "longitude": -58.4},
            quality="fair",
        )

        stored = container.store.get(reading.id)
        assert stored == reading
        assert stored.metric == MetricType.SOIL_MOISTURE
        assert stored.location == Location(latitude=-34.6, longitude=-58.4)
        assert stored.quality == ReadingQuality.FAIR
        assert stored.expires_at == stored.timestamp + timedelta(days=365)

    def test_timestamp_defaults_to_now(self, container):
        reading = container.ingest.submit_reading("D1", MetricType.TEMPERATURE, "21.5", "C")
        assert reading.timestamp == NOW
        assert reading.value == pytest.approx(21.5)
        assert reading.quality == ReadingQuality.GOOD

    def test_short_history_is_never_anomalous(self, container):
        for i in range(5):
            add_reading(container.store, "D1", MetricType.SOIL_MOISTURE, 40.0, NOW - timedelta(hours=i + 1))

        reading = container.ingest.submit_reading("D1", "soil_moisture", 99.0, "%")

        assert reading.is_anomaly is False
        assert reading.anomaly_score == pytest.approx(0.1)

    def test_outlier_is_flagged_and_alerts(self, container):
        _seed_history(container.store)

        reading = container.ingest.submit_reading("D1", "soil_moisture", 60.0, "%")

        assert reading.is_anomaly is True
        assert reading.anomaly_score == pytest.approx(0.8)
        alert = container.alert_repository.find_open(
            "D1", AlertType.THRESHOLD_EXCEEDED, MetricType.SOIL_MOISTURE
        )
        assert alert is not None
        assert alert.details["reading_id"] == reading.id

    def test_registry_is_touched(self, container, registry):
        container.ingest.submit_reading("D1", "battery_level", 15, "%")

        device = registry.get_device("D1")
        assert device.last_communication == NOW
        assert device.battery_level == pytest.approx(15.0)

    def test_low_battery_reading_opens_alert(self, container):
        container.ingest.submit_reading("D1", "battery_level", 15, "%")
        assert container.alert_repository.find_open("D1", AlertType.LOW_BATTERY) is not None


# =============================================================================
# RECHAZOS
# =============================================================================

class TestRejections:
    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(device_id="", metric="temperature", value=1, unit="C"),
            dict(device_id="D1", metric=None, value=1, unit="C"),
            dict(device_id="D1", metric="not_a_metric", value=1, unit="C"),
            dict(device_id="D1", metric="temperature", value=None, unit="C"),
            dict(device_id="D1", metric="temperature", value="abc", unit="C"),
            dict(device_id="D1", metric="temperature", value=True, unit="C"),
            dict(device_id="D1", metric="temperature", value=float("nan"), unit="C"),
            dict(device_id="D1", metric="temperature", value=1, unit=""),
            dict(device_id="D1", metric="humidity", value=120, unit="%"),
            dict(device_id="D1", metric="soil_ph", value=-1, unit="pH"),
            dict(device_id="D1", metric="temperature", value=1, unit="C", quality="excellent"),
            dict(device_id="D1", metric="temperature", value=1, unit="C",
                 location={"latitude": 91, "longitude": 0}),
            dict(device_id="D1", metric="temperature", value=1, unit="C", location={"latitude": 1}),
        ],
    )
    def test_invalid_input(self, container, kwargs):
        with pytest.raises(ValidationError):
            container.ingest.submit_reading(**kwargs)
        assert container.store.count(["D1"], NOW - timedelta(days=1), NOW + timedelta(days=1)) == 0

    def test_unknown_device(self, container):
        with pytest.raises(NotFound):
            container.ingest.submit_reading("ghost", "temperature", 20, "C")

    def test_registry_down(self, container, registry):
        registry.available = False
        with pytest.raises(Unavailable):
            container.ingest.submit_reading("D1", "temperature", 20, "C")
        assert container.store.count(["D1"], NOW - timedelta(days=1), NOW + timedelta(days=1)) == 0


# =============================================================================
# BEST-EFFORT / CONCURRENCIA
# =============================================================================

class TestSideEffects:
    def test_alert_failure_keeps_reading(self, store, registry, clock):
        alerts = MagicMock()
        alerts.on_reading.side_effect = RuntimeError("alert store down")
        service = TelemetryIngestService(store, registry, AnomalyDetector(store), alerts, clock=clock)

        reading = service.submit_reading("D1", "temperature", 20, "C")

        assert store.get(reading.id) is not None
        alerts.on_reading.assert_called_once()

    def test_same_sensor_is_serialized(self, registry, clock):
        """Evaluación + insert del mismo (device, métrica) nunca se solapan."""
        active = {"now": 0, "max": 0}
        guard = threading.Lock()

        def evaluate(device_id, metric, value):
            with guard:
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
            time.sleep(0.005)
            with guard:
                active["now"] -= 1
            return AnomalyResult(is_anomaly=False, score=0.1)

        detector = MagicMock()
        detector.evaluate.side_effect = evaluate
        store = MagicMock()
        service = TelemetryIngestService(store, registry, detector, MagicMock(), clock=clock)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda v: service.submit_reading("D1", "temperature", v, "C"), range(16)))

        assert store.insert.call_count == 16
        assert active["max"] == 1
