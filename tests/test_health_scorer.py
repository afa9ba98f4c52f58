"""Tests del Device Health Scorer."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from telemetry_api.analytics import DeviceHealthScorer, HealthConfig, health_status
from telemetry_api.core.domain import MetricType
from telemetry_api.errors import NotFound

from conftest import NOW, add_reading, make_device


@pytest.fixture
def scorer(registry, store, clock) -> DeviceHealthScorer:
    return DeviceHealthScorer(registry, store, HealthConfig(), clock=clock)


class TestHealthScore:
    def test_healthy_device_is_excellent(self, scorer):
        report = scorer.score("D1")
        assert report.score == 100
        assert report.status == "excellent"
        assert report.issues == ()
        assert report.last_checked == NOW
        assert report.degraded is False

    def test_low_battery_and_silent_30h_scores_45(self, registry, scorer):
        """battery=15 y 30h sin comunicar -> 100 - 30 - 25 = 45, poor."""
        registry.add(make_device("D2", battery_level=15.0, last_communication=NOW - timedelta(hours=30)))

        report = scorer.score("D2")

        assert report.score == 45
        assert report.status == "poor"
        kinds = {(i.type, i.severity) for i in report.issues}
        assert kinds == {("battery", "high"), ("connectivity", "high")}

    def test_medium_deductions(self, registry, scorer):
        registry.add(
            make_device(
                "D3",
                battery_level=35.0,
                last_communication=NOW - timedelta(hours=13),
                next_maintenance=NOW - timedelta(days=1),
            )
        )
        report = scorer.score("D3")
        assert report.score == 100 - 15 - 10 - 15
        assert report.status == "fair"

    def test_recent_reading_overrides_stale_registry(self, registry, store, scorer):
        registry.add(make_device("D4", last_communication=NOW - timedelta(hours=40)))
        add_reading(store, "D4", MetricType.TEMPERATURE, 20.0, NOW - timedelta(hours=2))

        report = scorer.score("D4")

        assert report.score == 100

    def test_anomaly_count_bands(self, store, scorer):
        for i in range(6):
            add_reading(store, "D1", MetricType.TEMPERATURE, 99.0, NOW - timedelta(hours=i), is_anomaly=True)
        assert scorer.score("D1").score == 90

        for i in range(5):
            add_reading(store, "D1", MetricType.HUMIDITY, 99.0, NOW - timedelta(hours=i), is_anomaly=True)
        report = scorer.score("D1")
        assert report.score == 80
        assert report.issues[0].type == "data_quality"
        assert report.issues[0].severity == "high"

    def test_old_anomalies_ignored(self, store, scorer):
        for i in range(20):
            add_reading(
                store, "D1", MetricType.TEMPERATURE, 99.0, NOW - timedelta(days=8, hours=i), is_anomaly=True
            )
        assert scorer.score("D1").score == 100

    def test_all_deductions_never_negative(self, registry, store, scorer):
        registry.add(
            make_device(
                "D5",
                battery_level=1.0,
                last_communication=NOW - timedelta(days=3),
                next_maintenance=NOW - timedelta(days=30),
            )
        )
        for i in range(15):
            add_reading(
                store, "D5", MetricType.TEMPERATURE, 99.0, NOW - timedelta(days=3, minutes=i), is_anomaly=True
            )
        report = scorer.score("D5")
        assert report.score == 10
        assert report.score >= 0

    def test_repeated_calls_identical(self, registry, store, scorer):
        registry.add(make_device("D2", battery_level=15.0, last_communication=NOW - timedelta(hours=30)))
        add_reading(store, "D2", MetricType.TEMPERATURE, 1.0, NOW - timedelta(hours=31), is_anomaly=True)

        first = scorer.score("D2")
        second = scorer.score("D2")

        assert first == second
        assert store.count(["D2"], NOW - timedelta(days=30), NOW) == 1


class TestStatusBands:
    @pytest.mark.parametrize(
        "score,status",
        [(0, "poor"), (49, "poor"), (50, "fair"), (69, "fair"), (70, "good"), (89, "good"), (90, "excellent")],
    )
    def test_bands(self, score, status):
        assert health_status(score) == status


class TestHealthDegradation:
    def test_store_failure_skips_dimensions(self, registry, clock):
        registry.add(make_device("D2", battery_level=15.0))
        store = MagicMock()
        store.latest_timestamp.side_effect = RuntimeError("db down")
        store.count_anomalies.side_effect = RuntimeError("db down")
        scorer = DeviceHealthScorer(registry, store, HealthConfig(), clock=clock)

        report = scorer.score("D2")

        assert report.score == 70
        assert report.degraded is True
        assert set(report.degraded_dimensions) == {"connectivity", "data_quality"}

    def test_unknown_device(self, scorer):
        with pytest.raises(NotFound):
            scorer.score("nope")

    def test_registry_down_scores_from_store(self, registry, store, scorer):
        """Sin registry se puntúan conectividad y calidad de datos con las lecturas."""
        registry.add(make_device("D2", battery_level=5.0, next_maintenance=NOW - timedelta(days=2)))
        add_reading(store, "D2", MetricType.TEMPERATURE, 20.0, NOW - timedelta(hours=30))
        registry.available = False

        report = scorer.score("D2")

        assert report.device_id == "D2"
        assert report.score == 75
        assert report.status == "good"
        assert [(i.type, i.severity) for i in report.issues] == [("connectivity", "high")]
        assert report.degraded_dimensions == ("battery", "maintenance")

    def test_registry_down_without_readings(self, registry, scorer):
        registry.available = False
        report = scorer.score("D1")
        assert report.score == 100
        assert report.degraded is True
