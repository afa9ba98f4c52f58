"""Tests del agregador por intervalos y del resumen por métrica."""

from datetime import datetime, timedelta, timezone

import pytest

from telemetry_api.analytics import AggregatorConfig, TelemetryAggregator
from telemetry_api.analytics.bucketing import bucket_label, bucket_start, count_buckets, next_boundary
from telemetry_api.core.domain import Interval, MetricType
from telemetry_api.errors import ValidationError

from conftest import NOW, add_reading

UTC = timezone.utc
DAY = datetime(2026, 3, 9, tzinfo=UTC)


@pytest.fixture
def aggregator(store) -> TelemetryAggregator:
    return TelemetryAggregator(store, AggregatorConfig())


# =============================================================================
# BUCKETING
# =============================================================================

class TestBucketing:
    def test_hour_alignment_and_label(self):
        ts = datetime(2026, 3, 9, 14, 37, 12, tzinfo=UTC)
        start = bucket_start(ts, Interval.HOUR)
        assert start == datetime(2026, 3, 9, 14, tzinfo=UTC)
        assert bucket_label(start, Interval.HOUR) == "2026-03-09 14:00"

    def test_week_aligns_to_iso_monday(self):
        # 2026-03-12 es jueves; la semana ISO empieza el lunes 09/03
        start = bucket_start(datetime(2026, 3, 12, 8, tzinfo=UTC), Interval.WEEK)
        assert start == datetime(2026, 3, 9, tzinfo=UTC)
        assert bucket_label(start, Interval.WEEK) == "2026-W11"
        assert next_boundary(start, Interval.WEEK) == datetime(2026, 3, 16, tzinfo=UTC)

    def test_iso_week_across_year_boundary(self):
        # 01/01/2021 pertenece a la semana 53 de 2020
        start = bucket_start(datetime(2021, 1, 1, tzinfo=UTC), Interval.WEEK)
        assert bucket_label(start, Interval.WEEK) == "2020-W53"

    def test_month_rollover(self):
        start = bucket_start(datetime(2025, 12, 31, 23, tzinfo=UTC), Interval.MONTH)
        assert start == datetime(2025, 12, 1, tzinfo=UTC)
        assert next_boundary(start, Interval.MONTH) == datetime(2026, 1, 1, tzinfo=UTC)
        assert bucket_label(start, Interval.MONTH) == "2025-12"

    def test_count_buckets(self):
        assert count_buckets(DAY, DAY + timedelta(hours=23), Interval.HOUR) == 24
        assert count_buckets(DAY, DAY + timedelta(hours=23), Interval.DAY) == 1
        assert count_buckets(
            datetime(2025, 11, 15, tzinfo=UTC), datetime(2026, 2, 1, tzinfo=UTC), Interval.MONTH
        ) == 4


# =============================================================================
# AGGREGATE
# =============================================================================

class TestAggregate:
    def test_24_hourly_readings_one_day_bucket(self, store, aggregator):
        for h in range(24):
            add_reading(store, "D1", MetricType.TEMPERATURE, 20.0 + h, DAY + timedelta(hours=h))

        buckets = aggregator.aggregate(
            ["D1"], DAY, DAY + timedelta(hours=23, minutes=59), Interval.DAY
        )

        assert len(buckets) == 1
        bucket = buckets[0]
        assert bucket.count == 24
        assert bucket.label == "2026-03-09"
        assert bucket.start == DAY
        assert bucket.end == DAY + timedelta(days=1)
        stats = bucket.metrics[MetricType.TEMPERATURE]
        assert stats.count == 24
        assert stats.min == pytest.approx(20.0)
        assert stats.max == pytest.approx(43.0)
        assert stats.avg == pytest.approx(31.5)
        assert stats.sum is None

    def test_hourly_buckets_are_chronological(self, store, aggregator):
        for h in (5, 1, 3):
            add_reading(store, "D1", MetricType.HUMIDITY, 50.0, DAY + timedelta(hours=h, minutes=10))

        buckets = aggregator.aggregate(["D1"], DAY, DAY + timedelta(hours=6), "hour")

        assert [b.label for b in buckets] == [
            "2026-03-09 01:00",
            "2026-03-09 03:00",
            "2026-03-09 05:00",
        ]

    def test_counts_sum_to_readings_in_range(self, store, aggregator):
        for i in range(50):
            add_reading(store, "D1", MetricType.SOIL_MOISTURE, float(i), DAY + timedelta(hours=i * 3))
        # Fuera del rango pedido
        add_reading(store, "D1", MetricType.SOIL_MOISTURE, 1.0, DAY - timedelta(days=1))
        # Otra métrica, excluida por el filtro
        add_reading(store, "D1", MetricType.TEMPERATURE, 1.0, DAY + timedelta(hours=1))

        end = DAY + timedelta(days=5)
        buckets = aggregator.aggregate(
            ["D1"], DAY, end, Interval.DAY, metrics=["soil_moisture"]
        )

        expected = store.count(["D1"], DAY, end, [MetricType.SOIL_MOISTURE])
        assert sum(b.count for b in buckets) == expected == 41
        assert all(set(b.metrics) == {MetricType.SOIL_MOISTURE} for b in buckets)

    def test_range_is_inclusive_on_both_ends(self, store, aggregator):
        add_reading(store, "D1", MetricType.TEMPERATURE, 1.0, DAY)
        add_reading(store, "D1", MetricType.TEMPERATURE, 2.0, DAY + timedelta(hours=2))

        buckets = aggregator.aggregate(["D1"], DAY, DAY + timedelta(hours=2), Interval.HOUR)

        assert sum(b.count for b in buckets) == 2

    def test_rainfall_uses_sum_and_max(self, store, aggregator):
        for i, mm in enumerate((1.5, 0.0, 3.0)):
            add_reading(store, "D1", MetricType.RAINFALL, mm, DAY + timedelta(hours=i + 1))
        buckets = aggregator.aggregate(["D1"], DAY, DAY + timedelta(hours=20), Interval.DAY)

        stats = buckets[0].metrics[MetricType.RAINFALL]
        assert stats.sum == pytest.approx(4.5)
        assert stats.max == pytest.approx(3.0)
        assert stats.avg is None
        assert stats.min is None

    def test_vitals_included_without_filter(self, store, aggregator):
        add_reading(store, "D1", MetricType.TEMPERATURE, 20.0, DAY + timedelta(hours=1))
        add_reading(store, "D1", MetricType.BATTERY_LEVEL, 90.0, DAY + timedelta(hours=2))
        add_reading(store, "D1", MetricType.SIGNAL_STRENGTH, -70.0, DAY + timedelta(hours=3))

        buckets = aggregator.aggregate(["D1"], DAY, DAY + timedelta(hours=12), Interval.DAY)

        assert set(buckets[0].metrics) == {
            MetricType.TEMPERATURE,
            MetricType.BATTERY_LEVEL,
            MetricType.SIGNAL_STRENGTH,
        }
        assert buckets[0].metrics[MetricType.BATTERY_LEVEL].avg == pytest.approx(90.0)

    def test_multi_device_scope(self, store, aggregator):
        add_reading(store, "D1", MetricType.TEMPERATURE, 10.0, DAY + timedelta(hours=1))
        add_reading(store, "D2", MetricType.TEMPERATURE, 30.0, DAY + timedelta(hours=2))
        add_reading(store, "D3", MetricType.TEMPERATURE, 99.0, DAY + timedelta(hours=3))

        buckets = aggregator.aggregate(["D1", "D2"], DAY, DAY + timedelta(hours=5), Interval.DAY)

        assert buckets[0].count == 2
        assert buckets[0].device_ids == ("D1", "D2")
        assert buckets[0].metrics[MetricType.TEMPERATURE].avg == pytest.approx(20.0)

    def test_empty_range_returns_no_buckets(self, aggregator):
        assert aggregator.aggregate(["D1"], DAY, DAY + timedelta(days=2), Interval.HOUR) == []


class TestAggregateValidation:
    def test_start_after_end(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.aggregate(["D1"], DAY, DAY - timedelta(hours=1), Interval.DAY)

    def test_too_many_buckets(self, store):
        aggregator = TelemetryAggregator(store, AggregatorConfig(max_buckets=48))
        with pytest.raises(ValidationError):
            aggregator.aggregate(["D1"], DAY, DAY + timedelta(days=3), Interval.HOUR)

    def test_unknown_interval(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.aggregate(["D1"], DAY, DAY, "minute")

    def test_unknown_metric(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.aggregate(["D1"], DAY, DAY, Interval.DAY, metrics=["co2"])

    def test_empty_scope(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.aggregate([], DAY, DAY, Interval.DAY)


# =============================================================================
# SUMMARIZE / LIST ANOMALIES
# =============================================================================

class TestSummarize:
    def test_summary_per_metric(self, store, aggregator):
        for i, v in enumerate([10.0, 20.0, 30.0, 40.0]):
            add_reading(store, "D1", MetricType.TEMPERATURE, v, DAY + timedelta(hours=i))
        add_reading(store, "D1", MetricType.HUMIDITY, 55.0, DAY + timedelta(hours=1))

        summaries = {s.metric: s for s in aggregator.summarize(["D1"])}

        temp = summaries[MetricType.TEMPERATURE]
        assert temp.count == 4
        assert temp.avg == pytest.approx(25.0)
        assert temp.min == pytest.approx(10.0)
        assert temp.max == pytest.approx(40.0)
        assert temp.std_dev == pytest.approx(11.1803, rel=1e-4)
        assert temp.latest_value == pytest.approx(40.0)
        assert temp.latest_timestamp == DAY + timedelta(hours=3)
        assert summaries[MetricType.HUMIDITY].std_dev == pytest.approx(0.0)

    def test_summary_empty(self, aggregator):
        assert aggregator.summarize(["D1"]) == []


class TestListAnomalies:
    def test_grouped_newest_first(self, store, aggregator):
        add_reading(store, "D1", MetricType.TEMPERATURE, 99.0, NOW - timedelta(hours=3), is_anomaly=True)
        add_reading(store, "D1", MetricType.TEMPERATURE, 20.0, NOW - timedelta(hours=2))
        add_reading(store, "D1", MetricType.HUMIDITY, 1.0, NOW - timedelta(hours=1), is_anomaly=True)

        report = aggregator.list_anomalies("D1")

        assert report.total == 2
        assert [r.metric for r in report.anomalies] == [MetricType.HUMIDITY, MetricType.TEMPERATURE]
        assert len(report.by_metric[MetricType.TEMPERATURE]) == 1

    def test_limit_is_capped(self, store):
        aggregator = TelemetryAggregator(store, AggregatorConfig(anomaly_list_max=3))
        for i in range(5):
            add_reading(store, "D1", MetricType.TEMPERATURE, 99.0, NOW - timedelta(minutes=i), is_anomaly=True)

        report = aggregator.list_anomalies("D1", limit=100)

        assert report.total == 3
