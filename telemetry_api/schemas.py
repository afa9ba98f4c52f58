from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .core.domain import AggregateBucket, Alert, MetricStats, MetricSummary, Reading


class LocationIn(BaseModel):
    latitude: float
    longitude: float


class ReadingIn(BaseModel):
    # Los campos quedan opcionales a propósito: el ReadingValidator del core
    # devuelve el error de dominio (400) con el campo que falta.
    device: Optional[str] = None
    metric: Optional[str] = None
    value: Optional[float] = None
    unit: Optional[str] = None
    timestamp: Optional[datetime] = None
    location: Optional[LocationIn] = None
    quality: Optional[str] = None


class ReadingOut(BaseModel):
    id: str
    device: str
    metric: str
    value: float
    unit: str
    timestamp: datetime
    quality: str
    location: Optional[LocationIn] = None
    is_anomaly: bool
    anomaly_score: float
    expires_at: datetime

    @classmethod
    def from_domain(cls, reading: Reading) -> "ReadingOut":
        location = None
        if reading.location is not None:
            location = LocationIn(
                latitude=reading.location.latitude, longitude=reading.location.longitude
            )
        return cls(
            id=reading.id,
            device=reading.device_id,
            metric=reading.metric.value,
            value=reading.value,
            unit=reading.unit,
            timestamp=reading.timestamp,
            quality=reading.quality.value,
            location=location,
            is_anomaly=reading.is_anomaly,
            anomaly_score=reading.anomaly_score,
            expires_at=reading.expires_at,
        )


class AnomalyReportOut(BaseModel):
    device: str
    total: int
    anomalies: List[ReadingOut] = Field(default_factory=list)
    by_metric: Dict[str, List[ReadingOut]] = Field(default_factory=dict)


class MetricStatsOut(BaseModel):
    count: int
    avg: Optional[float] = None
    min: Optional[float] = None
    max: float
    sum: Optional[float] = None

    @classmethod
    def from_domain(cls, stats: MetricStats) -> "MetricStatsOut":
        return cls(count=stats.count, avg=stats.avg, min=stats.min, max=stats.max, sum=stats.sum)


class AggregateBucketOut(BaseModel):
    label: str
    start: datetime
    end: datetime
    count: int
    metrics: Dict[str, MetricStatsOut] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, bucket: AggregateBucket) -> "AggregateBucketOut":
        return cls(
            label=bucket.label,
            start=bucket.start,
            end=bucket.end,
            count=bucket.count,
            metrics={m.value: MetricStatsOut.from_domain(s) for m, s in bucket.metrics.items()},
        )


class AggregateOut(BaseModel):
    device_ids: List[str]
    interval: str
    start_date: datetime
    end_date: datetime
    buckets: List[AggregateBucketOut] = Field(default_factory=list)


class MetricSummaryOut(BaseModel):
    metric: str
    count: int
    avg: float
    min: float
    max: float
    std_dev: float
    latest_value: float
    latest_timestamp: datetime

    @classmethod
    def from_domain(cls, summary: MetricSummary) -> "MetricSummaryOut":
        return cls(
            metric=summary.metric.value,
            count=summary.count,
            avg=summary.avg,
            min=summary.min,
            max=summary.max,
            std_dev=summary.std_dev,
            latest_value=summary.latest_value,
            latest_timestamp=summary.latest_timestamp,
        )


class SummaryOut(BaseModel):
    device: str
    metrics: List[MetricSummaryOut] = Field(default_factory=list)


class HealthIssueOut(BaseModel):
    type: str
    severity: str
    message: str


class DeviceHealthOut(BaseModel):
    device_id: str
    score: int
    status: str
    issues: List[HealthIssueOut] = Field(default_factory=list)
    last_checked: datetime
    degraded: bool = False
    degraded_dimensions: List[str] = Field(default_factory=list)


class AlertOut(BaseModel):
    id: str
    device: str
    type: str
    severity: str
    message: str
    metric: Optional[str] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    state: str
    resolved: bool
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertOut":
        return cls(
            id=alert.id,
            device=alert.device_id,
            type=alert.alert_type.value,
            severity=alert.severity.value,
            message=alert.message,
            metric=alert.metric.value if alert.metric else None,
            value=alert.value,
            threshold=alert.threshold,
            details=alert.details,
            state=alert.state.value,
            resolved=alert.resolved,
            resolved_by=alert.resolved_by,
            resolved_at=alert.resolved_at,
            resolution_notes=alert.resolution_notes,
            created_at=alert.created_at,
        )


class PaginationOut(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class AlertListOut(BaseModel):
    alerts: List[AlertOut] = Field(default_factory=list)
    pagination: PaginationOut


class AlertTypeCount(BaseModel):
    type: str
    count: int


class DeviceAlertCount(BaseModel):
    device_id: str
    count: int


class AlertSummaryOut(BaseModel):
    total: int
    unresolved: int
    critical: int
    by_type: List[AlertTypeCount] = Field(default_factory=list)
    top_devices: List[DeviceAlertCount] = Field(default_factory=list)


class ResolveAlertIn(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class AlertEvaluationOut(BaseModel):
    device_id: str
    created: List[AlertOut] = Field(default_factory=list)
    resolved: List[AlertOut] = Field(default_factory=list)
    degraded: bool = False
    degraded_reasons: List[str] = Field(default_factory=list)
