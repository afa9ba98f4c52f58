"""Persistencia SQL de lecturas y alertas."""

from .schema import ensure_schema, metadata
from .reading_store import ReadingStore, MetricAccumulatorRow
from .alert_repository import AlertFilter, AlertRepository

__all__ = [
    "ensure_schema",
    "metadata",
    "ReadingStore",
    "MetricAccumulatorRow",
    "AlertFilter",
    "AlertRepository",
]
