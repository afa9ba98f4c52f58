"""Servicios de aplicación."""

from .ingest_service import TelemetryIngestService

__all__ = ["TelemetryIngestService"]
