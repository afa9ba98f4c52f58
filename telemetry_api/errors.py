"""Taxonomía de errores del core de telemetría.

Cada error lleva el status HTTP con el que se expone en la API; el core
no depende de FastAPI, solo main.py traduce estos errores a respuestas.
"""

from __future__ import annotations


class TelemetryError(Exception):
    """Error base del servicio."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(TelemetryError):
    """Campos de ingesta o de consulta mal formados o ausentes."""

    status_code = 400


class NotFound(TelemetryError):
    """Dispositivo, alerta o lectura desconocidos."""

    status_code = 404


class Conflict(TelemetryError):
    """La alerta ya estaba resuelta."""

    status_code = 409


class Forbidden(TelemetryError):
    """El actor no tiene autoridad sobre el dispositivo."""

    status_code = 403


class Unavailable(TelemetryError):
    """Device Registry / Maintenance Log caídos o sin responder a tiempo."""

    status_code = 503

    def __init__(self, message: str, service: str | None = None):
        self.service = service
        super().__init__(message)
