"""Módulo de endpoints HTTP.

Routers del servicio de telemetría organizados por función.
"""

from .health import router as health_router
from .readings import router as readings_router
from .analytics import router as analytics_router
from .alerts import router as alerts_router

__all__ = [
    "health_router",
    "readings_router",
    "analytics_router",
    "alerts_router",
]
