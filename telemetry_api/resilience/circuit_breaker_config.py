"""Configuración y estados del circuit breaker de dependencias HTTP."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Umbrales del breaker.

    Un breaker por servicio externo: la caída del Maintenance Log no debe
    abrir el circuito del Device Registry.
    """
    failure_threshold: int = 5
    recovery_timeout_seconds: float = 30.0
    success_threshold: int = 2

    @classmethod
    def from_env(cls) -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=int(os.getenv("CB_FAILURE_THRESHOLD", "5")),
            recovery_timeout_seconds=float(os.getenv("CB_RECOVERY_TIMEOUT", "30")),
            success_threshold=int(os.getenv("CB_SUCCESS_THRESHOLD", "2")),
        )


class CircuitBreakerOpen(Exception):
    """El circuito está abierto; la llamada no se intentó."""

    def __init__(self, name: str, remaining_seconds: float):
        self.name = name
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Circuit breaker '{name}' is OPEN. Retry in {remaining_seconds:.1f}s"
        )
