"""Retry con backoff exponencial para llamadas HTTP salientes."""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.2  # segundos
    max_delay: float = 2.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)

    @classmethod
    def from_env(cls) -> "RetryConfig":
        return cls(
            max_attempts=max(1, int(os.getenv("HTTP_RETRY_ATTEMPTS", "3"))),
            base_delay=float(os.getenv("HTTP_RETRY_BASE_DELAY", "0.2")),
            max_delay=float(os.getenv("HTTP_RETRY_MAX_DELAY", "2.0")),
        )

    def calculate_delay(self, attempt: int) -> float:
        """Delay antes del reintento `attempt` (1-indexed), con jitter de ±25%."""
        delay = min(self.base_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)
        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, delay)


class RetryExecutor:
    """Ejecuta una operación reintentando los errores configurados como transitorios."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._total_attempts = 0
        self._total_retries = 0
        self._total_failures = 0

    @property
    def stats(self) -> dict:
        return {
            "total_attempts": self._total_attempts,
            "total_retries": self._total_retries,
            "total_failures": self._total_failures,
        }

    def execute(self, func: Callable[[], T], label: str = "call") -> T:
        """Ejecuta `func` hasta `max_attempts` veces.

        Raises:
            La última excepción si se agotan los reintentos, o cualquier
            excepción no reintentable en cuanto aparece.
        """
        attempts = self._config.max_attempts
        for attempt in range(1, attempts + 1):
            self._total_attempts += 1
            try:
                return func()
            except self._config.retryable_exceptions as e:
                if attempt == attempts:
                    self._total_failures += 1
                    logger.error("RETRY_EXHAUSTED call=%s attempts=%d err=%s", label, attempt, e)
                    raise
                self._total_retries += 1
                delay = self._config.calculate_delay(attempt)
                logger.warning(
                    "RETRY call=%s attempt=%d/%d delay=%.2fs err=%s",
                    label, attempt, attempts, delay, e,
                )
                self._sleep(delay)
        raise RuntimeError("Retry loop completed without result")
