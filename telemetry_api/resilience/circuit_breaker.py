"""Circuit Breaker para llamadas a servicios externos.

Protege al ingest y al motor de alertas de encadenar timeouts cuando el
Device Registry o el Maintenance Log están caídos: tras `failure_threshold`
fallos seguidos el circuito se abre y las llamadas fallan al instante con
`CircuitBreakerOpen` hasta que pasa `recovery_timeout_seconds`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, TypeVar

from .circuit_breaker_config import CircuitBreakerConfig, CircuitBreakerOpen, CircuitState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """Breaker CLOSED -> OPEN -> HALF_OPEN -> CLOSED.

    Uso:
        cb = CircuitBreaker("device_registry")
        device = cb.call(lambda: transport.request("GET", url))
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._config = config or CircuitBreakerConfig.from_env()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: float = 0.0
        self._lock = threading.Lock()

        logger.info(
            "CircuitBreaker '%s' initialized: failure_threshold=%d "
            "recovery_timeout=%.1fs success_threshold=%d",
            name,
            self._config.failure_threshold,
            self._config.recovery_timeout_seconds,
            self._config.success_threshold,
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def call(self, func: Callable[[], T]) -> T:
        """Ejecuta `func` protegida por el breaker.

        Raises:
            CircuitBreakerOpen: si el circuito está abierto.
            Exception: cualquier error de `func`, que cuenta como fallo.
        """
        with self._lock:
            self._maybe_half_open()
            if self._state == CircuitState.OPEN:
                remaining = self._config.recovery_timeout_seconds - (self._clock() - self._opened_at)
                raise CircuitBreakerOpen(self.name, max(0.0, remaining))

        try:
            result = func()
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _maybe_half_open(self) -> None:
        if self._state != CircuitState.OPEN:
            return
        if self._clock() - self._opened_at >= self._config.recovery_timeout_seconds:
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            logger.info("CircuitBreaker '%s': OPEN -> HALF_OPEN (testing recovery)", self.name)

    def _on_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self._config.success_threshold:
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
                    logger.info("CircuitBreaker '%s': HALF_OPEN -> CLOSED (recovered)", self.name)
            else:
                self._failure_count = 0

    def _on_failure(self, error: Exception) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._open()
                logger.warning(
                    "CircuitBreaker '%s': HALF_OPEN -> OPEN (test failed: %s)",
                    self.name,
                    str(error)[:100],
                )
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._open()
                logger.warning(
                    "CircuitBreaker '%s': CLOSED -> OPEN (failures=%d threshold=%d error=%s)",
                    self.name,
                    self._failure_count,
                    self._config.failure_threshold,
                    str(error)[:100],
                )

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
        logger.info("CircuitBreaker '%s': RESET to CLOSED", self.name)

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
            }
