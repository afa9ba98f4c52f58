"""Decorador de transporte con retry + circuit breaker."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..resilience import CircuitBreaker, RetryConfig, RetryExecutor
from .transport import HttpTransport, TransportError, TransportResponse


class ResilientTransport:
    """Envuelve cualquier HttpTransport.

    Los reintentos ocurren dentro del breaker: una request que agota sus
    reintentos cuenta como un único fallo del circuito.
    """

    def __init__(
        self,
        inner: HttpTransport,
        breaker: CircuitBreaker,
        retry: Optional[RetryExecutor] = None,
    ):
        self._inner = inner
        self._breaker = breaker
        if retry is None:
            config = RetryConfig.from_env()
            config.retryable_exceptions = (TransportError,)
            retry = RetryExecutor(config)
        self._retry = retry

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> TransportResponse:
        label = f"{self._breaker.name}:{method}"
        return self._breaker.call(
            lambda: self._retry.execute(
                lambda: self._inner.request(method, url, params=params, json=json),
                label=label,
            )
        )
