"""Resiliencia para dependencias externas: retry con backoff y circuit breaker."""

from .circuit_breaker import CircuitBreaker
from .circuit_breaker_config import CircuitBreakerConfig, CircuitBreakerOpen, CircuitState
from .retry import RetryConfig, RetryExecutor

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerOpen",
    "CircuitState",
    "RetryConfig",
    "RetryExecutor",
]
