"""
Resilience механизмы: circuit breaker и повторы.
"""

from .circuit_breaker import CircuitBreaker, CircuitState
from .retry import create_phase_retrying, is_retryable_error

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "create_phase_retrying",
    "is_retryable_error",
]
