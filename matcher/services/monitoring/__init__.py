"""
Monitoring Module
Exports for structured logging and circuit breakers
"""

from matcher.services.monitoring.logging import setup_logging, CorrelationJsonFormatter
from matcher.services.monitoring.circuit_breakers import (
    get_breaker,
    get_conversation_breaker,
    reset_breakers,
    CircuitBreakerError,
    CircuitBreakerLogListener,
)

__all__ = [
    "setup_logging",
    "CorrelationJsonFormatter",
    "get_breaker",
    "get_conversation_breaker",
    "reset_breakers",
    "CircuitBreakerError",
    "CircuitBreakerLogListener",
]
