"""
Circuit Breaker for the Conversation Collaborator

Opens after consecutive get-or-create failures so a struggling conversation
service is not hit on every shortlist, and closes again after the reset
timeout. An open circuit is reported to callers as DownstreamUnavailable.
"""

import logging
from typing import Dict

import pybreaker
from pybreaker import CircuitBreakerError

from matcher.config import settings

logger = logging.getLogger(__name__)


class CircuitBreakerLogListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes."""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state):
        old_name = old_state.name if old_state is not None else "none"
        log = logger.warning if new_state.name == pybreaker.STATE_OPEN else logger.info
        log(
            f"Circuit breaker state change: {cb.name} transitioned from {old_name} to {new_state.name}",
            extra={
                "circuit_breaker": cb.name,
                "old_state": old_name,
                "new_state": new_state.name,
                "fail_count": cb.fail_counter
            }
        )


# Module-level instances (lazy initialization)
_breakers: Dict[str, pybreaker.CircuitBreaker] = {}

KNOWN_SERVICES = {"conversations": "conversation_store"}


def get_breaker(service_name: str) -> pybreaker.CircuitBreaker:
    """
    Get circuit breaker for a specific service.

    Lazy initializes breakers on first access to avoid import-time side effects.

    Raises:
        ValueError: If service_name is not recognized
    """
    if service_name not in KNOWN_SERVICES:
        raise ValueError(f"Unknown service name: {service_name}. Must be one of {sorted(KNOWN_SERVICES)}")

    if service_name not in _breakers:
        _breakers[service_name] = pybreaker.CircuitBreaker(
            name=KNOWN_SERVICES[service_name],
            fail_max=settings.circuit_breaker_fail_max,
            reset_timeout=settings.circuit_breaker_reset_timeout,
            listeners=[CircuitBreakerLogListener()]
        )
        logger.info(f"Initialized circuit breaker for {service_name}")
    return _breakers[service_name]


def get_conversation_breaker() -> pybreaker.CircuitBreaker:
    return get_breaker("conversations")


def reset_breakers() -> None:
    """Drop all breakers (settings reload, tests)."""
    _breakers.clear()


__all__ = [
    "CircuitBreakerLogListener",
    "get_breaker",
    "get_conversation_breaker",
    "reset_breakers",
    "CircuitBreakerError",
]
