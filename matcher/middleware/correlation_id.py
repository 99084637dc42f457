"""
Correlation ID Middleware
Tags every request with a correlation ID that follows it into logs and outbox events
"""

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id

__all__ = ["CorrelationIdMiddleware", "get_correlation_id"]


def get_correlation_id() -> str:
    """
    Get current correlation ID from async context.

    Copied into outbox payloads so a conversation created by the scheduler can
    be traced back to the request that shortlisted the match.

    Returns:
        str: The correlation ID or 'none' if not available
    """
    return correlation_id.get() or 'none'
