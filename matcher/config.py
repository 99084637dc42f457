"""
Application Configuration
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    database_url: Optional[str] = None

    # Environment
    environment: str = "development"

    # Discovery
    discover_default_limit: int = 50
    discover_max_limit: int = 200

    # Conversation collaborator
    # When unset, conversations are created in the local database
    conversation_service_url: Optional[str] = None
    conversation_timeout_seconds: float = 5.0

    # Circuit Breaker Configuration
    circuit_breaker_fail_max: int = 5  # Consecutive failures before opening circuit
    circuit_breaker_reset_timeout: int = 60  # Seconds before auto-recovery attempt

    # Shortlist event outbox
    outbox_drain_interval_minutes: int = 5
    outbox_max_retries: int = 5
    outbox_retention_days: int = 30  # Processed events older than this are deleted

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
