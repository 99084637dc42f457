"""
OutboxMessage Model
Stores match lifecycle events for delivery to collaborators (transactional outbox)
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Index
from sqlalchemy.sql import func
from matcher.database import Base


class OutboxMessage(Base):
    """
    Transactional outbox for match lifecycle side effects.

    Written in the same transaction as the status change, so the event exists
    if and only if the transition committed. Delivery is at-least-once; the
    consumer (conversation get-or-create) is idempotent.
    """
    __tablename__ = "outbox_messages"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Aggregate Information
    aggregate_type = Column(String(100), nullable=False)
    # e.g., 'match'

    aggregate_id = Column(String(255), nullable=False)
    # The match id this event relates to

    # Event Details
    operation = Column(String(50), nullable=False)
    # e.g., 'match_shortlisted'

    payload = Column(JSON, nullable=False)

    # Idempotency
    idempotency_key = Column(String(255), unique=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    # Retry Logic
    retry_count = Column(Integer, default=0, nullable=False)
    max_retries = Column(Integer, default=5, nullable=False)
    error_message = Column(Text, nullable=True)

    # Indexes for efficient polling of unprocessed messages
    __table_args__ = (
        Index('ix_outbox_unprocessed', 'processed_at', 'retry_count'),
        Index('ix_outbox_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<OutboxMessage(id={self.id}, type='{self.aggregate_type}', op='{self.operation}', processed={self.processed_at is not None})>"
