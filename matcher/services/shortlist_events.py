"""
Shortlist Event Relay
Delivers "match reached shortlisted" events to the conversation collaborator
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import structlog
from sqlalchemy.orm import Session, sessionmaker

from matcher.config import settings
from matcher import database
from matcher.database import dialect_insert
from matcher.errors import DownstreamUnavailable
from matcher.middleware.correlation_id import get_correlation_id
from matcher.models import Match, OutboxMessage
from matcher.services.conversation_store import ConversationStore, build_conversation_store

logger = structlog.get_logger(__name__)

MATCH_SHORTLISTED = "match_shortlisted"


def shortlist_event_key(match_id: int) -> str:
    """Idempotency key: one shortlist event per match."""
    return f"{MATCH_SHORTLISTED}:{match_id}"


class ShortlistEventRelay:
    """
    Transactional outbox for the shortlist side effect.

    Flow:
    1. enqueue() writes the event in the caller's transaction
    2. Caller commits the status change
    3. dispatch() attempts conversation get-or-create (best-effort)
    4. drain_pending() retries failed events from the scheduler

    The status transition is authoritative: delivery failures are recorded on
    the outbox row and logged, never raised to the request.
    """

    def __init__(self, session_factory: sessionmaker, conversation_store: ConversationStore):
        """
        Args:
            session_factory: SQLAlchemy sessionmaker (dispatch runs its own transactions)
            conversation_store: Collaborator receiving get_or_create(match_id)
        """
        self.session_factory = session_factory
        self.conversation_store = conversation_store
        self.logger = logger.bind(service="shortlist_events")

    def enqueue(self, db: Session, match: Match) -> int:
        """
        Record a shortlist event for a match in the caller's transaction.

        Does NOT commit. A second shortlist of the same match reuses the
        existing event.

        Returns:
            OutboxMessage id
        """
        key = shortlist_event_key(match.id)
        stmt = dialect_insert(db, OutboxMessage).values(
            aggregate_type="match",
            aggregate_id=str(match.id),
            operation=MATCH_SHORTLISTED,
            payload={
                "match_id": match.id,
                "creator_id": match.creator_id,
                "brand_id": match.brand_id,
                "correlation_id": get_correlation_id(),
            },
            idempotency_key=key,
            max_retries=settings.outbox_max_retries,
        ).on_conflict_do_nothing(index_elements=["idempotency_key"])

        result = db.execute(stmt)
        message_id = db.query(OutboxMessage.id).filter(
            OutboxMessage.idempotency_key == key
        ).scalar()

        self.logger.info("shortlist_event_enqueued",
                         match_id=match.id,
                         outbox_message_id=message_id,
                         duplicate=result.rowcount == 0)
        return message_id

    def dispatch(self, message_id: int) -> bool:
        """
        Deliver one event. Post-commit, own session.

        Returns:
            True if the conversation exists after the call, False otherwise
        """
        log = self.logger.bind(outbox_message_id=message_id)
        session: Session = self.session_factory()
        try:
            message = session.get(OutboxMessage, message_id)
            if message is None:
                log.error("outbox_message_not_found")
                return False
            if message.processed_at is not None:
                log.debug("outbox_message_already_processed")
                return True

            match_id = int(message.aggregate_id)
            log = log.bind(match_id=match_id, retry_count=message.retry_count)
            # No transaction is held open across the collaborator call
            session.commit()

            try:
                conversation = self.conversation_store.get_or_create(match_id)
            except DownstreamUnavailable as e:
                message.retry_count += 1
                message.error_message = e.message
                session.commit()
                log.warning("conversation_create_failed",
                            code=e.code,
                            error=e.message,
                            retry_count=message.retry_count,
                            max_retries=message.max_retries)
                return False

            message.processed_at = datetime.now(timezone.utc)
            message.error_message = None
            session.commit()

            log.info("shortlist_event_delivered", conversation_id=conversation.get("id"))
            return True

        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def drain_pending(self, retention_days: Optional[int] = None) -> Dict[str, int]:
        """
        Retry undelivered events and delete old delivered ones.

        Called by the scheduler, never inline in a request.

        Returns:
            dict: {'retried': N, 'succeeded': N, 'failed': N, 'deleted': N}
        """
        retention_days = settings.outbox_retention_days if retention_days is None else retention_days

        session: Session = self.session_factory()
        try:
            pending_ids = [row.id for row in session.query(OutboxMessage.id).filter(
                OutboxMessage.operation == MATCH_SHORTLISTED,
                OutboxMessage.processed_at.is_(None),
                OutboxMessage.retry_count < OutboxMessage.max_retries
            ).order_by(OutboxMessage.id.asc()).all()]
        finally:
            session.close()

        succeeded = 0
        failed = 0
        for message_id in pending_ids:
            if self.dispatch(message_id):
                succeeded += 1
            else:
                failed += 1

        deleted = self._cleanup_processed(retention_days)

        summary = {
            "retried": len(pending_ids),
            "succeeded": succeeded,
            "failed": failed,
            "deleted": deleted,
        }
        self.logger.info("shortlist_events_drained", **summary)
        return summary

    def _cleanup_processed(self, retention_days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        session: Session = self.session_factory()
        try:
            deleted = session.query(OutboxMessage).filter(
                OutboxMessage.processed_at.isnot(None),
                OutboxMessage.processed_at < cutoff
            ).delete(synchronize_session=False)
            session.commit()
            return deleted
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Lazily built relay shared by requests and the scheduler
_relay: Optional[ShortlistEventRelay] = None


def get_event_relay() -> Optional[ShortlistEventRelay]:
    """
    Dependency returning the process-wide relay, or None without a database.

    Usage: relay: ShortlistEventRelay = Depends(get_event_relay)
    """
    global _relay

    if database.SessionLocal is None:
        return None
    if _relay is None or _relay.session_factory is not database.SessionLocal:
        _relay = ShortlistEventRelay(
            session_factory=database.SessionLocal,
            conversation_store=build_conversation_store(database.SessionLocal),
        )
    return _relay
