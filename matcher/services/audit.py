"""
ShortlistAuditService

Checks that every shortlisted match has its conversation and reports
shortlist events that are still undelivered. Optionally repairs missing
conversations and exhausted events through the conversation store
(idempotent get-or-create), marking the repaired events delivered.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session, sessionmaker
import structlog

from matcher.errors import DownstreamUnavailable
from matcher.models import Conversation, Match, MatchStatus, OutboxMessage
from matcher.services.conversation_store import ConversationStore, SqlConversationStore
from matcher.services.shortlist_events import MATCH_SHORTLISTED

logger = structlog.get_logger(__name__)


class ShortlistAuditService:
    """
    Read-mostly audit of the shortlist side effect.

    The missing-conversation check only runs against the local conversation
    table; with a remote conversation service only the outbox is inspected.
    """

    def __init__(self, session_factory: sessionmaker, conversation_store: ConversationStore):
        self.session_factory = session_factory
        self.conversation_store = conversation_store

    @property
    def checks_local_conversations(self) -> bool:
        return isinstance(self.conversation_store, SqlConversationStore)

    def run_audit(self, repair: bool = False, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Args:
            repair: Re-run get-or-create for shortlisted matches without a
                conversation and for events that ran out of retries
            limit: Max number of missing matches to list (all are counted)

        Returns:
            Report dict with summary, missing match ids, undelivered events,
            repair results and `healthy` flag
        """
        logger.info("shortlist_audit_started", repair=repair)

        shortlisted, missing_ids, events = self._collect()
        exhausted_ids = [e["match_id"] for e in events if e["exhausted"]]

        report = {
            "summary": {
                "audit_timestamp": datetime.now(timezone.utc).isoformat(),
                "shortlisted_matches": shortlisted,
                "missing_conversations": len(missing_ids),
                "undelivered_events": len(events),
                "exhausted_events": len(exhausted_ids),
                "conversation_check": "local" if self.checks_local_conversations else "skipped_remote",
            },
            "missing_match_ids": missing_ids[:limit] if limit else missing_ids,
            "undelivered_events": events,
            "repair": None,
        }

        still_missing, still_exhausted = len(missing_ids), len(exhausted_ids)
        targets = sorted(set(missing_ids) | set(exhausted_ids))
        if repair and targets:
            report["repair"] = self._repair(targets)
            # Healthy reflects the state after repair
            _, missing_ids, events = self._collect()
            still_missing = len(missing_ids)
            still_exhausted = sum(1 for e in events if e["exhausted"])
            report["repair"]["remaining_missing"] = still_missing
            report["repair"]["remaining_exhausted"] = still_exhausted

        report["healthy"] = still_missing == 0 and still_exhausted == 0

        logger.info("shortlist_audit_completed", healthy=report["healthy"], **report["summary"])
        return report

    def _collect(self) -> Tuple[int, List[int], List[Dict[str, Any]]]:
        session = self.session_factory()
        try:
            shortlisted = session.query(Match).filter(
                Match.status == MatchStatus.shortlisted.value
            ).count()

            missing_ids = []
            if self.checks_local_conversations:
                missing_ids = [row.id for row in session.query(Match.id).outerjoin(
                    Conversation, Conversation.match_id == Match.id
                ).filter(
                    Match.status == MatchStatus.shortlisted.value,
                    Conversation.id.is_(None)
                ).order_by(Match.id.asc()).all()]

            undelivered = session.query(OutboxMessage).filter(
                OutboxMessage.processed_at.is_(None)
            ).order_by(OutboxMessage.id.asc()).all()
            events = [
                {
                    "outbox_message_id": message.id,
                    "match_id": int(message.aggregate_id),
                    "retry_count": message.retry_count,
                    "max_retries": message.max_retries,
                    "exhausted": message.retry_count >= message.max_retries,
                    "error_message": message.error_message,
                }
                for message in undelivered
            ]
            return shortlisted, missing_ids, events
        finally:
            session.close()

    def _repair(self, match_ids) -> Dict[str, Any]:
        repaired = 0
        events_closed = 0
        failures = []
        for match_id in match_ids:
            try:
                self.conversation_store.get_or_create(match_id)
            except DownstreamUnavailable as e:
                logger.warning("conversation_repair_failed", match_id=match_id, code=e.code, error=e.message)
                failures.append({"match_id": match_id, "error": e.message})
                continue

            repaired += 1
            events_closed += self._mark_delivered(match_id)

        return {
            "attempted": len(match_ids),
            "repaired": repaired,
            "events_closed": events_closed,
            "failures": failures,
        }

    def _mark_delivered(self, match_id: int) -> int:
        """Close the match's open shortlist events once its conversation exists."""
        session: Session = self.session_factory()
        try:
            closed = session.query(OutboxMessage).filter(
                OutboxMessage.operation == MATCH_SHORTLISTED,
                OutboxMessage.aggregate_id == str(match_id),
                OutboxMessage.processed_at.is_(None)
            ).update(
                {"processed_at": datetime.now(timezone.utc), "error_message": None},
                synchronize_session=False
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        if closed:
            logger.info("shortlist_event_closed_by_repair", match_id=match_id, events=closed)
        return closed
