"""
Conversation Store
Get-or-create of the conversation anchored on a shortlisted match
"""

from abc import ABC, abstractmethod
from typing import Optional
import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from matcher.config import settings
from matcher.database import dialect_insert
from matcher.errors import DownstreamUnavailable
from matcher.models import Conversation
from matcher.services.monitoring.circuit_breakers import get_conversation_breaker, CircuitBreakerError

logger = structlog.get_logger(__name__)


class ConversationStore(ABC):
    """
    Collaborator interface: get_or_create(match_id) -> conversation dict.

    Implementations are idempotent per match id and raise DownstreamUnavailable
    on any failure, including an open circuit breaker.
    """

    def get_or_create(self, match_id: int) -> dict:
        try:
            return get_conversation_breaker().call(self._get_or_create, match_id)
        except CircuitBreakerError as e:
            raise DownstreamUnavailable(
                f"Conversation service circuit open: {e}", match_id=match_id
            ) from e
        except DownstreamUnavailable:
            raise
        except Exception as e:
            raise DownstreamUnavailable(
                f"Conversation get-or-create failed: {e}", match_id=match_id
            ) from e

    @abstractmethod
    def _get_or_create(self, match_id: int) -> dict:
        """Create or fetch the conversation; any exception counts as a failure."""


class SqlConversationStore(ConversationStore):
    """
    Conversations kept in the match database.

    Runs in its own session (independent transaction) so a failure here never
    rolls back the match transition that triggered it.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _get_or_create(self, match_id: int) -> dict:
        session = self.session_factory()
        try:
            stmt = dialect_insert(session, Conversation).values(
                match_id=match_id
            ).on_conflict_do_nothing(index_elements=["match_id"])
            result = session.execute(stmt)
            session.commit()

            conversation = session.query(Conversation).filter(
                Conversation.match_id == match_id
            ).one()

            logger.info("conversation_get_or_create",
                        match_id=match_id,
                        conversation_id=conversation.id,
                        created=result.rowcount > 0)
            return conversation.to_dict()

        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()


class HttpConversationStore(ConversationStore):
    """
    Conversations owned by the messaging service.

    POST {base_url}/conversations with {"matchId": ...}; the service performs
    get-or-create. Every call is bounded by the configured timeout.
    """

    def __init__(self, base_url: str, timeout_seconds: float, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout_seconds)

    def _get_or_create(self, match_id: int) -> dict:
        response = self.client.post(
            f"{self.base_url}/conversations",
            json={"matchId": match_id},
        )
        response.raise_for_status()

        body = response.json()
        conversation = body.get("conversation", body)
        logger.info("conversation_get_or_create",
                    match_id=match_id,
                    conversation_id=conversation.get("id"),
                    status_code=response.status_code)
        return conversation


def build_conversation_store(session_factory: Optional[sessionmaker]) -> ConversationStore:
    """HTTP store when CONVERSATION_SERVICE_URL is set, database store otherwise."""
    if settings.conversation_service_url:
        return HttpConversationStore(
            base_url=settings.conversation_service_url,
            timeout_seconds=settings.conversation_timeout_seconds,
        )
    return SqlConversationStore(session_factory)
