"""
Tests for the shortlist event relay, conversation stores and audit

Tests cover:
- Enqueue dedupe per match
- Dispatch success, failure bookkeeping and retries via drain
- Circuit breaker surfacing as DownstreamUnavailable
- HTTP conversation store contract
- Shortlist audit and repair, including events out of retries
"""

import json

import httpx
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from matcher.errors import DownstreamUnavailable
from matcher.models import Conversation, Match, OutboxMessage
from matcher.scheduler import run_outbox_drain
from matcher.services.audit import ShortlistAuditService
from matcher.services.conversation_store import (
    ConversationStore,
    HttpConversationStore,
    SqlConversationStore,
)
from matcher.services.match_store import MatchStore
from matcher.services.monitoring import get_conversation_breaker
from matcher.services.shortlist_events import ShortlistEventRelay, get_event_relay, shortlist_event_key


class FlakyStore(SqlConversationStore):
    """Fails while `down` is True."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.down = True

    def _get_or_create(self, match_id):
        if self.down:
            raise ConnectionError("conversation service unreachable")
        return super()._get_or_create(match_id)


@pytest.fixture
def shortlisted_match(db, scenario_pair):
    """Shortlisted match row committed without any event delivery."""
    match = MatchStore(db).insert_match("creator-c", "brand-b", "shortlisted", 71.13, None)
    db.commit()
    return match


class TestEnqueue:

    def test_enqueue_is_idempotent_per_match(self, db, shortlisted_match, event_relay):
        first = event_relay.enqueue(db, shortlisted_match)
        second = event_relay.enqueue(db, shortlisted_match)
        db.commit()

        assert first == second
        message = db.query(OutboxMessage).one()
        assert message.idempotency_key == shortlist_event_key(shortlisted_match.id)
        assert message.payload["creator_id"] == "creator-c"
        assert message.payload["correlation_id"] == "none"

    def test_enqueue_does_not_commit(self, db, shortlisted_match, event_relay):
        event_relay.enqueue(db, shortlisted_match)
        db.rollback()
        assert db.query(OutboxMessage).count() == 0


class TestDispatch:

    def test_success_marks_processed(self, db, shortlisted_match, event_relay):
        message_id = event_relay.enqueue(db, shortlisted_match)
        db.commit()

        assert event_relay.dispatch(message_id) is True
        assert event_relay.dispatch(message_id) is True
        assert db.query(Conversation).count() == 1

    def test_failure_records_error(self, db, session_factory, shortlisted_match):
        relay = ShortlistEventRelay(session_factory, FlakyStore(session_factory))
        message_id = relay.enqueue(db, shortlisted_match)
        db.commit()

        assert relay.dispatch(message_id) is False

        message = db.get(OutboxMessage, message_id)
        assert message.retry_count == 1
        assert "unreachable" in message.error_message
        assert message.processed_at is None

    def test_unknown_message(self, event_relay):
        assert event_relay.dispatch(12345) is False


class TestDrain:

    def test_drain_retries_until_delivered(self, db, session_factory, shortlisted_match):
        store = FlakyStore(session_factory)
        relay = ShortlistEventRelay(session_factory, store)
        relay.enqueue(db, shortlisted_match)
        db.commit()

        failed_run = relay.drain_pending()
        assert failed_run == {"retried": 1, "succeeded": 0, "failed": 1, "deleted": 0}

        store.down = False
        recovered_run = relay.drain_pending()
        assert recovered_run["succeeded"] == 1
        assert db.query(Conversation).filter(Conversation.match_id == shortlisted_match.id).count() == 1

        assert relay.drain_pending()["retried"] == 0

    def test_exhausted_events_not_retried(self, db, session_factory, shortlisted_match, event_relay):
        message_id = event_relay.enqueue(db, shortlisted_match)
        db.commit()
        message = db.get(OutboxMessage, message_id)
        message.retry_count = message.max_retries
        db.commit()

        assert event_relay.drain_pending()["retried"] == 0

    def test_old_processed_events_deleted(self, db, shortlisted_match, event_relay):
        message_id = event_relay.enqueue(db, shortlisted_match)
        db.commit()
        message = db.get(OutboxMessage, message_id)
        message.processed_at = datetime.now(timezone.utc) - timedelta(days=40)
        db.commit()

        assert event_relay.drain_pending(retention_days=30)["deleted"] == 1
        assert db.query(OutboxMessage).count() == 0

    def test_scheduled_job_uses_configured_relay(self, db, configured_database, shortlisted_match):
        relay = get_event_relay()
        relay.enqueue(db, shortlisted_match)
        db.commit()

        result = run_outbox_drain()
        assert result["succeeded"] == 1

    def test_relay_follows_module_session_factory(self, configured_database, monkeypatch):
        relay = get_event_relay()
        assert relay.session_factory is configured_database
        assert isinstance(relay.conversation_store, SqlConversationStore)
        assert relay.conversation_store.session_factory is configured_database

        from matcher import database
        replacement = Mock()
        monkeypatch.setattr(database, "SessionLocal", replacement)
        assert get_event_relay().session_factory is replacement

    def test_scheduled_job_without_database(self, monkeypatch):
        from matcher import database
        monkeypatch.setattr(database, "SessionLocal", None)
        assert get_event_relay() is None
        assert run_outbox_drain() is None


class TestConversationStores:

    def test_sql_store_get_or_create_is_idempotent(self, shortlisted_match, session_factory):
        store = SqlConversationStore(session_factory)
        first = store.get_or_create(shortlisted_match.id)
        second = store.get_or_create(shortlisted_match.id)
        assert first["id"] == second["id"]
        assert first["match_id"] == shortlisted_match.id

    def test_open_circuit_is_downstream_unavailable(self, session_factory):
        store = FlakyStore(session_factory)
        breaker = get_conversation_breaker()

        for _ in range(breaker.fail_max):
            with pytest.raises(DownstreamUnavailable):
                store.get_or_create(1)

        assert breaker.current_state == "open"
        store.down = False
        with pytest.raises(DownstreamUnavailable) as exc_info:
            store.get_or_create(1)
        assert "circuit open" in exc_info.value.message

    def test_http_store_posts_match_id(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(201, json={"conversation": {"id": 9, "matchId": 4}})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        store = HttpConversationStore("http://messaging.local/", timeout_seconds=1.0, client=client)

        assert store.get_or_create(4) == {"id": 9, "matchId": 4}
        assert seen["url"] == "http://messaging.local/conversations"
        assert json.loads(seen["body"]) == {"matchId": 4}

    def test_http_store_error_status(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(502)))
        store = HttpConversationStore("http://messaging.local", timeout_seconds=1.0, client=client)

        with pytest.raises(DownstreamUnavailable):
            store.get_or_create(4)

    def test_base_store_is_abstract(self):
        with pytest.raises(TypeError):
            ConversationStore()

    def test_subclass_without_get_or_create_rejected(self):
        class Incomplete(ConversationStore):
            pass

        with pytest.raises(TypeError):
            Incomplete()

    def test_subclass_failure_maps_to_downstream_unavailable(self):
        class Broken(ConversationStore):
            def _get_or_create(self, match_id):
                raise KeyError(match_id)

        with pytest.raises(DownstreamUnavailable):
            Broken().get_or_create(1)


class TestAudit:

    def test_missing_conversation_reported_and_repaired(self, db, session_factory, shortlisted_match):
        audit = ShortlistAuditService(session_factory, SqlConversationStore(session_factory))

        report = audit.run_audit()
        assert report["missing_match_ids"] == [shortlisted_match.id]
        assert report["healthy"] is False

        repaired = audit.run_audit(repair=True)
        assert repaired["repair"]["repaired"] == 1
        assert repaired["healthy"] is True
        assert audit.run_audit()["summary"]["missing_conversations"] == 0

    def test_repair_failure_stays_unhealthy(self, session_factory, shortlisted_match):
        audit = ShortlistAuditService(session_factory, FlakyStore(session_factory))
        report = audit.run_audit(repair=True)

        assert report["repair"]["failures"][0]["match_id"] == shortlisted_match.id
        assert report["healthy"] is False

    def test_repair_closes_exhausted_event(self, db, session_factory, shortlisted_match, event_relay):
        message_id = event_relay.enqueue(db, shortlisted_match)
        message = db.get(OutboxMessage, message_id)
        message.retry_count = message.max_retries
        message.error_message = "conversation service unreachable"
        db.commit()

        audit = ShortlistAuditService(session_factory, SqlConversationStore(session_factory))
        before = audit.run_audit()
        assert before["summary"]["exhausted_events"] == 1
        assert before["healthy"] is False

        repaired = audit.run_audit(repair=True)
        assert repaired["repair"]["events_closed"] == 1
        assert repaired["repair"]["remaining_exhausted"] == 0
        assert repaired["healthy"] is True

        db.expire_all()
        message = db.get(OutboxMessage, message_id)
        assert message.processed_at is not None
        assert message.error_message is None
        assert db.query(Conversation).filter(Conversation.match_id == shortlisted_match.id).count() == 1

        after = audit.run_audit()
        assert after["summary"]["undelivered_events"] == 0
        assert after["healthy"] is True

    def test_repair_closes_exhausted_event_on_remote_store(self, db, session_factory, shortlisted_match, event_relay):
        message_id = event_relay.enqueue(db, shortlisted_match)
        db.get(OutboxMessage, message_id).retry_count = 5
        db.commit()

        store = Mock(spec=HttpConversationStore)
        store.get_or_create.return_value = {"id": "conv-1", "match_id": shortlisted_match.id}
        report = ShortlistAuditService(session_factory, store).run_audit(repair=True)

        store.get_or_create.assert_called_once_with(shortlisted_match.id)
        assert report["repair"]["events_closed"] == 1
        assert report["healthy"] is True

    def test_remote_store_skips_conversation_check(self, session_factory, shortlisted_match):
        audit = ShortlistAuditService(session_factory, Mock(spec=HttpConversationStore))
        report = audit.run_audit()

        assert report["summary"]["conversation_check"] == "skipped_remote"
        assert report["missing_match_ids"] == []
        assert report["healthy"] is True

    def test_healthy_when_nothing_shortlisted(self, session_factory, db, scenario_pair):
        report = ShortlistAuditService(session_factory, SqlConversationStore(session_factory)).run_audit()
        assert report["summary"]["shortlisted_matches"] == 0
        assert report["healthy"] is True
        assert db.query(Match).count() == 0
