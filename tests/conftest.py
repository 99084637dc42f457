"""
Shared fixtures: file-backed SQLite database per test, seeded users and
profiles, and a shortlist event relay wired to the local conversation store.
"""

import os

# Keep the scheduler off when matcher.main is imported by API tests
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from matcher import database
from matcher.database import Base
from matcher.models import User, CreatorProfile, BrandProfile
from matcher.services.conversation_store import SqlConversationStore
from matcher.services.monitoring import reset_breakers
from matcher.services.shortlist_events import ShortlistEventRelay


@pytest.fixture(autouse=True)
def fresh_circuit_breakers():
    """Breakers are process-wide; failures must not leak between tests."""
    reset_breakers()
    yield
    reset_breakers()


@pytest.fixture
def session_factory(tmp_path):
    """Sessionmaker bound to an empty SQLite database with all tables."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'matcher.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def immediate_session_factory(session_factory, tmp_path):
    """
    Second engine on the same database whose transactions start with
    BEGIN IMMEDIATE, so concurrent writers queue on the busy timeout instead
    of failing a lock upgrade. Used by the multi-threaded tests.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'matcher.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def configured_database(session_factory, monkeypatch):
    """Point the module-level session factory at the test database."""
    monkeypatch.setattr(database, "SessionLocal", session_factory)
    return session_factory


@pytest.fixture
def make_creator(db):
    """Factory: insert a creator user with a profile (profile=False skips it)."""
    def _make(user_id, verified=False, profile=True, **fields):
        db.add(User(id=user_id, role="creator", verified=verified))
        if profile:
            db.add(CreatorProfile(user_id=user_id, **fields))
        db.commit()
        return db.get(User, user_id)
    return _make


@pytest.fixture
def make_brand(db):
    """Factory: insert a brand user with a profile (profile=False skips it)."""
    def _make(user_id, verified=False, profile=True, company_name=None, **fields):
        db.add(User(id=user_id, role="brand", verified=verified))
        if profile:
            db.add(BrandProfile(user_id=user_id, company_name=company_name or f"{user_id} Inc", **fields))
        db.commit()
        return db.get(User, user_id)
    return _make


@pytest.fixture
def scenario_pair(make_creator, make_brand):
    """Lifestyle/travel creator and travel brand used as the scoring regression pair."""
    creator = make_creator(
        "creator-c",
        instagram_handle="@wanderlust",
        tiktok_handle="@wanderlust.tt",
        follower_count_ig=40000,
        follower_count_tiktok=10000,
        bio="lifestyle and travel content",
    )
    brand = make_brand(
        "brand-b",
        company_name="Trailhead Gear",
        vertical="travel",
        ad_spend_range="10k-25k",
        bio="travel gear for outdoor lifestyle",
    )
    return creator, brand


@pytest.fixture
def event_relay(session_factory):
    """Relay delivering to conversations stored in the test database."""
    return ShortlistEventRelay(
        session_factory=session_factory,
        conversation_store=SqlConversationStore(session_factory),
    )
