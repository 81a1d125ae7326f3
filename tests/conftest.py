"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ovballot.db.models import Base, Competitor, EventType, Tournament
from ovballot.services.event_types import seed_event_types
from ovballot.services.notifications import NotificationError
from ovballot.statuses import TournamentStatus


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
    )
    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_tournament(db_session):
    def _make(
        name="March Club Meet",
        meeting_date=datetime(2026, 3, 14, 18, 0),
        status=TournamentStatus.ACTIVE,
        created_at=None,
    ):
        tournament = Tournament(
            name=name,
            meeting_date=meeting_date,
            status=status,
            created_at=created_at or datetime(2026, 3, 1, 12, 0),
        )
        db_session.add(tournament)
        db_session.flush()
        return tournament

    return _make


@pytest.fixture
def make_competitor(db_session):
    def _make(tournament, first_name="Ada", last_name="Lovelace", email=None):
        competitor = Competitor(
            tournament_id=tournament.id,
            first_name=first_name,
            last_name=last_name,
            email=email or f"{first_name.lower()}.{last_name.lower()}@example.com",
        )
        db_session.add(competitor)
        db_session.flush()
        return competitor

    return _make


@pytest.fixture
def event_types(db_session):
    """The seeded catalog, keyed by internal name."""
    seed_event_types(db_session)
    return {et.name: et for et in db_session.query(EventType).all()}


class FakeNotifier:
    """Records outgoing mail; addresses in ``fail_for`` raise NotificationError."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, to_address, subject, html_body):
        if to_address in self.fail_for:
            raise NotificationError("mailbox unavailable")
        self.sent.append((to_address, subject, html_body))


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def notifier_factory():
    return FakeNotifier
