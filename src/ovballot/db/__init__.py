"""
Database module for OV-Ballot.

Provides SQLAlchemy ORM models and session management.

Usage:
    from ovballot.db import get_session, Tournament

    with get_session() as session:
        tournaments = session.query(Tournament).all()
"""

from ovballot.db.models import (
    Base,
    Ballot,
    Competitor,
    EventType,
    Tournament,
)
from ovballot.db.session import get_session, get_engine, SessionLocal

__all__ = [
    # Base
    "Base",
    # Models
    "Tournament",
    "Competitor",
    "EventType",
    "Ballot",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]
