"""
SQLAlchemy ORM models for OV-Ballot.

This module defines all database tables and their relationships.

Key design decisions:
- A tournament owns its competitors and ballots (cascade on delete)
- Competitors carry an opaque magic token used for result retrieval;
  the token is generated once and never reassigned
- Event types are static reference data with a JSON rubric blob
- A ballot is a draft until submitted; the transition is one-way
- At most one open draft per (device, competitor, event type), enforced
  with a partial unique index

Tables:
- tournaments: One club meeting
- competitors: Speakers registered for a tournament
- event_types: Speech events and their rubric configuration
- ballots: Judge scoring sheets (drafts and submissions)
"""

import secrets
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from ovballot.rubric import SCORE_FIELDS, RubricConfig
from ovballot.statuses import BallotStatus, TournamentStatus


def _new_id() -> str:
    return str(uuid.uuid4())


def new_magic_token() -> str:
    """Opaque, unguessable token for a competitor's results link."""
    return secrets.token_urlsafe(32)


def _status_enum(enum_cls, name: str) -> Enum:
    # Stored as plain strings ("active", "draft", ...) so raw SQL and
    # partial index predicates can compare against literal values.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Tournament Models
# =============================================================================

class Tournament(Base):
    """
    A single club tournament (one meeting date).

    Only one tournament may be active at a time; creating a new tournament
    closes whichever one is active. Closing is irreversible.
    """
    __tablename__ = "tournaments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    meeting_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[TournamentStatus] = mapped_column(
        _status_enum(TournamentStatus, "tournament_status"),
        nullable=False,
        default=TournamentStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    competitors: Mapped[list["Competitor"]] = relationship(
        back_populates="tournament", cascade="all, delete-orphan"
    )
    ballots: Mapped[list["Ballot"]] = relationship(
        back_populates="tournament", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_tournaments_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == TournamentStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Tournament(id='{self.id}', name='{self.name}', status='{self.status.value}')>"


class Competitor(Base):
    """
    A speaker registered for one tournament.

    The magic_token is the only credential a competitor ever sees: it is
    emailed as part of a link and unlocks their submitted ballots.
    """
    __tablename__ = "competitors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tournament_id: Mapped[str] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    magic_token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, default=new_magic_token
    )
    magic_link_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    tournament: Mapped["Tournament"] = relationship(back_populates="competitors")
    ballots: Mapped[list["Ballot"]] = relationship(
        back_populates="competitor", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_competitors_tournament", "tournament_id"),
    )

    @validates("magic_token")
    def _validate_magic_token(self, key, value):
        if self.magic_token is not None and value != self.magic_token:
            raise ValueError("magic_token cannot be changed once assigned")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Competitor(id='{self.id}', name='{self.full_name}')>"


class EventType(Base):
    """
    A speech event (Informative, Duo Interpretation, ...).

    Static reference data seeded by scripts/seed_event_types.py.
    """
    __tablename__ = "event_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rubric_config: Mapped[dict] = mapped_column(JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def rubric(self) -> RubricConfig:
        return RubricConfig.from_dict(self.rubric_config)

    def __repr__(self) -> str:
        return f"<EventType(id={self.id}, name='{self.name}')>"


# =============================================================================
# Ballot Model
# =============================================================================

class Ballot(Base):
    """
    One judge's scoring sheet for one competitor in one event.

    Score slots 3 and 4 are labelled per the event's rubric kind (see
    ovballot.rubric). Drafts allow partial input; submission requires all
    five scores in 1-5. Drafts older than the configured max age are
    ignored by readers but not deleted.
    """
    __tablename__ = "ballots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    tournament_id: Mapped[str] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False
    )
    competitor_id: Mapped[str] = mapped_column(
        ForeignKey("competitors.id", ondelete="CASCADE"), nullable=False
    )
    event_type_id: Mapped[int] = mapped_column(ForeignKey("event_types.id"), nullable=False)

    # Judging device (browser-generated id) and judge
    device_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    judge_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Scores (1-5 once submitted)
    score_content: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_organization_citations: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_category3: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_category4: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_impact: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Comments, one per category plus overall
    comments_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_organization_citations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_category3: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_category4: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_impact: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    overall_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_time_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    speaker_rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Lifecycle
    status: Mapped[BallotStatus] = mapped_column(
        _status_enum(BallotStatus, "ballot_status"),
        nullable=False,
        default=BallotStatus.DRAFT,
    )
    draft_saved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Request metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    tournament: Mapped["Tournament"] = relationship(back_populates="ballots")
    competitor: Mapped["Competitor"] = relationship(back_populates="ballots")
    event_type: Mapped["EventType"] = relationship()

    __table_args__ = (
        Index("idx_ballots_tournament_status", "tournament_id", "status"),
        Index("idx_ballots_competitor_status", "competitor_id", "status"),
        # One open draft per device + competitor + event
        Index(
            "uq_ballots_open_draft",
            "device_id",
            "competitor_id",
            "event_type_id",
            unique=True,
            postgresql_where=text("status = 'draft'"),
            sqlite_where=text("status = 'draft'"),
        ),
    )

    @property
    def scores(self) -> list[Optional[int]]:
        return [getattr(self, name) for name in SCORE_FIELDS]

    @property
    def total_score(self) -> int:
        """Sum of the five scores, counting a missing score as 0."""
        return sum(score or 0 for score in self.scores)

    def __repr__(self) -> str:
        return f"<Ballot(id='{self.id}', status='{self.status.value}')>"
