"""
Tournament lifecycle service.

A tournament is created active and closed exactly once. Only one
tournament may be active: creating a new one closes every active
tournament first. Closing a tournament emails each competitor their
magic link (see ovballot.services.notifications).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ovballot.db.models import Ballot, Competitor, Tournament
from ovballot.errors import NotFound, ValidationError
from ovballot.services.notifications import DeliveryReport, Notifier, send_magic_links
from ovballot.statuses import TournamentStatus, ensure_can_close

logger = logging.getLogger(__name__)


@dataclass
class TournamentSummary:
    """A tournament with its related row counts."""
    tournament: Tournament
    competitor_count: int = 0
    ballot_count: int = 0


@dataclass
class CloseResult:
    tournament: Tournament
    delivery: DeliveryReport


def get_active_tournament(session: Session) -> Optional[Tournament]:
    return (
        session.query(Tournament)
        .filter(Tournament.status == TournamentStatus.ACTIVE)
        .order_by(Tournament.created_at.desc())
        .first()
    )


def require_active_tournament(session: Session) -> Tournament:
    tournament = get_active_tournament(session)
    if tournament is None:
        raise NotFound("No active tournament found")
    return tournament


def get_tournament(session: Session, tournament_id: str) -> Tournament:
    tournament = session.get(Tournament, tournament_id) if tournament_id else None
    if tournament is None:
        raise NotFound("Tournament not found")
    return tournament


def _count_by_tournament(session: Session, column, tournament_ids: list[str]) -> dict[str, int]:
    if not tournament_ids:
        return {}
    rows = (
        session.query(column, func.count())
        .filter(column.in_(tournament_ids))
        .group_by(column)
        .all()
    )
    return {tournament_id: int(count) for tournament_id, count in rows}


def _summaries(session: Session, tournaments: list[Tournament]) -> list[TournamentSummary]:
    ids = [t.id for t in tournaments]
    competitor_counts = _count_by_tournament(session, Competitor.tournament_id, ids)
    ballot_counts = _count_by_tournament(session, Ballot.tournament_id, ids)
    return [
        TournamentSummary(
            tournament=t,
            competitor_count=competitor_counts.get(t.id, 0),
            ballot_count=ballot_counts.get(t.id, 0),
        )
        for t in tournaments
    ]


def list_tournaments(session: Session) -> list[TournamentSummary]:
    """All tournaments, newest first, with competitor and ballot counts."""
    tournaments = session.query(Tournament).order_by(Tournament.created_at.desc()).all()
    return _summaries(session, tournaments)


def get_tournament_summary(session: Session, tournament_id: str) -> TournamentSummary:
    return _summaries(session, [get_tournament(session, tournament_id)])[0]


def list_past_tournaments(session: Session) -> list[TournamentSummary]:
    """Closed tournaments by meeting date (latest first), for competitor import."""
    tournaments = (
        session.query(Tournament)
        .filter(Tournament.status == TournamentStatus.CLOSED)
        .order_by(Tournament.meeting_date.desc())
        .all()
    )
    return _summaries(session, tournaments)


def create_tournament(
    session: Session,
    name: str,
    meeting_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> Tournament:
    """
    Create a new active tournament, closing any tournament still active.

    Raises:
        ValidationError: name or meeting date missing
    """
    if not name or not name.strip() or meeting_date is None:
        raise ValidationError("Name and meetingDate are required")

    now = now or datetime.utcnow()

    previously_active = (
        session.query(Tournament)
        .filter(Tournament.status == TournamentStatus.ACTIVE)
        .all()
    )
    for tournament in previously_active:
        tournament.status = TournamentStatus.CLOSED
        tournament.closed_at = now

    tournament = Tournament(
        name=name.strip(),
        meeting_date=meeting_date,
        status=TournamentStatus.ACTIVE,
        created_at=now,
    )
    session.add(tournament)
    session.flush()

    logger.info(
        "Created tournament %s (%s); auto-closed %d active tournament(s)",
        tournament.id, tournament.name, len(previously_active),
    )
    return tournament


def close_tournament(
    session: Session,
    tournament_id: str,
    notifier: Notifier,
    now: Optional[datetime] = None,
) -> CloseResult:
    """
    Close a tournament and email every competitor their magic link.

    Email failures are collected in the returned report; they do not
    undo the close.

    Raises:
        NotFound: unknown tournament
        ValidationError: tournament already closed
    """
    now = now or datetime.utcnow()
    tournament = get_tournament(session, tournament_id)
    ensure_can_close(tournament.status)

    tournament.status = TournamentStatus.CLOSED
    tournament.closed_at = now
    session.flush()
    logger.info("Closed tournament %s (%s)", tournament.id, tournament.name)

    report = send_magic_links(session, tournament, list(tournament.competitors), notifier, now=now)
    return CloseResult(tournament=tournament, delivery=report)


def send_all_links(
    session: Session,
    tournament_id: str,
    notifier: Notifier,
    now: Optional[datetime] = None,
) -> DeliveryReport:
    """Email every competitor of a tournament their magic link, active or closed."""
    tournament = get_tournament(session, tournament_id)
    return send_magic_links(session, tournament, list(tournament.competitors), notifier, now=now)
