"""
Magic-link resolution: token -> competitor's submitted ballots.

A link stays valid until the tournament's meeting date plus
``settings.magic_link_valid_years`` (one year by default). Drafts are
never exposed through this path.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ovballot.config import settings
from ovballot.db.models import Ballot, Competitor, Tournament
from ovballot.errors import Forbidden, NotFound
from ovballot.rubric import RubricConfig
from ovballot.statuses import BallotStatus


@dataclass
class ResolvedBallot:
    ballot: Ballot
    event_type_name: str
    rubric: RubricConfig


@dataclass
class MagicLinkResult:
    competitor: Competitor
    tournament: Tournament
    ballots: list[ResolvedBallot]


def magic_link_url(token: str) -> str:
    return f"{settings.frontend_url}/ballots/{token}"


def add_years(moment: datetime, years: int) -> datetime:
    """Shift by whole calendar years; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def magic_link_expiry(meeting_date: datetime) -> datetime:
    return add_years(meeting_date, settings.magic_link_valid_years)


def resolve_magic_link(
    session: Session,
    token: str,
    now: Optional[datetime] = None,
) -> MagicLinkResult:
    """
    Look up a competitor by magic token and return their submitted ballots.

    Ballots come back newest submission first, each with its event's
    display name and rubric (needed to label score slots 3 and 4).

    Raises:
        NotFound: unknown token
        Forbidden: the link is past its expiry instant
    """
    now = now or datetime.utcnow()

    competitor = (
        session.query(Competitor)
        .options(joinedload(Competitor.tournament))
        .filter(Competitor.magic_token == token)
        .first()
    ) if token else None
    if competitor is None:
        raise NotFound("Invalid magic link")

    tournament = competitor.tournament
    if now > magic_link_expiry(tournament.meeting_date):
        raise Forbidden("Magic link has expired")

    ballots = (
        session.query(Ballot)
        .options(joinedload(Ballot.event_type))
        .filter(
            Ballot.competitor_id == competitor.id,
            Ballot.status == BallotStatus.SUBMITTED,
        )
        .order_by(Ballot.submitted_at.desc(), Ballot.id)
        .all()
    )

    return MagicLinkResult(
        competitor=competitor,
        tournament=tournament,
        ballots=[
            ResolvedBallot(
                ballot=ballot,
                event_type_name=ballot.event_type.display_name,
                rubric=ballot.event_type.rubric,
            )
            for ballot in ballots
        ],
    )
