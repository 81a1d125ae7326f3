"""
Competitor management: roster, CRUD and import from past tournaments.

Imports de-duplicate by lowercased email within the destination
tournament, including duplicates inside the imported batch itself.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ovballot.db.models import Ballot, Competitor, Tournament
from ovballot.errors import NotFound, ValidationError
from ovballot.services.tournaments import get_tournament, require_active_tournament

logger = logging.getLogger(__name__)


@dataclass
class CompetitorInput:
    first_name: str
    last_name: str
    email: str


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _roster_order():
    return (Competitor.last_name.asc(), Competitor.first_name.asc())


def get_competitor(session: Session, competitor_id: str) -> Competitor:
    competitor = session.get(Competitor, competitor_id) if competitor_id else None
    if competitor is None:
        raise NotFound("Competitor not found")
    return competitor


def active_roster(session: Session) -> tuple[Tournament, list[Competitor]]:
    """
    Competitors of the active tournament, sorted by last then first name.

    Raises:
        NotFound: no active tournament
    """
    tournament = require_active_tournament(session)
    competitors = (
        session.query(Competitor)
        .filter(Competitor.tournament_id == tournament.id)
        .order_by(*_roster_order())
        .all()
    )
    return tournament, competitors


def list_competitors(session: Session, tournament_id: str) -> list[tuple[Competitor, int]]:
    """Competitors of a tournament paired with their ballot counts."""
    if not tournament_id:
        raise ValidationError("tournamentId is required")

    competitors = (
        session.query(Competitor)
        .filter(Competitor.tournament_id == tournament_id)
        .order_by(*_roster_order())
        .all()
    )
    ids = [c.id for c in competitors]
    counts: dict[str, int] = {}
    if ids:
        counts = dict(
            session.query(Ballot.competitor_id, func.count(Ballot.id))
            .filter(Ballot.competitor_id.in_(ids))
            .group_by(Ballot.competitor_id)
            .all()
        )
    return [(c, int(counts.get(c.id, 0))) for c in competitors]


def create_competitor(
    session: Session,
    tournament_id: str,
    first_name: str,
    last_name: str,
    email: str,
) -> Competitor:
    data = CompetitorInput(_clean(first_name), _clean(last_name), _clean(email))
    if not tournament_id or not data.first_name or not data.last_name or not data.email:
        raise ValidationError("All fields are required")

    get_tournament(session, tournament_id)
    competitor = Competitor(
        tournament_id=tournament_id,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
    )
    session.add(competitor)
    session.flush()
    return competitor


def update_competitor(
    session: Session,
    competitor_id: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
) -> Competitor:
    """Correct a competitor's name or email. The magic token never changes."""
    competitor = get_competitor(session, competitor_id)
    for attr, value in (
        ("first_name", first_name),
        ("last_name", last_name),
        ("email", email),
    ):
        if value is None:
            continue
        if not _clean(value):
            raise ValidationError(f"{attr} cannot be empty")
        setattr(competitor, attr, _clean(value))
    session.flush()
    return competitor


def delete_competitor(session: Session, competitor_id: str) -> None:
    competitor = get_competitor(session, competitor_id)
    session.delete(competitor)
    session.flush()
    logger.info("Deleted competitor %s", competitor_id)


def competitors_for_import(session: Session, tournament_id: str) -> list[CompetitorInput]:
    competitors = (
        session.query(Competitor)
        .filter(Competitor.tournament_id == tournament_id)
        .order_by(*_roster_order())
        .all()
    )
    return [CompetitorInput(c.first_name, c.last_name, c.email) for c in competitors]


def import_competitors(
    session: Session,
    tournament_id: str,
    entries: Iterable[CompetitorInput],
) -> ImportResult:
    """
    Copy competitors into a tournament, skipping emails already present.

    Raises:
        ValidationError: empty batch or an entry missing a field
        NotFound: unknown destination tournament
    """
    entries = list(entries)
    if not entries:
        raise ValidationError("Competitors array is required")
    for entry in entries:
        if not _clean(entry.first_name) or not _clean(entry.last_name) or not _clean(entry.email):
            raise ValidationError("Every competitor needs firstName, lastName and email")

    get_tournament(session, tournament_id)

    seen = {
        _clean(email).lower()
        for (email,) in session.query(Competitor.email)
        .filter(Competitor.tournament_id == tournament_id)
        .all()
    }

    result = ImportResult()
    for entry in entries:
        key = _clean(entry.email).lower()
        if key in seen:
            result.skipped += 1
            continue
        seen.add(key)
        session.add(
            Competitor(
                tournament_id=tournament_id,
                first_name=_clean(entry.first_name),
                last_name=_clean(entry.last_name),
                email=_clean(entry.email),
            )
        )
        result.imported += 1

    session.flush()
    logger.info(
        "Imported %d competitor(s) into tournament %s (%d skipped)",
        result.imported, tournament_id, result.skipped,
    )
    return result
