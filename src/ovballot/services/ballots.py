"""
Ballot intake: judge drafts and submissions.

Judges fill a ballot on a shared device. The form auto-saves as a draft
keyed by (device, competitor, event type); a device holds at most one
open draft per competitor and event. Submitting converts that draft in
place (same ballot id) or, with no draft, creates a submitted ballot
directly.

Rules:
- Drafts accept partial input; nothing is range-checked.
- Submission requires competitor, event type, judge name and all five
  scores in 1-5; a speaker rank, when given, must also be in 1-5.
  Validation happens before any read or write.
- Both writes need an active tournament and a competitor registered in
  it (NotFound otherwise), whether or not an open draft exists.
- Drafts older than ``settings.draft_max_age_hours`` are reported as
  expired by ``get_draft`` but left in place.

Usage:
    from ovballot.services.ballots import BallotFields, save_draft, submit_ballot

    fields = BallotFields(judge_name="Mrs. Smith", score_content=4)
    draft = save_draft(session, device_id, competitor_id, event_type_id, fields)
"""

import logging
from dataclasses import dataclass, fields as dataclass_fields
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ovballot.config import settings
from ovballot.db.models import Ballot, Competitor, EventType, Tournament
from ovballot.errors import NotFound, ValidationError
from ovballot.rubric import MAX_SCORE, MIN_SCORE, SCORE_FIELDS
from ovballot.services.tournaments import require_active_tournament
from ovballot.statuses import BallotStatus, ensure_can_submit

logger = logging.getLogger(__name__)

DRAFT_EXPIRED_MESSAGE = "Draft expired (older than {hours} hours)"


@dataclass
class BallotFields:
    """Judge-entered values. Every field is optional while drafting."""
    judge_name: Optional[str] = None

    score_content: Optional[int] = None
    score_organization_citations: Optional[int] = None
    score_category3: Optional[int] = None
    score_category4: Optional[int] = None
    score_impact: Optional[int] = None

    comments_content: Optional[str] = None
    comments_organization_citations: Optional[str] = None
    comments_category3: Optional[str] = None
    comments_category4: Optional[str] = None
    comments_impact: Optional[str] = None
    overall_comments: Optional[str] = None

    total_time_seconds: Optional[int] = None
    speaker_rank: Optional[int] = None

    @property
    def scores(self) -> list[Optional[int]]:
        return [getattr(self, name) for name in SCORE_FIELDS]

    def apply_to(self, ballot: Ballot) -> None:
        """Overwrite every ballot field with this form's values."""
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            if f.name == "judge_name":
                value = (value or "").strip()
            setattr(ballot, f.name, value)


@dataclass
class RequestMeta:
    """Where a write came from (stored on the ballot for audit)."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class DraftLookup:
    draft: Optional[Ballot] = None
    message: Optional[str] = None

    @property
    def has_draft(self) -> bool:
        return self.draft is not None


def _require_keys(device_id: Optional[str], competitor_id: Optional[str], event_type_id: Optional[int]) -> None:
    if not device_id or not competitor_id or not event_type_id:
        raise ValidationError("deviceId, competitorId, and eventTypeId are required")


def validate_submission(
    competitor_id: Optional[str],
    event_type_id: Optional[int],
    fields: BallotFields,
) -> None:
    """
    Check a submission before touching the database.

    Raises:
        ValidationError: with the first problem found
    """
    if not competitor_id or not event_type_id or not (fields.judge_name or "").strip():
        raise ValidationError("competitorId, eventTypeId, and judgeName are required")

    scores = fields.scores
    if any(score is None for score in scores):
        raise ValidationError("All 5 scores are required")
    if any(score < MIN_SCORE or score > MAX_SCORE for score in scores):
        raise ValidationError(f"All scores must be between {MIN_SCORE} and {MAX_SCORE}")

    rank = fields.speaker_rank
    if rank is not None and (rank < MIN_SCORE or rank > MAX_SCORE):
        raise ValidationError(f"Speaker rank must be between {MIN_SCORE} and {MAX_SCORE}")


def _check_references(session: Session, tournament: Tournament, competitor_id: str, event_type_id: int) -> None:
    competitor = session.get(Competitor, competitor_id)
    if competitor is None or competitor.tournament_id != tournament.id:
        raise NotFound("Competitor not found in the active tournament")
    if session.get(EventType, event_type_id) is None:
        raise NotFound("Event type not found")


def _find_open_draft(
    session: Session,
    device_id: Optional[str],
    competitor_id: str,
    event_type_id: int,
) -> Optional[Ballot]:
    if not device_id:
        return None
    return (
        session.query(Ballot)
        .filter(
            Ballot.device_id == device_id,
            Ballot.competitor_id == competitor_id,
            Ballot.event_type_id == event_type_id,
            Ballot.status == BallotStatus.DRAFT,
        )
        .first()
    )


def _stamp(ballot: Ballot, meta: Optional[RequestMeta]) -> None:
    if meta is not None:
        ballot.ip_address = meta.ip_address
        ballot.user_agent = meta.user_agent


def save_draft(
    session: Session,
    device_id: Optional[str],
    competitor_id: Optional[str],
    event_type_id: Optional[int],
    fields: BallotFields,
    meta: Optional[RequestMeta] = None,
    now: Optional[datetime] = None,
) -> Ballot:
    """
    Create or overwrite the open draft for (device, competitor, event type).

    Raises:
        ValidationError: a key is missing
        NotFound: no active tournament, or unknown competitor/event type
    """
    _require_keys(device_id, competitor_id, event_type_id)
    now = now or datetime.utcnow()

    tournament = require_active_tournament(session)
    _check_references(session, tournament, competitor_id, event_type_id)
    draft = _find_open_draft(session, device_id, competitor_id, event_type_id)
    if draft is None:
        draft = Ballot(
            tournament_id=tournament.id,
            competitor_id=competitor_id,
            event_type_id=event_type_id,
            device_id=device_id,
            status=BallotStatus.DRAFT,
            created_at=now,
        )
        session.add(draft)

    fields.apply_to(draft)
    draft.draft_saved_at = now
    _stamp(draft, meta)
    session.flush()

    logger.debug("Saved draft %s for competitor %s", draft.id, competitor_id)
    return draft


def get_draft(
    session: Session,
    device_id: Optional[str],
    competitor_id: Optional[str],
    event_type_id: Optional[int],
    now: Optional[datetime] = None,
) -> DraftLookup:
    """
    Fetch the open draft for (device, competitor, event type) if still fresh.

    A draft whose last save is older than the max age is reported absent
    with an expiry message; the row itself is kept.
    """
    _require_keys(device_id, competitor_id, event_type_id)
    now = now or datetime.utcnow()

    draft = _find_open_draft(session, device_id, competitor_id, event_type_id)
    if draft is None:
        return DraftLookup()

    max_age = timedelta(hours=settings.draft_max_age_hours)
    saved_at = draft.draft_saved_at or datetime.min
    if now - saved_at > max_age:
        return DraftLookup(
            message=DRAFT_EXPIRED_MESSAGE.format(hours=settings.draft_max_age_hours)
        )
    return DraftLookup(draft=draft)


def submit_ballot(
    session: Session,
    device_id: Optional[str],
    competitor_id: Optional[str],
    event_type_id: Optional[int],
    fields: BallotFields,
    meta: Optional[RequestMeta] = None,
    now: Optional[datetime] = None,
) -> Ballot:
    """
    Submit a ballot, converting the device's open draft when there is one.

    Raises:
        ValidationError: missing fields or out-of-range scores
        NotFound: no active tournament, or unknown competitor/event type
    """
    validate_submission(competitor_id, event_type_id, fields)
    now = now or datetime.utcnow()

    tournament = require_active_tournament(session)
    _check_references(session, tournament, competitor_id, event_type_id)
    ballot = _find_open_draft(session, device_id, competitor_id, event_type_id)
    if ballot is None:
        ballot = Ballot(
            tournament_id=tournament.id,
            competitor_id=competitor_id,
            event_type_id=event_type_id,
            device_id=device_id,
            status=BallotStatus.DRAFT,
            created_at=now,
        )
        session.add(ballot)

    ensure_can_submit(ballot.status)
    fields.apply_to(ballot)
    ballot.status = BallotStatus.SUBMITTED
    ballot.submitted_at = now
    _stamp(ballot, meta)
    session.flush()

    logger.info(
        "Ballot %s submitted by %s for competitor %s (event %s)",
        ballot.id, ballot.judge_name, competitor_id, event_type_id,
    )
    return ballot


def list_ballots(
    session: Session,
    tournament_id: Optional[str] = None,
    status: Optional[BallotStatus] = None,
) -> list[Ballot]:
    """Ballots for the admin view, newest first, optionally filtered."""
    query = session.query(Ballot).options(
        joinedload(Ballot.competitor),
        joinedload(Ballot.event_type),
    )
    if tournament_id:
        query = query.filter(Ballot.tournament_id == tournament_id)
    if status is not None:
        query = query.filter(Ballot.status == status)
    return query.order_by(Ballot.created_at.desc(), Ballot.id).all()
