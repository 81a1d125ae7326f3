"""Shared lifecycle status definitions for tournaments and ballots.

This module is the single source of truth for the status values stored in
the database and the transitions allowed between them. Both lifecycles are
one-way: a tournament goes active -> closed, a ballot goes draft -> submitted.
"""

from __future__ import annotations

import enum

from ovballot.errors import ValidationError


class TournamentStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class BallotStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


# Allowed forward transitions. Anything not listed here is rejected.
TOURNAMENT_TRANSITIONS: dict[TournamentStatus, tuple[TournamentStatus, ...]] = {
    TournamentStatus.ACTIVE: (TournamentStatus.CLOSED,),
    TournamentStatus.CLOSED: (),
}

BALLOT_TRANSITIONS: dict[BallotStatus, tuple[BallotStatus, ...]] = {
    BallotStatus.DRAFT: (BallotStatus.SUBMITTED,),
    BallotStatus.SUBMITTED: (),
}


def ensure_can_close(current: TournamentStatus | str) -> None:
    """Raise ValidationError unless a tournament in ``current`` may be closed."""
    status = TournamentStatus(current)
    if TournamentStatus.CLOSED not in TOURNAMENT_TRANSITIONS[status]:
        raise ValidationError("Tournament is already closed")


def ensure_can_submit(current: BallotStatus | str) -> None:
    """Raise ValidationError unless a ballot in ``current`` may be submitted."""
    status = BallotStatus(current)
    if BallotStatus.SUBMITTED not in BALLOT_TRANSITIONS[status]:
        raise ValidationError("Ballot has already been submitted")


def parse_ballot_status(raw: str | None) -> BallotStatus | None:
    """Normalize a status filter from a query string; unknown values raise."""
    if raw is None or not raw.strip():
        return None
    try:
        return BallotStatus(raw.strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in BallotStatus)
        raise ValidationError(f"status must be one of: {valid}") from None
