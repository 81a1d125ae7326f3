"""
Per-event leaderboards for a tournament.

Rankings are recomputed from scratch on every call from the set of
submitted ballots; nothing is cached between calls.

Algorithm:
1. Partition submitted ballots by event type.
2. Within an event, sum each competitor's ballot totals (five category
   scores, a missing score counting as 0) and count their ballots.
3. Sort competitors by total score, highest first.
4. Assign competition ranks: tied totals share a rank and the next
   distinct total takes its 1-based position (1, 1, 3 - not 1, 1, 2).
5. Order the leaderboards by event display name.

Usage:
    from ovballot.services.rankings import get_tournament_rankings

    with get_session() as session:
        for board in get_tournament_rankings(session, tournament_id):
            print(board.event_type_name, [e.rank for e in board.competitors])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from ovballot.db.models import Ballot
from ovballot.services.tournaments import get_tournament
from ovballot.statuses import BallotStatus


@dataclass(frozen=True)
class ScoredBallot:
    """The slice of a submitted ballot the ranking engine needs."""
    event_type_id: int
    event_type_name: str
    competitor_id: str
    competitor_name: str
    scores: Sequence[Optional[int]]

    @property
    def total(self) -> int:
        return sum(score or 0 for score in self.scores)


@dataclass
class LeaderboardEntry:
    competitor_id: str
    competitor_name: str
    total_score: int = 0
    ballot_count: int = 0
    rank: int = 0

    @property
    def average_score(self) -> float:
        if self.ballot_count == 0:
            return 0.0
        return self.total_score / self.ballot_count

    def to_dict(self) -> dict:
        return {
            "competitorId": self.competitor_id,
            "competitorName": self.competitor_name,
            "totalScore": self.total_score,
            "ballotCount": self.ballot_count,
            "averageScore": self.average_score,
            "rank": self.rank,
        }


@dataclass
class EventLeaderboard:
    event_type_id: int
    event_type_name: str
    competitors: list[LeaderboardEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "eventTypeId": self.event_type_id,
            "eventTypeName": self.event_type_name,
            "competitors": [entry.to_dict() for entry in self.competitors],
        }


def assign_ranks(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """
    Sort entries by total score (descending) and assign competition ranks.

    Ties are broken for display order by competitor name then id so the
    result does not depend on input order; tie-breaking never changes a rank.
    """
    ordered = sorted(
        entries,
        key=lambda e: (-e.total_score, e.competitor_name, e.competitor_id),
    )
    for position, entry in enumerate(ordered, start=1):
        previous = ordered[position - 2] if position > 1 else None
        if previous is not None and entry.total_score == previous.total_score:
            entry.rank = previous.rank
        else:
            entry.rank = position
    return ordered


def compute_leaderboards(ballots: Iterable[ScoredBallot]) -> list[EventLeaderboard]:
    """Build one ranked leaderboard per event type from submitted ballots."""
    boards: dict[int, EventLeaderboard] = {}
    entries: dict[int, dict[str, LeaderboardEntry]] = {}

    for ballot in ballots:
        board = boards.get(ballot.event_type_id)
        if board is None:
            board = EventLeaderboard(ballot.event_type_id, ballot.event_type_name)
            boards[ballot.event_type_id] = board
            entries[ballot.event_type_id] = {}

        by_competitor = entries[ballot.event_type_id]
        entry = by_competitor.get(ballot.competitor_id)
        if entry is None:
            entry = LeaderboardEntry(ballot.competitor_id, ballot.competitor_name)
            by_competitor[ballot.competitor_id] = entry

        entry.total_score += ballot.total
        entry.ballot_count += 1

    for event_type_id, board in boards.items():
        board.competitors = assign_ranks(list(entries[event_type_id].values()))

    return sorted(
        boards.values(),
        key=lambda b: (b.event_type_name.casefold(), b.event_type_id),
    )


def get_tournament_rankings(session: Session, tournament_id: str) -> list[EventLeaderboard]:
    """
    Leaderboards for every event with submitted ballots in a tournament.

    Raises:
        NotFound: the tournament does not exist
    """
    get_tournament(session, tournament_id)

    ballots = (
        session.query(Ballot)
        .options(joinedload(Ballot.competitor), joinedload(Ballot.event_type))
        .filter(
            Ballot.tournament_id == tournament_id,
            Ballot.status == BallotStatus.SUBMITTED,
        )
        .all()
    )

    return compute_leaderboards(
        ScoredBallot(
            event_type_id=ballot.event_type_id,
            event_type_name=ballot.event_type.display_name,
            competitor_id=ballot.competitor_id,
            competitor_name=ballot.competitor.full_name,
            scores=tuple(ballot.scores),
        )
        for ballot in ballots
    )
