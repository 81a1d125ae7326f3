"""
OV-Ballot services: business logic behind the web API.

Flow:
1. Ballot intake: judges save drafts and submit ballots
2. Rankings: submitted ballots become per-event leaderboards
3. Magic links: competitors retrieve their submitted ballots by token
4. Tournament admin: lifecycle, competitors, link delivery

Usage:
    from ovballot.services import (
        submit_ballot,
        get_tournament_rankings,
        resolve_magic_link,
    )
"""

from ovballot.services.ballots import (
    BallotFields,
    RequestMeta,
    get_draft,
    save_draft,
    submit_ballot,
)
from ovballot.services.magic_link import resolve_magic_link
from ovballot.services.rankings import (
    EventLeaderboard,
    compute_leaderboards,
    get_tournament_rankings,
)
from ovballot.services.tournaments import close_tournament, create_tournament

__all__ = [
    # Ballot intake
    "BallotFields",
    "RequestMeta",
    "save_draft",
    "get_draft",
    "submit_ballot",
    # Magic links
    "resolve_magic_link",
    # Rankings
    "EventLeaderboard",
    "compute_leaderboards",
    "get_tournament_rankings",
    # Tournaments
    "create_tournament",
    "close_tournament",
]
