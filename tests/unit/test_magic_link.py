"""Unit tests for magic-link resolution and expiry."""

from datetime import datetime, timedelta

import pytest

from ovballot.errors import Forbidden, NotFound
from ovballot.rubric import RubricKind
from ovballot.services.ballots import BallotFields, save_draft, submit_ballot
from ovballot.services.magic_link import (
    add_years,
    magic_link_expiry,
    magic_link_url,
    resolve_magic_link,
)

MEETING = datetime(2026, 3, 14, 18, 0)


def _scores(value=4, judge="Judge Judy"):
    return BallotFields(
        judge_name=judge,
        score_content=value,
        score_organization_citations=value,
        score_category3=value,
        score_category4=value,
        score_impact=value,
    )


@pytest.fixture
def competitor(make_tournament, make_competitor):
    tournament = make_tournament(meeting_date=MEETING)
    return make_competitor(tournament, "Grace", "Hopper")


def test_expiry_is_one_year_after_meeting():
    assert magic_link_expiry(MEETING) == datetime(2027, 3, 14, 18, 0)


def test_leap_day_meeting_expires_on_feb_28():
    assert add_years(datetime(2024, 2, 29, 9, 30), 1) == datetime(2025, 2, 28, 9, 30)
    assert add_years(datetime(2024, 2, 29), 4) == datetime(2028, 2, 29)


def test_magic_link_url_uses_frontend_url(monkeypatch):
    from ovballot.config import settings

    monkeypatch.setattr(settings, "frontend_url", "https://ballots.example.org")
    assert magic_link_url("abc") == "https://ballots.example.org/ballots/abc"


def test_resolves_just_before_expiry(db_session, competitor):
    result = resolve_magic_link(db_session, competitor.magic_token, now=datetime(2027, 3, 13, 18, 0))
    assert result.competitor.id == competitor.id
    assert result.tournament.meeting_date == MEETING
    assert result.ballots == []


def test_resolves_at_exact_expiry_instant(db_session, competitor):
    result = resolve_magic_link(db_session, competitor.magic_token, now=datetime(2027, 3, 14, 18, 0))
    assert result.competitor.id == competitor.id


def test_expired_link_is_forbidden(db_session, competitor):
    with pytest.raises(Forbidden, match="Magic link has expired"):
        resolve_magic_link(
            db_session, competitor.magic_token,
            now=datetime(2027, 3, 14, 18, 0) + timedelta(seconds=1),
        )


def test_unknown_token(db_session, tables):
    with pytest.raises(NotFound, match="Invalid magic link"):
        resolve_magic_link(db_session, "not-a-real-token")
    with pytest.raises(NotFound):
        resolve_magic_link(db_session, "")


def test_only_submitted_ballots_newest_first(db_session, competitor, event_types):
    informative = event_types["informative"]
    duo = event_types["duo_interpretation"]

    submit_ballot(db_session, "d1", competitor.id, informative.id, _scores(3, "Early Judge"),
                  now=MEETING + timedelta(minutes=5))
    submit_ballot(db_session, "d2", competitor.id, duo.id, _scores(5, "Late Judge"),
                  now=MEETING + timedelta(minutes=50))
    save_draft(db_session, "d3", competitor.id, informative.id, _scores(1, "Draft Judge"),
               now=MEETING + timedelta(minutes=60))

    result = resolve_magic_link(db_session, competitor.magic_token, now=MEETING + timedelta(days=1))

    assert [b.ballot.judge_name for b in result.ballots] == ["Late Judge", "Early Judge"]
    latest = result.ballots[0]
    assert latest.event_type_name == "Duo Interpretation"
    assert latest.rubric.kind == RubricKind.INTERPRETATION
    assert result.ballots[1].rubric.kind == RubricKind.PLATFORM


def test_token_is_fixed_once_assigned(competitor):
    with pytest.raises(ValueError):
        competitor.magic_token = "something-else"
