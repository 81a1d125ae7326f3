"""Request bodies for the JSON API (camelCase on the wire)."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ovballot.services.ballots import BallotFields
from ovballot.services.competitors import CompetitorInput


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BallotForm(CamelModel):
    """Body for draft saves and submissions."""
    device_id: Optional[str] = None
    competitor_id: Optional[str] = None
    event_type_id: Optional[int] = None
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

    def to_fields(self) -> BallotFields:
        return BallotFields(
            **self.model_dump(exclude={"device_id", "competitor_id", "event_type_id"})
        )


class LoginBody(CamelModel):
    password: Optional[str] = None


class TournamentBody(CamelModel):
    name: Optional[str] = None
    meeting_date: Optional[Union[datetime, date]] = None

    @field_validator("meeting_date")
    @classmethod
    def to_naive_utc(cls, v):
        """Dates become midnight; aware datetimes are stored as naive UTC."""
        if v is None:
            return None
        if not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class CompetitorBody(CamelModel):
    tournament_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class CompetitorUpdateBody(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class ImportedCompetitor(CamelModel):
    first_name: str
    last_name: str
    email: str

    def to_input(self) -> CompetitorInput:
        return CompetitorInput(self.first_name, self.last_name, self.email)


class ImportBody(CamelModel):
    competitors: Optional[list[ImportedCompetitor]] = None
