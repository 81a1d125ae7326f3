import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from ovballot.config import settings
from ovballot.db.models import Ballot, Competitor, EventType, Tournament
from ovballot.db.session import get_db
from ovballot.errors import BallotAppError, InternalError, ValidationError
from ovballot.rubric import MAX_BALLOT_TOTAL, SCORE_LABELS, SCORE_SLOTS, rubric_sheet, slot_labels
from ovballot.services import ballots as ballot_service
from ovballot.services import competitors as competitor_service
from ovballot.services import tournaments as tournament_service
from ovballot.services.event_types import get_event_type, list_event_types
from ovballot.services.magic_link import MagicLinkResult, magic_link_expiry, resolve_magic_link
from ovballot.services.notifications import Notifier, SmtpNotifier, send_magic_link
from ovballot.services.rankings import get_tournament_rankings
from ovballot.statuses import parse_ballot_status
from ovballot.web.admin_auth import InMemorySessionStore, SessionStore, authorize, login
from ovballot.web.schemas import (
    BallotForm,
    CompetitorBody,
    CompetitorUpdateBody,
    ImportBody,
    LoginBody,
    TournamentBody,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="OV-Ballot")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup templates
templates_path = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=templates_path)
templates.env.globals["score_labels"] = SCORE_LABELS

_session_store = InMemorySessionStore()


# ==========================================================================
# Dependencies
# ==========================================================================


def get_session_store() -> SessionStore:
    return _session_store


def get_notifier() -> Notifier:
    return SmtpNotifier.from_settings(settings)


def require_admin(
    x_session_id: Optional[str] = Header(default=None),
    store: SessionStore = Depends(get_session_store),
) -> None:
    authorize(store, x_session_id)


def _request_meta(request: Request) -> ballot_service.RequestMeta:
    return ballot_service.RequestMeta(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


# ==========================================================================
# Error handling
# ==========================================================================


@app.exception_handler(BallotAppError)
async def ballot_app_error_handler(request: Request, exc: BallotAppError):
    if isinstance(exc, InternalError):
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        {"error": ValidationError.default_message, "details": details},
        status_code=ValidationError.status_code,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Log the detail server-side; the caller only sees a generic message."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


# ==========================================================================
# Serializers
# ==========================================================================


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_tournament(tournament: Tournament, counts: Optional[dict] = None) -> dict:
    payload = {
        "id": tournament.id,
        "name": tournament.name,
        "meetingDate": _iso(tournament.meeting_date),
        "status": tournament.status.value,
        "createdAt": _iso(tournament.created_at),
        "closedAt": _iso(tournament.closed_at),
    }
    if counts is not None:
        payload["_count"] = counts
    return payload


def _serialize_summary(summary: tournament_service.TournamentSummary) -> dict:
    return _serialize_tournament(
        summary.tournament,
        {"competitors": summary.competitor_count, "ballots": summary.ballot_count},
    )


def _serialize_competitor(competitor: Competitor, ballot_count: Optional[int] = None) -> dict:
    payload = {
        "id": competitor.id,
        "tournamentId": competitor.tournament_id,
        "firstName": competitor.first_name,
        "lastName": competitor.last_name,
        "email": competitor.email,
        "magicToken": competitor.magic_token,
        "magicLinkSentAt": _iso(competitor.magic_link_sent_at),
        "createdAt": _iso(competitor.created_at),
        "updatedAt": _iso(competitor.updated_at),
    }
    if ballot_count is not None:
        payload["_count"] = {"ballots": ballot_count}
    return payload


def _serialize_event_type(event_type: EventType) -> dict:
    return {
        "id": event_type.id,
        "name": event_type.name,
        "displayName": event_type.display_name,
        "rubricConfig": event_type.rubric.to_dict(),
        "createdAt": _iso(event_type.created_at),
    }


def _serialize_ballot_fields(ballot: Ballot) -> dict:
    return {
        "judgeName": ballot.judge_name,
        "scoreContent": ballot.score_content,
        "scoreOrganizationCitations": ballot.score_organization_citations,
        "scoreCategory3": ballot.score_category3,
        "scoreCategory4": ballot.score_category4,
        "scoreImpact": ballot.score_impact,
        "commentsContent": ballot.comments_content,
        "commentsOrganizationCitations": ballot.comments_organization_citations,
        "commentsCategory3": ballot.comments_category3,
        "commentsCategory4": ballot.comments_category4,
        "commentsImpact": ballot.comments_impact,
        "overallComments": ballot.overall_comments,
        "totalTimeSeconds": ballot.total_time_seconds,
        "speakerRank": ballot.speaker_rank,
    }


def _serialize_ballot(ballot: Ballot) -> dict:
    payload = {
        "id": ballot.id,
        "tournamentId": ballot.tournament_id,
        "competitorId": ballot.competitor_id,
        "eventTypeId": ballot.event_type_id,
        "deviceId": ballot.device_id,
        **_serialize_ballot_fields(ballot),
        "status": ballot.status.value,
        "draftSavedAt": _iso(ballot.draft_saved_at),
        "submittedAt": _iso(ballot.submitted_at),
        "createdAt": _iso(ballot.created_at),
        "updatedAt": _iso(ballot.updated_at),
    }
    return payload


def _serialize_magic_link(result: MagicLinkResult) -> dict:
    return {
        "competitor": {
            "id": result.competitor.id,
            "firstName": result.competitor.first_name,
            "lastName": result.competitor.last_name,
        },
        "tournament": {
            "id": result.tournament.id,
            "name": result.tournament.name,
            "meetingDate": _iso(result.tournament.meeting_date),
        },
        "expiresAt": _iso(magic_link_expiry(result.tournament.meeting_date)),
        "ballots": [
            {
                "id": item.ballot.id,
                "eventType": item.event_type_name,
                "eventTypeConfig": item.rubric.to_dict(),
                **_serialize_ballot_fields(item.ballot),
                "submittedAt": _iso(item.ballot.submitted_at),
            }
            for item in result.ballots
        ],
    }


# ==========================================================================
# Public JSON API
# ==========================================================================


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


@app.get("/api/status")
async def api_status(db: Session = Depends(get_db)):
    """Whether judging is open, and for which tournament."""
    tournament = tournament_service.get_active_tournament(db)
    if tournament is None:
        return {
            "hasActiveTournament": False,
            "tournament": None,
            "message": "No active tournament. Please check back later.",
        }
    return {
        "hasActiveTournament": True,
        "tournament": {
            "id": tournament.id,
            "name": tournament.name,
            "meetingDate": _iso(tournament.meeting_date),
            "status": tournament.status.value,
        },
    }


@app.get("/api/competitors")
async def api_competitors(db: Session = Depends(get_db)):
    tournament, competitors = competitor_service.active_roster(db)
    return {
        "tournamentId": tournament.id,
        "tournamentName": tournament.name,
        "competitors": [
            {"id": c.id, "firstName": c.first_name, "lastName": c.last_name}
            for c in competitors
        ],
    }


@app.get("/api/event-types")
async def api_event_types(db: Session = Depends(get_db)):
    return [_serialize_event_type(et) for et in list_event_types(db)]


@app.get("/api/event-types/{event_type_id}/rubric")
async def api_event_type_rubric(event_type_id: int, db: Session = Depends(get_db)):
    """Slot labels and 1-5 criteria for the judge's form."""
    event_type = get_event_type(db, event_type_id)
    rubric = event_type.rubric
    return {
        "eventTypeId": event_type.id,
        "displayName": event_type.display_name,
        "group": rubric.group.value,
        "type": rubric.kind.value,
        "categories": rubric_sheet(rubric),
        "scoreLabels": {str(k): v for k, v in SCORE_LABELS.items()},
    }


@app.post("/api/ballots/draft")
async def api_save_draft(form: BallotForm, request: Request, db: Session = Depends(get_db)):
    draft = ballot_service.save_draft(
        db,
        form.device_id,
        form.competitor_id,
        form.event_type_id,
        form.to_fields(),
        meta=_request_meta(request),
    )
    db.commit()
    return {"success": True, "ballotId": draft.id, "savedAt": _iso(draft.draft_saved_at)}


@app.get("/api/ballots/draft")
async def api_get_draft(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    competitor_id: Optional[str] = Query(None, alias="competitorId"),
    event_type_id: Optional[int] = Query(None, alias="eventTypeId"),
    db: Session = Depends(get_db),
):
    lookup = ballot_service.get_draft(db, device_id, competitor_id, event_type_id)
    if lookup.draft is None:
        payload: dict[str, Any] = {"hasDraft": False}
        if lookup.message:
            payload["message"] = lookup.message
        return payload
    return {"hasDraft": True, "draft": _serialize_ballot(lookup.draft)}


@app.post("/api/ballots/submit")
async def api_submit_ballot(form: BallotForm, request: Request, db: Session = Depends(get_db)):
    ballot = ballot_service.submit_ballot(
        db,
        form.device_id,
        form.competitor_id,
        form.event_type_id,
        form.to_fields(),
        meta=_request_meta(request),
    )
    db.commit()
    return {"success": True, "ballotId": ballot.id, "message": "Ballot submitted successfully!"}


@app.get("/api/magic/{token}")
async def api_magic_link(token: str, db: Session = Depends(get_db)):
    return _serialize_magic_link(resolve_magic_link(db, token))


# ==========================================================================
# Magic-link HTML page
# ==========================================================================


def _format_seconds(seconds: Optional[int]) -> Optional[str]:
    if seconds is None:
        return None
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _ballot_card(item) -> dict:
    ballot = item.ballot
    slots = [
        {
            "label": label,
            "score": getattr(ballot, slot.score_field),
            "comments": getattr(ballot, slot.comments_field),
        }
        for slot, label in zip(SCORE_SLOTS, slot_labels(item.rubric))
    ]
    return {
        "event_type": item.event_type_name,
        "judge_name": ballot.judge_name,
        "speaker_rank": ballot.speaker_rank,
        "total": ballot.total_score,
        "max_total": MAX_BALLOT_TOTAL,
        "time": _format_seconds(ballot.total_time_seconds),
        "slots": slots,
        "overall_comments": ballot.overall_comments,
        "submitted_at": ballot.submitted_at,
    }


@app.get("/ballots/{token}", response_class=HTMLResponse)
async def magic_link_page(request: Request, token: str, db: Session = Depends(get_db)):
    """Competitor-facing page listing their submitted ballots."""
    try:
        result = resolve_magic_link(db, token)
    except BallotAppError as exc:
        if isinstance(exc, InternalError):
            raise
        return templates.TemplateResponse(
            request,
            "link_error.html",
            {"message": exc.message},
            status_code=exc.status_code,
        )

    return templates.TemplateResponse(
        request,
        "ballots.html",
        {
            "competitor": result.competitor,
            "tournament": result.tournament,
            "cards": [_ballot_card(item) for item in result.ballots],
        },
    )


# ==========================================================================
# Admin API
# ==========================================================================


@app.post("/admin/login")
async def admin_login(body: LoginBody, store: SessionStore = Depends(get_session_store)):
    try:
        session = login(
            store,
            body.password,
            settings.admin_password,
            settings.admin_session_max_age_seconds,
        )
    except BallotAppError as exc:
        logger.warning("Admin login failed: %s", exc.message)
        raise
    return {"success": True, "sessionId": session.session_id, "expiresAt": _iso(session.expires_at)}


@app.post("/admin/logout")
async def admin_logout(
    x_session_id: Optional[str] = Header(default=None),
    store: SessionStore = Depends(get_session_store),
):
    if x_session_id:
        store.revoke(x_session_id)
    return {"success": True}


@app.get("/admin/tournaments", dependencies=[Depends(require_admin)])
async def admin_list_tournaments(db: Session = Depends(get_db)):
    return [_serialize_summary(s) for s in tournament_service.list_tournaments(db)]


@app.post("/admin/tournaments", dependencies=[Depends(require_admin)])
async def admin_create_tournament(body: TournamentBody, db: Session = Depends(get_db)):
    tournament = tournament_service.create_tournament(db, body.name or "", body.meeting_date)
    db.commit()
    return {"success": True, "tournament": _serialize_tournament(tournament)}


@app.get("/admin/tournaments/{tournament_id}", dependencies=[Depends(require_admin)])
async def admin_get_tournament(tournament_id: str, db: Session = Depends(get_db)):
    return _serialize_summary(tournament_service.get_tournament_summary(db, tournament_id))


# Handlers that send mail are plain functions so SMTP round trips run in
# the threadpool instead of the event loop.
@app.put("/admin/tournaments/{tournament_id}/close", dependencies=[Depends(require_admin)])
def admin_close_tournament(
    tournament_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    result = tournament_service.close_tournament(db, tournament_id, notifier)
    db.commit()
    return {
        "success": True,
        "tournament": _serialize_tournament(result.tournament),
        **result.delivery.to_dict(),
    }


@app.post("/admin/tournaments/{tournament_id}/send-all-links", dependencies=[Depends(require_admin)])
def admin_send_all_links(
    tournament_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    report = tournament_service.send_all_links(db, tournament_id, notifier)
    db.commit()
    return {"success": True, **report.to_dict()}


@app.get("/admin/tournaments/{tournament_id}/rankings", dependencies=[Depends(require_admin)])
async def admin_rankings(tournament_id: str, db: Session = Depends(get_db)):
    return [board.to_dict() for board in get_tournament_rankings(db, tournament_id)]


@app.get(
    "/admin/tournaments/{tournament_id}/competitors-for-import",
    dependencies=[Depends(require_admin)],
)
async def admin_competitors_for_import(tournament_id: str, db: Session = Depends(get_db)):
    return [
        {"firstName": c.first_name, "lastName": c.last_name, "email": c.email}
        for c in competitor_service.competitors_for_import(db, tournament_id)
    ]


@app.post(
    "/admin/tournaments/{tournament_id}/import-competitors",
    dependencies=[Depends(require_admin)],
)
async def admin_import_competitors(tournament_id: str, body: ImportBody, db: Session = Depends(get_db)):
    entries = [c.to_input() for c in body.competitors or []]
    result = competitor_service.import_competitors(db, tournament_id, entries)
    db.commit()
    return {"success": True, "imported": result.imported, "skipped": result.skipped}


@app.get("/admin/past-tournaments", dependencies=[Depends(require_admin)])
async def admin_past_tournaments(db: Session = Depends(get_db)):
    return [_serialize_summary(s) for s in tournament_service.list_past_tournaments(db)]


@app.get("/admin/competitors", dependencies=[Depends(require_admin)])
async def admin_list_competitors(
    tournament_id: Optional[str] = Query(None, alias="tournamentId"),
    db: Session = Depends(get_db),
):
    return [
        _serialize_competitor(competitor, count)
        for competitor, count in competitor_service.list_competitors(db, tournament_id)
    ]


@app.post("/admin/competitors", dependencies=[Depends(require_admin)])
async def admin_create_competitor(body: CompetitorBody, db: Session = Depends(get_db)):
    competitor = competitor_service.create_competitor(
        db, body.tournament_id, body.first_name, body.last_name, body.email
    )
    db.commit()
    return {"success": True, "competitor": _serialize_competitor(competitor)}


@app.put("/admin/competitors/{competitor_id}", dependencies=[Depends(require_admin)])
async def admin_update_competitor(
    competitor_id: str,
    body: CompetitorUpdateBody,
    db: Session = Depends(get_db),
):
    competitor = competitor_service.update_competitor(
        db, competitor_id, body.first_name, body.last_name, body.email
    )
    db.commit()
    return {"success": True, "competitor": _serialize_competitor(competitor)}


@app.delete("/admin/competitors/{competitor_id}", dependencies=[Depends(require_admin)])
async def admin_delete_competitor(competitor_id: str, db: Session = Depends(get_db)):
    competitor_service.delete_competitor(db, competitor_id)
    db.commit()
    return {"success": True}


@app.post("/admin/competitors/{competitor_id}/resend", dependencies=[Depends(require_admin)])
def admin_resend_link(
    competitor_id: str,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    competitor = competitor_service.get_competitor(db, competitor_id)
    send_magic_link(db, competitor, notifier)
    db.commit()
    return {"success": True, "message": "Magic link resent"}


@app.get("/admin/ballots", dependencies=[Depends(require_admin)])
async def admin_list_ballots(
    tournament_id: Optional[str] = Query(None, alias="tournamentId"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    ballots = ballot_service.list_ballots(db, tournament_id, parse_ballot_status(status))
    return [
        {
            **_serialize_ballot(ballot),
            "competitor": {
                "firstName": ballot.competitor.first_name,
                "lastName": ballot.competitor.last_name,
            },
            "eventType": {"displayName": ballot.event_type.display_name},
        }
        for ballot in ballots
    ]


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    uvicorn.run(
        "ovballot.web.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
