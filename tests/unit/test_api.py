"""HTTP-level tests for the JSON API and the magic-link page."""

import inspect
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ovballot.config import settings
from ovballot.db.models import Base
from ovballot.db.session import get_db
from ovballot.services.event_types import seed_event_types
from ovballot.web.admin_auth import InMemorySessionStore
from ovballot.web.main import (
    admin_close_tournament,
    admin_resend_link,
    admin_send_all_links,
    app,
    get_notifier,
    get_session_store,
)

ADMIN_PASSWORD = "club-admin"


@pytest.fixture
def sent_mail(notifier):
    return notifier.sent


@pytest.fixture
def client(monkeypatch, notifier):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    with TestingSession() as session:
        seed_event_types(session)
        session.commit()

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    store = InMemorySessionStore()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier
    monkeypatch.setattr(settings, "admin_password", ADMIN_PASSWORD)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def admin_headers(client):
    response = client.post("/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"X-Session-Id": response.json()["sessionId"]}


def _create_tournament(client, headers, name="March Meet", meeting_date=None):
    meeting_date = meeting_date or (datetime.utcnow() - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")
    response = client.post(
        "/admin/tournaments",
        json={"name": name, "meetingDate": meeting_date},
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()["tournament"]


def _create_competitor(client, headers, tournament_id, first="Ada", last="Lovelace"):
    response = client.post(
        "/admin/competitors",
        json={
            "tournamentId": tournament_id,
            "firstName": first,
            "lastName": last,
            "email": f"{first.lower()}@example.com",
        },
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()["competitor"]


def _event_type_id(client, name="Informative"):
    event_types = client.get("/api/event-types").json()
    return next(et["id"] for et in event_types if et["displayName"] == name)


def _ballot_body(competitor_id, event_type_id, score=4, **extra):
    body = {
        "deviceId": "tablet-1",
        "competitorId": competitor_id,
        "eventTypeId": event_type_id,
        "judgeName": "Mrs. Smith",
        "scoreContent": score,
        "scoreOrganizationCitations": score,
        "scoreCategory3": score,
        "scoreCategory4": score,
        "scoreImpact": score,
        "overallComments": "Well done",
        "totalTimeSeconds": 425,
    }
    body.update(extra)
    return body


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_status_without_active_tournament(client):
    body = client.get("/api/status").json()
    assert body["hasActiveTournament"] is False
    assert body["tournament"] is None


def test_public_roster_without_tournament_is_404(client):
    response = client.get("/api/competitors")
    assert response.status_code == 404
    assert response.json() == {"error": "No active tournament found"}


def test_admin_routes_require_session(client):
    response = client.get("/admin/tournaments")
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}

    response = client.get("/admin/tournaments", headers={"X-Session-Id": "bogus"})
    assert response.status_code == 401
    assert response.json() == {"error": "Session expired or invalid"}


def test_wrong_admin_password(client):
    response = client.post("/admin/login", json={"password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid password"}


def test_logout_revokes_session(client, admin_headers):
    assert client.get("/admin/tournaments", headers=admin_headers).status_code == 200
    client.post("/admin/logout", headers=admin_headers)
    assert client.get("/admin/tournaments", headers=admin_headers).status_code == 401


def test_event_type_rubric(client):
    event_type_id = _event_type_id(client, "Duo Interpretation")
    body = client.get(f"/api/event-types/{event_type_id}/rubric").json()
    assert body["type"] == "interpretation"
    assert [c["label"] for c in body["categories"]][2:4] == ["Characterization", "Blocking"]


def test_judging_flow_end_to_end(client, admin_headers, sent_mail):
    tournament = _create_tournament(client, admin_headers)
    ada = _create_competitor(client, admin_headers, tournament["id"], "Ada", "Lovelace")
    alan = _create_competitor(client, admin_headers, tournament["id"], "Alan", "Turing")
    informative = _event_type_id(client)

    status = client.get("/api/status").json()
    assert status["hasActiveTournament"] is True
    assert status["tournament"]["id"] == tournament["id"]

    roster = client.get("/api/competitors").json()
    assert [c["lastName"] for c in roster["competitors"]] == ["Lovelace", "Turing"]

    # Draft, resume, submit
    saved = client.post("/api/ballots/draft", json={
        "deviceId": "tablet-1",
        "competitorId": ada["id"],
        "eventTypeId": informative,
        "judgeName": "Mrs. Smith",
        "scoreContent": 3,
    })
    assert saved.status_code == 200
    draft_id = saved.json()["ballotId"]

    resumed = client.get("/api/ballots/draft", params={
        "deviceId": "tablet-1", "competitorId": ada["id"], "eventTypeId": informative,
    }).json()
    assert resumed["hasDraft"] is True
    assert resumed["draft"]["scoreContent"] == 3

    submitted = client.post("/api/ballots/submit", json=_ballot_body(ada["id"], informative, score=5))
    assert submitted.status_code == 200
    assert submitted.json()["ballotId"] == draft_id

    other = client.post(
        "/api/ballots/submit",
        json=_ballot_body(alan["id"], informative, score=3, deviceId="tablet-2"),
    )
    assert other.status_code == 200

    rankings = client.get(f"/admin/tournaments/{tournament['id']}/rankings", headers=admin_headers).json()
    assert rankings[0]["eventTypeName"] == "Informative"
    assert [(c["competitorName"], c["totalScore"], c["rank"]) for c in rankings[0]["competitors"]] == [
        ("Ada Lovelace", 25, 1),
        ("Alan Turing", 15, 2),
    ]

    closed = client.put(f"/admin/tournaments/{tournament['id']}/close", headers=admin_headers)
    assert closed.status_code == 200
    assert closed.json()["emailsSent"] == 2
    assert closed.json()["tournament"]["status"] == "closed"
    assert len(sent_mail) == 2

    magic = client.get(f"/api/magic/{ada['magicToken']}").json()
    assert magic["competitor"]["firstName"] == "Ada"
    assert len(magic["ballots"]) == 1
    assert magic["ballots"][0]["eventType"] == "Informative"
    assert magic["ballots"][0]["scoreImpact"] == 5

    page = client.get(f"/ballots/{ada['magicToken']}")
    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]
    assert "Vocal Delivery" in page.text
    assert "25 / 25" in page.text
    assert "7:05" in page.text

    # Judging is closed now
    late = client.post("/api/ballots/submit", json=_ballot_body(ada["id"], informative))
    assert late.status_code == 404


def test_submit_validation_errors(client, admin_headers):
    tournament = _create_tournament(client, admin_headers)
    ada = _create_competitor(client, admin_headers, tournament["id"])
    informative = _event_type_id(client)

    response = client.post("/api/ballots/submit", json=_ballot_body(ada["id"], informative, score=6))
    assert response.status_code == 400
    assert response.json() == {"error": "All scores must be between 1 and 5"}

    response = client.post(
        "/api/ballots/submit",
        json=_ballot_body(ada["id"], informative, scoreImpact=None),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "All 5 scores are required"}


def test_malformed_body_is_400(client):
    response = client.post("/api/ballots/draft", json={"deviceId": "t", "eventTypeId": "abc"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"]


def test_unknown_magic_link(client):
    response = client.get("/api/magic/not-a-token")
    assert response.status_code == 404
    assert response.json() == {"error": "Invalid magic link"}

    page = client.get("/ballots/not-a-token")
    assert page.status_code == 404
    assert "Invalid magic link" in page.text


def test_expired_magic_link(client, admin_headers):
    tournament = _create_tournament(client, admin_headers, meeting_date="2020-01-10T10:00:00")
    ada = _create_competitor(client, admin_headers, tournament["id"])

    response = client.get(f"/api/magic/{ada['magicToken']}")
    assert response.status_code == 403
    assert response.json() == {"error": "Magic link has expired"}


def test_creating_tournament_auto_closes_previous(client, admin_headers):
    first = _create_tournament(client, admin_headers, name="March")
    second = _create_tournament(client, admin_headers, name="April")

    listed = client.get("/admin/tournaments", headers=admin_headers).json()
    statuses = {t["id"]: t["status"] for t in listed}
    assert statuses == {first["id"]: "closed", second["id"]: "active"}

    past = client.get("/admin/past-tournaments", headers=admin_headers).json()
    assert [t["id"] for t in past] == [first["id"]]


def test_import_competitors_between_tournaments(client, admin_headers):
    first = _create_tournament(client, admin_headers, name="March")
    _create_competitor(client, admin_headers, first["id"], "Ada", "Lovelace")
    _create_competitor(client, admin_headers, first["id"], "Alan", "Turing")
    second = _create_tournament(client, admin_headers, name="April")
    _create_competitor(client, admin_headers, second["id"], "Ada", "Lovelace")

    exported = client.get(
        f"/admin/tournaments/{first['id']}/competitors-for-import", headers=admin_headers
    ).json()
    response = client.post(
        f"/admin/tournaments/{second['id']}/import-competitors",
        json={"competitors": exported},
        headers=admin_headers,
    )

    assert response.json() == {"success": True, "imported": 1, "skipped": 1}
    listed = client.get(
        "/admin/competitors", params={"tournamentId": second["id"]}, headers=admin_headers
    ).json()
    assert sorted(c["lastName"] for c in listed) == ["Lovelace", "Turing"]


def test_admin_ballot_listing_filters_status(client, admin_headers):
    tournament = _create_tournament(client, admin_headers)
    ada = _create_competitor(client, admin_headers, tournament["id"])
    informative = _event_type_id(client)
    client.post("/api/ballots/draft", json={
        "deviceId": "tablet-9", "competitorId": ada["id"], "eventTypeId": informative,
    })
    client.post("/api/ballots/submit", json=_ballot_body(ada["id"], informative))

    drafts = client.get(
        "/admin/ballots", params={"tournamentId": tournament["id"], "status": "draft"},
        headers=admin_headers,
    ).json()
    assert [b["deviceId"] for b in drafts] == ["tablet-9"]
    assert drafts[0]["competitor"]["firstName"] == "Ada"

    bad = client.get("/admin/ballots", params={"status": "lost"}, headers=admin_headers)
    assert bad.status_code == 400


@pytest.mark.parametrize("handler", [admin_close_tournament, admin_send_all_links, admin_resend_link])
def test_mail_sending_routes_run_off_the_event_loop(handler):
    # FastAPI runs plain functions in its threadpool
    assert not inspect.iscoroutinefunction(handler)


def test_resend_link_route(client, admin_headers, sent_mail):
    tournament = _create_tournament(client, admin_headers)
    ada = _create_competitor(client, admin_headers, tournament["id"])

    response = client.post(f"/admin/competitors/{ada['id']}/resend", headers=admin_headers)

    assert response.status_code == 200
    assert [to for to, _, _ in sent_mail] == ["ada@example.com"]

    sent = client.post(
        f"/admin/tournaments/{tournament['id']}/send-all-links", headers=admin_headers
    ).json()
    assert sent == {"success": True, "emailsSent": 1, "totalCompetitors": 1}
