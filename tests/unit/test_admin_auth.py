"""Unit tests for admin authentication helpers."""

from datetime import datetime, timedelta

import pytest

from ovballot.errors import InternalError, Unauthorized
from ovballot.web.admin_auth import (
    InMemorySessionStore,
    authorize,
    check_admin_password,
    hash_password,
    login,
    verify_password,
)

NOW = datetime(2026, 3, 14, 12, 0)


def test_hash_and_verify_password():
    hashed = hash_password("secret123")
    assert hashed.startswith("pbkdf2_sha256$")
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", "not-a-hash")


def test_hash_rejects_empty_password():
    with pytest.raises(ValueError):
        hash_password("")


def test_check_plaintext_and_hashed_password():
    assert check_admin_password("club-admin", "club-admin")
    assert not check_admin_password("club-admn", "club-admin")
    assert not check_admin_password(None, "club-admin")

    hashed = hash_password("club-admin")
    assert check_admin_password("club-admin", hashed)
    assert not check_admin_password("other", hashed)


def test_unconfigured_password_is_internal_error():
    with pytest.raises(InternalError, match="Admin password not configured"):
        check_admin_password("anything", None)


def test_login_then_authorize():
    store = InMemorySessionStore()
    session = login(store, "pw", "pw", max_age_seconds=86400, now=NOW)

    assert session.expires_at == NOW + timedelta(hours=24)
    authorize(store, session.session_id, now=NOW + timedelta(hours=23))


def test_wrong_password_is_unauthorized():
    store = InMemorySessionStore()
    with pytest.raises(Unauthorized, match="Invalid password"):
        login(store, "guess", "pw", max_age_seconds=60, now=NOW)
    assert len(store) == 0


def test_missing_unknown_and_expired_sessions():
    store = InMemorySessionStore()
    session = login(store, "pw", "pw", max_age_seconds=60, now=NOW)

    with pytest.raises(Unauthorized, match="Authentication required"):
        authorize(store, None)
    with pytest.raises(Unauthorized, match="Session expired or invalid"):
        authorize(store, "made-up", now=NOW)
    with pytest.raises(Unauthorized, match="Session expired or invalid"):
        authorize(store, session.session_id, now=NOW + timedelta(seconds=61))

    # Expired sessions are dropped on access
    assert len(store) == 0


def test_revoke_and_prune():
    store = InMemorySessionStore()
    keep = store.create(NOW + timedelta(hours=1))
    gone = store.create(NOW - timedelta(minutes=1))
    revoked = store.create(NOW + timedelta(hours=1))

    store.revoke(revoked.session_id)
    assert store.prune(now=NOW) == 1
    assert len(store) == 1
    assert store.is_valid(keep.session_id, now=NOW)
    assert not store.is_valid(gone.session_id, now=NOW)


def test_each_hash_uses_a_fresh_salt():
    first, second = hash_password("same"), hash_password("same")
    assert first != second
    assert verify_password("same", first) and verify_password("same", second)


@pytest.mark.parametrize("digest", [
    "pbkdf2_sha256$",
    "pbkdf2_sha256$abc$00$00",
    "pbkdf2_sha256$1000$zz$00",
    "pbkdf2_sha256$1000$00$00$extra",
    "md5$1000$00$00",
])
def test_malformed_digest_never_matches(digest):
    assert not verify_password("anything", digest)
