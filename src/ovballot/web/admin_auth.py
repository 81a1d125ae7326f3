"""Admin authentication helpers for the admin API.

There is a single shared admin password (``settings.admin_password``),
stored either as plaintext or as a PBKDF2 digest from
``scripts/hash_admin_password.py``. A successful login issues an opaque
session id, sent back by the client in the ``X-Session-Id`` header.

Sessions live in a ``SessionStore``. The default ``InMemorySessionStore``
is process-local and forgotten on restart; swap in another store through
the ``get_session_store`` dependency to persist or share sessions.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol

from ovballot.errors import InternalError, Unauthorized

PBKDF2_ALGORITHM = "sha256"
PBKDF2_ITERATIONS = 390_000
PBKDF2_PREFIX = f"pbkdf2_{PBKDF2_ALGORITHM}$"
SALT_SIZE = 16


def _derive(password: str, salt: bytes, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(PBKDF2_ALGORITHM, password.encode("utf-8"), salt, iterations).hex()


def hash_password(password: str) -> str:
    """Digest for ADMIN_PASSWORD: ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
    if not password:
        raise ValueError("Password cannot be empty")
    salt = os.urandom(SALT_SIZE)
    return f"{PBKDF2_PREFIX}{PBKDF2_ITERATIONS}${salt.hex()}${_derive(password, salt, PBKDF2_ITERATIONS)}"


def verify_password(password: str, digest: str) -> bool:
    """Check a password against a digest from ``hash_password``; malformed digests never match."""
    if not digest.startswith(PBKDF2_PREFIX):
        return False
    try:
        iter_raw, salt_hex, expected = digest[len(PBKDF2_PREFIX):].split("$")
        actual = _derive(password, bytes.fromhex(salt_hex), int(iter_raw))
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)


def check_admin_password(candidate: Optional[str], configured: Optional[str]) -> bool:
    """
    Compare a login attempt with the configured shared password.

    ``configured`` is either plaintext or a PBKDF2 digest, told apart by
    its prefix.

    Raises:
        InternalError: no admin password is configured
    """
    if not configured:
        raise InternalError("Admin password not configured")
    if not candidate:
        return False
    if configured.startswith(PBKDF2_PREFIX):
        return verify_password(candidate, configured)
    return hmac.compare_digest(candidate.encode("utf-8"), configured.encode("utf-8"))


@dataclass(frozen=True)
class AdminSession:
    session_id: str
    expires_at: datetime


class SessionStore(Protocol):
    """Maps admin session ids to their expiry instant."""

    def create(self, expires_at: datetime) -> AdminSession:
        ...

    def is_valid(self, session_id: str, now: Optional[datetime] = None) -> bool:
        ...

    def revoke(self, session_id: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local session table. Expired entries are dropped on access."""

    def __init__(self):
        self._sessions: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, expires_at: datetime) -> AdminSession:
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = expires_at
        return AdminSession(session_id=session_id, expires_at=expires_at)

    def is_valid(self, session_id: str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        with self._lock:
            expires_at = self._sessions.get(session_id)
            if expires_at is None:
                return False
            if expires_at < now:
                del self._sessions[session_id]
                return False
            return True

    def revoke(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop every expired session; returns how many were removed."""
        now = now or datetime.utcnow()
        with self._lock:
            expired = [sid for sid, expires_at in self._sessions.items() if expires_at < now]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)


def login(
    store: SessionStore,
    password: Optional[str],
    configured_password: Optional[str],
    max_age_seconds: int,
    now: Optional[datetime] = None,
) -> AdminSession:
    """
    Start an admin session for a correct shared password.

    Raises:
        Unauthorized: wrong password
        InternalError: no admin password configured
    """
    if not check_admin_password(password, configured_password):
        raise Unauthorized("Invalid password")
    now = now or datetime.utcnow()
    return store.create(now + timedelta(seconds=max_age_seconds))


def authorize(store: SessionStore, session_id: Optional[str], now: Optional[datetime] = None) -> None:
    """
    Raises:
        Unauthorized: missing, unknown or expired session id
    """
    if not session_id:
        raise Unauthorized("Authentication required")
    if not store.is_valid(session_id, now=now):
        store.revoke(session_id)
        raise Unauthorized("Session expired or invalid")
