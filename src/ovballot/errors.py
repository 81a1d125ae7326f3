"""Error taxonomy shared by services and the web layer.

Services raise these; ``ovballot.web.main`` turns them into JSON responses
with the matching status code. ``message`` is safe to show to callers.
"""

from __future__ import annotations


class BallotAppError(Exception):
    """Base class for expected, caller-facing failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BallotAppError):
    """Missing or out-of-range input, detected before any write."""

    status_code = 400
    default_message = "Invalid request"


class Unauthorized(BallotAppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(BallotAppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(BallotAppError):
    status_code = 404
    default_message = "Not found"


class InternalError(BallotAppError):
    """Store or transport failure. Detail is logged, never returned."""

    status_code = 500
