"""
core/errors.py -- Error taxonomy for SessionAuth.

Every failure the auth flow can report is an AuthError subclass carrying the
client-facing message and the HTTP status it maps to. api/main.py registers a
single exception handler for AuthError that renders {"message": ...}.

Hierarchy:
    AuthError (base)
    ├── ValidationError      400  missing or malformed field
    ├── Conflict             400  duplicate email on signup
    ├── InvalidCredentials   400  login failure, deliberately undifferentiated
    ├── Unauthenticated      401  no session (refresh cookie / identity missing)
    ├── InvalidToken         401  signature, expiry or cache mismatch
    │   ├── TokenExpired
    │   └── InvalidSignature
    └── StoreUnavailable     500  credential store or token cache unreachable

Layer rule: core/ is the kernel. No imports from api/, auth/, or cache/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all SessionAuth errors.

    Attributes:
        message:     Human-readable, safe to return to the client.
        status_code: HTTP status the API layer responds with.
    """

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(AuthError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(AuthError):
    status_code = 400
    default_message = "User already exists"


class InvalidCredentials(AuthError):
    """Raised for both unknown email and wrong password -- same message, same status."""

    status_code = 400
    default_message = "Invalid email or password"


class Unauthenticated(AuthError):
    status_code = 401
    default_message = "Not logged in"


class InvalidToken(AuthError):
    status_code = 401
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    default_message = "Token expired"


class InvalidSignature(InvalidToken):
    default_message = "Invalid token signature"


class StoreUnavailable(AuthError):
    """A backing store failed. The message is generic; the cause is chained for logs."""

    status_code = 500
    default_message = "Service temporarily unavailable"
