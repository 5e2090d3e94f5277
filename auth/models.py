"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the auth
service do the work; api/models.py owns the HTTP projections.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ROLE = "user"


@dataclass
class User:
    """A registered account.

    id is an opaque 24-char hex string assigned by UserStore.create_user(); it
    is exposed to clients as "_id". email is always stored lower-cased and
    trimmed. hashed_password is a bcrypt hash and never leaves the server.

    role is stored and passed through untouched -- nothing in this service
    authorizes on it.
    """

    name: str
    email: str
    hashed_password: str
    role: str = DEFAULT_ROLE
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenPair:
    """Access + refresh token minted together on signup and login."""

    access_token: str
    refresh_token: str
