"""
auth/tokens.py -- JWT issuing and verification for the dual-token session.

Security design decisions:
  JWT: python-jose with HS256. Access and refresh tokens are signed with two
       distinct secrets, so a token of one kind never verifies as the other
       even before the "type" claim is checked.

  Claims: user_id, type ("access" | "refresh"), jti, iat, exp. The random jti
       makes every issued token a distinct string -- two logins in the same
       second still produce different refresh tokens, which the token cache
       relies on to tell a superseded token from the current one.

  Lifetimes: 15 minutes (access) and 7 days (refresh), taken from AuthConfig.
       Cookie max-age uses the same numbers (see auth/cookies.py).

  Verification raises TokenExpired or InvalidSignature (both InvalidToken).
       The auth service decides whether to surface or swallow them.

Layer rule: no imports from api/ or cache/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenPair
from core.config import AuthConfig
from core.errors import InvalidSignature, TokenExpired

logger = logging.getLogger("sessionauth.auth")

_ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"


def generate_jti() -> str:
    """Return a random token identifier (128 bits, hex)."""
    return secrets.token_hex(16)


class TokenIssuer:
    """Mints and verifies access/refresh JWTs. Holds no mutable state.

    Usage:
        issuer = TokenIssuer(AuthConfig(access_token_secret=..., refresh_token_secret=...))
        pair = issuer.issue_token_pair(user.id)
        user_id = issuer.verify_refresh(pair.refresh_token)
    """

    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_token_pair(self, user_id: str) -> TokenPair:
        """Return a freshly signed access + refresh token for user_id. No side effects."""
        return TokenPair(
            access_token=self.issue_access_token(user_id),
            refresh_token=self.issue_refresh_token(user_id),
        )

    def issue_access_token(self, user_id: str) -> str:
        return self._encode(user_id, ACCESS, self._config.access_token_secret, self._config.access_token_ttl)

    def issue_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, REFRESH, self._config.refresh_token_secret, self._config.refresh_token_ttl)

    def _encode(self, user_id: str, token_type: str, secret: str, ttl: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "type": token_type,
            "jti": generate_jti(),
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
        }
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str, secret: str, expected_type: str) -> str:
        """Verify signature, expiry and type claim. Returns the embedded user_id.

        Raises:
            TokenExpired:     signature is valid but exp has passed.
            InvalidSignature: anything else -- bad signature, malformed token,
                              wrong type claim, or missing user_id.
        """
        try:
            payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidSignature() from exc

        user_id = payload.get("user_id")
        if payload.get("type") != expected_type or not isinstance(user_id, str) or not user_id:
            raise InvalidSignature()
        return user_id

    def verify_access(self, token: str) -> str:
        return self.verify(token, self._config.access_token_secret, ACCESS)

    def verify_refresh(self, token: str) -> str:
        return self.verify(token, self._config.refresh_token_secret, REFRESH)
