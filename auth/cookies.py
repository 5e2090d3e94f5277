"""
auth/cookies.py -- Session cookie writer.

Two cookies carry the session:
  accessToken   max_age 15 minutes
  refreshToken  max_age 7 days

Attributes on both:
  httponly=True:     JS cannot read the cookie (XSS mitigation).
  samesite="strict": never sent on cross-site requests (CSRF mitigation).
  secure:            only sent over HTTPS when running in production.
  max_age:           matches the JWT lifetime so cookie and token expire together.

Clearing uses the same path/secure/samesite attributes; browsers ignore a
deletion whose attributes differ from the cookie being deleted.
"""

from __future__ import annotations

from starlette.responses import Response

from core.config import AuthConfig

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

_SAMESITE = "strict"


class SessionCookieWriter:
    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    def set_session_cookies(self, response: Response, access_token: str, refresh_token: str) -> None:
        """Write both session cookies onto the response."""
        self.set_access_cookie(response, access_token)
        self._set(response, REFRESH_COOKIE, refresh_token, self._config.refresh_token_ttl)

    def set_access_cookie(self, response: Response, access_token: str) -> None:
        self._set(response, ACCESS_COOKIE, access_token, self._config.access_token_ttl)

    def clear_session_cookies(self, response: Response) -> None:
        """Expire both session cookies on the client."""
        for name in (ACCESS_COOKIE, REFRESH_COOKIE):
            response.delete_cookie(
                name,
                httponly=True,
                samesite=_SAMESITE,
                secure=self._config.production,
            )

    def _set(self, response: Response, name: str, value: str, max_age: int) -> None:
        response.set_cookie(
            name,
            value=value,
            httponly=True,
            samesite=_SAMESITE,
            secure=self._config.production,
            max_age=max_age,
        )
