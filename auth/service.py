"""
auth/service.py -- Session lifecycle: signup, login, logout, refresh, profile.

AuthService composes the four collaborators:
  UserStore            -- credential store (auth/store.py)
  TokenCache           -- one live refresh token per user (cache/store.py)
  TokenIssuer          -- JWT mint/verify (auth/tokens.py)
  SessionCookieWriter  -- accessToken/refreshToken cookies (auth/cookies.py)

Refresh-token states, as seen by refresh():
  absent      no cookie                         -> Unauthenticated
  expired     signature ok, exp passed          -> InvalidToken
  stale       valid JWT, cache holds another    -> InvalidToken
              token or nothing (superseded by a
              newer login, or logged out)
  active      valid JWT equal to cached copy    -> new access token

Refresh does not rotate the refresh token: the same refresh cookie stays
usable until it expires or a login/logout replaces the cached copy.

Every method raises core.errors.AuthError subclasses only; store failures
arrive as StoreUnavailable. logout() is the exception to "surface
everything" -- it must succeed for the client regardless of server state.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hmac
import logging

from starlette.responses import Response

from auth.cookies import SessionCookieWriter
from auth.models import User
from auth.passwords import DUMMY_HASH, verify_password
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import TokenCache
from core.config import AuthConfig
from core.errors import AuthError, Conflict, InvalidCredentials, InvalidToken, Unauthenticated

logger = logging.getLogger("sessionauth.auth")


class AuthService:
    """Stateless orchestrator; one instance is shared by all requests.

    Usage:
        service = AuthService.from_config(config, user_store, token_cache)
        user = service.signup("Alice", "a@x.com", "secret1", response)
    """

    def __init__(
        self,
        user_store: UserStore,
        token_cache: TokenCache,
        issuer: TokenIssuer,
        cookies: SessionCookieWriter,
    ) -> None:
        self.user_store = user_store
        self.token_cache = token_cache
        self.issuer = issuer
        self.cookies = cookies

    @classmethod
    def from_config(cls, config: AuthConfig, user_store: UserStore, token_cache: TokenCache) -> "AuthService":
        return cls(user_store, token_cache, TokenIssuer(config), SessionCookieWriter(config))

    # ------------------------------------------------------------------
    # Credential flows
    # ------------------------------------------------------------------

    def signup(self, name: str, email: str, password: str, response: Response) -> User:
        """Create an account and start a session for it.

        Raises Conflict if the email is taken, ValidationError on bad fields.
        Tokens are only minted after the user row exists.
        """
        if self.user_store.get_by_email(email) is not None:
            raise Conflict("User already exists")
        user = self.user_store.create_user(name, email, password)
        self._start_session(user, response)
        logger.info("Signup succeeded (user_id=%s)", user.id)
        return user

    def login(self, email: str, password: str, response: Response) -> User:
        """Check credentials and start a new session, superseding any prior one.

        Unknown email and wrong password raise the same InvalidCredentials.
        bcrypt runs in both cases so response time does not reveal which.
        """
        user = self.user_store.get_by_email(email)
        if user is None:
            verify_password(password, DUMMY_HASH)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.warning("Login failed: bad password (user_id=%s)", user.id)
            raise InvalidCredentials()
        self._start_session(user, response)
        logger.info("Login succeeded (user_id=%s)", user.id)
        return user

    def _start_session(self, user: User, response: Response) -> None:
        pair = self.issuer.issue_token_pair(user.id)
        self.token_cache.store_refresh(user.id, pair.refresh_token)
        self.cookies.set_session_cookies(response, pair.access_token, pair.refresh_token)

    # ------------------------------------------------------------------
    # Token flows
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str | None, response: Response) -> None:
        """Revoke the cached refresh token (best effort) and clear both cookies.

        Never raises: an invalid/expired cookie or an unreachable cache is
        logged and ignored so the client always ends up logged out.
        """
        if refresh_token:
            try:
                user_id = self.issuer.verify_refresh(refresh_token)
                self.token_cache.delete_refresh(user_id)
                logger.info("Logout revoked refresh token (user_id=%s)", user_id)
            except AuthError as exc:
                logger.warning("Logout could not revoke refresh token: %s", exc.message)
        self.cookies.clear_session_cookies(response)

    def refresh(self, refresh_token: str | None, response: Response) -> None:
        """Mint a new access token from a live refresh token.

        Raises Unauthenticated when no cookie is presented and InvalidToken
        when the token fails verification or is not the cached copy. The
        refresh token and its cache entry are left untouched.
        """
        if not refresh_token:
            raise Unauthenticated("No refresh token provided")
        try:
            user_id = self.issuer.verify_refresh(refresh_token)
        except InvalidToken as exc:
            logger.warning("Refresh rejected: %s", exc.message)
            raise InvalidToken("Invalid refresh token") from exc

        stored = self.token_cache.get_refresh(user_id)
        if stored is None or not hmac.compare_digest(stored, refresh_token):
            logger.warning("Refresh rejected: token is not the cached copy (user_id=%s)", user_id)
            raise InvalidToken("Invalid refresh token")

        self.cookies.set_access_cookie(response, self.issuer.issue_access_token(user_id))
        logger.info("Access token refreshed (user_id=%s)", user_id)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, identity: User | None) -> User:
        """Return the already-authenticated user, or raise Unauthenticated."""
        if identity is None:
            raise Unauthenticated("Not logged in")
        return identity
