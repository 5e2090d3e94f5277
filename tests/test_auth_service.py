"""Unit tests for auth/service.py -- AuthService with real collaborators.

The stores are real (in-memory), so these tests pin the interplay between
user store, token cache, issuer and cookie writer without going through HTTP.
Route-level behaviour (status codes, bodies, cookie jar) lives in
test_auth_routes.py.
"""

from dataclasses import replace
from unittest.mock import MagicMock

import pytest
from starlette.responses import Response

from auth.service import AuthService
from auth.tokens import TokenIssuer
from core.errors import (
    Conflict,
    InvalidCredentials,
    InvalidToken,
    StoreUnavailable,
    Unauthenticated,
    ValidationError,
)


def _cookie_names(response: Response) -> list[str]:
    return [v.decode("latin-1").split("=", 1)[0] for k, v in response.raw_headers if k == b"set-cookie"]


def _cookie_value(response: Response, name: str) -> str | None:
    for k, v in response.raw_headers:
        if k == b"set-cookie":
            header = v.decode("latin-1")
            if header.startswith(f"{name}="):
                return header.split(";", 1)[0].split("=", 1)[1]
    return None


@pytest.fixture
def alice(service):
    """A signed-up user plus the refresh token issued at signup."""
    resp = Response()
    user = service.signup("Alice", "a@x.com", "secret1", resp)
    return user, _cookie_value(resp, "refreshToken")


# ---------------------------------------------------------------------------
# signup
# ---------------------------------------------------------------------------


class TestSignup:
    def test_creates_user_and_session(self, service, user_store, token_cache):
        resp = Response()
        user = service.signup("Alice", "a@x.com", "secret1", resp)

        assert user_store.count_users() == 1
        assert user.role == "user"
        refresh = _cookie_value(resp, "refreshToken")
        assert refresh is not None
        assert token_cache.get_refresh(user.id) == refresh
        assert service.issuer.verify_access(_cookie_value(resp, "accessToken")) == user.id

    def test_duplicate_email_issues_nothing(self, service, alice, user_store):
        resp = Response()
        with pytest.raises(Conflict, match="User already exists"):
            service.signup("Alice Again", "A@X.com", "secret2", resp)
        assert _cookie_names(resp) == []
        assert user_store.count_users() == 1

    def test_invalid_fields_issue_nothing(self, service, token_cache):
        resp = Response()
        with pytest.raises(ValidationError):
            service.signup("Alice", "a@x.com", "123", resp)
        assert _cookie_names(resp) == []


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_success_overwrites_cached_refresh_token(self, service, alice, token_cache):
        user, signup_refresh = alice
        resp = Response()
        service.login("a@x.com", "secret1", resp)
        login_refresh = _cookie_value(resp, "refreshToken")

        assert login_refresh != signup_refresh
        assert token_cache.get_refresh(user.id) == login_refresh
        with pytest.raises(InvalidToken):
            service.refresh(signup_refresh, Response())

    def test_email_match_is_normalized(self, service, alice):
        user, _ = alice
        assert service.login("  A@X.COM", "secret1", Response()).id == user.id

    def test_wrong_password_and_unknown_email_are_identical(self, service, alice):
        with pytest.raises(InvalidCredentials) as wrong_pw:
            service.login("a@x.com", "wrong", Response())
        with pytest.raises(InvalidCredentials) as unknown:
            service.login("nobody@x.com", "secret1", Response())
        assert wrong_pw.value.message == unknown.value.message == "Invalid email or password"
        assert wrong_pw.value.status_code == unknown.value.status_code == 400

    def test_failure_sets_no_cookies(self, service, alice):
        resp = Response()
        with pytest.raises(InvalidCredentials):
            service.login("a@x.com", "wrong", resp)
        assert _cookie_names(resp) == []


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_missing_cookie(self, service):
        with pytest.raises(Unauthenticated, match="No refresh token provided"):
            service.refresh(None, Response())

    def test_valid_matching_token(self, service, alice, token_cache):
        user, refresh = alice
        resp = Response()
        service.refresh(refresh, resp)

        assert _cookie_names(resp) == ["accessToken"]
        assert service.issuer.verify_access(_cookie_value(resp, "accessToken")) == user.id
        assert token_cache.get_refresh(user.id) == refresh

    def test_repeated_refresh_keeps_working(self, service, alice):
        _, refresh = alice
        service.refresh(refresh, Response())
        service.refresh(refresh, Response())

    def test_expired_token(self, service, alice, auth_config):
        user, _ = alice
        expired = TokenIssuer(replace(auth_config, refresh_token_ttl=-60)).issue_refresh_token(user.id)
        with pytest.raises(InvalidToken, match="Invalid refresh token"):
            service.refresh(expired, Response())

    def test_tampered_token(self, service, alice):
        _, refresh = alice
        header, payload, signature = refresh.split(".")
        tampered = ".".join([header, payload, ("A" if signature[0] != "A" else "B") + signature[1:]])
        with pytest.raises(InvalidToken):
            service.refresh(tampered, Response())

    def test_valid_but_not_cached(self, service, alice):
        user, _ = alice
        never_stored = service.issuer.issue_refresh_token(user.id)
        with pytest.raises(InvalidToken):
            service.refresh(never_stored, Response())

    def test_after_logout(self, service, alice):
        _, refresh = alice
        service.logout(refresh, Response())
        with pytest.raises(InvalidToken):
            service.refresh(refresh, Response())


# ---------------------------------------------------------------------------
# logout
# ---------------------------------------------------------------------------


class TestLogout:
    def test_revokes_and_clears(self, service, alice, token_cache):
        user, refresh = alice
        resp = Response()
        service.logout(refresh, resp)
        assert token_cache.get_refresh(user.id) is None
        assert sorted(_cookie_names(resp)) == ["accessToken", "refreshToken"]

    @pytest.mark.parametrize("cookie", [None, "", "garbage"])
    def test_always_clears(self, service, cookie):
        resp = Response()
        service.logout(cookie, resp)
        assert sorted(_cookie_names(resp)) == ["accessToken", "refreshToken"]

    def test_cache_failure_is_swallowed(self, auth_config, user_store):
        cache = MagicMock()
        cache.delete_refresh.side_effect = StoreUnavailable()
        service = AuthService.from_config(auth_config, user_store, cache)
        token = service.issuer.issue_refresh_token("u1")

        resp = Response()
        service.logout(token, resp)
        assert sorted(_cookie_names(resp)) == ["accessToken", "refreshToken"]


# ---------------------------------------------------------------------------
# profile
# ---------------------------------------------------------------------------


class TestProfile:
    def test_requires_identity(self, service):
        with pytest.raises(Unauthenticated, match="Not logged in"):
            service.get_profile(None)

    def test_returns_identity(self, service, alice):
        user, _ = alice
        assert service.get_profile(user) is user
