"""
auth/dependencies.py -- FastAPI Depends() helpers for the current identity.

Two places an access token can arrive, checked in order:
  1. "accessToken" cookie -- set by signup/login/refresh.
  2. Authorization: Bearer <token> header -- non-browser API clients.

try_get_current_user() returns None on any token failure and is what
GET /profile uses: the route hands the optional User straight to
AuthService.get_profile(), which owns the "not logged in" decision.

Layer rule: no imports from api/ or cache/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.cookies import ACCESS_COOKIE
from auth.models import User
from auth.service import AuthService
from core.errors import InvalidToken

logger = logging.getLogger("sessionauth.auth")


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService built during app lifespan."""
    return request.app.state.auth_service


def _extract_access_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request's access token to a User, or None.

    Never raises for token problems. Store outages (StoreUnavailable) still
    propagate -- an unreachable database is a 500, not "logged out".
    """
    token = _extract_access_token(request)
    if not token:
        return None
    service = get_auth_service(request)
    try:
        user_id = service.issuer.verify_access(token)
    except InvalidToken as exc:
        logger.debug("Access token rejected: %s", exc.message)
        return None
    return service.user_store.get_by_id(user_id)

