"""
api/routes/v1/auth.py -- Session REST endpoints.

Routes (mounted under /api/auth by api/main.py):
  POST /signup         -- create account; sets both cookies; 201
  POST /login          -- password login; sets both cookies; 200
  POST /logout         -- revoke refresh token (best effort); clears cookies; 200
  POST /refresh-token  -- new access cookie from a live refresh cookie; 200
  GET  /profile        -- current user (requires a valid access token)

Handlers are thin: they unpack the validated body, call AuthService with the
injected Response (so cookies set by the service are merged into the final
response) and map the returned User to a response model. Errors are
core.errors.AuthError subclasses, rendered by the handler in api/main.py.

Handlers are plain `def` -- the stores are blocking clients, so FastAPI runs
these in its threadpool.

Security:
  Cache-Control: no-store on every response that sets session cookies.
  Login returns one message for unknown email and wrong password.
"""

from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Response

from api.models import LoginRequest, LoginResponse, MessageResponse, ProfileResponse, SignupRequest, UserResponse
from auth.cookies import REFRESH_COOKIE
from auth.dependencies import get_auth_service, try_get_current_user
from auth.models import User
from auth.service import AuthService

# Auth policy:
# - POST /signup, /login:         public -- they create the session
# - POST /logout:                 public -- clearing cookies needs no prior auth
# - POST /refresh-token:          refresh cookie only
# - GET  /profile:                access token (cookie or Bearer)
router = APIRouter()

_NO_STORE = "no-store"


@router.post("/signup", response_model=UserResponse, status_code=201)
def signup(
    body: SignupRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Register a new user and start a session."""
    user = service.signup(body.name, body.email, body.password, response)
    response.headers["Cache-Control"] = _NO_STORE
    return UserResponse.from_user(user)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate with email and password; replaces any earlier session for the user."""
    user = service.login(body.email, body.password, response)
    response.headers["Cache-Control"] = _NO_STORE
    return LoginResponse.from_user(user)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Clear both cookies. Always 200, even with a missing or invalid refresh cookie."""
    service.logout(refresh_token, response)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh-token", response_model=MessageResponse)
def refresh_token(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Issue a new access token. The refresh token itself is not rotated."""
    service.refresh(refresh_token, response)
    response.headers["Cache-Control"] = _NO_STORE
    return MessageResponse(message="Token refreshed successfully")


@router.get("/profile", response_model=ProfileResponse)
def profile(
    current_user: User | None = Depends(try_get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    """Return the authenticated user's record."""
    return ProfileResponse.from_user(service.get_profile(current_user))
