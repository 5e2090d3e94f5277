"""
API request and response models for SessionAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
The password hash never appears in any response model.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from auth.passwords import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/auth/signup.

    Email normalization (trim + lower-case) happens in the user store so the
    same rule applies to every caller, not only HTTP ones.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    # Not whitespace-stripped by intent: spaces are valid password characters.
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    No length limits: an empty or over-long value is just a wrong credential
    and must fail with the same message as any other.
    """

    email: str
    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public projection of a user: {_id, name, email, role}.

    Pydantic v2 treats leading-underscore attributes as private, so the field
    is named user_id and serialized under its "_id" alias. Handlers must dump
    with by_alias=True (FastAPI does this for response_model by default).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="_id")
    name: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(user_id=user.id, name=user.name, email=user.email, role=user.role)


class LoginResponse(UserResponse):
    """Public projection plus a confirmation message."""

    message: str = "Login successful"

    @classmethod
    def from_user(cls, user: User) -> "LoginResponse":
        return cls(user_id=user.id, name=user.name, email=user.email, role=user.role)


class ProfileResponse(UserResponse):
    """Response for GET /api/auth/profile -- the stored record minus the password hash."""

    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        )


class MessageResponse(BaseModel):
    """{message} body used by logout, refresh and every error."""

    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
