"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SessionAuth happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Two layers:
  Settings (BaseSettings): raw values from environment variables and an
      optional .env file. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  AuthConfig (frozen dataclass): the explicit configuration handed to the
      token issuer, cookie writer and auth service at construction. Those
      components never call get_settings() themselves, so tests can build
      them with any secrets and lifetimes they like.

Security notes:
  Token secrets shorter than 32 chars are rejected outright. HS256 signing
  relies on key entropy -- a short key weakens every token.

  In production mode (DEBUG not set or false), a missing secret is a hard
  startup failure. In DEBUG mode a random secret is generated with a warning;
  sessions then do not survive a restart.

  The access and refresh secrets must differ. Sharing one key would let an
  access token be replayed where a refresh token is expected if the type
  claim check were ever dropped.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or cache/.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sessionauth.config")

ACCESS_TOKEN_TTL_SECONDS = 15 * 60
REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "production" switches on the Secure cookie attribute.
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so callers never see "".
    access_token_secret: str = ""
    refresh_token_secret: str = ""

    # ------------------------------------------------------------------
    # Stores
    # ------------------------------------------------------------------

    # Empty means the default SQLite file next to auth/store.py.
    database_url: str = ""
    # redis:// or rediss:// selects the Redis backend; anything else is a
    # SQLite path (empty means the default file next to cache/store.py).
    token_cache_url: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in ("production", "prod")

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the token secret policy.

        Dev mode (DEBUG=true): auto-generate any missing secret with a warning.
        Production mode: refuse to start if either secret is missing.
        Both modes: reject short secrets and identical access/refresh secrets.
        """
        for field in ("access_token_secret", "refresh_token_secret"):
            env_name = field.upper()
            if not getattr(self, field):
                if self.debug:
                    setattr(self, field, secrets.token_hex(32))
                    logger.warning(
                        "WARNING: Using auto-generated %s. Sessions will not persist across restarts.", env_name
                    )
                else:
                    raise ValueError(
                        f"{env_name} is required in production mode. "
                        f"Set {env_name} in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
            if len(getattr(self, field)) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        return self


@dataclass(frozen=True)
class AuthConfig:
    """Explicit configuration for the session components.

    Lifetimes default to 15 minutes (access) and 7 days (refresh). The cookie
    max-age values are derived from the same numbers so token and cookie
    always expire together.
    """

    access_token_secret: str
    refresh_token_secret: str
    production: bool = False
    access_token_ttl: int = ACCESS_TOKEN_TTL_SECONDS
    refresh_token_ttl: int = REFRESH_TOKEN_TTL_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            access_token_secret=settings.access_token_secret,
            refresh_token_secret=settings.refresh_token_secret,
            production=settings.is_production,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
