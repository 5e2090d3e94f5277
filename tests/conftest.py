"""
tests/conftest.py -- Shared test fixtures for SessionAuth.

This module provides:
  - auth_config: AuthConfig with fixed, distinct test secrets
  - user_store / token_cache: isolated in-memory stores, one set per test
  - service: AuthService wired to those stores
  - client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the user store because TestClient runs sync route handlers in a thread pool
and SQLAlchemy hands each thread its own pooled connection. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The token cache holds a single locked connection, so :memory: is
fine there.

The DEBUG env var must be set before any app import so get_settings()
auto-generates token secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate the token secrets in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from cache.store import SQLiteTokenCache
from core.config import AuthConfig

TEST_ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
TEST_REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(access_token_secret=TEST_ACCESS_SECRET, refresh_token_secret=TEST_REFRESH_SECRET)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """UserStore on a uniquely named shared-memory database."""
    store = UserStore(f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()


@pytest.fixture
def token_cache() -> Generator[SQLiteTokenCache, None, None]:
    cache = SQLiteTokenCache(":memory:")
    yield cache
    cache.close()


@pytest.fixture
def service(auth_config, user_store, token_cache) -> AuthService:
    return AuthService.from_config(auth_config, user_store, token_cache)


# ---------------------------------------------------------------------------
# App fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the per-test stores into app.state so routes never touch the
    default on-disk databases.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.user_store
        app.state.token_cache = service.token_cache
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture
def client(service: AuthService) -> Generator[TestClient, None, None]:
    """TestClient over the real app; cookies persist across requests like a browser."""
    app.router.lifespan_context = _patch_lifespan(service)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client
