"""
cache/store.py -- Refresh-token cache: one live refresh token per user.

The cached copy is the server-side source of truth for refresh tokens. A
refresh cookie is honoured only while it equals the cached value, so
overwriting or deleting the entry revokes the token immediately.

Keys are "refresh_token:<user_id>"; entries expire after the refresh-token
lifetime (7 days by default).

Backends:
  RedisTokenCache  -- production backend. SET with EX, GET, DEL.
  SQLiteTokenCache -- local file (or :memory:) backend with a TTL column,
                      for development and tests.

Both raise core.errors.StoreUnavailable when the backend fails.

Usage:
    cache = open_token_cache("redis://localhost:6379/0")
    cache.store_refresh(user_id, token)
    cache.get_refresh(user_id)        # returns str or None
    cache.delete_refresh(user_id)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional, Protocol

import redis

from core.config import REFRESH_TOKEN_TTL_SECONDS
from core.errors import StoreUnavailable

logger = logging.getLogger("sessionauth.cache")

_DEFAULT_DB = Path(__file__).parent / "sessionauth_tokens.db"

_KEY_PREFIX = "refresh_token:"

_DDL = """
CREATE TABLE IF NOT EXISTS refresh_tokens (
    user_id     TEXT PRIMARY KEY,
    token       TEXT NOT NULL,
    expires_at  REAL NOT NULL
);
"""


def refresh_key(user_id: str) -> str:
    return f"{_KEY_PREFIX}{user_id}"


class TokenCache(Protocol):
    def store_refresh(self, user_id: str, token: str) -> None: ...

    def get_refresh(self, user_id: str) -> Optional[str]: ...

    def delete_refresh(self, user_id: str) -> None: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


class RedisTokenCache:
    """Redis-backed cache. Expiry is delegated to Redis (SET ... EX ttl)."""

    def __init__(self, client: redis.Redis, ttl: int = REFRESH_TOKEN_TTL_SECONDS) -> None:
        self.ttl = ttl
        self._client = client

    @classmethod
    def from_url(cls, url: str, ttl: int = REFRESH_TOKEN_TTL_SECONDS) -> "RedisTokenCache":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl=ttl)

    def store_refresh(self, user_id: str, token: str) -> None:
        """Upsert the user's refresh token, replacing any prior value and resetting the TTL."""
        try:
            self._client.set(refresh_key(user_id), token, ex=self.ttl)
        except redis.RedisError as exc:
            raise StoreUnavailable() from exc

    def get_refresh(self, user_id: str) -> Optional[str]:
        try:
            value = self._client.get(refresh_key(user_id))
        except redis.RedisError as exc:
            raise StoreUnavailable() from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def delete_refresh(self, user_id: str) -> None:
        try:
            self._client.delete(refresh_key(user_id))
        except redis.RedisError as exc:
            raise StoreUnavailable() from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            logger.warning("Redis ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


class SQLiteTokenCache:
    """SQLite-backed cache with a per-row expiry timestamp.

    One connection is shared by all request threads, so every statement runs
    under a lock. Expired rows read as absent and are deleted on the way out;
    purge_expired() trims the rest.
    """

    def __init__(self, db_path: Path | str = _DEFAULT_DB, ttl: int = REFRESH_TOKEN_TTL_SECONDS) -> None:
        self.ttl = ttl
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            if str(db_path) != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_DDL)
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable() from exc

    def store_refresh(self, user_id: str, token: str) -> None:
        """Upsert the user's refresh token, replacing any prior value and resetting the TTL."""
        self._execute(
            "INSERT OR REPLACE INTO refresh_tokens (user_id, token, expires_at) VALUES (?, ?, ?)",
            (user_id, token, time.time() + self.ttl),
        )

    def get_refresh(self, user_id: str) -> Optional[str]:
        """Return the cached token for user_id if it exists and hasn't expired."""
        now = time.time()
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT token, expires_at FROM refresh_tokens WHERE user_id = ?",
                    (user_id,),
                ).fetchone()
                if row is None:
                    return None
                token, expires_at = row
                if now < expires_at:
                    return token
                # Only the expired row goes; a token stored since then survives.
                self._conn.execute(
                    "DELETE FROM refresh_tokens WHERE user_id = ? AND expires_at <= ?",
                    (user_id, now),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailable() from exc
        return None

    def delete_refresh(self, user_id: str) -> None:
        self._execute("DELETE FROM refresh_tokens WHERE user_id = ?", (user_id,))

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of rows removed."""
        return self._execute("DELETE FROM refresh_tokens WHERE expires_at <= ?", (time.time(),))

    def ping(self) -> bool:
        try:
            with self._lock:
                self._conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            logger.warning("Token cache ping failed", exc_info=True)
            return False

    def _execute(self, sql: str, params: tuple) -> int:
        try:
            with self._lock:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
                return cursor.rowcount
        except sqlite3.Error as exc:
            raise StoreUnavailable() from exc

    def close(self) -> None:
        self._conn.close()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def open_token_cache(url: str = "", ttl: int = REFRESH_TOKEN_TTL_SECONDS) -> TokenCache:
    """Pick a backend from a URL.

    redis:// / rediss:// / unix://  -> RedisTokenCache
    sqlite:///<path> or a bare path  -> SQLiteTokenCache at that path
    empty                            -> SQLiteTokenCache at the default file
    """
    if url.startswith(("redis://", "rediss://", "unix://")):
        logger.info("Token cache backend: redis")
        return RedisTokenCache.from_url(url, ttl=ttl)
    path: str = url.removeprefix("sqlite:///") if url else str(_DEFAULT_DB)
    logger.info("Token cache backend: sqlite")
    return SQLiteTokenCache(path, ttl=ttl)
