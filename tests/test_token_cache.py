"""Unit tests for cache/store.py -- refresh-token cache backends.

SQLite backend runs for real on :memory:. The Redis backend is exercised with a
MagicMock client: the tests pin the exact commands sent (key format, EX ttl)
and the mapping of RedisError to StoreUnavailable.
"""

from unittest.mock import MagicMock, patch

import pytest
import redis

from cache.store import RedisTokenCache, SQLiteTokenCache, open_token_cache, refresh_key
from core.errors import StoreUnavailable

# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


class TestSQLiteTokenCache:
    def test_store_and_get(self, token_cache):
        token_cache.store_refresh("u1", "tok-1")
        assert token_cache.get_refresh("u1") == "tok-1"

    def test_absent_user(self, token_cache):
        assert token_cache.get_refresh("nobody") is None

    def test_store_overwrites(self, token_cache):
        token_cache.store_refresh("u1", "tok-1")
        token_cache.store_refresh("u1", "tok-2")
        assert token_cache.get_refresh("u1") == "tok-2"

    def test_users_are_independent(self, token_cache):
        token_cache.store_refresh("u1", "tok-1")
        token_cache.store_refresh("u2", "tok-2")
        token_cache.delete_refresh("u1")
        assert token_cache.get_refresh("u1") is None
        assert token_cache.get_refresh("u2") == "tok-2"

    def test_delete_absent_is_noop(self, token_cache):
        token_cache.delete_refresh("nobody")

    def test_expired_entry_reads_as_absent(self):
        cache = SQLiteTokenCache(":memory:", ttl=60)
        with patch("cache.store.time.time", return_value=1_000.0):
            cache.store_refresh("u1", "tok-1")
        with patch("cache.store.time.time", return_value=1_000.0 + 61):
            assert cache.get_refresh("u1") is None
        cache.close()

    def test_expired_read_removes_row_and_later_store_wins(self):
        cache = SQLiteTokenCache(":memory:", ttl=60)
        with patch("cache.store.time.time", return_value=1_000.0):
            cache.store_refresh("u1", "tok-old")
        with patch("cache.store.time.time", return_value=1_061.0):
            assert cache.get_refresh("u1") is None
            assert cache.purge_expired() == 0
            cache.store_refresh("u1", "tok-new")
            assert cache.get_refresh("u1") == "tok-new"
        cache.close()

    def test_purge_expired(self):
        cache = SQLiteTokenCache(":memory:", ttl=60)
        with patch("cache.store.time.time", return_value=1_000.0):
            cache.store_refresh("old", "tok-old")
        with patch("cache.store.time.time", return_value=1_050.0):
            cache.store_refresh("new", "tok-new")
        with patch("cache.store.time.time", return_value=1_070.0):
            assert cache.purge_expired() == 1
            assert cache.get_refresh("new") == "tok-new"
        cache.close()

    def test_ping(self, token_cache):
        assert token_cache.ping() is True

    def test_closed_connection_raises_store_unavailable(self):
        cache = SQLiteTokenCache(":memory:")
        cache.close()
        with pytest.raises(StoreUnavailable):
            cache.store_refresh("u1", "tok")
        with pytest.raises(StoreUnavailable):
            cache.get_refresh("u1")


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


class TestRedisTokenCache:
    def test_store_sets_key_with_ttl(self):
        client = MagicMock()
        RedisTokenCache(client, ttl=604800).store_refresh("u1", "tok")
        client.set.assert_called_once_with("refresh_token:u1", "tok", ex=604800)

    def test_get(self):
        client = MagicMock()
        client.get.return_value = "tok"
        assert RedisTokenCache(client).get_refresh("u1") == "tok"
        client.get.assert_called_once_with("refresh_token:u1")

    def test_get_absent(self):
        client = MagicMock()
        client.get.return_value = None
        assert RedisTokenCache(client).get_refresh("u1") is None

    def test_get_decodes_bytes(self):
        client = MagicMock()
        client.get.return_value = b"tok"
        assert RedisTokenCache(client).get_refresh("u1") == "tok"

    def test_delete(self):
        client = MagicMock()
        RedisTokenCache(client).delete_refresh("u1")
        client.delete.assert_called_once_with("refresh_token:u1")

    @pytest.mark.parametrize(
        "method,args",
        [("store_refresh", ("u1", "tok")), ("get_refresh", ("u1",)), ("delete_refresh", ("u1",))],
    )
    def test_redis_errors_become_store_unavailable(self, method, args):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")
        client.get.side_effect = redis.ConnectionError("down")
        client.delete.side_effect = redis.ConnectionError("down")
        with pytest.raises(StoreUnavailable):
            getattr(RedisTokenCache(client), method)(*args)

    def test_ping_failure_returns_false(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("down")
        assert RedisTokenCache(client).ping() is False


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestOpenTokenCache:
    def test_redis_url_selects_redis(self):
        cache = open_token_cache("redis://localhost:6379/0")
        assert isinstance(cache, RedisTokenCache)
        cache.close()

    def test_sqlite_url_selects_sqlite(self):
        cache = open_token_cache("sqlite:///:memory:")
        assert isinstance(cache, SQLiteTokenCache)
        cache.close()

    def test_key_format(self):
        assert refresh_key("abc") == "refresh_token:abc"
