"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. The auth service never touches SQL directly.

The store owns the record-level rules:
  - email is trimmed and lower-cased before every read and write, so
    "  A@X.com " and "a@x.com" are the same account;
  - name, email and password are required; password is at least 6 chars;
  - the password is hashed here (bcrypt) -- callers pass plaintext.

Failures:
  Field problems raise core.errors.ValidationError.
  A duplicate email on insert (UNIQUE constraint) raises Conflict.
  Any other SQLAlchemyError (database unreachable, locked, ...) raises
  StoreUnavailable with the original exception chained for the logs.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: auth/sessionauth_users.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import DEFAULT_ROLE, User
from auth.passwords import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH, hash_password
from core.errors import Conflict, StoreUnavailable, ValidationError

logger = logging.getLogger("sessionauth.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'sessionauth_users.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(24), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=DEFAULT_ROLE),
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return secrets.token_hex(12)


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address. The stored form is always normalized."""
    return email.strip().lower()


def _validate_new_user(name: str, email: str, password: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not email or not email.strip():
        raise ValidationError("Email is required")
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_LENGTH} bytes long")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        user = store.create_user("Alice", "a@x.com", "secret1")
        same = store.get_by_email("A@X.COM ")
        store.close()
    """

    def __init__(self, db_url: str = "") -> None:
        db_url = db_url or _DEFAULT_DB_URL
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, name: str, email: str, password: str, role: str = DEFAULT_ROLE) -> User:
        """Validate, hash and insert a new user. Returns the stored User.

        Raises ValidationError on a missing/short field and Conflict if the
        normalized email is already registered. The UNIQUE constraint is the
        final arbiter: two concurrent signups for one email cannot both win.
        """
        _validate_new_user(name, email, password)
        user = User(
            id=_new_id(),
            name=name.strip(),
            email=normalize_email(email),
            hashed_password=hash_password(password),
            role=role or DEFAULT_ROLE,
            created_at=_now_iso(),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        role=user.role,
                        created_at=user.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict() from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        logger.info("User created (id=%s)", user.id)
        return user

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("User store ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    m = row._mapping
    return User(
        id=m["id"],
        name=m["name"],
        email=m["email"],
        hashed_password=m["hashed_password"],
        role=m["role"],
        created_at=m["created_at"],
    )
