"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The DUMMY_HASH constant enables timing equalization on login: the auth
service always runs one bcrypt check, whether or not the email exists, so
response time does not reveal which half of the credentials was wrong.
"""

from __future__ import annotations

import bcrypt

MIN_PASSWORD_LENGTH = 6
# bcrypt's hard limit, in bytes. UserStore rejects longer passwords on create.
MAX_PASSWORD_LENGTH = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long input.
        return False


# Computed once at module load so the first failed login is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_password("sessionauth_timing_dummy")
