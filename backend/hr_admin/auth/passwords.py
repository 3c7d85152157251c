"""
Password hashing with bcrypt.

Uses the bcrypt package directly; passlib does not support bcrypt 4+.
"""

from typing import Optional

import bcrypt

# Bcrypt max password length (bytes)
BCRYPT_MAX_PASSWORD_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8


def _password_bytes(password: str) -> bytes:
    """Encode and truncate to the bcrypt limit to avoid ValueError."""
    raw = password.encode("utf-8")
    return raw[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Return the bcrypt hash of a password."""
    salt = bcrypt.gensalt(rounds=rounds or DEFAULT_BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """True if plain_password matches password_hash; False for missing or malformed hashes."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), password_hash.encode("ascii"))
    except ValueError:
        return False


def validate_new_password(password: str) -> Optional[str]:
    """Return an error message for a weak password, None when acceptable."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None
