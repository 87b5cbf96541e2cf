"""Password hashing and opaque-token helpers for sessions and CSRF."""

import hashlib
import hmac
import secrets

import bcrypt

from beershop.core.config import MIN_BCRYPT_ROUNDS

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for email and password validation.
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Bytes of entropy in session and CSRF tokens.
TOKEN_BYTES = 32


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    if rounds < MIN_BCRYPT_ROUNDS:
        raise ValueError(f"bcrypt cost must be at least {MIN_BCRYPT_ROUNDS}")
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash (bcrypt compares in constant time)."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def new_token() -> str:
    """Return an unguessable URL-safe token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Digest used to look up a session; the raw token is never persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def tokens_match(submitted: str | None, expected: str | None) -> bool:
    """Timing-safe token comparison; missing values never match."""
    if not submitted or not expected:
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))
