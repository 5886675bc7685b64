"""Password hashing and one-time passcode primitives."""
from __future__ import annotations

import secrets

import bcrypt

OTP_MIN = 100_000
OTP_MAX = 999_999

# bcrypt only looks at the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72


def _secret_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of `password`.

    A fresh random salt is generated on every call, so hashing the same
    password twice yields two different strings.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_secret_bytes(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if `password` matches the stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_secret_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed or non-bcrypt hash
        return False


def generate_otp_code() -> str:
    """Return a uniformly random 6-digit code between 100000 and 999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def otp_matches(expected: str | None, supplied: str) -> bool:
    """Compare a stored code with a supplied one in constant time."""
    if expected is None:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def issue_credential_token() -> str:
    """Return an opaque proof-of-login value."""
    return secrets.token_urlsafe(32)
