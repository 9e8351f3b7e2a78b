"""
Crypto utilities — bcrypt password hashing and random secrets.

Passwords and one-time codes are stored only as bcrypt hashes.
Invitation / review-link tokens are random hex strings; they are looked up
by value, so they are stored as-is.
"""

import secrets
import string

import bcrypt


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt (12 rounds)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or plain_password is None:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )


def generate_token(length: int = 64) -> str:
    """Random URL-safe hex token of ``length`` characters."""
    return secrets.token_hex(length // 2)


def generate_otp(digits: int = 6) -> str:
    """Zero-padded numeric one-time code."""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def generate_temporary_password(length: int = 12) -> str:
    """Temporary password for accounts created on invitation acceptance."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
