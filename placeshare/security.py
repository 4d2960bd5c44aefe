"""
Password hashing and JWT access tokens.

Passwords are hashed with PBKDF2-HMAC-SHA256 and a random 16-byte salt,
stored as ``<salt hex>$<hash hex>``. Access tokens are HS256 JWTs carrying
``userId`` and ``email`` claims and an ``exp`` timestamp.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from placeshare.config import Settings
from placeshare.errors import AuthenticationFailed

PBKDF2_ITERATIONS = 100_000
JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS
    )
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check ``plain_password`` against a stored ``salt$hash`` string."""
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac(
        "sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS
    )
    return hmac.compare_digest(dk, stored_hash)


def create_access_token(
    user_id: str, email: str, settings: Settings, expires_minutes: Optional[int] = None
) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expires_minutes
    payload = {
        "userId": user_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict:
    """Return the token claims or raise AuthenticationFailed."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        raise AuthenticationFailed() from exc
    if not claims.get("userId"):
        raise AuthenticationFailed()
    return claims

