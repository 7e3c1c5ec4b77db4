"""
app/core/security.py

Purpose: Credential handling

- bcrypt password hashing and verification
- Signed access tokens (JWT) for the bearer auth scheme
- One-time password reset tokens (only the sha256 digest is stored)
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

import bcrypt
import jwt

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from utils.constants import MSG_TOKEN_FAILED


def hash_password(password: str) -> str:
    """Hashes a plain-text password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Checks a plain-text password against a stored bcrypt hash."""
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(user_id: str, expires_days: Optional[int] = None) -> str:
    """
    Issues a signed access token for a user.

    Args:
        user_id: String form of the user's ObjectId
        expires_days: Override for the configured token lifetime

    Returns:
        Encoded JWT
    """
    now = datetime.utcnow()
    lifetime = expires_days if expires_days is not None else settings.JWT_EXPIRES_DAYS
    payload = {
        "id": user_id,
        "iat": now,
        "exp": now + timedelta(days=lifetime),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Validates an access token and returns the user id it was issued for.

    Raises:
        AuthenticationError: If the token is expired, tampered with or malformed
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.InvalidTokenError:
        raise AuthenticationError(MSG_TOKEN_FAILED)

    user_id = payload.get("id")
    if not user_id:
        raise AuthenticationError(MSG_TOKEN_FAILED)
    return user_id


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """
    Creates a password reset token.

    Returns:
        (raw token to hand to the user, sha256 digest to persist)
    """
    raw = secrets.token_hex(20)
    return raw, hash_reset_token(raw)
