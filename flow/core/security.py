"""
Password hashing and session cookie signing.
"""

from datetime import datetime, timezone

import bcrypt
import jwt
from jwt import PyJWTError

from flow.core.config import settings

SESSION_TOKEN_ALGORITHM = "HS256"


class InvalidSessionToken(Exception):
    """Raised when a session cookie cannot be verified."""


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def encode_session_token(sid: str, expires_at: datetime) -> str:
    """Sign a session id into the value stored in the session cookie."""
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    payload = {"sid": sid, "exp": int(expires_at.timestamp())}
    return jwt.encode(payload, settings.session_secret, algorithm=SESSION_TOKEN_ALGORITHM)


def decode_session_token(token: str) -> str:
    """
    Verify a session cookie value and return the session id it carries.

    Raises:
        InvalidSessionToken: If the signature is wrong, the token expired,
            or the sid claim is missing.
    """
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[SESSION_TOKEN_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidSessionToken("Session has expired") from e
    except PyJWTError as e:
        raise InvalidSessionToken(f"Invalid session: {str(e)}") from e

    sid = payload.get("sid")
    if not sid:
        raise InvalidSessionToken("Invalid session: missing sid")
    return sid
