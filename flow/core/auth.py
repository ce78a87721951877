"""
Cookie session authentication.

The session cookie carries a signed token naming a server-side session
record; the record holds the user id and its own expiry.
"""

import logging
import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from flow.core.config import settings
from flow.core.security import InvalidSessionToken, decode_session_token, encode_session_token
from flow.models.schemas import StoredSession, User
from flow.storage import Storage, StorageDep, utcnow

logger = logging.getLogger(__name__)


def start_session(response: Response, storage: Storage, user: User) -> StoredSession:
    """Persist a new session for ``user`` and set the session cookie."""
    sid = uuid.uuid4().hex
    expire = utcnow() + timedelta(days=settings.session_ttl_days)
    session = storage.create_session(sid, {"user_id": user.id}, expire)

    response.set_cookie(
        key=settings.session_cookie_name,
        value=encode_session_token(sid, expire),
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return session


def end_session(request: Request, response: Response, storage: Storage) -> None:
    """Delete the caller's server-side session (if any) and clear the cookie."""
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        try:
            storage.delete_session(decode_session_token(token))
        except InvalidSessionToken as e:
            logger.debug("Ignoring invalid session cookie on logout: %s", e)
    response.delete_cookie(settings.session_cookie_name)


async def get_current_user_id(
    request: Request,
    storage: StorageDep,
) -> str:
    """
    Resolve the session cookie to a user id.

    Raises:
        HTTPException: 401 if the cookie is missing, invalid or expired, or
            the session it names no longer exists.
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )

    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise unauthorized

    try:
        sid = decode_session_token(token)
    except InvalidSessionToken as e:
        logger.debug("Rejected session cookie: %s", e)
        raise unauthorized

    session = storage.get_session(sid)
    if session is None:
        raise unauthorized
    if session.expire <= utcnow():
        storage.delete_session(sid)
        raise unauthorized

    user_id = session.sess.get("user_id")
    if not user_id:
        raise unauthorized
    return user_id


# Type alias for cleaner endpoint signatures
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
