"""
Account endpoints: signup, login, logout and the current user.
"""

import logging
import uuid

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from flow.core.auth import CurrentUserId, end_session, start_session
from flow.core.config import settings
from flow.core.security import hash_password, verify_password
from flow.models.schemas import LoginRequest, SignupRequest, User, UserUpsert
from flow.storage import Storage, StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _demo_user(storage: Storage) -> User:
    """
    Create or refresh the shared demo account.

    When a real account has already signed up with the demo email, the demo
    account goes without an email so that account stays untouched.
    """
    email = settings.demo_user_email
    owner = storage.get_user_by_email(email)
    if owner is not None and owner.id != settings.demo_user_id:
        logger.warning("Demo email %s belongs to user %s; demo account has no email", email, owner.id)
        email = None

    return storage.upsert_user(
        UserUpsert(
            id=settings.demo_user_id,
            email=email,
            first_name="Test",
            last_name="User",
            profile_image_url="https://api.dicebear.com/7.x/avataaars/svg?seed=test",
        )
    )


@router.post("/auth/signup")
async def signup(request: SignupRequest, response: Response, storage: StorageDep) -> dict:
    """Create an account and log it in."""
    try:
        if storage.get_user_by_email(request.email):
            raise HTTPException(status_code=400, detail="An account with this email already exists")

        user = storage.upsert_user(
            UserUpsert(
                id=str(uuid.uuid4()),
                email=request.email,
                first_name=request.first_name,
                last_name=request.last_name,
                password_hash=hash_password(request.password),
            )
        )
        start_session(response, storage, user)
        logger.info("Created account %s", user.id)

        return {"success": True, "user": user}

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Signup failed")
        raise HTTPException(status_code=500, detail=f"Failed to create account: {str(e)}")


@router.post("/auth/login")
@router.post("/auth/signin")
async def login(request: LoginRequest, response: Response, storage: StorageDep) -> dict:
    """
    Log in with email and password.

    The demo account is also reachable with its username when enabled.
    """
    identifier = request.email or request.username
    if not identifier:
        raise HTTPException(status_code=400, detail="Email or username is required")

    if (
        settings.demo_login_enabled
        and identifier == settings.demo_username
        and request.password == settings.demo_password
    ):
        user = _demo_user(storage)
    else:
        user = storage.get_user_by_email(identifier)
        if user is None or not verify_password(request.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")

    start_session(response, storage, user)
    return {"success": True, "user": user}


@router.post("/auth/logout")
@router.post("/logout")
async def logout(request: Request, response: Response, storage: StorageDep) -> dict:
    """End the current session."""
    end_session(request, response, storage)
    return {"success": True}


@router.get("/auth/user", response_model=User)
async def get_current_user(user_id: CurrentUserId, storage: StorageDep) -> User:
    """Return the logged-in user."""
    user = storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


@router.get("/test-login")
async def test_login(storage: StorageDep) -> RedirectResponse:
    """Log in as the demo user and go to the app."""
    if not settings.demo_login_enabled:
        raise HTTPException(status_code=404, detail="Not found")

    redirect = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    start_session(redirect, storage, _demo_user(storage))
    return redirect
