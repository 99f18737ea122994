"""Authentication endpoints and utilities."""
import logging
from fastapi import APIRouter, Request, Response, HTTPException, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.dependencies import get_token_authority
from app.db.database import get_db
from app.db.models import User
from app.services.auth.passwords import hash_password, verify_password
from app.services.auth.tokens import SessionTokenAuthority
from app.services.persistence.users import UserPersistenceService

router = APIRouter()
logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
INVALID_CREDENTIALS = "Invalid email or password"


class SignUpRequest(BaseModel):
    """Sign-up request model."""
    name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=6)


class SignInRequest(BaseModel):
    """Sign-in request model."""
    email: EmailStr
    password: str = Field(min_length=6)


class UserInfo(BaseModel):
    """Public user fields."""
    id: str
    name: str
    email: str


class SessionInfo(BaseModel):
    """Session information response."""
    authenticated: bool
    user: Optional[UserInfo] = None


def set_session_cookie(
    response: Response, authority: SessionTokenAuthority, user_id: str, email: str
) -> str:
    """Issue a token for the user and store it in the session cookie."""
    token = authority.issue(user_id, email)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=authority.max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    return token


def get_session_token(request: Request) -> Optional[str]:
    """Extract session token from cookie."""
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    authority: SessionTokenAuthority = Depends(get_token_authority),
) -> Optional[User]:
    """Resolve the signed-in user, or None for a missing, invalid or stale session."""
    payload = authority.verify(get_session_token(request))
    if payload is None:
        return None
    try:
        return await UserPersistenceService(db).get_user_by_id(payload.user_id)
    except Exception as e:
        logger.warning(f"[AUTH] Could not load session user {payload.user_id}: {type(e).__name__}: {e}")
        return None


async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Dependency to require authentication."""
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


@router.post("/api/auth/sign-up")
async def sign_up(
    req: SignUpRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    authority: SessionTokenAuthority = Depends(get_token_authority),
):
    """Create an account and sign it in."""
    users = UserPersistenceService(db)
    try:
        if await users.get_user_by_email(req.email):
            raise HTTPException(status_code=409, detail="User already exists")
        user = await users.create_user(req.name, req.email, hash_password(req.password))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[AUTH] Sign-up failed - Error: {type(e).__name__}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Signup failed")

    set_session_cookie(response, authority, user.id, user.email)
    logger.info(f"[AUTH] User signed up - user: {user.id}")
    return {"success": True, "message": "Account created successfully."}


@router.post("/api/auth/sign-in")
async def sign_in(
    req: SignInRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    authority: SessionTokenAuthority = Depends(get_token_authority),
):
    """Sign in with email and password."""
    try:
        user = await UserPersistenceService(db).get_user_by_email(req.email)
    except Exception as e:
        logger.error(f"[AUTH] Sign-in failed - Error: {type(e).__name__}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Sign in failed")

    if user is None or not verify_password(req.password, user.password_hash):
        logger.info("[AUTH] Rejected sign-in attempt")
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    set_session_cookie(response, authority, user.id, user.email)
    logger.info(f"[AUTH] User signed in - user: {user.id}")
    return {"success": True, "message": "Signed in successfully."}


@router.post("/api/auth/sign-out")
async def sign_out(response: Response):
    """Sign out by deleting the session cookie."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True, "message": "Signed out"}


@router.get("/api/auth/session")
async def get_session_info(user: Optional[User] = Depends(get_current_user)) -> SessionInfo:
    """Get current session information."""
    if user is None:
        return SessionInfo(authenticated=False)
    return SessionInfo(
        authenticated=True,
        user=UserInfo(id=user.id, name=user.name, email=user.email),
    )
