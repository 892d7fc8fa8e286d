from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog
from app.config import settings
from app.db import get_session
from app.auth_deps import get_current_user
from app.models.user import Profile
from app.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from app.security import hash_password, verify_password, make_access_token, make_refresh_token, decode_token

router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger()

def _public(user: Profile) -> UserPublic:
    return UserPublic(
        id=user.id, email=user.email, username=user.username,
        full_name=user.full_name, role=user.role, created_at=user.created_at,
    )

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    taken = await session.scalar(
        select(Profile).where(or_(Profile.email == email, Profile.username == payload.username))
    )
    if taken:
        detail = "Email already registered" if taken.email == email else "Username already taken"
        raise HTTPException(status_code=409, detail=detail)
    user = Profile(
        email=email,
        username=payload.username,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        role="admin" if email in settings.admin_emails else "user",
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    log.info("user_registered", user_id=str(user.id), role=user.role)
    return _public(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(Profile).where(Profile.email == payload.email.lower()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenPair(access=make_access_token(str(user.id), user.role), refresh=make_refresh_token(str(user.id)))

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None), session: AsyncSession = Depends(get_session)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing refresh token")
    token = authorization.split(" ", 1)[1]
    try:
        data = decode_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Wrong token type")
    user = await session.scalar(select(Profile).where(Profile.id == _uuid_or_401(data.get("sub"))))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return TokenPair(access=make_access_token(str(user.id), user.role), refresh=make_refresh_token(str(user.id)))

@router.get("/me", response_model=UserPublic)
async def me(user: Profile = Depends(get_current_user)):
    return _public(user)

def _uuid_or_401(raw):
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
