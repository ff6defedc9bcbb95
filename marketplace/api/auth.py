"""Auth API: register, login, logout, current user."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings
from marketplace.db import crud
from marketplace.db.engine import get_db
from marketplace.dependencies import get_settings_dep, require_auth
from marketplace.errors import Conflict, Unauthenticated
from marketplace.schemas import LoginRequest, RegisterRequest, UserRead
from marketplace.services.auth import (
    AuthContext, SESSION_COOKIE_NAME, create_session, hash_password,
    remove_session, verify_password,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    email = body.email.strip().lower()
    if await crud.get_user_by_email(db, email):
        raise Conflict("User with this email already exists")
    user = await crud.create_user(
        db, email, hash_password(body.password), role=body.role,
        display_name=body.display_name, company=body.company,
        license_number=body.license_number, phone_number=body.phone_number,
    )
    return user


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    user = await crud.get_user_by_email(db, body.email.strip().lower())
    if not user or not user.is_active or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")

    ip = request.client.host if request.client else ""
    token = await create_session(user, db, ip_address=ip)

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    response = JSONResponse(content={"ok": True, "user_id": user.id, "role": user.role})
    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        httponly=True, samesite="lax",
        max_age=86400 * settings.session_max_age_days,
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        await remove_session(token, db)
    response = JSONResponse(content={"ok": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserRead)
async def me(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    user = await crud.get_user(db, auth.user_id)
    if not user:
        raise Unauthenticated("Not authenticated")
    return user
