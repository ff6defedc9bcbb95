"""FastAPI dependency providers for auth, DB sessions and role enforcement."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings, get_settings
from marketplace.db.engine import get_db
from marketplace.errors import Forbidden, Unauthenticated
from marketplace.services.auth import AuthContext, SESSION_COOKIE_NAME, get_current_user


@lru_cache
def get_settings_dep() -> Settings:
    return get_settings()


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Require a valid authenticated session. Returns AuthContext."""
    return await get_current_user(request, db)


async def optional_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext | None:
    """Resolve the caller when a session cookie is present, else None."""
    if not request.cookies.get(SESSION_COOKIE_NAME):
        return None
    try:
        return await get_current_user(request, db)
    except Unauthenticated:
        return None  # Stale cookie: treat as anonymous


def require_role(*allowed_roles: str):
    """Factory: returns a dependency that enforces role membership."""
    async def _check(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.role not in allowed_roles:
            raise Forbidden("Insufficient permissions")
        return auth
    return _check
