"""Bootstrap an administrator account (CLI only; admins cannot self-register)."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.errors import Conflict
from marketplace.models import AuditAction, Role, TargetType, User
from marketplace.services import audit
from marketplace.services.auth import hash_password


async def create_admin(
    db: AsyncSession,
    email: str,
    password: str,
    display_name: str = "",
) -> User:
    """Create an admin user and record it in the audit trail."""
    email = email.strip().lower()
    if await crud.get_user_by_email(db, email):
        raise Conflict("User with this email already exists")

    admin = await crud.create_user(
        db, email, hash_password(password), role=Role.ADMIN.value, display_name=display_name,
    )
    await audit.record(
        db, AuditAction.ADMIN_USER_CREATED, admin.id, TargetType.USER, admin.id,
        {"email": admin.email, "created_from": "cli"},
    )
    return admin
