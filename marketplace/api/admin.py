"""Admin API: audit trail viewer and user management."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.db.engine import get_db
from marketplace.dependencies import require_role
from marketplace.errors import NotFound, ValidationError, persistence_guard
from marketplace.models import AuditAction, NotificationType, Role, TargetType
from marketplace.schemas import AuditLogRead, UserRead, UserUpdate
from marketplace.services import audit
from marketplace.services.auth import AuthContext, remove_all_user_sessions
from marketplace.services.notifications import NotificationPayload, notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

_admin_dep = require_role("admin")


# ── Audit logs ────────────────────────────────────────────

@router.get("/audit-logs", response_model=list[AuditLogRead])
async def list_audit_logs(
    action: str | None = Query(default=None),
    target_type: str | None = Query(default=None),
    target_id: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_audit_logs(
        db,
        action=None if action == "all" else action,
        target_type=None if target_type == "all" else target_type,
        target_id=target_id,
        user_id=user_id,
        limit=limit,
    )


# ── Users ─────────────────────────────────────────────────

@router.get("/users", response_model=list[UserRead])
async def list_users(
    role: str | None = Query(default=None),
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_users(db, role=role)


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    body: UserUpdate,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    user = await crud.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    if body.is_active is False and user.id == auth.user_id:
        raise ValidationError("Cannot deactivate yourself")

    # Prevent removing the last admin
    losing_admin = user.role == Role.ADMIN.value and (
        (body.role is not None and body.role != Role.ADMIN.value) or body.is_active is False
    )
    if losing_admin and await crud.count_active_admins(db) <= 1:
        raise ValidationError("Cannot remove the last admin")

    previous_role, previous_active = user.role, user.is_active
    async with persistence_guard(db, "update user"):
        if body.role is not None:
            user.role = body.role
        if body.is_active is not None:
            user.is_active = body.is_active
        await db.commit()
        await db.refresh(user)
    if previous_active and not user.is_active:
        await remove_all_user_sessions(user.id, db)

    deactivated = previous_active and not user.is_active
    await audit.record(
        db,
        AuditAction.USER_DEACTIVATED if deactivated else AuditAction.USER_UPDATED,
        auth.user_id, TargetType.USER, user.id,
        {
            "previous_role": previous_role,
            "new_role": user.role,
            "previous_active": previous_active,
            "new_active": user.is_active,
        },
    )

    if previous_role != user.role:
        await notify(db, user.id, NotificationPayload(
            title="Account Update",
            message=f"Your account role has been updated from {previous_role} to {user.role}.",
            type=NotificationType.INFO,
        ))
    if deactivated:
        await notify(db, user.id, NotificationPayload(
            title="Account Deactivated",
            message="Your account has been deactivated by an administrator. Please contact support for assistance.",
            type=NotificationType.ERROR,
        ))
    elif not previous_active and user.is_active:
        await notify(db, user.id, NotificationPayload(
            title="Account Reactivated",
            message="Your account has been reactivated. You can now log in to the platform.",
            type=NotificationType.SUCCESS,
        ))
    logger.info("User %s updated by %s (role=%s active=%s)", user.id, auth.user_id, user.role, user.is_active)
    return user
