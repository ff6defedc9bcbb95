from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.db.engine import get_db
from marketplace.dependencies import require_auth
from marketplace.errors import Forbidden, NotFound
from marketplace.schemas import NotificationList, NotificationRead
from marketplace.services.auth import AuthContext

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
async def list_notifications(
    limit: int = Query(default=10, ge=1, le=100),
    unread: bool = Query(default=False),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    items = await crud.list_notifications(db, auth.user_id, unread_only=unread, limit=limit)
    unread_count = await crud.count_unread_notifications(db, auth.user_id)
    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in items],
        unread_count=unread_count,
    )


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: str,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    notification = await crud.get_notification(db, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.user_id != auth.user_id:
        raise Forbidden("Not authorized")
    return await crud.mark_notification_read(db, notification)
