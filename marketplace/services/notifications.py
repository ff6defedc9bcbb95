"""Notification dispatcher: one in-app notification row per recipient."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.errors import best_effort
from marketplace.models import NotificationType, RelatedType
from marketplace.services.audit import detached_session

logger = logging.getLogger(__name__)


@dataclass
class NotificationPayload:
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    related_type: RelatedType | None = None
    related_id: str | None = None

    def row_for(self, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "related_type": self.related_type.value if self.related_type else None,
            "related_id": self.related_id,
        }


async def _insert_each(db: AsyncSession, rows: list[dict]) -> int:
    delivered = 0
    for row in rows:
        async with best_effort(f"notification to {row['user_id']}"):
            async with detached_session(db) as side:
                await crud.create_notifications(side, [row])
            delivered += 1
    return delivered


async def notify(
    db: AsyncSession, recipients: str | Iterable[str], payload: NotificationPayload,
) -> int:
    """Create one notification per recipient. Returns how many were stored.

    Tries a single batch insert first; if the batch fails, falls back to
    independent per-recipient inserts so one bad row cannot block the rest.
    Never raises.
    """
    ids = [recipients] if isinstance(recipients, str) else list(dict.fromkeys(recipients))
    if not ids:
        return 0
    rows = [payload.row_for(uid) for uid in ids]

    try:
        async with detached_session(db) as side:
            await crud.create_notifications(side, rows)
        return len(rows)
    except SQLAlchemyError:
        logger.warning("Batch notification insert failed for %d recipients, retrying individually", len(rows))
    except Exception:
        logger.exception("Notification dispatch failed: %s", payload.title)
        return 0
    return await _insert_each(db, rows)


async def notify_admins(db: AsyncSession, payload: NotificationPayload) -> int:
    """Fan a notification out to every active admin."""
    admin_ids: list[str] = []
    async with best_effort("admin lookup"):
        async with detached_session(db) as side:
            admin_ids = await crud.list_admin_ids(side)
    if not admin_ids:
        logger.info("No admin users found to notify: %s", payload.title)
        return 0
    return await notify(db, admin_ids, payload)
