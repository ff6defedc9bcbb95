"""Audit log writer: append-only, best-effort."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.errors import best_effort
from marketplace.models import AuditAction, TargetType

logger = logging.getLogger(__name__)


def detached_session(db: AsyncSession) -> AsyncSession:
    """A separate session on the caller's engine for side-effect writes.

    Keeps side-effect transactions apart from the primary one, so a failed
    side write never rolls back or expires the caller's objects.
    """
    return AsyncSession(db.bind, expire_on_commit=False)


async def record(
    db: AsyncSession,
    action: AuditAction,
    actor_id: str,
    target_type: TargetType,
    target_id: str,
    details: dict | None = None,
) -> None:
    async with best_effort(f"audit log {action.value}"):
        async with detached_session(db) as side:
            await crud.create_audit_log(
                side, action.value, actor_id, target_type.value, target_id, details,
            )
        logger.debug("Audit %s by %s on %s:%s", action.value, actor_id, target_type.value, target_id)
