"""Appeal engine: agents contest a Rejected listing, admins resolve.

At most one Pending appeal per property is guaranteed by the partial unique
index ``uq_appeals_pending_property``; the lookup before insert only gives
a friendlier error in the common, non-racing case.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db import crud
from marketplace.errors import (
    Conflict, Forbidden, InvalidState, NotFound, ValidationError, persistence_guard,
)
from marketplace.models import (
    Appeal, AppealStatus, ModerationStatus, AuditAction, TargetType,
    NotificationType, RelatedType,
)
from marketplace.services import audit, moderation
from marketplace.services.auth import AuthContext
from marketplace.services.notifications import NotificationPayload, notify, notify_admins

logger = logging.getLogger(__name__)

TRANSITIONS: dict[tuple[AppealStatus, AppealStatus], AppealStatus] = {
    (AppealStatus.PENDING, AppealStatus.APPROVED): AppealStatus.APPROVED,
    (AppealStatus.PENDING, AppealStatus.REJECTED): AppealStatus.REJECTED,
}

_PENDING_CONFLICT = "An appeal for this property is already pending"


def parse_status(value: str | None) -> AppealStatus:
    """Validate a requested resolution: only Approved or Rejected."""
    try:
        status = AppealStatus(value)
    except ValueError:
        status = None
    if status not in (AppealStatus.APPROVED, AppealStatus.REJECTED):
        raise ValidationError("Status must be Approved or Rejected")
    return status


async def file_appeal(db: AsyncSession, actor: AuthContext, property_id: str, reason: str) -> Appeal:
    """Open a Pending appeal against a Rejected listing the agent owns."""
    if not actor.is_agent:
        raise Forbidden("Only agents can submit appeals")
    if not reason or not reason.strip():
        raise ValidationError("Property ID and reason are required")

    prop = await crud.get_property(db, property_id)
    if not prop:
        raise NotFound("Property not found")
    if prop.agent_id != actor.user_id:
        raise Forbidden("Not authorized")
    if prop.moderation_status != ModerationStatus.REJECTED.value:
        raise InvalidState("Only rejected properties can be appealed")
    property_id, title = prop.id, prop.title
    if await crud.find_pending_appeal(db, property_id):
        raise Conflict(_PENDING_CONFLICT)

    async with persistence_guard(db, "create appeal"):
        try:
            appeal = await crud.create_appeal(db, property_id, actor.user_id, reason.strip())
        except IntegrityError:
            # Rollback expires every loaded instance; only plain values from here on.
            await db.rollback()
            logger.info("Concurrent appeal for property %s rejected by unique index", property_id)
            raise Conflict(_PENDING_CONFLICT) from None
    logger.info("Appeal %s filed for property %s by %s", appeal.id, property_id, actor.user_id)

    await audit.record(
        db, AuditAction.APPEAL_CREATED, actor.user_id, TargetType.APPEAL, appeal.id,
        {"property_id": property_id, "reason": appeal.reason},
    )
    await notify_admins(db, NotificationPayload(
        title="New Property Appeal",
        message=f'An appeal has been submitted for property "{title}" and requires review.',
        type=NotificationType.INFO,
        related_type=RelatedType.APPEAL,
        related_id=appeal.id,
    ))
    return appeal


async def resolve_appeal(
    db: AsyncSession,
    actor: AuthContext,
    appeal_id: str,
    status: str,
    admin_notes: str | None = None,
) -> Appeal:
    """Approve or reject a Pending appeal; approval revives the listing."""
    if not actor.is_admin:
        raise Forbidden("Only admins can update appeals")
    appeal = await crud.get_appeal(db, appeal_id)
    if not appeal:
        raise NotFound("Appeal not found")
    target = parse_status(status)
    if (AppealStatus(appeal.status), target) not in TRANSITIONS:
        raise InvalidState("Appeal has already been resolved")

    revived = False
    async with persistence_guard(db, "resolve appeal"):
        if not await crud.resolve_pending_appeal(db, appeal.id, target, admin_notes):
            await db.rollback()
            raise InvalidState("Appeal has already been resolved")
        if target is AppealStatus.APPROVED:
            revived = await moderation.stage_appeal_approval(db, appeal.property_id)
        await db.commit()
        await db.refresh(appeal)
    logger.info("Appeal %s resolved as %s by %s", appeal.id, target.value, actor.user_id)

    if revived:
        await audit.record(
            db, AuditAction.PROPERTY_MODERATION_UPDATED, actor.user_id, TargetType.PROPERTY,
            appeal.property_id,
            {
                "previous_status": ModerationStatus.REJECTED.value,
                "new_status": ModerationStatus.APPROVED.value,
                "appeal_id": appeal.id,
            },
        )
    elif target is AppealStatus.APPROVED:
        logger.warning(
            "Appeal %s approved but property %s is no longer Rejected; status left unchanged",
            appeal.id, appeal.property_id,
        )
    await audit.record(
        db, AuditAction.APPEAL_UPDATED, actor.user_id, TargetType.APPEAL, appeal.id,
        {"status": target.value, "admin_notes": admin_notes},
    )

    prop = await crud.get_property(db, appeal.property_id)
    title = f'"{prop.title}"' if prop else "your property"
    if target is AppealStatus.APPROVED:
        payload = NotificationPayload(
            title="Appeal Approved",
            message=f"Your appeal for {title} has been approved. The property is now visible on the platform.",
            type=NotificationType.SUCCESS,
        )
    else:
        payload = NotificationPayload(
            title="Appeal Rejected",
            message=f"Your appeal for {title} has been rejected. Please review the admin notes for more information.",
            type=NotificationType.ERROR,
        )
    payload.related_type = RelatedType.APPEAL
    payload.related_id = appeal.id
    await notify(db, appeal.agent_id, payload)
    return appeal


# ── Reads ─────────────────────────────────────────────────

async def get_appeal_for(db: AsyncSession, actor: AuthContext, appeal_id: str) -> Appeal:
    appeal = await crud.get_appeal(db, appeal_id)
    if not appeal:
        raise NotFound("Appeal not found")
    if not actor.is_admin and appeal.agent_id != actor.user_id:
        raise Forbidden("Not authorized")
    return appeal


async def list_appeals_for(db: AsyncSession, actor: AuthContext, status: str | None = None) -> list[Appeal]:
    """Admins see every appeal; everyone else only their own. Newest first."""
    wanted = None
    if status:
        try:
            wanted = AppealStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown appeal status: {status}") from None
    agent_id = None if actor.is_admin else actor.user_id
    return await crud.list_appeals(db, agent_id=agent_id, status=wanted)
