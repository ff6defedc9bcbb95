"""Moderation engine: owns ``Property.moderation_status``.

Every status change goes through ``TRANSITIONS`` and is persisted as an
UPDATE conditioned on the prior status, so two writers racing on the same
listing cannot silently overwrite each other.

    submission ──classify──> Pending | Flagged | Approved(admin)
    Pending/Flagged ──approve──> Approved
    Pending/Flagged ──reject───> Rejected
    Rejected ──appeal_approved──> Approved
    Pending/Approved ──reports_threshold──> Flagged
    Pending/Approved ──content_flagged────> Flagged   (owner edit adds prohibited text)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings, get_settings
from marketplace.db import crud
from marketplace.errors import (
    Conflict, Forbidden, InvalidState, NotFound, ValidationError,
    best_effort, persistence_guard,
)
from marketplace.models import (
    Property, ModerationStatus, Role, AuditAction, TargetType,
    NotificationType, RelatedType,
)
from marketplace.schemas import PropertyCreate, PropertyUpdate
from marketplace.services import audit, email
from marketplace.services.auth import AuthContext
from marketplace.services.content_classifier import ClassificationResult, classify, flagged_notes
from marketplace.services.notifications import NotificationPayload, notify, notify_admins

logger = logging.getLogger(__name__)


class ModerationEvent(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    APPEAL_APPROVED = "appeal_approved"
    REPORTS_THRESHOLD = "reports_threshold"
    CONTENT_FLAGGED = "content_flagged"


TRANSITIONS: dict[tuple[ModerationStatus, ModerationEvent], ModerationStatus] = {
    (ModerationStatus.PENDING, ModerationEvent.APPROVE): ModerationStatus.APPROVED,
    (ModerationStatus.PENDING, ModerationEvent.REJECT): ModerationStatus.REJECTED,
    (ModerationStatus.FLAGGED, ModerationEvent.APPROVE): ModerationStatus.APPROVED,
    (ModerationStatus.FLAGGED, ModerationEvent.REJECT): ModerationStatus.REJECTED,
    (ModerationStatus.REJECTED, ModerationEvent.APPEAL_APPROVED): ModerationStatus.APPROVED,
    (ModerationStatus.PENDING, ModerationEvent.REPORTS_THRESHOLD): ModerationStatus.FLAGGED,
    (ModerationStatus.APPROVED, ModerationEvent.REPORTS_THRESHOLD): ModerationStatus.FLAGGED,
    (ModerationStatus.PENDING, ModerationEvent.CONTENT_FLAGGED): ModerationStatus.FLAGGED,
    (ModerationStatus.APPROVED, ModerationEvent.CONTENT_FLAGGED): ModerationStatus.FLAGGED,
}

# Admin-facing action names accepted by ``decide``.
DECISION_ACTIONS = {
    "approve": ModerationEvent.APPROVE,
    "reject": ModerationEvent.REJECT,
}


def next_status(current: ModerationStatus, event: ModerationEvent) -> ModerationStatus:
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidState(
            f"Cannot {event.value.replace('_', ' ')} a property that is {current.value}"
        ) from None


def sources_for(event: ModerationEvent) -> list[ModerationStatus]:
    """States from which ``event`` is legal."""
    return [state for (state, ev) in TRANSITIONS if ev is event]


def initial_status(role: str, verdict: ClassificationResult) -> ModerationStatus:
    """Flagged content always queues for review; otherwise admins skip the queue."""
    if verdict.flagged:
        return ModerationStatus.FLAGGED
    if role == Role.ADMIN.value:
        return ModerationStatus.APPROVED
    return ModerationStatus.PENDING


async def _load(db: AsyncSession, property_id: str) -> Property:
    prop = await crud.get_property(db, property_id)
    if not prop:
        raise NotFound("Property not found")
    return prop


# ── Creation ──────────────────────────────────────────────

async def submit_property(
    db: AsyncSession, actor: AuthContext, submission: PropertyCreate, settings: Settings | None = None,
) -> Property:
    """Create a listing with its initial moderation status.

    Only listing fields from ``PropertyCreate`` reach the row; ownership and
    moderation columns are always set here.
    """
    settings = settings or get_settings()
    if actor.role not in (Role.AGENT.value, Role.ADMIN.value):
        raise Forbidden("Only agents and admins can create listings")

    verdict = classify(submission.title, submission.description, settings.moderation.prohibited_terms)
    status = initial_status(actor.role, verdict)
    notes = flagged_notes(verdict) if verdict.flagged else None

    async with persistence_guard(db, "create property"):
        prop = await crud.create_property(db, actor.user_id, status, notes, **submission.model_dump())
    logger.info("Property %s created by %s as %s", prop.id, actor.user_id, status.value)

    details = {"property_title": prop.title, "moderation_status": status.value}
    if verdict.flagged:
        details["prohibited_terms"] = verdict.prohibited_terms
    await audit.record(db, AuditAction.PROPERTY_CREATED, actor.user_id, TargetType.PROPERTY, prop.id, details)

    if status is not ModerationStatus.APPROVED and settings.moderation.notify_admins_on_submission:
        await notify_admins(db, NotificationPayload(
            title="New Property Submission",
            message=f'A new property "{prop.title}" has been submitted and requires review.',
            type=NotificationType.INFO,
            related_type=RelatedType.PROPERTY,
            related_id=prop.id,
        ))
    return prop


# ── Admin decision ────────────────────────────────────────

async def decide(
    db: AsyncSession,
    actor: AuthContext,
    property_id: str,
    action: str,
    notes: str | None = None,
    settings: Settings | None = None,
) -> Property:
    """Approve or reject a Pending/Flagged listing."""
    settings = settings or get_settings()
    if not actor.is_admin:
        raise Forbidden("Not authorized")
    event = DECISION_ACTIONS.get(action)
    if event is None:
        raise ValidationError("Invalid action")

    prop = await _load(db, property_id)
    previous = ModerationStatus(prop.moderation_status)
    new = next_status(previous, event)

    async with persistence_guard(db, "update moderation status"):
        if not await crud.transition_property_status(db, prop.id, [previous], new, notes):
            await db.rollback()
            raise InvalidState("Property moderation status changed concurrently; reload and retry")
        await db.commit()
        await db.refresh(prop)
    logger.info("Property %s moderated %s -> %s by %s", prop.id, previous.value, new.value, actor.user_id)

    await audit.record(
        db, AuditAction.PROPERTY_MODERATION_UPDATED, actor.user_id, TargetType.PROPERTY, prop.id,
        {"previous_status": previous.value, "new_status": new.value, "notes": notes},
    )
    if settings.moderation.notify_agent_on_decision:
        await _notify_agent_of_decision(db, prop, new, notes)
    return prop


async def _notify_agent_of_decision(
    db: AsyncSession, prop: Property, status: ModerationStatus, notes: str | None,
) -> None:
    if status is ModerationStatus.APPROVED:
        payload = NotificationPayload(
            title="Property Approved",
            message=f'Your property "{prop.title}" has been approved and is now visible on the platform.',
            type=NotificationType.SUCCESS,
        )
    else:
        payload = NotificationPayload(
            title="Property Rejected",
            message=(
                f'Your property "{prop.title}" has been rejected. Please review the notes '
                f'for more information: {notes or "No notes provided."}'
            ),
            type=NotificationType.ERROR,
        )
    payload.related_type = RelatedType.PROPERTY
    payload.related_id = prop.id
    await notify(db, prop.agent_id, payload)

    async with best_effort("moderation decision email"):
        agent = await crud.get_user(db, prop.agent_id)
        if agent:
            await asyncio.to_thread(
                email.send_notification_email,
                agent.email, payload.title, payload.message, f"/properties/{prop.id}",
            )


# ── Owner edits ───────────────────────────────────────────

async def _load_owned(db: AsyncSession, actor: AuthContext, property_id: str) -> Property:
    prop = await _load(db, property_id)
    if prop.agent_id != actor.user_id and not actor.is_admin:
        raise Forbidden("Not authorized")
    return prop


async def edit_property(
    db: AsyncSession,
    actor: AuthContext,
    property_id: str,
    changes: PropertyUpdate,
    settings: Settings | None = None,
) -> Property:
    """Apply an owner/admin edit to the listing fields.

    The moderation status is never set directly. Edited text is classified
    again, and prohibited content sends a Pending or Approved listing back
    to review through ``CONTENT_FLAGGED``. Rejected listings stay Rejected
    and go through the appeal path.
    """
    settings = settings or get_settings()
    prop = await _load_owned(db, actor, property_id)
    fields = changes.model_dump(exclude_unset=True)
    if not fields:
        return prop

    title = fields.get("title", prop.title)
    description = fields.get("description", prop.description)
    verdict = classify(title, description, settings.moderation.prohibited_terms)
    previous = ModerationStatus(prop.moderation_status)
    event = ModerationEvent.CONTENT_FLAGGED
    flagging = verdict.flagged and (previous, event) in TRANSITIONS

    async with persistence_guard(db, "update property"):
        crud.apply_property_changes(prop, fields)
        if flagging and not await crud.transition_property_status(
            db, prop.id, [previous], next_status(previous, event), flagged_notes(verdict),
        ):
            await db.rollback()
            raise InvalidState("Property moderation status changed concurrently; reload and retry")
        await db.commit()
        await db.refresh(prop)
    logger.info("Property %s edited by %s (%s)", prop.id, actor.user_id, ", ".join(sorted(fields)))

    details = {"fields": sorted(fields)}
    if flagging:
        details.update(
            previous_status=previous.value,
            new_status=prop.moderation_status,
            prohibited_terms=verdict.prohibited_terms,
        )
    await audit.record(db, AuditAction.PROPERTY_UPDATED, actor.user_id, TargetType.PROPERTY, prop.id, details)

    if flagging and settings.moderation.notify_admins_on_submission:
        await notify_admins(db, NotificationPayload(
            title="Property Flagged After Edit",
            message=f'Property "{prop.title}" was edited and now contains prohibited content.',
            type=NotificationType.WARNING,
            related_type=RelatedType.PROPERTY,
            related_id=prop.id,
        ))
    return prop


async def remove_property(db: AsyncSession, actor: AuthContext, property_id: str) -> None:
    """Delete a listing. Listings with appeal history are kept."""
    prop = await _load_owned(db, actor, property_id)
    if await crud.count_appeals_for_property(db, prop.id):
        raise Conflict("Property has appeal history and cannot be deleted")

    property_id, title = prop.id, prop.title
    async with persistence_guard(db, "delete property"):
        await crud.delete_property(db, prop)
    logger.info("Property %s deleted by %s", property_id, actor.user_id)

    await audit.record(
        db, AuditAction.PROPERTY_DELETED, actor.user_id, TargetType.PROPERTY, property_id,
        {"property_title": title},
    )


# ── Appeal path ───────────────────────────────────────────

async def stage_appeal_approval(db: AsyncSession, property_id: str) -> bool:
    """Stage Rejected -> Approved for an approved appeal. Caller commits.

    Returns False when the listing is no longer Rejected.
    """
    return await crud.transition_property_status(
        db, property_id,
        sources_for(ModerationEvent.APPEAL_APPROVED),
        TRANSITIONS[(ModerationStatus.REJECTED, ModerationEvent.APPEAL_APPROVED)],
    )


# ── User reports ──────────────────────────────────────────

async def report_property(
    db: AsyncSession,
    actor: AuthContext,
    property_id: str,
    reason: str,
    settings: Settings | None = None,
) -> Property:
    """Record a user report; enough reports push the listing back to review."""
    settings = settings or get_settings()
    if not reason or not reason.strip():
        raise ValidationError("Reason is required")
    prop = await _load(db, property_id)
    if await crud.get_property_report(db, prop.id, actor.user_id):
        raise Conflict("You have already reported this property")

    flagged = False
    async with persistence_guard(db, "report property"):
        try:
            count = await crud.add_property_report(db, prop.id, actor.user_id, reason.strip())
        except IntegrityError:
            await db.rollback()
            raise Conflict("You have already reported this property") from None
        if count >= settings.moderation.report_flag_threshold:
            flagged = await crud.transition_property_status(
                db, prop.id,
                sources_for(ModerationEvent.REPORTS_THRESHOLD),
                ModerationStatus.FLAGGED,
            )
        await db.commit()
        await db.refresh(prop)

    await audit.record(
        db, AuditAction.PROPERTY_REPORTED, actor.user_id, TargetType.PROPERTY, prop.id,
        {"reason": reason.strip(), "report_count": prop.report_count, "flagged": flagged},
    )
    if flagged:
        logger.info("Property %s flagged after %d reports", prop.id, prop.report_count)
        await notify_admins(db, NotificationPayload(
            title="Property Flagged by Reports",
            message=f'Property "{prop.title}" has been reported {prop.report_count} times and needs review.',
            type=NotificationType.WARNING,
            related_type=RelatedType.PROPERTY,
            related_id=prop.id,
        ))
    return prop
