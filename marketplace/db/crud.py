"""CRUD operations for marketplace models.

Functions that take part in a state-machine transition (``transition_*``,
``resolve_pending_appeal``, ``add_property_report``) do not commit; the
calling engine commits once the whole transition is staged.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import (
    User, Property, PropertyReport, Appeal, AuditLog, Notification,
    ModerationStatus, AppealStatus, Role,
)
from marketplace.models.base import utcnow


# ── User ──────────────────────────────────────────────────

async def create_user(
    db: AsyncSession, email: str, password_hash: str, role: str = "user",
    display_name: str = "", **profile,
) -> User:
    user = User(
        email=email, password_hash=password_hash, role=role,
        display_name=display_name or email.split("@")[0], **profile,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def list_users(db: AsyncSession, role: str | None = None) -> list[User]:
    stmt = select(User).order_by(User.created_at)
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_admin_ids(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(User.id).where(User.role == Role.ADMIN.value, User.is_active == True)
    )
    return list(result.scalars().all())


async def count_active_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count()).select_from(User).where(
            User.role == Role.ADMIN.value, User.is_active == True,
        )
    )
    return result.scalar_one()


# ── Property ──────────────────────────────────────────────

async def create_property(
    db: AsyncSession, agent_id: str, moderation_status: ModerationStatus,
    moderation_notes: str | None = None, **fields,
) -> Property:
    prop = Property(
        agent_id=agent_id,
        moderation_status=moderation_status.value,
        moderation_notes=moderation_notes,
        **fields,
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def get_property(db: AsyncSession, property_id: str) -> Property | None:
    return await db.get(Property, property_id, populate_existing=True)


async def list_properties(
    db: AsyncSession,
    statuses: Iterable[ModerationStatus] | None = None,
    agent_id: str | None = None,
) -> list[Property]:
    """Newest-first listing filtered by moderation status and/or owning agent."""
    stmt = select(Property).order_by(Property.created_at.desc(), Property.id.desc())
    if statuses is not None:
        stmt = stmt.where(Property.moderation_status.in_([s.value for s in statuses]))
    if agent_id:
        stmt = stmt.where(Property.agent_id == agent_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def transition_property_status(
    db: AsyncSession,
    property_id: str,
    expected: Iterable[ModerationStatus],
    new_status: ModerationStatus,
    notes: str | None = None,
) -> bool:
    """Conditionally move a property to ``new_status``.

    The UPDATE only matches while the stored status is one of ``expected``,
    so a concurrent writer that changed it first makes this a no-op.
    Returns True when the row was updated.
    """
    values = {"moderation_status": new_status.value, "updated_at": utcnow()}
    if notes:
        values["moderation_notes"] = notes
    result = await db.execute(
        update(Property)
        .where(
            Property.id == property_id,
            Property.moderation_status.in_([s.value for s in expected]),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def get_property_report(db: AsyncSession, property_id: str, user_id: str) -> PropertyReport | None:
    result = await db.execute(
        select(PropertyReport).where(
            PropertyReport.property_id == property_id,
            PropertyReport.user_id == user_id,
        )
    )
    return result.scalars().first()


async def add_property_report(db: AsyncSession, property_id: str, user_id: str, reason: str) -> int:
    """Stage a report row and bump report_count in place. Returns the new count."""
    db.add(PropertyReport(property_id=property_id, user_id=user_id, reason=reason))
    await db.flush()
    await db.execute(
        update(Property)
        .where(Property.id == property_id)
        .values(report_count=Property.report_count + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(select(Property.report_count).where(Property.id == property_id))
    return result.scalar_one()


def apply_property_changes(prop: Property, changes: dict) -> None:
    """Stage listing-field edits on a loaded property. Caller commits."""
    for key, value in changes.items():
        setattr(prop, key, value)


async def delete_property(db: AsyncSession, prop: Property) -> None:
    """Remove a listing together with its reports."""
    await db.execute(delete(PropertyReport).where(PropertyReport.property_id == prop.id))
    await db.delete(prop)
    await db.commit()


# ── Appeal ────────────────────────────────────────────────

async def create_appeal(db: AsyncSession, property_id: str, agent_id: str, reason: str) -> Appeal:
    """Insert a Pending appeal. IntegrityError propagates when one is already pending."""
    appeal = Appeal(
        property_id=property_id, agent_id=agent_id, reason=reason,
        status=AppealStatus.PENDING.value,
    )
    db.add(appeal)
    await db.commit()
    await db.refresh(appeal)
    return appeal


async def get_appeal(db: AsyncSession, appeal_id: str) -> Appeal | None:
    return await db.get(Appeal, appeal_id, populate_existing=True)


async def find_pending_appeal(db: AsyncSession, property_id: str) -> Appeal | None:
    result = await db.execute(
        select(Appeal).where(
            Appeal.property_id == property_id,
            Appeal.status == AppealStatus.PENDING.value,
        )
    )
    return result.scalars().first()


async def count_appeals_for_property(db: AsyncSession, property_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Appeal).where(Appeal.property_id == property_id)
    )
    return result.scalar_one()


async def list_appeals(
    db: AsyncSession, agent_id: str | None = None, status: AppealStatus | None = None,
) -> list[Appeal]:
    stmt = select(Appeal).order_by(Appeal.created_at.desc(), Appeal.id.desc())
    if agent_id:
        stmt = stmt.where(Appeal.agent_id == agent_id)
    if status:
        stmt = stmt.where(Appeal.status == status.value)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def resolve_pending_appeal(
    db: AsyncSession, appeal_id: str, status: AppealStatus, admin_notes: str | None = None,
) -> bool:
    """Move a Pending appeal to ``status``; matches nothing once it is resolved."""
    values = {"status": status.value, "updated_at": utcnow()}
    if admin_notes:
        values["admin_notes"] = admin_notes
    result = await db.execute(
        update(Appeal)
        .where(Appeal.id == appeal_id, Appeal.status == AppealStatus.PENDING.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ── AuditLog ──────────────────────────────────────────────

async def create_audit_log(
    db: AsyncSession, action: str, user_id: str, target_type: str, target_id: str,
    details: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        action=action, user_id=user_id, target_type=target_type,
        target_id=target_id, details=details or {},
    )
    db.add(entry)
    await db.commit()
    return entry


async def list_audit_logs(
    db: AsyncSession,
    action: str | None = None,
    target_type: str | None = None,
    user_id: str | None = None,
    target_id: str | None = None,
    limit: int = 50,
) -> list[AuditLog]:
    stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if target_type:
        stmt = stmt.where(AuditLog.target_type == target_type)
    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if target_id:
        stmt = stmt.where(AuditLog.target_id == target_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ── Notification ──────────────────────────────────────────

async def create_notifications(db: AsyncSession, rows: list[dict]) -> list[Notification]:
    items = [Notification(**row) for row in rows]
    db.add_all(items)
    await db.commit()
    return items


async def get_notification(db: AsyncSession, notification_id: str) -> Notification | None:
    return await db.get(Notification, notification_id)


async def list_notifications(
    db: AsyncSession, user_id: str, unread_only: bool = False, limit: int = 10,
) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    if unread_only:
        stmt = stmt.where(Notification.is_read == False)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_unread_notifications(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id, Notification.is_read == False,
        )
    )
    return result.scalar_one()


async def mark_notification_read(db: AsyncSession, notification: Notification) -> Notification:
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification
