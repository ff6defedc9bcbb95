"""SQLAlchemy ORM models."""

from marketplace.models.base import Base
from marketplace.models.enums import (
    Role, ModerationStatus, AppealStatus, NotificationType,
    RelatedType, TargetType, AuditAction,
)
from marketplace.models.user import User, UserSession
from marketplace.models.property import Property, PropertyReport
from marketplace.models.appeal import Appeal
from marketplace.models.audit_log import AuditLog
from marketplace.models.notification import Notification

__all__ = [
    "Base", "User", "UserSession", "Property", "PropertyReport",
    "Appeal", "AuditLog", "Notification",
    # Enums
    "Role", "ModerationStatus", "AppealStatus", "NotificationType",
    "RelatedType", "TargetType", "AuditAction",
]
