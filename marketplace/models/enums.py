"""String enums for roles and the moderation / appeal state machines."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class ModerationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    FLAGGED = "Flagged"


class AppealStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class RelatedType(str, Enum):
    PROPERTY = "property"
    MESSAGE = "message"
    APPOINTMENT = "appointment"
    APPEAL = "appeal"


class TargetType(str, Enum):
    PROPERTY = "property"
    APPEAL = "appeal"
    USER = "user"


class AuditAction(str, Enum):
    PROPERTY_CREATED = "property_created"
    PROPERTY_UPDATED = "property_updated"
    PROPERTY_DELETED = "property_deleted"
    PROPERTY_MODERATION_UPDATED = "property_moderation_updated"
    PROPERTY_REPORTED = "property_reported"
    APPEAL_CREATED = "appeal_created"
    APPEAL_UPDATED = "appeal_updated"
    ADMIN_USER_CREATED = "admin_user_created"
    USER_UPDATED = "user_updated"
    USER_DEACTIVATED = "user_deactivated"
