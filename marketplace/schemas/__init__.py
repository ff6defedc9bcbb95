"""Pydantic request/response schemas."""

from marketplace.schemas.property import PropertyCreate, PropertyUpdate, PropertyRead, PropertyReportCreate
from marketplace.schemas.moderation import ModerationDecision, ContentFilterRequest, ContentFilterResult
from marketplace.schemas.appeal import AppealCreate, AppealResolution, AppealRead
from marketplace.schemas.notification import NotificationRead, NotificationList
from marketplace.schemas.audit_log import AuditLogRead
from marketplace.schemas.user import RegisterRequest, LoginRequest, UserRead, UserUpdate

__all__ = [
    "PropertyCreate", "PropertyUpdate", "PropertyRead", "PropertyReportCreate",
    "ModerationDecision", "ContentFilterRequest", "ContentFilterResult",
    "AppealCreate", "AppealResolution", "AppealRead",
    "NotificationRead", "NotificationList",
    "AuditLogRead",
    "RegisterRequest", "LoginRequest", "UserRead", "UserUpdate",
]
