from __future__ import annotations

from sqlalchemy import String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import Base, ULIDMixin


class AuditLog(Base, ULIDMixin):
    """Append-only record of a privileged state change. Never updated."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_target", "target_type", "target_id"),
    )

    action: Mapped[str] = mapped_column(String(50), index=True)
    user_id: Mapped[str] = mapped_column(String(26), index=True)
    target_type: Mapped[str] = mapped_column(String(20))  # property | appeal | user
    target_id: Mapped[str] = mapped_column(String(26))
    details: Mapped[dict] = mapped_column(JSON, default=dict)
