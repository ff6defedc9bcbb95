from __future__ import annotations

from sqlalchemy import String, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import Base, ULIDMixin


class Notification(Base, ULIDMixin):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), default="info")  # info | success | warning | error
    related_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    related_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
