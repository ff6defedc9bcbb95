from __future__ import annotations

from sqlalchemy import Index, String, Text, ForeignKey, text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import Base, TimestampMixin


class Appeal(Base, TimestampMixin):
    __tablename__ = "appeals"
    __table_args__ = (
        # At most one Pending appeal per property, enforced by the store.
        Index(
            "uq_appeals_pending_property", "property_id", unique=True,
            sqlite_where=text("status = 'Pending'"),
            postgresql_where=text("status = 'Pending'"),
        ),
        Index("ix_appeals_agent_status", "agent_id", "status"),
    )

    property_id: Mapped[str] = mapped_column(String(26), ForeignKey("properties.id"))
    agent_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
    reason: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="Pending", index=True)  # Pending | Approved | Rejected
    admin_notes: Mapped[str] = mapped_column(Text, default="")
