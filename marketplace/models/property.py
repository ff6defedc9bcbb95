from __future__ import annotations

from sqlalchemy import String, Text, JSON, ForeignKey, Integer, Float, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base import Base, ULIDMixin, TimestampMixin


class Property(Base, TimestampMixin):
    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    price: Mapped[float] = mapped_column(Float, default=0.0)
    address: Mapped[str] = mapped_column(String(500), default="")
    city: Mapped[str] = mapped_column(String(120), default="")
    state: Mapped[str] = mapped_column(String(120), default="")
    zip_code: Mapped[str] = mapped_column(String(20), default="")
    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, default=0)
    area: Mapped[float] = mapped_column(Float, default=0)
    property_type: Mapped[str] = mapped_column(String(30), default="House")
    listing_status: Mapped[str] = mapped_column(String(30), default="For Sale")
    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)
    parking_spaces: Mapped[int] = mapped_column(Integer, default=0)
    features: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    agent_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)

    # Pending | Approved | Rejected | Flagged
    moderation_status: Mapped[str] = mapped_column(String(20), default="Pending", index=True)
    moderation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_count: Mapped[int] = mapped_column(Integer, default=0)


class PropertyReport(Base, ULIDMixin):
    __tablename__ = "property_reports"
    __table_args__ = (
        UniqueConstraint("property_id", "user_id", name="uq_property_reports_user"),
    )

    property_id: Mapped[str] = mapped_column(String(26), ForeignKey("properties.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
    reason: Mapped[str] = mapped_column(Text)
