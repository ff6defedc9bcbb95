from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class AppealCreate(BaseModel):
    property_id: str
    reason: str = ""


class AppealResolution(BaseModel):
    status: str  # Approved | Rejected
    admin_notes: str | None = None


class AppealRead(BaseModel):
    id: str
    property_id: str
    agent_id: str
    reason: str
    status: str
    admin_notes: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
