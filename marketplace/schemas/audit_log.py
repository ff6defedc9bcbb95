from __future__ import annotations
from datetime import datetime
from typing import Any
from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: str
    action: str
    user_id: str
    target_type: str
    target_id: str
    details: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}
