from __future__ import annotations
from pydantic import BaseModel


class ModerationDecision(BaseModel):
    property_id: str
    action: str  # approve | reject
    notes: str | None = None


class ContentFilterRequest(BaseModel):
    title: str = ""
    text: str = ""


class ContentFilterResult(BaseModel):
    is_flagged: bool
    prohibited_terms: list[str]
    reasons: list[str]
    score: int
