"""Admin moderation API: decisions, review queue, content-filter preview."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings
from marketplace.db import crud
from marketplace.db.engine import get_db
from marketplace.dependencies import get_settings_dep, require_auth, require_role
from marketplace.errors import ValidationError
from marketplace.models import ModerationStatus
from marketplace.schemas import (
    ContentFilterRequest, ContentFilterResult, ModerationDecision, PropertyRead,
)
from marketplace.services import moderation
from marketplace.services.auth import AuthContext
from marketplace.services.content_classifier import classify

router = APIRouter(prefix="/api", tags=["moderation"])

_admin_dep = require_role("admin")

_QUEUE_STATES = (ModerationStatus.PENDING, ModerationStatus.FLAGGED)


@router.post("/properties/moderate", response_model=PropertyRead)
async def moderate_property(
    body: ModerationDecision,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    # Role is checked by the engine so non-admins get its Forbidden message.
    return await moderation.decide(db, auth, body.property_id, body.action, body.notes, settings)


@router.get("/admin/moderation/queue", response_model=list[PropertyRead])
async def moderation_queue(
    status: str | None = Query(default=None),
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if not status:
        return await crud.list_properties(db, _QUEUE_STATES)
    try:
        wanted = ModerationStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown moderation status: {status}") from None
    return await crud.list_properties(db, [wanted])


@router.post("/content-filter", response_model=ContentFilterResult)
async def content_filter(
    body: ContentFilterRequest,
    settings: Settings = Depends(get_settings_dep),
):
    if not body.title and not body.text:
        raise ValidationError("No content provided for filtering")
    result = classify(body.title, body.text, settings.moderation.prohibited_terms)
    return ContentFilterResult(
        is_flagged=result.flagged,
        prohibited_terms=result.prohibited_terms,
        reasons=result.reasons,
        score=result.score,
    )
