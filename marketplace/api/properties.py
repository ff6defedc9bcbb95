"""Listings API: submission, public/admin listing, agent view, edits, reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import Settings
from marketplace.db import crud
from marketplace.db.engine import get_db
from marketplace.dependencies import get_settings_dep, optional_auth, require_auth, require_role
from marketplace.errors import Forbidden, NotFound, ValidationError
from marketplace.models import ModerationStatus
from marketplace.schemas import PropertyCreate, PropertyRead, PropertyReportCreate, PropertyUpdate
from marketplace.services import moderation
from marketplace.services.auth import AuthContext

router = APIRouter(prefix="/api/properties", tags=["properties"])

_lister_dep = require_role("agent", "admin")


@router.post("", response_model=PropertyRead, status_code=201)
async def create_property(
    body: PropertyCreate,
    auth: AuthContext = Depends(_lister_dep),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    return await moderation.submit_property(db, auth, body, settings)


@router.get("", response_model=list[PropertyRead])
async def list_properties(
    moderation_status: str | None = Query(default=None),
    auth: AuthContext | None = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    """Approved listings by default; other statuses are visible to admins only."""
    if not moderation_status:
        return await crud.list_properties(db, [ModerationStatus.APPROVED])
    try:
        status = ModerationStatus(moderation_status)
    except ValueError:
        raise ValidationError(f"Unknown moderation status: {moderation_status}") from None
    if status is not ModerationStatus.APPROVED and not (auth and auth.is_admin):
        raise Forbidden("Not authorized")
    return await crud.list_properties(db, [status])


@router.get("/mine", response_model=list[PropertyRead])
async def list_my_properties(
    moderation_status: str | None = Query(default=None),
    auth: AuthContext = Depends(_lister_dep),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own listings in any state; "All" means no status filter."""
    statuses = None
    if moderation_status and moderation_status != "All":
        try:
            statuses = [ModerationStatus(moderation_status)]
        except ValueError:
            raise ValidationError(f"Unknown moderation status: {moderation_status}") from None
    return await crud.list_properties(db, statuses, agent_id=auth.user_id)


@router.get("/{property_id}", response_model=PropertyRead)
async def get_property(
    property_id: str,
    auth: AuthContext | None = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    prop = await crud.get_property(db, property_id)
    if not prop:
        raise NotFound("Property not found")
    if prop.moderation_status != ModerationStatus.APPROVED.value:
        # Unpublished listings are only visible to their agent and admins.
        if not auth or not (auth.is_admin or auth.user_id == prop.agent_id):
            raise NotFound("Property not found")
    return prop


@router.post("/{property_id}/report", response_model=PropertyRead)
async def report_property(
    property_id: str,
    body: PropertyReportCreate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    return await moderation.report_property(db, auth, property_id, body.reason, settings)


@router.put("/{property_id}", response_model=PropertyRead)
async def update_property(
    property_id: str,
    body: PropertyUpdate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    return await moderation.edit_property(db, auth, property_id, body, settings)


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await moderation.remove_property(db, auth, property_id)
    return {"ok": True}
