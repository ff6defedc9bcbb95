from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.engine import get_db
from marketplace.dependencies import require_auth
from marketplace.schemas import AppealCreate, AppealRead, AppealResolution
from marketplace.services import appeals
from marketplace.services.auth import AuthContext

router = APIRouter(prefix="/api/appeals", tags=["appeals"])


@router.post("", response_model=AppealRead, status_code=201)
async def file_appeal(
    body: AppealCreate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await appeals.file_appeal(db, auth, body.property_id, body.reason)


@router.get("", response_model=list[AppealRead])
async def list_appeals(
    status: str | None = Query(default=None),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await appeals.list_appeals_for(db, auth, status)


@router.get("/{appeal_id}", response_model=AppealRead)
async def get_appeal(
    appeal_id: str,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await appeals.get_appeal_for(db, auth, appeal_id)


@router.put("/{appeal_id}", response_model=AppealRead)
async def resolve_appeal(
    appeal_id: str,
    body: AppealResolution,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await appeals.resolve_appeal(db, auth, appeal_id, body.status, body.admin_notes)
