"""Scouting route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.db import get_db_session
from recruiting.services import scouting_service
from recruiting.api.auth_dependencies import require_organization, require_user
from recruiting.api.routes import RATE_LIMIT, http_error, limiter
from recruiting.models.schemas import ScoutingCreate, ScoutingUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/scouting/active")
async def list_active_scoutings(
    country: Optional[str] = None,
    salary_type: Optional[str] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List active scoutings, newest first."""
    try:
        scoutings = await scouting_service.list_active_scoutings(
            session, country=country, salary_type=salary_type
        )
        return {"success": True, "data": scoutings}
    except Exception as e:
        raise http_error(e, "fetching scoutings")


@router.get("/api/scouting/my/active")
async def get_my_active_scouting(
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """The caller organization's active scouting, or null."""
    try:
        return {"success": True, "data": await scouting_service.get_my_active_scouting(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching scouting")


@router.get("/api/scouting/{scouting_id}")
async def get_scouting(
    scouting_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return {"success": True, "data": await scouting_service.get_scouting(session, scouting_id)}
    except Exception as e:
        raise http_error(e, "fetching scouting")


@router.post("/api/scouting", status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_scouting(
    request: Request,
    payload: ScoutingCreate,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """Post a scouting; all players are notified live in the background."""
    try:
        scouting = await scouting_service.create_scouting(
            session, user["id"], payload.model_dump(exclude_unset=True, mode="json")
        )
        return {"success": True, "data": scouting}
    except Exception as e:
        raise http_error(e, "creating scouting")


@router.put("/api/scouting/{scouting_id}")
@limiter.limit(RATE_LIMIT)
async def update_scouting(
    request: Request,
    scouting_id: int,
    payload: ScoutingUpdate,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        scouting = await scouting_service.update_scouting(
            session, user["id"], scouting_id, payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "data": scouting}
    except Exception as e:
        raise http_error(e, "updating scouting")


@router.delete("/api/scouting/{scouting_id}")
@limiter.limit(RATE_LIMIT)
async def cancel_scouting(
    request: Request,
    scouting_id: int,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """Cancel a scouting. Pending applications are left untouched."""
    try:
        scouting = await scouting_service.cancel_scouting(session, user["id"], scouting_id)
        return {"success": True, "data": scouting, "message": "Scouting cancelled"}
    except Exception as e:
        raise http_error(e, "cancelling scouting")
