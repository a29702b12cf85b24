"""Organization and roster route handlers."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.db import get_db_session
from recruiting.services import profile_service, roster_service
from recruiting.api.auth_dependencies import require_organization
from recruiting.api.routes import RATE_LIMIT, http_error, limiter
from recruiting.models.schemas import OrganizationCreate, OrganizationUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/organization", status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_organization(
    request: Request,
    payload: OrganizationCreate,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """Create the caller's organization."""
    try:
        organization = await profile_service.create_organization(
            session, user["id"], payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "data": organization}
    except Exception as e:
        raise http_error(e, "creating organization")


@router.get("/api/organization")
async def get_organization(
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return {"success": True, "data": await profile_service.get_organization(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching organization")


@router.put("/api/organization")
@limiter.limit(RATE_LIMIT)
async def update_organization(
    request: Request,
    payload: OrganizationUpdate,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        organization = await profile_service.update_organization(
            session, user["id"], payload.model_dump(exclude_unset=True)
        )
        return {"success": True, "data": organization}
    except Exception as e:
        raise http_error(e, "updating organization")


@router.get("/api/organization/roster")
async def get_roster(
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """List players currently on the caller's roster."""
    try:
        return {"success": True, "data": await roster_service.get_roster(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching roster")


@router.delete("/api/organization/roster/{profile_id}")
@limiter.limit(RATE_LIMIT)
async def remove_player(
    request: Request,
    profile_id: int,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a player from the caller's roster."""
    try:
        await roster_service.remove_player(session, user["id"], profile_id)
        return {"success": True, "message": "Player removed from roster"}
    except Exception as e:
        raise http_error(e, "removing player")
