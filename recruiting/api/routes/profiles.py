"""Player profile route handlers."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.db import get_db_session
from recruiting.services import profile_service, roster_service
from recruiting.api.auth_dependencies import require_player, require_user
from recruiting.api.routes import RATE_LIMIT, http_error, limiter
from recruiting.models.schemas import PlayerProfileCreate, PlayerProfileUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/profile", status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_profile(
    request: Request,
    payload: PlayerProfileCreate,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Create the caller's player profile."""
    try:
        profile = await profile_service.create_profile(
            session, user["id"], payload.model_dump(exclude_unset=True, mode="json")
        )
        return {"success": True, "data": profile}
    except Exception as e:
        raise http_error(e, "creating profile")


@router.get("/api/profile")
async def get_profile(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's player profile."""
    try:
        return {"success": True, "data": await profile_service.get_profile(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching profile")


@router.put("/api/profile")
@limiter.limit(RATE_LIMIT)
async def update_profile(
    request: Request,
    payload: PlayerProfileUpdate,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Update the caller's player profile."""
    try:
        profile = await profile_service.update_profile(
            session, user["id"], payload.model_dump(exclude_unset=True, mode="json")
        )
        return {"success": True, "data": profile}
    except Exception as e:
        raise http_error(e, "updating profile")


@router.delete("/api/profile")
@limiter.limit(RATE_LIMIT)
async def delete_profile(
    request: Request,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete the caller's player profile."""
    try:
        await profile_service.delete_profile(session, user["id"])
        return {"success": True, "message": "Profile deleted successfully"}
    except Exception as e:
        raise http_error(e, "deleting profile")


@router.get("/api/profile/my-organization")
async def get_my_organization(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's current organization and teammates (null when unaffiliated)."""
    try:
        return {"success": True, "data": await roster_service.get_my_organization(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching organization")


@router.delete("/api/profile/my-organization")
@limiter.limit(RATE_LIMIT)
async def leave_organization(
    request: Request,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Leave the caller's current organization."""
    try:
        await roster_service.leave_organization(session, user["id"])
        return {"success": True, "message": "You have left the organization"}
    except Exception as e:
        raise http_error(e, "leaving organization")


@router.get("/api/profile/{profile_id}")
async def get_profile_by_id(
    profile_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """View any player's profile."""
    try:
        return {"success": True, "data": await profile_service.get_profile_by_id(session, profile_id)}
    except Exception as e:
        raise http_error(e, "fetching profile")
