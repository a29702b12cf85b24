"""Application route handlers."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.db import get_db_session
from recruiting.services import application_service
from recruiting.api.auth_dependencies import require_organization, require_player
from recruiting.api.routes import RATE_LIMIT, http_error, limiter

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/applications/apply/{scouting_id}", status_code=201)
@limiter.limit(RATE_LIMIT)
async def apply_to_scouting(
    request: Request,
    response: Response,
    scouting_id: int,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """Apply to a scouting (201), or re-apply after withdrawing (200)."""
    try:
        application, created = await application_service.apply_to_scouting(
            session, user["id"], scouting_id
        )
    except Exception as e:
        raise http_error(e, "applying to scouting")

    if not created:
        response.status_code = status.HTTP_200_OK
        return {"success": True, "data": application, "message": "Reapplied successfully"}
    return {"success": True, "data": application, "message": "Application submitted successfully"}


@router.delete("/api/applications/{application_id}/withdraw")
@limiter.limit(RATE_LIMIT)
async def withdraw_application(
    request: Request,
    application_id: int,
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        application = await application_service.withdraw_application(
            session, user["id"], application_id
        )
        return {"success": True, "data": application, "message": "Application withdrawn"}
    except Exception as e:
        raise http_error(e, "withdrawing application")


@router.get("/api/applications/my")
async def get_my_applications(
    user: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    """The caller's applications, newest first."""
    try:
        return {"success": True, "data": await application_service.get_my_applications(session, user["id"])}
    except Exception as e:
        raise http_error(e, "fetching applications")


@router.get("/api/applications/scouting/{scouting_id}")
async def get_scouting_applications(
    scouting_id: int,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    """Applicants of one of the caller's scoutings, newest first."""
    try:
        applications = await application_service.get_scouting_applications(
            session, user["id"], scouting_id
        )
        return {"success": True, "data": applications}
    except Exception as e:
        raise http_error(e, "fetching applicants")


@router.post("/api/applications/{application_id}/select")
@limiter.limit(RATE_LIMIT)
async def select_application(
    request: Request,
    application_id: int,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        result = await application_service.select_application(session, user["id"], application_id)
        return {"success": True, "data": result, "message": "Player selected successfully"}
    except Exception as e:
        raise http_error(e, "selecting player")


@router.post("/api/applications/{application_id}/reject")
@limiter.limit(RATE_LIMIT)
async def reject_application(
    request: Request,
    application_id: int,
    user: dict = Depends(require_organization),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        application = await application_service.reject_application(
            session, user["id"], application_id
        )
        return {"success": True, "data": application, "message": "Application rejected"}
    except Exception as e:
        raise http_error(e, "rejecting application")
