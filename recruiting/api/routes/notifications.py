"""Notification and WebSocket route handlers."""

import logging

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.db import get_db_session
from recruiting.services import notification_service
from recruiting.services.websocket_manager import get_websocket_manager
from recruiting.api.auth_dependencies import require_user
from recruiting.api.routes import RATE_LIMIT, http_error, limiter
from recruiting.utils.constants import NOTIFICATION_PAGE_SIZE

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/notifications")
async def get_notifications(
    unread_only: bool = False,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's most recent notifications."""
    try:
        notifications = await notification_service.get_user_notifications(
            session, user["id"], limit=NOTIFICATION_PAGE_SIZE, unread_only=unread_only
        )
        return {"success": True, "data": notifications}
    except Exception as e:
        raise http_error(e, "fetching notifications")


@router.get("/api/notifications/unread-count")
async def get_unread_count(
    user: dict = Depends(require_user), session: AsyncSession = Depends(get_db_session)
):
    """Get unread notification count for user."""
    try:
        count = await notification_service.get_unread_count(session, user["id"])
        return {"success": True, "data": {"count": count}}
    except Exception as e:
        raise http_error(e, "fetching unread count")


@router.put("/api/notifications/read-all")
@limiter.limit(RATE_LIMIT)
async def mark_all_notifications_as_read(
    request: Request,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark all of the caller's notifications as read."""
    try:
        count = await notification_service.mark_all_as_read(session, user["id"])
        return {"success": True, "data": {"count": count}}
    except Exception as e:
        raise http_error(e, "marking all notifications as read")


@router.put("/api/notifications/{notification_id}/read")
@limiter.limit(RATE_LIMIT)
async def mark_notification_as_read(
    request: Request,
    notification_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Mark a single notification as read.

    Always succeeds: an unknown or foreign notification id is reported as
    "not found" inside a success response.
    """
    try:
        notification = await notification_service.mark_as_read(session, notification_id, user["id"])
    except Exception as e:
        raise http_error(e, "marking notification as read")

    if notification is None:
        return {"success": True, "message": "Notification not found"}
    return {"success": True, "data": notification}


@router.websocket("/api/ws")
async def websocket_events(websocket: WebSocket):
    """
    WebSocket endpoint for the caller's private event channel.

    Requires JWT token in query parameter: ?token=<jwt_token>
    Frames are JSON {"event": ..., "data": ...}; a client "ping" gets "pong".
    """
    await websocket.accept()

    manager = get_websocket_manager()
    user_id = await manager.accept(websocket, websocket.query_params.get("token"))
    if user_id is None:
        return

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id}: {e}")
    finally:
        await manager.disconnect(user_id, websocket)
