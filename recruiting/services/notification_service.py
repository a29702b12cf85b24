"""
Notification service for managing user notifications.

Handles creation, retrieval and read status of durable notifications, and
best-effort live delivery over the recipient's private WebSocket channel.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_
from recruiting.database.models import Notification
from recruiting.utils.constants import EVENT_NOTIFICATION_NEW, NOTIFICATION_PAGE_SIZE
from recruiting.utils.datetime_utils import utcnow, isoformat_or_none
import logging

logger = logging.getLogger(__name__)


def notification_to_dict(notification: Notification) -> Dict:
    """Serialize a Notification row."""
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "message": notification.message,
        "related_id": notification.related_id,
        "is_read": notification.is_read,
        "read_at": isoformat_or_none(notification.read_at),
        "created_at": isoformat_or_none(notification.created_at),
    }


async def emit_live(user_id: Optional[int], event: str, payload: Any) -> bool:
    """
    Push an event to a user's private channel, swallowing every failure.

    Args:
        user_id: Recipient user ID (None is ignored)
        event: Event name
        payload: JSON-serializable payload

    Returns:
        True if at least one live connection received the event
    """
    if user_id is None:
        return False
    try:
        from recruiting.services.websocket_manager import get_websocket_manager
        manager = get_websocket_manager()
        return await manager.emit_to_user(user_id, event, payload)
    except Exception as e:
        logger.warning(f"Failed to push '{event}' to user {user_id}: {e}")
        return False


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: str,
    message: str,
    related_id: Optional[int] = None,
) -> Dict:
    """
    Persist a notification without pushing it.

    Used by workflows that commit the notification together with their own
    state change and push afterwards.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        message: Notification message text
        related_id: Optional ID of the related application/organization/profile

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not type:
        raise ValueError("type is required")
    if not message:
        raise ValueError("message is required")

    notification = Notification(
        user_id=user_id,
        type=type,
        message=message,
        related_id=related_id,
        is_read=False,
    )
    session.add(notification)
    await session.flush()
    await session.refresh(notification)
    return notification_to_dict(notification)


async def push_notification(notification_dict: Dict) -> bool:
    """Best-effort live delivery of an already persisted notification."""
    return await emit_live(notification_dict["user_id"], EVENT_NOTIFICATION_NEW, notification_dict)


async def notify(
    session: AsyncSession,
    user_id: int,
    type: str,
    message: str,
    related_id: Optional[int] = None,
) -> Dict:
    """
    Persist a notification, then try to deliver it live.

    The live push never fails the persisted write.

    Returns:
        Dict containing the created notification data
    """
    notification_dict = await create_notification(
        session, user_id=user_id, type=type, message=message, related_id=related_id
    )
    await push_notification(notification_dict)
    return notification_dict


async def get_user_notifications(
    session: AsyncSession,
    user_id: int,
    limit: int = NOTIFICATION_PAGE_SIZE,
    unread_only: bool = False,
) -> List[Dict]:
    """
    Fetch the most recent notifications for a user, newest first.

    Args:
        session: Database session
        user_id: ID of the user
        limit: Maximum number of notifications to return (default: 50)
        unread_only: If True, only return unread notifications

    Returns:
        List of notification dicts
    """
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)

    result = await session.execute(query)
    return [notification_to_dict(n) for n in result.scalars().all()]


async def get_unread_count(session: AsyncSession, user_id: int) -> int:
    """
    Get count of unread notifications for a user.

    Args:
        session: Database session
        user_id: ID of the user

    Returns:
        Integer count of unread notifications
    """
    result = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read == False  # noqa: E712
            )
        )
    )
    return result.scalar_one() or 0


async def mark_as_read(
    session: AsyncSession,
    notification_id: int,
    user_id: int
) -> Optional[Dict]:
    """
    Mark a single notification as read.

    Idempotent: a missing notification, or one owned by someone else, is
    reported as None without touching anything, so callers can retry freely
    and cannot probe for other users' notifications.

    Args:
        session: Database session
        notification_id: ID of the notification
        user_id: ID of the caller

    Returns:
        Updated notification dict, or None if not found for this user
    """
    result = await session.execute(
        select(Notification).where(
            and_(
                Notification.id == notification_id,
                Notification.user_id == user_id
            )
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        return None

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        await session.flush()
        await session.refresh(notification)

    return notification_to_dict(notification)


async def mark_all_as_read(session: AsyncSession, user_id: int) -> int:
    """
    Mark all unread notifications of a user as read in one statement.

    Args:
        session: Database session
        user_id: ID of the user

    Returns:
        Count of notifications marked as read
    """
    result = await session.execute(
        update(Notification)
        .where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read == False  # noqa: E712
            )
        )
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    return result.rowcount or 0
