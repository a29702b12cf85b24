"""
Organization roster: listing, removing players and leaving an organization.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from recruiting.database.models import NotificationType, Organization, PlayerProfile
from recruiting.services import notification_service, profile_service
from recruiting.services.errors import NotFoundError, PreconditionFailedError
from recruiting.utils.constants import EVENT_ROSTER_UPDATED, ROSTER_ACTION_REMOVE
from recruiting.utils.datetime_utils import utcnow
import logging

logger = logging.getLogger(__name__)


async def _members(session: AsyncSession, organization_id: int) -> List[PlayerProfile]:
    result = await session.execute(
        select(PlayerProfile)
        .where(PlayerProfile.current_organization_id == organization_id)
        .order_by(PlayerProfile.name)
    )
    return list(result.scalars().all())


async def _clear_affiliation(session: AsyncSession, profile_id: int, organization_id: int) -> bool:
    """Detach a profile from an organization; False if it was no longer a member."""
    result = await session.execute(
        update(PlayerProfile)
        .where(
            and_(
                PlayerProfile.id == profile_id,
                PlayerProfile.current_organization_id == organization_id,
            )
        )
        .values(current_organization_id=None, last_updated=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def get_roster(session: AsyncSession, user_id: int) -> List[Dict]:
    """All players currently affiliated with the caller's organization."""
    organization = await profile_service.require_organization_for_user(session, user_id)
    return [profile_service.profile_to_dict(p) for p in await _members(session, organization.id)]


async def remove_player(session: AsyncSession, user_id: int, profile_id: int) -> None:
    """
    Remove a player from the caller's roster.

    The player is notified and receives a live roster:update. Selected
    applications and the scouting's selected_count are left untouched.

    Raises:
        NotFoundError: Organization not found, or the player is not on its roster
    """
    organization = await profile_service.require_organization_for_user(session, user_id)
    profile = await session.get(PlayerProfile, profile_id)
    if not profile or profile.current_organization_id != organization.id:
        raise NotFoundError("Player not found in your roster")

    if not await _clear_affiliation(session, profile_id, organization.id):
        raise NotFoundError("Player not found in your roster")

    notification = await notification_service.create_notification(
        session,
        user_id=profile.user_id,
        type=NotificationType.PLAYER_REMOVED.value,
        message="You have been removed from the organization",
        related_id=organization.id,
    )
    await session.commit()
    logger.info(f"Player {profile_id} removed from organization {organization.id}")

    await notification_service.emit_live(
        profile.user_id,
        EVENT_ROSTER_UPDATED,
        {"action": ROSTER_ACTION_REMOVE, "playerId": profile_id},
    )
    await notification_service.push_notification(notification)


async def get_my_organization(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """The caller's current organization and teammates, or None when unaffiliated."""
    profile = await profile_service.require_profile_for_user(session, user_id)
    if profile.current_organization_id is None:
        return None

    organization = await session.get(Organization, profile.current_organization_id)
    if not organization:
        return None
    teammates = [
        profile_service.profile_to_dict(p)
        for p in await _members(session, organization.id)
        if p.id != profile.id
    ]
    return {
        "organization": profile_service.organization_to_dict(organization),
        "teammates": teammates,
    }


async def leave_organization(session: AsyncSession, user_id: int) -> None:
    """
    Leave the caller's current organization.

    Raises:
        NotFoundError: No player profile
        PreconditionFailedError: The player is not part of any organization
    """
    profile = await profile_service.require_profile_for_user(session, user_id)
    organization_id = profile.current_organization_id
    if organization_id is None:
        raise PreconditionFailedError("You are not part of any organization")

    if not await _clear_affiliation(session, profile.id, organization_id):
        raise PreconditionFailedError("You are not part of any organization")

    organization = await session.get(Organization, organization_id)
    notification = None
    if organization:
        notification = await notification_service.create_notification(
            session,
            user_id=organization.user_id,
            type=NotificationType.LEAVE_APPROVED.value,
            message="A player has left your organization",
            related_id=profile.id,
        )
    await session.commit()
    logger.info(f"Player {profile.id} left organization {organization_id}")

    if organization:
        await notification_service.emit_live(
            organization.user_id,
            EVENT_ROSTER_UPDATED,
            {"action": ROSTER_ACTION_REMOVE, "playerId": profile.id},
        )
        await notification_service.push_notification(notification)
