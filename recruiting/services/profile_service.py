"""
Player profile and organization storage.

Plain record CRUD plus the one invariant this layer owns: a profile that is
affiliated with an organization cannot be edited or deleted.
"""

from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from recruiting.database.models import Application, PlayerProfile, Organization
from recruiting.services.errors import NotFoundError, PreconditionFailedError
from recruiting.utils.datetime_utils import utcnow, isoformat_or_none
import logging

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "name",
    "age",
    "gender",
    "country",
    "game_id",
    "device",
    "finger_setup",
    "kd_ratio",
    "average_damage",
    "roles",
    "playing_style",
    "preferred_maps",
    "ban_history",
    "years_experience",
    "youtube_url",
    "instagram_url",
    "tournaments_played",
    "other_tournament_name",
    "bio",
    "previous_organization",
)

ORGANIZATION_FIELDS = ("organization_name", "country", "description")


def profile_to_dict(profile: PlayerProfile, organization_name: Optional[str] = None) -> Dict:
    """Serialize a PlayerProfile row."""
    data = {field: getattr(profile, field) for field in PROFILE_FIELDS}
    data.update(
        {
            "id": profile.id,
            "user_id": profile.user_id,
            "profile_completed": profile.profile_completed,
            "stats_verified": profile.stats_verified,
            "current_organization_id": profile.current_organization_id,
            "last_updated": isoformat_or_none(profile.last_updated),
            "created_at": isoformat_or_none(profile.created_at),
        }
    )
    if organization_name is not None:
        data["current_organization_name"] = organization_name
    return data


def organization_to_dict(organization: Organization) -> Dict:
    """Serialize an Organization row."""
    return {
        "id": organization.id,
        "user_id": organization.user_id,
        "organization_name": organization.organization_name,
        "country": organization.country,
        "description": organization.description,
        "created_at": isoformat_or_none(organization.created_at),
    }


async def get_profile_for_user(session: AsyncSession, user_id: int) -> Optional[PlayerProfile]:
    """Get the PlayerProfile row owned by a user, or None."""
    result = await session.execute(select(PlayerProfile).where(PlayerProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def require_profile_for_user(session: AsyncSession, user_id: int) -> PlayerProfile:
    """Get the caller's profile or raise NotFoundError."""
    profile = await get_profile_for_user(session, user_id)
    if not profile:
        raise NotFoundError("Player profile not found")
    return profile


async def get_organization_for_user(session: AsyncSession, user_id: int) -> Optional[Organization]:
    """Get the Organization row owned by a user, or None."""
    result = await session.execute(select(Organization).where(Organization.user_id == user_id))
    return result.scalar_one_or_none()


async def require_organization_for_user(session: AsyncSession, user_id: int) -> Organization:
    """Get the caller's organization or raise NotFoundError."""
    organization = await get_organization_for_user(session, user_id)
    if not organization:
        raise NotFoundError("Organization profile not found")
    return organization


async def _organization_name(session: AsyncSession, organization_id: Optional[int]) -> Optional[str]:
    if organization_id is None:
        return None
    result = await session.execute(
        select(Organization.organization_name).where(Organization.id == organization_id)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Player profiles
# ---------------------------------------------------------------------------


async def create_profile(session: AsyncSession, user_id: int, fields: Dict) -> Dict:
    """
    Create the caller's player profile and mark it completed.

    Raises:
        PreconditionFailedError: If the user already has a profile
    """
    if await get_profile_for_user(session, user_id):
        raise PreconditionFailedError("Profile already exists")

    values = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
    profile = PlayerProfile(user_id=user_id, profile_completed=True, last_updated=utcnow(), **values)
    session.add(profile)
    await session.flush()
    await session.refresh(profile)
    return profile_to_dict(profile)


async def get_profile(session: AsyncSession, user_id: int) -> Dict:
    """Get the caller's profile including the current organization name."""
    profile = await require_profile_for_user(session, user_id)
    org_name = await _organization_name(session, profile.current_organization_id)
    return profile_to_dict(profile, organization_name=org_name)


async def get_profile_by_id(session: AsyncSession, profile_id: int) -> Dict:
    """Get any player's public profile."""
    profile = await session.get(PlayerProfile, profile_id)
    if not profile:
        raise NotFoundError("Player profile not found")
    org_name = await _organization_name(session, profile.current_organization_id)
    return profile_to_dict(profile, organization_name=org_name)


async def update_profile(session: AsyncSession, user_id: int, fields: Dict) -> Dict:
    """
    Update the caller's profile.

    Raises:
        NotFoundError: No profile
        PreconditionFailedError: The player is part of an organization
    """
    profile = await require_profile_for_user(session, user_id)
    if profile.current_organization_id is not None:
        raise PreconditionFailedError("Cannot update profile while in an organization")

    for key, value in fields.items():
        if key in PROFILE_FIELDS:
            setattr(profile, key, value)
    profile.last_updated = utcnow()
    await session.flush()
    await session.refresh(profile)
    return profile_to_dict(profile)


async def delete_profile(session: AsyncSession, user_id: int) -> None:
    """
    Delete the caller's profile.

    Raises:
        NotFoundError: No profile
        PreconditionFailedError: The player is part of an organization or has applications
    """
    profile = await require_profile_for_user(session, user_id)
    if profile.current_organization_id is not None:
        raise PreconditionFailedError("Cannot delete profile while in an organization")

    # Applications reference the profile and are never deleted
    result = await session.execute(
        select(func.count()).select_from(Application).where(Application.player_id == profile.id)
    )
    if result.scalar_one():
        raise PreconditionFailedError("Cannot delete profile with existing applications")

    await session.delete(profile)
    await session.flush()


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


async def create_organization(session: AsyncSession, user_id: int, fields: Dict) -> Dict:
    """
    Create the caller's organization.

    Raises:
        PreconditionFailedError: If the user already has an organization
    """
    if await get_organization_for_user(session, user_id):
        raise PreconditionFailedError("Organization already exists")

    values = {k: v for k, v in fields.items() if k in ORGANIZATION_FIELDS}
    organization = Organization(user_id=user_id, **values)
    session.add(organization)
    await session.flush()
    await session.refresh(organization)
    return organization_to_dict(organization)


async def get_organization(session: AsyncSession, user_id: int) -> Dict:
    organization = await require_organization_for_user(session, user_id)
    return organization_to_dict(organization)


async def update_organization(session: AsyncSession, user_id: int, fields: Dict) -> Dict:
    organization = await require_organization_for_user(session, user_id)
    for key, value in fields.items():
        if key in ORGANIZATION_FIELDS:
            setattr(organization, key, value)
    await session.flush()
    await session.refresh(organization)
    return organization_to_dict(organization)
