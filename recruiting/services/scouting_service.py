"""
Scouting service: create, update, cancel and browse recruiting offers.

A new scouting is announced to every player through a detached background
task. The task opens its own database session and never affects the
creating request.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database import db
from recruiting.database.models import Organization, PlayerProfile, Scouting, ScoutingStatus
from recruiting.services import notification_service, profile_service
from recruiting.services.application_state import organization_lock, selection_lock
from recruiting.services.errors import NotFoundError, PreconditionFailedError
from recruiting.utils.constants import EVENT_SCOUTING_NEW
from recruiting.utils.datetime_utils import isoformat_or_none

logger = logging.getLogger(__name__)

SCOUTING_FIELDS = (
    "organization_description",
    "country",
    "salary_type",
    "salary_min_usd",
    "salary_max_usd",
    "contract_duration",
    "device_provided",
    "bootcamp_required",
    "required_roles",
    "allowed_devices",
    "min_age",
    "max_age",
    "allowed_genders",
    "min_kd_ratio",
    "min_average_damage",
    "ban_history_allowed",
    "preferred_maps_required",
    "required_tournaments",
    "players_required",
)

# Columns that are NOT NULL and may appear in an update payload
NOT_NULL_UPDATE_FIELDS = ("device_provided", "bootcamp_required", "players_required")

# Strong references to running fan-out tasks so they are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def scouting_to_dict(scouting: Scouting, organization: Optional[Organization] = None) -> Dict:
    """Serialize a Scouting row, optionally embedding an organization summary."""
    data = {field: getattr(scouting, field) for field in SCOUTING_FIELDS}
    data.update(
        {
            "id": scouting.id,
            "organization_id": scouting.organization_id,
            "organization_name": scouting.organization_name,
            "selected_count": scouting.selected_count,
            "scouting_status": scouting.scouting_status,
            "created_at": isoformat_or_none(scouting.created_at),
            "updated_at": isoformat_or_none(scouting.updated_at),
        }
    )
    if organization is not None:
        data["organization"] = {
            "id": organization.id,
            "organization_name": organization.organization_name,
            "country": organization.country,
        }
    return data


async def get_active_scouting_for_organization(
    session: AsyncSession, organization_id: int
) -> Optional[Scouting]:
    result = await session.execute(
        select(Scouting).where(
            and_(
                Scouting.organization_id == organization_id,
                Scouting.scouting_status == ScoutingStatus.ACTIVE.value,
            )
        )
    )
    return result.scalars().first()


async def _require_owned_scouting(
    session: AsyncSession, organization_id: int, scouting_id: int, for_update: bool = False
) -> Scouting:
    query = (
        select(Scouting)
        .where(and_(Scouting.id == scouting_id, Scouting.organization_id == organization_id))
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    scouting = result.scalar_one_or_none()
    if not scouting:
        raise NotFoundError("Scouting not found")
    return scouting


async def create_scouting(session: AsyncSession, user_id: int, fields: Dict) -> Dict:
    """
    Create a scouting for the caller's organization and announce it to all players.

    The "one ACTIVE scouting per organization" check and the insert are
    committed under the organization's lock.

    Args:
        session: Database session (committed by this call)
        user_id: Organization account user ID
        fields: Scouting attributes (already shape-validated)

    Returns:
        Dict with the created scouting

    Raises:
        NotFoundError: Caller has no organization
        PreconditionFailedError: Organization already has an active scouting
    """
    organization = await profile_service.require_organization_for_user(session, user_id)

    async with organization_lock(organization.id):
        try:
            if await get_active_scouting_for_organization(session, organization.id):
                raise PreconditionFailedError("You already have an active scouting")

            values = {k: v for k, v in fields.items() if k in SCOUTING_FIELDS}
            scouting = Scouting(
                organization_id=organization.id,
                organization_name=organization.organization_name,
                selected_count=0,
                scouting_status=ScoutingStatus.ACTIVE.value,
                **values,
            )
            session.add(scouting)
            try:
                await session.flush()
            except IntegrityError:
                # Another worker committed an ACTIVE scouting for this organization
                raise PreconditionFailedError("You already have an active scouting")
            await session.refresh(scouting)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(f"Scouting {scouting.id} created by organization {organization.id}")
    schedule_new_scouting_fan_out(scouting_to_dict(scouting, organization))
    return scouting_to_dict(scouting)


def schedule_new_scouting_fan_out(payload: Dict) -> asyncio.Task:
    """Start the scouting:new fan-out without awaiting it."""
    task = asyncio.create_task(fan_out_new_scouting(payload))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def fan_out_new_scouting(payload: Dict) -> int:
    """
    Push a scouting:new event to every player account.

    Enumerates player profiles rather than broadcasting on all connections,
    so only players receive the enriched payload. Failures are swallowed per
    recipient and never escalate.

    Returns:
        Number of players the event reached live
    """
    try:
        async with db.AsyncSessionLocal() as session:
            result = await session.execute(select(PlayerProfile.user_id))
            player_user_ids: List[int] = list(result.scalars().all())
    except Exception as e:
        logger.warning(f"Scouting fan-out aborted, could not load players: {e}")
        return 0

    reached = 0
    for player_user_id in player_user_ids:
        # emit_live swallows and logs its own failures
        if await notification_service.emit_live(player_user_id, EVENT_SCOUTING_NEW, payload):
            reached += 1
    logger.info(
        f"Scouting {payload.get('id')} announced to {reached}/{len(player_user_ids)} connected players"
    )
    return reached


async def get_scouting(session: AsyncSession, scouting_id: int) -> Dict:
    """Get a scouting with its organization summary."""
    scouting = await session.get(Scouting, scouting_id)
    if not scouting:
        raise NotFoundError("Scouting not found")
    organization = await session.get(Organization, scouting.organization_id)
    return scouting_to_dict(scouting, organization)


async def get_my_active_scouting(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """Get the caller organization's active scouting, or None."""
    organization = await profile_service.require_organization_for_user(session, user_id)
    scouting = await get_active_scouting_for_organization(session, organization.id)
    return scouting_to_dict(scouting) if scouting else None


async def update_scouting(
    session: AsyncSession, user_id: int, scouting_id: int, fields: Dict
) -> Dict:
    """
    Update an ACTIVE scouting owned by the caller.

    players_required may not go below the slots already filled; lowering it
    to exactly selected_count completes the scouting. The check and the write
    are committed under the scouting's selection lock, so a concurrent
    selection is either fully seen or not started.

    Raises:
        NotFoundError: Organization or scouting not found
        PreconditionFailedError: Scouting inactive, capacity below selected_count,
            or a required field set to null
    """
    for key in NOT_NULL_UPDATE_FIELDS:
        if key in fields and fields[key] is None:
            raise PreconditionFailedError(f"{key} cannot be null")

    organization = await profile_service.require_organization_for_user(session, user_id)

    async with selection_lock(scouting_id):
        try:
            scouting = await _require_owned_scouting(
                session, organization.id, scouting_id, for_update=True
            )
            if scouting.scouting_status != ScoutingStatus.ACTIVE.value:
                raise PreconditionFailedError("Cannot update inactive scouting")

            players_required = fields.get("players_required")
            if players_required is not None and players_required < scouting.selected_count:
                raise PreconditionFailedError(
                    "players_required cannot be lower than the number of players already selected"
                )

            for key, value in fields.items():
                if key in SCOUTING_FIELDS:
                    setattr(scouting, key, value)
            if scouting.selected_count >= scouting.players_required:
                scouting.scouting_status = ScoutingStatus.COMPLETED.value

            await session.flush()
            await session.refresh(scouting)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return scouting_to_dict(scouting)


async def cancel_scouting(session: AsyncSession, user_id: int, scouting_id: int) -> Dict:
    """
    Cancel a scouting owned by the caller.

    Unconditional: pending applications are left as they are.
    """
    organization = await profile_service.require_organization_for_user(session, user_id)

    async with selection_lock(scouting_id):
        try:
            scouting = await _require_owned_scouting(
                session, organization.id, scouting_id, for_update=True
            )
            scouting.scouting_status = ScoutingStatus.CANCELLED.value
            await session.flush()
            await session.refresh(scouting)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(f"Scouting {scouting_id} cancelled by organization {organization.id}")
    return scouting_to_dict(scouting)


async def list_active_scoutings(
    session: AsyncSession,
    country: Optional[str] = None,
    salary_type: Optional[str] = None,
) -> List[Dict]:
    """List ACTIVE scoutings, newest first, optionally filtered."""
    query = select(Scouting, Organization).join(
        Organization, Scouting.organization_id == Organization.id
    ).where(Scouting.scouting_status == ScoutingStatus.ACTIVE.value)
    if country:
        query = query.where(Scouting.country == country)
    if salary_type:
        query = query.where(Scouting.salary_type == salary_type)
    query = query.order_by(Scouting.created_at.desc(), Scouting.id.desc())

    result = await session.execute(query)
    return [scouting_to_dict(scouting, organization) for scouting, organization in result.all()]
