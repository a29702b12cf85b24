"""
Application lifecycle and scouting capacity tracking.

Application states:

    (new) ----------> PENDING
    WITHDRAWN ------> PENDING      re-application, resets applied_at
    PENDING --------> WITHDRAWN    player
    PENDING --------> SELECTED     organization, fills one scouting slot
    PENDING --------> REJECTED     organization

SELECTED and REJECTED are terminal.

Selection writes three rows (application status, profile affiliation,
scouting counter/status). commit_selection applies them as one transaction
while holding a per-scouting lock, and every UPDATE is guarded by the
condition it depends on, so a lost race surfaces as a typed error and never
as a half-applied selection.
"""

import asyncio
import logging
import weakref
from typing import Hashable, Optional, Tuple

from sqlalchemy import select, update, case, and_
from sqlalchemy.ext.asyncio import AsyncSession

from recruiting.database.models import (
    Application,
    ApplicationStatus,
    PlayerProfile,
    Scouting,
    ScoutingStatus,
)
from recruiting.services.errors import (
    IllegalTransitionError,
    NotFoundError,
    PreconditionFailedError,
)
from recruiting.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

NEW = None

ALLOWED_TRANSITIONS = {
    NEW: {ApplicationStatus.PENDING.value},
    ApplicationStatus.WITHDRAWN.value: {ApplicationStatus.PENDING.value},
    ApplicationStatus.PENDING.value: {
        ApplicationStatus.WITHDRAWN.value,
        ApplicationStatus.SELECTED.value,
        ApplicationStatus.REJECTED.value,
    },
    ApplicationStatus.SELECTED.value: set(),
    ApplicationStatus.REJECTED.value: set(),
}


class KeyedLockRegistry:
    """Hands out one asyncio.Lock per key; unused locks are garbage collected."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


# Serializes joint selection commits per scouting
_selection_locks = KeyedLockRegistry()
# Serializes "one active scouting" checks per organization
_organization_locks = KeyedLockRegistry()


def organization_lock(organization_id: int) -> asyncio.Lock:
    """Lock guarding scouting creation for one organization."""
    return _organization_locks.lock_for(organization_id)


def selection_lock(scouting_id: int) -> asyncio.Lock:
    """Lock guarding selected_count / players_required / status of one scouting."""
    return _selection_locks.lock_for(scouting_id)


def can_transition(from_status: Optional[str], to_status: str) -> bool:
    """True if an application may move from from_status (None = no record) to to_status."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def ensure_transition(from_status: Optional[str], to_status: str, message: str) -> None:
    """
    Raise IllegalTransitionError unless from_status -> to_status is allowed.

    Args:
        from_status: Current status, or None when no record exists yet
        to_status: Requested status
        message: Caller-facing error message
    """
    if not can_transition(from_status, to_status):
        raise IllegalTransitionError(message, from_status or "NEW", to_status)


async def transition(
    session: AsyncSession,
    application: Application,
    to_status: ApplicationStatus,
    message: str,
) -> Application:
    """
    Move an existing application to a new status.

    The UPDATE only matches while the row still has the status that was
    validated, so a concurrent transition makes this one fail instead of
    overwriting it. Moving into PENDING refreshes applied_at.

    Args:
        session: Database session (flushed, not committed)
        application: Application row
        to_status: Target status
        message: Caller-facing error message if the transition is illegal

    Returns:
        The refreshed application

    Raises:
        IllegalTransitionError: Transition not allowed, or lost to a concurrent one
    """
    from_status = application.status
    ensure_transition(from_status, to_status.value, message)

    now = utcnow()
    values = {"status": to_status.value, "updated_at": now}
    if to_status == ApplicationStatus.PENDING:
        values["applied_at"] = now

    result = await session.execute(
        update(Application)
        .where(and_(Application.id == application.id, Application.status == from_status))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise IllegalTransitionError(message, from_status, to_status.value)

    await session.refresh(application)
    return application


def has_capacity(scouting: Scouting) -> bool:
    """True while the scouting still has an open slot."""
    return scouting.selected_count < scouting.players_required


def is_active(scouting: Scouting) -> bool:
    return scouting.scouting_status == ScoutingStatus.ACTIVE.value


async def _fetch(session: AsyncSession, model, row_id: int, for_update: bool = False):
    query = select(model).where(model.id == row_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def commit_selection(
    session: AsyncSession,
    application_id: int,
    organization_id: int,
) -> Tuple[Application, PlayerProfile, Scouting]:
    """
    Select a PENDING application: the joint application/profile/scouting commit.

    Holds the scouting's selection lock, re-reads all three rows, validates,
    writes with guarded UPDATEs and commits before releasing the lock. On any
    failure the transaction is rolled back and nothing is applied.

    Args:
        session: Database session (committed by this call)
        application_id: Application being selected
        organization_id: Organization performing the selection (must own it)

    Returns:
        Tuple of (application, profile, scouting) reflecting the committed state

    Raises:
        NotFoundError: Application or player profile not found for this organization
        PreconditionFailedError: Scouting inactive or full, player already affiliated
        IllegalTransitionError: Application is not PENDING
    """
    application = await session.get(Application, application_id)
    if not application or application.organization_id != organization_id:
        raise NotFoundError("Application not found")
    scouting_id = application.scouting_id
    profile_id = application.player_id

    async with selection_lock(scouting_id):
        try:
            scouting = await _fetch(session, Scouting, scouting_id, for_update=True)
            application = await _fetch(session, Application, application_id, for_update=True)
            if scouting is None or application is None:
                raise NotFoundError("Application not found")

            if not has_capacity(scouting):
                raise PreconditionFailedError("All positions have been filled")
            if not is_active(scouting):
                raise PreconditionFailedError("This scouting is not active")
            ensure_transition(
                application.status,
                ApplicationStatus.SELECTED.value,
                "This application cannot be selected",
            )

            profile = await _fetch(session, PlayerProfile, profile_id, for_update=True)
            if profile is None:
                raise NotFoundError("Player profile not found")
            if profile.current_organization_id is not None:
                raise PreconditionFailedError("Player is already part of another organization")

            now = utcnow()
            app_result = await session.execute(
                update(Application)
                .where(
                    and_(
                        Application.id == application_id,
                        Application.status == ApplicationStatus.PENDING.value,
                    )
                )
                .values(status=ApplicationStatus.SELECTED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if app_result.rowcount != 1:
                raise IllegalTransitionError(
                    "This application cannot be selected",
                    application.status,
                    ApplicationStatus.SELECTED.value,
                )

            profile_result = await session.execute(
                update(PlayerProfile)
                .where(
                    and_(
                        PlayerProfile.id == profile_id,
                        PlayerProfile.current_organization_id.is_(None),
                    )
                )
                .values(current_organization_id=scouting.organization_id, last_updated=now)
                .execution_options(synchronize_session=False)
            )
            if profile_result.rowcount != 1:
                raise PreconditionFailedError("Player is already part of another organization")

            scouting_result = await session.execute(
                update(Scouting)
                .where(
                    and_(
                        Scouting.id == scouting_id,
                        Scouting.scouting_status == ScoutingStatus.ACTIVE.value,
                        Scouting.selected_count < Scouting.players_required,
                    )
                )
                .values(
                    selected_count=Scouting.selected_count + 1,
                    scouting_status=case(
                        (
                            Scouting.selected_count + 1 >= Scouting.players_required,
                            ScoutingStatus.COMPLETED.value,
                        ),
                        else_=Scouting.scouting_status,
                    ),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if scouting_result.rowcount != 1:
                raise PreconditionFailedError("All positions have been filled")

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    application = await _fetch(session, Application, application_id)
    profile = await _fetch(session, PlayerProfile, profile_id)
    scouting = await _fetch(session, Scouting, scouting_id)
    logger.info(
        f"Application {application_id} selected for scouting {scouting_id} "
        f"({scouting.selected_count}/{scouting.players_required}, {scouting.scouting_status})"
    )
    return application, profile, scouting
