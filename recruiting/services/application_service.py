"""
Application workflow: apply, withdraw, select, reject and applicant listings.

Each mutating call commits its state change together with the durable
notification, then pushes live events. Live pushes are best-effort and
never change the outcome of the call.
"""

from typing import Dict, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from recruiting.database.models import (
    Application,
    ApplicationStatus,
    NotificationType,
    Organization,
    PlayerProfile,
    Scouting,
    User,
)
from recruiting.services import eligibility, notification_service, profile_service
from recruiting.services.application_state import (
    commit_selection,
    ensure_transition,
    is_active,
    transition,
)
from recruiting.services.errors import NotFoundError, PreconditionFailedError
from recruiting.services.scouting_service import scouting_to_dict
from recruiting.utils.constants import (
    EVENT_APPLICANT_NEW,
    EVENT_APPLICANT_WITHDRAWN,
    EVENT_APPLICATION_UPDATED,
    EVENT_ROSTER_UPDATED,
    ROSTER_ACTION_ADD,
)
from recruiting.utils.datetime_utils import isoformat_or_none
import logging

logger = logging.getLogger(__name__)


def application_to_dict(application: Application) -> Dict:
    """Serialize an Application row."""
    return {
        "id": application.id,
        "scouting_id": application.scouting_id,
        "player_id": application.player_id,
        "organization_id": application.organization_id,
        "status": application.status,
        "applied_at": isoformat_or_none(application.applied_at),
    }


async def _populated_application(session: AsyncSession, application: Application) -> Dict:
    """Application plus the applicant's profile and account email."""
    result = await session.execute(
        select(PlayerProfile, User.email)
        .join(User, PlayerProfile.user_id == User.id)
        .where(PlayerProfile.id == application.player_id)
    )
    row = result.first()
    data = application_to_dict(application)
    if row:
        profile, email = row
        data["player"] = {**profile_service.profile_to_dict(profile), "email": email}
    return data


async def _find_application(
    session: AsyncSession, scouting_id: int, player_id: int
) -> Application:
    result = await session.execute(
        select(Application)
        .where(and_(Application.scouting_id == scouting_id, Application.player_id == player_id))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def apply_to_scouting(
    session: AsyncSession, user_id: int, scouting_id: int
) -> Tuple[Dict, bool]:
    """
    Apply the caller to a scouting, or re-apply after a withdrawal.

    A first application must pass the eligibility filter. Re-applying moves
    the existing WITHDRAWN record back to PENDING without re-running the
    filter. Any other existing record blocks the call.

    Args:
        session: Database session (committed by this call)
        user_id: Player account user ID
        scouting_id: Target scouting

    Returns:
        Tuple of (application dict, created) where created is False for a re-application

    Raises:
        NotFoundError: Profile or scouting not found
        PreconditionFailedError: Profile incomplete, already affiliated, scouting
            inactive, not eligible, or already applied
    """
    profile = await profile_service.require_profile_for_user(session, user_id)
    if not profile.profile_completed:
        raise PreconditionFailedError("Please complete your profile before applying")
    if profile.current_organization_id is not None:
        raise PreconditionFailedError("You are already part of an organization")

    scouting = await session.get(Scouting, scouting_id)
    if not scouting:
        raise NotFoundError("Scouting not found")
    if not is_active(scouting):
        raise PreconditionFailedError("This scouting is not active")

    existing = await _find_application(session, scouting_id, profile.id)
    if existing:
        application = await transition(
            session,
            existing,
            ApplicationStatus.PENDING,
            "You have already applied to this scouting",
        )
        created = False
        message = "A player has reapplied to your scouting"
    else:
        if not eligibility.matches(profile, scouting):
            raise PreconditionFailedError("You do not meet the requirements for this scouting")
        ensure_transition(None, ApplicationStatus.PENDING.value, "You have already applied to this scouting")

        application = Application(
            scouting_id=scouting_id,
            player_id=profile.id,
            organization_id=scouting.organization_id,
            status=ApplicationStatus.PENDING.value,
        )
        session.add(application)
        try:
            await session.flush()
        except IntegrityError:
            # A concurrent apply for the same (scouting, player) won the unique key
            await session.rollback()
            raise PreconditionFailedError("You have already applied to this scouting")
        await session.refresh(application)
        created = True
        message = "New applicant for your scouting"

    organization = await session.get(Organization, scouting.organization_id)
    notification = None
    if organization:
        notification = await notification_service.create_notification(
            session,
            user_id=organization.user_id,
            type=NotificationType.APPLICATION_RECEIVED.value,
            message=message,
            related_id=application.id,
        )
    await session.commit()

    if organization:
        populated = await _populated_application(session, application)
        await notification_service.emit_live(organization.user_id, EVENT_APPLICANT_NEW, populated)
        await notification_service.push_notification(notification)

    return application_to_dict(application), created


async def withdraw_application(session: AsyncSession, user_id: int, application_id: int) -> Dict:
    """
    Withdraw one of the caller's PENDING applications.

    Raises:
        NotFoundError: Profile or application not found for this player
        IllegalTransitionError: Application is not PENDING
    """
    profile = await profile_service.require_profile_for_user(session, user_id)
    result = await session.execute(
        select(Application).where(
            and_(Application.id == application_id, Application.player_id == profile.id)
        )
    )
    application = result.scalar_one_or_none()
    if not application:
        raise NotFoundError("Application not found")

    application = await transition(
        session, application, ApplicationStatus.WITHDRAWN, "Cannot withdraw this application"
    )
    await session.commit()

    organization = await session.get(Organization, application.organization_id)
    if organization:
        await notification_service.emit_live(
            organization.user_id, EVENT_APPLICANT_WITHDRAWN, {"applicationId": application.id}
        )
    return application_to_dict(application)


async def select_application(session: AsyncSession, user_id: int, application_id: int) -> Dict:
    """
    Select a PENDING application for the caller organization's scouting.

    The application, the player's affiliation and the scouting counter are
    committed together (see application_state.commit_selection). The player
    is then notified and receives live application/roster updates.

    Raises:
        NotFoundError: Organization, application or profile not found
        PreconditionFailedError: Scouting full or inactive, player already affiliated
        IllegalTransitionError: Application is not PENDING
    """
    organization = await profile_service.require_organization_for_user(session, user_id)
    application, profile, scouting = await commit_selection(session, application_id, organization.id)

    notification = None
    try:
        notification = await notification_service.create_notification(
            session,
            user_id=profile.user_id,
            type=NotificationType.APPLICATION_SELECTED.value,
            message="Congratulations! You have been selected",
            related_id=application.id,
        )
        await session.commit()
    except Exception as e:
        # The selection itself is already committed
        await session.rollback()
        logger.warning(f"Failed to record selection notification for application {application_id}: {e}")

    await notification_service.emit_live(
        profile.user_id,
        EVENT_APPLICATION_UPDATED,
        {"applicationId": application.id, "status": application.status},
    )
    if notification:
        await notification_service.push_notification(notification)
    await notification_service.emit_live(
        profile.user_id,
        EVENT_ROSTER_UPDATED,
        {"action": ROSTER_ACTION_ADD, "player": profile_service.profile_to_dict(profile)},
    )

    return {
        "application": application_to_dict(application),
        "scouting": scouting_to_dict(scouting),
    }


async def reject_application(session: AsyncSession, user_id: int, application_id: int) -> Dict:
    """
    Reject a PENDING application for one of the caller organization's scoutings.

    Raises:
        NotFoundError: Organization or application not found
        IllegalTransitionError: Application is not PENDING
    """
    organization = await profile_service.require_organization_for_user(session, user_id)
    result = await session.execute(
        select(Application).where(
            and_(
                Application.id == application_id,
                Application.organization_id == organization.id,
            )
        )
    )
    application = result.scalar_one_or_none()
    if not application:
        raise NotFoundError("Application not found")

    application = await transition(
        session, application, ApplicationStatus.REJECTED, "This application cannot be rejected"
    )

    profile = await session.get(PlayerProfile, application.player_id)
    notification = None
    if profile:
        notification = await notification_service.create_notification(
            session,
            user_id=profile.user_id,
            type=NotificationType.APPLICATION_REJECTED.value,
            message="Your application has been rejected",
            related_id=application.id,
        )
    await session.commit()

    if profile:
        await notification_service.emit_live(
            profile.user_id,
            EVENT_APPLICATION_UPDATED,
            {"applicationId": application.id, "status": application.status},
        )
        await notification_service.push_notification(notification)
    return application_to_dict(application)


async def get_my_applications(session: AsyncSession, user_id: int) -> List[Dict]:
    """The caller's applications, most recently applied first, with scouting details."""
    profile = await profile_service.require_profile_for_user(session, user_id)
    result = await session.execute(
        select(Application, Scouting)
        .join(Scouting, Application.scouting_id == Scouting.id)
        .where(Application.player_id == profile.id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )
    return [
        {**application_to_dict(application), "scouting": scouting_to_dict(scouting)}
        for application, scouting in result.all()
    ]


async def get_scouting_applications(
    session: AsyncSession, user_id: int, scouting_id: int
) -> List[Dict]:
    """
    Applicants of a scouting owned by the caller, most recent first.

    Raises:
        NotFoundError: Organization not found, or scouting not owned by it
    """
    organization = await profile_service.require_organization_for_user(session, user_id)
    scouting = await session.get(Scouting, scouting_id)
    if not scouting or scouting.organization_id != organization.id:
        raise NotFoundError("Scouting not found")

    result = await session.execute(
        select(Application, PlayerProfile, User.email)
        .join(PlayerProfile, Application.player_id == PlayerProfile.id)
        .join(User, PlayerProfile.user_id == User.id)
        .where(Application.scouting_id == scouting_id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )
    return [
        {
            **application_to_dict(application),
            "player": {**profile_service.profile_to_dict(profile), "email": email},
        }
        for application, profile, email in result.all()
    ]
