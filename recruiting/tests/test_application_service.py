"""
Tests for the application workflow: apply, withdraw, select, reject and listings.
"""

import asyncio
import json
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import select, func, update

from recruiting.database.models import (
    Application,
    ApplicationStatus,
    Notification,
    NotificationType,
    PlayerProfile,
    Scouting,
    ScoutingStatus,
)
from recruiting.services import application_service
from recruiting.services.errors import (
    IllegalTransitionError,
    NotFoundError,
    PreconditionFailedError,
)
from recruiting.tests.factories import make_organization, make_player, make_scouting


def mock_socket():
    ws = AsyncMock()
    ws.send_text = AsyncMock()
    ws.close = AsyncMock()
    return ws


def sent_events(ws):
    """Decode the {"event", "data"} frames a mock socket received, in order."""
    return [json.loads(call.args[0]) for call in ws.send_text.call_args_list]


async def _application_count(session, scouting_id):
    result = await session.execute(
        select(func.count()).select_from(Application).where(Application.scouting_id == scouting_id)
    )
    return result.scalar_one()


async def _reload(session, model, row_id):
    result = await session.execute(
        select(model).where(model.id == row_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest_asyncio.fixture
async def world(db_session):
    """An organization with one ACTIVE single-slot scouting and an eligible player."""
    org_user, organization = await make_organization(db_session)
    player_user, profile = await make_player(db_session)
    scouting = await make_scouting(db_session, organization, players_required=1)
    return {
        "org_user": org_user,
        "organization": organization,
        "player_user": player_user,
        "profile": profile,
        "scouting": scouting,
    }


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_apply_creates_pending_application(db_session, world, ws_manager):
    org_ws = mock_socket()
    await ws_manager.connect(world["org_user"].id, org_ws)

    application, created = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )

    assert created is True
    assert application["status"] == ApplicationStatus.PENDING.value
    assert application["organization_id"] == world["organization"].id

    notifications = (await db_session.execute(
        select(Notification).where(Notification.user_id == world["org_user"].id)
    )).scalars().all()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.APPLICATION_RECEIVED.value
    assert notifications[0].related_id == application["id"]

    events = sent_events(org_ws)
    assert [e["event"] for e in events] == ["applicant:new", "notification:new"]
    assert events[0]["data"]["player"]["email"] == "player@example.com"


@pytest.mark.asyncio
async def test_apply_requires_eligibility(db_session, world):
    banned_user, _ = await make_player(db_session, email="banned@example.com", ban_history=True)

    with pytest.raises(PreconditionFailedError, match="do not meet the requirements"):
        await application_service.apply_to_scouting(db_session, banned_user.id, world["scouting"].id)


@pytest.mark.asyncio
async def test_apply_requires_completed_profile(db_session, world):
    user, _ = await make_player(db_session, email="draft@example.com", profile_completed=False)

    with pytest.raises(PreconditionFailedError, match="complete your profile"):
        await application_service.apply_to_scouting(db_session, user.id, world["scouting"].id)


@pytest.mark.asyncio
async def test_apply_requires_unaffiliated_player(db_session, world):
    user, _ = await make_player(
        db_session, email="signed@example.com", current_organization_id=world["organization"].id
    )

    with pytest.raises(PreconditionFailedError, match="already part of an organization"):
        await application_service.apply_to_scouting(db_session, user.id, world["scouting"].id)


@pytest.mark.asyncio
async def test_apply_without_profile_is_not_found(db_session, world):
    with pytest.raises(NotFoundError):
        await application_service.apply_to_scouting(db_session, world["org_user"].id, world["scouting"].id)


@pytest.mark.asyncio
async def test_apply_to_missing_scouting(db_session, world):
    with pytest.raises(NotFoundError, match="Scouting not found"):
        await application_service.apply_to_scouting(db_session, world["player_user"].id, 9999)


@pytest.mark.asyncio
async def test_apply_twice_is_rejected(db_session, world):
    await application_service.apply_to_scouting(db_session, world["player_user"].id, world["scouting"].id)

    with pytest.raises(IllegalTransitionError, match="already applied"):
        await application_service.apply_to_scouting(db_session, world["player_user"].id, world["scouting"].id)
    assert await _application_count(db_session, world["scouting"].id) == 1


@pytest.mark.asyncio
async def test_concurrent_applies_for_same_pair(db_session, session_maker, world, ws_manager):
    async def apply():
        async with session_maker() as session:
            return await application_service.apply_to_scouting(
                session, world["player_user"].id, world["scouting"].id
            )

    results = await asyncio.gather(apply(), apply(), return_exceptions=True)

    assert sum(1 for r in results if isinstance(r, tuple)) == 1
    assert sum(1 for r in results if isinstance(r, PreconditionFailedError)) == 1
    assert await _application_count(db_session, world["scouting"].id) == 1


@pytest.mark.asyncio
async def test_duplicate_insert_reports_already_applied(db_session, world, ws_manager, monkeypatch):
    await application_service.apply_to_scouting(db_session, world["player_user"].id, world["scouting"].id)

    # The existing row is not seen, as when a concurrent request inserted it after the lookup
    async def find_nothing(session, scouting_id, player_id):
        return None

    monkeypatch.setattr(application_service, "_find_application", find_nothing)

    with pytest.raises(PreconditionFailedError, match="already applied") as exc_info:
        await application_service.apply_to_scouting(db_session, world["player_user"].id, world["scouting"].id)
    assert not isinstance(exc_info.value, IllegalTransitionError)
    assert await _application_count(db_session, world["scouting"].id) == 1


@pytest.mark.asyncio
async def test_withdraw_then_reapply_reuses_the_record(db_session, world, ws_manager):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    withdrawn = await application_service.withdraw_application(
        db_session, world["player_user"].id, application["id"]
    )
    assert withdrawn["status"] == ApplicationStatus.WITHDRAWN.value

    await db_session.execute(
        update(Application)
        .where(Application.id == application["id"])
        .values(applied_at=datetime(2020, 1, 1))
    )
    await db_session.commit()

    reapplied, created = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )

    assert created is False
    assert reapplied["id"] == application["id"]
    assert reapplied["status"] == ApplicationStatus.PENDING.value
    assert await _application_count(db_session, world["scouting"].id) == 1
    row = await _reload(db_session, Application, application["id"])
    assert row.applied_at.replace(tzinfo=None) > datetime(2020, 1, 1)


@pytest.mark.asyncio
async def test_reapply_skips_eligibility(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    await application_service.withdraw_application(db_session, world["player_user"].id, application["id"])

    # The profile no longer matches, but a re-application is not re-filtered
    await db_session.execute(
        update(PlayerProfile).where(PlayerProfile.id == world["profile"].id).values(ban_history=True)
    )
    await db_session.commit()

    reapplied, created = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    assert created is False
    assert reapplied["status"] == ApplicationStatus.PENDING.value


@pytest.mark.asyncio
async def test_withdraw_only_from_pending(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    await application_service.withdraw_application(db_session, world["player_user"].id, application["id"])

    with pytest.raises(IllegalTransitionError, match="Cannot withdraw"):
        await application_service.withdraw_application(db_session, world["player_user"].id, application["id"])


@pytest.mark.asyncio
async def test_withdraw_notifies_organization_live(db_session, world, ws_manager):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    org_ws = mock_socket()
    await ws_manager.connect(world["org_user"].id, org_ws)

    await application_service.withdraw_application(db_session, world["player_user"].id, application["id"])

    assert sent_events(org_ws) == [
        {"event": "applicant:withdrawn", "data": {"applicationId": application["id"]}}
    ]


@pytest.mark.asyncio
async def test_cannot_withdraw_someone_elses_application(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    other_user, _ = await make_player(db_session, email="other@example.com")

    with pytest.raises(NotFoundError):
        await application_service.withdraw_application(db_session, other_user.id, application["id"])


# ---------------------------------------------------------------------------
# Select / reject
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_select_fills_the_last_slot(db_session, world, ws_manager):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    player_ws = mock_socket()
    await ws_manager.connect(world["player_user"].id, player_ws)

    result = await application_service.select_application(
        db_session, world["org_user"].id, application["id"]
    )

    assert result["application"]["status"] == ApplicationStatus.SELECTED.value
    assert result["scouting"]["selected_count"] == 1
    assert result["scouting"]["scouting_status"] == ScoutingStatus.COMPLETED.value

    profile = await _reload(db_session, PlayerProfile, world["profile"].id)
    assert profile.current_organization_id == world["organization"].id

    notification = (await db_session.execute(
        select(Notification).where(
            Notification.user_id == world["player_user"].id,
            Notification.type == NotificationType.APPLICATION_SELECTED.value,
        )
    )).scalar_one()
    assert notification.related_id == application["id"]

    events = sent_events(player_ws)
    assert [e["event"] for e in events] == ["application:updated", "notification:new", "roster:updated"]
    assert events[0]["data"] == {"applicationId": application["id"], "status": "SELECTED"}
    assert events[2]["data"]["action"] == "add"
    assert events[2]["data"]["player"]["id"] == world["profile"].id


@pytest.mark.asyncio
async def test_apply_to_completed_scouting_is_rejected(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    await application_service.select_application(db_session, world["org_user"].id, application["id"])

    late_user, _ = await make_player(db_session, email="late@example.com")
    with pytest.raises(PreconditionFailedError, match="not active"):
        await application_service.apply_to_scouting(db_session, late_user.id, world["scouting"].id)


@pytest.mark.asyncio
async def test_select_when_full_reports_capacity(db_session, world):
    first, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    second_user, _ = await make_player(db_session, email="second@example.com")
    second, _ = await application_service.apply_to_scouting(
        db_session, second_user.id, world["scouting"].id
    )
    await application_service.select_application(db_session, world["org_user"].id, first["id"])

    with pytest.raises(PreconditionFailedError, match="All positions have been filled"):
        await application_service.select_application(db_session, world["org_user"].id, second["id"])

    scouting = await _reload(db_session, Scouting, world["scouting"].id)
    assert scouting.selected_count == 1
    assert (await _reload(db_session, Application, second["id"])).status == ApplicationStatus.PENDING.value


@pytest.mark.asyncio
async def test_select_requires_ownership(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    rival_user, _ = await make_organization(db_session, email="rival@example.com", name="Rival")

    with pytest.raises(NotFoundError):
        await application_service.select_application(db_session, rival_user.id, application["id"])
    with pytest.raises(NotFoundError):
        await application_service.reject_application(db_session, rival_user.id, application["id"])


@pytest.mark.asyncio
async def test_reject_pending_application(db_session, world, ws_manager):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    player_ws = mock_socket()
    await ws_manager.connect(world["player_user"].id, player_ws)

    rejected = await application_service.reject_application(
        db_session, world["org_user"].id, application["id"]
    )

    assert rejected["status"] == ApplicationStatus.REJECTED.value
    events = sent_events(player_ws)
    assert [e["event"] for e in events] == ["application:updated", "notification:new"]
    assert events[1]["data"]["type"] == NotificationType.APPLICATION_REJECTED.value

    # Rejected is terminal
    with pytest.raises(IllegalTransitionError):
        await application_service.apply_to_scouting(db_session, world["player_user"].id, world["scouting"].id)
    with pytest.raises(IllegalTransitionError, match="cannot be selected"):
        await application_service.select_application(db_session, world["org_user"].id, application["id"])


@pytest.mark.asyncio
async def test_offline_recipients_do_not_fail_the_workflow(db_session, world, ws_manager):
    # Nobody is connected; every live push is dropped
    application, created = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )
    result = await application_service.select_application(
        db_session, world["org_user"].id, application["id"]
    )
    assert created is True
    assert result["application"]["status"] == ApplicationStatus.SELECTED.value


@pytest.mark.asyncio
async def test_broken_socket_does_not_fail_the_workflow(db_session, world, ws_manager):
    broken = mock_socket()
    broken.send_text.side_effect = RuntimeError("connection reset")
    await ws_manager.connect(world["org_user"].id, broken)

    application, created = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )

    assert created is True
    assert await ws_manager.get_connection_count(world["org_user"].id) == 0


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_listings(db_session, world):
    application, _ = await application_service.apply_to_scouting(
        db_session, world["player_user"].id, world["scouting"].id
    )

    mine = await application_service.get_my_applications(db_session, world["player_user"].id)
    assert [a["id"] for a in mine] == [application["id"]]
    assert mine[0]["scouting"]["id"] == world["scouting"].id

    applicants = await application_service.get_scouting_applications(
        db_session, world["org_user"].id, world["scouting"].id
    )
    assert applicants[0]["player"]["email"] == "player@example.com"

    rival_user, _ = await make_organization(db_session, email="rival@example.com", name="Rival")
    with pytest.raises(NotFoundError):
        await application_service.get_scouting_applications(db_session, rival_user.id, world["scouting"].id)
