"""
Tests for player profile and organization storage.
"""

import pytest

from recruiting.database.models import UserRole
from recruiting.services import application_service, profile_service
from recruiting.services.errors import NotFoundError, PreconditionFailedError
from recruiting.tests.factories import make_organization, make_player, make_scouting, make_user


PROFILE_FIELDS = {
    "name": "Kai",
    "age": 19,
    "gender": "female",
    "country": "India",
    "game_id": "5123456789",
    "device": "tablet",
    "finger_setup": "4_finger",
    "kd_ratio": 4.2,
    "average_damage": 720.5,
    "roles": ["sniper"],
    "playing_style": "balanced",
    "preferred_maps": ["Miramar"],
    "ban_history": False,
}


@pytest.mark.asyncio
async def test_create_and_get_profile(db_session):
    user = await make_user(db_session, "kai@example.com", UserRole.PLAYER.value)

    created = await profile_service.create_profile(db_session, user.id, PROFILE_FIELDS)
    fetched = await profile_service.get_profile(db_session, user.id)

    assert created["profile_completed"] is True
    assert fetched["id"] == created["id"]
    assert fetched["roles"] == ["sniper"]
    assert "current_organization_name" not in fetched


@pytest.mark.asyncio
async def test_create_profile_twice(db_session):
    user = await make_user(db_session, "kai@example.com", UserRole.PLAYER.value)
    await profile_service.create_profile(db_session, user.id, PROFILE_FIELDS)

    with pytest.raises(PreconditionFailedError, match="Profile already exists"):
        await profile_service.create_profile(db_session, user.id, PROFILE_FIELDS)


@pytest.mark.asyncio
async def test_get_missing_profile(db_session):
    with pytest.raises(NotFoundError):
        await profile_service.get_profile(db_session, 12345)


@pytest.mark.asyncio
async def test_affiliated_profile_is_frozen(db_session):
    _, organization = await make_organization(db_session)
    user, profile = await make_player(db_session, current_organization_id=organization.id)

    public = await profile_service.get_profile_by_id(db_session, profile.id)
    assert public["current_organization_name"] == "Team Nova"

    with pytest.raises(PreconditionFailedError, match="Cannot update profile"):
        await profile_service.update_profile(db_session, user.id, {"bio": "hello"})
    with pytest.raises(PreconditionFailedError, match="Cannot delete profile"):
        await profile_service.delete_profile(db_session, user.id)


@pytest.mark.asyncio
async def test_update_profile(db_session):
    user, _ = await make_player(db_session)

    updated = await profile_service.update_profile(db_session, user.id, {"kd_ratio": 5.0, "bio": "IGL"})

    assert updated["kd_ratio"] == 5.0
    assert updated["bio"] == "IGL"


@pytest.mark.asyncio
async def test_delete_profile(db_session):
    user, _ = await make_player(db_session)

    await profile_service.delete_profile(db_session, user.id)

    assert await profile_service.get_profile_for_user(db_session, user.id) is None


@pytest.mark.asyncio
async def test_delete_profile_with_applications(db_session, ws_manager):
    _, organization = await make_organization(db_session)
    user, _ = await make_player(db_session)
    scouting = await make_scouting(db_session, organization)
    await application_service.apply_to_scouting(db_session, user.id, scouting.id)

    with pytest.raises(PreconditionFailedError, match="existing applications"):
        await profile_service.delete_profile(db_session, user.id)


@pytest.mark.asyncio
async def test_organization_crud(db_session):
    user = await make_user(db_session, "org@example.com", UserRole.ORGANIZATION.value)

    created = await profile_service.create_organization(
        db_session, user.id, {"organization_name": "Orbit", "country": "Nepal"}
    )
    with pytest.raises(PreconditionFailedError, match="Organization already exists"):
        await profile_service.create_organization(
            db_session, user.id, {"organization_name": "Orbit", "country": "Nepal"}
        )

    updated = await profile_service.update_organization(db_session, user.id, {"description": "Pro team"})
    assert updated["id"] == created["id"]
    assert updated["description"] == "Pro team"

    with pytest.raises(NotFoundError, match="Organization profile not found"):
        await profile_service.get_organization(db_session, 9999)
