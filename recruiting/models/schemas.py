"""
Pydantic models for API request/response validation.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from recruiting.database.models import (
    ContractDuration,
    Device,
    FingerSetup,
    Gender,
    PlayingStyle,
    SalaryType,
)


class SuccessResponse(BaseModel):
    """Standard success envelope."""

    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


# ---------------------------------------------------------------------------
# Player profiles
# ---------------------------------------------------------------------------


class PlayerProfileBase(BaseModel):
    """Fields shared by profile create and update."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    age: Optional[int] = Field(None, ge=13, le=100)
    gender: Optional[Gender] = None
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    game_id: Optional[str] = Field(None, min_length=1, max_length=100)
    device: Optional[Device] = None
    finger_setup: Optional[FingerSetup] = None
    kd_ratio: Optional[float] = Field(None, ge=0)
    average_damage: Optional[float] = Field(None, ge=0)
    roles: Optional[List[str]] = Field(None, min_length=1)
    playing_style: Optional[PlayingStyle] = None
    preferred_maps: Optional[List[str]] = Field(None, min_length=1)
    ban_history: Optional[bool] = None
    years_experience: Optional[int] = Field(None, ge=0, le=20)
    youtube_url: Optional[str] = None
    instagram_url: Optional[str] = None
    tournaments_played: Optional[List[str]] = None
    other_tournament_name: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=1000)
    previous_organization: Optional[str] = None


class PlayerProfileCreate(PlayerProfileBase):
    """Request to create a player profile."""

    name: str = Field(..., min_length=1, max_length=200)
    age: int = Field(..., ge=13, le=100)
    gender: Gender
    country: str = Field(..., min_length=1, max_length=100)
    game_id: str = Field(..., min_length=1, max_length=100)
    device: Device
    finger_setup: FingerSetup
    kd_ratio: float = Field(..., ge=0)
    average_damage: float = Field(..., ge=0)
    roles: List[str] = Field(..., min_length=1)
    playing_style: PlayingStyle
    preferred_maps: List[str] = Field(..., min_length=1)
    ban_history: bool


class PlayerProfileUpdate(PlayerProfileBase):
    """Request to update a player profile. Only provided fields are changed."""

    pass


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


class OrganizationCreate(BaseModel):
    """Request to create an organization."""

    organization_name: str = Field(..., min_length=1, max_length=200)
    country: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class OrganizationUpdate(BaseModel):
    """Request to update an organization."""

    organization_name: Optional[str] = Field(None, min_length=1, max_length=200)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Scoutings
# ---------------------------------------------------------------------------


class ScoutingCreate(BaseModel):
    """Request to post a scouting. The organization name is taken from the caller's organization."""

    organization_description: Optional[str] = None
    country: str = Field(..., min_length=1, max_length=100)
    salary_type: SalaryType
    salary_min_usd: Optional[float] = Field(None, ge=0)
    salary_max_usd: Optional[float] = Field(None, ge=0)
    contract_duration: ContractDuration
    device_provided: bool
    bootcamp_required: bool
    required_roles: List[str] = Field(..., min_length=1)
    allowed_devices: List[Device] = Field(..., min_length=1)
    min_age: Optional[int] = Field(None, ge=13)
    max_age: Optional[int] = Field(None, le=100)
    allowed_genders: List[Gender] = Field(..., min_length=1)
    min_kd_ratio: Optional[float] = Field(None, ge=0)
    min_average_damage: Optional[float] = Field(None, ge=0)
    ban_history_allowed: bool
    preferred_maps_required: Optional[List[str]] = None
    required_tournaments: Optional[List[str]] = None
    players_required: int = Field(..., ge=1)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age cannot be greater than max_age")
        if (
            self.salary_min_usd is not None
            and self.salary_max_usd is not None
            and self.salary_min_usd > self.salary_max_usd
        ):
            raise ValueError("salary_min_usd cannot be greater than salary_max_usd")
        return self


class ScoutingUpdate(BaseModel):
    """Request to update an active scouting. Eligibility criteria are fixed once posted."""

    organization_description: Optional[str] = None
    salary_min_usd: Optional[float] = Field(None, ge=0)
    salary_max_usd: Optional[float] = Field(None, ge=0)
    device_provided: Optional[bool] = None
    bootcamp_required: Optional[bool] = None
    players_required: Optional[int] = Field(None, ge=1)

    @field_validator("device_provided", "bootcamp_required", "players_required")
    @classmethod
    def reject_null(cls, value, info):
        # Omitting these fields keeps the current value; null is not a value
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value
