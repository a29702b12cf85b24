"""
SQLAlchemy ORM models for the esports recruiting system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    JSON,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from recruiting.database.db import Base


class UserRole(str, enum.Enum):
    """Account role enum."""

    PLAYER = "player"
    ORGANIZATION = "organization"


class Gender(str, enum.Enum):
    """Player gender enum."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class Device(str, enum.Enum):
    """Playing device enum."""

    MOBILE = "mobile"
    TABLET = "tablet"


class FingerSetup(str, enum.Enum):
    """Touch control setup enum."""

    THUMB = "thumb"
    TWO_FINGER = "2_finger"
    THREE_FINGER = "3_finger"
    FOUR_FINGER = "4_finger"
    FIVE_FINGER = "5_finger"
    SIX_FINGER = "6_finger"


class PlayingStyle(str, enum.Enum):
    """Playing style enum."""

    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    DEFENSIVE = "defensive"


class SalaryType(str, enum.Enum):
    """Scouting compensation model enum."""

    FIXED_SALARY = "fixed_salary"
    CONTRACT_BASED = "contract_based"
    TOURNAMENT_PRIZE_SPLIT = "tournament_prize_split"
    PERFORMANCE_BASED = "performance_based"
    STIPEND_SUPPORT = "stipend_support"
    UNPAID_TRIAL = "unpaid_trial"


class ContractDuration(str, enum.Enum):
    """Scouting contract duration enum."""

    NO_CONTRACT = "no_contract"
    THREE_MONTHS = "3_months"
    SIX_MONTHS = "6_months"
    ONE_YEAR = "1_year"


class ScoutingStatus(str, enum.Enum):
    """Scouting status enum."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ApplicationStatus(str, enum.Enum):
    """Application status enum."""

    PENDING = "PENDING"
    SELECTED = "SELECTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    APPLICATION_RECEIVED = "APPLICATION_RECEIVED"
    APPLICATION_SELECTED = "APPLICATION_SELECTED"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    PLAYER_REMOVED = "PLAYER_REMOVED"
    LEAVE_REQUEST = "LEAVE_REQUEST"
    LEAVE_APPROVED = "LEAVE_APPROVED"


class User(Base):
    """User accounts. Rows are written by the identity service."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False)  # UserRole enum value
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_users_email", "email"),)


class Organization(Base):
    """Esports organization owned by an ORGANIZATION account."""

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    organization_name = Column(String(200), nullable=False)
    country = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User")
    scoutings = relationship("Scouting", back_populates="organization")
    roster = relationship("PlayerProfile", back_populates="current_organization")

    __table_args__ = (Index("idx_organizations_user", "user_id"),)


class PlayerProfile(Base):
    """Player profile owned by a PLAYER account."""

    __tablename__ = "player_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String(30), nullable=False)  # Gender enum value
    country = Column(String(100), nullable=False)
    game_id = Column(String(100), nullable=False)
    device = Column(String(20), nullable=False)  # Device enum value
    finger_setup = Column(String(20), nullable=False)  # FingerSetup enum value
    kd_ratio = Column(Float, nullable=False)
    average_damage = Column(Float, nullable=False)
    roles = Column(JSON, nullable=False, default=list)
    playing_style = Column(String(20), nullable=False)  # PlayingStyle enum value
    preferred_maps = Column(JSON, nullable=False, default=list)
    ban_history = Column(Boolean, nullable=False, default=False)
    years_experience = Column(Integer, nullable=True)
    youtube_url = Column(String(500), nullable=True)
    instagram_url = Column(String(500), nullable=True)
    tournaments_played = Column(JSON, nullable=True)
    other_tournament_name = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    previous_organization = Column(String(200), nullable=True)
    profile_completed = Column(Boolean, nullable=False, default=False)
    stats_verified = Column(Boolean, nullable=False, default=False)
    current_organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    last_updated = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User")
    current_organization = relationship("Organization", back_populates="roster")

    __table_args__ = (
        Index("idx_player_profiles_user", "user_id"),
        Index("idx_player_profiles_current_org", "current_organization_id"),
    )


class Scouting(Base):
    """Recruiting offer posted by an organization."""

    __tablename__ = "scoutings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    organization_name = Column(String(200), nullable=False)
    organization_description = Column(Text, nullable=True)
    country = Column(String(100), nullable=False)
    salary_type = Column(String(30), nullable=False)  # SalaryType enum value
    salary_min_usd = Column(Float, nullable=True)
    salary_max_usd = Column(Float, nullable=True)
    contract_duration = Column(String(20), nullable=False)  # ContractDuration enum value
    device_provided = Column(Boolean, nullable=False, default=False)
    bootcamp_required = Column(Boolean, nullable=False, default=False)

    # Eligibility criteria
    required_roles = Column(JSON, nullable=False, default=list)
    allowed_devices = Column(JSON, nullable=False, default=list)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    allowed_genders = Column(JSON, nullable=False, default=list)
    min_kd_ratio = Column(Float, nullable=True)
    min_average_damage = Column(Float, nullable=True)
    ban_history_allowed = Column(Boolean, nullable=False, default=False)
    preferred_maps_required = Column(JSON, nullable=True)
    required_tournaments = Column(JSON, nullable=True)

    # Capacity
    players_required = Column(Integer, nullable=False)
    selected_count = Column(Integer, nullable=False, default=0)
    scouting_status = Column(String(20), nullable=False, default=ScoutingStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="scoutings")

    __table_args__ = (
        CheckConstraint("players_required >= 1", name="ck_scoutings_players_required"),
        CheckConstraint(
            "selected_count >= 0 AND selected_count <= players_required",
            name="ck_scoutings_selected_count",
        ),
        Index("idx_scoutings_org_status", "organization_id", "scouting_status"),
        Index("idx_scoutings_status_created", "scouting_status", "created_at"),
        # At most one ACTIVE scouting per organization
        Index(
            "uq_scoutings_one_active_per_org",
            "organization_id",
            unique=True,
            postgresql_where=text("scouting_status = 'ACTIVE'"),
            sqlite_where=text("scouting_status = 'ACTIVE'"),
        ),
    )


class Application(Base):
    """A player's bid for a scouting. One row per (scouting, player)."""

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scouting_id = Column(Integer, ForeignKey("scoutings.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("player_profiles.id"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    status = Column(String(20), nullable=False, default=ApplicationStatus.PENDING.value)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    scouting = relationship("Scouting")
    player = relationship("PlayerProfile")
    organization = relationship("Organization")

    __table_args__ = (
        UniqueConstraint("scouting_id", "player_id", name="uq_applications_scouting_player"),
        Index("idx_applications_player", "player_id"),
        Index("idx_applications_scouting_status", "scouting_id", "status"),
    )


class Notification(Base):
    """User notifications for in-app messaging."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String(40), nullable=False)  # NotificationType enum value
    message = Column(Text, nullable=False)
    related_id = Column(Integer, nullable=True)  # Application, organization or profile id
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", backref="notifications")

    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read", "created_at"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )
