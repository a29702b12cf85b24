"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the recruiting schema:
- users (written by the identity service)
- organizations, player_profiles
- scoutings with capacity check constraints and one ACTIVE scouting per organization
- applications with one row per (scouting, player)
- notifications
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=nullable)


def upgrade() -> None:
    """Create all recruiting tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_email", "users", ["email"])

    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("organization_name", sa.String(length=200), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("idx_organizations_user", "organizations", ["user_id"])

    op.create_table(
        "player_profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(length=30), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("game_id", sa.String(length=100), nullable=False),
        sa.Column("device", sa.String(length=20), nullable=False),
        sa.Column("finger_setup", sa.String(length=20), nullable=False),
        sa.Column("kd_ratio", sa.Float(), nullable=False),
        sa.Column("average_damage", sa.Float(), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("playing_style", sa.String(length=20), nullable=False),
        sa.Column("preferred_maps", sa.JSON(), nullable=False),
        sa.Column("ban_history", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("years_experience", sa.Integer(), nullable=True),
        sa.Column("youtube_url", sa.String(length=500), nullable=True),
        sa.Column("instagram_url", sa.String(length=500), nullable=True),
        sa.Column("tournaments_played", sa.JSON(), nullable=True),
        sa.Column("other_tournament_name", sa.String(length=200), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("previous_organization", sa.String(length=200), nullable=True),
        sa.Column("profile_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("stats_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_organization_id", sa.Integer(), nullable=True),
        _timestamp("last_updated"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["current_organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("idx_player_profiles_user", "player_profiles", ["user_id"])
    op.create_index("idx_player_profiles_current_org", "player_profiles", ["current_organization_id"])

    op.create_table(
        "scoutings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("organization_name", sa.String(length=200), nullable=False),
        sa.Column("organization_description", sa.Text(), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("salary_type", sa.String(length=30), nullable=False),
        sa.Column("salary_min_usd", sa.Float(), nullable=True),
        sa.Column("salary_max_usd", sa.Float(), nullable=True),
        sa.Column("contract_duration", sa.String(length=20), nullable=False),
        sa.Column("device_provided", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bootcamp_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("required_roles", sa.JSON(), nullable=False),
        sa.Column("allowed_devices", sa.JSON(), nullable=False),
        sa.Column("min_age", sa.Integer(), nullable=True),
        sa.Column("max_age", sa.Integer(), nullable=True),
        sa.Column("allowed_genders", sa.JSON(), nullable=False),
        sa.Column("min_kd_ratio", sa.Float(), nullable=True),
        sa.Column("min_average_damage", sa.Float(), nullable=True),
        sa.Column("ban_history_allowed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("preferred_maps_required", sa.JSON(), nullable=True),
        sa.Column("required_tournaments", sa.JSON(), nullable=True),
        sa.Column("players_required", sa.Integer(), nullable=False),
        sa.Column("selected_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scouting_status", sa.String(length=20), nullable=False, server_default="ACTIVE"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("players_required >= 1", name="ck_scoutings_players_required"),
        sa.CheckConstraint(
            "selected_count >= 0 AND selected_count <= players_required",
            name="ck_scoutings_selected_count",
        ),
    )
    op.create_index("idx_scoutings_org_status", "scoutings", ["organization_id", "scouting_status"])
    op.create_index("idx_scoutings_status_created", "scoutings", ["scouting_status", "created_at"])
    op.create_index(
        "uq_scoutings_one_active_per_org",
        "scoutings",
        ["organization_id"],
        unique=True,
        postgresql_where=sa.text("scouting_status = 'ACTIVE'"),
        sqlite_where=sa.text("scouting_status = 'ACTIVE'"),
    )

    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scouting_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        _timestamp("applied_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["scouting_id"], ["scoutings.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player_profiles.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scouting_id", "player_id", name="uq_applications_scouting_player"),
    )
    op.create_index("idx_applications_player", "applications", ["player_id"])
    op.create_index("idx_applications_scouting_status", "applications", ["scouting_id", "status"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_notifications_user_unread", "notifications", ["user_id", "is_read", "created_at"]
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop all recruiting tables."""
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_index("idx_notifications_user_unread", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_applications_scouting_status", table_name="applications")
    op.drop_index("idx_applications_player", table_name="applications")
    op.drop_table("applications")
    op.drop_index("uq_scoutings_one_active_per_org", table_name="scoutings")
    op.drop_index("idx_scoutings_status_created", table_name="scoutings")
    op.drop_index("idx_scoutings_org_status", table_name="scoutings")
    op.drop_table("scoutings")
    op.drop_index("idx_player_profiles_current_org", table_name="player_profiles")
    op.drop_index("idx_player_profiles_user", table_name="player_profiles")
    op.drop_table("player_profiles")
    op.drop_index("idx_organizations_user", table_name="organizations")
    op.drop_table("organizations")
    op.drop_index("idx_users_email", table_name="users")
    op.drop_table("users")
