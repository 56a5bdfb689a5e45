"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    goal_category_enum = sa.Enum(
        "work_startups", "learning", "health_sports", "hobbies", name="goal_category_enum"
    )
    goal_category_enum.create(op.get_bind(), checkfirst=True)

    goal_priority_enum = sa.Enum(
        "critical", "high", "medium", "low", name="goal_priority_enum"
    )
    goal_priority_enum.create(op.get_bind(), checkfirst=True)

    goal_status_enum = sa.Enum(
        "not_started", "in_progress", "on_hold", "completed", "abandoned", "ongoing",
        name="goal_status_enum",
    )
    goal_status_enum.create(op.get_bind(), checkfirst=True)

    recurrence_frequency_enum = sa.Enum(
        "daily", "weekly", "monthly", name="recurrence_frequency_enum"
    )
    recurrence_frequency_enum.create(op.get_bind(), checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"])

    # --- user_settings ---
    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("weekly_available_hours", sa.Float(), nullable=False, server_default="112"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_user_settings_id", "user_settings", ["id"])

    # --- goals ---
    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Enum(
            "work_startups", "learning", "health_sports", "hobbies",
            name="goal_category_enum", create_type=False,
        ), nullable=False),
        sa.Column("priority", sa.Enum(
            "critical", "high", "medium", "low",
            name="goal_priority_enum", create_type=False,
        ), nullable=False, server_default="medium"),
        sa.Column("status", sa.Enum(
            "not_started", "in_progress", "on_hold", "completed", "abandoned", "ongoing",
            name="goal_status_enum", create_type=False,
        ), nullable=False, server_default="not_started"),
        sa.Column("time_allocated", sa.Float(), nullable=False, server_default="0"),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_goals_id", "goals", ["id"])
    op.create_index("ix_goals_user_id", "goals", ["user_id"])

    # --- recurring_events ---
    op.create_table(
        "recurring_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.Enum(
            "daily", "weekly", "monthly",
            name="recurrence_frequency_enum", create_type=False,
        ), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", sa.Text(), nullable=True),
        sa.Column("starts_on", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("recurrence_count", sa.Integer(), nullable=True),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recurring_events_id", "recurring_events", ["id"])
    op.create_index("ix_recurring_events_user_id", "recurring_events", ["user_id"])
    op.create_index("ix_recurring_events_goal_id", "recurring_events", ["goal_id"])

    # --- calendar_events ---
    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_calendar_events_id", "calendar_events", ["id"])
    op.create_index("ix_calendar_events_user_id", "calendar_events", ["user_id"])
    op.create_index("ix_calendar_events_goal_id", "calendar_events", ["goal_id"])
    op.create_index("ix_calendar_events_start_time", "calendar_events", ["start_time"])


def downgrade() -> None:
    op.drop_table("calendar_events")
    op.drop_table("recurring_events")
    op.drop_table("goals")
    op.drop_table("user_settings")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS recurrence_frequency_enum")
    op.execute("DROP TYPE IF EXISTS goal_status_enum")
    op.execute("DROP TYPE IF EXISTS goal_priority_enum")
    op.execute("DROP TYPE IF EXISTS goal_category_enum")
