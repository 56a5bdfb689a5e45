"""add weekly snapshot tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Three tables: the per-user weekly totals, one row per goal, one row per
recurring event active that week. Unique constraint (user_id, week_start)
makes the cron batch idempotent.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "weekly_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("week_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_available_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_allocated_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_completed_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_scheduled_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("free_time_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_frozen", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("snapshot_hash", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_weekly_snapshots_id", "weekly_snapshots", ["id"])
    op.create_index("ix_weekly_snapshots_user_id", "weekly_snapshots", ["user_id"])
    op.create_index("ix_weekly_snapshots_week_start", "weekly_snapshots", ["week_start"])
    op.create_unique_constraint(
        "uq_weekly_snapshot_user_week",
        "weekly_snapshots",
        ["user_id", "week_start"],
    )

    op.create_table(
        "weekly_goal_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "snapshot_id", sa.Integer(),
            sa.ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("goal_id", sa.Integer(), nullable=True),
        sa.Column("goal_name", sa.String(256), nullable=False),
        sa.Column("goal_description", sa.Text(), nullable=True),
        sa.Column("goal_category", sa.String(64), nullable=False),
        sa.Column("goal_priority", sa.String(32), nullable=True),
        sa.Column("goal_status", sa.String(32), nullable=False),
        sa.Column("goal_color", sa.String(32), nullable=True),
        sa.Column("time_allocated", sa.Float(), nullable=False, server_default="0"),
        sa.Column("time_completed", sa.Float(), nullable=False, server_default="0"),
        sa.Column("time_scheduled", sa.Float(), nullable=False, server_default="0"),
        sa.Column("time_unscheduled", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_weekly_goal_snapshots_id", "weekly_goal_snapshots", ["id"])
    op.create_index("ix_weekly_goal_snapshots_snapshot_id", "weekly_goal_snapshots", ["snapshot_id"])

    op.create_table(
        "weekly_recurring_event_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "snapshot_id", sa.Integer(),
            sa.ForeignKey("weekly_snapshots.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("recurring_event_id", sa.Integer(), nullable=True),
        sa.Column(
            "goal_snapshot_id", sa.Integer(),
            sa.ForeignKey("weekly_goal_snapshots.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.String(16), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", sa.Text(), nullable=True),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_weekly_recurring_event_snapshots_id", "weekly_recurring_event_snapshots", ["id"])
    op.create_index(
        "ix_weekly_recurring_event_snapshots_snapshot_id",
        "weekly_recurring_event_snapshots",
        ["snapshot_id"],
    )


def downgrade() -> None:
    op.drop_table("weekly_recurring_event_snapshots")
    op.drop_table("weekly_goal_snapshots")
    op.drop_constraint("uq_weekly_snapshot_user_week", "weekly_snapshots", type_="unique")
    op.drop_table("weekly_snapshots")
