"""Initial schema: daily_health_summary, weekly_reports

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ACCUMULATING = (
    "active_calories",
    "basal_calories",
    "sleep_minutes",
    "sleep_deep_minutes",
    "sleep_rem_minutes",
    "sleep_core_minutes",
    "sleep_awake_minutes",
)


def upgrade() -> None:
    # Ensure pgcrypto is available for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # --- daily_health_summary (one canonical row per user and date) ---
    op.create_table(
        "daily_health_summary",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("resting_hr", sa.Float, nullable=True),
        sa.Column("hrv", sa.Float, nullable=True),
        sa.Column("weight", sa.Float, nullable=True),
        sa.Column("body_fat_percentage", sa.Float, nullable=True),
        sa.Column("glucose", sa.Float, nullable=True),
        sa.Column("systolic", sa.Float, nullable=True),
        sa.Column("diastolic", sa.Float, nullable=True),
        sa.Column("steps", sa.BigInteger, nullable=False, server_default=sa.text("0")),
        *(
            sa.Column(name, sa.Integer, nullable=False, server_default=sa.text("0"))
            for name in _ACCUMULATING
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        # Constraints
        sa.UniqueConstraint("user_id", "date", name="uq_daily_health_summary_user_date"),
        sa.CheckConstraint("steps >= 0", name="chk_steps"),
        *(sa.CheckConstraint(f"{name} >= 0", name=f"chk_{name}") for name in _ACCUMULATING),
    )
    op.create_index(
        "idx_daily_health_summary_user_date",
        "daily_health_summary",
        ["user_id", sa.text("date DESC")],
    )

    # updated_at trigger
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_daily_health_summary_updated_at
            BEFORE UPDATE ON daily_health_summary
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
    """)

    # --- weekly_reports ---
    op.create_table(
        "weekly_reports",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("week_start", sa.Date, nullable=False),
        sa.Column("week_end", sa.Date, nullable=False),
        sa.Column("title", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("summary", sa.Text, nullable=False),
        sa.Column("trends", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "action_items", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column("stats", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("missing", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "week_start", "week_end", name="uq_weekly_reports_user_week"),
        sa.CheckConstraint(
            "status IN ('ok', 'partial', 'awaiting_sync')", name="chk_weekly_reports_status"
        ),
    )
    op.create_index(
        "idx_weekly_reports_user_generated",
        "weekly_reports",
        ["user_id", sa.text("generated_at DESC")],
    )


def downgrade() -> None:
    op.execute(
        "DROP TRIGGER IF EXISTS trg_daily_health_summary_updated_at ON daily_health_summary"
    )
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column")
    op.drop_table("weekly_reports")
    op.drop_table("daily_health_summary")
