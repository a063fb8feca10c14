"""SQLAlchemy ORM models.

Tables:
- daily_health_summary: canonical day records, one row per (user_id, date)
- weekly_reports: persisted weekly trend reports, one row per (user_id, week_start, week_end)
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class DailyHealthSummaryModel(Base):
    __tablename__ = "daily_health_summary"

    # Identity
    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    date = mapped_column(Date, nullable=False)

    # Point-in-time metrics
    resting_hr: Mapped[float | None] = mapped_column(Float, nullable=True)
    hrv: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    body_fat_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    glucose: Mapped[float | None] = mapped_column(Float, nullable=True)
    systolic: Mapped[float | None] = mapped_column(Float, nullable=True)
    diastolic: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Accumulating metrics
    steps: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default=text("0"))
    active_calories: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    basal_calories: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    sleep_minutes: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    sleep_deep_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    sleep_rem_minutes: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    sleep_core_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    sleep_awake_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )

    # Temporal
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_health_summary_user_date"),
        CheckConstraint("steps >= 0", name="chk_steps"),
        CheckConstraint("active_calories >= 0", name="chk_active_calories"),
        CheckConstraint("basal_calories >= 0", name="chk_basal_calories"),
        CheckConstraint("sleep_minutes >= 0", name="chk_sleep_minutes"),
        CheckConstraint("sleep_deep_minutes >= 0", name="chk_sleep_deep_minutes"),
        CheckConstraint("sleep_rem_minutes >= 0", name="chk_sleep_rem_minutes"),
        CheckConstraint("sleep_core_minutes >= 0", name="chk_sleep_core_minutes"),
        CheckConstraint("sleep_awake_minutes >= 0", name="chk_sleep_awake_minutes"),
        Index("idx_daily_health_summary_user_date", "user_id", date.desc()),
    )


class WeeklyReportModel(Base):
    __tablename__ = "weekly_reports"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    week_start = mapped_column(Date, nullable=False)
    week_end = mapped_column(Date, nullable=False)
    title: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    trends: Mapped[list] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    action_items: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )
    stats: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    missing: Mapped[list] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "week_start", "week_end", name="uq_weekly_reports_user_week"
        ),
        CheckConstraint(
            "status IN ('ok', 'partial', 'awaiting_sync')", name="chk_weekly_reports_status"
        ),
        Index("idx_weekly_reports_user_generated", "user_id", generated_at.desc()),
    )
