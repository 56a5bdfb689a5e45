"""
RecurringEvent — a repeating calendar block ("Mon/Wed/Fri 13:00, 60 min").

days_of_week: JSON-encoded list of ints stored as Text, in the calendar
UI's encoding (0 = Sunday ... 6 = Saturday). NULL means "every N weeks on
the first day of the series".
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Date, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from timebudget.db.base import Base
from timebudget.services.recurrence import Frequency


class RecurringEvent(Base):
    __tablename__ = "recurring_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, comment='"HH:MM"')
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Minutes")
    frequency: Mapped[str] = mapped_column(
        Enum(Frequency, name="recurrence_frequency_enum"), nullable=False
    )
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days_of_week: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array, 0 = Sunday ... 6 = Saturday"
    )
    starts_on: Mapped[date | None] = mapped_column(
        Date, nullable=True, comment="Series anchor; phases interval and counts recurrence_count"
    )
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recurrence_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
