from datetime import datetime
from sqlalchemy import Integer, String, Text, Float, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from timebudget.db.base import Base


class GoalCategory(str, enum.Enum):
    work_startups = "work_startups"
    learning = "learning"
    health_sports = "health_sports"
    hobbies = "hobbies"


class GoalPriority(str, enum.Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class GoalStatus(str, enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    on_hold = "on_hold"
    completed = "completed"
    abandoned = "abandoned"
    ongoing = "ongoing"


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        Enum(GoalCategory, name="goal_category_enum"), nullable=False
    )
    priority: Mapped[str] = mapped_column(
        Enum(GoalPriority, name="goal_priority_enum"),
        nullable=False,
        default=GoalPriority.medium,
    )
    status: Mapped[str] = mapped_column(
        Enum(GoalStatus, name="goal_status_enum"),
        nullable=False,
        default=GoalStatus.not_started,
    )
    time_allocated: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Hours per week"
    )
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
