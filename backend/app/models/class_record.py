"""A user's class: either one-time (absolute date_time) or weekly recurring (weekday + time of day)."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, time, timezone
from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base


class ClassType(str, enum.Enum):
    ONE_ON_ONE = "one_on_one"
    GROUP = "group"

    @property
    def label(self) -> str:
        return "1-on-1" if self is ClassType.ONE_ON_ONE else "group"


@dataclass(frozen=True)
class OneTime:
    date_time: datetime


@dataclass(frozen=True)
class Recurring:
    weekday: int  # 0 = Sunday .. 6 = Saturday
    time_of_day: time


Recurrence = OneTime | Recurring


class ClassRecord(Base):
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint(
            "(is_recurring AND date_time IS NULL AND recurring_day IS NOT NULL AND recurring_time IS NOT NULL)"
            " OR (NOT is_recurring AND date_time IS NOT NULL AND recurring_day IS NULL AND recurring_time IS NULL)",
            name="ck_classes_recurrence_exclusive",
        ),
        CheckConstraint("recurring_day IS NULL OR (recurring_day >= 0 AND recurring_day <= 6)", name="ck_classes_recurring_day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    class_type: Mapped[str] = mapped_column(String(16), nullable=False)  # one_on_one | group
    instructor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    date_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    recurring_day: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    recurring_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    user: Mapped["User"] = relationship("User", back_populates="classes")
    notifications: Mapped[list["NotificationSent"]] = relationship(
        "NotificationSent", back_populates="class_record", cascade="all, delete-orphan"
    )

    @classmethod
    def one_time(cls, *, user_id: int, title: str, class_type: ClassType, date_time: datetime, **kwargs) -> ClassRecord:
        return cls(
            user_id=user_id,
            title=title,
            class_type=class_type.value,
            is_recurring=False,
            date_time=date_time,
            **kwargs,
        )

    @classmethod
    def recurring(
        cls, *, user_id: int, title: str, class_type: ClassType, weekday: int, time_of_day: time, **kwargs
    ) -> ClassRecord:
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be 0..6 (Sunday=0), got {weekday}")
        return cls(
            user_id=user_id,
            title=title,
            class_type=class_type.value,
            is_recurring=True,
            recurring_day=weekday,
            recurring_time=time_of_day,
            **kwargs,
        )

    @property
    def recurrence(self) -> Recurrence:
        """Typed view of the recurrence columns. Raises if the row violates the exclusive-recurrence rule."""
        if self.is_recurring:
            if self.recurring_day is None or self.recurring_time is None or self.date_time is not None:
                raise ValueError(f"class {self.id}: recurring class needs weekday and time only")
            return Recurring(weekday=self.recurring_day, time_of_day=self.recurring_time)
        if self.date_time is None or self.recurring_day is not None or self.recurring_time is not None:
            raise ValueError(f"class {self.id}: one-time class needs date_time only")
        return OneTime(date_time=self.date_time)

    @property
    def type_label(self) -> str:
        try:
            return ClassType(self.class_type).label
        except ValueError:
            return self.class_type
