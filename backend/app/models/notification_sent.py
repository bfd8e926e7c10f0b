"""One row per (class, target date) reminder. The unique key is what makes dispatch at-most-once."""

from __future__ import annotations

from datetime import date, datetime, timezone
from sqlalchemy import Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class NotificationSent(Base):
    __tablename__ = "notifications_sent"
    __table_args__ = (
        UniqueConstraint("class_id", "target_date", name="uq_notifications_sent_class_target_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    class_record: Mapped["ClassRecord"] = relationship("ClassRecord", back_populates="notifications")
    response: Mapped["ReminderResponse | None"] = relationship(
        "ReminderResponse", back_populates="notification", uselist=False, cascade="all, delete-orphan"
    )
