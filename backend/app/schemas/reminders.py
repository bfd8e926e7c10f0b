"""Pydantic schemas for reminder responses (attend / skip)."""

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel


class ReminderAnswer(str, Enum):
    ATTEND = "attend"
    SKIP = "skip"


class RespondBody(BaseModel):
    response: ReminderAnswer


class ReminderView(BaseModel):
    """Reminder details for the response screen. Safe to fetch repeatedly."""

    notification_id: int
    class_id: int
    title: str
    class_type: str
    instructor: str | None = None
    is_recurring: bool
    target_date: date
    recurring_time: time | None = None
    date_time: datetime | None = None
    sent_at: datetime | None = None
    already_responded: bool
    previous_response: ReminderAnswer | None = None
    responded_at: datetime | None = None


class ResponseResult(BaseModel):
    success: bool = True
    response: ReminderAnswer
    # None unless response is skip; False with email_error when the club email could not be sent
    email_sent: bool | None = None
    email_error: str | None = None
