"""Push payloads and subscription bodies for the Web Push API."""

from typing import Literal

from pydantic import BaseModel, Field


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscribeBody(BaseModel):
    """Browser PushSubscription.toJSON() shape."""

    endpoint: str = Field(..., min_length=1)
    keys: PushKeys


class ReminderPushData(BaseModel):
    class_id: int
    notification_id: int
    url: str


class ReminderPushPayload(BaseModel):
    """Cancellation reminder for one class occurrence. `url` routes the user to the response screen."""

    kind: Literal["class_reminder"] = "class_reminder"
    title: str
    body: str
    data: ReminderPushData


class PingPushPayload(BaseModel):
    kind: Literal["test"] = "test"
    title: str
    body: str
    url: str = "/dashboard"


PushPayload = ReminderPushPayload | PingPushPayload
