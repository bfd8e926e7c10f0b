from app.models.user import User
from app.models.class_record import ClassRecord
from app.models.notification_sent import NotificationSent
from app.models.reminder_response import ReminderResponse
from app.models.push_subscription import PushSubscription

__all__ = [
    "User",
    "ClassRecord",
    "NotificationSent",
    "ReminderResponse",
    "PushSubscription",
]
