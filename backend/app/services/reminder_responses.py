"""Map a reminder's notification id back to its class and record the owner's attend/skip answer once."""

import logging
from datetime import date
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.class_record import ClassRecord
from app.models.notification_sent import NotificationSent
from app.models.reminder_response import ReminderResponse
from app.models.user import User
from app.schemas.reminders import ReminderAnswer, ReminderView, ResponseResult
from app.services.club_email import SkipEmailResult

logger = logging.getLogger(__name__)


class ReminderError(Exception):
    """Base for reminder lookup/response errors."""


class ReminderNotFound(ReminderError):
    pass


class ReminderForbidden(ReminderError):
    pass


class AlreadyResponded(ReminderError):
    pass


class SkipNotifier(Protocol):
    async def send_skip_notification(
        self, member_email: str, member_name: str, class_title: str, class_date: date
    ) -> SkipEmailResult: ...


class ResponseCorrelator:
    def __init__(self, skip_notifier: SkipNotifier) -> None:
        self._skip_notifier = skip_notifier

    async def _load_owned(
        self, session: AsyncSession, notification_id: int, user: User
    ) -> tuple[NotificationSent, ClassRecord]:
        r = await session.execute(
            select(NotificationSent, ClassRecord)
            .join(ClassRecord, NotificationSent.class_id == ClassRecord.id)
            .where(NotificationSent.id == notification_id)
        )
        row = r.one_or_none()
        if row is None:
            raise ReminderNotFound(f"Reminder {notification_id} not found")
        notification, class_record = row
        if class_record.user_id != user.id:
            raise ReminderForbidden(f"Reminder {notification_id} does not belong to user {user.id}")
        return notification, class_record

    async def _existing_response(self, session: AsyncSession, notification_id: int) -> ReminderResponse | None:
        r = await session.execute(
            select(ReminderResponse).where(ReminderResponse.notification_id == notification_id)
        )
        return r.scalar_one_or_none()

    async def get_reminder(self, session: AsyncSession, notification_id: int, user: User) -> ReminderView:
        notification, class_record = await self._load_owned(session, notification_id, user)
        existing = await self._existing_response(session, notification_id)
        return ReminderView(
            notification_id=notification.id,
            class_id=class_record.id,
            title=class_record.title,
            class_type=class_record.class_type,
            instructor=class_record.instructor,
            is_recurring=class_record.is_recurring,
            target_date=notification.target_date,
            recurring_time=class_record.recurring_time,
            date_time=class_record.date_time,
            sent_at=notification.sent_at,
            already_responded=existing is not None,
            previous_response=ReminderAnswer(existing.response) if existing else None,
            responded_at=existing.responded_at if existing else None,
        )

    async def submit_response(
        self,
        session: AsyncSession,
        notification_id: int,
        user: User,
        value: ReminderAnswer,
    ) -> ResponseResult:
        """
        Store the answer (write-once) and commit it. For skip, email the club afterwards;
        an email failure is reported in the result and never undoes the stored answer.
        """
        value = ReminderAnswer(value)
        notification, class_record = await self._load_owned(session, notification_id, user)
        if await self._existing_response(session, notification_id) is not None:
            raise AlreadyResponded(f"Reminder {notification_id} already has a response")

        session.add(
            ReminderResponse(
                notification_id=notification.id,
                user_id=user.id,
                class_id=class_record.id,
                response=value.value,
            )
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise AlreadyResponded(f"Reminder {notification_id} already has a response")
        logger.info("Recorded %s response for notification %s (user_id=%s)", value.value, notification_id, user.id)

        result = ResponseResult(response=value)
        if value is ReminderAnswer.SKIP:
            try:
                email = await self._skip_notifier.send_skip_notification(
                    user.email, user.name, class_record.title, notification.target_date
                )
            except Exception as e:
                logger.exception("Skip notification for notification %s failed", notification_id)
                email = SkipEmailResult(success=False, reason=str(e) or type(e).__name__)
            result.email_sent = email.success
            result.email_error = None if email.success else email.reason
        return result
