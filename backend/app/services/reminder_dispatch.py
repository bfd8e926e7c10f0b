"""Dispatch one cancellation reminder per (class, target date) and push it to the owner's subscriptions."""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date

from prometheus_client import Counter
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.class_record import ClassRecord
from app.models.notification_sent import NotificationSent
from app.models.push_subscription import PushSubscription
from app.schemas.push import ReminderPushData, ReminderPushPayload
from app.services.push_notifications import DeliveryOutcome, PushTransport

logger = logging.getLogger(__name__)

REMINDER_PUSH_TITLE = "Class Cancellation Reminder"

NOTIFICATIONS_TOTAL = Counter(
    "class_reminder_notifications_total",
    "Reminder notifications recorded per class occurrence",
    ["result"],
)
DELIVERIES_TOTAL = Counter(
    "class_reminder_push_deliveries_total",
    "Web push delivery attempts for class reminders",
    ["outcome"],
)


class DispatchStatus(str, enum.Enum):
    DISPATCHED = "dispatched"
    DUPLICATE = "duplicate"


@dataclass
class DispatchResult:
    status: DispatchStatus
    notification_id: int | None = None
    outcomes: list[DeliveryOutcome] = field(default_factory=list)


def format_reminder_day(d: date) -> str:
    """e.g. 'Wednesday, Dec 2'."""
    return f"{d:%A}, {d:%b} {d.day}"


def build_reminder_payload(
    class_record: ClassRecord,
    target: date,
    notification_id: int,
    horizon_days: int = 7,
) -> ReminderPushPayload:
    body = (
        f'Your {class_record.type_label} class "{class_record.title}" is in {horizon_days} days '
        f"({format_reminder_day(target)}). Today is the last day to cancel without penalty!"
    )
    return ReminderPushPayload(
        title=REMINDER_PUSH_TITLE,
        body=body,
        data=ReminderPushData(
            class_id=class_record.id,
            notification_id=notification_id,
            url=f"/respond/{notification_id}",
        ),
    )


class NotificationDispatcher:
    """
    Records a NotificationSent row, then pushes the reminder to every subscription of the class owner.

    The row is committed before any push goes out: its unique (class_id, target_date) key is the
    only guard against double sends across runs. A duplicate insert means another run already
    handled this occurrence, so nothing is sent. Failed deliveries are not retried; a transport
    exception counts as an error for that subscription and the remaining ones are still tried.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        transport: PushTransport,
        *,
        horizon_days: int = 7,
        ttl_seconds: int = 60,
        urgency: str = "high",
    ) -> None:
        self._session_maker = session_maker
        self._transport = transport
        self._horizon_days = horizon_days
        self._ttl_seconds = ttl_seconds
        self._urgency = urgency

    async def _record_notification(self, class_id: int, target: date) -> int | None:
        async with self._session_maker() as session:
            notification = NotificationSent(class_id=class_id, target_date=target)
            session.add(notification)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return None
            return notification.id

    async def _owner_subscriptions(self, user_id: int) -> list[PushSubscription]:
        async with self._session_maker() as session:
            r = await session.execute(select(PushSubscription).where(PushSubscription.user_id == user_id))
            return list(r.scalars().all())

    async def _remove_subscription(self, subscription_id: int) -> None:
        async with self._session_maker() as session:
            await session.execute(delete(PushSubscription).where(PushSubscription.id == subscription_id))
            await session.commit()

    async def _deliver(self, sub: PushSubscription, payload: ReminderPushPayload) -> DeliveryOutcome:
        try:
            return await self._transport.send(
                sub.endpoint,
                sub.keys,
                payload,
                ttl_seconds=self._ttl_seconds,
                urgency=self._urgency,
            )
        except Exception:
            logger.exception("Push transport raised for subscription %s", sub.id)
            return DeliveryOutcome.ERROR

    async def dispatch(self, class_record: ClassRecord, target: date) -> DispatchResult:
        notification_id = await self._record_notification(class_record.id, target)
        if notification_id is None:
            NOTIFICATIONS_TOTAL.labels(result=DispatchStatus.DUPLICATE.value).inc()
            logger.info("Reminder for class %s on %s already recorded; skipping send", class_record.id, target)
            return DispatchResult(status=DispatchStatus.DUPLICATE)
        NOTIFICATIONS_TOTAL.labels(result=DispatchStatus.DISPATCHED.value).inc()

        payload = build_reminder_payload(class_record, target, notification_id, self._horizon_days)
        subscriptions = await self._owner_subscriptions(class_record.user_id)
        if not subscriptions:
            logger.debug("No push subscription for user_id=%s (class %s)", class_record.user_id, class_record.id)
        outcomes: list[DeliveryOutcome] = []
        for sub in subscriptions:
            outcome = await self._deliver(sub, payload)
            DELIVERIES_TOTAL.labels(outcome=outcome.value).inc()
            outcomes.append(outcome)
            if outcome is DeliveryOutcome.GONE:
                await self._remove_subscription(sub.id)
                logger.info("Removed expired push subscription %s for user_id=%s", sub.id, class_record.user_id)
            elif outcome is DeliveryOutcome.ERROR:
                logger.warning(
                    "Reminder push failed for class %s (notification %s) to user_id=%s; not retried",
                    class_record.id,
                    notification_id,
                    class_record.user_id,
                )

        logger.info(
            "Sent reminder for class %s (notification %s) to user_id=%s",
            class_record.id,
            notification_id,
            class_record.user_id,
        )
        return DispatchResult(status=DispatchStatus.DISPATCHED, notification_id=notification_id, outcomes=outcomes)
