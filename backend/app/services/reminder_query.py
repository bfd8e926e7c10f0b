"""Select classes that occur on the target date and have not been reminded for it yet."""

import logging
from datetime import date, timezone, tzinfo

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.class_record import ClassRecord
from app.models.notification_sent import NotificationSent
from app.services.occurrence import day_bounds

logger = logging.getLogger(__name__)


def _not_yet_notified(target: date):
    return ~exists().where(
        NotificationSent.class_id == ClassRecord.id,
        NotificationSent.target_date == target,
    )


async def find_due_classes(
    session: AsyncSession,
    target: date,
    target_weekday: int,
    *,
    tz: tzinfo | None = timezone.utc,
) -> list[ClassRecord]:
    """
    Return non-cancelled classes occurring on `target` that have no NotificationSent for it:
    one-time classes whose date_time falls on that day (in tz), plus recurring classes on `target_weekday`.
    The two branches are disjoint (is_recurring), so no class appears twice.
    """
    day_start, day_end = day_bounds(target, tz)

    r_one_time = await session.execute(
        select(ClassRecord).where(
            ClassRecord.is_recurring.is_(False),
            ClassRecord.is_cancelled.is_(False),
            ClassRecord.date_time >= day_start,
            ClassRecord.date_time < day_end,
            _not_yet_notified(target),
        )
    )
    one_time = list(r_one_time.scalars().all())

    r_recurring = await session.execute(
        select(ClassRecord).where(
            ClassRecord.is_recurring.is_(True),
            ClassRecord.is_cancelled.is_(False),
            ClassRecord.recurring_day == target_weekday,
            _not_yet_notified(target),
        )
    )
    recurring = list(r_recurring.scalars().all())

    logger.debug(
        "Reminder query for %s (weekday %s): %s one-time, %s recurring",
        target,
        target_weekday,
        len(one_time),
        len(recurring),
    )
    return one_time + recurring
