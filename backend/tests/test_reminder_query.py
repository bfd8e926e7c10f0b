"""Tests for find_due_classes: date/weekday branches, cancellation, already-notified exclusion."""

from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.class_record import ClassRecord, ClassType, OneTime, Recurring
from app.models.notification_sent import NotificationSent
from app.services.reminder_query import find_due_classes
from conftest import add_one_time_class, add_recurring_class, add_user

TARGET = date(2026, 12, 2)  # Wednesday
TARGET_WEEKDAY = 3


async def _due_ids(session_maker, target=TARGET, weekday=TARGET_WEEKDAY) -> set[int]:
    async with session_maker() as session:
        return {c.id for c in await find_due_classes(session, target, weekday, tz=timezone.utc)}


@pytest.mark.asyncio
async def test_one_time_class_on_target_date_is_due(session_maker):
    user = await add_user(session_maker)
    cls = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 18, 0, tzinfo=timezone.utc))
    assert await _due_ids(session_maker) == {cls.id}


@pytest.mark.asyncio
async def test_one_time_class_day_edges(session_maker):
    """First and last minute of the target day count; midnight after does not."""
    user = await add_user(session_maker)
    first = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 0, 0, tzinfo=timezone.utc))
    last = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 23, 59, tzinfo=timezone.utc))
    await add_one_time_class(session_maker, user.id, datetime(2026, 12, 3, 0, 0, tzinfo=timezone.utc))
    await add_one_time_class(session_maker, user.id, datetime(2026, 12, 1, 23, 59, tzinfo=timezone.utc))
    assert await _due_ids(session_maker) == {first.id, last.id}


@pytest.mark.asyncio
async def test_one_time_class_only_due_on_its_own_date(session_maker):
    user = await add_user(session_maker)
    cls = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 18, 0, tzinfo=timezone.utc))
    assert await _due_ids(session_maker, date(2026, 12, 1), 2) == set()
    assert await _due_ids(session_maker, date(2026, 12, 9), 3) == set()
    assert await _due_ids(session_maker) == {cls.id}


@pytest.mark.asyncio
async def test_recurring_class_matches_weekday_only(session_maker):
    user = await add_user(session_maker)
    wed = await add_recurring_class(session_maker, user.id, weekday=3)
    await add_recurring_class(session_maker, user.id, weekday=4)
    assert await _due_ids(session_maker) == {wed.id}
    # Any other Wednesday matches as well
    assert await _due_ids(session_maker, date(2026, 12, 9), 3) == {wed.id}


@pytest.mark.asyncio
async def test_cancelled_classes_never_due(session_maker):
    user = await add_user(session_maker)
    await add_one_time_class(
        session_maker, user.id, datetime(2026, 12, 2, 18, 0, tzinfo=timezone.utc), is_cancelled=True
    )
    await add_recurring_class(session_maker, user.id, weekday=3, is_cancelled=True)
    assert await _due_ids(session_maker) == set()


@pytest.mark.asyncio
async def test_already_notified_for_target_date_excluded(session_maker):
    user = await add_user(session_maker)
    one_time = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 18, 0, tzinfo=timezone.utc))
    recurring = await add_recurring_class(session_maker, user.id, weekday=3)
    async with session_maker() as session:
        session.add(NotificationSent(class_id=one_time.id, target_date=TARGET))
        session.add(NotificationSent(class_id=recurring.id, target_date=TARGET))
        await session.commit()
    assert await _due_ids(session_maker) == set()
    # A notification for last week does not block this week's occurrence
    assert await _due_ids(session_maker, date(2026, 12, 9), 3) == {recurring.id}


@pytest.mark.asyncio
async def test_mixed_candidates_are_disjoint(session_maker):
    user = await add_user(session_maker)
    one_time = await add_one_time_class(session_maker, user.id, datetime(2026, 12, 2, 10, 0, tzinfo=timezone.utc))
    recurring = await add_recurring_class(session_maker, user.id, weekday=3)
    async with session_maker() as session:
        due = await find_due_classes(session, TARGET, TARGET_WEEKDAY, tz=timezone.utc)
    assert sorted(c.id for c in due) == sorted([one_time.id, recurring.id])
    assert len(due) == 2


@pytest.mark.asyncio
async def test_notification_unique_per_class_and_date(session_maker):
    user = await add_user(session_maker)
    cls = await add_recurring_class(session_maker, user.id, weekday=3)
    async with session_maker() as session:
        session.add(NotificationSent(class_id=cls.id, target_date=TARGET))
        await session.commit()
    async with session_maker() as session:
        session.add(NotificationSent(class_id=cls.id, target_date=TARGET))
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_recurrence_columns_are_exclusive(session_maker):
    """A one-time row with a weekday set violates the check constraint."""
    user = await add_user(session_maker)
    async with session_maker() as session:
        session.add(
            ClassRecord(
                user_id=user.id,
                title="Broken",
                class_type=ClassType.GROUP.value,
                is_recurring=False,
                date_time=datetime(2026, 12, 2, 18, 0, tzinfo=timezone.utc),
                recurring_day=3,
                recurring_time=time(18, 0),
            )
        )
        with pytest.raises(IntegrityError):
            await session.commit()


def test_recurrence_view():
    one_time = ClassRecord.one_time(
        user_id=1, title="A", class_type=ClassType.ONE_ON_ONE, date_time=datetime(2026, 12, 2, 18, 0)
    )
    recurring = ClassRecord.recurring(user_id=1, title="B", class_type=ClassType.GROUP, weekday=0, time_of_day=time(9, 30))
    assert one_time.recurrence == OneTime(date_time=datetime(2026, 12, 2, 18, 0))
    assert recurring.recurrence == Recurring(weekday=0, time_of_day=time(9, 30))
    assert one_time.type_label == "1-on-1"
    assert recurring.type_label == "group"


def test_recurring_rejects_bad_weekday():
    with pytest.raises(ValueError):
        ClassRecord.recurring(user_id=1, title="B", class_type=ClassType.GROUP, weekday=7, time_of_day=time(9, 0))
