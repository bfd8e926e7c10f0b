"""Daily reminder run: find classes 7 days out and dispatch one reminder per occurrence."""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import date, tzinfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.clock import Clock
from app.services.occurrence import target_date, weekday_of
from app.services.reminder_dispatch import DispatchStatus, NotificationDispatcher
from app.services.reminder_query import find_due_classes

logger = logging.getLogger(__name__)

JOB_ID = "class_reminders"


@dataclass
class ReminderRunSummary:
    target_date: date
    target_weekday: int
    candidates: int = 0
    dispatched: int = 0
    duplicates: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["target_date"] = self.target_date.isoformat()
        return d


class ReminderScheduler:
    """Timer job and manual trigger share run_once(); runs never overlap."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        dispatcher: NotificationDispatcher,
        clock: Clock,
        *,
        horizon_days: int = 7,
        tz: tzinfo | None = None,
    ) -> None:
        self._session_maker = session_maker
        self._dispatcher = dispatcher
        self._clock = clock
        self._horizon_days = horizon_days
        self._tz = tz
        self._lock = asyncio.Lock()

    async def run_once(self) -> ReminderRunSummary:
        async with self._lock:
            now = self._clock.now()
            if self._tz is not None and now.tzinfo is not None:
                now = now.astimezone(self._tz)
            target = target_date(now, self._horizon_days)
            summary = ReminderRunSummary(target_date=target, target_weekday=weekday_of(target))
            logger.info("Running reminder check for %s (weekday %s)", target, summary.target_weekday)

            async with self._session_maker() as session:
                candidates = await find_due_classes(session, target, summary.target_weekday, tz=self._tz or now.tzinfo)
            summary.candidates = len(candidates)
            logger.info("Found %s classes needing reminders", summary.candidates)

            for class_record in candidates:
                try:
                    result = await self._dispatcher.dispatch(class_record, target)
                except Exception:
                    summary.failed += 1
                    logger.exception("Reminder dispatch failed for class %s on %s", class_record.id, target)
                    continue
                if result.status is DispatchStatus.DUPLICATE:
                    summary.duplicates += 1
                else:
                    summary.dispatched += 1

            logger.info(
                "Reminder check complete for %s: %s dispatched, %s duplicates, %s failed",
                target,
                summary.dispatched,
                summary.duplicates,
                summary.failed,
            )
            return summary

    async def _scheduled_run(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("Scheduled reminder check failed")

    def register(self, scheduler: AsyncIOScheduler, *, hour: int = 9, minute: int = 0) -> None:
        """Add the daily cron job (wall-clock hour in the reminder timezone)."""
        scheduler.add_job(
            self._scheduled_run,
            "cron",
            hour=hour,
            minute=minute,
            timezone=self._tz,
            id=JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info("Reminder scheduler registered: daily at %02d:%02d", hour, minute)
