"""Admin actions: manual reminder run."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_reminder_scheduler, require_admin
from app.models.user import User
from app.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/trigger-reminders",
    summary="Run the reminder check now",
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Admin only"},
        503: {"description": "Push not configured"},
    },
)
async def trigger_reminders(
    admin: Annotated[User, Depends(require_admin)],
    scheduler: Annotated[ReminderScheduler, Depends(get_reminder_scheduler)],
) -> dict:
    """Same code path as the daily job. Per-class failures are logged, not reported here."""
    logger.info("Manual reminder check triggered by user_id=%s", admin.id)
    summary = await scheduler.run_once()
    return {"success": True, "message": "Reminder check triggered", "summary": summary.to_dict()}
