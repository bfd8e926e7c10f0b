"""Reminder response screen: view a reminder and answer attend / skip."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_response_correlator
from app.db.session import get_db
from app.models.user import User
from app.schemas.reminders import ReminderView, RespondBody, ResponseResult
from app.services.reminder_responses import (
    AlreadyResponded,
    ReminderError,
    ReminderForbidden,
    ReminderNotFound,
    ResponseCorrelator,
)

router = APIRouter(prefix="/reminders", tags=["reminders"])


def _to_http_error(e: ReminderError) -> HTTPException:
    if isinstance(e, ReminderNotFound):
        return HTTPException(status_code=404, detail="Reminder not found")
    if isinstance(e, ReminderForbidden):
        return HTTPException(status_code=403, detail="Access denied")
    if isinstance(e, AlreadyResponded):
        return HTTPException(status_code=409, detail="Already responded to this reminder")
    return HTTPException(status_code=400, detail=str(e))


@router.get(
    "/{notification_id}",
    response_model=ReminderView,
    summary="Get reminder details",
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Reminder belongs to another user"},
        404: {"description": "Reminder not found"},
    },
)
async def get_reminder(
    notification_id: int,
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    correlator: Annotated[ResponseCorrelator, Depends(get_response_correlator)],
) -> ReminderView:
    """Class and occurrence details plus any previous answer."""
    try:
        return await correlator.get_reminder(session, notification_id, user)
    except ReminderError as e:
        raise _to_http_error(e)


@router.post(
    "/{notification_id}/respond",
    response_model=ResponseResult,
    summary="Answer a reminder (attend or skip)",
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Reminder belongs to another user"},
        404: {"description": "Reminder not found"},
        409: {"description": "Already responded"},
    },
)
async def respond_to_reminder(
    notification_id: int,
    body: RespondBody,
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    correlator: Annotated[ResponseCorrelator, Depends(get_response_correlator)],
) -> ResponseResult:
    """Record the answer once. A skip also emails the club; email problems come back in email_error."""
    try:
        return await correlator.submit_response(session, notification_id, user, body.response)
    except ReminderError as e:
        raise _to_http_error(e)
