"""Web Push subscription management: VAPID key, subscribe, unsubscribe, status, test push."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_push_transport
from app.config import settings
from app.db.session import get_db
from app.models.push_subscription import PushSubscription
from app.models.user import User
from app.schemas.push import PingPushPayload, PushSubscribeBody
from app.services.push_notifications import DeliveryOutcome, PushTransport

router = APIRouter(prefix="/push", tags=["push"])

TEST_PUSH_TITLE = "Test Notification"
TEST_PUSH_BODY = "Push notifications are working! You will receive reminders 7 days before your classes."


def lock_user_row(user_id: int):
    """SELECT ... FOR UPDATE on the user row; concurrent subscribes for one user run one after another."""
    return select(User.id).where(User.id == user_id).with_for_update()


@router.get("/vapid-public-key", summary="VAPID public key for PushManager.subscribe")
async def get_vapid_public_key(
    user: Annotated[User, Depends(get_current_user)],
) -> dict:
    return {"publicKey": settings.vapid_public_key or None}


@router.post(
    "/subscribe",
    summary="Save push subscription",
    responses={401: {"description": "Not authenticated"}},
)
async def subscribe(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    body: PushSubscribeBody,
) -> dict:
    """Replace the current user's subscription (one per user)."""
    await session.execute(lock_user_row(user.id))
    await session.execute(delete(PushSubscription).where(PushSubscription.user_id == user.id))
    session.add(
        PushSubscription(
            user_id=user.id,
            endpoint=body.endpoint.strip(),
            p256dh=body.keys.p256dh,
            auth=body.keys.auth,
        )
    )
    await session.flush()
    return {"success": True}


@router.delete("/unsubscribe", summary="Remove push subscription")
async def unsubscribe(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
) -> dict:
    await session.execute(delete(PushSubscription).where(PushSubscription.user_id == user.id))
    return {"success": True}


@router.get("/status", summary="Whether the current user has a push subscription")
async def push_status(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
) -> dict:
    r = await session.execute(select(PushSubscription.id).where(PushSubscription.user_id == user.id).limit(1))
    return {"subscribed": r.scalar_one_or_none() is not None}


@router.post(
    "/test",
    summary="Send a test push to the current user",
    responses={
        400: {"description": "No subscription"},
        502: {"description": "Push service rejected the message"},
        503: {"description": "Push not configured"},
    },
)
async def send_test_push(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    transport: Annotated[PushTransport | None, Depends(get_push_transport)],
) -> dict:
    if transport is None:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    r = await session.execute(select(PushSubscription).where(PushSubscription.user_id == user.id).limit(1))
    sub = r.scalar_one_or_none()
    if sub is None:
        raise HTTPException(status_code=400, detail="No push subscription found. Enable notifications first.")
    outcome = await transport.send(
        sub.endpoint,
        sub.keys,
        PingPushPayload(title=TEST_PUSH_TITLE, body=TEST_PUSH_BODY),
        ttl_seconds=settings.push_ttl_seconds,
        urgency=settings.push_urgency,
    )
    if outcome is DeliveryOutcome.GONE:
        await session.delete(sub)
        await session.commit()
        raise HTTPException(status_code=400, detail="Push subscription expired. Enable notifications again.")
    if outcome is DeliveryOutcome.ERROR:
        raise HTTPException(status_code=502, detail="Failed to send notification")
    return {"success": True, "message": "Test notification sent!"}
