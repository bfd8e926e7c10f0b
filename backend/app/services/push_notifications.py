"""Web Push delivery (VAPID) to browser subscriptions via pywebpush."""

import asyncio
import enum
import json
import logging
from typing import Any, Protocol

from pywebpush import WebPushException, webpush

from app.schemas.push import PingPushPayload, PushPayload, ReminderPushPayload

logger = logging.getLogger(__name__)

# Push service responses meaning the subscription will never work again
GONE_STATUS_CODES = frozenset({404, 410})


class DeliveryOutcome(str, enum.Enum):
    OK = "ok"
    GONE = "gone"
    ERROR = "error"


class PushTransport(Protocol):
    async def send(
        self,
        endpoint: str,
        keys: dict[str, str],
        payload: PushPayload,
        *,
        ttl_seconds: int,
        urgency: str,
    ) -> DeliveryOutcome: ...


def to_web_push_json(payload: PushPayload) -> dict[str, Any]:
    """Wire shape read by the service worker: title, body, data (classId, notificationId, url)."""
    if isinstance(payload, ReminderPushPayload):
        return {
            "title": payload.title,
            "body": payload.body,
            "data": {
                "classId": payload.data.class_id,
                "notificationId": payload.data.notification_id,
                "url": payload.data.url,
            },
        }
    if isinstance(payload, PingPushPayload):
        return {"title": payload.title, "body": payload.body, "data": {"url": payload.url}}
    raise TypeError(f"Unsupported push payload: {type(payload).__name__}")


class WebPushTransport:
    """Sends one encrypted Web Push message per call. Never raises; the outcome says what happened."""

    def __init__(
        self,
        vapid_private_key: str,
        vapid_email: str,
        *,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._vapid_private_key = vapid_private_key.strip()
        self._vapid_sub = "mailto:" + vapid_email
        self._timeout = timeout_seconds

    def _send_blocking(self, endpoint: str, keys: dict[str, str], data: str, ttl_seconds: int, urgency: str) -> None:
        webpush(
            subscription_info={"endpoint": endpoint, "keys": keys},
            data=data,
            vapid_private_key=self._vapid_private_key,
            # webpush() adds aud/exp to the claims dict, so pass a fresh one
            vapid_claims={"sub": self._vapid_sub},
            ttl=ttl_seconds,
            headers={"Urgency": urgency},
            timeout=self._timeout,
        )

    async def send(
        self,
        endpoint: str,
        keys: dict[str, str],
        payload: PushPayload,
        *,
        ttl_seconds: int = 60,
        urgency: str = "high",
    ) -> DeliveryOutcome:
        data = json.dumps(to_web_push_json(payload))
        try:
            # wait_for does not stop the worker thread; webpush(timeout=) does, so give it 1s to fire first
            await asyncio.wait_for(
                asyncio.to_thread(self._send_blocking, endpoint, keys, data, ttl_seconds, urgency),
                timeout=self._timeout + 1,
            )
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            if status in GONE_STATUS_CODES:
                logger.info("Web push endpoint gone (HTTP %s): %s", status, endpoint[:80])
                return DeliveryOutcome.GONE
            logger.warning("Web push send failed (HTTP %s): %s", status, e)
            return DeliveryOutcome.ERROR
        except asyncio.TimeoutError:
            logger.warning("Web push send timed out after %ss: %s", self._timeout, endpoint[:80])
            return DeliveryOutcome.ERROR
        except Exception as e:
            logger.warning("Web push send failed: %s", e)
            return DeliveryOutcome.ERROR
        return DeliveryOutcome.OK
