import logging
import sys
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.api.v1 import admin, push, reminders

# Ensure app loggers (scheduler, push, email) print to stdout so you see them in the terminal
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logging.getLogger("app").setLevel(logging.DEBUG)
from app.config import settings
from app.db.session import async_session_maker, init_db
from app.services.club_email import ClubMailer
from app.services.clock import SystemClock
from app.services.push_notifications import WebPushTransport
from app.services.reminder_dispatch import NotificationDispatcher
from app.services.reminder_responses import ResponseCorrelator
from app.services.reminder_scheduler import ReminderScheduler
from prometheus_client import make_asgi_app

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def build_response_correlator() -> ResponseCorrelator:
    mailer = ClubMailer(
        settings.sendgrid_api_key,
        settings.email_from,
        settings.club_email,
        from_name=settings.email_from_name,
        timeout_seconds=settings.email_timeout_seconds,
    )
    return ResponseCorrelator(mailer)


def build_reminder_scheduler(transport: WebPushTransport) -> ReminderScheduler:
    tz = ZoneInfo(settings.reminder_timezone)
    dispatcher = NotificationDispatcher(
        async_session_maker,
        transport,
        horizon_days=settings.reminder_horizon_days,
        ttl_seconds=settings.push_ttl_seconds,
        urgency=settings.push_urgency,
    )
    return ReminderScheduler(
        async_session_maker,
        dispatcher,
        SystemClock(tz),
        horizon_days=settings.reminder_horizon_days,
        tz=tz,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_production_config()
    await init_db()
    app.state.response_correlator = build_response_correlator()

    if settings.push_enabled:
        transport = WebPushTransport(
            settings.vapid_private_key,
            settings.vapid_email,
            timeout_seconds=settings.push_timeout_seconds,
        )
        app.state.push_transport = transport
        app.state.reminder_scheduler = build_reminder_scheduler(transport)
        if settings.scheduler_enabled:
            app.state.reminder_scheduler.register(
                scheduler,
                hour=settings.reminder_cron_hour,
                minute=settings.reminder_cron_minute,
            )
            scheduler.start()
    else:
        logger.warning("VAPID keys not configured - push notifications disabled")
    yield
    if scheduler.running:
        scheduler.shutdown()


limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])

app = FastAPI(
    title="Class Reminders API",
    description="Cancellation reminders for classes: push 7 days ahead, attend/skip responses",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if getattr(settings, "enable_hsts", False):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] if settings.cors_origins else ["*"]
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(reminders.router, prefix="/api/v1")
app.include_router(push.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
@limiter.exempt
def health(request: Request):
    return {"status": "ok"}
