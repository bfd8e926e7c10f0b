"""Email the club when a member says they will skip a class."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from html import escape

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

logger = logging.getLogger(__name__)

FOOTER = "This is an automated notification from Class Reminders."


@dataclass
class SkipEmailResult:
    success: bool
    reason: str | None = None


@dataclass
class SkipEmail:
    subject: str
    plain_text: str
    html: str


def format_class_date(d: date) -> str:
    """e.g. 'Wednesday, December 2, 2026'."""
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def build_skip_message(
    member_email: str,
    member_name: str,
    class_title: str,
    class_date: date,
) -> SkipEmail:
    formatted = format_class_date(class_date)
    fields = (
        ("Member", member_name),
        ("Email", member_email),
        ("Class", class_title),
        ("Scheduled Date", formatted),
    )
    plain_text = (
        "A member has indicated they will skip a class.\n\n"
        + "".join(f"{label}: {value}\n" for label, value in fields)
        + f"\n{FOOTER}"
    )
    rows = "".join(
        f'<tr><td style="padding: 8px; border: 1px solid #ddd;"><strong>{label}</strong></td>'
        f'<td style="padding: 8px; border: 1px solid #ddd;">{escape(value)}</td></tr>'
        for label, value in fields
    )
    html = (
        "<h2>Class Skip Notification</h2>"
        "<p>A member has indicated they will skip a class.</p>"
        f'<table style="border-collapse: collapse; margin: 20px 0;">{rows}</table>'
        f'<p style="color: #666; font-size: 12px;">{FOOTER}</p>'
    )
    return SkipEmail(
        subject=f"Class Skip Notification - {member_name}",
        plain_text=plain_text,
        html=html,
    )


class ClubMailer:
    """SendGrid sender for skip notifications. Returns a result instead of raising."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        club_email: str,
        *,
        from_name: str = "Class Reminders",
        timeout_seconds: float = 15.0,
    ) -> None:
        self._api_key = api_key.strip()
        self._club_email = club_email.strip()
        self._from_email = from_email.strip() or self._club_email
        self._from_name = from_name
        self._timeout = timeout_seconds
        self._client: SendGridAPIClient | None = None

    def _get_client(self) -> SendGridAPIClient | None:
        if self._client is None and self._api_key:
            self._client = SendGridAPIClient(self._api_key)
        return self._client

    def _to_mail(self, email: SkipEmail) -> Mail:
        return Mail(
            from_email=(self._from_email, self._from_name),
            to_emails=self._club_email,
            subject=email.subject,
            plain_text_content=email.plain_text,
            html_content=email.html,
        )

    async def send_skip_notification(
        self,
        member_email: str,
        member_name: str,
        class_title: str,
        class_date: date,
    ) -> SkipEmailResult:
        client = self._get_client()
        if client is None:
            logger.warning("Email not configured (SENDGRID_API_KEY not set) - skipping skip notification email")
            return SkipEmailResult(success=False, reason="Email not configured")
        if not self._club_email:
            logger.warning("CLUB_EMAIL not configured - skipping skip notification email")
            return SkipEmailResult(success=False, reason="Club email not configured")

        mail = self._to_mail(build_skip_message(member_email, member_name, class_title, class_date))
        try:
            # SendGrid's client is blocking and has no timeout of its own
            response = await asyncio.wait_for(asyncio.to_thread(client.send, mail), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Skip notification email timed out after %ss", self._timeout)
            return SkipEmailResult(success=False, reason="Email send timed out")
        except Exception as e:
            logger.error("Failed to send skip notification email: %s", e)
            return SkipEmailResult(success=False, reason=str(e) or type(e).__name__)
        if response.status_code not in (200, 201, 202):
            logger.error("SendGrid rejected skip notification email (HTTP %s)", response.status_code)
            return SkipEmailResult(success=False, reason=f"SendGrid returned HTTP {response.status_code}")
        logger.info("Skip notification email sent to %s for user %s", self._club_email, member_name)
        return SkipEmailResult(success=True)
