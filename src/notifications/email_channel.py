"""EmailAlertChannel — emergency-contact alerts over SMTP."""

from __future__ import annotations

import logging
import zoneinfo
from email.message import EmailMessage
from typing import TYPE_CHECKING

import aiosmtplib

from src.notifications.channels import EmergencyAlert

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

ALERT_HOTLINES = (
    ("AASRA", "91-9820466726"),
    ("Vandrevala Foundation", "1860-2662-345"),
    ("Emergency", "108"),
)


def render_alert_body(alert: EmergencyAlert, timezone: str = "Asia/Kolkata") -> str:
    """Plain-text body of the alert email."""
    try:
        tz = zoneinfo.ZoneInfo(timezone)
    except zoneinfo.ZoneInfoNotFoundError:
        logger.warning("Unknown alert timezone %r, using UTC", timezone)
        tz = zoneinfo.ZoneInfo("UTC")
    when = alert.timestamp.astimezone(tz).strftime("%d/%m/%Y, %I:%M:%S %p %Z")
    hotlines = "\n".join(f"- {name}: {number}" for name, number in ALERT_HOTLINES)
    name = alert.user_name

    return f"""\
URGENT: Mental Health Emergency Alert

{name} ({alert.user_email}) has expressed concerning thoughts that may indicate a crisis.

Time: {when}

IMMEDIATE ACTION REQUIRED:
1. Contact {name} RIGHT NOW - call, text, or visit in person
2. Do NOT leave them alone
3. Remove any means of self-harm
4. Call crisis hotlines or emergency services if needed

24/7 CRISIS HOTLINES:
{hotlines}

IF IN IMMEDIATE DANGER:
- Call 108 (ambulance)
- Go to nearest hospital emergency room
- Contact campus security

This is an automated alert from the Mindline student support chat.
"""


class EmailAlertChannel:
    """Sends alerts with ``aiosmtplib``: implicit TLS on 465, STARTTLS otherwise.

    Missing SMTP configuration is not an error at startup; each send
    attempt logs and returns False instead.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        timezone: str = "Asia/Kolkata",
        timeout_s: float = 15.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._sender = sender or username
        self._timezone = timezone
        self._timeout = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailAlertChannel:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            sender=settings.smtp_from,
            timezone=settings.alert_timezone,
        )

    @property
    def name(self) -> str:
        return "email"

    @property
    def configured(self) -> bool:
        return bool(self._host and self._username and self._password)

    def build_message(self, alert: EmergencyAlert) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = alert.contact_email
        msg["Subject"] = f"URGENT: Emergency Alert for {alert.user_name}"
        msg["X-Priority"] = "1"
        msg["Importance"] = "high"
        msg.set_content(render_alert_body(alert, self._timezone))
        return msg

    async def _send(self, msg: EmailMessage) -> None:
        implicit_tls = self._port == 465
        await aiosmtplib.send(
            msg,
            hostname=self._host,
            port=self._port,
            username=self._username,
            password=self._password,
            use_tls=implicit_tls,
            start_tls=not implicit_tls,
            timeout=self._timeout,
        )

    async def send_emergency_alert(self, alert: EmergencyAlert) -> bool:
        if not self.configured:
            logger.error("Emergency alert not sent — SMTP host or credentials missing")
            return False
        if not alert.contact_email:
            logger.warning("Emergency alert not sent — no contact address")
            return False

        try:
            await self._send(self.build_message(alert))
        except Exception:
            logger.exception("Emergency alert to %s failed", alert.contact_email)
            return False
        logger.info("Emergency alert sent to %s", alert.contact_email)
        return True
