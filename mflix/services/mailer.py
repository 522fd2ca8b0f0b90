"""
Best-effort account and subscription emails over SMTP.
Delivery runs as a background task after the response; a failed send is logged and dropped.
"""
import logging
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
import aiosmtplib
from mflix.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        sender: str = "",
        start_tls: bool = True,
        send=aiosmtplib.send,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.start_tls = start_tls
        self._send = send

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        sender = settings.mail_from_address or settings.smtp_username
        if sender and settings.mail_from_name:
            sender = formataddr((settings.mail_from_name, sender))
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_username,
            settings.smtp_password,
            sender,
            settings.smtp_start_tls,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    async def deliver(self, to: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.debug("Mail disabled, not sending %r to %s", subject, to)
            return False

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)
        try:
            await self._send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.start_tls,
                timeout=20,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Email %r to %s failed: %s", subject, to, e)
            return False
        return True

    async def send_welcome(self, to: str, name: str) -> bool:
        return await self.deliver(
            to,
            "Welcome to mflix",
            f"Hi {name}! Welcome to mflix. Your account has been created successfully.",
        )

    async def send_subscription_activated(self, to: str, name: str, plan: str, end_date: datetime) -> bool:
        return await self.deliver(
            to,
            "Subscription activated - mflix",
            f"Hi {name}, your {plan} subscription is now active until {end_date.isoformat()}.",
        )

    async def send_subscription_cancelled(self, to: str, name: str) -> bool:
        return await self.deliver(
            to,
            "Subscription cancelled - mflix",
            f"Hi {name}, your subscription has been cancelled.",
        )


def get_mailer() -> Mailer:
    return Mailer.from_settings(get_settings())
