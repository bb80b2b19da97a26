"""
Mail transports: SMTP (gmail app password by default) or AWS SES when MAIL_BACKEND=ses.
Both libraries block, so sends run in a thread.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from purevia.config import Settings
from purevia.errors import NotificationFailure

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(self, host: str, port: int, user: str | None, password: str | None, from_name: str) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_name = from_name

    def _send(self, to: str, subject: str, html: str, reply_to: str | None) -> None:
        msg = EmailMessage()
        msg["From"] = formataddr((self.from_name, self.user or ""))
        msg["To"] = to
        msg["Subject"] = subject
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, html: str, reply_to: str | None = None) -> None:
        try:
            await asyncio.to_thread(self._send, to, subject, html, reply_to)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationFailure(f"Could not send mail to {to}: {e}") from e


class SesMailer:
    def __init__(self, region: str, sender: str | None, from_name: str) -> None:
        self.region = region
        self.sender = sender
        self.from_name = from_name
        self._client: Any = None

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("ses", region_name=self.region)
        return self._client

    async def send(self, to: str, subject: str, html: str, reply_to: str | None = None) -> None:
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "Source": formataddr((self.from_name, self.sender or "")),
            "Destination": {"ToAddresses": [to]},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Html": {"Data": html, "Charset": "UTF-8"}},
            },
        }
        if reply_to:
            kwargs["ReplyToAddresses"] = [reply_to]
        try:
            await asyncio.to_thread(client.send_email, **kwargs)
        except (BotoCoreError, ClientError) as e:
            raise NotificationFailure(f"Could not send mail to {to}: {e}") from e


def make_mailer(settings: Settings):
    if settings.mail_backend == "ses":
        return SesMailer(settings.aws_region, settings.email_user, settings.mail_from_name)
    if not settings.email_user:
        logger.warning("EMAIL_USER not set; SMTP sends will go out without authentication")
    return SmtpMailer(
        settings.smtp_host,
        settings.smtp_port,
        settings.email_user,
        settings.email_pass,
        settings.mail_from_name,
    )
