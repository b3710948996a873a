import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from html import escape

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)

PALETTE = {
    "accent": "#2563EB",
    "text": "#0F172A",
    "muted": "#475569",
    "border": "#E2E8F0",
    "background": "#F8FAFC",
}


@dataclass
class EmailMessage:
    to: str
    subject: str
    body_html: str
    body_text: str

    def to_mime(self, sender: str) -> MimeMessage:
        mime = MimeMessage()
        mime["Subject"] = self.subject
        mime["From"] = sender
        mime["To"] = self.to
        mime.set_content(self.body_text)
        mime.add_alternative(self.body_html, subtype="html")
        return mime


class EmailService(ABC):
    @abstractmethod
    async def send_email(self, message: EmailMessage) -> bool:
        """Hand the message to the backend. False when it was not accepted."""


class ConsoleEmailService(EmailService):
    """Logs the plain text part instead of delivering anything."""

    async def send_email(self, message: EmailMessage) -> bool:
        logger.info("Email to %s: %s\n%s", message.to, message.subject, message.body_text)
        return True


class SMTPEmailService(EmailService):
    def __init__(self, host: str, port: int, username: str, password: str, sender: str):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender

    async def send_email(self, message: EmailMessage) -> bool:
        try:
            await aiosmtplib.send(
                message.to_mime(self.sender),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=True,
            )
        except aiosmtplib.SMTPException:
            logger.error("SMTP delivery to %s failed", message.to, exc_info=True)
            return False
        return True


def get_email_service() -> EmailService:
    if settings.EMAIL_BACKEND == "smtp":
        return SMTPEmailService(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            sender=f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>",
        )
    return ConsoleEmailService()


def paragraph_html(text: str) -> str:
    """Paragraph block. ``text`` is inserted as is, escape user input first."""
    return (
        f'<p style="margin: 0 0 16px 0; font-size: 15px; line-height: 1.6; '
        f'color: {PALETTE["muted"]};">{text}</p>'
    )


def quote_html(text: str) -> str:
    return (
        f'<blockquote style="margin: 0 0 24px 0; padding: 12px 16px; font-style: italic; '
        f'border-left: 3px solid {PALETTE["border"]};">{escape(text)}</blockquote>'
    )


def button_html(url: str, label: str) -> str:
    return (
        f'<a href="{escape(url, quote=True)}" style="display: inline-block; padding: 12px 28px; '
        f"font-weight: 600; color: #ffffff; text-decoration: none; border-radius: 8px; "
        f'background-color: {PALETTE["accent"]};">{escape(label)}</a>'
    )


def render_html(heading: str, *blocks: str) -> str:
    """Lay ``blocks`` out in a single card under ``heading``, signed by the helpdesk."""
    body = "\n".join(blocks)
    return f"""\
<html>
<body style="margin: 0; padding: 32px 0; font-family: Helvetica, Arial, sans-serif;
             background-color: {PALETTE["background"]};">
  <div style="max-width: 600px; margin: 0 auto; padding: 36px; background-color: #ffffff;
              color: {PALETTE["text"]}; border: 1px solid {PALETTE["border"]};
              border-radius: 12px;">
    <h2 style="margin: 0 0 24px 0; font-size: 22px;">{escape(heading)}</h2>
    {body}
    <p style="margin: 24px 0 0 0; font-size: 12px; color: {PALETTE["muted"]};">
      {escape(settings.SMTP_FROM_NAME)}
    </p>
  </div>
</body>
</html>"""
