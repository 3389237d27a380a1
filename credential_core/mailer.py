"""
Mailer
======
Outbound email used to deliver password-reset codes.

``send`` reports success as a bool and never raises for delivery problems;
callers decide what a failed send means. There is no retry here.
"""

import asyncio
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Tuple

import structlog

from .config import SMTPConfig

logger = structlog.get_logger(__name__)

OTP_SUBJECT = "Your OTP for Password Reset"


def render_otp_email(code: str, expiry_seconds: int = 120) -> Tuple[str, str]:
    """
    Build the subject and plain-text body for an OTP email.

    Returns:
        Tuple of (subject, body)
    """
    minutes = max(1, expiry_seconds // 60)
    body = (
        f"Your OTP is: {code}\n\n"
        f"It expires in {minutes} minute{'s' if minutes != 1 else ''}. "
        "If you did not request a password reset, you can ignore this email."
    )
    return OTP_SUBJECT, body


class Mailer(ABC):
    """Delivery contract."""

    @abstractmethod
    async def send(self, to_address: str, subject: str, body: str) -> bool:
        ...


class SMTPMailer(Mailer):
    """Sends plain-text mail over SMTP in a worker thread."""

    def __init__(self, config: SMTPConfig):
        self.config = config

    def _build_message(self, to_address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.config.from_name} <{self.config.from_address}>"
        msg["To"] = to_address
        msg.set_content(body)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        ctx = ssl.create_default_context()
        cfg = self.config

        if cfg.starttls:
            with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as s:
                s.starttls(context=ctx)
                if cfg.username and cfg.password:
                    s.login(cfg.username, cfg.password)
                s.send_message(msg)
        else:
            with smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout, context=ctx) as s:
                if cfg.username and cfg.password:
                    s.login(cfg.username, cfg.password)
                s.send_message(msg)

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        msg = self._build_message(to_address, subject, body)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, msg)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Email delivery failed",
                smtp_host=self.config.host,
                error_type=type(e).__name__,
            )
            return False
