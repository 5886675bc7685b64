"""Delivery of one-time passcodes to users.

`SmtpOtpNotifier` sends a plain-text email through aiosmtplib. When SMTP is
not configured, `ConsoleOtpNotifier` writes the code to the log instead so a
developer can complete the login flow locally.
"""

from __future__ import annotations

import email.message
import email.policy
import logging
from typing import Protocol

import aiosmtplib

from bonsai_auth.core.settings import Settings

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your OTP code"


def render_otp_body(code: str, ttl_seconds: int) -> str:
    """Return the plain-text body announcing `code`."""
    minutes = max(1, ttl_seconds // 60)
    return f"Your OTP is {code}. Expires in {minutes} minutes."


class OtpNotifier(Protocol):
    """One-way channel that delivers an OTP to a user."""

    async def send_otp(self, identity: str, code: str) -> None: ...


class ConsoleOtpNotifier:
    """Development notifier that logs the code instead of sending it."""

    async def send_otp(self, identity: str, code: str) -> None:
        logger.info("[DEV EMAIL] To: %s OTP: %s", identity, code)


class SmtpOtpNotifier:
    """Async SMTP notifier using STARTTLS and optional login."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str | None = None,
        timeout: float = 10.0,
        ttl_seconds: int = 300,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username or None
        self.password = password or None
        self.from_email = from_email or username
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, config: Settings) -> SmtpOtpNotifier:
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_user,
            password=config.smtp_pass,
            from_email=config.sender_address,
            timeout=config.smtp_timeout_seconds,
            ttl_seconds=config.otp_ttl_seconds,
        )

    def build_message(self, identity: str, code: str) -> email.message.EmailMessage:
        if not self.from_email:
            raise ValueError("Sender email (SMTP_FROM or SMTP_USER) is required.")
        message = email.message.EmailMessage(policy=email.policy.default)
        message["From"] = self.from_email
        message["To"] = identity
        message["Subject"] = OTP_SUBJECT
        message.set_content(render_otp_body(code, self.ttl_seconds), charset="utf-8")
        return message

    async def send_otp(self, identity: str, code: str) -> None:
        message = self.build_message(identity, code)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=True,
                timeout=self.timeout,
            )
        except aiosmtplib.SMTPException:
            logger.exception("Failed to send OTP email to %s", identity)
            raise
        logger.debug("OTP email sent to %s via %s:%d", identity, self.host, self.port)


def build_notifier(config: Settings) -> OtpNotifier:
    """Select the OTP delivery channel once, based on configuration presence."""
    if config.smtp_configured:
        logger.info("Using SMTP notifier (%s:%d)", config.smtp_host, config.smtp_port)
        return SmtpOtpNotifier.from_settings(config)
    logger.info("SMTP_HOST not set - OTP codes will be written to the log")
    return ConsoleOtpNotifier()
