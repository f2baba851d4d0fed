from __future__ import annotations

import logging
import smtplib
from html import escape
from email.message import EmailMessage

from app.utils.base.errors import EmailDeliveryError
from app.utils.config import Settings


logger = logging.getLogger("campus.notifier")


OTP_TEMPLATE = """
<h1>Welcome to CampusUnify!</h1>
<p>Your verification code is: <strong>{otp}</strong></p>
<p>This code will expire in {minutes} minutes.</p>
"""

RESET_TEMPLATE = """
<p>Hi {name},</p>
<p>You have received this email because a password reset request for your account was received.</p>
<p>Click the link below to reset your password:</p>
<p><a href="{link}">Reset your password</a></p>
<p>This link will expire in {minutes} minutes.</p>
<p>If you did not request a password reset, no further action is required on your part.</p>
"""


class EmailNotifier:
    """Sends account emails over SMTP (implicit TLS).

    Every failure, whether connecting, authenticating or sending, surfaces as
    EmailDeliveryError so callers can run their compensation.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        frontend_url: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 10.0,
        otp_minutes: int = 10,
        reset_minutes: int = 10,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.otp_minutes = otp_minutes
        self.reset_minutes = reset_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailNotifier:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            frontend_url=settings.frontend_url,
            username=settings.smtp_username,
            password=settings.smtp_password,
            timeout=settings.smtp_timeout_seconds,
            otp_minutes=settings.otp_expires_minutes,
            reset_minutes=settings.password_reset_expires_minutes,
        )

    def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Failed to deliver %r to %s: %s", subject, to, exc)
            raise EmailDeliveryError() from exc

    def send_verification_otp(self, to: str, otp: str) -> None:
        self.send(
            to=to,
            subject="Email Verification for CampusUnify",
            html=OTP_TEMPLATE.format(otp=otp, minutes=self.otp_minutes),
        )

    def reset_link(self, token: str) -> str:
        return f"{self.frontend_url}/reset-password/{token}"

    def send_password_reset(self, to: str, name: str, token: str) -> None:
        self.send(
            to=to,
            subject="Password Reset Token",
            html=RESET_TEMPLATE.format(name=escape(name), link=self.reset_link(token), minutes=self.reset_minutes),
        )
