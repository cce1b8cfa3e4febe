"""Utilities for sending account emails."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from account_core.core.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be delivered."""


def _build_message(recipient: str, subject: str, text: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.email_sender
    message["To"] = recipient
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def build_confirmation_email(recipient: str, confirmation_link: str) -> EmailMessage:
    """Construct the email-address confirmation message."""

    return _build_message(
        recipient,
        "Confirm your account",
        (
            "Thanks for signing up!\n\n"
            "Please confirm your email address by opening the link below:\n"
            f"{confirmation_link}\n\n"
            "If you did not create this account, you can ignore this email."
        ),
        (
            "<p>Thanks for signing up!</p>"
            "<p>Please confirm your email address by clicking the button below.</p>"
            f"<p><a href=\"{confirmation_link}\">Confirm my email</a></p>"
            "<p>If you did not create this account, you can ignore this email.</p>"
        ),
    )


def build_password_reset_email(recipient: str, reset_link: str) -> EmailMessage:
    """Construct the password reset message."""

    minutes = settings.password_reset_token_expire_minutes
    return _build_message(
        recipient,
        "Reset your password",
        (
            "We received a request to reset your password.\n\n"
            f"Open the link below within {minutes} minutes to choose a new one:\n"
            f"{reset_link}\n\n"
            "If you did not ask for a reset, you can ignore this email."
        ),
        (
            "<p>We received a request to reset your password.</p>"
            f"<p>The link below is valid for {minutes} minutes.</p>"
            f"<p><a href=\"{reset_link}\">Choose a new password</a></p>"
            "<p>If you did not ask for a reset, you can ignore this email.</p>"
        ),
    )


def send_email(message: EmailMessage) -> None:
    """Send an email using the configured SMTP server."""

    host = settings.smtp_host
    port = settings.smtp_port
    username = settings.smtp_username or None
    password = settings.smtp_password or None

    try:
        with smtplib.SMTP(host=host, port=port) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError("Failed to send email") from exc


def _deliver(message: EmailMessage) -> None:
    # Runs as a background task after the response is sent; nothing can be
    # reported back to the client at that point.
    try:
        send_email(message)
    except EmailDeliveryError:
        logger.exception("Could not deliver '%s' email", message["Subject"])


def send_confirmation_email(recipient: str, confirmation_link: str) -> None:
    _deliver(build_confirmation_email(recipient, confirmation_link))


def send_password_reset_email(recipient: str, reset_link: str) -> None:
    _deliver(build_password_reset_email(recipient, reset_link))


__all__ = [
    "EmailDeliveryError",
    "build_confirmation_email",
    "build_password_reset_email",
    "send_confirmation_email",
    "send_email",
    "send_password_reset_email",
]
