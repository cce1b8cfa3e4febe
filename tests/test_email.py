"""Tests for the account email helpers."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, patch

import pytest

from account_core.services.email import (
    EmailDeliveryError,
    build_confirmation_email,
    build_password_reset_email,
    send_confirmation_email,
    send_email,
    send_password_reset_email,
)


def _message() -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "Test"
    message["From"] = "sender@example.com"
    message["To"] = "recipient@example.com"
    message.set_content("Test content")
    return message


def test_build_confirmation_email() -> None:
    recipient = "test@example.com"
    confirmation_link = "https://example.com/confirm?token=abc123"

    message = build_confirmation_email(recipient, confirmation_link)

    assert isinstance(message, EmailMessage)
    assert message["To"] == recipient
    assert message["Subject"] == "Confirm your account"
    assert confirmation_link in message.get_body(preferencelist=("plain",)).get_content()


def test_build_password_reset_email() -> None:
    reset_link = "https://example.com/password/reset?token=r3set"

    message = build_password_reset_email("test@example.com", reset_link)

    assert message["Subject"] == "Reset your password"
    assert reset_link in message.get_body(preferencelist=("plain",)).get_content()
    assert reset_link in message.get_body(preferencelist=("html",)).get_content()


def test_send_email_with_tls() -> None:
    message = _message()

    with patch("smtplib.SMTP") as mock_smtp_class:
        with patch("account_core.services.email.settings") as mock_settings:
            mock_settings.smtp_host = "smtp.example.com"
            mock_settings.smtp_port = 587
            mock_settings.smtp_username = "user"
            mock_settings.smtp_password = "pass"
            mock_settings.smtp_use_tls = True

            mock_smtp = MagicMock()
            mock_smtp_class.return_value.__enter__.return_value = mock_smtp

            send_email(message)

            mock_smtp_class.assert_called_once_with(host="smtp.example.com", port=587)
            mock_smtp.starttls.assert_called_once()
            mock_smtp.login.assert_called_once_with("user", "pass")
            mock_smtp.send_message.assert_called_once_with(message)


def test_send_email_without_auth() -> None:
    message = _message()

    with patch("smtplib.SMTP") as mock_smtp_class:
        with patch("account_core.services.email.settings") as mock_settings:
            mock_settings.smtp_host = "smtp.example.com"
            mock_settings.smtp_port = 25
            mock_settings.smtp_username = None
            mock_settings.smtp_password = None
            mock_settings.smtp_use_tls = False

            mock_smtp = MagicMock()
            mock_smtp_class.return_value.__enter__.return_value = mock_smtp

            send_email(message)

            mock_smtp.starttls.assert_not_called()
            mock_smtp.login.assert_not_called()
            mock_smtp.send_message.assert_called_once_with(message)


def test_send_email_wraps_smtp_errors() -> None:
    with patch("smtplib.SMTP") as mock_smtp_class:
        mock_smtp_class.return_value.__enter__.return_value.send_message.side_effect = (
            smtplib.SMTPException("rejected")
        )

        with pytest.raises(EmailDeliveryError):
            send_email(_message())


def test_send_email_wraps_connection_errors() -> None:
    with patch("smtplib.SMTP", side_effect=ConnectionRefusedError()):
        with pytest.raises(EmailDeliveryError):
            send_email(_message())


def test_send_confirmation_email() -> None:
    recipient = "test@example.com"
    confirmation_link = "https://example.com/confirm?token=xyz789"

    with patch("account_core.services.email.send_email") as mock_send:
        send_confirmation_email(recipient, confirmation_link)

        mock_send.assert_called_once()
        message = mock_send.call_args[0][0]
        assert message["To"] == recipient
        assert message["Subject"] == "Confirm your account"


def test_background_delivery_failure_is_logged(caplog) -> None:
    with patch("account_core.services.email.send_email", side_effect=EmailDeliveryError("down")):
        send_password_reset_email("test@example.com", "https://example.com/reset?token=t")

    assert "Could not deliver 'Reset your password' email" in caplog.text
