"""Outbound email rendering and delivery fallbacks."""

from __future__ import annotations

import logging
import smtplib
from types import SimpleNamespace

from extensions import mail
from services import email_service


def test_verification_email_contents(app):
    with app.app_context(), mail.record_messages() as outbox:
        assert email_service.send_verification_email("new@example.com", "<Sam>", "abc123") is True

    message = outbox[0]
    assert message.subject == "Verify Your Email - SEO Dashboard"
    assert message.sender == "SEO Dashboard <noreply@dashboard.example>"
    assert "https://dashboard.example/verify-email?token=abc123" in message.body
    assert "Welcome, <Sam>!" in message.body
    assert "&lt;Sam&gt;" in message.html
    assert "24 hours" in message.html


def test_password_reset_email_contents(app):
    with app.app_context(), mail.record_messages() as outbox:
        email_service.send_password_reset_email("user@example.com", "reset-token")

    assert outbox[0].recipients == ["user@example.com"]
    assert "https://dashboard.example/reset-password?token=reset-token" in outbox[0].body
    assert "1 hour(s)" in outbox[0].body


def test_admin_notification_derives_plain_text(app):
    user = SimpleNamespace(name=None, email="new@example.com", role="user")

    with app.app_context(), mail.record_messages() as outbox:
        email_service.send_admin_verification_notification("boss@example.com", user)

    assert outbox[0].subject == "User Verified - SEO Dashboard"
    assert "N/A" in outbox[0].body
    assert "<td>" not in outbox[0].body


def test_send_email_logs_when_smtp_is_not_configured(app_factory, caplog):
    app = app_factory(MAIL_SERVER=None)

    with app.app_context(), mail.record_messages() as outbox:
        with caplog.at_level(logging.INFO, logger="services.email_service"):
            sent = email_service.send_email("dev@example.com", "Hello", "<p>Hi</p>")

    assert sent is True
    assert outbox == []
    assert "Email (log fallback)" in caplog.text


def test_send_email_reports_smtp_failures(app, monkeypatch):
    def refuse(message):
        raise smtplib.SMTPRecipientsRefused({"bad@example.com": (550, b"no such user")})

    monkeypatch.setattr(mail, "send", refuse)

    with app.app_context():
        assert email_service.send_email("bad@example.com", "Hello", "<p>Hi</p>") is False
