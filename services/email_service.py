"""Outbound email through Flask-Mail.

When no ``MAIL_SERVER`` is configured messages are written to the log
instead, so local development works without SMTP credentials.
"""

from __future__ import annotations

import logging
import re
import smtplib
from datetime import UTC, datetime

from flask import current_app
from flask_mail import Message
from markupsafe import escape

from extensions import mail

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"<[^>]*>")


def _brand() -> str:
    return current_app.config.get("MAIL_BRAND_NAME", "SEO Dashboard")


def _link(path: str, token: str) -> str:
    base_url = current_app.config.get("APP_BASE_URL", "http://localhost:3000").rstrip("/")
    return f"{base_url}/{path}?token={token}"


def _wrap_html(title: str, body: str) -> str:
    brand = escape(_brand())
    year = datetime.now(UTC).year
    return (
        "<!DOCTYPE html>"
        '<html><head><meta charset="utf-8">'
        f"<title>{escape(title)}</title></head>"
        '<body style="font-family:Helvetica,Arial,sans-serif;background:#f4f4f5;padding:32px;">'
        '<div style="max-width:560px;margin:0 auto;background:#ffffff;border-radius:12px;padding:32px;">'
        f'<h1 style="font-size:22px;margin:0 0 24px;">{brand}</h1>'
        f"{body}"
        '<hr style="margin:28px 0;border:none;border-top:1px solid #e5e7eb;">'
        f'<p style="color:#9ca3af;font-size:12px;">&copy; {year} {brand}. All rights reserved.</p>'
        "</div></body></html>"
    )


def send_email(to: str, subject: str, html: str, text: str | None = None) -> bool:
    """Send one message; returns False instead of raising on SMTP failure."""

    body = text or _TAG_PATTERN.sub("", html)

    if not current_app.config.get("MAIL_SERVER"):
        logger.info(
            "Email (log fallback)",
            extra={"to": to, "subject": subject, "preview": body[:200]},
        )
        return True

    sender = (_brand(), current_app.config.get("MAIL_DEFAULT_SENDER"))
    message = Message(subject=subject, recipients=[to], html=html, body=body, sender=sender)
    try:
        mail.send(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(
            "Failed to send email",
            extra={"to": to, "subject": subject, "error": str(exc)},
        )
        return False

    logger.info("Email sent successfully", extra={"to": to, "subject": subject})
    return True


def send_verification_email(email: str, name: str | None, raw_token: str) -> bool:
    """Mail the account activation link for ``email``."""

    url = _link("verify-email", raw_token)
    hours = current_app.config.get("EMAIL_VERIFICATION_TTL_HOURS", 24)
    greeting = f"Welcome, {name}!" if name else "Welcome!"
    subject = f"Verify Your Email - {_brand()}"

    html = _wrap_html(
        "Verify Your Email",
        f"<h2>{escape(greeting)}</h2>"
        f"<p>An account has been created for you on {escape(_brand())}. "
        "Please verify your email address to activate your account.</p>"
        f'<p><a href="{escape(url)}">Verify Email Address</a></p>'
        f'<p style="word-break:break-all;">{escape(url)}</p>'
        f"<p>This link will expire in <strong>{hours} hours</strong>. If it has expired, "
        "please contact your administrator to resend the verification email.</p>"
        "<p>If you did not expect this email, you can safely ignore it.</p>",
    )
    text = (
        f"{greeting}\n\n"
        f"An account has been created for you on {_brand()}.\n\n"
        f"Please verify your email by visiting:\n{url}\n\n"
        f"This link expires in {hours} hours.\n\n"
        "If you did not expect this email, you can safely ignore it."
    )
    return send_email(email, subject, html, text)


def send_password_reset_email(email: str, raw_token: str) -> bool:
    url = _link("reset-password", raw_token)
    hours = current_app.config.get("PASSWORD_RESET_TTL_HOURS", 1)
    subject = f"Reset Your Password - {_brand()}"

    html = _wrap_html(
        "Reset Your Password",
        "<h2>Password reset requested</h2>"
        "<p>We received a request to reset the password for your account.</p>"
        f'<p><a href="{escape(url)}">Reset Password</a></p>'
        f'<p style="word-break:break-all;">{escape(url)}</p>'
        f"<p>This link will expire in <strong>{hours} hour(s)</strong>.</p>"
        "<p>If you did not request a password reset, you can safely ignore this email.</p>",
    )
    text = (
        "We received a request to reset the password for your account.\n\n"
        f"Reset it by visiting:\n{url}\n\n"
        f"This link expires in {hours} hour(s)."
    )
    return send_email(email, subject, html, text)


def send_admin_verification_notification(admin_email: str, verified_user) -> bool:
    """Tell a super admin that ``verified_user`` activated their account."""

    subject = f"User Verified - {_brand()}"
    rows = (
        ("Name", verified_user.name or "N/A"),
        ("Email", verified_user.email),
        ("Role", verified_user.role),
    )
    table = "".join(
        f"<tr><td style=\"color:#6b7280;padding:4px 12px 4px 0;\">{label}</td>"
        f"<td>{escape(value)}</td></tr>"
        for label, value in rows
    )
    html = _wrap_html(
        "User Verified",
        "<p>A user has successfully verified their email and activated their account:</p>"
        f"<table>{table}</table>",
    )
    return send_email(admin_email, subject, html)
