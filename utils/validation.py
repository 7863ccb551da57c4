"""Input validation for emails, passwords and site URLs."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


def normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower() if isinstance(raw_email, str) else ""


def is_valid_email(email: object) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_password(password: object) -> list[str]:
    """Return a list of problems with ``password``; empty when acceptable."""

    if not password or not isinstance(password, str):
        return ["Password is required"]

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    return errors


def sanitize_string(value: object, max_length: int = 1000) -> str:
    if not value or not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def is_valid_url(url: object) -> bool:
    """Only absolute http(s) URLs with a host are accepted."""

    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url.strip())
        parts.port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def normalize_site_url(url: str) -> str:
    """Reduce a URL to ``scheme://host[:port]``, the Search Console property form."""

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return f"{parts.scheme}://{parts.netloc}"


def validate_and_normalize_site_url(url: object) -> tuple[str | None, str | None]:
    """Return ``(normalized, None)`` for a valid site URL or ``(None, error)``.

    The hostname is lower-cased and a trailing slash on the path dropped;
    query string and fragment are kept.
    """

    if not url or not isinstance(url, str):
        return None, "URL is required"

    trimmed = url.strip()
    if not is_valid_url(trimmed):
        return None, "Invalid URL format"

    parts = urlsplit(trimmed)
    host = parts.hostname.lower()
    if parts.port:
        host = f"{host}:{parts.port}"
    normalized = f"{parts.scheme}://{host}{parts.path.rstrip('/')}"
    if parts.query:
        normalized += f"?{parts.query}"
    if parts.fragment:
        normalized += f"#{parts.fragment}"
    return normalized, None
