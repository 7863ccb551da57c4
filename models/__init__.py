"""Database initialization and model exports."""

from datetime import UTC, datetime

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""

    return datetime.now(UTC).replace(tzinfo=None)


# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .tokens import EmailVerificationToken, PasswordResetToken  # noqa: E402,F401
from .verification_log import VerificationLog  # noqa: E402,F401
from .report import Report  # noqa: E402,F401

__all__ = [
    "db",
    "utcnow",
    "User",
    "EmailVerificationToken",
    "PasswordResetToken",
    "VerificationLog",
    "Report",
]
