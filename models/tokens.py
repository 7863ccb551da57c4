"""Single-use email tokens for verification and password resets."""

from datetime import datetime

from . import db, utcnow


class _EmailTokenMixin:
    """Columns shared by every hashed, expiring token keyed by email."""

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    used = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def is_usable(self, now: datetime | None = None) -> bool:
        return not self.used and not self.is_expired(now)

    @classmethod
    def invalidate_for_email(cls, email: str) -> int:
        """Mark every unused token issued to ``email`` as used."""

        return cls.query.filter_by(email=email, used=False).update(
            {"used": True}, synchronize_session="fetch"
        )


class EmailVerificationToken(_EmailTokenMixin, db.Model):
    """Hashed token mailed to a new account to confirm the address."""

    __tablename__ = "email_verification_tokens"

    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<EmailVerificationToken email={self.email} used={self.used}>"


class PasswordResetToken(_EmailTokenMixin, db.Model):
    """Hashed token mailed on a forgot-password request."""

    __tablename__ = "password_reset_tokens"

    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<PasswordResetToken email={self.email} used={self.used}>"
