"""Audit trail of email verification attempts."""

from . import db, utcnow


class VerificationLog(db.Model):
    """One row per call to the verify-email endpoint."""

    __tablename__ = "verification_logs"

    id = db.Column(db.Integer, primary_key=True)
    token_prefix = db.Column(db.String(16), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True)
    success = db.Column(db.Boolean, nullable=False, default=False)
    reason = db.Column(db.String(32), nullable=False)
    ip_address = db.Column(db.String(64), nullable=True)
    attempted_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "token_prefix": self.token_prefix,
            "email": self.email,
            "user_id": self.user_id,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "attempted_at": self.attempted_at.isoformat() if self.attempted_at else None,
        }
