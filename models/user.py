"""User model definition."""

from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from utils.rbac import Role, get_permissions_for_role

from . import db, utcnow


USER_STATUSES = ("pending", "active")


class User(db.Model):
    """Represents a dashboard account and the site linked to it."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=Role.USER, index=True)
    site_link = db.Column(db.String(2048), nullable=True, index=True)
    accessible_sites = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("true"),
        index=True,
    )
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    email_verified_at = db.Column(db.DateTime, nullable=True)
    status = db.Column(
        db.String(16),
        nullable=False,
        default="pending",
        server_default=db.text("'pending'"),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    created_by = db.Column(db.Integer, nullable=True, index=True)

    reports = db.relationship(
        "Report",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def mark_verified(self, when: Optional[datetime] = None) -> None:
        """Activate the account after a successful email verification."""

        self.email_verified = True
        self.email_verified_at = when or utcnow()
        self.status = "active"

    def mark_unverified(self) -> None:
        self.email_verified = False
        self.email_verified_at = None
        self.status = "pending"

    @property
    def is_verified(self) -> bool:
        return bool(self.email_verified) and self.status == "active"

    @property
    def permissions(self) -> list[str]:
        return get_permissions_for_role(self.role)

    def to_dict(self, include_audit: bool = False) -> dict:
        """Serialize the user without credentials."""

        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role or Role.USER,
            "site_link": self.site_link,
            "accessible_sites": list(self.accessible_sites or []),
            "is_active": self.is_active is not False,
            "email_verified": bool(self.email_verified),
            "status": self.status or ("active" if self.email_verified else "pending"),
        }
        if include_audit:
            data["email_verified_at"] = (
                self.email_verified_at.isoformat() if self.email_verified_at else None
            )
            data["created_at"] = self.created_at.isoformat() if self.created_at else None
            data["created_by"] = self.created_by
        return data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
