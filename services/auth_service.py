"""Account lifecycle: registration, email verification, password resets."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, NotFound, Unauthorized

from models import EmailVerificationToken, PasswordResetToken, User, VerificationLog, db, utcnow
from services import email_service
from services.tokens import generate_token, hash_token, token_prefix
from utils.errors import AccountNotVerified, VerificationFailed
from utils.rbac import Role
from utils.validation import normalize_email

logger = logging.getLogger(__name__)

VERIFICATION_FAILURE_MESSAGES = {
    "already_used": "This verification link has already been used. Your account may already be active.",
    "expired": (
        "This verification link has expired. Please contact your administrator "
        "to resend a new verification email."
    ),
    "invalid": "Invalid verification token. Please check the link or contact your administrator.",
}

UPDATABLE_FIELDS = ("name", "role", "site_link", "accessible_sites", "is_active")


def get_user_by_email(email: str | None) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return User.query.filter(func.lower(User.email) == normalized).first()


def get_user_by_id(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def create_user(
    email: str,
    password: str,
    name: str | None = None,
    role: str = Role.USER,
    site_link: str | None = None,
    created_by: int | None = None,
) -> User:
    """Insert a pending, unverified account; raises 409 on a duplicate email."""

    normalized = normalize_email(email)
    if get_user_by_email(normalized) is not None:
        raise Conflict("A user with that email already exists.")

    user = User(
        email=normalized,
        name=name or None,
        role=role,
        site_link=site_link or None,
        accessible_sites=[],
        is_active=True,
        email_verified=False,
        status="pending",
        created_by=created_by,
    )
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict("A user with that email already exists.") from exc
    return user


def _issue_token(model, email: str, ttl: timedelta) -> str:
    """Invalidate older tokens of ``model`` for ``email`` and store a new one."""

    raw_token = generate_token()
    now = utcnow()
    model.invalidate_for_email(email)
    db.session.add(
        model(
            email=email,
            token_hash=hash_token(raw_token),
            expires_at=now + ttl,
            used=False,
            created_at=now,
        )
    )
    db.session.commit()
    return raw_token


def issue_email_verification_token(email: str) -> str:
    """Return a raw verification token; only its hash is persisted."""

    hours = current_app.config.get("EMAIL_VERIFICATION_TTL_HOURS", 24)
    return _issue_token(EmailVerificationToken, normalize_email(email), timedelta(hours=hours))


def _log_attempt(
    hashed: str,
    email: str,
    success: bool,
    reason: str,
    ip: str | None,
    user_id: int | None = None,
) -> None:
    db.session.add(
        VerificationLog(
            token_prefix=token_prefix(hashed),
            email=email,
            user_id=user_id,
            success=success,
            reason=reason,
            ip_address=ip or "unknown",
        )
    )


def _notify_super_admins(user: User) -> None:
    admins = User.query.filter_by(role=Role.SUPER_ADMIN, is_active=True).all()
    for admin in admins:
        if not email_service.send_admin_verification_notification(admin.email, user):
            logger.warning(
                "Failed to notify admin of verification",
                extra={"admin_email": admin.email, "user_id": user.id},
            )


def verify_email(raw_token: str, ip: str | None = None) -> tuple[str, User]:
    """Redeem a verification token.

    Returns ``("verified", user)`` or ``("already_verified", user)``. Failed
    attempts are recorded in the verification log and raised as
    :class:`VerificationFailed` with a ``reason`` of ``invalid``,
    ``already_used`` or ``expired``.
    """

    hashed = hash_token(raw_token)
    token = EmailVerificationToken.query.filter_by(token_hash=hashed).first()

    reason = None
    if token is None:
        reason = "invalid"
    elif token.used:
        reason = "already_used"
    elif token.is_expired():
        reason = "expired"

    if reason is not None:
        _log_attempt(hashed, token.email if token else "unknown", False, reason, ip)
        db.session.commit()
        logger.info(
            "Email verification failed",
            extra={"token": token_prefix(hashed), "reason": reason},
        )
        raise VerificationFailed(VERIFICATION_FAILURE_MESSAGES[reason], reason=reason)

    user = get_user_by_email(token.email)
    if user is None:
        raise NotFound("User account not found. It may have been deleted.")

    token.used = True
    if user.email_verified:
        _log_attempt(hashed, token.email, True, "already_verified", ip, user.id)
        db.session.commit()
        return "already_verified", user

    user.mark_verified()
    _log_attempt(hashed, token.email, True, "verified", ip, user.id)
    db.session.commit()
    logger.info(
        "User email verified and account activated",
        extra={"email": user.email, "user_id": user.id},
    )

    _notify_super_admins(user)
    return "verified", user


def issue_password_reset_token(email: str) -> str | None:
    """Return a raw reset token, or None when no account uses ``email``."""

    user = get_user_by_email(email)
    if user is None:
        return None
    hours = current_app.config.get("PASSWORD_RESET_TTL_HOURS", 1)
    return _issue_token(PasswordResetToken, user.email, timedelta(hours=hours))


def reset_password(raw_token: str, new_password: str) -> User:
    token = PasswordResetToken.query.filter_by(token_hash=hash_token(raw_token)).first()
    if token is None or not token.is_usable():
        raise BadRequest("Invalid or expired reset token")

    user = get_user_by_email(token.email)
    if user is None:
        raise BadRequest("Invalid or expired reset token")

    user.set_password(new_password)
    token.used = True
    db.session.commit()
    logger.info("Password reset completed", extra={"user_id": user.id})
    return user


def authenticate(email: str, password: str) -> User:
    """Return the user for valid credentials of a verified, active account."""

    user = get_user_by_email(email)
    if user is None or user.is_active is False or not user.check_password(password):
        raise Unauthorized("Invalid email or password.")

    if not user.email_verified or user.status == "pending":
        raise AccountNotVerified(
            "Please verify your email before logging in. Check your inbox for the verification link.",
            reason="email_not_verified",
        )
    return user


def cleanup_expired_pending_users(days: int = 7) -> int:
    """Delete pending accounts older than ``days`` and their verification tokens."""

    cutoff = utcnow() - timedelta(days=days)
    stale = User.query.filter(
        User.status == "pending",
        User.email_verified.is_(False),
        User.created_at < cutoff,
    ).all()

    for user in stale:
        EmailVerificationToken.query.filter_by(email=user.email).delete(
            synchronize_session=False
        )
        db.session.delete(user)
    db.session.commit()
    return len(stale)


def list_users(include_inactive: bool = False) -> list[User]:
    query = User.query
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def update_user(user: User, changes: dict[str, Any]) -> User:
    """Apply already validated ``changes`` to ``user``."""

    for field in UPDATABLE_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])
    db.session.commit()
    return user


def delete_user(user: User) -> None:
    EmailVerificationToken.query.filter_by(email=user.email).delete(synchronize_session=False)
    PasswordResetToken.query.filter_by(email=user.email).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
