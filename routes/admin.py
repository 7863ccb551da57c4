"""Super admin endpoints for managing accounts."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest, NotFound

from extensions import config_limit, limiter
from models.user import User
from services import auth_service, email_service
from utils.auth import require_super_admin
from utils.errors import UpstreamServiceError, ValidationFailed
from utils.rbac import ASSIGNABLE_ROLES, Role
from utils.request_validation import parse_bool, parse_int, parse_json_request
from utils.validation import (
    is_valid_email,
    normalize_email,
    sanitize_string,
    validate_and_normalize_site_url,
    validate_password,
)

admin_bp = Blueprint("admin", __name__)
limiter.limit(config_limit("ADMIN_RATE_LIMIT", "20 per minute"))(admin_bp)

INVALID_ROLE_MESSAGE = "Invalid role. Must be one of: {}".format(", ".join(ASSIGNABLE_ROLES))


def _get_user_or_404(user_id: int) -> User:
    user = auth_service.get_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _validate_role(raw_role: object) -> str:
    role = str(raw_role or "").strip().lower()
    if role == Role.SUPER_ADMIN:
        raise BadRequest("Cannot assign super_admin role through API")
    if role not in ASSIGNABLE_ROLES:
        raise BadRequest(INVALID_ROLE_MESSAGE)
    return role


def _site_link(raw_value: object) -> str | None:
    if raw_value in (None, ""):
        return None
    normalized, error = validate_and_normalize_site_url(raw_value)
    if error:
        raise BadRequest(f"Invalid site_link: {error}")
    return normalized


def _accessible_sites(raw_value: object) -> list[str]:
    if raw_value is None:
        return []
    if not isinstance(raw_value, list):
        raise BadRequest("accessible_sites must be a list of URLs.")

    sites: list[str] = []
    for item in raw_value:
        normalized, error = validate_and_normalize_site_url(item)
        if error:
            raise BadRequest(f"Invalid accessible_sites entry: {error}")
        if normalized not in sites:
            sites.append(normalized)
    return sites


@admin_bp.route("/users", methods=["GET"])
@jwt_required()
def list_users():
    require_super_admin()
    include_inactive = parse_bool(request.args.get("include_inactive")) is True
    users = auth_service.list_users(include_inactive=include_inactive)
    return jsonify({"users": [user.to_dict(include_audit=True) for user in users]})


@admin_bp.route("/users", methods=["POST"])
@jwt_required()
def create_user():
    """Create an account on behalf of someone and mail its verification link."""

    admin = require_super_admin()
    payload = parse_json_request(request)

    raw_email = payload.get("email")
    if not raw_email or not payload.get("password"):
        raise BadRequest("Email and password are required")
    if not is_valid_email(raw_email):
        raise BadRequest("Valid email is required")
    password_errors = validate_password(payload.get("password"))
    if password_errors:
        raise ValidationFailed("Password does not meet requirements", errors=password_errors)

    role = _validate_role(payload.get("role") or Role.USER)
    site_link = _site_link(payload.get("site_link"))
    name = sanitize_string(payload.get("name"), 100) or None

    user = auth_service.create_user(
        normalize_email(raw_email),
        payload["password"],
        name=name,
        role=role,
        site_link=site_link,
        created_by=admin.id,
    )
    raw_token = auth_service.issue_email_verification_token(user.email)
    email_sent = email_service.send_verification_email(user.email, user.name, raw_token)
    current_app.logger.info(
        "User created by admin with verification email",
        extra={"user_id": user.id, "email_sent": email_sent, "created_by": admin.id},
    )

    message = (
        "User created successfully. Verification email sent."
        if email_sent
        else "User created successfully. Failed to send verification email; "
        "you can resend it from the admin panel."
    )
    return (
        jsonify({"message": message, "user": user.to_dict(), "email_sent": email_sent}),
        HTTPStatus.CREATED,
    )


@admin_bp.route("/users/<int:user_id>", methods=["GET"])
@jwt_required()
def get_user(user_id: int):
    require_super_admin()
    user = _get_user_or_404(user_id)
    return jsonify({"user": user.to_dict(include_audit=True)})


@admin_bp.route("/users/<int:user_id>", methods=["PATCH"])
@jwt_required()
def update_user(user_id: int):
    admin = require_super_admin()
    user = _get_user_or_404(user_id)
    payload = parse_json_request(request)

    changes: dict = {}
    if "role" in payload:
        if user.id == admin.id:
            raise BadRequest("Cannot change your own role")
        changes["role"] = _validate_role(payload.get("role"))
    if "name" in payload:
        changes["name"] = sanitize_string(payload.get("name"), 100) or None
    if "site_link" in payload:
        changes["site_link"] = _site_link(payload.get("site_link"))
    if "is_active" in payload:
        is_active = parse_bool(payload.get("is_active"))
        if is_active is None:
            raise BadRequest("is_active must be a boolean value.")
        if user.id == admin.id and not is_active:
            raise BadRequest("Cannot deactivate your own account")
        changes["is_active"] = is_active
    if "accessible_sites" in payload:
        target_role = changes.get("role", user.role)
        if target_role not in (Role.VIEWER, Role.SUPER_ADMIN):
            raise BadRequest(
                "accessible_sites can only be assigned to viewers or super admins."
            )
        changes["accessible_sites"] = _accessible_sites(payload.get("accessible_sites"))

    if not changes:
        raise BadRequest("No changes provided.")

    auth_service.update_user(user, changes)
    current_app.logger.info(
        "User updated by admin",
        extra={"user_id": user.id, "fields": sorted(changes), "updated_by": admin.id},
    )
    return jsonify({"message": "User updated successfully", "user": user.to_dict()})


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@jwt_required()
def delete_user(user_id: int):
    admin = require_super_admin()
    if user_id == admin.id:
        raise BadRequest("Cannot delete your own account")

    user = _get_user_or_404(user_id)
    auth_service.delete_user(user)
    current_app.logger.info(
        "User deleted by admin", extra={"user_id": user_id, "deleted_by": admin.id}
    )
    return jsonify({"message": "User deleted successfully"})


@admin_bp.route("/users/<int:user_id>/resend-verification", methods=["POST"])
@jwt_required()
def resend_verification(user_id: int):
    admin = require_super_admin()
    user = _get_user_or_404(user_id)
    if user.email_verified or user.status == "active":
        raise BadRequest("User is already verified")

    raw_token = auth_service.issue_email_verification_token(user.email)
    email_sent = email_service.send_verification_email(user.email, user.name, raw_token)
    current_app.logger.info(
        "Verification email resent by admin",
        extra={"user_id": user.id, "email_sent": email_sent, "resent_by": admin.id},
    )
    if not email_sent:
        raise UpstreamServiceError("Failed to send verification email. Check SMTP configuration.")
    return jsonify({"message": "Verification email resent successfully."})


@admin_bp.route("/cleanup", methods=["POST"])
@jwt_required()
def cleanup_pending_users():
    """Delete pending accounts that never verified their email."""

    require_super_admin()
    payload = parse_json_request(request, allow_empty=True)
    days = parse_int(
        payload.get("days"),
        current_app.config.get("PENDING_USER_MAX_AGE_DAYS", 7),
        minimum=1,
    )

    deleted_count = auth_service.cleanup_expired_pending_users(days)
    current_app.logger.info(
        "Cleaned up expired pending users",
        extra={"deleted_count": deleted_count, "older_than_days": days},
    )
    return jsonify(
        {
            "message": f"Cleaned up {deleted_count} expired pending user(s) older than {days} days.",
            "deleted_count": deleted_count,
        }
    )
