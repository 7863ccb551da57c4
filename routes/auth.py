"""Authentication blueprint: registration, login, verification and resets."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, jwt_required
from werkzeug.exceptions import BadRequest, Conflict

from extensions import config_limit, limiter
from services import auth_service, email_service
from utils.auth import require_user
from utils.errors import ValidationFailed
from utils.rbac import Role
from utils.request_validation import client_ip, parse_json_request
from utils.validation import is_valid_email, normalize_email, sanitize_string, validate_password

auth_bp = Blueprint("auth", __name__)

RESET_REQUESTED_MESSAGE = "If the email exists, a password reset link has been sent."


def _mask_email(email: str | None) -> str:
    return f"{email[:3]}***" if email else "unknown"


def _require_password(password: object) -> str:
    errors = validate_password(password)
    if errors:
        raise ValidationFailed("Password does not meet requirements", errors=errors)
    return password


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(config_limit("REGISTER_RATE_LIMIT", "3 per hour"))
def register() -> tuple:
    """Create a pending account and mail its verification link."""
    payload = parse_json_request(request)
    raw_email = payload.get("email")

    if not is_valid_email(raw_email):
        raise BadRequest("Valid email is required")
    password = _require_password(payload.get("password"))
    email = normalize_email(raw_email)
    name = sanitize_string(payload.get("name"), 100) or None

    try:
        user = auth_service.create_user(email, password, name=name, role=Role.USER)
    except Conflict:
        current_app.logger.info(
            "Registration rejected for existing email", extra={"email": _mask_email(email)}
        )
        raise

    raw_token = auth_service.issue_email_verification_token(user.email)
    email_sent = email_service.send_verification_email(user.email, user.name, raw_token)
    current_app.logger.info(
        "User registered, verification email sent",
        extra={"user_id": user.id, "email_sent": email_sent},
    )

    return (
        jsonify(
            {
                "message": "Registration successful! Please check your email to verify your account.",
                "user_id": user.id,
                "email_sent": email_sent,
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(config_limit("LOGIN_RATE_LIMIT", "5 per 15 minutes"))
def login() -> tuple:
    """Authenticate a user and return a JWT access token."""
    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    password = payload.get("password") or ""

    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = auth_service.authenticate(email, password)
    token = create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role},
    )
    return (
        jsonify({"access_token": token, "user": user.to_dict()}),
        HTTPStatus.OK,
    )


@auth_bp.route("/verify-email", methods=["GET"])
@limiter.limit(config_limit("VERIFY_EMAIL_RATE_LIMIT", "10 per 15 minutes"))
def verify_email() -> tuple:
    raw_token = (request.args.get("token") or "").strip()
    if not raw_token:
        raise BadRequest("Verification token is required.")

    outcome, user = auth_service.verify_email(raw_token, client_ip(request))
    summary = {"email": user.email, "name": user.name}

    if outcome == "already_verified":
        return (
            jsonify(
                {
                    "message": "Your email is already verified. You can log in now.",
                    "already_verified": True,
                    "user": summary,
                }
            ),
            HTTPStatus.OK,
        )

    return (
        jsonify(
            {
                "message": "Email verified successfully! Your account is now active. You can log in.",
                "verified": True,
                "user": summary,
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit(config_limit("FORGOT_PASSWORD_RATE_LIMIT", "3 per hour"))
def forgot_password() -> tuple:
    """Issue a reset link without revealing whether the account exists."""
    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    if not email:
        raise BadRequest("Email is required")

    body = {"message": RESET_REQUESTED_MESSAGE}
    raw_token = auth_service.issue_password_reset_token(email)
    if raw_token is None:
        return jsonify(body), HTTPStatus.OK

    if not email_service.send_password_reset_email(email, raw_token):
        current_app.logger.warning(
            "Password reset email could not be sent", extra={"email": _mask_email(email)}
        )

    if current_app.config.get("APP_ENV") == "development":
        body["reset_url"] = (
            f"{current_app.config['APP_BASE_URL'].rstrip('/')}/reset-password?token={raw_token}"
        )
    return jsonify(body), HTTPStatus.OK


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password() -> tuple:
    payload = parse_json_request(request)
    raw_token = payload.get("token")
    password = payload.get("password")
    if not raw_token or not password:
        raise BadRequest("Token and password are required")

    auth_service.reset_password(raw_token, _require_password(password))
    return jsonify({"message": "Password reset successfully"}), HTTPStatus.OK


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me() -> tuple:
    user = require_user()
    data = user.to_dict()
    data["permissions"] = user.permissions
    return jsonify({"user": data}), HTTPStatus.OK
