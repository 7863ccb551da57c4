"""Helpers resolving the JWT identity to a user and enforcing permissions."""

from __future__ import annotations

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from werkzeug.exceptions import Forbidden, Unauthorized

from models import db
from models.user import User
from utils.rbac import Permission, Role, has_permission


def get_current_user() -> User | None:
    """Return the active user behind the request's access token, if any."""

    verify_jwt_in_request(optional=True)
    try:
        identity = get_jwt_identity()
    except RuntimeError:
        return None
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if user is None or user.is_active is False:
        return None
    return user


def require_user() -> User:
    user = get_current_user()
    if user is None:
        raise Unauthorized("Unauthorized. Please log in.")
    return user


def require_permission(permission: str) -> User:
    user = require_user()
    if not has_permission(user.role, permission):
        raise Forbidden("Forbidden: Insufficient permissions.")
    return user


def require_super_admin() -> User:
    user = require_user()
    if user.role != Role.SUPER_ADMIN or not has_permission(user.role, Permission.ACCESS_ADMIN_PANEL):
        raise Forbidden("Forbidden: Super admin access required.")
    return user
