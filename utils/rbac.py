"""Role-based access control.

Roles:

* ``super_admin`` - full control over the platform
* ``user`` - regular account owning the data of its linked site
* ``viewer`` - read-only access to assigned data
"""

from __future__ import annotations

from typing import Any


class Role:
    SUPER_ADMIN = "super_admin"
    USER = "user"
    VIEWER = "viewer"


ALL_ROLES = (Role.SUPER_ADMIN, Role.USER, Role.VIEWER)
# Roles an administrator may hand out through the API.
ASSIGNABLE_ROLES = (Role.USER, Role.VIEWER)


class Permission:
    # User management
    MANAGE_USERS = "manage_users"
    CREATE_USERS = "create_users"
    VIEW_ALL_USERS = "view_all_users"
    EDIT_USERS = "edit_users"
    DELETE_USERS = "delete_users"

    # Data access
    VIEW_OWN_DATA = "view_own_data"
    VIEW_ALL_DATA = "view_all_data"
    EDIT_OWN_DATA = "edit_own_data"
    EDIT_ALL_DATA = "edit_all_data"
    DELETE_OWN_DATA = "delete_own_data"
    DELETE_ALL_DATA = "delete_all_data"

    # Reports
    CREATE_REPORTS = "create_reports"
    VIEW_OWN_REPORTS = "view_own_reports"
    VIEW_ALL_REPORTS = "view_all_reports"
    DELETE_OWN_REPORTS = "delete_own_reports"
    DELETE_ALL_REPORTS = "delete_all_reports"

    # Site management
    MANAGE_SITE_LINKS = "manage_site_links"
    ASSIGN_SITE_LINKS = "assign_site_links"

    # Feature access
    ACCESS_PAGESPEED = "access_pagespeed"
    ACCESS_SEARCH_CONSOLE = "access_search_console"
    ACCESS_REPORTS = "access_reports"
    ACCESS_ADMIN_PANEL = "access_admin_panel"


ALL_PERMISSIONS = tuple(
    value
    for key, value in vars(Permission).items()
    if not key.startswith("_") and isinstance(value, str)
)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    Role.SUPER_ADMIN: ALL_PERMISSIONS,
    Role.USER: (
        Permission.VIEW_OWN_DATA,
        Permission.EDIT_OWN_DATA,
        Permission.DELETE_OWN_DATA,
        Permission.CREATE_REPORTS,
        Permission.VIEW_OWN_REPORTS,
        Permission.DELETE_OWN_REPORTS,
        Permission.ACCESS_PAGESPEED,
        Permission.ACCESS_SEARCH_CONSOLE,
        Permission.ACCESS_REPORTS,
    ),
    Role.VIEWER: (
        Permission.VIEW_OWN_DATA,
        Permission.VIEW_OWN_REPORTS,
        Permission.ACCESS_PAGESPEED,
        Permission.ACCESS_SEARCH_CONSOLE,
        Permission.ACCESS_REPORTS,
    ),
}


def get_permissions_for_role(role: str | None) -> list[str]:
    """Return the permissions granted to ``role``; unknown roles get none."""

    return list(ROLE_PERMISSIONS.get(role or "", ()))


def has_permission(role: str | None, permission: str) -> bool:
    if not role:
        return False
    return permission in ROLE_PERMISSIONS.get(role, ())


def _attr(user: Any, name: str, default: Any = None) -> Any:
    if isinstance(user, dict):
        return user.get(name, default)
    return getattr(user, name, default)


def can_access_resource(user: Any, resource_user_id: Any, permission: str) -> bool:
    """Return True if ``user`` may apply ``permission`` to a resource owned by ``resource_user_id``.

    Super admins are checked against their permission table only. Owners are
    checked against theirs. Viewers may read assigned data, so they fall back
    to a permission check as well; any other non-owner is refused.
    """

    role = _attr(user, "role")
    if user is None or not role:
        return False

    if role == Role.SUPER_ADMIN:
        return has_permission(role, permission)

    user_id = _attr(user, "id")
    if user_id is not None and str(user_id) == str(resource_user_id):
        return has_permission(role, permission)

    if role == Role.VIEWER:
        return has_permission(role, permission)

    return False


def can_write(role: str | None) -> bool:
    return role in (Role.SUPER_ADMIN, Role.USER)


def is_super_admin(role: str | None) -> bool:
    return role == Role.SUPER_ADMIN


def is_viewer(role: str | None) -> bool:
    return role == Role.VIEWER


def get_accessible_site_links(user: Any) -> list[str]:
    """Return the site links ``user`` may query.

    Regular users see their own linked site; super admins and viewers see the
    sites assigned to them.
    """

    if user is None:
        return []

    role = _attr(user, "role")
    if role in (Role.SUPER_ADMIN, Role.VIEWER):
        return list(_attr(user, "accessible_sites") or [])
    if role == Role.USER:
        site_link = _attr(user, "site_link")
        return [site_link] if site_link else []
    return []
