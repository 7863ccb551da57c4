from types import SimpleNamespace

import pytest

from utils.rbac import (
    ALL_PERMISSIONS,
    Permission,
    Role,
    can_access_resource,
    can_write,
    get_accessible_site_links,
    get_permissions_for_role,
    has_permission,
    is_super_admin,
    is_viewer,
)


def test_super_admin_has_every_permission():
    assert set(get_permissions_for_role(Role.SUPER_ADMIN)) == set(ALL_PERMISSIONS)
    assert Permission.DELETE_ALL_REPORTS in ALL_PERMISSIONS


@pytest.mark.parametrize(
    "role, permission, expected",
    [
        (Role.USER, Permission.CREATE_REPORTS, True),
        (Role.USER, Permission.VIEW_ALL_REPORTS, False),
        (Role.USER, Permission.ACCESS_ADMIN_PANEL, False),
        (Role.VIEWER, Permission.VIEW_OWN_REPORTS, True),
        (Role.VIEWER, Permission.CREATE_REPORTS, False),
        (Role.VIEWER, Permission.DELETE_OWN_REPORTS, False),
        (Role.SUPER_ADMIN, Permission.MANAGE_USERS, True),
        ("owner", Permission.VIEW_OWN_DATA, False),
        (None, Permission.VIEW_OWN_DATA, False),
    ],
)
def test_has_permission(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_unknown_role_has_no_permissions():
    assert get_permissions_for_role("owner") == []
    assert get_permissions_for_role(None) == []


def test_can_access_resource():
    admin = {"id": 1, "role": Role.SUPER_ADMIN}
    owner = SimpleNamespace(id=2, role=Role.USER)
    viewer = {"id": 3, "role": Role.VIEWER}

    assert can_access_resource(admin, 2, Permission.DELETE_ALL_REPORTS)
    assert can_access_resource(owner, "2", Permission.DELETE_OWN_REPORTS)
    assert not can_access_resource(owner, 5, Permission.VIEW_OWN_REPORTS)
    assert can_access_resource(viewer, 2, Permission.VIEW_OWN_DATA)
    assert not can_access_resource(viewer, 2, Permission.EDIT_OWN_DATA)
    assert not can_access_resource(None, 2, Permission.VIEW_OWN_DATA)


def test_role_helpers():
    assert can_write(Role.USER)
    assert can_write(Role.SUPER_ADMIN)
    assert not can_write(Role.VIEWER)
    assert is_super_admin(Role.SUPER_ADMIN)
    assert not is_super_admin(Role.USER)
    assert is_viewer(Role.VIEWER)


def test_accessible_site_links():
    user = {"role": Role.USER, "site_link": "https://mine.example", "accessible_sites": ["x"]}
    bare_user = {"role": Role.USER, "site_link": None}
    viewer = SimpleNamespace(role=Role.VIEWER, site_link=None, accessible_sites=["https://a.example"])
    admin = {"role": Role.SUPER_ADMIN, "accessible_sites": None}

    assert get_accessible_site_links(user) == ["https://mine.example"]
    assert get_accessible_site_links(bare_user) == []
    assert get_accessible_site_links(viewer) == ["https://a.example"]
    assert get_accessible_site_links(admin) == []
    assert get_accessible_site_links(None) == []
