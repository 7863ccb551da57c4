"""Super admin user management endpoints."""

from __future__ import annotations

from datetime import timedelta

import pytest

from extensions import mail
from models import EmailVerificationToken, db, utcnow
from models.user import User
from services import email_service


@pytest.fixture()
def admin_id(make_user):
    return make_user("admin@example.com", role="super_admin", name="Admin")


@pytest.fixture()
def admin_headers(admin_id, auth_headers):
    return auth_headers(admin_id)


@pytest.mark.parametrize("role", ["user", "viewer"])
def test_admin_routes_require_super_admin(client, make_user, auth_headers, role):
    user_id = make_user(f"{role}@example.com", role=role)

    response = client.get("/admin/users", headers=auth_headers(user_id))

    assert response.status_code == 403


def test_admin_routes_require_token(client):
    assert client.get("/admin/users").status_code == 401


def test_list_users_hides_inactive_by_default(client, make_user, admin_headers):
    make_user("active@example.com")
    make_user("inactive@example.com", is_active=False)

    default = client.get("/admin/users", headers=admin_headers).get_json()["users"]
    everyone = client.get(
        "/admin/users", headers=admin_headers, query_string={"include_inactive": "true"}
    ).get_json()["users"]

    assert {user["email"] for user in default} == {"admin@example.com", "active@example.com"}
    assert "inactive@example.com" in {user["email"] for user in everyone}
    assert "password_hash" not in default[0]
    assert "created_at" in default[0]


def test_create_user_sends_verification(client, app, admin_id, admin_headers):
    with mail.record_messages() as outbox:
        response = client.post(
            "/admin/users",
            headers=admin_headers,
            json={
                "email": "Client@Example.com",
                "password": "Secret123",
                "name": "Client",
                "site_link": "https://Client.Example/",
            },
        )

    assert response.status_code == 201
    body = response.get_json()
    assert body["email_sent"] is True
    assert body["user"]["email"] == "client@example.com"
    assert body["user"]["site_link"] == "https://client.example"
    assert body["user"]["status"] == "pending"
    assert [message.recipients for message in outbox] == [["client@example.com"]]

    with app.app_context():
        created = User.query.filter_by(email="client@example.com").one()
        assert created.created_by == admin_id


@pytest.mark.parametrize(
    "payload, detail",
    [
        ({"email": "x@example.com"}, "Email and password are required"),
        ({"email": "bad", "password": "Secret123"}, "Valid email is required"),
        (
            {"email": "x@example.com", "password": "Secret123", "role": "super_admin"},
            "Cannot assign super_admin role through API",
        ),
        (
            {"email": "x@example.com", "password": "Secret123", "role": "owner"},
            "Invalid role. Must be one of: user, viewer",
        ),
        (
            {"email": "x@example.com", "password": "Secret123", "site_link": "ftp://x"},
            "Invalid site_link: Invalid URL format",
        ),
    ],
)
def test_create_user_validation(client, admin_headers, payload, detail):
    response = client.post("/admin/users", headers=admin_headers, json=payload)

    assert response.status_code == 400
    assert response.get_json()["detail"] == detail


def test_create_user_duplicate_email(client, make_user, admin_headers):
    make_user("dup@example.com")

    response = client.post(
        "/admin/users",
        headers=admin_headers,
        json={"email": "dup@example.com", "password": "Secret123"},
    )

    assert response.status_code == 409


def test_get_user_and_missing_user(client, make_user, admin_headers):
    user_id = make_user("someone@example.com")

    found = client.get(f"/admin/users/{user_id}", headers=admin_headers)
    missing = client.get("/admin/users/9999", headers=admin_headers)

    assert found.get_json()["user"]["email"] == "someone@example.com"
    assert missing.status_code == 404


def test_update_user_fields(client, app, make_user, admin_headers):
    user_id = make_user("viewer@example.com", role="user")

    response = client.patch(
        f"/admin/users/{user_id}",
        headers=admin_headers,
        json={
            "role": "viewer",
            "name": " Viewer ",
            "accessible_sites": ["https://a.example/", "https://A.example", "https://b.example"],
        },
    )

    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["role"] == "viewer"
    assert user["name"] == "Viewer"
    assert user["accessible_sites"] == ["https://a.example", "https://b.example"]


def test_update_user_rejects_sites_for_regular_users(client, make_user, admin_headers):
    user_id = make_user("plain@example.com")

    response = client.patch(
        f"/admin/users/{user_id}",
        headers=admin_headers,
        json={"accessible_sites": ["https://a.example"]},
    )

    assert response.status_code == 400
    assert response.get_json()["detail"] == (
        "accessible_sites can only be assigned to viewers or super admins."
    )


def test_update_user_deactivation(client, make_user, admin_headers, auth_headers):
    user_id = make_user("leaving@example.com")
    headers = auth_headers(user_id)
    assert client.get("/auth/me", headers=headers).status_code == 200

    response = client.patch(
        f"/admin/users/{user_id}", headers=admin_headers, json={"is_active": False}
    )

    assert response.get_json()["user"]["is_active"] is False
    assert client.get("/auth/me", headers=headers).status_code == 401


@pytest.mark.parametrize(
    "payload, detail",
    [
        ({"role": "user"}, "Cannot change your own role"),
        ({"is_active": False}, "Cannot deactivate your own account"),
    ],
)
def test_admin_cannot_lock_themselves_out(client, admin_id, admin_headers, payload, detail):
    response = client.patch(f"/admin/users/{admin_id}", headers=admin_headers, json=payload)

    assert response.status_code == 400
    assert response.get_json()["detail"] == detail


def test_update_user_requires_changes(client, make_user, admin_headers):
    user_id = make_user("same@example.com")

    response = client.patch(
        f"/admin/users/{user_id}", headers=admin_headers, json={"unknown": 1}
    )

    assert response.status_code == 400
    assert response.get_json()["detail"] == "No changes provided."


def test_delete_user(client, app, make_user, admin_headers):
    user_id = make_user("bye@example.com", verified=False)
    with app.app_context():
        from services.auth_service import issue_email_verification_token

        issue_email_verification_token("bye@example.com")

    response = client.delete(f"/admin/users/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(User, user_id) is None
        assert EmailVerificationToken.query.count() == 0


def test_admin_cannot_delete_self(client, admin_id, admin_headers):
    response = client.delete(f"/admin/users/{admin_id}", headers=admin_headers)

    assert response.status_code == 400


def test_resend_verification(client, app, make_user, admin_headers):
    user_id = make_user("later@example.com", verified=False)

    with mail.record_messages() as outbox:
        response = client.post(
            f"/admin/users/{user_id}/resend-verification", headers=admin_headers
        )

    assert response.status_code == 200
    assert len(outbox) == 1
    with app.app_context():
        assert EmailVerificationToken.query.filter_by(
            email="later@example.com", used=False
        ).count() == 1


def test_resend_verification_for_verified_user(client, make_user, admin_headers):
    user_id = make_user("ok@example.com")

    response = client.post(f"/admin/users/{user_id}/resend-verification", headers=admin_headers)

    assert response.status_code == 400
    assert response.get_json()["detail"] == "User is already verified"


def test_resend_verification_mail_failure(client, make_user, admin_headers, monkeypatch):
    user_id = make_user("later@example.com", verified=False)
    monkeypatch.setattr(email_service, "send_verification_email", lambda *args: False)

    response = client.post(f"/admin/users/{user_id}/resend-verification", headers=admin_headers)

    assert response.status_code == 502


def test_cleanup_endpoint(client, app, make_user, admin_headers):
    stale_id = make_user("stale@example.com", verified=False)
    with app.app_context():
        db.session.get(User, stale_id).created_at = utcnow() - timedelta(days=3)
        db.session.commit()

    kept = client.post("/admin/cleanup", headers=admin_headers)
    removed = client.post("/admin/cleanup", headers=admin_headers, json={"days": 2})

    assert kept.get_json()["deleted_count"] == 0
    assert removed.get_json()["deleted_count"] == 1
    assert "older than 2 days" in removed.get_json()["message"]
