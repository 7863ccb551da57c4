"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest
from flask import Flask
from flask.testing import FlaskClient
from flask_jwt_extended import create_access_token

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402

GENEROUS_LIMIT = "1000 per minute"


class _BaseTestConfig(Config):
    TESTING = True
    APP_ENV = "test"
    APP_BASE_URL = "https://dashboard.example"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough-for-hs256"
    RATE_LIMIT = GENEROUS_LIMIT
    LOGIN_RATE_LIMIT = GENEROUS_LIMIT
    REGISTER_RATE_LIMIT = GENEROUS_LIMIT
    FORGOT_PASSWORD_RATE_LIMIT = GENEROUS_LIMIT
    VERIFY_EMAIL_RATE_LIMIT = GENEROUS_LIMIT
    REPORT_RATE_LIMIT = GENEROUS_LIMIT
    REPORTS_RATE_LIMIT = GENEROUS_LIMIT
    ADMIN_RATE_LIMIT = GENEROUS_LIMIT
    MAIL_SERVER = "smtp.example"
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "noreply@dashboard.example"
    PAGESPEED_API_KEY = "test-pagespeed-key"
    GOOGLE_APPLICATION_CREDENTIALS_JSON = '{"type": "service_account"}'
    SEARCH_CONSOLE_MAX_WORKERS = 2


def build_app(**overrides) -> Flask:
    """Create an app from the test config with ``overrides`` applied."""

    class TestConfig(_BaseTestConfig):
        pass

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    return create_app(TestConfig)


@pytest.fixture()
def app() -> Flask:
    """Create a Flask application instance for tests."""

    application = build_app()

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def db_session(app: Flask):
    """Database session inside an application context, for service-level tests."""

    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture()
def make_user(app: Flask) -> Callable[..., int]:
    """Persist a user and return its id."""

    def _make_user(
        email: str,
        password: str = "Secret123",
        *,
        role: str = "user",
        verified: bool = True,
        site_link: str | None = None,
        accessible_sites: list[str] | None = None,
        name: str | None = None,
        is_active: bool = True,
    ) -> int:
        with app.app_context():
            user = User(
                email=email,
                name=name,
                role=role,
                site_link=site_link,
                accessible_sites=accessible_sites or [],
                is_active=is_active,
            )
            user.set_password(password)
            if verified:
                user.mark_verified()
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture()
def auth_headers(app: Flask) -> Callable[[int], dict]:
    """Bearer headers for a user id, bypassing the login endpoint."""

    def _auth_headers(user_id: int) -> dict:
        with app.app_context():
            token = create_access_token(identity=str(user_id))
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture()
def app_factory() -> Callable[..., Flask]:
    """Build apps with config overrides; tables are created for each."""

    def _factory(**overrides) -> Flask:
        application = build_app(**overrides)
        with application.app_context():
            db.create_all()
        return application

    return _factory
