"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402
from models.vendor import Vendor  # noqa: E402
from utils.auth import open_session  # noqa: E402
from utils.credentials import issue_vendor_token  # noqa: E402

PASSWORD = "Passw0rd!"


class _BaseTestConfig(Config):
    TESTING = True
    APP_ENV = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough"
    OTP_TEST_MODE = True
    RATE_LIMIT = "1000 per minute"


def build_app(**overrides) -> Flask:
    """Create an application from the test config with attribute overrides."""

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
def make_user(app: Flask):
    """Persist a user and return its id."""

    def _make(
        email: str = "panelist@example.com",
        role: str = "panelist",
        *,
        password: str = PASSWORD,
        verified: bool = True,
        active: bool = True,
        points: int = 0,
        **fields,
    ) -> int:
        with app.app_context():
            user = User(
                email=email,
                first_name=fields.pop("first_name", "Pat"),
                last_name=fields.pop("last_name", "Lee"),
                role=role,
                is_email_verified=verified,
                is_active=active,
                points=points,
                total_points=points,
                **fields,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture()
def user_headers(app: Flask):
    """Open a session for a user and return bearer headers for it."""

    def _headers(user_id: int) -> dict:
        with app.app_context():
            token = open_session(db.session.get(User, user_id))
            db.session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def make_vendor(app: Flask):
    """Persist an active vendor and return its id."""

    def _make(email: str = "vendor@example.com", *, status: str = "active", **fields) -> int:
        with app.app_context():
            vendor = Vendor(
                name=fields.pop("name", "Vera Vendor"),
                email=email,
                company=fields.pop("company", "Panels Inc"),
                status=status,
                profile=fields.pop("profile", {}),
                **fields,
            )
            vendor.set_password(PASSWORD)
            db.session.add(vendor)
            db.session.commit()
            return vendor.id

    return _make


@pytest.fixture()
def vendor_headers(app: Flask):
    def _headers(vendor_id: int) -> dict:
        with app.app_context():
            token = issue_vendor_token(db.session.get(Vendor, vendor_id))
        return {"Authorization": f"Bearer {token}"}

    return _headers
