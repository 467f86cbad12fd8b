"""Tests covering registration, OTP verification, login and password flows."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask.testing import FlaskClient

from conftest import PASSWORD
from models import db, utcnow
from models.user import User
from models.user_session import UserSession

REGISTRATION = {
    "firstName": "Jamie",
    "lastName": "Rivera",
    "email": "Jamie@Example.com",
    "password": "secret123",
    "confirmPassword": "secret123",
}


def _register(client: FlaskClient, **overrides) -> dict:
    response = client.post("/api/auth/register", json={**REGISTRATION, **overrides})
    assert response.status_code == 201
    return response.get_json()["data"]


def test_register_verify_and_login(client: FlaskClient, app):
    data = _register(client)
    assert data["email"] == "jamie@example.com"
    assert data["otp"] == "123456"

    with app.app_context():
        user = db.session.get(User, data["userId"])
        assert user.role == "panelist"
        assert user.email_otp_hash and user.email_otp_hash != "123456"

    response = client.post("/api/auth/login", json={"email": "jamie@example.com", "password": "secret123"})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Please verify your email before logging in"

    response = client.post("/api/auth/verify-otp", json={"email": "jamie@example.com", "otp": "123456"})
    assert response.status_code == 200
    verified = response.get_json()["data"]
    assert verified["user"]["isEmailVerified"] is True
    assert verified["token"]

    response = client.post("/api/auth/login", json={"email": "JAMIE@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.get_json()["data"]["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["user"]["email"] == "jamie@example.com"


def test_duplicate_registration_conflicts(client: FlaskClient):
    _register(client)
    response = client.post("/api/auth/register", json={**REGISTRATION, "email": "jamie@example.com"})
    assert response.status_code == 409
    assert response.get_json()["message"] == "User already exists with this email"


def test_mismatched_confirmation_is_rejected(client: FlaskClient):
    response = client.post("/api/auth/register", json={**REGISTRATION, "confirmPassword": "other123"})
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "confirmPassword"


def test_otp_cannot_be_reused(client: FlaskClient):
    _register(client)
    payload = {"email": "jamie@example.com", "otp": "123456"}

    assert client.post("/api/auth/verify-otp", json=payload).status_code == 200
    second = client.post("/api/auth/verify-otp", json=payload)
    assert second.status_code == 400
    assert second.get_json()["message"] == "Invalid or expired OTP"


def test_expired_otp_is_rejected(client: FlaskClient, app):
    data = _register(client)
    with app.app_context():
        user = db.session.get(User, data["userId"])
        user.email_otp_expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

    response = client.post("/api/auth/verify-otp", json={"email": "jamie@example.com", "otp": "123456"})
    assert response.status_code == 400

    resent = client.post("/api/auth/resend-otp", json={"email": "jamie@example.com"})
    assert resent.status_code == 200
    assert resent.get_json()["data"]["otp"] == "123456"
    response = client.post("/api/auth/verify-otp", json={"email": "jamie@example.com", "otp": "123456"})
    assert response.status_code == 200


def test_wrong_otp_is_rejected(client: FlaskClient):
    _register(client)
    response = client.post("/api/auth/verify-otp", json={"email": "jamie@example.com", "otp": "000000"})
    assert response.status_code == 400


@pytest.mark.parametrize(
    "payload, status_code, message",
    [
        ({"email": "pat@example.com"}, 400, None),
        ({"email": "pat@example.com", "password": "wrong"}, 401, "Invalid credentials"),
        ({"email": "nobody@example.com", "password": PASSWORD}, 401, "Invalid credentials"),
    ],
)
def test_login_validation(client: FlaskClient, make_user, payload, status_code, message):
    make_user("pat@example.com")

    response = client.post("/api/auth/login", json=payload)

    assert response.status_code == status_code
    if message:
        assert response.get_json()["message"] == message


def test_deactivated_account_cannot_log_in(client: FlaskClient, make_user):
    make_user("pat@example.com", active=False)
    response = client.post("/api/auth/login", json={"email": "pat@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Account is deactivated"


def test_forgot_password_is_uniform(client: FlaskClient, make_user):
    make_user("pat@example.com")
    known = client.post("/api/auth/forgot-password", json={"email": "pat@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.get_json()["message"] == unknown.get_json()["message"]


def test_reset_password_revokes_sessions(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user("pat@example.com")
    headers = user_headers(user_id)
    client.post("/api/auth/forgot-password", json={"email": "pat@example.com"})

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "pat@example.com", "otp": "123456", "newPassword": "brandnew1"},
    )
    assert response.status_code == 200

    revoked = client.get("/api/auth/me", headers=headers)
    assert revoked.status_code == 403
    assert revoked.get_json()["message"] == "Session has been revoked"

    login = client.post("/api/auth/login", json={"email": "pat@example.com", "password": "brandnew1"})
    assert login.status_code == 200


def test_change_password_with_otp(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user("pat@example.com")
    headers = user_headers(user_id)

    requested = client.post("/api/auth/request-password-change-otp", headers=headers)
    assert requested.get_json()["data"]["otp"] == "123456"

    body = {
        "currentPassword": PASSWORD,
        "newPassword": PASSWORD,
        "confirmPassword": PASSWORD,
        "otp": "123456",
    }
    same = client.post("/api/auth/change-password-with-otp", json=body, headers=headers)
    assert same.status_code == 400

    body.update(newPassword="Different9", confirmPassword="Different9")
    changed = client.post("/api/auth/change-password-with-otp", json=body, headers=headers)
    assert changed.status_code == 200

    with app.app_context():
        assert db.session.get(User, user_id).check_password("Different9")


def test_logout_revokes_only_current_session(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user("pat@example.com")
    first = user_headers(user_id)
    second = user_headers(user_id)

    assert client.post("/api/auth/logout", headers=first).status_code == 200
    assert client.get("/api/auth/me", headers=first).status_code == 403
    assert client.get("/api/auth/me", headers=second).status_code == 200

    with app.app_context():
        assert UserSession.query.filter_by(user_id=user_id, is_active=True).count() == 1


def test_password_whitespace_is_preserved(client: FlaskClient):
    _register(client, password=" abcdef ", confirmPassword=" abcdef ")
    client.post("/api/auth/verify-otp", json={"email": "jamie@example.com", "otp": "123456"})

    response = client.post("/api/auth/login", json={"email": "jamie@example.com", "password": " abcdef "})
    assert response.status_code == 200

    response = client.post("/api/auth/login", json={"email": "jamie@example.com", "password": "abcdef"})
    assert response.status_code == 401
