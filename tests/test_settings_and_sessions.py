"""Tests covering settings persistence, panelist profile and session management."""

from __future__ import annotations

from flask.testing import FlaskClient

from conftest import PASSWORD
from models import db
from models.user import User
from models.user_session import UserSession


def test_system_settings_persist(client: FlaskClient, make_user, user_headers):
    admin = user_headers(make_user("admin@example.com", "admin"))

    defaults = client.get("/api/settings/system", headers=admin).get_json()["data"]["settings"]
    assert defaults["siteName"] == "Panel Sam"
    assert defaults["maxFileSize"] == 5242880

    updated = client.put(
        "/api/settings/system",
        json={"siteName": "Opinion Hub", "maintenanceMode": True},
        headers=admin,
    )
    assert updated.status_code == 200

    reread = client.get("/api/settings/system", headers=admin).get_json()["data"]["settings"]
    assert reread["siteName"] == "Opinion Hub"
    assert reread["maintenanceMode"] is True


def test_system_settings_reject_inverted_reward_bounds(client: FlaskClient, make_user, user_headers):
    admin = user_headers(make_user("admin@example.com", "admin"))
    response = client.put(
        "/api/settings/system",
        json={"minRewardPoints": 500, "maxRewardPoints": 10},
        headers=admin,
    )
    assert response.status_code == 400


def test_system_settings_are_admin_only(client: FlaskClient, make_user, user_headers):
    researcher = user_headers(make_user("r@example.com", "researcher"))
    assert client.get("/api/settings/system", headers=researcher).status_code == 403


def test_user_settings_round_trip(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user()
    headers = user_headers(user_id)

    response = client.put(
        "/api/settings/user",
        json={
            "notifications": {"sms": True, "survey": False},
            "preferences": {"language": "fr", "surveyLength": "short"},
            "privacy": {"profileVisibility": "public"},
        },
        headers=headers,
    )
    assert response.status_code == 200

    settings = client.get("/api/settings/user", headers=headers).get_json()["data"]["settings"]
    assert settings["notifications"]["sms"] is True
    assert settings["notifications"]["survey"] is False
    assert settings["preferences"]["language"] == "fr"
    assert settings["privacy"]["profileVisibility"] == "public"

    invalid = client.put(
        "/api/settings/user", json={"preferences": {"language": "xx"}}, headers=headers
    )
    assert invalid.status_code == 400
    assert invalid.get_json()["errors"][0]["field"] == "preferences.language"


def test_privacy_consent_is_timestamped(client: FlaskClient, make_user, user_headers):
    headers = user_headers(make_user())
    response = client.put(
        "/api/settings/privacy",
        json={"gdprConsent": True, "dataRetention": "90_days"},
        headers=headers,
    )
    settings = response.get_json()["data"]["settings"]
    assert settings["gdprConsent"] is True
    assert settings["dataRetention"] == "90_days"
    assert settings["consentUpdatedAt"]


def test_logout_all_keeps_current_session(client: FlaskClient, make_user, user_headers):
    user_id = make_user()
    current = user_headers(user_id)
    other = user_headers(user_id)

    response = client.post("/api/settings/security/logout-all", headers=current)
    assert response.get_json()["data"]["loggedOut"] == 1

    assert client.get("/api/auth/me", headers=current).status_code == 200
    assert client.get("/api/auth/me", headers=other).status_code == 403


def test_device_logout_is_scoped_to_owner(client: FlaskClient, make_user, user_headers, app):
    owner_id = make_user("owner@example.com")
    owner = user_headers(owner_id)
    intruder = user_headers(make_user("intruder@example.com"))

    devices = client.get("/api/panelists/devices", headers=owner).get_json()["data"]["devices"]
    assert len(devices) == 1
    assert devices[0]["isCurrent"] is True
    session_id = devices[0]["id"]

    foreign = client.post("/api/panelists/devices/logout", json={"sessionId": session_id}, headers=intruder)
    assert foreign.status_code == 404

    own = client.post("/api/panelists/devices/logout", json={"sessionId": session_id}, headers=owner)
    assert own.status_code == 200
    with app.app_context():
        assert db.session.get(UserSession, session_id).is_active is False


def test_profile_update_raises_completion(client: FlaskClient, make_user, user_headers):
    headers = user_headers(make_user())

    before = client.get("/api/panelists/profile-completion", headers=headers).get_json()["data"]
    assert before["overallCompletion"] == 23
    assert before["profileStrength"] == "weak"
    assert before["missingFields"] == 20

    updated = client.put(
        "/api/panelists/profile",
        json={"age": 34, "gender": "female", "education": "master", "occupation": "Engineer"},
        headers=headers,
    )
    assert updated.status_code == 200

    after = client.get("/api/panelists/profile-completion", headers=headers).get_json()["data"]
    assert after["overallCompletion"] == 38
    assert after["sections"]["demographics"]["completed"] == 3


def test_delete_account_deactivates_and_revokes(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user()
    headers = user_headers(user_id)

    unconfirmed = client.post("/api/settings/privacy/delete-account", json={"reason": "Moving on"}, headers=headers)
    assert unconfirmed.status_code == 400

    deleted = client.post(
        "/api/settings/privacy/delete-account", json={"confirm": True}, headers=headers
    )
    assert deleted.status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 403

    login = client.post("/api/auth/login", json={"email": "panelist@example.com", "password": PASSWORD})
    assert login.status_code == 401
    with app.app_context():
        assert db.session.get(User, user_id).is_active is False


def test_support_tickets_are_private(client: FlaskClient, make_user, user_headers):
    author = user_headers(make_user("author@example.com"))
    other = user_headers(make_user("other@example.com"))

    created = client.post(
        "/api/panelists/support-tickets",
        json={
            "category": "Technical",
            "priority": "High",
            "subject": "Survey froze",
            "message": "The survey stopped loading on question 3.",
        },
        headers=author,
    )
    assert created.status_code == 201
    ticket_id = created.get_json()["data"]["ticket"]["id"]

    assert client.get(f"/api/panelists/support-tickets/{ticket_id}", headers=author).status_code == 200
    assert client.get(f"/api/panelists/support-tickets/{ticket_id}", headers=other).status_code == 404


def test_data_export_is_an_attachment(client: FlaskClient, make_user, user_headers):
    headers = user_headers(make_user())
    response = client.get("/api/panelists/data-export", headers=headers)
    assert response.status_code == 200
    assert "attachment" in response.headers["Content-Disposition"]
    payload = response.get_json()
    assert payload["data"]["email"] == "panelist@example.com"
    assert "password_hash" not in payload["data"]


def test_admin_deactivation_revokes_sessions(client: FlaskClient, make_user, user_headers, app):
    admin = user_headers(make_user("admin@example.com", "admin"))
    user_id = make_user()
    headers = user_headers(user_id)
    assert client.get("/api/auth/me", headers=headers).status_code == 200

    response = client.put(f"/api/users/{user_id}", json={"isActive": False}, headers=admin)
    assert response.status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 403
    with app.app_context():
        assert UserSession.query.filter_by(user_id=user_id, is_active=True).count() == 0


def test_role_change_revokes_sessions(client: FlaskClient, make_user, user_headers):
    admin = user_headers(make_user("admin@example.com", "admin"))
    researcher_id = make_user("r@example.com", "researcher")
    headers = user_headers(researcher_id)

    unchanged = client.put(f"/api/users/{researcher_id}", json={"role": "researcher"}, headers=admin)
    assert unchanged.status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 200

    client.put(f"/api/users/{researcher_id}", json={"role": "panelist"}, headers=admin)
    assert client.get("/api/auth/me", headers=headers).status_code == 403
