"""End-to-end panelist journey: register, verify, complete a survey and redeem."""

from __future__ import annotations

from flask.testing import FlaskClient


def test_panelist_journey(client: FlaskClient, make_user, user_headers, app):
    admin = user_headers(make_user("admin@example.com", "admin"))

    registered = client.post(
        "/api/auth/register",
        json={
            "firstName": "Robin",
            "lastName": "Hughes",
            "email": "robin@example.com",
            "password": "secret123",
            "confirmPassword": "secret123",
        },
    )
    assert registered.status_code == 201
    otp = registered.get_json()["data"]["otp"]

    verified = client.post("/api/auth/verify-otp", json={"email": "robin@example.com", "otp": otp})
    assert verified.status_code == 200

    login = client.post("/api/auth/login", json={"email": "robin@example.com", "password": "secret123"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.get_json()['data']['token']}"}

    dashboard = client.get("/api/panelists/dashboard", headers=headers).get_json()["data"]
    assert dashboard["stats"]["profileCompletion"] == 23
    assert dashboard["stats"]["availableSurveys"] == 0

    survey = client.post(
        "/api/surveys",
        json={
            "title": "Streaming services",
            "description": "Which services do you use?",
            "questions": [{"id": "q1", "type": "checkbox", "question": "Pick all that apply"}],
            "category": "Media",
            "estimatedDuration": 3,
            "reward": 50,
            "status": "active",
        },
        headers=admin,
    ).get_json()["data"]["survey"]

    reward = client.post(
        "/api/rewards",
        json={"name": "Streaming credit", "points": 50, "type": "gift_card", "value": 5},
        headers=admin,
    ).get_json()["data"]["reward"]

    started = client.post("/api/survey-responses/start", json={"surveyId": survey["id"]}, headers=headers)
    response_id = started.get_json()["data"]["response"]["id"]
    completed = client.put(
        f"/api/survey-responses/{response_id}/complete",
        json={"responses": {"q1": ["A", "B"]}},
        headers=headers,
    )
    assert completed.get_json()["data"]["pointsEarned"] == 50

    dashboard = client.get("/api/panelists/dashboard", headers=headers).get_json()["data"]
    assert dashboard["stats"]["completedSurveys"] == 1
    assert dashboard["stats"]["currentPoints"] == 50
    assert dashboard["recentActivity"][0]["type"] == "survey_completed"

    redeemed = client.post(f"/api/rewards/redeem/{reward['id']}", headers=headers)
    assert redeemed.status_code == 201
    assert redeemed.get_json()["data"]["remainingPoints"] == 0

    monthly = client.get("/api/analytics/panelist/monthly", headers=headers).get_json()["data"]
    assert len(monthly["monthlyData"]) == 6
    current = monthly["monthlyData"][-1]
    assert current["pointsEarned"] == 50
    assert current["surveysCompleted"] == 1
    assert current["rewardsRedeemed"] == 1

    history = client.get("/api/panelists/survey-history", headers=headers).get_json()["data"]
    assert history["responses"][0]["status"] == "completed"
