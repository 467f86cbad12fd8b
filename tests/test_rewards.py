"""Tests covering the reward catalog, redemptions and status changes."""

from __future__ import annotations

from flask.testing import FlaskClient

from models import db
from models.reward import Reward, RewardRedemption
from models.user import User


def _create_reward(app, points: int = 100, *, active: bool = True) -> int:
    with app.app_context():
        reward = Reward(name="Coffee card", points=points, reward_type="gift_card", value=5, is_active=active)
        db.session.add(reward)
        db.session.commit()
        return reward.id


def test_redeem_exact_balance_then_fail(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user(points=100)
    headers = user_headers(user_id)
    reward_id = _create_reward(app, 100)

    first = client.post(f"/api/rewards/redeem/{reward_id}", headers=headers)
    assert first.status_code == 201
    data = first.get_json()["data"]
    assert data["remainingPoints"] == 0
    assert data["redemption"]["status"] == "pending"

    second = client.post(f"/api/rewards/redeem/{reward_id}", headers=headers)
    assert second.status_code == 400
    assert second.get_json()["message"] == "Insufficient points"

    with app.app_context():
        assert db.session.get(User, user_id).points == 0
        assert RewardRedemption.query.filter_by(user_id=user_id).count() == 1


def test_inactive_reward_cannot_be_redeemed(client: FlaskClient, make_user, user_headers, app):
    headers = user_headers(make_user(points=500))
    reward_id = _create_reward(app, 100, active=False)

    response = client.post(f"/api/rewards/redeem/{reward_id}", headers=headers)
    assert response.status_code == 400
    assert response.get_json()["message"] == "Reward is not available"


def test_panelist_catalog_flags_affordability(client: FlaskClient, make_user, user_headers, app):
    headers = user_headers(make_user(points=150))
    _create_reward(app, 100)
    _create_reward(app, 200)
    _create_reward(app, 50, active=False)

    data = client.get("/api/rewards/panelist", headers=headers).get_json()["data"]
    assert data["userPoints"] == 150
    assert [(item["points"], item["canAfford"]) for item in data["rewards"]] == [(100, True), (200, False)]


def test_rejecting_redemption_refunds_points(client: FlaskClient, make_user, user_headers, app):
    user_id = make_user(points=100)
    panelist = user_headers(user_id)
    admin = user_headers(make_user("admin@example.com", "admin"))
    reward_id = _create_reward(app, 100)

    redemption_id = client.post(f"/api/rewards/redeem/{reward_id}", headers=panelist).get_json()["data"]["redemption"]["id"]

    rejected = client.put(
        f"/api/rewards/redemptions/{redemption_id}/status",
        json={"status": "rejected"},
        headers=admin,
    )
    assert rejected.status_code == 200

    terminal = client.put(
        f"/api/rewards/redemptions/{redemption_id}/status",
        json={"status": "completed"},
        headers=admin,
    )
    assert terminal.status_code == 409

    with app.app_context():
        user = db.session.get(User, user_id)
        assert user.points == 100
        assert user.total_points == 100


def test_panelist_cannot_manage_catalog(client: FlaskClient, make_user, user_headers):
    headers = user_headers(make_user())
    response = client.post(
        "/api/rewards",
        json={"name": "Free", "points": 1, "type": "other"},
        headers=headers,
    )
    assert response.status_code == 403


def test_admin_creates_reward(client: FlaskClient, make_user, user_headers):
    headers = user_headers(make_user("admin@example.com", "admin"))
    response = client.post(
        "/api/rewards",
        json={"name": "Gift card", "points": 500, "type": "gift_card", "value": 10},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.get_json()["data"]["reward"]["type"] == "gift_card"

    invalid = client.post("/api/rewards", json={"name": "Bad", "points": 0, "type": "gift_card"}, headers=headers)
    assert invalid.status_code == 400


def test_reward_with_redemptions_cannot_be_deleted(client: FlaskClient, make_user, user_headers, app):
    admin = user_headers(make_user("admin@example.com", "admin"))
    user_id = make_user(points=100)
    reward_id = _create_reward(app, 100)
    unused_id = _create_reward(app, 10)

    assert client.post(f"/api/rewards/redeem/{reward_id}", headers=user_headers(user_id)).status_code == 201

    response = client.delete(f"/api/rewards/{reward_id}", headers=admin)
    assert response.status_code == 409
    assert client.delete(f"/api/rewards/{unused_id}", headers=admin).status_code == 200

    with app.app_context():
        assert db.session.get(Reward, reward_id) is not None
        assert db.session.get(Reward, unused_id) is None
        assert RewardRedemption.query.filter_by(reward_id=reward_id, status="pending").count() == 1
