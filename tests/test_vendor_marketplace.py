"""Tests covering vendor accounts, projects, bids and project messages."""

from __future__ import annotations

from flask.testing import FlaskClient

from conftest import PASSWORD
from models import db
from models.bid import Bid
from models.vendor import Vendor


def _post_project(client: FlaskClient, headers: dict, **extra) -> dict:
    body = {"title": "Need 500 completes", "description": "US gen pop, 10 minute LOI"}
    body.update(extra)
    response = client.post("/api/vendor/projects", json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]["project"]


def test_vendor_registration_verification_and_login(client: FlaskClient, app):
    registered = client.post(
        "/api/vendor/register",
        json={
            "name": "Ana",
            "email": "ana@panels.example",
            "password": "secret123",
            "company": "Panels Ltd",
            "industry": "Market research",
        },
    )
    assert registered.status_code == 201
    otp = registered.get_json()["data"]["otp"]

    pending = client.post("/api/vendor/login", json={"email": "ana@panels.example", "password": "secret123"})
    assert pending.status_code == 401
    assert pending.get_json()["message"] == "Please verify your email first."

    verified = client.post("/api/vendor/verify-otp", json={"email": "ana@panels.example", "otp": otp})
    assert verified.status_code == 200
    assert verified.get_json()["data"]["vendor"]["status"] == "active"

    login = client.post("/api/vendor/login", json={"email": "ana@panels.example", "password": "secret123"})
    assert login.status_code == 200
    token = login.get_json()["data"]["token"]

    profile = client.get("/api/vendor/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    data = profile.get_json()["data"]
    assert data["vendor"]["profile"] == {"industry": "Market research"}
    assert data["isProfileComplete"] is False

    duplicate = client.post(
        "/api/vendor/register",
        json={"name": "Ana", "email": "ANA@panels.example", "password": "secret123", "company": "X"},
    )
    assert duplicate.status_code == 409


def test_deactivated_vendor_cannot_log_in(client: FlaskClient, make_vendor):
    make_vendor(status="deactivated")
    response = client.post("/api/vendor/login", json={"email": "vendor@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Account is deactivated."


def test_tokens_do_not_cross_namespaces(client: FlaskClient, make_user, user_headers, make_vendor, vendor_headers):
    user = user_headers(make_user())
    vendor = vendor_headers(make_vendor())

    as_vendor = client.get("/api/vendor/profile", headers=user)
    assert as_vendor.status_code == 403
    assert as_vendor.get_json()["message"] == "Invalid token payload"

    as_user = client.get("/api/auth/me", headers=vendor)
    assert as_user.status_code == 403
    assert as_user.get_json()["message"] == "Invalid token payload"


def test_project_brief_defaults_and_overrides(client: FlaskClient, make_vendor, vendor_headers):
    headers = vendor_headers(make_vendor())

    plain = _post_project(client, headers)
    assert plain["status"] == "open"
    assert plain["surveyDetails"]["currency"] == "USD"
    assert plain["surveyDetails"]["category"] == "General"
    assert plain["surveyDetails"]["qualityChecks"] is True

    detailed = _post_project(client, headers, category="Healthcare", sampleSize=300, cpi=4.5)
    details = detailed["surveyDetails"]
    assert details["category"] == "Healthcare"
    assert details["sampleSize"] == 300
    assert details["cpi"] == 4.5
    assert details["currency"] == "USD"


def test_bidding_rules(client: FlaskClient, make_vendor, vendor_headers, app):
    owner_id = make_vendor("owner@example.com")
    bidder_id = make_vendor("bidder@example.com")
    owner = vendor_headers(owner_id)
    bidder = vendor_headers(bidder_id)
    project = _post_project(client, owner)
    url = f"/api/vendor/projects/{project['id']}/bids"

    own = client.post(url, json={"amount": 1000}, headers=owner)
    assert own.status_code == 403

    zero = client.post(url, json={"amount": 0}, headers=bidder)
    assert zero.status_code == 400

    placed = client.post(url, json={"amount": 1000, "message": "We can field in a week"}, headers=bidder)
    assert placed.status_code == 201

    duplicate = client.post(url, json={"amount": 900}, headers=bidder)
    assert duplicate.status_code == 409

    available = client.get("/api/vendor/projects/available", headers=bidder).get_json()["data"]["projects"]
    assert available[0]["myBid"]["amount"] == 1000

    listed = client.get(url, headers=owner).get_json()["data"]["bids"]
    assert [bid["vendorId"] for bid in listed] == [bidder_id]
    assert client.get(url, headers=bidder).status_code == 403

    with app.app_context():
        assert Bid.query.filter_by(project_id=project["id"]).count() == 1


def test_only_bidder_can_change_bid(client: FlaskClient, make_vendor, vendor_headers):
    owner = vendor_headers(make_vendor("owner@example.com"))
    bidder = vendor_headers(make_vendor("bidder@example.com"))
    project = _post_project(client, owner)
    bid = client.post(
        f"/api/vendor/projects/{project['id']}/bids", json={"amount": 700}, headers=bidder
    ).get_json()["data"]["bid"]

    assert client.put(f"/api/vendor/bids/{bid['id']}", json={"amount": 1}, headers=owner).status_code == 403
    updated = client.put(f"/api/vendor/bids/{bid['id']}", json={"amount": 650}, headers=bidder)
    assert updated.get_json()["data"]["bid"]["amount"] == 650
    assert client.delete(f"/api/vendor/bids/{bid['id']}", headers=bidder).status_code == 200


def test_assign_project_and_exchange_messages(client: FlaskClient, make_vendor, vendor_headers, app):
    owner_id = make_vendor("owner@example.com")
    bidder_id = make_vendor("bidder@example.com")
    outsider_id = make_vendor("outsider@example.com")
    owner = vendor_headers(owner_id)
    bidder = vendor_headers(bidder_id)
    outsider = vendor_headers(outsider_id)
    project = _post_project(client, owner)
    client.post(f"/api/vendor/projects/{project['id']}/bids", json={"amount": 800}, headers=bidder)

    missing = client.patch(
        f"/api/vendor/projects/{project['id']}/assign", json={"assignedToId": 9999}, headers=owner
    )
    assert missing.status_code == 404

    assigned = client.patch(
        f"/api/vendor/projects/{project['id']}/assign", json={"assignedToId": bidder_id}, headers=owner
    )
    assert assigned.status_code == 200
    assert assigned.get_json()["data"]["project"]["status"] == "assigned"
    assert client.get(f"/api/vendor/projects/{project['id']}", headers=bidder).status_code == 200

    url = f"/api/vendor/projects/{project['id']}/messages"
    sent = client.post(url, json={"receiverId": bidder_id, "message": "Welcome aboard"}, headers=owner)
    assert sent.status_code == 201
    assert sent.get_json()["data"]["message"]["message"] == "Welcome aboard"

    blocked = client.post(url, json={"receiverId": owner_id, "message": "Hi"}, headers=outsider)
    assert blocked.status_code == 403

    inbox = client.get("/api/vendor/messages", headers=bidder).get_json()["data"]["messages"]
    assert [message["senderId"] for message in inbox] == [owner_id]

    analytics = client.get("/api/vendor/analytics", headers=bidder).get_json()["data"]["analytics"]
    assert analytics["acceptedBids"] == 1
    assert analytics["successRate"] == 100.0


def test_community_feed_and_public_vendor(client: FlaskClient, make_vendor, vendor_headers):
    owner_id = make_vendor("owner@example.com")
    owner = vendor_headers(owner_id)
    viewer = vendor_headers(make_vendor("viewer@example.com"))
    _post_project(client, owner)

    feed = client.get("/api/vendor/community-feed", headers=viewer).get_json()["data"]["communityFeed"]
    assert len(feed["recentProjects"]) == 1
    assert feed["recentBidsOnMyProjects"] == []

    public = client.get(f"/api/vendor/vendors/{owner_id}")
    assert public.status_code == 200
    assert "email" not in public.get_json()["data"]["vendor"]


def test_profile_completion_flag(client: FlaskClient, make_vendor, vendor_headers, app):
    vendor_id = make_vendor()
    headers = vendor_headers(vendor_id)
    response = client.put(
        "/api/vendor/profile",
        json={
            "profile": {
                "phone": "+1 555 0100",
                "address": "1 Main St",
                "city": "Austin",
                "industry": "Research",
                "description": "Online panels",
            },
            "yearsInBusiness": 8,
            "numberOfEmployees": 40,
            "annualRevenue": "1-5M",
            "panelBook": "https://example.com/panel-book.pdf",
            "panelRegistrationDetails": "ISO 20252",
            "businessInformation": "Delaware LLC",
            "servicesOffered": "Sampling, programming",
            "whyPartnerWithUs": "Fast turnaround",
        },
        headers=headers,
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["isProfileComplete"] is True

    with app.app_context():
        assert db.session.get(Vendor, vendor_id).profile["city"] == "Austin"
