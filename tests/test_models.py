"""Unit tests for model helpers."""

from __future__ import annotations

from datetime import datetime

import pytest

from models import db
from models.project import Project, ProjectBrief, default_brief
from models.reward import RewardRedemption
from models.user import User, percent
from models.vendor import Vendor


@pytest.mark.parametrize(
    "part, whole, expected",
    [(6, 26, 23), (1, 8, 13), (1, 2, 50), (0, 26, 0), (3, 0, 0), (26, 26, 100)],
)
def test_percent_rounds_halves_up(part, whole, expected):
    assert percent(part, whole) == expected


def test_password_helpers(app):
    with app.app_context():
        user = User(email="a@example.com", first_name="A", last_name="B")
        user.set_password("Secret123")
        assert user.password_hash != "Secret123"
        assert user.check_password("Secret123")
        assert not user.check_password("wrong")
        assert user.password_changed_at is not None


def test_debit_points_never_goes_negative(app, make_user):
    user_id = make_user(points=100)
    with app.app_context():
        assert User.debit_points(user_id, 60) is True
        assert User.debit_points(user_id, 60) is False
        db.session.commit()
        assert db.session.get(User, user_id).points == 40


def test_credit_points_tracks_lifetime_total(app, make_user):
    user_id = make_user(points=10)
    with app.app_context():
        User.credit_points(user_id, 5)
        User.credit_points(user_id, 7, lifetime=False)
        db.session.commit()
        user = db.session.get(User, user_id)
        assert (user.points, user.total_points) == (22, 15)


def test_redemption_transitions():
    pending = RewardRedemption(status="pending")
    assert pending.can_transition("approved")
    assert pending.can_transition("rejected")
    assert not pending.can_transition("pending")

    assert RewardRedemption(status="approved").can_transition("completed")
    assert not RewardRedemption(status="completed").can_transition("rejected")
    assert not RewardRedemption(status="rejected").can_transition("approved")


def test_default_brief_timeline_spans_thirty_days():
    brief = default_brief(datetime(2024, 1, 15, 9, 30))
    assert brief["timeline"] == {
        "startDate": "2024-01-15",
        "endDate": "2024-02-14",
        "estimatedDuration": 30,
    }
    assert brief["deliverables"] == ["Survey responses"]


def test_brief_dict_merges_stored_fields(app, make_vendor):
    vendor_id = make_vendor()
    with app.app_context():
        project = Project(title="T", description="D", posted_by_id=vendor_id)
        project.brief = ProjectBrief(loi=12, data_format="SPSS")
        db.session.add(project)
        db.session.commit()

        details = project.brief_dict()
        assert details["loi"] == 12
        assert details["dataFormat"] == "SPSS"
        assert details["surveyType"] == "Online"


def test_vendor_profile_completeness(app, make_vendor):
    vendor_id = make_vendor(profile={"phone": "1", "address": "a", "city": "c", "industry": "i"})
    with app.app_context():
        vendor = db.session.get(Vendor, vendor_id)
        assert vendor.is_profile_complete is False
        vendor.profile = dict(vendor.profile, description="d")
        for column in (
            "panel_book",
            "panel_registration_details",
            "business_information",
            "services_offered",
            "why_partner_with_us",
            "annual_revenue",
        ):
            setattr(vendor, column, "x")
        vendor.years_in_business = 0
        vendor.number_of_employees = 3
        assert vendor.is_profile_complete is True
