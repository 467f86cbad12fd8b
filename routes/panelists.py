"""Panelist self-service blueprint: dashboard, profile, devices, data and support."""

from __future__ import annotations

import json
from http import HTTPStatus

from flask import Blueprint, Response, current_app, request
from sqlalchemy import func, or_
from werkzeug.exceptions import BadRequest, NotFound

from models import db, utcnow
from models.support_ticket import TICKET_CATEGORIES, TICKET_PRIORITIES, SupportTicket
from models.survey import Survey
from models.survey_response import SurveyResponse
from models.user import (
    DEVICE_PREFERENCES,
    EDUCATION_LEVELS,
    EMPLOYMENT_STATUSES,
    GENDERS,
    HOUSEHOLD_INCOME_BRACKETS,
    INCOME_LEVELS,
    INTERNET_ACCESS_TYPES,
    MARITAL_STATUSES,
    SURVEY_LENGTHS,
    User,
)
from models.user_activity import UserActivity
from models.user_session import UserSession
from routes.analytics import build_monthly_analytics
from utils.auth import (
    PANELISTS,
    RESEARCHERS,
    current_identity,
    current_jti,
    current_user,
    user_required,
)
from utils.request_validation import PayloadValidator, page_args, parse_json_request
from utils.responses import paginate, success

panelists_bp = Blueprint("panelists", __name__)


def available_surveys_for(user: User) -> list[Survey]:
    """Active surveys whose targeting includes ``user``, newest first."""

    now = utcnow()
    surveys = (
        Survey.query.filter(Survey.status == "active")
        .order_by(Survey.created_at.desc())
        .all()
    )
    return [survey for survey in surveys if survey.is_open(now) and survey.targets(user)]


def _profile_strength(completion: int) -> str:
    if completion >= 80:
        return "strong"
    if completion >= 50:
        return "medium"
    return "weak"


@panelists_bp.route("/dashboard", methods=["GET"])
@user_required(PANELISTS)
def dashboard():
    user = current_user()
    available = available_surveys_for(user)
    completed = SurveyResponse.query.filter_by(
        respondent_id=user.id, status="completed"
    ).count()
    activity = (
        UserActivity.query.filter_by(user_id=user.id)
        .order_by(UserActivity.created_at.desc(), UserActivity.id.desc())
        .limit(10)
        .all()
    )
    return success(
        {
            "stats": {
                "availableSurveys": len(available),
                "completedSurveys": completed,
                "profileCompletion": user.profile_completion(),
                "totalRewards": user.total_points,
                "currentPoints": user.points,
            },
            "recentSurveys": [
                survey.to_dict(include_questions=False, include_creator=False)
                for survey in available[:5]
            ],
            "recentActivity": [entry.to_dict() for entry in activity],
        }
    )


@panelists_bp.route("/profile", methods=["GET"])
@user_required(PANELISTS)
def get_profile():
    user = current_user()
    return success({"profile": user.to_dict(include_profile=True)})


@panelists_bp.route("/profile", methods=["PUT"])
@user_required(PANELISTS)
def update_profile():
    """Update demographic and preference fields of the caller's profile."""
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    values = {
        "first_name": validator.string("firstName", min_length=2, max_length=50),
        "last_name": validator.string("lastName", min_length=2, max_length=50),
        "contact_number": validator.string("contactNumber", max_length=32),
        "country_code": validator.string("countryCode", max_length=8),
        "location": validator.string("location", max_length=255),
        "language": validator.string("language", max_length=16),
        "occupation": validator.string("occupation", max_length=255),
        "age": validator.integer("age", minimum=1, maximum=120),
        "gender": validator.string("gender", choices=GENDERS),
        "education": validator.string("education", choices=EDUCATION_LEVELS),
        "income": validator.string("income", choices=INCOME_LEVELS),
        "marital_status": validator.string("maritalStatus", choices=MARITAL_STATUSES),
        "household_size": validator.integer("householdSize", minimum=1, maximum=20),
        "children": validator.integer("children", minimum=0, maximum=10),
        "address": validator.string("address", max_length=500),
        "employment_status": validator.string("employmentStatus", choices=EMPLOYMENT_STATUSES),
        "annual_household_income": validator.string(
            "annualHouseholdIncome", choices=HOUSEHOLD_INCOME_BRACKETS
        ),
        "languages_spoken": validator.string_list("languagesSpoken"),
        "religion": validator.string("religion", max_length=64),
        "ethnicity": validator.string("ethnicity", max_length=64),
        "device_ownership": validator.string_list("deviceOwnership"),
        "internet_access": validator.string("internetAccess", choices=INTERNET_ACCESS_TYPES),
        "social_media_platforms": validator.string_list("socialMediaPlatforms"),
        "preferred_survey_length": validator.string(
            "preferredSurveyLength", choices=SURVEY_LENGTHS
        ),
        "topics_of_interest": validator.string_list("topicsOfInterest"),
        "preferred_device_for_surveys": validator.string(
            "preferredDeviceForSurveys", choices=DEVICE_PREFERENCES
        ),
        "receive_notifications": validator.boolean("receiveNotifications"),
    }
    validator.raise_for_errors()

    user = current_user()
    for column, value in values.items():
        if value is not None:
            setattr(user, column, value)
    UserActivity.record(
        user.id,
        "profile_updated",
        "Profile updated",
        f"Profile is {user.profile_completion()}% complete",
    )
    db.session.commit()
    return success(
        {"profile": user.to_dict(include_profile=True)}, "Profile updated successfully"
    )


@panelists_bp.route("/profile-completion", methods=["GET"])
@user_required(PANELISTS)
def profile_completion():
    user = current_user()
    sections = user.profile_sections()
    overall = user.profile_completion()
    return success(
        {
            "overallCompletion": overall,
            "profileStrength": _profile_strength(overall),
            "sections": sections,
            "missingFields": sum(len(section["missing"]) for section in sections.values()),
        }
    )


@panelists_bp.route("/survey-history", methods=["GET"])
@user_required(PANELISTS)
def survey_history():
    page, limit = page_args(request.args)
    query = SurveyResponse.query.filter(
        SurveyResponse.respondent_id == current_identity().id,
        SurveyResponse.status.in_(("completed", "disqualified")),
    ).order_by(SurveyResponse.completed_at.desc())
    responses, pagination = paginate(query, page, limit)
    return success(
        {
            "responses": [response.to_dict(include_survey=True) for response in responses],
            "pagination": pagination,
        }
    )


@panelists_bp.route("/stats/<int:panelist_id>", methods=["GET"])
@user_required(RESEARCHERS)
def panelist_stats(panelist_id: int):
    panelist = db.session.get(User, panelist_id)
    if panelist is None or panelist.role != "panelist":
        raise NotFound("Panelist not found")

    responses = SurveyResponse.query.filter_by(respondent_id=panelist.id).all()
    completed = [response for response in responses if response.status == "completed"]
    disqualified = [response for response in responses if response.status == "disqualified"]
    timed = [response.time_spent for response in completed if response.time_spent]
    finished = len(completed) + len(disqualified)
    return success(
        {
            "panelist": panelist.to_dict(),
            "stats": {
                "totalResponses": len(responses),
                "completedSurveys": len(completed),
                "disqualifiedSurveys": len(disqualified),
                "inProgressSurveys": len(responses) - finished,
                "completionRate": round(len(completed) * 100 / finished, 1) if finished else 0,
                "totalPointsEarned": sum(response.points_earned for response in completed),
                "averageTimeSpent": round(sum(timed) / len(timed)) if timed else 0,
                "profileCompletion": panelist.profile_completion(),
            },
        }
    )


@panelists_bp.route("/all", methods=["GET"])
@user_required(RESEARCHERS)
def all_panelists():
    page, limit = page_args(request.args)
    query = User.query.filter(User.role == "panelist")

    search = request.args.get("search")
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(User.first_name).like(like),
                func.lower(User.last_name).like(like),
                func.lower(User.email).like(like),
            )
        )

    country = request.args.get("country")
    if country:
        query = query.filter(func.lower(User.location).like(f"%{country.lower()}%"))

    gender = request.args.get("gender")
    if gender:
        if gender not in GENDERS:
            raise BadRequest("Invalid gender")
        query = query.filter(User.gender == gender)

    panelists, pagination = paginate(query.order_by(User.created_at.desc()), page, limit)
    return success(
        {
            "panelists": [
                dict(panelist.to_dict(include_profile=True), profileCompletion=panelist.profile_completion())
                for panelist in panelists
            ],
            "pagination": pagination,
        }
    )


@panelists_bp.route("/demographics", methods=["GET"])
@user_required(RESEARCHERS)
def demographics():
    base = User.query.filter(User.role == "panelist")
    by_location = (
        db.session.query(User.location, func.count(User.id))
        .filter(User.role == "panelist", User.location.isnot(None))
        .group_by(User.location)
        .order_by(func.count(User.id).desc())
        .limit(10)
        .all()
    )
    by_gender = (
        db.session.query(User.gender, func.count(User.id))
        .filter(User.role == "panelist", User.gender.isnot(None))
        .group_by(User.gender)
        .all()
    )
    average_age = (
        db.session.query(func.avg(User.age))
        .filter(User.role == "panelist", User.age.isnot(None))
        .scalar()
    )
    return success(
        {
            "totalPanelists": base.count(),
            "verifiedPanelists": base.filter(User.is_email_verified.is_(True)).count(),
            "activePanelists": base.filter(User.is_active.is_(True)).count(),
            "byLocation": [{"location": loc, "count": count} for loc, count in by_location],
            "byGender": [{"gender": gender, "count": count} for gender, count in by_gender],
            "averageAge": round(float(average_age), 1) if average_age is not None else None,
        }
    )


@panelists_bp.route("/analytics/monthly", methods=["GET"])
@user_required(PANELISTS)
def monthly_analytics():
    return success(build_monthly_analytics(current_identity().id))


@panelists_bp.route("/devices", methods=["GET"])
@user_required(PANELISTS)
def list_devices():
    sessions = (
        UserSession.query.filter_by(user_id=current_identity().id, is_active=True)
        .order_by(UserSession.last_used_at.desc())
        .all()
    )
    jti = current_jti()
    now = utcnow()
    return success(
        {"devices": [session.to_dict(jti) for session in sessions if session.is_live(now)]}
    )


@panelists_bp.route("/devices/logout", methods=["POST"])
@user_required(PANELISTS)
def logout_device():
    data = parse_json_request(request, required_keys=("sessionId",))
    validator = PayloadValidator(data)
    session_id = validator.integer("sessionId", required=True, minimum=1)
    validator.raise_for_errors()

    updated = UserSession.query.filter_by(
        id=session_id, user_id=current_identity().id
    ).update({UserSession.is_active: False}, synchronize_session=False)
    if not updated:
        raise NotFound("Session not found")
    db.session.commit()
    return success(message="Device logged out successfully")


@panelists_bp.route("/data-export", methods=["GET"])
@user_required(PANELISTS)
def data_export():
    user = current_user()
    body = json.dumps({"success": True, "data": user.export_dict()}, indent=2)
    current_app.logger.info("User %s exported their data", user.id)
    return Response(
        body,
        mimetype="application/json",
        headers={
            "Content-Disposition": f"attachment; filename=panelist-data-{user.id}.json"
        },
    )


@panelists_bp.route("/request-delete", methods=["POST"])
@user_required(PANELISTS)
def request_delete():
    """Permanently delete the caller's account and everything that hangs off it."""
    data = parse_json_request(request)
    if data.get("confirm") is not True:
        raise BadRequest("Account deletion must be confirmed")

    user = current_user()
    user_id = user.id
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted their account", user_id)
    return success(message="Account deleted successfully")


@panelists_bp.route("/support-tickets", methods=["POST"])
@user_required(PANELISTS)
def create_support_ticket():
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    category = validator.string("category", required=True, choices=TICKET_CATEGORIES)
    priority = validator.string("priority", required=True, choices=TICKET_PRIORITIES)
    subject = validator.string("subject", required=True, min_length=5, max_length=100)
    message = validator.string("message", required=True, min_length=10, max_length=1000)
    validator.raise_for_errors()

    ticket = SupportTicket(
        user_id=current_identity().id,
        category=category,
        priority=priority,
        subject=subject,
        message=message,
    )
    db.session.add(ticket)
    db.session.commit()
    return success(
        {"ticket": ticket.to_dict()},
        "Support ticket submitted successfully",
        HTTPStatus.CREATED,
    )


@panelists_bp.route("/support-tickets", methods=["GET"])
@user_required(PANELISTS)
def list_support_tickets():
    tickets = (
        SupportTicket.query.filter_by(user_id=current_identity().id)
        .order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
        .all()
    )
    return success({"tickets": [ticket.to_dict() for ticket in tickets]})


@panelists_bp.route("/support-tickets/<int:ticket_id>", methods=["GET"])
@user_required(PANELISTS)
def get_support_ticket(ticket_id: int):
    ticket = SupportTicket.query.filter_by(
        id=ticket_id, user_id=current_identity().id
    ).first()
    if ticket is None:
        raise NotFound("Support ticket not found")
    return success({"ticket": ticket.to_dict()})
