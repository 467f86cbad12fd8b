"""Survey authoring and discovery blueprint."""

from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy import func, or_
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db
from models.survey import QUESTION_TYPES, SURVEY_STATUSES, TARGET_GENDERS, Survey
from models.survey_response import SurveyResponse
from models.user import User
from routes.panelists import available_surveys_for
from utils.auth import (
    ANY_USER,
    PANELISTS,
    RESEARCHERS,
    current_identity,
    current_user,
    user_required,
)
from utils.request_validation import (
    PayloadValidator,
    ValidationFailed,
    page_args,
    parse_json_request,
)
from utils.responses import paginate, success

surveys_bp = Blueprint("surveys", __name__)


def _get_survey_or_404(survey_id: int) -> Survey:
    survey = db.session.get(Survey, survey_id)
    if survey is None:
        raise NotFound("Survey not found")
    return survey


def _can_manage(survey: Survey) -> bool:
    identity = current_identity()
    return identity.role == "admin" or survey.created_by_id == identity.id


def _parse_datetime(validator: PayloadValidator, field: str) -> datetime | None:
    raw = validator.string(field)
    if raw is None:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        validator.error(field, f"{field} must be ISO 8601 format")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=None)


def _validate_questions(validator: PayloadValidator, required: bool) -> list | None:
    questions = validator.data.get("questions")
    if questions is None:
        if required:
            validator.error("questions", "Questions must be a non-empty array")
        return None
    if not isinstance(questions, list) or not questions:
        validator.error("questions", "Questions must be a non-empty array")
        return None

    for index, question in enumerate(questions):
        if not isinstance(question, dict):
            validator.error(f"questions[{index}]", "Question must be an object")
            continue
        if not question.get("id"):
            validator.error(f"questions[{index}].id", "Question ID is required")
        if question.get("type") not in QUESTION_TYPES:
            validator.error(f"questions[{index}].type", "Invalid question type")
        text = question.get("question")
        if not isinstance(text, str) or not text.strip():
            validator.error(f"questions[{index}].question", "Question text is required")
    return questions


def _validate_survey_payload(data: dict, partial: bool = False) -> tuple[list, dict]:
    validator = PayloadValidator(data)
    required = not partial
    values = {
        "title": validator.string("title", required=required, max_length=200),
        "description": validator.string("description", required=required, max_length=1000),
        "questions": _validate_questions(validator, required),
        "category": validator.string("category", required=required, max_length=100),
        "estimated_duration": validator.integer(
            "estimatedDuration", required=required, minimum=1
        ),
        "reward": validator.integer("reward", required=required, minimum=0),
        "status": validator.string("status", choices=SURVEY_STATUSES),
        "max_participants": validator.integer("maxParticipants", minimum=1),
        "start_date": _parse_datetime(validator, "startDate"),
        "end_date": _parse_datetime(validator, "endDate"),
    }

    targeting = validator.mapping("targeting")
    if targeting is not None:
        target = PayloadValidator(targeting)
        values["age_min"] = target.integer("ageMin", minimum=1, maximum=120)
        values["age_max"] = target.integer("ageMax", minimum=1, maximum=120)
        values["target_gender"] = target.string("gender", choices=TARGET_GENDERS)
        values["target_locations"] = target.string_list("locations")
        for error in target.errors:
            validator.error(f"targeting.{error['field']}", error["message"])
        if (
            values["age_min"] is not None
            and values["age_max"] is not None
            and values["age_min"] > values["age_max"]
        ):
            validator.error("targeting.ageMin", "ageMin must not exceed ageMax")

    return validator.errors, values


@surveys_bp.route("", methods=["GET"])
@user_required(ANY_USER)
def list_surveys():
    """Return surveys visible to the caller with optional filters."""
    page, limit = page_args(request.args)
    identity = current_identity()
    query = Survey.query

    status = request.args.get("status")
    if status:
        if status not in SURVEY_STATUSES:
            raise BadRequest("Invalid status")
        query = query.filter(Survey.status == status)

    category = request.args.get("category")
    if category:
        query = query.filter(Survey.category == category)

    search = request.args.get("search")
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Survey.title).like(like),
                func.lower(Survey.description).like(like),
            )
        )

    created_by = request.args.get("createdBy")
    if created_by:
        try:
            query = query.filter(Survey.created_by_id == int(created_by))
        except ValueError:
            raise BadRequest("Invalid user ID")

    if identity.role != "admin":
        query = query.filter(
            or_(Survey.created_by_id == identity.id, Survey.status == "active")
        )

    surveys, pagination = paginate(query.order_by(Survey.created_at.desc()), page, limit)
    return success(
        {
            "surveys": [survey.to_dict(include_questions=False) for survey in surveys],
            "pagination": pagination,
        }
    )


@surveys_bp.route("/available/panelist", methods=["GET"])
@user_required(PANELISTS)
def available_for_panelist():
    page, limit = page_args(request.args, default_limit=10, max_limit=20)
    surveys = available_surveys_for(current_user())

    category = request.args.get("category")
    if category:
        surveys = [survey for survey in surveys if survey.category == category]

    start = (page - 1) * limit
    return success(
        {
            "surveys": [
                survey.to_dict(include_questions=False) for survey in surveys[start:start + limit]
            ],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": len(surveys),
                "pages": (len(surveys) + limit - 1) // limit,
            },
        }
    )


@surveys_bp.route("/stats/overview", methods=["GET"])
@user_required(RESEARCHERS)
def stats_overview():
    identity = current_identity()
    query = Survey.query
    if identity.role != "admin":
        query = query.filter(Survey.created_by_id == identity.id)

    by_status = dict(
        query.with_entities(Survey.status, func.count(Survey.id)).group_by(Survey.status).all()
    )
    by_category = (
        query.with_entities(Survey.category, func.count(Survey.id))
        .group_by(Survey.category)
        .all()
    )
    totals = query.with_entities(
        func.coalesce(func.sum(Survey.total_responses), 0),
        func.coalesce(func.sum(Survey.completed_responses), 0),
    ).one()
    recent = query.order_by(Survey.created_at.desc()).limit(5).all()
    return success(
        {
            "totalSurveys": sum(by_status.values()),
            "surveysByStatus": {status: by_status.get(status, 0) for status in SURVEY_STATUSES},
            "surveysByCategory": [
                {"category": category, "count": count} for category, count in by_category
            ],
            "totalResponses": int(totals[0]),
            "completedResponses": int(totals[1]),
            "recentSurveys": [survey.to_dict(include_questions=False) for survey in recent],
        }
    )


@surveys_bp.route("/<int:survey_id>", methods=["GET"])
@user_required(ANY_USER)
def get_survey(survey_id: int):
    survey = _get_survey_or_404(survey_id)
    if survey.status != "active" and not _can_manage(survey):
        raise Forbidden("Access denied")
    return success({"survey": survey.to_dict()})


@surveys_bp.route("", methods=["POST"])
@user_required(RESEARCHERS)
def create_survey():
    data = parse_json_request(request)
    errors, values = _validate_survey_payload(data)
    if errors:
        raise ValidationFailed(errors)

    creator = db.session.get(User, current_identity().id)
    if creator is None:
        raise NotFound("User not found")

    survey = Survey(created_by_id=creator.id)
    for column, value in values.items():
        if value is not None:
            setattr(survey, column, value)
    db.session.add(survey)
    db.session.commit()

    current_app.logger.info("User %s created survey %s", creator.id, survey.id)
    return success({"survey": survey.to_dict()}, "Survey created successfully", HTTPStatus.CREATED)


@surveys_bp.route("/<int:survey_id>", methods=["PUT"])
@user_required(RESEARCHERS)
def update_survey(survey_id: int):
    survey = _get_survey_or_404(survey_id)
    if not _can_manage(survey):
        raise Forbidden("Access denied")

    data = parse_json_request(request)
    errors, values = _validate_survey_payload(data, partial=True)
    if errors:
        raise ValidationFailed(errors)

    # Any of the four statuses may be set from any other.
    for column, value in values.items():
        if value is not None:
            setattr(survey, column, value)
    db.session.commit()
    return success({"survey": survey.to_dict()}, "Survey updated successfully")


@surveys_bp.route("/<int:survey_id>", methods=["DELETE"])
@user_required(RESEARCHERS)
def delete_survey(survey_id: int):
    survey = _get_survey_or_404(survey_id)
    if not _can_manage(survey):
        raise Forbidden("Access denied")

    in_progress = SurveyResponse.query.filter_by(
        survey_id=survey.id, status="in_progress"
    ).count()
    db.session.delete(survey)
    db.session.commit()
    current_app.logger.info(
        "Survey %s deleted with %s responses in progress", survey_id, in_progress
    )
    return success(message="Survey deleted successfully")
