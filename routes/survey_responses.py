"""Survey response blueprint: start, save and complete a survey attempt."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db, utcnow
from models.survey import Survey
from models.survey_response import RESPONSE_STATUSES, SurveyResponse
from models.user import User
from models.user_activity import UserActivity
from utils.auth import PANELISTS, current_identity, current_user, user_required
from utils.request_validation import PayloadValidator, page_args, parse_json_request
from utils.responses import paginate, success

survey_responses_bp = Blueprint("survey_responses", __name__)

NOT_IN_PROGRESS = "Survey response not found or already completed"


def _open_response(survey_id: int, respondent_id: int) -> SurveyResponse | None:
    return SurveyResponse.query.filter_by(
        survey_id=survey_id, respondent_id=respondent_id, status="in_progress"
    ).first()


@survey_responses_bp.route("/start", methods=["POST"])
@user_required(PANELISTS)
def start_response():
    """Begin a survey, or return the attempt already in progress."""
    data = parse_json_request(request, required_keys=("surveyId",))
    validator = PayloadValidator(data)
    survey_id = validator.integer("surveyId", required=True, minimum=1)
    validator.raise_for_errors()

    survey = db.session.get(Survey, survey_id)
    if survey is None:
        raise NotFound("Survey not found")
    if not survey.is_open():
        raise BadRequest("Survey is not available")

    user = current_user()
    existing = _open_response(survey.id, user.id)
    if existing is not None:
        return success({"response": existing.to_dict()}, "Survey already in progress")

    if not survey.targets(user):
        raise Forbidden("You are not eligible for this survey")

    response = SurveyResponse(survey_id=survey.id, respondent_id=user.id, answers={})
    db.session.add(response)
    try:
        db.session.flush()
    except IntegrityError:
        # A concurrent request opened the attempt first.
        db.session.rollback()
        existing = _open_response(survey.id, user.id)
        if existing is None:
            raise
        return success({"response": existing.to_dict()}, "Survey already in progress")

    Survey.query.filter(Survey.id == survey.id).update(
        {Survey.total_responses: Survey.total_responses + 1}, synchronize_session=False
    )
    db.session.commit()
    return success({"response": response.to_dict()}, "Survey started", HTTPStatus.CREATED)


@survey_responses_bp.route("/<int:response_id>/save", methods=["PUT"])
@user_required(PANELISTS)
def save_response(response_id: int):
    data = parse_json_request(request, required_keys=("responses",))
    answers = data.get("responses")
    if not isinstance(answers, dict):
        raise BadRequest("responses must be an object")

    updated = SurveyResponse.query.filter(
        SurveyResponse.id == response_id,
        SurveyResponse.respondent_id == current_identity().id,
        SurveyResponse.status == "in_progress",
    ).update({SurveyResponse.answers: answers}, synchronize_session=False)
    if not updated:
        db.session.rollback()
        raise NotFound(NOT_IN_PROGRESS)
    db.session.commit()

    response = db.session.get(SurveyResponse, response_id)
    return success({"response": response.to_dict()}, "Progress saved")


@survey_responses_bp.route("/<int:response_id>/complete", methods=["PUT"])
@user_required(PANELISTS)
def complete_response(response_id: int):
    """Finish an attempt and credit the survey reward when qualified.

    The status change is a conditional UPDATE from ``in_progress``; points are
    credited in the same transaction and only when that UPDATE matched, so a
    response can never be credited twice.
    """
    data = parse_json_request(request, allow_empty=True)
    validator = PayloadValidator(data)
    answers = validator.mapping("responses")
    time_spent = validator.integer("timeSpent", minimum=0)
    is_qualified = validator.boolean("isQualified")
    reason = validator.string("disqualificationReason", max_length=255)
    validator.raise_for_errors()

    user_id = current_identity().id
    response = SurveyResponse.query.filter_by(id=response_id, respondent_id=user_id).first()
    if response is None:
        raise NotFound(NOT_IN_PROGRESS)
    survey = response.survey

    qualified = is_qualified is not False
    points = survey.reward if qualified else 0
    values = {
        SurveyResponse.status: "completed" if qualified else "disqualified",
        SurveyResponse.open_slot: None,
        SurveyResponse.completed_at: utcnow(),
        SurveyResponse.time_spent: time_spent,
        SurveyResponse.is_qualified: qualified,
        SurveyResponse.disqualification_reason: None if qualified else reason,
        SurveyResponse.points_earned: points,
    }
    if answers is not None:
        values[SurveyResponse.answers] = answers

    updated = SurveyResponse.query.filter(
        SurveyResponse.id == response_id,
        SurveyResponse.respondent_id == user_id,
        SurveyResponse.status == "in_progress",
    ).update(values, synchronize_session=False)
    if updated != 1:
        db.session.rollback()
        raise NotFound(NOT_IN_PROGRESS)

    if qualified:
        Survey.query.filter(Survey.id == survey.id).update(
            {Survey.completed_responses: Survey.completed_responses + 1},
            synchronize_session=False,
        )
    if points:
        User.credit_points(user_id, points)
        UserActivity.record(
            user_id,
            "survey_completed",
            f"Completed survey: {survey.title}",
            f"Earned {points} points",
            points,
        )
    db.session.commit()

    current_app.logger.info(
        "User %s finished survey %s qualified=%s points=%s",
        user_id,
        survey.id,
        qualified,
        points,
    )
    db.session.refresh(response)
    message = "Survey completed successfully" if qualified else "Survey ended: not qualified"
    return success({"response": response.to_dict(), "pointsEarned": points}, message)


@survey_responses_bp.route("/mine", methods=["GET"])
@user_required(PANELISTS)
def my_responses():
    page, limit = page_args(request.args)
    query = SurveyResponse.query.filter_by(respondent_id=current_identity().id)

    status = request.args.get("status")
    if status:
        if status not in RESPONSE_STATUSES:
            raise BadRequest("Invalid status")
        query = query.filter(SurveyResponse.status == status)

    responses, pagination = paginate(
        query.order_by(SurveyResponse.started_at.desc()), page, limit
    )
    return success(
        {
            "responses": [response.to_dict(include_survey=True) for response in responses],
            "pagination": pagination,
        }
    )


@survey_responses_bp.route("/<int:response_id>", methods=["GET"])
@user_required(PANELISTS)
def get_response(response_id: int):
    response = SurveyResponse.query.filter_by(
        id=response_id, respondent_id=current_identity().id
    ).first()
    if response is None:
        raise NotFound("Survey response not found")
    return success({"response": response.to_dict(include_survey=True)})
