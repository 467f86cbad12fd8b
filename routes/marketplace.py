"""Vendor marketplace blueprint: projects, bids and project messages."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, Forbidden, NotFound

from models import db
from models.bid import Bid
from models.message import Message
from models.project import PROJECT_STATUSES, Project, ProjectBrief
from models.vendor import Vendor
from utils.auth import current_vendor_id, vendor_required
from utils.request_validation import PayloadValidator, parse_json_request
from utils.responses import success

marketplace_bp = Blueprint("marketplace", __name__)


def _get_project_or_404(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFound("Project not found.")
    return project


def _get_own_bid(bid_id: int) -> Bid:
    bid = db.session.get(Bid, bid_id)
    if bid is None:
        raise NotFound("Bid not found.")
    if bid.vendor_id != current_vendor_id():
        raise Forbidden("You can only modify your own bids.")
    return bid


def _validate_brief(data: dict) -> dict:
    """Read the optional survey brief fields; absent fields stay ``None``."""

    validator = PayloadValidator(data)
    values = {
        "category": validator.string("category", max_length=100),
        "target_audience": validator.string("targetAudience", max_length=255),
        "sample_size": validator.integer("sampleSize", minimum=0),
        "cpi": validator.number("cpi", minimum=0),
        "loi": validator.integer("loi", minimum=0),
        "ir": validator.number("ir", minimum=0),
        "currency": validator.string("currency", max_length=8),
        "timeline": validator.mapping("timeline"),
        "requirements": validator.mapping("requirements"),
        "deliverables": validator.string_list("deliverables"),
        "survey_type": validator.string("surveyType", max_length=64),
        "quota_requirements": validator.string("quotaRequirements", max_length=255),
        "quality_checks": validator.boolean("qualityChecks"),
        "data_format": validator.string("dataFormat", max_length=64),
        "reporting_requirements": validator.string("reportingRequirements", max_length=255),
        "special_instructions": validator.string("specialInstructions"),
    }
    validator.raise_for_errors()
    return values


def _apply_brief(project: Project, values: dict) -> None:
    provided = {column: value for column, value in values.items() if value is not None}
    if not provided:
        return
    if project.brief is None:
        project.brief = ProjectBrief()
    for column, value in provided.items():
        setattr(project.brief, column, value)


# Projects


@marketplace_bp.route("/projects", methods=["POST"])
@vendor_required()
def create_project():
    data = parse_json_request(request, required_keys=("title", "description"))
    validator = PayloadValidator(data)
    title = validator.string("title", required=True, max_length=255)
    description = validator.string("description", required=True)
    external_link = validator.string("externalLink", max_length=512)
    redirect_status = validator.string("redirectStatus", max_length=64)
    validator.raise_for_errors()
    brief = _validate_brief(data)

    project = Project(
        title=title,
        description=description,
        external_link=external_link,
        redirect_status=redirect_status,
        status="open",
        posted_by_id=current_vendor_id(),
    )
    _apply_brief(project, brief)
    db.session.add(project)
    db.session.commit()

    current_app.logger.info("Vendor %s posted project %s", project.posted_by_id, project.id)
    return success(
        {"project": project.to_dict()}, "Project created successfully.", HTTPStatus.CREATED
    )


@marketplace_bp.route("/projects", methods=["GET"])
@vendor_required()
def my_projects():
    projects = (
        Project.query.filter_by(posted_by_id=current_vendor_id())
        .order_by(Project.created_at.desc())
        .all()
    )
    return success({"projects": [project.to_dict(include_bids=True) for project in projects]})


@marketplace_bp.route("/projects/available", methods=["GET"])
@vendor_required()
def available_projects():
    vendor_id = current_vendor_id()
    projects = (
        Project.query.filter(Project.status == "open", Project.posted_by_id != vendor_id)
        .order_by(Project.created_at.desc())
        .all()
    )
    return success({"projects": [project.to_dict(viewer_id=vendor_id) for project in projects]})


@marketplace_bp.route("/projects/<int:project_id>", methods=["GET"])
@vendor_required()
def get_project(project_id: int):
    project = _get_project_or_404(project_id)
    vendor_id = current_vendor_id()
    if vendor_id not in (project.posted_by_id, project.assigned_to_id):
        raise Forbidden("Access denied.")
    return success({"project": project.to_dict(include_bids=True)})


@marketplace_bp.route("/projects/<int:project_id>", methods=["PUT"])
@vendor_required()
def update_project(project_id: int):
    project = _get_project_or_404(project_id)
    if project.posted_by_id != current_vendor_id():
        raise Forbidden("Only the project owner can update this project.")

    data = parse_json_request(request)
    validator = PayloadValidator(data)
    values = {
        "title": validator.string("title", max_length=255),
        "description": validator.string("description"),
        "status": validator.string("status", choices=PROJECT_STATUSES),
        "external_link": validator.string("externalLink", max_length=512),
        "redirect_status": validator.string("redirectStatus", max_length=64),
    }
    validator.raise_for_errors()
    brief = _validate_brief(data)

    for column, value in values.items():
        if value is not None:
            setattr(project, column, value)
    _apply_brief(project, brief)
    db.session.commit()
    return success({"project": project.to_dict()}, "Project updated successfully.")


@marketplace_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@vendor_required()
def delete_project(project_id: int):
    project = _get_project_or_404(project_id)
    if project.posted_by_id != current_vendor_id():
        raise Forbidden("Only the project owner can delete this project.")
    db.session.delete(project)
    db.session.commit()
    return success(message="Project deleted successfully.")


@marketplace_bp.route("/projects/<int:project_id>/assign", methods=["PATCH"])
@vendor_required()
def assign_project(project_id: int):
    project = _get_project_or_404(project_id)
    if project.posted_by_id != current_vendor_id():
        raise Forbidden("Only the project owner can assign this project.")

    data = parse_json_request(request, required_keys=("assignedToId",))
    validator = PayloadValidator(data)
    assignee_id = validator.integer("assignedToId", required=True, minimum=1)
    validator.raise_for_errors()

    if assignee_id == project.posted_by_id:
        raise BadRequest("A project cannot be assigned to its owner.")
    if db.session.get(Vendor, assignee_id) is None:
        raise NotFound("Vendor not found.")

    project.assigned_to_id = assignee_id
    project.status = "assigned"
    Bid.query.filter_by(project_id=project.id, vendor_id=assignee_id).update(
        {Bid.status: "accepted"}, synchronize_session=False
    )
    db.session.commit()
    db.session.refresh(project)
    return success({"project": project.to_dict()}, "Project assigned successfully.")


# Bids


@marketplace_bp.route("/bids", methods=["GET"])
@vendor_required()
def my_bids():
    bids = (
        Bid.query.filter_by(vendor_id=current_vendor_id())
        .order_by(Bid.created_at.desc())
        .all()
    )
    return success({"bids": [bid.to_dict(include_project=True) for bid in bids]})


@marketplace_bp.route("/projects/<int:project_id>/bids", methods=["POST"])
@vendor_required()
def place_bid(project_id: int):
    """Bid on another vendor's project; at most one bid per vendor and project."""
    project = _get_project_or_404(project_id)
    vendor_id = current_vendor_id()
    if project.posted_by_id == vendor_id:
        raise Forbidden("You cannot bid on your own project.")
    if project.status != "open":
        raise BadRequest("Project is not open for bidding.")

    data = parse_json_request(request, required_keys=("amount",))
    validator = PayloadValidator(data)
    amount = validator.number("amount", required=True, positive=True)
    message = validator.string("message", max_length=2000)
    validator.raise_for_errors()

    if Bid.query.filter_by(project_id=project.id, vendor_id=vendor_id).first() is not None:
        raise Conflict("You have already placed a bid on this project.")

    bid = Bid(project_id=project.id, vendor_id=vendor_id, amount=amount, message=message)
    db.session.add(bid)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already placed a bid on this project.")
    return success({"bid": bid.to_dict()}, "Bid placed successfully.", HTTPStatus.CREATED)


@marketplace_bp.route("/projects/<int:project_id>/bids", methods=["GET"])
@vendor_required()
def project_bids(project_id: int):
    project = _get_project_or_404(project_id)
    if current_vendor_id() not in (project.posted_by_id, project.assigned_to_id):
        raise Forbidden("Access denied.")
    return success({"bids": [bid.to_dict(include_vendor=True) for bid in project.bids]})


@marketplace_bp.route("/bids/<int:bid_id>", methods=["PUT"])
@vendor_required()
def update_bid(bid_id: int):
    bid = _get_own_bid(bid_id)
    if bid.status != "pending":
        raise Conflict("Only pending bids can be changed.")

    data = parse_json_request(request)
    validator = PayloadValidator(data)
    amount = validator.number("amount", positive=True)
    message = validator.string("message", max_length=2000)
    validator.raise_for_errors()

    if amount is not None:
        bid.amount = amount
    if message is not None:
        bid.message = message
    db.session.commit()
    return success({"bid": bid.to_dict()}, "Bid updated successfully.")


@marketplace_bp.route("/bids/<int:bid_id>", methods=["DELETE"])
@vendor_required()
def delete_bid(bid_id: int):
    bid = _get_own_bid(bid_id)
    db.session.delete(bid)
    db.session.commit()
    return success(message="Bid deleted successfully.")


# Messages


@marketplace_bp.route("/messages", methods=["GET"])
@vendor_required()
def inbox():
    vendor_id = current_vendor_id()
    messages = (
        Message.query.filter(
            or_(Message.sender_id == vendor_id, Message.receiver_id == vendor_id)
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )
    return success({"messages": [message.to_dict() for message in messages]})


@marketplace_bp.route("/projects/<int:project_id>/messages", methods=["POST"])
@vendor_required()
def send_message(project_id: int):
    project = _get_project_or_404(project_id)
    vendor_id = current_vendor_id()
    if not project.is_participant(vendor_id):
        raise Forbidden("You are not allowed to message on this project.")

    data = parse_json_request(request, required_keys=("receiverId", "message"))
    validator = PayloadValidator(data)
    receiver_id = validator.integer("receiverId", required=True, minimum=1)
    body = validator.string("message", required=True, max_length=5000)
    validator.raise_for_errors()

    if receiver_id == vendor_id:
        raise BadRequest("You cannot message yourself.")
    if not project.is_participant(receiver_id):
        raise BadRequest("Receiver is not part of this project.")

    message = Message(
        project_id=project.id, sender_id=vendor_id, receiver_id=receiver_id, body=body
    )
    db.session.add(message)
    db.session.commit()
    return success({"message": message.to_dict()}, "Message sent.", HTTPStatus.CREATED)


@marketplace_bp.route("/projects/<int:project_id>/messages", methods=["GET"])
@vendor_required()
def project_messages(project_id: int):
    project = _get_project_or_404(project_id)
    if not project.is_participant(current_vendor_id()):
        raise Forbidden("You are not allowed to view messages on this project.")
    return success({"messages": [message.to_dict() for message in project.messages]})
