"""Vendor account blueprint: registration, login, profile and dashboards."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, NotFound, Unauthorized

from models import db
from models.bid import Bid
from models.message import Message
from models.project import Project
from models.vendor import Vendor
from utils.auth import current_vendor, current_vendor_id, vendor_required
from utils.credentials import assign_otp, consume_otp, issue_vendor_token, otp_echo
from utils.request_validation import (
    PayloadValidator,
    normalize_email,
    parse_json_request,
)
from utils.responses import success

vendor_bp = Blueprint("vendor", __name__)

PROFILE_KEYS = ("phone", "website", "industry", "address", "city", "country", "description")


def _find_vendor(email: str) -> Vendor | None:
    return Vendor.query.filter(func.lower(Vendor.email) == email).first()


def _profile_payload(vendor: Vendor) -> dict:
    return {"vendor": vendor.to_dict(), "isProfileComplete": vendor.is_profile_complete}


@vendor_bp.route("/register", methods=["POST"])
def register():
    data = parse_json_request(request, required_keys=("name", "email", "password", "company"))
    validator = PayloadValidator(data)
    name = validator.string("name", required=True, max_length=255)
    email = validator.email("email", required=True)
    password = validator.string("password", required=True, min_length=6, strip=False)
    company = validator.string("company", required=True, max_length=255)
    phone = validator.string("phone", max_length=32)
    website = validator.string("website", max_length=255)
    industry = validator.string("industry", max_length=100)
    validator.raise_for_errors()

    if _find_vendor(email) is not None:
        raise Conflict("Email already registered.")

    vendor = Vendor(
        name=name,
        email=email,
        company=company,
        status="pending_verification",
        profile={
            key: value
            for key, value in (("phone", phone), ("website", website), ("industry", industry))
            if value is not None
        },
    )
    vendor.set_password(password)
    code = assign_otp(vendor, "verification")
    db.session.add(vendor)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Email already registered.")

    current_app.logger.info("Registered vendor %s", vendor.id)
    return success(
        {"vendorId": vendor.id, "email": vendor.email, **otp_echo(code)},
        "Registration successful. Please verify your email with the OTP sent.",
        HTTPStatus.CREATED,
    )


@vendor_bp.route("/verify-otp", methods=["POST"])
def verify_otp():
    data = parse_json_request(request, required_keys=("email", "otp"))
    email = normalize_email(data.get("email"))

    verified = consume_otp(
        Vendor,
        "verification",
        [func.lower(Vendor.email) == email, Vendor.status == "pending_verification"],
        str(data["otp"]),
        status="active",
    )
    if not verified:
        db.session.rollback()
        raise BadRequest("Invalid or expired OTP")
    db.session.commit()

    vendor = _find_vendor(email)
    return success(
        {"vendor": vendor.to_dict(), "token": issue_vendor_token(vendor)},
        "Email verified successfully.",
    )


@vendor_bp.route("/login", methods=["POST"])
def login():
    data = parse_json_request(request, required_keys=("email", "password"))
    vendor = _find_vendor(normalize_email(data.get("email")))

    if vendor is None or not vendor.check_password(str(data.get("password"))):
        raise Unauthorized("Invalid credentials.")
    if vendor.status == "pending_verification":
        raise Unauthorized("Please verify your email first.")
    if vendor.status != "active":
        raise Unauthorized("Account is deactivated.")

    current_app.logger.info("Vendor %s logged in", vendor.id)
    return success(
        {"vendor": vendor.to_dict(), "token": issue_vendor_token(vendor)},
        "Login successful.",
    )


@vendor_bp.route("/profile", methods=["GET"])
@vendor_required()
def get_profile():
    return success(_profile_payload(current_vendor()))


@vendor_bp.route("/profile", methods=["PUT"])
@vendor_required()
def update_profile():
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    name = validator.string("name", max_length=255)
    company = validator.string("company", max_length=255)
    profile = validator.mapping("profile")
    values = {
        "redirect_status": validator.string("redirectStatus", max_length=64),
        "external_link": validator.string("externalLink", max_length=512),
        "years_in_business": validator.integer("yearsInBusiness", minimum=0),
        "number_of_employees": validator.integer("numberOfEmployees", minimum=0),
        "annual_revenue": validator.string("annualRevenue", max_length=64),
        "panel_book": validator.string("panelBook"),
        "panel_registration_details": validator.string("panelRegistrationDetails"),
        "business_information": validator.string("businessInformation"),
        "other_documents": validator.string("otherDocuments"),
        "services_offered": validator.string("servicesOffered"),
        "previous_projects": validator.string("previousProjects"),
        "why_partner_with_us": validator.string("whyPartnerWithUs"),
    }
    validator.raise_for_errors()

    vendor = current_vendor()
    if name is not None:
        vendor.name = name
    if company is not None:
        vendor.company = company
    if profile is not None:
        merged = dict(vendor.profile or {})
        merged.update({key: profile[key] for key in PROFILE_KEYS if key in profile})
        vendor.profile = merged
    for column, value in values.items():
        if value is not None:
            setattr(vendor, column, value)
    db.session.commit()
    return success(_profile_payload(vendor), "Profile updated successfully.")


@vendor_bp.route("/analytics", methods=["GET"])
@vendor_required()
def analytics():
    vendor_id = current_vendor_id()
    total_bids = Bid.query.filter_by(vendor_id=vendor_id).count()
    accepted_bids = Bid.query.filter_by(vendor_id=vendor_id, status="accepted").count()
    recent_projects = (
        Project.query.filter_by(posted_by_id=vendor_id)
        .order_by(Project.created_at.desc())
        .limit(5)
        .all()
    )
    recent_bids = (
        Bid.query.filter_by(vendor_id=vendor_id)
        .order_by(Bid.created_at.desc())
        .limit(5)
        .all()
    )
    return success(
        {
            "analytics": {
                "totalProjects": Project.query.filter_by(posted_by_id=vendor_id).count(),
                "activeProjects": Project.query.filter_by(
                    posted_by_id=vendor_id, status="open"
                ).count(),
                "totalBids": total_bids,
                "acceptedBids": accepted_bids,
                "totalMessages": Message.query.filter(
                    or_(Message.sender_id == vendor_id, Message.receiver_id == vendor_id)
                ).count(),
                "successRate": round(accepted_bids * 100 / total_bids, 1) if total_bids else 0,
            },
            "recentActivity": {
                "projects": [project.to_dict() for project in recent_projects],
                "bids": [bid.to_dict(include_project=True) for bid in recent_bids],
            },
        }
    )


@vendor_bp.route("/community-feed", methods=["GET"])
@vendor_required()
def community_feed():
    vendor_id = current_vendor_id()
    projects = (
        Project.query.filter(Project.posted_by_id != vendor_id, Project.status == "open")
        .order_by(Project.created_at.desc())
        .limit(10)
        .all()
    )
    bids = (
        Bid.query.join(Project, Bid.project_id == Project.id)
        .filter(Project.posted_by_id == vendor_id)
        .order_by(Bid.created_at.desc())
        .limit(10)
        .all()
    )
    return success(
        {
            "communityFeed": {
                "recentProjects": [project.to_dict() for project in projects],
                "recentBidsOnMyProjects": [
                    bid.to_dict(include_vendor=True, include_project=True) for bid in bids
                ],
            }
        }
    )


@vendor_bp.route("/vendors/<int:vendor_id>", methods=["GET"])
def get_vendor(vendor_id: int):
    """Public vendor card; no token required."""
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFound("Vendor not found.")
    return success({"vendor": vendor.public_dict()})
