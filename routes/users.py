"""User administration blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, request
from sqlalchemy import func, or_
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.user import ROLES, User
from models.user_activity import UserActivity
from models.user_session import UserSession
from utils.auth import ADMIN, ANY_USER, RESEARCHERS, current_identity, current_user, user_required
from utils.request_validation import PayloadValidator, page_args, parse_json_request
from utils.responses import paginate, success

users_bp = Blueprint("users", __name__)


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@users_bp.route("", methods=["GET"])
@user_required(RESEARCHERS)
def list_users():
    """Return users, optionally filtered by role or a name/email search."""
    page, limit = page_args(request.args, default_limit=10, max_limit=100)
    query = User.query

    role = request.args.get("role")
    if role:
        if role not in ROLES:
            raise BadRequest("Invalid role.")
        query = query.filter(User.role == role)

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

    users, pagination = paginate(query.order_by(User.created_at.desc()), page, limit)
    return success({"users": [user.to_dict() for user in users], "pagination": pagination})


@users_bp.route("/stats/overview", methods=["GET"])
@user_required(ADMIN)
def stats_overview():
    by_role = dict(
        db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
    )
    recent = User.query.order_by(User.created_at.desc()).limit(5).all()
    return success(
        {
            "totalUsers": User.query.count(),
            "activeUsers": User.query.filter_by(is_active=True).count(),
            "verifiedUsers": User.query.filter_by(is_email_verified=True).count(),
            "usersByRole": {role: by_role.get(role, 0) for role in ROLES},
            "recentUsers": [user.to_dict() for user in recent],
        }
    )


@users_bp.route("/profile", methods=["PUT"])
@user_required(ANY_USER)
def update_own_profile():
    """Update the caller's basic profile; credentials and flags are not editable here."""
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
    }
    validator.raise_for_errors()

    user = current_user()
    for column, value in values.items():
        if value is not None:
            setattr(user, column, value)
    UserActivity.record(user.id, "profile_updated", "Profile updated")
    db.session.commit()
    return success({"user": user.to_dict(include_profile=True)}, "Profile updated successfully")


@users_bp.route("/<int:user_id>", methods=["GET"])
@user_required(RESEARCHERS)
def get_user(user_id: int):
    return success({"user": _get_user_or_404(user_id).to_dict(include_profile=True)})


@users_bp.route("/<int:user_id>", methods=["PUT"])
@user_required(ADMIN)
def update_user(user_id: int):
    user = _get_user_or_404(user_id)
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    first_name = validator.string("firstName", min_length=2, max_length=50)
    last_name = validator.string("lastName", min_length=2, max_length=50)
    role = validator.string("role", choices=ROLES)
    is_active = validator.boolean("isActive")
    is_email_verified = validator.boolean("isEmailVerified")
    validator.raise_for_errors()

    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    # tokens carry the role claim
    revoke = (role is not None and role != user.role) or (is_active is False and user.is_active)
    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    if revoke:
        UserSession.query.filter_by(user_id=user.id, is_active=True).update(
            {UserSession.is_active: False}, synchronize_session=False
        )
    if is_email_verified is not None:
        user.is_email_verified = is_email_verified
    db.session.commit()

    current_app.logger.info("Admin %s updated user %s", current_identity().id, user.id)
    return success({"user": user.to_dict()}, "User updated successfully")


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@user_required(ADMIN)
def delete_user(user_id: int):
    user = _get_user_or_404(user_id)
    if user.id == current_identity().id:
        raise BadRequest("You cannot delete your own account here.")
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Admin %s deleted user %s", current_identity().id, user_id)
    return success(message="User deleted successfully")
