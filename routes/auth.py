"""Authentication blueprint: registration, OTP verification, login and passwords."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from models import db, utcnow
from models.user import User
from models.user_session import UserSession
from utils.auth import ANY_USER, current_jti, current_user, open_session, user_required
from utils.credentials import assign_otp, consume_otp, hash_password, otp_echo
from utils.request_validation import (
    PayloadValidator,
    ValidationFailed,
    normalize_email,
    parse_json_request,
)
from utils.responses import success

auth_bp = Blueprint("auth", __name__)

INVALID_OTP = "Invalid or expired OTP"


def _find_user(email: str) -> User | None:
    # Case-insensitive lookup
    return User.query.filter(func.lower(User.email) == email).first()


def _client_details() -> tuple[str | None, str | None]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    ip_address = forwarded.split(",")[0].strip() or request.remote_addr
    return request.headers.get("User-Agent"), ip_address


def _login_payload(user: User) -> dict:
    user_agent, ip_address = _client_details()
    token = open_session(user, user_agent=user_agent, ip_address=ip_address)
    user.last_login_at = utcnow()
    db.session.commit()
    return {"user": user.to_dict(), "token": token}


def _require_matching(data: dict, field: str, confirm_field: str) -> None:
    if data.get(confirm_field) is not None and data.get(confirm_field) != data.get(field):
        raise ValidationFailed(
            [{"field": confirm_field, "message": "Passwords do not match"}]
        )


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create a panelist account and send an email verification code."""
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    first_name = validator.string("firstName", required=True, min_length=2, max_length=50)
    last_name = validator.string("lastName", required=True, min_length=2, max_length=50)
    email = validator.email("email", required=True)
    password = validator.string("password", required=True, min_length=6, strip=False)
    validator.string("confirmPassword", required=True)
    contact_number = validator.string("contactNumber", max_length=32)
    country_code = validator.string("countryCode", max_length=8)
    location = validator.string("location", max_length=255)
    language = validator.string("language", max_length=16)
    occupation = validator.string("occupation", max_length=255)
    age = validator.integer("age", minimum=1, maximum=120)
    referral_code = validator.string("referralCode", max_length=64)
    validator.raise_for_errors()
    _require_matching(data, "password", "confirmPassword")

    if _find_user(email) is not None:
        raise Conflict("User already exists with this email")

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role="panelist",
        contact_number=contact_number,
        country_code=country_code or "+1",
        location=location,
        language=language or "en",
        occupation=occupation,
        age=age,
        referral_code=referral_code,
    )
    user.set_password(password)
    code = assign_otp(user, "verification")
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("User already exists with this email")

    current_app.logger.info("Registered user %s", user.id)
    return success(
        {"userId": user.id, "email": user.email, **otp_echo(code)},
        "Registration successful. Please verify your email with the OTP sent.",
        HTTPStatus.CREATED,
    )


@auth_bp.route("/verify-otp", methods=["POST"])
def verify_otp():
    data = parse_json_request(request, required_keys=("email", "otp"))
    email = normalize_email(data.get("email"))

    verified = consume_otp(
        User,
        "verification",
        [func.lower(User.email) == email],
        str(data["otp"]),
        is_email_verified=True,
    )
    if not verified:
        db.session.rollback()
        raise BadRequest(INVALID_OTP)
    db.session.commit()

    user = _find_user(email)
    if not user.is_active:
        return success({"user": user.to_dict()}, "Email verified successfully.")
    return success(_login_payload(user), "Email verified successfully.")


@auth_bp.route("/resend-otp", methods=["POST"])
def resend_otp():
    """Issue a new verification code without revealing whether the account exists."""
    data = parse_json_request(request, required_keys=("email",))
    user = _find_user(normalize_email(data.get("email")))

    payload = {}
    if user is not None and not user.is_email_verified:
        payload = otp_echo(assign_otp(user, "verification"))
        db.session.commit()
    return success(
        payload or None,
        "If the account exists and is unverified, a new OTP has been sent.",
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate a user and return a bearer token bound to a new session."""
    data = parse_json_request(request, required_keys=("email", "password"))
    user = _find_user(normalize_email(data.get("email")))

    if user is None or not user.check_password(str(data.get("password"))):
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("Account is deactivated")
    if not user.is_email_verified:
        raise Unauthorized("Please verify your email before logging in")

    current_app.logger.info("User %s logged in", user.id)
    return success(_login_payload(user), "Login successful")


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = parse_json_request(request, required_keys=("email",))
    user = _find_user(normalize_email(data.get("email")))

    payload = {}
    if user is not None and user.is_active:
        payload = otp_echo(assign_otp(user, "reset"))
        db.session.commit()
    return success(
        payload or None,
        "If an account exists for this email, a password reset OTP has been sent.",
    )


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = parse_json_request(request, required_keys=("email", "otp", "newPassword"))
    validator = PayloadValidator(data)
    new_password = validator.string("newPassword", required=True, min_length=6, strip=False)
    validator.raise_for_errors()
    _require_matching(data, "newPassword", "confirmPassword")

    email = normalize_email(data.get("email"))
    user = _find_user(email)
    if user is None:
        raise BadRequest(INVALID_OTP)

    reset = consume_otp(
        User,
        "reset",
        [User.id == user.id],
        str(data["otp"]),
        password_hash=hash_password(new_password),
        password_changed_at=utcnow(),
    )
    if not reset:
        db.session.rollback()
        raise BadRequest(INVALID_OTP)

    UserSession.query.filter_by(user_id=user.id, is_active=True).update(
        {UserSession.is_active: False}, synchronize_session=False
    )
    db.session.commit()
    return success(message="Password reset successfully. Please log in again.")


@auth_bp.route("/me", methods=["GET"])
@user_required(ANY_USER)
def me():
    return success({"user": current_user().to_dict(include_profile=True)})


@auth_bp.route("/request-password-change-otp", methods=["POST"])
@user_required(ANY_USER)
def request_password_change_otp():
    user = current_user()
    code = assign_otp(user, "password_change")
    db.session.commit()
    return success(otp_echo(code) or None, "OTP sent to your email.")


@auth_bp.route("/change-password-with-otp", methods=["POST"])
@user_required(ANY_USER)
def change_password_with_otp():
    data = parse_json_request(
        request, required_keys=("currentPassword", "newPassword", "confirmPassword", "otp")
    )
    validator = PayloadValidator(data)
    new_password = validator.string("newPassword", required=True, min_length=8, strip=False)
    validator.raise_for_errors()
    _require_matching(data, "newPassword", "confirmPassword")

    user = current_user()
    if not user.check_password(str(data["currentPassword"])):
        raise BadRequest("Current password is incorrect")
    if user.check_password(new_password):
        raise BadRequest("New password must be different from the current password")

    changed = consume_otp(
        User,
        "password_change",
        [User.id == user.id],
        str(data["otp"]),
        password_hash=hash_password(new_password),
        password_changed_at=utcnow(),
    )
    if not changed:
        db.session.rollback()
        raise BadRequest(INVALID_OTP)
    db.session.commit()
    current_app.logger.info("User %s changed password", user.id)
    return success(message="Password changed successfully.")


@auth_bp.route("/logout", methods=["POST"])
@user_required(ANY_USER)
def logout():
    UserSession.query.filter_by(token_jti=current_jti()).update(
        {UserSession.is_active: False}, synchronize_session=False
    )
    db.session.commit()
    return success(message="Logged out successfully.")
