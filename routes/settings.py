"""Settings blueprint: persisted system settings and per-user preferences."""

from __future__ import annotations

from flask import Blueprint, current_app, request
from werkzeug.exceptions import BadRequest, NotFound

from models import db, isoformat, utcnow
from models.system_settings import SystemSettings
from models.user import (
    DATA_RETENTION_PERIODS,
    DEVICE_PREFERENCES,
    LANGUAGES,
    NOTIFICATION_FIELDS,
    PROFILE_VISIBILITIES,
    SURVEY_LENGTHS,
)
from models.user_session import UserSession
from utils.auth import ADMIN, PANELISTS, current_identity, current_jti, current_user, user_required
from utils.request_validation import PayloadValidator, ValidationFailed, parse_json_request
from utils.responses import success

settings_bp = Blueprint("settings", __name__)


def _active_sessions(user_id: int) -> list[UserSession]:
    now = utcnow()
    sessions = (
        UserSession.query.filter_by(user_id=user_id, is_active=True)
        .order_by(UserSession.last_used_at.desc())
        .all()
    )
    return [session for session in sessions if session.is_live(now)]


def _deactivate_sessions(user_id: int, keep_jti: str | None = None) -> int:
    query = UserSession.query.filter(
        UserSession.user_id == user_id, UserSession.is_active.is_(True)
    )
    if keep_jti:
        query = query.filter(UserSession.token_jti != keep_jti)
    return query.update({UserSession.is_active: False}, synchronize_session=False)


@settings_bp.route("/system", methods=["GET"])
@user_required(ADMIN)
def get_system_settings():
    return success({"settings": SystemSettings.load().to_dict()})


@settings_bp.route("/system", methods=["PUT"])
@user_required(ADMIN)
def update_system_settings():
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    values = {
        "site_name": validator.string("siteName", min_length=1, max_length=100),
        "site_description": validator.string("siteDescription", min_length=1, max_length=500),
        "contact_email": validator.email("contactEmail"),
        "support_email": validator.email("supportEmail"),
        "max_file_size": validator.integer("maxFileSize", minimum=1024, maximum=10485760),
        "allowed_file_types": validator.string_list("allowedFileTypes"),
        "default_reward_points": validator.integer("defaultRewardPoints", minimum=1),
        "min_reward_points": validator.integer("minRewardPoints", minimum=1),
        "max_reward_points": validator.integer("maxRewardPoints", minimum=1),
        "max_surveys_per_day": validator.integer("maxSurveysPerDay", minimum=1, maximum=100),
        "email_notifications": validator.boolean("emailNotifications"),
        "sms_notifications": validator.boolean("smsNotifications"),
        "maintenance_mode": validator.boolean("maintenanceMode"),
        "registration_enabled": validator.boolean("registrationEnabled"),
        "email_verification_required": validator.boolean("emailVerificationRequired"),
        "two_factor_auth": validator.boolean("twoFactorAuth"),
        "session_timeout": validator.integer("sessionTimeout", minimum=60),
        "rate_limit_window": validator.integer("rateLimitWindow", minimum=1000),
        "rate_limit_max": validator.integer("rateLimitMax", minimum=1),
    }
    validator.raise_for_errors()

    settings = SystemSettings.load()
    for column, value in values.items():
        if value is not None:
            setattr(settings, column, value)
    if settings.min_reward_points > settings.max_reward_points:
        db.session.rollback()
        raise ValidationFailed(
            [{"field": "minRewardPoints", "message": "minRewardPoints must not exceed maxRewardPoints"}]
        )
    settings.updated_by_id = current_identity().id
    db.session.commit()

    current_app.logger.info("Admin %s updated system settings", current_identity().id)
    return success({"settings": settings.to_dict()}, "System settings updated successfully")


@settings_bp.route("/user", methods=["GET"])
@user_required(PANELISTS)
def get_user_settings():
    user = current_user()
    sessions = _active_sessions(user.id)
    jti = current_jti()
    return success(
        {
            "settings": {
                "notifications": user.notification_dict(),
                "preferences": {
                    "language": user.language or "en",
                    "surveyLength": user.preferred_survey_length or "medium",
                    "device": user.preferred_device_for_surveys or "no_preference",
                    "topics": user.topics_of_interest or [],
                },
                "security": {
                    "activeSessions": len(sessions),
                    "lastLogin": isoformat(user.last_login_at),
                    "twoFactorEnabled": False,
                },
                "privacy": {
                    "profileVisibility": user.profile_visibility,
                    "dataSharing": user.data_sharing,
                    "analytics": user.analytics_opt_in,
                },
            },
            "activeSessions": [session.to_dict(jti) for session in sessions],
        }
    )


@settings_bp.route("/user", methods=["PUT"])
@user_required(PANELISTS)
def update_user_settings():
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    notifications = validator.mapping("notifications") or {}
    preferences = validator.mapping("preferences") or {}
    privacy = validator.mapping("privacy") or {}
    validator.raise_for_errors()

    errors = []
    notify = PayloadValidator(notifications)
    notify_values = {column: notify.boolean(key) for key, column in NOTIFICATION_FIELDS.items()}
    prefs = PayloadValidator(preferences)
    pref_values = {
        "language": prefs.string("language", choices=LANGUAGES),
        "preferred_survey_length": prefs.string("surveyLength", choices=SURVEY_LENGTHS),
        "preferred_device_for_surveys": prefs.string("device", choices=DEVICE_PREFERENCES),
        "topics_of_interest": prefs.string_list("topics"),
    }
    priv = PayloadValidator(privacy)
    privacy_values = {
        "profile_visibility": priv.string("profileVisibility", choices=PROFILE_VISIBILITIES),
        "data_sharing": priv.boolean("dataSharing"),
        "analytics_opt_in": priv.boolean("analytics"),
    }
    for prefix, section in (("notifications", notify), ("preferences", prefs), ("privacy", priv)):
        errors.extend(
            {"field": f"{prefix}.{error['field']}", "message": error["message"]}
            for error in section.errors
        )
    if errors:
        raise ValidationFailed(errors)

    user = current_user()
    for values in (notify_values, pref_values, privacy_values):
        for column, value in values.items():
            if value is not None:
                setattr(user, column, value)
    db.session.commit()
    return success(message="Settings updated successfully")


@settings_bp.route("/security", methods=["GET"])
@user_required(PANELISTS)
def get_security_settings():
    user = current_user()
    sessions = _active_sessions(user.id)
    history = (
        UserSession.query.filter_by(user_id=user.id)
        .order_by(UserSession.issued_at.desc(), UserSession.id.desc())
        .limit(10)
        .all()
    )
    jti = current_jti()
    return success(
        {
            "settings": {
                "twoFactorEnabled": False,
                "passwordLastChanged": isoformat(user.password_changed_at),
                "activeSessions": len(sessions),
                "loginHistory": len(history),
            },
            "activeSessions": [session.to_dict(jti) for session in sessions],
            "loginHistory": [session.to_dict(jti) for session in history],
        }
    )


@settings_bp.route("/security", methods=["PUT"])
@user_required(PANELISTS)
def update_security_settings():
    """Change the password after re-checking the current one."""
    data = parse_json_request(request, required_keys=("currentPassword",))
    validator = PayloadValidator(data)
    new_password = validator.string("newPassword", min_length=8, strip=False)
    validator.raise_for_errors()

    user = current_user()
    if not user.check_password(str(data["currentPassword"])):
        raise BadRequest("Current password is incorrect")

    if new_password is not None:
        if data.get("confirmPassword") is not None and data["confirmPassword"] != new_password:
            raise ValidationFailed([{"field": "confirmPassword", "message": "Passwords do not match"}])
        user.set_password(new_password)
        _deactivate_sessions(user.id, keep_jti=current_jti())
    db.session.commit()
    return success(message="Security settings updated successfully")


@settings_bp.route("/security/logout-all", methods=["POST"])
@user_required(PANELISTS)
def logout_all_sessions():
    count = _deactivate_sessions(current_identity().id, keep_jti=current_jti())
    db.session.commit()
    return success({"loggedOut": count}, "All other sessions logged out successfully")


@settings_bp.route("/security/logout-session/<int:session_id>", methods=["POST"])
@user_required(PANELISTS)
def logout_session(session_id: int):
    updated = UserSession.query.filter_by(
        id=session_id, user_id=current_identity().id
    ).update({UserSession.is_active: False}, synchronize_session=False)
    if not updated:
        raise NotFound("Session not found")
    db.session.commit()
    return success(message="Session logged out successfully")


@settings_bp.route("/privacy", methods=["GET"])
@user_required(PANELISTS)
def get_privacy_settings():
    return success({"settings": current_user().privacy_dict()})


@settings_bp.route("/privacy", methods=["PUT"])
@user_required(PANELISTS)
def update_privacy_settings():
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    values = {
        "profile_visibility": validator.string("profileVisibility", choices=PROFILE_VISIBILITIES),
        "data_sharing": validator.boolean("dataSharing"),
        "analytics_opt_in": validator.boolean("analytics"),
        "marketing_emails": validator.boolean("marketingEmails"),
        "third_party_sharing": validator.boolean("thirdPartySharing"),
        "data_retention": validator.string("dataRetention", choices=DATA_RETENTION_PERIODS),
        "gdpr_consent": validator.boolean("gdprConsent"),
        "cookie_consent": validator.boolean("cookieConsent"),
    }
    validator.raise_for_errors()

    user = current_user()
    for column, value in values.items():
        if value is not None:
            setattr(user, column, value)
    if values["gdpr_consent"] is not None or values["cookie_consent"] is not None:
        user.consent_updated_at = utcnow()
    db.session.commit()
    return success({"settings": user.privacy_dict()}, "Privacy settings updated successfully")


@settings_bp.route("/privacy/export-data", methods=["POST"])
@user_required(PANELISTS)
def export_data():
    user = current_user()
    current_app.logger.info("User %s exported their data", user.id)
    return success({"export": user.export_dict()}, "Data export generated")


@settings_bp.route("/privacy/delete-account", methods=["POST"])
@user_required(PANELISTS)
def delete_account():
    """Deactivate the caller's account and end all of its sessions."""
    data = parse_json_request(request)
    validator = PayloadValidator(data)
    validator.string("reason", min_length=1, max_length=500)
    validator.raise_for_errors()
    if data.get("confirm") is not True:
        raise BadRequest("Account deletion must be confirmed")

    user = current_user()
    user.is_active = False
    _deactivate_sessions(user.id)
    db.session.commit()
    current_app.logger.info("User %s deactivated their account", user.id)
    return success(message="Account deactivated successfully")
