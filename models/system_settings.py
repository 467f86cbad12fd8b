"""Persisted platform-wide settings."""

from . import db, isoformat, utcnow


# JSON name -> (column, default)
SYSTEM_SETTING_FIELDS = {
    "siteName": ("site_name", "Panel Sam"),
    "siteDescription": ("site_description", "Professional survey panel platform"),
    "contactEmail": ("contact_email", "admin@panelsam.com"),
    "supportEmail": ("support_email", "support@panelsam.com"),
    "maxFileSize": ("max_file_size", 5242880),
    "allowedFileTypes": ("allowed_file_types", ["jpg", "jpeg", "png", "pdf", "doc", "docx"]),
    "defaultRewardPoints": ("default_reward_points", 100),
    "minRewardPoints": ("min_reward_points", 10),
    "maxRewardPoints": ("max_reward_points", 10000),
    "maxSurveysPerDay": ("max_surveys_per_day", 10),
    "emailNotifications": ("email_notifications", True),
    "smsNotifications": ("sms_notifications", False),
    "maintenanceMode": ("maintenance_mode", False),
    "registrationEnabled": ("registration_enabled", True),
    "emailVerificationRequired": ("email_verification_required", True),
    "twoFactorAuth": ("two_factor_auth", False),
    "sessionTimeout": ("session_timeout", 3600),
    "rateLimitWindow": ("rate_limit_window", 900000),
    "rateLimitMax": ("rate_limit_max", 100),
}


class SystemSettings(db.Model):
    """Single-row table holding the platform configuration."""

    __tablename__ = "system_settings"

    id = db.Column(db.Integer, primary_key=True)
    site_name = db.Column(db.String(100), nullable=False)
    site_description = db.Column(db.String(500), nullable=False)
    contact_email = db.Column(db.String(255), nullable=False)
    support_email = db.Column(db.String(255), nullable=False)
    max_file_size = db.Column(db.Integer, nullable=False)
    allowed_file_types = db.Column(db.JSON, nullable=False)
    default_reward_points = db.Column(db.Integer, nullable=False)
    min_reward_points = db.Column(db.Integer, nullable=False)
    max_reward_points = db.Column(db.Integer, nullable=False)
    max_surveys_per_day = db.Column(db.Integer, nullable=False)
    email_notifications = db.Column(db.Boolean, nullable=False)
    sms_notifications = db.Column(db.Boolean, nullable=False)
    maintenance_mode = db.Column(db.Boolean, nullable=False)
    registration_enabled = db.Column(db.Boolean, nullable=False)
    email_verification_required = db.Column(db.Boolean, nullable=False)
    two_factor_auth = db.Column(db.Boolean, nullable=False)
    session_timeout = db.Column(db.Integer, nullable=False)
    rate_limit_window = db.Column(db.Integer, nullable=False)
    rate_limit_max = db.Column(db.Integer, nullable=False)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @classmethod
    def load(cls) -> "SystemSettings":
        """Return the settings row, creating it with defaults on first use."""

        settings = cls.query.order_by(cls.id).first()
        if settings is None:
            settings = cls(
                **{
                    column: list(default) if isinstance(default, list) else default
                    for column, default in SYSTEM_SETTING_FIELDS.values()
                }
            )
            db.session.add(settings)
            db.session.commit()
        return settings

    def to_dict(self) -> dict:
        payload = {key: getattr(self, column) for key, (column, _) in SYSTEM_SETTING_FIELDS.items()}
        payload["updatedAt"] = isoformat(self.updated_at)
        return payload
