"""User model definition."""

from typing import Any, Dict

from werkzeug.security import check_password_hash, generate_password_hash

from . import db, isoformat, utcnow


ROLES = ("admin", "researcher", "panelist")

GENDERS = ("male", "female", "other", "prefer_not_to_say")
EDUCATION_LEVELS = ("high_school", "bachelor", "master", "phd", "other")
INCOME_LEVELS = ("low", "medium", "high", "prefer_not_to_say")
MARITAL_STATUSES = ("single", "married", "divorced", "widowed", "prefer_not_to_say")
EMPLOYMENT_STATUSES = ("employed", "student", "retired", "unemployed", "self_employed")
HOUSEHOLD_INCOME_BRACKETS = (
    "under_25k",
    "25k_50k",
    "50k_75k",
    "75k_100k",
    "100k_150k",
    "over_150k",
    "prefer_not_to_say",
)
INTERNET_ACCESS_TYPES = ("broadband", "mobile", "none")
SURVEY_LENGTHS = ("short", "medium", "long")
DEVICE_PREFERENCES = ("mobile", "desktop", "no_preference")
LANGUAGES = ("en", "es", "fr", "de", "it", "pt", "ru", "zh", "ja", "ko")
PROFILE_VISIBILITIES = ("public", "private", "panelists_only")
DATA_RETENTION_PERIODS = ("account_deletion", "30_days", "90_days", "1_year")

# Panelist profile attributes exposed over the API, keyed by their JSON name.
PROFILE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "contactNumber": "contact_number",
    "countryCode": "country_code",
    "location": "location",
    "language": "language",
    "occupation": "occupation",
    "age": "age",
    "referralCode": "referral_code",
    "gender": "gender",
    "education": "education",
    "income": "income",
    "maritalStatus": "marital_status",
    "householdSize": "household_size",
    "children": "children",
    "address": "address",
    "employmentStatus": "employment_status",
    "annualHouseholdIncome": "annual_household_income",
    "languagesSpoken": "languages_spoken",
    "religion": "religion",
    "ethnicity": "ethnicity",
    "deviceOwnership": "device_ownership",
    "internetAccess": "internet_access",
    "socialMediaPlatforms": "social_media_platforms",
    "preferredSurveyLength": "preferred_survey_length",
    "topicsOfInterest": "topics_of_interest",
    "preferredDeviceForSurveys": "preferred_device_for_surveys",
    "receiveNotifications": "receive_notifications",
}

NOTIFICATION_FIELDS = {
    "email": "email_notifications",
    "sms": "sms_notifications",
    "push": "push_notifications",
    "survey": "survey_reminders",
    "rewardUpdates": "reward_updates",
}

PRIVACY_FIELDS = {
    "profileVisibility": "profile_visibility",
    "dataSharing": "data_sharing",
    "analytics": "analytics_opt_in",
    "marketingEmails": "marketing_emails",
    "thirdPartySharing": "third_party_sharing",
    "dataRetention": "data_retention",
    "gdprConsent": "gdpr_consent",
    "cookieConsent": "cookie_consent",
}

PROFILE_SECTIONS = (
    (
        "basicInfo",
        (
            ("first_name", "First Name"),
            ("last_name", "Last Name"),
            ("email", "Email"),
            ("contact_number", "Contact Number"),
            ("country_code", "Country Code"),
        ),
    ),
    (
        "demographics",
        (
            ("age", "Age"),
            ("gender", "Gender"),
            ("education", "Education"),
            ("income", "Income"),
            ("marital_status", "Marital Status"),
            ("household_size", "Household Size"),
            ("children", "Children"),
        ),
    ),
    (
        "location",
        (
            ("location", "Location"),
            ("address", "Address"),
            ("language", "Language"),
            ("languages_spoken", "Languages Spoken"),
        ),
    ),
    (
        "employment",
        (
            ("occupation", "Occupation"),
            ("employment_status", "Employment Status"),
            ("annual_household_income", "Annual Household Income"),
        ),
    ),
    (
        "tech",
        (
            ("device_ownership", "Device Ownership"),
            ("internet_access", "Internet Access"),
            ("social_media_platforms", "Social Media Platforms"),
        ),
    ),
    (
        "preferences",
        (
            ("preferred_survey_length", "Preferred Survey Length"),
            ("topics_of_interest", "Topics of Interest"),
            ("preferred_device_for_surveys", "Preferred Device"),
            ("receive_notifications", "Notification Preferences"),
        ),
    ),
)


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    if isinstance(value, str):
        return value.strip() != ""
    return True


def percent(part: int, whole: int) -> int:
    """Return ``part / whole`` as a whole percentage, rounding halves up."""

    if not whole:
        return 0
    return int(part * 100 / whole + 0.5)


class User(db.Model):
    """Represents a panel participant, researcher or administrator."""

    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )

    # One-time code columns per purpose: (digest column, expiry column).
    OTP_FIELDS = {
        "verification": ("email_otp_hash", "email_otp_expires_at"),
        "reset": ("reset_otp_hash", "reset_otp_expires_at"),
        "password_change": (
            "password_change_otp_hash",
            "password_change_otp_expires_at",
        ),
    }

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False, default="")
    last_name = db.Column(db.String(100), nullable=False, default="")
    role = db.Column(db.String(32), nullable=False, default="panelist")
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("1"),
    )
    is_email_verified = db.Column(db.Boolean, nullable=False, default=False)
    fraud_flagged = db.Column(db.Boolean, nullable=False, default=False)

    email_otp_hash = db.Column(db.String(64))
    email_otp_expires_at = db.Column(db.DateTime)
    reset_otp_hash = db.Column(db.String(64))
    reset_otp_expires_at = db.Column(db.DateTime)
    password_change_otp_hash = db.Column(db.String(64))
    password_change_otp_expires_at = db.Column(db.DateTime)

    points = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    last_login_at = db.Column(db.DateTime)
    password_changed_at = db.Column(db.DateTime)

    # Profile
    contact_number = db.Column(db.String(32))
    country_code = db.Column(db.String(8), default="+1")
    location = db.Column(db.String(255))
    language = db.Column(db.String(16), default="en")
    occupation = db.Column(db.String(255))
    age = db.Column(db.Integer)
    referral_code = db.Column(db.String(64))
    gender = db.Column(db.String(32))
    education = db.Column(db.String(64))
    income = db.Column(db.String(64))
    marital_status = db.Column(db.String(32))
    household_size = db.Column(db.Integer)
    children = db.Column(db.Integer)
    address = db.Column(db.Text)
    employment_status = db.Column(db.String(64))
    annual_household_income = db.Column(db.String(64))
    languages_spoken = db.Column(db.JSON)
    religion = db.Column(db.String(64))
    ethnicity = db.Column(db.String(64))
    device_ownership = db.Column(db.JSON)
    internet_access = db.Column(db.String(64))
    social_media_platforms = db.Column(db.JSON)
    preferred_survey_length = db.Column(db.String(32))
    topics_of_interest = db.Column(db.JSON)
    preferred_device_for_surveys = db.Column(db.String(32))
    receive_notifications = db.Column(db.Boolean, default=True)

    # Notification preferences
    email_notifications = db.Column(db.Boolean, nullable=False, default=True)
    sms_notifications = db.Column(db.Boolean, nullable=False, default=False)
    push_notifications = db.Column(db.Boolean, nullable=False, default=True)
    survey_reminders = db.Column(db.Boolean, nullable=False, default=True)
    reward_updates = db.Column(db.Boolean, nullable=False, default=True)

    # Privacy preferences
    profile_visibility = db.Column(db.String(16), nullable=False, default="private")
    data_sharing = db.Column(db.Boolean, nullable=False, default=False)
    analytics_opt_in = db.Column(db.Boolean, nullable=False, default=True)
    marketing_emails = db.Column(db.Boolean, nullable=False, default=False)
    third_party_sharing = db.Column(db.Boolean, nullable=False, default=False)
    data_retention = db.Column(db.String(32), nullable=False, default="account_deletion")
    gdpr_consent = db.Column(db.Boolean, nullable=False, default=False)
    cookie_consent = db.Column(db.Boolean, nullable=False, default=False)
    consent_updated_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    sessions = db.relationship(
        "UserSession", back_populates="user", cascade="all, delete-orphan"
    )
    activities = db.relationship(
        "UserActivity", back_populates="user", cascade="all, delete-orphan"
    )
    support_tickets = db.relationship(
        "SupportTicket", back_populates="user", cascade="all, delete-orphan"
    )
    surveys = db.relationship(
        "Survey", back_populates="creator", cascade="all, delete-orphan"
    )
    responses = db.relationship(
        "SurveyResponse", back_populates="respondent", cascade="all, delete-orphan"
    )
    redemptions = db.relationship(
        "RewardRedemption", back_populates="user", cascade="all, delete-orphan"
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)
        self.password_changed_at = utcnow()

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def debit_points(cls, user_id: int, amount: int) -> bool:
        """Subtract ``amount`` points only while the balance covers it.

        Runs as a single conditional UPDATE so concurrent debits against the
        same balance cannot both succeed. The caller owns the commit.
        """

        updated = cls.query.filter(cls.id == user_id, cls.points >= amount).update(
            {cls.points: cls.points - amount}, synchronize_session=False
        )
        return updated == 1

    @classmethod
    def credit_points(cls, user_id: int, amount: int, lifetime: bool = True) -> None:
        """Add ``amount`` points in place; ``lifetime`` also bumps total_points."""

        values = {cls.points: cls.points + amount}
        if lifetime:
            values[cls.total_points] = cls.total_points + amount
        cls.query.filter(cls.id == user_id).update(values, synchronize_session=False)

    def profile_sections(self) -> Dict[str, Dict[str, Any]]:
        sections = {}
        for name, fields in PROFILE_SECTIONS:
            missing = [label for attr, label in fields if not _is_filled(getattr(self, attr))]
            completed = len(fields) - len(missing)
            sections[name] = {
                "completion": percent(completed, len(fields)),
                "completed": completed,
                "total": len(fields),
                "missing": missing,
            }
        return sections

    def profile_completion(self) -> int:
        """Return the share of profile fields that are filled, as a percentage."""

        total = 0
        filled = 0
        for _, fields in PROFILE_SECTIONS:
            for attr, _label in fields:
                total += 1
                if _is_filled(getattr(self, attr)):
                    filled += 1
        return percent(filled, total)

    def profile_dict(self) -> Dict[str, Any]:
        payload = {key: getattr(self, attr) for key, attr in PROFILE_FIELDS.items()}
        for key in ("languagesSpoken", "deviceOwnership", "socialMediaPlatforms", "topicsOfInterest"):
            payload[key] = payload[key] or []
        return payload

    def notification_dict(self) -> Dict[str, bool]:
        return {key: getattr(self, attr) for key, attr in NOTIFICATION_FIELDS.items()}

    def privacy_dict(self) -> Dict[str, Any]:
        payload = {key: getattr(self, attr) for key, attr in PRIVACY_FIELDS.items()}
        payload["consentUpdatedAt"] = isoformat(self.consent_updated_at)
        return payload

    def to_dict(self, include_profile: bool = False) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "isActive": self.is_active,
            "isEmailVerified": self.is_email_verified,
            "points": self.points,
            "totalPoints": self.total_points,
            "lastLoginAt": isoformat(self.last_login_at),
            "createdAt": isoformat(self.created_at),
        }
        if include_profile:
            payload.update(self.profile_dict())
        return payload

    def export_dict(self) -> Dict[str, Any]:
        """Return everything stored about the user except credentials and codes."""

        payload = self.to_dict(include_profile=True)
        payload["notifications"] = self.notification_dict()
        payload["privacy"] = self.privacy_dict()
        payload["updatedAt"] = isoformat(self.updated_at)
        payload["surveyResponses"] = [response.to_dict(include_survey=True) for response in self.responses]
        payload["redemptions"] = [redemption.to_dict() for redemption in self.redemptions]
        payload["supportTickets"] = [ticket.to_dict() for ticket in self.support_tickets]
        payload["sessions"] = [session.to_dict() for session in self.sessions]
        payload["activities"] = [activity.to_dict() for activity in self.activities]
        payload["exportedAt"] = isoformat(utcnow())
        return payload

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
