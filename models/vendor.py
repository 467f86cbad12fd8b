"""Vendor model definition."""

from typing import Any, Dict

from werkzeug.security import check_password_hash, generate_password_hash

from . import db, isoformat, utcnow


VENDOR_STATUSES = ("pending_verification", "active", "deactivated")

# JSON name -> column for the business profile attributes.
VENDOR_DETAIL_FIELDS = {
    "redirectStatus": "redirect_status",
    "externalLink": "external_link",
    "yearsInBusiness": "years_in_business",
    "numberOfEmployees": "number_of_employees",
    "annualRevenue": "annual_revenue",
    "panelBook": "panel_book",
    "panelRegistrationDetails": "panel_registration_details",
    "businessInformation": "business_information",
    "otherDocuments": "other_documents",
    "servicesOffered": "services_offered",
    "previousProjects": "previous_projects",
    "whyPartnerWithUs": "why_partner_with_us",
}

REQUIRED_PROFILE_KEYS = ("phone", "address", "city", "industry", "description")
REQUIRED_DETAIL_COLUMNS = (
    "years_in_business",
    "number_of_employees",
    "annual_revenue",
    "panel_book",
    "panel_registration_details",
    "business_information",
    "services_offered",
    "why_partner_with_us",
)


def _present(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    return value is not None


class Vendor(db.Model):
    """Marketplace participant with its own credentials and tokens."""

    __tablename__ = "vendors"

    OTP_FIELDS = {"verification": ("otp_hash", "otp_expires_at")}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    company = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending_verification")
    otp_hash = db.Column(db.String(64))
    otp_expires_at = db.Column(db.DateTime)
    profile = db.Column(db.JSON, nullable=False, default=dict)

    redirect_status = db.Column(db.String(64))
    external_link = db.Column(db.String(512))
    years_in_business = db.Column(db.Integer)
    number_of_employees = db.Column(db.Integer)
    annual_revenue = db.Column(db.String(64))
    panel_book = db.Column(db.Text)
    panel_registration_details = db.Column(db.Text)
    business_information = db.Column(db.Text)
    other_documents = db.Column(db.Text)
    services_offered = db.Column(db.Text)
    previous_projects = db.Column(db.Text)
    why_partner_with_us = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    projects = db.relationship(
        "Project",
        back_populates="poster",
        foreign_keys="Project.posted_by_id",
        cascade="all, delete-orphan",
    )
    assigned_projects = db.relationship(
        "Project", back_populates="assignee", foreign_keys="Project.assigned_to_id"
    )
    bids = db.relationship("Bid", back_populates="vendor", cascade="all, delete-orphan")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_profile_complete(self) -> bool:
        """True when every field a partner review needs has been filled in."""

        profile = self.profile or {}
        values = [self.name, self.company]
        values.extend(profile.get(key) for key in REQUIRED_PROFILE_KEYS)
        values.extend(getattr(self, column) for column in REQUIRED_DETAIL_COLUMNS)
        return all(_present(value) for value in values)

    def public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "profile": self.profile or {},
            "status": self.status,
            "createdAt": isoformat(self.created_at),
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.public_dict()
        payload["email"] = self.email
        payload.update({key: getattr(self, column) for key, column in VENDOR_DETAIL_FIELDS.items()})
        payload["updatedAt"] = isoformat(self.updated_at)
        return payload

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Vendor {self.email}>"
