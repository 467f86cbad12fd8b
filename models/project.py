"""Vendor marketplace projects and their survey briefs."""

from datetime import timedelta
from typing import Any, Dict, Optional

from . import db, isoformat, utcnow


PROJECT_STATUSES = ("draft", "open", "assigned", "in_progress", "completed", "closed")

# JSON name -> column for the brief attributes.
BRIEF_FIELDS = {
    "category": "category",
    "targetAudience": "target_audience",
    "sampleSize": "sample_size",
    "cpi": "cpi",
    "loi": "loi",
    "ir": "ir",
    "currency": "currency",
    "timeline": "timeline",
    "requirements": "requirements",
    "deliverables": "deliverables",
    "surveyType": "survey_type",
    "quotaRequirements": "quota_requirements",
    "qualityChecks": "quality_checks",
    "dataFormat": "data_format",
    "reportingRequirements": "reporting_requirements",
    "specialInstructions": "special_instructions",
}


def default_brief(created_at=None) -> Dict[str, Any]:
    """Return the brief values used when a project omits them."""

    start = created_at or utcnow()
    return {
        "category": "General",
        "targetAudience": "General",
        "sampleSize": 0,
        "cpi": 0,
        "loi": 0,
        "ir": 0,
        "currency": "USD",
        "timeline": {
            "startDate": start.date().isoformat(),
            "endDate": (start + timedelta(days=30)).date().isoformat(),
            "estimatedDuration": 30,
        },
        "requirements": {
            "ageRange": "18-65",
            "gender": "All",
            "location": "Global",
            "languages": ["English"],
            "deviceType": ["Desktop", "Mobile"],
            "screeningCriteria": [],
        },
        "deliverables": ["Survey responses"],
        "surveyType": "Online",
        "quotaRequirements": "Standard",
        "qualityChecks": True,
        "dataFormat": "Excel",
        "reportingRequirements": "Standard",
        "specialInstructions": "",
    }


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(32), nullable=False, default="open", index=True)
    redirect_status = db.Column(db.String(64))
    external_link = db.Column(db.String(512))
    posted_by_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_to_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="SET NULL"), index=True
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    poster = db.relationship("Vendor", back_populates="projects", foreign_keys=[posted_by_id])
    assignee = db.relationship(
        "Vendor", back_populates="assigned_projects", foreign_keys=[assigned_to_id]
    )
    brief = db.relationship(
        "ProjectBrief",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
    )
    bids = db.relationship(
        "Bid",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Bid.created_at.desc()",
    )
    messages = db.relationship(
        "Message",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    def is_participant(self, vendor_id: int) -> bool:
        """Poster, assignee or any bidder may exchange messages on a project."""

        if vendor_id in (self.posted_by_id, self.assigned_to_id):
            return True
        return any(bid.vendor_id == vendor_id for bid in self.bids)

    def brief_dict(self) -> Dict[str, Any]:
        payload = default_brief(self.created_at)
        if self.brief is not None:
            for key, column in BRIEF_FIELDS.items():
                value = getattr(self.brief, column)
                if value is not None:
                    payload[key] = value
        return payload

    def to_dict(self, include_bids: bool = False, viewer_id: Optional[int] = None) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "redirectStatus": self.redirect_status,
            "externalLink": self.external_link,
            "postedById": self.posted_by_id,
            "assignedToId": self.assigned_to_id,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "surveyDetails": self.brief_dict(),
            "bidCount": len(self.bids),
        }
        if self.poster is not None:
            payload["postedBy"] = {
                "id": self.poster.id,
                "name": self.poster.name,
                "company": self.poster.company,
            }
        if self.assignee is not None:
            payload["assignedTo"] = {
                "id": self.assignee.id,
                "name": self.assignee.name,
                "company": self.assignee.company,
            }
        if include_bids:
            payload["bids"] = [bid.to_dict(include_vendor=True) for bid in self.bids]
        if viewer_id is not None:
            own = next((bid for bid in self.bids if bid.vendor_id == viewer_id), None)
            payload["myBid"] = own.to_dict() if own else None
        return payload


class ProjectBrief(db.Model):
    """Survey-marketplace metadata attached to a project; every field is optional."""

    __tablename__ = "project_briefs"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    category = db.Column(db.String(100))
    target_audience = db.Column(db.String(255))
    sample_size = db.Column(db.Integer)
    cpi = db.Column(db.Float)
    loi = db.Column(db.Integer)
    ir = db.Column(db.Float)
    currency = db.Column(db.String(8))
    timeline = db.Column(db.JSON)
    requirements = db.Column(db.JSON)
    deliverables = db.Column(db.JSON)
    survey_type = db.Column(db.String(64))
    quota_requirements = db.Column(db.String(255))
    quality_checks = db.Column(db.Boolean)
    data_format = db.Column(db.String(64))
    reporting_requirements = db.Column(db.String(255))
    special_instructions = db.Column(db.Text)

    project = db.relationship("Project", back_populates="brief")
