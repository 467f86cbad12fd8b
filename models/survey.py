"""Survey model definition."""

from typing import Any, Dict

from . import db, isoformat, utcnow


SURVEY_STATUSES = ("draft", "active", "paused", "completed")
QUESTION_TYPES = (
    "text",
    "number",
    "email",
    "tel",
    "url",
    "date",
    "time",
    "datetime-local",
    "month",
    "week",
    "select",
    "textarea",
    "radio",
    "checkbox",
    "range",
    "file",
)
TARGET_GENDERS = ("any", "male", "female", "other")


class Survey(db.Model):
    """A questionnaire authored by a researcher or admin."""

    __tablename__ = "surveys"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(1000), nullable=False)
    questions = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(100), nullable=False)
    estimated_duration = db.Column(db.Integer, nullable=False)
    reward = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)

    # Targeting; null means unrestricted.
    age_min = db.Column(db.Integer)
    age_max = db.Column(db.Integer)
    target_gender = db.Column(db.String(16))
    target_locations = db.Column(db.JSON)
    max_participants = db.Column(db.Integer)
    start_date = db.Column(db.DateTime)
    end_date = db.Column(db.DateTime)

    total_responses = db.Column(db.Integer, nullable=False, default=0)
    completed_responses = db.Column(db.Integer, nullable=False, default=0)
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User", back_populates="surveys")
    responses = db.relationship(
        "SurveyResponse", back_populates="survey", cascade="all, delete-orphan"
    )

    def is_open(self, now=None) -> bool:
        """Return True when the survey can accept new respondents."""

        now = now or utcnow()
        if self.status != "active":
            return False
        if self.start_date and self.start_date > now:
            return False
        if self.end_date and self.end_date < now:
            return False
        if self.max_participants and self.completed_responses >= self.max_participants:
            return False
        return True

    def targets(self, user) -> bool:
        """Return True when ``user`` falls inside the survey's audience."""

        if self.age_min is not None and (user.age is None or user.age < self.age_min):
            return False
        if self.age_max is not None and (user.age is None or user.age > self.age_max):
            return False
        if self.target_gender and self.target_gender != "any":
            if (user.gender or "").lower() != self.target_gender:
                return False
        if self.target_locations:
            location = (user.location or "").lower()
            if not any(place.lower() in location for place in self.target_locations):
                return False
        return True

    def targeting_dict(self) -> Dict[str, Any]:
        return {
            "ageMin": self.age_min,
            "ageMax": self.age_max,
            "gender": self.target_gender,
            "locations": self.target_locations or [],
            "maxParticipants": self.max_participants,
        }

    def to_dict(self, include_questions: bool = True, include_creator: bool = True) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "estimatedDuration": self.estimated_duration,
            "reward": self.reward,
            "status": self.status,
            "targeting": self.targeting_dict(),
            "startDate": isoformat(self.start_date),
            "endDate": isoformat(self.end_date),
            "totalResponses": self.total_responses,
            "completedResponses": self.completed_responses,
            "createdById": self.created_by_id,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_questions:
            payload["questions"] = self.questions or []
        else:
            payload["questionCount"] = len(self.questions or [])
        if include_creator and self.creator is not None:
            payload["createdBy"] = {
                "id": self.creator.id,
                "firstName": self.creator.first_name,
                "lastName": self.creator.last_name,
            }
        return payload
