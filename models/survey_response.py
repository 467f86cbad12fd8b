"""Survey response model definition."""

from . import db, isoformat, utcnow


RESPONSE_STATUSES = ("in_progress", "completed", "disqualified")


class SurveyResponse(db.Model):
    """A respondent's attempt at a survey.

    ``open_slot`` is 1 while the attempt is in progress and NULL afterwards.
    The unique constraint over it allows any number of finished attempts but
    at most one in-progress attempt per survey and respondent, on every
    backend (NULLs never collide).
    """

    __tablename__ = "survey_responses"
    __table_args__ = (
        db.UniqueConstraint(
            "survey_id",
            "respondent_id",
            "open_slot",
            name="uq_survey_responses_one_in_progress",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    survey_id = db.Column(
        db.Integer, db.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True
    )
    respondent_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = db.Column(db.String(16), nullable=False, default="in_progress")
    open_slot = db.Column(db.SmallInteger, default=1)
    answers = db.Column(db.JSON, nullable=False, default=dict)
    started_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime)
    time_spent = db.Column(db.Integer)
    points_earned = db.Column(db.Integer, nullable=False, default=0)
    is_qualified = db.Column(db.Boolean)
    disqualification_reason = db.Column(db.String(255))
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    survey = db.relationship("Survey", back_populates="responses")
    respondent = db.relationship("User", back_populates="responses")

    def to_dict(self, include_survey: bool = False) -> dict:
        payload = {
            "id": self.id,
            "surveyId": self.survey_id,
            "respondentId": self.respondent_id,
            "status": self.status,
            "responses": self.answers or {},
            "startedAt": isoformat(self.started_at),
            "completedAt": isoformat(self.completed_at),
            "timeSpent": self.time_spent,
            "pointsEarned": self.points_earned,
            "isQualified": self.is_qualified,
            "disqualificationReason": self.disqualification_reason,
        }
        if include_survey and self.survey is not None:
            payload["survey"] = {
                "id": self.survey.id,
                "title": self.survey.title,
                "category": self.survey.category,
                "reward": self.survey.reward,
                "estimatedDuration": self.survey.estimated_duration,
            }
        return payload
