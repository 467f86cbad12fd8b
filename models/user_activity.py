"""Activity trail shown on the panelist dashboard."""

from . import db, isoformat, utcnow


ACTIVITY_TYPES = ("survey_completed", "reward_redeemed", "profile_updated", "points_refunded")


class UserActivity(db.Model):
    __tablename__ = "user_activities"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="activities")

    @classmethod
    def record(cls, user_id: int, activity_type: str, title: str, description=None, points: int = 0):
        """Add an activity row to the current session without committing."""

        activity = cls(
            user_id=user_id,
            activity_type=activity_type,
            title=title,
            description=description,
            points=points,
        )
        db.session.add(activity)
        return activity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.activity_type,
            "title": self.title,
            "description": self.description,
            "points": self.points,
            "createdAt": isoformat(self.created_at),
        }
