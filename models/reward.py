"""Reward catalog and redemption models."""

from . import db, isoformat, utcnow


REWARD_TYPES = ("gift_card", "cash", "product", "other")
REDEMPTION_STATUSES = ("pending", "approved", "rejected", "completed")

# Allowed redemption status changes; rejected and completed are terminal.
REDEMPTION_TRANSITIONS = {
    "pending": {"approved", "rejected", "completed"},
    "approved": {"completed", "rejected"},
    "rejected": set(),
    "completed": set(),
}


class Reward(db.Model):
    """A catalog item that panelists can buy with points."""

    __tablename__ = "rewards"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    points = db.Column(db.Integer, nullable=False)
    reward_type = db.Column(db.String(32), nullable=False, default="gift_card")
    value = db.Column(db.Float, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    redemptions = db.relationship("RewardRedemption", back_populates="reward")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "points": self.points,
            "type": self.reward_type,
            "value": self.value,
            "isActive": self.is_active,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class RewardRedemption(db.Model):
    """Audit row for a points debit against a reward."""

    __tablename__ = "reward_redemptions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reward_id = db.Column(
        db.Integer, db.ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    points_spent = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="redemptions")
    reward = db.relationship("Reward", back_populates="redemptions")

    def can_transition(self, new_status: str) -> bool:
        return new_status in REDEMPTION_TRANSITIONS.get(self.status, set())

    def to_dict(self, include_user: bool = False) -> dict:
        payload = {
            "id": self.id,
            "rewardId": self.reward_id,
            "pointsSpent": self.points_spent,
            "status": self.status,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if self.reward is not None:
            payload["reward"] = {
                "id": self.reward.id,
                "name": self.reward.name,
                "type": self.reward.reward_type,
                "value": self.reward.value,
            }
        if include_user and self.user is not None:
            payload["user"] = {
                "id": self.user.id,
                "email": self.user.email,
                "firstName": self.user.first_name,
                "lastName": self.user.last_name,
            }
        return payload
