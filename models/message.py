"""Project-scoped messages between vendors."""

from . import db, isoformat, utcnow


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    project = db.relationship("Project", back_populates="messages")
    sender = db.relationship("Vendor", foreign_keys=[sender_id])
    receiver = db.relationship("Vendor", foreign_keys=[receiver_id])

    def to_dict(self) -> dict:
        payload = {
            "id": self.id,
            "projectId": self.project_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "message": self.body,
            "timestamp": isoformat(self.created_at),
        }
        if self.sender is not None:
            payload["sender"] = {"id": self.sender.id, "name": self.sender.name}
        if self.receiver is not None:
            payload["receiver"] = {"id": self.receiver.id, "name": self.receiver.name}
        return payload
