"""Support tickets raised by panelists."""

from . import db, isoformat, utcnow


TICKET_CATEGORIES = ("General", "Technical", "Account", "Payment")
TICKET_PRIORITIES = ("Low", "Medium", "High", "Urgent")
TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")


class SupportTicket(db.Model):
    __tablename__ = "support_tickets"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category = db.Column(db.String(32), nullable=False, default="General")
    priority = db.Column(db.String(16), nullable=False, default="Medium")
    subject = db.Column(db.String(100), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="open")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="support_tickets")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "priority": self.priority,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
