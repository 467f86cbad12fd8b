"""Bid model definition."""

from . import db, isoformat, utcnow


BID_STATUSES = ("pending", "accepted", "rejected", "withdrawn")


class Bid(db.Model):
    """A vendor's offer on another vendor's project; one per vendor and project."""

    __tablename__ = "bids"
    __table_args__ = (
        db.UniqueConstraint("project_id", "vendor_id", name="uq_bids_project_vendor"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id = db.Column(
        db.Integer, db.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount = db.Column(db.Float, nullable=False)
    message = db.Column(db.Text)
    status = db.Column(db.String(16), nullable=False, default="pending")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    project = db.relationship("Project", back_populates="bids")
    vendor = db.relationship("Vendor", back_populates="bids")

    def to_dict(self, include_vendor: bool = False, include_project: bool = False) -> dict:
        payload = {
            "id": self.id,
            "projectId": self.project_id,
            "vendorId": self.vendor_id,
            "amount": self.amount,
            "message": self.message,
            "status": self.status,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_vendor and self.vendor is not None:
            payload["vendor"] = {
                "id": self.vendor.id,
                "name": self.vendor.name,
                "company": self.vendor.company,
            }
        if include_project and self.project is not None:
            payload["project"] = {
                "id": self.project.id,
                "title": self.project.title,
                "status": self.project.status,
            }
        return payload
