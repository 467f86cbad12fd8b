"""Bearer-token sessions issued to users."""

from . import db, isoformat, utcnow


class UserSession(db.Model):
    """One issued user token, identified by its JWT ``jti``."""

    __tablename__ = "user_sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_jti = db.Column(db.String(64), unique=True, nullable=False)
    user_agent = db.Column(db.String(512))
    ip_address = db.Column(db.String(64))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    issued_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    last_used_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="sessions")

    def is_live(self, now=None) -> bool:
        return self.is_active and self.expires_at > (now or utcnow())

    def to_dict(self, current_jti=None) -> dict:
        return {
            "id": self.id,
            "userAgent": self.user_agent,
            "ipAddress": self.ip_address,
            "isActive": self.is_active,
            "issuedAt": isoformat(self.issued_at),
            "expiresAt": isoformat(self.expires_at),
            "lastUsedAt": isoformat(self.last_used_at),
            "isCurrent": current_jti is not None and self.token_jti == current_jti,
        }
