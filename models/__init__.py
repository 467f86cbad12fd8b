"""Database initialization and model exports."""

from datetime import datetime, timezone
from typing import Optional

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .user_session import UserSession  # noqa: E402,F401
from .user_activity import UserActivity  # noqa: E402,F401
from .support_ticket import SupportTicket  # noqa: E402,F401
from .survey import Survey  # noqa: E402,F401
from .survey_response import SurveyResponse  # noqa: E402,F401
from .reward import Reward, RewardRedemption  # noqa: E402,F401
from .system_settings import SystemSettings  # noqa: E402,F401
from .vendor import Vendor  # noqa: E402,F401
from .project import Project, ProjectBrief  # noqa: E402,F401
from .bid import Bid  # noqa: E402,F401
from .message import Message  # noqa: E402,F401

__all__ = [
    "db",
    "utcnow",
    "isoformat",
    "User",
    "UserSession",
    "UserActivity",
    "SupportTicket",
    "Survey",
    "SurveyResponse",
    "Reward",
    "RewardRedemption",
    "SystemSettings",
    "Vendor",
    "Project",
    "ProjectBrief",
    "Bid",
    "Message",
]
