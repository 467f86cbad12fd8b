"""Bearer-token guards for the user and vendor namespaces."""

from __future__ import annotations

from collections import namedtuple
from functools import wraps

from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from werkzeug.exceptions import Forbidden, NotFound

from models import User, UserSession, Vendor, db, utcnow
from utils.credentials import USER_TOKEN, VENDOR_TOKEN, issue_user_token

# Explicit allow-sets; a higher role is granted a route only when listed.
ADMIN = frozenset({"admin"})
RESEARCHERS = frozenset({"admin", "researcher"})
PANELISTS = frozenset({"admin", "researcher", "panelist"})
PANELIST_ONLY = frozenset({"panelist"})
ANY_USER = PANELISTS

Identity = namedtuple("Identity", ["id", "email", "role"])


def user_required(roles=ANY_USER):
    """Require a user token whose role is in ``roles``."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt()
            if claims.get("typ") != USER_TOKEN:
                raise Forbidden("Invalid token payload")
            if claims.get("role") not in roles:
                raise Forbidden("Insufficient permissions")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def vendor_required():
    """Require a vendor token; user tokens are rejected."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if get_jwt().get("typ") != VENDOR_TOKEN:
                raise Forbidden("Invalid token payload")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_identity() -> Identity:
    claims = get_jwt()
    return Identity(int(get_jwt_identity()), claims.get("email"), claims.get("role"))


def current_user() -> User:
    user = db.session.get(User, current_identity().id)
    if user is None:
        raise NotFound("User not found")
    return user


def current_vendor_id() -> int:
    return int(get_jwt_identity())


def current_vendor() -> Vendor:
    vendor = db.session.get(Vendor, current_vendor_id())
    if vendor is None:
        raise NotFound("Vendor not found")
    return vendor


def current_jti() -> str | None:
    return get_jwt().get("jti")


def open_session(user: User, user_agent: str | None = None, ip_address: str | None = None) -> str:
    """Issue a user token and record the session it belongs to.

    Adds the session to the current transaction; the caller commits.
    """

    token, jti = issue_user_token(user)
    now = utcnow()
    db.session.add(
        UserSession(
            user_id=user.id,
            token_jti=jti,
            user_agent=(user_agent or "")[:512] or None,
            ip_address=ip_address,
            issued_at=now,
            last_used_at=now,
            expires_at=now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        )
    )
    return token


def is_token_revoked(jwt_payload: dict) -> bool:
    """User tokens are valid only while their session row is active."""

    if jwt_payload.get("typ") != USER_TOKEN:
        return False
    session = UserSession.query.filter_by(token_jti=jwt_payload.get("jti")).first()
    return session is None or not session.is_active
