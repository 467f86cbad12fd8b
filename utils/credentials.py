"""Password, one-time code and bearer token helpers."""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta

from flask import current_app
from flask_jwt_extended import create_access_token, get_jti
from werkzeug.security import generate_password_hash

from models import utcnow

TEST_MODE_OTP = "123456"
USER_TOKEN = "user"
VENDOR_TOKEN = "vendor"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def hash_otp(code: str) -> str:
    return hashlib.sha256(str(code).encode("utf-8")).hexdigest()


def generate_otp() -> str:
    """Return a 6-digit code; fixed when OTP test mode is enabled."""

    if current_app.config.get("OTP_TEST_MODE"):
        return TEST_MODE_OTP
    return str(secrets.randbelow(900000) + 100000)


def issue_otp() -> tuple[str, str, datetime]:
    """Return ``(code, digest, expires_at)``; only the digest is ever stored."""

    code = generate_otp()
    ttl = timedelta(minutes=current_app.config.get("OTP_TTL_MINUTES", 10))
    return code, hash_otp(code), utcnow() + ttl


def assign_otp(record, purpose: str) -> str:
    """Store a fresh code for ``purpose`` on ``record``, replacing any earlier one."""

    code, digest, expires_at = issue_otp()
    token_attr, expires_attr = record.OTP_FIELDS[purpose]
    setattr(record, token_attr, digest)
    setattr(record, expires_attr, expires_at)
    if current_app.config.get("OTP_TEST_MODE"):
        current_app.logger.info("Issued %s code %s for %s", purpose, code, record.email)
    else:
        current_app.logger.info("Issued %s code for %s", purpose, record.email)
    return code


def consume_otp(model, purpose: str, criteria: list, code: str, **changes) -> bool:
    """Atomically redeem a one-time code.

    A single conditional UPDATE matches the stored digest and an unexpired
    deadline, clears both OTP columns and applies ``changes``. Returns False
    when no row matched, so a code can only ever be used once. The caller
    owns the commit.
    """

    token_attr, expires_attr = model.OTP_FIELDS[purpose]
    token_column = getattr(model, token_attr)
    expires_column = getattr(model, expires_attr)

    values = {token_column: None, expires_column: None}
    values.update({getattr(model, key): value for key, value in changes.items()})

    updated = model.query.filter(
        *criteria,
        token_column == hash_otp(code),
        expires_column > utcnow(),
    ).update(values, synchronize_session=False)
    return updated == 1


def otp_echo(code: str) -> dict:
    """Expose the plaintext code in responses only while OTP test mode is on."""

    if current_app.config.get("OTP_TEST_MODE"):
        return {"otp": code}
    return {}


def issue_user_token(user) -> tuple[str, str]:
    """Return a signed user token and its ``jti``."""

    token = create_access_token(
        identity=str(user.id),
        additional_claims={"typ": USER_TOKEN, "email": user.email, "role": user.role},
    )
    return token, get_jti(token)


def issue_vendor_token(vendor) -> str:
    return create_access_token(
        identity=str(vendor.id),
        additional_claims={"typ": VENDOR_TOKEN, "email": vendor.email},
    )
