"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationFailed(BadRequest):
    """400 carrying field-level ``{field, message}`` entries."""

    def __init__(self, errors: list[dict], description: str = "Validation failed") -> None:
        super().__init__(description)
        self.errors = errors


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=False)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if data.get(key) in (None, "")]
        if missing:
            raise ValidationFailed(
                [{"field": key, "message": f"{key} is required"} for key in missing],
                "Missing required fields: {}.".format(", ".join(sorted(missing))),
            )

    return data


def normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    return (raw_email or "").strip().lower()


def parse_bool(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "y"}:
        return True
    if lowered in {"0", "false", "no", "n"}:
        return False
    return None


def page_args(args, default_limit: int = 10, max_limit: int = 50) -> tuple[int, int]:
    """Read ``page`` and ``limit`` query arguments, clamped to sane bounds."""

    errors = []
    page = args.get("page", 1)
    limit = args.get("limit", default_limit)
    try:
        page = int(page)
        if page < 1:
            raise ValueError
    except (TypeError, ValueError):
        errors.append({"field": "page", "message": "page must be a positive integer"})
    try:
        limit = int(limit)
        if limit < 1 or limit > max_limit:
            raise ValueError
    except (TypeError, ValueError):
        errors.append(
            {"field": "limit", "message": f"limit must be between 1 and {max_limit}"}
        )
    if errors:
        raise ValidationFailed(errors)
    return page, limit


class PayloadValidator:
    """Collects field errors while reading typed values out of a JSON body.

    Each reader returns the cleaned value, or ``None`` when the field is
    absent or invalid. Absent optional fields are skipped silently.
    """

    def __init__(self, data: dict) -> None:
        self.data = data
        self.errors: list[dict] = []

    def error(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def _absent(self, field: str, required: bool) -> bool:
        value = self.data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                self.error(field, f"{field} is required")
            return True
        return False

    def string(
        self,
        field: str,
        *,
        required: bool = False,
        min_length: int | None = None,
        max_length: int | None = None,
        choices: Iterable[str] | None = None,
        strip: bool = True,
    ) -> str | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, str):
            self.error(field, f"{field} must be a string")
            return None
        if strip:
            value = value.strip()
        if min_length is not None and len(value) < min_length:
            self.error(field, f"{field} must be at least {min_length} characters")
            return None
        if max_length is not None and len(value) > max_length:
            self.error(field, f"{field} must be at most {max_length} characters")
            return None
        if choices is not None and value not in choices:
            self.error(field, f"{field} must be one of: {', '.join(choices)}")
            return None
        return value

    def email(self, field: str = "email", *, required: bool = False) -> str | None:
        value = self.string(field, required=required, max_length=255)
        if value is None:
            return None
        if not EMAIL_PATTERN.match(value):
            self.error(field, "Please provide a valid email")
            return None
        return value.lower()

    def integer(
        self,
        field: str,
        *,
        required: bool = False,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> int | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            self.error(field, f"{field} must be an integer")
            return None
        try:
            value = int(value)
        except ValueError:
            self.error(field, f"{field} must be an integer")
            return None
        if minimum is not None and value < minimum:
            self.error(field, f"{field} must be at least {minimum}")
            return None
        if maximum is not None and value > maximum:
            self.error(field, f"{field} must be at most {maximum}")
            return None
        return value

    def number(
        self,
        field: str,
        *,
        required: bool = False,
        minimum: float | None = None,
        positive: bool = False,
    ) -> float | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if isinstance(value, bool):
            self.error(field, f"{field} must be a number")
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            self.error(field, f"{field} must be a number")
            return None
        if positive and value <= 0:
            self.error(field, f"{field} must be greater than 0")
            return None
        if minimum is not None and value < minimum:
            self.error(field, f"{field} must be at least {minimum}")
            return None
        return value

    def boolean(self, field: str, *, required: bool = False) -> bool | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, bool):
            self.error(field, f"{field} must be a boolean")
            return None
        return value

    def string_list(self, field: str, *, required: bool = False) -> list | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            self.error(field, f"{field} must be an array")
            return None
        return value

    def mapping(self, field: str, *, required: bool = False) -> dict | None:
        if self._absent(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, dict):
            self.error(field, f"{field} must be an object")
            return None
        return value

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationFailed(self.errors)
