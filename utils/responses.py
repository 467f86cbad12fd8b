"""Helpers that shape the JSON envelope shared by every endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import g, jsonify


def success(data: Any = None, message: str | None = None, status: int = HTTPStatus.OK):
    """Return a ``{success: true, message?, data?}`` response tuple."""

    payload: dict[str, Any] = {"success": True}
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    return jsonify(payload), status


def failure(message: str, status: int, errors: list | None = None, **extra: Any):
    payload: dict[str, Any] = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    payload.update(extra)
    request_id = g.get("request_id")
    if request_id:
        payload["request_id"] = request_id
    response = jsonify(payload)
    response.status_code = int(status)
    return response


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """Return one page of ``query`` and the pagination block for the envelope."""

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if limit else 0
    return items, {"page": page, "limit": limit, "total": total, "pages": pages}
