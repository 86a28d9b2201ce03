from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import (
    Conflict,
    DomainError,
    NotFound,
    StoreError,
    StoreTimeout,
    UndoExpired,
    ValidationError,
)

logger = logging.getLogger(__name__)

# most specific first
_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFound, 404),
    (Conflict, 409),
    (UndoExpired, 400),
    (StoreTimeout, 504),
    (StoreError, 503),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 500


def ok(payload: Optional[dict] = None, status: int = 200, **extra: Any):
    return jsonify({"success": True, **(payload or {}), **extra}), status


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_date(name: str):
    value = request.args.get(name)
    return parse_iso_date(value) if value else None


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = status_for(e)
        if isinstance(e, StoreTimeout):
            return fail("The database did not answer in time, please retry", status)
        if isinstance(e, StoreError):
            return fail("The database is unavailable, please retry", status)
        return fail(str(e), status)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return fail("Internal server error", 500)
