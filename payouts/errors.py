# -*- coding: utf-8 -*-
"""
Error classes of the payout service and their JSON rendering.

Client errors (4xx) are raised before any write happens; RecordStoreError
wraps database failures and is the only server-side class raised on purpose.
"""
from __future__ import annotations

import logging
import uuid

from flask import g, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class PayoutError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(PayoutError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(PayoutError):
    status_code = 404
    default_message = "Not found"


class RunFinalizedError(PayoutError):
    status_code = 409
    default_message = "Payout run is finalized"


class SchemaMismatchError(PayoutError):
    """A choice value the code relies on is not configured in the store."""

    status_code = 422
    default_message = "Record store is missing required configuration"


class RecordStoreError(PayoutError):
    status_code = 500
    default_message = "Record store failure"


def request_id() -> str:
    rid = getattr(g, "request_id", None)
    if not rid:
        rid = str(uuid.uuid4())
        g.request_id = rid
    return rid


def error_response(status: int, message: str):
    res = jsonify({"error": message, "request_id": request_id()})
    res.status_code = status
    return res


def register_error_handlers(app):
    @app.errorhandler(PayoutError)
    def _payout_error(e: PayoutError):
        if e.status_code >= 500:
            logger.error("[%s] %s: %s", request_id(), type(e).__name__, e.message)
            return error_response(e.status_code, e.default_message)
        return error_response(e.status_code, e.message)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return error_response(e.code or 500, e.name)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logger.exception("[%s] unhandled error", request_id())
        return error_response(500, "Internal server error")
