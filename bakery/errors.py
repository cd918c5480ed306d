# Overview: Domain error taxonomy and the JSON error envelope returned at the request boundary.

from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    """Base for errors that translate directly into an HTTP status + JSON body."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, **extra):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"message": self.message}
        body.update(self.extra)
        return body


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Token required"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Insufficient permissions"


class ValidationError(ApiError, ValueError):
    """400-level input problem."""

    status_code = 400
    default_message = "Invalid request"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError, ValueError):
    """409-level business rule conflict (duplicate key, blocked delete, bad transition)."""

    status_code = 409
    default_message = "Conflict"


class InvalidTransition(ConflictError):
    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Invalid {entity} status transition from {current} to {requested}",
            currentStatus=current,
            requestedStatus=requested,
        )
        self.entity = entity
        self.current = current
        self.requested = requested


class InsufficientStock(ApiError):
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class InternalError(ApiError):
    status_code = 500


def register_error_handlers(app) -> None:
    """Translate every failure into a JSON envelope; roll back any open unit of work."""

    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        db.session.rollback()
        if exc.status_code >= 500:
            current_app.logger.error("API error: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify({"message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"message": "Internal server error"}), 500
