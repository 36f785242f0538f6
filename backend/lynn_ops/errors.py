# Overview: Service error taxonomy and the Flask handlers that render it as JSON.

"""
Every handled failure leaves the API as:

    {"error": "<human message>", "code": "<STABLE_CODE>", "details": {...}}

Services raise the subclasses below; routes never build error bodies by hand
for these cases. Anything else is logged and returned as a generic 500.
"""

from __future__ import annotations

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException


class ServiceError(Exception):
    """Base for errors that map to a stable API category."""

    code = "SERVICE_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationError(ServiceError):
    """No valid actor could be resolved from the request."""
    code = "UNAUTHORIZED"
    status_code = 401


class PermissionDeniedError(ServiceError):
    """Valid actor, but missing capability or ownership for the target."""
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(ServiceError):
    """Entity missing, or not part of the location named in the request."""
    code = "NOT_FOUND"
    status_code = 404


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""
    code = "CONFLICT"
    status_code = 409


class InsufficientStockError(ServiceError):
    """Export or order quantity exceeds what is on hand."""
    code = "INSUFFICIENT_STOCK"
    status_code = 409


class OrderRestockError(ConflictError):
    """Order deletion cannot restock a line whose product no longer exists."""
    code = "RESTOCK_TARGET_MISSING"


class StorageError(ServiceError):
    """The atomic write failed; nothing from the request was applied."""
    code = "STORAGE_FAILURE"
    status_code = 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        if exc.status_code >= 500:
            current_app.logger.error("Storage failure: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "code": exc.name.upper().replace(" ", "_")}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
