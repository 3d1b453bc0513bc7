"""Error taxonomy shared by every handler.

Handlers raise these; the application factory registers
``register_error_handlers`` so each one is rendered as the
``{"error": message}`` envelope with its status code.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None, **extra):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.extra = extra

    def to_dict(self):
        return {"error": self.message, **self.extra}


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request."


class AuthError(ApiError):
    status_code = 401
    default_message = "Authentication required"

    def __init__(self, message=None, status_code=None, **extra):
        super().__init__(message, **extra)
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        if error.status_code >= 500:
            app.logger.error("Request failed: %s", error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.exception("Unhandled error while serving request: %s", error)
        return jsonify({"error": "Internal server error"}), 500
