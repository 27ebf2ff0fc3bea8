from flask import jsonify, request
from werkzeug.exceptions import HTTPException


class AdminPanelError(Exception):
    """Base for errors that map straight onto an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AdminPanelError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AdminPanelError):
    status_code = 401
    default_message = "Access denied. No token provided."


class Forbidden(AdminPanelError):
    status_code = 403
    default_message = "Invalid or expired token."


class NotFound(AdminPanelError):
    status_code = 404
    default_message = "Not found"


class Conflict(AdminPanelError):
    status_code = 409
    default_message = "Already exists"


class StorageError(Exception):
    """Raised by object storage backends when an upload cannot complete."""


# -----------------------------
# FLASK HANDLERS
# -----------------------------
def register_error_handlers(app):
    @app.errorhandler(AdminPanelError)
    def handle_admin_error(e):
        return jsonify(error=e.message), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if not request.path.startswith("/api"):
            return e
        return jsonify(error=e.description), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(error="Internal server error"), 500
