from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException
from codeloader.domain.errors import NotFoundError, StorageError
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.services.webflow import WebflowAPIError


def _error_response(error_name, message, status_code):
    response = jsonify({
        "error": error_name,
        "message": message
    })
    response.status_code = status_code
    return response


def register_error_handlers(app):
    @app.errorhandler(InvariantViolation)
    def handle_invariant_violation(error):
        return _error_response("InvariantViolation", str(error), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return _error_response("NotFound", str(error), 404)

    @app.errorhandler(WebflowAPIError)
    def handle_webflow_error(error):
        current_app.logger.warning(f"Webflow call failed: {error}")
        return _error_response("WebflowAPIError", error.message, 502)

    @app.errorhandler(StorageError)
    def handle_storage_error(error):
        current_app.logger.error(
            f"Storage error (target={error.target}, phase={error.phase}): {error}"
        )
        return _error_response("StorageError", "Database operation failed", 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return _error_response(error.name, error.description, error.code)
