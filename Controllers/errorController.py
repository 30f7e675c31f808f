from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from Utils.appError import AppError

error_bp = Blueprint('errors', __name__)

# Skip logging for common development requests
SKIP_LOGGING_PATHS = [
    '/.well-known/appspecific/com.chrome.devtools.json',
    '/favicon.ico',
    '/robots.txt'
]


@error_bp.app_errorhandler(AppError)
def handle_app_error(err):
    """Map workflow errors to a stable JSON body keyed by error kind."""
    if err.status_code >= 500:
        current_app.logger.error(f"AppError {err.status_code} ({err.kind}) at {request.path}: {err}")
    else:
        current_app.logger.warning(f"AppError {err.status_code} ({err.kind}) at {request.path}: {err}")
    return jsonify(err.to_json()), err.status_code


@error_bp.app_errorhandler(HTTPException)
def handle_http_error(e):
    if e.code == 404 and request.path in SKIP_LOGGING_PATHS:
        return '', 204

    current_app.logger.warning(
        f"{e.code} {e.name}: {e.description} | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
    )
    if e.code == 429:
        message = "Rate limit exceeded. Please slow down."
    else:
        message = e.description
    return jsonify({
        "success": False,
        "status": "fail" if e.code < 500 else "error",
        "error": e.name.replace(" ", ""),
        "message": message
    }), e.code


@error_bp.app_errorhandler(Exception)
def handle_unexpected_error(e):
    # This includes traceback automatically
    current_app.logger.exception(
        f"Unexpected Application Error: {e} | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
    )
    return jsonify({
        "success": False,
        "status": "error",
        "error": "InternalError",
        "message": "Something went wrong on the server."
    }), 500
