"""
Error Handling Utilities
Provides centralized error handling and logging for production safety
"""
from flask import jsonify, request, has_request_context
from config import Config
from logger_config import log_error_with_context


def log_error(error, context=None):
    """
    Log error details server-side only

    Args:
        error: Exception object
        context: Optional context information (dict)
    """
    # Add request context if available
    if context is None:
        context = {}

    if has_request_context():
        context['endpoint'] = request.path
        context['method'] = request.method
        context['remote_addr'] = request.remote_addr

    # Use structured logging
    log_error_with_context(error, context)


def get_error_message(error, default_message="An error occurred"):
    """
    Get appropriate error message based on environment

    Args:
        error: Exception object
        default_message: Default message to return in production

    Returns:
        str: Error message (detailed in dev, generic in production)
    """
    # Domain errors (workflow, cart) carry a message meant for the client
    if hasattr(error, 'status_code') and hasattr(error, 'message') and not _is_entity_error(error):
        return error.message

    if Config.ENV == 'production':
        # In production, return generic messages
        error_type = type(error).__name__

        # Map specific error types to user-friendly messages
        if 'IntegrityError' in error_type or 'Duplicate' in str(error):
            return "This record already exists. Please check your input."
        elif 'OperationalError' in error_type or 'Database' in error_type:
            return "Database operation failed. Please try again later."
        elif 'ValidationError' in error_type:
            return "Invalid input provided. Please check your data."
        elif 'PermissionError' in error_type or 'Forbidden' in error_type:
            return "You don't have permission to perform this action."
        elif 'NotFound' in error_type:
            return "The requested resource was not found."
        elif 'Unauthorized' in error_type:
            return "Authentication required."
        else:
            return default_message
    else:
        # In development, return detailed messages
        return f"{type(error).__name__}: {str(error)}"


def _is_entity_error(error):
    from mobility_pkg.entities import EntityAPIError
    return isinstance(error, EntityAPIError)


def get_status_code(error):
    """Map an exception to the HTTP status returned to the client"""
    if _is_entity_error(error):
        # Upstream 401/403/404 keep their meaning; anything else is a bad gateway
        if error.status_code in (401, 403, 404):
            return error.status_code
        return 502

    status_code = getattr(error, 'status_code', None)
    if isinstance(status_code, int):
        return status_code

    error_type = type(error).__name__
    if 'NotFound' in error_type:
        return 404
    elif 'ValidationError' in error_type or 'ValueError' in error_type:
        return 400
    elif 'PermissionError' in error_type or 'Forbidden' in error_type:
        return 403
    elif 'Unauthorized' in error_type:
        return 401
    return 500


def handle_exception(error, context=None, default_message="An error occurred"):
    """
    Handle exception and return appropriate response

    Args:
        error: Exception object
        context: Optional context information
        default_message: Default message for production

    Returns:
        tuple: (jsonify response, status_code)
    """
    status_code = get_status_code(error)

    # Client mistakes are expected traffic; only log server and upstream failures in full
    if status_code >= 500 or _is_entity_error(error):
        log_error(error, context)

    body = {"error": get_error_message(error, default_message)}
    allowed_actions = getattr(error, 'allowed_actions', None)
    if allowed_actions is not None:
        body["allowed_actions"] = allowed_actions

    return jsonify(body), status_code
