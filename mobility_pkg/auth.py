"""
Authentication and Authorization Utilities
The entity API issues and validates tokens; this service forwards the caller's
token and resolves the user with users.me() before every protected route.
"""
from functools import wraps
from flask import request, jsonify, current_app, g

from mobility_pkg.entities import EntityClient, EntityAPIError, EntityUnauthorized
from logger_config import app_logger

BLOCKED_STATUSES = ('suspended', 'inactive')


def default_entity_client_factory(app):
    """Build EntityClient instances from the app configuration"""
    def factory(token=None):
        return EntityClient(
            app.config['ENTITY_API_BASE_URL'],
            token=token,
            timeout=app.config.get('ENTITY_API_TIMEOUT', 10)
        )
    return factory


def build_entity_client(token=None):
    """New EntityClient for the current app (login uses it before a token exists)"""
    factory = current_app.extensions['entity_client_factory']
    return factory(token)


def get_entity_client():
    """EntityClient bound to the authenticated caller"""
    client = getattr(g, 'entity_client', None)
    if client is None:
        client = build_entity_client(get_token_from_request())
        g.entity_client = client
    return client


def get_token_from_request():
    """
    Extract the bearer token from the request

    Priority:
    1. Authorization header (Bearer token) - PRIMARY for SPA/fetch requests
    2. HttpOnly cookie (access_token) - Fallback for browser navigation
    3. Query parameter (token) - Legacy support

    Returns:
        str: Token or None
    """
    # 1️⃣ Authorization header FIRST (SPA-safe)
    auth_header = request.headers.get('Authorization')
    if auth_header and auth_header.startswith('Bearer '):
        token = auth_header.split(' ', 1)[1].strip()
        if token:
            return token

    # 2️⃣ HttpOnly cookie fallback
    token = request.cookies.get(current_app.config.get('TOKEN_COOKIE_NAME', 'access_token'))
    if token:
        return token

    # 3. Fallback: Check for token in request args
    token = request.args.get('token')
    if token:
        return token

    return None


def require_auth(f):
    """
    Decorator to require authentication for a route
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Already resolved by an outer decorator in this request
        if getattr(g, 'current_user', None) is not None:
            return f(*args, **kwargs)

        route_path = request.path
        token = get_token_from_request()

        if not token:
            app_logger.debug(f"Auth failed - No token found (Route: {route_path})")
            return jsonify({"error": "Authentication required", "code": "AUTH_REQUIRED"}), 401

        client = build_entity_client(token)
        try:
            user = client.users.me()
        except EntityUnauthorized:
            app_logger.warning(f"Auth failed - Token rejected by entity API (Route: {route_path})")
            return jsonify({"error": "Invalid or expired token", "code": "INVALID_TOKEN"}), 401
        except EntityAPIError as e:
            app_logger.error(f"Auth failed - Entity API unavailable (Route: {route_path}, status: {e.status_code})")
            return jsonify({
                "error": "Authentication service unavailable",
                "code": "AUTH_UNAVAILABLE"
            }), 502

        if not isinstance(user, dict) or not user.get('id'):
            app_logger.warning(f"Auth failed - users.me() returned no user (Route: {route_path})")
            return jsonify({"error": "Invalid or expired token", "code": "INVALID_TOKEN"}), 401

        if user.get('status') in BLOCKED_STATUSES:
            app_logger.warning(
                f"Auth failed - Account {user.get('status')} "
                f"(Route: {route_path}, User ID: {user.get('id')})"
            )
            return jsonify({
                "error": "Account is not active",
                "code": "ACCOUNT_INACTIVE",
                "status": user.get('status')
            }), 403

        g.entity_client = client
        g.current_user = user

        # Add user info to request context
        request.current_user = user
        request.user_id = user.get('id')
        request.role = user.get('user_type')

        return f(*args, **kwargs)

    return decorated_function


# Convenience aliases for decorators
login_required = require_auth


def role_required(allowed_roles):
    """
    Decorator factory to require specific roles

    Args:
        allowed_roles: List of allowed user types

    Usage:
        @role_required(['admin', 'warehouse_staff'])
        def some_function():
            pass
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            user_role = request.current_user.get('user_type')

            if user_role not in allowed_roles:
                app_logger.warning(
                    f"Insufficient permissions - Route: {request.path}, "
                    f"User role: {user_role}, Required: {allowed_roles}"
                )
                return jsonify({
                    "error": "Insufficient permissions",
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "required_roles": list(allowed_roles),
                    "user_role": user_role
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def admin_required(f):
    """Decorator to require admin role"""
    return role_required(['admin'])(f)
