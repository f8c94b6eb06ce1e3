"""
Authentication Routes Blueprint
Handles login, logout, the current user and first-login profile setup
"""
from flask import Blueprint, request, jsonify, current_app, g

from mobility_pkg import limiter
from mobility_pkg.auth import login_required, build_entity_client, get_entity_client
from mobility_pkg.entities import EntityAPIError, EntityUnauthorized
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.validation import validate_request_data, LoginSchema, ProfileSetupSchema
from mobility_pkg.activity_logger import log_activity_for_user
from logger_config import app_logger, log_auth_event

# Create blueprint
bp = Blueprint('auth', __name__, url_prefix='/auth')


def _set_token_cookie(response, token):
    config = current_app.config
    response.set_cookie(
        config.get('TOKEN_COOKIE_NAME', 'access_token'),
        token,
        httponly=True,
        secure=config.get('SESSION_COOKIE_SECURE', True),
        samesite=config.get('SESSION_COOKIE_SAMESITE', 'Lax'),
        max_age=config.get('SESSION_COOKIE_MAX_AGE')
    )


@bp.route('/login', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('LOGIN_RATE_LIMIT', '10 per minute'))
def login():
    """
    POST /api/auth/login
    Exchange email/password for an entity API token (also set as an HttpOnly cookie)
    """
    data = request.get_json(silent=True) or {}
    validated_data, errors = validate_request_data(LoginSchema, data)
    if errors:
        return jsonify({"error": "Validation failed", "details": errors}), 400

    email = validated_data['email']
    try:
        client = build_entity_client()
        result = client.users.login(validated_data)
        if not client.token:
            log_auth_event('login', False, email, ip_address=request.remote_addr, error="no token returned")
            return jsonify({"error": "Login failed"}), 502

        user = result.get('user') or client.users.me()
        log_auth_event('login', True, email, user.get('id'), user.get('user_type'), request.remote_addr)

        response = jsonify({
            "message": "Login successful",
            "token": client.token,
            "user": user,
            "needs_profile_setup": not user.get('user_type')
        })
        _set_token_cookie(response, client.token)
        return response, 200

    except EntityUnauthorized:
        log_auth_event('login', False, email, ip_address=request.remote_addr, error="invalid credentials")
        return jsonify({"error": "Invalid email or password", "code": "INVALID_CREDENTIALS"}), 401
    except EntityAPIError as e:
        log_auth_event('login', False, email, ip_address=request.remote_addr, error=e.message)
        return handle_exception(e, {"operation": "login"})
    except Exception as e:
        app_logger.exception(f"Login error: {e}")
        return jsonify({"error": "Login failed"}), 500


@bp.route('/logout', methods=['POST'])
def logout():
    """
    POST /api/auth/logout
    Clear the token cookie. The entity API token is simply dropped.
    """
    user = getattr(g, 'current_user', None)
    log_auth_event('logout', True, (user or {}).get('email') or 'unknown',
                   (user or {}).get('id'), (user or {}).get('user_type'), request.remote_addr)

    # IMPORTANT: Return JSON only - NEVER redirect from API endpoints
    response = jsonify({
        "success": True,
        "message": "Logged out successfully"
    })
    response.delete_cookie(current_app.config.get('TOKEN_COOKIE_NAME', 'access_token'), path="/")
    return response, 200


@bp.route('/me', methods=['GET'])
@login_required
def me():
    """
    GET /api/auth/me
    Current user as resolved from the entity API
    """
    user = request.current_user
    return jsonify({
        "user": user,
        "needs_profile_setup": not user.get('user_type')
    }), 200


@bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    """
    PUT /api/auth/profile
    Complete or edit the caller's profile. user_type can only be chosen once.
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(ProfileSetupSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400
        if not validated_data:
            return jsonify({"error": "No profile fields provided"}), 400

        user = request.current_user
        requested_type = validated_data.get('user_type')
        if requested_type and user.get('user_type') and requested_type != user.get('user_type'):
            return jsonify({
                "error": "User type is already set and cannot be changed",
                "code": "USER_TYPE_LOCKED",
                "user_type": user.get('user_type')
            }), 409

        client = get_entity_client()
        client.users.update_my_user_data(validated_data)
        updated = client.users.me()

        if requested_type and not user.get('user_type'):
            log_auth_event('profile_setup', True, user.get('email') or '', user.get('id'),
                           requested_type, request.remote_addr)
            log_activity_for_user(updated, f"Profile set up as {requested_type}", 'profile_setup',
                                  entity_type='user', entity_id=user.get('id'))

        return jsonify({
            "message": "Profile updated successfully",
            "user": updated
        }), 200

    except EntityAPIError as e:
        return handle_exception(e, {"operation": "update_profile"})
    except Exception as e:
        app_logger.exception(f"Update profile error: {e}")
        return jsonify({"error": "Failed to update profile"}), 500
