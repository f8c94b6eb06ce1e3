"""
User Management Routes Blueprint
Admin listing of users with suspend/activate and verification toggles
"""
from flask import Blueprint, request, jsonify

from mobility_pkg.auth import admin_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import USER_TYPES
from mobility_pkg.activity_logger import log_activity_for_user
from logger_config import app_logger

# Create blueprint
bp = Blueprint('users', __name__, url_prefix='/users')


def _matches(user, search):
    needle = search.lower()
    return any(needle in str(user.get(key) or '').lower() for key in ('full_name', 'email', 'phone'))


@bp.route('', methods=['GET'])
@admin_required
def get_users():
    """
    GET /api/users?search=&user_type=&status=
    All users with per-type counts
    """
    try:
        users = get_entity_client().users.list('-created_date')

        counts = {user_type: 0 for user_type in USER_TYPES}
        for user in users:
            if user.get('user_type') in counts:
                counts[user['user_type']] += 1

        search = request.args.get('search')
        user_type = request.args.get('user_type')
        status = request.args.get('status')
        if search:
            users = [u for u in users if _matches(u, search)]
        if user_type and user_type != 'all':
            users = [u for u in users if u.get('user_type') == user_type]
        if status and status != 'all':
            users = [u for u in users if (u.get('status') or 'active') == status]

        return jsonify({
            "users": users,
            "count": len(users),
            "counts_by_type": counts
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_users"})
    except Exception as e:
        app_logger.exception(f"Get users error: {e}")
        return jsonify({"error": "Failed to retrieve users"}), 500


@bp.route('/<user_id>/toggle-status', methods=['POST'])
@admin_required
def toggle_status(user_id):
    """
    POST /api/users/<id>/toggle-status
    active -> suspended, anything else -> active
    """
    try:
        if user_id == request.user_id:
            return jsonify({"error": "You cannot suspend your own account"}), 400

        client = get_entity_client()
        user = client.users.get(user_id)
        new_status = 'suspended' if (user.get('status') or 'active') == 'active' else 'active'
        updated = client.users.update(user_id, {'status': new_status})

        log_activity_for_user(request.current_user, f"Set {user.get('email')} to {new_status}", 'user_toggle',
                              entity_type='user', entity_id=user_id)
        return jsonify({
            "message": f"User {new_status}",
            "user": updated
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "toggle_status", "user_id": user_id})
    except Exception as e:
        app_logger.exception(f"Toggle user status error: {e}")
        return jsonify({"error": "Failed to update user"}), 500


@bp.route('/<user_id>/toggle-verification', methods=['POST'])
@admin_required
def toggle_verification(user_id):
    """
    POST /api/users/<id>/toggle-verification
    Flip is_verified
    """
    try:
        client = get_entity_client()
        user = client.users.get(user_id)
        is_verified = not user.get('is_verified')
        updated = client.users.update(user_id, {'is_verified': is_verified})

        log_activity_for_user(request.current_user,
                              f"{'Verified' if is_verified else 'Unverified'} {user.get('email')}",
                              'user_toggle', entity_type='user', entity_id=user_id)
        return jsonify({
            "message": "User verified" if is_verified else "User verification removed",
            "user": updated
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "toggle_verification", "user_id": user_id})
    except Exception as e:
        app_logger.exception(f"Toggle verification error: {e}")
        return jsonify({"error": "Failed to update user"}), 500
