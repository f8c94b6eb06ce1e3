"""
Dashboard Routes Blueprint
Role-specific stats, recent activity and quick actions for the signed-in user
"""
from flask import Blueprint, request, jsonify, current_app

from mobility_pkg.auth import login_required, get_entity_client
from mobility_pkg.dashboard import build_dashboard
from logger_config import app_logger

# Create blueprint
bp = Blueprint('dashboard', __name__)


@bp.route('/dashboard', methods=['GET'])
@login_required
def get_dashboard():
    """
    GET /api/dashboard
    Aggregated dashboard for the caller's role.
    Entity API failures still return 200 with loaded=false and zeroed stats.
    """
    try:
        config = current_app.config
        result = build_dashboard(
            get_entity_client(),
            request.current_user,
            fallback=config.get('DASHBOARD_SAMPLE_FALLBACK', True),
            limit=config.get('DASHBOARD_FETCH_LIMIT', 50),
            admin_limit=config.get('ADMIN_FETCH_LIMIT', 10),
        )
        result["user"] = {
            "id": request.current_user.get('id'),
            "full_name": request.current_user.get('full_name'),
            "user_type": request.current_user.get('user_type'),
        }
        return jsonify(result), 200

    except Exception as e:
        app_logger.exception(f"Get dashboard error: {e}")
        return jsonify({"error": "Failed to load dashboard"}), 500
