"""
Workflow Routes Blueprint
Legal actions per status, recorded status history and the admin activity log
"""
from flask import Blueprint, request, jsonify

from mobility_pkg.auth import login_required, admin_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.models import ActivityLog, StatusHistory
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.schemas import activity_logs_schema, status_histories_schema
from mobility_pkg.workflow import MACHINES, get_machine
from logger_config import app_logger

# Create blueprint
bp = Blueprint('history', __name__)

# Roles that may read any entity's history; everyone else must own the entity
HISTORY_ADMIN_ROLES = ('admin',)

OWNER_FIELDS = {
    'service_request': ('customer_id', 'service_provider_id'),
    'inventory_order': ('service_provider_id', 'packed_by', 'dispatched_by'),
    'insurance_lead': ('customer_id', 'service_provider_id', 'insurance_agent_id'),
    'commission': ('user_id',),
}


@bp.route('/workflow/<entity_type>/actions', methods=['GET'])
@login_required
def get_actions(entity_type):
    """
    GET /api/workflow/<entity_type>/actions?status=
    Actions legal from the given status (all actions and states when status is omitted)
    """
    if entity_type not in MACHINES:
        return jsonify({"error": "Unknown entity type", "entity_types": sorted(MACHINES)}), 404

    machine = get_machine(entity_type)
    status = request.args.get('status')
    if status is None:
        return jsonify({
            "entity_type": entity_type,
            "actions": {
                action: {"from": list(from_states), "to": to_state}
                for action, (from_states, to_state) in machine.actions.items()
            },
            "states": sorted(machine.states)
        }), 200

    return jsonify({
        "entity_type": entity_type,
        "status": status,
        "allowed_actions": machine.allowed_actions(status)
    }), 200


@bp.route('/history/<entity_type>/<entity_id>', methods=['GET'])
@login_required
def get_history(entity_type, entity_id):
    """
    GET /api/history/<entity_type>/<id>
    Status changes applied through this service, oldest first
    """
    if entity_type not in MACHINES:
        return jsonify({"error": "Unknown entity type", "entity_types": sorted(MACHINES)}), 404

    try:
        if request.role not in HISTORY_ADMIN_ROLES:
            machine = get_machine(entity_type)
            entity = getattr(get_entity_client(), machine.resource).get(entity_id)
            if request.user_id not in [entity.get(field) for field in OWNER_FIELDS[entity_type]]:
                return jsonify({"error": "Unauthorized"}), 403

        rows = StatusHistory.query.filter_by(
            entity_type=entity_type,
            entity_id=str(entity_id)
        ).order_by(StatusHistory.created_at.asc(), StatusHistory.id.asc()).all()

        return jsonify({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "history": status_histories_schema.dump(rows)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_history", "entity_id": entity_id})
    except Exception as e:
        app_logger.exception(f"Get status history error: {e}")
        return jsonify({"error": "Failed to retrieve status history"}), 500


@bp.route('/activity-logs', methods=['GET'])
@admin_required
def get_activity_logs():
    """
    GET /api/activity-logs?limit=&action_type=&user_id=
    Most recent user actions recorded by this service
    """
    try:
        limit = request.args.get('limit', 100, type=int)
        query = ActivityLog.query

        action_type = request.args.get('action_type')
        if action_type:
            query = query.filter_by(action_type=action_type)
        user_id = request.args.get('user_id')
        if user_id:
            query = query.filter_by(user_id=user_id)

        logs = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()
        return jsonify({
            "logs": activity_logs_schema.dump(logs),
            "count": len(logs)
        }), 200

    except Exception as e:
        app_logger.exception(f"Get activity logs error: {e}")
        return jsonify({"error": "Failed to retrieve activity logs"}), 500
