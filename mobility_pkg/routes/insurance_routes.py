"""
Insurance Routes Blueprint
Quote requests from customers and the lead workflow for agents
"""
from flask import Blueprint, request, jsonify, current_app

from mobility_pkg.auth import login_required, role_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import validate_request_data, InsuranceLeadSchema, LeadActionSchema
from mobility_pkg.workflow import apply_action, open_insurance_lead, with_available_actions
from logger_config import app_logger

# Create blueprint
bp = Blueprint('insurance', __name__, url_prefix='/insurance-leads')

ENTITY_TYPE = 'insurance_lead'

# Field identifying "my" leads per role
OWNER_FIELDS = {
    'vehicle_owner': 'customer_id',
    'service_provider': 'service_provider_id',
    'insurance_agent': 'insurance_agent_id',
}


@bp.route('', methods=['GET'])
@login_required
def get_leads():
    """
    GET /api/insurance-leads
    Admin sees all leads; customers, referring providers and agents see their own.
    Agents pass scope=new to see unassigned leads.
    """
    try:
        role = request.role
        status = request.args.get('status')
        limit = request.args.get('limit', current_app.config.get('DASHBOARD_FETCH_LIMIT', 50), type=int)
        client = get_entity_client()

        if role == 'admin':
            criteria = {}
        elif role == 'insurance_agent' and request.args.get('scope') == 'new':
            criteria = {'status': 'new'}
        elif role in OWNER_FIELDS:
            criteria = {OWNER_FIELDS[role]: request.user_id}
        else:
            return jsonify({"error": "Unauthorized"}), 403

        if status and status != 'all':
            criteria['status'] = status

        if criteria:
            leads = client.insurance_leads.filter(criteria, '-created_date', limit)
        else:
            leads = client.insurance_leads.list('-created_date', limit)

        leads = with_available_actions(ENTITY_TYPE, leads)
        return jsonify({
            "leads": leads,
            "count": len(leads)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_leads"})
    except Exception as e:
        app_logger.exception(f"Get insurance leads error: {e}")
        return jsonify({"error": "Failed to retrieve insurance leads"}), 500


@bp.route('', methods=['POST'])
@login_required
@role_required(['vehicle_owner'])
def create_lead():
    """
    POST /api/insurance-leads
    Request an insurance quote
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(InsuranceLeadSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        lead = open_insurance_lead(get_entity_client(), request.current_user, validated_data)
        return jsonify({
            "message": "Quote request submitted",
            "lead": lead
        }), 201

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "create_lead"})
    except Exception as e:
        app_logger.exception(f"Create insurance lead error: {e}")
        return jsonify({"error": "Failed to submit quote request"}), 500


@bp.route('/<entity_id>/<action>', methods=['POST'])
@login_required
def lead_action(entity_id, action):
    """
    POST /api/insurance-leads/<id>/<action>
    Apply assign / quote / convert / lose
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(LeadActionSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        result = apply_action(
            get_entity_client(),
            ENTITY_TYPE,
            entity_id,
            action,
            request.current_user,
            validated_data
        )
        return jsonify({
            "message": f"Lead {result['to_status']}",
            "lead": result["entity"],
            "from_status": result["from_status"],
            "to_status": result["to_status"]
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "lead_action", "entity_id": entity_id, "action": action})
    except Exception as e:
        app_logger.exception(f"Lead action error: {e}")
        return jsonify({"error": "Failed to update lead"}), 500
