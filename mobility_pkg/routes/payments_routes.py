"""
Payments Routes Blueprint
Payee ledger, admin settlement dashboard, commission workflow and CSV reports
"""
from datetime import datetime

from flask import Blueprint, request, jsonify, Response

from mobility_pkg.auth import login_required, admin_required, get_entity_client
from mobility_pkg.entities import fetch_concurrently
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.ledger import EXPORT_KINDS, export_csv, merge_transactions, payee_summary, settlement_summary
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import validate_request_data, SettlementSchema, CommissionActionSchema
from mobility_pkg.workflow import apply_action, settle_commissions, with_available_actions
from mobility_pkg.activity_logger import log_activity_for_user
from logger_config import app_logger

# Create blueprint
bp = Blueprint('payments', __name__)


@bp.route('/payments/mine', methods=['GET'])
@login_required
def my_payments():
    """
    GET /api/payments/mine
    Payments received and commissions charged for the caller, newest first
    """
    try:
        client = get_entity_client()
        user_id = request.user_id
        data = fetch_concurrently({
            "payments": lambda: client.payments.filter({'payee_id': user_id}, '-created_date'),
            "commissions": lambda: client.commissions.filter({'user_id': user_id}, '-created_date'),
        })

        return jsonify({
            "summary": payee_summary(data["payments"], data["commissions"]),
            "transactions": merge_transactions(data["payments"], data["commissions"]),
            "payments": data["payments"],
            "commissions": data["commissions"]
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "my_payments"})
    except Exception as e:
        app_logger.exception(f"Get my payments error: {e}")
        return jsonify({"error": "Failed to retrieve payments"}), 500


@bp.route('/payments/settlement', methods=['GET'])
@admin_required
def settlement_overview():
    """
    GET /api/payments/settlement
    Platform totals, all payments and all commissions with their legal actions
    """
    try:
        client = get_entity_client()
        data = fetch_concurrently({
            "payments": lambda: client.payments.list('-created_date'),
            "commissions": lambda: client.commissions.list('-created_date'),
        })

        return jsonify({
            "summary": settlement_summary(data["payments"], data["commissions"]),
            "payments": data["payments"],
            "commissions": with_available_actions('commission', data["commissions"])
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "settlement_overview"})
    except Exception as e:
        app_logger.exception(f"Get settlement overview error: {e}")
        return jsonify({"error": "Failed to retrieve settlement data"}), 500


@bp.route('/commissions/settle', methods=['POST'])
@admin_required
def settle():
    """
    POST /api/commissions/settle
    Settle the given commissions under one batch id
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(SettlementSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        batch_id, settled = settle_commissions(
            get_entity_client(), validated_data['commission_ids'], request.current_user
        )
        log_activity_for_user(request.current_user, f"Settled {len(settled)} commissions", 'settlement',
                              entity_type='commission', entity_id=batch_id)

        return jsonify({
            "message": "Settlement processed successfully",
            "settlement_batch": batch_id,
            "settled": settled,
            "count": len(settled)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "settle_commissions"})
    except Exception as e:
        app_logger.exception(f"Settle commissions error: {e}")
        return jsonify({"error": "Failed to process settlement"}), 500


@bp.route('/commissions/<entity_id>/<action>', methods=['POST'])
@admin_required
def commission_action(entity_id, action):
    """
    POST /api/commissions/<id>/<action>
    Apply deduct / settle / dispute to a single commission
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(CommissionActionSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        result = apply_action(
            get_entity_client(),
            'commission',
            entity_id,
            action,
            request.current_user,
            validated_data
        )
        return jsonify({
            "message": f"Commission {result['to_status']}",
            "commission": result["entity"],
            "from_status": result["from_status"],
            "to_status": result["to_status"]
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "commission_action", "entity_id": entity_id, "action": action})
    except Exception as e:
        app_logger.exception(f"Commission action error: {e}")
        return jsonify({"error": "Failed to update commission"}), 500


@bp.route('/payments/export/<kind>', methods=['GET'])
@admin_required
def export_report(kind):
    """
    GET /api/payments/export/<payments|commissions>
    Download the report as CSV
    """
    if kind not in EXPORT_KINDS:
        return jsonify({"error": "Unknown report type", "report_types": list(EXPORT_KINDS)}), 400

    try:
        client = get_entity_client()
        if kind == 'payments':
            rows = client.payments.list('-created_date')
            users = {}
        else:
            data = fetch_concurrently({
                "commissions": lambda: client.commissions.list('-created_date'),
                "users": lambda: client.users.list(),
            })
            rows = data["commissions"]
            users = {user.get('id'): user for user in data["users"]}

        filename = f"{kind}_report_{datetime.utcnow().strftime('%Y-%m-%d')}.csv"
        return Response(
            export_csv(kind, rows, users),
            mimetype='text/csv',
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "export_report", "kind": kind})
    except Exception as e:
        app_logger.exception(f"Export report error: {e}")
        return jsonify({"error": "Failed to export report"}), 500
