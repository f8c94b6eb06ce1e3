"""
Service Request Routes Blueprint
Booking, listing and the service request workflow
"""
from flask import Blueprint, request, jsonify, current_app

from mobility_pkg.auth import login_required, role_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import (
    validate_request_data,
    ServiceBookingSchema,
    ServiceActionSchema,
    ServiceProgressSchema,
    RatingSchema,
)
from mobility_pkg.workflow import (
    apply_action,
    open_service_request,
    rate_service,
    update_service_progress,
    with_available_actions,
)
from mobility_pkg.activity_logger import log_activity_for_user
from logger_config import app_logger

# Create blueprint
bp = Blueprint('service_requests', __name__, url_prefix='/service-requests')

ENTITY_TYPE = 'service_request'


def _list_limit():
    return request.args.get('limit', current_app.config.get('DASHBOARD_FETCH_LIMIT', 50), type=int)


@bp.route('', methods=['GET'])
@login_required
def get_service_requests():
    """
    GET /api/service-requests
    Admin sees all requests, providers their assigned ones (scope=open lists requests
    waiting for a provider), vehicle owners their bookings.
    """
    try:
        role = request.role
        user_id = request.user_id
        status = request.args.get('status')
        client = get_entity_client()

        if role == 'admin':
            criteria = {}
        elif role == 'service_provider':
            if request.args.get('scope') == 'open':
                criteria = {'status': 'requested'}
            else:
                criteria = {'service_provider_id': user_id}
        elif role == 'vehicle_owner':
            criteria = {'customer_id': user_id}
        else:
            return jsonify({"error": "Unauthorized"}), 403

        if status and status != 'all':
            criteria['status'] = status

        if criteria:
            rows = client.service_requests.filter(criteria, '-created_date', _list_limit())
        else:
            rows = client.service_requests.list('-created_date', _list_limit())

        services = with_available_actions(ENTITY_TYPE, rows)
        return jsonify({
            "service_requests": services,
            "count": len(services)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_service_requests"})
    except Exception as e:
        app_logger.exception(f"Get service requests error: {e}")
        return jsonify({"error": "Failed to retrieve service requests"}), 500


@bp.route('', methods=['POST'])
@login_required
@role_required(['vehicle_owner'])
def book_service():
    """
    POST /api/service-requests
    Book a service for one of the caller's vehicles
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(ServiceBookingSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        created = open_service_request(get_entity_client(), request.current_user, validated_data)
        log_activity_for_user(request.current_user, f"Booked {validated_data['service_type']}",
                              'service_booking', entity_type=ENTITY_TYPE, entity_id=created.get('id'))

        return jsonify({
            "message": "Service booked successfully",
            "service_request": created
        }), 201

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "book_service"})
    except Exception as e:
        app_logger.exception(f"Book service error: {e}")
        return jsonify({"error": "Failed to book service"}), 500


@bp.route('/<entity_id>/progress', methods=['PUT'])
@login_required
@role_required(['admin', 'service_provider'])
def update_progress(entity_id):
    """
    PUT /api/service-requests/<id>/progress
    Update actual cost / notes without changing status
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(ServiceProgressSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        updated = update_service_progress(
            get_entity_client(),
            entity_id,
            request.current_user,
            validated_data,
            rate=current_app.config.get('PLATFORM_COMMISSION_RATE', 0.10)
        )
        return jsonify({
            "message": "Service updated successfully",
            "service_request": updated
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "update_progress", "entity_id": entity_id})
    except Exception as e:
        app_logger.exception(f"Update service progress error: {e}")
        return jsonify({"error": "Failed to update service"}), 500


@bp.route('/<entity_id>/rating', methods=['POST'])
@login_required
@role_required(['vehicle_owner'])
def rate(entity_id):
    """
    POST /api/service-requests/<id>/rating
    Rate a completed service (1-5) with optional feedback
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(RatingSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        updated = rate_service(
            get_entity_client(),
            entity_id,
            request.current_user,
            validated_data['rating'],
            validated_data.get('feedback')
        )
        return jsonify({
            "message": "Thank you for your feedback",
            "service_request": updated
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "rate_service", "entity_id": entity_id})
    except Exception as e:
        app_logger.exception(f"Rate service error: {e}")
        return jsonify({"error": "Failed to rate service"}), 500


@bp.route('/<entity_id>/<action>', methods=['POST'])
@login_required
def service_action(entity_id, action):
    """
    POST /api/service-requests/<id>/<action>
    Apply assign / start / complete / cancel
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(ServiceActionSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        result = apply_action(
            get_entity_client(),
            ENTITY_TYPE,
            entity_id,
            action,
            request.current_user,
            validated_data,
            rate=current_app.config.get('PLATFORM_COMMISSION_RATE', 0.10)
        )
        return jsonify({
            "message": f"Service request {result['to_status'].replace('_', ' ')}",
            "service_request": result["entity"],
            "from_status": result["from_status"],
            "to_status": result["to_status"]
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "service_action", "entity_id": entity_id, "action": action})
    except Exception as e:
        app_logger.exception(f"Service action error: {e}")
        return jsonify({"error": "Failed to update service request"}), 500
