"""
Vehicle Routes Blueprint
A vehicle owner's garage; every write is restricted to the owner
"""
from flask import Blueprint, request, jsonify

from mobility_pkg.auth import login_required, role_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import validate_request_data, VehicleSchema
from logger_config import app_logger

# Create blueprint
bp = Blueprint('vehicles', __name__, url_prefix='/vehicles')


def _owned_vehicle(client, vehicle_id):
    """Return (vehicle, None) or (None, error response) when the caller does not own it"""
    vehicle = client.vehicles.get(vehicle_id)
    if vehicle.get('owner_id') != request.user_id:
        return None, (jsonify({"error": "You can only manage your own vehicles"}), 403)
    return vehicle, None


@bp.route('', methods=['GET'])
@login_required
def get_vehicles():
    """
    GET /api/vehicles
    Vehicles owned by the caller
    """
    try:
        vehicles = get_entity_client().vehicles.filter({'owner_id': request.user_id}, '-created_date')
        return jsonify({
            "vehicles": vehicles,
            "count": len(vehicles)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_vehicles"})
    except Exception as e:
        app_logger.exception(f"Get vehicles error: {e}")
        return jsonify({"error": "Failed to retrieve vehicles"}), 500


@bp.route('', methods=['POST'])
@login_required
@role_required(['vehicle_owner'])
def create_vehicle():
    """
    POST /api/vehicles
    Register a vehicle; owner_id always comes from the token, never from the body
    """
    try:
        data = request.get_json(silent=True) or {}
        data.pop('owner_id', None)
        validated_data, errors = validate_request_data(VehicleSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        validated_data['owner_id'] = request.user_id
        vehicle = get_entity_client().vehicles.create(validated_data)
        return jsonify({
            "message": "Vehicle added successfully",
            "vehicle": vehicle
        }), 201

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "create_vehicle"})
    except Exception as e:
        app_logger.exception(f"Create vehicle error: {e}")
        return jsonify({"error": "Failed to add vehicle"}), 500


@bp.route('/<vehicle_id>', methods=['PUT'])
@login_required
def update_vehicle(vehicle_id):
    """
    PUT /api/vehicles/<id>
    Update one of the caller's vehicles
    """
    try:
        data = request.get_json(silent=True) or {}
        data.pop('owner_id', None)
        validated_data, errors = validate_request_data(VehicleSchema, data, partial=True)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        client = get_entity_client()
        _, error_response = _owned_vehicle(client, vehicle_id)
        if error_response:
            return error_response

        vehicle = client.vehicles.update(vehicle_id, validated_data)
        return jsonify({
            "message": "Vehicle updated successfully",
            "vehicle": vehicle
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "update_vehicle", "vehicle_id": vehicle_id})
    except Exception as e:
        app_logger.exception(f"Update vehicle error: {e}")
        return jsonify({"error": "Failed to update vehicle"}), 500


@bp.route('/<vehicle_id>', methods=['DELETE'])
@login_required
def delete_vehicle(vehicle_id):
    """
    DELETE /api/vehicles/<id>
    Remove one of the caller's vehicles
    """
    try:
        client = get_entity_client()
        _, error_response = _owned_vehicle(client, vehicle_id)
        if error_response:
            return error_response

        client.vehicles.delete(vehicle_id)
        return jsonify({"message": "Vehicle removed successfully"}), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "delete_vehicle", "vehicle_id": vehicle_id})
    except Exception as e:
        app_logger.exception(f"Delete vehicle error: {e}")
        return jsonify({"error": "Failed to remove vehicle"}), 500
