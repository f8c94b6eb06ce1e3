"""
Orders Routes Blueprint
Parts cart, checkout and the inventory order workflow
"""
from flask import Blueprint, request, jsonify, current_app

from mobility_pkg.auth import login_required, role_required, get_entity_client
from mobility_pkg.cart import build_cart, default_delivery_address
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.validation import validate_request_data, CartSchema, OrderActionSchema
from mobility_pkg.workflow import apply_action, with_available_actions
from mobility_pkg.activity_logger import log_activity_for_user, record_status_change
from logger_config import app_logger

# Create blueprint
bp = Blueprint('orders', __name__)

ENTITY_TYPE = 'inventory_order'

# Work queues shown to order handlers when no status filter is given
ROLE_QUEUES = {
    'warehouse_staff': ('approved', 'packed'),
    'dispatcher': ('packed', 'dispatched'),
}


def _commission_rate():
    return current_app.config.get('PLATFORM_COMMISSION_RATE', 0.10)


def _load_cart(client, validated_data):
    # Inventory is read once per request; stock is not re-checked at order creation
    return build_cart(client.inventory.list(), validated_data['items'])


@bp.route('/inventory-orders', methods=['GET'])
@login_required
def get_inventory_orders():
    """
    GET /api/inventory-orders
    Admin sees all orders, service providers their own,
    warehouse staff and dispatchers their work queue.
    """
    try:
        role = request.role
        user_id = request.user_id
        status = request.args.get('status')
        limit = request.args.get('limit', current_app.config.get('DASHBOARD_FETCH_LIMIT', 50), type=int)
        client = get_entity_client()

        if role == 'service_provider':
            criteria = {'service_provider_id': user_id}
        elif role in ('admin', 'warehouse_staff', 'dispatcher'):
            criteria = {}
        else:
            return jsonify({"error": "Unauthorized"}), 403

        if status and status != 'all':
            criteria['status'] = status

        if criteria:
            orders = client.inventory_orders.filter(criteria, '-created_date', limit)
        else:
            orders = client.inventory_orders.list('-created_date', limit)
            if role in ROLE_QUEUES:
                orders = [o for o in orders if o.get('status') in ROLE_QUEUES[role]]

        orders = with_available_actions(ENTITY_TYPE, orders)
        return jsonify({
            "orders": orders,
            "count": len(orders)
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_inventory_orders"})
    except Exception as e:
        app_logger.exception(f"Get inventory orders error: {e}")
        return jsonify({"error": "Failed to retrieve orders"}), 500


@bp.route('/inventory-orders/<entity_id>/<action>', methods=['POST'])
@login_required
def order_action(entity_id, action):
    """
    POST /api/inventory-orders/<id>/<action>
    Apply approve / pack / dispatch / deliver / cancel
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(OrderActionSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        result = apply_action(
            get_entity_client(),
            ENTITY_TYPE,
            entity_id,
            action,
            request.current_user,
            validated_data,
            rate=_commission_rate()
        )
        return jsonify({
            "message": f"Order {result['to_status']}",
            "order": result["entity"],
            "from_status": result["from_status"],
            "to_status": result["to_status"]
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "order_action", "entity_id": entity_id, "action": action})
    except Exception as e:
        app_logger.exception(f"Order action error: {e}")
        return jsonify({"error": "Failed to update order"}), 500


@bp.route('/cart/quote', methods=['POST'])
@login_required
@role_required(['service_provider'])
def cart_quote():
    """
    POST /api/cart/quote
    Price a cart against current stock without placing an order
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(CartSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        cart = _load_cart(get_entity_client(), validated_data)
        summary = cart.summary(_commission_rate())
        summary["delivery_address"] = default_delivery_address(
            request.current_user, validated_data.get('delivery_address')
        )
        return jsonify(summary), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "cart_quote"})
    except Exception as e:
        app_logger.exception(f"Cart quote error: {e}")
        return jsonify({"error": "Failed to price cart"}), 500


@bp.route('/cart/checkout', methods=['POST'])
@login_required
@role_required(['service_provider'])
def checkout():
    """
    POST /api/cart/checkout
    Create exactly one pending InventoryOrder from the cart
    """
    try:
        data = request.get_json(silent=True) or {}
        validated_data, errors = validate_request_data(CartSchema, data)
        if errors:
            return jsonify({"error": "Validation failed", "details": errors}), 400

        user = request.current_user
        client = get_entity_client()
        cart = _load_cart(client, validated_data)
        delivery_address = default_delivery_address(user, validated_data.get('delivery_address'))

        payload = cart.checkout_payload(user.get('id'), delivery_address, _commission_rate())
        order = client.inventory_orders.create(payload)

        record_status_change(ENTITY_TYPE, order.get('id'), None, 'pending', 'checkout', user)
        log_activity_for_user(user, f"Placed parts order {payload['order_number']}", 'checkout',
                              entity_type=ENTITY_TYPE, entity_id=order.get('id'),
                              details=f"{cart.item_count} items, total {payload['total_amount']}")

        return jsonify({
            "message": "Order placed successfully",
            "order": order
        }), 201

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "checkout"})
    except Exception as e:
        app_logger.exception(f"Checkout error: {e}")
        return jsonify({"error": "Failed to place order"}), 500
