"""
Inventory Routes Blueprint
Parts catalogue for ordering and the admin stock view
"""
from flask import Blueprint, request, jsonify

from mobility_pkg.auth import login_required, admin_required, get_entity_client
from mobility_pkg.error_handler import handle_exception
from mobility_pkg.inventory import (
    PART_CATEGORIES,
    STOCK_STATUSES,
    annotate_stock,
    filter_inventory,
    orderable_items,
    stock_status,
)
from mobility_pkg.routes import DOMAIN_ERRORS
from mobility_pkg.activity_logger import log_activity_for_user
from logger_config import app_logger

# Create blueprint
bp = Blueprint('inventory', __name__, url_prefix='/inventory')


@bp.route('', methods=['GET'])
@login_required
def get_inventory():
    """
    GET /api/inventory?search=&category=&stock=
    Admins get every item; everyone else only orderable items (active, in stock)
    """
    try:
        category = request.args.get('category')
        stock = request.args.get('stock')
        if category and category != 'all' and category not in PART_CATEGORIES:
            return jsonify({"error": "Invalid category", "categories": PART_CATEGORIES}), 400
        if stock and stock != 'all' and stock not in STOCK_STATUSES:
            return jsonify({"error": "Invalid stock filter", "stock_statuses": list(STOCK_STATUSES)}), 400

        items = get_entity_client().inventory.list('item_name')
        if request.role != 'admin':
            items = orderable_items(items)

        items = filter_inventory(items, request.args.get('search'), category, stock)
        return jsonify({
            "items": annotate_stock(items),
            "count": len(items),
            "categories": PART_CATEGORIES
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "get_inventory"})
    except Exception as e:
        app_logger.exception(f"Get inventory error: {e}")
        return jsonify({"error": "Failed to retrieve inventory"}), 500


@bp.route('/<item_id>/active', methods=['PUT'])
@admin_required
def set_item_active(item_id):
    """
    PUT /api/inventory/<id>/active
    Set is_active from the body, or toggle it when the body omits it
    """
    try:
        data = request.get_json(silent=True) or {}
        client = get_entity_client()
        item = client.inventory.get(item_id)

        if 'is_active' in data:
            if not isinstance(data['is_active'], bool):
                return jsonify({"error": "is_active must be a boolean"}), 400
            is_active = data['is_active']
        else:
            is_active = not item.get('is_active')

        updated = client.inventory.update(item_id, {'is_active': is_active})
        log_activity_for_user(request.current_user,
                              f"{'Activated' if is_active else 'Deactivated'} {item.get('item_name')}",
                              'inventory_toggle', entity_type='inventory', entity_id=item_id)

        return jsonify({
            "message": "Item updated successfully",
            "item": dict(updated, stock_status=stock_status(updated))
        }), 200

    except DOMAIN_ERRORS as e:
        return handle_exception(e, {"operation": "set_item_active", "item_id": item_id})
    except Exception as e:
        app_logger.exception(f"Update inventory item error: {e}")
        return jsonify({"error": "Failed to update item"}), 500
