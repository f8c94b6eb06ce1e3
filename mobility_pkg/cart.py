"""
Parts cart and checkout
"""
from mobility_pkg.commission import PLATFORM_COMMISSION_RATE, compute_commission, new_order_number
from mobility_pkg.inventory import is_orderable


class CartError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class CartLine:
    def __init__(self, item, quantity=1):
        self.inventory_id = item['id']
        self.item_name = item.get('item_name')
        self.unit_price = float(item.get('unit_price') or 0)
        # Stock is captured when the line is created and caps every later change
        self.max_quantity = int(item.get('stock_quantity') or 0)
        self.quantity = quantity

    @property
    def total_price(self):
        return round(self.unit_price * self.quantity, 2)

    def to_dict(self):
        return {
            "inventory_id": self.inventory_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


class Cart:
    """Ordered collection of parts lines for one service provider"""

    def __init__(self):
        self._lines = {}

    @property
    def lines(self):
        return list(self._lines.values())

    def add_item(self, item):
        if not item.get('is_active'):
            raise CartError(f"{item.get('item_name') or 'Item'} is not available")
        if not is_orderable(item):
            raise CartError(f"{item.get('item_name') or 'Item'} is out of stock")

        line = self._lines.get(item['id'])
        if line is None:
            line = CartLine(item, quantity=1)
            self._lines[item['id']] = line
        else:
            line.quantity = min(line.quantity + 1, line.max_quantity)
        return line

    def update_quantity(self, item_id, quantity):
        line = self._lines.get(item_id)
        if line is None:
            raise CartError(f"Item {item_id} is not in the cart")
        if quantity <= 0:
            self.remove_item(item_id)
            return None
        line.quantity = min(quantity, line.max_quantity)
        return line

    def remove_item(self, item_id):
        self._lines.pop(item_id, None)

    @property
    def total_amount(self):
        return round(sum(line.total_price for line in self._lines.values()), 2)

    @property
    def item_count(self):
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self):
        return not self._lines

    def summary(self, rate=PLATFORM_COMMISSION_RATE):
        commission, net = compute_commission(self.total_amount, rate)
        return {
            "items": [line.to_dict() for line in self.lines],
            "item_count": self.item_count,
            "total_amount": self.total_amount,
            "commission_amount": commission,
            "net_amount": net,
        }

    def checkout_payload(self, service_provider_id, delivery_address, rate=PLATFORM_COMMISSION_RATE, now=None):
        """Body of the single InventoryOrder created at checkout"""
        if self.is_empty():
            raise CartError("Cart is empty")

        summary = self.summary(rate)
        return {
            "order_number": new_order_number(now),
            "service_provider_id": service_provider_id,
            "items": summary["items"],
            "total_amount": summary["total_amount"],
            "commission_amount": summary["commission_amount"],
            "net_amount": summary["net_amount"],
            "delivery_address": delivery_address,
            "status": "pending",
            "priority": "medium",
        }


def build_cart(inventory_items, requested_lines):
    """
    Build a cart from [{inventory_id, quantity}] against inventory read once

    Repeated inventory ids are merged by adding their quantities. Quantities above
    stock are capped; unknown or unavailable items raise CartError.
    """
    by_id = {item['id']: item for item in inventory_items}
    quantities = {}
    for requested in requested_lines:
        inventory_id = requested['inventory_id']
        if inventory_id not in by_id:
            raise CartError(f"Unknown inventory item {inventory_id}")
        quantities[inventory_id] = quantities.get(inventory_id, 0) + int(requested.get('quantity', 1))

    cart = Cart()
    for inventory_id, quantity in quantities.items():
        cart.add_item(by_id[inventory_id])
        cart.update_quantity(inventory_id, quantity)
    return cart


def default_delivery_address(user, provided=None):
    """Fill missing delivery fields from the user's profile"""
    provided = provided or {}
    defaults = {
        "address": user.get('address') or "",
        "city": user.get('city') or "",
        "pincode": user.get('pincode') or "",
        "contact_person": user.get('full_name') or "",
        "phone": user.get('phone') or "",
    }
    return {key: provided.get(key) or value for key, value in defaults.items()}
