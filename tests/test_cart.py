# tests/test_cart.py
from datetime import datetime, timezone

import pytest

from mobility_pkg.cart import Cart, CartError, build_cart, default_delivery_address

BRAKES = {"id": "i1", "item_name": "Brake Pad Set", "unit_price": 1200, "stock_quantity": 3, "is_active": True}
FILTER = {"id": "i2", "item_name": "Oil Filter", "unit_price": 250.5, "stock_quantity": 10, "is_active": True}
EMPTY = {"id": "i3", "item_name": "Car Battery", "unit_price": 5000, "stock_quantity": 0, "is_active": True}
RETIRED = {"id": "i4", "item_name": "Spark Plug", "unit_price": 90, "stock_quantity": 50, "is_active": False}


def test_adding_twice_increments_quantity():
    cart = Cart()
    cart.add_item(BRAKES)
    line = cart.add_item(BRAKES)
    assert line.quantity == 2
    assert cart.item_count == 2
    assert cart.total_amount == 2400


def test_quantity_is_capped_at_stock_captured_when_added():
    cart = Cart()
    cart.add_item(BRAKES)
    for _ in range(5):
        cart.add_item(BRAKES)
    assert cart.lines[0].quantity == 3

    cart.update_quantity("i1", 99)
    assert cart.lines[0].quantity == 3


def test_update_to_zero_removes_line():
    cart = Cart()
    cart.add_item(BRAKES)
    assert cart.update_quantity("i1", 0) is None
    assert cart.is_empty()


def test_update_unknown_line_raises():
    with pytest.raises(CartError):
        Cart().update_quantity("nope", 1)


@pytest.mark.parametrize("item", [EMPTY, RETIRED])
def test_unavailable_items_cannot_be_added(item):
    with pytest.raises(CartError) as exc:
        Cart().add_item(item)
    assert item["item_name"] in exc.value.message


def test_summary_applies_commission():
    cart = build_cart([BRAKES, FILTER], [{"inventory_id": "i1", "quantity": 2},
                                         {"inventory_id": "i2", "quantity": 2}])
    summary = cart.summary()
    assert summary["total_amount"] == 2901.0
    assert summary["commission_amount"] == 290.1
    assert summary["net_amount"] == 2610.9
    assert summary["item_count"] == 4
    assert [line["inventory_id"] for line in summary["items"]] == ["i1", "i2"]
    assert summary["items"][1]["total_price"] == 501.0


def test_two_line_cart_totals():
    wiper = {"id": "w1", "item_name": "Wiper Blade", "unit_price": 100, "stock_quantity": 5, "is_active": True}
    bulb = {"id": "b1", "item_name": "Headlight Bulb", "unit_price": 50, "stock_quantity": 5, "is_active": True}
    summary = build_cart([wiper, bulb], [{"inventory_id": "w1", "quantity": 2},
                                         {"inventory_id": "b1", "quantity": 1}]).summary()
    assert summary["total_amount"] == 250
    assert summary["commission_amount"] == 25
    assert summary["net_amount"] == 225


def test_total_amount_is_sum_of_rounded_line_totals():
    washers = [
        {"id": f"x{n}", "item_name": "Washer", "unit_price": 0.125, "stock_quantity": 10, "is_active": True}
        for n in (1, 2)
    ]
    cart = build_cart(washers, [{"inventory_id": "x1", "quantity": 1},
                                {"inventory_id": "x2", "quantity": 1}])
    assert cart.total_amount == round(sum(line.total_price for line in cart.lines), 2)
    assert cart.total_amount == 0.24


def test_repeated_inventory_id_adds_quantities():
    cart = build_cart([FILTER], [{"inventory_id": "i2", "quantity": 2},
                                 {"inventory_id": "i2", "quantity": 3}])
    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 5


def test_repeated_inventory_id_is_still_capped_at_stock():
    cart = build_cart([BRAKES], [{"inventory_id": "i1", "quantity": 2},
                                 {"inventory_id": "i1", "quantity": 2}])
    assert cart.lines[0].quantity == 3


def test_build_cart_rejects_unknown_item():
    with pytest.raises(CartError):
        build_cart([BRAKES], [{"inventory_id": "missing", "quantity": 1}])


def test_checkout_payload_is_a_pending_order():
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    cart = build_cart([BRAKES], [{"inventory_id": "i1", "quantity": 1}])
    payload = cart.checkout_payload("u-sp", {"city": "Pune"}, now=now)
    assert payload["order_number"] == f"ORD-{int(now.timestamp() * 1000)}"
    assert payload["status"] == "pending"
    assert payload["priority"] == "medium"
    assert payload["service_provider_id"] == "u-sp"
    assert payload["total_amount"] == 1200.0
    assert payload["commission_amount"] == 120.0
    assert payload["net_amount"] == 1080.0
    assert payload["delivery_address"] == {"city": "Pune"}


def test_empty_cart_cannot_check_out():
    with pytest.raises(CartError):
        Cart().checkout_payload("u-sp", {})


def test_default_delivery_address_prefers_provided_fields():
    user = {"full_name": "Ravi Garage", "phone": "9876543210", "address": "12 MG Road",
            "city": "Pune", "pincode": "411001"}
    address = default_delivery_address(user, {"city": "Mumbai", "phone": ""})
    assert address == {
        "address": "12 MG Road",
        "city": "Mumbai",
        "pincode": "411001",
        "contact_person": "Ravi Garage",
        "phone": "9876543210",
    }
    assert default_delivery_address({})["contact_person"] == ""
