# tests/test_orders_routes.py
import pytest

from mobility_pkg.models import ActivityLog, StatusHistory


@pytest.fixture
def catalogue(store):
    store.seed("inventory", [
        {"id": "i1", "item_name": "Brake Pad Set", "unit_price": 1200, "stock_quantity": 3,
         "minimum_stock": 1, "is_active": True, "category": "brake_parts"},
        {"id": "i2", "item_name": "Oil Filter", "unit_price": 250, "stock_quantity": 10,
         "minimum_stock": 2, "is_active": True, "category": "filters"},
        {"id": "i3", "item_name": "Car Battery", "unit_price": 5000, "stock_quantity": 0,
         "minimum_stock": 1, "is_active": True, "category": "batteries"},
    ])
    return store


@pytest.fixture
def orders(store):
    store.seed("inventory_orders", [
        {"id": "o-1", "service_provider_id": "u-sp", "status": "pending", "order_number": "ORD-1"},
        {"id": "o-2", "service_provider_id": "u-sp2", "status": "approved", "order_number": "ORD-2"},
        {"id": "o-3", "service_provider_id": "u-sp", "status": "packed", "order_number": "ORD-3"},
        {"id": "o-4", "service_provider_id": "u-sp2", "status": "delivered", "order_number": "ORD-4"},
    ])
    return store


def test_quote_prices_cart_and_fills_delivery_address(client, auth, catalogue):
    resp = client.post("/api/cart/quote", headers=auth("service_provider"), json={
        "items": [{"inventory_id": "i1", "quantity": 2}, {"inventory_id": "i2", "quantity": 4}],
    })
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["total_amount"] == 3400.0
    assert data["commission_amount"] == 340.0
    assert data["net_amount"] == 3060.0
    assert data["delivery_address"]["city"] == "Pune"
    assert data["delivery_address"]["contact_person"] == "Ravi Garage"


def test_checkout_creates_one_pending_order(app, client, auth, catalogue):
    resp = client.post("/api/cart/checkout", headers=auth("service_provider"), json={
        "items": [{"inventory_id": "i1", "quantity": 9}],
        "delivery_address": {"city": "Mumbai", "pincode": "400001"},
    })
    assert resp.status_code == 201
    order = resp.get_json()["order"]
    assert order["status"] == "pending"
    assert order["service_provider_id"] == "u-sp"
    assert order["order_number"].startswith("ORD-")
    # Quantity capped at stock
    assert order["items"][0]["quantity"] == 3
    assert order["total_amount"] == 3600.0
    assert order["commission_amount"] == 360.0
    assert order["delivery_address"]["city"] == "Mumbai"
    assert order["delivery_address"]["address"] == "12 MG Road"

    assert len(catalogue.calls_for("inventory_orders", "create")) == 1
    assert len(catalogue.calls_for("inventory", "list")) == 1

    with app.app_context():
        history = StatusHistory.query.filter_by(entity_type="inventory_order", entity_id=order["id"]).one()
        assert history.action == "checkout"
        assert history.to_status == "pending"
        assert ActivityLog.query.filter_by(action_type="checkout", user_id="u-sp").count() == 1


def test_checkout_rejects_out_of_stock_items(client, auth, catalogue):
    resp = client.post("/api/cart/checkout", headers=auth("service_provider"),
                       json={"items": [{"inventory_id": "i3", "quantity": 1}]})
    assert resp.status_code == 400
    assert "out of stock" in resp.get_json()["error"]
    assert catalogue.calls_for("inventory_orders", "create") == []


def test_checkout_with_only_zero_quantities_is_empty(client, auth, catalogue):
    resp = client.post("/api/cart/checkout", headers=auth("service_provider"),
                       json={"items": [{"inventory_id": "i1", "quantity": 0}]})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Cart is empty"


def test_checkout_requires_items(client, auth, catalogue):
    resp = client.post("/api/cart/checkout", headers=auth("service_provider"), json={"items": []})
    assert resp.status_code == 400
    assert "items" in resp.get_json()["details"]


def test_only_service_providers_check_out(client, auth, catalogue):
    resp = client.post("/api/cart/checkout", headers=auth("vehicle_owner"),
                       json={"items": [{"inventory_id": "i1"}]})
    assert resp.status_code == 403


def test_provider_sees_own_orders(client, auth, orders):
    data = client.get("/api/inventory-orders", headers=auth("service_provider")).get_json()
    assert sorted(o["id"] for o in data["orders"]) == ["o-1", "o-3"]


def test_handlers_see_their_work_queue(client, auth, orders):
    warehouse = client.get("/api/inventory-orders", headers=auth("warehouse_staff")).get_json()
    assert sorted(o["id"] for o in warehouse["orders"]) == ["o-2", "o-3"]

    dispatch = client.get("/api/inventory-orders", headers=auth("dispatcher")).get_json()
    assert [o["id"] for o in dispatch["orders"]] == ["o-3"]
    assert dispatch["orders"][0]["available_actions"] == ["dispatch", "cancel"]


def test_admin_sees_all_orders(client, auth, orders):
    data = client.get("/api/inventory-orders", headers=auth("admin")).get_json()
    assert data["count"] == 4


def test_vehicle_owner_cannot_list_orders(client, auth, orders):
    assert client.get("/api/inventory-orders", headers=auth("vehicle_owner")).status_code == 403


def test_order_workflow_by_role(client, auth, orders):
    assert client.post("/api/inventory-orders/o-1/approve", headers=auth("warehouse_staff")).status_code == 403
    assert client.post("/api/inventory-orders/o-1/approve", headers=auth("admin")).status_code == 200

    resp = client.post("/api/inventory-orders/o-1/pack", headers=auth("warehouse_staff"))
    assert resp.status_code == 200
    assert resp.get_json()["order"]["packed_by"] == "u-wh"

    resp = client.post("/api/inventory-orders/o-1/dispatch", headers=auth("dispatcher"),
                       json={"tracking_number": "TRK-77"})
    assert resp.status_code == 200
    assert orders.row("inventory_orders", "o-1")["tracking_number"] == "TRK-77"


def test_delivered_order_cannot_be_cancelled(client, auth, orders):
    resp = client.post("/api/inventory-orders/o-4/cancel", headers=auth("admin"))
    assert resp.status_code == 409
    assert resp.get_json()["allowed_actions"] == []
