# tests/test_service_routes.py
import pytest

from mobility_pkg.models import ActivityLog, StatusHistory


@pytest.fixture
def garage(store):
    store.seed("vehicles", [{"id": "v-1", "owner_id": "u-vo", "make": "Maruti", "model": "Swift"},
                            {"id": "v-2", "owner_id": "u-vo2", "make": "Tata", "model": "Nexon"}])
    store.seed("service_requests", [
        {"id": "sr-1", "customer_id": "u-vo", "vehicle_id": "v-1", "service_type": "oil_change",
         "status": "requested"},
        {"id": "sr-2", "customer_id": "u-vo2", "vehicle_id": "v-2", "service_type": "ac_service",
         "status": "assigned", "service_provider_id": "u-sp"},
    ])
    return store


def test_owner_lists_own_bookings_with_actions(client, auth, garage):
    resp = client.get("/api/service-requests", headers=auth("vehicle_owner"))
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 1
    assert data["service_requests"][0]["id"] == "sr-1"
    assert data["service_requests"][0]["available_actions"] == ["assign", "cancel"]


def test_provider_lists_assigned_or_open_requests(client, auth, garage):
    mine = client.get("/api/service-requests", headers=auth("service_provider")).get_json()
    assert [s["id"] for s in mine["service_requests"]] == ["sr-2"]

    open_requests = client.get("/api/service-requests?scope=open", headers=auth("service_provider")).get_json()
    assert [s["id"] for s in open_requests["service_requests"]] == ["sr-1"]


def test_admin_filters_by_status(client, auth, garage):
    data = client.get("/api/service-requests?status=assigned", headers=auth("admin")).get_json()
    assert [s["id"] for s in data["service_requests"]] == ["sr-2"]


def test_other_roles_cannot_list(client, auth, garage):
    assert client.get("/api/service-requests", headers=auth("dispatcher")).status_code == 403


def test_book_service(app, client, auth, garage):
    resp = client.post("/api/service-requests", headers=auth("vehicle_owner"), json={
        "vehicle_id": "v-1",
        "service_type": "brake_service",
        "description": "Squeaking <script>alert(1)</script>brakes",
        "location": {"address": "Koregaon Park", "latitude": 18.53, "longitude": 73.89},
    })
    assert resp.status_code == 201
    created = resp.get_json()["service_request"]
    assert created["status"] == "requested"
    assert created["customer_id"] == "u-vo"
    assert created["priority"] == "medium"
    assert "<script>" not in created["description"]

    with app.app_context():
        row = StatusHistory.query.filter_by(entity_id=created["id"]).one()
        assert (row.from_status, row.to_status, row.action) == (None, "requested", "open")
        assert ActivityLog.query.filter_by(action_type="service_booking").count() == 1


def test_book_service_for_someone_elses_vehicle(client, auth, garage):
    resp = client.post("/api/service-requests", headers=auth("vehicle_owner"),
                       json={"vehicle_id": "v-2", "service_type": "oil_change"})
    assert resp.status_code == 403


def test_book_service_validation(client, auth, garage):
    resp = client.post("/api/service-requests", headers=auth("vehicle_owner"),
                       json={"vehicle_id": "v-1", "service_type": "teleport", "priority": "whenever"})
    assert resp.status_code == 400
    assert set(resp.get_json()["details"]) == {"service_type", "priority"}


def test_only_vehicle_owners_book(client, auth, garage):
    resp = client.post("/api/service-requests", headers=auth("service_provider"),
                       json={"vehicle_id": "v-1", "service_type": "oil_change"})
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_full_service_lifecycle(app, client, auth, garage):
    headers = auth("service_provider")
    resp = client.post("/api/service-requests/sr-1/assign", headers=headers, json={"estimated_cost": 1800})
    assert resp.status_code == 200
    assert resp.get_json()["to_status"] == "assigned"
    assert garage.row("service_requests", "sr-1")["service_provider_id"] == "u-sp"

    assert client.post("/api/service-requests/sr-1/start", headers=headers).status_code == 200

    resp = client.post("/api/service-requests/sr-1/complete", headers=headers, json={"actual_cost": 2000})
    assert resp.status_code == 200
    completed = resp.get_json()["service_request"]
    assert completed["status"] == "completed"
    assert completed["commission_amount"] == 200.0
    assert completed["completed_date"].endswith("Z")

    with app.app_context():
        statuses = [r.to_status for r in StatusHistory.query.filter_by(entity_id="sr-1")
                    .order_by(StatusHistory.id).all()]
    assert statuses == ["assigned", "in_progress", "completed"]


def test_invalid_transition_returns_conflict(client, auth, garage):
    resp = client.post("/api/service-requests/sr-1/complete", headers=auth("admin"))
    assert resp.status_code == 409
    data = resp.get_json()
    assert data["allowed_actions"] == ["assign", "cancel"]
    assert "requested" in data["error"]


def test_unknown_action(client, auth, garage):
    resp = client.post("/api/service-requests/sr-1/teleport", headers=auth("admin"))
    assert resp.status_code == 400
    assert "assign" in resp.get_json()["allowed_actions"]


def test_customer_cancels_own_booking_only(client, auth, garage):
    assert client.post("/api/service-requests/sr-2/cancel", headers=auth("vehicle_owner")).status_code == 403
    resp = client.post("/api/service-requests/sr-1/cancel", headers=auth("vehicle_owner"), json={"notes": "Plans changed"})
    assert resp.status_code == 200
    assert garage.row("service_requests", "sr-1")["status"] == "cancelled"


def test_missing_request_is_not_found(client, auth, garage):
    assert client.post("/api/service-requests/nope/cancel", headers=auth("admin")).status_code == 404


def test_progress_update(client, auth, garage):
    resp = client.put("/api/service-requests/sr-2/progress", headers=auth("service_provider"),
                      json={"actual_cost": 1500, "notes": "Compressor replaced"})
    assert resp.status_code == 200
    row = garage.row("service_requests", "sr-2")
    assert row["status"] == "assigned"
    assert row["commission_amount"] == 150.0


def test_progress_update_requires_a_field(client, auth, garage):
    resp = client.put("/api/service-requests/sr-2/progress", headers=auth("service_provider"), json={})
    assert resp.status_code == 400


def test_rating_completed_service(client, auth, garage):
    garage.row("service_requests", "sr-1")["status"] = "completed"
    resp = client.post("/api/service-requests/sr-1/rating", headers=auth("vehicle_owner"),
                       json={"rating": 5, "feedback": "Great"})
    assert resp.status_code == 200
    assert garage.row("service_requests", "sr-1")["rating"] == 5

    resp = client.post("/api/service-requests/sr-1/rating", headers=auth("vehicle_owner"), json={"rating": 0})
    assert resp.status_code == 400
