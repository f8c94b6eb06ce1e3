# tests/test_history_routes.py
import pytest


@pytest.fixture
def booking(store):
    store.seed("service_requests", [{"id": "sr-1", "customer_id": "u-vo", "status": "requested"}])
    return store


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_unknown_endpoint_is_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Endpoint not found"


def test_security_headers(client):
    resp = client.get("/api/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_allowed_actions_for_status(client, auth):
    resp = client.get("/api/workflow/inventory_order/actions?status=packed", headers=auth("dispatcher"))
    assert resp.status_code == 200
    assert resp.get_json()["allowed_actions"] == ["dispatch", "cancel"]


def test_workflow_table_without_status(client, auth):
    data = client.get("/api/workflow/commission/actions", headers=auth("admin")).get_json()
    assert data["actions"]["settle"] == {"from": ["calculated", "deducted"], "to": "settled"}
    assert "disputed" in data["states"]


def test_unknown_workflow(client, auth):
    assert client.get("/api/workflow/spaceship/actions", headers=auth("admin")).status_code == 404


def test_history_follows_transitions(client, auth, booking):
    client.post("/api/service-requests/sr-1/assign", headers=auth("service_provider"))
    client.post("/api/service-requests/sr-1/start", headers=auth("service_provider"))

    resp = client.get("/api/history/service_request/sr-1", headers=auth("vehicle_owner"))
    assert resp.status_code == 200
    history = resp.get_json()["history"]
    assert [(h["from_status"], h["to_status"]) for h in history] == [
        ("requested", "assigned"),
        ("assigned", "in_progress"),
    ]
    assert history[0]["changed_by_id"] == "u-sp"
    assert history[1]["status_label"] == "In Progress"


def test_history_hidden_from_unrelated_users(client, auth, booking):
    assert client.get("/api/history/service_request/sr-1", headers=auth("other_owner")).status_code == 403
    assert client.get("/api/history/service_request/sr-1", headers=auth("admin")).status_code == 200


def test_history_of_missing_entity(client, auth, booking):
    assert client.get("/api/history/service_request/nope", headers=auth("vehicle_owner")).status_code == 404


def test_activity_log_for_admin(client, auth, store):
    client.post("/api/users/u-sp/toggle-verification", headers=auth("admin"))
    client.post("/api/users/u-vo/toggle-status", headers=auth("admin"))

    data = client.get("/api/activity-logs?action_type=user_toggle", headers=auth("admin")).get_json()
    assert data["count"] == 2
    assert data["logs"][0]["entity_id"] == "u-vo"
    assert data["logs"][0]["user_id"] == "u-admin"
    assert "ip_address" not in data["logs"][0]

    assert client.get("/api/activity-logs", headers=auth("service_provider")).status_code == 403
