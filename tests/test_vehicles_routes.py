# tests/test_vehicles_routes.py
import pytest

NEW_VEHICLE = {
    "vehicle_type": "4W",
    "fuel_type": "petrol",
    "make": "Maruti",
    "model": "Swift",
    "year": 2021,
    "registration_number": "MH12AB1234",
}


@pytest.fixture
def vehicles(store):
    store.seed("vehicles", [
        {"id": "v-1", "owner_id": "u-vo", **NEW_VEHICLE},
        {"id": "v-2", "owner_id": "u-vo2", **NEW_VEHICLE, "registration_number": "MH14CD5678"},
    ])
    return store


def test_owner_adds_vehicle_for_themselves(client, auth, store):
    resp = client.post("/api/vehicles", headers=auth("vehicle_owner"), json={**NEW_VEHICLE, "owner_id": "u-vo2"})
    assert resp.status_code == 201
    assert resp.get_json()["vehicle"]["owner_id"] == "u-vo"


def test_vehicle_validation(client, auth):
    resp = client.post("/api/vehicles", headers=auth("vehicle_owner"),
                       json={**NEW_VEHICLE, "fuel_type": "steam", "year": 1800})
    assert resp.status_code == 400
    assert set(resp.get_json()["details"]) == {"fuel_type", "year"}


def test_list_only_own_vehicles(client, auth, vehicles):
    data = client.get("/api/vehicles", headers=auth("vehicle_owner")).get_json()
    assert [v["id"] for v in data["vehicles"]] == ["v-1"]


def test_partial_update_of_own_vehicle(client, auth, vehicles):
    resp = client.put("/api/vehicles/v-1", headers=auth("vehicle_owner"), json={"color": "Red", "mileage": 15000})
    assert resp.status_code == 200
    row = vehicles.row("vehicles", "v-1")
    assert row["color"] == "Red"
    assert row["owner_id"] == "u-vo"


def test_cannot_touch_someone_elses_vehicle(client, auth, vehicles):
    assert client.put("/api/vehicles/v-2", headers=auth("vehicle_owner"), json={"color": "Red"}).status_code == 403
    assert client.delete("/api/vehicles/v-2", headers=auth("vehicle_owner")).status_code == 403
    assert vehicles.row("vehicles", "v-2") is not None


def test_delete_own_vehicle(client, auth, vehicles):
    assert client.delete("/api/vehicles/v-1", headers=auth("vehicle_owner")).status_code == 200
    assert vehicles.row("vehicles", "v-1") is None
