# tests/conftest.py
import os
import sys
import tempfile
from pathlib import Path

# --- Path and environment setup ---
# config.py reads the environment at import time, so this must run before any
# application module is imported.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ["ENV"] = "development"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="mobility-logs-")
os.environ.pop("SENTRY_DSN", None)

import pytest

from config import TestingConfig
from mobility_pkg import create_app
from mobility_pkg.models import db
from fakes import FakeEntityClient, FakeStore

USERS = {
    "admin": {"id": "u-admin", "email": "admin@ws.test", "full_name": "Asha Admin",
              "user_type": "admin", "status": "active"},
    "service_provider": {"id": "u-sp", "email": "garage@ws.test", "full_name": "Ravi Garage",
                         "user_type": "service_provider", "status": "active", "phone": "9876543210",
                         "address": "12 MG Road", "city": "Pune", "pincode": "411001"},
    "other_provider": {"id": "u-sp2", "email": "garage2@ws.test", "full_name": "Other Garage",
                       "user_type": "service_provider", "status": "active"},
    "vehicle_owner": {"id": "u-vo", "email": "owner@ws.test", "full_name": "Meera Owner",
                      "user_type": "vehicle_owner", "status": "active"},
    "other_owner": {"id": "u-vo2", "email": "owner2@ws.test", "full_name": "Other Owner",
                    "user_type": "vehicle_owner", "status": "active"},
    "payment_collector": {"id": "u-pc", "email": "collector@ws.test", "full_name": "Pay Collector",
                          "user_type": "payment_collector", "status": "active"},
    "warehouse_staff": {"id": "u-wh", "email": "warehouse@ws.test", "full_name": "Ware House",
                        "user_type": "warehouse_staff", "status": "active"},
    "dispatcher": {"id": "u-dp", "email": "dispatch@ws.test", "full_name": "Dee Spatcher",
                   "user_type": "dispatcher", "status": "active"},
    "insurance_agent": {"id": "u-ia", "email": "agent@ws.test", "full_name": "Ina Agent",
                        "user_type": "insurance_agent", "status": "active"},
    "new_user": {"id": "u-new", "email": "new@ws.test", "full_name": "New Person",
                 "user_type": None, "status": "active"},
    "suspended": {"id": "u-sus", "email": "gone@ws.test", "full_name": "Sus Pended",
                  "user_type": "vehicle_owner", "status": "suspended"},
}


@pytest.fixture
def store():
    """Entity API rows plus one token per seeded user: token-<key>"""
    store = FakeStore()
    for key, user in USERS.items():
        store.add_user(user, token=f"token-{key}")
    return store


@pytest.fixture
def make_client(store):
    def _make(token=None):
        return FakeEntityClient(store, token)
    return _make


@pytest.fixture
def app(store):
    app = create_app(TestingConfig, entity_client_factory=lambda token=None: FakeEntityClient(store, token))
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth():
    def _headers(key):
        return {"Authorization": f"Bearer token-{key}"}
    return _headers


@pytest.fixture
def actor():
    def _actor(key):
        return dict(USERS[key])
    return _actor
