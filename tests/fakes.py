# tests/fakes.py
"""
In-memory stand-in for the entity API

FakeStore holds the rows of every collection; FakeEntityClient exposes the same
resource attributes and methods as mobility_pkg.entities.EntityClient.
"""
import copy
import itertools
from collections import defaultdict

from mobility_pkg.entities import EntityAPIError, EntityNotFound, EntityUnauthorized

COLLECTIONS = (
    "vehicles",
    "service_requests",
    "inventory",
    "inventory_orders",
    "insurance_leads",
    "payments",
    "commissions",
    "users",
)


class FakeStore:
    def __init__(self):
        self.tables = defaultdict(list)
        self.tokens = {}
        self.passwords = {}
        self.failing = set()
        self.calls = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def next_id(self, collection):
        return f"{collection}-{next(self._ids)}"

    def next_created_date(self):
        tick = next(self._clock)
        return f"2024-05-01T10:{tick // 60:02d}:{tick % 60:02d}.000Z"

    def seed(self, collection, rows):
        """Insert rows as-is; missing ids and created dates are generated"""
        stored = []
        for row in rows:
            row = dict(row)
            row.setdefault("id", self.next_id(collection))
            row.setdefault("created_date", self.next_created_date())
            self.tables[collection].append(row)
            stored.append(copy.deepcopy(row))
        return stored

    def add_user(self, user, token=None, password="secret"):
        (stored,) = self.seed("users", [user])
        if token:
            self.tokens[token] = stored["id"]
        if stored.get("email"):
            self.passwords[stored["email"]] = password
        return stored

    def row(self, collection, entity_id):
        for row in self.tables[collection]:
            if row["id"] == entity_id:
                return row
        return None

    def calls_for(self, collection, method):
        return [call for call in self.calls if call[0] == collection and call[1] == method]


def _sorted(rows, sort):
    if not sort:
        return rows
    reverse = sort.startswith("-")
    key = sort.lstrip("-")
    return sorted(rows, key=lambda row: str(row.get(key) or ""), reverse=reverse)


class FakeResource:
    def __init__(self, store, name, client):
        self.store = store
        self.name = name
        self.client = client

    def _check(self, method, *args):
        self.store.calls.append((self.name, method, args))
        if self.name in self.store.failing:
            raise EntityAPIError("Entity API unavailable", status_code=503)

    def list(self, sort=None, limit=None):
        self._check("list", sort, limit)
        rows = _sorted(self.store.tables[self.name], sort)
        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def filter(self, criteria, sort=None, limit=None):
        self._check("filter", criteria, sort, limit)
        rows = [
            row for row in self.store.tables[self.name]
            if all(row.get(key) == value for key, value in (criteria or {}).items())
        ]
        rows = _sorted(rows, sort)
        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def get(self, entity_id):
        self._check("get", entity_id)
        row = self.store.row(self.name, entity_id)
        if row is None:
            raise EntityNotFound("Not found", status_code=404)
        return copy.deepcopy(row)

    def create(self, data):
        self._check("create", data)
        (stored,) = self.store.seed(self.name, [data])
        return stored

    def update(self, entity_id, data):
        self._check("update", entity_id, data)
        row = self.store.row(self.name, entity_id)
        if row is None:
            raise EntityNotFound("Not found", status_code=404)
        row.update(copy.deepcopy(data))
        return copy.deepcopy(row)

    def delete(self, entity_id):
        self._check("delete", entity_id)
        row = self.store.row(self.name, entity_id)
        if row is None:
            raise EntityNotFound("Not found", status_code=404)
        self.store.tables[self.name].remove(row)


class FakeUserResource(FakeResource):
    def _current_id(self):
        user_id = self.store.tokens.get(self.client.token)
        if user_id is None:
            raise EntityUnauthorized("Invalid token", status_code=401)
        return user_id

    def me(self):
        self._check("me")
        return copy.deepcopy(self.store.row("users", self._current_id()))

    def login(self, credentials):
        self._check("login", credentials.get("email"))
        email = credentials.get("email")
        if self.store.passwords.get(email) != credentials.get("password"):
            raise EntityUnauthorized("Invalid credentials", status_code=401)
        user = next(u for u in self.store.tables["users"] if u.get("email") == email)
        token = f"login-{user['id']}"
        self.store.tokens[token] = user["id"]
        self.client.token = token
        return {"token": token, "user": copy.deepcopy(user)}

    def logout(self):
        self.client.token = None

    def register(self, data):
        self._check("register", data)
        (stored,) = self.store.seed("users", [data])
        return stored

    def update_my_user_data(self, data):
        user_id = self._current_id()
        self._check("update_my_user_data", data)
        row = self.store.row("users", user_id)
        row.update(copy.deepcopy(data))
        return copy.deepcopy(row)


class FakeEntityClient:
    def __init__(self, store, token=None):
        self.store = store
        self.token = token
        for name in COLLECTIONS:
            resource_class = FakeUserResource if name == "users" else FakeResource
            setattr(self, name, resource_class(store, name, self))
