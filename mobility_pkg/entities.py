"""
Entity API Client
Thin wrapper around the external REST backend that owns every business entity.
One EntityClient is built per request and carries the caller's bearer token.
"""
import json
from concurrent.futures import ThreadPoolExecutor

import requests

from logger_config import app_logger


class EntityAPIError(Exception):
    """Raised for any failed call to the entity API"""

    def __init__(self, message="API error", status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class EntityUnauthorized(EntityAPIError):
    pass


class EntityForbidden(EntityAPIError):
    pass


class EntityNotFound(EntityAPIError):
    pass


_ERRORS_BY_STATUS = {
    401: EntityUnauthorized,
    403: EntityForbidden,
    404: EntityNotFound,
}


class Resource:
    """
    One REST collection of the entity API (e.g. /service-requests)

    list/filter return lists of dicts in the order the API returns them.
    """

    def __init__(self, client, path):
        self.client = client
        self.path = path

    def list(self, sort=None, limit=None):
        return self.client.request('GET', self.path, params=_query(sort=sort, limit=limit)) or []

    def filter(self, criteria, sort=None, limit=None):
        params = _query(sort=sort, limit=limit)
        params['q'] = json.dumps(criteria or {}, sort_keys=True)
        return self.client.request('GET', self.path, params=params) or []

    def get(self, entity_id):
        return self.client.request('GET', f"{self.path}/{entity_id}")

    def create(self, data):
        return self.client.request('POST', self.path, json=data)

    def update(self, entity_id, data):
        return self.client.request('PUT', f"{self.path}/{entity_id}", json=data)

    def delete(self, entity_id):
        self.client.request('DELETE', f"{self.path}/{entity_id}")


class UserResource(Resource):
    """Users collection plus the session endpoints"""

    def me(self):
        return self.client.request('GET', f"{self.path}/me")

    def login(self, credentials):
        data = self.client.request('POST', f"{self.path}/login", json=credentials, authenticated=False) or {}
        token = data.get('token')
        if token:
            self.client.token = token
        return data

    def logout(self):
        self.client.token = None

    def register(self, data):
        return self.client.request('POST', f"{self.path}/register", json=data, authenticated=False)

    def update_my_user_data(self, data):
        return self.client.request('PUT', f"{self.path}/me", json=data)


class EntityClient:
    """
    Typed access to every entity collection

    Args:
        base_url: Entity API root, e.g. https://api.example.com/api
        token: Bearer token forwarded from the caller (optional)
        timeout: Seconds applied to every call; there are no retries
        session: Optional requests.Session (tests inject one)
    """

    def __init__(self, base_url, token=None, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

        self.vehicles = Resource(self, '/vehicles')
        self.service_requests = Resource(self, '/service-requests')
        self.inventory = Resource(self, '/inventory')
        self.inventory_orders = Resource(self, '/inventory-orders')
        self.insurance_leads = Resource(self, '/insurance-leads')
        self.payments = Resource(self, '/payments')
        self.commissions = Resource(self, '/commissions')
        self.users = UserResource(self, '/users')

    def request(self, method, path, params=None, json=None, authenticated=True):
        headers = {'Content-Type': 'application/json'}
        if authenticated and self.token:
            headers['Authorization'] = f"Bearer {self.token}"

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            app_logger.error(f"Entity API timeout: {method} {path}")
            raise EntityAPIError("Entity API timeout") from e
        except requests.exceptions.RequestException as e:
            app_logger.error(f"Entity API network error: {method} {path}: {e}")
            raise EntityAPIError("Network error connecting to entity API") from e

        if response.status_code == 204 or not response.content:
            body = None
        else:
            try:
                body = response.json()
            except ValueError:
                body = None

        if not 200 <= response.status_code < 300:
            message = "API error"
            if isinstance(body, dict) and body.get('error'):
                message = body['error']
            # Log detailed error internally
            app_logger.warning(f"Entity API returned {response.status_code} for {method} {path}: {message}")
            error_class = _ERRORS_BY_STATUS.get(response.status_code, EntityAPIError)
            raise error_class(message, status_code=response.status_code, payload=body)

        return body


def _query(sort=None, limit=None):
    params = {}
    if sort:
        params['sort'] = sort
    if limit:
        params['limit'] = int(limit)
    return params


def fetch_concurrently(calls, max_workers=4):
    """
    Run independent reads in parallel and join them

    Args:
        calls: dict of name -> zero-argument callable

    Returns:
        dict: name -> result. The first failure propagates to the caller.
    """
    if not calls:
        return {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = {name: pool.submit(fn) for name, fn in calls.items()}
        return {name: future.result() for name, future in futures.items()}
