"""Shared fixtures: a fake requests session and a signed-in Flask test client."""

from urllib.parse import urlsplit

import pytest

from api.client import ApiClient
from api.fleet import FleetApi

BASE_URL = "http://api.test"

ALL_PERMISSIONS = {
    code: {
        "can_view": True,
        "can_create": True,
        "can_edit": True,
        "can_delete": True,
        "can_approve": True,
    }
    for code in (
        "inventory.view",
        "inventory.export",
        "user.view",
        "user.edit",
        "role.view",
        "role.edit",
        "supplier.view",
        "supplier.create",
        "accounting.create",
        "po.create",
        "po.receive",
        "vehicle.create",
        "vehicle.edit",
        "tire.retread",
        "tire.assign",
    )
}


class FakeResponse:
    """The parts of requests.Response the client reads."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body

    def json(self):
        if self.body is None:
            raise ValueError("No JSON object could be decoded")
        return self.body


class FakeSession:
    """
    Stands in for requests.Session.

    Routes map (method, path) to a response body, a FakeResponse, an
    exception to raise, or a list of those served in turn (the last one
    repeats). Unrouted calls answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": params,
                "json": json,
                "headers": headers or {},
                "timeout": timeout,
            }
        )
        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, {"error": f"No route for {method} {path}"})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(200, route)

    def calls_to(self, method, path):
        return [c for c in self.calls if c["method"] == method and c["path"] == path]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def api_client(fake_session):
    return ApiClient(BASE_URL, token="token-1", session=fake_session)


@pytest.fixture
def fleet_api(api_client):
    return FleetApi(api_client)


@pytest.fixture
def app(fake_session, monkeypatch):
    from web.app import app as flask_app

    def factory(token, refresh_token, on_token_refresh):
        client = ApiClient(
            BASE_URL,
            token=token,
            refresh_token=refresh_token,
            session=fake_session,
            on_token_refresh=on_token_refresh,
        )
        return FleetApi(client)

    monkeypatch.setitem(flask_app.config, "API_FACTORY", factory)
    monkeypatch.setitem(flask_app.config, "TESTING", True)
    monkeypatch.setitem(flask_app.config, "FLEET_PAGE_SIZE", 10)
    return flask_app


@pytest.fixture
def web(app):
    """Flask test client without a session."""
    return app.test_client()


@pytest.fixture
def signed_in(app):
    """Flask test client signed in with every permission."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["token"] = "token-1"
        sess["user"] = {"id": 1, "username": "admin", "full_name": "Ada Admin"}
        sess["permissions"] = ALL_PERMISSIONS
    return client
