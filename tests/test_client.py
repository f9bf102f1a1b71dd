#!/usr/bin/env python3
"""Tests for the authenticated backend client."""

import pytest
import requests

from api.client import ApiClient
from api.errors import ApiError, AuthenticationError, PermissionDenied, SessionExpired

from conftest import BASE_URL, FakeResponse


class TestRequest:
    """Tests for ApiClient.request."""

    def test_sends_bearer_token_and_json(self, api_client, fake_session):
        """Bearer token, JSON content type and timeout on every call."""
        fake_session.routes[("GET", "/api/vehicles")] = {"success": True, "data": []}
        assert api_client.get("/api/vehicles") == {"success": True, "data": []}

        call = fake_session.calls[0]
        assert call["headers"]["Authorization"] == "Bearer token-1"
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["timeout"] == 10

    def test_blank_params_are_dropped(self, api_client, fake_session):
        """None and empty params never reach the query string."""
        fake_session.routes[("GET", "/api/users")] = FakeResponse(200, [])
        api_client.get("/api/users", {"page": 1, "search": "", "role": None})
        assert fake_session.calls[0]["params"] == {"page": 1}

    def test_post_sends_empty_object(self, api_client, fake_session):
        """POST without a body sends {}."""
        fake_session.routes[("POST", "/api/auth/logout")] = {"success": True}
        api_client.post("/api/auth/logout")
        assert fake_session.calls[0]["json"] == {}

    def test_url_joins_slashes(self):
        """Trailing slash on the base URL is not doubled."""
        client = ApiClient(BASE_URL + "/", token="t")
        assert client.url("/api/roles") == "http://api.test/api/roles"

    def test_no_token(self, fake_session):
        """AuthenticationError before any request when unsigned."""
        client = ApiClient(BASE_URL, session=fake_session)
        with pytest.raises(AuthenticationError):
            client.get("/api/vehicles")
        assert fake_session.calls == []

    def test_empty_body(self, api_client, fake_session):
        """204 returns None."""
        fake_session.routes[("DELETE", "/api/roles/3")] = FakeResponse(204, None)
        assert api_client.delete("/api/roles/3") is None


class TestErrors:
    """Tests for error mapping."""

    def test_backend_error_message(self, api_client, fake_session):
        """"error" key becomes the ApiError message."""
        fake_session.routes[("POST", "/api/suppliers")] = FakeResponse(
            400, {"success": False, "error": "Supplier already exists"}
        )
        with pytest.raises(ApiError) as exc_info:
            api_client.post("/api/suppliers", {"name": "Treads"})
        assert exc_info.value.message == "Supplier already exists"
        assert exc_info.value.status == 400

    def test_message_key(self, api_client, fake_session):
        """"message" key is used when "error" is absent."""
        fake_session.routes[("GET", "/api/grn")] = FakeResponse(422, {"message": "Bad GRN"})
        with pytest.raises(ApiError, match="Bad GRN"):
            api_client.get("/api/grn")

    def test_status_fallback_message(self, api_client, fake_session):
        """HTTP status message when the body says nothing."""
        fake_session.routes[("GET", "/api/settings/system")] = FakeResponse(500, None)
        with pytest.raises(ApiError, match="HTTP error! status: 500"):
            api_client.get("/api/settings/system")

    def test_forbidden(self, api_client, fake_session):
        """403 raises PermissionDenied."""
        fake_session.routes[("DELETE", "/api/users/2")] = FakeResponse(403, {"error": "nope"})
        with pytest.raises(PermissionDenied):
            api_client.delete("/api/users/2")

    def test_network_error(self, api_client, fake_session):
        """Connection failures become ApiError."""
        fake_session.routes[("GET", "/api/vehicles")] = requests.exceptions.ConnectionError()
        with pytest.raises(ApiError, match="Network error"):
            api_client.get("/api/vehicles")


class TestTokenRefresh:
    """Tests for the 401 refresh-and-retry."""

    def test_refreshes_and_retries_once(self, fake_session):
        """401 refreshes the token pair and retries with the new one."""
        refreshed = []
        client = ApiClient(
            BASE_URL,
            token="old",
            refresh_token="refresh-1",
            session=fake_session,
            on_token_refresh=lambda token, refresh: refreshed.append((token, refresh)),
        )
        fake_session.routes[("GET", "/api/vehicles")] = [
            FakeResponse(401, {"error": "expired"}),
            {"success": True, "data": []},
        ]
        fake_session.routes[("POST", "/api/auth/refresh")] = {
            "success": True,
            "token": "new",
            "refreshToken": "refresh-2",
        }

        assert client.get("/api/vehicles") == {"success": True, "data": []}
        assert client.token == "new"
        assert refreshed == [("new", "refresh-2")]

        refresh_call = fake_session.calls_to("POST", "/api/auth/refresh")[0]
        assert refresh_call["json"] == {"refreshToken": "refresh-1"}
        assert "Authorization" not in refresh_call["headers"]
        retries = fake_session.calls_to("GET", "/api/vehicles")
        assert [c["headers"]["Authorization"] for c in retries] == ["Bearer old", "Bearer new"]

    def test_without_refresh_token_session_expires(self, api_client, fake_session):
        """401 with no refresh token expires the session."""
        fake_session.routes[("GET", "/api/vehicles")] = FakeResponse(401, {})
        with pytest.raises(SessionExpired):
            api_client.get("/api/vehicles")
        assert fake_session.calls_to("POST", "/api/auth/refresh") == []

    def test_failed_refresh(self, fake_session):
        """Rejected refresh expires the session."""
        client = ApiClient(BASE_URL, token="old", refresh_token="r", session=fake_session)
        fake_session.routes[("GET", "/api/vehicles")] = FakeResponse(401, {})
        fake_session.routes[("POST", "/api/auth/refresh")] = FakeResponse(401, {"success": False})
        with pytest.raises(SessionExpired):
            client.get("/api/vehicles")

    def test_second_401_expires(self, fake_session):
        """Only one retry after a refresh."""
        client = ApiClient(BASE_URL, token="old", refresh_token="r", session=fake_session)
        fake_session.routes[("GET", "/api/vehicles")] = FakeResponse(401, {})
        fake_session.routes[("POST", "/api/auth/refresh")] = {"success": True, "token": "new"}
        with pytest.raises(SessionExpired):
            client.get("/api/vehicles")
        assert len(fake_session.calls_to("GET", "/api/vehicles")) == 2
        assert client.refresh_token == "r"


class TestLogin:
    """Tests for ApiClient.login."""

    @pytest.fixture
    def client(self, fake_session):
        return ApiClient(BASE_URL, session=fake_session)

    def test_keeps_tokens(self, client, fake_session):
        """Token and refresh token kept with remember me."""
        fake_session.routes[("POST", "/api/auth/login")] = {
            "success": True,
            "token": "t-1",
            "refreshToken": "r-1",
            "user": {"id": 1},
        }
        body = client.login("ada", "secret", remember_me=True)
        assert body["user"] == {"id": 1}
        assert client.token == "t-1"
        assert client.refresh_token == "r-1"
        assert fake_session.calls[0]["json"] == {
            "username": "ada",
            "password": "secret",
            "rememberMe": True,
        }

    def test_refresh_token_dropped_without_remember_me(self, client, fake_session):
        """No refresh token kept without remember me."""
        fake_session.routes[("POST", "/api/auth/login")] = {
            "success": True,
            "token": "t-1",
            "refreshToken": "r-1",
        }
        client.login("ada", "secret")
        assert client.refresh_token is None

    def test_unsuccessful_login(self, client, fake_session):
        """success false raises AuthenticationError."""
        fake_session.routes[("POST", "/api/auth/login")] = {
            "success": False,
            "error": "Invalid credentials",
        }
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            client.login("ada", "wrong")

    def test_rejected_login(self, client, fake_session):
        """401 from login raises ApiError with the backend message."""
        fake_session.routes[("POST", "/api/auth/login")] = FakeResponse(
            401, {"error": "Invalid credentials"}
        )
        with pytest.raises(ApiError, match="Invalid credentials") as exc_info:
            client.login("ada", "wrong")
        assert exc_info.value.status == 401
