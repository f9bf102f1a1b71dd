"""Authenticated JSON client for the fleet backend."""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from .errors import ApiError, AuthenticationError, PermissionDenied, SessionExpired

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiClient:
    """
    Sends JSON requests with a bearer token.

    A 401 triggers one token refresh and one retry. The caller learns about a
    new token through ``on_token_refresh(token, refresh_token)`` so it can
    store it (the web app keeps it in the Flask session).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        on_token_refresh: Optional[Callable[[str, Optional[str]], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.refresh_token = refresh_token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.on_token_refresh = on_token_refresh

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if auth:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, params=None, json=None, auth: bool = True):
        try:
            return self.session.request(
                method,
                self.url(path),
                params=params,
                json=json,
                headers=self._headers(auth),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError("Network error") from e

    @staticmethod
    def _body(response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _refresh(self) -> bool:
        """Exchange the refresh token for a new access token."""
        if not self.refresh_token:
            return False
        response = self._send(
            "POST", "/api/auth/refresh", json={"refreshToken": self.refresh_token}, auth=False
        )
        body = self._body(response)
        if response.status_code != 200 or not isinstance(body, dict):
            return False
        if not body.get("success") or not body.get("token"):
            return False

        self.token = body["token"]
        if body.get("refreshToken"):
            self.refresh_token = body["refreshToken"]
        logger.info("Access token refreshed")
        if self.on_token_refresh:
            self.on_token_refresh(self.token, self.refresh_token)
        return True

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        auth: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        if auth and not self.token:
            raise AuthenticationError("No authentication token")

        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}

        logger.debug("%s %s params=%s", method, path, params)
        response = self._send(method, path, params=params, json=json, auth=auth)

        if response.status_code == 401 and auth:
            if not self._refresh():
                raise SessionExpired("Session expired", status=401)
            response = self._send(method, path, params=params, json=json, auth=auth)
            if response.status_code == 401:
                raise SessionExpired("Session expired", status=401)

        body = self._body(response)

        if response.status_code == 403:
            raise PermissionDenied("Permission denied", status=403, payload=body)

        if not 200 <= response.status_code < 300:
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("message")
            message = message or f"HTTP error! status: {response.status_code}"
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            raise ApiError(message, status=response.status_code, payload=body)

        return body

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json if json is not None else {})

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json if json is not None else {})

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def login(self, username: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        """
        Sign in and keep the returned tokens.

        Returns the login payload (``user``, ``permissions``...). A refresh
        token is only kept when ``remember_me`` is set.
        """
        body = self.request(
            "POST",
            "/api/auth/login",
            json={"username": username, "password": password, "rememberMe": remember_me},
            auth=False,
        )
        if not isinstance(body, dict) or not body.get("success") or not body.get("token"):
            message = (body or {}).get("error") if isinstance(body, dict) else None
            raise AuthenticationError(message or "Login failed", payload=body)

        self.token = body["token"]
        self.refresh_token = body.get("refreshToken") if remember_me else None
        return body
