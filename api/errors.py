"""Exceptions raised while talking to the fleet backend."""

from typing import Any, List, Optional


class ApiError(Exception):
    """A failed backend call, with the HTTP status and body when known."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class AuthenticationError(ApiError):
    """No usable token; the user has to sign in."""


class SessionExpired(AuthenticationError):
    """The token was rejected and could not be refreshed."""


class PermissionDenied(ApiError):
    pass


class ValidationError(ApiError):
    """A form payload failed client-side validation and was never sent."""

    def __init__(self, errors: List[str]):
        super().__init__(errors[0] if errors else "Validation failed")
        self.errors = list(errors)
