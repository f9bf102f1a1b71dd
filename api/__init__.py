"""
HTTP access to the fleet backend.

- ApiClient: authenticated requests with token refresh
- FleetApi (api.fleet): one method per backend endpoint
- errors: ApiError and its subclasses
"""

from .errors import (
    ApiError,
    AuthenticationError,
    PermissionDenied,
    SessionExpired,
    ValidationError,
)
from .client import ApiClient

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthenticationError",
    "PermissionDenied",
    "SessionExpired",
    "ValidationError",
]
