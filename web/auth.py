"""Session-backed sign-in state and the decorators guarding pages."""

from functools import wraps
from typing import Optional

from flask import current_app, flash, g, redirect, request, session, url_for

from api.client import ApiClient
from api.fleet import FleetApi
from models.loader import parse_permission_set
from models.role import PermissionSet


def store_tokens(token: str, refresh_token: Optional[str]) -> None:
    """Keep a refreshed token pair in the session."""
    session["token"] = token
    if refresh_token:
        session["refresh_token"] = refresh_token


def sign_in(login_payload: dict, client: ApiClient) -> None:
    session.clear()
    session["token"] = client.token
    if client.refresh_token:
        session["refresh_token"] = client.refresh_token
    session["user"] = login_payload.get("user") or {}
    store_permissions(login_payload.get("permissions"))


def store_permissions(raw) -> None:
    """Keep permissions in the session keyed by code, whatever shape they arrived in."""
    session["permissions"] = parse_permission_set(raw).to_dict()
    g.pop("permission_set", None)


def sign_out() -> None:
    session.clear()


def default_api_factory(token, refresh_token, on_token_refresh) -> FleetApi:
    config = current_app.config
    client = ApiClient(
        config["FLEET_API_URL"],
        token=token,
        refresh_token=refresh_token,
        timeout=config["FLEET_API_TIMEOUT"],
        on_token_refresh=on_token_refresh,
    )
    return FleetApi(client)


def get_api() -> FleetApi:
    """The FleetApi for this request, built once from the session tokens."""
    if "fleet_api" not in g:
        factory = current_app.config.get("API_FACTORY") or default_api_factory
        g.fleet_api = factory(
            session.get("token"), session.get("refresh_token"), store_tokens
        )
    return g.fleet_api


def current_user() -> dict:
    return session.get("user") or {}


def current_user_name() -> str:
    user = current_user()
    return user.get("full_name") or user.get("username") or "System"


def current_permissions() -> PermissionSet:
    if "permission_set" not in g:
        g.permission_set = parse_permission_set(session.get("permissions"))
    return g.permission_set


def has_permission(code: str, action: str = "view") -> bool:
    return current_permissions().has_permission(code, action)


def login_required(view):
    @wraps(view)
    def decorated(*args, **kwargs):
        if not session.get("token"):
            flash("Please sign in to continue", "error")
            return redirect(url_for("login", next=request.full_path))
        return view(*args, **kwargs)
    return decorated


def permission_required(code: str, action: str = "view"):
    """Require sign-in plus one permission; otherwise back to the home page."""

    def decorator(view):
        @wraps(view)
        @login_required
        def decorated(*args, **kwargs):
            if not has_permission(code, action):
                flash("You don't have permission to access this page", "error")
                return redirect(url_for("index"))
            return view(*args, **kwargs)
        return decorated

    return decorator
