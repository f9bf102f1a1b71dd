"""Flask web application for tire fleet management."""

import logging
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional

from flask import (
    Flask,
    flash,
    make_response,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

# Add parent directory to path for model imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.errors import (
    ApiError,
    AuthenticationError,
    PermissionDenied,
    SessionExpired,
    ValidationError,
)
from models.calculations import (
    balance_after_payment,
    calculate_line,
    calculate_order_totals,
    chronological_balances,
    payment_due_date,
    resolve_vat_rate,
    retread_batch_cost,
)
from models.export import (
    format_date,
    format_money,
    format_number,
    grn_csv,
    grn_csv_filename,
    history_csv,
    history_csv_filename,
    inventory_csv,
    inventory_csv_filename,
    ledger_csv,
    ledger_csv_filename,
    retread_orders_csv,
    retread_orders_csv_filename,
    service_duration_label,
    service_mileage_label,
    stock_ledger_csv,
    stock_ledger_csv_filename,
)
from models.filters import (
    HistoryFilter,
    filter_history,
    filter_inventory_by_size,
    filter_roles,
    ledger_display,
    page_from_pagination,
    paginate,
    retread_order_stats,
    unique_positions,
    unique_types,
)
from models.movement import StockLedgerEntry, filter_stock_ledger, ledger_totals, stock_ledger
from models.purchase_order import ReceivingLine
from models.retread import RetreadReceipt, build_retread_grn
from models.role import ACTIONS, RolePermission, count_selected, group_by_category
from models.settings import SystemSettings, find_default_rate, find_rate
from models.status import (
    CLOSED_PO_STATUSES,
    GrnStatus,
    PurchaseOrderStatus,
    ReceiveCondition,
    RETIREMENT_REASONS,
    RetreadOrderStatus,
    RetreadQuality,
    RetreadReceiptStatus,
    SupplierType,
    VehicleStatus,
    WheelConfig,
    status_label,
)
from models.tire import InventoryStats
from models.tire_service import (
    ServiceOperation,
    install_operation,
    removal_operation,
    swap_operation,
)
from models.user import User
from models.vehicle import HISTORY_SORT_KEYS
from models.validation import (
    require_valid,
    validate_password_change,
    validate_password_reset,
    validate_payment,
    validate_profile,
    validate_purchase_order,
    validate_receiving,
    validate_retirement,
    validate_retread_receipt,
    validate_retread_return,
    validate_retread_send,
    validate_role_form,
    validate_supplier,
    validate_user_form,
    validate_vehicle,
)
from web.auth import (
    current_user,
    current_user_name,
    get_api,
    has_permission,
    login_required,
    permission_required,
    sign_in,
    sign_out,
    store_permissions,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")
app.config["FLEET_API_URL"] = os.environ.get("FLEET_API_URL", "http://localhost:5000")
app.config["FLEET_API_TIMEOUT"] = float(os.environ.get("FLEET_API_TIMEOUT", "10"))
app.config["FLEET_PAGE_SIZE"] = int(os.environ.get("FLEET_PAGE_SIZE", "10"))
app.config["API_FACTORY"] = None


# =============================================================================
# Template filters
# =============================================================================


def status_color(status: Optional[str]) -> str:
    """Get Tailwind color classes for a status badge."""
    colors = {
        "ACTIVE": "bg-green-100 text-green-800",
        "IN_STORE": "bg-green-100 text-green-800",
        "COMPLETED": "bg-green-100 text-green-800",
        "RECEIVED": "bg-green-100 text-green-800",
        "FULLY_RECEIVED": "bg-green-100 text-green-800",
        "APPROVED": "bg-green-100 text-green-800",
        "ON_VEHICLE": "bg-blue-100 text-blue-800",
        "SENT": "bg-blue-100 text-blue-800",
        "ORDERED": "bg-blue-100 text-blue-800",
        "IN_PROGRESS": "bg-yellow-100 text-yellow-800",
        "PENDING": "bg-yellow-100 text-yellow-800",
        "PARTIALLY_RECEIVED": "bg-yellow-100 text-yellow-800",
        "MAINTENANCE": "bg-yellow-100 text-yellow-800",
        "AWAITING_RETREAD": "bg-orange-100 text-orange-800",
        "AT_RETREAD_SUPPLIER": "bg-purple-100 text-purple-800",
        "USED_STORE": "bg-gray-100 text-gray-800",
        "DRAFT": "bg-gray-100 text-gray-800",
        "INACTIVE": "bg-gray-100 text-gray-500",
        "RETIRED": "bg-red-100 text-red-800",
        "CANCELLED": "bg-red-100 text-red-800",
        "DISPOSED": "bg-red-100 text-red-800",
        "PURCHASE": "bg-red-100 text-red-800",
        "RETREAD_SERVICE": "bg-orange-100 text-orange-800",
        "PAYMENT": "bg-green-100 text-green-800",
    }
    return colors.get(status or "", "bg-gray-100 text-gray-800")


def money(amount) -> str:
    symbol = session.get("currency_symbol") or "KSH"
    return format_money(amount, symbol)


def format_km(value) -> str:
    if value is None:
        return "—"
    return f"{format_number(value)} km"


# Register template filters
app.jinja_env.filters["money"] = money
app.jinja_env.filters["format_date"] = format_date
app.jinja_env.filters["format_datetime"] = lambda value: format_date(value, with_time=True)
app.jinja_env.filters["format_number"] = format_number
app.jinja_env.filters["format_km"] = format_km
app.jinja_env.filters["status_label"] = status_label
app.jinja_env.filters["status_color"] = status_color


@app.context_processor
def inject_auth():
    return {
        "has_permission": has_permission,
        "current_user": current_user(),
        "today": date.today().isoformat(),
        "page_url": page_url,
        "url_with_args": url_with_args,
    }


def url_with_args(endpoint: str, **values) -> str:
    """
    URL for an endpoint carrying over the current query string.

    Explicit values win over query arguments of the same name, so a stray
    ``?vehicle_id=`` cannot collide with the route's own argument.
    """
    merged = request.args.to_dict()
    merged.update(values)
    return url_for(endpoint, **merged)


def page_url(page: int) -> str:
    """URL of the current page with the page number swapped."""
    return url_with_args(request.endpoint, **dict(request.view_args or {}, page=page))


# =============================================================================
# Request helpers
# =============================================================================


def per_page() -> int:
    return app.config["FLEET_PAGE_SIZE"]


def page_arg() -> int:
    return request.args.get("page", 1, type=int) or 1


def is_htmx() -> bool:
    return bool(request.headers.get("HX-Request"))


def to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def form_text(name: str) -> str:
    return (request.form.get(name) or "").strip()


def api_call(fn, *args, default=None, **kwargs):
    """
    Call the backend for data to display.

    Failures are logged and flashed and the page renders with ``default``.
    Sign-in and permission failures propagate to the error handlers.
    """
    try:
        return fn(*args, **kwargs)
    except (AuthenticationError, PermissionDenied):
        raise
    except ApiError as e:
        logger.warning("%s failed: %s", getattr(fn, "__name__", fn), e)
        flash(e.message, "error")
        return default


def submit(fn, *args, errors: Optional[List[str]] = None, success: Optional[str] = None, **kwargs) -> bool:
    """Validate, then send a change to the backend; True when it went through."""
    try:
        require_valid(errors or [])
        fn(*args, **kwargs)
    except ValidationError as e:
        for message in e.errors:
            flash(message, "error")
        return False
    except (AuthenticationError, PermissionDenied):
        raise
    except ApiError as e:
        logger.warning("%s failed: %s", getattr(fn, "__name__", fn), e)
        flash(e.message, "error")
        return False
    if success:
        flash(success, "success")
    return True


def csv_response(content: str, filename: str):
    response = make_response(content)
    response.headers["Content-Type"] = "text/csv; charset=utf-8"
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def safe_next(target: Optional[str]) -> Optional[str]:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None


def load_settings() -> SystemSettings:
    settings = api_call(get_api().system_settings, default=SystemSettings())
    session["currency_symbol"] = settings.currency_symbol
    return settings


# =============================================================================
# Errors and sign-in
# =============================================================================


@app.errorhandler(AuthenticationError)
def handle_authentication_error(e):
    sign_out()
    if isinstance(e, SessionExpired):
        flash("Your session has expired. Please sign in again.", "error")
    else:
        flash("Please sign in to continue", "error")
    return redirect(url_for("login"))


@app.errorhandler(PermissionDenied)
def handle_permission_denied(e):
    flash("You don't have permission to perform this action", "error")
    return redirect(url_for("index"))


@app.route("/login", methods=["GET", "POST"])
def login():
    """Sign-in form."""
    next_url = safe_next(request.values.get("next"))
    if request.method == "GET":
        if session.get("token"):
            return redirect(url_for("index"))
        return render_template("login.html", next=next_url or "")

    username = form_text("username")
    password = request.form.get("password") or ""
    remember_me = bool(request.form.get("remember_me"))

    if not username or not password.strip():
        flash("Please enter both username and password", "error")
        return render_template("login.html", username=username, next=next_url or ""), 400

    api = get_api()
    try:
        payload = api.login(username, password, remember_me)
    except ApiError as e:
        logger.warning("Login failed for %s: %s", username, e)
        message = "Unable to connect to server" if e.message == "Network error" else e.message
        flash(message or "Login failed", "error")
        return render_template("login.html", username=username, next=next_url or ""), 401

    sign_in(payload, api.client)
    logger.info("User %s signed in", username)
    flash(f"Welcome back, {current_user_name()}!", "success")
    return redirect(next_url or url_for("index"))


@app.route("/logout", methods=["POST"])
def logout():
    if session.get("token"):
        try:
            get_api().logout()
        except ApiError as e:
            logger.info("Logout call failed: %s", e)
    sign_out()
    flash("You have been signed out", "success")
    return redirect(url_for("login"))


@app.route("/")
@login_required
def index():
    """Home page linking to the sections the user may open."""
    return render_template("index.html")


# =============================================================================
# Inventory
# =============================================================================

INVENTORY_TABS = ("by-size", "store", "candidates", "disposal")


@app.route("/inventory")
@permission_required("inventory.view")
def inventory():
    """Inventory overview: counters, stock by size and tire lists."""
    api = get_api()
    tab = request.args.get("tab", "by-size")
    if tab not in INVENTORY_TABS:
        tab = "by-size"
    search = request.args.get("q", "").strip()
    status = request.args.get("status", "")

    stats = api_call(api.dashboard_stats, default=InventoryStats())
    by_size = api_call(api.inventory_by_size, default=[])
    if search:
        by_size = filter_inventory_by_size(by_size, search)

    tires = []
    if tab == "store":
        tires = api_call(api.store_tires, status or None, default=[])
    elif tab == "candidates":
        tires = api_call(api.retread_candidates, default=[])
    elif tab == "disposal":
        tires = api_call(api.pending_disposal, default=[])

    context = dict(
        stats=stats,
        by_size=by_size,
        tires=paginate(tires, page_arg(), per_page()),
        tab=tab,
        search=search,
        status=status,
        store_statuses=["IN_STORE", "USED_STORE", "AWAITING_RETREAD"],
    )
    if is_htmx():
        return render_template("partials/inventory_table.html", **context)
    return render_template("inventory.html", **context)


@app.route("/inventory/export.csv")
@permission_required("inventory.export")
def inventory_export():
    rows = api_call(get_api().inventory_by_size, default=[])
    search = request.args.get("q", "").strip()
    if search:
        rows = filter_inventory_by_size(rows, search)
    return csv_response(inventory_csv(rows), inventory_csv_filename())


MOVEMENT_WINDOW_DAYS = 30


def _movement_filters() -> dict:
    today = date.today()
    return {
        "start_date": request.args.get("start_date")
        or (today - timedelta(days=MOVEMENT_WINDOW_DAYS)).isoformat(),
        "end_date": request.args.get("end_date") or today.isoformat(),
        "tire_id": request.args.get("tire_id", type=int),
        "size": request.args.get("size", "").strip(),
    }


def _stock_ledger(filters: dict, limit: int) -> List[StockLedgerEntry]:
    movements, _ = api_call(
        get_api().list_movements, page=1, limit=limit, default=([], None), **filters
    )
    entries = stock_ledger(movements)
    return filter_stock_ledger(entries, request.args.get("search", ""))


@app.route("/inventory/movement")
@permission_required("inventory.view")
def inventory_movement():
    """Stock ledger of tire movements in a date window."""
    filters = _movement_filters()
    entries = _stock_ledger(filters, limit=1000)
    load_settings()
    return render_template(
        "inventory_movement.html",
        entries=paginate(entries, page_arg(), per_page()),
        totals=ledger_totals(entries),
        filters=filters,
        search=request.args.get("search", "").strip(),
    )


@app.route("/inventory/movement.csv")
@permission_required("inventory.view")
def inventory_movement_export():
    filters = _movement_filters()
    entries = _stock_ledger(filters, limit=10000)
    return csv_response(
        stock_ledger_csv(entries),
        stock_ledger_csv_filename(filters["start_date"], filters["end_date"]),
    )


# =============================================================================
# Users
# =============================================================================


@app.route("/users")
@permission_required("user.view")
def users():
    api = get_api()
    filters = {
        "search": request.args.get("search", "").strip(),
        "role": request.args.get("role", ""),
        "status": request.args.get("status", ""),
    }
    page = page_arg()
    rows, pagination = api_call(
        api.list_users, page=page, limit=per_page(), default=([], None), **filters
    )
    return render_template(
        "users.html",
        users=page_from_pagination(rows, pagination, page, per_page()),
        roles=api_call(api.role_options, default=[]),
        filters=filters,
    )


def _user_payload(is_new: bool) -> dict:
    payload = {
        "username": form_text("username"),
        "email": form_text("email"),
        "full_name": form_text("full_name"),
        "role_id": to_int(request.form.get("role_id")),
        "department": form_text("department") or None,
        "is_active": request.form.get("is_active") == "on",
    }
    if is_new:
        payload["password"] = request.form.get("password") or ""
    return payload


@app.route("/users/new", methods=["GET", "POST"])
@permission_required("user.edit")
def user_new():
    api = get_api()
    if request.method == "POST":
        payload = _user_payload(is_new=True)
        errors = validate_user_form(
            payload, is_new=True, confirm_password=request.form.get("confirm_password")
        )
        if submit(
            api.create_user,
            payload,
            errors=errors,
            success=f"User {payload['username']} created successfully",
        ):
            return redirect(url_for("users"))
        form = {k: v for k, v in payload.items() if k != "password"}
        return render_template(
            "user_form.html", form=form, roles=api_call(api.role_options, default=[]), is_new=True
        ), 400

    return render_template(
        "user_form.html",
        form={"is_active": True},
        roles=api_call(api.role_options, default=[]),
        is_new=True,
    )


@app.route("/users/<int:user_id>/edit", methods=["GET", "POST"])
@permission_required("user.edit")
def user_edit(user_id: int):
    api = get_api()
    if request.method == "POST":
        payload = _user_payload(is_new=False)
        errors = validate_user_form(payload, is_new=False)
        if submit(
            api.update_user, user_id, payload, errors=errors, success="User updated successfully"
        ):
            return redirect(url_for("users"))
        return render_template(
            "user_form.html",
            form=payload,
            user_id=user_id,
            roles=api_call(api.role_options, default=[]),
            is_new=False,
        ), 400

    user = api_call(api.get_user, user_id)
    if user is None:
        return redirect(url_for("users"))
    form = {
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "role_id": user.role_id,
        "department": user.department,
        "is_active": user.is_active,
    }
    return render_template(
        "user_form.html",
        form=form,
        user_id=user_id,
        roles=api_call(api.role_options, default=[]),
        is_new=False,
    )


@app.route("/users/<int:user_id>/status", methods=["POST"])
@permission_required("user.edit")
def user_toggle_status(user_id: int):
    activate = request.form.get("activate") == "1"
    submit(
        get_api().update_user,
        user_id,
        {"is_active": activate},
        success="User activated" if activate else "User deactivated",
    )
    return redirect(url_for("users", **request.args))


@app.route("/users/<int:user_id>/delete", methods=["POST"])
@permission_required("user.edit")
def user_delete(user_id: int):
    if user_id == current_user().get("id"):
        flash("You cannot delete your own account", "error")
    else:
        submit(get_api().delete_user, user_id, success="User deleted successfully")
    return redirect(url_for("users"))


@app.route("/users/<int:user_id>/logout", methods=["POST"])
@permission_required("user.edit")
def user_force_logout(user_id: int):
    submit(get_api().force_logout, user_id, success="User has been logged out of all sessions")
    return redirect(url_for("users"))


@app.route("/users/<int:user_id>/password", methods=["POST"])
@permission_required("user.edit")
def user_set_password(user_id: int):
    new_password = request.form.get("new_password") or ""
    confirm_password = request.form.get("confirm_password") or ""
    submit(
        get_api().set_user_password,
        user_id,
        new_password,
        confirm_password,
        errors=validate_password_reset(new_password, confirm_password),
        success="Password changed successfully",
    )
    return redirect(url_for("users"))


# =============================================================================
# Profile
# =============================================================================


def _session_profile() -> User:
    """The signed-in user as stored at sign-in, for when the profile call fails."""
    user = current_user()
    return User(
        id=user.get("id") or 0,
        username=user.get("username", ""),
        email=user.get("email", ""),
        full_name=user.get("full_name") or user.get("username", ""),
        role_name=user.get("role_name") or "User",
    )


@app.route("/profile", methods=["GET", "POST"])
@login_required
def profile():
    """The signed-in user's details, devices and recent activity."""
    api = get_api()
    status = 200
    if request.method == "POST":
        payload = {
            "full_name": form_text("full_name"),
            "email": form_text("email"),
            "department": form_text("department") or None,
        }
        if submit(
            api.update_profile,
            payload,
            errors=validate_profile(payload),
            success="Profile updated successfully",
        ):
            session["user"] = dict(current_user(), full_name=payload["full_name"], email=payload["email"])
            return redirect(url_for("profile"))
        status = 400

    try:
        user, _ = api.get_profile()
    except (AuthenticationError, PermissionDenied):
        raise
    except ApiError as e:
        logger.warning("Profile unavailable, using the signed-in user: %s", e)
        user = _session_profile()

    user_id = current_user().get("id")
    sessions, activities = [], []
    if user_id:
        sessions = api_call(api.user_sessions, user_id, default=[])
        activities = api_call(api.user_activity, user_id, default=[])
    return render_template(
        "profile.html",
        user=user,
        form=request.form if request.method == "POST" else None,
        sessions=sessions,
        activities=activities,
    ), status


@app.route("/profile/password", methods=["POST"])
@login_required
def profile_password():
    current_password = request.form.get("current_password") or ""
    new_password = request.form.get("new_password") or ""
    confirm_password = request.form.get("confirm_password") or ""
    errors = validate_password_change(current_password, new_password, confirm_password)
    if errors:
        for message in errors:
            flash(message, "error")
        return redirect(url_for("profile"))

    try:
        get_api().change_password(current_password, new_password, confirm_password)
    except (AuthenticationError, PermissionDenied):
        raise
    except ApiError as e:
        logger.warning("Password change failed: %s", e)
        if "Current password is incorrect" in (e.message or ""):
            flash("Incorrect current password", "error")
        else:
            flash(e.message or "Unable to change password", "error")
        return redirect(url_for("profile"))
    flash("Password changed successfully", "success")
    return redirect(url_for("profile"))


@app.route("/profile/sessions/logout", methods=["POST"])
@login_required
def profile_logout_devices():
    user_id = current_user().get("id")
    if user_id:
        submit(get_api().force_logout, user_id, success="Logged out from all other devices")
    return redirect(url_for("profile"))


@app.route("/profile/permissions", methods=["POST"])
@login_required
def profile_refresh_permissions():
    """Reload permissions for the current token; an invalid token signs the user out."""
    result = api_call(get_api().validate_token, default=None)
    if result is None:
        return redirect(url_for("profile"))
    if not result.get("valid"):
        sign_out()
        flash("Your session has expired. Please sign in again.", "error")
        return redirect(url_for("login"))
    if result.get("permissions"):
        store_permissions(result["permissions"])
    flash("Permissions refreshed", "success")
    return redirect(url_for("profile"))


# =============================================================================
# Roles
# =============================================================================


@app.route("/roles")
@permission_required("role.view")
def roles():
    search = request.args.get("search", "").strip()
    rows = api_call(get_api().list_roles, default=[])
    if search:
        rows = filter_roles(rows, search)
    return render_template("roles.html", roles=rows, search=search)


@app.route("/roles/<int:role_id>")
@permission_required("role.view")
def role_detail(role_id: int):
    role = api_call(get_api().get_role, role_id)
    if role is None:
        return redirect(url_for("roles"))
    by_category = {}
    for perm in sorted(role.permissions, key=lambda p: p.code):
        by_category.setdefault(perm.category or "Other", []).append(perm)
    return render_template(
        "role_detail.html",
        role=role,
        by_category=dict(sorted(by_category.items())),
        summary=role.permission_summary(),
        actions=ACTIONS,
    )


def _role_selections(permissions) -> List[RolePermission]:
    """Read the permission matrix checkboxes (perm-<id>-<action>)."""
    selections = []
    for perm in permissions:
        selection = RolePermission(
            permission_id=perm.id, code=perm.code, name=perm.name, category=perm.category
        )
        for action in ACTIONS:
            setattr(selection, f"can_{action}", f"perm-{perm.id}-{action}" in request.form)
        selections.append(selection)
    return selections


def _role_form(role_id: Optional[int]):
    api = get_api()
    permissions = api_call(api.all_permissions, default=[])

    if request.method == "POST":
        selections = _role_selections(permissions)
        payload = {
            "name": form_text("name"),
            "description": form_text("description") or None,
            "permissions": [s.to_payload() for s in selections if s.any_granted],
        }
        errors = validate_role_form(payload)
        if role_id is None:
            ok = submit(api.create_role, payload, errors=errors, success="Role created successfully")
        else:
            ok = submit(
                api.update_role, role_id, payload, errors=errors, success="Role updated successfully"
            )
        if ok:
            return redirect(url_for("roles"))
        status = 400
        form = {"name": payload["name"], "description": payload["description"]}
    else:
        status = 200
        selections = []
        form = {}
        if role_id is not None:
            role = api_call(api.get_role, role_id)
            if role is None:
                return redirect(url_for("roles"))
            form = {"name": role.name, "description": role.description}
            selections = role.permissions

    granted = {s.permission_id: s for s in selections}
    return render_template(
        "role_form.html",
        form=form,
        role_id=role_id,
        groups=group_by_category(permissions),
        granted=granted,
        selected_count=count_selected(selections),
        actions=ACTIONS,
    ), status


@app.route("/roles/new", methods=["GET", "POST"])
@permission_required("role.edit")
def role_new():
    return _role_form(None)


@app.route("/roles/<int:role_id>/edit", methods=["GET", "POST"])
@permission_required("role.edit")
def role_edit(role_id: int):
    return _role_form(role_id)


@app.route("/roles/<int:role_id>/delete", methods=["POST"])
@permission_required("role.edit")
def role_delete(role_id: int):
    submit(get_api().delete_role, role_id, success="Role deleted successfully")
    return redirect(url_for("roles"))


# =============================================================================
# Suppliers
# =============================================================================


@app.route("/suppliers")
@permission_required("supplier.view")
def suppliers():
    supplier_type = request.args.get("type", "")
    rows = api_call(get_api().list_suppliers, supplier_type or None, default=[])
    load_settings()
    return render_template(
        "suppliers.html",
        suppliers=paginate(rows, page_arg(), per_page()),
        supplier_type=supplier_type,
        supplier_types=[t.value for t in SupplierType],
        total_balance=sum(s.balance for s in rows),
    )


@app.route("/suppliers/new", methods=["GET", "POST"])
@permission_required("supplier.create")
def supplier_new():
    form = {"type": SupplierType.TIRE_SUPPLIER.value}
    status = 200
    if request.method == "POST":
        form = {
            "name": form_text("name"),
            "type": form_text("type"),
            "contact_person": form_text("contact_person") or None,
            "phone": form_text("phone") or None,
            "email": form_text("email") or None,
            "address": form_text("address") or None,
        }
        if submit(
            get_api().create_supplier,
            form,
            errors=validate_supplier(form),
            success=f"{form['name']} has been added to your suppliers list",
        ):
            return redirect(url_for("suppliers"))
        status = 400
    return render_template(
        "supplier_form.html", form=form, supplier_types=[t.value for t in SupplierType]
    ), status


def _ledger_rows(supplier):
    return ledger_display(
        supplier.ledger,
        start_date=request.args.get("from") or None,
        end_date=request.args.get("to") or None,
        ascending=request.args.get("order", "asc") != "desc",
    )


@app.route("/suppliers/<int:supplier_id>/ledger")
@permission_required("supplier.view")
def supplier_ledger(supplier_id: int):
    """Supplier account statement with date filters and running balances."""
    supplier = api_call(get_api().get_supplier, supplier_id)
    if supplier is None:
        return redirect(url_for("suppliers"))
    load_settings()

    rows = _ledger_rows(supplier)
    full = chronological_balances(supplier.ledger)
    return render_template(
        "supplier_ledger.html",
        supplier=supplier,
        rows=paginate(rows, page_arg(), per_page()),
        total_debit=sum(r.debit for r in rows),
        total_credit=sum(r.credit for r in rows),
        closing_balance=full[-1].running_balance if full else 0.0,
        due_date=payment_due_date(date.today(), supplier.payment_term_days),
        filters={
            "from": request.args.get("from", ""),
            "to": request.args.get("to", ""),
            "order": request.args.get("order", "asc"),
        },
    )


@app.route("/suppliers/<int:supplier_id>/ledger.csv")
@permission_required("supplier.view")
def supplier_ledger_export(supplier_id: int):
    supplier = api_call(get_api().get_supplier, supplier_id)
    if supplier is None:
        return redirect(url_for("suppliers"))
    return csv_response(ledger_csv(_ledger_rows(supplier)), ledger_csv_filename(supplier.name))


@app.route("/suppliers/<int:supplier_id>/payment", methods=["GET", "POST"])
@permission_required("accounting.create")
def supplier_payment(supplier_id: int):
    api = get_api()
    supplier = api_call(api.get_supplier, supplier_id)
    if supplier is None:
        return redirect(url_for("suppliers"))
    load_settings()

    form = {"date": date.today().isoformat(), "amount": ""}
    status = 200
    if request.method == "POST":
        amount = to_float(request.form.get("amount"))
        form = {
            "amount": amount if amount is not None else 0,
            "date": form_text("date"),
            "reference_number": form_text("reference_number") or None,
            "description": form_text("description") or None,
            "payment_method": form_text("payment_method") or None,
        }
        payload = dict(
            form,
            created_by=current_user().get("id"),
            created_by_name=current_user_name(),
        )
        if submit(
            api.record_payment,
            supplier_id,
            payload,
            errors=validate_payment(form),
            success=f"Payment of {money(form['amount'])} to {supplier.name} has been recorded",
        ):
            return redirect(url_for("supplier_ledger", supplier_id=supplier_id))
        status = 400

    amount = to_float(form.get("amount")) or 0.0
    return render_template(
        "supplier_payment.html",
        supplier=supplier,
        form=form,
        balance_after=balance_after_payment(supplier.balance, amount),
    ), status


@app.route("/suppliers/<int:supplier_id>/payment/preview")
@permission_required("accounting.create")
def supplier_payment_preview(supplier_id: int):
    """HTMX partial: balance after the amount being typed."""
    supplier = api_call(get_api().get_supplier, supplier_id)
    balance = supplier.balance if supplier else 0.0
    amount = request.args.get("amount", 0.0, type=float) or 0.0
    return render_template(
        "partials/balance_after.html", balance_after=balance_after_payment(balance, amount)
    )


# =============================================================================
# Purchase orders
# =============================================================================


@app.route("/purchases")
@login_required
def purchases():
    status = request.args.get("status", "")
    search = request.args.get("search", "").strip()
    page = page_arg()
    rows, pagination = api_call(
        get_api().list_purchase_orders,
        page=page,
        limit=per_page(),
        status=status,
        search=search,
        default=([], None),
    )
    load_settings()
    return render_template(
        "purchases.html",
        orders=page_from_pagination(rows, pagination, page, per_page()),
        status=status,
        search=search,
        statuses=[s.value for s in PurchaseOrderStatus],
    )


def _order_lines(rate: float):
    """Priced lines from the form's size[]/quantity[]/price[] rows; blank rows skipped."""
    sizes = request.form.getlist("size")
    quantities = request.form.getlist("quantity")
    prices = request.form.getlist("price")
    items, lines = [], []
    for size, quantity, price in zip(sizes, quantities, prices):
        size = size.strip()
        if not (size or quantity.strip() or price.strip()):
            continue
        qty = to_int(quantity)
        unit_price = to_float(price)
        items.append({"tire_size": size, "quantity": qty, "unit_price": unit_price})
        lines.append(calculate_line(size, qty or 0, unit_price or 0.0, rate))
    return items, lines


def _purchase_context():
    api = get_api()
    settings = load_settings()
    rates = [r for r in api_call(api.tax_rates, default=[]) if r.is_active]
    selected = find_rate(rates, request.form.get("tax_rate_id")) or find_default_rate(rates)
    vat_percent = resolve_vat_rate(selected, settings)
    return settings, rates, selected, vat_percent


@app.route("/purchases/new", methods=["GET", "POST"])
@permission_required("po.create")
def purchase_new():
    """New purchase form with VAT-inclusive prices and live totals."""
    api = get_api()
    settings, rates, selected, vat_percent = _purchase_context()
    rate = vat_percent / 100
    items, lines = _order_lines(rate)
    shipping = to_float(request.form.get("shipping_amount")) or 0.0
    totals = calculate_order_totals(lines, rate, shipping)

    form = {
        "supplier_id": request.form.get("supplier_id", ""),
        "po_date": request.form.get("po_date") or date.today().isoformat(),
        "expected_delivery_date": request.form.get("expected_delivery_date", ""),
        "status": request.form.get("status", PurchaseOrderStatus.DRAFT.value),
        "notes": request.form.get("notes", ""),
        "terms": request.form.get("terms", ""),
        "shipping_address": request.form.get("shipping_address", ""),
        "billing_address": request.form.get("billing_address", ""),
        "shipping_amount": shipping,
        "tax_rate_id": str(selected.id) if selected else "",
    }

    action = request.form.get("action", "")
    status = 200
    if request.method == "POST" and action in ("create", "draft"):
        payload = {
            "supplier_id": to_int(form["supplier_id"]),
            "po_date": form["po_date"],
            "expected_delivery_date": form["expected_delivery_date"] or None,
            "status": "DRAFT" if action == "draft" else form["status"],
            "notes": form["notes"] or None,
            "terms": form["terms"] or None,
            "shipping_address": form["shipping_address"] or None,
            "billing_address": form["billing_address"] or None,
            "shipping_amount": shipping,
            "tax_rate_id": selected.id if selected else None,
            "tax_rate": vat_percent,
            "tax_name": selected.name if selected else "VAT",
            "created_by": current_user().get("id"),
            "total_amount": totals.subtotal_excluding_vat,
            "items": [
                dict(item, line_total=line.line_total_including_vat, received_quantity=0)
                for item, line in zip(items, lines)
            ],
        }
        success = (
            "Purchase order saved as draft" if action == "draft"
            else "Purchase order created successfully"
        )
        if submit(
            api.create_purchase_order,
            payload,
            errors=validate_purchase_order(payload),
            success=success,
        ):
            return redirect(url_for("purchases"))
        status = 400

    context = dict(totals=totals, lines=lines, settings=settings)
    if is_htmx():
        return render_template("partials/po_totals.html", **context)

    suppliers = api_call(api.list_suppliers, default=[])
    if not suppliers:
        flash("No suppliers found. Please add suppliers first.", "warning")
    return render_template(
        "purchase_new.html",
        form=form,
        suppliers=suppliers,
        sizes=api.tire_sizes(),
        rates=rates,
        statuses=["DRAFT", "PENDING", "APPROVED", "ORDERED"],
        **context,
    ), status


@app.route("/purchases/<int:po_id>")
@login_required
def purchase_detail(po_id: int):
    order = api_call(get_api().get_purchase_order, po_id)
    if order is None:
        return redirect(url_for("purchases"))
    load_settings()
    return render_template(
        "purchase_detail.html", order=order, can_receive=order.status not in CLOSED_PO_STATUSES
    )


@app.route("/purchases/<int:po_id>/print")
@login_required
def purchase_print(po_id: int):
    order = api_call(get_api().get_purchase_order, po_id)
    if order is None:
        return redirect(url_for("purchases"))
    return render_template(
        "print/purchase_order.html",
        order=order,
        settings=load_settings(),
        printed_at=format_date(datetime.now(), with_time=True),
    )


def _receiving_lines(order, fill_remaining: bool = False) -> List[ReceivingLine]:
    lines = []
    for item in order.items:
        if item.remaining_quantity <= 0:
            continue
        key = item.id
        receive = item.remaining_quantity if fill_remaining else (
            to_int(request.form.get(f"receive-{key}")) or 0
        )
        serials = (request.form.get(f"serials-{key}") or "").splitlines()
        lines.append(
            ReceivingLine(
                po_item_id=item.id,
                size=item.size,
                ordered_quantity=item.quantity,
                previously_received=item.received_quantity,
                unit_price=item.unit_price,
                current_receive=receive,
                brand=request.form.get(f"brand-{key}") or item.brand or "",
                batch_number=form_text(f"batch-{key}"),
                condition=request.form.get(f"condition-{key}") or ReceiveCondition.GOOD.value,
                notes=form_text(f"notes-{key}"),
                serial_numbers=serials,
            )
        )
    return lines


@app.route("/purchases/<int:po_id>/receive", methods=["GET", "POST"])
@permission_required("po.receive")
def purchase_receive(po_id: int):
    """Goods received note against a purchase order."""
    api = get_api()
    order = api_call(api.get_purchase_order, po_id)
    if order is None:
        return redirect(url_for("purchases"))
    if order.status in CLOSED_PO_STATUSES:
        flash("This purchase order has been fully received", "info")
        return redirect(url_for("purchase_detail", po_id=po_id))
    load_settings()

    action = request.form.get("action", "")
    lines = _receiving_lines(order, fill_remaining=action == "fill")
    receipt = {
        "receipt_date": request.form.get("receipt_date") or date.today().isoformat(),
        "supplier_invoice_number": form_text("supplier_invoice_number") or None,
        "delivery_note_number": form_text("delivery_note_number") or None,
        "vehicle_number": form_text("vehicle_number") or None,
        "driver_name": form_text("driver_name") or None,
        "notes": form_text("notes") or None,
        "inspection_notes": form_text("inspection_notes") or None,
    }

    status = 200
    if request.method == "POST" and action == "fill":
        flash("All remaining quantities filled. Please enter serial numbers and brands.", "info")
    elif request.method == "POST":
        receipt["receipt_date"] = request.form.get("receipt_date") or ""
        payload = dict(
            receipt,
            po_id=po_id,
            received_by=current_user().get("id"),
            received_by_name=current_user_name(),
            items=[line.to_payload() for line in lines if line.current_receive > 0],
        )
        if submit(
            api.receive_goods,
            payload,
            errors=validate_receiving(lines, receipt["receipt_date"]),
            success="Goods received successfully",
        ):
            return redirect(url_for("purchase_detail", po_id=po_id))
        status = 400

    return render_template(
        "purchase_receive.html",
        order=order,
        lines=lines,
        receipt=receipt,
        conditions=[c.value for c in ReceiveCondition],
        total_value=sum(line.current_receive * line.unit_price for line in lines),
    ), status


# =============================================================================
# Goods received notes
# =============================================================================


def _grn_filters() -> dict:
    return {
        "search": request.args.get("search", "").strip(),
        "status": request.args.get("status", ""),
        "start_date": request.args.get("start_date", ""),
        "end_date": request.args.get("end_date", ""),
    }


GRN_PAGE_SIZE = 20


@app.route("/grns")
@login_required
def grns():
    filters = _grn_filters()
    page = page_arg()
    notes, pagination = api_call(
        get_api().list_grns, page=page, limit=GRN_PAGE_SIZE, default=([], None), **filters
    )
    load_settings()
    return render_template(
        "grns.html",
        notes=page_from_pagination(notes, pagination, page, GRN_PAGE_SIZE),
        filters=filters,
        statuses=[s.value for s in GrnStatus],
    )


@app.route("/grns/export.csv")
@login_required
def grns_export():
    notes, _ = api_call(
        get_api().list_grns, page=1, limit=1000, default=([], None), **_grn_filters()
    )
    try:
        content = grn_csv(notes)
    except ValidationError as e:
        flash(e.message, "error")
        return redirect(url_with_args("grns"))
    return csv_response(content, grn_csv_filename())


@app.route("/grns/<int:grn_id>")
@login_required
def grn_detail(grn_id: int):
    note = api_call(get_api().get_grn, grn_id)
    if note is None:
        return redirect(url_for("grns"))
    load_settings()
    return render_template("grn_detail.html", note=note)


# =============================================================================
# Vehicles
# =============================================================================


@app.route("/vehicles")
@login_required
def vehicles():
    """Active or retired vehicles with search and wheel configuration filter."""
    retired = request.args.get("view") == "retired"
    status = "RETIRED" if retired else request.args.get("status", "ACTIVE")
    search = request.args.get("search", "").strip()
    wheel_config = request.args.get("wheel_config", "")
    page = page_arg()
    rows, pagination = api_call(
        get_api().list_vehicles,
        page=page,
        limit=per_page(),
        status=status,
        search=search,
        wheel_config=wheel_config,
        default=([], None),
    )
    return render_template(
        "vehicles.html",
        vehicles=page_from_pagination(rows, pagination, page, per_page()),
        retired=retired,
        status=status,
        search=search,
        wheel_config=wheel_config,
        wheel_configs=[w.value for w in WheelConfig],
        statuses=[s.value for s in VehicleStatus if s != VehicleStatus.RETIRED],
    )


def _vehicle_payload() -> dict:
    year = form_text("year")
    odometer = to_float(request.form.get("current_odometer"))
    return {
        "vehicle_number": form_text("vehicle_number"),
        "make": form_text("make"),
        "model": form_text("model"),
        "year": to_int(year) if year else None,
        "wheel_config": form_text("wheel_config") or None,
        "current_odometer": odometer if odometer is not None else 0,
        "status": form_text("status") or VehicleStatus.ACTIVE.value,
    }


@app.route("/vehicles/new", methods=["GET", "POST"])
@permission_required("vehicle.create")
def vehicle_new():
    form = {"status": VehicleStatus.ACTIVE.value, "wheel_config": WheelConfig.SIX_BY_FOUR.value}
    status = 200
    if request.method == "POST":
        form = _vehicle_payload()
        payload = dict(form, created_by=current_user().get("id"))
        if submit(
            get_api().create_vehicle,
            payload,
            errors=validate_vehicle(form),
            success=f"{form['vehicle_number']} has been added to your fleet",
        ):
            return redirect(url_for("vehicles"))
        status = 400
    return render_template(
        "vehicle_form.html",
        form=form,
        vehicle_id=None,
        wheel_configs=[w.value for w in WheelConfig],
        statuses=[s.value for s in VehicleStatus if s != VehicleStatus.RETIRED],
    ), status


@app.route("/vehicles/<int:vehicle_id>/edit", methods=["GET", "POST"])
@permission_required("vehicle.edit")
def vehicle_edit(vehicle_id: int):
    api = get_api()
    status = 200
    if request.method == "POST":
        form = _vehicle_payload()
        if submit(
            api.update_vehicle,
            vehicle_id,
            form,
            errors=validate_vehicle(form),
            success="Vehicle updated successfully",
        ):
            return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))
        status = 400
    else:
        vehicle = api_call(api.get_vehicle, vehicle_id)
        if vehicle is None:
            return redirect(url_for("vehicles"))
        form = {
            "vehicle_number": vehicle.vehicle_number,
            "make": vehicle.make,
            "model": vehicle.model,
            "year": vehicle.year,
            "wheel_config": vehicle.wheel_config,
            "current_odometer": vehicle.current_odometer,
            "status": vehicle.status,
        }
    return render_template(
        "vehicle_form.html",
        form=form,
        vehicle_id=vehicle_id,
        wheel_configs=[w.value for w in WheelConfig],
        statuses=[s.value for s in VehicleStatus if s != VehicleStatus.RETIRED],
    ), status


@app.route("/vehicles/<int:vehicle_id>")
@login_required
def vehicle_detail(vehicle_id: int):
    vehicle = api_call(get_api().get_vehicle, vehicle_id)
    if vehicle is None:
        flash(f"Vehicle '{vehicle_id}' not found", "error")
        return redirect(url_for("vehicles"))
    return render_template(
        "vehicle_detail.html",
        vehicle=vehicle,
        current_tires=vehicle.current_tires,
        recent=vehicle.get_history_sorted(sort_by="date", reverse=True)[:5],
        retirement_reasons=RETIREMENT_REASONS,
    )


@app.route("/vehicles/<int:vehicle_id>/retire", methods=["POST"])
@permission_required("vehicle.edit")
def vehicle_retire(vehicle_id: int):
    form = {"reason": form_text("reason"), "notes": form_text("notes") or None}
    payload = dict(form, retired_by=current_user_name())
    submit(
        get_api().retire_vehicle,
        vehicle_id,
        payload,
        errors=validate_retirement(form),
        success="Vehicle retired successfully",
    )
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))


@app.route("/vehicles/<int:vehicle_id>/restore", methods=["POST"])
@permission_required("vehicle.edit")
def vehicle_restore(vehicle_id: int):
    submit(
        get_api().restore_vehicle,
        vehicle_id,
        current_user_name(),
        success="Vehicle restored successfully",
    )
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))


@app.route("/vehicles/<int:vehicle_id>/odometer", methods=["POST"])
@permission_required("vehicle.edit")
def vehicle_odometer(vehicle_id: int):
    odometer = to_float(request.form.get("odometer"))
    if odometer is None or odometer < 0:
        flash("Invalid odometer value", "error")
    else:
        submit(
            get_api().update_odometer,
            vehicle_id,
            odometer,
            success=f"Updated odometer to {format_km(odometer)}",
        )
    return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))


def _history_filter() -> HistoryFilter:
    return HistoryFilter(
        search=request.args.get("search", "").strip(),
        tire_type=request.args.get("type", "all").lower(),
        position=request.args.get("position", "all"),
        status=request.args.get("status", "all"),
    )


def _history_sort():
    """(sort key, descending) from the query string; latest install first by default."""
    sort_by = request.args.get("sort", "date")
    if sort_by not in HISTORY_SORT_KEYS:
        sort_by = "date"
    return sort_by, request.args.get("order", "desc") != "asc"


@app.route("/vehicles/<int:vehicle_id>/history")
@login_required
def vehicle_history(vehicle_id: int):
    """Tire installation history with search, filters and pagination."""
    vehicle = api_call(get_api().get_vehicle, vehicle_id)
    if vehicle is None:
        flash(f"Vehicle '{vehicle_id}' not found", "error")
        return redirect(url_for("vehicles"))

    sort_by, descending = _history_sort()
    records = vehicle.get_history_sorted(sort_by=sort_by, reverse=descending)
    history_filter = _history_filter()
    filtered = filter_history(records, history_filter)

    context = dict(
        vehicle=vehicle,
        history=paginate(filtered, page_arg(), per_page()),
        history_filter=history_filter,
        positions=unique_positions(records),
        types=unique_types(records),
        total_records=len(records),
        sort_by=sort_by,
        descending=descending,
        duration=service_duration_label,
        mileage=service_mileage_label,
    )
    if is_htmx():
        return render_template("partials/history_table.html", **context)
    return render_template("vehicle_history.html", **context)


@app.route("/vehicles/<int:vehicle_id>/history.csv")
@login_required
def vehicle_history_export(vehicle_id: int):
    vehicle = api_call(get_api().get_vehicle, vehicle_id)
    if vehicle is None:
        return redirect(url_for("vehicles"))
    sort_by, descending = _history_sort()
    records = vehicle.get_history_sorted(sort_by=sort_by, reverse=descending)
    filtered = filter_history(records, _history_filter())
    return csv_response(history_csv(filtered), history_csv_filename(vehicle.vehicle_number))


SERVICE_OPERATIONS = ("install", "remove", "swap")


def _service_operation(vehicle, operation: str) -> ServiceOperation:
    """Build the tire-service call for the submitted form; raises ValidationError."""
    common = dict(
        reason=form_text("reason"),
        notes=form_text("notes"),
        performed_by=current_user_name(),
    )
    if operation == "install":
        installations = [
            (to_int(request.form.get(f"install-{p.position_code}")), p.position_code)
            for p in vehicle.free_positions
        ]
        return install_operation(vehicle, installations, **common)
    if operation == "remove":
        return removal_operation(vehicle, request.form.getlist("remove"), **common)
    return swap_operation(
        vehicle,
        request.form.get("from_position", ""),
        request.form.get("to_position", ""),
        **common,
    )


@app.route("/vehicles/<int:vehicle_id>/service", methods=["GET", "POST"])
@permission_required("tire.assign", "create")
def vehicle_service(vehicle_id: int):
    """Fit, remove or swap tires on one vehicle."""
    api = get_api()
    vehicle = api_call(api.get_vehicle, vehicle_id)
    if vehicle is None:
        flash(f"Vehicle '{vehicle_id}' not found", "error")
        return redirect(url_for("vehicles"))

    operation = request.values.get("operation", "install")
    if operation not in SERVICE_OPERATIONS:
        operation = "install"

    status = 200
    if request.method == "POST":
        messages = {
            "install": "Tires installed successfully",
            "remove": "Tires removed successfully",
            "swap": "Tires swapped successfully",
        }
        try:
            service = _service_operation(vehicle, operation)
        except ValidationError as e:
            for message in e.errors:
                flash(message, "error")
            service = None
        if service is not None and submit(api.tire_service, service, success=messages[operation]):
            return redirect(url_for("vehicle_detail", vehicle_id=vehicle_id))
        status = 400

    return render_template(
        "vehicle_service.html",
        vehicle=vehicle,
        operation=operation,
        current_tires=vehicle.current_tires,
        free_positions=vehicle.free_positions,
        tires=api_call(api.available_tires, default=[]) if operation == "install" else [],
        form=request.form,
    ), status


# =============================================================================
# Retreads
# =============================================================================


def _retread_filters() -> dict:
    return {
        "status": request.args.get("status", ""),
        "supplier_id": request.args.get("supplier_id", type=int),
        "search": request.args.get("search", "").strip(),
        "sort_by": request.args.get("sort_by", "created_at"),
        "sort_order": request.args.get("sort_order", "desc"),
    }


@app.route("/retreads")
@login_required
def retreads():
    """Retread orders with filters and header counters."""
    api = get_api()
    filters = _retread_filters()
    page = page_arg()
    orders, pagination = api_call(
        api.list_retread_orders, page=page, limit=per_page(), default=([], None), **filters
    )
    pager = page_from_pagination(orders, pagination, page, per_page())
    load_settings()
    return render_template(
        "retreads.html",
        orders=pager,
        stats=retread_order_stats(orders, total=pager.total),
        filters=filters,
        suppliers=api_call(api.list_suppliers, SupplierType.RETREAD_SUPPLIER.value, default=[]),
        statuses=[s.value for s in RetreadOrderStatus],
    )


@app.route("/retreads/export.csv")
@login_required
def retreads_export():
    orders, _ = api_call(
        get_api().list_retread_orders, page=1, limit=1000, default=([], None), **_retread_filters()
    )
    try:
        content = retread_orders_csv(orders)
    except ValidationError as e:
        flash(e.message, "error")
        return redirect(url_for("retreads"))
    return csv_response(content, retread_orders_csv_filename())


@app.route("/retreads/<int:order_id>/<action>", methods=["POST"])
@permission_required("tire.retread")
def retread_order_action(order_id: int, action: str):
    api = get_api()
    user_id = current_user().get("id")
    actions = {
        "send": (api.send_retread_order, "Order sent to supplier"),
        "cancel": (api.cancel_retread_order, "Order cancelled"),
        "duplicate": (api.duplicate_retread_order, "Order duplicated"),
    }
    if action == "delete":
        submit(api.delete_retread_order, order_id, success="Order deleted")
    elif action in actions:
        fn, message = actions[action]
        submit(fn, order_id, user_id, success=message)
    else:
        flash(f"Unknown action '{action}'", "error")
    return redirect(url_for("retreads"))


@app.route("/retreads/<int:order_id>/print")
@login_required
def retread_print(order_id: int):
    order = api_call(get_api().get_retread_order, order_id)
    if order is None:
        return redirect(url_for("retreads"))
    return render_template(
        "print/retread_order.html",
        order=order,
        settings=load_settings(),
        printed_at=format_date(datetime.now(), with_time=True),
    )


@app.route("/retreads/<int:order_id>")
@login_required
def retread_detail(order_id: int):
    order = api_call(get_api().get_retread_order, order_id)
    if order is None:
        return redirect(url_for("retreads"))
    load_settings()
    return render_template("retread_detail.html", order=order)


def _apply_receipt_form(receipt: RetreadReceipt) -> None:
    """Copy the per-casing choices of the receive form onto the receipt lines."""
    for line in receipt.lines:
        key = line.tire_id
        line.status = request.form.get(f"status-{key}") or line.status
        line.quality = request.form.get(f"quality-{key}") or line.quality
        if f"depth-{key}" in request.form:
            line.received_depth = to_float(request.form.get(f"depth-{key}"))
        if f"cost-{key}" in request.form:
            line.cost = to_float(request.form.get(f"cost-{key}"))
        line.notes = form_text(f"notes-{key}")


def _post_retread_grn(api, receipt: RetreadReceipt, received_date: str) -> None:
    """Record a goods received note for the accepted casings; failures only warn."""
    grn_number = api.generate_grn_number()
    payload = build_retread_grn(
        receipt,
        grn_number,
        received_date,
        current_user().get("id"),
        notes=form_text("grn_notes") or None,
        delivery_note_number=form_text("delivery_note_number"),
        vehicle_number=form_text("vehicle_number"),
        driver_name=form_text("driver_name"),
    )
    try:
        result = api.receive_goods(payload)
    except (AuthenticationError, PermissionDenied):
        raise
    except ApiError as e:
        logger.warning("GRN for retread order %s failed: %s", receipt.order_number, e)
        flash(f"Order received but GRN creation failed: {e.message}", "warning")
        return
    data = result.get("data") if isinstance(result, dict) else None
    number = (data or {}).get("grn_number") or grn_number
    flash(f"GRN #{number} created successfully", "success")


@app.route("/retreads/<int:order_id>/receive", methods=["GET", "POST"])
@permission_required("tire.retread")
def retread_receive(order_id: int):
    """Mark each casing of an order received or rejected and book them into stock."""
    api = get_api()
    receipt = api_call(api.get_retread_receipt, order_id)
    if receipt is None:
        return redirect(url_for("retreads"))
    load_settings()

    received_date = request.form.get("received_date") or date.today().isoformat()
    status = 200
    if request.method == "POST":
        _apply_receipt_form(receipt)
        received_date = request.form.get("received_date") or ""
        payload = receipt.to_receive_payload(
            received_date, form_text("notes"), current_user().get("id")
        )
        received = False
        try:
            require_valid(validate_retread_receipt(receipt, received_date))
            result = api.receive_retread_order(order_id, payload)
            received = True
        except ValidationError as e:
            for message in e.errors:
                flash(message, "error")
        except (AuthenticationError, PermissionDenied):
            raise
        except ApiError as e:
            logger.warning("Receiving retread order %s failed: %s", order_id, e)
            flash(e.message or "Failed to process receipt", "error")

        if received:
            if receipt.received:
                _post_retread_grn(api, receipt, received_date)
            message = result.get("message") if isinstance(result, dict) else None
            flash(message or "Order received successfully", "success")
            return redirect(url_for("retread_detail", order_id=order_id))
        status = 400

    return render_template(
        "retread_receive.html",
        receipt=receipt,
        received_date=received_date,
        statuses=[s.value for s in RetreadReceiptStatus],
        qualities=[q.value for q in RetreadQuality],
        form=request.form,
    ), status


@app.route("/retreads/send", methods=["GET", "POST"])
@permission_required("tire.retread")
def retread_send():
    """Send a batch of casings to a retread supplier."""
    api = get_api()
    tire_ids = [i for i in (to_int(v) for v in request.form.getlist("tire_ids")) if i is not None]
    form = {
        "supplier_id": request.form.get("supplier_id", ""),
        "send_date": request.form.get("send_date") or date.today().isoformat(),
        "expected_cost": request.form.get("expected_cost", ""),
        "notes": request.form.get("notes", ""),
    }
    per_tire = to_float(form["expected_cost"]) or 0.0

    status = 200
    if request.method == "POST" and request.form.get("action") != "preview":
        payload = {
            "tire_ids": tire_ids,
            "supplier_id": to_int(form["supplier_id"]),
            "send_date": form["send_date"],
            "expected_cost": to_float(form["expected_cost"]),
            "user_id": current_user().get("id"),
            "user_name": current_user_name(),
            "notes": form["notes"],
        }
        if submit(
            api.send_retread_batch,
            payload,
            errors=validate_retread_send(payload),
            success=f"{len(tire_ids)} tires sent for retreading",
        ):
            return redirect(url_for("retreads"))
        status = 400

    load_settings()
    return render_template(
        "retread_send.html",
        tires=api_call(api.retread_eligible_tires, default=[]),
        suppliers=api_call(api.list_suppliers, SupplierType.RETREAD_SUPPLIER.value, default=[]),
        form=form,
        selected=set(tire_ids),
        total_cost=retread_batch_cost(per_tire, len(tire_ids)),
    ), status


@app.route("/retreads/return", methods=["GET", "POST"])
@permission_required("tire.retread")
def retread_return():
    """Receive retreaded tires back from the supplier."""
    api = get_api()
    tire_ids = [i for i in (to_int(v) for v in request.form.getlist("tire_ids")) if i is not None]
    form = {
        "return_date": request.form.get("return_date") or date.today().isoformat(),
        "actual_cost": request.form.get("actual_cost", ""),
        "notes": request.form.get("notes", ""),
    }
    per_tire = to_float(form["actual_cost"]) or 0.0

    status = 200
    if request.method == "POST" and request.form.get("action") != "preview":
        payload = {
            "tire_ids": tire_ids,
            "return_date": form["return_date"],
            "actual_cost": per_tire,
            "user_id": current_user().get("id"),
            "notes": form["notes"],
            "new_serial_numbers": [form_text(f"serial-{i}") for i in tire_ids],
        }
        if submit(
            api.return_retread_batch,
            payload,
            errors=validate_retread_return(payload),
            success=f"{len(tire_ids)} tires returned from retreading",
        ):
            return redirect(url_for("retreads"))
        status = 400

    load_settings()
    return render_template(
        "retread_return.html",
        tires=api_call(api.tires_at_retreader, default=[]),
        form=form,
        selected=set(tire_ids),
        total_cost=retread_batch_cost(per_tire, len(tire_ids)),
    ), status


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # Using 5001 to avoid clashing with the backend on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)
