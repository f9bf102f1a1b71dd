"""Parsing of backend JSON payloads into model objects."""

from typing import Any, Dict, List, Optional, Tuple

from api.errors import ApiError

from .grn import GoodsReceivedNote, GrnItem, GrnTire
from .movement import Movement
from .purchase_order import PurchaseOrder, PurchaseOrderItem
from .retread import (
    DEFAULT_RECEIVED_DEPTH,
    RetreadEvent,
    RetreadOrder,
    RetreadReceipt,
    RetreadReceiptLine,
    RetreadTire,
)
from .role import Permission, PermissionSet, Role, RoleOption, RolePermission
from .settings import SystemSettings, TaxRate
from .supplier import LedgerEntry, Supplier
from .tire import InventoryBySize, InventoryStats, Tire
from .user import User, UserActivity, UserSession
from .vehicle import TireInstallation, Vehicle, WheelPosition

Pagination = Dict[str, int]


def _num(value: Any, default: float = 0.0) -> float:
    """Backend decimals often arrive as strings ("1500.00")."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt_num(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(_num(value, default))


def unwrap_list(
    payload: Any, key: Optional[str] = None
) -> Tuple[List[dict], Optional[Pagination]]:
    """
    Pull the item list and optional pagination out of a response envelope.

    Accepts a bare list, ``{}``, ``{success, data: [...], pagination}``,
    ``{data: {<key>: [...], pagination}}`` and ``{<key>: [...]}``.
    ``{success: false}`` raises ApiError.
    """
    if isinstance(payload, list):
        return payload, None
    if not payload:
        return [], None
    if not isinstance(payload, dict):
        raise ApiError("Unexpected response format")

    if payload.get("success") is False:
        raise ApiError(
            payload.get("error") or payload.get("message") or "Request failed",
            payload=payload,
        )

    pagination = payload.get("pagination")
    data = payload.get("data")

    if isinstance(data, dict):
        pagination = data.get("pagination", pagination)
        if key and isinstance(data.get(key), list):
            return data[key], pagination
        for value in data.values():
            if isinstance(value, list):
                return value, pagination
        return [], pagination

    if isinstance(data, list):
        return data, pagination

    if key and isinstance(payload.get(key), list):
        return payload[key], pagination

    return [], pagination


def unwrap_entity(payload: Any, key: Optional[str] = None) -> dict:
    """Pull a single object out of ``{success, data}`` or a bare object."""
    if not isinstance(payload, dict):
        raise ApiError("Unexpected response format")
    if payload.get("success") is False:
        raise ApiError(
            payload.get("error") or payload.get("message") or "Request failed",
            payload=payload,
        )
    for name in (key, "data", "entity"):
        if name and isinstance(payload.get(name), dict):
            return payload[name]
    return payload


# =============================================================================
# Users, roles and permissions
# =============================================================================


def parse_user(dct: Dict[str, Any]) -> User:
    role_name = dct.get("role_name") or dct.get("role")
    if isinstance(role_name, dict):
        role_name = role_name.get("name")
    return User(
        id=_int(dct.get("id")),
        username=dct.get("username", ""),
        email=dct.get("email", ""),
        full_name=dct.get("full_name", ""),
        role_id=dct.get("role_id"),
        role_name=role_name,
        department=dct.get("department"),
        is_active=bool(dct.get("is_active", True)),
        last_login=dct.get("last_login"),
        created_at=dct.get("created_at"),
    )


def parse_user_session(dct: Dict[str, Any]) -> UserSession:
    return UserSession(
        id=_int(dct.get("id")),
        ip_address=dct.get("ip_address"),
        user_agent=dct.get("user_agent"),
        created_at=dct.get("created_at"),
        last_activity=dct.get("last_activity"),
        is_active=bool(dct.get("is_active", True)),
    )


def parse_user_activity(dct: Dict[str, Any]) -> UserActivity:
    entity_id = dct.get("entity_id")
    return UserActivity(
        id=_int(dct.get("id")),
        action=dct.get("action", ""),
        timestamp=dct.get("timestamp") or dct.get("created_at"),
        entity_type=dct.get("entity_type"),
        entity_id=_int(entity_id) if entity_id not in (None, "") else None,
        ip_address=dct.get("ip_address"),
        performed_by_username=dct.get("performed_by_username"),
    )


def parse_role_permission(dct: Dict[str, Any]) -> RolePermission:
    return RolePermission(
        permission_id=_int(dct.get("permission_id", dct.get("id"))),
        code=dct.get("code", ""),
        name=dct.get("name", ""),
        category=dct.get("category", ""),
        can_view=bool(dct.get("can_view")),
        can_create=bool(dct.get("can_create")),
        can_edit=bool(dct.get("can_edit")),
        can_delete=bool(dct.get("can_delete")),
        can_approve=bool(dct.get("can_approve")),
    )


def parse_role(dct: Dict[str, Any]) -> Role:
    permissions = [parse_role_permission(p) for p in dct.get("permissions") or []]
    return Role(
        id=_int(dct.get("id")),
        name=dct.get("name", ""),
        description=dct.get("description"),
        is_system_role=bool(dct.get("is_system_role")),
        user_count=_int(dct.get("user_count")),
        permission_count=_int(dct.get("permission_count"), len(permissions)),
        created_at=dct.get("created_at"),
        permissions=permissions,
    )


def parse_role_option(dct: Dict[str, Any]) -> RoleOption:
    return RoleOption(
        value=_int(dct.get("value", dct.get("id"))),
        label=dct.get("label", dct.get("name", "")),
        description=dct.get("description"),
        is_system_role=bool(dct.get("is_system_role")),
    )


def parse_permission(dct: Dict[str, Any]) -> Permission:
    return Permission(
        id=_int(dct.get("id")),
        code=dct.get("code", ""),
        name=dct.get("name", ""),
        category=dct.get("category") or "Other",
        description=dct.get("description"),
        assigned_role_count=_int(dct.get("assigned_role_count")),
    )


def parse_permission_set(raw: Any) -> PermissionSet:
    """
    Build the signed-in user's PermissionSet from the login payload.

    Accepts a dict keyed by code or a list of RolePermission-shaped rows.
    """
    if isinstance(raw, dict):
        return PermissionSet({code: dict(flags or {}) for code, flags in raw.items()})
    grants = {}
    for row in raw or []:
        perm = parse_role_permission(row)
        if perm.code:
            grants[perm.code] = perm.to_payload()
    return PermissionSet(grants)


# =============================================================================
# Inventory
# =============================================================================


def parse_tire(dct: Dict[str, Any]) -> Tire:
    return Tire(
        id=_int(dct.get("id")),
        serial_number=dct.get("serial_number", ""),
        size=dct.get("size", ""),
        brand=dct.get("brand") or "",
        pattern=dct.get("pattern"),
        type=dct.get("type") or "NEW",
        status=dct.get("status") or "IN_STORE",
        position=dct.get("position") or dct.get("current_position"),
        purchase_date=dct.get("purchase_date"),
        purchase_cost=_opt_num(dct.get("purchase_cost")),
        purchase_supplier=dct.get("purchase_supplier") or dct.get("supplier_name"),
        depth_remaining=_opt_num(dct.get("depth_remaining")),
    )


def parse_inventory_by_size(dct: Dict[str, Any]) -> InventoryBySize:
    return InventoryBySize(
        size=dct.get("size", ""),
        new_count=_int(dct.get("new_count")),
        retreaded_count=_int(dct.get("retreaded_count")),
        used_count=_int(dct.get("used_count")),
        retread_candidates_count=_int(dct.get("retread_candidates_count")),
    )


def parse_inventory_stats(dct: Dict[str, Any]) -> InventoryStats:
    return InventoryStats(
        in_store=_int(dct.get("in_store")),
        on_vehicle=_int(dct.get("on_vehicle")),
        used_store=_int(dct.get("used_store")),
        awaiting_retread=_int(dct.get("awaiting_retread")),
        at_retreader=_int(dct.get("at_retreader")),
        disposed=_int(dct.get("disposed")),
        new_tires=_int(dct.get("new_tires")),
        retreaded_tires=_int(dct.get("retreaded_tires")),
        total_value=_num(dct.get("total_value")),
    )


def parse_movement(dct: Dict[str, Any]) -> Movement:
    return Movement(
        id=_int(dct.get("id")),
        tire_id=_int(dct.get("tire_id")),
        movement_type=dct.get("movement_type", ""),
        movement_date=dct.get("movement_date") or "",
        serial_number=dct.get("serial_number") or "",
        size=dct.get("size") or "",
        brand=dct.get("brand") or "",
        user_name=dct.get("user_name"),
        notes=dct.get("notes"),
        reference_number=dct.get("reference_number"),
        reference_type=dct.get("reference_type"),
        vehicle_number=dct.get("vehicle_number"),
        supplier_name=dct.get("supplier_name"),
        purchase_cost=_opt_num(dct.get("purchase_cost")),
        retread_cost=_opt_num(dct.get("retread_cost")),
        disposal_reason=dct.get("disposal_reason"),
        position=dct.get("position"),
        document_number=dct.get("document_number"),
    )


# =============================================================================
# Suppliers and purchasing
# =============================================================================


def parse_ledger_entry(dct: Dict[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        id=_int(dct.get("id")),
        supplier_id=_int(dct.get("supplier_id")),
        date=dct.get("date") or dct.get("transaction_date") or "",
        transaction_type=dct.get("transaction_type", ""),
        amount=_num(dct.get("amount")),
        description=dct.get("description") or "",
        reference_number=dct.get("reference_number"),
        created_by=dct.get("created_by"),
        created_at=dct.get("created_at"),
    )


def parse_supplier(dct: Dict[str, Any]) -> Supplier:
    return Supplier(
        id=_int(dct.get("id")),
        name=dct.get("name", ""),
        type=dct.get("type") or "OTHER",
        contact_person=dct.get("contact_person"),
        phone=dct.get("phone"),
        email=dct.get("email"),
        address=dct.get("address"),
        balance=_num(dct.get("balance", dct.get("current_balance"))),
        payment_term_id=dct.get("payment_term_id"),
        payment_term_name=dct.get("payment_term_name"),
        payment_term_days=dct.get("payment_term_days"),
        created_at=dct.get("created_at"),
        ledger=[parse_ledger_entry(e) for e in dct.get("ledger") or []],
    )


def parse_purchase_order_item(dct: Dict[str, Any]) -> PurchaseOrderItem:
    return PurchaseOrderItem(
        id=_int(dct.get("id")),
        size=dct.get("size") or dct.get("tire_size") or "",
        quantity=_int(dct.get("quantity")),
        unit_price=_num(dct.get("unit_price")),
        line_total=_num(dct.get("line_total")),
        received_quantity=_int(dct.get("received_quantity")),
        brand=dct.get("brand"),
        model=dct.get("model"),
        type=dct.get("type"),
        po_id=dct.get("po_id"),
        notes=dct.get("notes"),
    )


def parse_purchase_order(dct: Dict[str, Any]) -> PurchaseOrder:
    return PurchaseOrder(
        id=_int(dct.get("id")),
        po_number=dct.get("po_number", ""),
        supplier_id=_int(dct.get("supplier_id")),
        status=dct.get("status", "DRAFT"),
        po_date=dct.get("po_date") or dct.get("order_date") or "",
        supplier_name=dct.get("supplier_name") or "",
        supplier_type=dct.get("supplier_type"),
        expected_delivery_date=dct.get("expected_delivery_date"),
        delivery_date=dct.get("delivery_date"),
        total_amount=_num(dct.get("total_amount")),
        tax_amount=_num(dct.get("tax_amount")),
        shipping_amount=_num(dct.get("shipping_amount")),
        final_amount=_num(dct.get("final_amount", dct.get("total_amount"))),
        tax_rate=_opt_num(dct.get("tax_rate")),
        tax_name=dct.get("tax_name"),
        notes=dct.get("notes"),
        terms=dct.get("terms"),
        shipping_address=dct.get("shipping_address"),
        billing_address=dct.get("billing_address"),
        created_by_name=dct.get("created_by_name"),
        approved_by_name=dct.get("approved_by_name"),
        created_at=dct.get("created_at"),
        items=[parse_purchase_order_item(i) for i in dct.get("items") or []],
    )


def parse_grn_item(dct: Dict[str, Any]) -> GrnItem:
    serials = dct.get("serial_numbers") or []
    if isinstance(serials, str):
        serials = [s.strip() for s in serials.split(",") if s.strip()]
    return GrnItem(
        id=_int(dct.get("id")),
        grn_id=_int(dct.get("grn_id")),
        po_item_id=dct.get("po_item_id"),
        quantity_received=_int(dct.get("quantity_received")),
        unit_cost=_num(dct.get("unit_cost")),
        batch_number=dct.get("batch_number"),
        serial_numbers=list(serials),
        notes=dct.get("notes"),
    )


def parse_grn_tire(dct: Dict[str, Any]) -> GrnTire:
    return GrnTire(
        serial_number=dct.get("serial_number", ""),
        size=dct.get("size") or "",
        brand=dct.get("brand") or "",
        model=dct.get("model") or "",
        type=dct.get("type"),
        purchase_cost=_opt_num(dct.get("purchase_cost")),
        status=dct.get("status"),
    )


def parse_grn(dct: Dict[str, Any]) -> GoodsReceivedNote:
    items = [parse_grn_item(i) for i in dct.get("items") or []]
    return GoodsReceivedNote(
        id=_int(dct.get("id")),
        grn_number=dct.get("grn_number", ""),
        receipt_date=dct.get("receipt_date") or "",
        po_id=dct.get("po_id"),
        po_number=dct.get("po_number"),
        supplier_name=dct.get("supplier_name") or "",
        supplier_code=dct.get("supplier_code"),
        received_by_name=dct.get("received_by_name"),
        supplier_invoice_number=dct.get("supplier_invoice_number"),
        delivery_note_number=dct.get("delivery_note_number"),
        vehicle_number=dct.get("vehicle_number"),
        driver_name=dct.get("driver_name"),
        item_count=_int(dct.get("item_count"), len(items)),
        total_quantity=_int(dct.get("total_quantity")),
        total_value=_num(dct.get("total_value")),
        status=dct.get("status") or "COMPLETED",
        notes=dct.get("notes"),
        created_at=dct.get("created_at"),
        accounting_transaction_id=dct.get("accounting_transaction_id"),
        items=items,
        tires=[parse_grn_tire(t) for t in dct.get("tires") or []],
    )


# =============================================================================
# Vehicles
# =============================================================================


def parse_installation(dct: Dict[str, Any]) -> TireInstallation:
    return TireInstallation(
        id=_int(dct.get("id")),
        tire_id=_int(dct.get("tire_id")),
        vehicle_id=_int(dct.get("vehicle_id")),
        position_code=dct.get("position_code", ""),
        install_date=dct.get("install_date", ""),
        install_odometer=_num(dct.get("install_odometer")),
        serial_number=dct.get("serial_number", ""),
        size=dct.get("size") or "",
        brand=dct.get("brand") or "",
        type=dct.get("type"),
        position_id=dct.get("position_id"),
        position_name=dct.get("position_name"),
        removal_date=dct.get("removal_date"),
        removal_odometer=_opt_num(dct.get("removal_odometer")),
        reason_for_change=dct.get("reason_for_change") or "",
        created_by=dct.get("created_by") or "",
        created_at=dct.get("created_at"),
        vehicle_number=dct.get("vehicle_number"),
    )


def parse_wheel_position(dct: Dict[str, Any]) -> WheelPosition:
    return WheelPosition(
        position_code=dct.get("position_code", ""),
        position_name=dct.get("position_name") or dct.get("position_code", ""),
        axle_number=_int(dct.get("axle_number")),
        is_trailer=bool(dct.get("is_trailer")),
    )


def parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    history = (
        dct.get("tire_history") or dct.get("installation_history") or dct.get("history") or []
    )
    positions = dct.get("positions") or dct.get("wheel_positions") or []
    year = dct.get("year") or dct.get("year_of_manufacture")
    return Vehicle(
        id=_int(dct.get("id")),
        vehicle_number=dct.get("vehicle_number", ""),
        make=dct.get("make") or "",
        model=dct.get("model") or "",
        wheel_config=dct.get("wheel_config"),
        status=dct.get("status") or "ACTIVE",
        year=_int(year) if year else None,
        current_odometer=_opt_num(dct.get("current_odometer")),
        active_tires_count=_int(dct.get("active_tires_count")),
        created_at=dct.get("created_at"),
        retired_at=dct.get("retired_at"),
        retirement_reason=dct.get("retirement_reason"),
        retired_by=dct.get("retired_by"),
        history=[parse_installation(h) for h in history],
        positions=[parse_wheel_position(p) for p in positions if isinstance(p, dict)],
    )


# =============================================================================
# Retreads and settings
# =============================================================================


def parse_retread_tire(dct: Dict[str, Any]) -> RetreadTire:
    return RetreadTire(
        id=_int(dct.get("id")),
        tire_id=_int(dct.get("tire_id", dct.get("id"))),
        serial_number=dct.get("serial_number", ""),
        size=dct.get("size") or "",
        brand=dct.get("brand") or "",
        model=dct.get("model") or "",
        status=dct.get("status") or "",
        returned=bool(dct.get("returned")),
        return_date=dct.get("return_date"),
        retread_cost=_opt_num(dct.get("retread_cost", dct.get("cost"))),
        depth_remaining=_opt_num(dct.get("depth_remaining")),
        previous_retread_count=_int(dct.get("previous_retread_count")),
        notes=dct.get("notes"),
    )


def parse_retread_event(dct: Dict[str, Any]) -> RetreadEvent:
    return RetreadEvent(
        status=dct.get("status", ""),
        date=dct.get("date") or dct.get("created_at") or "",
        note=dct.get("note") or dct.get("notes"),
        user=dct.get("user") or dct.get("user_name"),
    )


def parse_retread_order(dct: Dict[str, Any]) -> RetreadOrder:
    tires = [parse_retread_tire(t) for t in dct.get("tires") or []]
    # Detail responses nest the supplier; list rows flatten it
    supplier = dct.get("supplier") if isinstance(dct.get("supplier"), dict) else {}
    return RetreadOrder(
        id=_int(dct.get("id")),
        order_number=dct.get("order_number", ""),
        supplier_id=_int(dct.get("supplier_id", supplier.get("id"))),
        supplier_name=dct.get("supplier_name") or supplier.get("name") or "",
        status=dct.get("status", "DRAFT"),
        total_tires=_int(dct.get("total_tires"), len(tires)),
        total_cost=_num(dct.get("total_cost")),
        expected_completion_date=dct.get("expected_completion_date"),
        sent_date=dct.get("sent_date"),
        received_date=dct.get("received_date"),
        created_at=dct.get("created_at"),
        created_by=dct.get("created_by_name") or dct.get("created_by"),
        received_tires=_int(dct.get("received_tires")),
        notes=dct.get("notes"),
        supplier_contact_person=supplier.get("contact_person") or dct.get("contact_person"),
        supplier_phone=supplier.get("phone") or dct.get("supplier_phone"),
        supplier_email=supplier.get("email") or dct.get("supplier_email"),
        supplier_address=supplier.get("address") or dct.get("supplier_address"),
        tires=tires,
        timeline=[parse_retread_event(e) for e in dct.get("timeline") or []],
    )


def parse_retread_receipt_line(dct: Dict[str, Any]) -> RetreadReceiptLine:
    return RetreadReceiptLine(
        tire_id=_int(dct.get("tire_id", dct.get("id"))),
        serial_number=dct.get("serial_number", ""),
        size=dct.get("size") or "",
        brand=dct.get("brand") or "",
        model=dct.get("model") or "",
        previous_retread_count=_int(dct.get("previous_retread_count")),
        received_depth=_opt_num(dct.get("tread_depth_new")) or DEFAULT_RECEIVED_DEPTH,
        cost=_num(dct.get("estimated_cost")),
    )


def parse_retread_receipt(dct: Dict[str, Any], order_id: int) -> RetreadReceipt:
    """The receive form of an order, every casing starting out PENDING."""
    return RetreadReceipt(
        order_id=order_id,
        order_number=dct.get("order_number", ""),
        supplier_id=dct.get("supplier_id"),
        supplier_name=dct.get("supplier_name") or "",
        lines=[parse_retread_receipt_line(t) for t in dct.get("tires") or []],
    )


def parse_tax_rate(dct: Dict[str, Any]) -> TaxRate:
    return TaxRate(
        id=_int(dct.get("id")),
        name=dct.get("name", ""),
        rate=_opt_num(dct.get("rate")),
        type=dct.get("type") or "VAT",
        description=dct.get("description"),
        is_default=bool(dct.get("is_default")),
        is_active=bool(dct.get("is_active", True)),
    )


def parse_settings(dct: Dict[str, Any]) -> SystemSettings:
    settings = SystemSettings(
        company_name=dct.get("company_name") or "",
        company_address=dct.get("company_address"),
        company_phone=dct.get("company_phone"),
        company_email=dct.get("company_email"),
        company_tax_id=dct.get("company_tax_id"),
        vat_rate=_opt_num(dct.get("vat_rate")),
        date_format=dct.get("date_format"),
        timezone=dct.get("timezone"),
    )
    if dct.get("currency"):
        settings.currency = dct["currency"]
    if dct.get("currency_symbol"):
        settings.currency_symbol = dct["currency_symbol"]
    return settings
