"""One method per fleet backend endpoint, returning model objects."""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from models.grn import GoodsReceivedNote
from models.loader import (
    parse_grn,
    parse_inventory_by_size,
    parse_inventory_stats,
    parse_movement,
    parse_permission,
    parse_purchase_order,
    parse_retread_order,
    parse_retread_receipt,
    parse_role,
    parse_role_option,
    parse_settings,
    parse_supplier,
    parse_tax_rate,
    parse_tire,
    parse_user,
    parse_user_activity,
    parse_user_session,
    parse_vehicle,
    unwrap_entity,
    unwrap_list,
)
from models.movement import Movement
from models.purchase_order import PurchaseOrder
from models.retread import RetreadOrder, RetreadReceipt
from models.role import Permission, Role, RoleOption
from models.settings import SystemSettings, TaxRate
from models.supplier import Supplier
from models.tire import InventoryBySize, InventoryStats, Tire
from models.tire_service import ServiceOperation
from models.user import User, UserActivity, UserSession
from models.vehicle import Vehicle

from .client import ApiClient
from .errors import ApiError

logger = logging.getLogger(__name__)

FALLBACK_TIRE_SIZES = [
    "295/80R22.5",
    "11R22.5",
    "285/75R24.5",
    "275/70R22.5",
    "245/70R19.5",
]

Pagination = Optional[Dict[str, int]]


class FleetApi:
    """Typed wrapper over ApiClient for the fleet backend."""

    def __init__(self, client: ApiClient):
        self.client = client

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def login(self, username: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        return self.client.login(username, password, remember_me)

    def logout(self) -> None:
        self.client.post("/api/auth/logout")

    def validate_token(self) -> Dict[str, Any]:
        """``{valid, permissions}`` for the current token."""
        return self.client.get("/api/auth/validate-token") or {}

    def change_password(
        self, current_password: str, new_password: str, confirm_password: str
    ) -> Any:
        return self.client.post(
            "/api/auth/change-password",
            {
                "currentPassword": current_password,
                "newPassword": new_password,
                "confirmPassword": confirm_password,
            },
        )

    def get_profile(self) -> Tuple[User, Dict[str, Any]]:
        """The signed-in user and the raw permissions sent with the profile."""
        payload = unwrap_entity(self.client.get("/api/auth/profile"), "user")
        return parse_user(payload), payload.get("permissions") or {}

    def update_profile(self, payload: Dict[str, Any]) -> Any:
        return self.client.put("/api/auth/profile", payload)

    # -------------------------------------------------------------------------
    # Users and roles
    # -------------------------------------------------------------------------

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        role: str = "",
        status: str = "",
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[User], Pagination]:
        payload = self.client.get(
            "/api/users",
            {
                "page": page,
                "limit": limit,
                "search": search,
                "role": role,
                "status": status,
                "sortBy": sort_by,
                "sortOrder": sort_order,
            },
        )
        rows, pagination = unwrap_list(payload, "users")
        return [parse_user(r) for r in rows], pagination

    def get_user(self, user_id: int) -> User:
        return parse_user(unwrap_entity(self.client.get(f"/api/users/{user_id}"), "user"))

    def create_user(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/users", payload)

    def update_user(self, user_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.put(f"/api/users/{user_id}", payload)

    def delete_user(self, user_id: int) -> Any:
        return self.client.delete(f"/api/users/{user_id}")

    def force_logout(self, user_id: int) -> Any:
        """Revoke every session of a user."""
        return self.client.delete(f"/api/users/{user_id}/sessions")

    def set_user_password(self, user_id: int, new_password: str, confirm_password: str) -> Any:
        return self.client.put(
            f"/api/users/{user_id}/password",
            {"newPassword": new_password, "confirmPassword": confirm_password},
        )

    def user_sessions(self, user_id: int) -> List[UserSession]:
        rows, _ = unwrap_list(self.client.get(f"/api/users/{user_id}/sessions"), "sessions")
        return [parse_user_session(r) for r in rows]

    def user_activity(self, user_id: int, limit: int = 20) -> List[UserActivity]:
        payload = self.client.get(f"/api/users/{user_id}/activity", {"limit": limit})
        rows, _ = unwrap_list(payload, "activities")
        return [parse_user_activity(r) for r in rows]

    def role_options(self) -> List[RoleOption]:
        rows, _ = unwrap_list(self.client.get("/api/users/roles/options"), "roles")
        return [parse_role_option(r) for r in rows]

    def list_roles(self, include_system: bool = True) -> List[Role]:
        payload = self.client.get(
            "/api/roles", {"include_system": "true" if include_system else "false"}
        )
        rows, _ = unwrap_list(payload, "roles")
        return [parse_role(r) for r in rows]

    def get_role(self, role_id: int) -> Role:
        return parse_role(unwrap_entity(self.client.get(f"/api/roles/{role_id}"), "role"))

    def create_role(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/roles", payload)

    def update_role(self, role_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.put(f"/api/roles/{role_id}", payload)

    def delete_role(self, role_id: int) -> Any:
        return self.client.delete(f"/api/roles/{role_id}")

    def all_permissions(self) -> List[Permission]:
        rows, _ = unwrap_list(self.client.get("/api/roles/permissions/all"), "permissions")
        return [parse_permission(r) for r in rows]

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def dashboard_stats(self) -> InventoryStats:
        return parse_inventory_stats(
            unwrap_entity(self.client.get("/api/inventory/dashboard-stats"))
        )

    def inventory_by_size(self) -> List[InventoryBySize]:
        rows, _ = unwrap_list(self.client.get("/api/inventory/by-size"))
        return [parse_inventory_by_size(r) for r in rows]

    def store_tires(self, status: Optional[str] = None) -> List[Tire]:
        path = f"/api/inventory/store/{status}" if status else "/api/inventory/store"
        rows, _ = unwrap_list(self.client.get(path), "tires")
        return [parse_tire(r) for r in rows]

    def retread_candidates(self) -> List[Tire]:
        rows, _ = unwrap_list(self.client.get("/api/inventory/retread-candidates"), "tires")
        return [parse_tire(r) for r in rows]

    def pending_disposal(self) -> List[Tire]:
        rows, _ = unwrap_list(self.client.get("/api/inventory/pending-disposal"), "tires")
        return [parse_tire(r) for r in rows]

    def tire_sizes(self) -> List[str]:
        """Known tire sizes, or a fixed list of common sizes if unavailable."""
        try:
            rows, _ = unwrap_list(self.client.get("/api/tires/meta/sizes"), "sizes")
        except ApiError as e:
            logger.warning("Falling back to default tire sizes: %s", e)
            return list(FALLBACK_TIRE_SIZES)
        sizes = [r if isinstance(r, str) else r.get("size", "") for r in rows]
        return [s for s in sizes if s] or list(FALLBACK_TIRE_SIZES)

    def available_tires(self) -> List[Tire]:
        """Tires in store that can be fitted to a vehicle."""
        rows, _ = unwrap_list(self.client.get("/api/tires/available"), "tires")
        return [parse_tire(r) for r in rows]

    def list_movements(
        self,
        start_date: str = "",
        end_date: str = "",
        page: int = 1,
        limit: int = 50,
        tire_id: Optional[int] = None,
        size: str = "",
    ) -> Tuple[List[Movement], Pagination]:
        """Stock movements in a date window, for one tire or one size when given."""
        if tire_id:
            path = f"/api/movements/tire/{tire_id}"
        elif size:
            path = f"/api/movements/size/{quote(size, safe='')}"
        else:
            path = "/api/movements"
        payload = self.client.get(
            path,
            {
                "startDate": start_date,
                "endDate": end_date,
                "details": "true",
                "page": page,
                "limit": limit,
            },
        )
        rows, pagination = unwrap_list(payload, "movements")
        if pagination is None and isinstance(payload, dict) and "total" in payload:
            pagination = {
                "total": int(payload.get("total") or 0),
                "total_pages": int(payload.get("totalPages") or 0),
                "page": page,
                "limit": limit,
            }
        return [parse_movement(r) for r in rows], pagination

    # -------------------------------------------------------------------------
    # Suppliers and purchasing
    # -------------------------------------------------------------------------

    def list_suppliers(self, supplier_type: Optional[str] = None) -> List[Supplier]:
        payload = self.client.get("/api/suppliers", {"type": supplier_type})
        rows, _ = unwrap_list(payload, "suppliers")
        return [parse_supplier(r) for r in rows]

    def get_supplier(self, supplier_id: int) -> Supplier:
        """A supplier with its ledger entries."""
        payload = self.client.get(f"/api/suppliers/{supplier_id}")
        return parse_supplier(unwrap_entity(payload, "supplier"))

    def create_supplier(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/suppliers", payload)

    def record_payment(self, supplier_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.post(f"/api/suppliers/{supplier_id}/payment", payload)

    def list_purchase_orders(
        self, page: int = 1, limit: int = 10, status: str = "", search: str = ""
    ) -> Tuple[List[PurchaseOrder], Pagination]:
        payload = self.client.get(
            "/api/purchase-orders",
            {"page": page, "limit": limit, "status": status, "search": search},
        )
        rows, pagination = unwrap_list(payload, "orders")
        return [parse_purchase_order(r) for r in rows], pagination

    def get_purchase_order(self, po_id: int) -> PurchaseOrder:
        payload = self.client.get(f"/api/purchase-orders/{po_id}")
        return parse_purchase_order(unwrap_entity(payload, "order"))

    def create_purchase_order(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/purchase-orders", payload)

    def receive_goods(self, payload: Dict[str, Any]) -> Any:
        """Post a goods received note."""
        return self.client.post("/api/grn", payload)

    def list_grns(
        self,
        page: int = 1,
        limit: int = 20,
        search: str = "",
        status: str = "",
        start_date: str = "",
        end_date: str = "",
    ) -> Tuple[List[GoodsReceivedNote], Pagination]:
        payload = self.client.get(
            "/api/grn",
            {
                "page": page,
                "limit": limit,
                "search": search,
                "status": status,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        rows, pagination = unwrap_list(payload, "grns")
        return [parse_grn(r) for r in rows], pagination

    def get_grn(self, grn_id: int) -> GoodsReceivedNote:
        return parse_grn(unwrap_entity(self.client.get(f"/api/grn/{grn_id}"), "grn"))

    def generate_grn_number(self) -> str:
        """Next GRN number, or a timestamped one if the backend cannot issue it."""
        try:
            payload = self.client.get("/api/grn/generate-number")
        except ApiError as e:
            logger.warning("Falling back to a local GRN number: %s", e)
            payload = None
        if isinstance(payload, dict) and payload.get("success") and payload.get("data"):
            return str(payload["data"])
        return f"GRN-{int(time.time() * 1000)}"

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    def list_vehicles(
        self,
        page: int = 1,
        limit: int = 10,
        status: str = "",
        search: str = "",
        wheel_config: str = "",
    ) -> Tuple[List[Vehicle], Pagination]:
        payload = self.client.get(
            "/api/vehicles",
            {
                "page": page,
                "limit": limit,
                "status": status,
                "search": search,
                "wheel_config": wheel_config,
            },
        )
        rows, pagination = unwrap_list(payload, "vehicles")
        return [parse_vehicle(r) for r in rows], pagination

    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        """A vehicle with its tire installation history."""
        payload = self.client.get(f"/api/vehicles/{vehicle_id}")
        return parse_vehicle(unwrap_entity(payload, "vehicle"))

    def create_vehicle(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/vehicles", payload)

    def update_vehicle(self, vehicle_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.put(f"/api/vehicles/{vehicle_id}", payload)

    def retire_vehicle(self, vehicle_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.post(f"/api/vehicles/{vehicle_id}/retire", payload)

    def restore_vehicle(self, vehicle_id: int, restored_by: str) -> Any:
        return self.client.post(
            f"/api/vehicles/{vehicle_id}/restore", {"restored_by": restored_by}
        )

    def update_odometer(self, vehicle_id: int, odometer: float) -> Any:
        return self.client.put(
            f"/api/vehicles/{vehicle_id}/odometer", {"current_odometer": odometer}
        )

    def tire_service(self, operation: ServiceOperation) -> Any:
        """Fit, remove or swap tires on a vehicle."""
        return self.client.post(f"/api/tire-service/{operation.endpoint}", operation.payload)

    # -------------------------------------------------------------------------
    # Retreads
    # -------------------------------------------------------------------------

    def list_retread_orders(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        status: str = "",
        supplier_id: Optional[int] = None,
        search: str = "",
    ) -> Tuple[List[RetreadOrder], Pagination]:
        payload = self.client.get(
            "/api/retread/retread-orders",
            {
                "page": page,
                "limit": limit,
                "sort_by": sort_by,
                "sort_order": sort_order,
                "status": status,
                "supplier_id": supplier_id,
                "search": search,
            },
        )
        rows, pagination = unwrap_list(payload, "orders")
        return [parse_retread_order(r) for r in rows], pagination

    def get_retread_order(self, order_id: int) -> RetreadOrder:
        payload = self.client.get(f"/api/retread/retread-orders/{order_id}")
        return parse_retread_order(unwrap_entity(payload, "order"))

    def send_retread_order(self, order_id: int, user_id: Optional[int] = None) -> Any:
        return self.client.put(
            f"/api/retread/retread-orders/{order_id}/send", {"user_id": user_id}
        )

    def cancel_retread_order(self, order_id: int, user_id: Optional[int] = None) -> Any:
        return self.client.put(
            f"/api/retread/retread-orders/{order_id}/cancel", {"user_id": user_id}
        )

    def duplicate_retread_order(self, order_id: int, user_id: Optional[int] = None) -> Any:
        return self.client.post(
            f"/api/retread/retread-orders/{order_id}/duplicate", {"user_id": user_id}
        )

    def delete_retread_order(self, order_id: int) -> Any:
        return self.client.delete(f"/api/retread/retread-orders/{order_id}")

    def get_retread_receipt(self, order_id: int) -> RetreadReceipt:
        """The casings of an order waiting to be received."""
        payload = self.client.get(f"/api/retread/retread-orders/{order_id}/receive")
        return parse_retread_receipt(unwrap_entity(payload), order_id)

    def receive_retread_order(self, order_id: int, payload: Dict[str, Any]) -> Any:
        return self.client.post(f"/api/retread/retread-orders/{order_id}/receive", payload)

    def retread_eligible_tires(self) -> List[Tire]:
        rows, _ = unwrap_list(self.client.get("/api/tires/retread/eligible"), "tires")
        return [parse_tire(r) for r in rows]

    def tires_at_retreader(self) -> List[Tire]:
        payload = self.client.get(
            "/api/tires/retread/status", {"status": "AT_RETREAD_SUPPLIER"}
        )
        rows, _ = unwrap_list(payload, "tires")
        tires = [parse_tire(r) for r in rows]
        return [t for t in tires if t.status == "AT_RETREAD_SUPPLIER"]

    def send_retread_batch(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/tires/retread/send-batch", payload)

    def return_retread_batch(self, payload: Dict[str, Any]) -> Any:
        return self.client.post("/api/tires/retread/return-batch", payload)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def system_settings(self) -> SystemSettings:
        return parse_settings(unwrap_entity(self.client.get("/api/settings/system")))

    def tax_rates(self) -> List[TaxRate]:
        rows, _ = unwrap_list(self.client.get("/api/settings/tax-rates"), "tax_rates")
        return [parse_tax_rate(r) for r in rows]
