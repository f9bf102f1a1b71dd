"""
Tire fleet models.

This package provides the records and client-side logic of the fleet app:
- Status: Wire enums for tires, vehicles, suppliers and orders
- Role/PermissionSet: Roles and the signed-in user's permission checks
- Tire, Supplier, Vehicle, PurchaseOrder, RetreadOrder: Backend records
- GoodsReceivedNote, Movement: Received goods and the stock ledger
- tire_service: Install, removal and swap calls for a vehicle
- calculations: VAT, order totals, ledger balances, tire service
- filters: Search, filtering and pagination of list pages
- validation: Form checks against schema.yaml
- export: CSV exports and display formatting
"""

from .status import (
    PermissionAction,
    PurchaseOrderStatus,
    RetreadOrderStatus,
    SupplierType,
    TireStatus,
    TireType,
    TransactionType,
    VehicleStatus,
    WheelConfig,
    status_label,
)
from .role import Permission, PermissionSet, Role, RoleOption, RolePermission
from .user import User, UserActivity, UserSession
from .tire import InventoryBySize, InventoryStats, Tire
from .supplier import LedgerEntry, LedgerRow, Supplier
from .vehicle import TireInstallation, Vehicle, WheelPosition, wheel_positions
from .grn import GoodsReceivedNote, GrnItem, GrnTire
from .movement import Movement, StockLedgerEntry, stock_ledger
from .settings import SystemSettings, TaxRate
from .purchase_order import (
    OrderLine,
    OrderTotals,
    PurchaseOrder,
    PurchaseOrderItem,
    ReceivingLine,
)
from .retread import RetreadOrder, RetreadReceipt, RetreadReceiptLine, RetreadTire
from .tire_service import ServiceOperation
from .calculations import (
    calculate_line,
    calculate_order_totals,
    price_excluding_vat,
    resolve_vat_rate,
    running_balances,
    service_days,
    service_distance,
    vat_amount,
)
from .filters import HistoryFilter, Page, paginate
from .loader import unwrap_list

__all__ = [
    "PermissionAction",
    "PurchaseOrderStatus",
    "RetreadOrderStatus",
    "SupplierType",
    "TireStatus",
    "TireType",
    "TransactionType",
    "VehicleStatus",
    "WheelConfig",
    "status_label",
    "Permission",
    "PermissionSet",
    "Role",
    "RoleOption",
    "RolePermission",
    "User",
    "UserActivity",
    "UserSession",
    "InventoryBySize",
    "InventoryStats",
    "Tire",
    "LedgerEntry",
    "LedgerRow",
    "Supplier",
    "TireInstallation",
    "Vehicle",
    "WheelPosition",
    "wheel_positions",
    "GoodsReceivedNote",
    "GrnItem",
    "GrnTire",
    "Movement",
    "StockLedgerEntry",
    "stock_ledger",
    "SystemSettings",
    "TaxRate",
    "OrderLine",
    "OrderTotals",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "ReceivingLine",
    "RetreadOrder",
    "RetreadReceipt",
    "RetreadReceiptLine",
    "RetreadTire",
    "ServiceOperation",
    "calculate_line",
    "calculate_order_totals",
    "price_excluding_vat",
    "resolve_vat_rate",
    "running_balances",
    "service_days",
    "service_distance",
    "vat_amount",
    "HistoryFilter",
    "Page",
    "paginate",
    "unwrap_list",
]
