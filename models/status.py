"""Status enums for tires, vehicles, suppliers and orders.

Values match the backend's wire strings. Records keep the raw string so an
unexpected value from the backend still renders; these enums supply the known
values and their display labels.
"""

from enum import Enum
from typing import Optional, Type


class TireType(Enum):
    NEW = "NEW"
    RETREADED = "RETREADED"
    USED = "USED"


class TireStatus(Enum):
    """Where a tire is in its lifecycle."""

    IN_STORE = "IN_STORE"
    ON_VEHICLE = "ON_VEHICLE"
    USED_STORE = "USED_STORE"
    AWAITING_RETREAD = "AWAITING_RETREAD"
    AT_RETREAD_SUPPLIER = "AT_RETREAD_SUPPLIER"
    DISPOSED = "DISPOSED"


class VehicleStatus(Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    RETIRED = "RETIRED"


class WheelConfig(Enum):
    FOUR_BY_TWO = "4x2"
    SIX_BY_FOUR = "6x4"
    EIGHT_BY_FOUR = "8x4"
    SIX_BY_TWO = "6x2"
    FOUR_BY_FOUR = "4x4"


class SupplierType(Enum):
    TIRE_SUPPLIER = "TIRE_SUPPLIER"
    RETREAD_SUPPLIER = "RETREAD_SUPPLIER"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    OTHER = "OTHER"


class TransactionType(Enum):
    """Supplier ledger entry kinds. Purchases and retread services are debits."""

    PURCHASE = "PURCHASE"
    RETREAD_SERVICE = "RETREAD_SERVICE"
    PAYMENT = "PAYMENT"


class PurchaseOrderStatus(Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    RECEIVED = "RECEIVED"
    FULLY_RECEIVED = "FULLY_RECEIVED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"


class RetreadOrderStatus(Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RECEIVED = "RECEIVED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"


class ReceiveCondition(Enum):
    GOOD = "GOOD"
    DAMAGED = "DAMAGED"
    DEFECTIVE = "DEFECTIVE"


class GrnStatus(Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class RetreadQuality(Enum):
    """Grade given to a casing coming back from the retreader."""

    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"


class RetreadReceiptStatus(Enum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"


class MovementType(Enum):
    """Stock movements. The first three bring a tire into the store."""

    PURCHASE_TO_STORE = "PURCHASE_TO_STORE"
    RETREAD_SUPPLIER_TO_STORE = "RETREAD_SUPPLIER_TO_STORE"
    VEHICLE_TO_STORE = "VEHICLE_TO_STORE"
    STORE_TO_VEHICLE = "STORE_TO_VEHICLE"
    STORE_TO_RETREAD_SUPPLIER = "STORE_TO_RETREAD_SUPPLIER"
    STORE_TO_DISPOSAL = "STORE_TO_DISPOSAL"


class PermissionAction(Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"

    @property
    def flag(self) -> str:
        """Name of the permission field granting this action (e.g. can_view)."""
        return f"can_{self.value}"


# Purchase orders that can no longer take goods receipts
CLOSED_PO_STATUSES = ("FULLY_RECEIVED", "RECEIVED", "CLOSED")

STOCK_IN_MOVEMENTS = ("PURCHASE_TO_STORE", "RETREAD_SUPPLIER_TO_STORE", "VEHICLE_TO_STORE")
STOCK_OUT_MOVEMENTS = ("STORE_TO_VEHICLE", "STORE_TO_RETREAD_SUPPLIER", "STORE_TO_DISPOSAL")

RETIREMENT_REASONS = [
    "End of Service Life",
    "Accident Damage",
    "Mechanical Failure",
    "Fleet Reduction",
    "Sold/Transferred",
    "Other",
]

_LABEL_OVERRIDES = {
    "TIRE_SUPPLIER": "Tire Supplier",
    "RETREAD_SUPPLIER": "Retread Supplier",
    "SERVICE_PROVIDER": "Service Provider",
    "RETREAD_SERVICE": "Retread Service",
    "AT_RETREAD_SUPPLIER": "At Retreader",
}


def parse_enum(enum_cls: Type[Enum], value: Optional[str]) -> Optional[Enum]:
    """Look up an enum member by wire value, or None if unknown."""
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def status_label(value: Optional[str]) -> str:
    """Human-readable label for a wire status ('IN_STORE' -> 'In Store')."""
    if not value:
        return "—"
    if value in _LABEL_OVERRIDES:
        return _LABEL_OVERRIDES[value]
    return value.replace("_", " ").title()
