"""Purchase orders, order form lines and goods receiving lines."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PurchaseOrderItem:
    """A line of a saved purchase order."""

    id: int
    size: str
    quantity: int
    unit_price: float
    line_total: float = 0.0
    received_quantity: int = 0
    brand: Optional[str] = None
    model: Optional[str] = None
    type: Optional[str] = None
    po_id: Optional[int] = None
    notes: Optional[str] = None

    @property
    def remaining_quantity(self) -> int:
        return max(self.quantity - self.received_quantity, 0)


@dataclass
class PurchaseOrder:
    id: int
    po_number: str
    supplier_id: int
    status: str
    po_date: str
    supplier_name: str = ""
    supplier_type: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    delivery_date: Optional[str] = None
    total_amount: float = 0.0
    tax_amount: float = 0.0
    shipping_amount: float = 0.0
    final_amount: float = 0.0
    tax_rate: Optional[float] = None
    tax_name: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    created_by_name: Optional[str] = None
    approved_by_name: Optional[str] = None
    created_at: Optional[str] = None
    items: List[PurchaseOrderItem] = field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def received_quantity(self) -> int:
        return sum(item.received_quantity for item in self.items)

    @property
    def is_fully_received(self) -> bool:
        return bool(self.items) and all(
            item.remaining_quantity == 0 for item in self.items
        )


@dataclass
class OrderLine:
    """A line on the new purchase form, priced VAT-inclusive."""

    size: str
    quantity: int
    vat_inclusive_price: float
    price_excluding_vat: float = 0.0
    line_total_including_vat: float = 0.0
    line_total_excluding_vat: float = 0.0


@dataclass
class OrderTotals:
    """Totals shown in the order summary of the new purchase form."""

    subtotal_excluding_vat: float
    total_vat: float
    subtotal_including_vat: float
    shipping_amount: float
    grand_total: float
    total_quantity: int
    vat_rate: float


@dataclass
class ReceivingLine:
    """A purchase order line being received against a goods received note."""

    po_item_id: int
    size: str
    ordered_quantity: int
    previously_received: int
    unit_price: float
    current_receive: int = 0
    brand: str = ""
    batch_number: str = ""
    condition: str = "GOOD"
    notes: str = ""
    serial_numbers: List[str] = field(default_factory=list)

    @property
    def remaining_quantity(self) -> int:
        return max(self.ordered_quantity - self.previously_received, 0)

    @property
    def entered_serials(self) -> List[str]:
        return [sn.strip().upper() for sn in self.serial_numbers if sn.strip()]

    def to_payload(self) -> dict:
        return {
            "po_item_id": self.po_item_id,
            "quantity_received": self.current_receive,
            "unit_cost": self.unit_price,
            "batch_number": self.batch_number,
            "brand": self.brand.strip(),
            "serial_numbers": self.entered_serials,
            "notes": self.notes,
            "condition": self.condition,
        }
