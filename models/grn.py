"""Goods received notes and the lines and tires on them."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class GrnItem:
    """One purchase order line received on a note."""

    id: int
    grn_id: int
    po_item_id: Optional[int] = None
    quantity_received: int = 0
    unit_cost: float = 0.0
    batch_number: Optional[str] = None
    serial_numbers: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.quantity_received * self.unit_cost


@dataclass
class GrnTire:
    """A tire created in stock by a note."""

    serial_number: str
    size: str = ""
    brand: str = ""
    model: str = ""
    type: Optional[str] = None
    purchase_cost: Optional[float] = None
    status: Optional[str] = None


@dataclass
class GoodsReceivedNote:
    id: int
    grn_number: str
    receipt_date: str
    po_id: Optional[int] = None
    po_number: Optional[str] = None
    supplier_name: str = ""
    supplier_code: Optional[str] = None
    received_by_name: Optional[str] = None
    supplier_invoice_number: Optional[str] = None
    delivery_note_number: Optional[str] = None
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    item_count: int = 0
    total_quantity: int = 0
    total_value: float = 0.0
    status: str = "COMPLETED"
    notes: Optional[str] = None
    created_at: Optional[str] = None
    accounting_transaction_id: Optional[int] = None
    items: List[GrnItem] = field(default_factory=list)
    tires: List[GrnTire] = field(default_factory=list)

    @property
    def is_invoiced(self) -> bool:
        """An invoice number or an accounting entry has been recorded."""
        return bool(self.supplier_invoice_number or self.accounting_transaction_id)

    @property
    def invoice_status(self) -> str:
        if self.supplier_invoice_number:
            return "Invoiced"
        if self.accounting_transaction_id:
            return "Accounted"
        return "Not invoiced"
