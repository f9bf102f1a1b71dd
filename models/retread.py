"""Retread orders, the tires sent in them and receiving them back."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_RECEIVED_DEPTH = 16.0


@dataclass
class RetreadTire:
    id: int
    tire_id: int
    serial_number: str
    size: str = ""
    brand: str = ""
    model: str = ""
    status: str = ""
    returned: bool = False
    return_date: Optional[str] = None
    retread_cost: Optional[float] = None
    depth_remaining: Optional[float] = None
    previous_retread_count: int = 0
    notes: Optional[str] = None


@dataclass
class RetreadEvent:
    """A status change on an order's timeline."""

    status: str
    date: str
    note: Optional[str] = None
    user: Optional[str] = None


@dataclass
class RetreadOrder:
    """A batch of casings sent to a retread supplier."""

    id: int
    order_number: str
    supplier_id: int
    supplier_name: str
    status: str
    total_tires: int = 0
    total_cost: float = 0.0
    expected_completion_date: Optional[str] = None
    sent_date: Optional[str] = None
    received_date: Optional[str] = None
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    received_tires: int = 0
    notes: Optional[str] = None
    supplier_contact_person: Optional[str] = None
    supplier_phone: Optional[str] = None
    supplier_email: Optional[str] = None
    supplier_address: Optional[str] = None
    tires: List[RetreadTire] = field(default_factory=list)
    timeline: List[RetreadEvent] = field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        """Drafts can be sent, duplicated or deleted."""
        return self.status == "DRAFT"

    @property
    def can_cancel(self) -> bool:
        return self.status in ("SENT", "IN_PROGRESS")

    @property
    def can_receive(self) -> bool:
        return self.status in ("SENT", "IN_PROGRESS", "COMPLETED", "PARTIALLY_RECEIVED")

    @property
    def receive_label(self) -> Optional[str]:
        """Link text for the per-order receive page, None when it has nothing to receive."""
        if self.status == "COMPLETED":
            return "Receive Order"
        if self.status == "PARTIALLY_RECEIVED":
            return "Continue Receiving"
        return None

    @property
    def cost_per_tire(self) -> float:
        if not self.total_tires:
            return 0.0
        return self.total_cost / self.total_tires


@dataclass
class RetreadReceiptLine:
    """
    One casing on the receive form.

    Every line must end up RECEIVED or REJECTED before the receipt is
    posted. Rejected casings go back with no depth and no cost.
    """

    tire_id: int
    serial_number: str
    size: str = ""
    brand: str = ""
    model: str = ""
    previous_retread_count: int = 0
    status: str = "PENDING"
    quality: str = "GOOD"
    received_depth: Optional[float] = DEFAULT_RECEIVED_DEPTH
    cost: Optional[float] = 0.0
    notes: str = ""

    @property
    def is_received(self) -> bool:
        return self.status == "RECEIVED"

    def to_receive_payload(self) -> Dict[str, Any]:
        return {
            "tire_id": self.tire_id,
            "status": self.status,
            "quality": self.quality,
            "received_depth": self.received_depth if self.is_received else 0,
            "cost": self.cost if self.is_received else 0,
            "notes": self.notes,
        }

    def to_grn_item(self, order_number: str) -> Dict[str, Any]:
        """A received casing as a goods received note line."""
        depth = self.received_depth
        if depth is not None and float(depth).is_integer():
            depth = int(depth)
        return {
            "item_id": self.tire_id,
            "item_type": "TIRE",
            "item_code": self.serial_number,
            "item_name": f"{self.brand} {self.model}".strip(),
            "description": (
                f"Retread tire - Size: {self.size}, Quality: {self.quality}, Depth: {depth}mm"
            ),
            "quantity": 1,
            "unit_price": self.cost,
            "total_price": self.cost,
            "received_quantity": 1,
            "accepted_quantity": 1,
            "rejected_quantity": 0,
            "condition": self.quality,
            "notes": self.notes,
            "batch_number": f"RT-{order_number}-{self.serial_number}",
        }


@dataclass
class RetreadReceipt:
    """What the backend expects back from a retread order."""

    order_id: int
    order_number: str
    supplier_id: Optional[int] = None
    supplier_name: str = ""
    lines: List[RetreadReceiptLine] = field(default_factory=list)

    @property
    def received(self) -> List[RetreadReceiptLine]:
        return [line for line in self.lines if line.is_received]

    @property
    def rejected(self) -> List[RetreadReceiptLine]:
        return [line for line in self.lines if line.status == "REJECTED"]

    @property
    def pending_count(self) -> int:
        return sum(1 for line in self.lines if line.status == "PENDING")

    @property
    def received_value(self) -> float:
        return sum(line.cost or 0.0 for line in self.received)

    def to_receive_payload(
        self, received_date: str, notes: str, user_id: Optional[int]
    ) -> Dict[str, Any]:
        """Received casings first, then rejected ones."""
        return {
            "received_date": received_date,
            "notes": notes or "",
            "tires": [line.to_receive_payload() for line in self.received + self.rejected],
            "user_id": user_id,
        }


def build_retread_grn(
    receipt: RetreadReceipt,
    grn_number: str,
    receipt_date: str,
    received_by: Optional[int],
    notes: Optional[str] = None,
    delivery_note_number: Optional[str] = None,
    vehicle_number: Optional[str] = None,
    driver_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Goods received note for the casings accepted back from the retreader."""
    received = receipt.received
    return {
        "grn_number": grn_number,
        "po_id": receipt.order_id,
        "po_number": receipt.order_number,
        "receipt_date": receipt_date,
        "received_by": received_by,
        "supplier_id": receipt.supplier_id,
        "supplier_name": receipt.supplier_name,
        "delivery_note_number": delivery_note_number or None,
        "vehicle_number": vehicle_number or None,
        "driver_name": driver_name or None,
        "notes": notes or f"Retread tires received from order #{receipt.order_number}",
        "items": [line.to_grn_item(receipt.order_number) for line in received],
        "total_value": receipt.received_value,
        "item_count": len(received),
        "total_quantity": len(received),
        "status": "COMPLETED",
    }
