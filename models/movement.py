"""Tire stock movements and the stock ledger built from them."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .calculations import parse_date
from .status import STOCK_IN_MOVEMENTS, STOCK_OUT_MOVEMENTS

STORE_LOCATION = "MAIN_WAREHOUSE"


@dataclass
class Movement:
    """One tire moving into or out of the store."""

    id: int
    tire_id: int
    movement_type: str
    movement_date: str
    serial_number: str = ""
    size: str = ""
    brand: str = ""
    user_name: Optional[str] = None
    notes: Optional[str] = None
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    supplier_name: Optional[str] = None
    purchase_cost: Optional[float] = None
    retread_cost: Optional[float] = None
    disposal_reason: Optional[str] = None
    position: Optional[str] = None
    document_number: Optional[str] = None

    @property
    def group_key(self) -> Tuple[str, str, str]:
        """Movements sharing date, reference and type form one transaction."""
        return (
            self.movement_date,
            self.reference_number or self.reference_type or "",
            self.movement_type,
        )


@dataclass
class StockLedgerEntry:
    """One transaction on the stock ledger with stock before and after it."""

    id: int
    date: str
    user_name: str
    location: str
    opening_stock: int
    quantity_in: int
    quantity_out: int
    closing_stock: int
    price: Optional[float]
    reference: str
    document_no: str
    type: str
    movement: Movement


def transaction_details(movement: Movement) -> Tuple[str, str, str]:
    """(type label, document number, reference) shown for a transaction."""
    kind = movement.movement_type
    doc = movement.document_number
    if kind == "PURCHASE_TO_STORE":
        reference = movement.supplier_name or "Supplier"
        if movement.reference_number:
            reference += f"/{movement.reference_number}"
        return "Purchase", doc or f"PUR-{movement.id}", reference
    if kind == "STORE_TO_VEHICLE":
        reference = movement.vehicle_number or "Vehicle"
        if movement.position:
            reference += f"/{movement.position}"
        return "Installation", doc or f"INST-{movement.id}", reference
    if kind == "VEHICLE_TO_STORE":
        reference = movement.vehicle_number or "Vehicle"
        if movement.notes:
            reference += f" - {movement.notes}"
        return "Return from Vehicle", doc or f"RET-{movement.id}", reference
    if kind == "STORE_TO_RETREAD_SUPPLIER":
        return (
            "Send for Retreading",
            doc or f"RETREAD-SEND-{movement.id}",
            movement.supplier_name or "Retreader",
        )
    if kind == "RETREAD_SUPPLIER_TO_STORE":
        return (
            "Return from Retreading",
            doc or f"RETREAD-RET-{movement.id}",
            movement.supplier_name or "Retreader",
        )
    if kind == "STORE_TO_DISPOSAL":
        return "Disposal", doc or f"DISP-{movement.id}", movement.disposal_reason or "Disposed"
    # Unknown kinds ignore document_number
    return kind.replace("_", " "), f"TRX-{movement.id}", movement.notes or ""


def transaction_price(movement: Movement) -> Optional[float]:
    if movement.movement_type == "PURCHASE_TO_STORE":
        return movement.purchase_cost
    if movement.movement_type == "STORE_TO_RETREAD_SUPPLIER":
        return movement.retread_cost
    return None


def stock_ledger(movements: Iterable[Movement]) -> List[StockLedgerEntry]:
    """
    Group movements into transactions and carry a running stock count.

    Movements are sorted by date first. Each tire entering the store counts
    one in, each tire leaving counts one out; other kinds leave stock
    unchanged. Stock starts at 0 for the window given.
    """
    ordered = sorted(movements, key=lambda m: parse_date(m.movement_date) or datetime.min)
    groups: Dict[Tuple[str, str, str], List[Movement]] = {}
    for movement in ordered:
        groups.setdefault(movement.group_key, []).append(movement)

    ledger = []
    stock = 0
    for group in groups.values():
        first = group[0]
        quantity_in = sum(1 for m in group if m.movement_type in STOCK_IN_MOVEMENTS)
        quantity_out = sum(1 for m in group if m.movement_type in STOCK_OUT_MOVEMENTS)
        opening = stock
        stock = opening + quantity_in - quantity_out
        kind, document_no, reference = transaction_details(first)
        ledger.append(
            StockLedgerEntry(
                id=first.id,
                date=first.movement_date,
                user_name=first.user_name or "System",
                location=STORE_LOCATION,
                opening_stock=opening,
                quantity_in=quantity_in,
                quantity_out=quantity_out,
                closing_stock=stock,
                price=transaction_price(first),
                reference=reference,
                document_no=document_no,
                type=kind,
                movement=first,
            )
        )
    return ledger


def filter_stock_ledger(entries: Iterable[StockLedgerEntry], search: str) -> List[StockLedgerEntry]:
    """Case-insensitive match on user, reference, document, type, serial or size."""
    entries = list(entries)
    needle = search.strip().lower()
    if not needle:
        return entries
    return [
        e
        for e in entries
        if any(
            needle in (value or "").lower()
            for value in (
                e.user_name,
                e.reference,
                e.document_no,
                e.type,
                e.movement.serial_number,
                e.movement.size,
            )
        )
    ]


def ledger_totals(entries: List[StockLedgerEntry]) -> Dict[str, int]:
    """Header counters: tires in, tires out and the latest closing stock."""
    return {
        "transactions": len(entries),
        "quantity_in": sum(e.quantity_in for e in entries),
        "quantity_out": sum(e.quantity_out for e in entries),
        "closing_stock": entries[-1].closing_stock if entries else 0,
    }
