"""CSV exports and the display formatting they share with the web pages."""

import csv
import io
import re
from datetime import date
from typing import Iterable, List, Optional, Sequence

from api.errors import ValidationError

from .calculations import DateLike, parse_date, service_days, service_distance
from .grn import GoodsReceivedNote
from .movement import StockLedgerEntry
from .retread import RetreadOrder
from .supplier import LedgerRow
from .tire import InventoryBySize
from .vehicle import TireInstallation

EMPTY = "—"
CURRENT = "Current"

HISTORY_HEADERS = [
    "Serial Number",
    "Position",
    "Install Date",
    "Removal Date",
    "Service Duration",
    "Install Odometer",
    "Removal Odometer",
    "Service Mileage",
    "Brand",
    "Size",
    "Type",
    "Reason for Change",
    "Installed By",
]

RETREAD_ORDER_HEADERS = [
    "Order #",
    "Supplier",
    "Status",
    "Total Tires",
    "Total Cost",
    "Created Date",
    "Sent Date",
    "Received Date",
]

LEDGER_HEADERS = ["Date", "Description", "Type", "Reference", "Debit", "Credit", "Balance"]

INVENTORY_HEADERS = ["Size", "New", "Retreaded", "Used", "Retread Candidates"]

GRN_HEADERS = [
    "GRN Number",
    "PO Number",
    "Receipt Date",
    "Supplier",
    "Received By",
    "Item Count",
    "Total Quantity",
    "Total Value",
    "Status",
    "Invoice Number",
    "Accounting Transaction",
    "Created Date",
]

STOCK_LEDGER_HEADERS = [
    "Date",
    "User Name",
    "Store Location",
    "Opening Stock",
    "Qty In",
    "Qty Out",
    "Closing Stock",
    "Price",
    "Reference",
    "Document No",
    "Type",
    "Serial Number",
    "Size",
    "Brand",
]


# =============================================================================
# Formatting
# =============================================================================


def format_date(value: DateLike, with_time: bool = False) -> str:
    """'Jan 5, 2024' (or 'Jan 5, 2024 14:30'); a dash when there is no date."""
    if not value:
        return EMPTY
    parsed = parse_date(value)
    if parsed is None:
        return "Invalid date"
    text = f"{parsed:%b} {parsed.day}, {parsed.year}"
    if with_time:
        text += f" {parsed:%H:%M}"
    return text


def format_number(value: Optional[float]) -> str:
    """Thousands separators, up to three decimals: 12345.5 -> '12,345.5'."""
    if value is None:
        return ""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_money(amount: Optional[float], symbol: str = "KSH", decimals: int = 2) -> str:
    amount = amount or 0.0
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {abs(amount):,.{decimals}f}"


def service_duration_label(install_date: DateLike, removal_date: DateLike) -> str:
    days = service_days(install_date, removal_date)
    return CURRENT if days is None else f"{days} days"


def service_mileage_label(
    install_odometer: Optional[float], removal_odometer: Optional[float]
) -> str:
    distance = service_distance(install_odometer, removal_odometer)
    return CURRENT if distance is None else f"{format_number(distance)} km"


def _plain(value: float) -> str:
    """1500.0 -> "1500", 1500.5 -> "1500.5"."""
    return str(int(value)) if float(value).is_integer() else str(value)


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", text or "").strip("-") or "export"


def _stamp(today: Optional[date]) -> str:
    return (today or date.today()).isoformat()


def _write(headers: Sequence[str], rows: Iterable[Sequence], quote_all: bool = False) -> str:
    out = io.StringIO()
    writer = csv.writer(
        out,
        quoting=csv.QUOTE_ALL if quote_all else csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(headers)
    writer.writerows(rows)
    return out.getvalue()


# =============================================================================
# Exports
# =============================================================================


def history_row(record: TireInstallation) -> List[str]:
    return [
        record.serial_number,
        record.position_code,
        format_date(record.install_date),
        format_date(record.removal_date) if record.removal_date else CURRENT,
        service_duration_label(record.install_date, record.removal_date),
        format_number(record.install_odometer),
        format_number(record.removal_odometer) if record.removal_odometer else CURRENT,
        service_mileage_label(record.install_odometer, record.removal_odometer),
        record.brand,
        record.size,
        record.tire_type,
        record.reason_for_change,
        record.created_by,
    ]


def history_csv(records: Iterable[TireInstallation]) -> str:
    """Tire installation history, one row per installation."""
    return _write(HISTORY_HEADERS, (history_row(r) for r in records))


def history_csv_filename(vehicle_number: str, today: Optional[date] = None) -> str:
    return f"tire-history-{_slug(vehicle_number)}-{_stamp(today)}.csv"


def retread_orders_csv(orders: Sequence[RetreadOrder]) -> str:
    """Retread orders with every cell quoted. Raises when there is nothing to export."""
    if not orders:
        raise ValidationError(["No orders to export"])
    rows = (
        [
            o.order_number,
            o.supplier_name,
            o.status,
            str(o.total_tires),
            _plain(o.total_cost),
            format_date(o.created_at),
            format_date(o.sent_date),
            format_date(o.received_date),
        ]
        for o in orders
    )
    return _write(RETREAD_ORDER_HEADERS, rows, quote_all=True)


def retread_orders_csv_filename(today: Optional[date] = None) -> str:
    return f"retread-orders-{_stamp(today)}.csv"


def ledger_csv(rows: Iterable[LedgerRow]) -> str:
    """Supplier ledger rows as displayed, with their running balances."""
    return _write(
        LEDGER_HEADERS,
        (
            [
                format_date(row.entry.date),
                row.entry.description,
                row.entry.transaction_type,
                row.entry.reference_number or "",
                f"{row.debit:.2f}" if row.debit else "",
                f"{row.credit:.2f}" if row.credit else "",
                f"{row.running_balance:.2f}",
            ]
            for row in rows
        ),
    )


def ledger_csv_filename(supplier_name: str, today: Optional[date] = None) -> str:
    return f"ledger-{_slug(supplier_name)}-{_stamp(today)}.csv"


def inventory_csv(rows: Iterable[InventoryBySize]) -> str:
    return _write(
        INVENTORY_HEADERS,
        (
            [r.size, r.new_count, r.retreaded_count, r.used_count, r.retread_candidates_count]
            for r in rows
        ),
    )


def inventory_csv_filename(today: Optional[date] = None) -> str:
    return f"inventory-by-size-{_stamp(today)}.csv"


def grn_csv(notes: Sequence[GoodsReceivedNote]) -> str:
    """Goods received notes with every cell quoted. Raises when there is nothing to export."""
    if not notes:
        raise ValidationError(["No data to export"])
    rows = (
        [
            n.grn_number,
            n.po_number or "",
            format_date(n.receipt_date),
            n.supplier_name,
            n.received_by_name or "N/A",
            str(n.item_count),
            str(n.total_quantity),
            f"{n.total_value:.2f}",
            n.status,
            n.supplier_invoice_number or "",
            str(n.accounting_transaction_id) if n.accounting_transaction_id else "Not recorded",
            format_date(n.created_at),
        ]
        for n in notes
    )
    return _write(GRN_HEADERS, rows, quote_all=True)


def grn_csv_filename(today: Optional[date] = None) -> str:
    return f"grns-export-{_stamp(today)}.csv"


def stock_ledger_csv(entries: Iterable[StockLedgerEntry]) -> str:
    """The stock ledger as shown on the movement page."""
    return _write(
        STOCK_LEDGER_HEADERS,
        (
            [
                format_date(e.date),
                e.user_name,
                e.location,
                format_number(e.opening_stock),
                format_number(e.quantity_in),
                format_number(e.quantity_out),
                format_number(e.closing_stock),
                f"{e.price:.2f}" if e.price else "",
                e.reference,
                e.document_no,
                e.type,
                e.movement.serial_number,
                e.movement.size,
                e.movement.brand,
            ]
            for e in entries
        ),
    )


def stock_ledger_csv_filename(start_date: Optional[str], end_date: Optional[str]) -> str:
    return f"tire-stock-ledger-{start_date or 'start'}-to-{end_date or 'end'}.csv"
