"""Helper functions for VAT, order totals, ledger balances and tire service."""

import math
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .purchase_order import OrderLine, OrderTotals
from .settings import DEFAULT_VAT_RATE, SystemSettings, TaxRate
from .supplier import LedgerEntry, LedgerRow

DEBIT_TYPES = ("PURCHASE", "RETREAD_SERVICE")
CREDIT_TYPES = ("PAYMENT",)

DateLike = Union[str, date, datetime, None]


def parse_date(value: DateLike) -> Optional[datetime]:
    """Parse an ISO date or timestamp from the backend; None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError):
        return None
    # Timestamps and plain dates are compared on one naive UTC timeline
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# =============================================================================
# VAT and purchase order totals
# =============================================================================


def resolve_vat_rate(
    default_tax_rate: Optional[TaxRate] = None,
    settings: Optional[SystemSettings] = None,
) -> float:
    """
    VAT percentage to price a purchase with.

    The default tax rate wins, then the system-wide VAT setting, then 16%.
    A rate that is missing or 0 counts as unset and falls through.
    """
    if default_tax_rate is not None and default_tax_rate.rate:
        return float(default_tax_rate.rate)
    if settings is not None and settings.vat_rate:
        return float(settings.vat_rate)
    return DEFAULT_VAT_RATE


def price_excluding_vat(vat_inclusive_price: float, rate: float) -> float:
    """Back out VAT from an inclusive price. ``rate`` is a fraction (0.16)."""
    if vat_inclusive_price <= 0:
        return 0.0
    return vat_inclusive_price / (1 + rate)


def vat_amount(vat_inclusive_price: float, rate: float) -> float:
    """VAT contained in an inclusive price."""
    if vat_inclusive_price <= 0:
        return 0.0
    return vat_inclusive_price - price_excluding_vat(vat_inclusive_price, rate)


def line_total(price: float, quantity: float) -> float:
    return price * quantity


def calculate_line(
    size: str, quantity: int, vat_inclusive_price: float, rate: float
) -> OrderLine:
    """Price one order line from its VAT-inclusive unit price."""
    exclusive = price_excluding_vat(vat_inclusive_price, rate)
    return OrderLine(
        size=size,
        quantity=quantity,
        vat_inclusive_price=vat_inclusive_price,
        price_excluding_vat=exclusive,
        line_total_including_vat=line_total(vat_inclusive_price, quantity),
        line_total_excluding_vat=line_total(exclusive, quantity),
    )


def calculate_order_totals(
    lines: Iterable[OrderLine], rate: float, shipping_amount: float = 0.0
) -> OrderTotals:
    """
    Totals for the order summary.

    Subtotals are derived from the VAT-inclusive line totals; shipping is
    added to the grand total and carries no VAT.
    """
    lines = list(lines)
    subtotal_including_vat = sum(line.line_total_including_vat for line in lines)
    total_vat = (subtotal_including_vat * rate) / (1 + rate)
    return OrderTotals(
        subtotal_excluding_vat=subtotal_including_vat - total_vat,
        total_vat=total_vat,
        subtotal_including_vat=subtotal_including_vat,
        shipping_amount=shipping_amount,
        grand_total=subtotal_including_vat + shipping_amount,
        total_quantity=sum(line.quantity for line in lines),
        vat_rate=rate * 100,
    )


def payment_due_date(invoice_date: DateLike, term_days: Optional[int]) -> Optional[date]:
    """Date a supplier invoice falls due under its payment term."""
    start = parse_date(invoice_date)
    if start is None or term_days is None:
        return None
    return (start + relativedelta(days=term_days)).date()


# =============================================================================
# Supplier ledger
# =============================================================================


def running_balances(entries: Iterable[LedgerEntry]) -> List[LedgerRow]:
    """
    Split entries into debit/credit and accumulate a running balance.

    Entries are processed in the order given, so callers sort first.
    """
    balance = 0.0
    rows = []
    for entry in entries:
        debit = credit = 0.0
        if entry.transaction_type in DEBIT_TYPES:
            debit = entry.amount
            balance += entry.amount
        elif entry.transaction_type in CREDIT_TYPES:
            credit = entry.amount
            balance -= entry.amount
        rows.append(LedgerRow(entry=entry, debit=debit, credit=credit, running_balance=balance))
    return rows


def chronological_balances(entries: Iterable[LedgerEntry]) -> List[LedgerRow]:
    """Running balances with entries sorted oldest first."""
    ordered = sorted(entries, key=lambda e: parse_date(e.date) or datetime.min)
    return running_balances(ordered)


def balance_after_payment(balance: float, amount: float) -> float:
    return balance - amount


# =============================================================================
# Tire service
# =============================================================================


def service_days(install_date: DateLike, removal_date: DateLike) -> Optional[int]:
    """Whole days a tire was in service, rounded up; None while still fitted."""
    if not removal_date:
        return None
    install = parse_date(install_date)
    removal = parse_date(removal_date)
    if install is None or removal is None:
        return None
    seconds = abs((removal - install).total_seconds())
    return math.ceil(seconds / 86400)


def service_distance(
    install_odometer: Optional[float], removal_odometer: Optional[float]
) -> Optional[float]:
    """Distance covered on the vehicle; None while still fitted."""
    if not removal_odometer:
        return None
    return removal_odometer - (install_odometer or 0)


def retread_batch_cost(per_tire_cost: float, tire_count: int) -> float:
    return per_tire_cost * tire_count
