#!/usr/bin/env python3
"""
Command-line access to the tire fleet backend.

Commands:
  inventory  - Stock counters and tires by size
  suppliers  - Supplier accounts and balances
  ledger     - A supplier's ledger with running balances
  history    - A vehicle's tire installation history
  vehicles   - Fleet vehicles
  retreads   - Retread orders
  po-totals  - Work out purchase order totals from VAT-inclusive prices
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from tabulate import tabulate

from api import ApiClient, ApiError
from api.fleet import FleetApi
from models.calculations import (
    calculate_line,
    calculate_order_totals,
    chronological_balances,
)
from models.export import (
    format_date,
    format_money,
    format_number,
    history_csv,
    history_row,
    inventory_csv,
    ledger_csv,
    retread_orders_csv,
)
from models.filters import (
    HistoryFilter,
    filter_history,
    filter_inventory_by_size,
    ledger_display,
    paginate,
)
from models.settings import DEFAULT_VAT_RATE
from models.status import status_label
from models.vehicle import HISTORY_SORT_KEYS

logger = logging.getLogger("fleet")

DEFAULT_API_URL = "http://localhost:5000"

# =============================================================================
# Formatting helpers
# =============================================================================


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Shorten a table cell to max_len characters; blanks become "-"."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def build_api(args) -> FleetApi:
    client = ApiClient(args.api_url, token=args.token, timeout=args.timeout)
    return FleetApi(client)


# =============================================================================
# Inventory and suppliers
# =============================================================================


def cmd_inventory(args, api: FleetApi):
    """Show stock counters and tires by size."""
    rows = api.inventory_by_size()
    if args.search:
        rows = filter_inventory_by_size(rows, args.search)

    if args.csv:
        print(inventory_csv(rows), end="")
        return 0

    stats = api.dashboard_stats()
    print(f"Total tires: {stats.total_tires:,}")
    print(
        f"In store: {stats.in_store:,}  On vehicles: {stats.on_vehicle:,}  "
        f"Used store: {stats.used_store:,}"
    )
    print(
        f"Awaiting retread: {stats.awaiting_retread:,}  "
        f"At retreader: {stats.at_retreader:,}"
    )
    print(f"Stock value: {format_money(stats.total_value)}")
    print()

    if not rows:
        print("No tire sizes found.")
        return 0

    table = [
        [r.size, r.new_count, r.retreaded_count, r.used_count, r.retread_candidates_count, r.total]
        for r in rows
    ]
    headers = ["Size", "New", "Retreaded", "Used", "Candidates", "Total"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    return 0


def cmd_suppliers(args, api: FleetApi):
    """List suppliers with their balances."""
    suppliers = api.list_suppliers(args.type)
    if not suppliers:
        print("No suppliers found.")
        return 0

    table = [
        [
            s.id,
            s.name,
            status_label(s.type),
            s.contact_person or "-",
            s.payment_term_name or "-",
            format_money(s.balance),
        ]
        for s in suppliers
    ]
    headers = ["ID", "Name", "Type", "Contact", "Terms", "Balance"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    print()
    print(f"Total outstanding: {format_money(sum(s.balance for s in suppliers))}")
    return 0


def cmd_ledger(args, api: FleetApi):
    """Show a supplier's ledger."""
    supplier = api.get_supplier(args.supplier_id)
    rows = ledger_display(
        supplier.ledger, start_date=args.since, end_date=args.until, ascending=args.asc
    )

    if args.csv:
        print(ledger_csv(rows), end="")
        return 0

    full = chronological_balances(supplier.ledger)
    print(f"Supplier: {supplier.name} ({status_label(supplier.type)})")
    print(f"Balance: {format_money(supplier.balance)}")
    if full:
        print(f"Ledger closing balance: {format_money(full[-1].running_balance)}")
    if args.since or args.until:
        print(f"Showing: {len(rows)} of {len(supplier.ledger)} (filtered)")
    print()

    if not rows:
        print("No transactions found.")
        return 0

    table = [
        [
            format_date(r.entry.date),
            truncate(r.entry.description),
            status_label(r.entry.transaction_type),
            r.entry.reference_number or "-",
            format_money(r.debit) if r.debit else "",
            format_money(r.credit) if r.credit else "",
            format_money(r.running_balance),
        ]
        for r in rows
    ]
    headers = ["Date", "Description", "Type", "Reference", "Debit", "Credit", "Balance"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Vehicles
# =============================================================================


def cmd_vehicles(args, api: FleetApi):
    """List vehicles."""
    status = "RETIRED" if args.retired else "ACTIVE"
    vehicles, pagination = api.list_vehicles(
        page=args.page, limit=args.limit, status=status, search=args.search or ""
    )
    if not vehicles:
        print("No vehicles found.")
        return 0

    table = [
        [
            v.id,
            v.vehicle_number,
            f"{v.make} {v.model}",
            v.wheel_config or "-",
            format_number(v.current_odometer) if v.current_odometer is not None else "-",
            v.active_tires_count,
            status_label(v.status),
        ]
        for v in vehicles
    ]
    headers = ["ID", "Vehicle", "Make / Model", "Config", "Odometer (km)", "Tires", "Status"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    if pagination:
        total = pagination.get("total", len(vehicles))
        print(f"\nPage {pagination.get('page', args.page)}, {total} vehicles")
    return 0


def cmd_history(args, api: FleetApi):
    """Show a vehicle's tire installation history."""
    vehicle = api.get_vehicle(args.vehicle_id)
    records = vehicle.get_history_sorted(sort_by=args.sort, reverse=not args.asc)
    history_filter = HistoryFilter(
        search=args.search or "",
        tire_type=args.type.lower(),
        position=args.position,
        status=args.status,
    )
    records = filter_history(records, history_filter)

    if args.csv:
        print(history_csv(records), end="")
        return 0

    print(f"Vehicle: {vehicle.name}")
    if vehicle.current_odometer is not None:
        print(f"Odometer: {format_number(vehicle.current_odometer)} km")
    print(f"Total records: {len(vehicle.history)}")
    if history_filter.is_active:
        print(f"Showing: {len(records)} (filtered)")
    print()

    if not records:
        print("No history entries found.")
        return 0

    page = paginate(records, args.page, args.limit)
    # Serial, position, install date, removal date, duration, mileage, type, reason
    columns = (0, 1, 2, 3, 4, 7, 10, 11)
    table = []
    for record in page.items:
        row = history_row(record)
        table.append([truncate(row[i]) for i in columns])
    headers = ["Serial", "Position", "Installed", "Removed", "Duration", "Mileage", "Type", "Reason"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    if page.pages > 1:
        print(f"\nPage {page.page} of {page.pages} ({page.first_index}-{page.last_index} of {page.total})")
    return 0


# =============================================================================
# Retreads and purchasing
# =============================================================================


def cmd_retreads(args, api: FleetApi):
    """List retread orders."""
    orders, _ = api.list_retread_orders(
        page=args.page, limit=args.limit, status=args.status or ""
    )

    if args.csv:
        print(retread_orders_csv(orders), end="")
        return 0

    if not orders:
        print("No retread orders found.")
        return 0

    table = [
        [
            o.order_number,
            o.supplier_name,
            status_label(o.status),
            f"{o.received_tires}/{o.total_tires}",
            format_money(o.total_cost),
            format_date(o.created_at),
            format_date(o.sent_date),
        ]
        for o in orders
    ]
    headers = ["Order #", "Supplier", "Status", "Tires", "Total Cost", "Created", "Sent"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    return 0


def parse_item(text: str):
    """Parse SIZE:QTY:PRICE (the size itself may not contain a colon)."""
    parts = text.rsplit(":", 2)
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected SIZE:QTY:PRICE, got '{text}'")
    size, quantity, price = parts
    try:
        return size, int(quantity), float(price)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid quantity or price in '{text}'")


def cmd_po_totals(args, api=None):
    """Work out order totals from VAT-inclusive unit prices."""
    rate = args.rate / 100
    lines = [calculate_line(size, qty, price, rate) for size, qty, price in args.items]
    totals = calculate_order_totals(lines, rate, args.shipping)

    table = [
        [
            line.size,
            line.quantity,
            format_money(line.vat_inclusive_price),
            format_money(line.price_excluding_vat),
            format_money(line.line_total_including_vat),
        ]
        for line in lines
    ]
    headers = ["Size", "Qty", "Unit (incl. VAT)", "Unit (excl. VAT)", "Line Total"]
    print(tabulate(table, headers=headers, tablefmt="simple"))
    print()
    summary = [
        ["Tires", totals.total_quantity],
        ["Subtotal (excl. VAT)", format_money(totals.subtotal_excluding_vat)],
        [f"VAT ({format_number(totals.vat_rate)}%)", format_money(totals.total_vat)],
        ["Subtotal (incl. VAT)", format_money(totals.subtotal_including_vat)],
        ["Shipping", format_money(totals.shipping_amount)],
        ["Grand total", format_money(totals.grand_total)],
    ]
    print(tabulate(summary, tablefmt="plain", colalign=("left", "right")))
    return 0


# =============================================================================
# Main
# =============================================================================

COMMANDS = {
    "inventory": cmd_inventory,
    "suppliers": cmd_suppliers,
    "ledger": cmd_ledger,
    "history": cmd_history,
    "vehicles": cmd_vehicles,
    "retreads": cmd_retreads,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tire fleet management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s inventory --search 22.5
  %(prog)s suppliers --type RETREAD_SUPPLIER
  %(prog)s ledger 3 --from 2024-01-01 --to 2024-03-31
  %(prog)s history 12 --status current
  %(prog)s history 12 --csv > history.csv
  %(prog)s vehicles --retired
  %(prog)s retreads --status SENT
  %(prog)s po-totals 295/80R22.5:4:35000 11R22.5:2:28000 --shipping 1500
""",
    )
    parser.add_argument(
        "--api-url",
        default=os.environ.get("FLEET_API_URL", DEFAULT_API_URL),
        help="Backend base URL (default: $FLEET_API_URL or %(default)s)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("FLEET_API_TOKEN"),
        help="Bearer token (default: $FLEET_API_TOKEN)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=float(os.environ.get("FLEET_API_TIMEOUT", "10")),
        help="Request timeout in seconds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Inventory subcommand
    inventory_parser = subparsers.add_parser("inventory", help="Stock counters and tires by size")
    inventory_parser.add_argument("--search", help="Filter sizes or counts containing text")
    inventory_parser.add_argument("--csv", action="store_true", help="Print CSV instead of a table")

    # Suppliers subcommand
    suppliers_parser = subparsers.add_parser("suppliers", help="List suppliers")
    suppliers_parser.add_argument(
        "--type",
        choices=["TIRE_SUPPLIER", "RETREAD_SUPPLIER", "SERVICE_PROVIDER", "OTHER"],
        help="Only suppliers of this type",
    )

    # Ledger subcommand
    ledger_parser = subparsers.add_parser("ledger", help="Show a supplier's ledger")
    ledger_parser.add_argument("supplier_id", type=int, help="Supplier ID")
    ledger_parser.add_argument("--from", dest="since", help="Start date (YYYY-MM-DD, inclusive)")
    ledger_parser.add_argument("--to", dest="until", help="End date (YYYY-MM-DD, inclusive)")
    ledger_parser.add_argument(
        "--desc", dest="asc", action="store_false", help="Newest first (default: oldest first)"
    )
    ledger_parser.add_argument("--csv", action="store_true", help="Print CSV instead of a table")

    # History subcommand
    history_parser = subparsers.add_parser("history", help="Show a vehicle's tire history")
    history_parser.add_argument("vehicle_id", type=int, help="Vehicle ID")
    history_parser.add_argument("--search", help="Match serial, position, brand or reason")
    history_parser.add_argument("--type", default="all", help="Tire type (NEW, RETREADED, USED)")
    history_parser.add_argument("--position", default="all", help="Wheel position code")
    history_parser.add_argument(
        "--status", choices=["all", "current", "removed"], default="all", help="Installation status"
    )
    history_parser.add_argument(
        "--sort", choices=HISTORY_SORT_KEYS, default="date", help="Column to order by"
    )
    history_parser.add_argument("--asc", action="store_true", help="Ascending (oldest or lowest first)")
    history_parser.add_argument("--page", type=int, default=1)
    history_parser.add_argument("--limit", type=int, default=20)
    history_parser.add_argument("--csv", action="store_true", help="Print CSV of every match")

    # Vehicles subcommand
    vehicles_parser = subparsers.add_parser("vehicles", help="List vehicles")
    vehicles_parser.add_argument("--retired", action="store_true", help="Show retired vehicles")
    vehicles_parser.add_argument("--search", help="Vehicle number, make or model")
    vehicles_parser.add_argument("--page", type=int, default=1)
    vehicles_parser.add_argument("--limit", type=int, default=20)

    # Retreads subcommand
    retreads_parser = subparsers.add_parser("retreads", help="List retread orders")
    retreads_parser.add_argument("--status", help="Only orders with this status")
    retreads_parser.add_argument("--page", type=int, default=1)
    retreads_parser.add_argument("--limit", type=int, default=20)
    retreads_parser.add_argument("--csv", action="store_true", help="Print CSV instead of a table")

    # PO totals subcommand
    totals_parser = subparsers.add_parser(
        "po-totals", help="Order totals from VAT-inclusive prices (offline)"
    )
    totals_parser.add_argument(
        "items", nargs="+", type=parse_item, metavar="SIZE:QTY:PRICE", help="Order lines"
    )
    totals_parser.add_argument(
        "--rate", type=float, default=DEFAULT_VAT_RATE, help="VAT percentage (default: %(default)s)"
    )
    totals_parser.add_argument("--shipping", type=float, default=0.0, help="Shipping amount")

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "po-totals":
        return cmd_po_totals(args)

    if not args.token:
        print("Error: No API token (use --token or set FLEET_API_TOKEN)")
        return 1

    try:
        return COMMANDS[args.command](args, build_api(args))
    except ApiError as e:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"Error: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
