"""In-memory filtering and pagination behind the list pages."""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Generic, Iterable, List, Optional, Sequence, TypeVar

from .calculations import parse_date, running_balances
from .retread import RetreadOrder
from .role import Role
from .supplier import LedgerEntry, LedgerRow
from .tire import InventoryBySize
from .vehicle import TireInstallation

T = TypeVar("T")

DEFAULT_PER_PAGE = 10
ALL = "all"


@dataclass
class Page(Generic[T]):
    """One page of a longer list."""

    items: List[T]
    page: int
    per_page: int
    total: int
    pages: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def first_index(self) -> int:
        """1-based index of the first item shown, 0 when empty."""
        if not self.items:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def last_index(self) -> int:
        return self.first_index + len(self.items) - 1 if self.items else 0


def clamp_page(page: int, pages: int) -> int:
    """Keep a requested page inside [1, pages]; an empty list still has page 1."""
    return min(max(page, 1), max(pages, 1))


def paginate(items: Sequence[T], page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page[T]:
    total = len(items)
    pages = math.ceil(total / per_page) if per_page > 0 else 1
    page = clamp_page(page, pages)
    start = (page - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        page=page,
        per_page=per_page,
        total=total,
        pages=pages,
    )


def page_from_pagination(
    items: Sequence[T],
    pagination: Optional[Dict[str, int]],
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> Page[T]:
    """Wrap one page already cut by the backend; missing counts are derived."""
    pagination = pagination or {}
    total = pagination.get("total", len(items))
    per_page = pagination.get("limit", per_page) or per_page
    pages = pagination.get("pages") or pagination.get("total_pages")
    if not pages:
        pages = math.ceil(total / per_page) if per_page > 0 else 1
    return Page(
        items=list(items),
        page=pagination.get("page", page),
        per_page=per_page,
        total=total,
        pages=pages,
    )


# =============================================================================
# Tire installation history
# =============================================================================


@dataclass
class HistoryFilter:
    """Search box and dropdowns of the tire history view. "all" disables a filter."""

    search: str = ""
    tire_type: str = ALL
    position: str = ALL
    status: str = ALL

    @property
    def is_active(self) -> bool:
        return bool(self.search) or any(
            value != ALL for value in (self.tire_type, self.position, self.status)
        )

    def matches(self, record: TireInstallation) -> bool:
        if self.search:
            needle = self.search.lower()
            haystack = (
                record.serial_number,
                record.position_code,
                record.brand,
                record.reason_for_change,
            )
            if not any(needle in (value or "").lower() for value in haystack):
                return False

        if self.tire_type != ALL and record.tire_type.lower() != self.tire_type:
            return False

        if self.position != ALL and record.position_code != self.position:
            return False

        if self.status == "current" and not record.is_current:
            return False
        if self.status == "removed" and record.is_current:
            return False

        return True


def filter_history(
    records: Iterable[TireInstallation], history_filter: HistoryFilter
) -> List[TireInstallation]:
    return [r for r in records if history_filter.matches(r)]


def unique_positions(records: Iterable[TireInstallation]) -> List[str]:
    return sorted({r.position_code for r in records})


def unique_types(records: Iterable[TireInstallation]) -> List[str]:
    return sorted({r.tire_type.lower() for r in records})


# =============================================================================
# Supplier ledger
# =============================================================================


def _as_datetime(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return parse_date(value)


def ledger_display(
    entries: Iterable[LedgerEntry],
    start_date=None,
    end_date=None,
    ascending: bool = True,
) -> List[LedgerRow]:
    """
    Ledger rows as displayed: date-filtered, sorted, then balanced.

    The running balance follows the display order, so a descending view
    accumulates from the newest entry. Both date bounds are inclusive; an
    end date without a time covers that whole day.
    """
    start = _as_datetime(start_date)
    end = _as_datetime(end_date)
    if isinstance(end_date, date) and not isinstance(end_date, datetime):
        end = datetime.combine(end_date, time.max)
    elif isinstance(end_date, str) and end is not None and len(end_date) <= 10:
        end = datetime.combine(end.date(), time.max)

    rows = []
    for entry in entries:
        when = parse_date(entry.date)
        if when is None:
            if start or end:
                continue
            when = datetime.min
        if start and when < start:
            continue
        if end and when > end:
            continue
        rows.append((when, entry))

    rows.sort(key=lambda pair: pair[0], reverse=not ascending)
    return running_balances(entry for _, entry in rows)


# =============================================================================
# Roles, inventory and retread orders
# =============================================================================


def filter_roles(roles: Iterable[Role], search: str) -> List[Role]:
    """Case-insensitive match on role name or description."""
    needle = (search or "").lower()
    return [
        role
        for role in roles
        if needle in role.name.lower() or needle in (role.description or "").lower()
    ]


def filter_inventory_by_size(
    rows: Iterable[InventoryBySize], search: str
) -> List[InventoryBySize]:
    search = search or ""
    needle = search.lower()
    return [
        row
        for row in rows
        if needle in row.size.lower()
        or search in str(row.new_count)
        or search in str(row.retreaded_count)
    ]


def retread_order_stats(orders: Iterable[RetreadOrder], total: Optional[int] = None) -> Dict[str, int]:
    """Header counters of the retread orders page, over the orders loaded."""
    orders = list(orders)
    return {
        "total": total if total is not None else len(orders),
        "active": sum(1 for o in orders if o.status in ("SENT", "IN_PROGRESS")),
        "completed": sum(1 for o in orders if o.status in ("COMPLETED", "RECEIVED")),
        "draft": sum(1 for o in orders if o.status == "DRAFT"),
    }
