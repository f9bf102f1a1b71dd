#!/usr/bin/env python3
"""Tests for list filtering and pagination."""

import pytest

from models.filters import (
    HistoryFilter,
    Page,
    clamp_page,
    filter_history,
    filter_inventory_by_size,
    filter_roles,
    ledger_display,
    page_from_pagination,
    paginate,
    retread_order_stats,
    unique_positions,
    unique_types,
)
from models.retread import RetreadOrder
from models.role import Role
from models.supplier import LedgerEntry
from models.tire import InventoryBySize
from models.vehicle import TireInstallation


def install(id, position, serial, install_date, removal_date=None, type="NEW", **kwargs):
    return TireInstallation(
        id=id,
        tire_id=id,
        vehicle_id=1,
        position_code=position,
        install_date=install_date,
        install_odometer=kwargs.pop("install_odometer", 10000),
        serial_number=serial,
        removal_date=removal_date,
        type=type,
        **kwargs,
    )


class TestPaginate:
    """Tests for paginate."""

    def test_middle_page(self):
        """Full middle page with links both ways."""
        page = paginate(list(range(1, 26)), page=2, per_page=10)
        assert page.items == list(range(11, 21))
        assert page.pages == 3
        assert page.has_prev and page.has_next
        assert (page.first_index, page.last_index) == (11, 20)

    def test_last_page_is_short(self):
        """Last page holds the remainder."""
        page = paginate(list(range(1, 26)), page=3, per_page=10)
        assert page.items == [21, 22, 23, 24, 25]
        assert not page.has_next

    def test_out_of_range_pages_are_clamped(self):
        """Page numbers clamp into 1..pages."""
        assert paginate(list(range(25)), page=9).page == 3
        assert paginate(list(range(25)), page=0).page == 1
        assert paginate(list(range(25)), page=-4).page == 1

    def test_empty(self):
        """Empty list is one empty page with zero indexes."""
        page = paginate([], page=3)
        assert page.items == []
        assert page.page == 1
        assert page.total == 0
        assert page.first_index == 0
        assert page.last_index == 0
        assert not page.has_next

    def test_clamp_page(self):
        """clamp_page never goes below 1."""
        assert clamp_page(5, 3) == 3
        assert clamp_page(1, 0) == 1


class TestPageFromPagination:
    """Tests for wrapping pages the backend already cut."""

    def test_uses_backend_counts(self):
        """Backend page, limit, total and pages win."""
        page = page_from_pagination(
            ["a", "b"], {"page": 3, "limit": 2, "total": 9, "pages": 5}, page=1, per_page=10
        )
        assert page == Page(items=["a", "b"], page=3, per_page=2, total=9, pages=5)
        assert (page.first_index, page.last_index) == (5, 6)

    def test_total_pages_key(self):
        """total_pages is read as pages."""
        page = page_from_pagination(["a"], {"total": 30, "total_pages": 3})
        assert page.pages == 3

    def test_derives_missing_counts(self):
        """Counts derived from the items when pagination is missing."""
        page = page_from_pagination(["a", "b", "c"], None, page=1, per_page=2)
        assert page.total == 3
        assert page.pages == 2


class TestHistoryFilter:
    """Tests for tire history filtering."""

    @pytest.fixture
    def records(self):
        return [
            install(1, "FL", "ABC123", "2024-01-01", "2024-03-01", brand="Michelin",
                    reason_for_change="Puncture"),
            install(2, "FL", "XYZ789", "2024-03-01", type="RETREADED", brand="Bridgestone"),
            install(3, "RR1", "abc555", "2024-02-01", type=None, brand="Goodyear"),
        ]

    def test_inactive_filter_keeps_everything(self, records):
        """Default filter keeps every record."""
        history_filter = HistoryFilter()
        assert not history_filter.is_active
        assert filter_history(records, history_filter) == records

    def test_search_is_case_insensitive_across_fields(self, records):
        """Search matches serial, reason, brand and position in any case."""
        assert [r.id for r in filter_history(records, HistoryFilter(search="abc"))] == [1, 3]
        assert [r.id for r in filter_history(records, HistoryFilter(search="puncture"))] == [1]
        assert [r.id for r in filter_history(records, HistoryFilter(search="bridge"))] == [2]
        assert [r.id for r in filter_history(records, HistoryFilter(search="rr1"))] == [3]

    def test_type(self, records):
        """Type matches case-insensitively, missing type is unknown."""
        result = filter_history(records, HistoryFilter(tire_type="retreaded"))
        assert [r.id for r in result] == [2]
        result = filter_history(records, HistoryFilter(tire_type="unknown"))
        assert [r.id for r in result] == [3]

    def test_position(self, records):
        """Position matches exactly."""
        assert [r.id for r in filter_history(records, HistoryFilter(position="FL"))] == [1, 2]

    def test_status(self, records):
        """Current means not removed."""
        assert [r.id for r in filter_history(records, HistoryFilter(status="current"))] == [2, 3]
        assert [r.id for r in filter_history(records, HistoryFilter(status="removed"))] == [1]

    def test_filters_combine(self, records):
        """All criteria must match."""
        history_filter = HistoryFilter(search="abc", position="FL", status="removed")
        assert history_filter.is_active
        assert [r.id for r in filter_history(records, history_filter)] == [1]

    def test_unique_values(self, records):
        """Sorted distinct positions and lower-cased types."""
        assert unique_positions(records) == ["FL", "RR1"]
        assert unique_types(records) == ["new", "retreaded", "unknown"]


class TestLedgerDisplay:
    """Tests for the supplier ledger view."""

    @pytest.fixture
    def entries(self):
        return [
            LedgerEntry(id=3, supplier_id=1, date="2024-02-10", transaction_type="PAYMENT", amount=500),
            LedgerEntry(id=1, supplier_id=1, date="2024-01-05", transaction_type="PURCHASE", amount=1000),
            LedgerEntry(id=2, supplier_id=1, date="2024-01-31T15:30:00Z",
                        transaction_type="RETREAD_SERVICE", amount=300),
        ]

    def test_ascending_balances(self, entries):
        """Oldest first with a running balance."""
        rows = ledger_display(entries)
        assert [r.entry.id for r in rows] == [1, 2, 3]
        assert [r.running_balance for r in rows] == [1000, 1300, 800]

    def test_descending_accumulates_in_display_order(self, entries):
        """Newest first accumulates in display order."""
        rows = ledger_display(entries, ascending=False)
        assert [r.entry.id for r in rows] == [3, 2, 1]
        assert [r.running_balance for r in rows] == [-500, -200, 800]

    def test_end_date_covers_whole_day(self, entries):
        """End date includes the whole day."""
        rows = ledger_display(entries, end_date="2024-01-31")
        assert [r.entry.id for r in rows] == [1, 2]

    def test_start_date_inclusive(self, entries):
        """Start date is inclusive."""
        rows = ledger_display(entries, start_date="2024-01-31")
        assert [r.entry.id for r in rows] == [2, 3]

    def test_undated_entries_dropped_when_filtering(self, entries):
        """Undated entries only survive an unfiltered view."""
        entries.append(
            LedgerEntry(id=4, supplier_id=1, date="", transaction_type="PURCHASE", amount=1)
        )
        assert 4 in [r.entry.id for r in ledger_display(entries)]
        assert 4 not in [r.entry.id for r in ledger_display(entries, start_date="2024-01-01")]


class TestOtherFilters:
    """Tests for role, inventory and retread order helpers."""

    def test_filter_roles(self):
        """Role search covers name and description."""
        roles = [
            Role(id=1, name="Administrator", description="Full access"),
            Role(id=2, name="Storekeeper", description="Manages the tire store"),
        ]
        assert [r.id for r in filter_roles(roles, "ADMIN")] == [1]
        assert [r.id for r in filter_roles(roles, "tire")] == [2]
        assert filter_roles(roles, "") == roles

    def test_filter_inventory_by_size(self):
        """Size search is a case-insensitive substring."""
        rows = [
            InventoryBySize(size="295/80R22.5", new_count=12, retreaded_count=3),
            InventoryBySize(size="11R22.5", new_count=4, retreaded_count=0),
        ]
        assert [r.size for r in filter_inventory_by_size(rows, "295")] == ["295/80R22.5"]
        assert [r.size for r in filter_inventory_by_size(rows, "r22.5")] == ["295/80R22.5", "11R22.5"]
        assert [r.size for r in filter_inventory_by_size(rows, "4")] == ["11R22.5"]

    def test_retread_order_stats(self):
        """Counts by status bucket, backend total wins."""
        orders = [
            RetreadOrder(id=i, order_number=f"RT-{i}", supplier_id=1, supplier_name="Treads", status=s)
            for i, s in enumerate(["DRAFT", "SENT", "IN_PROGRESS", "COMPLETED", "RECEIVED", "CANCELLED"])
        ]
        assert retread_order_stats(orders) == {"total": 6, "active": 2, "completed": 2, "draft": 1}
        assert retread_order_stats(orders, total=40)["total"] == 40
