#!/usr/bin/env python3
"""Tests for tire movements and the stock ledger."""

import pytest

from models.movement import (
    Movement,
    filter_stock_ledger,
    ledger_totals,
    stock_ledger,
    transaction_details,
)


def move(id, kind, day, **kwargs):
    return Movement(id=id, tire_id=id, movement_type=kind, movement_date=day, **kwargs)


class TestTransactionDetails:
    """Tests for the type, document and reference of a transaction."""

    def test_purchase(self):
        """Supplier and GRN form the reference."""
        movement = move(4, "PURCHASE_TO_STORE", "2024-03-05", supplier_name="Tyre World",
                        reference_number="GRN-7")
        assert transaction_details(movement) == ("Purchase", "PUR-4", "Tyre World/GRN-7")

    def test_purchase_without_supplier(self):
        """Unknown supplier falls back to a generic label."""
        assert transaction_details(move(4, "PURCHASE_TO_STORE", "2024-03-05"))[2] == "Supplier"

    def test_return_from_vehicle_with_notes(self):
        """Notes follow the vehicle number."""
        movement = move(5, "VEHICLE_TO_STORE", "2024-03-05", vehicle_number="KBX 123A",
                        notes="Worn")
        assert transaction_details(movement) == (
            "Return from Vehicle", "RET-5", "KBX 123A - Worn"
        )

    def test_document_number_wins(self):
        """A backend document number replaces the generated one."""
        movement = move(6, "STORE_TO_DISPOSAL", "2024-03-05", document_number="D-1",
                        disposal_reason="Burst")
        assert transaction_details(movement) == ("Disposal", "D-1", "Burst")

    def test_unknown_kind(self):
        """Unknown kinds are spelled out and ignore the document number."""
        movement = move(7, "STOCK_TAKE", "2024-03-05", document_number="X", notes="Count")
        assert transaction_details(movement) == ("STOCK TAKE", "TRX-7", "Count")


class TestStockLedger:
    """Tests for stock_ledger."""

    @pytest.fixture
    def movements(self):
        return [
            move(3, "STORE_TO_VEHICLE", "2024-03-09", vehicle_number="KBX 123A", position="A1-L"),
            move(1, "PURCHASE_TO_STORE", "2024-03-05", reference_number="GRN-7",
                 purchase_cost=1450, serial_number="SN-1"),
            move(2, "PURCHASE_TO_STORE", "2024-03-05", reference_number="GRN-7",
                 purchase_cost=1450, serial_number="SN-2"),
            move(4, "STORE_TO_RETREAD_SUPPLIER", "2024-03-12", supplier_name="Treads Ltd",
                 retread_cost=8000),
        ]

    def test_grouped_and_ordered(self, movements):
        """Movements sharing date, reference and type are one transaction."""
        ledger = stock_ledger(movements)
        assert [e.type for e in ledger] == ["Purchase", "Installation", "Send for Retreading"]
        assert ledger[0].quantity_in == 2

    def test_running_stock(self, movements):
        """Each transaction opens at the previous closing stock."""
        ledger = stock_ledger(movements)
        assert [(e.opening_stock, e.closing_stock) for e in ledger] == [(0, 2), (2, 1), (1, 0)]

    def test_price_by_kind(self, movements):
        """Purchases carry purchase cost, retread sends carry retread cost."""
        assert [e.price for e in stock_ledger(movements)] == [1450, None, 8000]

    def test_system_user(self, movements):
        """Movements without a user are booked to System."""
        assert stock_ledger(movements)[0].user_name == "System"

    def test_filter(self, movements):
        """Search matches type, reference and serial without case."""
        ledger = stock_ledger(movements)
        assert [e.type for e in filter_stock_ledger(ledger, "kbx")] == ["Installation"]
        assert [e.type for e in filter_stock_ledger(ledger, "sn-1")] == ["Purchase"]
        assert filter_stock_ledger(ledger, "  ") == ledger

    def test_totals(self, movements):
        """Counters sum the ledger and end at the last closing stock."""
        assert ledger_totals(stock_ledger(movements)) == {
            "transactions": 3,
            "quantity_in": 2,
            "quantity_out": 2,
            "closing_stock": 0,
        }

    def test_totals_empty(self):
        """Empty ledger has zero stock."""
        assert ledger_totals([])["closing_stock"] == 0
