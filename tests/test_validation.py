#!/usr/bin/env python3
"""Tests for form validation against schema.yaml."""

import pytest

from api.errors import ValidationError
from models.purchase_order import ReceivingLine
from models.retread import RetreadReceipt, RetreadReceiptLine
from models.validation import (
    load_schema,
    require_valid,
    validate_password_change,
    validate_password_reset,
    validate_payment,
    validate_profile,
    validate_purchase_order,
    validate_receiving,
    validate_retread_receipt,
    validate_retread_return,
    validate_retread_send,
    validate_retirement,
    validate_role_form,
    validate_supplier,
    validate_user_form,
    validate_vehicle,
)

# =============================================================================
# Schema file
# =============================================================================


class TestSchemaFile:
    """Tests for the bundled schema.yaml."""

    def test_every_form_has_a_schema(self):
        """Every form has an object schema."""
        schema = load_schema()
        for form in (
            "user",
            "new_user_password",
            "role",
            "purchase_order",
            "goods_receipt",
            "payment",
            "retirement",
            "supplier",
            "vehicle",
            "retread_send",
            "retread_return",
            "profile",
            "password_change",
            "retread_receipt",
        ):
            assert schema[form]["type"] == "object", form


# =============================================================================
# Users and roles
# =============================================================================


class TestUserForm:
    """Tests for validate_user_form."""

    @pytest.fixture
    def payload(self):
        return {"username": "jo", "email": "jo@example.com", "full_name": "Jo Doe", "role_id": 2}

    def test_valid_edit(self, payload):
        """Complete edit form passes."""
        assert validate_user_form(payload, is_new=False) == []

    def test_missing_fields(self):
        """One message per missing field, in form order."""
        assert validate_user_form({}, is_new=False) == [
            "Username is required",
            "Email is required",
            "Full name is required",
            "Role is required",
        ]

    def test_bad_email(self, payload):
        """Malformed email rejected."""
        payload["email"] = "not-an-email"
        assert validate_user_form(payload, is_new=False) == ["Please enter a valid email address"]

    def test_new_user_needs_password(self, payload):
        """New users need a password."""
        assert validate_user_form(payload, is_new=True) == ["Password is required for new users"]

    def test_short_password(self, payload):
        """Passwords under 8 characters rejected."""
        payload["password"] = "abc"
        errors = validate_user_form(payload, is_new=True, confirm_password="abc")
        assert errors == ["Password must be at least 8 characters long"]

    def test_passwords_must_match(self, payload):
        """Confirmation must match."""
        payload["password"] = "correct-horse"
        errors = validate_user_form(payload, is_new=True, confirm_password="battery-staple")
        assert errors == ["Passwords do not match"]

    def test_edit_ignores_password(self, payload):
        """Edits skip the password checks."""
        payload["password"] = "x"
        assert validate_user_form(payload, is_new=False) == []


class TestRoleForm:
    """Tests for validate_role_form."""

    def test_needs_name_and_permission(self):
        """Name and one permission required."""
        errors = validate_role_form({"name": "", "permissions": []})
        assert set(errors) == {"Role name is required", "At least one permission is required"}

    def test_valid(self):
        """Named role with a permission passes."""
        payload = {"name": "Clerk", "permissions": [{"permission_id": 3, "can_view": True}]}
        assert validate_role_form(payload) == []


# =============================================================================
# Purchasing
# =============================================================================


class TestPurchaseOrder:
    """Tests for validate_purchase_order."""

    def test_missing_supplier(self):
        """Supplier required."""
        errors = validate_purchase_order(
            {"items": [{"tire_size": "11R22.5", "quantity": 1, "unit_price": 100}]}
        )
        assert errors == ["Please select a supplier"]

    def test_no_items(self):
        """At least one item required."""
        assert validate_purchase_order({"supplier_id": 1, "items": []}) == [
            "Please add at least one item"
        ]

    def test_incomplete_row_is_numbered(self):
        """Incomplete row named by its 1-based number."""
        payload = {
            "supplier_id": 1,
            "items": [
                {"tire_size": "11R22.5", "quantity": 2, "unit_price": 100},
                {"tire_size": "", "quantity": 0, "unit_price": 100},
            ],
        }
        assert validate_purchase_order(payload) == ["Please fill all required fields for item #2"]

    def test_negative_shipping(self):
        """Shipping cannot be negative."""
        payload = {
            "supplier_id": 1,
            "shipping_amount": -5,
            "items": [{"tire_size": "11R22.5", "quantity": 2, "unit_price": 100}],
        }
        assert validate_purchase_order(payload) == ["Shipping amount cannot be negative"]


class TestReceiving:
    """Tests for validate_receiving."""

    def line(self, **kwargs):
        defaults = dict(
            po_item_id=1,
            size="11R22.5",
            ordered_quantity=4,
            previously_received=1,
            unit_price=1450.0,
            current_receive=2,
            brand="Michelin",
            serial_numbers=["sn-1", "sn-2"],
        )
        defaults.update(kwargs)
        return ReceivingLine(**defaults)

    def test_valid(self):
        """Complete receipt passes."""
        assert validate_receiving([self.line()], "2024-03-05") == []

    def test_nothing_to_receive(self):
        """All-zero quantities rejected."""
        errors = validate_receiving([self.line(current_receive=0)], "2024-03-05")
        assert errors == ["Please specify quantities to receive"]

    def test_receipt_date_required(self):
        """Receipt date required."""
        assert validate_receiving([self.line()], "") == ["Receipt date is required"]

    def test_more_than_remaining(self):
        """Cannot exceed the remaining quantity."""
        errors = validate_receiving(
            [self.line(current_receive=4, serial_numbers=["a", "b", "c", "d"])], "2024-03-05"
        )
        assert errors == ["Cannot receive more than remaining quantity"]

    def test_brand_required(self):
        """Blank brand rejected."""
        errors = validate_receiving([self.line(brand="  ")], "2024-03-05")
        assert errors == ["Please enter brand for 11R22.5 tires"]

    def test_brand_too_short(self):
        """Brand needs two characters."""
        errors = validate_receiving([self.line(brand="M")], "2024-03-05")
        assert errors == ["Brand name for 11R22.5 must be at least 2 characters"]

    def test_serial_count(self):
        """One non-blank serial per tire received."""
        errors = validate_receiving([self.line(serial_numbers=["sn-1", " "])], "2024-03-05")
        assert errors == ["Please enter all 2 serial numbers for 11R22.5 Michelin"]

    def test_duplicate_serials_ignore_case(self):
        """Serials compared case-insensitively."""
        errors = validate_receiving([self.line(serial_numbers=["sn-1", "SN-1"])], "2024-03-05")
        assert errors == ["Duplicate serial numbers found for 11R22.5 Michelin"]


# =============================================================================
# Other forms
# =============================================================================


class TestOtherForms:
    """Tests for payment, supplier, vehicle, retirement and retread forms."""

    def test_payment_amount_positive(self):
        """Zero payment rejected."""
        errors = validate_payment({"amount": 0, "date": "2024-01-01"})
        assert errors == ["Payment amount must be greater than 0"]

    def test_payment_date_required(self):
        """Payment date required."""
        assert validate_payment({"amount": 100}) == ["Payment date is required"]

    def test_supplier_type(self):
        """Unknown supplier type rejected."""
        errors = validate_supplier({"name": "Treads", "type": "FRIEND"})
        assert errors == ["Supplier type is required"]

    def test_supplier_email(self):
        """Bad email rejected, blank email allowed."""
        errors = validate_supplier({"name": "Treads", "type": "OTHER", "email": "nope"})
        assert errors == ["Please enter a valid email address"]
        assert validate_supplier({"name": "Treads", "type": "OTHER", "email": ""}) == []

    def test_vehicle(self):
        """Required fields and a plausible year."""
        assert validate_vehicle({"vehicle_number": "", "make": "Isuzu", "model": "FVZ"}) == [
            "Please fill in all required fields"
        ]
        errors = validate_vehicle(
            {"vehicle_number": "KBX", "make": "Isuzu", "model": "FVZ", "year": 1800}
        )
        assert errors == ["Please enter a valid year"]

    def test_retirement_reason(self):
        """Reason required, notes optional."""
        assert validate_retirement({"reason": ""}) == ["Please select a retirement reason"]
        assert validate_retirement({"reason": "SOLD", "notes": None}) == []

    def test_retread_send(self):
        """Tires and a positive expected cost required."""
        errors = validate_retread_send(
            {"tire_ids": [], "supplier_id": 2, "expected_cost": 0, "send_date": "2024-01-01"}
        )
        assert set(errors) == {
            "Please select at least one tire to send",
            "Please enter a valid expected cost",
        }

    def test_retread_return(self):
        """Return date required."""
        assert validate_retread_return({"tire_ids": [1], "return_date": "2024-02-01"}) == []
        errors = validate_retread_return({"tire_ids": [1], "return_date": ""})
        assert errors == ["Return date is required"]


class TestProfileForms:
    """Tests for profile details and password changes."""

    def test_profile_valid(self):
        """Name and email are enough; department may be null."""
        payload = {"full_name": "Ada", "email": "ada@example.com", "department": None}
        assert validate_profile(payload) == []

    def test_profile_email_format(self):
        """Malformed email is reported."""
        errors = validate_profile({"full_name": "Ada", "email": "ada@"})
        assert errors == ["Invalid email format"]

    def test_profile_name_required(self):
        """Blank full name is reported."""
        assert validate_profile({"full_name": "", "email": "ada@example.com"}) == [
            "Full name is required"
        ]

    def test_password_change_valid(self):
        """Matching passwords of eight characters pass."""
        assert validate_password_change("old", "longenough", "longenough") == []

    def test_password_change_needs_current(self):
        """Current password is required."""
        errors = validate_password_change("", "longenough", "longenough")
        assert errors == ["Current password is required"]

    def test_password_change_short_and_mismatched(self):
        """Short and mismatched new passwords are both reported."""
        errors = validate_password_change("old", "short", "other")
        assert errors == [
            "Password must be at least 8 characters long",
            "New passwords do not match",
        ]

    def test_password_reset(self):
        """Administrator reset checks length and confirmation only."""
        assert validate_password_reset("longenough", "longenough") == []
        assert validate_password_reset("longenough", "different") == ["Passwords do not match"]
        assert validate_password_reset("short", "short") == [
            "Password must be at least 8 characters long"
        ]


class TestRetreadReceipt:
    """Tests for receiving a retread order."""

    @pytest.fixture
    def receipt(self):
        return RetreadReceipt(
            order_id=4,
            order_number="RT-0004",
            lines=[
                RetreadReceiptLine(31, "SN-1", status="RECEIVED", cost=8000),
                RetreadReceiptLine(32, "SN-2", status="REJECTED", received_depth=None, cost=None),
            ],
        )

    def test_valid(self, receipt):
        """Every casing decided, received ones priced."""
        assert validate_retread_receipt(receipt, "2024-04-20") == []

    def test_date_required(self, receipt):
        """Missing received date is reported."""
        assert validate_retread_receipt(receipt, None) == ["Received date is required"]

    def test_pending_counted(self, receipt):
        """Undecided casings are counted in the message."""
        receipt.lines[1].status = "PENDING"
        assert validate_retread_receipt(receipt, "2024-04-20") == [
            "Please mark all tires as received or rejected (1 pending)"
        ]

    def test_received_needs_depth(self, receipt):
        """Received casing without a depth is reported before cost."""
        receipt.lines[0].received_depth = 0
        receipt.lines[0].cost = 0
        assert validate_retread_receipt(receipt, "2024-04-20") == [
            "Please enter valid received depth for all received tires"
        ]

    def test_received_needs_cost(self, receipt):
        """Received casing without a cost is reported."""
        receipt.lines[0].cost = None
        assert validate_retread_receipt(receipt, "2024-04-20") == [
            "Please enter valid cost for all received tires"
        ]

    def test_empty_order(self):
        """An order without casings cannot be received."""
        receipt = RetreadReceipt(order_id=4, order_number="RT-0004")
        assert validate_retread_receipt(receipt, "2024-04-20") == [
            "This order has no tires to receive"
        ]


class TestRequireValid:
    """Tests for require_valid."""

    def test_no_errors(self):
        """No errors passes silently."""
        require_valid([])

    def test_raises_with_all_messages(self):
        """First message leads, all kept."""
        with pytest.raises(ValidationError) as exc_info:
            require_valid(["First", "Second"])
        assert exc_info.value.message == "First"
        assert exc_info.value.errors == ["First", "Second"]
