#!/usr/bin/env python3
"""Tests for the FleetApi endpoint wrappers."""

import pytest

from api.errors import ApiError
from api.fleet import FALLBACK_TIRE_SIZES
from models.tire_service import ServiceOperation

from conftest import FakeResponse


class TestListing:
    """Tests for list endpoints and their envelopes."""

    def test_list_users_params_and_pagination(self, fleet_api, fake_session):
        """Users list sends paging and sort params, returns pagination."""
        fake_session.routes[("GET", "/api/users")] = {
            "success": True,
            "data": {
                "users": [{"id": 1, "username": "ada", "full_name": "Ada Admin"}],
                "pagination": {"page": 1, "limit": 10, "total": 1, "pages": 1},
            },
        }
        users, pagination = fleet_api.list_users(search="ada", status="active")
        assert [u.username for u in users] == ["ada"]
        assert pagination["total"] == 1
        assert fake_session.calls[0]["params"] == {
            "page": 1,
            "limit": 10,
            "search": "ada",
            "status": "active",
            "sortBy": "created_at",
            "sortOrder": "desc",
        }

    def test_list_suppliers_type_filter(self, fleet_api, fake_session):
        """Supplier type passed through, balance parsed as a number."""
        fake_session.routes[("GET", "/api/suppliers")] = FakeResponse(200, [
            {"id": 1, "name": "Treads", "type": "RETREAD_SUPPLIER", "balance": "120.5"}
        ])
        suppliers = fleet_api.list_suppliers("RETREAD_SUPPLIER")
        assert suppliers[0].balance == 120.5
        assert fake_session.calls[0]["params"] == {"type": "RETREAD_SUPPLIER"}

    def test_store_tires_by_status(self, fleet_api, fake_session):
        """Store tires come from the status path."""
        fake_session.routes[("GET", "/api/inventory/store/USED_STORE")] = {
            "data": [{"id": 3, "serial_number": "SN3", "size": "11R22.5", "status": "USED_STORE"}]
        }
        assert [t.id for t in fleet_api.store_tires("USED_STORE")] == [3]

    def test_tires_at_retreader_filters_status(self, fleet_api, fake_session):
        """Only tires at the retreader are kept."""
        fake_session.routes[("GET", "/api/tires/retread/status")] = FakeResponse(200, [
            {"id": 1, "serial_number": "A", "size": "x", "status": "AT_RETREAD_SUPPLIER"},
            {"id": 2, "serial_number": "B", "size": "x", "status": "IN_STORE"},
        ])
        assert [t.id for t in fleet_api.tires_at_retreader()] == [1]

    def test_unsuccessful_envelope(self, fleet_api, fake_session):
        """success false raises with the backend error."""
        fake_session.routes[("GET", "/api/roles")] = {"success": False, "error": "DB down"}
        with pytest.raises(ApiError, match="DB down"):
            fleet_api.list_roles()


class TestTireSizes:
    """Tests for tire size lookup."""

    def test_sizes_from_backend(self, fleet_api, fake_session):
        """Strings and size objects both count, blanks dropped."""
        fake_session.routes[("GET", "/api/tires/meta/sizes")] = {
            "data": ["11R22.5", {"size": "315/80R22.5"}, {"size": ""}]
        }
        assert fleet_api.tire_sizes() == ["11R22.5", "315/80R22.5"]

    def test_falls_back_on_error(self, fleet_api, fake_session):
        """Backend failure gives the built-in sizes."""
        fake_session.routes[("GET", "/api/tires/meta/sizes")] = FakeResponse(500, None)
        assert fleet_api.tire_sizes() == FALLBACK_TIRE_SIZES

    def test_falls_back_when_empty(self, fleet_api, fake_session):
        """Empty list gives the built-in sizes."""
        fake_session.routes[("GET", "/api/tires/meta/sizes")] = {"data": []}
        assert fleet_api.tire_sizes() == FALLBACK_TIRE_SIZES


class TestActions:
    """Tests for the write endpoints."""

    def test_retread_order_actions(self, fleet_api, fake_session):
        """Send, cancel, duplicate and delete hit their endpoints."""
        base = "/api/retread/retread-orders/4"
        for route in (("PUT", base + "/send"), ("PUT", base + "/cancel"),
                      ("POST", base + "/duplicate"), ("DELETE", base)):
            fake_session.routes[route] = {"success": True}

        fleet_api.send_retread_order(4, user_id=1)
        fleet_api.cancel_retread_order(4, user_id=1)
        fleet_api.duplicate_retread_order(4, user_id=1)
        fleet_api.delete_retread_order(4)

        assert [(c["method"], c["path"]) for c in fake_session.calls] == [
            ("PUT", base + "/send"),
            ("PUT", base + "/cancel"),
            ("POST", base + "/duplicate"),
            ("DELETE", base),
        ]
        assert fake_session.calls[0]["json"] == {"user_id": 1}

    def test_vehicle_updates(self, fleet_api, fake_session):
        """Odometer and restore bodies."""
        fake_session.routes[("PUT", "/api/vehicles/2/odometer")] = {"success": True}
        fake_session.routes[("POST", "/api/vehicles/2/restore")] = {"success": True}
        fleet_api.update_odometer(2, 120500)
        fleet_api.restore_vehicle(2, "ada")
        assert fake_session.calls[0]["json"] == {"current_odometer": 120500}
        assert fake_session.calls[1]["json"] == {"restored_by": "ada"}

    def test_force_logout(self, fleet_api, fake_session):
        """Force logout deletes the user's sessions."""
        fake_session.routes[("DELETE", "/api/users/5/sessions")] = {"success": True}
        fleet_api.force_logout(5)
        assert fake_session.calls[0]["method"] == "DELETE"

    def test_unrouted_write_raises(self, fleet_api):
        """404 from a write surfaces as ApiError."""
        with pytest.raises(ApiError) as exc_info:
            fleet_api.receive_goods({"po_id": 1})
        assert exc_info.value.status == 404


class TestEntities:
    """Tests for single-record endpoints."""

    def test_get_vehicle(self, fleet_api, fake_session):
        """Vehicle parsed from the data envelope."""
        fake_session.routes[("GET", "/api/vehicles/2")] = {
            "success": True,
            "data": {"id": 2, "vehicle_number": "KBX 123A", "make": "Isuzu", "model": "FVZ",
                     "status": "RETIRED"},
        }
        vehicle = fleet_api.get_vehicle(2)
        assert vehicle.is_retired

    def test_settings_and_tax_rates(self, fleet_api, fake_session):
        """Settings and tax rates parsed, rate kept as a fraction."""
        fake_session.routes[("GET", "/api/settings/system")] = {
            "data": {"company_name": "Haulage Co"}
        }
        fake_session.routes[("GET", "/api/settings/tax-rates")] = {
            "data": [{"id": 1, "name": "VAT", "rate": "16", "is_default": True}]
        }
        assert fleet_api.system_settings().company_name == "Haulage Co"
        rate = fleet_api.tax_rates()[0]
        assert rate.is_default
        assert rate.fraction == 0.16


class TestAccount:
    """Tests for the signed-in user's account endpoints."""

    def test_validate_token(self, fleet_api, fake_session):
        """Returns the backend's verdict and permissions."""
        fake_session.routes[("GET", "/api/auth/validate-token")] = {
            "valid": True, "permissions": {"po.create": {"can_view": True}}
        }
        assert fleet_api.validate_token()["valid"] is True

    def test_validate_token_empty_body(self, fleet_api, fake_session):
        """Empty body reads as an empty result."""
        fake_session.routes[("GET", "/api/auth/validate-token")] = FakeResponse(200, None)
        assert fleet_api.validate_token() == {}

    def test_change_password(self, fleet_api, fake_session):
        """Field names follow the backend's camelCase."""
        fake_session.routes[("POST", "/api/auth/change-password")] = {"success": True}
        fleet_api.change_password("old", "new-secret", "new-secret")
        assert fake_session.calls[0]["json"] == {
            "currentPassword": "old",
            "newPassword": "new-secret",
            "confirmPassword": "new-secret",
        }

    def test_get_profile(self, fleet_api, fake_session):
        """Profile unwraps the user and keeps its permissions."""
        fake_session.routes[("GET", "/api/auth/profile")] = {
            "success": True,
            "user": {"id": 1, "username": "ada", "full_name": "Ada Admin",
                     "role": {"name": "Administrator"},
                     "permissions": {"po.create": {"can_view": True}}},
        }
        user, permissions = fleet_api.get_profile()
        assert user.role_name == "Administrator"
        assert list(permissions) == ["po.create"]

    def test_user_activity(self, fleet_api, fake_session):
        """Activity rows come from the activities key."""
        fake_session.routes[("GET", "/api/users/1/activity")] = {
            "activities": [{"id": 1, "action": "LOGIN"}]
        }
        activity = fleet_api.user_activity(1, limit=5)
        assert activity[0].description == "LOGIN"
        assert fake_session.calls[0]["params"] == {"limit": 5}


class TestMovements:
    """Tests for the movement endpoints."""

    def test_date_window(self, fleet_api, fake_session):
        """Dates and paging go out as query parameters."""
        fake_session.routes[("GET", "/api/movements")] = {
            "data": [{"id": 1, "tire_id": 1, "movement_type": "PURCHASE_TO_STORE",
                      "movement_date": "2024-03-05"}],
            "total": 41,
            "totalPages": 5,
        }
        movements, pagination = fleet_api.list_movements("2024-03-01", "2024-03-31", limit=10)
        assert movements[0].movement_type == "PURCHASE_TO_STORE"
        assert pagination == {"total": 41, "total_pages": 5, "page": 1, "limit": 10}
        assert fake_session.calls[0]["params"] == {
            "startDate": "2024-03-01",
            "endDate": "2024-03-31",
            "details": "true",
            "page": 1,
            "limit": 10,
        }

    def test_one_tire(self, fleet_api, fake_session):
        """A tire id selects the per-tire endpoint."""
        fake_session.routes[("GET", "/api/movements/tire/9")] = {"data": []}
        fleet_api.list_movements(tire_id=9, size="11R22.5")
        assert fake_session.calls[0]["path"] == "/api/movements/tire/9"

    def test_size_is_quoted(self, fleet_api, fake_session):
        """Slashes in sizes are escaped in the path."""
        fake_session.routes[("GET", "/api/movements/size/295%2F80R22.5")] = {"data": []}
        fleet_api.list_movements(size="295/80R22.5")
        assert fake_session.calls[0]["path"] == "/api/movements/size/295%2F80R22.5"


class TestGoodsReceived:
    """Tests for goods received note endpoints."""

    def test_list(self, fleet_api, fake_session):
        """Notes come from the grns key with their filters."""
        fake_session.routes[("GET", "/api/grn")] = {
            "grns": [{"id": 7, "grn_number": "GRN-7", "receipt_date": "2024-03-05"}]
        }
        notes, _ = fleet_api.list_grns(status="COMPLETED")
        assert notes[0].grn_number == "GRN-7"
        assert fake_session.calls[0]["params"] == {"page": 1, "limit": 20, "status": "COMPLETED"}

    def test_generated_number(self, fleet_api, fake_session):
        """Backend numbers are used as issued."""
        fake_session.routes[("GET", "/api/grn/generate-number")] = {
            "success": True, "data": "GRN-2024-0007"
        }
        assert fleet_api.generate_grn_number() == "GRN-2024-0007"

    def test_generated_number_fallback(self, fleet_api, fake_session):
        """A failed call yields a timestamped number."""
        fake_session.routes[("GET", "/api/grn/generate-number")] = FakeResponse(500, None)
        number = fleet_api.generate_grn_number()
        assert number.startswith("GRN-")
        assert number[4:].isdigit()


class TestTireService:
    """Tests for tire service and retread receiving endpoints."""

    def test_posts_to_operation_endpoint(self, fleet_api, fake_session):
        """The operation names the endpoint and carries the body."""
        fake_session.routes[("POST", "/api/tire-service/remove/bulk")] = {"success": True}
        fleet_api.tire_service(ServiceOperation("remove/bulk", {"installation_ids": [1, 2]}))
        assert fake_session.calls[0]["json"] == {"installation_ids": [1, 2]}

    def test_retread_receipt(self, fleet_api, fake_session):
        """Every casing starts pending with the estimated cost."""
        fake_session.routes[("GET", "/api/retread/retread-orders/4/receive")] = {
            "data": {"order_number": "RT-0004", "supplier_id": 2,
                     "tires": [{"tire_id": 31, "serial_number": "SN-1", "estimated_cost": "8000"}]}
        }
        receipt = fleet_api.get_retread_receipt(4)
        assert receipt.order_id == 4
        assert receipt.pending_count == 1
        assert receipt.lines[0].cost == 8000
        assert receipt.lines[0].received_depth == 16.0
