"""
Transaction ledger tests.

Each IMPORT/EXPORT is written together with its quantity change, EXPORTs
never drive stock negative, and concurrent EXPORTs against the same stock
cannot both succeed.
"""

from decimal import Decimal

import pytest

from lynn_ops.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from lynn_ops.extensions import db
from lynn_ops.models import InventoryTransaction, Product
from lynn_ops.permissions import EXPORT_STOCK, IMPORT_STOCK
from lynn_ops.services import inventory_service
from lynn_ops.services.session_service import Actor
from lynn_ops.validation import MAX_QUANTITY, enforce_rules_transaction_notes


def _quantity(product_id):
    return db.session.get(Product, product_id, populate_existing=True).quantity


class TestRecordTransaction:

    def test_import_increments_stock(self, admin, location, product):
        recorded = inventory_service.record_transaction(
            Actor.from_user(admin),
            location.id,
            {"product_id": product.id, "type": "IMPORT", "quantity": 5, "unit_price": "2.50"},
        )

        assert recorded.product_quantity == 15
        assert _quantity(product.id) == 15
        assert recorded.transaction.total_price == Decimal("12.50")
        assert recorded.transaction.created_by_id == admin.id

    def test_type_is_case_insensitive(self, admin, location, product):
        recorded = inventory_service.record_transaction(
            Actor.from_user(admin), location.id,
            {"product_id": product.id, "type": "import", "quantity": 1},
        )
        assert recorded.transaction.type == "IMPORT"

    def test_export_decrements_stock(self, admin, location, product):
        recorded = inventory_service.record_transaction(
            Actor.from_user(admin), location.id,
            {"product_id": product.id, "type": "EXPORT", "quantity": 10, "notes": "Kitchen"},
        )
        assert recorded.product_quantity == 0
        assert _quantity(product.id) == 0

    def test_export_over_stock_is_refused_without_effects(self, db_session, admin, location, product):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.record_transaction(
                Actor.from_user(admin), location.id,
                {"product_id": product.id, "type": "EXPORT", "quantity": 11, "notes": "Too much"},
            )

        assert exc.value.status_code == 409
        assert exc.value.details["on_hand"] == 10
        assert _quantity(product.id) == 10
        assert db_session.query(InventoryTransaction).count() == 0

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, "abc", True])
    def test_quantity_must_be_positive_integer(self, admin, location, product, quantity):
        with pytest.raises(ValidationError):
            inventory_service.record_transaction(
                Actor.from_user(admin), location.id,
                {"product_id": product.id, "type": "IMPORT", "quantity": quantity},
            )

    def test_unknown_type_is_rejected(self, admin, location, product):
        with pytest.raises(ValidationError):
            inventory_service.record_transaction(
                Actor.from_user(admin), location.id,
                {"product_id": product.id, "type": "TRANSFER", "quantity": 1},
            )

    def test_capability_follows_type(self, staff, location, product, grant):
        grant(staff, location, [IMPORT_STOCK])
        actor = Actor.from_user(staff)

        inventory_service.record_transaction(
            actor, location.id, {"product_id": product.id, "type": "IMPORT", "quantity": 1},
        )
        with pytest.raises(PermissionDeniedError):
            inventory_service.record_transaction(
                actor, location.id,
                {"product_id": product.id, "type": "EXPORT", "quantity": 1, "notes": "x"},
            )

    def test_export_only_grant_cannot_import(self, staff, location, product, grant):
        grant(staff, location, [EXPORT_STOCK])
        actor = Actor.from_user(staff)

        recorded = inventory_service.record_transaction(
            actor, location.id,
            {"product_id": product.id, "type": "EXPORT", "quantity": 2, "notes": "Breakfast"},
        )
        assert recorded.product_quantity == 8

        with pytest.raises(PermissionDeniedError):
            inventory_service.record_transaction(
                actor, location.id, {"product_id": product.id, "type": "IMPORT", "quantity": 1},
            )
        assert _quantity(product.id) == 8

    def test_import_then_export_restores_quantity(self, db_session, admin, location, product):
        actor = Actor.from_user(admin)
        inventory_service.record_transaction(
            actor, location.id, {"product_id": product.id, "type": "IMPORT", "quantity": 6},
        )
        inventory_service.record_transaction(
            actor, location.id,
            {"product_id": product.id, "type": "EXPORT", "quantity": 6, "notes": "Returned to supplier"},
        )

        assert _quantity(product.id) == 10
        assert db_session.query(InventoryTransaction).filter_by(product_id=product.id).count() == 2

    def test_import_past_max_quantity_is_conflict(self, db_session, admin, location, make_product):
        full = make_product(location, name="Paper clips", quantity=MAX_QUANTITY)

        with pytest.raises(ConflictError) as exc:
            inventory_service.record_transaction(
                Actor.from_user(admin), location.id,
                {"product_id": full.id, "type": "IMPORT", "quantity": 1},
            )

        assert exc.value.details["max_quantity"] == MAX_QUANTITY
        assert _quantity(full.id) == MAX_QUANTITY
        assert db_session.query(InventoryTransaction).count() == 0

    def test_export_notes_rule(self, admin, location, product):
        with pytest.raises(ValidationError):
            inventory_service.record_transaction(
                Actor.from_user(admin), location.id,
                {"product_id": product.id, "type": "EXPORT", "quantity": 1, "notes": "   "},
                extra_rules=enforce_rules_transaction_notes,
            )
        assert _quantity(product.id) == 10

    def test_product_from_other_location_is_not_found(
        self, superadmin, location, other_location, make_product,
    ):
        foreign = make_product(other_location, name="Towels", quantity=4)
        with pytest.raises(NotFoundError) as exc:
            inventory_service.record_transaction(
                Actor.from_user(superadmin), location.id,
                {"product_id": foreign.id, "type": "EXPORT", "quantity": 1, "notes": "x"},
            )
        assert exc.value.status_code == 404
        assert _quantity(foreign.id) == 4


class TestLedgerRoutes:

    def test_post_returns_entry_and_new_quantity(self, client, admin_headers, location, product):
        resp = client.post(
            f"/api/locations/{location.id}/transactions",
            json={"product_id": product.id, "type": "IMPORT", "quantity": 7, "image_urls": ["https://cdn/x.jpg"]},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["product_quantity"] == 17
        assert resp.json["transaction"]["image_urls"] == ["https://cdn/x.jpg"]

    def test_export_without_notes_is_400(self, client, admin_headers, location, product):
        resp = client.post(
            f"/api/locations/{location.id}/transactions",
            json={"product_id": product.id, "type": "EXPORT", "quantity": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"

    def test_import_past_max_quantity_is_409(self, client, admin_headers, location, make_product):
        full = make_product(location, name="Paper clips", quantity=MAX_QUANTITY)
        resp = client.post(
            f"/api/locations/{location.id}/transactions",
            json={"product_id": full.id, "type": "IMPORT", "quantity": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json["code"] == "CONFLICT"

    def test_list_filters_by_type(self, client, admin, admin_headers, location, product):
        actor = Actor.from_user(admin)
        inventory_service.record_transaction(
            actor, location.id, {"product_id": product.id, "type": "IMPORT", "quantity": 2},
        )
        inventory_service.record_transaction(
            actor, location.id, {"product_id": product.id, "type": "EXPORT", "quantity": 1, "notes": "Bar"},
        )

        resp = client.get(f"/api/locations/{location.id}/transactions?type=export", headers=admin_headers)
        assert resp.status_code == 200
        assert [t["type"] for t in resp.json["transactions"]] == ["EXPORT"]

        resp = client.get(f"/api/locations/{location.id}/transactions", headers=admin_headers)
        assert len(resp.json["transactions"]) == 2


class TestConcurrentExports:

    def test_only_one_export_wins(self, staff, location, make_product, grant, run_concurrently):
        """Two EXPORTs of 3 against stock 5: exactly one succeeds, stock ends at 2."""
        grant(staff, location, [EXPORT_STOCK])
        target = make_product(location, name="Bottled water", quantity=5)
        actor = Actor.from_user(staff)
        product_id = target.id
        location_id = location.id

        def export():
            inventory_service.record_transaction(
                actor, location_id,
                {"product_id": product_id, "type": "EXPORT", "quantity": 3, "notes": "Minibar"},
            )

        outcomes = run_concurrently(export, export)

        assert sorted(outcomes) == ["InsufficientStockError", "ok"]
        assert _quantity(product_id) == 2
        assert db.session.query(InventoryTransaction).filter_by(product_id=product_id).count() == 1
