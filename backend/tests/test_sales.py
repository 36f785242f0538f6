"""
Sale order tests.

Verifies:
- an order takes stock for every line or for none of them
- lines keep the product name and sale price they were sold with
- deleting an order restocks every line, and refuses (without effects)
  when a line's product is gone
"""

from decimal import Decimal

import pytest

from lynn_ops.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    OrderRestockError,
    PermissionDeniedError,
    ValidationError,
)
from lynn_ops.extensions import db
from lynn_ops.models import Customer, InventoryTransaction, Product, SaleOrder, SaleOrderLine
from lynn_ops.permissions import MANAGE_PRODUCTS
from lynn_ops.services import inventory_service, sales_service
from lynn_ops.services.session_service import Actor
from lynn_ops.validation import MAX_QUANTITY


def _quantity(product_id):
    return db.session.get(Product, product_id, populate_existing=True).quantity


@pytest.fixture
def stock(location, make_product):
    """Two products: rice x10, oil x2."""
    rice = make_product(location, name="Rice 5kg", quantity=10)
    oil = make_product(location, name="Cooking oil", quantity=2)
    return rice, oil


class TestCreateOrder:

    def test_order_decrements_every_line(self, admin, location, stock):
        rice, oil = stock
        order = sales_service.create_order(Actor.from_user(admin), location.id, {
            "items": [
                {"product_id": rice.id, "quantity": 4, "sale_price": "12.50"},
                {"product_id": oil.id, "quantity": 2, "sale_price": 30},
            ],
        })

        assert _quantity(rice.id) == 6
        assert _quantity(oil.id) == 0
        assert order.total_amount == Decimal("110.00")
        assert order.created_by_name == "Admin A"
        assert [line.product_name for line in order.lines] == ["Rice 5kg", "Cooking oil"]

    def test_one_short_line_rejects_whole_order(self, db_session, admin, location, stock):
        rice, oil = stock
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_order(Actor.from_user(admin), location.id, {
                "items": [
                    {"product_id": rice.id, "quantity": 1, "sale_price": 10},
                    {"product_id": oil.id, "quantity": 3, "sale_price": 10},
                ],
            })

        assert exc.value.details["items"][0]["product_name"] == "Cooking oil"
        assert _quantity(rice.id) == 10
        assert _quantity(oil.id) == 2
        assert db_session.query(SaleOrder).count() == 0
        assert db_session.query(SaleOrderLine).count() == 0

    def test_repeated_product_is_checked_against_total(self, admin, location, stock):
        _, oil = stock
        with pytest.raises(InsufficientStockError):
            sales_service.create_order(Actor.from_user(admin), location.id, {
                "items": [
                    {"product_id": oil.id, "quantity": 2, "sale_price": 10},
                    {"product_id": oil.id, "quantity": 1, "sale_price": 10},
                ],
            })
        assert _quantity(oil.id) == 2

    def test_unknown_product_is_not_found(self, admin, location, stock):
        rice, _ = stock
        with pytest.raises(NotFoundError):
            sales_service.create_order(Actor.from_user(admin), location.id, {
                "items": [
                    {"product_id": rice.id, "quantity": 1, "sale_price": 10},
                    {"product_id": 987654, "quantity": 1, "sale_price": 10},
                ],
            })
        assert _quantity(rice.id) == 10

    def test_inactive_product_is_rejected(self, admin, location, make_product):
        retired = make_product(location, name="Old stock", quantity=5, status="inactive")
        with pytest.raises(ValidationError):
            sales_service.create_order(Actor.from_user(admin), location.id, {
                "items": [{"product_id": retired.id, "quantity": 1, "sale_price": 10}],
            })
        assert _quantity(retired.id) == 5

    @pytest.mark.parametrize("items", [
        None,
        [],
        [{"product_id": 1, "quantity": 0, "sale_price": 1}],
        [{"product_id": 1, "quantity": 1}],
        [{"product_id": 1, "quantity": 1, "sale_price": -1}],
    ])
    def test_malformed_items(self, admin, location, items):
        with pytest.raises(ValidationError):
            sales_service.create_order(Actor.from_user(admin), location.id, {"items": items})

    def test_requires_manage_products(self, staff, location, stock, grant):
        grant(staff, location, [])
        rice, _ = stock
        with pytest.raises(PermissionDeniedError):
            sales_service.create_order(Actor.from_user(staff), location.id, {
                "items": [{"product_id": rice.id, "quantity": 1, "sale_price": 10}],
            })

    def test_customer_must_belong_to_location(self, db_session, admin, location, other_location, stock):
        rice, _ = stock
        foreign = Customer(location_id=other_location.id, name="Walk-in")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(NotFoundError):
            sales_service.create_order(Actor.from_user(admin), location.id, {
                "customer_id": foreign.id,
                "items": [{"product_id": rice.id, "quantity": 1, "sale_price": 10}],
            })


class TestLineSnapshots:

    def test_lines_survive_product_edits(self, client, admin_headers, location, stock):
        rice, _ = stock
        resp = client.post(
            f"/api/locations/{location.id}/orders",
            json={"items": [{"product_id": rice.id, "quantity": 2, "sale_price": 12.5}]},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        order_id = resp.json["order"]["id"]

        resp = client.put(
            f"/api/locations/{location.id}/products/{rice.id}",
            json={"name": "Jasmine rice 5kg", "sale_price": 99},
            headers=admin_headers,
        )
        assert resp.status_code == 200

        resp = client.get(f"/api/locations/{location.id}/orders/{order_id}", headers=admin_headers)
        line = resp.json["order"]["items"][0]
        assert line["product_name"] == "Rice 5kg"
        assert line["sale_price"] == 12.5
        assert line["total_price"] == 25.0


class TestDeleteOrder:

    def test_delete_restocks_every_line(self, db_session, admin, location, stock):
        rice, oil = stock
        actor = Actor.from_user(admin)
        order = sales_service.create_order(actor, location.id, {
            "items": [
                {"product_id": rice.id, "quantity": 3, "sale_price": 10},
                {"product_id": oil.id, "quantity": 1, "sale_price": 10},
                {"product_id": rice.id, "quantity": 2, "sale_price": 9},
            ],
        })
        assert _quantity(rice.id) == 5

        sales_service.delete_order(actor, location.id, order.id)

        assert _quantity(rice.id) == 10
        assert _quantity(oil.id) == 2
        assert db_session.query(SaleOrder).count() == 0
        assert db_session.query(SaleOrderLine).count() == 0

    def test_missing_product_aborts_restock(self, db_session, admin, location, stock):
        rice, oil = stock
        actor = Actor.from_user(admin)
        order = sales_service.create_order(actor, location.id, {
            "items": [
                {"product_id": rice.id, "quantity": 1, "sale_price": 10},
                {"product_id": oil.id, "quantity": 1, "sale_price": 10},
            ],
        })
        order_id = order.id
        rice_id, oil_id = rice.id, oil.id
        location_id = location.id
        db_session.query(Product).filter_by(id=oil_id).delete(synchronize_session=False)
        db_session.commit()
        db_session.expunge_all()

        with pytest.raises(OrderRestockError) as exc:
            sales_service.delete_order(actor, location_id, order_id)

        assert exc.value.status_code == 409
        assert exc.value.details["product_ids"] == [oil_id]
        assert _quantity(rice_id) == 9
        assert db_session.get(SaleOrder, order_id) is not None

    def test_delete_route(self, client, admin_headers, location, stock):
        rice, _ = stock
        resp = client.post(
            f"/api/locations/{location.id}/orders",
            json={"items": [{"product_id": rice.id, "quantity": 4, "sale_price": 10}]},
            headers=admin_headers,
        )
        order_id = resp.json["order"]["id"]

        resp = client.delete(f"/api/locations/{location.id}/orders/{order_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json == {"success": True}
        assert _quantity(rice.id) == 10

        resp = client.get(f"/api/locations/{location.id}/orders/{order_id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_delete_requires_manage_products(self, staff, admin, location, stock, grant):
        grant(staff, location, [])
        rice, _ = stock
        order = sales_service.create_order(Actor.from_user(admin), location.id, {
            "items": [{"product_id": rice.id, "quantity": 1, "sale_price": 10}],
        })
        with pytest.raises(PermissionDeniedError):
            sales_service.delete_order(Actor.from_user(staff), location.id, order.id)
        assert _quantity(rice.id) == 9

    def test_staff_with_capability_can_sell(self, staff, location, stock, grant):
        grant(staff, location, [MANAGE_PRODUCTS])
        rice, _ = stock
        order = sales_service.create_order(Actor.from_user(staff), location.id, {
            "items": [{"product_id": rice.id, "quantity": 1, "sale_price": 10}],
        })
        assert order.created_by_id == staff.id


class TestConcurrentOrders:

    def test_overlapping_orders_take_stock_once(self, admin, location, make_product, run_concurrently):
        """Three orders each want 3 towels + 1 soap; towels cover only one of them."""
        towels = make_product(location, name="Towel", quantity=4)
        soap = make_product(location, name="Soap", quantity=3)
        actor = Actor.from_user(admin)
        location_id, towels_id, soap_id = location.id, towels.id, soap.id

        def order():
            sales_service.create_order(actor, location_id, {
                "items": [
                    {"product_id": soap_id, "quantity": 1, "sale_price": 2},
                    {"product_id": towels_id, "quantity": 3, "sale_price": 8},
                ],
            })

        outcomes = run_concurrently(order, order, order)

        assert sorted(outcomes) == ["InsufficientStockError", "InsufficientStockError", "ok"]
        assert _quantity(towels_id) == 1
        assert _quantity(soap_id) == 2
        assert db.session.query(SaleOrder).count() == 1
        assert db.session.query(SaleOrderLine).count() == 2

    def test_order_racing_export(self, admin, location, make_product, run_concurrently):
        towels = make_product(location, name="Towel", quantity=4)
        soap = make_product(location, name="Soap", quantity=2)
        actor = Actor.from_user(admin)
        location_id, towels_id, soap_id = location.id, towels.id, soap.id

        def order():
            sales_service.create_order(actor, location_id, {
                "items": [
                    {"product_id": towels_id, "quantity": 3, "sale_price": 8},
                    {"product_id": soap_id, "quantity": 2, "sale_price": 2},
                ],
            })

        def export():
            inventory_service.record_transaction(
                actor, location_id,
                {"product_id": towels_id, "type": "EXPORT", "quantity": 3, "notes": "Laundry"},
            )

        order_outcome, export_outcome = run_concurrently(order, export)

        assert sorted([order_outcome, export_outcome]) == ["InsufficientStockError", "ok"]
        assert _quantity(towels_id) == 1
        if order_outcome == "ok":
            assert _quantity(soap_id) == 0
            assert db.session.query(InventoryTransaction).count() == 0
        else:
            assert _quantity(soap_id) == 2
            assert db.session.query(SaleOrder).count() == 0
            assert db.session.query(InventoryTransaction).count() == 1


class TestRestockLimits:

    def test_restock_past_max_quantity_is_refused(self, db_session, admin, location, stock):
        rice, _ = stock
        actor = Actor.from_user(admin)
        order = sales_service.create_order(actor, location.id, {
            "items": [{"product_id": rice.id, "quantity": 2, "sale_price": 10}],
        })
        rice.quantity = MAX_QUANTITY
        db_session.commit()

        with pytest.raises(ConflictError) as exc:
            sales_service.delete_order(actor, location.id, order.id)

        assert exc.value.details["product_ids"] == [rice.id]
        assert _quantity(rice.id) == MAX_QUANTITY
        assert db_session.get(SaleOrder, order.id) is not None
