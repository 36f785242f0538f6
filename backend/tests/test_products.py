"""
Product registry tests.

Covers create (quantity always 0), the quantity override on update,
confirmation for deactivation, pagination and the delete refusal while
stock history exists.
"""

import pytest

from lynn_ops.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from lynn_ops.extensions import db
from lynn_ops.models import Category, InventoryTransaction, Product
from lynn_ops.permissions import MANAGE_PRODUCTS
from lynn_ops.services import inventory_service, products_service
from lynn_ops.services.session_service import Actor


class TestCreateProduct:

    def test_create_starts_at_zero(self, client, admin_headers, location):
        resp = client.post(
            f"/api/locations/{location.id}/products",
            json={"name": "Shampoo", "unit": "bottle", "price": "3.20", "sale_price": 5},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["quantity"] == 0
        assert product["status"] == "available"
        assert product["price"] == 3.2
        assert product["location_id"] == location.id

    def test_client_quantity_is_rejected(self, admin, location):
        with pytest.raises(ValidationError):
            products_service.create_product(
                Actor.from_user(admin), location.id, {"name": "Soap", "unit": "bar", "quantity": 50},
            )

    def test_missing_required_fields(self, client, admin_headers, location):
        resp = client.post(f"/api/locations/{location.id}/products", json={"name": "Soap"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["details"]["missing"] == ["unit"]

    def test_negative_price_is_rejected(self, admin, location):
        with pytest.raises(ValidationError):
            products_service.create_product(
                Actor.from_user(admin), location.id, {"name": "Soap", "unit": "bar", "price": -1},
            )

    def test_category_from_other_location_is_not_found(self, db_session, admin, location, other_location):
        foreign = Category(location_id=other_location.id, name="Linen")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(NotFoundError):
            products_service.create_product(
                Actor.from_user(admin), location.id,
                {"name": "Sheet", "unit": "piece", "category_id": foreign.id},
            )

    def test_requires_manage_products(self, staff, location, grant):
        grant(staff, location, [])
        with pytest.raises(PermissionDeniedError):
            products_service.create_product(Actor.from_user(staff), location.id, {"name": "Soap", "unit": "bar"})


class TestUpdateProduct:

    def test_quantity_override_may_go_negative(self, admin, location, product):
        updated = products_service.update_product(Actor.from_user(admin), location.id, product.id, {"quantity": -4})
        assert updated.quantity == -4

    def test_partial_update_keeps_other_fields(self, admin, location, product):
        updated = products_service.update_product(Actor.from_user(admin), location.id, product.id, {"sku": "RC-5"})
        assert updated.sku == "RC-5"
        assert updated.name == "Rice 5kg"
        assert updated.quantity == 10

    def test_product_of_other_location_is_not_found(self, superadmin, location, other_location, make_product):
        foreign = make_product(other_location, name="Towel")
        with pytest.raises(NotFoundError):
            products_service.update_product(Actor.from_user(superadmin), location.id, foreign.id, {"sku": "X"})

    def test_unknown_field_is_rejected(self, admin, location, product):
        with pytest.raises(ValidationError):
            products_service.update_product(Actor.from_user(admin), location.id, product.id, {"location_id": 9})


class TestProductStatus:

    def test_deactivate_needs_confirm(self, client, admin_headers, location, product):
        url = f"/api/locations/{location.id}/products/{product.id}/status"

        resp = client.post(url, json={"status": "inactive"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["details"]["confirm_required"] is True

        resp = client.post(url, json={"status": "inactive", "confirm": True}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["status"] == "inactive"

        resp = client.post(url, json={"status": "available"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["status"] == "available"

    def test_inactive_hidden_on_request(self, client, admin_headers, location, make_product):
        make_product(location, name="Visible")
        make_product(location, name="Hidden", status="inactive")

        resp = client.get(f"/api/locations/{location.id}/products?include_inactive=false", headers=admin_headers)
        assert [p["name"] for p in resp.json["products"]] == ["Visible"]

        resp = client.get(f"/api/locations/{location.id}/products", headers=admin_headers)
        assert resp.json["count"] == 2


class TestListProducts:

    def test_pagination(self, client, admin_headers, location, make_product):
        for i in range(5):
            make_product(location, name=f"Item {i}")

        resp = client.get(f"/api/locations/{location.id}/products?page=2&per_page=2", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 2
        assert resp.json["pagination"] == {
            "page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_scoped_to_location(self, client, superadmin_headers, location, other_location, make_product):
        make_product(location, name="Here")
        make_product(other_location, name="There")

        resp = client.get(f"/api/locations/{location.id}/products", headers=superadmin_headers)
        assert [p["name"] for p in resp.json["products"]] == ["Here"]


class TestDeleteProduct:

    def test_admin_can_delete_unused_product(self, db_session, admin, location, product):
        product_id = product.id
        products_service.delete_product(Actor.from_user(admin), location.id, product_id)
        assert db_session.get(Product, product_id) is None

    def test_refused_with_history(self, admin, location, product):
        actor = Actor.from_user(admin)
        inventory_service.record_transaction(
            actor, location.id, {"product_id": product.id, "type": "IMPORT", "quantity": 1},
        )
        with pytest.raises(ConflictError) as exc:
            products_service.delete_product(actor, location.id, product.id)
        assert exc.value.details["transactions"] == 1

    def test_user_cannot_delete_even_with_capability(self, client, staff, headers_for, location, product, grant):
        grant(staff, location, [MANAGE_PRODUCTS])
        resp = client.delete(
            f"/api/locations/{location.id}/products/{product.id}",
            headers=headers_for(staff),
        )
        assert resp.status_code == 403


class TestProductWriteRaces:

    def test_delete_racing_import_leaves_no_orphans(
        self, db_session, admin, location, product, run_concurrently,
    ):
        actor = Actor.from_user(admin)
        location_id, product_id = location.id, product.id

        def delete():
            products_service.delete_product(actor, location_id, product_id)

        def stock_in():
            inventory_service.record_transaction(
                actor, location_id, {"product_id": product_id, "type": "IMPORT", "quantity": 5},
            )

        delete_outcome, import_outcome = run_concurrently(delete, stock_in)

        tx_count = db_session.query(InventoryTransaction).filter_by(product_id=product_id).count()
        remaining = db_session.get(Product, product_id, populate_existing=True)
        if delete_outcome == "ok":
            assert import_outcome == "NotFoundError"
            assert remaining is None
            assert tx_count == 0
        else:
            assert (delete_outcome, import_outcome) == ("ConflictError", "ok")
            assert remaining.quantity == 15
            assert tx_count == 1

    def test_concurrent_status_changes_all_apply(self, admin, location, product, run_concurrently):
        actor = Actor.from_user(admin)
        location_id, product_id = location.id, product.id

        def deactivate():
            products_service.set_product_status(actor, location_id, product_id, "inactive", confirm=True)

        def activate():
            products_service.set_product_status(actor, location_id, product_id, "available")

        outcomes = run_concurrently(deactivate, activate, deactivate, activate)

        assert outcomes == ["ok", "ok", "ok", "ok"]
        refreshed = db.session.get(Product, product_id, populate_existing=True)
        assert refreshed.status in ("available", "inactive")


class TestProductRouteBodies:

    @pytest.mark.parametrize("body", [[1], "inactive", 3])
    def test_status_body_must_be_object(self, client, admin_headers, location, product, body):
        resp = client.post(
            f"/api/locations/{location.id}/products/{product.id}/status",
            json=body,
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "VALIDATION_ERROR"
