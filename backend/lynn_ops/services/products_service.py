# backend/lynn_ops/services/products_service.py
"""
Product Registry

Location-scoped product CRUD. Product.quantity is owned here only for the
explicit override on update; day-to-day stock changes go through the
transaction ledger and the sale order engine.

- create_product: quantity always starts at 0, status at "available"
- update_product: partial; "quantity" overrides stock under the write lock
- set_product_status: deactivation needs confirm=True
- delete_product: admins only; refused while history references the product
"""
from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, InventoryTransaction, Product, SaleOrderLine, Supplier
from ..permissions import MANAGE_PRODUCTS
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from .concurrency import atomic_write, lock_for_update
from .permission_service import require_admin, require_location_access
from .session_service import Actor


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "unit", "price", "sale_price", "status",
        "category_id", "supplier_id", "image_url",
    },
    required_on_create={"name", "unit"},
)

# "quantity" only on update: the override path
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields | {"quantity"},
)


def get_product_in_location(location_id: int, product_id: int) -> Product:
    """NotFound unless the product exists and belongs to location_id."""
    product = db.session.query(Product).filter_by(id=product_id, location_id=location_id).first()
    if not product:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def _check_references(location_id: int, patch: dict) -> None:
    """category_id / supplier_id must point into the same location."""
    category_id = patch.get("category_id")
    if category_id is not None:
        exists = db.session.query(Category.id).filter_by(id=category_id, location_id=location_id).first()
        if not exists:
            raise NotFoundError("Category not found", details={"category_id": category_id})

    supplier_id = patch.get("supplier_id")
    if supplier_id is not None:
        exists = db.session.query(Supplier.id).filter_by(id=supplier_id, location_id=location_id).first()
        if not exists:
            raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})


def list_products(
    actor: Actor,
    location_id: int,
    include_inactive: bool = True,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Products of one location, newest first, with optional pagination.

    Returns dict with 'items', 'count' and, when paginated, 'pagination'.
    """
    require_location_access(actor, location_id)

    base_query = db.session.query(Product).filter(Product.location_id == location_id)
    if not include_inactive:
        base_query = base_query.filter(Product.status == "available")
    base_query = base_query.order_by(Product.created_at.desc(), Product.id.desc())

    if page is None:
        products = base_query.all()
        return {
            "items": products,
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": products,
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(actor: Actor, location_id: int, product_id: int) -> Product:
    require_location_access(actor, location_id)
    return get_product_in_location(location_id, product_id)


def create_product(actor: Actor, location_id: int, payload: dict) -> Product:
    """
    Create a product in location_id.

    Any client-supplied quantity is rejected by the policy; new products
    always start at 0 and enter stock through an IMPORT.
    """
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    _check_references(location_id, patch)

    product = Product(
        location_id=location_id,
        quantity=0,
        status=patch.pop("status", None) or "available",
        created_by_id=actor.id,
    )
    for key, value in patch.items():
        setattr(product, key, value)

    db.session.add(product)
    db.session.commit()

    current_app.logger.info(
        "Product %s created in location %s by user id=%s", product.id, location_id, actor.id
    )
    return product


def update_product(actor: Actor, location_id: int, product_id: int, payload: dict) -> Product:
    """
    Partial update.

    A "quantity" key overwrites stock directly, without a ledger row and
    without a floor at zero. It runs under the same write lock as the
    ledger so it cannot interleave with an in-flight IMPORT/EXPORT.
    """
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)
    _check_references(location_id, patch)

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, location_id=location_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        previous_quantity = product.quantity
        for key, value in patch.items():
            setattr(product, key, value)

        if "quantity" in patch and patch["quantity"] != previous_quantity:
            current_app.logger.info(
                "Quantity override: location=%s product=%s %s -> %s by user id=%s",
                location_id, product_id, previous_quantity, patch["quantity"], actor.id,
            )
        return product

    return atomic_write(_op)


def set_product_status(
    actor: Actor,
    location_id: int,
    product_id: int,
    status: str,
    confirm: bool = False,
) -> Product:
    """Toggle available/inactive. Deactivating requires confirm=True."""
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    if status not in ("available", "inactive"):
        raise ValidationError("status must be one of: available, inactive")

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, location_id=location_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        if status == "inactive" and product.status != "inactive" and confirm is not True:
            raise ValidationError(
                "Deactivating a product requires confirmation",
                details={"confirm_required": True},
            )

        product.status = status
        return product

    return atomic_write(_op)


def delete_product(actor: Actor, location_id: int, product_id: int) -> None:
    """
    Hard delete, admins only.

    Refused with a Conflict while any ledger entry or sale order line
    references the product; deactivate it instead. The history check and
    the delete share the write lock with the ledger and the order engine.
    """
    require_admin(actor)
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, location_id=location_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        tx_count = db.session.query(InventoryTransaction.id).filter_by(product_id=product.id).count()
        line_count = db.session.query(SaleOrderLine.id).filter_by(product_id=product.id).count()
        if tx_count or line_count:
            raise ConflictError(
                "Product has stock history; deactivate it instead",
                details={"transactions": tx_count, "order_lines": line_count},
            )

        db.session.delete(product)

    atomic_write(_op)

    current_app.logger.info(
        "Product %s deleted from location %s by user id=%s", product_id, location_id, actor.id
    )
