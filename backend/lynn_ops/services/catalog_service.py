# Overview: Service-layer operations for categories and suppliers.

from __future__ import annotations

from ..errors import ConflictError
from ..extensions import db
from ..models import Category, InventoryTransaction, Product, Supplier
from ..permissions import MANAGE_CATEGORIES, MANAGE_SUPPLIERS
from ..validation import ModelValidationPolicy
from . import registry
from .session_service import Actor


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name"},
    required_on_create={"name"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "contact_name", "phone", "email",
        "address", "city", "country",
        "tax_id", "business_registration_number", "company_name",
        "notes", "payment_terms", "contract_date",
    },
    required_on_create={"name"},
)


# -- Categories --

def _ensure_unique_category_name(location_id: int, name: str | None, exclude_id: int | None = None) -> None:
    if not name:
        return
    query = db.session.query(Category.id).filter(
        Category.location_id == location_id,
        Category.name == name,
    )
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError("Category name already exists in this location")


def list_categories(actor: Actor, location_id: int) -> list[Category]:
    return registry.list_scoped(actor, Category, location_id, order_by=(Category.name.asc(), Category.id.asc()))


def create_category(actor: Actor, location_id: int, payload: dict) -> Category:
    return registry.create_scoped(
        actor, Category, location_id, payload, CATEGORY_POLICY,
        capability=MANAGE_CATEGORIES,
        rules=lambda patch: _ensure_unique_category_name(location_id, patch.get("name")),
    )


def update_category(actor: Actor, location_id: int, category_id: int, payload: dict) -> Category:
    return registry.update_scoped(
        actor, Category, location_id, category_id, payload, CATEGORY_POLICY, "Category",
        capability=MANAGE_CATEGORIES,
        rules=lambda entity, patch: _ensure_unique_category_name(location_id, patch.get("name"), entity.id),
    )


def delete_category(actor: Actor, location_id: int, category_id: int) -> None:
    """Products in the category become uncategorised."""
    def _detach(category):
        db.session.query(Product).filter_by(category_id=category.id).update(
            {Product.category_id: None}, synchronize_session=False
        )

    registry.delete_scoped(
        actor, Category, location_id, category_id, "Category",
        capability=MANAGE_CATEGORIES,
        before_delete=_detach,
    )


# -- Suppliers --

def list_suppliers(actor: Actor, location_id: int) -> list[Supplier]:
    return registry.list_scoped(actor, Supplier, location_id, order_by=(Supplier.name.asc(), Supplier.id.asc()))


def create_supplier(actor: Actor, location_id: int, payload: dict) -> Supplier:
    return registry.create_scoped(
        actor, Supplier, location_id, payload, SUPPLIER_POLICY,
        capability=MANAGE_SUPPLIERS,
    )


def update_supplier(actor: Actor, location_id: int, supplier_id: int, payload: dict) -> Supplier:
    return registry.update_scoped(
        actor, Supplier, location_id, supplier_id, payload, SUPPLIER_POLICY, "Supplier",
        capability=MANAGE_SUPPLIERS,
    )


def delete_supplier(actor: Actor, location_id: int, supplier_id: int) -> None:
    """Products and ledger entries keep their history without the supplier link."""
    def _detach(supplier):
        db.session.query(Product).filter_by(supplier_id=supplier.id).update(
            {Product.supplier_id: None}, synchronize_session=False
        )
        db.session.query(InventoryTransaction).filter_by(supplier_id=supplier.id).update(
            {InventoryTransaction.supplier_id: None}, synchronize_session=False
        )

    registry.delete_scoped(
        actor, Supplier, location_id, supplier_id, "Supplier",
        capability=MANAGE_SUPPLIERS,
        before_delete=_detach,
    )
