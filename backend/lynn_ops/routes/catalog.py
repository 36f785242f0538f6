# Overview: Flask API routes for categories and suppliers of a location.

from flask import Blueprint, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..services import catalog_service

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/locations/<int:location_id>")


# =============================================================================
# CATEGORIES (writes require MANAGE_CATEGORIES)
# =============================================================================

@catalog_bp.get("/categories")
@require_auth
@require_location_access()
def list_categories(location_id: int):
    categories = catalog_service.list_categories(g.actor, location_id)
    return {"categories": [c.to_dict() for c in categories]}


@catalog_bp.post("/categories")
@require_auth
@require_location_access()
def create_category(location_id: int):
    category = catalog_service.create_category(g.actor, location_id, get_json_object())
    return {"category": category.to_dict()}, 201


@catalog_bp.put("/categories/<int:category_id>")
@require_auth
@require_location_access()
def update_category(location_id: int, category_id: int):
    category = catalog_service.update_category(
        g.actor, location_id, category_id, get_json_object()
    )
    return {"category": category.to_dict()}


@catalog_bp.delete("/categories/<int:category_id>")
@require_auth
@require_location_access()
def delete_category(location_id: int, category_id: int):
    catalog_service.delete_category(g.actor, location_id, category_id)
    return {"success": True}


# =============================================================================
# SUPPLIERS (writes require MANAGE_SUPPLIERS)
# =============================================================================

@catalog_bp.get("/suppliers")
@require_auth
@require_location_access()
def list_suppliers(location_id: int):
    suppliers = catalog_service.list_suppliers(g.actor, location_id)
    return {"suppliers": [s.to_dict() for s in suppliers]}


@catalog_bp.post("/suppliers")
@require_auth
@require_location_access()
def create_supplier(location_id: int):
    supplier = catalog_service.create_supplier(g.actor, location_id, get_json_object())
    return {"supplier": supplier.to_dict()}, 201


@catalog_bp.put("/suppliers/<int:supplier_id>")
@require_auth
@require_location_access()
def update_supplier(location_id: int, supplier_id: int):
    supplier = catalog_service.update_supplier(
        g.actor, location_id, supplier_id, get_json_object()
    )
    return {"supplier": supplier.to_dict()}


@catalog_bp.delete("/suppliers/<int:supplier_id>")
@require_auth
@require_location_access()
def delete_supplier(location_id: int, supplier_id: int):
    catalog_service.delete_supplier(g.actor, location_id, supplier_id)
    return {"success": True}
