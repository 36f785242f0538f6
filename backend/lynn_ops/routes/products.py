# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/lynn_ops/routes/products.py
"""
Product routes, scoped to one location.

SECURITY: All routes require authentication and view access to the location.
- Write operations require MANAGE_PRODUCTS
- Hard delete is additionally limited to admins and superadmins
"""
from flask import Blueprint, request, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..errors import ValidationError
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/locations/<int:location_id>/products")


@products_bp.get("")
@require_auth
@require_location_access()
def list_products(location_id: int):
    """
    List products of the location, newest first.

    Query params:
    - include_inactive: bool (default true)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    result = products_service.list_products(
        g.actor,
        location_id,
        include_inactive=include_inactive,
        page=page,
        per_page=per_page,
    )
    result["products"] = [p.to_dict() for p in result.pop("items")]
    return result


@products_bp.post("")
@require_auth
@require_location_access()
def create_product_route(location_id: int):
    """Create a product. Requires MANAGE_PRODUCTS; quantity starts at 0."""
    payload = get_json_object()
    created = products_service.create_product(g.actor, location_id, payload)
    return {"product": created.to_dict()}, 201


@products_bp.get("/<int:product_id>")
@require_auth
@require_location_access()
def get_product_route(location_id: int, product_id: int):
    product = products_service.get_product(g.actor, location_id, product_id)
    return {"product": product.to_dict()}


@products_bp.put("/<int:product_id>")
@require_auth
@require_location_access()
def update_product_route(location_id: int, product_id: int):
    """
    Partial update. Requires MANAGE_PRODUCTS.

    "quantity" in the body overrides stock directly (correction entry).
    """
    payload = get_json_object()
    updated = products_service.update_product(g.actor, location_id, product_id, payload)
    return {"product": updated.to_dict()}


@products_bp.post("/<int:product_id>/status")
@require_auth
@require_location_access()
def set_product_status_route(location_id: int, product_id: int):
    """
    Toggle availability.

    Request body: {"status": "available" | "inactive", "confirm": bool}
    Deactivating requires confirm=true.
    """
    payload = get_json_object()
    status = payload.get("status")
    if not isinstance(status, str):
        raise ValidationError("status is required")

    product = products_service.set_product_status(
        g.actor,
        location_id,
        product_id,
        status.strip().lower(),
        confirm=payload.get("confirm") is True,
    )
    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
@require_location_access()
def delete_product_route(location_id: int, product_id: int):
    """Hard delete (admins only); refused while stock history references it."""
    products_service.delete_product(g.actor, location_id, product_id)
    return {"success": True}, 200
