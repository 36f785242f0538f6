# Overview: Flask API routes for sale orders; parses input and returns JSON responses.

from flask import Blueprint, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..services import sales_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/locations/<int:location_id>/orders")


@orders_bp.get("")
@require_auth
@require_location_access()
def list_orders(location_id: int):
    orders = sales_service.list_orders(g.actor, location_id)
    return {"orders": [o.to_dict() for o in orders]}


@orders_bp.post("")
@require_auth
@require_location_access()
def create_order(location_id: int):
    """
    Create an order and take its stock. Requires MANAGE_PRODUCTS.

    Request body:
    {
        "items": [{"product_id": int, "quantity": int, "sale_price": number}],
        "customer_id": int,   // optional
        "notes": str          // optional
    }

    All lines are checked before anything is written; any failing line
    rejects the whole order.
    """
    payload = get_json_object()
    order = sales_service.create_order(g.actor, location_id, payload)
    return {"order": order.to_dict()}, 201


@orders_bp.get("/<int:order_id>")
@require_auth
@require_location_access()
def get_order(location_id: int, order_id: int):
    order = sales_service.get_order(g.actor, location_id, order_id)
    return {"order": order.to_dict()}


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_location_access()
def delete_order(location_id: int, order_id: int):
    """Restock every line and delete the order. Requires MANAGE_PRODUCTS."""
    sales_service.delete_order(g.actor, location_id, order_id)
    return {"success": True}

