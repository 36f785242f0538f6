# Overview: Flask API routes for customers and hotel guests of a location.

from flask import Blueprint, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..services import customer_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/locations/<int:location_id>")


@customers_bp.get("/customers")
@require_auth
@require_location_access()
def list_customers(location_id: int):
    customers = customer_service.list_customers(g.actor, location_id)
    return {"customers": [c.to_dict() for c in customers]}


@customers_bp.post("/customers")
@require_auth
@require_location_access()
def create_customer(location_id: int):
    customer = customer_service.create_customer(g.actor, location_id, get_json_object())
    return {"customer": customer.to_dict()}, 201


@customers_bp.put("/customers/<int:customer_id>")
@require_auth
@require_location_access()
def update_customer(location_id: int, customer_id: int):
    customer = customer_service.update_customer(
        g.actor, location_id, customer_id, get_json_object()
    )
    return {"customer": customer.to_dict()}


@customers_bp.delete("/customers/<int:customer_id>")
@require_auth
@require_location_access()
def delete_customer(location_id: int, customer_id: int):
    customer_service.delete_customer(g.actor, location_id, customer_id)
    return {"success": True}


@customers_bp.get("/guests")
@require_auth
@require_location_access()
def list_guests(location_id: int):
    guests = customer_service.list_guests(g.actor, location_id)
    return {"guests": [guest.to_dict() for guest in guests]}


@customers_bp.post("/guests")
@require_auth
@require_location_access()
def create_guest(location_id: int):
    """
    Register a stay.

    check_in is required; adults defaults to 1, children to 0. A check_out
    marks the stay checked-out.
    """
    guest = customer_service.create_guest(g.actor, location_id, get_json_object())
    return {"guest": guest.to_dict()}, 201


@customers_bp.put("/guests/<int:guest_id>")
@require_auth
@require_location_access()
def update_guest(location_id: int, guest_id: int):
    guest = customer_service.update_guest(g.actor, location_id, guest_id, get_json_object())
    return {"guest": guest.to_dict()}


@customers_bp.delete("/guests/<int:guest_id>")
@require_auth
@require_location_access()
def delete_guest(location_id: int, guest_id: int):
    customer_service.delete_guest(g.actor, location_id, guest_id)
    return {"success": True}
