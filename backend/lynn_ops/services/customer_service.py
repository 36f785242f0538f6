# Overview: Service-layer operations for customers and hotel guests.

"""
Customers and guests follow the location's view access for every
operation, reads and writes alike: front-desk staff need no extra
capability to register a stay.

Guest.status is derived: "checked-out" once check_out is set, else "active".
"""

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Guest, SaleOrder
from ..validation import ModelValidationPolicy, enforce_rules_guest
from . import registry
from .session_service import Actor


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address", "notes"},
    required_on_create={"name"},
)

GUEST_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "room_number", "check_in", "check_out",
        "adults", "children", "notes",
    },
    required_on_create={"check_in"},
)


def guest_status(check_out) -> str:
    return "checked-out" if check_out else "active"


# -- Customers --

def list_customers(actor: Actor, location_id: int) -> list[Customer]:
    return registry.list_scoped(actor, Customer, location_id, order_by=(Customer.created_at.desc(), Customer.id.desc()))


def create_customer(actor: Actor, location_id: int, payload: dict) -> Customer:
    return registry.create_scoped(actor, Customer, location_id, payload, CUSTOMER_POLICY)


def update_customer(actor: Actor, location_id: int, customer_id: int, payload: dict) -> Customer:
    return registry.update_scoped(
        actor, Customer, location_id, customer_id, payload, CUSTOMER_POLICY, "Customer",
    )


def delete_customer(actor: Actor, location_id: int, customer_id: int) -> None:
    """Guest stays and orders keep their rows without the customer link."""
    def _detach(customer):
        db.session.query(Guest).filter_by(customer_id=customer.id).update(
            {Guest.customer_id: None}, synchronize_session=False
        )
        db.session.query(SaleOrder).filter_by(customer_id=customer.id).update(
            {SaleOrder.customer_id: None}, synchronize_session=False
        )

    registry.delete_scoped(actor, Customer, location_id, customer_id, "Customer", before_delete=_detach)


# -- Guests --

def _check_customer(location_id: int, customer_id: int | None) -> None:
    if customer_id is None:
        return
    exists = db.session.query(Customer.id).filter_by(id=customer_id, location_id=location_id).first()
    if not exists:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})


def list_guests(actor: Actor, location_id: int) -> list[Guest]:
    return registry.list_scoped(actor, Guest, location_id, order_by=(Guest.check_in.desc(), Guest.id.desc()))


def create_guest(actor: Actor, location_id: int, payload: dict) -> Guest:
    def _rules(patch):
        enforce_rules_guest(patch)
        _check_customer(location_id, patch.get("customer_id"))
        patch["status"] = guest_status(patch.get("check_out"))

    return registry.create_scoped(
        actor, Guest, location_id, payload, GUEST_POLICY,
        rules=_rules,
        defaults={"adults": 1, "children": 0},
    )


def update_guest(actor: Actor, location_id: int, guest_id: int, payload: dict) -> Guest:
    def _rules(guest, patch):
        merged = {
            "check_in": patch.get("check_in", guest.check_in),
            "check_out": patch.get("check_out", guest.check_out),
            "adults": patch.get("adults"),
            "children": patch.get("children"),
        }
        enforce_rules_guest(merged)
        _check_customer(location_id, patch.get("customer_id"))
        if "check_out" in patch:
            patch["status"] = guest_status(patch["check_out"])

    return registry.update_scoped(
        actor, Guest, location_id, guest_id, payload, GUEST_POLICY, "Guest",
        rules=_rules,
    )


def delete_guest(actor: Actor, location_id: int, guest_id: int) -> None:
    registry.delete_scoped(actor, Guest, location_id, guest_id, "Guest")
