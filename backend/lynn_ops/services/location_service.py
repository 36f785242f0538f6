# Overview: Service-layer operations for locations; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError
from ..extensions import db
from ..models import (
    Category,
    Customer,
    Expense,
    Guest,
    InventoryTransaction,
    Location,
    LocationDocument,
    Product,
    SaleOrder,
    SaleOrderLine,
    Supplier,
    UserLocationAccess,
)
from ..permissions import ROLE_ADMIN
from ..validation import ModelValidationPolicy, validate_payload
from .permission_service import require_admin
from .session_service import Actor


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "currency", "description", "address"},
    required_on_create={"name"},
)


def get_location_or_404(location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if not location:
        raise NotFoundError("Location not found")
    return location


def list_locations(actor: Actor) -> list[Location]:
    require_admin(actor)
    return db.session.query(Location).order_by(Location.created_at.desc(), Location.id.desc()).all()


def create_location(actor: Actor, payload: dict) -> Location:
    """
    Create a location owned by the caller.

    type defaults to "warehouse" and currency to "VND". admin_id is always
    the creator and never changes afterwards.
    """
    require_admin(actor)
    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)

    location = Location(
        name=patch["name"],
        type=patch.get("type") or "warehouse",
        currency=patch.get("currency") or "VND",
        description=patch.get("description"),
        address=patch.get("address"),
        admin_id=actor.id,
    )
    db.session.add(location)
    db.session.commit()

    current_app.logger.info("Location %s created by user id=%s", location.id, actor.id)
    return location


def get_location(actor: Actor, location_id: int) -> Location:
    require_admin(actor)
    return get_location_or_404(location_id)


def _require_owner(actor: Actor, location: Location) -> None:
    if actor.role == ROLE_ADMIN and location.admin_id != actor.id:
        raise PermissionDeniedError("You can only modify locations you own")


def update_location(actor: Actor, location_id: int, payload: dict) -> Location:
    require_admin(actor)
    location = get_location_or_404(location_id)
    _require_owner(actor, location)

    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
    for key, value in patch.items():
        setattr(location, key, value)

    db.session.commit()
    return location


def delete_location(actor: Actor, location_id: int) -> None:
    """
    Delete a location and every record scoped to it.

    One transaction: grants, ledger, orders, products, registries,
    expenses and documents go together.
    """
    require_admin(actor)
    location = get_location_or_404(location_id)
    _require_owner(actor, location)

    order_ids = db.select(SaleOrder.id).where(SaleOrder.location_id == location_id)
    db.session.query(SaleOrderLine).filter(SaleOrderLine.order_id.in_(order_ids)).delete(
        synchronize_session=False
    )
    for model in (
        SaleOrder,
        InventoryTransaction,
        Guest,
        Customer,
        Product,
        Category,
        Supplier,
        Expense,
        LocationDocument,
        UserLocationAccess,
    ):
        db.session.query(model).filter_by(location_id=location_id).delete(synchronize_session=False)

    db.session.delete(location)
    db.session.commit()

    current_app.logger.info("Location %s deleted by user id=%s", location_id, actor.id)
