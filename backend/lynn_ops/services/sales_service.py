"""
Sale Order Engine

Multi-line customer orders with an all-or-nothing pre-flight:

- create_order checks every line under the write lock (requested quantity
  aggregated per product) before anything is written. One failing line
  aborts the order with no effects.
- Lines are snapshots: product name and sale price are copied at creation.
- delete_order restocks every line and removes the order in one
  transaction. There is no cancelled state.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import ConflictError, InsufficientStockError, NotFoundError, OrderRestockError, ValidationError
from ..extensions import db
from ..models import Customer, Product, SaleOrder, SaleOrderLine
from ..permissions import MANAGE_PRODUCTS
from ..validation import MAX_QUANTITY, parse_integer, parse_order_items
from .concurrency import atomic_write, lock_for_update
from .permission_service import require_location_access
from .session_service import Actor


def _aggregate_requested(items: list[dict]) -> dict[int, int]:
    requested: dict[int, int] = {}
    for item in items:
        requested[item["product_id"]] = requested.get(item["product_id"], 0) + item["quantity"]
    return requested


def _preflight(location_id: int, items: list[dict]) -> dict[int, Product]:
    """
    Lock and check every product the order touches.

    Collects all failures before raising so the caller sees each bad line.
    Returns the locked products keyed by id.
    """
    requested = _aggregate_requested(items)

    products = (
        lock_for_update(
            db.session.query(Product).filter(
                Product.location_id == location_id,
                Product.id.in_(sorted(requested)),
            )
        )
        .order_by(Product.id)
        .all()
    )
    by_id = {p.id: p for p in products}

    missing = [pid for pid in requested if pid not in by_id]
    if missing:
        raise NotFoundError(
            f"Product {missing[0]} not found",
            details={"product_ids": missing},
        )

    inactive = [
        {"product_id": pid, "product_name": by_id[pid].name}
        for pid in requested
        if not by_id[pid].is_active
    ]
    if inactive:
        raise ValidationError(
            f"Product {inactive[0]['product_name']} is not available for sale",
            details={"items": inactive},
        )

    insufficient = []
    for pid, qty in requested.items():
        on_hand = int(by_id[pid].quantity or 0)
        if on_hand < qty:
            insufficient.append({
                "product_id": pid,
                "product_name": by_id[pid].name,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })
    if insufficient:
        raise InsufficientStockError(
            f"Insufficient stock for {insufficient[0]['product_name']}",
            details={"items": insufficient},
        )

    return by_id


def create_order(actor: Actor, location_id: int, payload: dict) -> SaleOrder:
    """
    Create an order and decrement stock for every line, atomically.

    Raises:
        PermissionDeniedError: missing MANAGE_PRODUCTS
        ValidationError: empty/malformed items, inactive product
        NotFoundError: a product or the customer is not in this location
        InsufficientStockError: any product short of its aggregated demand
        StorageError: the write could not be committed; nothing applied
    """
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    payload = payload or {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = parse_order_items(payload.get("items"))

    customer_id = payload.get("customer_id")
    if customer_id is not None:
        customer_id = parse_integer("customer_id", customer_id)
        exists = db.session.query(Customer.id).filter_by(id=customer_id, location_id=location_id).first()
        if not exists:
            raise NotFoundError("Customer not found", details={"customer_id": customer_id})

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")

    def _op():
        products = _preflight(location_id, items)

        order = SaleOrder(
            location_id=location_id,
            customer_id=customer_id,
            notes=notes.strip() if notes else None,
            created_by_id=actor.id,
            created_by_name=actor.name,
        )

        total = Decimal("0")
        for item in items:
            product = products[item["product_id"]]
            line_total = (item["sale_price"] * Decimal(item["quantity"])).quantize(Decimal("0.01"))
            order.lines.append(SaleOrderLine(
                product_id=product.id,
                product_name=product.name,
                quantity=item["quantity"],
                sale_price=item["sale_price"],
                total_price=line_total,
            ))
            product.quantity = int(product.quantity) - item["quantity"]
            total += line_total

        order.total_amount = total
        db.session.add(order)
        return order

    order = atomic_write(_op)

    current_app.logger.info(
        "Order %s created in location %s: %s line(s), total=%s by user id=%s",
        order.id, location_id, len(order.lines), order.total_amount, actor.id,
    )
    return order


def get_order_in_location(location_id: int, order_id: int) -> SaleOrder:
    order = db.session.query(SaleOrder).filter_by(id=order_id, location_id=location_id).first()
    if not order:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_orders(actor: Actor, location_id: int) -> list[SaleOrder]:
    require_location_access(actor, location_id)
    return (
        db.session.query(SaleOrder)
        .filter(SaleOrder.location_id == location_id)
        .order_by(SaleOrder.created_at.desc(), SaleOrder.id.desc())
        .all()
    )


def get_order(actor: Actor, location_id: int, order_id: int) -> SaleOrder:
    require_location_access(actor, location_id)
    return get_order_in_location(location_id, order_id)


def delete_order(actor: Actor, location_id: int, order_id: int) -> None:
    """
    Restock every line, then delete the order. One transaction.

    If a line's product no longer exists in the location the whole
    operation is rolled back with OrderRestockError: nothing is restocked
    and the order stays.
    """
    require_location_access(actor, location_id, MANAGE_PRODUCTS)

    def _op():
        order = lock_for_update(
            db.session.query(SaleOrder).filter_by(id=order_id, location_id=location_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found", details={"order_id": order_id})

        restock = _aggregate_requested([
            {"product_id": line.product_id, "quantity": int(line.quantity)} for line in order.lines
        ])
        products = (
            lock_for_update(
                db.session.query(Product).filter(
                    Product.location_id == location_id,
                    Product.id.in_(sorted(restock)),
                )
            )
            .order_by(Product.id)
            .all()
        )
        by_id = {p.id: p for p in products}

        missing = [pid for pid in restock if pid not in by_id]
        if missing:
            raise OrderRestockError(
                "Cannot restock order: product no longer exists",
                details={"order_id": order_id, "product_ids": missing},
            )

        overflow = [pid for pid, qty in restock.items() if int(by_id[pid].quantity) + qty > MAX_QUANTITY]
        if overflow:
            raise ConflictError(
                "Restock would exceed the maximum stock quantity",
                details={"order_id": order_id, "product_ids": overflow},
            )

        for pid, qty in restock.items():
            by_id[pid].quantity = int(by_id[pid].quantity) + qty

        db.session.delete(order)
        return restock

    restocked = atomic_write(_op)

    current_app.logger.info(
        "Order %s deleted from location %s, restocked %s by user id=%s",
        order_id, location_id, restocked, actor.id,
    )
