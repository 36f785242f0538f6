# Overview: Service-layer operations for the inventory transaction ledger.

"""
Transaction Ledger

Append-only IMPORT/EXPORT entries, each written in the same database
transaction as the matching Product.quantity change:

    IMPORT: quantity += n
    EXPORT: quantity -= n, refused when stock on hand < n

The check and the mutation run under the write lock (BEGIN IMMEDIATE on
SQLite, SELECT ... FOR UPDATE elsewhere), so concurrent EXPORTs cannot
both pass the check against the same stock.

Notes policy (EXPORT needs notes) is enforced by the caller, see
validation.enforce_rules_transaction_notes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from decimal import Decimal

from flask import current_app

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryTransaction, Product, Supplier
from ..permissions import TRANSACTION_CAPABILITIES
from ..validation import (
    MAX_QUANTITY,
    ModelValidationPolicy,
    TRANSACTION_TYPES,
    validate_payload,
    enforce_rules_transaction,
)
from .concurrency import atomic_write, lock_for_update
from .permission_service import require_location_access
from .session_service import Actor


TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "type", "quantity", "unit_price", "total_price",
        "supplier_id", "notes", "image_urls", "file_urls",
    },
    required_on_create={"product_id", "type", "quantity"},
    list_fields={"image_urls", "file_urls"},
)


@dataclass
class RecordedTransaction:
    transaction: InventoryTransaction
    product_quantity: int

    def to_dict(self) -> dict:
        data = self.transaction.to_dict()
        data["product_quantity"] = self.product_quantity
        return data


def required_capability(tx_type) -> str:
    """IMPORT -> IMPORT_STOCK, EXPORT -> EXPORT_STOCK; anything else is a 400."""
    if tx_type not in TRANSACTION_CAPABILITIES:
        raise ValidationError("type must be IMPORT or EXPORT")
    return TRANSACTION_CAPABILITIES[tx_type]


def parse_transaction(payload: dict) -> dict:
    """Validate a ledger payload without touching the database."""
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        payload = {**payload, "type": payload["type"].strip().upper()}

    patch = validate_payload(
        model=InventoryTransaction,
        payload=payload,
        policy=TRANSACTION_POLICY,
        partial=False,
    )
    enforce_rules_transaction(patch)

    if patch.get("unit_price") is not None and patch.get("total_price") is None:
        patch["total_price"] = (patch["unit_price"] * Decimal(patch["quantity"])).quantize(Decimal("0.01"))
    return patch


def record_transaction(
    actor: Actor,
    location_id: int,
    payload: dict,
    extra_rules: Callable[[dict], None] | None = None,
) -> RecordedTransaction:
    """
    Record one IMPORT/EXPORT and apply it to the product, atomically.

    extra_rules runs on the validated payload after the capability check;
    the HTTP layer passes its notes policy here.

    Raises:
        PermissionDeniedError: missing IMPORT_STOCK / EXPORT_STOCK
        ValidationError: malformed payload
        NotFoundError: product (or supplier) not in this location
        InsufficientStockError: EXPORT larger than stock on hand
        StorageError: the write could not be committed; nothing applied
    """
    tx_type = payload.get("type") if isinstance(payload, dict) else None
    if isinstance(tx_type, str):
        tx_type = tx_type.strip().upper()
    require_location_access(actor, location_id, required_capability(tx_type))

    patch = parse_transaction(payload)
    if extra_rules:
        extra_rules(patch)

    supplier_id = patch.get("supplier_id")
    if supplier_id is not None:
        exists = db.session.query(Supplier.id).filter_by(id=supplier_id, location_id=location_id).first()
        if not exists:
            raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=patch["product_id"], location_id=location_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found", details={"product_id": patch["product_id"]})

        quantity = patch["quantity"]
        on_hand = int(product.quantity or 0)

        if patch["type"] == "EXPORT":
            if on_hand < quantity:
                raise InsufficientStockError(
                    "Insufficient stock for export",
                    details={
                        "product_id": product.id,
                        "requested_quantity": quantity,
                        "on_hand": on_hand,
                    },
                )
            product.quantity = on_hand - quantity
        else:
            if on_hand + quantity > MAX_QUANTITY:
                raise ConflictError(
                    "Import would exceed the maximum stock quantity",
                    details={
                        "product_id": product.id,
                        "requested_quantity": quantity,
                        "on_hand": on_hand,
                        "max_quantity": MAX_QUANTITY,
                    },
                )
            product.quantity = on_hand + quantity

        tx = InventoryTransaction(
            location_id=location_id,
            product_id=product.id,
            type=patch["type"],
            quantity=quantity,
            unit_price=patch.get("unit_price"),
            total_price=patch.get("total_price"),
            supplier_id=supplier_id,
            notes=patch.get("notes"),
            image_urls=patch.get("image_urls") or [],
            file_urls=patch.get("file_urls") or [],
            created_by_id=actor.id,
        )
        db.session.add(tx)
        return RecordedTransaction(transaction=tx, product_quantity=int(product.quantity))

    recorded = atomic_write(_op)

    current_app.logger.info(
        "%s location=%s product=%s quantity=%s -> on_hand=%s by user id=%s",
        recorded.transaction.type,
        location_id,
        recorded.transaction.product_id,
        recorded.transaction.quantity,
        recorded.product_quantity,
        actor.id,
    )
    return recorded


def list_transactions(
    actor: Actor,
    location_id: int,
    product_id: int | None = None,
    tx_type: str | None = None,
) -> list[InventoryTransaction]:
    """Ledger entries of one location, newest first."""
    require_location_access(actor, location_id)

    query = db.session.query(InventoryTransaction).filter(InventoryTransaction.location_id == location_id)
    if product_id is not None:
        query = query.filter(InventoryTransaction.product_id == product_id)
    if tx_type is not None:
        if tx_type not in TRANSACTION_TYPES:
            raise ValidationError("type must be IMPORT or EXPORT")
        query = query.filter(InventoryTransaction.type == tx_type)

    return query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()).all()
