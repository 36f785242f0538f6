# Overview: Flask API routes for the inventory transaction ledger.

"""
Ledger routes, scoped to one location.

- GET  lists entries (view access), optional ?product_id= and ?type=
- POST records an IMPORT (IMPORT_STOCK) or EXPORT (EXPORT_STOCK) and
  applies it to the product atomically. EXPORT entries must carry notes.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..services import inventory_service
from ..validation import enforce_rules_transaction_notes

transactions_bp = Blueprint(
    "transactions", __name__, url_prefix="/api/locations/<int:location_id>/transactions"
)


@transactions_bp.get("")
@require_auth
@require_location_access()
def list_transactions(location_id: int):
    product_id = request.args.get("product_id", type=int)
    tx_type = request.args.get("type")
    transactions = inventory_service.list_transactions(
        g.actor,
        location_id,
        product_id=product_id,
        tx_type=tx_type.strip().upper() if tx_type else None,
    )
    return {"transactions": [t.to_dict() for t in transactions]}


@transactions_bp.post("")
@require_auth
@require_location_access()
def record_transaction(location_id: int):
    """
    Request body:
    {
        "product_id": int,        // required
        "type": "IMPORT|EXPORT",  // required
        "quantity": int,          // required, > 0
        "unit_price": number,     // optional
        "total_price": number,    // optional, defaults to unit_price * quantity
        "supplier_id": int,       // optional
        "notes": str,             // required for EXPORT
        "image_urls": [str],
        "file_urls": [str]
    }

    Response carries the entry plus the product's new quantity.
    """
    payload = get_json_object()
    recorded = inventory_service.record_transaction(
        g.actor,
        location_id,
        payload,
        extra_rules=enforce_rules_transaction_notes,
    )
    return {
        "transaction": recorded.to_dict(),
        "product_quantity": recorded.product_quantity,
    }, 201
