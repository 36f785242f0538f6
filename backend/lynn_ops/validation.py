from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from lynn_ops.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported for routes)


# Upper bound for any money value: Numeric(14, 2) holds 12 integer digits
MAX_MONEY = Decimal("999999999999.99")

# Quantities are BigInteger; keep inputs inside a signed 64-bit range
MAX_QUANTITY = 2 ** 63 - 1

TRANSACTION_TYPES = ("IMPORT", "EXPORT")
PRODUCT_STATUSES = ("available", "inactive")
RESOURCE_TYPES = ("image", "raw")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - list_fields: JSON columns that must hold a list of strings
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    list_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_integer(key: str, value: Any) -> int:
    """Strict integer parsing: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{key} must be an integer")

    if abs(result) > MAX_QUANTITY:
        raise ValidationError(f"{key} is out of range")
    return result


def parse_money(key: str, value: Any) -> Decimal:
    """Accepts JSON numbers or numeric strings; returns a Decimal rounded to cents."""
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if abs(amount) > MAX_MONEY:
        raise ValidationError(f"{key} exceeds the maximum amount")
    return amount.quantize(Decimal("0.01"))


def parse_string_list(key: str, value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list of strings")
    cleaned = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{key} must be a list of non-empty strings")
        cleaned.append(item.strip())
    return cleaned


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers (BigInteger included)
    if isinstance(coltype, Integer):
        return parse_integer(col.key, value)

    # Money
    if isinstance(coltype, Numeric):
        return parse_money(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list, bool)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    cols = _columns_by_key(model)
    list_fields = policy.list_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling; list columns treat null as empty
        if raw is None:
            if k in list_fields:
                patch[k] = []
                continue
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        if k in list_fields or isinstance(col.type, JSON):
            patch[k] = parse_string_list(k, raw)
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Optional strings: blank means unset
        if isinstance(col.type, (String, Text)) and col.nullable and val == "":
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _require_non_negative_money(patch: dict, *keys: str) -> None:
    for key in keys:
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.

    quantity is deliberately unchecked: the update override may set any
    integer, negative included.
    """
    _require_non_negative_money(patch, "price", "sale_price")
    if "status" in patch and patch["status"] not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")


def enforce_rules_transaction(patch: dict) -> None:
    # Every ledger entry moves a positive amount; direction comes from type
    tx_type = patch.get("type")
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError("type must be IMPORT or EXPORT")

    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("quantity must be a positive integer")

    _require_non_negative_money(patch, "unit_price", "total_price")


def enforce_rules_transaction_notes(patch: dict) -> None:
    """Outgoing stock must say where it went."""
    if patch.get("type") == "EXPORT":
        notes = patch.get("notes")
        if notes is None or str(notes).strip() == "":
            raise ValidationError("notes are required for EXPORT transactions")


def parse_order_items(items: Any) -> list[dict]:
    """
    Normalize sale order items to [{"product_id", "quantity", "sale_price"}].

    Raises ValidationError naming the offending line.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if item.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")
        if item.get("sale_price") is None:
            raise ValidationError(f"items[{index}].sale_price is required")

        product_id = parse_integer(f"items[{index}].product_id", item["product_id"])
        quantity = parse_integer(f"items[{index}].quantity", item["quantity"])
        sale_price = parse_money(f"items[{index}].sale_price", item["sale_price"])

        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        if sale_price < 0:
            raise ValidationError(f"items[{index}].sale_price must be >= 0")

        parsed.append({"product_id": product_id, "quantity": quantity, "sale_price": sale_price})
    return parsed


def enforce_rules_expense(patch: dict) -> None:
    if "amount" in patch and patch["amount"] is not None and patch["amount"] < 0:
        raise ValidationError("amount must be >= 0")


def enforce_rules_guest(patch: dict) -> None:
    for key in ("adults", "children"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
    check_in = patch.get("check_in")
    check_out = patch.get("check_out")
    if check_in and check_out and check_out < check_in:
        raise ValidationError("check_out must not be before check_in")


def enforce_rules_document(patch: dict) -> None:
    if "resource_type" in patch and patch["resource_type"] not in RESOURCE_TYPES:
        raise ValidationError(f"resource_type must be one of: {', '.join(RESOURCE_TYPES)}")
