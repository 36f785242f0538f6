# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from lynn_ops.errors import ValidationError
from lynn_ops.extensions import db
from lynn_ops.models import Expense, InventoryTransaction, Product, SaleOrder
from lynn_ops.permissions import VIEW_REPORTS
from lynn_ops.time_utils import parse_iso_datetime, to_utc_z
from .location_service import get_location_or_404
from .permission_service import require_location_access
from .session_service import Actor


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and end_dt < start_dt:
        raise ValidationError("end must not be before start")
    return start_dt, end_dt


def _in_range(query, column, start_dt, end_dt):
    if start_dt:
        query = query.filter(column >= start_dt)
    if end_dt:
        query = query.filter(column <= end_dt)
    return query


def _num(value) -> float:
    return float(value or 0)


def location_summary(
    actor: Actor,
    location_id: int,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    """
    One-screen summary for a location.

    Stock figures are current; ledger, order and expense figures honour
    the optional [start, end] range.
    """
    require_location_access(actor, location_id, VIEW_REPORTS)
    location = get_location_or_404(location_id)
    start_dt, end_dt = _parse_range(start, end)

    stock = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.quantity), 0),
        func.coalesce(func.sum(Product.quantity * func.coalesce(Product.price, 0)), 0),
    ).filter(Product.location_id == location_id).one()

    ledger_query = db.session.query(
        InventoryTransaction.type,
        func.count(InventoryTransaction.id),
        func.coalesce(func.sum(InventoryTransaction.quantity), 0),
        func.coalesce(func.sum(InventoryTransaction.total_price), 0),
    ).filter(InventoryTransaction.location_id == location_id)
    ledger_query = _in_range(ledger_query, InventoryTransaction.created_at, start_dt, end_dt)
    ledger = {
        tx_type: {"count": count, "quantity": int(qty), "value": _num(value)}
        for tx_type, count, qty, value in ledger_query.group_by(InventoryTransaction.type).all()
    }
    empty = {"count": 0, "quantity": 0, "value": 0.0}

    orders_query = db.session.query(
        func.count(SaleOrder.id),
        func.coalesce(func.sum(SaleOrder.total_amount), 0),
    ).filter(SaleOrder.location_id == location_id)
    order_count, revenue = _in_range(orders_query, SaleOrder.created_at, start_dt, end_dt).one()

    expense_query = db.session.query(
        func.count(Expense.id),
        func.coalesce(func.sum(Expense.amount), 0),
    ).filter(Expense.location_id == location_id)
    expense_count, expense_total = _in_range(expense_query, Expense.created_at, start_dt, end_dt).one()

    return {
        "location_id": location.id,
        "currency": location.currency,
        "range": {"start": to_utc_z(start_dt), "end": to_utc_z(end_dt)},
        "stock": {
            "product_count": stock[0],
            "total_quantity": int(stock[1]),
            "stock_value": _num(stock[2]),
        },
        "imports": ledger.get("IMPORT", dict(empty)),
        "exports": ledger.get("EXPORT", dict(empty)),
        "orders": {"count": order_count, "revenue": _num(revenue)},
        "expenses": {"count": expense_count, "total": _num(expense_total)},
    }
