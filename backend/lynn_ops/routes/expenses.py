# Overview: Flask API routes for location expenses.

from flask import Blueprint, g

from ..decorators import require_auth, require_location_access, get_json_object
from ..permissions import MANAGE_EXPENSES
from ..services import expense_service

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/locations/<int:location_id>/expenses")


@expenses_bp.get("")
@require_auth
@require_location_access()
def list_expenses(location_id: int):
    expenses = expense_service.list_expenses(g.actor, location_id)
    return {"expenses": [e.to_dict() for e in expenses]}


@expenses_bp.post("")
@require_auth
@require_location_access(MANAGE_EXPENSES)
def create_expense(location_id: int):
    """
    Request body: type and amount required; currency defaults to VND;
    description, notes, image_urls, file_urls optional.
    """
    expense = expense_service.create_expense(g.actor, location_id, get_json_object())
    return {"expense": expense.to_dict()}, 201


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_location_access(MANAGE_EXPENSES)
def update_expense(location_id: int, expense_id: int):
    expense = expense_service.update_expense(
        g.actor, location_id, expense_id, get_json_object()
    )
    return {"expense": expense.to_dict()}


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_location_access(MANAGE_EXPENSES)
def delete_expense(location_id: int, expense_id: int):
    expense_service.delete_expense(g.actor, location_id, expense_id)
    return {"success": True}
