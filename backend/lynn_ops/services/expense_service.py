# Overview: Service-layer operations for location expenses.

from __future__ import annotations

from flask import current_app

from ..models import Expense
from ..permissions import MANAGE_EXPENSES
from ..validation import ModelValidationPolicy, enforce_rules_expense
from . import registry
from .session_service import Actor


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "amount", "currency", "description", "notes",
        "image_urls", "file_urls",
    },
    required_on_create={"type", "amount"},
    list_fields={"image_urls", "file_urls"},
)


def list_expenses(actor: Actor, location_id: int) -> list[Expense]:
    return registry.list_scoped(actor, Expense, location_id, order_by=(Expense.created_at.desc(), Expense.id.desc()))


def create_expense(actor: Actor, location_id: int, payload: dict) -> Expense:
    expense = registry.create_scoped(
        actor, Expense, location_id, payload, EXPENSE_POLICY,
        capability=MANAGE_EXPENSES,
        rules=enforce_rules_expense,
        defaults={
            "currency": "VND",
            "image_urls": [],
            "file_urls": [],
            "created_by_id": actor.id,
        },
    )
    current_app.logger.info(
        "Expense %s (%s %s) recorded in location %s by user id=%s",
        expense.id, expense.amount, expense.currency, location_id, actor.id,
    )
    return expense


def update_expense(actor: Actor, location_id: int, expense_id: int, payload: dict) -> Expense:
    return registry.update_scoped(
        actor, Expense, location_id, expense_id, payload, EXPENSE_POLICY, "Expense",
        capability=MANAGE_EXPENSES,
        rules=lambda entity, patch: enforce_rules_expense(patch),
    )


def delete_expense(actor: Actor, location_id: int, expense_id: int) -> None:
    registry.delete_scoped(
        actor, Expense, location_id, expense_id, "Expense",
        capability=MANAGE_EXPENSES,
    )
