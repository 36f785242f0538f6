# Overview: Shared CRUD for the location-scoped registries (categories, suppliers, customers, ...).

"""
Every registry row carries location_id. These helpers keep the rules in one
place:

- reads need view access to the location
- writes need the registry's capability (None means view access is enough)
- a child id that belongs to another location is NotFound, never Forbidden
"""

from __future__ import annotations

from typing import Callable

from ..errors import NotFoundError
from ..extensions import db
from ..validation import ModelValidationPolicy, validate_payload
from .permission_service import require_location_access
from .session_service import Actor


def get_scoped_or_404(model, location_id: int, entity_id: int, label: str):
    entity = db.session.query(model).filter_by(id=entity_id, location_id=location_id).first()
    if not entity:
        raise NotFoundError(f"{label} not found", details={"id": entity_id})
    return entity


def list_scoped(actor: Actor, model, location_id: int, order_by=None) -> list:
    require_location_access(actor, location_id)
    query = db.session.query(model).filter(model.location_id == location_id)
    if order_by is not None:
        query = query.order_by(*order_by)
    else:
        query = query.order_by(model.id.desc())
    return query.all()


def create_scoped(
    actor: Actor,
    model,
    location_id: int,
    payload: dict,
    policy: ModelValidationPolicy,
    capability: str | None = None,
    rules: Callable[[dict], None] | None = None,
    defaults: dict | None = None,
):
    require_location_access(actor, location_id, capability)

    patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
    if rules:
        rules(patch)

    # An explicit null never overrides a default
    values = dict(defaults or {})
    for key, value in patch.items():
        if value is None and key in values:
            continue
        values[key] = value
    entity = model(location_id=location_id, **values)

    db.session.add(entity)
    db.session.commit()
    return entity


def update_scoped(
    actor: Actor,
    model,
    location_id: int,
    entity_id: int,
    payload: dict,
    policy: ModelValidationPolicy,
    label: str,
    capability: str | None = None,
    rules: Callable[[object, dict], None] | None = None,
):
    require_location_access(actor, location_id, capability)
    entity = get_scoped_or_404(model, location_id, entity_id, label)

    patch = validate_payload(model=model, payload=payload, policy=policy, partial=True)
    if rules:
        rules(entity, patch)

    for key, value in patch.items():
        setattr(entity, key, value)

    db.session.commit()
    return entity


def delete_scoped(
    actor: Actor,
    model,
    location_id: int,
    entity_id: int,
    label: str,
    capability: str | None = None,
    before_delete: Callable[[object], None] | None = None,
) -> None:
    require_location_access(actor, location_id, capability)
    entity = get_scoped_or_404(model, location_id, entity_id, label)

    if before_delete:
        before_delete(entity)

    db.session.delete(entity)
    db.session.commit()
