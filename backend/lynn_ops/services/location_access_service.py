# Overview: Service-layer operations for location access grants; encapsulates business logic and database work.

"""
Location Access Store

One UserLocationAccess row per (user, location), role=user targets only.

Two write styles:
- replace_grants: the whole set in one call (delete all, recreate)
- set_location_grant / revoke_location_grant: keyed by location, leaving
  the user's other grants untouched

An admin may only manage users it created and only grant on locations it
owns. Superadmins are unrestricted.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Location, UserLocationAccess
from ..permissions import ROLE_ADMIN, ROLE_USER, validate_capability_code
from ..validation import parse_integer
from .auth_service import get_managed_account
from .session_service import Actor


def normalize_permissions(permissions) -> list[str]:
    """Validate capability codes; order is kept, duplicates dropped."""
    if permissions is None:
        return []
    if not isinstance(permissions, list):
        raise ValidationError("permissions must be a list of capability codes")

    cleaned: list[str] = []
    for code in permissions:
        if not isinstance(code, str) or not validate_capability_code(code):
            raise ValidationError(f"Unknown capability: {code}", details={"capability": code})
        if code not in cleaned:
            cleaned.append(code)
    return cleaned


def _grantable_location(actor: Actor, location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if not location:
        raise NotFoundError("Location not found", details={"location_id": location_id})
    if actor.role == ROLE_ADMIN and location.admin_id != actor.id:
        raise PermissionDeniedError(
            "You can only grant access to locations you own",
            details={"location_id": location_id},
        )
    return location


def list_grants(actor: Actor, user_id: int) -> list[UserLocationAccess]:
    target = get_managed_account(actor, user_id, ROLE_USER)
    return (
        db.session.query(UserLocationAccess)
        .filter_by(user_id=target.id)
        .order_by(UserLocationAccess.location_id)
        .all()
    )


def _parse_grant_list(access) -> list[tuple[int, list[str]]]:
    if not isinstance(access, list):
        raise ValidationError("access must be an array")

    parsed: list[tuple[int, list[str]]] = []
    seen: set[int] = set()
    for index, entry in enumerate(access):
        if not isinstance(entry, dict) or entry.get("location_id") is None:
            raise ValidationError(f"access[{index}].location_id is required")
        location_id = parse_integer(f"access[{index}].location_id", entry["location_id"])
        if location_id in seen:
            raise ValidationError(
                "Duplicate location in access list",
                details={"location_id": location_id},
            )
        seen.add(location_id)
        parsed.append((location_id, normalize_permissions(entry.get("permissions"))))
    return parsed


def replace_grants(actor: Actor, user_id: int, access) -> list[UserLocationAccess]:
    """
    Overwrite the user's whole grant set.

    Everything is validated first; the delete and the recreate then happen
    in one commit.
    """
    target = get_managed_account(actor, user_id, ROLE_USER)
    parsed = _parse_grant_list(access)
    for location_id, _ in parsed:
        _grantable_location(actor, location_id)

    db.session.query(UserLocationAccess).filter_by(user_id=target.id).delete(synchronize_session=False)
    for location_id, permissions in parsed:
        db.session.add(UserLocationAccess(
            user_id=target.id,
            location_id=location_id,
            permissions=permissions,
            granted_by_id=actor.id,
        ))
    db.session.commit()

    current_app.logger.info(
        "Replaced grants for user id=%s: %s location(s) (by user id=%s)", target.id, len(parsed), actor.id
    )
    return list_grants(actor, user_id)


def set_location_grant(actor: Actor, user_id: int, location_id: int, permissions) -> UserLocationAccess:
    """
    Upsert the grant for one location.

    An empty permission list keeps a view-only grant.
    """
    target = get_managed_account(actor, user_id, ROLE_USER)
    _grantable_location(actor, location_id)
    cleaned = normalize_permissions(permissions)

    grant = db.session.query(UserLocationAccess).filter_by(
        user_id=target.id,
        location_id=location_id,
    ).first()
    if grant is None:
        grant = UserLocationAccess(user_id=target.id, location_id=location_id)
        db.session.add(grant)

    grant.permissions = cleaned
    grant.granted_by_id = actor.id
    db.session.commit()

    current_app.logger.info(
        "Set grant user id=%s location id=%s permissions=%s (by user id=%s)",
        target.id, location_id, cleaned, actor.id,
    )
    return grant


def revoke_location_grant(actor: Actor, user_id: int, location_id: int) -> None:
    target = get_managed_account(actor, user_id, ROLE_USER)
    _grantable_location(actor, location_id)

    grant = db.session.query(UserLocationAccess).filter_by(
        user_id=target.id,
        location_id=location_id,
    ).first()
    if grant is None:
        raise NotFoundError("Grant not found")

    db.session.delete(grant)
    db.session.commit()

    current_app.logger.info(
        "Revoked grant user id=%s location id=%s (by user id=%s)", target.id, location_id, actor.id
    )
