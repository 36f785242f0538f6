# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Location Permission Evaluation and Security Event Logging

Three tiers decide whether an actor may touch a location:
- superadmin: every location, every capability, no lookup
- admin: exactly the locations it owns (Location.admin_id); capability
  arguments are ignored there
- user: only through a UserLocationAccess row. Without a capability any
  row (even one with an empty list) is view access; with one, the code
  must be in the row's permission list.

DESIGN PRINCIPLES:
- Fail closed: unknown actors, roles and locations are denied
- Log denials only: grants are not logged
- Pure evaluation: has_location_access never writes; require_location_access
  records the denial and raises
"""

from flask import current_app, has_request_context, request

from ..errors import PermissionDeniedError
from ..extensions import db
from ..models import Location, SecurityEvent, UserLocationAccess
from ..permissions import ROLE_ADMIN, ROLE_SUPERADMIN, ROLE_USER, ADMIN_ROLES
from lynn_ops.time_utils import utcnow
from .session_service import Actor


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    location_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    Immutable audit log for security monitoring. Commits immediately so the
    record survives a rollback of the request's own work.

    event_type examples:
    - LOCATION_ACCESS_DENIED
    - ROLE_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    """
    if has_request_context():
        resource = resource or request.path
        ip_address = ip_address or request.remote_addr
        user_agent = user_agent or request.headers.get("User-Agent")

    event = SecurityEvent(
        user_id=user_id,
        location_id=location_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def is_admin(actor: Actor | None) -> bool:
    """admin or superadmin."""
    return actor is not None and actor.role in ADMIN_ROLES


def get_grant(user_id: int, location_id: int) -> UserLocationAccess | None:
    return db.session.query(UserLocationAccess).filter_by(
        user_id=user_id,
        location_id=location_id,
    ).first()


def has_location_access(actor: Actor | None, location_id: int, capability: str | None = None) -> bool:
    """
    Decide whether actor may act on location_id.

    Returns True/False only; never raises for a denial and never writes.
    """
    if actor is None:
        return False

    if actor.role == ROLE_SUPERADMIN:
        return True

    if actor.role == ROLE_ADMIN:
        location = db.session.get(Location, location_id)
        return location is not None and location.admin_id == actor.id

    if actor.role == ROLE_USER:
        grant = get_grant(actor.id, location_id)
        if grant is None:
            return False
        if capability is None:
            return True
        return capability in (grant.permissions or [])

    return False


def require_location_access(actor: Actor, location_id: int, capability: str | None = None) -> None:
    """
    Enforce has_location_access.

    Raises PermissionDeniedError and records a LOCATION_ACCESS_DENIED event
    on denial.
    """
    if has_location_access(actor, location_id, capability):
        return

    reason = f"Missing {capability}" if capability else "No access to location"
    current_app.logger.warning(
        "Location access denied: user_id=%s role=%s location_id=%s capability=%s",
        actor.id if actor else None,
        actor.role if actor else None,
        location_id,
        capability,
    )
    log_security_event(
        user_id=actor.id if actor else None,
        event_type="LOCATION_ACCESS_DENIED",
        success=False,
        action=capability or "VIEW",
        reason=reason,
        location_id=location_id,
    )
    raise PermissionDeniedError(
        "Forbidden",
        details={"location_id": location_id, "required_capability": capability},
    )


def require_admin(actor: Actor) -> None:
    """Admin-only operations (product delete, documents, account management)."""
    if is_admin(actor):
        return
    log_security_event(
        user_id=actor.id if actor else None,
        event_type="ROLE_DENIED",
        success=False,
        action="ADMIN",
        reason="Admin or superadmin role required",
    )
    raise PermissionDeniedError("Admin access required")


def accessible_locations(actor: Actor) -> list[dict]:
    """
    Locations the actor can open, newest first.

    Admins and superadmins list every location. Users get their granted
    locations, each carrying its permission list.
    """
    if actor.role in ADMIN_ROLES:
        locations = db.session.query(Location).order_by(Location.created_at.desc(), Location.id.desc()).all()
        return [loc.to_dict() for loc in locations]

    grants = db.session.query(UserLocationAccess).filter_by(user_id=actor.id).all()
    permissions_by_location = {g.location_id: list(g.permissions or []) for g in grants}
    if not permissions_by_location:
        return []

    locations = (
        db.session.query(Location)
        .filter(Location.id.in_(permissions_by_location.keys()))
        .order_by(Location.created_at.desc(), Location.id.desc())
        .all()
    )
    result = []
    for loc in locations:
        data = loc.to_dict()
        data["permissions"] = permissions_by_location.get(loc.id, [])
        result.append(data)
    return result
