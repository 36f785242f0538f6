# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/lynn_ops/routes/admin.py
"""
Admin routes for accounts, location grants and locations.

Provides endpoints for:
- User management (role=user accounts the admin created; all for superadmin)
- Location access grants (whole-set PUT and per-location PUT/DELETE)
- Location management (list, create, get, update, delete)
- Capability catalogue

All endpoints require an admin or superadmin session.
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_role, get_json_object
from ..permissions import ROLE_ADMIN, ROLE_SUPERADMIN, CAPABILITY_DEFINITIONS
from ..services import auth_service, location_access_service, location_service

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

ADMINS = (ROLE_ADMIN, ROLE_SUPERADMIN)


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_role(*ADMINS)
def list_users():
    users = auth_service.list_managed_accounts(g.actor)
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_role(*ADMINS)
def create_user():
    """
    Create a role=user account owned by the caller.

    Request body: username, name, password (all required).
    """
    user = auth_service.create_managed_account(g.actor, get_json_object())
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_role(*ADMINS)
def get_user(user_id: int):
    user = auth_service.get_managed_account(g.actor, user_id)
    return jsonify({"user": user.to_dict()})


@admin_bp.put("/users/<int:user_id>")
@require_auth
@require_role(*ADMINS)
def update_user(user_id: int):
    """Update name and/or password. A new password revokes the user's sessions."""
    user = auth_service.update_managed_account(g.actor, user_id, get_json_object())
    return jsonify({"user": user.to_dict()})


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_role(*ADMINS)
def delete_user(user_id: int):
    auth_service.delete_managed_account(g.actor, user_id)
    return jsonify({"success": True})


# =============================================================================
# LOCATION ACCESS GRANTS
# =============================================================================

@admin_bp.get("/users/<int:user_id>/access")
@require_auth
@require_role(*ADMINS)
def get_user_access(user_id: int):
    grants = location_access_service.list_grants(g.actor, user_id)
    return jsonify({"access": [a.to_dict() for a in grants]})


@admin_bp.put("/users/<int:user_id>/access")
@require_auth
@require_role(*ADMINS)
def replace_user_access(user_id: int):
    """
    Replace the user's whole grant set.

    Request body: {"access": [{"location_id": int, "permissions": [str]}]}
    """
    data = get_json_object()
    grants = location_access_service.replace_grants(g.actor, user_id, data.get("access"))
    return jsonify({"access": [a.to_dict() for a in grants]})


@admin_bp.put("/users/<int:user_id>/access/<int:location_id>")
@require_auth
@require_role(*ADMINS)
def set_user_location_access(user_id: int, location_id: int):
    """
    Set the grant for one location, leaving the others alone.

    Request body: {"permissions": [str]}; an empty list is view-only.
    """
    data = get_json_object()
    grant = location_access_service.set_location_grant(g.actor, user_id, location_id, data.get("permissions"))
    return jsonify({"access": grant.to_dict()})


@admin_bp.delete("/users/<int:user_id>/access/<int:location_id>")
@require_auth
@require_role(*ADMINS)
def revoke_user_location_access(user_id: int, location_id: int):
    location_access_service.revoke_location_grant(g.actor, user_id, location_id)
    return jsonify({"success": True})


@admin_bp.get("/capabilities")
@require_auth
@require_role(*ADMINS)
def list_capabilities():
    return jsonify({
        "capabilities": [
            {"code": code, "name": name, "description": description}
            for code, name, description in CAPABILITY_DEFINITIONS
        ]
    })


# =============================================================================
# LOCATIONS
# =============================================================================

@admin_bp.get("/locations")
@require_auth
@require_role(*ADMINS)
def list_locations():
    locations = location_service.list_locations(g.actor)
    return jsonify({"locations": [loc.to_dict() for loc in locations]})


@admin_bp.post("/locations")
@require_auth
@require_role(*ADMINS)
def create_location():
    """
    Create a location owned by the caller.

    Request body: name (required), type, currency, description, address.
    """
    location = location_service.create_location(g.actor, get_json_object())
    return jsonify({"location": location.to_dict()}), 201


@admin_bp.get("/locations/<int:location_id>")
@require_auth
@require_role(*ADMINS)
def get_location(location_id: int):
    location = location_service.get_location(g.actor, location_id)
    return jsonify({"location": location.to_dict()})


@admin_bp.put("/locations/<int:location_id>")
@require_auth
@require_role(*ADMINS)
def update_location(location_id: int):
    location = location_service.update_location(g.actor, location_id, get_json_object())
    return jsonify({"location": location.to_dict()})


@admin_bp.delete("/locations/<int:location_id>")
@require_auth
@require_role(*ADMINS)
def delete_location(location_id: int):
    location_service.delete_location(g.actor, location_id)
    return jsonify({"success": True})
