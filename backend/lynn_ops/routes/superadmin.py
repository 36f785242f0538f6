# Overview: Flask API routes for superadmin-only account management.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_role, get_json_object
from ..permissions import ROLE_ADMIN, ROLE_SUPERADMIN
from ..services import auth_service

superadmin_bp = Blueprint("superadmin", __name__, url_prefix="/api/superadmin")


@superadmin_bp.get("/admins")
@require_auth
@require_role(ROLE_SUPERADMIN)
def list_admins():
    admins = auth_service.list_managed_accounts(g.actor, ROLE_ADMIN)
    return jsonify({"admins": [a.to_dict() for a in admins], "count": len(admins)})


@superadmin_bp.post("/admins")
@require_auth
@require_role(ROLE_SUPERADMIN)
def create_admin():
    admin = auth_service.create_managed_account(g.actor, get_json_object(), ROLE_ADMIN)
    return jsonify({"admin": admin.to_dict()}), 201


@superadmin_bp.get("/admins/<int:admin_id>")
@require_auth
@require_role(ROLE_SUPERADMIN)
def get_admin(admin_id: int):
    admin = auth_service.get_managed_account(g.actor, admin_id, ROLE_ADMIN)
    return jsonify({"admin": admin.to_dict()})


@superadmin_bp.put("/admins/<int:admin_id>")
@require_auth
@require_role(ROLE_SUPERADMIN)
def update_admin(admin_id: int):
    admin = auth_service.update_managed_account(
        g.actor, admin_id, get_json_object(), ROLE_ADMIN
    )
    return jsonify({"admin": admin.to_dict()})


@superadmin_bp.delete("/admins/<int:admin_id>")
@require_auth
@require_role(ROLE_SUPERADMIN)
def delete_admin(admin_id: int):
    """Refused (409) while the admin still owns locations."""
    auth_service.delete_managed_account(g.actor, admin_id, ROLE_ADMIN)
    return jsonify({"success": True})
