# Overview: Flask API routes for the current user's own view of the system.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import permission_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/me/locations")
@require_auth
def my_locations():
    """
    Locations the caller can open.

    Admins and superadmins get every location; users get their granted
    locations, each with its "permissions" list.
    """
    return jsonify({"locations": permission_service.accessible_locations(g.actor)}), 200
