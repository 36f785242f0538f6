# Overview: Flask API routes for location documents (admins only).

from flask import Blueprint, g

from ..decorators import require_auth, require_role, require_location_access, get_json_object
from ..permissions import ROLE_ADMIN, ROLE_SUPERADMIN
from ..services import document_service

documents_bp = Blueprint("documents", __name__, url_prefix="/api/locations/<int:location_id>/documents")


@documents_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPERADMIN)
@require_location_access()
def list_documents(location_id: int):
    documents = document_service.list_documents(g.actor, location_id)
    return {"documents": [d.to_dict() for d in documents]}


@documents_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPERADMIN)
@require_location_access()
def create_document(location_id: int):
    """
    Record a file already uploaded to object storage.

    Request body: name and url required; resource_type "image" or "raw"
    (default "raw").
    """
    document = document_service.create_document(g.actor, location_id, get_json_object())
    return {"document": document.to_dict()}, 201


@documents_bp.delete("/<int:document_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUPERADMIN)
@require_location_access()
def delete_document(location_id: int, document_id: int):
    document_service.delete_document(g.actor, location_id, document_id)
    return {"success": True}
