# Overview: Service-layer operations for location documents.

"""
Location documents are admin-only: the caller must be an admin or
superadmin AND have access to the location (an admin only reaches the
locations it owns). The file itself lives in object storage; only its
url and resource_type are kept here.
"""

from __future__ import annotations

from ..models import LocationDocument
from ..validation import ModelValidationPolicy, enforce_rules_document
from . import registry
from .permission_service import require_admin
from .session_service import Actor


DOCUMENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "url", "resource_type"},
    required_on_create={"name", "url"},
)


def list_documents(actor: Actor, location_id: int) -> list[LocationDocument]:
    require_admin(actor)
    return registry.list_scoped(
        actor, LocationDocument, location_id,
        order_by=(LocationDocument.uploaded_at.desc(), LocationDocument.id.desc()),
    )


def create_document(actor: Actor, location_id: int, payload: dict) -> LocationDocument:
    require_admin(actor)
    return registry.create_scoped(
        actor, LocationDocument, location_id, payload, DOCUMENT_POLICY,
        rules=enforce_rules_document,
        defaults={
            "resource_type": "raw",
            "uploaded_by_id": actor.id,
            "uploaded_by_name": actor.name,
        },
    )


def delete_document(actor: Actor, location_id: int, document_id: int) -> None:
    require_admin(actor)
    registry.delete_scoped(actor, LocationDocument, location_id, document_id, "Document")
