# Overview: Capability system package.
# Re-exports all public APIs so callers import from lynn_ops.permissions.

from .definitions import (
    ROLE_USER,
    ROLE_ADMIN,
    ROLE_SUPERADMIN,
    ROLES,
    ADMIN_ROLES,
    MANAGE_PRODUCTS,
    MANAGE_CATEGORIES,
    MANAGE_SUPPLIERS,
    IMPORT_STOCK,
    EXPORT_STOCK,
    MANAGE_EXPENSES,
    VIEW_REPORTS,
    CAPABILITY_DEFINITIONS,
    TRANSACTION_CAPABILITIES,
)
from .helpers import (
    get_all_capability_codes,
    get_capability_definition,
    validate_capability_code,
)

__all__ = [
    "ROLE_USER",
    "ROLE_ADMIN",
    "ROLE_SUPERADMIN",
    "ROLES",
    "ADMIN_ROLES",
    "MANAGE_PRODUCTS",
    "MANAGE_CATEGORIES",
    "MANAGE_SUPPLIERS",
    "IMPORT_STOCK",
    "EXPORT_STOCK",
    "MANAGE_EXPENSES",
    "VIEW_REPORTS",
    "CAPABILITY_DEFINITIONS",
    "TRANSACTION_CAPABILITIES",
    "get_all_capability_codes",
    "get_capability_definition",
    "validate_capability_code",
]
