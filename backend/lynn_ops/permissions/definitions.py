# Overview: Location capability and actor role definitions.
# Each capability is defined as: (code, name, description)

# -- ROLES --

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"

ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPERADMIN)
ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPERADMIN})


# -- CAPABILITIES --
# Only meaningful for role=user; admins hold all of them on the locations
# they own and superadmins hold all of them everywhere.

MANAGE_PRODUCTS = "MANAGE_PRODUCTS"
MANAGE_CATEGORIES = "MANAGE_CATEGORIES"
MANAGE_SUPPLIERS = "MANAGE_SUPPLIERS"
IMPORT_STOCK = "IMPORT_STOCK"
EXPORT_STOCK = "EXPORT_STOCK"
MANAGE_EXPENSES = "MANAGE_EXPENSES"
VIEW_REPORTS = "VIEW_REPORTS"

CAPABILITY_DEFINITIONS = [
    (
        MANAGE_PRODUCTS,
        "Manage Products",
        "Create and edit products, create and delete sale orders",
    ),
    (
        MANAGE_CATEGORIES,
        "Manage Categories",
        "Create, rename and delete product categories",
    ),
    (
        MANAGE_SUPPLIERS,
        "Manage Suppliers",
        "Create, edit and delete suppliers",
    ),
    (
        IMPORT_STOCK,
        "Import Stock",
        "Record IMPORT transactions (incoming stock)",
    ),
    (
        EXPORT_STOCK,
        "Export Stock",
        "Record EXPORT transactions (outgoing stock)",
    ),
    (
        MANAGE_EXPENSES,
        "Manage Expenses",
        "Create, edit and delete location expenses",
    ),
    (
        VIEW_REPORTS,
        "View Reports",
        "View the location summary report",
    ),
]

# Transaction type -> capability required to record it
TRANSACTION_CAPABILITIES = {
    "IMPORT": IMPORT_STOCK,
    "EXPORT": EXPORT_STOCK,
}
