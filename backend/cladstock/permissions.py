"""
Permission codes and role mappings

WHY: Centralized permission definitions keep route gating consistent.

DESIGN PRINCIPLES:
- Permissions are coarse (one per area of the API)
- Roles are fixed; there is no per-user override
- Admin has all permissions
"""

from .catalog import ROLE_ADMIN, ROLE_COUNTER, ROLE_USER


class PermissionCategory:
    INVENTORY = "INVENTORY"
    COUNTS = "COUNTS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"


# (code, name, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_INVENTORY", "View Inventory", "View items, stats and transaction history", PermissionCategory.INVENTORY),
    ("RECORD_TRANSACTIONS", "Record Transactions", "Pull, return and transfer stock", PermissionCategory.INVENTORY),
    ("MANAGE_ITEMS", "Manage Items", "Create, edit and delete items", PermissionCategory.INVENTORY),
    ("IMPORT_EXPORT", "Import/Export", "Import and export spreadsheets", PermissionCategory.INVENTORY),
    ("PRINT_LABELS", "Print Labels", "Generate QR labels", PermissionCategory.INVENTORY),
    ("RECORD_COUNTS", "Record Counts", "Record physical counts", PermissionCategory.COUNTS),
    ("MANAGE_COUNT_SESSIONS", "Manage Count Sessions", "Start and complete count sessions", PermissionCategory.COUNTS),
    ("USE_ASSISTANT", "Use Assistant", "AI counting and inventory questions", PermissionCategory.INVENTORY),
    ("MANAGE_USERS", "Manage Users", "Create, edit and deactivate users", PermissionCategory.USERS),
    ("SYSTEM_ADMIN", "System Admin", "Reset all data", PermissionCategory.SYSTEM),
]

ALL_PERMISSIONS = frozenset(code for code, _, _, _ in PERMISSION_DEFINITIONS)

ROLE_PERMISSIONS = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_COUNTER: frozenset({
        "VIEW_INVENTORY",
        "RECORD_TRANSACTIONS",
        "RECORD_COUNTS",
        "MANAGE_COUNT_SESSIONS",
        "USE_ASSISTANT",
    }),
    ROLE_USER: frozenset({
        "VIEW_INVENTORY",
        "RECORD_TRANSACTIONS",
        "USE_ASSISTANT",
    }),
}


def get_role_permissions(role: str) -> frozenset:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(user, permission_code: str) -> bool:
    return permission_code in get_role_permissions(user.role)
