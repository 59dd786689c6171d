"""User roles and permissions."""

from enum import Enum


class Role(str, Enum):
    """User roles in the system."""

    OWNER = "owner"  # Platform owner, access to every location
    ADMIN = "admin"  # Location administrator
    COUNSELLOR = "counsellor"  # Handles admissions and batch changes
    ACCOUNTANT = "accountant"  # Fee and payment operations
    STAFF = "staff"  # Read-only access in their location


# Permissions by role
ROLE_PERMISSIONS = {
    Role.OWNER: [
        "students:read",
        "students:switch_batch",
        "fees:read",
    ],
    Role.ADMIN: [
        "students:read",
        "students:switch_batch",
        "fees:read",
    ],
    Role.COUNSELLOR: [
        "students:read",
        "students:switch_batch",
    ],
    Role.ACCOUNTANT: [
        "students:read",
        "fees:read",
    ],
    Role.STAFF: [
        "students:read",
    ],
}


def has_permission(role: Role, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, [])
