"""
User roles enumeration.

Roles are issued by the auth collaborator and carried in the JWT.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: System-level access
        STORE_MANAGER: Branch manager (clearances, shift close)
        CASHIER: Point-of-sale and A/R collection
        RIDER: Delivery rider (no ledger access)
    """
    ADMIN = "ADMIN"
    STORE_MANAGER = "STORE_MANAGER"
    CASHIER = "CASHIER"
    RIDER = "RIDER"
