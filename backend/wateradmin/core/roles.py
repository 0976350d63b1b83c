"""User roles and the privileged-role predicate"""

from enum import Enum
from typing import Optional, Union


class UserRole(str, Enum):
    """User role enumeration"""
    ADMIN = "admin"
    STAFF = "staff"
    USER = "user"

    @classmethod
    def _missing_(cls, value):
        # Rows created before the rename still carry "moderator".
        if isinstance(value, str) and value.lower() == "moderator":
            return cls.STAFF
        return None

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    UserRole.ADMIN: "Administrator",
    UserRole.STAFF: "Staff",
    UserRole.USER: "User",
}

PRIVILEGED_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})


def parse_role(value: Union[str, UserRole, None]) -> Optional[UserRole]:
    """Return the role for a stored value, or None when it is unknown."""
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None


def is_privileged(role: Union[str, UserRole, None]) -> bool:
    """True for roles whose actions are recorded in the activity log."""
    return parse_role(role) in PRIVILEGED_ROLES
