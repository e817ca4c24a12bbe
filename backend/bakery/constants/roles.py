from __future__ import annotations
from enum import Enum
from typing import Any, Optional, Tuple


class Role(str, Enum):
    SUPER_ADMIN = 'super_admin'
    ADMIN = 'admin'
    MANAGER = 'manager'
    SUPERVISOR = 'supervisor'
    MARKETER = 'marketer'
    STAFF = 'staff'


# super_admin is implicitly all-access; grants are never stored for it.
ASSIGNABLE_ROLES: Tuple[Role, ...] = (
    Role.ADMIN,
    Role.MANAGER,
    Role.SUPERVISOR,
    Role.MARKETER,
    Role.STAFF,
)

ROLE_DISPLAY_NAMES = {
    Role.SUPER_ADMIN: 'Super Admin',
    Role.ADMIN: 'Administrator',
    Role.MANAGER: 'Manager',
    Role.SUPERVISOR: 'Supervisor',
    Role.MARKETER: 'Marketer',
    Role.STAFF: 'Staff',
}

ROLE_DESCRIPTIONS = {
    Role.ADMIN: 'Full system access except super admin features',
    Role.MANAGER: 'Departmental management and reporting access',
    Role.SUPERVISOR: 'Team supervision and operational oversight',
    Role.MARKETER: 'Sales, customer management, and marketing tools',
    Role.STAFF: 'Basic operational access for daily tasks',
}


def parse_role(value: Any) -> Optional[Role]:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (ValueError, TypeError):
        return None


def role_display_name(value: Any) -> str:
    role = parse_role(value)
    return ROLE_DISPLAY_NAMES.get(role, 'Unknown Role') if role else 'Unknown Role'
