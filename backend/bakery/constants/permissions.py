"""Role allow-lists, capabilities and the fine-grained permission catalog.

ROLE_RESOURCES is the single table consulted after module gating: within an
enabled module, a role may only touch the resources listed here. Roles with no
entry fall back to the fine-grained permission rows (resource + action).
Extend cautiously; a resource missing from a role's set is silently denied.
"""
from __future__ import annotations
from typing import Dict, FrozenSet, List, Tuple

from bakery.constants.modules import RESERVED_RESOURCES, SYSTEM_MODULES, Resource
from bakery.constants.roles import ASSIGNABLE_ROLES, Role

ACTIONS = ('read', 'write', 'read_write')

ROLE_RESOURCES: Dict[Role, FrozenSet[Resource]] = {
    Role.ADMIN: frozenset(r for r in Resource if r not in RESERVED_RESOURCES),
    Role.MANAGER: frozenset({
        Resource.DASHBOARD, Resource.PRODUCTS, Resource.INVENTORY, Resource.ORDERS,
        Resource.PRODUCTION, Resource.CUSTOMERS, Resource.PARTIES, Resource.ASSETS,
        Resource.EXPENSES, Resource.SALES, Resource.PURCHASES, Resource.REPORTS,
        Resource.STAFF, Resource.ATTENDANCE, Resource.SALARY, Resource.LEAVE_REQUESTS,
    }),
    Role.SUPERVISOR: frozenset({
        Resource.DASHBOARD, Resource.PRODUCTS, Resource.INVENTORY, Resource.ORDERS,
        Resource.PRODUCTION, Resource.CUSTOMERS, Resource.STAFF, Resource.ATTENDANCE,
    }),
    Role.MARKETER: frozenset({
        Resource.DASHBOARD, Resource.PRODUCTS, Resource.CUSTOMERS, Resource.ORDERS,
        Resource.SALES, Resource.REPORTS,
    }),
    Role.STAFF: frozenset({
        Resource.DASHBOARD, Resource.PRODUCTS, Resource.INVENTORY, Resource.ORDERS,
        Resource.PRODUCTION,
    }),
}

_ADMINS = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
_MANAGERS = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER})
_SUPER = frozenset({Role.SUPER_ADMIN})

# Capability -> roles holding it. Independent of module grants.
CAPABILITIES: Dict[str, FrozenSet[Role]] = {
    'manage_users': _ADMINS,
    'view_super_admin_users': _SUPER,
    'manage_staff': _MANAGERS,
    'view_finance': _MANAGERS,
    'manage_settings': _ADMINS,
    'manage_branches': _ADMINS,
    'access_audit_logs': _ADMINS,
    'view_system_logs': _SUPER,
    'access_developer_tools': _SUPER,
    'bypass_all_restrictions': _SUPER,
    'export_all_data': _ADMINS,
    'modify_system_config': _SUPER,
    'access_all_reports': _MANAGERS,
}

# Resources carrying fine-grained permission rows.
PERMISSION_RESOURCES: Tuple[str, ...] = (
    'dashboard', 'products', 'inventory', 'orders', 'production', 'customers',
    'parties', 'assets', 'expenses', 'sales', 'purchases', 'reports', 'settings',
    'users', 'staff', 'attendance', 'salary', 'leave_requests',
)

STAFF_WRITABLE = ('orders', 'customers', 'production')


def action_satisfies(granted: str, requested: str) -> bool:
    return granted == requested or granted == 'read_write'


def permission_name(resource: str, action: str) -> str:
    return f'{resource}_{action}'


def build_all_permissions() -> List[Tuple[str, str, str]]:
    """Return (name, resource, action) for every fine-grained permission."""
    return [
        (permission_name(res, act), res, act)
        for res in PERMISSION_RESOURCES
        for act in ACTIONS
    ]


def _default_names(role: Role) -> List[str]:
    out = []
    for name, res, act in build_all_permissions():
        if role is Role.SUPER_ADMIN:
            keep = True
        elif role is Role.ADMIN:
            keep = res != 'users'
        elif role is Role.MANAGER:
            keep = act == 'read_write' and res != 'users'
        elif role is Role.STAFF:
            keep = act == 'read' or (act == 'write' and res in STAFF_WRITABLE)
        else:
            keep = False
        if keep:
            out.append(name)
    return out


DEFAULT_ROLE_PERMISSIONS: Dict[Role, List[str]] = {role: _default_names(role) for role in Role}


def default_role_modules(role: Role) -> List[str]:
    """Initial module grants: every module owning a resource on the role's allow-list."""
    allowed = ROLE_RESOURCES.get(role, frozenset())
    return [
        m.id for m in SYSTEM_MODULES
        if m.required_role is None and any(r in allowed for r in m.resources)
    ]


DEFAULT_ROLE_MODULES: Dict[Role, List[str]] = {role: default_role_modules(role) for role in ASSIGNABLE_ROLES}
