"""Static catalog of feature modules used for role-based module gating.

A module bundles a set of route prefixes and resource keys. Granting a module
to a role is the coarse switch; the per-role resource allow-lists in
``bakery.constants.permissions`` are the fine switch inside an enabled module.

The catalog is defined once at import time and never mutated. Lookups resolve
by declaration order: when two modules match the same route, the one declared
first wins. Keep that in mind before adding overlapping prefixes.
"""
from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from bakery.constants.roles import Role


class Category(str, Enum):
    CORE = 'core'
    FINANCE = 'finance'
    INVENTORY = 'inventory'
    CRM = 'crm'
    OPERATIONS = 'operations'
    HR = 'hr'
    ANALYTICS = 'analytics'
    ADMINISTRATION = 'administration'


class Resource(str, Enum):
    DASHBOARD = 'dashboard'
    SALES = 'sales'
    ORDERS = 'orders'
    INVENTORY = 'inventory'
    PRODUCTS = 'products'
    PURCHASES = 'purchases'
    CUSTOMERS = 'customers'
    PARTIES = 'parties'
    PRODUCTION = 'production'
    STAFF = 'staff'
    ATTENDANCE = 'attendance'
    SALARY = 'salary'
    LEAVE_REQUESTS = 'leave_requests'
    EXPENSES = 'expenses'
    ASSETS = 'assets'
    SALES_RETURNS = 'sales_returns'
    REPORTS = 'reports'
    USERS = 'users'
    ROLES = 'roles'
    AUDIT = 'audit'
    SECURITY = 'security'
    SETTINGS = 'settings'
    SYSTEM = 'system'
    BRANCHES = 'branches'
    SUPER_ADMIN = 'super_admin'


# Resources intentionally owned by no module (super admin only).
RESERVED_RESOURCES = frozenset({Resource.SUPER_ADMIN})

CATEGORY_LABELS = {
    Category.CORE: ('Core', 'Dashboard and essentials'),
    Category.FINANCE: ('Finance', 'Sales, purchases and expenses'),
    Category.INVENTORY: ('Inventory', 'Stock and product control'),
    Category.CRM: ('Customers', 'Customer and party relations'),
    Category.OPERATIONS: ('Operations', 'Production and kitchen workflow'),
    Category.HR: ('HR & Payroll', 'Staff, attendance and salaries'),
    Category.ANALYTICS: ('Analytics', 'Reports and business insight'),
    Category.ADMINISTRATION: ('Administration', 'Users, audit and system settings'),
}


@dataclass(frozen=True)
class SystemModule:
    id: str
    name: str
    description: str
    category: Category
    routes: Tuple[str, ...]
    resources: Tuple[Resource, ...]
    required_role: Optional[Role] = None

    def matches_route(self, route: str) -> bool:
        return any(route == prefix or route.startswith(prefix + '/') for prefix in self.routes)


SYSTEM_MODULES: Tuple[SystemModule, ...] = (
    SystemModule(
        id='dashboard',
        name='Dashboard',
        description='Main dashboard and overview',
        category=Category.CORE,
        routes=('/', '/dashboard'),
        resources=(Resource.DASHBOARD,),
    ),
    SystemModule(
        id='sales_management',
        name='Sales Management',
        description='Sales, orders, and customer transactions',
        category=Category.FINANCE,
        routes=('/sales', '/orders', '/day-book', '/transactions'),
        resources=(Resource.SALES, Resource.ORDERS),
    ),
    SystemModule(
        id='inventory_management',
        name='Inventory Management',
        description='Stock, products, and inventory control',
        category=Category.INVENTORY,
        routes=('/inventory', '/stock', '/products', '/ingredients'),
        resources=(Resource.INVENTORY, Resource.PRODUCTS),
    ),
    SystemModule(
        id='purchase_management',
        name='Purchase Management',
        description='Purchases and supplier management',
        category=Category.FINANCE,
        routes=('/purchases', '/purchase-returns'),
        resources=(Resource.PURCHASES,),
    ),
    SystemModule(
        id='customer_management',
        name='Customer Management',
        description='Customer and party management',
        category=Category.CRM,
        routes=('/customers', '/parties'),
        resources=(Resource.CUSTOMERS, Resource.PARTIES),
    ),
    SystemModule(
        id='production_management',
        name='Production Management',
        description='Production scheduling and manufacturing',
        category=Category.OPERATIONS,
        routes=('/production', '/recipes', '/label-printing'),
        resources=(Resource.PRODUCTION,),
    ),
    SystemModule(
        id='hr_management',
        name='HR & Payroll',
        description='Staff, attendance, and payroll management',
        category=Category.HR,
        routes=('/staff', '/attendance', '/salary', '/leave-requests', '/staff-schedules'),
        resources=(Resource.STAFF, Resource.ATTENDANCE, Resource.SALARY, Resource.LEAVE_REQUESTS),
    ),
    SystemModule(
        id='financial_management',
        name='Financial Management',
        description='Expenses, assets, and financial tracking',
        category=Category.FINANCE,
        routes=('/expenses', '/assets', '/sales-returns'),
        resources=(Resource.EXPENSES, Resource.ASSETS, Resource.SALES_RETURNS),
    ),
    SystemModule(
        id='reports_analytics',
        name='Reports & Analytics',
        description='Business reports and analytics',
        category=Category.ANALYTICS,
        routes=('/reports',),
        resources=(Resource.REPORTS,),
    ),
    SystemModule(
        id='user_management',
        name='User Management',
        description='User accounts and permissions',
        category=Category.ADMINISTRATION,
        routes=('/admin/users', '/admin/roles'),
        resources=(Resource.USERS, Resource.ROLES),
    ),
    SystemModule(
        id='audit_management',
        name='Audit & Security',
        description='Audit logs and security monitoring',
        category=Category.ADMINISTRATION,
        routes=('/admin/login-logs', '/admin/audit-logs'),
        resources=(Resource.AUDIT, Resource.SECURITY),
    ),
    SystemModule(
        id='system_configuration',
        name='System Configuration',
        description='System settings and configuration',
        category=Category.ADMINISTRATION,
        routes=('/settings', '/units'),
        resources=(Resource.SETTINGS, Resource.SYSTEM),
        required_role=Role.SUPER_ADMIN,
    ),
    SystemModule(
        id='branch_management',
        name='Branch Management',
        description='Multi-branch operations',
        category=Category.ADMINISTRATION,
        routes=('/branches',),
        resources=(Resource.BRANCHES,),
    ),
)

ModuleList = Iterable[SystemModule]


def parse_resource(value: Any) -> Optional[Resource]:
    if isinstance(value, Resource):
        return value
    try:
        return Resource(value)
    except (ValueError, TypeError):
        return None


def parse_category(value: Any) -> Optional[Category]:
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except (ValueError, TypeError):
        return None


def get_route_module(route: str, modules: ModuleList = SYSTEM_MODULES) -> Optional[SystemModule]:
    for module in modules:
        if module.matches_route(route):
            return module
    return None


def get_resource_module(resource: Union[Resource, str], modules: ModuleList = SYSTEM_MODULES) -> Optional[SystemModule]:
    for module in modules:
        if resource in module.resources:
            return module
    return None


def get_modules_by_category(category: Union[Category, str], modules: ModuleList = SYSTEM_MODULES) -> List[SystemModule]:
    return [m for m in modules if m.category == category]


def get_all_module_ids(modules: ModuleList = SYSTEM_MODULES) -> List[str]:
    return [m.id for m in modules]


def get_module(module_id: str, modules: ModuleList = SYSTEM_MODULES) -> Optional[SystemModule]:
    for module in modules:
        if module.id == module_id:
            return module
    return None


def is_assignable_to(module: SystemModule, role: Any) -> bool:
    """A module with a required role may only be granted to that role."""
    return module.required_role is None or module.required_role == role


def order_module_ids(module_ids: Iterable[str], modules: ModuleList = SYSTEM_MODULES) -> List[str]:
    """Return the known ids among module_ids in registry order; unknown ids are dropped."""
    wanted = set(module_ids)
    return [m.id for m in modules if m.id in wanted]


def validate_registry(modules: ModuleList = SYSTEM_MODULES) -> List[str]:
    """Return a list of human readable invariant violations (empty when consistent)."""
    modules = list(modules)
    problems: List[str] = []
    for module_id, count in Counter(m.id for m in modules).items():
        if count > 1:
            problems.append(f'duplicate module id {module_id}')
    owners = Counter(r for m in modules for r in m.resources)
    for resource in Resource:
        if resource in RESERVED_RESOURCES:
            if owners[resource]:
                problems.append(f'reserved resource {resource.value} owned by a module')
        elif owners[resource] != 1:
            problems.append(f'resource {resource.value} owned by {owners[resource]} modules')
    return problems


def module_to_dict(module: SystemModule) -> Dict[str, Any]:
    return {
        'id': module.id,
        'name': module.name,
        'description': module.description,
        'category': module.category.value,
        'routes': list(module.routes),
        'resources': [r.value for r in module.resources],
        'requiredRole': module.required_role.value if module.required_role else None,
    }
