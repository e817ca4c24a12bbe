"""Sidebar navigation catalog. Each entry is gated by its resource (and optional module)."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from bakery.constants.modules import Resource


@dataclass(frozen=True)
class NavItem:
    title: str
    href: str
    resource: Resource
    module_id: Optional[str] = None


@dataclass(frozen=True)
class NavSection:
    title: str
    items: Tuple[NavItem, ...]


NAVIGATION: Tuple[NavSection, ...] = (
    NavSection('Overview', (
        NavItem('Dashboard', '/', Resource.DASHBOARD),
    )),
    NavSection('Finance', (
        NavItem('Day Book', '/day-book', Resource.SALES),
        NavItem('Transactions', '/transactions', Resource.SALES),
        NavItem('Orders', '/orders', Resource.ORDERS),
        NavItem('Sales', '/sales', Resource.SALES),
        NavItem('Sales Returns', '/sales-returns', Resource.SALES_RETURNS),
        NavItem('Purchases', '/purchases', Resource.PURCHASES),
        NavItem('Purchase Returns', '/purchase-returns', Resource.PURCHASES),
        NavItem('Expenses', '/expenses', Resource.EXPENSES),
        NavItem('Assets', '/assets', Resource.ASSETS),
    )),
    NavSection('Products & Inventory', (
        NavItem('Recipes', '/recipes', Resource.PRODUCTION, 'production_management'),
        NavItem('Products', '/products', Resource.PRODUCTS),
        NavItem('Stock', '/stock', Resource.INVENTORY),
        NavItem('Ingredients', '/ingredients', Resource.INVENTORY),
        NavItem('Production', '/production', Resource.PRODUCTION),
        NavItem('Label Printing', '/label-printing', Resource.PRODUCTION),
    )),
    NavSection('Customers', (
        NavItem('Customers', '/customers', Resource.CUSTOMERS),
        NavItem('Parties', '/parties', Resource.PARTIES),
    )),
    NavSection('HR & Staff', (
        NavItem('Staff', '/staff', Resource.STAFF),
        NavItem('Attendance', '/attendance', Resource.ATTENDANCE),
        NavItem('Salary', '/salary', Resource.SALARY),
        NavItem('Leave Requests', '/leave-requests', Resource.LEAVE_REQUESTS),
        NavItem('Staff Schedules', '/staff-schedules', Resource.STAFF),
    )),
    NavSection('Reports', (
        NavItem('Reports', '/reports', Resource.REPORTS),
    )),
    NavSection('Administration', (
        NavItem('Users', '/admin/users', Resource.USERS),
        NavItem('Roles & Modules', '/admin/roles', Resource.ROLES),
        NavItem('Login Logs', '/admin/login-logs', Resource.SECURITY),
        NavItem('Audit Logs', '/admin/audit-logs', Resource.AUDIT),
        NavItem('Branches', '/branches', Resource.BRANCHES),
        NavItem('Settings', '/settings', Resource.SETTINGS),
        NavItem('Units', '/units', Resource.SYSTEM),
    )),
)
