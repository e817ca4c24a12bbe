from __future__ import annotations
import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional

from flask import current_app
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from sqlalchemy import false

from bakery import get_db
from bakery.constants.modules import get_resource_module, get_route_module, parse_resource
from bakery.constants.permissions import ACTIONS, CAPABILITIES, ROLE_RESOURCES
from bakery.constants.roles import Role, parse_role, role_display_name
from bakery.models.authz import User
from bakery.services.grants import compute_user_module_ids, has_permission

logger = logging.getLogger(__name__)

PermissionLookup = Callable[[str, str], bool]


class AccessPolicy:
    """Allow/deny decisions for one user against the module registry.

    Two layers: module grants are the coarse switch (does the role have the
    feature bundle at all), ROLE_RESOURCES the fine one. super_admin bypasses
    both. Every predicate returns False when there is no user and never raises.

    ``user`` is any object exposing ``role``, ``branch_id`` and
    ``can_access_all_branches`` (ORM User or client-side profile), or None.
    """

    def __init__(self, user: Any, module_ids: Iterable[str] = (), permission_lookup: Optional[PermissionLookup] = None):
        self.user = user
        self.role: Optional[Role] = parse_role(getattr(user, 'role', None)) if user is not None else None
        self.module_ids: FrozenSet[str] = frozenset(module_ids or ())
        self._permission_lookup = permission_lookup

    # --- Role checkers ---

    def is_super_admin(self) -> bool:
        return self.user is not None and self.role is Role.SUPER_ADMIN

    def is_admin(self) -> bool:
        return self.user is not None and self.role is Role.ADMIN

    def is_manager(self) -> bool:
        return self.user is not None and self.role is Role.MANAGER

    def is_supervisor(self) -> bool:
        return self.user is not None and self.role is Role.SUPERVISOR

    def is_marketer(self) -> bool:
        return self.user is not None and self.role is Role.MARKETER

    def is_staff(self) -> bool:
        return self.user is not None and self.role is Role.STAFF

    def role_display_name(self) -> str:
        return role_display_name(self.role)

    # --- Access predicates ---

    def can_access_module(self, module_id: str) -> bool:
        if self.user is None:
            return False
        if self.is_super_admin():
            return True
        allowed = module_id in self.module_ids
        logger.debug('module access %s for %s: %s', module_id, self.role, allowed)
        return allowed

    def can_access_route(self, route: str) -> bool:
        if self.user is None:
            return False
        if self.is_super_admin():
            return True
        module = get_route_module(route)
        if module is None:
            logger.info('No module found for route %s, denying', route)
            return False
        return self.can_access_module(module.id)

    def can_access_page(self, resource: Any, action: str = 'read') -> bool:
        if self.user is None:
            return False
        if self.is_super_admin():
            return True
        res = parse_resource(resource)
        if res is None or action not in ACTIONS:
            logger.info('Unknown resource/action %r/%r denied', resource, action)
            return False
        module = get_resource_module(res)
        if module is None:
            # unmapped resources (super_admin) are reserved for the super admin
            return False
        if not self.can_access_module(module.id):
            logger.info('Module access denied for resource %s (module %s, role %s)', res.value, module.id, self.role)
            return False
        allowed = ROLE_RESOURCES.get(self.role) if self.role else None
        if allowed is not None:
            return res in allowed
        return self.has_permission(res.value, action)

    def can_access_sidebar_item(self, resource: Any, action: str = 'read') -> bool:
        if self.user is None:
            return False
        if self.is_super_admin():
            return True
        module = get_resource_module(resource)
        if module is not None and not self.can_access_module(module.id):
            return False
        return self.can_access_page(resource, action)

    def has_permission(self, resource: str, action: str = 'read') -> bool:
        """Fine-grained permission row lookup; False when no lookup is wired."""
        if self.user is None or self._permission_lookup is None:
            return False
        return bool(self._permission_lookup(resource, action))

    # --- Capabilities (role membership only, independent of modules) ---

    def can(self, capability: str) -> bool:
        roles = CAPABILITIES.get(capability)
        return self.user is not None and roles is not None and self.role in roles

    def can_manage_users(self) -> bool:
        return self.can('manage_users')

    def can_view_super_admin_users(self) -> bool:
        return self.can('view_super_admin_users')

    def can_manage_staff(self) -> bool:
        return self.can('manage_staff')

    def can_view_finance(self) -> bool:
        return self.can('view_finance')

    def can_manage_settings(self) -> bool:
        return self.can('manage_settings')

    def can_manage_branches(self) -> bool:
        return self.can('manage_branches')

    def can_access_audit_logs(self) -> bool:
        return self.can('access_audit_logs')

    def can_bypass_all_restrictions(self) -> bool:
        return self.can('bypass_all_restrictions')

    def can_modify_system_config(self) -> bool:
        return self.can('modify_system_config')

    def capabilities(self) -> Dict[str, bool]:
        return {name: self.can(name) for name in CAPABILITIES}

    # --- Branch scoping (orthogonal to module/resource checks) ---

    def can_access_all_branches(self) -> bool:
        if self.user is None:
            return False
        return self.is_super_admin() or getattr(self.user, 'can_access_all_branches', False) is True

    def user_branch_id(self) -> Optional[int]:
        if self.user is None or self.is_super_admin():
            return None
        return getattr(self.user, 'branch_id', None)

    def can_access_branch_data(self, branch_id: Optional[int] = None) -> bool:
        if self.user is None:
            return False
        if self.is_super_admin() or not branch_id or self.can_access_all_branches():
            return True
        return self.user_branch_id() == branch_id

    def branch_filter(self) -> Dict[str, Any]:
        return {
            'userBranchId': self.user_branch_id(),
            'canAccessAllBranches': self.can_access_all_branches(),
        }

    def branch_display_name(self) -> str:
        if self.can_access_all_branches():
            return 'All Branches'
        return f"Branch {self.user_branch_id() or 'Unknown'}"

    def filter_query_by_branch(self, query, branch_column):
        """Restrict a select to the user's branch unless they can see all branches."""
        if self.can_access_all_branches():
            return query
        branch_id = self.user_branch_id()
        if branch_id is None:
            return query.where(false())
        return query.where(branch_column == branch_id)


def current_user() -> Optional[User]:
    """Load the active user behind the request's JWT (None when absent or deactivated)."""
    verify_jwt_in_request(optional=True)
    ident = get_jwt_identity()
    if ident is None:
        return None
    try:
        user_id = int(ident)
    except (TypeError, ValueError):
        return None
    user = get_db().get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def policy_for_user(user: Optional[User]) -> AccessPolicy:
    if user is None:
        return AccessPolicy(None)
    lookup = None
    if current_app.config.get('AUTHZ_FALLBACK_PERMISSIONS', True):
        def lookup(resource: str, action: str) -> bool:
            return has_permission(user, resource, action)
    return AccessPolicy(user, compute_user_module_ids(user), lookup)


def policy_for_current_user() -> AccessPolicy:
    return policy_for_user(current_user())
