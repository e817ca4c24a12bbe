from __future__ import annotations
from functools import wraps
from typing import Callable

from flask import abort
from flask_jwt_extended import verify_jwt_in_request

from bakery.constants.roles import Role
from bakery.services.policy import AccessPolicy, policy_for_current_user


def _guard(check: Callable[[AccessPolicy], bool], description: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            policy = policy_for_current_user()
            if policy.user is None:
                abort(401, description='Authentication required')
            if not check(policy):
                abort(403, description=description)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_auth(fn):
    return _guard(lambda p: True, 'Authentication required')(fn)


def require_page(resource: str, action: str = 'read'):
    name = getattr(resource, 'value', resource)
    return _guard(lambda p: p.can_access_page(resource, action), f'{action} access to {name} denied')


def require_module(module_id: str):
    return _guard(lambda p: p.can_access_module(module_id), f'module {module_id} not granted')


def require_roles(*roles: Role):
    allowed = frozenset(roles)
    return _guard(lambda p: p.role in allowed, 'You do not have permission to access this resource')


def require_permission(resource: str, action: str = 'read'):
    """Fine-grained guard: super_admin always, admin for anything but super_admin resources,
    everyone else needs a matching permission row."""
    def check(p: AccessPolicy) -> bool:
        if p.is_super_admin():
            return True
        if p.is_admin() and resource != 'super_admin':
            return True
        return p.has_permission(resource, action)
    return _guard(check, f'Insufficient permissions: {action} access to {resource} required')
