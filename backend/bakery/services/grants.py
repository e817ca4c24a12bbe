"""Role-module grant store and fine-grained permission lookups.

Grants are replaced wholesale per role (delete + insert in one transaction);
the database is the only serialization point, so concurrent saves for the same
role resolve last-write-wins. Effective module ids per user are cached for a
short window and dropped for a whole role whenever that role's grants change.
"""
from __future__ import annotations
import logging
from threading import RLock
from typing import Any, FrozenSet, Hashable, Iterable, List, Optional, Tuple

from cachetools import TTLCache
from flask import abort, current_app
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from bakery import get_db
from bakery.constants.modules import get_all_module_ids, get_module, is_assignable_to, order_module_ids
from bakery.constants.permissions import action_satisfies
from bakery.constants.roles import ASSIGNABLE_ROLES, Role, parse_role
from bakery.models.authz import (
    Permission,
    RoleModule,
    RolePermission,
    UserModuleOverride,
    UserPermission,
)

logger = logging.getLogger(__name__)

CACHE_EXTENSION_KEY = 'bakery.user_modules'


class UserModulesCache:
    """Thread-safe TTL cache of ``(user_id, role) -> frozenset(module ids)``."""

    def __init__(self, ttl: float = 60, maxsize: int = 1024):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = RLock()

    def get(self, key: Hashable) -> Optional[FrozenSet[str]]:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: Hashable, value: FrozenSet[str]):
        with self._lock:
            self._cache[key] = value

    def invalidate_role(self, role: str) -> int:
        with self._lock:
            stale = [k for k in list(self._cache.keys()) if k[1] == role]
            for k in stale:
                self._cache.pop(k, None)
        return len(stale)

    def invalidate_user(self, user_id: int) -> int:
        with self._lock:
            stale = [k for k in list(self._cache.keys()) if k[0] == user_id]
            for k in stale:
                self._cache.pop(k, None)
        return len(stale)

    def clear(self):
        with self._lock:
            self._cache.clear()


def user_modules_cache() -> UserModulesCache:
    return current_app.extensions[CACHE_EXTENSION_KEY]


def normalize_module_ids(raw: Any) -> List[str]:
    """Coerce a request payload into a de-duplicated list of non-blank module ids.

    Accepts a list, a single string, a mapping (values are taken, e.g. a form
    encoded ``{"0": "dashboard"}``) or None. Non-string entries are dropped.
    """
    if raw is None:
        values: List[Any] = []
    elif isinstance(raw, str):
        values = [raw]
    elif isinstance(raw, dict):
        values = list(raw.values())
    elif isinstance(raw, (list, tuple)):
        values = list(raw)
    else:
        raise ValueError('moduleIds must be an array')
    out: List[str] = []
    seen = set()
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        value = value.strip()
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


def list_role_modules(session=None) -> List[RoleModule]:
    session = session or get_db()
    q = select(RoleModule).order_by(RoleModule.role.asc(), RoleModule.module_id.asc())
    return list(session.execute(q).scalars())


def get_role_modules(role: str, session=None) -> List[RoleModule]:
    session = session or get_db()
    q = select(RoleModule).where(RoleModule.role == role).order_by(RoleModule.module_id.asc())
    return list(session.execute(q).scalars())


def granted_module_ids(role: str, session=None) -> List[str]:
    return order_module_ids(rm.module_id for rm in get_role_modules(role, session) if rm.granted)


def replace_role_modules(role_raw: Any, module_ids_raw: Any, session=None) -> Tuple[Role, List[str], List[RoleModule]]:
    """Replace the full grant set of an assignable role. Aborts 400 on invalid input."""
    role = parse_role(role_raw.strip() if isinstance(role_raw, str) else role_raw)
    if role is None:
        abort(400, description='Valid role is required')
    if role not in ASSIGNABLE_ROLES:
        abort(400, description=f'Module grants cannot be stored for {role.value}')
    try:
        module_ids = normalize_module_ids(module_ids_raw)
    except ValueError as e:
        abort(400, description=str(e))
    unknown = [m for m in module_ids if get_module(m) is None]
    if unknown:
        abort(400, description=f'Unknown module ids: {sorted(unknown)}')
    reserved = [m for m in module_ids if not is_assignable_to(get_module(m), role)]
    if reserved:
        abort(400, description=f'Modules not grantable to {role.value}: {reserved}')

    session = session or get_db()
    try:
        session.execute(delete(RoleModule).where(RoleModule.role == role.value))
        for module_id in module_ids:
            session.add(RoleModule(role=role.value, module_id=module_id, granted=True))
        session.flush()
        rows = get_role_modules(role.value, session)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Failed to replace module grants for role %s', role.value)
        raise
    dropped = user_modules_cache().invalidate_role(role.value)
    logger.info('Replaced module grants for role %s: %d modules (%d cached sessions invalidated)',
                role.value, len(module_ids), dropped)
    return role, module_ids, rows


def compute_user_module_ids(user, session=None) -> FrozenSet[str]:
    """Effective module ids for a user: role grants, then per-user overrides applied."""
    if user is None:
        return frozenset()
    if parse_role(user.role) is Role.SUPER_ADMIN:
        return frozenset(get_all_module_ids())
    cache = user_modules_cache()
    key = (user.id, user.role)
    cached = cache.get(key)
    if cached is not None:
        return cached
    session = session or get_db()
    ids = {
        rm.module_id for rm in session.execute(
            select(RoleModule).where(RoleModule.role == user.role, RoleModule.granted.is_(True))
        ).scalars()
    }
    overrides = session.execute(select(UserModuleOverride).where(UserModuleOverride.user_id == user.id)).scalars()
    for override in overrides:
        if override.granted:
            ids.add(override.module_id)
        else:
            ids.discard(override.module_id)
    # rows or overrides naming a module reserved for another role never take effect
    modules = [get_module(i) for i in ids]
    result = frozenset(m.id for m in modules if m is not None and is_assignable_to(m, user.role))
    cache.set(key, result)
    return result


def user_permissions(user, session=None) -> List[Permission]:
    """Fine-grained permissions held by a user (role rows, then per-user grant/revoke rows)."""
    if user is None:
        return []
    session = session or get_db()
    role = parse_role(user.role)
    if role is Role.SUPER_ADMIN:
        return list(session.execute(select(Permission).order_by(Permission.resource, Permission.action)).scalars())
    if role is Role.ADMIN:
        q = select(Permission).where(Permission.resource != 'users').order_by(Permission.resource, Permission.action)
        return list(session.execute(q).scalars())
    perms = {
        rp.permission.id: rp.permission for rp in session.execute(
            select(RolePermission).where(RolePermission.role == user.role)
        ).scalars()
    }
    for up in session.execute(select(UserPermission).where(UserPermission.user_id == user.id)).scalars():
        if up.granted:
            perms[up.permission.id] = up.permission
        else:
            perms.pop(up.permission.id, None)
    return sorted(perms.values(), key=lambda p: (p.resource, p.action))


def has_permission(user, resource: str, action: str, session=None) -> bool:
    return any(
        p.resource == resource and action_satisfies(p.action, action)
        for p in user_permissions(user, session)
    )


def grant_to_dict(rm: RoleModule) -> dict:
    return {
        'id': rm.id,
        'role': rm.role,
        'moduleId': rm.module_id,
        'granted': bool(rm.granted),
        'createdAt': rm.created_at.isoformat() if rm.created_at else None,
        'updatedAt': rm.updated_at.isoformat() if rm.updated_at else None,
    }


def seed_default_grants(role_modules: Iterable[Tuple[str, Iterable[str]]], session=None) -> int:
    """Insert grants for roles that have none yet. Returns number of rows created."""
    session = session or get_db()
    created = 0
    for role, module_ids in role_modules:
        if get_role_modules(role, session):
            continue
        for module_id in module_ids:
            session.add(RoleModule(role=role, module_id=module_id, granted=True))
            created += 1
    return created
