"""Working set behind the admin "Roles & Modules" screen.

The editor holds the module ids checked for one role, lets them be toggled
individually or per category, and saves the whole set in one replace-all call.
Loads are fenced by a generation counter: when the role changes while a load
is in flight, the late response is dropped instead of overwriting the newer
role's state.
"""
from __future__ import annotations
import logging
from threading import Lock
from typing import Any, Dict, FrozenSet, List, Optional, Set

from bakery.client.http import GrantStoreClient, GrantStoreError
from bakery.constants.modules import (
    SystemModule,
    get_module,
    get_modules_by_category,
    is_assignable_to,
    order_module_ids,
    parse_category,
)
from bakery.constants.roles import ASSIGNABLE_ROLES, Role, parse_role

logger = logging.getLogger(__name__)

ALL, SOME, NONE = 'all', 'some', 'none'


class RoleModuleEditor:
    def __init__(self, client: GrantStoreClient):
        self.client = client
        self.role: Optional[Role] = None
        self.selected: Set[str] = set()
        self._saved: FrozenSet[str] = frozenset()
        self._generation = 0
        self._lock = Lock()
        self.loading = False
        self.saving = False

    # --- loading ---

    def _load(self, role: Role) -> bool:
        with self._lock:
            self._generation += 1
            token = self._generation
            self.loading = True
        try:
            rows = self.client.role_modules(role.value)
        finally:
            with self._lock:
                if token == self._generation:
                    self.loading = False
        with self._lock:
            if token != self._generation or self.role is not role:
                logger.debug('Discarding stale grant response for %s', role.value)
                return False
            self._saved = frozenset(r['moduleId'] for r in rows if r.get('granted', True))
            self.selected = set(self._saved)
        return True

    def select_role(self, role: Any) -> bool:
        """Switch to ``role`` and seed the working set from its saved grants.

        Returns False when a newer selection superseded this load.
        """
        parsed = parse_role(role)
        if parsed is None:
            raise ValueError(f'Unknown role {role!r}')
        if parsed not in ASSIGNABLE_ROLES:
            raise ValueError(f'Module grants cannot be edited for {parsed.value}')
        with self._lock:
            self.role = parsed
            self.selected = set()
            self._saved = frozenset()
        return self._load(parsed)

    def _require_role(self) -> Role:
        if self.role is None:
            raise RuntimeError('No role selected')
        return self.role

    # --- working set ---

    def category_modules(self, category: Any) -> List[SystemModule]:
        """Modules shown under a category; modules reserved for another role are hidden."""
        cat = parse_category(category)
        if cat is None:
            raise ValueError(f'Unknown category {category!r}')
        return [m for m in get_modules_by_category(cat) if is_assignable_to(m, self.role)]

    def toggle_module(self, module_id: str, checked: bool):
        self._require_role()
        module = get_module(module_id)
        if module is None:
            raise ValueError(f'Unknown module {module_id!r}')
        if not is_assignable_to(module, self.role):
            raise ValueError(f'Module {module_id} cannot be granted to {self.role.value}')
        if checked:
            self.selected.add(module_id)
        else:
            self.selected.discard(module_id)

    def toggle_category(self, category: Any, checked: bool):
        self._require_role()
        for module in self.category_modules(category):
            if checked:
                self.selected.add(module.id)
            else:
                self.selected.discard(module.id)

    def category_state(self, category: Any) -> str:
        ids = [m.id for m in self.category_modules(category)]
        count = sum(1 for i in ids if i in self.selected)
        if ids and count == len(ids):
            return ALL
        return SOME if count else NONE

    def selection_summary(self) -> Dict[str, Any]:
        return {
            'role': self.role.value if self.role else None,
            'moduleIds': order_module_ids(self.selected),
            'selected': len(self.selected),
            'dirty': self.is_dirty,
        }

    @property
    def is_dirty(self) -> bool:
        return set(self._saved) != self.selected

    # --- persistence ---

    def save(self) -> List[str]:
        """Replace the role's grants with the working set; the set survives a failed save."""
        role = self._require_role()
        module_ids = order_module_ids(self.selected)
        self.saving = True
        try:
            data = self.client.save_role_modules(role.value, module_ids)
        except GrantStoreError as e:
            logger.warning('Saving modules for %s failed: %s', role.value, e.message)
            raise
        finally:
            self.saving = False
        with self._lock:
            if self.role is role:
                self._saved = frozenset(data['moduleIds'])
                self.selected = set(self._saved)
        logger.info('Saved %d modules for role %s', len(data['moduleIds']), role.value)
        return list(data['moduleIds'])

    def reset(self) -> bool:
        """Drop local edits and reload the role's saved grants from the server."""
        return self._load(self._require_role())
