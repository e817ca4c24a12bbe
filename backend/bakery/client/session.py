from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, FrozenSet, Optional

from bakery.client.http import GrantStoreClient, GrantStoreError
from bakery.services.policy import AccessPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    id: int
    role: str
    email: str = ''
    name: str = ''
    branch_id: Optional[int] = None
    can_access_all_branches: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> 'SessionUser':
        """Build from the ``/api/auth/me`` profile."""
        return cls(
            id=data['id'],
            role=data['role'],
            email=data.get('email') or '',
            name=data.get('name') or '',
            branch_id=data.get('branchId'),
            can_access_all_branches=bool(data.get('canAccessAllBranches')),
        )


class RoleAccessSession:
    """Client-side access checks for the signed-in user.

    Granted module ids are fetched lazily and reused for ``stale_seconds``;
    ``on_focus()`` forces a refetch. A failed fetch keeps the last good set
    (empty before the first success), so checks fail closed, and is not
    retried by ordinary checks for ``retry_seconds``.

    The policy carries no permission lookup: roles without an allow-list
    entry are denied client-side even where the server's permission rows
    would allow them.
    """

    def __init__(self, client: GrantStoreClient, user: Optional[SessionUser],
                 stale_seconds: float = 60, retry_seconds: float = 5,
                 clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.user = user
        self.stale_seconds = stale_seconds
        self.retry_seconds = retry_seconds
        self._clock = clock
        self._module_ids: FrozenSet[str] = frozenset()
        self._fetched_at: Optional[float] = None
        self._failed_at: Optional[float] = None
        self._lock = Lock()
        self.module_ids_loading = False

    def _is_stale(self) -> bool:
        now = self._clock()
        if self._failed_at is not None and now - self._failed_at < self.retry_seconds:
            return False
        return self._fetched_at is None or now - self._fetched_at >= self.stale_seconds

    def refresh(self) -> FrozenSet[str]:
        if self.user is None:
            return frozenset()
        with self._lock:
            self.module_ids_loading = True
            try:
                self._module_ids = frozenset(self.client.user_modules())
                self._fetched_at = self._clock()
                self._failed_at = None
            except GrantStoreError as e:
                self._failed_at = self._clock()
                logger.warning('Failed to fetch user modules: %s', e.message)
            finally:
                self.module_ids_loading = False
        return self._module_ids

    def on_focus(self) -> FrozenSet[str]:
        return self.refresh()

    @property
    def module_ids(self) -> FrozenSet[str]:
        if self.user is None:
            return frozenset()
        if self._is_stale():
            return self.refresh()
        return self._module_ids

    def policy(self) -> AccessPolicy:
        return AccessPolicy(self.user, self.module_ids)

    def can_access_module(self, module_id: str) -> bool:
        return self.policy().can_access_module(module_id)

    def can_access_route(self, route: str) -> bool:
        return self.policy().can_access_route(route)

    def can_access_page(self, resource: Any, action: str = 'read') -> bool:
        return self.policy().can_access_page(resource, action)

    def can_access_sidebar_item(self, resource: Any, action: str = 'read') -> bool:
        return self.policy().can_access_sidebar_item(resource, action)
