from __future__ import annotations
"""Audit logging decorator to keep add_audit() calls out of route handlers.

Usage:

@audit_log('ROLE_MODULES.REPLACE', entity='RoleModule', entity_id_key='role',
           meta_builder=lambda data, rv, args, kwargs: {'moduleCount': len(data['data']['moduleIds'])})
def save_role_modules(): ...

Parameters:
  action: required audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object (or its ``data`` member) whose value becomes entity_id
  entity_id_arg: name of the view argument to use for entity_id (fallback if entity_id_key absent)
  meta_keys: keys to project from the returned JSON into meta
  meta_builder: callable returning the meta dict; receives (data, original_return_value, args, kwargs).
    Overrides meta_keys.

Only successful handlers are audited: an abort() inside the view propagates before any entry is written.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional

from bakery import get_db
from bakery.services.audit import add_audit

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a view return value (dict or (dict, status[, headers]))."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def _lookup(data: dict, key: str):
    if key in data:
        return data.get(key)
    inner = data.get('data')
    if isinstance(inner, dict):
        return inner.get(key)
    return None


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    commit: bool = True,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            rv = fn(*args, **kwargs)
            try:
                data = _extract_payload(rv)
                if not isinstance(data, dict):
                    data = {}
                entity_id = None
                if entity_id_key:
                    entity_id = _lookup(data, entity_id_key)
                if entity_id is None and entity_id_arg:
                    entity_id = kwargs.get(entity_id_arg)
                meta = None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {k: _lookup(data, k) for k in meta_keys}
                add_audit(action, entity, entity_id, meta)
                if commit:
                    get_db().commit()
            except Exception:
                # the main change is already committed; a failed audit write must not turn it into a 500
                logger.exception('Audit logging failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
