from __future__ import annotations
from typing import Any, Dict, Optional
from flask import has_request_context, request
from bakery import get_db
from bakery.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None,
              meta: Optional[Dict[str, Any]] = None, actor=None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. ROLE_MODULES.REPLACE
      entity: optional entity name (RoleModule, User, etc.)
      entity_id: optional primary key / natural key string
      meta: additional JSON-safe dictionary (shallow copied)
      actor: acting user; defaults to the request's authenticated user
    """
    ip_address = user_agent = None
    if has_request_context():
        if actor is None:
            from bakery.services.policy import current_user
            actor = current_user()
        ip_address = request.remote_addr
        user_agent = (request.headers.get('User-Agent') or '')[:255] or None
    log = AuditLog(
        actor_user_id=actor.id if actor is not None else 0,
        actor_role=actor.role if actor is not None else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    get_db().add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def audit_to_dict(r: AuditLog) -> Dict[str, Any]:
    return {
        'id': r.id,
        'actor_user_id': r.actor_user_id,
        'actor_role': r.actor_role,
        'action': r.action,
        'entity': r.entity,
        'entity_id': r.entity_id,
        'meta': r.meta,
        'created_at': r.created_at.isoformat() if r.created_at else None,
    }
