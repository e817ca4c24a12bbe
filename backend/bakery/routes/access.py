from __future__ import annotations
import logging
from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token
from sqlalchemy import select

from bakery import get_db
from bakery.constants.modules import (
    CATEGORY_LABELS,
    SYSTEM_MODULES,
    Category,
    Resource,
    get_modules_by_category,
    module_to_dict,
    order_module_ids,
)
from bakery.constants.navigation import NAVIGATION
from bakery.constants.roles import ASSIGNABLE_ROLES, ROLE_DESCRIPTIONS, ROLE_DISPLAY_NAMES, Role, parse_role
from bakery.decorators.audit import audit_log
from bakery.decorators.auth import require_auth, require_page, require_roles
from bakery.models.audit import AuditLog
from bakery.models.authz import User
from bakery.services.audit import audit_to_dict
from bakery.services.grants import get_role_modules, grant_to_dict, list_role_modules, replace_role_modules
from bakery.services.policy import AccessPolicy, policy_for_current_user
from bakery.utils.listing import apply_pagination, make_cached_list_response

logger = logging.getLogger(__name__)

access_bp = Blueprint('access', __name__)

ADMIN_ROLES = (Role.SUPER_ADMIN, Role.ADMIN)


def _profile(policy: AccessPolicy):
    user = policy.user
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'role': user.role,
        'roleDisplayName': policy.role_display_name(),
        'branchId': user.branch_id,
        'canAccessAllBranches': policy.can_access_all_branches(),
        'branchDisplayName': policy.branch_display_name(),
        'branchFilter': policy.branch_filter(),
        'capabilities': policy.capabilities(),
    }


@access_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='invalid credentials')
    claims = {
        'role': user.role,
        'branch_id': user.branch_id,
        'can_access_all_branches': bool(user.can_access_all_branches),
    }
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims=claims)
    logger.info('User %s (%s) logged in', user.email, user.role)
    return {'access_token': token}


@access_bp.get('/auth/me')
@require_auth
def me():
    return {'success': True, 'data': _profile(policy_for_current_user())}


@access_bp.get('/user/modules')
@require_auth
def user_modules():
    policy = policy_for_current_user()
    return {
        'success': True,
        'data': {
            'moduleIds': order_module_ids(policy.module_ids),
            'userRole': policy.user.role,
        },
    }


@access_bp.get('/user/access')
@require_auth
def check_access():
    policy = policy_for_current_user()
    args = request.args
    action = args.get('action', 'read')
    if args.get('resource'):
        subject = args['resource']
        if args.get('sidebar', '').lower() in ('1', 'true'):
            check, allowed = 'sidebar', policy.can_access_sidebar_item(subject, action)
        else:
            check, allowed = 'page', policy.can_access_page(subject, action)
    elif args.get('route'):
        subject = args['route']
        check, allowed = 'route', policy.can_access_route(subject)
    elif args.get('module'):
        subject = args['module']
        check, allowed = 'module', policy.can_access_module(subject)
    else:
        abort(400, description='one of resource, route or module is required')
    return {
        'success': True,
        'data': {'check': check, 'subject': subject, 'action': action, 'allowed': allowed},
    }


@access_bp.get('/user/navigation')
@require_auth
def user_navigation():
    policy = policy_for_current_user()
    sections = []
    for section in NAVIGATION:
        items = [
            {'title': item.title, 'href': item.href, 'resource': item.resource.value}
            for item in section.items
            if (item.module_id is None or policy.can_access_module(item.module_id))
            and policy.can_access_sidebar_item(item.resource)
        ]
        if items:
            sections.append({'title': section.title, 'items': items})
    return {'success': True, 'data': sections}


@access_bp.get('/modules')
@require_auth
def module_catalog():
    categories = []
    for category in Category:
        modules = get_modules_by_category(category)
        if not modules:
            continue
        label, description = CATEGORY_LABELS[category]
        categories.append({
            'id': category.value,
            'name': label,
            'description': description,
            'moduleIds': [m.id for m in modules],
        })
    roles = [
        {'value': r.value, 'label': ROLE_DISPLAY_NAMES[r], 'description': ROLE_DESCRIPTIONS[r]}
        for r in ASSIGNABLE_ROLES
    ]
    return {
        'success': True,
        'data': {
            'modules': [module_to_dict(m) for m in SYSTEM_MODULES],
            'categories': categories,
            'roles': roles,
        },
    }


# --- Role-module administration ---

@access_bp.get('/admin/role-modules')
@require_roles(*ADMIN_ROLES)
def list_all_role_modules():
    rows = list_role_modules()
    logger.debug('Found %d role-module assignments', len(rows))
    return {'success': True, 'data': [grant_to_dict(r) for r in rows]}


@access_bp.get('/admin/role-modules/<role>')
@require_roles(*ADMIN_ROLES)
def list_role_module_grants(role: str):
    parsed = parse_role(role)
    if parsed is None:
        abort(400, description=f'Unknown role {role}')
    return {'success': True, 'data': [grant_to_dict(r) for r in get_role_modules(parsed.value)]}


def _role_modules_meta(data, rv, args, kwargs):
    inner = data.get('data') or {}
    module_ids = inner.get('moduleIds') or []
    return {'role': inner.get('role'), 'moduleIds': module_ids, 'moduleCount': len(module_ids)}


@access_bp.post('/admin/role-modules')
@require_roles(*ADMIN_ROLES)
@audit_log('ROLE_MODULES.REPLACE', entity='RoleModule', entity_id_key='role', meta_builder=_role_modules_meta)
def save_role_modules():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    role, module_ids, rows = replace_role_modules(data.get('role'), data.get('moduleIds'))
    return {
        'success': True,
        'message': f'Role modules updated successfully for {role.value}',
        'data': {
            'role': role.value,
            'moduleIds': module_ids,
            'modules': [grant_to_dict(r) for r in rows],
        },
    }


# --- Audit Log Listing ---

@access_bp.get('/admin/audit-logs')
@require_page(Resource.AUDIT)
def list_audit_logs():
    session = get_db()
    q = session.query(AuditLog)
    actor = request.args.get('actor_user_id')
    action = request.args.get('action')
    entity = request.args.get('entity')
    if actor:
        try:
            q = q.filter(AuditLog.actor_user_id == int(actor))
        except ValueError:
            abort(400, description='actor_user_id must be int')
    if action:
        q = q.filter(AuditLog.action == action)
    if entity:
        q = q.filter(AuditLog.entity == entity)
    paged_q, total, limit, offset = apply_pagination(q.order_by(AuditLog.id.desc()))
    rows = [audit_to_dict(r) for r in paged_q.all()]
    # ETag seed includes the newest entry timestamp so fresh logs invalidate cached pages
    latest_ts = rows[0]['created_at'] if rows else None
    return make_cached_list_response(rows, total, limit, offset, latest_ts)
