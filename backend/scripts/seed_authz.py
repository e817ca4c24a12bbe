#!/usr/bin/env python
"""Idempotent seed script for permissions, role grants & the first super admin.

Usage:
    python backend/scripts/seed_authz.py               # seed normally
    python backend/scripts/seed_authz.py --show-roles  # print role -> permission/module counts (after ensuring seed)
    python backend/scripts/seed_authz.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/seed_authz.py --export-json roles.json
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from bakery import create_app, get_db  # type: ignore
from bakery.constants.modules import validate_registry
from bakery.constants.permissions import DEFAULT_ROLE_MODULES, DEFAULT_ROLE_PERMISSIONS, build_all_permissions
from bakery.constants.roles import Role
from bakery.models.authz import Base, Permission, RoleModule, RolePermission, User
from bakery.services.grants import seed_default_grants


def ensure_permissions(session):
    existing = {p.name for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for name, resource, action in build_all_permissions():
        if name not in existing:
            session.add(Permission(name=name, resource=resource, action=action,
                                   description=f"{action.replace('_', '/')} access to {resource}"))
            created += 1
    session.flush()
    return created


def ensure_role_permissions(session):
    perms = {p.name: p for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for role, names in DEFAULT_ROLE_PERMISSIONS.items():
        current = {rp.permission.name for rp in session.execute(
            select(RolePermission).where(RolePermission.role == role.value)).scalars()}
        for name in names:
            if name in current:
                continue
            if name not in perms:
                print(f"[WARN] Missing permission referenced by role {role.value}: {name}")
                continue
            session.add(RolePermission(role=role.value, permission_id=perms[name].id))
            created += 1
    return created


def ensure_role_modules(session):
    return seed_default_grants(((role.value, ids) for role, ids in DEFAULT_ROLE_MODULES.items()), session)


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if not existing_admin:
        user = User(name='Super Admin', email=admin_email, role=Role.SUPER_ADMIN.value,
                    can_access_all_branches=True, password_hash='')
        user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
        session.add(user)
        print(f"[INFO] Created initial super admin {admin_email} with temporary password.")


def build_role_map(session):
    mapping = {}
    for role in Role:
        perms = sorted(rp.permission.name for rp in session.execute(
            select(RolePermission).where(RolePermission.role == role.value)).scalars())
        modules = sorted(rm.module_id for rm in session.execute(
            select(RoleModule).where(RoleModule.role == role.value)).scalars())
        mapping[role.value] = {'permissions': perms, 'modules': modules}
    return mapping


def print_role_summary(role_map):
    name_w = max(len(r) for r in role_map)
    print(f"{'Role'.ljust(name_w)} | Perms | Modules")
    print('-' * (name_w + 40))
    for name, entry in role_map.items():
        print(f"{name.ljust(name_w)} | {str(len(entry['permissions'])).rjust(5)} | {', '.join(entry['modules'])}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed RBAC permissions, role modules & initial super admin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_authz.py\n  dry run: seed_authz.py --dry-run\n  show roles: seed_authz.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission/module counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role map JSON (to FILE or stdout if omitted)')
    return p.parse_args()


def main():
    args = parse_args()
    problems = validate_registry()
    if problems:
        print('[VALIDATION] FAIL:')
        for problem in problems:
            print(' -', problem)
        sys.exit(2)

    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM permissions LIMIT 1'))
        except OperationalError:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            import bakery.models.audit  # noqa: F401
            Base.metadata.create_all(session.get_bind())
        session.commit()

        try:
            created_p = ensure_permissions(session)
            created_rp = ensure_role_permissions(session)
            created_rm = ensure_role_modules(session)
            ensure_initial_admin(session)
            session.flush()
            role_map = build_role_map(session)
            summary = f"Permissions: {created_p}, Role permissions: {created_rp}, Role modules: {created_rm}"
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) would create {summary}")
            else:
                session.commit()
                print(f"[DONE] Created {summary}")
            if args.show_roles:
                print('\nRole Summary:')
                print_role_summary(role_map)
            if args.export_json is not None:
                canonical = json.dumps(role_map, sort_keys=True, separators=(',', ':'))
                payload = {
                    'roles': role_map,
                    'meta': {
                        'roles_checksum_sha256': hashlib.sha256(canonical.encode('utf-8')).hexdigest(),
                        'dry_run': args.dry_run,
                    }
                }
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
