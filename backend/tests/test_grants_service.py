import pytest
from bakery import get_db
from bakery.constants.roles import Role
from bakery.models.authz import RoleModule, User
from bakery.services.grants import (
    UserModulesCache,
    compute_user_module_ids,
    granted_module_ids,
    has_permission,
    normalize_module_ids,
    seed_default_grants,
    user_permissions,
)
from bakery.services.policy import policy_for_user
from tests.test_utils_seed import (
    ensure_permission,
    ensure_user,
    grant_modules,
    grant_role_permission,
    grant_user_permission,
    override_module,
)


def test_normalize_module_ids():
    assert normalize_module_ids(None) == []
    assert normalize_module_ids(' dashboard ') == ['dashboard']
    assert normalize_module_ids(['a', 'b', 'a', '', 3, 'c']) == ['a', 'b', 'c']
    assert normalize_module_ids({'x': 'a'}) == ['a']
    with pytest.raises(ValueError):
        normalize_module_ids(42)


def test_cache_invalidation_by_role_and_user():
    cache = UserModulesCache(ttl=60, maxsize=10)
    cache.set((1, 'staff'), frozenset({'dashboard'}))
    cache.set((2, 'staff'), frozenset())
    cache.set((3, 'manager'), frozenset({'reports_analytics'}))
    assert cache.invalidate_role('staff') == 2
    assert cache.get((1, 'staff')) is None
    assert cache.get((3, 'manager')) == frozenset({'reports_analytics'})
    assert cache.invalidate_user(3) == 1
    assert cache.get((3, 'manager')) is None


def test_cache_entries_expire():
    cache = UserModulesCache(ttl=0.01, maxsize=10)
    cache.set((1, 'staff'), frozenset({'dashboard'}))
    import time
    time.sleep(0.05)
    assert cache.get((1, 'staff')) is None


def test_revoked_role_rows_are_ignored(app_instance):
    user = ensure_user('r@example.com', Role.STAFF)
    session = get_db()
    session.add(RoleModule(role='staff', module_id='dashboard', granted=True))
    session.add(RoleModule(role='staff', module_id='production_management', granted=False))
    session.commit()
    with app_instance.app_context():
        assert compute_user_module_ids(user) == frozenset({'dashboard'})
    assert granted_module_ids('staff') == ['dashboard']


def test_super_admin_module_ids_ignore_storage(app_instance):
    user = ensure_user('sa@example.com', Role.SUPER_ADMIN)
    with app_instance.app_context():
        assert len(compute_user_module_ids(user)) == 13


def test_user_permissions_with_overrides():
    user = ensure_user('p@example.com', Role.STAFF)
    grant_role_permission('staff', 'orders', 'read')
    grant_role_permission('staff', 'products', 'read')
    grant_user_permission(user, 'products', 'read', granted=False)
    grant_user_permission(user, 'customers', 'read_write')
    names = [p.name for p in user_permissions(user)]
    assert names == ['customers_read_write', 'orders_read']
    assert has_permission(user, 'customers', 'write')
    assert has_permission(user, 'orders', 'read')
    assert not has_permission(user, 'orders', 'write')
    assert not has_permission(user, 'products', 'read')


def test_admin_permissions_exclude_users():
    admin = ensure_user('a@example.com', Role.ADMIN)
    ensure_permission('users', 'read')
    ensure_permission('sales', 'read')
    assert [p.name for p in user_permissions(admin)] == ['sales_read']
    root = ensure_user('root@example.com', Role.SUPER_ADMIN)
    assert [p.name for p in user_permissions(root)] == ['sales_read', 'users_read']


def test_unlisted_role_falls_back_to_permission_rows(app_instance):
    session = get_db()
    baker = User(name='Baker', email='baker@example.com', password_hash='', role='baker')
    session.add(baker); session.commit()
    session.add(RoleModule(role='baker', module_id='sales_management', granted=True)); session.commit()
    grant_role_permission('baker', 'orders', 'read')
    with app_instance.app_context():
        p = policy_for_user(baker)
        assert p.can_access_page('orders')
        assert not p.can_access_page('sales')
        app_instance.config['AUTHZ_FALLBACK_PERMISSIONS'] = False
        try:
            assert not policy_for_user(baker).can_access_page('orders')
        finally:
            app_instance.config['AUTHZ_FALLBACK_PERMISSIONS'] = True


def test_seed_default_grants_only_fills_empty_roles():
    grant_modules(Role.STAFF, ['dashboard'])
    session = get_db()
    created = seed_default_grants([('staff', ['dashboard', 'production_management']),
                                   ('marketer', ['dashboard', 'sales_management'])], session)
    session.commit()
    assert created == 2
    assert granted_module_ids('staff') == ['dashboard']
    assert granted_module_ids('marketer') == ['dashboard', 'sales_management']


def test_reserved_module_rows_never_take_effect(app_instance):
    user = ensure_user('ov@example.com', Role.ADMIN)
    session = get_db()
    session.add(RoleModule(role='admin', module_id='system_configuration', granted=True))
    session.add(RoleModule(role='admin', module_id='dashboard', granted=True))
    session.commit()
    override_module(user, 'system_configuration', True)
    with app_instance.app_context():
        assert compute_user_module_ids(user) == frozenset({'dashboard'})
        assert not policy_for_user(user).can_access_page('settings')
