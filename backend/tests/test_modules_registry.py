import dataclasses
import pytest

from bakery.constants.modules import (
    SYSTEM_MODULES,
    Category,
    Resource,
    get_all_module_ids,
    get_module,
    get_modules_by_category,
    get_resource_module,
    get_route_module,
    module_to_dict,
    order_module_ids,
    parse_resource,
    validate_registry,
)
from bakery.constants.roles import Role


def test_registry_is_consistent():
    assert validate_registry() == []


def test_module_ids_in_declaration_order():
    assert get_all_module_ids() == [
        'dashboard', 'sales_management', 'inventory_management', 'purchase_management',
        'customer_management', 'production_management', 'hr_management', 'financial_management',
        'reports_analytics', 'user_management', 'audit_management', 'system_configuration',
        'branch_management',
    ]


@pytest.mark.parametrize('route,expected', [
    ('/', 'dashboard'),
    ('/dashboard', 'dashboard'),
    ('/sales', 'sales_management'),
    ('/sales/42', 'sales_management'),
    ('/day-book', 'sales_management'),
    ('/stock', 'inventory_management'),
    ('/products/7/edit', 'inventory_management'),
    ('/purchase-returns', 'purchase_management'),
    ('/parties', 'customer_management'),
    ('/recipes/3', 'production_management'),
    ('/staff-schedules', 'hr_management'),
    ('/sales-returns', 'financial_management'),
    ('/reports', 'reports_analytics'),
    ('/admin/roles', 'user_management'),
    ('/admin/audit-logs', 'audit_management'),
    ('/units', 'system_configuration'),
    ('/branches/2', 'branch_management'),
])
def test_route_lookup(route, expected):
    assert get_route_module(route).id == expected


@pytest.mark.parametrize('route', ['/nope', '/salesfoo', '/admin', '/admin/unknown', ''])
def test_unmapped_routes(route):
    assert get_route_module(route) is None


def test_first_declared_module_wins_on_overlap():
    first = dataclasses.replace(SYSTEM_MODULES[1], id='first', routes=('/shared',))
    second = dataclasses.replace(SYSTEM_MODULES[2], id='second', routes=('/shared',))
    assert get_route_module('/shared/x', [first, second]).id == 'first'
    assert get_route_module('/shared/x', [second, first]).id == 'second'


@pytest.mark.parametrize('resource,expected', [
    (Resource.STAFF, 'hr_management'),
    ('staff', 'hr_management'),
    ('orders', 'sales_management'),
    ('products', 'inventory_management'),
    ('assets', 'financial_management'),
    ('security', 'audit_management'),
    ('system', 'system_configuration'),
])
def test_resource_lookup(resource, expected):
    assert get_resource_module(resource).id == expected


def test_reserved_and_unknown_resources_unmapped():
    assert get_resource_module(Resource.SUPER_ADMIN) is None
    assert get_resource_module('recipes') is None
    assert parse_resource('recipes') is None


def test_every_non_reserved_resource_owned_once():
    for resource in Resource:
        owners = [m.id for m in SYSTEM_MODULES if resource in m.resources]
        if resource is Resource.SUPER_ADMIN:
            assert owners == []
        else:
            assert len(owners) == 1, (resource, owners)


def test_modules_by_category_preserves_order():
    ids = [m.id for m in get_modules_by_category(Category.FINANCE)]
    assert ids == ['sales_management', 'purchase_management', 'financial_management']
    assert [m.id for m in get_modules_by_category('administration')] == [
        'user_management', 'audit_management', 'system_configuration', 'branch_management',
    ]


def test_validate_registry_reports_violations():
    dup = dataclasses.replace(SYSTEM_MODULES[0])
    problems = validate_registry(SYSTEM_MODULES + (dup,))
    assert 'duplicate module id dashboard' in problems
    assert 'resource dashboard owned by 2 modules' in problems
    problems = validate_registry(SYSTEM_MODULES[1:])
    assert problems == ['resource dashboard owned by 0 modules']


def test_system_configuration_requires_super_admin():
    assert get_module('system_configuration').required_role is Role.SUPER_ADMIN
    assert module_to_dict(get_module('system_configuration'))['requiredRole'] == 'super_admin'
    assert module_to_dict(get_module('dashboard'))['requiredRole'] is None


def test_order_module_ids_drops_unknown():
    assert order_module_ids(['reports_analytics', 'bogus', 'dashboard']) == ['dashboard', 'reports_analytics']
