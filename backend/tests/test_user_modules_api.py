import pytest
from bakery.constants.modules import get_all_module_ids
from bakery.constants.roles import Role
from tests.test_utils_seed import ensure_user, login, override_module, seed_and_login


def test_login_and_me(client):
    ensure_user('t@example.com', Role.SUPERVISOR, name='T', branch_id=2)
    resp = client.post('/api/auth/login', json={'email': 't@example.com', 'password': 'pw'})
    assert resp.status_code == 200, resp.get_json()
    token = resp.get_json()['access_token']

    me = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    body = me.get_json()['data']
    assert body['email'] == 't@example.com'
    assert body['role'] == 'supervisor'
    assert body['roleDisplayName'] == 'Supervisor'
    assert body['branchFilter'] == {'userBranchId': 2, 'canAccessAllBranches': False}
    assert body['capabilities']['manage_users'] is False


@pytest.mark.parametrize('payload,status', [
    ({'email': 'x@example.com', 'password': 'wrong'}, 401),
    ({'email': 'nobody@example.com', 'password': 'pw'}, 401),
    ({'email': 'x@example.com'}, 400),
])
def test_login_failures(client, payload, status):
    ensure_user('x@example.com')
    assert client.post('/api/auth/login', json=payload).status_code == status


def test_inactive_user_cannot_login_or_use_token(client):
    user = ensure_user('gone@example.com')
    headers = login(client, 'gone@example.com')
    from bakery import get_db
    user.is_active = False
    get_db().commit()
    assert client.post('/api/auth/login', json={'email': 'gone@example.com', 'password': 'pw'}).status_code == 401
    assert client.get('/api/user/modules', headers=headers).status_code == 401


def test_super_admin_gets_every_module(client):
    _, headers = seed_and_login(client, 'root@example.com', Role.SUPER_ADMIN)
    body = client.get('/api/user/modules', headers=headers).get_json()
    assert body['success'] is True
    assert body['data'] == {'moduleIds': get_all_module_ids(), 'userRole': 'super_admin'}


def test_role_grants_in_registry_order(client):
    _, headers = seed_and_login(client, 's@example.com', Role.STAFF,
                                modules=['production_management', 'dashboard'])
    body = client.get('/api/user/modules', headers=headers).get_json()
    assert body['data'] == {'moduleIds': ['dashboard', 'production_management'], 'userRole': 'staff'}


def test_user_overrides_apply_on_top_of_role(client):
    user, headers = seed_and_login(client, 'o@example.com', Role.MARKETER,
                                   modules=['sales_management', 'customer_management'])
    override_module(user, 'customer_management', False)
    override_module(user, 'reports_analytics', True)
    ids = client.get('/api/user/modules', headers=headers).get_json()['data']['moduleIds']
    assert ids == ['sales_management', 'reports_analytics']


def access(client, headers, **params):
    resp = client.get('/api/user/access', query_string=params, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()['data']


def test_access_checks(client):
    _, headers = seed_and_login(client, 'mgr@example.com', Role.MANAGER, modules=['dashboard', 'reports_analytics'])
    assert access(client, headers, resource='staff')['allowed'] is False
    data = access(client, headers, resource='reports')
    assert data == {'check': 'page', 'subject': 'reports', 'action': 'read', 'allowed': True}
    assert access(client, headers, route='/reports/daily')['allowed'] is True
    assert access(client, headers, route='/settings')['allowed'] is False
    assert access(client, headers, module='dashboard') == {
        'check': 'module', 'subject': 'dashboard', 'action': 'read', 'allowed': True,
    }
    assert access(client, headers, resource='reports', sidebar='1')['check'] == 'sidebar'
    assert access(client, headers, resource='users', action='write')['allowed'] is False


def test_access_requires_a_subject(client):
    _, headers = seed_and_login(client, 'q@example.com')
    resp = client.get('/api/user/access', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'one of resource, route or module is required'


def test_navigation_filtered_by_access(client):
    _, headers = seed_and_login(client, 'nav@example.com', Role.STAFF,
                                modules=['dashboard', 'inventory_management', 'hr_management'])
    sections = client.get('/api/user/navigation', headers=headers).get_json()['data']
    titles = {s['title']: [i['title'] for i in s['items']] for s in sections}
    assert titles == {
        'Overview': ['Dashboard'],
        'Products & Inventory': ['Products', 'Stock', 'Ingredients'],
    }


def test_navigation_for_super_admin_is_complete(client):
    _, headers = seed_and_login(client, 'root@example.com', Role.SUPER_ADMIN)
    sections = client.get('/api/user/navigation', headers=headers).get_json()['data']
    assert [s['title'] for s in sections][-1] == 'Administration'
    admin_items = [i['href'] for i in sections[-1]['items']]
    assert '/settings' in admin_items and '/admin/roles' in admin_items


def test_module_catalog(client):
    _, headers = seed_and_login(client, 'c@example.com')
    data = client.get('/api/modules', headers=headers).get_json()['data']
    assert [m['id'] for m in data['modules']] == get_all_module_ids()
    finance = next(c for c in data['categories'] if c['id'] == 'finance')
    assert finance['moduleIds'] == ['sales_management', 'purchase_management', 'financial_management']
    assert [r['value'] for r in data['roles']] == ['admin', 'manager', 'supervisor', 'marketer', 'staff']


def test_modules_require_token(client):
    assert client.get('/api/user/modules').status_code == 401
    assert client.get('/api/modules').status_code == 401
