from bakery.constants.roles import Role
from tests.test_utils_seed import seed_and_login


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['success'] is False
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_forbidden_shape(client):
    _, headers = seed_and_login(client, 'st@example.com', Role.STAFF)
    resp = client.get('/api/admin/role-modules', headers=headers)
    assert resp.status_code == 403
    body = resp.get_json()
    assert body['error']['title'] == 'Forbidden'
    assert body['error']['detail'] == 'You do not have permission to access this resource'


def test_internal_error_shape(client, monkeypatch):
    _, headers = seed_and_login(client, 'err@example.com', Role.ADMIN)
    # Monkeypatch AFTER login so auth works; only break the grant listing
    import bakery.routes.access as access_mod

    def boom():
        raise RuntimeError('explode')
    monkeypatch.setattr(access_mod, 'list_role_modules', boom)
    resp = client.get('/api/admin/role-modules', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['success'] is False
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert body['error']['detail'] == 'Unexpected error'


def test_healthz(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
