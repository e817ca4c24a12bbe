import pytest
from werkzeug.exceptions import Forbidden, Unauthorized

from bakery.constants.modules import Resource
from bakery.constants.roles import Role
from bakery.decorators.auth import require_module, require_page, require_permission
from tests.test_utils_seed import grant_role_permission, seed_and_login


def call_guarded(app, headers, decorator):
    with app.test_request_context(headers=headers):
        return decorator(lambda: 'ok')()


def test_require_permission_super_admin_and_admin(app_instance, client):
    _, root = seed_and_login(client, 'root@example.com', Role.SUPER_ADMIN)
    _, admin = seed_and_login(client, 'admin@example.com', Role.ADMIN)
    assert call_guarded(app_instance, root, require_permission('super_admin', 'write')) == 'ok'
    assert call_guarded(app_instance, admin, require_permission('orders', 'write')) == 'ok'
    with pytest.raises(Forbidden) as exc:
        call_guarded(app_instance, admin, require_permission('super_admin'))
    assert exc.value.description == 'Insufficient permissions: read access to super_admin required'


def test_require_permission_uses_rows_for_other_roles(app_instance, client):
    _, headers = seed_and_login(client, 'st@example.com', Role.STAFF)
    grant_role_permission('staff', 'orders', 'read_write')
    assert call_guarded(app_instance, headers, require_permission('orders', 'write')) == 'ok'
    with pytest.raises(Forbidden):
        call_guarded(app_instance, headers, require_permission('sales', 'read'))


def test_require_module_and_page(app_instance, client):
    _, headers = seed_and_login(client, 'mk@example.com', Role.MARKETER, modules=['sales_management'])
    assert call_guarded(app_instance, headers, require_module('sales_management')) == 'ok'
    assert call_guarded(app_instance, headers, require_page(Resource.SALES)) == 'ok'
    with pytest.raises(Forbidden) as exc:
        call_guarded(app_instance, headers, require_module('hr_management'))
    assert exc.value.description == 'module hr_management not granted'
    with pytest.raises(Forbidden) as exc:
        call_guarded(app_instance, headers, require_page(Resource.PURCHASES, 'write'))
    assert exc.value.description == 'write access to purchases denied'


def test_deactivated_user_rejected(app_instance, client):
    user, headers = seed_and_login(client, 'old@example.com', Role.ADMIN)
    from bakery import get_db
    user.is_active = False
    get_db().commit()
    with pytest.raises(Unauthorized):
        call_guarded(app_instance, headers, require_module('dashboard'))
