"""HTTP client for the access endpoints, used by admin tooling and the session/editor helpers."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

logger = logging.getLogger(__name__)


class GrantStoreError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f'HTTP {response.status_code}'
    if isinstance(body, dict):
        err = body.get('error')
        if isinstance(err, dict) and err.get('detail'):
            return str(err['detail'])
        for key in ('message', 'msg'):
            if body.get(key):
                return str(body[key])
    return f'HTTP {response.status_code}'


class GrantStoreClient:
    """Thin wrapper over an ``httpx.Client`` pointed at the API root.

    Every non-2xx response is raised as GrantStoreError carrying the server's
    error detail; transport failures are raised the same way with no status.
    """

    def __init__(self, http: httpx.Client):
        self.http = http

    @classmethod
    def connect(cls, base_url: str, token: Optional[str] = None, timeout: float = 10.0) -> 'GrantStoreClient':
        headers = {'Authorization': f'Bearer {token}'} if token else {}
        return cls(httpx.Client(base_url=base_url, headers=headers, timeout=timeout))

    def close(self):
        self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error('Request %s %s failed: %s', method, path, e)
            raise GrantStoreError(f'Request failed: {e}') from e
        if response.is_error:
            message = _error_message(response)
            logger.warning('%s %s -> %d: %s', method, path, response.status_code, message)
            raise GrantStoreError(message, response.status_code)
        return response.json()

    def login(self, email: str, password: str) -> str:
        token = self._request('POST', '/api/auth/login', json={'email': email, 'password': password})['access_token']
        self.http.headers['Authorization'] = f'Bearer {token}'
        return token

    def me(self) -> Dict[str, Any]:
        return self._request('GET', '/api/auth/me')['data']

    def user_modules(self) -> List[str]:
        return list(self._request('GET', '/api/user/modules')['data']['moduleIds'])

    def list_role_modules(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/admin/role-modules')['data']

    def role_modules(self, role: str) -> List[Dict[str, Any]]:
        return self._request('GET', f'/api/admin/role-modules/{role}')['data']

    def save_role_modules(self, role: str, module_ids: Iterable[str]) -> Dict[str, Any]:
        return self._request('POST', '/api/admin/role-modules',
                             json={'role': role, 'moduleIds': list(module_ids)})['data']

    def module_catalog(self) -> Dict[str, Any]:
        return self._request('GET', '/api/modules')['data']
