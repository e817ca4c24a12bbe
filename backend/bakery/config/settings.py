"""Environment-driven defaults consumed by ``create_app``.

Values are read at app creation time (after ``load_dotenv()``), so tests may
set environment variables or pass an override dict to the factory.
"""
from __future__ import annotations
import os
from typing import Any, Dict

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}')


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def settings_from_env() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        # Staleness window for a user's granted module ids (server cache + client session)
        'USER_MODULES_STALE_SECONDS': _int_env('USER_MODULES_STALE_SECONDS', 60),
        'USER_MODULES_CACHE_SIZE': _int_env('USER_MODULES_CACHE_SIZE', 1024),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        # Roles without an allow-list entry consult fine-grained permission rows
        'AUTHZ_FALLBACK_PERMISSIONS': _bool_env('AUTHZ_FALLBACK_PERMISSIONS', True),
    }


def normalize_pagination(limit_raw, offset_raw):
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
