from __future__ import annotations
import hashlib
from typing import Iterable, Optional, Tuple
from flask import request, abort, make_response
from bakery.config.settings import normalize_pagination


def apply_pagination(q) -> Tuple[object, int, int, int]:
    """Apply limit/offset query args to a legacy Query; returns (paged_query, total, limit, offset)."""
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable[int], total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'success': True,
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[str] = None):
    """Build the list response with an ETag; answers 304 when If-None-Match matches."""
    etag = compute_etag([r.get('id') for r in rows], total, limit, offset, latest_ts)
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag:
        resp = make_response('', 304)
    else:
        resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    return resp
