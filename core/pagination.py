# core/pagination.py
"""Query-string parsing and pagination envelopes shared by the list endpoints."""

import math
from typing import Any, Dict, Optional, Sequence, Tuple

from core.errors import ValidationError


def parse_int(value: Optional[str], default: int, name: str, minimum: Optional[int] = None) -> int:
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return number


def parse_bool(value: Any, default: Optional[bool] = None) -> Optional[bool]:
    """Booleans arrive as JSON booleans or as 'true'/'false' form strings"""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def page_params(args, default_limit: int = 10, max_limit: Optional[int] = None) -> Tuple[int, int]:
    page = parse_int(args.get('page'), 1, 'page', minimum=1)
    limit = parse_int(args.get('limit'), default_limit, 'limit', minimum=1)
    if max_limit is not None:
        limit = min(limit, max_limit)
    return page, limit


def blog_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'currentPage': page,
        'totalPages': total_pages,
        'totalItems': total,
        'hasNext': page < total_pages,
        'hasPrev': page > 1,
    }


def simple_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if limit else 0,
    }


def slice_page(items: Sequence, page: int, limit: int) -> Sequence:
    start = (page - 1) * limit
    return items[start:start + limit]
