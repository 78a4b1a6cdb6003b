import math

from payout_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from payout_server.errors import ValidationError


def normalize_page(page, limit):
    page = 1 if page is None else int(page)
    limit = DEFAULT_PAGE_LIMIT if limit is None else int(limit)
    if page < 1:
        raise ValidationError("page debe ser >= 1")
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValidationError(f"limit debe estar entre 1 y {MAX_PAGE_LIMIT}")
    return page, limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
