# app/shared/pagination.py
import math
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query

MAX_PAGE_SIZE = 100


def paginate(query: Query, page: int = 1, limit: int = 10) -> Tuple[List[Any], Dict[str, Any]]:
    """
    Apply offset/limit to an ORM query.

    Returns (items, pagination) where pagination carries page, limit, total,
    pages and next/prev page numbers (None at the edges).
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = math.ceil(total / limit) if total else 0

    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "next": page + 1 if page * limit < total else None,
        "prev": page - 1 if page > 1 else None,
    }
