from __future__ import annotations

import math
from typing import Any, Dict, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from casedesk.app.domain.contracts import Pagination
from casedesk.app.domain.errors import CaseValidationError

LIKE_ESCAPE = "/"


def contains_pattern(term: str) -> str:
    """ILIKE pattern matching term as a literal substring; use with escape=LIKE_ESCAPE."""
    escaped = term.replace("/", "//").replace("%", "/%").replace("_", "/_")
    return f"%{escaped}%"


def paginate(
    db: Session,
    stmt,
    pagination: Pagination,
    *,
    sort_columns: Mapping[str, Any],
    default_sort: str,
    default_order: str,
    tiebreak,
) -> Dict[str, Any]:
    """
    Run a filtered select as one page.

    Returns {items, page, limit, total, total_pages}; total counts every row
    matching stmt, and total_pages = ceil(total / limit).
    """
    sort_by = pagination.sort_by or default_sort
    column = sort_columns.get(sort_by)
    if column is None:
        allowed = ", ".join(sorted(sort_columns))
        raise CaseValidationError(f"cannot sort by '{sort_by}' (allowed: {allowed})")
    order = pagination.sort_order or default_order
    ordering = column.asc() if order == "asc" else column.desc()

    total = int(
        db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one() or 0
    )
    items = (
        db.execute(
            stmt.order_by(ordering, tiebreak.asc())
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        .scalars()
        .all()
    )
    return {
        "items": list(items),
        "page": pagination.page,
        "limit": pagination.limit,
        "total": total,
        "total_pages": math.ceil(total / pagination.limit),
    }
