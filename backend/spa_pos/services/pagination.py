# Overview: Page/per_page slicing shared by list endpoints.

from __future__ import annotations

from flask import current_app, has_app_context


def _limits() -> tuple[int, int]:
    if has_app_context():
        return (
            int(current_app.config.get("DEFAULT_PER_PAGE", 20)),
            int(current_app.config.get("MAX_PER_PAGE", 100)),
        )
    return 20, 100


def paginate(query, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Run query with optional pagination.

    Returns a dict with 'items', 'count', and pagination metadata if paginated.
    page=None returns every row.
    """
    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    default_per_page, max_per_page = _limits()
    per_page = min(per_page or default_per_page, max_per_page)
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
