"""Page/limit query parsing and paginated list payloads."""

from __future__ import annotations

from typing import Callable

from flask import current_app, request


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw) if raw not in (None, "") else default
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def page_params() -> tuple[int, int]:
    """Return (page, limit) from the query string, clamped to sane bounds."""

    default_limit = int(current_app.config.get("PAGINATION_DEFAULT_LIMIT", 10))
    max_limit = int(current_app.config.get("PAGINATION_MAX_LIMIT", 100))
    page = _positive_int(request.args.get("page"), 1)
    limit = min(_positive_int(request.args.get("limit"), default_limit), max_limit)
    return page, limit


def paginate(query, serialize: Callable[[object], dict]) -> dict:
    """Run ``query`` for the requested page and build the list payload."""

    page, limit = page_params()
    result = query.paginate(page=page, per_page=limit, error_out=False, count=True)
    return {
        "items": [serialize(item) for item in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "pages": result.pages,
        },
    }
