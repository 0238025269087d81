"""
Activity Tracker
Blueprint registry.
"""

from flask import request


def paginate_query(query, default_per_page=50, max_per_page=200):
    """Apply page/per_page pagination to a SQLAlchemy query.

    Query params:
        page     — page number (default 1)
        per_page — items per page (default 50, capped at max_per_page)

    Returns:
        (items_list, meta_dict)
    """
    page = max(1, request.args.get("page", 1, type=int))
    per_page = min(max_per_page, max(1, request.args.get("per_page", default_per_page, type=int)))
    total = query.count()
    items = query.limit(per_page).offset((page - 1) * per_page).all()
    pages = (total + per_page - 1) // per_page if total else 0
    return items, {"total": total, "page": page, "per_page": per_page, "pages": pages}
