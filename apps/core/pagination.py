"""Page/limit pagination matching the public API contract."""

from __future__ import annotations

import math

from rest_framework.pagination import PageNumberPagination  # type: ignore
from rest_framework.response import Response  # type: ignore


class PagePagination(PageNumberPagination):
    """``?page=2&limit=10`` with ``limit`` capped at 50."""

    page_size = 10
    page_query_param = "page"
    page_size_query_param = "limit"
    max_page_size = 50

    def get_paginated_response(self, data):  # type: ignore
        return Response(
            {
                "success": True,
                "message": "",
                "data": {
                    "results": data,
                    "pagination": self.pagination_meta(),
                },
            }
        )

    def pagination_meta(self) -> dict[str, int]:
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return {
            "page": self.page.number,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }


def paginate_list(items: list, page, limit, *, default_limit: int = 10, max_limit: int = 50) -> dict:
    """Slice an in-memory list the same way ``PagePagination`` slices querysets.

    Search endpoints filter some rows in Python (distance, rating), so they
    cannot hand a queryset to the paginator.
    """

    try:
        page = max(1, int(page or 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or default_limit)
    except (TypeError, ValueError):
        limit = default_limit
    limit = min(max_limit, max(1, limit))

    total = len(items)
    start = (page - 1) * limit
    return {
        "results": items[start:start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }
