"""
Page/limit pagination shared by the chat and notification APIs.

Query parameters:
    page: 1-indexed page number (default 1)
    limit: Items per page (default 20, max 100)

Response shape:
    {
        "success": true,
        "data": [...],
        "pagination": {"total": 42, "page": 2, "pages": 3, "limit": 20}
    }

Extra top-level keys (e.g. ``unreadCount``) can be merged in by the view
through ``get_paginated_response(data, extra=...)``.
"""

from __future__ import annotations

import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PageLimitPagination(PageNumberPagination):
    """Page-number pagination driven by ``page`` and ``limit``."""

    page_size = 20
    max_page_size = 100
    page_query_param = "page"
    page_size_query_param = "limit"

    def get_pagination_meta(self) -> dict:
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return {
            "total": total,
            "page": self.page.number,
            "pages": math.ceil(total / limit) if limit else 0,
            "limit": limit,
        }

    def get_paginated_response(self, data, extra: dict | None = None):
        body = {"success": True, "data": data}
        if extra:
            body.update(extra)
        body["pagination"] = self.get_pagination_meta()
        return Response(body)

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "data": schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "total": {"type": "integer"},
                        "page": {"type": "integer"},
                        "pages": {"type": "integer"},
                        "limit": {"type": "integer"},
                    },
                },
            },
        }
