from __future__ import annotations

import math

from pydantic import BaseModel


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_items=total,
        limit=limit,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
