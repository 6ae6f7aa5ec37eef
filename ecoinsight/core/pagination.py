"""
Page/limit parsing shared by the list endpoints.

Query values arrive as raw strings so junk input falls back to defaults
instead of failing validation: non-numeric or <1 page -> 1, non-numeric
limit -> 10, limit clamped to [1, 100]. Page is capped at MAX_PAGE so the
derived skip always fits a 64-bit store integer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fastapi import Query

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_PAGE = 1_000_000


def _parse_int(raw: str | None) -> int | None:
    raw = (raw or "").strip()
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": math.ceil(total / self.limit) if total else 0,
        }


def parse_page(page: str | None, limit: str | None) -> Page:
    parsed_page = _parse_int(page)
    if parsed_page is None or parsed_page < 1:
        parsed_page = DEFAULT_PAGE
    parsed_page = min(parsed_page, MAX_PAGE)

    parsed_limit = _parse_int(limit)
    if parsed_limit is None:
        parsed_limit = DEFAULT_LIMIT
    parsed_limit = max(1, min(parsed_limit, MAX_LIMIT))

    return Page(page=parsed_page, limit=parsed_limit)


def page_params(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
) -> Page:
    return parse_page(page, limit)
