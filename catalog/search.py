"""
Catalog query contract: free-text filter + code ordering + pagination.

    q      optional, default "" (matches everything)
    page   default 1, clamped to >= 1
    limit  default 50, clamped to [1, 100]

A course matches when its code, Chinese name, English name or any teacher
name contains q, case-insensitively, as a plain substring. Results are
sorted ascending by code and sliced with skip = (page - 1) * limit.

Malformed page/limit values fall back to their defaults before clamping;
they never raise.

Public API:
    normalize_params(q, page, limit) → PageRequest
    matches(course, q)               → bool
    search(store, request)           → CatalogPage
"""

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_PAGE  = 1
DEFAULT_LIMIT = 50
MAX_LIMIT     = 100


@dataclass(frozen=True)
class PageRequest:
    q: str = ""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class CatalogPage:
    courses: list[dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "courses": self.courses,
            "total":   self.total,
            "page":    self.page,
            "limit":   self.limit,
            "pages":   self.pages,
        }


# ---------------------------------------------------------------------------
# Parameter handling
# ---------------------------------------------------------------------------

def _parse_int(raw: Any, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def normalize_params(q: Any = None, page: Any = None, limit: Any = None) -> PageRequest:
    """Turn raw query-string values into a clamped PageRequest."""
    text = "" if q is None else str(q).strip()
    page_n  = max(1, _parse_int(page, DEFAULT_PAGE))
    limit_n = min(MAX_LIMIT, max(1, _parse_int(limit, DEFAULT_LIMIT)))
    return PageRequest(q=text, page=page_n, limit=limit_n)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _haystack(course: dict[str, Any]) -> list[str]:
    name = course.get("name") or {}
    if isinstance(name, str):
        name = {"zh": name}
    fields = [course.get("code") or "", name.get("zh") or "", name.get("en") or ""]
    for t in course.get("teacher") or []:
        if isinstance(t, dict):
            fields.append(t.get("name") or "")
    return [str(f) for f in fields]


def matches(course: dict[str, Any], q: str) -> bool:
    """Case-insensitive substring match over code, both names and teachers."""
    if not q:
        return True
    needle = q.casefold()
    return any(needle in f.casefold() for f in _haystack(course))


def sort_key(course: dict[str, Any]) -> str:
    return str(course.get("code") or "")


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------

def search(store, request: PageRequest) -> CatalogPage:
    """
    Run one paginated catalog read.

    store is any CatalogStore (see catalog.store); errors it raises are
    left to the caller.
    """
    courses = store.find(request.q, skip=request.skip, limit=request.limit)
    total   = store.count(request.q)
    return CatalogPage(courses=courses, total=total, page=request.page, limit=request.limit)
