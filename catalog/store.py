"""
Read-only catalog stores.

Two backends share one small interface:

    find(q, skip, limit) → list[dict]   filtered, sorted by code
    count(q)             → int          matches before pagination
    all()                → list[dict]   every record
    ping()                              raises if the store is unreachable

JsonCatalogStore serves the data/courses.json snapshot written by the ETL
pipeline. SupabaseCatalogStore reads a hosted table and expects, besides
the course columns, a flattened `teacher_names` text column so teacher
search can run server-side.

Every backend call goes through query_with_retry(): a small fixed number
of attempts with a fixed delay, then CatalogUnavailable.
"""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from catalog.search import matches, sort_key

log = logging.getLogger(__name__)

T = TypeVar("T")

DATA_DIR     = Path(__file__).parent.parent / "data"
COURSES_FILE = DATA_DIR / "courses.json"

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY    = 1.0   # seconds, fixed between attempts


class CatalogError(Exception):
    """Base class for catalog read failures."""


class CatalogUnavailable(CatalogError):
    """The store could not be reached after all retry attempts."""


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------

def query_with_retry(
    call: Callable[[], T],
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run call(); retry on any exception with a fixed delay between tries."""
    attempts = max(1, attempts)
    last_exc: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return call()
        except Exception as exc:
            last_exc = exc
            log.warning("Catalog read failed (attempt %d/%d): %s", attempt, attempts, exc)
            if attempt < attempts:
                sleep(delay)
    raise CatalogUnavailable(f"catalog store unreachable after {attempts} attempts: {last_exc}") from last_exc


# ---------------------------------------------------------------------------
# JSON snapshot
# ---------------------------------------------------------------------------

class JsonCatalogStore:
    def __init__(
        self,
        path: Path = COURSES_FILE,
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = DEFAULT_DELAY,
    ):
        self.path     = Path(path)
        self.attempts = attempts
        self.delay    = delay
        self._courses: list[dict[str, Any]] | None = None

    @classmethod
    def from_courses(cls, courses: list[dict[str, Any]]) -> "JsonCatalogStore":
        """In-memory store, mostly for tests and the ETL preview."""
        store = cls(path=Path("<memory>"))
        store._courses = sorted(courses, key=sort_key)
        return store

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            raise FileNotFoundError(f"catalog snapshot not found at {self.path}. Run the ETL pipeline first.")
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{self.path.name} must hold a JSON array, got {type(data).__name__}")
        return sorted(data, key=sort_key)

    def _load(self) -> list[dict[str, Any]]:
        if self._courses is None:
            self._courses = query_with_retry(self._read, self.attempts, self.delay)
            log.info("Loaded %d courses from %s", len(self._courses), self.path.name)
        return self._courses

    def reload(self) -> None:
        self._courses = None
        self._load()

    def ping(self) -> None:
        self._load()

    def _filtered(self, q: str) -> list[dict[str, Any]]:
        return [c for c in self._load() if matches(c, q)]

    def find(self, q: str = "", skip: int = 0, limit: int = 50) -> list[dict[str, Any]]:
        return self._filtered(q)[skip:skip + limit]

    def count(self, q: str = "") -> int:
        return len(self._filtered(q))

    def all(self) -> list[dict[str, Any]]:
        return list(self._load())


# ---------------------------------------------------------------------------
# Supabase
# ---------------------------------------------------------------------------

def _ilike_pattern(q: str) -> str | None:
    # PostgREST or-filter syntax reserves , ( ) and uses * as the wildcard.
    # None when nothing searchable is left.
    cleaned = "".join(ch for ch in q if ch not in ",()*%").strip()
    return f"*{cleaned}*" if cleaned else None


class SupabaseCatalogStore:
    SEARCH_COLUMNS = ("code", "name->>zh", "name->>en", "teacher_names")

    def __init__(
        self,
        client,
        table: str = "courses",
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = DEFAULT_DELAY,
    ):
        self.client   = client
        self.table    = table
        self.attempts = attempts
        self.delay    = delay

    @classmethod
    def connect(cls, url: str, key: str, **kwargs) -> "SupabaseCatalogStore":
        from supabase import create_client
        return cls(create_client(url, key), **kwargs)

    def _select(self, q: str, columns: str = "*", count: str | None = None):
        query = self.client.table(self.table).select(columns, count=count)
        if q:
            pattern = _ilike_pattern(q)
            query = query.or_(",".join(f"{col}.ilike.{pattern}" for col in self.SEARCH_COLUMNS))
        return query

    def _run(self, build: Callable[[], Any]) -> Any:
        return query_with_retry(lambda: build().execute(), self.attempts, self.delay)

    def ping(self) -> None:
        self._run(lambda: self.client.table(self.table).select("id", count="exact").range(0, 0))

    def find(self, q: str = "", skip: int = 0, limit: int = 50) -> list[dict[str, Any]]:
        if q and _ilike_pattern(q) is None:
            return []
        resp = self._run(
            lambda: self._select(q).order("code", desc=False).range(skip, skip + limit - 1)
        )
        return [_strip_row(r) for r in resp.data or []]

    def count(self, q: str = "") -> int:
        if q and _ilike_pattern(q) is None:
            return 0
        resp = self._run(lambda: self._select(q, "id", count="exact").range(0, 0))
        return int(getattr(resp, "count", 0) or 0)

    def all(self, chunk: int = 1000) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        start = 0
        while True:
            resp = self._run(
                lambda: self._select("").order("code", desc=False).range(start, start + chunk - 1)
            )
            rows = resp.data or []
            out.extend(_strip_row(r) for r in rows)
            if len(rows) < chunk:
                break
            start += chunk
        return out


def _strip_row(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in row.items() if k != "teacher_names"}
