"""
HTTP client for the catalog API, plus a debounced, cancellable search.

CatalogClient is a thin requests wrapper around GET /api/course.

DebouncedSearch collapses rapid keystrokes into one query: every submit()
cancels the previous pending or in-flight task, waits out the debounce
window, then fetches. Only the most recent query's result is delivered, so
a slow earlier response can never overwrite a newer one.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import requests

from catalog.models import Course
from catalog.search import CatalogPage

log = logging.getLogger(__name__)

API_URL = "http://localhost:8000"
DEBOUNCE_DELAY = 0.3   # seconds


class CatalogClientError(Exception):
    def __init__(self, message: str, details: str = "", status: int | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status = status

    def __str__(self) -> str:
        return f"{self.message}: {self.details}" if self.details else self.message


class CatalogClient:
    def __init__(self, base_url: str = API_URL, timeout: float = 30, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout  = timeout
        self.session  = session or requests.Session()

    def search(self, q: str = "", page: int = 1, limit: int = 50) -> CatalogPage:
        url = f"{self.base_url}/api/course"
        try:
            resp = self.session.get(url, params={"q": q, "page": page, "limit": limit}, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise CatalogClientError("Cannot reach the catalog API", str(exc)) from exc

        if not resp.ok:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise CatalogClientError(
                body.get("error") or f"HTTP {resp.status_code}",
                body.get("details", ""),
                status=resp.status_code,
            )

        data = resp.json()
        return CatalogPage(
            courses=data.get("courses", []),
            total=int(data.get("total", 0)),
            page=int(data.get("page", page)),
            limit=int(data.get("limit", limit)),
        )


def parse_courses(page: CatalogPage) -> list[Course]:
    """Typed courses from a page; records that fail validation are skipped."""
    out = []
    for record in page.courses:
        try:
            out.append(Course.model_validate(record))
        except ValueError as exc:
            log.warning("Skipping malformed course %r: %s", record.get("code"), exc)
    return out


# ---------------------------------------------------------------------------
# Debounced search
# ---------------------------------------------------------------------------

class DebouncedSearch:
    """Debounced search for asyncio callers that see every keystroke; the Streamlit page calls CatalogClient directly."""

    def __init__(
        self,
        fetch: Callable[[str, int], Any],
        delay: float = DEBOUNCE_DELAY,
        on_result: Callable[[Any], None] | None = None,
        on_error: Callable[[CatalogClientError], None] | None = None,
    ):
        self.fetch     = fetch
        self.delay     = delay
        self.on_result = on_result
        self.on_error  = on_error
        self.result: Any = None
        self.error: CatalogClientError | None = None
        self._task: asyncio.Task | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, q: str, page: int = 1) -> asyncio.Task:
        """Schedule a search for q, superseding any earlier one. Needs a running loop."""
        if self.pending:
            self._task.cancel()
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(q, page, self._generation))
        return self._task

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def _run(self, q: str, page: int, generation: int) -> Any:
        await asyncio.sleep(self.delay)
        try:
            result = await asyncio.to_thread(self.fetch, q, page)
        except CatalogClientError as exc:
            if generation == self._generation:
                self.error = exc
                if self.on_error:
                    self.on_error(exc)
            return None

        if generation != self._generation:
            log.debug("Discarding superseded result for q=%r", q)
            return None
        self.result, self.error = result, None
        if self.on_result:
            self.on_result(result)
        return result

    async def latest(self) -> Any:
        """Wait for the most recently submitted search and return its result."""
        while self._task is not None:
            task = self._task
            try:
                return await task
            except asyncio.CancelledError:
                if task is self._task:
                    raise
        return None
