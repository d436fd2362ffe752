"""
FastAPI application — the catalog query service.

Run as a script to build the catalog snapshot (if missing) then serve:
    python app/app.py

Or run as a module if data is already built:
    uvicorn app.app:app --reload

Startup:
    1. If data/courses.json is missing and a raw export exists, run the
       ETL pipeline to normalise it.
    2. Attach a catalog store to app.state: Supabase when SUPABASE_URL and
       a key are set, otherwise the JSON snapshot.

Endpoints:
    GET /api/course?q=&page=&limit=
        returns: {"courses": [...], "total": int, "page": int, "limit": int, "pages": int}
        on failure (500): {"error": str, "details": str, "timestamp": ISO-8601}
    GET /api/collection
        returns: {"documents": [...]}
    GET /healthz

Logs each query and wall-clock response time to stdout and logs/app.log
(rotating, 5 MB max, 3 backups).
"""

import asyncio
import logging
import logging.handlers
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

# Running as a script (python app/app.py) puts app/ itself at sys.path[0], where
# app.py would shadow the app package; swap it for the project root.
if __name__ == "__main__":
    sys.path[0] = str(Path(__file__).parent.parent)

from app.config import settings
from catalog.models import Course
from catalog.search import normalize_params, search
from catalog.store import JsonCatalogStore, SupabaseCatalogStore

LOG_DIR  = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "app.log"

def _setup_logging() -> None:
    LOG_DIR.mkdir(exist_ok=True)
    fmt = logging.Formatter("%(asctime)s  %(levelname)s  %(message)s")

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)

    # Rotate at 5 MB, keep 3 backups
    rotating = logging.handlers.RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
    root.addHandler(stream)
    root.addHandler(rotating)

_setup_logging()
log = logging.getLogger("api")


# ---------------------------------------------------------------------------
# Data + store
# ---------------------------------------------------------------------------

def _ensure_data() -> None:
    """Build the JSON snapshot from a raw export if it is missing."""
    if settings.use_supabase:
        log.info("Supabase configured — skipping local snapshot check.")
        return

    if settings.CATALOG_FILE.exists():
        log.info("%s exists — skipping ETL.", settings.CATALOG_FILE.name)
        return

    if not settings.RAW_CATALOG_FILE.exists():
        log.warning(
            "%s missing and no raw export at %s — catalog reads will fail.",
            settings.CATALOG_FILE.name, settings.RAW_CATALOG_FILE,
        )
        return

    log.info("%s missing — running ETL pipeline…", settings.CATALOG_FILE.name)
    from etl.pipeline import run as run_pipeline
    courses = run_pipeline(settings.RAW_CATALOG_FILE, settings.CATALOG_FILE)
    log.info("  Normalised %d courses → %s", len(courses), settings.CATALOG_FILE.name)


def _build_store():
    if settings.use_supabase:
        log.info("Using Supabase table %r", settings.CATALOG_TABLE)
        return SupabaseCatalogStore.connect(
            settings.SUPABASE_URL,
            settings.SUPABASE_KEY,
            table=settings.CATALOG_TABLE,
            attempts=settings.CATALOG_RETRIES,
            delay=settings.CATALOG_RETRY_DELAY,
        )
    log.info("Using JSON snapshot %s", settings.CATALOG_FILE)
    return JsonCatalogStore(
        settings.CATALOG_FILE,
        attempts=settings.CATALOG_RETRIES,
        delay=settings.CATALOG_RETRY_DELAY,
    )


# ---------------------------------------------------------------------------
# App + lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests attach their own store before startup.
    if getattr(app.state, "store", None) is None:
        _ensure_data()
        app.state.store = _build_store()
    try:
        app.state.store.ping()
        log.info("  Catalog store ready.")
    except Exception as exc:
        log.warning("  Catalog store not reachable at startup: %s", exc)

    yield  # server runs here


app = FastAPI(title="Course Timetable Catalog", lifespan=lifespan)

allowed_origins = [
    "http://localhost:8501",
    "http://127.0.0.1:8501",
    "http://localhost:3000",
]
for origin in settings.FRONTEND_ORIGIN.split(","):
    if origin.strip():
        allowed_origins.append(origin.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class CoursePage(BaseModel):
    courses: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    pages: int


class ErrorBody(BaseModel):
    error: str
    details: str
    timestamp: str


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(error: str, exc: Exception) -> JSONResponse:
    body = ErrorBody(error=error, details=str(exc) or type(exc).__name__, timestamp=_timestamp())
    return JSONResponse(
        status_code=500,
        content=body.model_dump(),
        headers={"Cache-Control": "no-store"},
    )


def _normalise(record: dict[str, Any]) -> dict[str, Any]:
    """Course-shaped output; records the model rejects pass through as-is."""
    try:
        return Course.model_validate(record).to_record()
    except ValidationError as exc:
        log.warning("Malformed course record %r: %s", record.get("code"), exc.errors()[:1])
        return {k: v for k, v in record.items() if k != "_id"}


def _get_store(request: Request):
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = _build_store()
        request.app.state.store = store
    return store


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/course", response_model=CoursePage, responses={500: {"model": ErrorBody}})
def list_courses(
    request: Request,
    q: str | None = None,
    page: str | None = None,
    limit: str | None = None,
):
    # page/limit arrive as raw strings so malformed values fall back to defaults.
    params = normalize_params(q, page, limit)
    t0 = time.perf_counter()

    try:
        result = search(_get_store(request), params)
    except Exception as exc:
        log.error("Catalog query failed: q=%r page=%d limit=%d: %s", params.q, params.page, params.limit, exc)
        return _error_response("Catalog query failed", exc)

    result.courses = [_normalise(c) for c in result.courses]

    elapsed = time.perf_counter() - t0
    log.info(
        "q=%r  page=%d  limit=%d  hits=%d/%d  %.3fs",
        params.q, params.page, params.limit, len(result.courses), result.total, elapsed,
    )
    return CoursePage(**result.to_dict())


@app.get("/api/collection")
def list_collection(request: Request):
    try:
        documents = _get_store(request).all()
    except Exception as exc:
        log.error("Collection dump failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch data"})
    return {"documents": [_normalise(c) for c in documents]}


@app.get("/healthz")
def healthz(request: Request):
    try:
        store = _get_store(request)
        store.ping()
        count = store.count("")
    except Exception as exc:
        log.warning("[healthz] store check failed: %s", exc)
        return JSONResponse(status_code=503, content={"ok": False, "courses": -1})
    return {"ok": True, "courses": count}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _launch_server() -> None:
    config = uvicorn.Config(app, host="0.0.0.0", port=8000, reload=False)
    server = uvicorn.Server(config)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        uvicorn.run(app, host="0.0.0.0", port=8000, reload=False)
        return

    log.warning(
        "Detected an existing asyncio event loop; serving with create_task() instead of asyncio.run()."
    )
    asyncio.create_task(server.serve())


if __name__ == "__main__":
    log.info("=== Course Timetable Catalog — starting up ===")
    _ensure_data()
    log.info("=== Catalog ready — launching server on http://0.0.0.0:8000 ===")
    _launch_server()
