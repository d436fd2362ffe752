"""
ETL pipeline: loads a raw catalog export, normalises every record through
the Course model, and writes data/courses.json.

Input is a JSON array, typically `mongoexport --jsonArray` output, so
ObjectIds may appear as {"$oid": "..."} and numbers as strings.

Normalisation:
  - all seven day keys present; missing days become []
  - credit/hours parsed; unparsable values become 0 (logged)
  - records without an id or code are dropped
  - duplicate ids: the last record wins
  - output sorted by code, credit/hours written back as strings
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from catalog.models import Course

log = logging.getLogger(__name__)

DATA_DIR    = Path(__file__).parent.parent / "data"
RAW_FILE    = DATA_DIR / "raw_courses.json"
OUTPUT_FILE = DATA_DIR / "courses.json"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load(path: Path) -> list[dict]:
    """Load a JSON array from disk; return [] if the file doesn't exist."""
    if not path.exists():
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    # Some exports wrap the array: {"documents": [...]}
    if isinstance(data, dict):
        data = data.get("documents") or data.get("courses") or []
    return [r for r in data if isinstance(r, dict)]


# ---------------------------------------------------------------------------
# Core normalise
# ---------------------------------------------------------------------------

def normalize_courses(raw: list[dict[str, Any]]) -> list[Course]:
    """Validate, de-duplicate by id and sort by code."""
    index: dict[str, Course] = {}
    dropped = 0

    for record in raw:
        try:
            course = Course.model_validate(record)
        except ValidationError as exc:
            dropped += 1
            log.warning("Dropping record %r: %s", record.get("code"), exc.errors()[0]["msg"])
            continue
        if not course.id or not course.code:
            dropped += 1
            continue
        if course.id in index:
            log.info("Duplicate id %s (%s) — keeping the later record", course.id, course.code)
        index[course.id] = course

    if dropped:
        log.warning("Dropped %d malformed records", dropped)
    return sorted(index.values(), key=lambda c: c.code)


def to_supabase_row(course: Course) -> dict[str, Any]:
    """Row shape for the hosted table: the record plus a flat teacher_names column."""
    return {**course.to_record(), "teacher_names": course.teacher_names()}


# ---------------------------------------------------------------------------
# Entry point (importable, not a CLI)
# ---------------------------------------------------------------------------

def run(raw_path: Path = RAW_FILE, output_path: Path = OUTPUT_FILE) -> list[dict]:
    """Load the raw export, normalise, save courses.json, return the result."""
    raw = load(raw_path)
    courses = [c.to_record() for c in normalize_courses(raw)]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(courses, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    log.info("Wrote %d/%d courses → %s", len(courses), len(raw), output_path)
    return courses
