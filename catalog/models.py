"""
Course data model.

One Course per offering, as stored in the catalog snapshot. Numeric fields
arrive string-encoded from the source export ("3.0", "3") and are parsed
here, at the model boundary, so nothing downstream sees raw strings.

Parse fallback: an unparsable credit or hours value becomes 0 and a
warning is logged. Records are never rejected for it.

Fixed vocabulary:
    DAYS       sun..sat, week order
    GRID_DAYS  mon..fri, the days drawn in the weekly grid
    PERIODS    1..9 then A..D, grid order
"""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

log = logging.getLogger(__name__)

DAYS      = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
GRID_DAYS = ("mon", "tue", "wed", "thu", "fri")
PERIODS   = ("1", "2", "3", "4", "5", "6", "7", "8", "9", "A", "B", "C", "D")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_credit(value: Any) -> Decimal | None:
    """Parse a decimal credit value; None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d


def parse_hours(value: Any) -> int | None:
    """Parse integer contact hours; "3" and "3.0" both give 3."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    d = parse_credit(text)
    if d is not None and d == d.to_integral_value():
        return int(d)
    return None


def _object_id(value: Any) -> Any:
    # mongoexport writes ObjectIds as {"$oid": "..."}
    if isinstance(value, dict) and "$oid" in value:
        return value["$oid"]
    return value


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class BilingualName(BaseModel):
    zh: str = ""
    en: str = ""


class Link(BaseModel):
    """A classroom or teacher reference as listed in the catalog."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    code: str = ""
    link: str = ""


class Course(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    code: str
    name: BilingualName = Field(default_factory=BilingualName)
    courseType: str = ""
    credit: Decimal = Decimal(0)
    hours: int = 0
    time: dict[str, list[str]] = Field(default_factory=lambda: {d: [] for d in DAYS})
    classroom: list[Link] = Field(default_factory=list)
    teacher: list[Link] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_mongo_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("_id"):
            data = {**data, "id": _object_id(data["_id"])}
        return data

    @field_validator("id", "code", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        v = _object_id(v)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            return {"zh": v, "en": v}
        return v

    @field_validator("credit", mode="before")
    @classmethod
    def coerce_credit(cls, v: Any, info: ValidationInfo) -> Decimal:
        d = parse_credit(v)
        if d is None:
            log.warning("%s: unparsable credit %r, treating as 0", info.data.get("code", "?"), v)
            return Decimal(0)
        return d

    @field_validator("hours", mode="before")
    @classmethod
    def coerce_hours(cls, v: Any, info: ValidationInfo) -> int:
        h = parse_hours(v)
        if h is None:
            log.warning("%s: unparsable hours %r, treating as 0", info.data.get("code", "?"), v)
            return 0
        return h

    @field_validator("time", mode="before")
    @classmethod
    def fill_days(cls, v: Any) -> dict[str, list[str]]:
        # Exactly the seven day keys; missing days mean no meeting.
        v = v if isinstance(v, dict) else {}
        out: dict[str, list[str]] = {}
        for day in DAYS:
            slots = v.get(day) or []
            if isinstance(slots, str):
                slots = [slots]
            elif not isinstance(slots, (list, tuple)):
                raise ValueError(f"time.{day} must be a list of period labels, got {type(slots).__name__}")
            out[day] = [str(s).strip() for s in slots if str(s).strip()]
        return out

    @field_validator("classroom", "teacher", mode="before")
    @classmethod
    def coerce_links(cls, v: Any) -> list:
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        return v

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def display_name(self, locale: str = "zh") -> str:
        """Name in the given locale, falling back to the other one."""
        primary = self.name.en if locale == "en" else self.name.zh
        return primary or self.name.zh or self.name.en or self.code

    def slots(self, day: str) -> list[str]:
        return self.time.get(day, [])

    def room_names(self) -> str:
        return ", ".join(r.name for r in self.classroom if r.name)

    def teacher_names(self) -> str:
        return ", ".join(t.name for t in self.teacher if t.name)

    def to_record(self) -> dict[str, Any]:
        """JSON-friendly dict with credit/hours back in their string encoding."""
        data = self.model_dump()
        data["credit"] = str(self.credit)
        data["hours"] = str(self.hours)
        return data
