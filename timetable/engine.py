"""
Schedule engine: conflict detection and the per-session course selection.

A Session is an immutable value holding the selected courses (insertion
order = display order) and the conflict report of the last add/remove.
add() and remove() return a new Session; nothing is kept in module state.

Conflict rule: two courses conflict when, on some day, they list the same
period label. Labels are compared as opaque tokens, not as time ranges.

Public API:
    time_conflict(a, b)      → bool
    add(session, course)     → Session
    remove(session, id)      → Session
    totals(selection)        → Totals
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from catalog.models import DAYS, Course


class ConflictKind(str, Enum):
    DUPLICATE = "duplicate"
    TIME      = "time"


@dataclass(frozen=True)
class Conflict:
    kind: ConflictKind
    course: Course
    other: Course | None = None

    def __str__(self) -> str:
        if self.kind is ConflictKind.DUPLICATE:
            return f"Duplicate selection: {_label(self.course)} is already in your schedule"
        return f"Time conflict: {_label(self.course)} overlaps {_label(self.other)}"


def _label(course: Course | None) -> str:
    if course is None:
        return "?"
    return f"{course.display_name('en')} ({course.code})"


@dataclass(frozen=True)
class Session:
    selection: tuple[Course, ...] = ()
    conflicts: tuple[Conflict, ...] = ()

    @property
    def messages(self) -> list[str]:
        return [str(c) for c in self.conflicts]

    def ids(self) -> list[str]:
        return [c.id for c in self.selection]

    def __contains__(self, course_id: object) -> bool:
        return any(c.id == course_id for c in self.selection)


@dataclass(frozen=True)
class Totals:
    total_credits: Decimal = Decimal(0)
    total_hours: int = 0


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

def time_conflict(a: Course, b: Course) -> bool:
    """True iff a and b share at least one (day, period label) pair."""
    for day in DAYS:
        if set(a.slots(day)) & set(b.slots(day)):
            return True
    return False


def find_conflict(selection: Iterable[Course], course: Course) -> Course | None:
    """First selected course that clashes with course, or None."""
    for selected in selection:
        if time_conflict(selected, course):
            return selected
    return None


# ---------------------------------------------------------------------------
# Selection mutation
# ---------------------------------------------------------------------------

def add(session: Session, course: Course) -> Session:
    """
    Try to append course to the selection.

    Duplicate ids and time conflicts are rejected: the selection is left
    unchanged and the returned session carries one Conflict explaining why.
    """
    session = replace(session, conflicts=())

    if course.id in session:
        return replace(session, conflicts=(Conflict(ConflictKind.DUPLICATE, course),))

    clash = find_conflict(session.selection, course)
    if clash is not None:
        return replace(session, conflicts=(Conflict(ConflictKind.TIME, course, clash),))

    return Session(selection=session.selection + (course,))


def remove(session: Session, course_id: str) -> Session:
    return Session(selection=tuple(c for c in session.selection if c.id != course_id))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def totals(selection: Iterable[Course]) -> Totals:
    credits = Decimal(0)
    hours = 0
    for c in selection:
        credits += c.credit
        hours += c.hours
    return Totals(total_credits=credits, total_hours=hours)
