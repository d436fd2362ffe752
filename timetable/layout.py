"""
Weekly grid layout.

A course meeting several consecutive periods on one day is drawn as a
single block at the first period of the run, spanning the run's length,
instead of once per period. Consecutive means adjacent by position in the
period ordering (… 8, 9, A, B …), not by value.

Public API:
    consecutive_run(course, day, slot, ordered_slots) → Run
    build_grid(selection, days, slots)                → list[GridRow]
    course_category(course_type)                      → str
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from catalog.models import GRID_DAYS, PERIODS, Course

# Course-type tag → colour category. Unknown tags fall back to "default".
CATEGORIES = {
    "▲": "required",
    "★": "elective",
    "◎": "general",
    "□": "other",
}

CATEGORY_COLORS = {
    "required": "#dbeafe",   # blue
    "elective": "#dcfce7",   # green
    "general":  "#fef9c3",   # yellow
    "other":    "#f3e8ff",   # purple
    "default":  "#f3f4f6",   # gray
}


@dataclass(frozen=True)
class Run:
    is_start: bool
    count: int


@dataclass
class Block:
    course: Course
    span: int


@dataclass
class GridCell:
    day: str
    slot: str
    blocks: list[Block] = field(default_factory=list)
    covered: int = 0    # courses whose block started in an earlier row

    @property
    def empty(self) -> bool:
        return not self.blocks and not self.covered


@dataclass
class GridRow:
    slot: str
    cells: list[GridCell]


def course_category(course_type: str) -> str:
    return CATEGORIES.get(course_type, "default")


def course_color(course_type: str) -> str:
    return CATEGORY_COLORS[course_category(course_type)]


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

def consecutive_run(
    course: Course,
    day: str,
    slot: str,
    ordered_slots: Sequence[str] = PERIODS,
) -> Run:
    """
    Describe the run of course on day that contains slot.

    is_start  slot begins a run (the previous label is not a meeting, or
              slot is the first label)
    count     length of the run of meeting labels starting at slot

    A slot that is not a meeting, or not in ordered_slots, gives Run(False, 0).
    """
    meets = set(course.slots(day))
    if slot not in meets or slot not in ordered_slots:
        return Run(is_start=False, count=0)

    idx = list(ordered_slots).index(slot)
    is_start = idx == 0 or ordered_slots[idx - 1] not in meets

    count = 0
    for label in ordered_slots[idx:]:
        if label not in meets:
            break
        count += 1
    return Run(is_start=is_start, count=count)


def build_grid(
    selection: Sequence[Course],
    days: Sequence[str] = GRID_DAYS,
    slots: Sequence[str] = PERIODS,
) -> list[GridRow]:
    """One row per period; each cell holds the blocks that start there."""
    rows: list[GridRow] = []
    for slot in slots:
        cells = []
        for day in days:
            cell = GridCell(day=day, slot=slot)
            for course in selection:
                run = consecutive_run(course, day, slot, slots)
                if not run.count:
                    continue
                if run.is_start:
                    cell.blocks.append(Block(course=course, span=run.count))
                else:
                    cell.covered += 1
            cells.append(cell)
        rows.append(GridRow(slot=slot, cells=cells))
    return rows
