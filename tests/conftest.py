import pytest

from catalog.models import DAYS, Course


def course_record(id, code, zh="", en="", credit="3.0", hours="3", course_type="▲", teachers=(), **time):
    """Raw catalog record as it appears in the store."""
    return {
        "id": id,
        "code": code,
        "name": {"zh": zh or f"課程{code}", "en": en or f"Course {code}"},
        "courseType": course_type,
        "credit": credit,
        "hours": hours,
        "time": {d: list(time.get(d, [])) for d in DAYS},
        "classroom": [],
        "teacher": [{"name": n, "code": "", "link": ""} for n in teachers],
    }


@pytest.fixture
def make_course():
    """Factory for typed Course objects: make_course("1", "A001", thu=["3", "4"])."""
    def _make(id, code=None, **kwargs):
        return Course.model_validate(course_record(id, code or f"C{id}", **kwargs))
    return _make
