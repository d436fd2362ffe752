"""
Two-locale string table (zh / en), resolved at render time only.

The schedule engine never sees these strings; it reports Conflict values
and the UI turns them into text here.
"""

from typing import Any

from timetable.engine import Conflict, ConflictKind

DEFAULT_LOCALE = "zh"

STRINGS: dict[str, dict[str, str]] = {
    "zh": {
        "title":            "課程選擇",
        "search":           "搜尋課程",
        "search_hint":      "課號、課名或教師",
        "available":        "可選課程",
        "selected":         "已選課程",
        "timetable":        "週課表",
        "period":           "節次",
        "add":              "加入",
        "remove":           "移除",
        "no_results":       "沒有符合的課程",
        "loading":          "搜尋中…",
        "query_error":      "查詢失敗：{message}",
        "totals":           "總學分 {credits}　總時數 {hours}",
        "page_info":        "第 {page} / {pages} 頁，共 {total} 筆",
        "prev":             "上一頁",
        "next":             "下一頁",
        "conflict_time":    "時間衝突：{course} 與 {other}",
        "conflict_dup":     "重複選課：{course}",
        "language":         "English",
        "weekday_prefix":   "週",
    },
    "en": {
        "title":            "Course Selection",
        "search":           "Search courses",
        "search_hint":      "Code, name or teacher",
        "available":        "Available courses",
        "selected":         "Selected courses",
        "timetable":        "Weekly Timetable",
        "period":           "Period",
        "add":              "Add",
        "remove":           "Remove",
        "no_results":       "No matching courses",
        "loading":          "Searching…",
        "query_error":      "Query failed: {message}",
        "totals":           "Total credits {credits} · Total hours {hours}",
        "page_info":        "Page {page} of {pages}, {total} courses",
        "prev":             "Previous",
        "next":             "Next",
        "conflict_time":    "Time conflict: {course} overlaps {other}",
        "conflict_dup":     "Already selected: {course}",
        "language":         "中文",
        "weekday_prefix":   "",
    },
}

WEEKDAYS = {
    "zh": {"sun": "日", "mon": "一", "tue": "二", "wed": "三", "thu": "四", "fri": "五", "sat": "六"},
    "en": {"sun": "Sun", "mon": "Mon", "tue": "Tue", "wed": "Wed", "thu": "Thu", "fri": "Fri", "sat": "Sat"},
}


def _locale(locale: str) -> str:
    return locale if locale in STRINGS else DEFAULT_LOCALE


def t(key: str, locale: str = DEFAULT_LOCALE, **fmt: Any) -> str:
    """Look up key; falls back to the default locale, then to the key itself."""
    table = STRINGS[_locale(locale)]
    text = table[key] if key in table else STRINGS[DEFAULT_LOCALE].get(key, key)
    return text.format(**fmt) if fmt else text


def toggle(locale: str) -> str:
    return "en" if _locale(locale) == "zh" else "zh"


def weekday(day: str, locale: str = DEFAULT_LOCALE) -> str:
    loc = _locale(locale)
    return t("weekday_prefix", loc) + WEEKDAYS[loc].get(day, day)


def conflict_message(conflict: Conflict, locale: str = DEFAULT_LOCALE) -> str:
    course = conflict.course.display_name(locale)
    if conflict.kind is ConflictKind.DUPLICATE:
        return t("conflict_dup", locale, course=course)
    other = conflict.other.display_name(locale) if conflict.other else "?"
    return t("conflict_time", locale, course=course, other=other)
