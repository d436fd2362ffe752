"""
Streamlit frontend for the course timetable builder.

Searches GET {API_URL}/api/course, lists results with add buttons, keeps
the selection in a schedule Session held in st.session_state, and draws the
weekly timetable from timetable.layout.build_grid.

Run:
    streamlit run frontend/ui.py
"""

import html
import sys
from pathlib import Path

import streamlit as st

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from catalog.models import GRID_DAYS
from frontend.client import CatalogClient, CatalogClientError, parse_courses
from frontend.i18n import conflict_message, t, toggle, weekday
from timetable import engine
from timetable.layout import build_grid, course_color

PAGE_SIZE = 20
ROW_HEIGHT = 64   # px per period row

st.set_page_config(page_title="Course Timetable", layout="wide")

if "session" not in st.session_state:
    st.session_state.session = engine.Session()
if "locale" not in st.session_state:
    st.session_state.locale = "zh"
if "page" not in st.session_state:
    st.session_state.page = 1


@st.cache_resource
def _client() -> CatalogClient:
    return CatalogClient(settings.API_URL)


def _on_add(course) -> None:
    st.session_state.session = engine.add(st.session_state.session, course)


def _on_remove(course_id: str) -> None:
    st.session_state.session = engine.remove(st.session_state.session, course_id)


def _reset_page() -> None:
    st.session_state.page = 1


loc = st.session_state.locale

header, lang = st.columns([6, 1])
header.title(t("title", loc))
if lang.button(t("language", loc)):
    st.session_state.locale = toggle(loc)
    st.rerun()


# ---------------------------------------------------------------------------
# Search + selection
# ---------------------------------------------------------------------------

query = st.text_input(t("search", loc), placeholder=t("search_hint", loc), on_change=_reset_page)

left, right = st.columns(2)

with left:
    st.subheader(t("available", loc))
    with st.spinner(t("loading", loc)):
        try:
            result = _client().search(query.strip(), page=st.session_state.page, limit=PAGE_SIZE)
        except CatalogClientError as exc:
            st.error(t("query_error", loc, message=str(exc)))
            result = None

    if result is not None:
        candidates = parse_courses(result)
        if not candidates:
            st.info(t("no_results", loc))
        for course in candidates:
            st.button(
                f"{course.display_name(loc)} ({course.code})",
                key=f"add-{course.id}",
                on_click=_on_add,
                args=(course,),
            )
        if result.pages > 1:
            st.caption(t("page_info", loc, page=result.page, pages=result.pages, total=result.total))
            prev, nxt = st.columns(2)
            if prev.button(t("prev", loc), disabled=result.page <= 1):
                st.session_state.page -= 1
                st.rerun()
            if nxt.button(t("next", loc), disabled=result.page >= result.pages):
                st.session_state.page += 1
                st.rerun()

session: engine.Session = st.session_state.session

with right:
    st.subheader(t("selected", loc))
    for course in session.selection:
        st.button(
            f"{course.display_name(loc)} ❌",
            key=f"remove-{course.id}",
            on_click=_on_remove,
            args=(course.id,),
        )
    summary = engine.totals(session.selection)
    st.caption(t("totals", loc, credits=summary.total_credits, hours=summary.total_hours))

if session.conflicts:
    st.error("\n\n".join(conflict_message(c, loc) for c in session.conflicts))


# ---------------------------------------------------------------------------
# Weekly grid
# ---------------------------------------------------------------------------

def _render_grid() -> str:
    parts = ['<table style="width:100%;border-collapse:collapse;table-layout:fixed">', "<tr>"]
    parts.append(f'<th style="border:1px solid #ddd;width:4em">{html.escape(t("period", loc))}</th>')
    for day in GRID_DAYS:
        parts.append(f'<th style="border:1px solid #ddd">{html.escape(weekday(day, loc))}</th>')
    parts.append("</tr>")

    for row in build_grid(session.selection):
        parts.append(f'<tr style="height:{ROW_HEIGHT}px">')
        parts.append(f'<td style="border:1px solid #ddd;text-align:center">{row.slot}</td>')
        for cell in row.cells:
            parts.append('<td style="border:1px solid #ddd;vertical-align:top;padding:0;position:relative">')
            for block in cell.blocks:
                c = block.course
                parts.append(
                    f'<div style="position:absolute;left:2px;right:2px;top:2px;'
                    f'height:{block.span * ROW_HEIGHT - 4}px;z-index:1;'
                    f'background:{course_color(c.courseType)};border-radius:4px;padding:4px;overflow:hidden">'
                    f'<b>{html.escape(c.display_name(loc))}</b><br>'
                    f'<small>{html.escape(c.room_names())}</small></div>'
                )
            parts.append("</td>")
        parts.append("</tr>")
    parts.append("</table>")
    return "".join(parts)


st.subheader(t("timetable", loc))
st.markdown(_render_grid(), unsafe_allow_html=True)
