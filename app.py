# -----------------------------------------------
# 🗓️ Attendance Tracker (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab (psycopg2-binary for Postgres)
# Mark office days (single click) and holidays (double click); the month is
# saved automatically and summarised per year against the 60% target.

import logging

import streamlit as st

from config import configure_logging, load_settings
from domain import SaveStatus, TargetStatus
from editor import MonthEditor
from repository import AttendanceRepository
from services import AttendanceCalculator, AttendanceEvents, YearlyReport
from utils import attendance_guidance, months_to_dataframe, month_name, yearly_report_pdf

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

TITLE_APP = "Attendance Tracker"
MONTHS = ["January", "February", "March", "April", "May", "June",
          "July", "August", "September", "October", "November", "December"]
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
FIRST_YEAR = 2024

st.set_page_config(page_title=TITLE_APP, page_icon="🗓️", layout="centered")

@st.cache_resource
def get_repo(url: str) -> AttendanceRepository:
    return AttendanceRepository(url, echo=False)

repo = get_repo(settings.database_url)

# =========================
# Per-session state: editor + yearly report share a notifier
# =========================
def _init_session():
    if "editor" in st.session_state:
        return
    calculator = AttendanceCalculator(settings.target_percent)
    events = AttendanceEvents()
    today = settings.today()
    st.session_state["editor"] = MonthEditor(
        repo, calculator, events,
        today=today,
        debounce_seconds=settings.debounce_seconds,
        double_click_seconds=settings.double_click_seconds,
    )
    st.session_state["report"] = YearlyReport(repo, calculator, events, year=today.year)
    logger.info("New session, showing %s", today.strftime("%Y-%m"))

_init_session()
editor: MonthEditor = st.session_state["editor"]
report: YearlyReport = st.session_state["report"]

def available_years() -> list[int]:
    return report.available_years(settings.today().year, FIRST_YEAR)

st.markdown(f"### 🗓️ {TITLE_APP}")
st.caption("Single click: office day · Double click: holiday · Weekends are not counted.")

# =========================
# Month navigation
# =========================
nav_prev, nav_month, nav_year, nav_next = st.columns([1, 3, 2, 1])
nav_prev.button("◀", on_click=editor.previous_month, use_container_width=True, help="Previous month")
nav_next.button("▶", on_click=editor.next_month, use_container_width=True, help="Next month")
chosen_month = nav_month.selectbox(
    "Month", MONTHS, index=editor.current_month.month - 1,
    label_visibility="collapsed", key=f"month_pick_{editor.month_key}",
)
years = available_years()
if editor.current_month.year not in years:
    years.append(editor.current_month.year)
chosen_year = nav_year.selectbox(
    "Year", years, index=years.index(editor.current_month.year),
    label_visibility="collapsed", key=f"year_pick_{editor.month_key}",
)
if MONTHS.index(chosen_month) + 1 != editor.current_month.month:
    editor.set_month(MONTHS.index(chosen_month) + 1)
    st.rerun()
if chosen_year != editor.current_month.year:
    editor.set_year(chosen_year)
    st.rerun()

# =========================
# Calendar grid
# =========================
header = st.columns(7)
for col, name in zip(header, WEEKDAYS):
    col.markdown(f"<div style='text-align:center;color:#6b7280'>{name}</div>", unsafe_allow_html=True)

for week in editor.calendar():
    cols = st.columns(7)
    for col, cell in zip(cols, week):
        if not cell.in_month:
            col.markdown(" ")
            continue
        mark = "🟢" if cell.working else ("🔴" if cell.holiday else "")
        label = f"{mark}{cell.day.day}" + (" •" if cell.today else "")
        col.button(
            label,
            key=f"day_{cell.day.isoformat()}",
            on_click=editor.click,
            args=(cell.day,),
            disabled=not cell.clickable,
            use_container_width=True,
        )

# =========================
# Monthly stats
# =========================
stats = editor.stats
m1, m2, m3, m4, m5 = st.columns(5)
m1.metric("Total Working Days", stats.total_working_days)
m2.metric("Total Holidays", stats.holiday_count)
m3.metric("Required Office Days", stats.required_working_days)
m4.metric("Attendance", f"{stats.attendance_percentage}%")
m5.metric("Remaining Days", stats.remaining_days)
if stats.remaining_days > 0:
    st.info(attendance_guidance(stats, settings.target_percent))
else:
    st.success(attendance_guidance(stats, settings.target_percent))

status_col, clear_col = st.columns([3, 1])
status = editor.status
if status is SaveStatus.SAVING:
    status_col.caption("Saving…")
elif status is SaveStatus.SAVED:
    status_col.caption("✅ Saved")
clear_col.button("Clear", on_click=editor.clear, use_container_width=True)

# =========================
# 📊 Yearly report
# =========================
st.subheader("📊 Yearly Report")
year_options = available_years()
selected_year = st.selectbox(
    "Report year", year_options,
    index=year_options.index(report.year) if report.year in year_options else len(year_options) - 1,
)
if selected_year != report.year:
    report.select_year(selected_year)
else:
    report.reload()
summary = report.summary

y1, y2 = st.columns(2)
y1.metric("Average Attendance", f"{summary.average_attendance}%")
y2.metric("Months Meeting Target", f"{summary.months_above_target} / 12")

df = months_to_dataframe(summary)
st.dataframe(df, use_container_width=True, hide_index=True)

met = [month_name(s.month) for s in summary.slots if s.status is TargetStatus.MET]
if met:
    st.caption("Target met in: " + ", ".join(met))

pdf_bytes = yearly_report_pdf(summary, settings.now())
st.download_button(
    "Download PDF report",
    data=pdf_bytes,
    file_name=f"attendance-report-{summary.year}.pdf",
    mime="application/pdf",
    use_container_width=True,
)
