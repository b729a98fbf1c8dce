# utils.py
import io
from datetime import datetime

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain import MonthlyStats, YearlySummary, parse_month_key

REPORT_COLUMNS = ["Month", "Attendance%", "Working Days", "Holidays", "Target Status"]
PLACEHOLDER = "-"


def month_name(yyyy_mm: str) -> str:
    return parse_month_key(yyyy_mm).strftime("%B")

def attendance_guidance(stats: MonthlyStats, target_percent: int = 60) -> str:
    if stats.remaining_days > 0:
        plural = "" if stats.remaining_days == 1 else "s"
        return f"You need {stats.remaining_days} more office day{plural} to meet the {target_percent}% requirement."
    return "You have met the attendance requirement for this month! 🎉"

def months_to_dataframe(summary: YearlySummary) -> pd.DataFrame:
    """One row per month in calendar order; empty cells become '-'."""
    rows = []
    for slot in summary.slots:
        r = slot.record
        has_data = bool(r.working_days)
        rows.append({
            "Month": month_name(r.month),
            "Attendance%": f"{r.attendance_percentage}%" if has_data else PLACEHOLDER,
            "Working Days": len(r.working_days) or PLACEHOLDER,
            "Holidays": len(r.holidays) or PLACEHOLDER,
            "Target Status": slot.status.value,
        })
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)

def yearly_report_pdf(summary: YearlySummary, generated_at: datetime) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, topMargin=36, bottomMargin=36, leftMargin=40, rightMargin=40,
                            title=f"Attendance Report - {summary.year}")
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="ReportTitle", parent=styles["Title"], alignment=TA_LEFT, fontSize=16, leading=20)
    small = ParagraphStyle(name="Small", parent=styles["Normal"], fontSize=10, leading=12)
    heading = ParagraphStyle(name="SummaryHeading", parent=styles["Normal"], fontSize=12, leading=14, spaceBefore=6)
    indented = ParagraphStyle(name="SummaryLine", parent=small, leftIndent=12)

    story = [
        Paragraph(f"Attendance Report - {summary.year}", title_style),
        Paragraph(f"Generated on: {generated_at.strftime('%B %d, %Y %H:%M')}", small),
        Spacer(1, 8),
        Paragraph("Summary:", heading),
        Paragraph(f"Average Attendance: {summary.average_attendance}%", indented),
        Paragraph(f"Target Achievement: {summary.months_above_target} of 12 months met target", indented),
        Spacer(1, 12),
    ]

    df = months_to_dataframe(summary)
    data = [list(df.columns)] + df.astype(str).values.tolist()
    table = Table(data, repeatRows=1, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4F46E5")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 10),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("ALIGN", (1, 0), (-1, -1), "CENTER"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F5F7FA")]),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    story.append(table)

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        margin = 12
        canvas.rect(margin, margin, w - 2*margin, h - 2*margin)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()
