"""
Report Renderer
===============

Turn a report payload (case details, documents, comments) into PDF or CSV
bytes. The payload is a plain dict built by the job manager:

    {
        "title": str, "description": str | None,
        "requested_by": str, "generated_at": datetime,
        "case": {"id", "title", "description", "status", "created_at"} | None,
        "documents": [{"filename", "mimetype", "uploaded_at"}],
        "comments": [{"author", "text", "created_at"}],
    }
"""

import csv
import io
import textwrap
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any, Dict

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .db.models import ReportFormat


@dataclass
class RenderedReport:
    data: bytes
    content_type: str
    extension: str


def _fmt_dt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return str(value) if value is not None else ""


def build_report_pdf(payload: Dict[str, Any]) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(payload.get("title") or "Report")

    width, height = A4
    y = height - 50

    def draw_text(text: str, size: int = 11, font: str = "Helvetica"):
        nonlocal y
        # Wrap long lines to the printable width
        for line in textwrap.wrap(text, width=int((width - 80) / (size * 0.5))) or [""]:
            if y < 60:
                c.showPage()
                y = height - 50
            c.setFont(font, size)
            c.drawString(40, y, line)
            y -= size + 6

    draw_text(payload.get("title") or "Report", 16, "Helvetica-Bold")
    draw_text(
        f"Generated {_fmt_dt(payload.get('generated_at'))} for {payload.get('requested_by') or 'unknown'}",
        9,
    )
    if payload.get("description"):
        draw_text(payload["description"], 11)

    case = payload.get("case")
    draw_text("Case", 14, "Helvetica-Bold")
    if not case:
        draw_text("No case attached.")
    else:
        draw_text(f"Title: {case.get('title', '')}")
        draw_text(f"Status: {case.get('status', '')}")
        draw_text(f"Opened: {_fmt_dt(case.get('created_at'))}")
        if case.get("description"):
            draw_text(f"Description: {case['description']}")

    documents = payload.get("documents") or []
    draw_text("Documents", 14, "Helvetica-Bold")
    if not documents:
        draw_text("No documents uploaded.")
    for idx, doc in enumerate(documents, start=1):
        draw_text(f"{idx}. {doc.get('filename')} ({doc.get('mimetype')}) {_fmt_dt(doc.get('uploaded_at'))}")

    comments = payload.get("comments") or []
    draw_text("Comments", 14, "Helvetica-Bold")
    if not comments:
        draw_text("No comments.")
    for comment in comments:
        draw_text(f"[{_fmt_dt(comment.get('created_at'))}] {comment.get('author') or 'unknown'}: {comment.get('text')}")

    c.showPage()
    c.save()
    buf.seek(0)
    return buf.read()


def build_report_csv(payload: Dict[str, Any]) -> bytes:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(["section", "field", "value", "timestamp"])
    writer.writerow(["report", "title", payload.get("title") or "", _fmt_dt(payload.get("generated_at"))])
    writer.writerow(["report", "requested_by", payload.get("requested_by") or "", ""])
    if payload.get("description"):
        writer.writerow(["report", "description", payload["description"], ""])

    case = payload.get("case")
    if case:
        for field in ("id", "title", "status", "description"):
            writer.writerow(["case", field, case.get(field) or "", ""])
        writer.writerow(["case", "created_at", "", _fmt_dt(case.get("created_at"))])

    for doc in payload.get("documents") or []:
        writer.writerow(["document", doc.get("mimetype"), doc.get("filename"), _fmt_dt(doc.get("uploaded_at"))])

    for comment in payload.get("comments") or []:
        writer.writerow(["comment", comment.get("author") or "", comment.get("text"), _fmt_dt(comment.get("created_at"))])

    return out.getvalue().encode("utf-8")


class ReportRenderer:
    """Renders payloads in the requested format."""

    def render(self, payload: Dict[str, Any], fmt: ReportFormat) -> RenderedReport:
        fmt = ReportFormat(fmt)
        if fmt == ReportFormat.CSV:
            return RenderedReport(build_report_csv(payload), "text/csv", "csv")
        return RenderedReport(build_report_pdf(payload), "application/pdf", "pdf")
