"""
core/export.py -- PDF rendering of audit reports (reportlab platypus).

Section order is fixed: title block (title, audit, status, dates), summary,
scope, methodology, conclusions, observations, recommendations, findings.
Platypus flows long sections onto further pages, so there is no manual
page arithmetic here; every page carries a footer with the page number.

Usage:
    pdf_bytes = render_report_pdf(report)
    Path("report.pdf").write_bytes(pdf_bytes)
"""

from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import Report

_SEVERITY_COLORS = {
    "critical": colors.HexColor("#dc2626"),
    "major": colors.HexColor("#ea580c"),
    "minor": colors.HexColor("#16a34a"),
}


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Heading1"],
            fontSize=18,
            spaceAfter=12,
            alignment=TA_CENTER,
            textColor=colors.darkblue,
        ),
        "heading": ParagraphStyle(
            "ReportSection",
            parent=base["Heading2"],
            fontSize=13,
            spaceBefore=10,
            spaceAfter=6,
            textColor=colors.darkblue,
        ),
        "body": base["Normal"],
        "cell": ParagraphStyle("ReportCell", parent=base["Normal"], fontSize=8, leading=10),
    }


def _paragraphs(text: str, style: ParagraphStyle) -> list[Paragraph]:
    """One Paragraph per line so line breaks in stored text survive."""
    lines = [escape(line) for line in text.splitlines() if line.strip()]
    if not lines:
        return [Paragraph("<i>None.</i>", style)]
    return [Paragraph(line, style) for line in lines]


def _footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.setFillColor(colors.grey)
    canvas.drawRightString(A4[0] - 2 * cm, 1.2 * cm, f"Page {doc.page}")
    canvas.restoreState()


def render_report_pdf(report: Report) -> bytes:
    """Render report as PDF bytes."""
    styles = _styles()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=report.title,
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )
    story: list = []

    # Title block
    story.append(Paragraph(escape(report.title), styles["title"]))
    meta = [
        ["Audit", report.audit_name or "-"],
        ["Status", report.status.value],
        ["Created", report.created_at.date().isoformat()],
        ["Reviewed", report.reviewed_at.date().isoformat() if report.reviewed_at else "-"],
    ]
    meta_table = Table(meta, colWidths=[3.5 * cm, 13.5 * cm])
    meta_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("TEXTCOLOR", (0, 0), (0, -1), colors.darkblue),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    story.append(meta_table)
    story.append(Spacer(1, 12))

    for heading, body in (
        ("Summary", report.summary),
        ("Scope", report.scope),
        ("Methodology", report.methodology),
        ("Conclusions", report.conclusions),
        ("Observations", report.observations),
        ("Recommendations", report.recommendations),
    ):
        story.append(Paragraph(heading, styles["heading"]))
        story.extend(_paragraphs(body, styles["body"]))

    story.append(Paragraph("Findings", styles["heading"]))
    if not report.findings:
        story.append(Paragraph("No findings recorded.", styles["body"]))
    else:
        cell = styles["cell"]
        rows = [["#", "Severity", "Description", "Recommendation", "Due"]]
        for finding in report.findings:
            rows.append(
                [
                    str(finding.number),
                    finding.severity.value,
                    Paragraph(escape(finding.description), cell),
                    Paragraph(escape(finding.recommendation), cell),
                    finding.due_date.date().isoformat() if finding.due_date else "-",
                ]
            )
        table = Table(rows, colWidths=[1 * cm, 2 * cm, 6 * cm, 6 * cm, 2 * cm], repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.darkblue),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ]
        for row_index, finding in enumerate(report.findings, start=1):
            color = _SEVERITY_COLORS.get(finding.severity.value)
            if color is not None:
                style.append(("TEXTCOLOR", (1, row_index), (1, row_index), color))
        table.setStyle(TableStyle(style))
        story.append(table)

    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    return buffer.getvalue()
