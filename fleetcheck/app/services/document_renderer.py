"""
Checklist report documents.

``ChecklistReport`` is everything a renderer needs; renderers are pure
functions from a report to bytes. ``ReportLabChecklistRenderer`` produces
the A4 PDF that is archived and served for download.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional, Protocol
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from fleetcheck.app.services.metrics_schema import metric_label

PDF_MIME_TYPE = "application/pdf"

STATUS_LABELS = {"ok": "OK", "issue": "ISSUE", "na": "N/A"}


@dataclass(frozen=True)
class ReportItem:
    label: str
    status: str
    note: str = ""


@dataclass(frozen=True)
class ChecklistReport:
    submission_id: int
    driver_email: str
    date: str
    vehicle_registration: str
    vehicle_model: str
    trailer_number: Optional[str]
    template_name: str
    items: List[ReportItem]
    metrics: Dict[str, Any] = field(default_factory=dict)
    submitted_at: Optional[str] = None

    @property
    def trailer_display(self) -> str:
        return self.trailer_number or "none"

    @property
    def issue_count(self) -> int:
        return sum(1 for item in self.items if item.status == "issue")


class DocumentRenderer(Protocol):
    def render(self, report: ChecklistReport) -> bytes:
        ...


# Styles
styles = getSampleStyleSheet()
title_style = ParagraphStyle(
    "ChecklistTitle",
    parent=styles["Heading1"],
    fontSize=18,
    alignment=1,
    spaceAfter=12,
    textColor=colors.HexColor("#2d3748"),
)
section_style = ParagraphStyle(
    "ChecklistSection",
    parent=styles["Heading2"],
    fontSize=13,
    spaceBefore=10,
    spaceAfter=6,
    textColor=colors.HexColor("#4a5568"),
)
cell_style = ParagraphStyle(
    "ChecklistCell",
    parent=styles["Normal"],
    fontSize=9,
    leading=12,
    textColor=colors.HexColor("#2d3748"),
)

_GRID = [
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#edf2f7")),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
    ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("TOPPADDING", (0, 0), (-1, -1), 4),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
]

_STATUS_COLORS = {
    "ok": colors.HexColor("#c6f6d5"),
    "issue": colors.HexColor("#fed7d7"),
    "na": colors.HexColor("#e2e8f0"),
}


def _p(text: Any) -> Paragraph:
    return Paragraph(escape("" if text is None else str(text)), cell_style)


def _format_metric(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ReportLabChecklistRenderer:
    """Lay out a checklist report as an A4 PDF."""

    def render(self, report: ChecklistReport) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=15 * mm,
            leftMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=f"Daily Vehicle Checklist {report.vehicle_registration} {report.date}",
            author=report.driver_email,
        )

        story = [Paragraph("Daily Vehicle Checklist", title_style)]

        header = [
            ["Date", _p(report.date)],
            ["Driver", _p(report.driver_email)],
            ["Vehicle", _p(f"{report.vehicle_registration} ({report.vehicle_model})")],
            ["Trailer", _p(report.trailer_display)],
            ["Template", _p(report.template_name)],
            ["Report no.", _p(report.submission_id)],
        ]
        if report.submitted_at:
            header.append(["Submitted", _p(report.submitted_at)])
        header_table = Table(header, colWidths=[35 * mm, 145 * mm])
        header_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        story.append(header_table)

        story.append(Paragraph(
            f"Inspection items ({len(report.items)}, issues: {report.issue_count})", section_style
        ))
        rows = [["#", "Item", "Status", "Note"]]
        row_styles = list(_GRID)
        for index, item in enumerate(report.items, start=1):
            rows.append([str(index), _p(item.label), STATUS_LABELS.get(item.status, item.status), _p(item.note)])
            row_styles.append(("BACKGROUND", (2, index), (2, index), _STATUS_COLORS.get(item.status, colors.white)))
        # Long notes may be taller than a page
        items_table = Table(rows, colWidths=[10 * mm, 85 * mm, 20 * mm, 65 * mm], repeatRows=1, splitInRow=1)
        items_table.setStyle(TableStyle(row_styles))
        story.append(items_table)

        story.append(Paragraph("Vehicle metrics", section_style))
        if report.metrics:
            metric_rows = [["Metric", "Value"]]
            for key, value in report.metrics.items():
                metric_rows.append([_p(metric_label(key)), _p(_format_metric(value))])
            metrics_table = Table(metric_rows, colWidths=[60 * mm, 120 * mm], repeatRows=1, splitInRow=1)
            metrics_table.setStyle(TableStyle(_GRID))
            story.append(metrics_table)
        else:
            story.append(Paragraph("No metrics recorded", cell_style))

        story.append(Spacer(1, 12 * mm))
        story.append(Paragraph("Driver signature: ______________________", cell_style))

        doc.build(story)
        return buffer.getvalue()


def get_document_renderer() -> DocumentRenderer:
    """FastAPI dependency returning the report renderer."""
    return ReportLabChecklistRenderer()
