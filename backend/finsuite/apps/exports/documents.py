"""
PDF and Excel rendering for ledgers, reports and salary slips.

Every document starts with the company header taken from settings and the
branding directory, followed by one or more tabular sections. Renderers
return bytes; the *_response helpers wrap them as download attachments.
"""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional, Sequence

from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse

from finsuite.apps.settings.branding import CompanyProfile

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

NO_DATA_TEXT = "No data for the selected filters."
TYPE_REQUIRED_DETAIL = "type is required (pdf or xlsx)"
UNSUPPORTED_TYPE_DETAIL = "Unsupported export type. Use pdf or xlsx."
EXPORT_TYPES = ("pdf", "xlsx")

# 80 mm receipt roll, in points.
THERMAL_PAGE_SIZE = (226, 700)


@dataclass
class Section:
    headers: Sequence[str]
    rows: Sequence[Sequence[Any]]
    title: Optional[str] = None
    empty_text: str = NO_DATA_TEXT


@dataclass
class Sheet:
    name: str
    title: str
    headers: Sequence[str]
    rows: Sequence[Sequence[Any]]


@dataclass
class PdfDocument:
    title: str
    subtitle: Optional[str] = None
    lines: List[str] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    footer_lines: List[str] = field(default_factory=list)
    images: List[Path] = field(default_factory=list)
    thermal: bool = False


def _require(module: str, distribution: str) -> None:
    if importlib.util.find_spec(module) is None:
        raise RuntimeError(
            f"Missing dependency '{distribution}'. Install it with 'pip install {distribution}'."
        )


def export_type(raw: Optional[str], *, supported: Sequence[str] = EXPORT_TYPES, unsupported_detail: str = UNSUPPORTED_TYPE_DETAIL) -> str:
    """Validate the `?type=` of an export request."""
    if not raw:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=TYPE_REQUIRED_DETAIL)
    kind = raw.strip().lower()
    if kind not in supported:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=unsupported_detail)
    return kind


def format_cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, Decimal):
        return f"{value:,.2f}"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _excel_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def safe_filename(value: Optional[str], default: str) -> str:
    cleaned = "-".join((value or "").split())
    return cleaned or default


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


def _company_header(company: CompanyProfile, styles, *, thermal: bool) -> list:
    from reportlab.platypus import Image, Paragraph, Table, TableStyle

    name = Paragraph(company.company_name or "Finance Report", styles["Heading2" if thermal else "Heading1"])
    flowables = []
    if company.logo_path is not None:
        size = 36 if thermal else 56
        try:
            logo = Image(str(company.logo_path), width=size, height=size, kind="proportional")
        except OSError:
            logger.warning("Company logo could not be read", extra={"path": str(company.logo_path)})
            logo = None
        if logo is not None:
            header = Table([[logo, name]], colWidths=[size + 8, None])
            header.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "MIDDLE")]))
            flowables.append(header)
    if not flowables:
        flowables.append(name)
    details = company.detail_parts()
    if details:
        flowables.append(Paragraph("  |  ".join(details), styles["Normal"]))
    return flowables


def _section_table(section: Section, *, thermal: bool):
    from reportlab.lib import colors
    from reportlab.platypus import Table, TableStyle

    data = [list(section.headers)] + [[format_cell(value) for value in row] for row in section.rows]
    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 7 if thermal else 8),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    return table


def render_pdf(company: CompanyProfile, document: PdfDocument) -> bytes:
    _require("reportlab", "reportlab")
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer

    buffer = BytesIO()
    margin = 12 if document.thermal else 40
    pdf = SimpleDocTemplate(
        buffer,
        pagesize=THERMAL_PAGE_SIZE if document.thermal else A4,
        leftMargin=margin,
        rightMargin=margin,
        topMargin=margin,
        bottomMargin=margin,
        title=document.title,
    )
    styles = getSampleStyleSheet()
    story = _company_header(company, styles, thermal=document.thermal)
    story.append(Spacer(1, 8))
    story.append(Paragraph(document.title, styles["Heading3" if document.thermal else "Heading2"]))
    if document.subtitle:
        story.append(Paragraph(document.subtitle, styles["Normal"]))
    for line in document.lines:
        story.append(Paragraph(line, styles["Normal"]))
    story.append(Spacer(1, 10))

    if not document.sections:
        story.append(Paragraph(NO_DATA_TEXT, styles["Italic"]))
    for section in document.sections:
        if section.title:
            story.append(Paragraph(section.title, styles["Heading4"]))
        if section.rows:
            story.append(_section_table(section, thermal=document.thermal))
        else:
            story.append(Paragraph(section.empty_text, styles["Italic"]))
        story.append(Spacer(1, 10))

    for line in document.footer_lines:
        story.append(Paragraph(line, styles["Normal"]))
    for path in document.images:
        story.append(Spacer(1, 6))
        story.append(Image(str(path), width=90, height=45, kind="proportional"))

    pdf.build(story)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------


def _write_company_header(worksheet, company: CompanyProfile, title: str) -> None:
    from openpyxl.styles import Font

    worksheet.append([company.company_name or "Finance Report"])
    worksheet.cell(row=worksheet.max_row, column=1).font = Font(size=14, bold=True)
    for label, value in (
        ("Address", company.address),
        ("Phone", company.phone),
        ("Email", company.email),
        ("Website", company.website),
        ("Tax Number", company.tax_number),
    ):
        if value:
            worksheet.append([label, value])
    worksheet.append(["Report", title])
    worksheet.append([])


def render_xlsx(company: CompanyProfile, sheets: Sequence[Sheet]) -> bytes:
    _require("openpyxl", "openpyxl")
    import openpyxl
    from openpyxl.styles import Font

    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for sheet in sheets:
        worksheet = workbook.create_sheet(title=sheet.name[:31])
        _write_company_header(worksheet, company, sheet.title)
        if sheet.headers:
            worksheet.append(list(sheet.headers))
            for cell in worksheet[worksheet.max_row]:
                cell.font = Font(bold=True)
        for row in sheet.rows:
            worksheet.append([_excel_value(value) for value in row])
        for column in worksheet.columns:
            width = max((len(str(cell.value)) for cell in column if cell.value is not None), default=8)
            worksheet.column_dimensions[column[0].column_letter].width = min(width + 2, 50)
    if not sheets:
        workbook.create_sheet(title="Report").append([NO_DATA_TEXT])

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def attachment(content: bytes, *, filename: str, media_type: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def pdf_response(company: CompanyProfile, document: PdfDocument, *, filename: str) -> StreamingResponse:
    return attachment(render_pdf(company, document), filename=f"{filename}.pdf", media_type=PDF_MEDIA_TYPE)


def xlsx_response(company: CompanyProfile, sheets: Sequence[Sheet], *, filename: str) -> StreamingResponse:
    return attachment(render_xlsx(company, sheets), filename=f"{filename}.xlsx", media_type=XLSX_MEDIA_TYPE)
