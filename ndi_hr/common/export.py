"""Excel and PDF rendering helpers.

``ExcelExportService`` turns a header row plus value rows into an .xlsx file;
``PDFExportService`` renders a titled key/value document (used for leave
applications).
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_COLOR = "1F4E79"


class ExcelExportService:
    """Build single-sheet workbooks with a styled header row."""

    @staticmethod
    def style_header_row(worksheet, row_num: int = 1) -> None:
        header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF")
        for cell in worksheet[row_num]:
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center", vertical="center")

    @staticmethod
    def auto_size_columns(worksheet) -> None:
        for column in worksheet.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max(
                (len(str(cell.value)) for cell in column if cell.value is not None),
                default=0,
            )
            worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)

    @staticmethod
    def build_workbook(
        sheet_title: str,
        headers: Sequence[str],
        rows: Iterable[Sequence[Any]],
    ) -> bytes:
        """Return the bytes of an .xlsx file with ``headers`` on row 1."""
        wb = openpyxl.Workbook()
        ws = wb.active
        # Excel caps sheet titles at 31 characters
        ws.title = sheet_title[:31]

        ws.append(list(headers))
        ExcelExportService.style_header_row(ws, 1)
        for row in rows:
            ws.append(list(row))
        ws.freeze_panes = "A2"

        ExcelExportService.auto_size_columns(ws)

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        return output.getvalue()


class PDFExportService:
    """Render simple titled documents with a two-column detail table."""

    @staticmethod
    def render_detail_document(
        title: str,
        subtitle: str,
        fields: Sequence[tuple[str, str]],
        footer: str | None = None,
    ) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, title=title)
        elements = []

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "DocumentTitle",
            parent=styles["Heading1"],
            fontSize=16,
            textColor=colors.HexColor(f"#{HEADER_COLOR}"),
            alignment=TA_CENTER,
        )
        elements.append(Paragraph(title, title_style))
        elements.append(Spacer(1, 0.15 * inch))
        elements.append(Paragraph(subtitle, styles["Normal"]))
        elements.append(Spacer(1, 0.3 * inch))

        body_style = styles["BodyText"]
        data = [
            [Paragraph(f"<b>{label}</b>", body_style), Paragraph(_escape(value), body_style)]
            for label, value in fields
        ]
        table = Table(data, colWidths=[1.8 * inch, 4.6 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#EAF1F8")),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
        ]))
        elements.append(table)

        elements.append(Spacer(1, 0.4 * inch))
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        elements.append(Paragraph(footer or f"Generated {generated}", styles["Italic"]))

        doc.build(elements)
        buffer.seek(0)
        return buffer.getvalue()


def _escape(value: str) -> str:
    # reportlab Paragraph parses a mini-markup
    return (
        (value or "")
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\n", "<br/>")
    )
