"""Word export: summary and one native table per section, via python-docx."""

from __future__ import annotations

from pathlib import Path

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt

from expense_report.builder import format_amount
from expense_report.exporters.base import ExportSink, format_cell
from expense_report.exporters.registry import register_sink
from expense_report.models import ReportModel, ReportSection

TABLE_STYLE = "Table Grid"
HEADER_SHADING = "E0E0E0"


def _shade(cell, fill: str) -> None:
    shading = OxmlElement("w:shd")
    shading.set(qn("w:val"), "clear")
    shading.set(qn("w:color"), "auto")
    shading.set(qn("w:fill"), fill)
    cell._tc.get_or_add_tcPr().append(shading)


def _bold_row(row) -> None:
    for cell in row.cells:
        for run in cell.paragraphs[0].runs:
            run.font.bold = True


def _add_table(doc, headers: list[str], rows: list[list[str]]):
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = TABLE_STYLE
    for cell, text in zip(table.rows[0].cells, headers):
        cell.text = text
        _shade(cell, HEADER_SHADING)
    _bold_row(table.rows[0])
    for values in rows:
        for cell, text in zip(table.add_row().cells, values):
            cell.text = text
    return table


def _add_summary(doc, model: ReportModel) -> None:
    s = model.summary
    _add_table(
        doc,
        ["", "TWD", "USD"],
        [
            ["Total", format_amount(s.total_twd), format_amount(s.total_usd, 2)],
            ["Personal", format_amount(s.personal_twd), format_amount(s.personal_usd, 2)],
            ["Avg/Day", format_amount(s.avg_day_twd), format_amount(s.avg_day_usd, 2)],
            ["Avg/Day (personal)", format_amount(s.avg_day_personal_twd), format_amount(s.avg_day_personal_usd, 2)],
        ],
    )


def _add_section(doc, section: ReportSection) -> None:
    doc.add_heading(section.title, level=2)
    table = _add_table(
        doc,
        [column.header for column in section.columns],
        [[format_cell(row, column) for column in section.columns] for row in section.rows],
    )
    total = table.add_row()
    total.cells[0].text = "Total"
    total.cells[-1].text = section.total.display
    total.cells[-1].paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.RIGHT
    _bold_row(total)


def build_document(model: ReportModel):
    """Build the Word document for a report model."""
    doc = Document()
    page = doc.sections[0]
    page.orientation = WD_ORIENT.LANDSCAPE
    page.page_width, page.page_height = page.page_height, page.page_width
    doc.styles["Normal"].font.size = Pt(9)

    s = model.summary
    doc.add_heading(f"Business Travel Expense Report - {model.report_id}", level=1)
    meta = doc.add_paragraph()
    meta.add_run(f"User: {model.user or '-'}   ").bold = True
    meta.add_run(f"Days: {s.days:g}   USD rate: {s.rate_usd:g}   Period: {s.period or '-'}")

    _add_summary(doc, model)

    if model.charts.bar:
        grand = s.total_twd or 1
        doc.add_heading("By Category", level=3)
        _add_table(
            doc,
            ["Category", "TWD", "Share"],
            [[e.name, format_amount(e.value), f"{e.value / grand:.0%}"] for e in model.charts.bar],
        )

    for section in model.sections:
        _add_section(doc, section)
    return doc


@register_sink("docx")
class DocxSink(ExportSink):
    extension = "docx"

    def export(self, model: ReportModel, destination: Path) -> Path:
        path = self.target_path(model, destination)
        build_document(model).save(str(path))
        self.log.info("report_exported", path=str(path), tables=len(model.sections) + 1)
        return path
