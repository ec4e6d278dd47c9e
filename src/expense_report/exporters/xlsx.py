"""Excel export: a summary sheet plus one sheet per section."""

from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from expense_report.exporters.base import ExportSink, cell_value
from expense_report.exporters.registry import register_sink
from expense_report.models import ReportModel, ReportSection

HEADER_FONT = Font(name="Arial", bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
BOLD = Font(name="Arial", bold=True)
THIN = Side(style="thin", color="BFBFBF")
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
TWD_FORMAT = "#,##0"
NUMBER_FORMAT = "#,##0.##"

# Excel sheet titles are limited to 31 characters
MAX_SHEET_TITLE = 31


def _style_header(ws, row: int, count: int) -> None:
    for col in range(1, count + 1):
        cell = ws.cell(row=row, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = BORDER


def _write_summary(ws, model: ReportModel) -> None:
    summary = model.summary
    ws.title = "Summary"
    ws.cell(row=1, column=1, value="Business Travel Expense Report").font = Font(name="Arial", bold=True, size=14)
    meta = [
        ("Report ID", model.report_id),
        ("User", model.user),
        ("Period", summary.period),
        ("Days", summary.days),
        ("USD Rate", summary.rate_usd),
    ]
    row = 3
    for label, value in meta:
        ws.cell(row=row, column=1, value=label).font = BOLD
        ws.cell(row=row, column=2, value=value)
        row += 1

    row += 1
    for col, name in enumerate(["Category", "TWD"], start=1):
        ws.cell(row=row, column=col, value=name)
    _style_header(ws, row, 2)
    for category, total in model.category_totals.items():
        row += 1
        ws.cell(row=row, column=1, value=category.label).border = BORDER
        cell = ws.cell(row=row, column=2, value=total)
        cell.number_format = TWD_FORMAT
        cell.border = BORDER

    row += 2
    for col, name in enumerate(["", "TWD", "USD"], start=1):
        ws.cell(row=row, column=col, value=name)
    _style_header(ws, row, 3)
    figures = [
        ("Total", summary.total_twd, summary.total_usd),
        ("Personal", summary.personal_twd, summary.personal_usd),
        ("Avg/Day", summary.avg_day_twd, summary.avg_day_usd),
        ("Avg/Day (personal)", summary.avg_day_personal_twd, summary.avg_day_personal_usd),
    ]
    for label, twd, usd in figures:
        row += 1
        ws.cell(row=row, column=1, value=label).font = BOLD
        ws.cell(row=row, column=2, value=twd).number_format = TWD_FORMAT
        ws.cell(row=row, column=3, value=usd).number_format = "#,##0.00"

    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 16
    ws.column_dimensions["C"].width = 14


def _write_section(ws, section: ReportSection) -> None:
    ws.title = section.category.label[:MAX_SHEET_TITLE]
    for col, column in enumerate(section.columns, start=1):
        ws.cell(row=1, column=col, value=column.header)
        ws.column_dimensions[get_column_letter(col)].width = max(12, len(column.header) + 4)
    _style_header(ws, 1, len(section.columns))
    ws.freeze_panes = "A2"

    for r, item in enumerate(section.rows, start=2):
        for col, column in enumerate(section.columns, start=1):
            cell = ws.cell(row=r, column=col, value=cell_value(item, column))
            cell.border = BORDER
            if column.kind == "currency":
                cell.number_format = TWD_FORMAT
            elif column.kind == "number":
                cell.number_format = NUMBER_FORMAT
            elif column.kind == "date":
                cell.number_format = "yyyy/mm/dd"

    total_row = len(section.rows) + 3
    ws.cell(row=total_row, column=1, value="Total").font = BOLD
    ws.cell(row=total_row, column=2, value=section.total.display).font = BOLD


def build_workbook(model: ReportModel) -> Workbook:
    wb = Workbook()
    _write_summary(wb.active, model)
    for section in model.sections:
        _write_section(wb.create_sheet(), section)
    return wb


@register_sink("xlsx")
class XlsxSink(ExportSink):
    extension = "xlsx"

    def export(self, model: ReportModel, destination: Path) -> Path:
        path = self.target_path(model, destination)
        build_workbook(model).save(path)
        self.log.info("report_exported", path=str(path), sheets=len(model.sections) + 1)
        return path
