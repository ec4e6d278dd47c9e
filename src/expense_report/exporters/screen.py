"""Plain-text rendering for terminal display."""

from __future__ import annotations

from pathlib import Path

from expense_report.builder import format_amount
from expense_report.exporters.base import ExportSink, format_cell
from expense_report.exporters.registry import register_sink
from expense_report.models import ReportModel, ReportSection

BAR_WIDTH = 30


def _table(headers: list[str], rows: list[list[str]]) -> list[str]:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]
    line = "  ".join("-" * w for w in widths)
    out = ["  ".join(h.ljust(w) for h, w in zip(headers, widths)), line]
    out.extend("  ".join(cell.ljust(w) for cell, w in zip(row, widths)) for row in rows)
    return out


def _bar(value: int, top: int) -> str:
    """Horizontal text bar scaled so the largest category fills BAR_WIDTH."""
    return "#" * max(1, round(value / top * BAR_WIDTH))


def render_section(section: ReportSection) -> list[str]:
    headers = [column.header for column in section.columns]
    rows = [[format_cell(row, column) for column in section.columns] for row in section.rows]
    lines = [f"== {section.title} ==", *_table(headers, rows)]
    lines.append(f"Total ({section.total.currency}): {section.total.display}")
    return lines


def render_text(model: ReportModel) -> str:
    """Render the summary, chart series and every section as text."""
    summary = model.summary
    lines = [f"Business Travel Expense Report {model.report_id}"]
    if model.user:
        lines.append(f"User: {model.user}")
    lines.append(f"Period: {summary.period or '-'}   Days: {summary.days:g}   USD rate: {summary.rate_usd:g}")
    lines.append("")
    lines.extend(
        _table(
            ["", "TWD", "USD"],
            [
                ["Total", format_amount(summary.total_twd), format_amount(summary.total_usd, 2)],
                ["Personal", format_amount(summary.personal_twd), format_amount(summary.personal_usd, 2)],
                ["Avg/Day", format_amount(summary.avg_day_twd), format_amount(summary.avg_day_usd, 2)],
                [
                    "Avg/Day (personal)",
                    format_amount(summary.avg_day_personal_twd),
                    format_amount(summary.avg_day_personal_usd, 2),
                ],
            ],
        )
    )

    if model.charts.bar:
        grand = summary.total_twd or 1
        top = max(entry.value for entry in model.charts.bar)
        lines.append("")
        lines.append("== By Category ==")
        lines.extend(
            _table(
                ["Category", "TWD", "Share", ""],
                [
                    [
                        entry.name,
                        format_amount(entry.value),
                        f"{entry.value / grand:.0%}",
                        _bar(entry.value, top),
                    ]
                    for entry in model.charts.bar
                ],
            )
        )

    for section in model.sections:
        lines.append("")
        lines.extend(render_section(section))

    if not model.sections:
        lines.append("")
        lines.append("No expenses entered yet.")
    return "\n".join(lines) + "\n"


@register_sink("screen")
class ScreenSink(ExportSink):
    """Writes the terminal rendering to a text file."""

    extension = "txt"

    def export(self, model: ReportModel, destination: Path) -> Path:
        path = self.target_path(model, destination)
        path.write_text(render_text(model), encoding="utf-8")
        self.log.info("report_exported", path=str(path))
        return path
