"""PDF export rendered with reportlab."""

from __future__ import annotations

from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.piecharts import Pie
from reportlab.graphics.shapes import Drawing
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from expense_report.builder import format_amount
from expense_report.exporters.base import ExportSink, format_cell
from expense_report.exporters.registry import register_sink
from expense_report.models import ChartEntry, ReportModel, ReportSection

# Built-in CID font so Traditional Chinese regions and notes render
BODY_FONT = "MSung-Light"

TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTNAME", (0, 1), (-1, -1), BODY_FONT),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
]


def _register_fonts() -> None:
    if BODY_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(BODY_FONT))


def _summary_table(model: ReportModel) -> Table:
    s = model.summary
    data = [
        ["", "TWD", "USD"],
        ["Total", format_amount(s.total_twd), format_amount(s.total_usd, 2)],
        ["Personal", format_amount(s.personal_twd), format_amount(s.personal_usd, 2)],
        ["Avg/Day", format_amount(s.avg_day_twd), format_amount(s.avg_day_usd, 2)],
        ["Avg/Day (personal)", format_amount(s.avg_day_personal_twd), format_amount(s.avg_day_personal_usd, 2)],
    ]
    table = Table(data, colWidths=[140, 100, 100])
    table.setStyle(TableStyle([*TABLE_STYLE, ("ALIGN", (1, 0), (-1, -1), "RIGHT")]))
    return table


def _chart_table(model: ReportModel) -> Table:
    grand = model.summary.total_twd or 1
    data = [["Category", "TWD", "Share"]]
    data += [[e.name, format_amount(e.value), f"{e.value / grand:.0%}"] for e in model.charts.bar]
    table = Table(data, colWidths=[140, 100, 60])
    table.setStyle(TableStyle([*TABLE_STYLE, ("ALIGN", (1, 0), (-1, -1), "RIGHT")]))
    return table


CHART_COLORS = [
    colors.HexColor("#4472C4"),
    colors.HexColor("#ED7D31"),
    colors.HexColor("#A5A5A5"),
    colors.HexColor("#FFC000"),
    colors.HexColor("#5B9BD5"),
    colors.HexColor("#70AD47"),
    colors.HexColor("#264478"),
    colors.HexColor("#9E480E"),
    colors.HexColor("#636363"),
]


def pie_chart(entries: list[ChartEntry]) -> Drawing:
    drawing = Drawing(280, 200)
    pie = Pie()
    pie.x, pie.y = 65, 25
    pie.width = pie.height = 150
    pie.data = [e.value for e in entries]
    pie.labels = [e.name for e in entries]
    pie.slices.strokeWidth = 0.5
    pie.slices.fontSize = 7
    for i in range(len(entries)):
        pie.slices[i].fillColor = CHART_COLORS[i % len(CHART_COLORS)]
    drawing.add(pie)
    return drawing


def bar_chart(entries: list[ChartEntry]) -> Drawing:
    drawing = Drawing(380, 200)
    bar = VerticalBarChart()
    bar.x, bar.y = 55, 45
    bar.width, bar.height = 310, 140
    bar.data = [[e.value for e in entries]]
    bar.categoryAxis.categoryNames = [e.name for e in entries]
    bar.categoryAxis.labels.angle = 30
    bar.categoryAxis.labels.boxAnchor = "ne"
    bar.categoryAxis.labels.fontSize = 7
    bar.valueAxis.valueMin = 0
    bar.valueAxis.labels.fontSize = 7
    bar.bars[0].fillColor = CHART_COLORS[0]
    drawing.add(bar)
    return drawing


def _charts(model: ReportModel) -> Table:
    """Pie and bar chart side by side, drawn from the model's chart series."""
    return Table([[pie_chart(model.charts.pie), bar_chart(model.charts.bar)]])


def _section_table(section: ReportSection) -> Table:
    data = [[column.header for column in section.columns]]
    for row in section.rows:
        data.append([format_cell(row, column) for column in section.columns])
    blank = [""] * (len(section.columns) - 2)
    data.append(blank + ["Total", section.total.display])
    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                *TABLE_STYLE,
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
                ("ALIGN", (-1, -1), (-1, -1), "RIGHT"),
            ]
        )
    )
    return table


def build_story(model: ReportModel) -> list:
    """Flowables in page order: header, summary, charts, sections."""
    styles = getSampleStyleSheet()
    s = model.summary
    story = [
        Paragraph(f"Business Travel Expense Report - {model.report_id}", styles["Title"]),
        Paragraph(
            f"User: {model.user or '-'} &nbsp;&nbsp; Days: {s.days:g} &nbsp;&nbsp; "
            f"USD rate: {s.rate_usd:g} &nbsp;&nbsp; Period: {s.period or '-'}",
            styles["Normal"],
        ),
        Spacer(1, 12),
        _summary_table(model),
        Spacer(1, 12),
    ]
    if model.charts.bar:
        story += [
            Paragraph("By Category", styles["Heading3"]),
            _charts(model),
            _chart_table(model),
            Spacer(1, 12),
        ]
    for section in model.sections:
        story += [Paragraph(section.title, styles["Heading2"]), _section_table(section), Spacer(1, 12)]
    return story


@register_sink("pdf")
class PdfSink(ExportSink):
    extension = "pdf"

    def export(self, model: ReportModel, destination: Path) -> Path:
        _register_fonts()
        path = self.target_path(model, destination)
        doc = SimpleDocTemplate(
            str(path),
            pagesize=landscape(A4),
            leftMargin=28,
            rightMargin=28,
            topMargin=28,
            bottomMargin=28,
        )
        doc.build(build_story(model))
        self.log.info("report_exported", path=str(path), sections=len(model.sections))
        return path
