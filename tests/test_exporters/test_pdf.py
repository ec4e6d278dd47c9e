"""Tests for the PDF export sink."""

from __future__ import annotations

from pathlib import Path

from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.piecharts import Pie

from expense_report.builder import build_report_model
from expense_report.exporters.pdf import PdfSink, bar_chart, build_story, pie_chart
from expense_report.models import ReportHeader, ReportModel


def test_export_writes_pdf(tmp_path: Path, report_model: ReportModel):
    path = PdfSink().export(report_model, tmp_path / "trip.pdf")
    assert path == tmp_path / "trip.pdf"
    assert path.read_bytes()[:4] == b"%PDF"


def test_story_grows_with_sections(report_model: ReportModel):
    empty = build_report_model(ReportHeader(report_id="BR-2"), {})
    assert len(build_story(report_model)) > len(build_story(empty))


def test_empty_report_exports(tmp_path: Path):
    model = build_report_model(ReportHeader(report_id="BR-2"), {})
    path = PdfSink().export(model, tmp_path)
    assert path.name == "Expense_Report_BR-2.pdf"
    assert path.stat().st_size > 0


def test_pie_chart_matches_series(report_model: ReportModel):
    pie = pie_chart(report_model.charts.pie).contents[0]
    assert isinstance(pie, Pie)
    assert pie.data == [9444, 18888, 630]
    assert pie.labels == ["Flight", "Accommodation", "Taxi"]


def test_bar_chart_matches_series(report_model: ReportModel):
    bar = bar_chart(report_model.charts.bar).contents[0]
    assert isinstance(bar, VerticalBarChart)
    assert bar.data == [[9444, 18888, 630]]
    assert bar.categoryAxis.categoryNames == ["Flight", "Accommodation", "Taxi"]
