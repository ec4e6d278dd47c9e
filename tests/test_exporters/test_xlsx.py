"""Tests for the Excel export sink."""

from __future__ import annotations

from pathlib import Path

from openpyxl import load_workbook

from expense_report.exporters.xlsx import XlsxSink, build_workbook
from expense_report.models import ReportModel


def test_sheet_per_section(report_model: ReportModel):
    wb = build_workbook(report_model)
    assert wb.sheetnames == ["Summary", "Flight", "Accommodation", "Taxi"]


def test_export_round_trip(tmp_path: Path, report_model: ReportModel):
    path = XlsxSink().export(report_model, tmp_path)
    assert path == tmp_path / "Expense_Report_BR-00000001.xlsx"

    wb = load_workbook(path)
    flight = wb["Flight"]
    assert [c.value for c in flight[1]][:4] == ["Date", "Flight", "From", "To"]
    assert flight["B2"].value == "BR892"
    assert flight["H2"].value == 4722
    assert flight["A5"].value == "Total"
    assert flight["B5"].value == "9,444"

    stay = wb["Accommodation"]
    assert stay["B5"].value == "12,592 (personal) / 18,888 (total)"

    summary = wb["Summary"]
    assert summary["B3"].value == "BR-00000001"
    labels = {row[0].value: row[1].value for row in summary.iter_rows(min_row=9, max_col=2)}
    assert labels["Flight"] == 9444
    assert labels["Gift"] == 0
    assert labels["Total"] == 28962
