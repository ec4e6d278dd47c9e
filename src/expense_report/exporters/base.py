"""Abstract base class for report export sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import structlog

from expense_report.models import ReportColumn, ReportModel

logger = structlog.get_logger()


class ExportSink(ABC):
    """Base class for all export formats.

    A sink renders an already built ReportModel; it never recomputes
    totals or reorders sections.
    """

    name: str = "unnamed"
    extension: str = ""

    def __init__(self) -> None:
        self.log = logger.bind(sink=self.name)

    def filename(self, model: ReportModel) -> str:
        return f"Expense_Report_{model.report_id}.{self.extension}"

    def target_path(self, model: ReportModel, destination: Path) -> Path:
        """Resolve the output file, treating an existing directory as a folder."""
        if destination.is_dir() or not destination.suffix:
            destination.mkdir(parents=True, exist_ok=True)
            return destination / self.filename(model)
        destination.parent.mkdir(parents=True, exist_ok=True)
        return destination

    @abstractmethod
    def export(self, model: ReportModel, destination: Path) -> Path:
        """Write the report and return the path written.

        Args:
            model: The report to render.
            destination: Output directory or file path.
        """


def cell_value(row: Any, column: ReportColumn) -> Any:
    """Raw value of one column in one section row."""
    return getattr(row, column.accessor, None)


def format_cell(row: Any, column: ReportColumn) -> str:
    """Display text for one column in one section row."""
    value = cell_value(row, column)
    if value is None:
        return ""
    if column.kind == "date":
        return value.strftime("%Y/%m/%d")
    if column.kind == "currency":
        return f"{value:,.0f}"
    if column.kind == "number" and isinstance(value, float):
        return f"{value:,.2f}".rstrip("0").rstrip(".")
    if column.kind == "number":
        return f"{value:,}"
    return str(value)
