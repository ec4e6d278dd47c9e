"""Assemble the export-ready report model from a stored report."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from expense_report.aggregation import aggregate, stale_categories
from expense_report.models import (
    Aggregate,
    Category,
    ChartEntry,
    ChartSeries,
    ExpenseItem,
    ReportColumn,
    ReportHeader,
    ReportModel,
    ReportSection,
    ReportSummary,
    SectionTotal,
)

logger = structlog.get_logger()

_DATE = ReportColumn(header="Date", accessor="date", kind="date")
_REGION = ReportColumn(header="Region", accessor="region")
_CURRENCY = ReportColumn(header="Currency", accessor="currency")
_AMOUNT = ReportColumn(header="Amount", accessor="amount", kind="number")
_RATE = ReportColumn(header="Rate", accessor="rate", kind="number")
_TWD = ReportColumn(header="TWD", accessor="twd_amount", kind="currency")
_NOTE = ReportColumn(header="Note", accessor="note")

FLIGHT_COLUMNS = [
    _DATE,
    ReportColumn(header="Flight", accessor="flight_code"),
    ReportColumn(header="From", accessor="departure"),
    ReportColumn(header="To", accessor="arrival"),
    _CURRENCY,
    _AMOUNT,
    _RATE,
    _TWD,
    _NOTE,
]

ACCOMMODATION_COLUMNS = [
    _DATE,
    _REGION,
    ReportColumn(header="Nights", accessor="nights", kind="number"),
    _CURRENCY,
    ReportColumn(header="Personal", accessor="personal_amount", kind="number"),
    ReportColumn(header="TWD Personal", accessor="twd_personal", kind="currency"),
    ReportColumn(header="Advance", accessor="advance_amount", kind="number"),
    ReportColumn(header="TWD Advance", accessor="twd_advance", kind="currency"),
    ReportColumn(header="Total", accessor="total_amount", kind="number"),
    ReportColumn(header="TWD Total", accessor="twd_total", kind="currency"),
    ReportColumn(header="Payers", accessor="advance_payers", kind="number"),
    ReportColumn(header="Per Person/Day", accessor="per_person_per_day", kind="number"),
    _RATE,
    _NOTE,
]

SIMPLE_COLUMNS = [_DATE, _REGION, _CURRENCY, _AMOUNT, _RATE, _TWD, _NOTE]

OTHERS_COLUMNS = [ReportColumn(header="Classification", accessor="classification"), *SIMPLE_COLUMNS]


def columns_for(category: Category) -> list[ReportColumn]:
    if category is Category.FLIGHT:
        return FLIGHT_COLUMNS
    if category is Category.ACCOMMODATION:
        return ACCOMMODATION_COLUMNS
    if category is Category.OTHERS:
        return OTHERS_COLUMNS
    return SIMPLE_COLUMNS


def format_amount(value: float, places: int = 0) -> str:
    """Thousands-separated figure, e.g. 18888 -> "18,888"."""
    return f"{value:,.{places}f}"


def total_display(category: Category, personal: int, overall: int) -> str:
    if category is Category.ACCOMMODATION:
        return f"{format_amount(personal)} (personal) / {format_amount(overall)} (total)"
    return format_amount(overall)


def period_label(header: ReportHeader) -> str:
    if header.start_date is None and header.end_date is None:
        return ""
    start = header.start_date.strftime("%Y/%m/%d") if header.start_date else ""
    end = header.end_date.strftime("%Y/%m/%d") if header.end_date else ""
    return f"{start} - {end}"


def build_sections(
    items_by_category: Mapping[Category, Sequence[ExpenseItem]],
    totals: Aggregate,
) -> list[ReportSection]:
    """One section per non-empty category, in display order."""
    sections = []
    for category in Category:
        items = list(items_by_category.get(category, ()))
        if not items:
            continue
        overall = totals.category_totals[category]
        personal = totals.personal_totals[category]
        sections.append(
            ReportSection(
                id=category.section_id,
                title=category.title,
                category=category,
                columns=columns_for(category),
                rows=items,
                total=SectionTotal(
                    amount=overall,
                    personal_amount=personal,
                    display=total_display(category, personal, overall),
                ),
            )
        )
    return sections


def build_charts(totals: Aggregate) -> ChartSeries:
    """Pie and bar series share one entry per category with a positive total."""
    entries = [
        ChartEntry(name=category.label, value=value)
        for category, value in totals.category_totals.items()
        if value > 0
    ]
    return ChartSeries(pie=entries, bar=list(entries))


def build_summary(header: ReportHeader, totals: Aggregate) -> ReportSummary:
    grand = totals.grand
    return ReportSummary(
        total_twd=grand.overall_twd,
        personal_twd=grand.personal_twd,
        avg_day_twd=grand.avg_day_twd,
        avg_day_personal_twd=grand.avg_day_personal_twd,
        total_usd=grand.overall_usd,
        personal_usd=grand.personal_usd,
        avg_day_usd=grand.avg_day_usd,
        avg_day_personal_usd=grand.avg_day_personal_usd,
        period=period_label(header),
        days=grand.days,
        rate_usd=grand.rate_usd,
    )


def build_report_model(
    header: ReportHeader,
    items_by_category: Mapping[Category, Sequence[ExpenseItem]],
    *,
    user: str = "",
) -> ReportModel:
    """Build the report model consumed by every export sink.

    Args:
        header: Report header from the store.
        items_by_category: Stored items keyed by category.
        user: Display name of the report owner.

    Returns:
        A fresh ReportModel. A report without items yields no sections,
        empty chart series and an all-zero summary.
    """
    totals = aggregate(header, items_by_category)

    stale = stale_categories(header, totals)
    if stale:
        logger.debug(
            "cached_totals_differ",
            report_id=header.report_id,
            categories=[c.value for c in stale],
        )

    return ReportModel(
        report_id=header.report_id,
        user=user,
        summary=build_summary(header, totals),
        charts=build_charts(totals),
        sections=build_sections(items_by_category, totals),
        category_totals=totals.category_totals,
    )
