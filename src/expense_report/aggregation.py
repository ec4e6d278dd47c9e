"""Fold a report's items into category and grand totals.

Totals are always recomputed from the items. The header's cached totals
are only compared against the result, never summed.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from expense_report.models import (
    Aggregate,
    Category,
    ExpenseItem,
    GrandTotals,
    ReportHeader,
)
from expense_report.rules import round_half_up


def per_day(total: float, days: float, places: int = 0) -> float:
    """Average per trip day, 0 when the trip has no days."""
    if days <= 0:
        return 0
    return round_half_up(total / days, places)


def to_usd(twd: float, rate_usd: float) -> float:
    """Convert TWD to USD at the header rate, 0 when no rate is set."""
    if rate_usd <= 0:
        return 0.0
    return round_half_up(twd / rate_usd, 2)


def aggregate(
    header: ReportHeader,
    items_by_category: Mapping[Category, Sequence[ExpenseItem]],
) -> Aggregate:
    """Compute per-category totals and the report's grand totals.

    Args:
        header: Report header providing trip days and the USD rate.
        items_by_category: Stored items keyed by category. Missing
            categories count as empty.

    Returns:
        Category totals (overall and personal) for every category in
        display order, plus grand totals in TWD and USD.
    """
    category_totals: dict[Category, int] = {}
    personal_totals: dict[Category, int] = {}
    for category in Category:
        items = items_by_category.get(category, ())
        category_totals[category] = sum(item.overall_twd for item in items)
        personal_totals[category] = sum(item.personal_twd for item in items)

    overall_twd = sum(category_totals.values())
    personal_twd = sum(personal_totals.values())
    days = header.days
    rate_usd = header.rate_usd

    overall_usd = to_usd(overall_twd, rate_usd)
    personal_usd = to_usd(personal_twd, rate_usd)

    grand = GrandTotals(
        overall_twd=overall_twd,
        personal_twd=personal_twd,
        avg_day_twd=int(per_day(overall_twd, days)),
        avg_day_personal_twd=int(per_day(personal_twd, days)),
        overall_usd=overall_usd,
        personal_usd=personal_usd,
        avg_day_usd=per_day(overall_usd, days, 2),
        avg_day_personal_usd=per_day(personal_usd, days, 2),
        days=days,
        rate_usd=rate_usd,
    )
    return Aggregate(
        category_totals=category_totals,
        personal_totals=personal_totals,
        grand=grand,
    )


def stale_categories(header: ReportHeader, result: Aggregate) -> list[Category]:
    """List categories whose store-cached total disagrees with the items."""
    return [
        category
        for category, cached in header.cached_totals.items()
        if round_half_up(cached, 0) != result.category_totals.get(category, 0)
    ]
