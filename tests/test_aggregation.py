"""Tests for the aggregation engine."""

from __future__ import annotations

import pytest

from expense_report.aggregation import aggregate, per_day, stale_categories, to_usd
from expense_report.models import Category, ExpenseItem, OtherItem, ReportHeader, SimpleItem


class TestHelpers:
    def test_per_day_rounds_to_integer(self):
        assert per_day(28962, 4.5) == 6436

    def test_per_day_zero_days(self):
        assert per_day(28962, 0) == 0
        assert per_day(28962, -1) == 0

    def test_to_usd(self):
        assert to_usd(28962, 31.48) == 920.01

    def test_to_usd_without_rate(self):
        assert to_usd(28962, 0) == 0.0


class TestAggregate:
    def test_trip_totals(self, header, trip_items):
        result = aggregate(header, trip_items)

        assert result.category_totals[Category.FLIGHT] == 9444
        assert result.category_totals[Category.ACCOMMODATION] == 18888
        assert result.category_totals[Category.TAXI] == 630
        assert result.personal_totals[Category.ACCOMMODATION] == 12592

        grand = result.grand
        assert grand.overall_twd == 28962
        assert grand.personal_twd == 22666
        assert grand.avg_day_twd == 6436
        assert grand.overall_usd == 920.01
        assert grand.avg_day_usd == 204.45
        assert grand.personal_usd == 720.01

    def test_every_category_present_in_display_order(self, header, trip_items):
        result = aggregate(header, trip_items)
        assert list(result.category_totals) == list(Category)
        assert result.category_totals[Category.GIFT] == 0

    def test_ignores_cached_header_totals(self, header, trip_items):
        header.cached_totals = {Category.FLIGHT: 1.0, Category.TAXI: 99999.0}
        result = aggregate(header, trip_items)
        assert result.category_totals[Category.FLIGHT] == 9444
        assert result.category_totals[Category.TAXI] == 630

    def test_idempotent(self, header, trip_items):
        assert aggregate(header, trip_items) == aggregate(header, trip_items)

    def test_empty_report_is_all_zero(self, header):
        result = aggregate(header, {})
        assert set(result.category_totals.values()) == {0}
        assert result.grand.overall_twd == 0
        assert result.grand.avg_day_twd == 0
        assert result.grand.overall_usd == 0

    def test_zero_days_and_rate(self):
        header = ReportHeader(report_id="BR-1", days=0, rate_usd=0)
        items = {
            Category.GIFT: [SimpleItem(category=Category.GIFT, amount=500, twd_amount=500)],
        }
        grand = aggregate(header, items).grand
        assert grand.overall_twd == 500
        assert grand.avg_day_twd == 0
        assert grand.overall_usd == 0
        assert grand.avg_day_usd == 0

    @pytest.mark.parametrize(
        "item",
        [
            SimpleItem(category=Category.SOCIAL, twd_amount=1200),
            SimpleItem(category=Category.GIFT, twd_amount=1200),
            OtherItem(classification="Laundry", twd_amount=1200),
        ],
    )
    def test_non_lodging_counts_fully_as_personal(self, header, item):
        result = aggregate(header, {item.category: [item]})
        assert result.personal_totals[item.category] == result.category_totals[item.category] == 1200

    def test_untyped_base_item_counts_as_zero(self, header):
        result = aggregate(header, {Category.GIFT: [ExpenseItem(category=Category.GIFT)]})
        assert result.category_totals[Category.GIFT] == 0
        assert result.grand.overall_twd == 0


class TestStaleCategories:
    def test_reports_disagreeing_cache(self, header, trip_items):
        header.cached_totals = {Category.FLIGHT: 4722.0, Category.TAXI: 630.0}
        result = aggregate(header, trip_items)
        assert stale_categories(header, result) == [Category.FLIGHT]

    def test_no_cache_no_staleness(self, header, trip_items):
        assert stale_categories(header, aggregate(header, trip_items)) == []
