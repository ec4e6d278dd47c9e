"""Tests for the store's label-keyed wire format."""

from __future__ import annotations

from datetime import date

import pytest

from expense_report.models import (
    AccommodationItem,
    Category,
    FlightItem,
    OtherItem,
    SimpleItem,
)
from expense_report.store.wire import (
    decode_header,
    decode_item,
    decode_items,
    encode_item,
    parse_number,
    parse_wire_date,
)


class TestParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2026/01/02", date(2026, 1, 2)),
            ("2026-01-02", date(2026, 1, 2)),
            ("2026/1/2", date(2026, 1, 2)),
            ("2026-01-02T00:00:00.000Z", date(2026, 1, 2)),
            (date(2026, 1, 2), date(2026, 1, 2)),
            ("", None),
            (None, None),
            ("not a date", None),
        ],
    )
    def test_parse_wire_date(self, value, expected):
        assert parse_wire_date(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(None, 0.0), ("", 0.0), ("1,234", 1234.0), ("31.48", 31.48), (7, 7.0), ("n/a", 0.0)],
    )
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected


class TestDecode:
    def test_decode_header(self, raw_report):
        header = decode_header(raw_report["header"])
        assert header.report_id == "BR-00000001"
        assert header.user_id == "U0001"
        assert header.days == 4.5
        assert header.rate_usd == 31.48
        assert header.start_date == date(2026, 1, 1)
        assert header.end_date == date(2026, 1, 5)
        assert header.cached_totals == {Category.FLIGHT: 4722.0, Category.TAXI: 630.0}

    def test_decode_header_alternate_total_labels(self):
        header = decode_header({"交際費總額": 800, "其他費總額": 120}, "BR-9")
        assert header.report_id == "BR-9"
        assert header.cached_totals == {Category.SOCIAL: 800.0, Category.OTHERS: 120.0}

    def test_decode_empty_header(self):
        header = decode_header(None, "BR-2")
        assert header.report_id == "BR-2"
        assert header.days == 0
        assert header.rate_usd == 0

    def test_decode_items(self, raw_report):
        items = decode_items(raw_report["items"])
        assert set(items) == {
            Category.FLIGHT, Category.ACCOMMODATION, Category.TAXI,
            Category.HANDLING_FEE, Category.PER_DIEM,
        }

        flight = items[Category.FLIGHT][0]
        assert isinstance(flight, FlightItem)
        assert flight.sequence == 1
        assert flight.flight_code == "BR892"
        assert flight.twd_amount == 4722

        stay = items[Category.ACCOMMODATION][0]
        assert isinstance(stay, AccommodationItem)
        assert stay.region == "香港"
        assert stay.twd_personal == 6296
        assert stay.twd_total == 9444
        assert stay.per_person_per_day == 75.0

        taxi = items[Category.TAXI][0]
        assert isinstance(taxi, SimpleItem)
        assert taxi.amount == 630.0
        assert taxi.twd_amount == 630
        assert taxi.note == "airport"

    def test_unknown_category_skipped(self):
        assert decode_items({"Lunch": [{"金額": 1}]}) == {}

    def test_missing_currency_defaults_to_base(self):
        item = decode_item(Category.GIFT, {"金額": 100, "TWD金額": 100})
        assert item.currency == "TWD"
        assert item.sequence is None


class TestEncode:
    def test_encode_flight(self):
        item = FlightItem(
            date=date(2026, 1, 2), flight_code="BR892", departure="TPE", arrival="HKG",
            currency="USD", amount=150, rate=31.48, twd_amount=4722,
        )
        data = encode_item(item)
        assert data["日期"] == "2026/01/02"
        assert data["航班代號"] == "BR892"
        assert data["TWD金額"] == 4722
        assert "地區" not in data
        assert "次序" not in data

    def test_encode_accommodation(self):
        item = AccommodationItem(
            date=date(2026, 1, 1), region="Hong Kong", nights=2, personal_amount=200,
            advance_amount=100, advance_payers=1, total_amount=300, twd_personal=6296,
            twd_advance=3148, twd_total=9444, per_person_per_day=75.0, rate=31.48, currency="USD",
        )
        data = encode_item(item)
        assert data["天數"] == 2
        assert data["代墊人數"] == 1
        assert data["每人每天金額"] == 75.0
        assert data["TWD總體金額"] == 9444
        assert "金額" not in data

    def test_encode_others(self):
        data = encode_item(OtherItem(date=date(2026, 1, 3), classification="Laundry", amount=5, twd_amount=5))
        assert data["分類"] == "Laundry"

    def test_decode_inverts_encode(self):
        item = SimpleItem(
            category=Category.SOCIAL, date=date(2026, 1, 3), region="Taipei",
            currency="JPY", amount=3000, rate=0.21, twd_amount=630, note="dinner",
        )
        assert decode_item(Category.SOCIAL, encode_item(item)) == item
