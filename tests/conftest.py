"""Shared test fixtures for expense-report."""

from __future__ import annotations

from datetime import date

import pytest
import structlog

from expense_report.builder import build_report_model
from expense_report.models import (
    AccommodationItem,
    AppConfig,
    Category,
    ExpenseItem,
    FlightItem,
    ReportHeader,
    ReportModel,
    SimpleItem,
    StoreConfig,
    UserConfig,
)

STORE_URL = "https://script.example.com/macros/s/test/exec"


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Reset structlog configuration after each test.

    Prevents the CLI's setup_logging() from poisoning other tests
    with a logger bound to a closed stderr file descriptor.
    """
    yield
    structlog.reset_defaults()


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(url=STORE_URL, timeout=5.0)


@pytest.fixture
def app_config(store_config: StoreConfig) -> AppConfig:
    return AppConfig(store=store_config, user=UserConfig(id="U0001", name="aaa"))


@pytest.fixture
def header() -> ReportHeader:
    return ReportHeader(
        report_id="BR-00000001",
        user_id="U0001",
        days=4.5,
        rate_usd=31.48,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 5),
    )


@pytest.fixture
def trip_items() -> dict[Category, list[ExpenseItem]]:
    """Two USD flights, two shared hotel stays and one taxi ride.

    Totals: flight 9,444; accommodation 12,592 personal / 18,888 overall;
    taxi 630; grand 28,962 overall / 22,666 personal.
    """
    flights = [
        FlightItem(
            sequence=1, date=date(2026, 1, 1), flight_code="BR892", departure="TPE",
            arrival="HKG", currency="USD", amount=150, rate=31.48, twd_amount=4722,
        ),
        FlightItem(
            sequence=2, date=date(2026, 1, 5), flight_code="BR891", departure="HKG",
            arrival="TPE", currency="USD", amount=150, rate=31.48, twd_amount=4722,
        ),
    ]
    stays = [
        AccommodationItem(
            sequence=seq, date=day, region="Hong Kong", currency="USD", rate=31.48,
            nights=2, personal_amount=200, advance_amount=100, advance_payers=1,
            total_amount=300, twd_personal=6296, twd_advance=3148, twd_total=9444,
            per_person_per_day=75.0,
        )
        for seq, day in ((1, date(2026, 1, 1)), (2, date(2026, 1, 3)))
    ]
    taxi = [
        SimpleItem(
            category=Category.TAXI, sequence=1, date=date(2026, 1, 2), region="Hong Kong",
            currency="TWD", amount=630, rate=1.0, twd_amount=630,
        )
    ]
    return {Category.FLIGHT: flights, Category.ACCOMMODATION: stays, Category.TAXI: taxi}


@pytest.fixture
def raw_report() -> dict:
    """A `getReport` data block as the store returns it."""
    return {
        "header": {
            "報告編號": "BR-00000001",
            "用戶編號": "U0001",
            "商旅天數": 4.5,
            "USD匯率": 31.48,
            "商旅起始日": "2026/01/01",
            "商旅結束日": "2026/01/05",
            "建立時間": "2026/01/01 08:00:00",
            "機票費總額": 4722,
            "計程車費總額": "630",
        },
        "items": {
            "Flight": [
                {
                    "次序": 1, "報告編號": "BR-00000001", "日期": "2026/01/01",
                    "航班代號": "BR892", "出發地": "TPE", "抵達地": "HKG",
                    "出發時間": "08:00", "抵達時間": "09:50", "幣別": "USD",
                    "金額": 150, "TWD金額": 4722, "匯率": 31.48, "備註": "",
                }
            ],
            "Accommodation": [
                {
                    "次序": 1, "日期": "2026-01-01", "地區": "香港", "天數": 2, "幣別": "USD",
                    "個人金額": 200, "TWD個人金額": 6296, "代墊金額": 100, "TWD代墊金額": 3148,
                    "總體金額": 300, "TWD總體金額": 9444, "代墊人數": 1, "每人每天金額": 75,
                    "匯率": 31.48, "備註": "",
                }
            ],
            "Taxi": [
                {
                    "次序": 1, "日期": "2026/01/02", "地區": "Hong Kong", "幣別": "TWD",
                    "金額": "630", "TWD金額": "630", "匯率": 1, "備註": "airport",
                }
            ],
            "HandingFee": [],
            "PerDiem": [],
        },
    }


@pytest.fixture
def config_yaml_content() -> str:
    return """\
store:
  url: "https://script.example.com/macros/s/test/exec"
  timeout: 10

user:
  id: "U0001"
  name: "aaa"

rates:
  debounce_seconds: 0.3

export:
  output_dir: "./reports"
  default_format: "xlsx"
"""


@pytest.fixture
def report_model(header: ReportHeader, trip_items: dict[Category, list[ExpenseItem]]) -> ReportModel:
    return build_report_model(header, trip_items, user="aaa")
