"""Core data models for expense-report."""

from __future__ import annotations

import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SerializeAsAny, field_validator

BASE_CURRENCY = "TWD"


class Category(str, Enum):
    """The nine fixed expense categories, in display order.

    Values are the category names the store expects in `addItem` and
    `deleteItem` requests.
    """

    FLIGHT = "Flight"
    ACCOMMODATION = "Accommodation"
    TAXI = "Taxi"
    INTERNET = "Internet"
    SOCIAL = "Social"
    GIFT = "Gift"
    HANDLING_FEE = "Handing Fee"
    PER_DIEM = "Per Diem"
    OTHERS = "Others"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def section_id(self) -> str:
        return self.name.lower()

    @property
    def title(self) -> str:
        return f"{self.label} Details"

    @classmethod
    def parse(cls, value: str | Category) -> Category:
        """Resolve a category from its wire name, label or compact alias.

        Accepts e.g. "Handing Fee", "HandingFee", "handling_fee", "per-diem".

        Raises:
            ValueError: If the value names no category.
        """
        if isinstance(value, Category):
            return value
        key = "".join(ch for ch in str(value).lower() if ch.isalnum())
        for category in cls:
            aliases = {
                "".join(ch for ch in category.value.lower() if ch.isalnum()),
                "".join(ch for ch in category.label.lower() if ch.isalnum()),
                category.name.lower().replace("_", ""),
            }
            if key in aliases:
                return category
        raise ValueError(f"Unknown category '{value}'")


_LABELS = {
    Category.FLIGHT: "Flight",
    Category.ACCOMMODATION: "Accommodation",
    Category.TAXI: "Taxi",
    Category.INTERNET: "Internet",
    Category.SOCIAL: "Social",
    Category.GIFT: "Gift",
    Category.HANDLING_FEE: "Handling Fee",
    Category.PER_DIEM: "Per Diem",
    Category.OTHERS: "Others",
}


class ExpenseEntry(BaseModel):
    """Raw values for one expense line, as typed by the user.

    Only the fields relevant to the target category are read; derived
    values (exchange rate, TWD amounts, lodging splits) are computed by
    `expense_report.rules`.
    """

    date: datetime.date | None = None
    currency: str = BASE_CURRENCY
    amount: float = 0.0
    region: str = ""
    note: str = ""
    # Flight
    flight_code: str = ""
    departure: str = ""
    arrival: str = ""
    dep_time: str = ""
    arr_time: str = ""
    # Accommodation
    nights: int = 1
    personal_amount: float = 0.0
    advance_amount: float = 0.0
    advance_payers: int = 0
    # Others
    classification: str = ""

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()


class ExpenseItem(BaseModel):
    """A stored expense line belonging to one report and one category."""

    category: Category
    sequence: int | None = Field(default=None, description="Per-category 1-based ordinal")
    date: datetime.date | None = None
    region: str = ""
    currency: str = BASE_CURRENCY
    rate: float = 1.0
    note: str = ""

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def overall_twd(self) -> int:
        """Full TWD value of the line; an untyped base item carries none."""
        return 0

    @property
    def personal_twd(self) -> int:
        """TWD value attributable to the traveler personally."""
        return self.overall_twd


class AmountItem(ExpenseItem):
    amount: float = 0.0
    twd_amount: int = 0

    @property
    def overall_twd(self) -> int:
        return self.twd_amount


class FlightItem(AmountItem):
    category: Literal[Category.FLIGHT] = Category.FLIGHT
    flight_code: str = ""
    departure: str = ""
    arrival: str = ""
    dep_time: str = ""
    arr_time: str = ""


SimpleCategory = Literal[
    Category.TAXI,
    Category.INTERNET,
    Category.SOCIAL,
    Category.GIFT,
    Category.HANDLING_FEE,
    Category.PER_DIEM,
]


class SimpleItem(AmountItem):
    """Taxi, Internet, Social, Gift, Handling Fee and Per Diem lines."""

    category: SimpleCategory


class OtherItem(AmountItem):
    category: Literal[Category.OTHERS] = Category.OTHERS
    classification: str = ""


class AccommodationItem(ExpenseItem):
    category: Literal[Category.ACCOMMODATION] = Category.ACCOMMODATION
    nights: int = 1
    personal_amount: float = 0.0
    advance_amount: float = 0.0
    advance_payers: int = 0
    total_amount: float = 0.0
    twd_personal: int = 0
    twd_advance: int = 0
    twd_total: int = 0
    per_person_per_day: float = 0.0

    @property
    def overall_twd(self) -> int:
        return self.twd_total

    @property
    def personal_twd(self) -> int:
        return self.twd_personal


ItemsByCategory = dict[Category, list[SerializeAsAny[ExpenseItem]]]


class ReportHeader(BaseModel):
    """Report-level metadata maintained by the store."""

    report_id: str
    user_id: str = ""
    days: float = 0.0
    rate_usd: float = Field(default=0.0, description="Trip-level USD to TWD rate")
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    created_at: str = ""
    cached_totals: dict[Category, float] = Field(
        default_factory=dict,
        description="Store-maintained running totals; display hint only",
    )


class StoredReport(BaseModel):
    """A report as fetched from the store."""

    header: ReportHeader
    items: ItemsByCategory = Field(default_factory=dict)

    def items_for(self, category: Category) -> list[ExpenseItem]:
        return self.items.get(category, [])


class GrandTotals(BaseModel):
    overall_twd: int = 0
    personal_twd: int = 0
    avg_day_twd: int = 0
    avg_day_personal_twd: int = 0
    overall_usd: float = 0.0
    personal_usd: float = 0.0
    avg_day_usd: float = 0.0
    avg_day_personal_usd: float = 0.0
    days: float = 0.0
    rate_usd: float = 0.0


class Aggregate(BaseModel):
    """Result of folding a report's items into totals."""

    category_totals: dict[Category, int]
    personal_totals: dict[Category, int]
    grand: GrandTotals


class ReportSummary(BaseModel):
    total_twd: int = 0
    personal_twd: int = 0
    avg_day_twd: int = 0
    avg_day_personal_twd: int = 0
    total_usd: float = 0.0
    personal_usd: float = 0.0
    avg_day_usd: float = 0.0
    avg_day_personal_usd: float = 0.0
    period: str = ""
    days: float = 0.0
    rate_usd: float = 0.0


class ReportColumn(BaseModel):
    header: str
    accessor: str
    kind: Literal["text", "number", "currency", "date"] = "text"


class SectionTotal(BaseModel):
    amount: int
    personal_amount: int
    currency: str = BASE_CURRENCY
    display: str


class ReportSection(BaseModel):
    id: str
    title: str
    category: Category
    columns: list[ReportColumn]
    rows: list[SerializeAsAny[ExpenseItem]]
    total: SectionTotal


class ChartEntry(BaseModel):
    name: str
    value: int


class ChartSeries(BaseModel):
    pie: list[ChartEntry] = Field(default_factory=list)
    bar: list[ChartEntry] = Field(default_factory=list)


class ReportModel(BaseModel):
    """Export-ready report: summary, chart series and detail sections."""

    report_id: str
    user: str = ""
    summary: ReportSummary
    charts: ChartSeries
    sections: list[ReportSection] = Field(default_factory=list)
    category_totals: dict[Category, int] = Field(default_factory=dict)


class FlightInfo(BaseModel):
    """Schedule details returned by the flight autofill lookup."""

    departure: str = ""
    arrival: str = ""
    dep_time: str = ""
    arr_time: str = ""


class User(BaseModel):
    id: str
    name: str = ""


class StoreConfig(BaseModel):
    """Report store (spreadsheet-backed API) configuration."""

    url: str
    timeout: float = 30.0


class UserConfig(BaseModel):
    id: str
    name: str = ""


class RatesConfig(BaseModel):
    debounce_seconds: float = 0.3


class ExportConfig(BaseModel):
    output_dir: Path = Path(".")
    default_format: str = "screen"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    store: StoreConfig
    user: UserConfig
    rates: RatesConfig = Field(default_factory=RatesConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
