"""Translation between typed items and the store's label-keyed rows.

The store keeps each row as a mapping from native field labels (e.g.
"日期", "TWD金額") to values. Those labels exist only in this module.
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from typing import Any

import structlog

from expense_report.models import (
    AccommodationItem,
    Category,
    ExpenseItem,
    FlightItem,
    ItemsByCategory,
    OtherItem,
    ReportHeader,
    SimpleItem,
)

logger = structlog.get_logger()

WIRE_DATE_FORMAT = "%Y/%m/%d"

# Item field -> store label
COMMON_LABELS = {
    "sequence": "次序",
    "date": "日期",
    "region": "地區",
    "currency": "幣別",
    "rate": "匯率",
    "note": "備註",
}

AMOUNT_LABELS = {
    "amount": "金額",
    "twd_amount": "TWD金額",
}

FLIGHT_LABELS = {
    "flight_code": "航班代號",
    "departure": "出發地",
    "arrival": "抵達地",
    "dep_time": "出發時間",
    "arr_time": "抵達時間",
}

ACCOMMODATION_LABELS = {
    "nights": "天數",
    "personal_amount": "個人金額",
    "twd_personal": "TWD個人金額",
    "advance_amount": "代墊金額",
    "twd_advance": "TWD代墊金額",
    "total_amount": "總體金額",
    "twd_total": "TWD總體金額",
    "advance_payers": "代墊人數",
    "per_person_per_day": "每人每天金額",
}

OTHERS_LABELS = {"classification": "分類"}

HEADER_LABELS = {
    "report_id": "報告編號",
    "user_id": "用戶編號",
    "days": "商旅天數",
    "rate_usd": "USD匯率",
    "start_date": "商旅起始日",
    "end_date": "商旅結束日",
    "created_at": "建立時間",
}

# Store-cached category totals; several categories have two historical labels
CACHED_TOTAL_LABELS: dict[Category, tuple[str, ...]] = {
    Category.FLIGHT: ("機票費總額",),
    Category.ACCOMMODATION: ("總體住宿費總額", "住宿費總額"),
    Category.TAXI: ("計程車費總額",),
    Category.INTERNET: ("網路費總額",),
    Category.SOCIAL: ("社交費總額", "交際費總額"),
    Category.GIFT: ("禮品費總額",),
    Category.HANDLING_FEE: ("手續費總額",),
    Category.PER_DIEM: ("日支費總額",),
    Category.OTHERS: ("其他費用總額", "其他費總額"),
}


def labels_for(category: Category) -> dict[str, str]:
    """Field-to-label map for one category's rows."""
    labels = dict(COMMON_LABELS)
    if category is Category.ACCOMMODATION:
        labels.update(ACCOMMODATION_LABELS)
        return labels
    labels.update(AMOUNT_LABELS)
    if category is Category.FLIGHT:
        del labels["region"]
        labels.update(FLIGHT_LABELS)
    elif category is Category.OTHERS:
        labels.update(OTHERS_LABELS)
    return labels


def format_wire_date(day: datetime.date | None) -> str:
    return day.strftime(WIRE_DATE_FORMAT) if day else ""


def parse_wire_date(value: Any) -> datetime.date | None:
    """Parse "2026/01/02", "2026-01-02" or an ISO timestamp.

    Timestamps keep their own calendar date; no timezone shift is applied.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    head = text.split("T")[0].split(" ")[0].replace("/", "-")
    try:
        return datetime.date.fromisoformat(head)
    except ValueError:
        pass
    try:
        year, month, day = (int(part) for part in head.split("-"))
        return datetime.date(year, month, day)
    except ValueError:
        logger.warning("unparseable_wire_date", value=text)
        return None


def parse_number(value: Any) -> float:
    """Read a spreadsheet cell as a number; blanks and junk read as 0."""
    if value in (None, ""):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return 0.0


def _text(value: Any) -> str:
    return "" if value is None else str(value)


_INT_FIELDS = {"sequence", "twd_amount", "twd_personal", "twd_advance", "twd_total", "nights", "advance_payers"}
_FLOAT_FIELDS = {"amount", "rate", "personal_amount", "advance_amount", "total_amount", "per_person_per_day"}


def decode_item(category: Category, row: Mapping[str, Any]) -> ExpenseItem:
    """Build a typed item from one store row."""
    values: dict[str, Any] = {}
    for field, label in labels_for(category).items():
        raw = row.get(label)
        if field == "date":
            values[field] = parse_wire_date(raw)
        elif field == "sequence":
            values[field] = int(parse_number(raw)) if raw not in (None, "") else None
        elif field in _INT_FIELDS:
            values[field] = int(round(parse_number(raw)))
        elif field in _FLOAT_FIELDS:
            values[field] = parse_number(raw)
        else:
            values[field] = _text(raw)
    if not values.get("currency"):
        values["currency"] = "TWD"
    if category is Category.ACCOMMODATION:
        values["nights"] = values["nights"] or 1
        return AccommodationItem(**values)
    if category is Category.FLIGHT:
        return FlightItem(**values)
    if category is Category.OTHERS:
        return OtherItem(**values)
    return SimpleItem(category=category, **values)


def encode_item(item: ExpenseItem) -> dict[str, Any]:
    """Build the label-keyed `itemData` payload for `addItem`.

    The store assigns the sequence number, so it is never sent.
    """
    data: dict[str, Any] = {}
    for field, label in labels_for(item.category).items():
        if field == "sequence":
            continue
        value = getattr(item, field)
        data[label] = format_wire_date(value) if field == "date" else value
    return data


def decode_items(raw_items: Mapping[str, Any] | None) -> ItemsByCategory:
    """Decode the `items` block of a fetched report."""
    items: ItemsByCategory = {}
    for key, rows in (raw_items or {}).items():
        try:
            category = Category.parse(key)
        except ValueError:
            logger.warning("unknown_item_category", key=key)
            continue
        decoded = [decode_item(category, row) for row in rows or () if isinstance(row, Mapping)]
        items.setdefault(category, []).extend(decoded)
    return items


def decode_header(raw: Mapping[str, Any] | None, report_id: str = "") -> ReportHeader:
    """Decode the `header` block of a fetched report."""
    raw = raw or {}
    cached: dict[Category, float] = {}
    for category, labels in CACHED_TOTAL_LABELS.items():
        for label in labels:
            if raw.get(label) not in (None, ""):
                cached[category] = parse_number(raw[label])
                break
    return ReportHeader(
        report_id=_text(raw.get(HEADER_LABELS["report_id"])) or report_id,
        user_id=_text(raw.get(HEADER_LABELS["user_id"])),
        days=parse_number(raw.get(HEADER_LABELS["days"])),
        rate_usd=parse_number(raw.get(HEADER_LABELS["rate_usd"])),
        start_date=parse_wire_date(raw.get(HEADER_LABELS["start_date"])),
        end_date=parse_wire_date(raw.get(HEADER_LABELS["end_date"])),
        created_at=_text(raw.get(HEADER_LABELS["created_at"])),
        cached_totals=cached,
    )
