"""Per-category derivation of stored fields from entered values.

Every function here is pure: it takes the raw entry and an already
resolved exchange rate and returns a fully populated item. Validation
failures raise `EntryValidationError` so that nothing invalid reaches
the store.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from expense_report.errors import EntryValidationError
from expense_report.models import (
    AccommodationItem,
    AmountItem,
    Category,
    ExpenseEntry,
    ExpenseItem,
    FlightItem,
    OtherItem,
    SimpleItem,
)


def _decimal(value: float) -> Decimal:
    return Decimal(str(value))


def _quantize(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_half_up(value: float, places: int = 0) -> float:
    """Round half away from zero to `places` decimals, e.g. 2.5 -> 3."""
    return float(_quantize(_decimal(value), places))


def to_twd(amount: float, rate: float) -> int:
    """Convert an amount to whole TWD at the given rate.

    The product is taken in decimal, so 2.05 at 30.0 is 61.5 and rounds to 62.
    """
    return int(_quantize(_decimal(amount) * _decimal(rate), 0))


def _require_non_negative(field: str, value: float) -> None:
    if value < 0:
        raise EntryValidationError(field, "must not be negative")


def validate_entry(category: Category, entry: ExpenseEntry, *, has_flights: bool = True) -> None:
    """Check an entry before any rate lookup or store request.

    Args:
        category: Target category.
        entry: Raw entered values.
        has_flights: Whether the report already holds a flight. Every other
            category stays locked until the first outbound flight exists,
            since that flight establishes the trip's header rate.

    Raises:
        EntryValidationError: On the first invalid field.
    """
    if category is not Category.FLIGHT and not has_flights:
        raise EntryValidationError(
            "category", "add the trip's first flight before other expenses"
        )
    if entry.date is None:
        raise EntryValidationError("date", "is required")
    if not entry.currency:
        raise EntryValidationError("currency", "is required")

    if category is Category.ACCOMMODATION:
        _require_non_negative("personal_amount", entry.personal_amount)
        _require_non_negative("advance_amount", entry.advance_amount)
        if entry.nights < 1:
            raise EntryValidationError("nights", "must be at least 1")
        if entry.advance_payers < 0:
            raise EntryValidationError("advance_payers", "must not be negative")
        if entry.advance_amount > 0 and entry.advance_payers < 1:
            raise EntryValidationError(
                "advance_payers", "must be at least 1 when an advance amount is given"
            )
        return

    _require_non_negative("amount", entry.amount)
    if category is Category.OTHERS and not entry.classification.strip():
        raise EntryValidationError("classification", "is required for other expenses")


def compute_accommodation(entry: ExpenseEntry, rate: float) -> AccommodationItem:
    """Derive lodging totals and the per-person-per-night split."""
    total = _decimal(entry.personal_amount) + _decimal(entry.advance_amount)
    per_person_per_day = _quantize(total / entry.nights / (entry.advance_payers + 1), 2)
    twd_personal = to_twd(entry.personal_amount, rate)
    twd_advance = to_twd(entry.advance_amount, rate)
    return AccommodationItem(
        date=entry.date,
        region=entry.region,
        currency=entry.currency,
        rate=rate,
        note=entry.note,
        nights=entry.nights,
        personal_amount=entry.personal_amount,
        advance_amount=entry.advance_amount,
        advance_payers=entry.advance_payers,
        total_amount=float(total),
        twd_personal=twd_personal,
        twd_advance=twd_advance,
        twd_total=twd_personal + twd_advance,
        per_person_per_day=float(per_person_per_day),
    )


def compute_amount_item(category: Category, entry: ExpenseEntry, rate: float) -> AmountItem:
    """Derive the TWD amount for a single-amount category."""
    common = {
        "date": entry.date,
        "currency": entry.currency,
        "rate": rate,
        "note": entry.note,
        "amount": entry.amount,
        "twd_amount": to_twd(entry.amount, rate),
    }
    if category is Category.FLIGHT:
        return FlightItem(
            flight_code=entry.flight_code.strip().upper(),
            departure=entry.departure,
            arrival=entry.arrival,
            dep_time=entry.dep_time,
            arr_time=entry.arr_time,
            **common,
        )
    if category is Category.OTHERS:
        return OtherItem(region=entry.region, classification=entry.classification.strip(), **common)
    return SimpleItem(category=category, region=entry.region, **common)


def compute_item(
    category: Category,
    entry: ExpenseEntry,
    rate: float,
    *,
    has_flights: bool = True,
) -> ExpenseItem:
    """Validate an entry and build the item to store for it.

    Raises:
        EntryValidationError: If the entry or rate is invalid.
    """
    validate_entry(category, entry, has_flights=has_flights)
    if rate <= 0:
        raise EntryValidationError("rate", "must be positive")
    if category is Category.ACCOMMODATION:
        return compute_accommodation(entry, rate)
    return compute_amount_item(category, entry, rate)
