"""Exchange-rate resolution for expense lines.

Decides, per line, which rate converts the entered amount to TWD:

  - TWD is always 1, with no lookup.
  - The trip's first USD flight uses the rate of the calendar day before
    the flight, since the outbound ticket is settled before the trip starts.
  - Other USD lines use the report's header rate when it is set.
  - Everything else is looked up by (currency, date).

A failed lookup never blocks entry: the rate falls back to 1 and the
error travels with the result so the caller can show it.
"""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Awaitable, Callable
from typing import Literal

import structlog
from pydantic import BaseModel

from expense_report.errors import ExpenseReportError
from expense_report.models import BASE_CURRENCY

logger = structlog.get_logger()

RateLookup = Callable[[str, datetime.date], Awaitable[float]]

FALLBACK_RATE = 1.0


class RateResolution(BaseModel):
    rate: float
    source: Literal["base", "header", "lookup", "fallback"]
    lookup_date: datetime.date | None = None
    error: str | None = None


def previous_calendar_day(day: datetime.date) -> datetime.date:
    """Return the local calendar day before `day`."""
    return day - datetime.timedelta(days=1)


async def resolve_rate(
    currency: str,
    on_date: datetime.date,
    *,
    lookup: RateLookup,
    header_rate: float = 0.0,
    first_flight: bool = False,
) -> RateResolution:
    """Pick the exchange rate for one expense line.

    Args:
        currency: ISO currency code of the entered amount.
        on_date: Entry date.
        lookup: Coroutine fetching a rate for (currency, date).
        header_rate: The report's USD to TWD rate, 0 when not yet known.
        first_flight: True when this is a flight and the report has none yet.

    Returns:
        The resolved rate with its source.
    """
    currency = currency.strip().upper()
    if currency == BASE_CURRENCY:
        return RateResolution(rate=1.0, source="base")

    if currency == "USD" and first_flight:
        return await _lookup(lookup, currency, previous_calendar_day(on_date))

    if currency == "USD" and header_rate > 0:
        return RateResolution(rate=header_rate, source="header")

    return await _lookup(lookup, currency, on_date)


async def _lookup(lookup: RateLookup, currency: str, on_date: datetime.date) -> RateResolution:
    try:
        rate = await lookup(currency, on_date)
    except ExpenseReportError as e:
        logger.warning("rate_lookup_failed", currency=currency, date=on_date.isoformat(), error=str(e))
        return RateResolution(
            rate=FALLBACK_RATE, source="fallback", lookup_date=on_date, error=str(e)
        )

    if not rate or rate <= 0:
        error = f"No usable {currency} rate for {on_date.isoformat()}"
        logger.warning("rate_lookup_unusable", currency=currency, date=on_date.isoformat(), rate=rate)
        return RateResolution(rate=FALLBACK_RATE, source="fallback", lookup_date=on_date, error=error)

    logger.debug("rate_resolved", currency=currency, date=on_date.isoformat(), rate=rate)
    return RateResolution(rate=rate, source="lookup", lookup_date=on_date)


class LatestRateLookup:
    """Debounced rate resolution where only the newest request wins.

    Each call to `request` takes a new generation token, waits out the
    quiet period and resolves the rate. If a newer request was issued in
    the meantime the result is discarded and `None` is returned. In-flight
    lookups are never cancelled, only ignored on arrival.
    """

    def __init__(self, lookup: RateLookup, *, debounce: float = 0.3) -> None:
        self._lookup = lookup
        self.debounce = debounce
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    async def request(
        self,
        currency: str,
        on_date: datetime.date,
        *,
        header_rate: float = 0.0,
        first_flight: bool = False,
    ) -> RateResolution | None:
        """Resolve a rate unless superseded by a later request."""
        self._generation += 1
        token = self._generation

        if self.debounce > 0:
            await asyncio.sleep(self.debounce)
        if not self.is_current(token):
            logger.debug("rate_request_superseded", token=token, stage="debounce")
            return None

        resolution = await resolve_rate(
            currency,
            on_date,
            lookup=self._lookup,
            header_rate=header_rate,
            first_flight=first_flight,
        )
        if not self.is_current(token):
            logger.debug("rate_request_superseded", token=token, stage="lookup")
            return None
        return resolution
