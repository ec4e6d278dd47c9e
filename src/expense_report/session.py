"""Session-scoped state for working on one report.

The store is the single source of truth: after every add or delete the
full report is reloaded, and the in-memory view is only replaced by a
successful fetch.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel

from expense_report.builder import build_report_model
from expense_report.currency import LatestRateLookup, RateResolution
from expense_report.errors import StoreError
from expense_report.models import Category, ExpenseEntry, ExpenseItem, ReportModel, StoredReport
from expense_report.rules import compute_item, validate_entry
from expense_report.store.client import StoreClient

logger = structlog.get_logger()


class EntryResult(BaseModel):
    """Outcome of adding one entry."""

    item: ExpenseItem
    resolution: RateResolution


class ReportSession:
    """One user's work on one report.

    Args:
        client: Store client used for every request.
        user_id: Owner of the report.
        report_id: Existing report to open. When None, `start` creates one.
        debounce: Quiet period for rate lookups, in seconds.
    """

    def __init__(
        self,
        client: StoreClient,
        user_id: str,
        *,
        report_id: str | None = None,
        debounce: float = 0.0,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.report_id = report_id
        self.report: StoredReport | None = None
        self.rates = LatestRateLookup(client.get_exchange_rate, debounce=debounce)
        self.log = logger.bind(user_id=user_id)

    async def start(self) -> StoredReport:
        """Open the session's report, creating it first if none was given."""
        if self.report_id is None:
            self.report_id = await self.client.create_report(self.user_id)
        self.log = self.log.bind(report_id=self.report_id)
        return await self.reload()

    def _require_report_id(self) -> str:
        if self.report_id is None:
            raise StoreError("No active report; call start() first")
        return self.report_id

    async def reload(self) -> StoredReport:
        """Replace the view with a fresh fetch; keep the old view on failure."""
        report_id = self._require_report_id()
        try:
            report = await self.client.get_report(report_id)
        except StoreError:
            self.log.warning("report_reload_failed")
            raise
        self.report = report
        return report

    @property
    def has_flights(self) -> bool:
        return bool(self.report and self.report.items_for(Category.FLIGHT))

    @property
    def header_rate(self) -> float:
        return self.report.header.rate_usd if self.report else 0.0

    async def resolve_rate(self, category: Category, entry: ExpenseEntry) -> RateResolution | None:
        """Resolve the rate for an entry; None when superseded by a newer call."""
        return await self.rates.request(
            entry.currency,
            entry.date,
            header_rate=self.header_rate,
            first_flight=category is Category.FLIGHT and not self.has_flights,
        )

    async def add_entry(self, category: Category, entry: ExpenseEntry) -> EntryResult | None:
        """Validate, convert and store one entry, then reload the report.

        Returns:
            The stored item and how its rate was resolved, or None when a
            newer rate request superseded this one before it was sent.

        Raises:
            EntryValidationError: If the entry is invalid.
            StoreError: If the store rejects the item or the reload fails.
        """
        report_id = self._require_report_id()
        validate_entry(category, entry, has_flights=self.has_flights)

        resolution = await self.resolve_rate(category, entry)
        if resolution is None:
            return None
        if resolution.error:
            self.log.warning("using_fallback_rate", category=category.value, error=resolution.error)

        item = compute_item(category, entry, resolution.rate, has_flights=self.has_flights)
        await self.client.add_item(report_id, item)
        self.log.info("item_added", category=category.value, twd=item.overall_twd, rate=item.rate)
        await self.reload()
        return EntryResult(item=item, resolution=resolution)

    async def delete_item(self, category: Category, sequence: int) -> None:
        report_id = self._require_report_id()
        await self.client.delete_item(report_id, category, sequence)
        self.log.info("item_deleted", category=category.value, sequence=sequence)
        await self.reload()

    def build_model(self, user: str = "") -> ReportModel:
        """Build the report model from the last successful fetch."""
        if self.report is None:
            raise StoreError("Report not loaded")
        return build_report_model(self.report.header, self.report.items, user=user)
