"""Client for the spreadsheet-backed report store.

Every request is a POST of `{"action": ..., "payload": ...}` to a single
endpoint; every response is `{"status": "success" | "error", ...}`.
"""

from __future__ import annotations

import datetime
import json
from typing import Any

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from expense_report.errors import AuthError, RateLookupError, StoreError
from expense_report.models import (
    Category,
    ExpenseItem,
    FlightInfo,
    StoredReport,
    StoreConfig,
    User,
)
from expense_report.store.wire import decode_header, decode_items, encode_item, format_wire_date

logger = structlog.get_logger()

# text/plain keeps Apps Script deployments from needing a CORS preflight
REQUEST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


class StoreClient:
    """Async client for the report store.

    Wraps report creation and loading, item add/delete, and the rate,
    city and flight lookups. The identity actions are passed through
    without interpretation.
    """

    def __init__(self, config: StoreConfig) -> None:
        self.config = config
        self._http = httpx.AsyncClient(timeout=config.timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> StoreClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _post(self, action: str, payload: dict, attempts: int) -> httpx.Response:
        body = json.dumps({"action": action, "payload": payload}, ensure_ascii=False)
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.2, max=2),
            reraise=True,
        ):
            with attempt:
                response = await self._http.post(
                    self.config.url,
                    content=body.encode("utf-8"),
                    headers=REQUEST_HEADERS,
                )
        return response

    async def _request(
        self,
        action: str,
        payload: dict | None = None,
        *,
        error_cls: type[Exception] = StoreError,
        attempts: int = 1,
    ) -> dict[str, Any]:
        """Send one action to the store.

        Args:
            action: Store action name (e.g. "getReport").
            payload: Action payload.
            error_cls: Exception type raised on any failure.
            attempts: Total tries on transport errors; 1 means no retry.

        Returns:
            The decoded response object.

        Raises:
            StoreError: (or `error_cls`) on transport, HTTP, decoding or
                API-level errors.
        """
        logger.debug("store_request", action=action)
        try:
            response = await self._post(action, payload or {}, attempts)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("store_request_failed", action=action, error=str(e))
            raise error_cls(f"{action} failed: {e}") from e

        try:
            result = response.json()
        except json.JSONDecodeError as e:
            raise error_cls(f"{action} returned an invalid response") from e

        if not isinstance(result, dict):
            raise error_cls(f"{action} returned an unexpected response: {result!r}")
        if result.get("status") == "error":
            raise error_cls(result.get("message") or "Unknown API error")
        return result

    @staticmethod
    def _data(result: dict[str, Any]) -> Any:
        return result.get("data")

    async def create_report(self, user_id: str, exchange_rate: float = 0.0) -> str:
        """Allocate a new report for the user and return its id."""
        result = await self._request("createReport", {"userId": user_id, "exchangeRate": exchange_rate})
        data = self._data(result)
        report_id = result.get("reportId") or (data.get("reportId") if isinstance(data, dict) else None)
        if not report_id:
            raise StoreError("createReport returned no report id")
        logger.info("report_created", report_id=report_id, user_id=user_id)
        return str(report_id)

    async def get_report(self, report_id: str) -> StoredReport:
        """Fetch a report header and all of its items."""
        result = await self._request("getReport", {"reportId": report_id})
        data = self._data(result)
        if not isinstance(data, dict):
            raise StoreError(f"getReport returned no data for {report_id}")
        report = StoredReport(
            header=decode_header(data.get("header"), report_id),
            items=decode_items(data.get("items")),
        )
        logger.info(
            "report_loaded",
            report_id=report_id,
            items=sum(len(rows) for rows in report.items.values()),
        )
        return report

    async def add_item(self, report_id: str, item: ExpenseItem) -> dict[str, Any]:
        logger.info("adding_item", report_id=report_id, category=item.category.value)
        return await self._request(
            "addItem",
            {"reportId": report_id, "category": item.category.value, "itemData": encode_item(item)},
        )

    async def delete_item(self, report_id: str, category: Category, sequence: int) -> dict[str, Any]:
        logger.info("deleting_item", report_id=report_id, category=category.value, sequence=sequence)
        return await self._request(
            "deleteItem",
            {"reportId": report_id, "category": category.value, "sequence": sequence},
        )

    async def get_exchange_rate(self, currency: str, on_date: datetime.date) -> float:
        """Look up the TWD rate for a currency on a date.

        Transport errors are retried once.

        Raises:
            RateLookupError: If the lookup fails or yields no positive rate.
        """
        result = await self._request(
            "getExchangeRate",
            {"currency": currency, "date": format_wire_date(on_date)},
            error_cls=RateLookupError,
            attempts=2,
        )
        data = self._data(result)
        raw = data.get("rate") if isinstance(data, dict) else None
        if raw is None:
            raw = result.get("rate")
        try:
            rate = float(raw)
        except (TypeError, ValueError):
            raise RateLookupError(f"No {currency} rate for {format_wire_date(on_date)}")
        if rate <= 0:
            raise RateLookupError(f"Invalid {currency} rate {rate} for {format_wire_date(on_date)}")
        return rate

    async def search_city(self, query: str) -> list[str]:
        """City names matching `query`, for region autocompletion."""
        result = await self._request("searchCity", {"query": query})
        data = self._data(result) or []
        return [str(entry["name"]) for entry in data if isinstance(entry, dict) and entry.get("name")]

    async def search_flight(self, code: str, on_date: datetime.date) -> FlightInfo | None:
        """Schedule details for a flight code on a date, if the store knows it."""
        result = await self._request("searchFlight", {"code": code, "date": format_wire_date(on_date)})
        data = self._data(result)
        if not isinstance(data, dict):
            return None
        return FlightInfo(
            departure=str(data.get("departure") or ""),
            arrival=str(data.get("arrival") or ""),
            dep_time=str(data.get("depTime") or ""),
            arr_time=str(data.get("arrTime") or ""),
        )

    async def signin(self, username: str, password: str) -> User:
        result = await self._request(
            "signin", {"username": username, "password": password}, error_cls=AuthError
        )
        user = result.get("user")
        if not isinstance(user, dict) or "id" not in user:
            raise AuthError("Sign in returned no user")
        return User(id=str(user["id"]), name=str(user.get("name") or username))

    async def signup(self, username: str, password: str, email: str) -> dict[str, Any]:
        return await self._request(
            "signup", {"username": username, "password": password, "email": email}, error_cls=AuthError
        )

    async def forgot_password(self, email: str) -> dict[str, Any]:
        return await self._request("forgotPassword", {"email": email}, error_cls=AuthError)

    async def change_password(self, username: str, old_password: str, new_password: str) -> dict[str, Any]:
        return await self._request(
            "changePassword",
            {"username": username, "oldPassword": old_password, "newPassword": new_password},
            error_cls=AuthError,
        )
