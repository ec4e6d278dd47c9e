"""Error taxonomy shared across the package."""

from __future__ import annotations


class ExpenseReportError(Exception):
    """Base class for all recoverable expense-report errors."""


class EntryValidationError(ExpenseReportError):
    """An entered expense is invalid and must not be sent to the store."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class RateLookupError(ExpenseReportError):
    """The exchange-rate service failed or returned no usable rate."""


class StoreError(ExpenseReportError):
    """A request to the report store failed."""


class AuthError(ExpenseReportError):
    """An identity request (sign in, sign up, password change) was rejected."""


class ConfigError(ExpenseReportError):
    """The configuration file is unreadable or fails validation."""
