"""
Error taxonomy for the valuation and return engines.

Every failure raised by this package derives from ModusError so a caller
(CLI, request layer) can catch the whole family in one place:

- InvalidParameter: malformed or out-of-domain input, raised before any
  computation starts
- MissingPriceData: a date required by a lot is absent from its price series
- NoActiveLots: a portfolio date has no lot contributing to it
- InvalidPathCount: Monte Carlo asked for fewer than one path
- FetchError: the price source failed or broke its contract

None of these are retried or downgraded to a default value inside the core.
"""

from datetime import date
from typing import Optional


class ModusError(Exception):
    """Base class for all errors raised by this package."""


class InvalidParameter(ModusError, ValueError):
    """Input value out of domain (e.g. negative strike, missing market price)."""


class InvalidPathCount(ModusError, ValueError):
    """Monte Carlo path count below one."""

    def __init__(self, path_count):
        self.path_count = path_count
        super().__init__(f"path_count must be an integer >= 1, got {path_count!r}")


class MissingPriceData(ModusError):
    """A price required for a lot is not present in its series."""

    def __init__(self, ticker: str, missing_date: date, reason: Optional[str] = None):
        self.ticker = ticker
        self.missing_date = missing_date
        message = f"No price for {ticker} on {missing_date.isoformat()}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NoActiveLots(ModusError):
    """A date in the portfolio calendar has no contributing lot."""

    def __init__(self, empty_date: date):
        self.empty_date = empty_date
        super().__init__(f"No active lots on {empty_date.isoformat()}")


class FetchError(ModusError):
    """Opaque failure of the external price source."""

    def __init__(self, ticker: str, message: str):
        self.ticker = ticker
        super().__init__(f"Failed to fetch prices for {ticker}: {message}")
