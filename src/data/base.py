"""
Price fetcher protocol definition.

The return engine depends only on this contract, never on how prices are
retrieved (file, network provider, test fixture).
"""

from datetime import date
from typing import List, Protocol, Sequence

from src.core.errors import FetchError
from src.core.models import PricePoint


class IPriceFetcher(Protocol):
    """
    Interface for daily price sources.

    Implementations must return split-adjusted closing prices, strictly
    ascending and unique per date. Any failure (network, provider, unknown
    ticker) is raised as FetchError. Retry policy, if any, belongs to the
    implementation; the core never retries.
    """

    def fetch(self, ticker: str, start_date: date, end_date: date) -> List[PricePoint]:
        """
        Fetch daily closes for ticker over [start_date, end_date] inclusive.

        Args:
            ticker: Security identifier (e.g. 'MSFT', 'ITX.MC')
            start_date: First date (inclusive)
            end_date: Last date (inclusive)

        Returns:
            Ordered list of PricePoint, possibly empty if the source has no
            trading days in the range

        Raises:
            FetchError: If the source fails
        """
        ...


def check_series_contract(ticker: str, series: Sequence[PricePoint]) -> None:
    """
    Verify a fetched series is strictly ascending by date.

    Raises:
        FetchError: If dates are out of order or duplicated
    """
    for prev, curr in zip(series, series[1:]):
        if curr.date <= prev.date:
            raise FetchError(
                ticker,
                f"series not strictly ascending ({prev.date} followed by {curr.date})"
            )
